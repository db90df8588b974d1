"""Command line interface for fgb."""

import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Annotated, List, Optional

import click
import typer
from rich.console import Console
from rich.markup import escape

from fgb import __version__
from fgb.commands import BranchCommands, WorktreeCommands
from fgb.config import Config
from fgb.exceptions import ConfigError, FgbError, PreconditionError
from fgb.git import GitRepo
from fgb.logging_config import setup_logging
from fgb.models import RefScope

EXIT_ERROR = 1
# Same code git uses for "not a git repository"
EXIT_PRECONDITION = 128

CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}

app = typer.Typer(help="Manage Git branches and worktrees with fzf", context_settings=CONTEXT_SETTINGS)
branch_app = typer.Typer(help="Manage branches in a git repository", context_settings=CONTEXT_SETTINGS)
worktree_app = typer.Typer(help="Manage worktrees in a bare git repository", context_settings=CONTEXT_SETTINGS)
app.add_typer(branch_app, name="branch")
app.add_typer(worktree_app, name="worktree")

console = Console(highlight=False)
err_console = Console(stderr=True, highlight=False)

PathOption = Annotated[Path, typer.Option(help="Path to git repository")]
SortOption = Annotated[
    Optional[str], typer.Option("--sort", "-s", help="Sort branches by a git for-each-ref key, e.g. -committerdate")
]
RemotesOption = Annotated[bool, typer.Option("--remotes", "-r", help="List remote branches")]
AllOption = Annotated[bool, typer.Option("--all", "-a", help="List local and remote branches")]
FilterOption = Annotated[
    Optional[str],
    typer.Option("--filter", help="Keep branches matching any pattern (semicolon, comma or space separated)"),
]
DateFormatOption = Annotated[
    Optional[str], typer.Option("--date-format", "-d", help="for-each-ref field for the date column")
]
AuthorFormatOption = Annotated[
    Optional[str], typer.Option("--author-format", "-u", help="for-each-ref field for the author column")
]
ForceOption = Annotated[
    bool, typer.Option("--force", "-f", help="Skip confirmation for non-destructive operations")
]
ConfirmOption = Annotated[
    bool, typer.Option("--confirm", "-c", help="Create new worktrees at <bare repo>/<branch> without asking")
]
QueryArgument = Annotated[Optional[List[str]], typer.Argument(help="Initial fzf query")]


def version_callback(value: bool) -> None:
    if value:
        typer.echo(f"fgb, version {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: Annotated[
        Optional[bool],
        typer.Option("--version", "-v", callback=version_callback, is_eager=True, help="Show version information"),
    ] = None,
    debug: Annotated[bool, typer.Option("--debug", help="Log git and fzf invocations")] = False,
) -> None:
    """Manage Git branches and worktrees with fzf."""
    setup_logging(debug=debug)


@contextmanager
def handle_errors() -> Iterator[None]:
    """Report fgb errors and exit with the matching code."""
    try:
        yield
    except PreconditionError as err:
        err_console.print(f"[red]Error:[/red] {escape(str(err))}")
        raise typer.Exit(code=EXIT_PRECONDITION) from err
    except FgbError as err:
        err_console.print(f"[red]Error:[/red] {escape(str(err))}")
        raise typer.Exit(code=EXIT_ERROR) from err


def get_config(sort: Optional[str], date_format: Optional[str], author_format: Optional[str]) -> Config:
    """Load configuration from the environment and apply command line overrides."""
    try:
        return Config.from_env().with_overrides(
            sort_order=sort, date_format=date_format, author_format=author_format
        )
    except ConfigError as err:
        err_console.print(f"[red]Error:[/red] {escape(str(err))}")
        raise typer.Exit(code=EXIT_ERROR) from err


def get_scope(remotes: bool, all_: bool) -> RefScope:
    if all_:
        return RefScope.ALL
    if remotes:
        return RefScope.REMOTE
    return RefScope.LOCAL


def get_query(query: Optional[List[str]]) -> Optional[str]:
    return " ".join(query) if query else None


@branch_app.command("list")
def branch_list(
    path: PathOption = Path("."),
    sort: SortOption = None,
    remotes: RemotesOption = False,
    all_: AllOption = False,
    filter_text: FilterOption = None,
    date_format: DateFormatOption = None,
    author_format: AuthorFormatOption = None,
) -> None:
    """List branches in a git repository."""
    config = get_config(sort, date_format, author_format)
    with handle_errors():
        commands = BranchCommands(GitRepo(path), config, console=console)
        commands.list(get_scope(remotes, all_), filter_text)


@branch_app.command("manage")
def branch_manage(
    query: QueryArgument = None,
    path: PathOption = Path("."),
    sort: SortOption = None,
    remotes: RemotesOption = False,
    all_: AllOption = False,
    filter_text: FilterOption = None,
    date_format: DateFormatOption = None,
    author_format: AuthorFormatOption = None,
    force: ForceOption = False,
) -> None:
    """Switch to, inspect or delete branches."""
    config = get_config(sort, date_format, author_format)
    with handle_errors():
        commands = BranchCommands(GitRepo(path), config, console=console)
        commands.manage(get_scope(remotes, all_), filter_text, get_query(query), force)


@worktree_app.command("list")
def worktree_list(
    path: PathOption = Path("."),
    sort: SortOption = None,
    filter_text: FilterOption = None,
    date_format: DateFormatOption = None,
    author_format: AuthorFormatOption = None,
) -> None:
    """List worktrees in a bare git repository."""
    config = get_config(sort, date_format, author_format)
    with handle_errors():
        WorktreeCommands(GitRepo(path), config, console=console).list(filter_text)


@worktree_app.command("manage")
def worktree_manage(
    query: QueryArgument = None,
    path: PathOption = Path("."),
    sort: SortOption = None,
    filter_text: FilterOption = None,
    date_format: DateFormatOption = None,
    author_format: AuthorFormatOption = None,
    force: ForceOption = False,
) -> None:
    """Jump to, inspect or delete worktrees."""
    config = get_config(sort, date_format, author_format)
    with handle_errors():
        commands = WorktreeCommands(GitRepo(path), config, console=console)
        commands.manage(filter_text, get_query(query), force)


@worktree_app.command("add")
def worktree_add(
    query: QueryArgument = None,
    path: PathOption = Path("."),
    sort: SortOption = None,
    remotes: RemotesOption = False,
    all_: AllOption = False,
    filter_text: FilterOption = None,
    date_format: DateFormatOption = None,
    author_format: AuthorFormatOption = None,
    force: ForceOption = False,
    confirm: ConfirmOption = False,
) -> None:
    """Create a worktree for a branch that does not have one."""
    config = get_config(sort, date_format, author_format)
    with handle_errors():
        commands = WorktreeCommands(GitRepo(path), config, console=console)
        commands.add(get_scope(remotes, all_), filter_text, get_query(query), force, confirm)


@worktree_app.command("total")
def worktree_total(
    query: QueryArgument = None,
    path: PathOption = Path("."),
    sort: SortOption = None,
    remotes: RemotesOption = False,
    all_: AllOption = False,
    filter_text: FilterOption = None,
    date_format: DateFormatOption = None,
    author_format: AuthorFormatOption = None,
    force: ForceOption = False,
    confirm: ConfirmOption = False,
) -> None:
    """Jump to, create, inspect or delete worktrees for any branch."""
    config = get_config(sort, date_format, author_format)
    with handle_errors():
        commands = WorktreeCommands(GitRepo(path), config, console=console)
        commands.total(get_scope(remotes, all_), filter_text, get_query(query), force, confirm)


def main() -> None:
    """Console script entry point; usage errors exit with code 1."""
    try:
        code = app(standalone_mode=False)
    except click.UsageError as err:
        err.show()
        sys.exit(EXIT_ERROR)
    except click.ClickException as err:
        err.show()
        sys.exit(err.exit_code)
    except click.Abort:
        typer.echo("Aborted!", err=True)
        sys.exit(EXIT_ERROR)
    sys.exit(code if isinstance(code, int) else 0)


if __name__ == "__main__":
    main()
