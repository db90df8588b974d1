"""Jump to a branch's worktree, creating it when needed."""

import os
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.markup import escape

from fgb.exceptions import FgbError, GitError
from fgb.git import GitRepo
from fgb.logging_config import get_logger
from fgb.models import local_name
from fgb.prompts import TerminalPrompter

logger = get_logger(__name__)


def resolve_worktree_path(answer: str, bare_root: Path) -> Path:
    """Make a user-entered worktree path absolute and canonical.

    Relative paths are taken relative to the bare repository root.
    """
    path = Path(answer).expanduser()
    if not path.is_absolute():
        path = bare_root / path
    return Path(os.path.normpath(path))


def _change_dir(path: Path) -> None:
    try:
        os.chdir(path)
    except OSError as err:
        raise FgbError(f"Cannot change to worktree {path}: {err.strerror}") from err


class JumpEngine:
    """Change into the worktree of a branch."""

    def __init__(self, repo: GitRepo, prompter: TerminalPrompter, console: Console) -> None:
        self.repo = repo
        self.prompter = prompter
        self.console = console

    def find_worktree(self, branch: str) -> Optional[Path]:
        for worktree in self.repo.list_worktrees():
            if worktree.branch == branch:
                return worktree.path
        return None

    def jump_or_create(self, full_name: str, confirmed: bool = False) -> bool:
        """Jump to the worktree of a branch, creating it first if it has none.

        Args:
            full_name: Full name of the selected ref; remotes use their local name
            confirmed: Create new worktrees at ``<bare root>/<branch>`` without asking

        Returns:
            True if the process is now inside the branch's worktree.
        """
        branch = local_name(full_name)
        existing = self.find_worktree(branch)
        if existing is not None:
            _change_dir(existing)
            self.console.print(
                f"[green]Jumped[/green] to worktree: [yellow]{escape(str(existing))}[/yellow], "
                f"for branch '[blue]{escape(branch)}[/blue]'"
            )
            return True

        bare_root = self.repo.bare_repo_root()
        if confirmed:
            path = bare_root / branch
        else:
            answer = self.prompter.ask_path(f"Add worktree for branch '{branch}' at", default=branch)
            path = resolve_worktree_path(answer, bare_root)

        try:
            self.repo.add_worktree(path, branch)
        except GitError as err:
            self.console.print(f"[red]Error:[/red] {escape(str(err))}")
            return False
        logger.debug("created worktree %s for %s", path, branch)
        _change_dir(path)
        self.console.print(
            f"Worktree [yellow]{escape(str(path))}[/yellow] for branch '[blue]{escape(branch)}[/blue]' "
            "created successfully.\n[green]Jumped[/green] there."
        )
        return True
