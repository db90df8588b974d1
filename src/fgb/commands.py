"""Branch and worktree commands."""

from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from fgb.config import Config
from fgb.deletion import DeletionEngine
from fgb.formatter import compute_layout, filter_refs, list_refs, render_line, split_patterns
from fgb.git import GitRepo
from fgb.jump import JumpEngine
from fgb.logging_config import get_logger
from fgb.models import BranchRef, Cancelled, RefScope, SelectionReply, local_name
from fgb.picker import FzfPicker, run_picker
from fgb.prompts import TerminalPrompter

logger = get_logger(__name__)


class _Commands:
    """Listing, picking and info shared by branch and worktree commands."""

    def __init__(
        self,
        repo: GitRepo,
        config: Config,
        picker: Optional[FzfPicker] = None,
        prompter: Optional[TerminalPrompter] = None,
        console: Optional[Console] = None,
        terminal_width: Optional[int] = None,
    ) -> None:
        self.repo = repo
        self.config = config
        self.console = console or Console(highlight=False)
        self.picker = picker or FzfPicker(height=config.fzf_height)
        self.prompter = prompter or TerminalPrompter(self.console)
        self.terminal_width = terminal_width if terminal_width is not None else self.console.width
        self.deletion = DeletionEngine(repo, self.prompter, self.console)

    def _refs(self, scope: RefScope, filter_text: Optional[str], include: Optional[set[str]] = None) -> list[BranchRef]:
        refs = list_refs(
            self.repo,
            scope,
            self.config.sort_order,
            self.config.author_format,
            self.config.date_format,
            include=include,
        )
        return filter_refs(refs, split_patterns(filter_text))

    def _lines(self, refs: Sequence[BranchRef], worktrees: Optional[Mapping[str, Path]] = None) -> list[str]:
        layout = compute_layout(list(refs), self.terminal_width, worktrees)
        logger.debug("layout: %s", layout)
        return [
            render_line(ref, layout, worktrees, self.config.local_brackets, self.config.remote_brackets)
            for ref in refs
        ]

    def _pick(self, lines: list[str], header: str, expect_keys: list[str], query: Optional[str]) -> SelectionReply:
        return run_picker(
            self.picker,
            lines,
            header,
            expect_keys,
            query,
            self.config.local_brackets,
            self.config.remote_brackets,
        )

    def _key_help(self, *keys: tuple[str, str]) -> str:
        return ", ".join(f"{key}:{action}" for key, action in keys)

    def show_info(self, full_name: str, worktree: Optional[Path] = None) -> None:
        """Print details of the head commit of a branch."""
        info = self.repo.commit_info(full_name)
        rows = [("Branch", full_name)]
        if worktree is not None:
            rows.append(("Worktree", str(worktree)))
        rows.extend(
            [
                ("Commit", info.hexsha),
                ("Author", info.author),
                ("Author date", info.author_date),
                ("Committer", info.committer),
                ("Committer date", info.committer_date),
                ("Message", info.message),
            ]
        )
        table = Table.grid(padding=(0, 2))
        table.add_column(style="bold cyan", no_wrap=True)
        table.add_column()
        for key, value in rows:
            table.add_row(f"{key}:", escape(value))
        self.console.print(table)


class BranchCommands(_Commands):
    """``fgb branch`` subcommands."""

    def list(self, scope: RefScope = RefScope.LOCAL, filter_text: Optional[str] = None) -> None:
        """Print the branch listing."""
        for line in self._lines(self._refs(scope, filter_text)):
            typer.echo(line)

    def manage(
        self,
        scope: RefScope = RefScope.LOCAL,
        filter_text: Optional[str] = None,
        query: Optional[str] = None,
        force: bool = False,
    ) -> None:
        """Pick branches to switch to, inspect or delete."""
        cfg = self.config
        header = "Manage Git Branches: " + self._key_help(
            ("ctrl-y", "switch"),
            ("ctrl-t", "toggle"),
            (cfg.delete_key, "delete"),
            (cfg.extended_delete_key, "extended delete"),
            (cfg.info_key, "info"),
        )
        refs = self._refs(scope, filter_text)
        reply = self._pick(
            self._lines(refs), header, [cfg.delete_key, cfg.extended_delete_key, cfg.info_key], query
        )
        if isinstance(reply, Cancelled):
            return

        selected = reply.selected_refs
        if reply.pressed_key == cfg.delete_key:
            self.deletion.delete_branches(selected, force=force)
        elif reply.pressed_key == cfg.extended_delete_key:
            self.deletion.delete_branches(selected, force=force, extended=True)
        elif reply.pressed_key == cfg.info_key:
            self.show_info(selected[-1])
        else:
            branch = local_name(selected[-1])
            self.repo.switch_branch(branch)
            self.console.print(f"[green]Switched[/green] to branch '[blue]{escape(branch)}[/blue]'")


class WorktreeCommands(_Commands):
    """``fgb worktree`` subcommands; require a bare repository."""

    def __init__(
        self,
        repo: GitRepo,
        config: Config,
        picker: Optional[FzfPicker] = None,
        prompter: Optional[TerminalPrompter] = None,
        console: Optional[Console] = None,
        terminal_width: Optional[int] = None,
    ) -> None:
        self.bare_root = repo.bare_repo_root()
        super().__init__(repo, config, picker, prompter, console, terminal_width)
        self.jumper = JumpEngine(repo, self.prompter, self.console)

    def _worktrees(self) -> dict[str, Path]:
        return {wt.branch: wt.path for wt in self.repo.list_worktrees()}

    def _worktree_refs(self, filter_text: Optional[str]) -> tuple[list[BranchRef], dict[str, Path]]:
        worktrees = self._worktrees()
        include = {f"heads/{branch}" for branch in worktrees}
        return self._refs(RefScope.LOCAL, filter_text, include=include), worktrees

    def add_candidates(self, scope: RefScope, filter_text: Optional[str] = None) -> list[BranchRef]:
        """Branches that do not have a worktree yet.

        Remote branches are left out when their local counterpart, found by
        upstream or by name, already has a worktree.
        """
        worktrees = self._worktrees()
        upstreams = {self.repo.upstream_of(branch) for branch in worktrees}
        candidates = []
        for ref in self._refs(scope, filter_text):
            if ref.local_name in worktrees:
                continue
            if ref.is_remote and ref.full_name in upstreams:
                continue
            candidates.append(ref)
        return candidates

    def _export_cwd(self, start: Path) -> None:
        """Hand the final directory to a shell wrapper via ``FGB_CD_FILE``."""
        cwd = Path.cwd()
        if self.config.cd_file and cwd != start:
            Path(self.config.cd_file).write_text(f"{cwd}\n")

    def _dispatch(self, reply: SelectionReply, worktrees: Mapping[str, Path], force: bool, confirm: bool) -> None:
        cfg = self.config
        selected = reply.selected_refs
        if reply.pressed_key == cfg.delete_key:
            self.deletion.delete_worktrees(selected, force=force)
        elif reply.pressed_key == cfg.extended_delete_key:
            self.deletion.delete_worktrees(selected, force=force, extended=True)
        elif reply.pressed_key == cfg.info_key:
            self.show_info(selected[-1], worktrees.get(local_name(selected[-1])))
        elif reply.pressed_key == cfg.verbose_key:
            self.jumper.jump_or_create(selected[-1], confirmed=False)
        else:
            self.jumper.jump_or_create(selected[-1], confirmed=confirm)

    def _run(
        self,
        refs: list[BranchRef],
        worktrees: Optional[Mapping[str, Path]],
        header: str,
        expect_keys: list[str],
        query: Optional[str],
        force: bool,
        confirm: bool,
    ) -> None:
        start = Path.cwd()
        reply = self._pick(self._lines(refs, worktrees), header, expect_keys, query)
        if isinstance(reply, Cancelled):
            return
        try:
            self._dispatch(reply, worktrees or {}, force, confirm)
        finally:
            self._export_cwd(start)

    def _create_keys(self) -> tuple[list[str], str]:
        cfg = self.config
        help_text = self._key_help(
            ("ctrl-y", "jump/create"),
            ("ctrl-t", "toggle"),
            (cfg.verbose_key, "create with path prompt"),
            (cfg.delete_key, "delete"),
            (cfg.extended_delete_key, "extended delete"),
            (cfg.info_key, "info"),
        )
        return [cfg.delete_key, cfg.extended_delete_key, cfg.info_key, cfg.verbose_key], help_text

    # Defined after every method annotated with list[...]
    def list(self, filter_text: Optional[str] = None) -> None:
        """Print the branches that have worktrees, with their paths."""
        refs, worktrees = self._worktree_refs(filter_text)
        for line in self._lines(refs, worktrees):
            typer.echo(line)

    def manage(self, filter_text: Optional[str] = None, query: Optional[str] = None, force: bool = False) -> None:
        """Pick worktrees to jump to, inspect or delete."""
        cfg = self.config
        header = "Manage Git Worktrees: " + self._key_help(
            ("ctrl-y", "jump"),
            ("ctrl-t", "toggle"),
            (cfg.delete_key, "delete"),
            (cfg.extended_delete_key, "extended delete"),
            (cfg.info_key, "info"),
        )
        refs, worktrees = self._worktree_refs(filter_text)
        keys = [cfg.delete_key, cfg.extended_delete_key, cfg.info_key]
        self._run(refs, worktrees, header, keys, query, force, confirm=False)

    def add(
        self,
        scope: RefScope = RefScope.LOCAL,
        filter_text: Optional[str] = None,
        query: Optional[str] = None,
        force: bool = False,
        confirm: bool = False,
    ) -> None:
        """Pick a branch without a worktree and create one for it."""
        keys, help_text = self._create_keys()
        refs = self.add_candidates(scope, filter_text)
        self._run(refs, None, "Add a Git Worktree: " + help_text, keys, query, force, confirm)

    def total(
        self,
        scope: RefScope = RefScope.LOCAL,
        filter_text: Optional[str] = None,
        query: Optional[str] = None,
        force: bool = False,
        confirm: bool = False,
    ) -> None:
        """Manage and add over every branch, with or without a worktree."""
        keys, help_text = self._create_keys()
        refs = self._refs(scope, filter_text)
        worktrees = self._worktrees()
        self._run(refs, worktrees, "Manage Git Worktrees (total): " + help_text, keys, query, force, confirm)
