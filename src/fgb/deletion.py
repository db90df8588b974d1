"""Branch and worktree deletion.

Reversible first attempts (``git branch -d``, ``git worktree remove``) may run
without a prompt under ``--force``. Their destructive fallbacks (deleting an
unmerged branch, removing a worktree with local changes) and remote branch
deletion always ask for confirmation, whatever the force flag says.

In extended mode a deleted branch takes its counterpart with it: a local
branch its upstream, a remote branch its local tracking branch, a worktree
its local branch. Counterparts are deleted with extended mode turned off, so
the cascade never comes back to the ref it started from.
"""

import os
from collections.abc import Iterable
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.markup import escape

from fgb.exceptions import ErrorKind, GitError
from fgb.git import GitRepo
from fgb.logging_config import get_logger
from fgb.models import BranchRef, local_name
from fgb.prompts import TerminalPrompter

logger = get_logger(__name__)


def _is_inside(path: Path, directory: Path) -> bool:
    try:
        path.resolve().relative_to(directory.resolve())
    except ValueError:
        return False
    return True


class DeletionEngine:
    """Delete branches and worktrees one selected entry at a time."""

    def __init__(self, repo: GitRepo, prompter: TerminalPrompter, console: Console) -> None:
        self.repo = repo
        self.prompter = prompter
        self.console = console

    def _report_error(self, err: GitError) -> None:
        self.console.print(f"[red]Error:[/red] {escape(str(err))}")

    def delete_branches(self, full_names: Iterable[str], force: bool = False, extended: bool = False) -> None:
        """Delete each selected branch in turn.

        A failed entry does not stop the batch. A failed force delete and a
        failing prompt do: they propagate to the caller.
        """
        for full_name in full_names:
            self.delete_branch(full_name, force=force, extended=extended)

    def delete_branch(self, full_name: str, force: bool = False, extended: bool = False) -> bool:
        """Delete one local or remote branch. Returns True if it was deleted."""
        ref = BranchRef(full_name=full_name)
        if ref.is_remote:
            return self._delete_remote(ref, force, extended)
        return self._delete_local(ref.local_name, force, extended)

    def _delete_local(self, branch: str, force: bool, extended: bool) -> bool:
        counterpart = self.repo.upstream_of(branch) if extended else None
        try:
            self.repo.delete_local_branch(branch)
        except GitError as err:
            self._report_error(err)
            if err.kind is not ErrorKind.UNMERGED:
                return False
            head = self.repo.current_branch_name()
            warning = (
                f"[red]WARNING:[/red] The branch '[blue]{escape(branch)}[/blue]' is not yet merged "
                f"into the '[green]{escape(head)}[/green]' branch.\n\nAre you sure you want to delete it?"
            )
            if not self.prompter.confirm(warning):
                return False
            # A failed force delete ends the command
            self.repo.delete_local_branch(branch, force=True)
        self.console.print(f"[green]Deleted[/green] local branch '[blue]{escape(branch)}[/blue]'")

        if counterpart and counterpart.startswith("remotes/"):
            logger.debug("extended delete: %s -> %s", branch, counterpart)
            self.delete_branch(counterpart, force=force, extended=False)
        return True

    def _delete_remote(self, ref: BranchRef, force: bool, extended: bool) -> bool:
        remote = ref.remote_name or ""
        branch = ref.local_name
        counterpart = self.repo.local_tracking_of(ref.full_name) if extended else None
        # Force is ignored for remote branches
        prompt = (
            f"[red]WARNING:[/red] Delete branch '[blue]{escape(branch)}[/blue]' "
            f"from remote: [yellow]{escape(remote)}[/yellow]?"
        )
        if not self.prompter.confirm(prompt):
            return False
        try:
            self.repo.delete_remote_branch(remote, branch)
        except GitError as err:
            self._report_error(err)
            return False
        self.console.print(
            f"[green]Deleted[/green] branch '[blue]{escape(branch)}[/blue]' "
            f"from remote [yellow]{escape(remote)}[/yellow]"
        )

        if counterpart:
            logger.debug("extended delete: %s -> %s", ref.full_name, counterpart)
            self._delete_local(counterpart, force, extended=False)
        return True

    def delete_worktrees(self, full_names: Iterable[str], force: bool = False, extended: bool = False) -> None:
        """Delete the worktree of each selected branch in turn."""
        for full_name in full_names:
            self.delete_worktree(full_name, force=force, extended=extended)

    def delete_worktree(self, full_name: str, force: bool = False, extended: bool = False) -> bool:
        """Delete the worktree of a branch. Returns True if it was removed.

        Branches without a worktree are handed to branch deletion instead.
        """
        branch = local_name(full_name)
        worktrees = {wt.branch: wt.path for wt in self.repo.list_worktrees()}
        path = worktrees.get(branch)
        if path is None:
            # Nothing to remove, the branch itself is the target
            return self.delete_branch(full_name, force=True, extended=extended)

        original_cwd: Optional[Path] = None
        cwd = Path.cwd()
        if _is_inside(cwd, path):
            original_cwd = cwd
            os.chdir(self.repo.bare_repo_root())

        try:
            removed = self._remove_worktree(branch, path, force)
        finally:
            # The directory only survives when the removal did not happen
            if original_cwd is not None and original_cwd.is_dir():
                os.chdir(original_cwd)
        if removed:
            self._maybe_delete_backing_branch(branch, force, extended)
        return removed

    def _remove_worktree(self, branch: str, path: Path, force: bool) -> bool:
        target = f"worktree: [yellow]{escape(str(path))}[/yellow], for branch '[blue]{escape(branch)}[/blue]'"
        if not force and not self.prompter.confirm(f"[red]Delete[/red] {target}?"):
            return False
        try:
            self.repo.remove_worktree(path)
        except GitError as err:
            self._report_error(err)
            if err.kind is not ErrorKind.DIRTY:
                return False
            if not self._confirm_dirty_remove(path):
                return False
            try:
                self.repo.remove_worktree(path, force=True)
            except GitError as force_err:
                self._report_error(force_err)
                return False
        self.console.print(f"[green]Deleted[/green] {target}")
        return True

    def _confirm_dirty_remove(self, path: Path) -> bool:
        try:
            status = self.repo.status_short(path)
        except GitError as err:
            status = str(err)
        warning = (
            "[red]WARNING:[/red] This will permanently reset/delete the following files:\n\n"
            f"{escape(status)}\n\nin the [yellow]{escape(str(path))}[/yellow] path.\n\n"
            "Are you sure you want to proceed?"
        )
        return self.prompter.confirm(warning)

    def _maybe_delete_backing_branch(self, branch: str, force: bool, extended: bool) -> None:
        if not (force and extended):
            prompt = f"[red]Delete[/red] the branch '[blue]{escape(branch)}[/blue]' as well?"
            if not self.prompter.confirm(prompt):
                return
        # Worktree already removed, force only skips the unmerged check
        self._delete_local(branch, force=True, extended=extended)
