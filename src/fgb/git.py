"""Git repository operations."""

from pathlib import Path
from typing import Optional

from git import Git, GitCommandError, InvalidGitRepositoryError, NoSuchPathError, Repo
from git.exc import BadName, BadObject

from fgb.exceptions import GitError, PreconditionError
from fgb.logging_config import get_logger
from fgb.models import CommitInfo, RefKind, WorktreeEntry

logger = get_logger(__name__)

DATE_FORMAT = "%a %b %d %H:%M:%S %Y %z"


def _error_text(err: GitCommandError) -> str:
    """Extract git's own message from a GitCommandError."""
    text = err.stderr or ""
    marker = "stderr: '"
    start = text.find(marker)
    if start != -1:
        text = text[start + len(marker) :]
        if text.endswith("'"):
            text = text[:-1]
    return text.strip() or str(err)


def parse_worktree_porcelain(output: str) -> tuple[Optional[Path], list[WorktreeEntry]]:
    """Parse ``git worktree list --porcelain``.

    Returns:
        The bare repository root (None when the main worktree is not bare)
        and the worktrees that have a branch checked out.
    """
    bare_root: Optional[Path] = None
    entries: list[WorktreeEntry] = []
    for block in output.split("\n\n"):
        record: dict[str, str] = {}
        for line in block.splitlines():
            key, _, value = line.partition(" ")
            record[key] = value
        if "worktree" not in record:
            continue
        path = Path(record["worktree"])
        if "bare" in record:
            bare_root = path
            continue
        branch = record.get("branch", "")
        if "detached" in record or not branch.startswith("refs/heads/"):
            continue
        entries.append(WorktreeEntry(branch=branch[len("refs/heads/") :], path=path))
    return bare_root, entries


class GitRepo:
    """Git repository operations."""

    def __init__(self, path: Path) -> None:
        """Initialize repository.

        Commands run from the bare repository root when the repository has
        one, so they keep working after the current worktree is removed.
        """
        try:
            self.repo: Repo = Repo(path, search_parent_directories=True)
        except (InvalidGitRepositoryError, NoSuchPathError) as err:
            raise PreconditionError(f"Not inside a git repository: {path}") from err
        self._bare_root, _ = parse_worktree_porcelain(self.repo.git.worktree("list", "--porcelain"))
        if self._bare_root is not None:
            self._git = Git(str(self._bare_root))
        else:
            self._git = self.repo.git

    def _run(self, command: str, *args: str) -> str:
        """Run a git subcommand, translating failures into GitError."""
        logger.debug("git %s %s", command.replace("_", "-"), " ".join(args))
        try:
            return str(getattr(self._git, command)(*args))
        except GitCommandError as err:
            message = _error_text(err)
            logger.debug("git %s failed: %s", command, message)
            raise GitError(message) from err

    def list_refs(
        self, kind: RefKind, sort_key: str, author_format: str, date_format: str
    ) -> list[tuple[str, str, str]]:
        """List (full name, author, date) for all refs of a kind.

        Full names drop the ``refs/`` prefix. Symbolic remote HEAD refs are skipped.
        """
        output = self._run(
            "for_each_ref",
            f"--format=%(refname)%00%({author_format})%00%({date_format})",
            f"--sort={sort_key}",
            f"refs/{kind.value}",
        )
        refs = []
        for line in output.splitlines():
            refname, _, rest = line.partition("\x00")
            author, _, date = rest.partition("\x00")
            if kind is RefKind.REMOTE and refname.endswith("/HEAD"):
                continue
            refs.append((refname[len("refs/") :], author, date))
        return refs

    def current_branch_name(self) -> str:
        """Get the branch HEAD points to ("HEAD" when detached)."""
        try:
            return self._run("symbolic_ref", "--short", "HEAD").strip()
        except GitError:
            return "HEAD"

    def delete_local_branch(self, name: str, force: bool = False) -> None:
        """Delete a local branch, refusing unmerged branches unless forced."""
        self._run("branch", "-D" if force else "-d", name)

    def delete_remote_branch(self, remote: str, name: str) -> None:
        """Delete a branch on a remote."""
        self._run("push", "--delete", remote, name)

    def switch_branch(self, name: str) -> None:
        """Switch the current worktree to a branch."""
        logger.debug("git switch %s", name)
        try:
            self.repo.git.switch(name)
        except GitCommandError as err:
            raise GitError(_error_text(err)) from err

    def upstream_of(self, local_branch: str) -> Optional[str]:
        """Full name of the upstream of a local branch, if it has one."""
        output = self._run("for_each_ref", "--format=%(upstream)", f"refs/heads/{local_branch}").strip()
        if not output.startswith("refs/"):
            return None
        return output[len("refs/") :]

    def local_tracking_of(self, remote_full_name: str) -> Optional[str]:
        """Name of the first local branch whose upstream is the given remote ref."""
        output = self._run("for_each_ref", "--format=%(refname)%00%(upstream)", "refs/heads")
        target = f"refs/{remote_full_name}"
        for line in output.splitlines():
            refname, _, upstream = line.partition("\x00")
            if upstream == target:
                return refname[len("refs/heads/") :]
        return None

    def list_worktrees(self) -> list[WorktreeEntry]:
        """List linked worktrees that have a branch checked out."""
        _, entries = parse_worktree_porcelain(self._run("worktree", "list", "--porcelain"))
        return entries

    def bare_repo_root(self) -> Path:
        """Root of the bare repository the worktrees belong to."""
        if self._bare_root is None:
            raise PreconditionError("Not inside a bare Git repository")
        return self._bare_root

    def add_worktree(self, path: Path, branch: str) -> None:
        """Create a worktree at path for a branch."""
        self._run("worktree", "add", str(path), branch)

    def remove_worktree(self, path: Path, force: bool = False) -> None:
        """Remove a worktree, refusing dirty worktrees unless forced."""
        args = ["remove", str(path)]
        if force:
            args.append("--force")
        self._run("worktree", *args)

    def status_short(self, path: Path) -> str:
        """Short status of a worktree, listing modified and untracked files."""
        logger.debug("git -C %s status --short", path)
        try:
            return str(Git(str(path)).status("--short"))
        except GitCommandError as err:
            raise GitError(_error_text(err)) from err

    def commit_info(self, full_name: str) -> CommitInfo:
        """Get metadata of the head commit of a ref."""
        try:
            commit = self.repo.commit(f"refs/{full_name}")
        except (BadName, BadObject, ValueError, GitCommandError) as err:
            raise GitError(f"Failed to resolve {full_name}: {err}") from err
        return CommitInfo(
            hexsha=commit.hexsha,
            author=f"{commit.author.name} <{commit.author.email}>",
            author_date=commit.authored_datetime.strftime(DATE_FORMAT),
            committer=f"{commit.committer.name} <{commit.committer.email}>",
            committer_date=commit.committed_datetime.strftime(DATE_FORMAT),
            message=str(commit.message).strip(),
        )
