"""Data types shared by the listing, picker and engines."""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Union


class RefKind(Enum):
    """Kind of branch reference."""

    LOCAL = "heads"
    REMOTE = "remotes"


class RefScope(Enum):
    """Which refs a listing covers."""

    LOCAL = "local"
    REMOTE = "remote"
    ALL = "all"

    @property
    def kinds(self) -> tuple[RefKind, ...]:
        """Ref kinds covered by this scope, locals first."""
        if self is RefScope.LOCAL:
            return (RefKind.LOCAL,)
        if self is RefScope.REMOTE:
            return (RefKind.REMOTE,)
        return (RefKind.LOCAL, RefKind.REMOTE)


@dataclass(frozen=True)
class BranchRef:
    """A local or remote-tracking branch."""

    full_name: str
    author: str = ""
    date: str = ""

    @property
    def kind(self) -> RefKind:
        if self.full_name.startswith("remotes/"):
            return RefKind.REMOTE
        return RefKind.LOCAL

    @property
    def display_name(self) -> str:
        """Name without the ``heads/`` or ``remotes/`` prefix."""
        return self.full_name.split("/", 1)[1]

    @property
    def remote_name(self) -> Optional[str]:
        if self.kind is RefKind.LOCAL:
            return None
        return self.display_name.split("/", 1)[0]

    @property
    def local_name(self) -> str:
        """Branch name a worktree or switch would use."""
        return local_name(self.full_name)

    @property
    def is_remote(self) -> bool:
        return self.kind is RefKind.REMOTE


def local_name(full_name: str) -> str:
    """Strip ``heads/`` or ``remotes/<remote>/`` from a full ref name."""
    if full_name.startswith("remotes/"):
        parts = full_name.split("/", 2)
        return parts[2] if len(parts) == 3 else parts[-1]
    if full_name.startswith("heads/"):
        return full_name[len("heads/") :]
    return full_name


@dataclass(frozen=True)
class WorktreeEntry:
    """A linked worktree and the local branch checked out in it."""

    branch: str
    path: Path


@dataclass(frozen=True)
class ColumnLayout:
    """Column geometry for one listing."""

    branch_width: int
    author_width: int = 0
    date_width: int = 0
    worktree_path_width: int = 0
    spacer: int = 0
    show_author: bool = True
    show_date: bool = True
    show_worktree_path: bool = False
    show_worktree_flag: bool = False
    total_width: int = 0


@dataclass(frozen=True)
class CommitInfo:
    """Metadata of the head commit of a ref."""

    hexsha: str
    author: str
    author_date: str
    committer: str
    committer_date: str
    message: str


@dataclass(frozen=True)
class Cancelled:
    """The picker was closed without a selection."""

    pressed_key: str = ""
    selected_refs: tuple[str, ...] = ()


@dataclass(frozen=True)
class Accepted:
    """The default accept binding completed the selection."""

    selected_refs: tuple[str, ...]
    pressed_key: str = ""


@dataclass(frozen=True)
class ControlKey:
    """One of the expected control keys completed the selection."""

    pressed_key: str
    selected_refs: tuple[str, ...]


SelectionReply = Union[Cancelled, Accepted, ControlKey]
