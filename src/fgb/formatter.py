"""Branch listing and column layout."""

import re
from collections.abc import Collection, Iterable, Mapping
from pathlib import Path
from typing import Optional

import typer

from fgb.exceptions import FilterError
from fgb.git import GitRepo
from fgb.models import BranchRef, ColumnLayout, RefScope

# Optional columns in the order they are given up on narrow terminals
DEFAULT_PRIORITY = ("worktree_path", "author", "date")
AUTHOR_ELIDE_LIMIT = 25
MAX_SPACER = 4
WORKTREE_FLAG = "+"

_ANSI_RE = re.compile(r"\x1b\[[0-9;]*[A-Za-z]")


def list_refs(
    repo: GitRepo,
    scope: RefScope,
    sort_key: str,
    author_format: str,
    date_format: str,
    include: Optional[Collection[str]] = None,
) -> list[BranchRef]:
    """Build the branch list for a scope, locals before remotes.

    Args:
        repo: Repository to read refs from
        scope: Local, remote or all branches
        sort_key: Passed verbatim to ``git for-each-ref --sort``
        author_format: for-each-ref field used for the author column
        date_format: for-each-ref field used for the date column
        include: When given, only refs whose full name is in it are kept
    """
    if not sort_key.strip():
        raise ValueError("sort key cannot be empty")
    refs = []
    for kind in scope.kinds:
        for full_name, author, date in repo.list_refs(kind, sort_key, author_format, date_format):
            if include is not None and full_name not in include:
                continue
            refs.append(BranchRef(full_name=full_name, author=author, date=date))
    return refs


def split_patterns(text: Optional[str]) -> list[str]:
    """Split a ``--filter`` value on semicolons, commas and whitespace."""
    if not text:
        return []
    return [p for p in re.split(r"[;,\s]+", text) if p]


def filter_refs(refs: Iterable[BranchRef], patterns: list[str]) -> list[BranchRef]:
    """Keep refs whose full name matches any of the regular expressions."""
    if not patterns:
        return list(refs)
    compiled = []
    for pattern in patterns:
        try:
            compiled.append(re.compile(pattern))
        except re.error as err:
            raise FilterError(f"Invalid filter pattern '{pattern}': {err}") from err
    return [ref for ref in refs if any(rx.search(ref.full_name) for rx in compiled)]


def elide_author(name: str) -> str:
    """Shorten long path-like author names to their last segment."""
    if len(name) > AUTHOR_ELIDE_LIMIT and "/" in name:
        return f".../{name.rsplit('/', 1)[1]}"
    return name


def strip_ansi(text: str) -> str:
    return _ANSI_RE.sub("", text)


def decorate(ref: BranchRef, local_brackets: str = "[]", remote_brackets: str = "()") -> str:
    """Wrap a branch name in its local or remote brackets."""
    opening, closing = remote_brackets if ref.is_remote else local_brackets
    return f"{opening}{ref.display_name}{closing}"


def decode_ref(token: str, local_brackets: str = "[]", remote_brackets: str = "()") -> Optional[str]:
    """Recover a full ref name from a decorated branch name."""
    if len(token) < 3:
        return None
    if token[0] == remote_brackets[0] and token[-1] == remote_brackets[1]:
        return f"remotes/{token[1:-1]}"
    if token[0] == local_brackets[0] and token[-1] == local_brackets[1]:
        return f"heads/{token[1:-1]}"
    return None


def _worktree_path(ref: BranchRef, worktrees: Optional[Mapping[str, Path]]) -> Optional[Path]:
    if not worktrees or ref.is_remote:
        return None
    return worktrees.get(ref.local_name)


def _total_width(widths: list[int]) -> int:
    # One separator character between adjacent columns
    return sum(widths) + max(len(widths) - 1, 0)


def compute_layout(
    refs: list[BranchRef],
    terminal_width: int,
    worktrees: Optional[Mapping[str, Path]] = None,
    priority: tuple[str, ...] = DEFAULT_PRIORITY,
) -> ColumnLayout:
    """Compute column widths that fit the terminal.

    Optional columns are disabled in ``priority`` order until the listing
    fits. Disabling the worktree path column replaces it with a one
    character flag. The path column only exists when ``worktrees`` is given.
    """
    branch_width = max((len(ref.display_name) for ref in refs), default=0) + 2
    author_width = max((len(elide_author(ref.author)) for ref in refs), default=0)
    date_width = max((len(ref.date) for ref in refs), default=0)
    path_width = max((len(str(p)) for p in (_worktree_path(r, worktrees) for r in refs) if p), default=0)

    visible = {"worktree_path": worktrees is not None, "author": True, "date": True}
    show_flag = False

    def measure() -> int:
        widths = [branch_width]
        if visible["worktree_path"]:
            widths.append(path_width)
        elif show_flag:
            widths.append(len(WORKTREE_FLAG))
        if visible["author"]:
            widths.append(author_width)
        if visible["date"]:
            widths.append(date_width)
        return _total_width(widths)

    total = measure()
    for column in priority:
        if total <= terminal_width:
            break
        if not visible.get(column):
            continue
        visible[column] = False
        if column == "worktree_path" and path_width > len(WORKTREE_FLAG):
            show_flag = True
        total = measure()

    spacers = 2
    if worktrees is not None:
        spacers = 4 if show_flag else 3
    spacer = min(max(round((terminal_width - total) / spacers), 0), MAX_SPACER)

    return ColumnLayout(
        branch_width=branch_width,
        author_width=author_width,
        date_width=date_width,
        worktree_path_width=path_width,
        spacer=spacer,
        show_author=visible["author"],
        show_date=visible["date"],
        show_worktree_path=visible["worktree_path"],
        show_worktree_flag=show_flag,
        total_width=total,
    )


def _cell(text: str, width: int, **style: object) -> str:
    styled = typer.style(text, **style) if text and style else text
    return styled + " " * max(width - len(text), 0)


def render_line(
    ref: BranchRef,
    layout: ColumnLayout,
    worktrees: Optional[Mapping[str, Path]] = None,
    local_brackets: str = "[]",
    remote_brackets: str = "()",
) -> str:
    """Render one branch as a colored, column-aligned line."""
    name = decorate(ref, local_brackets, remote_brackets)
    columns = [_cell(name, layout.branch_width, fg="yellow", bold=True)]
    path = _worktree_path(ref, worktrees)
    if layout.show_worktree_path:
        columns.append(_cell(str(path) if path else "", layout.worktree_path_width, fg="cyan"))
    elif layout.show_worktree_flag:
        columns.append(_cell(WORKTREE_FLAG if path else "", len(WORKTREE_FLAG), fg="cyan"))
    if layout.show_author:
        columns.append(_cell(elide_author(ref.author), layout.author_width, fg="green"))
    if layout.show_date:
        columns.append(_cell(ref.date, layout.date_width, fg="blue"))
    return (" " * (layout.spacer + 1)).join(columns).rstrip()
