"""Exceptions raised by fgb."""

from enum import Enum
from typing import Optional


class FgbError(Exception):
    """Base exception for all fgb errors."""


class PreconditionError(FgbError):
    """The command cannot run in the current environment.

    Raised when not inside a repository, when a worktree command is used
    outside a bare repository, or when fzf is not installed.
    """


class ConfigError(FgbError):
    """Invalid configuration value."""


class FilterError(FgbError):
    """A ``--filter`` pattern is not a valid regular expression."""


class PickerError(FgbError):
    """The picker failed for a reason other than the user cancelling."""


class ErrorKind(Enum):
    """Classification of a failed git operation."""

    UNMERGED = "unmerged"
    DIRTY = "dirty"
    OTHER = "other"


# Patterns are matched against git's own error text
_CLASSIFIERS = (
    ("not fully merged", ErrorKind.UNMERGED),
    ("contains modified or untracked files", ErrorKind.DIRTY),
)


def classify(message: str) -> ErrorKind:
    """Classify a git error message."""
    for pattern, kind in _CLASSIFIERS:
        if pattern in message:
            return kind
    return ErrorKind.OTHER


class GitError(FgbError):
    """Git operation error."""

    def __init__(self, message: str, kind: Optional[ErrorKind] = None) -> None:
        """Initialize error.

        Args:
            message: Raw error text reported by git
            kind: Classification; derived from the message when omitted
        """
        super().__init__(message)
        self.kind = kind if kind is not None else classify(message)
