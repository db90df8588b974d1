"""Configuration handling for fgb."""

import os
from collections.abc import Mapping
from dataclasses import dataclass, fields, replace
from typing import Any, Optional

from fgb.exceptions import ConfigError

ENV_PREFIX = "FGB_"


@dataclass(frozen=True)
class Config:
    """Settings shared by all commands, validated on creation."""

    sort_order: str = "-committerdate"
    date_format: str = "committerdate:relative"
    author_format: str = "committername"
    local_brackets: str = "[]"
    remote_brackets: str = "()"
    fzf_height: str = "80%"

    # Picker control keys
    delete_key: str = "ctrl-d"
    extended_delete_key: str = "ctrl-alt-d"
    info_key: str = "ctrl-o"
    verbose_key: str = "ctrl-alt-a"

    # File receiving the final working directory, for shell wrappers
    cd_file: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        for name in ("sort_order", "date_format", "author_format", "fzf_height"):
            if not getattr(self, name).strip():
                raise ConfigError(f"{name} cannot be empty")
        for name in ("local_brackets", "remote_brackets"):
            value = getattr(self, name)
            if len(value) != 2 or any(ch.isspace() for ch in value):
                raise ConfigError(f"{name} must be two non-blank characters, got '{value}'")
        if self.local_brackets == self.remote_brackets:
            raise ConfigError("local_brackets and remote_brackets must differ")
        keys = [self.delete_key, self.extended_delete_key, self.info_key, self.verbose_key]
        if any(not key for key in keys):
            raise ConfigError("picker keys cannot be empty")
        if len(set(keys)) != len(keys):
            raise ConfigError(f"picker keys must be distinct, got {keys}")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Config":
        """Create Config from ``FGB_*`` environment variables."""
        if environ is None:
            environ = os.environ
        values = {}
        for field in fields(cls):
            raw = environ.get(ENV_PREFIX + field.name.upper())
            if raw is not None and raw != "":
                values[field.name] = raw
        return cls(**values)

    def with_overrides(self, **overrides: Any) -> "Config":
        """Return a copy with the non-None overrides applied."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **changes) if changes else self
