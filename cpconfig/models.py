"""Data records shared by the normalizer, reconciler and ignore-block manager."""

from __future__ import annotations

import codecs
import dataclasses
import enum
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

from .errors import ConfigValidationError

_OPTION_KEYS = {"root_dir", "dry_run", "encoding", "gitignore_path"}


@dataclasses.dataclass
class ConfigEntry:
    """One declared file.

    ``contents`` is either the desired text or a zero-argument callable
    producing it.  ``gitignore=False`` keeps the path out of the managed
    ignore block.  ``mode`` is applied only when the file is created.
    When ``sentinel`` is set, an existing file that differs is overwritten
    only if it still contains the sentinel.
    """

    contents: str | Callable[[], str]
    gitignore: bool = True
    mode: int | None = None
    sentinel: str | None = None


@dataclasses.dataclass(frozen=True)
class SyncOptions:
    root_dir: Path | str | None = None
    dry_run: bool = False
    encoding: str = "utf-8"
    gitignore_path: Path | str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.encoding, str):
            raise ConfigValidationError("Option 'encoding' must be a string")
        try:
            codecs.lookup(self.encoding)
        except LookupError:
            raise ConfigValidationError(f"Unknown encoding: {self.encoding!r}") from None

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any] | None) -> SyncOptions:
        """Build options from a plain mapping, rejecting unknown keys."""
        if not raw:
            return cls()
        unknown = set(raw) - _OPTION_KEYS
        if unknown:
            raise ConfigValidationError(f"Unknown sync options: {sorted(unknown)}")
        if "dry_run" in raw and not isinstance(raw["dry_run"], bool):
            raise ConfigValidationError("Option 'dry_run' must be a boolean")
        if "encoding" in raw and not isinstance(raw["encoding"], str):
            raise ConfigValidationError("Option 'encoding' must be a string")
        for key in ("root_dir", "gitignore_path"):
            value = raw.get(key)
            if value is not None and not isinstance(value, (str, Path)):
                raise ConfigValidationError(f"Option '{key}' must be a path string")
        return cls(**dict(raw))


@dataclasses.dataclass(frozen=True)
class TargetFile:
    """A fully resolved declaration; built only by ``paths.normalize_files``."""

    relative_path: str
    absolute_path: Path
    contents: str
    sentinel: str | None
    track: bool
    mode: int | None
    gitignore_entry: str


class FileAction(str, enum.Enum):
    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"


@dataclasses.dataclass(frozen=True)
class FileOutcome:
    action: FileAction
    managed: bool = True
    warning: str | None = None


@dataclasses.dataclass(frozen=True)
class FileSyncResult:
    path: str
    absolute_path: Path
    action: FileAction
    skipped: bool
    gitignored: bool
    managed: bool
    warning: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "path": self.path,
            "absolute_path": str(self.absolute_path),
            "action": self.action.value,
            "skipped": self.skipped,
            "gitignored": self.gitignored,
            "managed": self.managed,
        }
        if self.warning is not None:
            data["warning"] = self.warning
        return data


@dataclasses.dataclass(frozen=True)
class GitignoreResult:
    path: Path
    updated: bool
    added: list[str]
    removed: list[str]
    skipped: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": str(self.path),
            "updated": self.updated,
            "added": list(self.added),
            "removed": list(self.removed),
            "skipped": self.skipped,
        }


@dataclasses.dataclass(frozen=True)
class SyncResult:
    root_dir: Path
    files: list[FileSyncResult]
    gitignore: GitignoreResult

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready report."""
        return {
            "root_dir": str(self.root_dir),
            "files": [f.to_dict() for f in self.files],
            "gitignore": self.gitignore.to_dict(),
        }
