"""Keep declared config files and a managed .gitignore block in sync."""

from __future__ import annotations

from .errors import ConfigSourceError, ConfigValidationError, CpconfigError
from .gitignore import MARKER
from .models import (
    ConfigEntry,
    FileAction,
    FileSyncResult,
    GitignoreResult,
    SyncOptions,
    SyncResult,
)
from .sync import sync_configs

__all__ = [
    "MARKER",
    "ConfigEntry",
    "ConfigSourceError",
    "ConfigValidationError",
    "CpconfigError",
    "FileAction",
    "FileSyncResult",
    "GitignoreResult",
    "SyncOptions",
    "SyncResult",
    "sync_configs",
]
