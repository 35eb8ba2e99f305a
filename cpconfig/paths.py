"""Validate declared files and resolve them against the root directory.

Everything that can reject an invocation happens here, before the
reconciler touches the file system: path shape and containment,
duplicate detection, contents resolution and option types.
"""

from __future__ import annotations

import inspect
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from .errors import ConfigValidationError
from .models import ConfigEntry, TargetFile

_ENTRY_KEYS = {"contents", "gitignore", "mode", "sentinel"}


def resolve_root(root_dir: Path | str | None) -> Path:
    """Absolute root directory, lexically normalized (symlinks are kept)."""
    return Path(os.path.abspath(root_dir if root_dir is not None else os.getcwd()))


def resolve_gitignore_path(root_dir: Path, custom: Path | str | None = None) -> Path:
    if not custom:
        return root_dir / ".gitignore"
    path = Path(custom)
    if path.is_absolute():
        return path
    return Path(os.path.normpath(root_dir / path))


def to_posix(relative: str) -> str:
    """Forward-slash form without a leading ``./``."""
    posix = relative.replace(os.sep, "/")
    while posix.startswith("./"):
        posix = posix[2:]
    return posix


def normalize_files(files: Mapping[str, Any], root_dir: Path) -> list[TargetFile]:
    """Turn the caller's file map into ``TargetFile`` records, in declaration order."""
    if not isinstance(files, Mapping):
        raise ConfigValidationError("Expected a mapping of file paths to declarations")

    seen: set[str] = set()
    targets: list[TargetFile] = []

    for index, (raw_path, raw_entry) in enumerate(files.items()):
        if not isinstance(raw_path, str) or not raw_path.strip():
            raise ConfigValidationError(f"Config file at index {index} is missing a valid path")

        entry = _coerce_entry(raw_path, raw_entry)

        if os.path.isabs(raw_path):
            raise ConfigValidationError(
                f'Config file path "{raw_path}" must be relative to the root directory'
            )

        absolute = Path(os.path.normpath(root_dir / raw_path))
        relative = os.path.relpath(absolute, root_dir)
        if relative == os.curdir:
            raise ConfigValidationError(f'Config file path "{raw_path}" does not name a file')
        if os.pardir in relative.split(os.sep):
            raise ConfigValidationError(
                f'Config file path "{raw_path}" must reside within the root directory "{root_dir}"'
            )

        relative_path = to_posix(relative)
        if relative_path in seen:
            raise ConfigValidationError(
                f'Duplicate config file definition for path "{relative_path}"'
            )
        seen.add(relative_path)

        contents = resolve_contents(entry.contents, raw_path)
        if entry.sentinel is not None and entry.sentinel not in contents:
            raise ConfigValidationError(
                f'Sentinel for "{relative_path}" does not appear in its own contents'
            )

        targets.append(TargetFile(
            relative_path=relative_path,
            absolute_path=absolute,
            contents=contents,
            sentinel=entry.sentinel,
            track=entry.gitignore,
            mode=entry.mode,
            gitignore_entry="/" + relative_path,
        ))

    return targets


def resolve_contents(raw: Any, file_path: str) -> str:
    """Produce the desired text, invoking a contents callable exactly once."""
    if isinstance(raw, str):
        return raw

    if callable(raw):
        value = raw()
        if isinstance(value, str):
            return value
        if inspect.isawaitable(value):
            if inspect.iscoroutine(value):
                value.close()
            raise ConfigValidationError(f'Async contents are not supported for "{file_path}"')
        raise ConfigValidationError(f'Contents function for "{file_path}" must return a string')

    raise ConfigValidationError(f'Contents for "{file_path}" must be a string or a function')


def _coerce_entry(raw_path: str, raw: Any) -> ConfigEntry:
    """Accept a ``ConfigEntry`` or a mapping with the same keys; validate field types."""
    if isinstance(raw, ConfigEntry):
        entry = raw
    elif isinstance(raw, Mapping) and "contents" in raw:
        unknown = set(raw) - _ENTRY_KEYS
        if unknown:
            raise ConfigValidationError(
                f'Config for "{raw_path}" has unknown keys: {sorted(unknown)}'
            )
        entry = ConfigEntry(
            contents=raw["contents"],
            gitignore=raw.get("gitignore", True),
            mode=raw.get("mode"),
            sentinel=raw.get("sentinel"),
        )
    else:
        raise ConfigValidationError(
            f'Config for "{raw_path}" must be an object with a contents property'
        )

    if not isinstance(entry.gitignore, bool):
        raise ConfigValidationError(f'"gitignore" for "{raw_path}" must be a boolean')
    if entry.sentinel is not None and (not isinstance(entry.sentinel, str) or not entry.sentinel):
        raise ConfigValidationError(f'"sentinel" for "{raw_path}" must be a non-empty string')
    mode = _parse_mode(entry.mode, raw_path)
    if mode != entry.mode:
        entry = ConfigEntry(
            contents=entry.contents,
            gitignore=entry.gitignore,
            mode=mode,
            sentinel=entry.sentinel,
        )
    return entry


def _parse_mode(value: Any, raw_path: str) -> int | None:
    """Integers pass through; strings are read as octal (``"0600"``, ``"0o600"``)."""
    if value is None:
        return None
    if isinstance(value, bool):
        raise ConfigValidationError(f'"mode" for "{raw_path}" must be an integer')
    if isinstance(value, int):
        mode = value
    elif isinstance(value, str):
        text = value.strip().lower().removeprefix("0o")
        try:
            mode = int(text, 8)
        except ValueError:
            raise ConfigValidationError(
                f'"mode" for "{raw_path}" is not a valid octal permission: {value!r}'
            ) from None
    else:
        raise ConfigValidationError(f'"mode" for "{raw_path}" must be an integer')
    if not 0 <= mode <= 0o7777:
        raise ConfigValidationError(f'"mode" for "{raw_path}" is out of range: {oct(mode)}')
    return mode
