"""Maintain the cpconfig-managed block inside a .gitignore file.

The block is the marker line followed by its contiguous run of entries::

    node_modules

    # Managed by cpconfig
    /config/app.json
    /secrets/.env

It ends at the first blank line, the first comment line, or end of file.
Only the first marker in a file is recognized.  Everything outside the
block is preserved in content and order.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from pathlib import Path

from .core import logger
from .models import GitignoreResult

MARKER = "# Managed by cpconfig"

_LINE_SPLIT = re.compile(r"\r?\n")


def normalize_entry(value: str) -> str:
    """Canonical form of an entry, or ``""`` for blanks and comments."""
    trimmed = value.strip()
    if not trimmed or trimmed.startswith("#"):
        return ""
    if trimmed.startswith("./"):
        trimmed = trimmed[2:]
    return trimmed.replace("\\", "/")


def unique_entries(values: Iterable[str]) -> list[str]:
    """Normalize, drop empties, dedupe keeping first-seen order."""
    result: list[str] = []
    seen: set[str] = set()
    for value in values:
        entry = normalize_entry(value)
        if entry and entry not in seen:
            seen.add(entry)
            result.append(entry)
    return result


def split_lines(text: str) -> list[str]:
    """Split on LF or CRLF; a final newline does not yield an empty last line."""
    if not text:
        return []
    lines = _LINE_SPLIT.split(text)
    if lines[-1] == "":
        lines.pop()
    return lines


def _trim_trailing_blank(lines: list[str]) -> list[str]:
    trimmed = list(lines)
    while trimmed and not trimmed[-1].strip():
        trimmed.pop()
    return trimmed


def extract_managed_block(text: str) -> tuple[list[str], list[str]]:
    """Split *text* into ``(managed_entries, lines_without_block)``.

    The block and at most one blank separator line right after it are
    removed from the returned lines; trailing blank lines are trimmed.
    A marker with nothing after it is an empty block, not a missing one.
    """
    lines = split_lines(text)

    start = next((i for i, line in enumerate(lines) if line.rstrip() == MARKER), None)
    if start is None:
        return [], _trim_trailing_blank(lines)

    end = start + 1
    while end < len(lines):
        current = lines[end]
        if not current.strip() or current.lstrip().startswith("#"):
            break
        end += 1

    managed = lines[start + 1:end]

    # Drop one separating blank line along with the block.
    if end < len(lines) and not lines[end].strip():
        end += 1

    return managed, _trim_trailing_blank(lines[:start] + lines[end:])


def build_gitignore_content(lines: list[str], entries: list[str], eol: str = "\n") -> str:
    """Reassemble the file: preserved lines, separator, marker, entries."""
    result = _trim_trailing_blank(lines)
    if entries:
        if result:
            result.append("")
        result.append(MARKER)
        result.extend(entries)
    if not result:
        return ""
    return eol.join(result) + eol


def sync_gitignore(
    path: Path,
    entries: Iterable[str],
    *,
    encoding: str = "utf-8",
    dry_run: bool = False,
) -> GitignoreResult:
    """Rewrite the managed block in *path* so it lists exactly *entries*.

    Does nothing (and does not create the file) when *entries* is empty
    after normalization.  The file's existing line ending style (CRLF or
    LF) is used for the whole rewritten file.
    """
    desired = unique_entries(entries)
    if not desired:
        logger.debug(f"{path}: no entries to manage, skipping")
        return GitignoreResult(path=path, updated=False, added=[], removed=[], skipped=True)

    raw = b""
    if path.exists():
        raw = path.read_bytes()
    text = raw.decode(encoding)

    eol = "\r\n" if "\r\n" in text else "\n"

    managed, remaining = extract_managed_block(text)
    existing = [e for e in (normalize_entry(line) for line in managed) if e]

    if existing == desired:
        logger.debug(f"{path}: managed block up to date")
        return GitignoreResult(path=path, updated=False, added=[], removed=[], skipped=False)

    existing_set = set(existing)
    desired_set = set(desired)
    added = [e for e in desired if e not in existing_set]
    removed = [e for e in existing if e not in desired_set]

    if not dry_run:
        content = build_gitignore_content(remaining, desired, eol)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content.encode(encoding))

    logger.debug(f"{path}: +{len(added)} / -{len(removed)}")
    return GitignoreResult(path=path, updated=True, added=added, removed=removed, skipped=False)
