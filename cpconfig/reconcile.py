"""Bring one declared file in line with its desired contents."""

from __future__ import annotations

import os

from .core import logger, read_text_if_present, write_text
from .models import FileAction, FileOutcome, TargetFile


def reconcile_file(target: TargetFile, *, dry_run: bool, encoding: str) -> FileOutcome:
    """Decide the action for *target* and, unless *dry_run*, apply it.

    A sentineled target whose on-disk copy differs and no longer carries
    the sentinel is left alone: the outcome is ``unchanged`` with
    ``managed=False`` and a warning.
    """
    existing = read_text_if_present(target.absolute_path, encoding)

    if existing == target.contents:
        logger.debug(f"{target.relative_path}: up to date")
        return FileOutcome(FileAction.UNCHANGED)

    if (
        existing is not None
        and target.sentinel is not None
        and target.sentinel not in existing
    ):
        warning = (
            f"{target.relative_path} differs and does not contain the sentinel "
            f"{target.sentinel!r}; left untouched"
        )
        return FileOutcome(FileAction.UNCHANGED, managed=False, warning=warning)

    created = existing is None
    if not dry_run:
        write_text(target.absolute_path, target.contents, encoding)
        if created and target.mode is not None:
            os.chmod(target.absolute_path, target.mode)

    action = FileAction.CREATED if created else FileAction.UPDATED
    logger.debug(f"{target.relative_path}: {action.value}")
    return FileOutcome(action)
