"""Synchronization entry point: normalize, reconcile files, then the ignore block."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from .core import logger
from .gitignore import sync_gitignore
from .models import FileAction, FileSyncResult, SyncOptions, SyncResult
from .paths import normalize_files, resolve_gitignore_path, resolve_root
from .reconcile import reconcile_file


def sync_configs(
    files: Mapping[str, Any],
    options: SyncOptions | Mapping[str, Any] | None = None,
) -> SyncResult:
    """Synchronize *files* with the file system and keep the .gitignore block current.

    *files* maps root-relative paths to ``ConfigEntry`` objects or plain
    mappings with the same keys.  All validation happens before the first
    read; a file-system error aborts the run, leaving earlier writes in place.
    """
    if not isinstance(options, SyncOptions):
        options = SyncOptions.from_mapping(options)

    root_dir = resolve_root(options.root_dir)
    gitignore_path = resolve_gitignore_path(root_dir, options.gitignore_path)

    targets = normalize_files(files, root_dir)

    results: list[FileSyncResult] = []
    tracked: list[str] = []

    for target in targets:
        outcome = reconcile_file(target, dry_run=options.dry_run, encoding=options.encoding)
        if outcome.warning:
            logger.warning(outcome.warning)

        gitignored = target.track and outcome.managed
        if gitignored:
            tracked.append(target.gitignore_entry)

        results.append(FileSyncResult(
            path=target.relative_path,
            absolute_path=target.absolute_path,
            action=outcome.action,
            skipped=outcome.action is FileAction.UNCHANGED,
            gitignored=gitignored,
            managed=outcome.managed,
            warning=outcome.warning,
        ))

    gitignore = sync_gitignore(
        gitignore_path,
        tracked,
        encoding=options.encoding,
        dry_run=options.dry_run,
    )

    return SyncResult(root_dir=root_dir, files=results, gitignore=gitignore)
