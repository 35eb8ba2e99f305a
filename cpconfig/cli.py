"""Entry point: ``cpconfig`` command, manifest loading, result formatting."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import click

from .config import LoadedConfig, load_config
from .core import logger
from .errors import ConfigSourceError, CpconfigError
from .models import FileSyncResult, SyncResult
from .sync import sync_configs

EXIT_FAILURE = 1
EXIT_CONFIG_SOURCE = 2


def _format_file_line(file: FileSyncResult) -> str:
    base = f"{file.action.value:<8} {file.path}"
    if file.gitignored:
        return f"{base} (gitignored)"
    if not file.managed:
        return f"{base} (unmanaged)"
    return base


def format_result(result: SyncResult, loaded: LoadedConfig) -> str:
    """Human-readable report: header, one line per file, gitignore summary."""
    mode_label = "dry run" if loaded.options.dry_run else "apply"
    lines = [f"cpconfig {mode_label} ({loaded.source})"]
    lines.extend(_format_file_line(f) for f in result.files)

    gitignore = result.gitignore
    if gitignore.skipped:
        lines.append("gitignore: skipped (no entries)")
    elif gitignore.updated:
        lines.append(f"gitignore: updated (+{len(gitignore.added)} / -{len(gitignore.removed)})")
    else:
        lines.append("gitignore: unchanged")

    return "\n".join(lines)


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("--dry-run", "--dryRun", "dry_run", is_flag=True, help="Compute changes without writing files")
@click.option("--json", "as_json", is_flag=True, help="Print the sync result as JSON")
@click.option("--root", "--root-dir", "root", default=None, metavar="PATH",
              help="Override the root directory used for file writes")
@click.option("--gitignore", "--gitignore-path", "gitignore", default=None, metavar="PATH",
              help="Override the gitignore file path")
@click.option("--config", "config_path", default=None, metavar="PATH",
              help="Load configuration from an explicit YAML, JSON or TOML file")
@click.option("-v", "--verbose", is_flag=True, help="Log every decision")
@click.option(
    "--cwd",
    type=click.Path(exists=True, file_okay=False),
    default=None,
    hidden=True,  # Start directory for manifest discovery; tests and wrappers set it.
)
def cli(
    dry_run: bool,
    as_json: bool,
    root: str | None,
    gitignore: str | None,
    config_path: str | None,
    verbose: bool,
    cwd: str | None,
) -> None:
    """Synchronize declared config files and their .gitignore block."""
    if verbose:
        logger.setLevel(logging.DEBUG)

    start = Path(cwd) if cwd else Path.cwd()

    try:
        loaded = load_config(
            start,
            config_path,
            root_dir=root,
            gitignore_path=gitignore,
            dry_run=dry_run,
        )
    except ConfigSourceError as exc:
        click.echo(f"cpconfig: {exc}", err=True)
        raise SystemExit(EXIT_CONFIG_SOURCE) from None

    try:
        result = sync_configs(loaded.files, loaded.options)
    except (CpconfigError, OSError, UnicodeError) as exc:
        click.echo(f"cpconfig: {exc}", err=True)
        raise SystemExit(EXIT_FAILURE) from None

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
    else:
        click.echo(format_result(result, loaded))


def main() -> None:
    """Console-script entry point."""
    from colorama import init as colorama_init
    colorama_init()

    cli(prog_name="cpconfig")


if __name__ == "__main__":
    main()
