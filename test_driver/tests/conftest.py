"""Shared fixtures for cpconfig tests."""

from __future__ import annotations

import io
import logging
import textwrap
from pathlib import Path

import pytest


@pytest.fixture
def make_workspace(tmp_path: Path):
    """Factory that creates a temp project directory with an optional manifest.

    Usage::

        ws = make_workspace(manifest=\"\"\"
            files:
              app.json:
                contents: "{}"
        \"\"\")
    """
    _counter = 0

    def _make(
        manifest: str | None = None,
        manifest_name: str = "cpconfig.yaml",
        extra_files: dict[str, str] | None = None,
    ) -> Path:
        nonlocal _counter
        ws = tmp_path / f"workspace_{_counter}"
        ws.mkdir()
        _counter += 1

        if manifest is not None:
            (ws / manifest_name).write_text(textwrap.dedent(manifest), encoding="utf-8")

        for rel, content in (extra_files or {}).items():
            target = ws / rel
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(textwrap.dedent(content), encoding="utf-8")

        return ws

    return _make


@pytest.fixture
def capture_logs():
    """Capture cpconfig logger output into a StringIO buffer.

    The logger has propagate=False and its own StreamHandler bound to the
    original sys.stderr, so capsys/caplog cannot see it.
    """
    buf = io.StringIO()
    handler = logging.StreamHandler(buf)
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger = logging.getLogger("cpconfig")
    logger.addHandler(handler)
    yield buf
    logger.removeHandler(handler)


@pytest.fixture(autouse=True)
def reset_log_level():
    """``--verbose`` lowers the shared logger level; restore it after each test."""
    logger = logging.getLogger("cpconfig")
    level = logger.level
    yield
    logger.setLevel(level)
