"""Core helpers: package logger, text I/O that tolerates missing files."""

from __future__ import annotations

import logging
from pathlib import Path

from colorama import Fore, Style


# ── Logging ──────────────────────────────────────────────────────────


def _level_color(levelno: int) -> str:
    if levelno >= logging.ERROR:
        return Fore.RED
    if levelno >= logging.WARNING:
        return Fore.YELLOW
    if levelno <= logging.DEBUG:
        return Style.DIM
    return Fore.CYAN


class ToolFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        color = _level_color(record.levelno)
        message = record.getMessage()
        return f"{color}[{record.levelname.lower()}]{Style.RESET_ALL} {message}"


logger = logging.getLogger("cpconfig")
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(ToolFormatter())
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)
    logger.propagate = False


# ── File I/O ─────────────────────────────────────────────────────────


def read_text_if_present(path: Path, encoding: str) -> str | None:
    """Return the file's text exactly as stored, or ``None`` when it does not exist.

    No newline translation is applied, so ``\\r\\n`` survives the read and
    comparisons against desired content are character-for-character.
    Every error other than a missing file propagates.
    """
    try:
        with open(path, encoding=encoding, newline="") as f:
            return f.read()
    except FileNotFoundError:
        return None


def write_text(path: Path, text: str, encoding: str) -> None:
    """Write *text* in full, creating parent directories as needed."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding=encoding, newline="") as f:
        f.write(text)
