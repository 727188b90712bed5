"""Logging configuration: rich console on stderr plus a rotating run log."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

# Shared by the log handler and progress displays; stdout is reserved for
# command output such as `beetsort candidates`.
console = Console(stderr=True)


def _parse_level(name: str | None, default: int) -> int:
    if not name:
        return default
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else default


def setup_logging(log_level: str, log_file: Path, file_level: str | None = None) -> None:
    """Configure the root logger for a beetsort run.

    Args:
        log_level: Console level (e.g. "INFO", "DEBUG"). Unknown names mean INFO.
        log_file: Path to the run log. Parent directories are created if needed.
        file_level: Level for the run log. Defaults to ``log_level``; set it to
            "DEBUG" to keep beets' captured output in the file while the
            console stays quiet.
    """
    log_file.parent.mkdir(parents=True, exist_ok=True)

    console_level = _parse_level(log_level, logging.INFO)
    log_file_level = _parse_level(file_level, console_level)

    root = logging.getLogger()
    root.setLevel(min(console_level, log_file_level))
    root.handlers.clear()

    console_handler = RichHandler(
        console=console,
        level=console_level,
        rich_tracebacks=True,
        show_path=False,
    )
    console_handler.setFormatter(logging.Formatter("%(message)s"))
    root.addHandler(console_handler)

    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=10 * 1024 * 1024,
        backupCount=3,
        encoding="utf-8",
    )
    file_handler.setLevel(log_file_level)
    file_handler.setFormatter(
        logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    root.addHandler(file_handler)
