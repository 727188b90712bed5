"""Exception types raised by the pipeline and its helpers."""

from __future__ import annotations

from pathlib import Path


class BeetsortError(Exception):
    """Base class for all beetsort errors."""


class ScanError(BeetsortError):
    """A directory could not be listed or an entry could not be stat'ed."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"Cannot scan {path}: {reason}")
        self.path = path


class FilesystemError(BeetsortError):
    """A delete, move, rename or read failed.

    ``completed`` holds the paths that were already handled before the
    failure, so callers can report partial progress.
    """

    def __init__(self, message: str, completed: list[Path] | None = None) -> None:
        super().__init__(message)
        self.completed: list[Path] = list(completed or [])


class ExternalToolError(BeetsortError):
    """An external command exited non-zero or could not be started."""

    def __init__(
        self,
        command_line: str,
        exit_code: int | None,
        stderr: str = "",
    ) -> None:
        detail = stderr.strip()
        message = f"Command failed (exit {exit_code}): {command_line}"
        if detail:
            message += f"\n{detail}"
        super().__init__(message)
        self.command_line = command_line
        self.exit_code = exit_code
        self.stderr = stderr


class LogReadError(BeetsortError):
    """The beets import log could not be read."""
