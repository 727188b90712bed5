"""beets import invocation, outcome detection, and import-log helpers."""

from __future__ import annotations

import logging
from datetime import datetime
from enum import Enum
from pathlib import Path, PurePosixPath

from beetsort.config import BeetsortConfig
from beetsort.errors import ExternalToolError, LogReadError
from beetsort.fileops import rename_path
from beetsort.shell import check_result, join_command, run_command, run_interactive, wrap_exec

logger = logging.getLogger(__name__)

# Markers beets prints when it declines an album in quiet mode. Observed in
# practice, not documented, so there may be others.
SKIPPED_STDERR_MARKER = "Skipped "
SKIPPING_STDOUT_MARKER = "Skipping"


class ImportOutcome(str, Enum):
    """How a candidate directory is routed after an import attempt."""

    ARCHIVED = "archived"
    SKIPPED = "skipped"
    FAILED = "failed"


def beets_path(cfg: BeetsortConfig, path: Path) -> str:
    """Return ``path`` as beets sees it.

    When beets runs in a container with the downloads folder mounted at
    ``container_downloads_dir``, host paths under ``downloads_dir`` are
    rewritten onto that mount. Any other path is returned unchanged.
    """
    if not (cfg.container and cfg.container_downloads_dir):
        return str(path)
    try:
        relative = path.relative_to(cfg.downloads_dir)
    except ValueError:
        return str(path)
    return str(PurePosixPath(cfg.container_downloads_dir, *relative.parts))


def import_command(cfg: BeetsortConfig, path: Path, *, interactive: bool = False) -> list[str]:
    """Build the ``beet import`` argument vector for ``path``."""
    argv = [*cfg.beet_command, "import"]
    if not interactive:
        argv.append("-q")
    argv.append(beets_path(cfg, path))
    return wrap_exec(
        argv,
        cfg.container,
        interactive=interactive,
        docker_command=list(cfg.docker_command),
    )


def classify_output(stdout: str, stderr: str) -> ImportOutcome:
    """Decide from beets' output whether it skipped the directory.

    This is the only place that interprets import output.
    """
    if SKIPPED_STDERR_MARKER in stderr or SKIPPING_STDOUT_MARKER in stdout:
        return ImportOutcome.SKIPPED
    return ImportOutcome.ARCHIVED


def import_directory(
    cfg: BeetsortConfig,
    path: Path,
    *,
    interactive: bool = False,
) -> ImportOutcome:
    """Run ``beet import`` on one directory and return its routing outcome.

    In interactive mode the user answers beets' prompts directly, no output
    can be inspected, and a zero exit code always means ARCHIVED.
    A non-zero exit raises ExternalToolError in both modes.
    """
    argv = import_command(cfg, path, interactive=interactive)

    if interactive:
        exit_code = run_interactive(argv)
        if exit_code != 0:
            raise ExternalToolError(join_command(argv), exit_code)
        return ImportOutcome.ARCHIVED

    result = check_result(run_command(argv))
    outcome = classify_output(result.stdout, result.stderr)
    logger.debug("beets outcome for %s: %s", path, outcome.value)
    return outcome


def was_already_imported(log_path: Path, path: Path | str) -> bool:
    """True if any line of the beets import log mentions ``path``.

    A log that cannot be read raises LogReadError rather than answering False.
    """
    needle = str(path)
    try:
        with log_path.open("r", encoding="utf-8", errors="replace") as f:
            for line in f:
                if needle in line:
                    return True
    except OSError as e:
        raise LogReadError(f"Cannot read beets log {log_path}: {e.strerror or e}") from e
    return False


def clean_log(log_path: Path, now: datetime | None = None) -> Path:
    """Set the current beets log aside by renaming it with a timestamp suffix.

    beets starts a fresh log on its next import. Returns the renamed path.
    """
    stamp = (now or datetime.now()).strftime("%Y%m%d-%H%M%S")
    rotated = log_path.with_name(f"{log_path.name}.{stamp}")
    rename_path(log_path, rotated)
    logger.info("Rotated beets log to %s", rotated)
    return rotated
