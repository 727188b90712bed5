"""Subprocess execution and shell-argument quoting."""

from __future__ import annotations

import logging
import re
import subprocess
from dataclasses import dataclass

from beetsort.errors import ExternalToolError

logger = logging.getLogger(__name__)

_SAFE_ARG = re.compile(r"^[\w@%+=:,./-]+$")
_DOUBLE_QUOTE_ESCAPES = re.compile(r'(["\\$`])')


@dataclass(frozen=True)
class CommandResult:
    """Captured result of a finished command."""

    argv: list[str]
    stdout: str
    stderr: str
    exit_code: int

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


# ---------------------------------------------------------------------------
# Quoting
# ---------------------------------------------------------------------------


def quote_arg(value: str) -> str:
    """Quote one argument for a POSIX shell command line.

    Values containing a single quote are wrapped in double quotes, all others
    in single quotes. A ``*`` at either end stays outside the quotes so the
    shell still expands it: ``/downloads/New Album/*`` becomes
    ``'/downloads/New Album/'*``.
    """
    if value == "":
        return "''"

    core = value
    leading = trailing = ""
    if core.startswith("*"):
        leading, core = "*", core[1:]
    if core.endswith("*"):
        trailing, core = "*", core[:-1]

    if core == "" or _SAFE_ARG.match(core):
        return f"{leading}{core}{trailing}"
    if "'" in core:
        escaped = _DOUBLE_QUOTE_ESCAPES.sub(r"\\\1", core)
        return f'{leading}"{escaped}"{trailing}'
    return f"{leading}'{core}'{trailing}"


def join_command(argv: list[str]) -> str:
    """Render an argument vector as a single shell command line."""
    return " ".join(quote_arg(arg) for arg in argv)


def wrap_exec(
    argv: list[str],
    container: str,
    *,
    interactive: bool = False,
    docker_command: list[str] | None = None,
) -> list[str]:
    """Route ``argv`` through ``docker exec`` when a container is configured."""
    if not container:
        return list(argv)
    wrapped = list(docker_command or ["docker"]) + ["exec"]
    if interactive:
        wrapped.append("-it")
    wrapped += [container, "sh", "-c", join_command(argv)]
    return wrapped


# ---------------------------------------------------------------------------
# Execution
# ---------------------------------------------------------------------------


def run_command(argv: list[str]) -> CommandResult:
    """Run ``argv`` to completion with stdout and stderr captured.

    There is no timeout: a hung command blocks the caller. A command that
    cannot be started raises ExternalToolError; a non-zero exit does not.
    """
    logger.debug("Running: %s", join_command(argv))
    try:
        proc = subprocess.run(
            argv,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
        )
    except OSError as e:
        raise ExternalToolError(join_command(argv), None, str(e)) from e

    if proc.stdout.strip():
        logger.debug("stdout:\n%s", proc.stdout.rstrip())
    if proc.stderr.strip():
        logger.debug("stderr:\n%s", proc.stderr.rstrip())

    return CommandResult(
        argv=list(argv),
        stdout=proc.stdout,
        stderr=proc.stderr,
        exit_code=proc.returncode,
    )


def run_interactive(argv: list[str]) -> int:
    """Run ``argv`` attached to this process's stdin/stdout/stderr."""
    logger.debug("Running interactively: %s", join_command(argv))
    try:
        proc = subprocess.run(argv)
    except OSError as e:
        raise ExternalToolError(join_command(argv), None, str(e)) from e
    return proc.returncode


def check_result(result: CommandResult) -> CommandResult:
    """Raise ExternalToolError unless ``result`` exited cleanly."""
    if not result.ok:
        raise ExternalToolError(join_command(result.argv), result.exit_code, result.stderr)
    return result
