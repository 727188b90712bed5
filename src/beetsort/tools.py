"""Archive extraction and audio transcoding through external scripts."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from beetsort.config import BeetsortConfig
from beetsort.shell import check_result, run_command

logger = logging.getLogger(__name__)


def check_tools_available(cfg: BeetsortConfig) -> None:
    """Verify that every configured executable is on PATH.

    Raises RuntimeError listing the missing ones. When beets runs inside a
    container only docker has to be present on the host.
    """
    commands = {
        "extract_command": cfg.extract_command,
        "transcode_command": cfg.transcode_command,
    }
    if cfg.container:
        commands["docker_command"] = cfg.docker_command
    else:
        commands["beet_command"] = cfg.beet_command

    missing = [
        f"{key} ({command[0]})"
        for key, command in commands.items()
        if shutil.which(command[0]) is None
    ]
    if missing:
        raise RuntimeError(
            "Executables not found on PATH: " + ", ".join(missing)
        )


def extract_archive(cfg: BeetsortConfig, source: Path) -> Path:
    """Unpack ``source`` into a sibling directory named after it, minus the extension.

    Returns the destination directory. Raises ExternalToolError when the
    extractor exits non-zero.
    """
    destination = source.with_suffix("")
    logger.info("Extracting %s -> %s", source, destination)
    check_result(run_command([*cfg.extract_command, str(source), str(destination)]))
    return destination


def transcode_audio(cfg: BeetsortConfig, source: Path) -> Path:
    """Transcode ``source`` into its own directory.

    Returns the output directory. Raises ExternalToolError when the
    transcoder exits non-zero.
    """
    destination = source.parent
    logger.info("Transcoding %s", source)
    check_result(run_command([*cfg.transcode_command, str(source), str(destination)]))
    return destination
