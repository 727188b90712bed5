"""Configuration loading, merging, and validation."""

from __future__ import annotations

import shlex
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

ARCHIVE_DIR_NAME = "Imported"
SKIPPED_DIR_NAME = "Unable to Import"


@dataclass(frozen=True)
class BeetsortConfig:
    """Immutable configuration for a beetsort run."""

    downloads_dir: Path
    archive_dir: Path
    skipped_dir: Path
    beets_log: Path
    beet_command: tuple[str, ...] = ("beet",)
    extract_command: tuple[str, ...] = ("extract-archive",)
    transcode_command: tuple[str, ...] = ("transcode-audio",)
    container: str = ""
    container_downloads_dir: str = ""
    docker_command: tuple[str, ...] = ("docker",)
    archive_extensions: frozenset[str] = frozenset({".zip"})
    audio_extensions: frozenset[str] = frozenset({".wav"})
    hidden_prefix: str = "."
    log_level: str = "INFO"
    log_file_level: str = "DEBUG"
    log_file: Path = Path("beetsort.log")


_DEFAULTS: dict[str, Any] = {
    "beet_command": ["beet"],
    "extract_command": ["extract-archive"],
    "transcode_command": ["transcode-audio"],
    "container": "",
    "container_downloads_dir": "",
    "docker_command": ["docker"],
    "archive_extensions": [".zip"],
    "audio_extensions": [".wav"],
    "hidden_prefix": ".",
    "log_level": "INFO",
    "log_file_level": "DEBUG",
    "log_file": "beetsort.log",
}

_COMMAND_KEYS = ("beet_command", "extract_command", "transcode_command", "docker_command")


def load_config(path: Path) -> dict[str, Any]:
    """Read a TOML config file and return a dict."""
    with path.open("rb") as f:
        return tomllib.load(f)


def merge_config(
    file_config: dict[str, Any],
    cli_overrides: dict[str, Any],
) -> BeetsortConfig:
    """Merge defaults, file config, and CLI overrides into a validated config.

    Priority: defaults < file config < CLI overrides.
    archive_dir and skipped_dir default to folders inside downloads_dir.
    Every path is expanded and resolved to an absolute path.
    """
    merged: dict[str, Any] = {**_DEFAULTS}
    merged.update({k: v for k, v in file_config.items() if v is not None})
    merged.update({k: v for k, v in cli_overrides.items() if v is not None})

    for key in ("downloads_dir", "archive_dir", "skipped_dir", "beets_log", "log_file"):
        if key in merged:
            merged[key] = Path(merged[key]).expanduser().resolve()

    if "downloads_dir" in merged:
        merged.setdefault("archive_dir", merged["downloads_dir"] / ARCHIVE_DIR_NAME)
        merged.setdefault("skipped_dir", merged["downloads_dir"] / SKIPPED_DIR_NAME)

    return _validate(merged)


def _as_command(value: Any) -> tuple[str, ...]:
    """Accept a command as a shell-style string or a list of arguments."""
    if isinstance(value, str):
        return tuple(shlex.split(value))
    return tuple(str(part) for part in value)


def _normalize_extensions(values: Any) -> frozenset[str]:
    """Lower-case extensions and make sure each starts with a dot."""
    if isinstance(values, str):
        values = [values]
    normalized: set[str] = set()
    for ext in values:
        ext = str(ext).strip().lower()
        if ext and not ext.startswith("."):
            ext = "." + ext
        if ext:
            normalized.add(ext)
    return frozenset(normalized)


def _validate(merged: dict[str, Any]) -> BeetsortConfig:
    """Validate the merged config and return a BeetsortConfig."""
    errors: list[str] = []

    # Required fields
    if "downloads_dir" not in merged:
        errors.append("downloads_dir is required")
    if "beets_log" not in merged:
        errors.append("beets_log is required")

    for key in _COMMAND_KEYS:
        if not _as_command(merged[key]):
            errors.append(f"{key} must not be empty")

    archive_extensions = _normalize_extensions(merged["archive_extensions"])
    audio_extensions = _normalize_extensions(merged["audio_extensions"])
    if not archive_extensions:
        errors.append("archive_extensions must list at least one extension")
    if not audio_extensions:
        errors.append("audio_extensions must list at least one extension")

    if not merged["hidden_prefix"]:
        errors.append("hidden_prefix must not be empty")

    container_downloads_dir = str(merged["container_downloads_dir"])
    if container_downloads_dir and not container_downloads_dir.startswith("/"):
        errors.append("container_downloads_dir must be an absolute path inside the container")

    if errors:
        raise ValueError("Configuration errors:\n  " + "\n  ".join(errors))

    downloads_dir = merged["downloads_dir"]
    if not downloads_dir.is_dir():
        raise ValueError(f"downloads_dir does not exist: {downloads_dir}")

    for key in ("archive_dir", "skipped_dir"):
        try:
            merged[key].mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ValueError(f"Cannot create {key}: {merged[key]}") from e

    return BeetsortConfig(
        downloads_dir=downloads_dir,
        archive_dir=merged["archive_dir"],
        skipped_dir=merged["skipped_dir"],
        beets_log=merged["beets_log"],
        beet_command=_as_command(merged["beet_command"]),
        extract_command=_as_command(merged["extract_command"]),
        transcode_command=_as_command(merged["transcode_command"]),
        container=str(merged["container"]),
        container_downloads_dir=container_downloads_dir,
        docker_command=_as_command(merged["docker_command"]),
        archive_extensions=archive_extensions,
        audio_extensions=audio_extensions,
        hidden_prefix=str(merged["hidden_prefix"]),
        log_level=str(merged["log_level"]),
        log_file_level=str(merged["log_file_level"]),
        log_file=merged["log_file"],
    )
