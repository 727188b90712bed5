"""Shared test fixtures for beetsort."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable

import pytest
import tomli_w

from beetsort.config import BeetsortConfig, merge_config


@pytest.fixture
def downloads_dir(tmp_path: Path) -> Path:
    """Create a temporary downloads directory."""
    d = tmp_path / "downloads"
    d.mkdir()
    return d


@pytest.fixture
def beets_log(tmp_path: Path) -> Path:
    """Path of a (not yet created) beets import log."""
    return tmp_path / "beets" / "import.log"


@pytest.fixture
def sample_config_dict(tmp_path: Path, downloads_dir: Path, beets_log: Path) -> dict[str, Any]:
    """Return a minimal valid config dict."""
    return {
        "downloads_dir": str(downloads_dir),
        "beets_log": str(beets_log),
        "log_file": str(tmp_path / "logs" / "beetsort.log"),
    }


@pytest.fixture
def sample_config_file(
    tmp_path: Path, sample_config_dict: dict[str, Any]
) -> Path:
    """Write a sample config TOML file and return its path."""
    config_path = tmp_path / "config.toml"
    config_path.write_bytes(tomli_w.dumps(sample_config_dict).encode())
    return config_path


@pytest.fixture
def cfg(sample_config_dict: dict[str, Any]) -> BeetsortConfig:
    """A validated config rooted at the temporary downloads directory."""
    return merge_config(sample_config_dict, {})


def _make_tree(root: Path, layout: dict[str, Any]) -> None:
    root.mkdir(parents=True, exist_ok=True)
    for name, value in layout.items():
        path = root / name
        if isinstance(value, dict):
            _make_tree(path, value)
        elif isinstance(value, bytes):
            path.write_bytes(value)
        else:
            path.write_text(value)


@pytest.fixture
def make_tree() -> Callable[[Path, dict[str, Any]], None]:
    """Build files and directories from a nested dict.

    A dict value is a subdirectory; a str or bytes value is file content.
    """
    return _make_tree
