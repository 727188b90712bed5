"""File deletion, moves and renames that report failures as FilesystemError."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from beetsort.errors import FilesystemError

logger = logging.getLogger(__name__)


def delete_file(path: Path) -> None:
    """Remove a single file (or symlink)."""
    try:
        path.unlink()
    except OSError as e:
        raise FilesystemError(f"Cannot delete {path}: {e.strerror or e}") from e
    logger.debug("Deleted %s", path)


def move_path(source: Path, destination: Path) -> Path:
    """Move a file or directory to ``destination``, creating parents.

    A directory moved onto an existing directory is merged into it. An
    existing file is never overwritten.
    """
    if source.is_dir() and not source.is_symlink() and destination.is_dir():
        return _merge_directory(source, destination)
    if destination.exists() or destination.is_symlink():
        raise FilesystemError(f"Cannot move {source}: {destination} already exists")
    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.move(str(source), str(destination))
    except (OSError, shutil.Error) as e:
        raise FilesystemError(f"Cannot move {source} to {destination}: {e}") from e
    logger.info("Moved %s -> %s", source, destination)
    return destination


def move_children(source: Path, destination: Path) -> Path:
    """Move everything directly inside ``source`` into ``destination``.

    ``source`` itself stays behind. A child that is, or contains,
    ``destination`` is left in place.
    """
    try:
        children = sorted(source.iterdir())
    except OSError as e:
        raise FilesystemError(f"Cannot list {source}: {e.strerror or e}") from e
    for child in children:
        if child == destination or child in destination.parents:
            continue
        move_path(child, destination / child.name)
    return destination


def _merge_directory(source: Path, destination: Path) -> Path:
    move_children(source, destination)
    try:
        source.rmdir()
    except OSError as e:
        raise FilesystemError(f"Cannot remove {source} after merging: {e.strerror or e}") from e
    logger.info("Merged %s -> %s", source, destination)
    return destination


def move_preserving(path: Path, scan_root: Path, destination_root: Path) -> Path:
    """Move ``path`` under ``destination_root``, keeping its path relative to ``scan_root``.

    Returns the new location. When that location is ``path`` itself (for
    example a skipped directory routed back into the skipped folder it was
    scanned from) nothing is moved.
    """
    destination = destination_root / path.relative_to(scan_root)
    if destination == path:
        logger.debug("%s is already in place", path)
        return path
    return move_path(path, destination)


def rename_path(source: Path, destination: Path) -> Path:
    """Rename ``source`` to ``destination`` on the same filesystem."""
    try:
        source.rename(destination)
    except OSError as e:
        raise FilesystemError(f"Cannot rename {source} to {destination}: {e.strerror or e}") from e
    return destination
