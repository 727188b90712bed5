"""Directory tree snapshots: leaf and recursively-empty directory discovery."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from beetsort.errors import FilesystemError, ScanError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DirNode:
    """A snapshot of one directory and everything below it.

    The snapshot never refreshes itself; rebuild it with ``build_tree`` when
    the filesystem may have changed.
    """

    path: Path
    files: frozenset[str] = frozenset()
    children: dict[str, DirNode] = field(default_factory=dict)

    @property
    def is_leaf(self) -> bool:
        return not self.children

    def file_count(self) -> int:
        """Total number of files in this directory's whole subtree."""
        return len(self.files) + sum(c.file_count() for c in self.children.values())


# ---------------------------------------------------------------------------
# Building
# ---------------------------------------------------------------------------


def build_tree(root: Path) -> DirNode:
    """Recursively scan ``root`` and return its snapshot.

    Symbolic links are never followed: a link, even one pointing at a
    directory, is recorded as a file. Any listing or stat failure raises
    ScanError and no partial tree is returned.
    """
    try:
        with os.scandir(root) as it:
            entries = sorted(it, key=lambda e: e.name)
    except OSError as e:
        raise ScanError(root, e.strerror or str(e)) from e

    files: set[str] = set()
    children: dict[str, DirNode] = {}
    for entry in entries:
        try:
            is_dir = entry.is_dir(follow_symlinks=False)
        except OSError as e:
            raise ScanError(Path(entry.path), e.strerror or str(e)) from e
        if is_dir:
            children[entry.name] = build_tree(Path(entry.path))
        else:
            files.add(entry.name)

    return DirNode(path=Path(root), files=frozenset(files), children=children)


# ---------------------------------------------------------------------------
# Classification over a snapshot
# ---------------------------------------------------------------------------


def leaf_directories(node: DirNode) -> list[Path]:
    """Directories in the snapshot with no subdirectories, in lexical DFS order."""
    if node.is_leaf:
        return [node.path]
    leaves: list[Path] = []
    for name in sorted(node.children):
        leaves.extend(leaf_directories(node.children[name]))
    return leaves


def empty_directories(node: DirNode) -> list[Path]:
    """Directories in the snapshot whose whole subtree holds no files.

    Evaluated bottom-up: a directory qualifies when it has no files and every
    child qualifies. A parent is listed before its descendants.
    """
    empty, _ = _fold_empty(node)
    return empty


def _fold_empty(node: DirNode) -> tuple[list[Path], bool]:
    found: list[Path] = []
    all_children_empty = True
    for name in sorted(node.children):
        child_found, child_empty = _fold_empty(node.children[name])
        found.extend(child_found)
        all_children_empty = all_children_empty and child_empty

    is_empty = not node.files and all_children_empty
    if is_empty:
        found.insert(0, node.path)
    return found, is_empty


def find_leaf_directories(root: Path) -> list[Path]:
    """Scan ``root`` and return every directory with zero subdirectories."""
    return leaf_directories(build_tree(root))


def find_empty_directories(root: Path) -> list[Path]:
    """Scan ``root`` and return every recursively empty directory."""
    return empty_directories(build_tree(root))


# ---------------------------------------------------------------------------
# Pruning
# ---------------------------------------------------------------------------


def prune_empty_directories(root: Path) -> list[Path]:
    """Delete recursively empty directories under (and including) ``root``.

    Each pass rebuilds the snapshot, classifies it and removes the empty
    directories deepest first. Passes repeat until one deletes nothing.
    Returns the deleted paths in deletion order.

    A directory that has already vanished is not an error. Any other delete
    failure is raised as FilesystemError after the rest of the pass has run;
    its ``completed`` attribute lists what was deleted.
    """
    deleted: list[Path] = []
    seen: set[Path] = set()

    while root.exists():
        snapshot = build_tree(root)
        targets = [p for p in empty_directories(snapshot) if p not in seen]
        if not targets:
            break

        failures: list[str] = []
        # Deepest first so every rmdir sees an already-emptied directory.
        for path in sorted(targets, key=lambda p: len(p.parts), reverse=True):
            seen.add(path)
            try:
                path.rmdir()
            except FileNotFoundError:
                logger.debug("Already removed: %s", path)
                continue
            except OSError as e:
                failures.append(f"{path}: {e.strerror or e}")
                continue
            logger.info("Pruned empty directory %s", path)
            deleted.append(path)

        if failures:
            raise FilesystemError(
                "Cannot remove empty directories:\n  " + "\n  ".join(failures),
                completed=deleted,
            )

    return deleted
