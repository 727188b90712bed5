"""Discovery of hidden files, convertible files, and import candidates."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable

from beetsort.tree import find_leaf_directories


def is_within(path: Path, root: Path) -> bool:
    """True if ``path`` is ``root`` or lies somewhere below it."""
    return path == root or root in path.parents


def _is_excluded(path: Path, exclude: Iterable[Path]) -> bool:
    return any(is_within(path, root) for root in exclude)


def find_hidden_files(root: Path, prefix: str = ".") -> list[Path]:
    """Return files anywhere under root whose name starts with ``prefix``.

    Results are sorted by path for deterministic ordering.
    """
    return sorted(
        p for p in root.rglob("*")
        if p.name.startswith(prefix) and (p.is_file() or p.is_symlink())
    )


def find_files_by_extension(
    root: Path,
    extensions: frozenset[str],
    exclude: Iterable[Path] = (),
) -> list[Path]:
    """Walk root recursively and return files with one of ``extensions``.

    Extensions match case-insensitively. Anything under an ``exclude`` root is
    skipped. Results are sorted by path for deterministic ordering.
    """
    exclude = list(exclude)
    files: list[Path] = []

    for file_path in root.rglob("*"):
        if not file_path.is_file():
            continue
        if file_path.suffix.lower() not in extensions:
            continue
        if _is_excluded(file_path, exclude):
            continue
        files.append(file_path)

    files.sort()
    return files


def find_import_candidates(
    root: Path,
    exclude: Iterable[Path] = (),
    hidden_prefix: str = ".",
) -> list[Path]:
    """Return the leaf directories under root that are ready for import.

    Leaves inside a hidden-named directory, or under an ``exclude`` root, are
    dropped. ``root`` itself counts when it has no subdirectories.
    """
    exclude = list(exclude)
    candidates: list[Path] = []

    for leaf in find_leaf_directories(root):
        relative = leaf.relative_to(root)
        if any(part.startswith(hidden_prefix) for part in relative.parts):
            continue
        if _is_excluded(leaf, exclude):
            continue
        candidates.append(leaf)

    return candidates
