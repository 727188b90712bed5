"""Tests for tree module."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Callable
from unittest.mock import patch

import pytest

from beetsort.errors import FilesystemError, ScanError
from beetsort.tree import (
    DirNode,
    build_tree,
    empty_directories,
    find_empty_directories,
    find_leaf_directories,
    leaf_directories,
    prune_empty_directories,
)

MakeTree = Callable[[Path, dict[str, Any]], None]


# --- build_tree ---


def test_build_tree_records_files_and_children(tmp_path: Path, make_tree: MakeTree) -> None:
    make_tree(tmp_path, {"a.txt": "x", "sub": {"b.txt": "y", "deeper": {}}})

    node = build_tree(tmp_path)

    assert node.path == tmp_path
    assert node.files == frozenset({"a.txt"})
    assert set(node.children) == {"sub"}
    assert node.children["sub"].files == frozenset({"b.txt"})
    assert node.children["sub"].children["deeper"].is_leaf


def test_build_tree_missing_root_raises_scan_error(tmp_path: Path) -> None:
    with pytest.raises(ScanError, match="Cannot scan"):
        build_tree(tmp_path / "missing")


def test_build_tree_listing_failure_aborts(tmp_path: Path, make_tree: MakeTree) -> None:
    """A failure deep in the tree aborts the whole build."""
    make_tree(tmp_path, {"ok": {"f": "x"}, "bad": {}})
    real_scandir = os.scandir

    def flaky_scandir(path: Any) -> Any:
        if Path(path).name == "bad":
            raise PermissionError(13, "Permission denied")
        return real_scandir(path)

    with patch("beetsort.tree.os.scandir", side_effect=flaky_scandir):
        with pytest.raises(ScanError, match="Permission denied"):
            build_tree(tmp_path)


def test_build_tree_does_not_follow_symlinks(tmp_path: Path, make_tree: MakeTree) -> None:
    """A symlink to a directory (even a cycle) is recorded as a file."""
    make_tree(tmp_path, {"album": {}})
    (tmp_path / "album" / "loop").symlink_to(tmp_path, target_is_directory=True)

    node = build_tree(tmp_path)

    album = node.children["album"]
    assert album.files == frozenset({"loop"})
    assert album.children == {}


def test_file_count_covers_subtree(tmp_path: Path, make_tree: MakeTree) -> None:
    make_tree(tmp_path, {"a": "1", "x": {"b": "2", "y": {"c": "3"}}})
    assert build_tree(tmp_path).file_count() == 3


# --- leaf directories ---


def test_single_directory_is_its_own_leaf(tmp_path: Path) -> None:
    assert find_leaf_directories(tmp_path) == [tmp_path]


def test_single_directory_with_files_is_leaf(tmp_path: Path) -> None:
    (tmp_path / "track.mp3").write_bytes(b"data")
    assert find_leaf_directories(tmp_path) == [tmp_path]


def test_leaf_directories_exactly_those_without_subdirs(
    tmp_path: Path, make_tree: MakeTree
) -> None:
    make_tree(tmp_path, {
        "Artist": {"Album A": {"01.mp3": "x"}, "Album B": {}},
        "Loose": {"cover.jpg": "x"},
        "song.mp3": "x",
    })

    leaves = find_leaf_directories(tmp_path)

    assert leaves == [
        tmp_path / "Artist" / "Album A",
        tmp_path / "Artist" / "Album B",
        tmp_path / "Loose",
    ]


def test_leaf_order_is_lexical_and_repeatable(tmp_path: Path, make_tree: MakeTree) -> None:
    make_tree(tmp_path, {"c": {}, "a": {}, "b": {"z": {}, "m": {}}})

    first = find_leaf_directories(tmp_path)
    assert first == [tmp_path / "a", tmp_path / "b" / "m", tmp_path / "b" / "z", tmp_path / "c"]
    assert find_leaf_directories(tmp_path) == first


def test_leaf_directories_on_snapshot() -> None:
    node = DirNode(
        path=Path("/r"),
        children={"x": DirNode(path=Path("/r/x"), files=frozenset({"f"}))},
    )
    assert leaf_directories(node) == [Path("/r/x")]


# --- empty directories ---


def test_empty_root_is_reported(tmp_path: Path) -> None:
    assert find_empty_directories(tmp_path) == [tmp_path]


def test_nested_empty_directories_cascade(tmp_path: Path, make_tree: MakeTree) -> None:
    make_tree(tmp_path, {"A": {"B": {"C": {}}}})

    empty = find_empty_directories(tmp_path)

    assert empty == [tmp_path, tmp_path / "A", tmp_path / "A" / "B", tmp_path / "A" / "B" / "C"]


def test_directory_with_files_is_never_empty(tmp_path: Path, make_tree: MakeTree) -> None:
    """Only the fully-empty case propagates up."""
    make_tree(tmp_path, {"album": {"cover.jpg": "x", "scans": {}, "extras": {"more": {}}}})

    empty = find_empty_directories(tmp_path)

    album = tmp_path / "album"
    assert album not in empty
    assert tmp_path not in empty
    assert empty == [album / "extras", album / "extras" / "more", album / "scans"]


def test_file_anywhere_below_excludes_ancestors(tmp_path: Path, make_tree: MakeTree) -> None:
    make_tree(tmp_path, {"a": {"b": {"c": {"deep.txt": "x"}}, "empty": {}}})

    empty = find_empty_directories(tmp_path)

    assert empty == [tmp_path / "a" / "empty"]


def test_empty_directories_total_file_count_is_zero(
    tmp_path: Path, make_tree: MakeTree
) -> None:
    make_tree(tmp_path, {
        "x": {"y": {}, "z": {"f": "1"}},
        "w": {"v": {"u": {}}},
        "t": {},
    })
    snapshot = build_tree(tmp_path)

    reported = set(empty_directories(snapshot))

    def walk(node: DirNode) -> list[DirNode]:
        nodes = [node]
        for child in node.children.values():
            nodes.extend(walk(child))
        return nodes

    expected = {n.path for n in walk(snapshot) if n.file_count() == 0}
    assert reported == expected


def test_symlink_counts_as_content(tmp_path: Path, make_tree: MakeTree) -> None:
    make_tree(tmp_path, {"target": {"f": "x"}, "links": {}})
    (tmp_path / "links" / "to_target").symlink_to(tmp_path / "target")

    assert find_empty_directories(tmp_path) == []


# --- prune_empty_directories ---


def test_prune_cascades_to_root_in_one_call(tmp_path: Path) -> None:
    root = tmp_path / "A"
    (root / "B" / "C").mkdir(parents=True)

    deleted = prune_empty_directories(root)

    assert not root.exists()
    assert deleted == [root / "B" / "C", root / "B", root]


def test_prune_keeps_directories_with_content(tmp_path: Path, make_tree: MakeTree) -> None:
    make_tree(tmp_path, {"keep": {"song.mp3": "x", "empty": {}}, "gone": {"also": {}}})

    deleted = prune_empty_directories(tmp_path)

    assert set(deleted) == {
        tmp_path / "keep" / "empty",
        tmp_path / "gone" / "also",
        tmp_path / "gone",
    }
    assert (tmp_path / "keep" / "song.mp3").exists()
    assert tmp_path.exists()


def test_prune_is_idempotent(tmp_path: Path, make_tree: MakeTree) -> None:
    make_tree(tmp_path, {"a": {"b": {}}, "c": {"f": "x"}})

    first = prune_empty_directories(tmp_path)
    second = prune_empty_directories(tmp_path)

    assert first == [tmp_path / "a" / "b", tmp_path / "a"]
    assert second == []


def test_prune_nothing_to_do(tmp_path: Path) -> None:
    (tmp_path / "f.txt").write_text("x")
    assert prune_empty_directories(tmp_path) == []


def test_prune_ignores_already_removed(tmp_path: Path, make_tree: MakeTree) -> None:
    """A directory that vanishes between scan and delete is not an error."""
    make_tree(tmp_path, {"keep.txt": "x", "a": {}, "b": {}})
    real_rmdir = Path.rmdir

    def rmdir(self: Path) -> None:
        real_rmdir(self)
        if self.name == "a":
            real_rmdir(self.parent / "b")

    with patch.object(Path, "rmdir", rmdir):
        deleted = prune_empty_directories(tmp_path)

    assert deleted == [tmp_path / "a"]
    assert not (tmp_path / "b").exists()


def test_prune_surfaces_delete_failures(tmp_path: Path, make_tree: MakeTree) -> None:
    make_tree(tmp_path, {"keep.txt": "x", "locked": {}, "open": {}})
    real_rmdir = Path.rmdir

    def rmdir(self: Path) -> None:
        if self.name == "locked":
            raise PermissionError(13, "Permission denied")
        real_rmdir(self)

    with patch.object(Path, "rmdir", rmdir):
        with pytest.raises(FilesystemError, match="locked") as exc_info:
            prune_empty_directories(tmp_path)

    # Deletions completed before the failure stay done
    assert exc_info.value.completed == [tmp_path / "open"]
    assert not (tmp_path / "open").exists()
    assert (tmp_path / "locked").exists()


def test_prune_missing_root_is_noop(tmp_path: Path) -> None:
    assert prune_empty_directories(tmp_path / "missing") == []
