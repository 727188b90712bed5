"""The import pipeline: sanitize, prune, extract, transcode, import, route.

Every step runs to completion before the next one starts and every external
command blocks until it exits. The filesystem is the only state: each step
rescans what it needs instead of trusting an earlier view. Nothing else may
modify the target tree while a run is in progress.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from rich.progress import BarColumn, MofNCompleteColumn, Progress, TextColumn, TimeElapsedColumn

from beetsort.cataloguer import ImportOutcome, beets_path, import_directory, was_already_imported
from beetsort.config import BeetsortConfig
from beetsort.logging_setup import console
from beetsort.errors import ExternalToolError, FilesystemError, LogReadError
from beetsort.fileops import delete_file, move_children, move_preserving
from beetsort.scanner import find_files_by_extension, find_hidden_files, find_import_candidates
from beetsort.tools import extract_archive, transcode_audio
from beetsort.tree import build_tree, empty_directories, prune_empty_directories

logger = logging.getLogger(__name__)


@dataclass
class PipelineSummary:
    """Counters for one pipeline run."""

    hidden_removed: int = 0
    hidden_failed: int = 0
    pruned: int = 0
    extracted: int = 0
    extract_failed: int = 0
    transcoded: int = 0
    transcode_failed: int = 0
    archived: int = 0
    skipped: int = 0
    failed: int = 0
    vanished: int = 0


def excluded_roots(cfg: BeetsortConfig, target: Path) -> list[Path]:
    """Folders a run over ``target`` must leave alone.

    The archive folder is always excluded. The skipped folder is excluded
    unless it is the target itself (a retry pass over skipped items).
    """
    roots = [cfg.archive_dir]
    if target != cfg.skipped_dir:
        roots.append(cfg.skipped_dir)
    return roots


# ---------------------------------------------------------------------------
# Preparation steps
# ---------------------------------------------------------------------------


def sanitize(target: Path, hidden_prefix: str, summary: PipelineSummary) -> None:
    """Best-effort removal of hidden files; failures are logged and skipped."""
    for path in find_hidden_files(target, hidden_prefix):
        try:
            delete_file(path)
            summary.hidden_removed += 1
        except FilesystemError as e:
            summary.hidden_failed += 1
            logger.warning("%s", e)


def prune(target: Path, summary: PipelineSummary) -> bool:
    """Prune empty directories under target. Returns False if target itself is gone."""
    summary.pruned += len(prune_empty_directories(target))
    return target.exists()


def extract_archives(cfg: BeetsortConfig, target: Path, summary: PipelineSummary) -> None:
    """Extract every archive under target and move each source into the archive folder."""
    archives = find_files_by_extension(
        target, cfg.archive_extensions, excluded_roots(cfg, target)
    )
    for archive in archives:
        try:
            extract_archive(cfg, archive)
            move_preserving(archive, target, cfg.archive_dir)
            summary.extracted += 1
        except (ExternalToolError, FilesystemError) as e:
            summary.extract_failed += 1
            logger.error("Extraction failed for %s: %s", archive, e)


def transcode_audio_files(cfg: BeetsortConfig, target: Path, summary: PipelineSummary) -> None:
    """Transcode every raw audio file under target and archive the originals."""
    audio_files = find_files_by_extension(
        target, cfg.audio_extensions, excluded_roots(cfg, target)
    )
    for audio_file in audio_files:
        try:
            transcode_audio(cfg, audio_file)
            move_preserving(audio_file, target, cfg.archive_dir)
            summary.transcoded += 1
        except (ExternalToolError, FilesystemError) as e:
            summary.transcode_failed += 1
            logger.error("Transcoding failed for %s: %s", audio_file, e)


def list_candidates(cfg: BeetsortConfig, target: Path) -> list[Path]:
    """Leaf directories under target that are ready for import."""
    return find_import_candidates(target, excluded_roots(cfg, target), cfg.hidden_prefix)


# ---------------------------------------------------------------------------
# Import loop
# ---------------------------------------------------------------------------


def import_candidate(
    cfg: BeetsortConfig,
    target: Path,
    candidate: Path,
    *,
    interactive: bool = False,
) -> ImportOutcome:
    """Import one directory and move it to the folder its outcome calls for.

    Failures are logged and reported as FAILED; the directory stays where it is.
    """
    if target == cfg.skipped_dir:
        _log_previous_import(cfg, candidate)

    try:
        outcome = import_directory(cfg, candidate, interactive=interactive)
    except ExternalToolError as e:
        logger.error("Import failed for %s: %s", candidate, e)
        return ImportOutcome.FAILED

    destination_root = cfg.archive_dir if outcome is ImportOutcome.ARCHIVED else cfg.skipped_dir
    try:
        _route(candidate, target, destination_root)
    except FilesystemError as e:
        logger.error("Cannot file %s after import: %s", candidate, e)
        return ImportOutcome.FAILED

    logger.info("%s: %s", outcome.value.capitalize(), candidate)
    return outcome


def _route(candidate: Path, target: Path, destination_root: Path) -> None:
    # A scan root with no subdirectories is its own candidate; only its files move.
    if candidate == target:
        if destination_root != target:
            move_children(candidate, destination_root)
        return
    move_preserving(candidate, target, destination_root)


def _log_previous_import(cfg: BeetsortConfig, candidate: Path) -> None:
    """Advisory check against the beets log before retrying a skipped directory."""
    try:
        if was_already_imported(cfg.beets_log, beets_path(cfg, candidate)):
            logger.warning("%s already appears in the beets log", candidate)
    except LogReadError as e:
        logger.warning("Cannot check previous imports: %s", e)


def import_candidates(
    cfg: BeetsortConfig,
    target: Path,
    candidates: list[Path],
    summary: PipelineSummary,
    *,
    interactive: bool = False,
) -> None:
    """Import each candidate in turn, re-pruning target after every routed one."""
    with Progress(
        TextColumn("[bold blue]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        TextColumn("{task.fields[current_dir]}"),
        TimeElapsedColumn(),
        console=console,
        disable=interactive,
    ) as progress:
        task = progress.add_task("Importing", total=len(candidates), current_dir="")

        for candidate in candidates:
            progress.update(task, current_dir=candidate.name)

            if not candidate.is_dir():
                summary.vanished += 1
                logger.info("No longer present, skipping: %s", candidate)
                progress.advance(task)
                continue

            outcome = import_candidate(cfg, target, candidate, interactive=interactive)
            if outcome is ImportOutcome.ARCHIVED:
                summary.archived += 1
            elif outcome is ImportOutcome.SKIPPED:
                summary.skipped += 1
            else:
                summary.failed += 1

            if outcome is not ImportOutcome.FAILED and target.exists():
                prune(target, summary)

            progress.advance(task)


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------


def run_pipeline(
    cfg: BeetsortConfig,
    target: Path | None = None,
    *,
    interactive: bool = False,
    dry_run: bool = False,
) -> PipelineSummary:
    """Run every pipeline step over ``target`` (default: the downloads folder).

    Candidates are collected once, after extraction and transcoding. Leaf
    directories that appear later in the run wait for the next run.
    """
    target = target or cfg.downloads_dir
    summary = PipelineSummary()

    if dry_run:
        _dry_run(cfg, target)
        return summary

    logger.info("Cleaning hidden files in %s", target)
    sanitize(target, cfg.hidden_prefix, summary)

    if not prune(target, summary):
        logger.info("%s was empty and has been removed. Nothing to import.", target)
        _log_summary(summary)
        return summary

    extract_archives(cfg, target, summary)
    transcode_audio_files(cfg, target, summary)

    candidates = list_candidates(cfg, target)
    logger.info("Found %d directories to import", len(candidates))
    if candidates:
        import_candidates(cfg, target, candidates, summary, interactive=interactive)

    _log_summary(summary)
    return summary


def _dry_run(cfg: BeetsortConfig, target: Path) -> None:
    """Log what a run over target would touch without changing anything."""
    excluded = excluded_roots(cfg, target)
    logger.info("--- Dry Run: %s ---", target)

    sections = (
        ("Hidden files to delete", find_hidden_files(target, cfg.hidden_prefix)),
        ("Empty directories to prune", empty_directories(build_tree(target))),
        ("Archives to extract", find_files_by_extension(target, cfg.archive_extensions, excluded)),
        ("Audio files to transcode", find_files_by_extension(target, cfg.audio_extensions, excluded)),
        ("Directories to import (before extraction)", list_candidates(cfg, target)),
    )
    for title, paths in sections:
        logger.info("%s: %d", title, len(paths))
        for path in paths:
            logger.info("  %s", path)


def _log_summary(summary: PipelineSummary) -> None:
    logger.info("--- Run Summary ---")
    logger.info("Hidden files removed: %d (failed: %d)", summary.hidden_removed, summary.hidden_failed)
    logger.info("Empty directories pruned: %d", summary.pruned)
    logger.info("Archives extracted: %d (failed: %d)", summary.extracted, summary.extract_failed)
    logger.info("Audio files transcoded: %d (failed: %d)", summary.transcoded, summary.transcode_failed)
    logger.info("Imported: %d", summary.archived)
    logger.info("Skipped: %d", summary.skipped)
    logger.info("Failed: %d", summary.failed)
    if summary.vanished:
        logger.info("Vanished before import: %d", summary.vanished)
