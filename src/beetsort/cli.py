"""CLI entry point for beetsort."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional

import typer

from beetsort import __version__
from beetsort.cataloguer import beets_path, clean_log, was_already_imported
from beetsort.config import BeetsortConfig, load_config, merge_config
from beetsort.errors import BeetsortError
from beetsort.logging_setup import setup_logging
from beetsort.pipeline import list_candidates, run_pipeline
from beetsort.tools import check_tools_available
from beetsort.tree import prune_empty_directories

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="beetsort",
    help="Unpack, transcode and import a downloads folder into beets, one album at a time.",
    invoke_without_command=True,
    no_args_is_help=True,
)


def _resolve_config_path(config: Optional[str]) -> Path:
    """Resolve the config file path, falling back to ./config.toml."""
    if config is not None:
        return Path(config)
    default = Path("config.toml")
    if default.exists():
        return default
    typer.echo(
        "Error: No --config given and no config.toml found in current directory",
        err=True,
    )
    raise typer.Exit(code=1)


def _load(config: Optional[str], downloads_dir: Optional[str] = None) -> BeetsortConfig:
    """Load the TOML config, apply CLI overrides and set up logging."""
    config_path = _resolve_config_path(config)
    if not config_path.exists():
        typer.echo(f"Error: Config file not found: {config_path}", err=True)
        raise typer.Exit(code=1)

    cli_overrides: dict[str, Any] = {}
    if downloads_dir is not None:
        cli_overrides["downloads_dir"] = downloads_dir

    try:
        cfg = merge_config(load_config(config_path), cli_overrides)
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    setup_logging(cfg.log_level, cfg.log_file, cfg.log_file_level)
    return cfg


@app.command()
def run(
    config: Optional[str] = typer.Option(None, "--config", help="Path to TOML config file (default: ./config.toml)"),
    downloads_dir: Optional[str] = typer.Option(None, "--downloads-dir", help="Override downloads directory"),
    interactive: bool = typer.Option(False, "--interactive", help="Answer beets' prompts yourself instead of running quietly"),
    skipped: bool = typer.Option(False, "--skipped", help="Retry the directories beets skipped earlier"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show what would be done without changing anything"),
) -> None:
    """Run the full import pipeline."""
    cfg = _load(config, downloads_dir)

    if not dry_run:
        # Fail fast if an external tool is missing
        try:
            check_tools_available(cfg)
        except RuntimeError as e:
            logger.error("%s", e)
            raise typer.Exit(code=1)

    target = cfg.skipped_dir if skipped else cfg.downloads_dir

    logger.info("beetsort v%s: starting import", __version__)
    logger.info("Target: %s", target)
    logger.info("Imported folder: %s", cfg.archive_dir)
    logger.info("Skipped folder: %s", cfg.skipped_dir)
    if interactive:
        logger.info("Interactive mode: beets will prompt for each album")
    if dry_run:
        logger.info("Dry-run mode: nothing will be changed")

    try:
        summary = run_pipeline(cfg, target, interactive=interactive, dry_run=dry_run)
    except BeetsortError as e:
        logger.error("%s", e)
        raise typer.Exit(code=1)

    if summary.failed or summary.extract_failed or summary.transcode_failed:
        raise typer.Exit(code=2)


@app.command()
def prune(
    config: Optional[str] = typer.Option(None, "--config", help="Path to TOML config file (default: ./config.toml)"),
    target: Optional[str] = typer.Option(None, "--target", help="Directory to prune (default: downloads directory)"),
) -> None:
    """Delete empty directories, including ones emptied by pruning their children."""
    cfg = _load(config)
    root = Path(target) if target is not None else cfg.downloads_dir

    try:
        deleted = prune_empty_directories(root)
    except BeetsortError as e:
        logger.error("%s", e)
        raise typer.Exit(code=1)

    logger.info("Pruned %d empty directories under %s", len(deleted), root)


@app.command()
def candidates(
    config: Optional[str] = typer.Option(None, "--config", help="Path to TOML config file (default: ./config.toml)"),
    skipped: bool = typer.Option(False, "--skipped", help="List candidates in the skipped folder instead"),
) -> None:
    """List the directories the next run would hand to beets."""
    cfg = _load(config)
    target = cfg.skipped_dir if skipped else cfg.downloads_dir

    try:
        paths = list_candidates(cfg, target)
    except BeetsortError as e:
        logger.error("%s", e)
        raise typer.Exit(code=1)

    for path in paths:
        typer.echo(str(path))


@app.command()
def check(
    path: str = typer.Argument(..., help="Directory to look up in the beets import log"),
    config: Optional[str] = typer.Option(None, "--config", help="Path to TOML config file (default: ./config.toml)"),
) -> None:
    """Report whether beets has logged an import of PATH."""
    cfg = _load(config)

    try:
        imported = was_already_imported(cfg.beets_log, beets_path(cfg, Path(path)))
    except BeetsortError as e:
        logger.error("%s", e)
        raise typer.Exit(code=1)

    if imported:
        typer.echo(f"Imported: {path}")
    else:
        typer.echo(f"Not imported: {path}")


@app.command(name="clean-log")
def clean_log_cmd(
    config: Optional[str] = typer.Option(None, "--config", help="Path to TOML config file (default: ./config.toml)"),
) -> None:
    """Set the beets import log aside with a timestamp suffix."""
    cfg = _load(config)

    try:
        rotated = clean_log(cfg.beets_log)
    except BeetsortError as e:
        logger.error("%s", e)
        raise typer.Exit(code=1)

    typer.echo(f"Beets log moved to {rotated}")


@app.command()
def version() -> None:
    """Print version information."""
    typer.echo(f"beetsort {__version__}")


if __name__ == "__main__":
    app()
