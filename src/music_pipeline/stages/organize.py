"""Organize stage -- place a file under ``<library>/<artist>/<album>/``."""

from __future__ import annotations

import os
import shutil
from pathlib import Path
from typing import TYPE_CHECKING

import click
from loguru import logger

from ..models import OrganizeJob, OrganizeOutcome
from ..sanitize import sanitize_component, sanitize_filename
from .metadata import extract

if TYPE_CHECKING:
    from ..config import PipelineConfig

log = logger.bind(stage="organize")


def build_target_path(library_root: Path, artist: str, album: str, filename: str) -> Path:
    """``library_root/artist/album/stem.ext`` with every component sanitized.

    The extension is kept exactly as found, including its case.
    """
    return (
        library_root
        / sanitize_component(artist)
        / sanitize_component(album)
        / sanitize_filename(filename)
    )


def is_same_location(source: Path, target: Path) -> bool:
    if os.path.abspath(source) == os.path.abspath(target):
        return True
    try:
        return target.exists() and os.path.samefile(source, target)
    except OSError:
        return False


def unique_target(target: Path) -> Path:
    """Return ``target`` or the first free ``stem (n).ext`` next to it."""
    if not target.exists():
        return target
    stem, dot, ext = target.name.rpartition(".")
    if not dot or not stem:
        stem, ext = target.name, ""
    n = 1
    while True:
        name = f"{stem} ({n}).{ext}" if ext else f"{stem} ({n})"
        candidate = target.with_name(name)
        if not candidate.exists():
            return candidate
        n += 1


def relocate(source: Path, target: Path) -> tuple[OrganizeOutcome, str, str]:
    """Move ``source`` to ``target``, falling back to copy + delete.

    Returns ``(outcome, error, warning)``. The copy fallback covers moves
    across filesystems. A copy whose source can't be removed still counts
    as done, with a warning that the original remains.
    """
    try:
        source.rename(target)
        return OrganizeOutcome.MOVED, "", ""
    except OSError as exc:
        log.warning(f"Move failed for {source.name}: {exc}; trying copy")

    try:
        shutil.copy2(source, target)
    except OSError as exc:
        if target.exists():
            target.unlink(missing_ok=True)
        return OrganizeOutcome.FAILED, f"both move and copy failed: {exc}", ""

    try:
        source.unlink()
    except OSError as exc:
        log.warning(f"Copied {source.name} but could not remove original: {exc}")
        return (
            OrganizeOutcome.COPIED,
            "",
            f"File copied but original couldn't be removed: {source}",
        )
    return OrganizeOutcome.COPIED, "", ""


def run(job: OrganizeJob, library_root: Path, config: PipelineConfig) -> OrganizeJob:
    """Extract tags, derive the destination and relocate one file."""
    source = job.source.path
    job.artist, job.album = extract(source, timeout=config.probe_timeout)
    target = build_target_path(library_root, job.artist, job.album, source.name)

    if is_same_location(source, target):
        job.target_path = target
        job.outcome = OrganizeOutcome.SKIPPED_SAME_LOCATION
        click.echo(f"Skip: File already in correct location: {source}")
        return job

    target = unique_target(target)
    job.target_path = target

    if config.dry_run:
        job.outcome = OrganizeOutcome.MOVED
        click.echo(f"[DRY-RUN] Would move: {source.name} -> {target}")
        return job

    try:
        target.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        job.outcome = OrganizeOutcome.FAILED
        job.error = f"failed to create directory {target.parent}: {exc}"
        click.echo(f"Error: Failed to create directory: {target.parent}")
        return job

    job.outcome, job.error, job.warning = relocate(source, target)

    if job.outcome == OrganizeOutcome.MOVED:
        click.echo(f"Success: Moved: {source.name} -> {target}")
    elif job.warning:
        click.echo(f"Success: Copied: {source.name} -> {target}")
        click.echo(f"Warning: {job.warning}")
    elif job.outcome == OrganizeOutcome.COPIED:
        click.echo(f"Success: Copied and removed: {source.name} -> {target}")
    else:
        click.echo(f"Error: Both move and copy failed for: {source}")
    return job
