"""Organizer runner -- sorts a flat directory of audio files into artist/album folders."""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

import click
from loguru import logger

from .config import PipelineConfig
from .discovery import discover_files
from .models import ORGANIZE_EXTENSIONS, OrganizeJob, OrganizeOutcome, OrganizeSummary, SourceFile
from .stages import organize

log = logger.bind(stage="runner")


class OrganizeRunner:
    """Runs the organizer over the files directly inside one directory.

    Files are processed one at a time in discovery order. Target directories
    are created with ``exist_ok`` so two files landing in the same new
    artist/album folder never conflict.
    """

    def __init__(
        self,
        config: PipelineConfig,
        extensions: Iterable[str] | None = None,
        library_root: Path | None = None,
    ) -> None:
        self.config = config
        self.extensions = tuple(extensions) if extensions else ORGANIZE_EXTENSIONS
        self.library_root = library_root

    def run(self, directory: Path) -> OrganizeSummary:
        """Organize matching files in ``directory`` into the library root.

        The library root defaults to the current working directory, so
        re-running on an already organized ``Artist/Album`` folder from the
        library root leaves every file in place.
        """
        library_root = self.library_root or Path.cwd()
        files = discover_files(
            directory,
            self.extensions,
            max_depth=1,
            follow_symlinks=self.config.follow_symlinks,
        )
        if not files:
            click.echo(f"No matching audio files found in directory: {directory}")
            return OrganizeSummary()

        if self.config.dry_run:
            click.echo("[DRY-RUN] No changes will be made")

        jobs = [OrganizeJob(index=i, source=SourceFile(path)) for i, path in enumerate(files)]
        for job in jobs:
            self._run_single_safe(job, library_root)

        summary = OrganizeSummary.from_jobs(jobs)
        self._display_summary(summary)
        return summary

    def _run_single_safe(self, job: OrganizeJob, library_root: Path) -> None:
        """Organize one file; unexpected errors fail the job, not the run."""
        try:
            organize.run(job, library_root, self.config)
        except Exception as e:
            log.error(f"Error organizing {job.source.name}: {e}")
            job.outcome = OrganizeOutcome.FAILED
            job.error = str(e)

    def _display_summary(self, summary: OrganizeSummary) -> None:
        click.echo(
            f"\nSummary: Processed {summary.processed} out of {summary.found} audio files"
        )
        if summary.skipped:
            click.echo(f"  Already in place: {summary.skipped}")
        if summary.copied:
            click.echo(f"  Copied instead of moved: {summary.copied}")
        for warning in summary.warnings:
            click.echo(f"  Warning: {warning}")
        if summary.failed_jobs:
            click.echo("\nFiles that could not be organized:")
            for job in summary.failed_jobs:
                click.echo(f"  - {job.source.path}: {job.error}")
