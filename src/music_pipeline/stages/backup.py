"""Backup of pre-existing converted outputs before a conversion run.

The backup directory name is fixed when the run starts (so discovery can
exclude it) but the directory itself is only created when the first valid
output has to be moved into it.
"""

from __future__ import annotations

import shutil
from datetime import datetime
from pathlib import Path

import click
from loguru import logger

from ..models import ConversionJob, ConvertOutcome
from .encode import is_valid_output

log = logger.bind(stage="backup")


class BackupSet:
    """Lazily created, timestamp-named backup directory for one run."""

    def __init__(self, root: Path, prefix: str, now: datetime | None = None) -> None:
        self.root = root
        stamp = (now or datetime.now()).strftime("%Y%m%d_%H%M%S")
        self.path = self._unique_path(root / f"{prefix}_{stamp}")
        self.created = False

    @staticmethod
    def _unique_path(candidate: Path) -> Path:
        path = candidate
        n = 1
        while path.exists():
            path = candidate.with_name(f"{candidate.name}_{n}")
            n += 1
        return path

    def _ensure_created(self) -> None:
        if self.created:
            return
        self.path.mkdir(parents=True)
        self.created = True
        log.info(f"Created backup directory {self.path}")

    def store(self, output: Path) -> Path:
        """Move ``output`` into the backup, keeping its path relative to root."""
        self._ensure_created()
        try:
            relative = output.relative_to(self.root)
        except ValueError:
            relative = Path(output.name)
        dest = self.path / relative
        dest.parent.mkdir(parents=True, exist_ok=True)
        shutil.move(str(output), str(dest))
        return dest


def run(jobs: list[ConversionJob], backup_set: BackupSet) -> list[ConversionJob]:
    """Move every valid existing output into ``backup_set``.

    Zero-length outputs are left alone; the encoder overwrites them. A job
    whose output can't be moved is failed so it is never overwritten.
    Returns the backed-up jobs in job order.
    """
    backed_up = []
    for job in jobs:
        if job.outcome.is_terminal or not is_valid_output(job.target_path):
            continue
        try:
            job.backup_path = backup_set.store(job.target_path)
        except OSError as exc:
            log.error(f"Could not back up {job.target_path}: {exc}")
            job.outcome = ConvertOutcome.FAILED
            job.error = f"backup of existing output failed: {exc}"
            continue
        job.outcome = ConvertOutcome.ALREADY_BACKED_UP
        backed_up.append(job)
        click.echo(f"Backed up existing: {job.target_path}")
    return backed_up
