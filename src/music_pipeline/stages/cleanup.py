"""Cleanup stage -- removes the transient per-run diagnostics directory."""

import shutil
from pathlib import Path

from loguru import logger

log = logger.bind(stage="cleanup")


def run(work_dir: Path | None) -> None:
    """Remove ``work_dir`` and the encoder logs inside it, if it exists."""
    if work_dir is not None and work_dir.exists():
        shutil.rmtree(work_dir, ignore_errors=True)
        log.debug(f"Removed work dir: {work_dir}")
    else:
        log.debug("Cleanup stage (no work dir to clean)")
