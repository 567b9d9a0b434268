"""Bitrate inspection and the skip-if-already-near-target decision."""

from __future__ import annotations

import dataclasses
from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

from ..errors import ExternalToolError
from ..ffprobe import get_stream_bitrate
from ..models import (
    EXTENDED_SKIP_ELIGIBLE_EXTENSIONS,
    SKIP_ELIGIBLE_EXTENSIONS,
    SKIP_TOLERANCE_KBPS,
    ConversionJob,
    ConvertOutcome,
    SourceFile,
)
from ..sanitize import parse_bitrate

if TYPE_CHECKING:
    from ..config import PipelineConfig

log = logger.bind(stage="inspect")


def inspect(file: Path, timeout: float | None = 10.0) -> int:
    """Bitrate of the first audio stream in kbps, 0 if it can't be determined."""
    try:
        raw = get_stream_bitrate(file, timeout=timeout)
    except (ValueError, ExternalToolError) as exc:
        log.debug(f"No bitrate for {file}: {exc}")
        return 0
    return parse_bitrate(raw)


def skip_eligible(extension: str, extended: bool = False) -> bool:
    eligible = EXTENDED_SKIP_ELIGIBLE_EXTENSIONS if extended else SKIP_ELIGIBLE_EXTENSIONS
    return extension.lower() in eligible


def is_near_target(bitrate_kbps: int, target_bitrate: int) -> bool:
    """True when a known bitrate lies within the skip tolerance of the target.

    An unknown bitrate (0) is never near the target.
    """
    if bitrate_kbps <= 0:
        return False
    return abs(bitrate_kbps - target_bitrate) <= SKIP_TOLERANCE_KBPS


def should_skip(source: SourceFile, target_bitrate: int, extended: bool = False) -> bool:
    """Decide from the resolved bitrate on ``source`` whether to skip it."""
    return skip_eligible(source.extension, extended) and is_near_target(
        source.bitrate_kbps, target_bitrate
    )


def run(jobs: list[ConversionJob], config: PipelineConfig) -> list[ConversionJob]:
    """Resolve bitrates for skip-eligible jobs and mark near-target ones skipped.

    Only skip-eligible files are probed; the rest keep bitrate 0 since
    nothing downstream reads it. Returns the skipped jobs in job order.
    """
    skipped = []
    for job in jobs:
        if job.outcome.is_terminal:
            continue
        if not skip_eligible(job.source.extension, config.extended_skip):
            continue

        bitrate = inspect(job.source.path, timeout=config.probe_timeout)
        job.source = dataclasses.replace(job.source, bitrate_kbps=bitrate)

        if should_skip(job.source, config.target_bitrate, config.extended_skip):
            job.outcome = ConvertOutcome.SKIPPED_OPTIMAL
            skipped.append(job)
            log.info(
                f"Skipping {job.source.name}: {bitrate}kbps is within "
                f"{SKIP_TOLERANCE_KBPS}kbps of {config.target_bitrate}kbps"
            )
    return skipped
