"""Batch converter: audio files -> Opus with a two-tier encoder fallback.

Run order for one directory:

    discover -> back up existing outputs -> skip near-target files
             -> primary tier (opusenc) on a bounded pool
             -> fallback tier (ffmpeg) on a bounded pool, for primary failures
             -> summary

The fallback pool only starts once the primary pool has fully drained, since
its input is exactly the primary tier's failure set. Workers never touch a
job; they append EncodeResults to a lock-guarded list and the orchestrating
thread applies them after the tier completes.
"""

import tempfile
import threading
from concurrent.futures import ThreadPoolExecutor, wait
from pathlib import Path

import click
from loguru import logger

from .config import PipelineConfig
from .discovery import discover_files
from .models import (
    CONVERT_EXTENSIONS,
    PRIMARY_EXTENSIONS,
    ConversionJob,
    ConvertOutcome,
    EncodeResult,
    RunSummary,
    SourceFile,
    Tier,
)
from .stages import backup, cleanup, inspect
from .stages.backup import BackupSet
from .stages.encode import encode

log = logger.bind(stage="orchestrator")

_TIER_TOOL = {Tier.PRIMARY: "opusenc", Tier.FALLBACK: "ffmpeg"}


class ConvertOrchestrator:
    """Bounded-parallel batch converter for one directory tree.

    Attributes:
        config: Pipeline configuration (bitrate, depth, parallelism, timeouts)
    """

    def __init__(self, config: PipelineConfig) -> None:
        self.config = config

    def create_jobs(self, files: list[Path]) -> list[ConversionJob]:
        """One job per discovered file; the index fixes report order.

        Sources that map to the same output (song.flac and song.wav) can't
        both be converted. The first one in discovery order keeps the output
        path and the others are failed up front.
        """
        suffix = f".{self.config.output_extension}"
        claimed: dict[Path, Path] = {}
        jobs = []
        for i, path in enumerate(files):
            target = path.with_suffix(suffix)
            job = ConversionJob(index=i, source=SourceFile(path), target_path=target)
            owner = claimed.setdefault(target, path)
            if owner != path:
                job.outcome = ConvertOutcome.FAILED
                job.error = f"output path {target} shared with {owner}"
                log.warning(f"Not converting {path}: {job.error}")
            jobs.append(job)
        return jobs

    def run(self, root: Path) -> RunSummary:
        """Convert every supported file under ``root``.

        Returns an empty summary (found == 0) when nothing matches; the caller
        decides whether that is an error. KeyboardInterrupt propagates after
        zero-length outputs and the diagnostics directory are removed.
        """
        backup_set = BackupSet(root, self.config.backup_prefix)
        files = discover_files(
            root,
            CONVERT_EXTENSIONS,
            max_depth=self.config.max_depth,
            exclude=[backup_set.path],
            follow_symlinks=self.config.follow_symlinks,
        )
        jobs = self.create_jobs(files)
        if not jobs:
            log.warning(f"No supported audio files found in {root}")
            return RunSummary()

        click.echo(
            f"Found {len(jobs)} audio files to process using bitrate: "
            f"{self.config.target_bitrate}kbps"
        )

        work_dir = Path(tempfile.mkdtemp(prefix="music-pipeline-"))
        log.debug(f"Encoder diagnostics in {work_dir}")
        try:
            self._process(jobs, backup_set, work_dir)
        except KeyboardInterrupt:
            self._remove_empty_outputs(jobs)
            raise
        finally:
            cleanup.run(work_dir)

        summary = RunSummary.from_jobs(
            jobs, backup_dir=backup_set.path if backup_set.created else None
        )
        self._display_summary(summary)
        return summary

    def _process(self, jobs: list[ConversionJob], backup_set: BackupSet, work_dir: Path) -> None:
        click.echo("\nChecking for existing OPUS files...")
        backed_up = backup.run(jobs, backup_set)
        if backed_up:
            click.echo(f"Backed up {len(backed_up)} existing OPUS files to {backup_set.path}")
        else:
            click.echo("No existing OPUS files found. No backup needed.")

        inspect.run(jobs, self.config)

        by_index = {job.index: job for job in jobs}

        primary_jobs = [
            job for job in jobs
            if not job.outcome.is_terminal and job.source.extension in PRIMARY_EXTENSIONS
        ]
        if primary_jobs:
            click.echo(f"\nStarting first pass with opusenc ({len(primary_jobs)} files)...")
        for result in self._run_tier(Tier.PRIMARY, primary_jobs, work_dir):
            self._apply(by_index[result.index], result)

        fallback_jobs = [job for job in jobs if not job.outcome.is_terminal]
        if fallback_jobs:
            click.echo(f"\nStarting second pass with ffmpeg ({len(fallback_jobs)} files)...")
        for result in self._run_tier(Tier.FALLBACK, fallback_jobs, work_dir):
            self._apply(by_index[result.index], result)

        for job in jobs:
            if not job.outcome.is_terminal:
                job.outcome = ConvertOutcome.FAILED
                job.error = job.error or "no encoder reported a result"

    def _run_tier(
        self, tier: Tier, jobs: list[ConversionJob], work_dir: Path
    ) -> list[EncodeResult]:
        """Encode ``jobs`` on a bounded pool and wait for all of them.

        Returns results sorted by job index, independent of completion order.
        """
        if not jobs:
            return []

        max_workers = min(self.config.worker_count, len(jobs))
        log.info(f"Starting {tier} tier: {len(jobs)} files, max_workers={max_workers}")

        results: list[EncodeResult] = []
        lock = threading.Lock()
        executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix=f"encode-{tier}")
        try:
            futures = [
                executor.submit(self._encode_safe, tier, job, work_dir, results, lock)
                for job in jobs
            ]
            wait(futures)
        except KeyboardInterrupt:
            log.warning(f"Interrupted during {tier} tier, cancelling queued encodes")
            executor.shutdown(wait=True, cancel_futures=True)
            raise
        executor.shutdown(wait=True)

        return sorted(results, key=lambda r: r.index)

    def _encode_safe(
        self,
        tier: Tier,
        job: ConversionJob,
        work_dir: Path,
        results: list[EncodeResult],
        lock: threading.Lock,
    ) -> None:
        """Worker body: encode one file and append its result."""
        try:
            result = encode(
                tier,
                job.index,
                job.source.path,
                job.target_path,
                self.config.target_bitrate,
                work_dir,
                timeout=self.config.encode_timeout,
            )
        except Exception as e:
            log.error(f"Error encoding {job.source.name} ({tier}): {e}")
            result = EncodeResult(index=job.index, tier=tier, success=False, diagnostic=str(e))

        status = "OK" if result.success else "FAILED"
        click.echo(f"  {status} ({_TIER_TOOL[tier]}): {job.source.path}")
        with lock:
            results.append(result)

    @staticmethod
    def _apply(job: ConversionJob, result: EncodeResult) -> None:
        if result.success:
            job.outcome = (
                ConvertOutcome.SUCCEEDED_PRIMARY
                if result.tier == Tier.PRIMARY
                else ConvertOutcome.SUCCEEDED_FALLBACK
            )
            job.error = ""
        else:
            job.error = result.diagnostic
            if result.tier == Tier.FALLBACK:
                job.outcome = ConvertOutcome.FAILED

    @staticmethod
    def _remove_empty_outputs(jobs: list[ConversionJob]) -> None:
        for job in jobs:
            target = job.target_path
            try:
                if target.is_file() and target.stat().st_size == 0:
                    target.unlink()
                    log.debug(f"Removed empty output after interrupt: {target}")
            except OSError as exc:
                log.warning(f"Could not remove {target}: {exc}")

    def _display_summary(self, summary: RunSummary) -> None:
        click.echo("\nConversion Summary")
        click.echo("-----------------")
        click.echo(f"Total audio files found: {summary.found}")
        click.echo(f"Previously converted files (backed up): {summary.backed_up}")
        click.echo(f"Skipped files (near target bitrate): {summary.skipped}")
        click.echo(f"Successfully converted with opusenc: {summary.succeeded_primary}")
        click.echo(f"Successfully converted with ffmpeg: {summary.succeeded_fallback}")
        click.echo(f"Total failed conversions: {summary.failed}")

        if summary.failed_jobs:
            click.echo("\nFiles that could not be converted:")
            for job in summary.failed_jobs:
                click.echo(f"  - {job.source.path}")
                if job.error:
                    click.echo(f"      {job.error}")

        if summary.skipped_jobs:
            click.echo("\nSkipped files (near target bitrate):")
            for job in summary.skipped_jobs:
                click.echo(f"  - {job.source.path} ({job.source.bitrate_kbps}kbps)")

        if summary.backup_dir is not None:
            click.echo(f"\nYour previous OPUS files were backed up to: {summary.backup_dir}")
            click.echo(
                f"To restore them, move the files under {summary.backup_dir} "
                f"back to their original directories."
            )
