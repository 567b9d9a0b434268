"""Core enums, constants, and job types for the music pipeline.

Enums:
    Tier             -- Encoding tier (primary opusenc, fallback ffmpeg).
    ConvertOutcome   -- Conversion job state. ALREADY_BACKED_UP is the only
                        non-terminal state besides PENDING: a backed-up job is
                        still reprocessed by the skip/encode steps.
    OrganizeOutcome  -- Organizer job state (moved, copied, skipped, failed).

Jobs are owned by the pipeline run that created them. Workers never mutate a
job; they return results that the orchestrating thread applies.
"""

from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path

from .sanitize import normalize_extension


class Tier(StrEnum):
    PRIMARY = "primary"
    FALLBACK = "fallback"


class ConvertOutcome(StrEnum):
    PENDING = "pending"
    ALREADY_BACKED_UP = "already_backed_up"
    SKIPPED_OPTIMAL = "skipped_optimal"
    SUCCEEDED_PRIMARY = "succeeded_primary"
    SUCCEEDED_FALLBACK = "succeeded_fallback"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self not in (ConvertOutcome.PENDING, ConvertOutcome.ALREADY_BACKED_UP)


class OrganizeOutcome(StrEnum):
    PENDING = "pending"
    MOVED = "moved"
    COPIED = "copied"
    SKIPPED_SAME_LOCATION = "skipped_same_location"
    FAILED = "failed"


# Sources the converter picks up
CONVERT_EXTENSIONS: tuple[str, ...] = ("flac", "wav", "m4a", "alac", "aiff", "ape", "wv")

# Sources opusenc handles natively; everything else goes straight to ffmpeg
PRIMARY_EXTENSIONS: frozenset[str] = frozenset({"flac", "wav"})

SKIP_ELIGIBLE_EXTENSIONS: frozenset[str] = frozenset({"m4a"})
EXTENDED_SKIP_ELIGIBLE_EXTENSIONS: frozenset[str] = frozenset({"m4a", "flac", "wav", "alac"})

# Half-width of the "already near target" bitrate window, kbps
SKIP_TOLERANCE_KBPS = 20

# Sources the organizer picks up, in menu order for interactive selection
ORGANIZE_EXTENSIONS: tuple[str, ...] = ("mp3", "m4a", "flac", "wav", "ogg", "aac", "opus")

UNKNOWN_ARTIST = "Unknown Artist"
UNKNOWN_ALBUM = "Unknown Album"


@dataclass(frozen=True)
class SourceFile:
    """A discovered audio file. Identity is the path at discovery time."""

    path: Path
    bitrate_kbps: int = 0

    @property
    def extension(self) -> str:
        return normalize_extension(self.path)

    @property
    def name(self) -> str:
        return self.path.name


@dataclass
class ConversionJob:
    index: int
    source: SourceFile
    target_path: Path
    outcome: ConvertOutcome = ConvertOutcome.PENDING
    backup_path: Path | None = None
    error: str = ""

    @property
    def backed_up(self) -> bool:
        return self.backup_path is not None


@dataclass
class OrganizeJob:
    index: int
    source: SourceFile
    artist: str = ""
    album: str = ""
    target_path: Path | None = None
    outcome: OrganizeOutcome = OrganizeOutcome.PENDING
    error: str = ""
    warning: str = ""

    @property
    def target_dir(self) -> Path | None:
        return self.target_path.parent if self.target_path else None


@dataclass
class EncodeResult:
    """What a single encode worker reports back for one job."""

    index: int
    tier: Tier
    success: bool
    diagnostic: str = ""


@dataclass
class RunSummary:
    """Counters and failure list for one conversion run."""

    found: int = 0
    skipped: int = 0
    backed_up: int = 0
    succeeded_primary: int = 0
    succeeded_fallback: int = 0
    failed: int = 0
    backup_dir: Path | None = None
    failed_jobs: list[ConversionJob] = field(default_factory=list)
    skipped_jobs: list[ConversionJob] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return self.succeeded_primary + self.succeeded_fallback

    @property
    def exit_code(self) -> int:
        return 1 if self.failed else 0

    @classmethod
    def from_jobs(cls, jobs: list[ConversionJob], backup_dir: Path | None = None) -> "RunSummary":
        summary = cls(found=len(jobs), backup_dir=backup_dir)
        for job in sorted(jobs, key=lambda j: j.index):
            if job.backed_up:
                summary.backed_up += 1
            if job.outcome == ConvertOutcome.SKIPPED_OPTIMAL:
                summary.skipped += 1
                summary.skipped_jobs.append(job)
            elif job.outcome == ConvertOutcome.SUCCEEDED_PRIMARY:
                summary.succeeded_primary += 1
            elif job.outcome == ConvertOutcome.SUCCEEDED_FALLBACK:
                summary.succeeded_fallback += 1
            else:
                summary.failed += 1
                summary.failed_jobs.append(job)
        return summary


@dataclass
class OrganizeSummary:
    found: int = 0
    moved: int = 0
    copied: int = 0
    skipped: int = 0
    failed: int = 0
    failed_jobs: list[OrganizeJob] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def processed(self) -> int:
        return self.moved + self.copied + self.skipped

    @property
    def exit_code(self) -> int:
        return 1 if self.failed else 0

    @classmethod
    def from_jobs(cls, jobs: list[OrganizeJob]) -> "OrganizeSummary":
        summary = cls(found=len(jobs))
        for job in sorted(jobs, key=lambda j: j.index):
            if job.warning:
                summary.warnings.append(job.warning)
            if job.outcome == OrganizeOutcome.MOVED:
                summary.moved += 1
            elif job.outcome == OrganizeOutcome.COPIED:
                summary.copied += 1
            elif job.outcome == OrganizeOutcome.SKIPPED_SAME_LOCATION:
                summary.skipped += 1
            else:
                summary.failed += 1
                summary.failed_jobs.append(job)
        return summary
