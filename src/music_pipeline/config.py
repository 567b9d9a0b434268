"""Pipeline configuration via pydantic-settings (.env + env vars)."""

import os
import sys
from pathlib import Path

import psutil
from loguru import logger
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigError


class PipelineConfig(BaseSettings):
    """All pipeline configuration with layered resolution:
    .env file < environment variables < constructor kwargs.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    # -- Encoding --
    target_bitrate: int = Field(default=256, ge=32, le=512)
    output_extension: str = "opus"
    extended_skip: bool = False
    encode_timeout: float | None = None  # None = wait for the encoder indefinitely

    # -- Discovery --
    max_depth: int = Field(default=1, ge=1)
    follow_symlinks: bool = False

    # -- Parallel conversion --
    max_workers: int = Field(default=0, ge=0)  # 0 = auto (CPU-based)

    # -- Probing --
    probe_timeout: float = 10.0

    # -- Backup --
    backup_prefix: str = "opus_backup"

    # -- Behavior --
    dry_run: bool = False
    verbose: bool = False
    log_level: str = "INFO"
    log_dir: Path | None = None

    @property
    def worker_count(self) -> int:
        """Resolved encode parallelism.

        Auto mode uses the CPUs this process may run on (affinity mask, so
        taskset/cgroup limits are respected) where the platform exposes it.
        """
        if self.max_workers > 0:
            return self.max_workers
        try:
            return len(psutil.Process().cpu_affinity()) or 1
        except (AttributeError, psutil.Error):
            return psutil.cpu_count() or os.cpu_count() or 1

    def setup_logging(self) -> None:
        """Configure loguru for the pipeline."""
        logger.remove()  # Remove default stderr handler

        log_format = (
            "{time:YYYY-MM-DDTHH:mm:ssZ} | {level:<8} | "
            "{extra[stage]:<12} | {message}"
        )

        def _default_extra(record):
            record["extra"].setdefault("stage", "")
            return True

        logger.add(
            sys.stderr,
            format=log_format,
            level=self.log_level.upper(),
            filter=_default_extra,
        )

        if self.log_dir is None:
            return

        try:
            self.log_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ConfigError(f"Cannot create log directory {self.log_dir}: {exc}") from exc
        logger.add(
            str(self.log_dir / "pipeline.log"),
            format=log_format,
            level="DEBUG",
            rotation="10 MB",
            retention="30 days",
            filter=_default_extra,
        )
