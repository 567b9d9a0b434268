"""Shared fixtures for the music pipeline tests."""

import pytest
from loguru import logger

# Env vars that pydantic-settings reads -- cleared so tests see real defaults
CONFIG_ENV_VARS = [
    "TARGET_BITRATE", "OUTPUT_EXTENSION", "EXTENDED_SKIP", "ENCODE_TIMEOUT",
    "MAX_DEPTH", "FOLLOW_SYMLINKS", "MAX_WORKERS", "PROBE_TIMEOUT",
    "BACKUP_PREFIX", "DRY_RUN", "VERBOSE", "LOG_LEVEL", "LOG_DIR",
]


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for var in CONFIG_ENV_VARS:
        monkeypatch.delenv(var, raising=False)


@pytest.fixture(autouse=True)
def _reset_logger():
    """Drop sinks added by setup_logging so they don't outlive the test's streams."""
    yield
    logger.remove()
