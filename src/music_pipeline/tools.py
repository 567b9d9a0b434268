"""Preflight checks for the external tools each pipeline shells out to."""

import shutil

from loguru import logger

from .errors import MissingToolsError

log = logger.bind(stage="tools")

# executable -> how it is described to the user when missing
CONVERT_TOOLS: dict[str, str] = {
    "opusenc": "opusenc (from opus-tools package)",
    "ffmpeg": "ffmpeg",
    "ffprobe": "ffprobe (from ffmpeg package)",
}

ORGANIZE_TOOLS: dict[str, str] = {
    "ffprobe": "ffprobe (from ffmpeg package)",
}


def find_missing_tools(tools: dict[str, str]) -> list[str]:
    """Return the descriptions of every tool not found on PATH."""
    missing = []
    for executable, description in tools.items():
        path = shutil.which(executable)
        if path is None:
            missing.append(description)
        else:
            log.debug(f"Found {executable} at {path}")
    return missing


def require_tools(tools: dict[str, str]) -> None:
    """Raise MissingToolsError listing all missing tools at once."""
    missing = find_missing_tools(tools)
    if missing:
        raise MissingToolsError(missing)
