"""Metadata stage -- artist/album lookup for the organizer.

Encoders disagree on where tags live: some write them on the container,
others on the audio stream. Both levels are queried and merged with this
precedence per key:

    1. container (format) tag, if non-empty
    2. first non-empty tag among the streams, in stream order
    3. "Unknown Artist" / "Unknown Album"

Tag keys are matched case-insensitively (ffprobe wrappers lowercase them).
A probe that fails or times out is logged and treated as having no tags.
"""

from pathlib import Path

from loguru import logger

from ..errors import ExternalToolError
from ..ffprobe import get_format_tags, get_stream_tags
from ..models import UNKNOWN_ALBUM, UNKNOWN_ARTIST

log = logger.bind(stage="metadata")


def pick_tag(format_tags: dict[str, str], stream_tags: list[dict[str, str]], key: str) -> str:
    """Resolve one tag by precedence; returns "" when no level has it."""
    key = key.lower()
    value = format_tags.get(key, "")
    if value.strip():
        return value
    for tags in stream_tags:
        value = tags.get(key, "")
        if value.strip():
            return value
    return ""


def extract(file: Path, timeout: float | None = 10.0) -> tuple[str, str]:
    """Return ``(artist, album)`` for ``file``, falling back to the Unknown names."""
    try:
        format_tags = get_format_tags(file, timeout=timeout)
    except (ExternalToolError, ValueError) as exc:
        log.warning(f"Failed to extract format metadata from {file}: {exc}")
        format_tags = {}

    try:
        stream_tags = get_stream_tags(file, timeout=timeout)
    except (ExternalToolError, ValueError) as exc:
        log.warning(f"Failed to extract stream metadata from {file}: {exc}")
        stream_tags = []

    artist = pick_tag(format_tags, stream_tags, "artist") or UNKNOWN_ARTIST
    album = pick_tag(format_tags, stream_tags, "album") or UNKNOWN_ALBUM
    log.debug(f"{file.name}: artist={artist!r} album={album!r}")
    return artist, album
