"""String utilities shared by both pipelines.

All functions operate on ``str`` and leave non-ASCII characters untouched;
only the characters named below are ever removed or replaced.
"""

import os
import re

from loguru import logger

log = logger.bind(stage="sanitize")

UNKNOWN = "Unknown"

# Reserved on at least one common filesystem; stripped after '/' became '-'
_RESERVED_CHARS = re.compile(r'[<>:"|?*\\]')
_CONTROL_CHARS = re.compile(r"[\r\n\t]")
_WHITESPACE_RUN = re.compile(r"\s+")


def normalize_extension(path: str | os.PathLike) -> str:
    """Return the lowercased extension of ``path`` without the leading dot.

    ``song.FLAC`` -> ``flac``; a name without a dot yields ``""``.
    """
    name = os.path.basename(os.fspath(path))
    stem, dot, ext = name.rpartition(".")
    if not dot or not stem:
        return ""
    return ext.lower()


def parse_bitrate(raw: str | int | None) -> int:
    """Normalize a prober bit-rate value to kbps.

    Values above 1000 are bits/second and get divided by 1000. Values at or
    below 1000 are taken as kbps already. Anything unparsable (empty, "N/A")
    or negative yields 0, meaning unknown.
    """
    if raw is None:
        return 0
    text = str(raw).strip()
    try:
        value = int(float(text))
    except ValueError:
        log.debug(f"Unparsable bitrate value: {text!r}")
        return 0
    if value <= 0:
        return 0
    if value > 1000:
        return value // 1000
    return value


def sanitize_component(text: str) -> str:
    """Make ``text`` safe to use as a single path component.

    Drops CR/LF/tab, turns '/' into '-', strips ``< > : " | ? * \\``,
    collapses whitespace runs and trims. An empty result (or a bare "." or
    "..") becomes "Unknown".
    """
    sanitized = _CONTROL_CHARS.sub("", text)
    sanitized = sanitized.replace("/", "-")
    sanitized = _RESERVED_CHARS.sub("", sanitized)
    sanitized = _WHITESPACE_RUN.sub(" ", sanitized).strip()
    if not sanitized or sanitized in (".", ".."):
        return UNKNOWN
    return sanitized


def sanitize_filename(filename: str) -> str:
    """Sanitize the stem of ``filename`` and reattach its extension verbatim."""
    stem, dot, ext = filename.rpartition(".")
    if not dot or not stem:
        return sanitize_component(filename)
    return f"{sanitize_component(stem)}.{ext}"
