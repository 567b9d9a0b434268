"""FFprobe subprocess wrappers for audio file inspection.

Every call is bounded by a timeout so one corrupt file cannot stall a run.
A timeout, a non-zero exit or unreadable JSON raises ExternalToolError.
"""

import json
import subprocess
from pathlib import Path

from .errors import ExternalToolError

DEFAULT_TIMEOUT = 10.0


def _run_ffprobe(
    args: list[str], timeout: float | None = DEFAULT_TIMEOUT
) -> subprocess.CompletedProcess:
    """Run ffprobe with common flags."""
    try:
        return subprocess.run(
            ["ffprobe", "-v", "error"] + args,
            capture_output=True,
            text=True,
            errors="replace",
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as exc:
        raise ExternalToolError("ffprobe", -1, f"timed out after {timeout}s") from exc


def _run_ffprobe_json(args: list[str], timeout: float | None) -> dict:
    result = _run_ffprobe(args + ["-of", "json"], timeout=timeout)
    if result.returncode != 0:
        raise ExternalToolError("ffprobe", result.returncode, result.stderr.strip())
    try:
        data = json.loads(result.stdout or "{}")
    except json.JSONDecodeError as exc:
        raise ExternalToolError("ffprobe", result.returncode, f"invalid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ExternalToolError("ffprobe", result.returncode, "unexpected JSON document")
    return data


def _lower_keys(tags: dict | None) -> dict[str, str]:
    if not isinstance(tags, dict):
        return {}
    return {str(k).lower(): str(v) for k, v in tags.items()}


def get_stream_bitrate(file: Path, timeout: float | None = DEFAULT_TIMEOUT) -> str:
    """Get the raw bit_rate of the first audio stream.

    The unit is whatever the container reports (usually bits/sec, sometimes
    kbps); see sanitize.parse_bitrate for normalization.
    """
    result = _run_ffprobe([
        "-select_streams", "a:0",
        "-show_entries", "stream=bit_rate",
        "-of", "default=noprint_wrappers=1:nokey=1",
        str(file),
    ], timeout=timeout)
    output = result.stdout.strip()
    if not output:
        raise ValueError(f"ffprobe returned empty bitrate for {file}")
    return output.splitlines()[0]


def get_format_tags(file: Path, timeout: float | None = DEFAULT_TIMEOUT) -> dict[str, str]:
    """Get container-level tags with lowercase keys."""
    data = _run_ffprobe_json(["-show_entries", "format_tags", str(file)], timeout)
    return _lower_keys(data.get("format", {}).get("tags"))


def get_stream_tags(file: Path, timeout: float | None = DEFAULT_TIMEOUT) -> list[dict[str, str]]:
    """Get per-stream tags with lowercase keys, one dict per stream in order."""
    data = _run_ffprobe_json(["-show_entries", "stream_tags", str(file)], timeout)
    return [_lower_keys(stream.get("tags")) for stream in data.get("streams", [])]
