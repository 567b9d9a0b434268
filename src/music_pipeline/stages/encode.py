"""Primary (opusenc) and fallback (ffmpeg/libopus) encoder invocations.

Both tiers share one success rule: the encoder exits 0 AND the output exists
with non-zero size. On any other result the partial output is deleted, so a
failed attempt never leaves a file behind for the next tier or the next run.
"""

import subprocess
from pathlib import Path

from loguru import logger

from ..models import EncodeResult, Tier

log = logger.bind(stage="encode")


def is_valid_output(path: Path) -> bool:
    """An output counts only if it is a regular file with content."""
    try:
        return path.is_file() and path.stat().st_size > 0
    except OSError:
        return False


def remove_partial(path: Path) -> None:
    if path.is_file():
        path.unlink(missing_ok=True)
        log.debug(f"Removed partial output: {path}")


def primary_command(source: Path, target: Path, bitrate: int) -> list[str]:
    return ["opusenc", "--vbr", "--bitrate", str(bitrate), str(source), str(target)]


def fallback_command(source: Path, target: Path, bitrate: int) -> list[str]:
    return [
        "ffmpeg",
        "-nostdin",
        "-y",
        "-v",
        "error",
        "-i",
        str(source),
        "-c:a",
        "libopus",
        "-b:a",
        f"{bitrate}k",
        "-vbr",
        "on",
        "-application",
        "audio",
        str(target),
    ]


_COMMANDS = {
    Tier.PRIMARY: primary_command,
    Tier.FALLBACK: fallback_command,
}


def _last_line(log_file: Path) -> str:
    try:
        lines = log_file.read_text(errors="replace").splitlines()
    except OSError:
        return ""
    for line in reversed(lines):
        if line.strip():
            return line.strip()
    return ""


def encode(
    tier: Tier,
    index: int,
    source: Path,
    target: Path,
    bitrate: int,
    log_dir: Path,
    timeout: float | None = None,
) -> EncodeResult:
    """Run one encoder for one file and report the outcome.

    The encoder's stderr goes to ``<log_dir>/<tier>_<index>.err``; the last
    non-empty line becomes the diagnostic on failure.
    """
    cmd = _COMMANDS[tier](source, target, bitrate)
    log_file = log_dir / f"{tier.value}_{index:05d}.err"
    log.debug(f"[{tier}] {source.name} -> {target.name}")

    diagnostic = ""
    returncode = None
    try:
        with open(log_file, "w") as err:
            result = subprocess.run(
                cmd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=err,
                timeout=timeout,
            )
        returncode = result.returncode
    except subprocess.TimeoutExpired:
        diagnostic = f"{cmd[0]} timed out after {timeout}s"
    except OSError as exc:
        diagnostic = f"{cmd[0]} could not be started: {exc}"

    if returncode == 0 and is_valid_output(target):
        return EncodeResult(index=index, tier=tier, success=True)

    remove_partial(target)
    if not diagnostic:
        detail = _last_line(log_file)
        if returncode == 0:
            diagnostic = f"{cmd[0]} produced no output" + (f": {detail}" if detail else "")
        else:
            diagnostic = f"{cmd[0]} exited with code {returncode}" + (
                f": {detail}" if detail else ""
            )
    log.debug(f"[{tier}] failed for {source.name}: {diagnostic}")
    return EncodeResult(index=index, tier=tier, success=False, diagnostic=diagnostic)
