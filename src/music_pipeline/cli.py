"""CLI entry points: ``audio-to-opus`` (converter) and ``organize-music`` (organizer)."""

import signal
import sys
from contextlib import contextmanager
from pathlib import Path

import click
from loguru import logger
from pydantic import ValidationError

from .config import PipelineConfig
from .convert_orchestrator import ConvertOrchestrator
from .discovery import count_by_extension
from .errors import ConfigError, MissingToolsError
from .models import CONVERT_EXTENSIONS, ORGANIZE_EXTENSIONS
from .organize_runner import OrganizeRunner
from .tools import CONVERT_TOOLS, ORGANIZE_TOOLS, require_tools

log = logger.bind(stage="cli")

CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}


class _Command(click.Command):
    """click command whose usage errors exit with status 1 instead of 2."""

    def make_context(self, info_name, args, parent=None, **extra):
        try:
            return super().make_context(info_name, args, parent=parent, **extra)
        except click.UsageError as exc:
            exc.exit_code = 1
            raise


def _build_config(**kwargs) -> PipelineConfig:
    """Build config from CLI kwargs; None values fall through to env/.env/defaults."""
    config_kwargs = {k: v for k, v in kwargs.items() if v is not None}
    if config_kwargs.get("verbose"):
        config_kwargs["log_level"] = "DEBUG"
    try:
        return PipelineConfig(**config_kwargs)  # type: ignore[arg-type]
    except ValidationError as exc:
        raise click.UsageError(f"Invalid configuration: {exc}") from exc


def _setup_logging(config: PipelineConfig) -> None:
    try:
        config.setup_logging()
    except ConfigError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)


def _check_tools(tools: dict[str, str]) -> None:
    try:
        require_tools(tools)
    except MissingToolsError as exc:
        click.echo("Error: The following required tools are missing:", err=True)
        for tool in exc.missing:
            click.echo(f"  - {tool}", err=True)
        click.echo("Please install them and try again.", err=True)
        sys.exit(1)


def _raise_interrupt(signum, frame):
    raise KeyboardInterrupt


@contextmanager
def _terminate_as_interrupt():
    """Treat SIGTERM like Ctrl-C for the duration of a run."""
    previous = signal.signal(signal.SIGTERM, _raise_interrupt)
    try:
        yield
    finally:
        signal.signal(signal.SIGTERM, previous)


@click.command(cls=_Command, context_settings=CONTEXT_SETTINGS)
@click.argument(
    "directory",
    required=False,
    default=".",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
)
@click.option(
    "-b",
    "--bitrate",
    type=click.IntRange(32, 512),
    default=None,
    help="Encoding bitrate in kbps, 32-512 (default: 256).",
)
@click.option(
    "-d",
    "--depth",
    type=click.IntRange(min=1),
    default=None,
    help="Directory search depth (default: 1).",
)
@click.option(
    "-j",
    "--jobs",
    type=click.IntRange(min=0),
    default=None,
    help="Parallel encodes (default: number of available CPUs).",
)
@click.option(
    "--extended-skip",
    is_flag=True,
    help="Also skip flac/wav/alac files already near the target bitrate.",
)
@click.option("--follow-symlinks", is_flag=True, help="Follow symlinked files and directories.")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
def convert(
    directory: Path,
    bitrate: int | None,
    depth: int | None,
    jobs: int | None,
    extended_skip: bool,
    follow_symlinks: bool,
    verbose: bool,
) -> None:
    """Convert audio files in DIRECTORY (default: current directory) to Opus.

    Existing .opus outputs are backed up first, m4a files already near the
    target bitrate are skipped, opusenc handles flac/wav and ffmpeg handles
    everything else or anything opusenc failed on.
    """
    config = _build_config(
        target_bitrate=bitrate,
        max_depth=depth,
        max_workers=jobs,
        extended_skip=extended_skip or None,
        follow_symlinks=follow_symlinks or None,
        verbose=verbose,
    )
    _setup_logging(config)
    _check_tools(CONVERT_TOOLS)

    orchestrator = ConvertOrchestrator(config)
    try:
        with _terminate_as_interrupt():
            summary = orchestrator.run(directory)
    except KeyboardInterrupt:
        click.echo("\nScript interrupted. Cleaning up...", err=True)
        sys.exit(1)

    if summary.found == 0:
        click.echo(
            f"No supported audio files found in {directory} (depth: {config.max_depth})."
        )
        click.echo(f"Supported formats: {' '.join(CONVERT_EXTENSIONS)}")
        sys.exit(1)

    if summary.failed:
        click.echo("\nSome files failed to convert. See the list above.")
        sys.exit(1)

    click.echo("\nAll convertible files processed successfully.")


def _parse_formats(values: tuple[str, ...]) -> list[str]:
    """Normalize -f values, warning about (and dropping) unsupported ones."""
    selected: list[str] = []
    for value in values:
        fmt = value.lower().lstrip(".")
        if fmt not in ORGANIZE_EXTENSIONS:
            click.echo(f"Warning: Unsupported format '{fmt}'. Ignoring.", err=True)
            continue
        if fmt not in selected:
            selected.append(fmt)
    return selected


def _interactive_select(directory: Path, follow_symlinks: bool) -> list[str]:
    """Prompt for formats present in ``directory``. Empty list means all."""
    counts = count_by_extension(directory, ORGANIZE_EXTENSIONS, follow_symlinks=follow_symlinks)

    click.echo("Available audio formats in directory (counts):")
    click.echo("0: All formats (default)")
    for number, ext in enumerate(ORGANIZE_EXTENSIONS, start=1):
        if ext in counts:
            click.echo(f"{number}: {ext} ({counts[ext]} files)")

    answer = click.prompt(
        "Enter format number(s) to process (separate multiple selections with space)",
        default="",
        show_default=False,
    )
    tokens = answer.split()
    if not tokens or "0" in tokens:
        click.echo("Processing all audio formats")
        return []

    selected: list[str] = []
    for token in tokens:
        if token.isdigit() and 1 <= int(token) <= len(ORGANIZE_EXTENSIONS):
            ext = ORGANIZE_EXTENSIONS[int(token) - 1]
            if ext not in selected:
                selected.append(ext)

    if selected:
        click.echo(f"Selected formats: {' '.join(selected)}")
    else:
        click.echo("No valid formats selected. Using all formats.")
    return selected


@click.command(cls=_Command, context_settings=CONTEXT_SETTINGS)
@click.argument("directory", type=click.Path(path_type=Path))
@click.option("-a", "--all", "select_all", is_flag=True, help="Process all audio formats (default).")
@click.option("-i", "--interactive", is_flag=True, help="Interactively select formats to process.")
@click.option(
    "-f",
    "--format",
    "formats",
    multiple=True,
    metavar="FORMAT",
    help="Process only this format (repeatable).",
)
@click.option(
    "-o",
    "--output",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Library root for artist/album folders (default: current directory).",
)
@click.option("--dry-run", is_flag=True, help="Show what would happen without doing it.")
@click.option("--follow-symlinks", is_flag=True, help="Follow symlinked files.")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
def organize(
    directory: Path,
    select_all: bool,
    interactive: bool,
    formats: tuple[str, ...],
    output: Path | None,
    dry_run: bool,
    follow_symlinks: bool,
    verbose: bool,
) -> None:
    """Organize audio files in DIRECTORY into Artist/Album folders.

    Supported formats: mp3 m4a flac wav ogg aac opus.
    """
    if not directory.is_dir():
        click.echo(f"Error: Directory does not exist: {directory}", err=True)
        sys.exit(1)

    config = _build_config(
        dry_run=dry_run or None, follow_symlinks=follow_symlinks or None, verbose=verbose
    )
    _setup_logging(config)
    _check_tools(ORGANIZE_TOOLS)

    selected = [] if select_all else _parse_formats(formats)
    if interactive:
        selected = _interactive_select(directory, config.follow_symlinks) or selected

    if selected:
        click.echo(f"Processing formats [{' '.join(selected)}] in: {directory}")
    else:
        click.echo(f"Processing all audio formats in: {directory}")

    runner = OrganizeRunner(config, extensions=selected or None, library_root=output)
    summary = runner.run(directory)
    sys.exit(summary.exit_code)
