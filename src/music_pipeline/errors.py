"""Exception hierarchy for the music pipeline."""


class PipelineError(Exception):
    """Base exception for all pipeline errors."""


class ConfigError(PipelineError):
    """Invalid or missing configuration."""


class MissingToolsError(PipelineError):
    """One or more required external tools are not installed."""

    def __init__(self, missing: list[str]) -> None:
        super().__init__(
            "The following required tools are missing: " + ", ".join(missing)
        )
        self.missing = list(missing)


class ExternalToolError(PipelineError):
    """An external subprocess (ffmpeg, ffprobe, etc.) failed."""

    def __init__(self, tool: str, exit_code: int, stderr: str) -> None:
        super().__init__(f"{tool} exited with code {exit_code}: {stderr}")
        self.tool = tool
        self.exit_code = exit_code
        self.stderr = stderr
