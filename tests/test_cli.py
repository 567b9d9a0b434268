"""Tests for the audio-to-opus and organize-music commands."""

from unittest.mock import MagicMock, patch

import pytest
from click.testing import CliRunner

from music_pipeline.cli import convert, organize
from music_pipeline.errors import MissingToolsError
from music_pipeline.models import OrganizeSummary, RunSummary


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def no_tool_check():
    with patch("music_pipeline.cli.require_tools") as mock_require:
        yield mock_require


def _orchestrator(summary=None, side_effect=None):
    instance = MagicMock()
    if side_effect is not None:
        instance.run.side_effect = side_effect
    else:
        instance.run.return_value = summary
    return instance


class TestConvertCommand:
    def test_help(self, runner):
        result = runner.invoke(convert, ["-h"])
        assert result.exit_code == 0
        assert "--bitrate" in result.output

    @pytest.mark.parametrize("value", ["16", "600", "fast"])
    def test_bad_bitrate(self, runner, tmp_path, value):
        result = runner.invoke(convert, ["-b", value, str(tmp_path)])
        assert result.exit_code == 1

    def test_bad_depth(self, runner, tmp_path):
        result = runner.invoke(convert, ["-d", "0", str(tmp_path)])
        assert result.exit_code == 1

    def test_missing_directory(self, runner, tmp_path):
        result = runner.invoke(convert, [str(tmp_path / "nope")])
        assert result.exit_code == 1

    def test_missing_tools_listed_together(self, runner, tmp_path):
        missing = ["opusenc (from opus-tools package)", "ffprobe (from ffmpeg package)"]
        with patch("music_pipeline.cli.require_tools", side_effect=MissingToolsError(missing)):
            result = runner.invoke(convert, [str(tmp_path)])
        assert result.exit_code == 1
        assert "opusenc (from opus-tools package)" in result.output
        assert "ffprobe (from ffmpeg package)" in result.output

    def test_no_files(self, runner, tmp_path, no_tool_check):
        result = runner.invoke(convert, [str(tmp_path)])
        assert result.exit_code == 1
        assert "No supported audio files found" in result.output

    def test_success(self, runner, tmp_path, no_tool_check):
        summary = RunSummary(found=2, succeeded_primary=1, succeeded_fallback=1)
        with patch("music_pipeline.cli.ConvertOrchestrator") as mock_cls:
            mock_cls.return_value = _orchestrator(summary)
            result = runner.invoke(convert, ["-b", "192", "-j", "3", str(tmp_path)])

        assert result.exit_code == 0
        assert "All convertible files processed successfully." in result.output
        config = mock_cls.call_args.args[0]
        assert config.target_bitrate == 192
        assert config.max_workers == 3

    def test_failures_exit_1(self, runner, tmp_path, no_tool_check):
        summary = RunSummary(found=1, failed=1)
        with patch("music_pipeline.cli.ConvertOrchestrator") as mock_cls:
            mock_cls.return_value = _orchestrator(summary)
            result = runner.invoke(convert, [str(tmp_path)])
        assert result.exit_code == 1

    def test_interrupt_exit_1(self, runner, tmp_path, no_tool_check):
        with patch("music_pipeline.cli.ConvertOrchestrator") as mock_cls:
            mock_cls.return_value = _orchestrator(side_effect=KeyboardInterrupt)
            result = runner.invoke(convert, [str(tmp_path)])
        assert result.exit_code == 1
        assert "Script interrupted" in result.output

    def test_env_bitrate_used_without_flag(self, runner, tmp_path, no_tool_check, monkeypatch):
        monkeypatch.setenv("TARGET_BITRATE", "128")
        summary = RunSummary(found=1, succeeded_primary=1)
        with patch("music_pipeline.cli.ConvertOrchestrator") as mock_cls:
            mock_cls.return_value = _orchestrator(summary)
            runner.invoke(convert, [str(tmp_path)])
        assert mock_cls.call_args.args[0].target_bitrate == 128

    def test_flags_reach_config(self, runner, tmp_path, no_tool_check):
        summary = RunSummary(found=1, succeeded_primary=1)
        with patch("music_pipeline.cli.ConvertOrchestrator") as mock_cls:
            mock_cls.return_value = _orchestrator(summary)
            runner.invoke(
                convert, ["-d", "3", "--extended-skip", "--follow-symlinks", str(tmp_path)]
            )
        config = mock_cls.call_args.args[0]
        assert config.max_depth == 3
        assert config.extended_skip is True
        assert config.follow_symlinks is True


class TestOrganizeCommand:
    def test_help(self, runner):
        result = runner.invoke(organize, ["--help"])
        assert result.exit_code == 0
        assert "--format" in result.output

    def test_missing_directory(self, runner, tmp_path):
        result = runner.invoke(organize, [str(tmp_path / "nope")])
        assert result.exit_code == 1
        assert "Directory does not exist" in result.output

    def test_missing_argument(self, runner):
        result = runner.invoke(organize, [])
        assert result.exit_code == 1

    def test_missing_ffprobe(self, runner, tmp_path):
        with patch(
            "music_pipeline.cli.require_tools",
            side_effect=MissingToolsError(["ffprobe (from ffmpeg package)"]),
        ):
            result = runner.invoke(organize, [str(tmp_path)])
        assert result.exit_code == 1
        assert "ffprobe (from ffmpeg package)" in result.output

    def test_unsupported_format_warns(self, runner, tmp_path, no_tool_check):
        with patch("music_pipeline.cli.OrganizeRunner") as mock_cls:
            mock_cls.return_value.run.return_value = OrganizeSummary()
            result = runner.invoke(organize, ["-f", "xyz", "-f", "MP3", str(tmp_path)])

        assert result.exit_code == 0
        assert "Warning: Unsupported format 'xyz'. Ignoring." in result.output
        assert mock_cls.call_args.kwargs["extensions"] == ["mp3"]

    def test_all_overrides_format(self, runner, tmp_path, no_tool_check):
        with patch("music_pipeline.cli.OrganizeRunner") as mock_cls:
            mock_cls.return_value.run.return_value = OrganizeSummary()
            runner.invoke(organize, ["-f", "mp3", "-a", str(tmp_path)])
        assert mock_cls.call_args.kwargs["extensions"] is None

    def test_output_and_dry_run(self, runner, tmp_path, no_tool_check):
        library = tmp_path / "lib"
        with patch("music_pipeline.cli.OrganizeRunner") as mock_cls:
            mock_cls.return_value.run.return_value = OrganizeSummary()
            runner.invoke(organize, ["--dry-run", "-o", str(library), str(tmp_path)])
        assert mock_cls.call_args.kwargs["library_root"] == library
        assert mock_cls.call_args.args[0].dry_run is True

    def test_failures_exit_1(self, runner, tmp_path, no_tool_check):
        with patch("music_pipeline.cli.OrganizeRunner") as mock_cls:
            mock_cls.return_value.run.return_value = OrganizeSummary(found=1, failed=1)
            result = runner.invoke(organize, [str(tmp_path)])
        assert result.exit_code == 1

    def test_interactive_selection(self, runner, tmp_path, no_tool_check):
        (tmp_path / "a.mp3").write_bytes(b"x")
        (tmp_path / "b.flac").write_bytes(b"x")
        with patch("music_pipeline.cli.OrganizeRunner") as mock_cls:
            mock_cls.return_value.run.return_value = OrganizeSummary()
            result = runner.invoke(organize, ["-i", str(tmp_path)], input="3\n")

        assert "1: mp3 (1 files)" in result.output
        assert "3: flac (1 files)" in result.output
        assert "2: m4a" not in result.output
        assert mock_cls.call_args.kwargs["extensions"] == ["flac"]

    def test_interactive_default_is_all(self, runner, tmp_path, no_tool_check):
        (tmp_path / "a.mp3").write_bytes(b"x")
        with patch("music_pipeline.cli.OrganizeRunner") as mock_cls:
            mock_cls.return_value.run.return_value = OrganizeSummary()
            result = runner.invoke(organize, ["-i", str(tmp_path)], input="\n")

        assert "Processing all audio formats" in result.output
        assert mock_cls.call_args.kwargs["extensions"] is None


class TestLogDir:
    def test_unusable_log_dir_exit_1(self, runner, tmp_path, monkeypatch):
        blocker = tmp_path / "file"
        blocker.write_text("")
        monkeypatch.setenv("LOG_DIR", str(blocker / "logs"))
        result = runner.invoke(organize, [str(tmp_path)])
        assert result.exit_code == 1
        assert "Cannot create log directory" in result.output
