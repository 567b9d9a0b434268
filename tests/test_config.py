"""Tests for config.py -- defaults, env var overrides, validation."""

from unittest.mock import patch

import pytest
from pydantic import ValidationError

from music_pipeline.config import PipelineConfig


class TestDefaults:
    def test_default_values(self):
        config = PipelineConfig(_env_file=None)
        assert config.target_bitrate == 256
        assert config.max_depth == 1
        assert config.max_workers == 0
        assert config.probe_timeout == 10.0
        assert config.encode_timeout is None
        assert config.follow_symlinks is False
        assert config.extended_skip is False
        assert config.output_extension == "opus"
        assert config.backup_prefix == "opus_backup"
        assert config.dry_run is False
        assert config.log_level == "INFO"
        assert config.log_dir is None


class TestOverrides:
    def test_constructor_override(self):
        config = PipelineConfig(_env_file=None, target_bitrate=128, max_depth=3)
        assert config.target_bitrate == 128
        assert config.max_depth == 3

    def test_env_var_override(self, monkeypatch):
        monkeypatch.setenv("TARGET_BITRATE", "96")
        monkeypatch.setenv("FOLLOW_SYMLINKS", "true")
        config = PipelineConfig(_env_file=None)
        assert config.target_bitrate == 96
        assert config.follow_symlinks is True

    def test_constructor_beats_env(self, monkeypatch):
        monkeypatch.setenv("TARGET_BITRATE", "96")
        config = PipelineConfig(_env_file=None, target_bitrate=320)
        assert config.target_bitrate == 320


class TestValidation:
    @pytest.mark.parametrize("bitrate", [31, 513, 0])
    def test_bitrate_out_of_range(self, bitrate):
        with pytest.raises(ValidationError):
            PipelineConfig(_env_file=None, target_bitrate=bitrate)

    @pytest.mark.parametrize("bitrate", [32, 512])
    def test_bitrate_bounds_accepted(self, bitrate):
        assert PipelineConfig(_env_file=None, target_bitrate=bitrate).target_bitrate == bitrate

    def test_depth_must_be_positive(self):
        with pytest.raises(ValidationError):
            PipelineConfig(_env_file=None, max_depth=0)


class TestWorkerCount:
    def test_explicit(self):
        assert PipelineConfig(_env_file=None, max_workers=3).worker_count == 3

    def test_auto_uses_available_cpus(self):
        with patch("music_pipeline.config.psutil.Process") as mock_proc:
            mock_proc.return_value.cpu_affinity.return_value = [0, 1, 2, 3, 4, 5]
            assert PipelineConfig(_env_file=None).worker_count == 6

    def test_auto_without_affinity_support(self):
        with patch("music_pipeline.config.psutil.Process") as mock_proc, patch(
            "music_pipeline.config.psutil.cpu_count", return_value=8
        ):
            mock_proc.return_value.cpu_affinity.side_effect = AttributeError
            assert PipelineConfig(_env_file=None).worker_count == 8
