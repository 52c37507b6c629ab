"""Tests for run settings."""

from __future__ import annotations

from datetime import datetime

import pytest

from mwdprofile.config import COARSE_BIN_M, FINE_BIN_M, ProfileSettings, load_settings


class TestProfileSettings:
    def test_defaults(self):
        settings = ProfileSettings()
        assert settings.pattern == "%"
        assert settings.fine_bin_m == FINE_BIN_M == 0.2
        assert settings.coarse_bin_m == COARSE_BIN_M == 1.0
        assert settings.fmt == "parquet"

    @pytest.mark.parametrize(
        "kwargs",
        [{"fine_bin_m": 0.0}, {"coarse_bin_m": -1.0}, {"fine_bin_m": 0.3}, {"fmt": "xlsx"}],
    )
    def test_invalid(self, kwargs):
        with pytest.raises(ValueError):
            ProfileSettings(**kwargs)

    def test_with_overrides_skips_none(self):
        settings = ProfileSettings(pattern="1160-%").with_overrides(pattern=None, fmt="csv")
        assert settings.pattern == "1160-%"
        assert settings.fmt == "csv"


class TestLoadSettings:
    def test_no_file_gives_defaults(self):
        assert load_settings(None) == ProfileSettings()

    def test_yaml_file(self, tmp_path):
        path = tmp_path / "profile.yaml"
        path.write_text(
            "pattern: '1160-3231%'\n"
            "start: 2024-03-01\n"
            "end: '2024-03-31 23:59:59'\n"
            "coarse_bin_m: 2.0\n"
        )
        settings = load_settings(path)
        assert settings.pattern == "1160-3231%"
        assert settings.start == datetime(2024, 3, 1)
        assert settings.end == datetime(2024, 3, 31, 23, 59, 59)
        assert settings.coarse_bin_m == 2.0
        assert settings.fine_bin_m == 0.2

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_settings(path) == ProfileSettings()

    def test_unknown_key(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("bin_width: 0.5\n")
        with pytest.raises(ValueError, match="bin_width"):
            load_settings(path)
