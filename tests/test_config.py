"""
Tests for configuration loading.
"""

from pathlib import Path

import pytest

from slotbook.config import AppConfig, DefaultsConfig, load_config


class TestDefaultsConfig:
    """Tests for DefaultsConfig validation."""

    def test_defaults(self):
        defaults = DefaultsConfig()

        assert defaults.duration_minutes == 30
        assert defaults.search_horizon_days is None

    @pytest.mark.parametrize("minutes", [0, -15])
    def test_non_positive_duration_rejected(self, minutes):
        with pytest.raises(ValueError, match="duration_minutes"):
            DefaultsConfig(duration_minutes=minutes)

    def test_non_positive_horizon_rejected(self):
        with pytest.raises(ValueError, match="search_horizon_days"):
            DefaultsConfig(search_horizon_days=0)


class TestAppConfig:
    """Tests for AppConfig."""

    def test_load_from_yaml(self, tmp_path: Path):
        config_path = tmp_path / "config.yaml"
        config_path.write_text(
            "timezone: UTC\n"
            "appointments_file: book.yaml\n"
            "log_level: debug\n"
            "defaults:\n"
            "  duration_minutes: 45\n"
            "  search_horizon_days: 7\n",
            encoding="utf-8",
        )

        config = AppConfig.load_from_yaml(config_path)

        assert config.timezone == "UTC"
        assert config.appointments_file == Path("book.yaml")
        assert config.log_level == "DEBUG"
        assert config.defaults.duration_minutes == 45
        assert config.defaults.search_horizon_days == 7

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            AppConfig.load_from_yaml(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path: Path):
        config_path = tmp_path / "config.yaml"
        config_path.write_text("timezone: [unclosed\n", encoding="utf-8")

        with pytest.raises(ValueError, match="Invalid YAML"):
            AppConfig.load_from_yaml(config_path)

    def test_root_must_be_mapping(self, tmp_path: Path):
        config_path = tmp_path / "config.yaml"
        config_path.write_text("- just\n- a list\n", encoding="utf-8")

        with pytest.raises(ValueError, match="mapping"):
            AppConfig.load_from_yaml(config_path)

    def test_unknown_timezone_rejected(self):
        with pytest.raises(ValueError, match="Unknown timezone"):
            AppConfig(timezone="Mars/Olympus_Mons")

    def test_unknown_log_level_rejected(self):
        with pytest.raises(ValueError, match="Unknown log level"):
            AppConfig(log_level="chatty")


class TestLoadConfig:
    """Tests for load_config fallbacks."""

    def test_explicit_path_must_exist(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "missing.yaml")

    def test_falls_back_to_defaults(self, tmp_path: Path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setattr(
            "slotbook.config.get_default_config_path",
            lambda: tmp_path / "config.yaml",
        )

        config = load_config()

        assert config == AppConfig()
