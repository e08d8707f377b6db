"""
Tests for settings loading and path resolution.
"""

import logging

import pytest

from agenda import paths
from agenda.config import AgendaSettings, load_settings


class TestAgendaSettings:
    def test_defaults(self):
        settings = AgendaSettings(timezone="America/New_York")
        assert settings.overdue_recent_days == 7
        assert settings.lookback_days == 30
        assert settings.lookahead_days == 90
        assert settings.conflict_padding_minutes == 30

    def test_invalid_timezone(self):
        with pytest.raises(ValueError, match="Invalid timezone"):
            AgendaSettings(timezone="Mars/Olympus_Mons")

    def test_negative_days_rejected(self):
        with pytest.raises(ValueError):
            AgendaSettings(timezone="America/New_York", lookahead_days=-1)


class TestLoadSettings:
    def test_missing_file_means_defaults(self, tmp_path):
        settings = load_settings(tmp_path / "absent.yaml")
        assert settings == AgendaSettings()

    def test_yaml_overlay(self, tmp_path):
        path = tmp_path / "agenda.yaml"
        path.write_text("timezone: America/Chicago\noverdue_recent_days: 3\n")
        settings = load_settings(path)
        assert settings.timezone == "America/Chicago"
        assert settings.overdue_recent_days == 3

    def test_unknown_keys_ignored_with_warning(self, tmp_path, caplog):
        path = tmp_path / "agenda.yaml"
        path.write_text("lookback_days: 14\ncolour: blue\n")
        with caplog.at_level(logging.WARNING, logger="agenda.config"):
            settings = load_settings(path)
        assert settings.lookback_days == 14
        assert "colour" in caplog.text

    def test_non_mapping_rejected(self, tmp_path):
        path = tmp_path / "agenda.yaml"
        path.write_text("- just\n- a list\n")
        with pytest.raises(ValueError, match="mapping"):
            load_settings(path)

    def test_bad_timezone_in_file(self, tmp_path):
        path = tmp_path / "agenda.yaml"
        path.write_text("timezone: Nowhere/Special\n")
        with pytest.raises(ValueError):
            load_settings(path)

    def test_env_config_path(self, tmp_path, monkeypatch):
        path = tmp_path / "custom.yaml"
        path.write_text("lookahead_days: 10\n")
        monkeypatch.setenv("AGENDA_CONFIG", str(path))
        assert load_settings().lookahead_days == 10


class TestPaths:
    def test_app_home_override(self, tmp_path, monkeypatch):
        monkeypatch.setenv("AGENDA_HOME", str(tmp_path))
        assert paths.app_home() == tmp_path.resolve()
        assert paths.db_path() == tmp_path.resolve() / "data" / "agenda.db"
        assert paths.config_path() == tmp_path.resolve() / "config" / "agenda.yaml"

    def test_db_override(self, tmp_path, monkeypatch):
        monkeypatch.setenv("AGENDA_DB", str(tmp_path / "other.db"))
        assert paths.db_path() == (tmp_path / "other.db").resolve()
