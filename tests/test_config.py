"""Tests for settings resolution."""

import json
from pathlib import Path

import pytest

from tasked.config import (
    DATABASE_FILE_ENV,
    LOG_FORMAT_ENV,
    LOG_LEVEL_ENV,
    default_database_file,
    load_user_config,
    resolve_settings,
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (DATABASE_FILE_ENV, LOG_LEVEL_ENV, LOG_FORMAT_ENV):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def config_file(tmp_path):
    """Write a user config file and return its path."""
    def _write(data: dict) -> Path:
        path = tmp_path / "config.json"
        path.write_text(json.dumps(data))
        return path
    return _write


class TestDatabaseFile:
    """Tests for database file resolution order."""

    def test_default(self, tmp_path):
        settings = resolve_settings(config_path=tmp_path / "absent.json")

        assert settings.database_file == default_database_file()
        assert settings.database_file.parts[-2:] == (".tasked", "tasks.db")
        assert settings.config_path is None

    def test_config_file(self, config_file):
        path = config_file({"database_file": "/srv/plans.db"})

        settings = resolve_settings(config_path=path)

        assert settings.database_file == Path("/srv/plans.db")
        assert settings.config_path == path

    def test_env_beats_config(self, monkeypatch, config_file):
        path = config_file({"database_file": "/srv/plans.db"})
        monkeypatch.setenv(DATABASE_FILE_ENV, "/env/plans.db")

        settings = resolve_settings(config_path=path)

        assert settings.database_file == Path("/env/plans.db")

    def test_explicit_beats_env(self, monkeypatch, tmp_path):
        monkeypatch.setenv(DATABASE_FILE_ENV, "/env/plans.db")

        settings = resolve_settings(
            database_file=tmp_path / "cli.db", config_path=tmp_path / "absent.json"
        )

        assert settings.database_file == tmp_path / "cli.db"

    def test_home_is_expanded(self, tmp_path):
        settings = resolve_settings(
            database_file=Path("~/plans.db"), config_path=tmp_path / "absent.json"
        )

        assert "~" not in str(settings.database_file)


class TestLogging:
    """Tests for log level and format resolution."""

    def test_defaults(self, tmp_path):
        settings = resolve_settings(config_path=tmp_path / "absent.json")

        assert settings.log_level == "WARNING"
        assert settings.log_format == "console"

    def test_config_values_normalized(self, config_file):
        settings = resolve_settings(config_path=config_file({"log_level": "debug", "log_format": "JSON"}))

        assert settings.log_level == "DEBUG"
        assert settings.log_format == "json"

    def test_env_beats_config(self, monkeypatch, config_file):
        monkeypatch.setenv(LOG_LEVEL_ENV, "error")
        path = config_file({"log_level": "debug"})

        assert resolve_settings(config_path=path).log_level == "ERROR"


class TestLoadUserConfig:
    """Tests for reading the config file."""

    def test_missing_file(self, tmp_path):
        assert load_user_config(tmp_path / "absent.json") is None

    def test_reads_file(self, config_file):
        assert load_user_config(config_file({"log_level": "INFO"})) == {"log_level": "INFO"}
