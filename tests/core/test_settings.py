"""Tests for tablespine.settings and tablespine.config.

Covers:
- TablespineSettings defaults and TABLESPINE_* overrides
- Settings caching
- DatabaseConfig validation, path resolution and copies
"""

from pathlib import Path

import pytest
from pydantic import ValidationError

from tablespine.config import MEMORY, DatabaseConfig
from tablespine.errors import ConfigError
from tablespine.settings import TablespineSettings, clear_settings_cache, get_settings


class TestTablespineSettingsDefaults:
    def test_default_db_name(self):
        assert TablespineSettings().db_name == "tablespine.db"

    def test_default_db_dir_is_home_tablespine(self):
        s = TablespineSettings()
        assert s.db_dir == Path.home() / ".tablespine"
        assert isinstance(s.db_dir, Path)

    def test_default_flags_off(self):
        s = TablespineSettings()
        assert s.debug is False
        assert s.allow_transaction is False

    def test_default_version_and_timeout(self):
        s = TablespineSettings()
        assert s.db_version == 1
        assert s.busy_timeout == 5.0


class TestTablespineSettingsEnvOverride:
    def test_db_name_from_env(self, monkeypatch):
        monkeypatch.setenv("TABLESPINE_DB_NAME", "inventory.db")
        assert TablespineSettings().db_name == "inventory.db"

    def test_allow_transaction_from_env(self, monkeypatch):
        monkeypatch.setenv("TABLESPINE_ALLOW_TRANSACTION", "true")
        assert TablespineSettings().allow_transaction is True

    def test_db_version_must_be_positive(self, monkeypatch):
        monkeypatch.setenv("TABLESPINE_DB_VERSION", "0")
        with pytest.raises(ValidationError):
            TablespineSettings()

    def test_log_format_validated(self, monkeypatch):
        monkeypatch.setenv("TABLESPINE_LOG_FORMAT", "xml")
        with pytest.raises(ValidationError):
            TablespineSettings()

    def test_log_format_lowercased(self, monkeypatch):
        monkeypatch.setenv("TABLESPINE_LOG_FORMAT", "JSON")
        assert TablespineSettings().log_format == "json"


class TestGetSettings:
    def test_cached(self):
        assert get_settings() is get_settings()

    def test_force_reload_reads_env(self, monkeypatch):
        get_settings()
        monkeypatch.setenv("TABLESPINE_DB_NAME", "reloaded.db")
        assert get_settings(_force_reload=True).db_name == "reloaded.db"

    def test_clear_cache(self, monkeypatch):
        first = get_settings()
        clear_settings_cache()
        assert get_settings() is not first


class TestDatabaseConfig:
    def test_defaults(self):
        cfg = DatabaseConfig()
        assert cfg.db_version == 1
        assert cfg.upgrade_listener is None
        assert cfg.debug is False
        assert cfg.allow_transaction is False

    def test_empty_name_rejected(self):
        with pytest.raises(ConfigError):
            DatabaseConfig(db_name="")

    def test_version_below_one_rejected(self):
        with pytest.raises(ConfigError, match="db_version"):
            DatabaseConfig(db_version=0)

    def test_path_without_dir(self):
        assert DatabaseConfig(db_name="a.db").path == "a.db"

    def test_path_with_dir(self, tmp_path):
        cfg = DatabaseConfig(db_name="a.db", db_dir=str(tmp_path))
        assert isinstance(cfg.db_dir, Path)
        assert cfg.path == str(tmp_path / "a.db")

    def test_memory(self, tmp_path):
        cfg = DatabaseConfig(db_name=MEMORY, db_dir=tmp_path)
        assert cfg.is_memory
        assert cfg.path == MEMORY

    def test_with_changes_returns_copy(self):
        cfg = DatabaseConfig(db_name="a.db")
        changed = cfg.with_changes(debug=True)
        assert changed.debug is True
        assert cfg.debug is False
        assert changed.db_name == "a.db"

    def test_frozen(self):
        cfg = DatabaseConfig()
        with pytest.raises(AttributeError):
            cfg.debug = True  # type: ignore[misc]

    def test_from_settings(self, monkeypatch, tmp_path):
        monkeypatch.setenv("TABLESPINE_DB_DIR", str(tmp_path))
        monkeypatch.setenv("TABLESPINE_DEBUG", "1")
        cfg = DatabaseConfig.from_settings(TablespineSettings(), db_name="x.db")
        assert cfg.db_name == "x.db"
        assert cfg.db_dir == tmp_path
        assert cfg.debug is True
