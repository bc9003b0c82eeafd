"""Environment-driven settings for tablespine.

``TablespineSettings`` is the process-level default for every database the
registry opens: where files live, the default database name and schema
version, and whether SQL tracing and transactions are on.  Per-database
overrides go through :class:`~tablespine.config.DatabaseConfig`.

Manifesto:
    Configuration should be explicit, validated, and environment-driven.

    - **Pydantic validation:** Type-checked at startup, not at first query
    - **Environment-driven:** ``TABLESPINE_*`` variables and ``.env`` files
    - **Sensible defaults:** Works out of the box for development

Examples:
    >>> import os
    >>> os.environ["TABLESPINE_DB_NAME"] = "inventory.db"
    >>> get_settings(_force_reload=True).db_name
    'inventory.db'

Tags:
    settings, configuration, pydantic, environment, tablespine
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class TablespineSettings(BaseSettings):
    """Process-wide defaults, read from ``TABLESPINE_*`` environment variables.

    Fields
    ──────
    db_name            : Default database file name
    db_dir             : Directory database files are created in
    db_version         : Schema version stamped into ``PRAGMA user_version``
    debug              : Trace every SQL statement at DEBUG level
    allow_transaction  : Wrap mutations in a real SQLite transaction
    busy_timeout       : Seconds SQLite waits on a locked database
    log_level          : structlog log level
    log_format         : ``json`` or ``console``
    """

    model_config = SettingsConfigDict(
        env_prefix="TABLESPINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Database ─────────────────────────────────────────────────
    db_name: str = Field(default="tablespine.db")
    db_dir: Path = Field(
        default_factory=lambda: Path.home() / ".tablespine",
        description="Directory database files are created in",
    )
    db_version: int = Field(default=1, ge=1)
    busy_timeout: float = Field(default=5.0, gt=0)

    # ── Behaviour ────────────────────────────────────────────────
    debug: bool = False
    allow_transaction: bool = False

    # ── Logging ──────────────────────────────────────────────────
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="console")

    @field_validator("log_format")
    @classmethod
    def _check_log_format(cls, value: str) -> str:
        value = value.lower()
        if value not in ("json", "console"):
            raise ValueError("log_format must be 'json' or 'console'")
        return value


# ── Settings factory with caching ────────────────────────────────────────

_settings_cache: dict[str, TablespineSettings] = {}


def get_settings(*, _force_reload: bool = False) -> TablespineSettings:
    """Load, validate, and cache a :class:`TablespineSettings` instance."""
    if _force_reload or "default" not in _settings_cache:
        _settings_cache["default"] = TablespineSettings()
    return _settings_cache["default"]


def clear_settings_cache() -> None:
    """Drop the cached settings so the next call re-reads the environment."""
    _settings_cache.clear()


__all__ = [
    "TablespineSettings",
    "get_settings",
    "clear_settings_cache",
]
