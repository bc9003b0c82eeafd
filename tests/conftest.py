"""
Shared pytest fixtures and configuration for tablespine tests.

This module provides:
- Registry cleanup fixtures for test isolation
- File-backed and in-memory database fixtures
- Settings cache reset

Usage:
    Fixtures are auto-discovered by pytest.  Use them as function arguments:

    def test_something(db):
        db.save(Item(name="a"))
"""

from __future__ import annotations

from collections.abc import Generator
from pathlib import Path

import pytest
import structlog

from tablespine import DatabaseConfig, EntityDatabase, create, database_registry
from tablespine.settings import clear_settings_cache


# =============================================================================
# Registry Cleanup Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def clean_database_registry() -> Generator[None, None, None]:
    """
    Close and forget every registered database before and after each test.

    No test can observe another test's connection or reconfiguration.
    """
    database_registry.clear()
    yield
    database_registry.clear()


@pytest.fixture(autouse=True)
def clean_settings_cache(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Keep ``TABLESPINE_*`` variables from the host out of the tests."""
    for name in (
        "TABLESPINE_DB_NAME",
        "TABLESPINE_DB_DIR",
        "TABLESPINE_DB_VERSION",
        "TABLESPINE_DEBUG",
        "TABLESPINE_ALLOW_TRANSACTION",
    ):
        monkeypatch.delenv(name, raising=False)
    clear_settings_cache()
    yield
    clear_settings_cache()


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "test.db"


@pytest.fixture
def db(tmp_path: Path) -> EntityDatabase:
    """File-backed database, transactions disabled (the default)."""
    return create("test.db", db_dir=tmp_path)


@pytest.fixture
def tx_db(tmp_path: Path) -> EntityDatabase:
    """File-backed database with the transactional envelope enabled."""
    return create("tx.db", db_dir=tmp_path, allow_transaction=True)


@pytest.fixture
def memory_config() -> DatabaseConfig:
    return DatabaseConfig(db_name=":memory:")


@pytest.fixture(autouse=True)
def reset_structlog() -> Generator[None, None, None]:
    """Undo any ``configure_logging`` call made by a test (the CLI makes one)."""
    yield
    structlog.reset_defaults()
