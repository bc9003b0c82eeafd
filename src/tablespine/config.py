"""Per-database configuration."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

from tablespine.errors import ConfigError

if TYPE_CHECKING:
    from tablespine.protocols import UpgradeListener
    from tablespine.settings import TablespineSettings

MEMORY = ":memory:"
DEFAULT_DB_NAME = "tablespine.db"


@dataclass(frozen=True)
class DatabaseConfig:
    """
    Configuration for one logical database.

    ``db_name`` is the registry key.  Instances are immutable: reconfiguring
    a live database installs a new ``DatabaseConfig`` built with
    :meth:`with_changes`, it never edits the one in place.
    """

    db_name: str = DEFAULT_DB_NAME
    db_dir: Path | None = None
    db_version: int = 1
    upgrade_listener: UpgradeListener | None = None

    debug: bool = False
    allow_transaction: bool = False

    busy_timeout: float = 5.0

    def __post_init__(self) -> None:
        if not self.db_name:
            raise ConfigError("db_name must not be empty")
        if self.db_version < 1:
            raise ConfigError(f"db_version must be >= 1, got {self.db_version}")
        if self.db_dir is not None and not isinstance(self.db_dir, Path):
            object.__setattr__(self, "db_dir", Path(self.db_dir))

    @property
    def is_memory(self) -> bool:
        return self.db_name == MEMORY

    @property
    def path(self) -> str:
        """Filesystem path handed to ``sqlite3.connect``."""
        if self.is_memory:
            return MEMORY
        if self.db_dir is None:
            return str(Path(self.db_name))
        return str(self.db_dir / self.db_name)

    def with_changes(self, **changes: Any) -> DatabaseConfig:
        """Return a copy with ``changes`` applied."""
        return dataclasses.replace(self, **changes)

    @classmethod
    def from_settings(cls, settings: TablespineSettings, **overrides: Any) -> DatabaseConfig:
        """Build a config from process-wide settings."""
        values: dict[str, Any] = {
            "db_name": settings.db_name,
            "db_dir": settings.db_dir,
            "db_version": settings.db_version,
            "debug": settings.debug,
            "allow_transaction": settings.allow_transaction,
            "busy_timeout": settings.busy_timeout,
        }
        values.update(overrides)
        return cls(**values)


__all__ = [
    "DatabaseConfig",
    "DEFAULT_DB_NAME",
    "MEMORY",
]
