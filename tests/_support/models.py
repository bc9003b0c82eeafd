"""Entity models used across the test suite."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from tablespine import column, entity, transient


class Kind(enum.Enum):
    CREATED = "created"
    DELETED = "deleted"


class Priority(enum.IntEnum):
    LOW = 1
    HIGH = 2


@entity
@dataclass
class Item:
    id: int | None = None
    name: str = ""
    qty: int = 0
    price: float | None = None


@entity(table="tags")
@dataclass
class Tag:
    id: int | None = None
    label: str = column("", unique=True, nullable=False)


@entity
@dataclass
class Account:
    code: str = column("", primary_key=True)
    balance: Decimal = Decimal("0")
    owner: str | None = column(None, name="owner_name")


@entity
@dataclass
class Ticket:
    id: str | None = column(None, auto_increment=True)
    title: str = ""


@entity
@dataclass
class AuditEvent:
    id: int | None = None
    kind: Kind = Kind.CREATED
    priority: Priority = Priority.LOW
    happened_at: datetime | None = None
    active: bool = True
    payload: bytes | None = None
    scratch: list = transient(default_factory=list)
