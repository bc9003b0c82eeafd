"""
Structured logging for tablespine.

Manifesto:
    The orchestrator emits a small, fixed vocabulary of events (registry
    lifecycle, schema creation, swallowed drop failures, and the optional
    SQL trace) that should be equally readable on a developer console and
    in a JSON log pipeline.  structlog gives us both from one processor
    chain.

Architecture:
    ::

        configure_logging(level="DEBUG", json_format=False, service="app")
              │
              ▼
        processors:  merge_contextvars → add_log_level → add_logger_name
                     → TimeStamper → set_exc_info → service metadata
                     → JSONRenderer | ConsoleRenderer

        logger = get_logger(__name__)
        logger.debug("sql.exec", database="app.db", sql="SELECT ...", args=[])

Event vocabulary:
    - ``store.opened`` / ``store.upgrade`` / ``store.upgrade_drop_failed``
    - ``store.insert_failed`` / ``store.commit_failed``
    - ``registry.created`` / ``registry.reconfigured`` / ``registry.cleared``
    - ``schema.table_created`` / ``schema.dropped`` / ``schema.drop_failed``
    - ``sql.exec`` (debug mode only)

Tags:
    logging, structlog, observability, tablespine
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

# Store service name for metadata
_SERVICE_NAME = "tablespine"


def _add_service_metadata(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Add service-level metadata to all logs."""
    event_dict.setdefault("service.name", _SERVICE_NAME)
    return event_dict


def _elasticsearch_compatible(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Make field names Elasticsearch/ECS compatible."""
    if "timestamp" in event_dict:
        event_dict["@timestamp"] = event_dict.pop("timestamp")

    if "level" in event_dict:
        event_dict["log.level"] = event_dict.pop("level")

    return event_dict


def configure_logging(
    level: str = "INFO",
    json_format: bool | None = None,
    service: str = "tablespine",
    add_timestamp: bool = True,
) -> None:
    """Configure structured logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR).  The SQL trace of a
            database configured with ``debug=True`` is emitted at DEBUG.
        json_format: True for JSON, False for console, None for auto (JSON if not tty)
        service: Service name to include in logs
        add_timestamp: Include ISO timestamp in logs
    """
    global _SERVICE_NAME
    _SERVICE_NAME = service

    if json_format is None:
        json_format = not sys.stdout.isatty()

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        _add_service_metadata,
    ]

    if add_timestamp:
        shared_processors.insert(0, structlog.processors.TimeStamper(fmt="iso"))

    if json_format:
        shared_processors.append(_elasticsearch_compatible)
        shared_processors.append(structlog.processors.format_exc_info)
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=shared_processors + [renderer],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level.upper())
        ),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, level.upper()),
    )


def get_logger(name: str | None = None) -> Any:
    """Get a structured logger (usually ``get_logger(__name__)``)."""
    return structlog.get_logger(name)


__all__ = [
    "configure_logging",
    "get_logger",
]
