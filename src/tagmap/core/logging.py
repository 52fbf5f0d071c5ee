"""
Structured logging for tagmap.

Statement builders are silent; only :class:`~tagmap.core.engine.TableEngine`
logs.  Events carry the statement kind, the table and the argument count,
never the bound values.  Failed statements also carry their SQL text,
shortened by :func:`_shorten_sql` so a large IN-list or INSERT does not
flood the log.

Processor chain:
    ::

        TimeStamper(iso)            (optional)
        merge_contextvars           log_context(...) / bind_context(...)
        add_log_level
        _add_library_metadata       service.name, library.version
        _shorten_sql
        _ecs_fields                 JSON only: @timestamp, log.level
        JSONRenderer | ConsoleRenderer

Examples:
    >>> from tagmap.core.logging import configure_logging, get_logger
    >>> configure_logging(level="DEBUG", json_format=False)
    >>> with log_context(request_id="abc"):
    ...     get_logger(__name__).debug("statement_executed", table="users", kind="insert")

Tags:
    logging, structlog, observability, tagmap

Doc-Types:
    - API Reference
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

SQL_PREVIEW_LENGTH = 240

_SERVICE_NAME = "tagmap"


def _add_library_metadata(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    from tagmap import __version__

    event_dict.setdefault("service.name", _SERVICE_NAME)
    event_dict.setdefault("library.version", __version__)
    return event_dict


def _shorten_sql(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Cut the ``sql`` field to :data:`SQL_PREVIEW_LENGTH` characters."""
    sql = event_dict.get("sql")
    if isinstance(sql, str) and len(sql) > SQL_PREVIEW_LENGTH:
        event_dict["sql"] = sql[:SQL_PREVIEW_LENGTH] + "..."
    return event_dict


def _ecs_fields(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    if "timestamp" in event_dict:
        event_dict["@timestamp"] = event_dict.pop("timestamp")
    if "level" in event_dict:
        event_dict["log.level"] = event_dict.pop("level")
    return event_dict


def configure_logging(
    level: str | None = None,
    json_format: bool | None = None,
    *,
    service: str = "tagmap",
    add_timestamp: bool = True,
) -> None:
    """Configure structlog for the process.

    Args:
        level: Minimum level name; ``None`` reads ``TAGMAP_LOG_LEVEL``.
        json_format: ``None`` reads ``TAGMAP_LOG_FORMAT`` (``json`` or
            ``console``); when that is unset, JSON is used off a tty.
        service: Value of the ``service.name`` field.
        add_timestamp: Include an ISO timestamp.
    """
    global _SERVICE_NAME
    _SERVICE_NAME = service

    if level is None or json_format is None:
        from tagmap.core.settings import get_settings

        settings = get_settings()
        level = level or settings.log_level
        if json_format is None:
            fmt = settings.log_format.lower()
            json_format = fmt == "json" if fmt in ("json", "console") else not sys.stdout.isatty()

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        _add_library_metadata,
        _shorten_sql,
    ]
    if add_timestamp:
        processors.insert(0, structlog.processors.TimeStamper(fmt="iso"))

    if json_format:
        processors += [_ecs_fields, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(level.upper())
        ),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> Any:
    """Get a structured logger (usually ``get_logger(__name__)``)."""
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Bind fields to every later event in this context (thread or task)."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()


def log_context(**kwargs: Any) -> Any:
    """Scoped :func:`bind_context`; restores the previous values on exit.

    Example:
        with log_context(table="users", request_id="abc123"):
            engine.insert(user)
    """
    return structlog.contextvars.bound_contextvars(**kwargs)


__all__ = [
    "SQL_PREVIEW_LENGTH",
    "configure_logging",
    "get_logger",
    "bind_context",
    "clear_context",
    "log_context",
]
