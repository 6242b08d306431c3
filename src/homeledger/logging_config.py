"""Structured logging for the home ledger service, built on structlog.

Events are named ``<entity>.<action>`` (``work_record.verified``,
``invitation.expired``, ``connection.created``) and carry entity ids as
strings. Every entry is stamped with the service name and environment, and
entries emitted while serving a request also carry the request id and the
calling user's id, bound by RequestIDMiddleware through bind_request_context.

Deployed environments render JSON; development renders colored console lines.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog

SERVICE_NAME = "homeledger"

# Loggers that drown out lifecycle events at DEBUG.
_QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "aiosqlite", "asyncio")


def service_context(environment: str) -> structlog.types.Processor:
    """Processor stamping each event with the service name and environment."""

    def _stamp(
        _logger: Any, _method: str, event_dict: structlog.types.EventDict
    ) -> structlog.types.EventDict:
        event_dict.setdefault("service", SERVICE_NAME)
        event_dict.setdefault("env", environment)
        return event_dict

    return _stamp


def setup_logging(
    log_level: str = "DEBUG",
    json_logs: bool = False,
    environment: str = "development",
    echo_sql: bool = False,
) -> None:
    """Route structlog and stdlib logging through one stdout handler.

    Args:
        log_level: Root level name; unknown names fall back to DEBUG.
        json_logs: JSON lines instead of the colored console renderer.
        environment: Value of the ``env`` field on every event.
        echo_sql: Keep SQLAlchemy's engine logger at the root level.
    """
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        service_context(environment),
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    renderer: structlog.types.Processor = (
        structlog.processors.JSONRenderer()
        if json_logs
        else structlog.dev.ConsoleRenderer(colors=True)
    )

    structlog.configure(
        processors=[*shared_processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared_processors,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.DEBUG))

    for name in _QUIET_LOGGERS:
        if echo_sql and name == "sqlalchemy.engine":
            continue
        logging.getLogger(name).setLevel(logging.WARNING)


def bind_request_context(request_id: str, user_id: str | None = None) -> None:
    """Start a fresh logging context for one request."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=request_id)
    if user_id:
        structlog.contextvars.bind_contextvars(user_id=user_id)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger; pass ``__name__`` from the calling module."""
    return structlog.get_logger(name)
