"""Structured logging configuration.

Pipeline failures are logged, not raised, so the log stream is the record of
dropped messages. Every event carries the service name, version and
environment, and consumer tasks bind a ``message_id`` through contextvars.
"""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from collections.abc import MutableMapping

    from structlog.types import Processor

    from congestion_recorder.config import Settings

# Third-party loggers kept at WARNING unless debug is on
_CHATTY_LOGGERS = ("uvicorn.access", "httpx", "httpcore", "paho", "asyncio")


class ServiceInfoAdder:
    """Processor that stamps service metadata onto every event."""

    def __init__(self, service: str, version: str, environment: str) -> None:
        self._fields = {"service": service, "version": version, "environment": environment}

    def __call__(
        self, logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
    ) -> MutableMapping[str, Any]:
        for key, value in self._fields.items():
            event_dict.setdefault(key, value)
        return event_dict


def setup_logging(settings: Settings) -> None:
    """Configure structured logging for the recorder."""
    # Configure processors based on environment
    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if settings.environment == "development":
        # Pretty printing for development
        renderer: Processor = structlog.dev.ConsoleRenderer(colors=True)
    else:
        # JSON output for log shipping
        shared_processors.append(
            ServiceInfoAdder(settings.app_name, settings.app_version, settings.environment)
        )
        shared_processors.append(structlog.processors.format_exc_info)
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # Configure standard library logging; paho and uvicorn log through it
    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(settings.log_level.upper())

    # Silence noisy loggers
    quiet_level = logging.DEBUG if settings.debug else logging.WARNING
    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(quiet_level)
    logging.getLogger("sqlalchemy.engine").setLevel(quiet_level)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.stdlib.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Bind context variables for the current task."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Clear context variables bound by bind_context."""
    structlog.contextvars.clear_contextvars()
