"""
Structured logging for entity-repo.

Configures structlog for hosts that have no logging setup of their own and
hands out the loggers the library logs through.

Architecture:
    ::

        configure_logging(level="INFO", json_format=None, service="entityrepo")
            │
            ▼
        structlog processor chain:
          1. merge_contextvars
          2. TimeStamper (iso)
          3. add_log_level / add_logger_name
          4. add_service_metadata
          5. JSONRenderer (not a TTY) or ConsoleRenderer

        logger = get_logger(__name__)
        logger.info("event_happened", key="value")

Repository log records:
    :class:`~entityrepo.repository.EntityRepository` emits
    ``logger.log(level, "%s(%s) result=%s", method, arg, result)``, which
    structlog's filtering loggers and ``logging.Logger`` both accept. Pass
    ``get_logger("entityrepo.repository")`` as the repository's logger to
    route those records through the chain above.

Examples:
    >>> from entityrepo.logging import configure_logging, get_logger
    >>> configure_logging(level="DEBUG", service="inventory")
    >>> repo = EntityRepository(session, logger=get_logger("inventory.repo"))

Tags:
    logging, structlog, observability
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger


_SERVICE_NAME = "entityrepo"


def _add_service_metadata(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Add service-level metadata to all logs."""
    event_dict.setdefault("service", _SERVICE_NAME)
    return event_dict


def configure_logging(
    level: str = "INFO",
    json_format: bool | None = None,
    service: str = "entityrepo",
    add_timestamp: bool = True,
) -> None:
    """Configure structured logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_format: True for JSON, False for console, None for auto (JSON if not tty)
        service: Service name to include in logs
        add_timestamp: Include ISO timestamp in logs
    """
    global _SERVICE_NAME
    _SERVICE_NAME = service

    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"unknown log level: {level!r}")

    if json_format is None:
        json_format = not sys.stdout.isatty()

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        _add_service_metadata,
    ]

    if add_timestamp:
        processors.insert(0, structlog.processors.TimeStamper(fmt="iso"))

    if json_format:
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=numeric_level,
    )


def get_logger(name: str | None = None) -> Any:
    """Get a structured logger.

    Args:
        name: Logger name (usually __name__)

    Returns:
        structlog BoundLogger
    """
    return structlog.get_logger(name)


__all__ = [
    "configure_logging",
    "get_logger",
]
