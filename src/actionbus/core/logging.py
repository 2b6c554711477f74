"""
Structured logging for the action bus.

Manifesto:
    A run fans out across dependencies, subscribers and compensations. Each
    event the engine emits must be correlatable to its run, so every log
    line is structured (key/value) and carries the bound ``run_id``.

Architecture:
    ::

        configure_logging(level="INFO", json_format=True, service="billing")

            ↓
        structlog processor chain:
          1. TimeStamper (iso)
          2. merge_contextvars      ← run_id, start_action bound per run
          3. add_log_level
          4. add_service_metadata
          5. add_logger_name       ← name passed to get_logger()
          6. JSONRenderer (or ConsoleRenderer for dev)

        logger = get_logger(__name__)
        logger.info("task.complete", action="billing.charge", status="SUCCESS")

Examples:
    >>> from actionbus.core.logging import configure_logging, get_logger
    >>> configure_logging(level="DEBUG", json_format=False)
    >>> logger = get_logger(__name__)
    >>> logger.debug("task.start", action="orders.create")

Tags:
    logging, structlog, observability, actionbus
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from actionbus.core.settings import BusSettings

# Store service name for metadata
_SERVICE_NAME = "actionbus"

# Track if logging has been configured
_configured = False

# Initial-value key carrying the name given to get_logger()
_NAME_KEY = "logger_name"


def _add_service_metadata(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Add service-level metadata to all logs."""
    event_dict.setdefault("service.name", _SERVICE_NAME)
    return event_dict


def _add_logger_name(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Expose the name given to :func:`get_logger` as ``logger``."""
    name = event_dict.pop(_NAME_KEY, None)
    if name is not None:
        event_dict["logger"] = name
    return event_dict


def configure_logging(
    level: str = "INFO",
    json_format: bool | None = None,
    service: str = "actionbus",
    add_timestamp: bool = True,
) -> None:
    """Configure structured logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_format: True for JSON, False for console, None for auto (JSON if not tty)
        service: Service name to include in logs
        add_timestamp: Include ISO timestamp in logs
    """
    global _SERVICE_NAME, _configured
    _SERVICE_NAME = service
    _configured = True

    if json_format is None:
        json_format = not sys.stdout.isatty()

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        _add_service_metadata,
        _add_logger_name,
    ]

    if add_timestamp:
        shared_processors.insert(0, structlog.processors.TimeStamper(fmt="iso"))

    if json_format:
        shared_processors.append(structlog.processors.format_exc_info)
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    structlog.configure(
        processors=shared_processors + [renderer],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level.upper())
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )


def configure_from_settings(settings: BusSettings, force: bool = False) -> None:
    """Apply the logging fields of ``settings``.

    A no-op once logging has been configured, unless ``force=True``; an
    application's own :func:`configure_logging` call therefore wins over
    the settings every :class:`~actionbus.orchestration.bus.Bus` applies.
    """
    if _configured and not force:
        return
    configure_logging(
        level=settings.log_level,
        json_format=settings.log_format == "json",
        service=settings.service_name,
    )


def reset_logging() -> None:
    """Restore structlog defaults and forget the configuration (for testing)."""
    global _SERVICE_NAME, _configured
    structlog.reset_defaults()
    _SERVICE_NAME = "actionbus"
    _configured = False


def get_logger(name: str | None = None) -> Any:
    """Get a structured logger (usually ``get_logger(__name__)``).

    The name travels as a lazy initial value and is rendered as the
    ``logger`` key, so the proxy follows later calls to
    :func:`configure_logging`.
    """
    if name is None:
        return structlog.get_logger()
    return structlog.get_logger(name, **{_NAME_KEY: name})


def bind_context(**kwargs: Any) -> None:
    """Bind context to include in all subsequent logs.

    Example:
        bind_context(run_id="abc123")
        logger.info("task.start")  # Includes run_id
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    """Remove specific keys from logging context."""
    structlog.contextvars.unbind_contextvars(*keys)


def clear_context() -> None:
    """Clear all bound context."""
    structlog.contextvars.clear_contextvars()


class LogContext:
    """Context manager for scoped logging context.

    Example:
        with LogContext(run_id="abc123", start_action="orders.create"):
            logger.info("run.start")
        # Previous values (or none) restored here
    """

    def __init__(self, **kwargs: Any):
        self._context = kwargs
        self._tokens: dict[str, Any] = {}

    def __enter__(self) -> LogContext:
        self._tokens = dict(structlog.contextvars.bind_contextvars(**self._context))
        return self

    def __exit__(self, *args) -> None:
        structlog.contextvars.reset_contextvars(**self._tokens)
        self._tokens = {}


__all__ = [
    "configure_logging",
    "configure_from_settings",
    "reset_logging",
    "get_logger",
    "bind_context",
    "unbind_context",
    "clear_context",
    "LogContext",
]
