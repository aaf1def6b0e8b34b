"""
Structured logging for courier.

Every pipeline component emits named events (``http.request.start``,
``retry.attempt``, ``breaker.opened``, ...) with key/value fields. This
module configures structlog once per process and hands out loggers; the
components never choose or format the sink themselves.

Architecture:
    ::

        configure_logging(level="INFO", json_format=True, service="courier")
            ↓
        structlog processor chain:
          1. TimeStamper (iso)
          2. add_log_level
          3. add_service_metadata
          4. ecs_field_names (JSON only: url → url.full, status_code → http.response.status_code, ...)
          5. JSONRenderer (or ConsoleRenderer on a TTY)

        logger = get_logger(__name__)
        logger.info("http.request.completed", url=url, status_code=200)

Examples:
    >>> from courier.core.logging import configure_logging, get_logger
    >>> configure_logging(level="DEBUG", json_format=False)
    >>> logger = get_logger(__name__)
    >>> logger.debug("debugging", data={"foo": "bar"})

Tags:
    logging, structlog, observability, courier

Doc-Types:
    - API Reference
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

_SERVICE_NAME = "courier"


def _add_service_metadata(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Add service-level metadata to all logs."""
    event_dict.setdefault("service.name", _SERVICE_NAME)
    return event_dict


# Pipeline event keys and their ECS names (JSON output only)
_ECS_FIELDS = {
    "timestamp": "@timestamp",
    "level": "log.level",
    "url": "url.full",
    "method": "http.request.method",
    "status_code": "http.response.status_code",
    "elapsed_ms": "event.duration_ms",
    "error_type": "error.type",
}


def _ecs_field_names(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Rename pipeline keys to their ECS equivalents."""
    for key, ecs_key in _ECS_FIELDS.items():
        if key in event_dict:
            event_dict[ecs_key] = event_dict.pop(key)
    return event_dict


def configure_logging(
    level: str = "INFO",
    json_format: bool | None = None,
    service: str = "courier",
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

    if json_format is None:
        json_format = not sys.stdout.isatty()

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        _add_service_metadata,
    ]

    if add_timestamp:
        shared_processors.insert(0, structlog.processors.TimeStamper(fmt="iso"))

    if json_format:
        shared_processors.append(_ecs_field_names)
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=shared_processors + [renderer],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level.upper())
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper()),
    )


def configure_from_settings(settings: Any, *, level: str | None = None) -> None:
    """Apply ``log_level``/``log_format`` from :class:`~courier.core.settings.CourierSettings`."""
    configure_logging(
        level=level or settings.log_level,
        json_format=settings.log_format == "json",
    )


def get_logger(name: str | None = None) -> Any:
    """Get a structured logger (usually ``get_logger(__name__)``)."""
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Bind context to include in all subsequent logs.

    Example:
        bind_context(batch="status-poll", run_id="abc123")
        logger.info("scheduler.start")  # Includes batch and run_id
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
        async with LogContext(run_id="abc123"):
            await processor.run(10, 2)
    """

    def __init__(self, **kwargs: Any):
        self._context = kwargs

    def __enter__(self) -> LogContext:
        bind_context(**self._context)
        return self

    def __exit__(self, *args) -> None:
        unbind_context(*self._context.keys())

    async def __aenter__(self) -> LogContext:
        bind_context(**self._context)
        return self

    async def __aexit__(self, *args) -> None:
        unbind_context(*self._context.keys())


__all__ = [
    "configure_logging",
    "configure_from_settings",
    "get_logger",
    "bind_context",
    "unbind_context",
    "clear_context",
    "LogContext",
]
