"""
Structured logging for e2ekit.

Every engine event (hook start, hook failure, feature skipped, step start)
goes through structlog as an event name plus key/value fields. During
development the records render on the console; in CI they come out as one
JSON object per line with ECS field names.

Usage Flow:
    ::

        configure_logging(level="DEBUG")
        logger = get_logger(__name__)
        logger.info("env.feature.start", feature="pods", steps=3)

        Output (JSON format):
        {
          "@timestamp": "2026-01-02T10:00:00Z",
          "log.level": "info",
          "service.name": "e2ekit",
          "logger": "e2ekit.env.environment",
          "event": "env.feature.start",
          "feature": "pods",
          "steps": 3
        }

Engine modules call :func:`get_logger` at import time. Until a suite (or
its conftest) calls :func:`configure_logging`, structlog keeps its console
output but drops records below INFO, so per-hook debug events stay quiet.
A structlog configuration the host process made first is left alone.

Tags:
    logging, structlog, observability, e2ekit

Doc-Types:
    - API Reference
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

_ECS_RENAMES = {"timestamp": "@timestamp", "level": "log.level"}


def _ecs_field_names(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Rename structlog's timestamp/level keys to their ECS names."""
    for key, ecs_key in _ECS_RENAMES.items():
        if key in event_dict:
            event_dict[ecs_key] = event_dict.pop(key)
    return event_dict


def _service_stamp(service: str) -> Processor:
    def stamp(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("service.name", service)
        return event_dict

    return stamp


def _processor_chain(service: str, json_format: bool, add_timestamp: bool) -> list[Processor]:
    chain: list[Processor] = []
    if add_timestamp:
        chain.append(structlog.processors.TimeStamper(fmt="iso", utc=True))
    chain += [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        _service_stamp(service),
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
    ]
    if json_format:
        chain += [
            structlog.processors.format_exc_info,
            _ecs_field_names,
            structlog.processors.JSONRenderer(),
        ]
    else:
        chain.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))
    return chain


def configure_logging(
    level: str | int = "INFO",
    json_format: bool | None = None,
    service: str = "e2ekit",
    add_timestamp: bool = True,
) -> None:
    """Configure structured logging for the test process.

    Args:
        level: Level name or number; records below it are dropped before
            any processor runs
        json_format: True for JSON lines, False for console, None to pick
            JSON when stdout is not a terminal
        service: Value of ``service.name`` on every record
        add_timestamp: Include an ISO-8601 UTC timestamp
    """
    numeric = logging.getLevelName(level.upper()) if isinstance(level, str) else level
    if not isinstance(numeric, int):
        raise ValueError(f"Unknown log level: {level!r}")
    if json_format is None:
        json_format = not sys.stdout.isatty()

    structlog.configure(
        processors=_processor_chain(service, json_format, add_timestamp),
        wrapper_class=structlog.make_filtering_bound_logger(numeric),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    # Rendered records are plain strings; stdlib only has to print them.
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=numeric)


def ensure_default_logging(level: int = logging.INFO) -> None:
    """Drop records below *level* when structlog has not been configured.

    No-op once anything (including :func:`configure_logging`) configured
    structlog.
    """
    if structlog.is_configured():
        return
    structlog.configure(wrapper_class=structlog.make_filtering_bound_logger(level))


def get_logger(name: str | None = None) -> Any:
    """Return a structlog logger, normally ``get_logger(__name__)``."""
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Bind fields onto every following record of this thread/task."""
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    structlog.contextvars.unbind_contextvars(*keys)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()


class LogContext:
    """Bind fields for the duration of a ``with`` block.

    Values bound by an enclosing block are restored on exit, so nested
    feature/step scopes do not erase each other.

    Example:
        with LogContext(feature="pods", run_id=ctx.run_id):
            logger.info("env.feature.start")
    """

    def __init__(self, **fields: Any):
        self._fields = fields
        self._scope: Any = None

    def __enter__(self) -> LogContext:
        self._scope = structlog.contextvars.bound_contextvars(**self._fields)
        self._scope.__enter__()
        return self

    def __exit__(self, *exc_info: Any) -> None:
        scope, self._scope = self._scope, None
        scope.__exit__(*exc_info)


ensure_default_logging()


__all__ = [
    "LogContext",
    "bind_context",
    "clear_context",
    "configure_logging",
    "ensure_default_logging",
    "get_logger",
    "unbind_context",
]
