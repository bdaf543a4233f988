"""Structured JSON logging for the call metrics service, built on :mod:`structlog`."""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from structlog.contextvars import merge_contextvars

SERVICE_NAME = "call-metrics-server"

# Request fields are always present so log lines share one shape.
_REQUEST_FIELDS: tuple[str, ...] = (
    "request_id",
    "path",
    "method",
    "query",
    "status_code",
    "duration_ms",
)

_configured_level: int | None = None


def _level_number(level: str | int) -> int:
    if isinstance(level, int):
        return level
    value = logging.getLevelName(level.strip().upper())
    if not isinstance(value, int):
        raise ValueError(f"Invalid log level: {level!r}")
    return value


def _stamp_service(_: Any, __: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    event_dict.setdefault("service", SERVICE_NAME)
    for name in _REQUEST_FIELDS:
        event_dict.setdefault(name, None)
    return event_dict


def configure_logging(level: str | int | None = None) -> None:
    """Configure structlog to emit one JSON object per line on stdout.

    Calling it again with a different level reconfigures the pipeline; calling
    it without a level after the first configuration is a no-op.
    """

    global _configured_level
    if level is None:
        if _configured_level is not None:
            return
        from .settings import get_settings

        level = get_settings().log_level

    level_value = _level_number(level)
    if level_value == _configured_level:
        return

    logging.basicConfig(format="%(message)s", level=level_value, stream=sys.stdout, force=True)
    structlog.configure(
        cache_logger_on_first_use=False,
        wrapper_class=structlog.make_filtering_bound_logger(level_value),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        processors=[
            merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", key="timestamp"),
            structlog.processors.EventRenamer("message"),
            _stamp_service,
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ],
    )
    _configured_level = level_value


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a lazily configured structured logger bound to ``name``."""

    return structlog.get_logger(name)


request_logger = get_logger("call_metrics.request")

__all__ = [
    "SERVICE_NAME",
    "configure_logging",
    "get_logger",
    "request_logger",
]
