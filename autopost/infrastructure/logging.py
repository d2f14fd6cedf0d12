"""
Logging configuration for the publish worker.

Structured JSON output through structlog, with:
- service name on every event
- correlation ID carried from the stream event that triggered a job
- timing helper for publish attempts
- token masking for log-safe output
"""

import logging
import sys
import time
from contextvars import ContextVar

import structlog

# Correlation ID of the event currently being processed
correlation_id: ContextVar[str] = ContextVar("correlation_id", default="")


def configure_logging(service_name: str, level: str = "INFO") -> None:
    """
    Configure structured logging for the worker.

    Args:
        service_name: Name of the service for log context
        level: Root log level name (INFO, DEBUG, ...)
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper(), logging.INFO),
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            _add_service_name(service_name),
            _add_correlation_id,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
    )


def _add_service_name(service_name: str):
    def processor(logger, method_name, event_dict):
        event_dict["service"] = service_name
        return event_dict

    return processor


def _add_correlation_id(logger, method_name, event_dict):
    cid = correlation_id.get()
    if cid and "correlation_id" not in event_dict:
        event_dict["correlation_id"] = cid
    return event_dict


def set_correlation_id(cid: str) -> None:
    """Set correlation ID for the current context (from the stream event)."""
    correlation_id.set(cid)


class Timer:
    """
    Context manager measuring wall time of a block.

    Usage:
        with Timer() as t:
            result = await dispatcher.publish(request)
        logger.info("Publish attempt finished", duration_ms=t.duration_ms)
    """

    def __init__(self):
        self._start: float = 0
        self._end: float | None = None

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        self._end = None
        return self

    def __exit__(self, *args) -> None:
        self._end = time.perf_counter()

    @property
    def duration_ms(self) -> int:
        """Elapsed milliseconds; reads the running time while still inside the block."""
        end = self._end if self._end is not None else time.perf_counter()
        return int((end - self._start) * 1000)


def sanitize_for_logging(value: str | None, visible_chars: int = 6) -> str:
    """Mask an access token or other secret, keeping a short prefix."""
    if not value:
        return ""
    if len(value) <= visible_chars:
        return "*" * len(value)
    return value[:visible_chars] + "..."
