"""
Structured Logging
==================

JSON log lines for the health & escalation service.

Every line carries the service name, environment and, inside a request,
the correlation ID. Heartbeat and escalation code logs through plain
module loggers:

    from src.shared.infrastructure.logging import get_logger

    logger = get_logger(__name__)
    logger.info("Heartbeat recorded", extra={"overall": "ok"})
"""

import logging
import sys
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Iterator

from pythonjsonlogger import jsonlogger

_SENSITIVE_MARKERS = ("password", "api_key", "token")

# Third-party loggers that are chatty at INFO
_QUIET_LOGGERS = ("uvicorn.access", "apscheduler", "watchdog")

_context: Dict[str, str] = {"service": "health-escalation-service", "environment": "unknown"}


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter adding timestamp, service context and correlation ID."""

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record.setdefault("timestamp", datetime.now(timezone.utc).isoformat())
        for key, value in _context.items():
            log_record.setdefault(key, value)

        correlation_id = getattr(record, "correlation_id", None) or message_dict.get("correlation_id")
        if correlation_id:
            log_record["correlation_id"] = correlation_id

        for key, value in list(log_record.items()):
            if isinstance(value, str) and any(m in key.lower() for m in _SENSITIVE_MARKERS):
                log_record[key] = "***REDACTED***"


def setup_logging(
    level: str = "INFO",
    environment: str = "development",
    service: str = "health-escalation-service",
) -> None:
    """
    Route all logging through one stdout JSON handler.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)
        environment: Environment name stamped on every line
        service: Service name stamped on every line
    """
    _context["environment"] = environment
    _context["service"] = service
    numeric_level = getattr(logging, level.upper())

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(numeric_level)
    handler.setFormatter(
        CustomJsonFormatter(
            fmt="%(asctime)s %(name)s %(levelname)s %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S",
        )
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Module logger; pass ``__name__``."""
    return logging.getLogger(name)


def get_context_logger(name: str, correlation_id: str | None = None) -> logging.Logger:
    """
    Logger that stamps ``correlation_id`` on every record.

    Falls back to the plain module logger outside a request.
    """
    logger = get_logger(name)
    if correlation_id:
        logger = logging.LoggerAdapter(logger, {"correlation_id": correlation_id})
    return logger


@contextmanager
def log_latency(logger: logging.Logger, operation: str, **extra_context: Any) -> Iterator[Dict[str, Any]]:
    """
    Time a block and log ``"<operation> completed"`` with ``latency_ms``.

    Yields the context dict so the block can attach results to the line:

        with log_latency(logger, "escalation_sweep", cases=len(records)) as context:
            tiers = QuietWindowEscalator.classify_all(records, ...)
            context["alert_count"] = ...
    """
    start = time.perf_counter()
    try:
        yield extra_context
    finally:
        logger.info(
            f"{operation} completed",
            extra={
                "operation": operation,
                "latency_ms": round((time.perf_counter() - start) * 1000, 2),
                **extra_context,
            },
        )
