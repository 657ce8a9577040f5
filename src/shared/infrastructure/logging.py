"""
Structured Logging
==================

JSON logs for the work-order lifecycle and the SLA sweep.

Every line carries the service and environment; lines about one work order
also carry its ``work_order_id`` so a log aggregator can rebuild the
timeline of a single ticket across user actions and sweeps.

Usage:
    from src.shared.infrastructure.logging import get_logger

    logger = get_logger(__name__)
    logger.info("SLA paused", extra={"work_order_id": "WO-2025-0001"})
"""

import logging
import sys
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional, TextIO

from pythonjsonlogger import jsonlogger

DEFAULT_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """
    JSON formatter stamping service-wide fields.

    Adds a UTC ``timestamp``, ``environment`` and ``service``; enum values
    passed through ``extra`` are written as their plain values.
    """

    def __init__(self, *args, environment: str = "unknown", service: str = "workorder-sla", **kwargs):
        super().__init__(*args, **kwargs)
        self._environment = environment
        self._service = service

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record.setdefault(
            "timestamp",
            datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat()
        )
        log_record["environment"] = self._environment
        log_record["service"] = self._service

        for key, value in log_record.items():
            if isinstance(value, Enum):
                log_record[key] = value.value


def setup_logging(
    level: str = "INFO",
    environment: str = "development",
    service: str = "workorder-sla",
    stream: Optional[TextIO] = None,
) -> None:
    """
    Route the root logger to a single JSON handler.

    Args:
        level: DEBUG, INFO, WARNING or ERROR
        environment: Deployment environment stamped on every line
        service: Service name stamped on every line
        stream: Output stream, stdout by default
    """
    numeric_level = logging.getLevelName(level.upper())

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(CustomJsonFormatter(
        DEFAULT_FORMAT,
        datefmt="%Y-%m-%dT%H:%M:%S",
        environment=environment,
        service=service,
    ))

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(numeric_level)

    # APScheduler logs every job run at INFO
    logging.getLogger("apscheduler").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Module logger; call with ``__name__``."""
    return logging.getLogger(name)


class _ContextAdapter(logging.LoggerAdapter):
    """Adapter that keeps per-call ``extra`` alongside the bound context."""

    def process(self, msg, kwargs):
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs


def get_context_logger(name: str, work_order_id: Optional[str] = None):
    """
    Logger bound to one work order.

    Returns the plain module logger when no id is given.
    """
    logger = get_logger(name)
    if work_order_id:
        return _ContextAdapter(logger, {"work_order_id": work_order_id})
    return logger


@contextmanager
def log_latency(logger: logging.Logger, operation: str, **context: Any):
    """
    Log how long the wrapped block took.

    Usage:
        with log_latency(logger, "sla_sweep", work_orders=42):
            await monitor.sweep()

    The line is written even when the block raises; ``succeeded`` tells
    the two cases apart.
    """
    started = time.perf_counter()
    succeeded = False
    try:
        yield
        succeeded = True
    finally:
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(
            "Operation timed",
            extra={
                "operation": operation,
                "latency_ms": round(elapsed_ms, 2),
                "succeeded": succeeded,
                **context,
            },
        )
