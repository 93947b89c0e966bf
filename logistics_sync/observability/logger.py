"""
Structured logging for logistics-sync

Module loggers (get_logger(__name__)) are children of the "logistics_sync"
package logger, which owns the only handler. Lines go to stdout as JSON
objects (python-json-logger), or as plain text with LOG_FORMAT=text.

Lines logged inside run_context() carry the run's fields (kind, mode), so the
output of concurrent runs can be told apart.
"""
import logging
import os
import sys
import threading
import time
from contextlib import contextmanager

from pythonjsonlogger import jsonlogger

PACKAGE_LOGGER = "logistics_sync"

_run_fields = threading.local()


def current_run_fields() -> dict:
    """Run fields active on the calling thread."""
    return dict(getattr(_run_fields, "fields", {}))


@contextmanager
def run_context(**fields):
    """
    Stamp every line logged by the calling thread with the given fields.

    Usage:
        with run_context(kind="stock", mode="full"):
            pipeline.run(kind)
    """
    previous = getattr(_run_fields, "fields", {})
    _run_fields.fields = {**previous, **fields}
    try:
        yield
    finally:
        _run_fields.fields = previous


class RunContextFilter(logging.Filter):
    """Copies the active run fields onto records; explicit extra fields win."""

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in current_run_fields().items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return True


class ImportJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter with timestamp, level and logger name on every line."""

    def add_fields(self, log_record: dict, record: logging.LogRecord, message_dict: dict) -> None:
        super().add_fields(log_record, record, message_dict)
        if not log_record.get("timestamp"):
            log_record["timestamp"] = self.formatTime(record, self.datefmt)
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        # Update workers and scheduler timers run off the main thread
        if record.threadName != "MainThread":
            log_record["thread"] = record.threadName


def setup_logger(level: str | None = None, format_type: str | None = None) -> logging.Logger:
    """
    Configure the package logger, replacing any previous configuration.

    Args:
        level: Log level name (defaults to env var LOG_LEVEL, then INFO)
        format_type: "json" or "text" (defaults to env var LOG_FORMAT, then json)

    Returns:
        The configured package logger
    """
    level_name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    log_level = logging.getLevelName(level_name)
    if not isinstance(log_level, int):
        log_level = logging.INFO
    format_type = (format_type or os.getenv("LOG_FORMAT", "json")).lower()

    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(log_level)
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(RunContextFilter())
    if format_type == "text":
        handler.setFormatter(logging.Formatter(
            fmt="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        ))
    else:
        handler.setFormatter(ImportJsonFormatter(
            fmt="%(timestamp)s %(level)s %(logger)s %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S",
        ))
    logger.addHandler(handler)

    # Keep import output off the root logger
    logger.propagate = False
    return logger


def get_logger(name: str = PACKAGE_LOGGER) -> logging.Logger:
    """
    Get a logger below the package logger, configuring it on first use.

    Args:
        name: Logger name, normally the module's __name__

    Returns:
        Logger instance
    """
    if not logging.getLogger(PACKAGE_LOGGER).handlers:
        setup_logger()
    return logging.getLogger(name)


class log_operation:
    """
    Context manager logging the start, end and duration of an operation

    Usage:
        with log_operation("Import stock", logger=logger, kind="stock"):
            pipeline.run(kind)
    """

    def __init__(self, operation_name: str, logger: logging.Logger, **extra_fields):
        """
        Initialize operation logger

        Args:
            operation_name: Name of the operation
            logger: Logger to write to
            **extra_fields: Additional fields to include in logs
        """
        self.operation_name = operation_name
        self.logger = logger
        self.extra_fields = extra_fields
        self.start_time = None

    def __enter__(self):
        self.start_time = time.monotonic()
        self.logger.info(
            f"Starting: {self.operation_name}",
            extra={"operation": self.operation_name, **self.extra_fields},
        )
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        extra = {
            "operation": self.operation_name,
            "duration_seconds": round(time.monotonic() - self.start_time, 3),
            **self.extra_fields,
        }
        if exc_type is None:
            self.logger.info(f"Completed: {self.operation_name}", extra={**extra, "status": "success"})
        else:
            # Traceback is logged by the caller
            self.logger.warning(
                f"Aborted: {self.operation_name} ({exc_type.__name__}: {exc_val})",
                extra={**extra, "status": "failed", "error_type": exc_type.__name__},
            )
        return False
