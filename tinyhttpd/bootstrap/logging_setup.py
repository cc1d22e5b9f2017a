"""Logging configuration utilities for the server.

Every handler installed here serializes on ``OUTPUT_LOCK`` so records coming
from concurrent workers never interleave, and so the operator prompt can keep
the terminal to itself while it waits for an answer.
"""

import json
import logging
import sys
import threading
import time
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from tinyhttpd.domain.correlation_id import CorrelationLoggerAdapter, ROOT_LOGGER_NAME

LOGGER_NAME = ROOT_LOGGER_NAME
LOG_FORMAT = "%(asctime)s %(levelname)s [%(correlation_id)s] %(name)s :: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
CONSOLE_DATE_FORMAT = "%a %b %d %H:%M:%S %Y"
MAX_BYTES = 10 * 1024 * 1024
BACKUP_COUNT = 5

OUTPUT_LOCK = threading.RLock()

# (badge colors, label, frame colors, text colors)
LEVEL_BADGES = {
    logging.CRITICAL: ("1;31;101", "  FAILED", "0;1;31", "91"),
    logging.ERROR: ("1;31;101", "   ERROR", "0;1;31", "91"),
    logging.WARNING: ("1;33;103", " WARNING", "0;1;33", "93"),
    logging.INFO: ("1;36;106", "    INFO", "0;1;36", "96"),
    logging.DEBUG: ("1;37;100", "   DEBUG", "0;1;37", "97"),
}
QUESTION_BADGE = ("1;35;105", "QUESTION", "0;1;35", "95")


def render_badge(badge: tuple[str, str, str, str], timestamp: str, message: str) -> str:
    """Render one colored console line (without trailing newline)."""
    badge_colors, label, frame_colors, text_colors = badge
    return (
        f"\33[{badge_colors}m{label}\33[{frame_colors}m [{timestamp}] "
        f"\33[{text_colors}m  {message}\33[0m"
    )


def console_timestamp(created: Optional[float] = None) -> str:
    """Format a timestamp like ``Thu Mar 14 15:09:26 2024``."""
    moment = time.localtime(created if created is not None else time.time())
    return time.strftime(CONSOLE_DATE_FORMAT, moment)


class CorrelationIdFilter(logging.Filter):  # pylint: disable=too-few-public-methods
    """Ensure correlation_id field exists in log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "correlation_id"):
            record.correlation_id = "-"
        return True


class ConsoleFormatter(logging.Formatter):
    """Colored, timestamped rendering with a badge per severity."""

    def format(self, record: logging.LogRecord) -> str:
        badge = LEVEL_BADGES.get(record.levelno, LEVEL_BADGES[logging.INFO])
        message = record.getMessage()
        correlation_id = getattr(record, "correlation_id", "-")
        if correlation_id != "-":
            message = f"[{correlation_id}] {message}"
        line = render_badge(badge, console_timestamp(record.created), message)
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


class JsonFormatter(logging.Formatter):
    """JSON formatter with stable key ordering for structured logging."""

    extra_keys = [
        "client",
        "connection_id",
        "worker",
        "slot",
        "method",
        "target",
        "version",
        "header_count",
        "request_host",
        "bytes_in",
        "bytes_out",
        "error_type",
        "errno",
        "host",
        "port",
        "backlog",
        "pool_capacity",
        "active_workers",
        "remaining_workers",
        "socket_timeout",
        "shutdown_grace_seconds",
        "log_destination",
        "log_level",
        "signal",
        "answer",
        "exit_status",
    ]

    def __init__(self, datefmt: Optional[str] = None):
        """Initialize JSON formatter with optional date format."""
        super().__init__(datefmt=datefmt)

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "correlation_id": getattr(record, "correlation_id", "-"),
            "component": getattr(record, "component", "unknown"),
            "message": record.getMessage(),
        }

        if hasattr(record, "event"):
            log_data["event"] = record.event

        for key in self.extra_keys:
            if hasattr(record, key):
                log_data[key] = getattr(record, key)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, sort_keys=True)


class _SharedLockMixin:  # pylint: disable=too-few-public-methods
    """Make a handler serialize on the process-wide output lock."""

    def createLock(self) -> None:  # pylint: disable=invalid-name
        self.lock = OUTPUT_LOCK


class SynchronizedStreamHandler(_SharedLockMixin, logging.StreamHandler):
    """Stream handler sharing ``OUTPUT_LOCK``."""


class SynchronizedRotatingFileHandler(_SharedLockMixin, RotatingFileHandler):
    """Rotating file handler sharing ``OUTPUT_LOCK``."""


def _resolve_level(level_name: str) -> int:
    """Translate text level names into logging module numeric levels."""
    level = getattr(logging, level_name.upper(), None)
    if isinstance(level, int):
        return level
    return logging.INFO


def _build_formatter(log_format: str) -> logging.Formatter:
    if log_format == "json":
        return JsonFormatter(datefmt=DATE_FORMAT)
    if log_format == "text":
        return logging.Formatter(LOG_FORMAT, DATE_FORMAT)
    return ConsoleFormatter()


def _build_handler(
    destination: Optional[str], level: int, log_format: str = "console"
) -> logging.Handler:
    """Create a stdout or rotating file handler for the configured logger."""
    if destination and destination.lower() != "stdout":
        target_path = Path(destination)
        target_path.parent.mkdir(parents=True, exist_ok=True)
        handler: logging.Handler = SynchronizedRotatingFileHandler(
            target_path, maxBytes=MAX_BYTES, backupCount=BACKUP_COUNT
        )
    else:
        handler = SynchronizedStreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(_build_formatter(log_format))
    handler.addFilter(CorrelationIdFilter())
    return handler


def configure_logging(
    level: str = "INFO", destination: Optional[str] = None, log_format: str = "console"
) -> CorrelationLoggerAdapter:
    """Configure and return the project logger with the requested handler."""
    logger = logging.getLogger(LOGGER_NAME)
    numeric_level = _resolve_level(level)
    logger.setLevel(numeric_level)
    logger.propagate = False

    for handler in list(logger.handlers):
        handler.close()
    logger.handlers.clear()

    handler = _build_handler(destination, numeric_level, log_format)
    logger.addHandler(handler)
    return CorrelationLoggerAdapter(logger, {})
