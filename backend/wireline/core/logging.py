"""Structured logging configuration for the Wireline inventory backend.

Provides JSON-structured logging for production and human-readable logging
for development. Two correlation ids are carried in context variables: the
HTTP request id (set by the request middleware) and the cleanup scan id (set
by the account cleanup scheduler for the duration of one scan).
"""

import json
import logging
import sys
import uuid
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import Any

request_id_var: ContextVar[str] = ContextVar("request_id", default="")
scan_id_var: ContextVar[str] = ContextVar("scan_id", default="")


def _correlation_ids() -> dict[str, str]:
    ids = {}
    request_id = request_id_var.get()
    if request_id:
        ids["request_id"] = request_id
    scan_id = scan_id_var.get()
    if scan_id:
        ids["scan_id"] = scan_id
    return ids


class JSONFormatter(logging.Formatter):
    """JSON log formatter for log aggregation systems."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        log_data.update(_correlation_ids())

        if hasattr(record, "extra_fields"):
            log_data.update(record.extra_fields)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        log_data["source"] = {
            "file": record.pathname,
            "line": record.lineno,
            "function": record.funcName,
        }

        return json.dumps(log_data, default=str)


class DevelopmentFormatter(logging.Formatter):
    """Human-readable log formatter for development."""

    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[41m",  # Red background
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with colors and correlation ids."""
        color = self.COLORS.get(record.levelname, "")
        reset = self.RESET if color else ""

        tags = "".join(f"[{value[:8]}] " for value in _correlation_ids().values())

        timestamp = datetime.now(UTC).strftime("%Y-%m-%d %H:%M:%S")
        message = f"{timestamp} {color}{record.levelname:8}{reset} {tags}{record.name}: {record.getMessage()}"

        if record.exc_info:
            message += "\n" + self.formatException(record.exc_info)

        return message


def setup_logging(debug: bool = False, json_logs: bool = False, level: str | None = None) -> None:
    """Configure application logging.

    Args:
        debug: If True, force the DEBUG level.
        json_logs: If True, use JSON formatting. Otherwise use development formatter.
        level: Level name to use when not in debug mode (defaults to INFO).
    """
    if debug:
        log_level = logging.DEBUG
    else:
        log_level = logging.getLevelName((level or "INFO").upper())
        if not isinstance(log_level, int):
            log_level = logging.INFO

    handler = logging.StreamHandler(sys.stdout)

    if json_logs:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(DevelopmentFormatter())

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Remove existing handlers to avoid duplicates
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    # Reduce noise from third-party libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a logger with the given name."""
    return logging.getLogger(name)


def generate_request_id() -> str:
    """Generate a unique correlation id."""
    return str(uuid.uuid4())


def set_request_id(request_id: str) -> None:
    """Set the request ID for the current context."""
    request_id_var.set(request_id)


def set_scan_id(scan_id: str) -> None:
    """Set the cleanup scan ID for the current context."""
    scan_id_var.set(scan_id)
