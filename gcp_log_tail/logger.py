# gcp_log_tail/logger.py

"""
Logging setup.

Diagnostics always go to stderr; stdout carries the output records.
"""

from datetime import datetime
import json
import logging
import sys
from typing import Any

# Attributes every LogRecord carries; anything else came in via ``extra``.
_RECORD_ATTRIBUTES = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__
) | {"message", "asctime", "taskName"}


class StructuredFormatter(logging.Formatter):
    """Plain text formatter for console output."""

    def __init__(self, fmt: str | None = None, datefmt: str | None = None):
        if fmt is None:
            fmt = "%(asctime)s [%(levelname)8s] %(name)s: %(message)s"
        super().__init__(fmt, datefmt)


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def __init__(self, include_exception: bool = True):
        super().__init__()
        self.include_exception = include_exception

    def format(self, record: logging.LogRecord) -> str:
        """Format a log record as one JSON object."""
        log_data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if self.include_exception and record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": self.formatException(record.exc_info),
            }

        # Add custom fields from record
        for key, value in record.__dict__.items():
            if key not in _RECORD_ATTRIBUTES and not key.startswith("_"):
                log_data[key] = value

        return json.dumps(log_data, default=str, ensure_ascii=False)


def setup_logging(
    log_level: str = "INFO", log_format: str = "text", stream: Any = None
) -> logging.Logger:
    """Configure the root logger with a single stderr handler.

    Args:
        log_level: Level name such as ``DEBUG`` or ``INFO``.
        log_format: ``text`` or ``json``.
        stream: Destination stream, stderr when omitted.

    Returns:
        The package logger.
    """
    handler = logging.StreamHandler(stream or sys.stderr)
    if log_format == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(StructuredFormatter())

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level.upper())

    # The gRPC and auth libraries are chatty at DEBUG.
    for name in ("google.auth", "urllib3", "grpc"):
        logging.getLogger(name).setLevel(max(root_logger.level, logging.INFO))

    return logging.getLogger("gcp_log_tail")
