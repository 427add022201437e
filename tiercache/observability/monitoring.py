"""
TierCache - Observability Monitoring

Structured JSON logging for the cache runtime. Every module logs through
``logging.getLogger(__name__)`` under the ``tiercache`` logger; this module
decides how those records are rendered.
"""

import json
import logging
from datetime import UTC, datetime

# Attributes present on every LogRecord; anything else came in via `extra=`
_RESERVED_ATTRS = frozenset(
    (
        "args",
        "msg",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "exc_info",
        "exc_text",
        "stack_info",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "name",
        "message",
        "taskName",
    )
)

ROOT_LOGGER = "tiercache"


class JSONFormatter(logging.Formatter):
    """JSON log formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            "timestamp": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        # Add any extra fields from record.__dict__
        for key, value in record.__dict__.items():
            if key not in log_data and not key.startswith("_") and key not in _RESERVED_ATTRS:
                log_data[key] = value

        # Add exception info if present
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def setup_logging(level: str | int = "INFO", json_format: bool = True) -> logging.Logger:
    """
    Configure the ``tiercache`` logger.

    Replaces any handlers previously attached to it, so calling this twice
    does not duplicate output.

    Args:
        level: Log level name or number
        json_format: Emit JSON lines (True) or plain text (False)

    Returns:
        The configured package logger
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.handlers.clear()

    handler = logging.StreamHandler()
    if json_format:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))

    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False
    return logger


def setup_logging_from_settings() -> logging.Logger:
    """Configure logging from the global settings (LOG_LEVEL, LOG_FORMAT)."""
    from ..config import LogFormat, get_settings

    settings = get_settings()
    return setup_logging(level=settings.log_level, json_format=settings.log_format == LogFormat.JSON)
