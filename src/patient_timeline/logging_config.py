"""
Structured Logging

Logging setup for the timeline service with JSON or console formatting and a
per-request correlation id.

Features:
- JSON-formatted log output for machine parsing
- Colored console output for local runs
- Correlation IDs carried through asyncio tasks via contextvars
"""

import contextvars
import json
import logging
import sys
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone

_correlation_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "correlation_id", default=None
)

# LogRecord attributes that are not user supplied "extra" fields
_RESERVED_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
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
        "message",
        "taskName",
        "correlation_id",
    }
)


def get_correlation_id() -> str | None:
    return _correlation_id.get()


@contextmanager
def correlation_scope(correlation_id: str | None = None) -> Iterator[str]:
    """Bind a correlation id to every log record emitted inside the block.

    Tasks created inside the block inherit the id, so concurrent fetches of
    one timeline request share it.

    Args:
        correlation_id: Id to bind (generates a new one if None)

    Yields:
        The bound correlation id
    """
    bound_id = correlation_id or str(uuid.uuid4())
    token = _correlation_id.set(bound_id)
    try:
        yield bound_id
    finally:
        _correlation_id.reset(token)


class CorrelationIdFilter(logging.Filter):
    """Logging filter that adds the current correlation ID to all log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "correlation_id"):
            record.correlation_id = get_correlation_id()
        return True


class JsonFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def __init__(self, include_extra: bool = True):
        """Initialize JSON formatter.

        Args:
            include_extra: Include extra fields in JSON output
        """
        super().__init__()
        self.include_extra = include_extra

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "correlation_id": getattr(record, "correlation_id", None),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if self.include_extra:
            for key, value in record.__dict__.items():
                if key not in _RESERVED_ATTRS and key not in log_data:
                    log_data[key] = value

        return json.dumps(log_data, default=str, separators=(",", ":"))


class ConsoleFormatter(logging.Formatter):
    """Console formatter with colored levels and the short correlation id."""

    # ANSI color codes
    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"
    BOLD = "\033[1m"

    def __init__(self, use_colors: bool = True):
        super().__init__()
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created).strftime("%Y-%m-%d %H:%M:%S")

        if self.use_colors:
            color = self.COLORS.get(record.levelname, self.RESET)
            level = f"{color}{self.BOLD}{record.levelname}{self.RESET}"
        else:
            level = record.levelname

        parts = [level, timestamp, record.name]

        correlation_id = getattr(record, "correlation_id", None)
        if correlation_id:
            parts.append(f"CID:{correlation_id[:8]}")

        parts.append(record.getMessage())
        line = " | ".join(parts)

        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def configure_logging(level: str = "INFO", log_format: str = "console") -> logging.Handler:
    """Install a single stderr handler on the root logger.

    Replaces any handler previously installed by this function, so calling it
    again (e.g. from tests) does not duplicate output.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: "console" or "json"

    Returns:
        The installed handler
    """
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        if getattr(handler, "_timeline_handler", False):
            root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler._timeline_handler = True
    if log_format == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(ConsoleFormatter(use_colors=sys.stderr.isatty()))
    handler.addFilter(CorrelationIdFilter())

    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    return handler
