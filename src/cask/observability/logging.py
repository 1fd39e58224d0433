"""Structured logging for Cask containers.

Provides:
- JSON-formatted logs for log aggregation systems
- Human-readable console logs for development
- Container context (cache identifier, selector) attached to every record

Usage:
    from cask.observability.logging import configure_logging, LogContext

    configure_logging(json_format=False, level="DEBUG")

    with LogContext(cache_id=container.cache_id):
        logger.info("Refreshing container")  # Includes cache_id
"""

from __future__ import annotations

import contextvars
import logging
import sys
from datetime import datetime, timezone
from typing import Any

import orjson

cache_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("cache_id", default="")
selector_var: contextvars.ContextVar[str] = contextvars.ContextVar("selector", default="")

_CONTEXT_VARS: dict[str, contextvars.ContextVar[str]] = {
    "cache_id": cache_id_var,
    "selector": selector_var,
}

# Standard LogRecord attributes, never copied as extra fields
_STANDARD_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "exc_info",
        "exc_text",
        "thread",
        "threadName",
        "taskName",
        "message",
    }
)


class JsonFormatter(logging.Formatter):
    """JSON log formatter with container context.

    Output format:
    {
        "timestamp": "2026-01-10T12:34:56.789Z",
        "level": "WARNING",
        "logger": "cask.cache.reachability",
        "message": "Error connecting to Redis",
        "cache_id": "storage.5f0c...",
        "selector": "{\"user\":\"42\"}"
    }
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        for key, var in _CONTEXT_VARS.items():
            value = var.get()
            if value:
                log_data[key] = value

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": self.formatException(record.exc_info),
            }

        for key, value in record.__dict__.items():
            if key not in _STANDARD_ATTRS and not key.startswith("_"):
                log_data.setdefault(key, value)

        return orjson.dumps(log_data, default=str).decode()


class ConsoleFormatter(logging.Formatter):
    """Human-readable formatter for development.

    Output format:
    2026-01-10 12:34:56 | INFO | cask.container | Cache miss | cache=storage.5f
    """

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, use_colors: bool = True) -> None:
        super().__init__()
        self.use_colors = use_colors and sys.stderr.isatty()

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        level = record.levelname

        if self.use_colors:
            color = self.COLORS.get(level, "")
            level = f"{color}{level}{self.RESET}"

        message = record.getMessage()

        cache_id = cache_id_var.get()
        context = f" | cache={cache_id[:16]}" if cache_id else ""

        result = f"{timestamp} | {level:8} | {record.name} | {message}{context}"

        if record.exc_info:
            result += "\n" + self.formatException(record.exc_info)

        return result


def configure_logging(
    json_format: bool = True,
    level: str = "INFO",
    use_colors: bool = True,
) -> None:
    """Configure application-wide logging.

    Args:
        json_format: Use JSON format (recommended for production)
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        use_colors: Use ANSI colors in console format
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    if json_format:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(ConsoleFormatter(use_colors=use_colors))
    root_logger.addHandler(handler)

    # Reduce noise from third-party libraries
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)


class LogContext:
    """Context manager for adding container context to log records.

    Usage:
        with LogContext(cache_id="storage.abc", selector='{"user": "42"}'):
            logger.info("Loading")  # Includes cache_id and selector
    """

    def __init__(self, **kwargs: str) -> None:
        self.extra = kwargs
        self._tokens: dict[str, contextvars.Token[str]] = {}

    def __enter__(self) -> "LogContext":
        for key, value in self.extra.items():
            var = _CONTEXT_VARS.get(key)
            if var is not None:
                self._tokens[key] = var.set(value)
        return self

    def __exit__(self, *args: Any) -> None:
        for key, token in self._tokens.items():
            _CONTEXT_VARS[key].reset(token)
