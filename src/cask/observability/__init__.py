"""Observability for Cask: structured logging with container context."""

from cask.observability.logging import (
    ConsoleFormatter,
    JsonFormatter,
    LogContext,
    configure_logging,
)

__all__ = [
    "ConsoleFormatter",
    "JsonFormatter",
    "LogContext",
    "configure_logging",
]
