"""Observability infrastructure for structured logging."""

from tunesource.infrastructure.observability.logging import (
    ConsoleFormatter,
    LogContextFilter,
    SourceJsonFormatter,
    configure_logging,
    get_correlation_id,
    get_source_name,
    log_context,
    new_correlation_id,
    set_correlation_id,
)

__all__ = [
    "ConsoleFormatter",
    "LogContextFilter",
    "SourceJsonFormatter",
    "configure_logging",
    "get_correlation_id",
    "get_source_name",
    "log_context",
    "new_correlation_id",
    "set_correlation_id",
]
