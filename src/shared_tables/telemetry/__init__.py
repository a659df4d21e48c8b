"""
Telemetry module for shared-tables-python.

Provides structured logging with request-scoped context and sensitive data
masking.
"""

from shared_tables.telemetry.logger import (
    JsonFormatter,
    LogContext,
    LogLevel,
    SensitiveDataMasker,
    TablesLogger,
    TextFormatter,
    clear_log_context,
    get_log_context,
    get_logger,
    log_context,
    set_log_context,
)

__all__ = [
    "JsonFormatter",
    "LogContext",
    "LogLevel",
    "SensitiveDataMasker",
    "TablesLogger",
    "TextFormatter",
    "clear_log_context",
    "get_log_context",
    "get_logger",
    "log_context",
    "set_log_context",
]
