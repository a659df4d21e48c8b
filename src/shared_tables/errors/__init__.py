"""
Error hierarchy for shared-tables-python.

Errors raised before a stream starts are thrown to the caller; errors after
the first byte are carried in-band as an error marker record.
"""

from shared_tables.errors.base import (
    ConfigError,
    DecodeError,
    EncodeError,
    ErrorContext,
    LifecycleError,
    PayloadEncodeError,
    PipelineError,
    RequestError,
    SharedTablesError,
    StatusError,
    StreamProtocolError,
    TransformError,
    find_error_marker,
    is_error_marker,
)

__all__ = [
    "ConfigError",
    "DecodeError",
    "EncodeError",
    "ErrorContext",
    "LifecycleError",
    "PayloadEncodeError",
    "PipelineError",
    "RequestError",
    "SharedTablesError",
    "StatusError",
    "StreamProtocolError",
    "TransformError",
    "find_error_marker",
    "is_error_marker",
]
