"""
shared-tables-python: Python client for the shared tables query service.

Queries are built with a fluent SQL builder, sent to the service, and either
returned whole (/query) or streamed back as one incrementally framed JSON
array with per-record transforms applied (/stream).
"""
from __future__ import annotations

from shared_tables.client import (
    STREAM_RESPONSE_HEADERS,
    CancelReason,
    StreamSession,
    TablesClient,
)
from shared_tables.config import ClientConfig
from shared_tables.errors import (
    PipelineError,
    RequestError,
    SharedTablesError,
    StatusError,
)
from shared_tables.pipeline import (
    FILTERED,
    TransformPipeline,
    camelize_keys,
    drop_if,
    filter_records,
    map_record,
)
from shared_tables.sql import QueryBuilder, ethereum
from shared_tables.types import QueryPayload

__version__ = "0.1.0"

__all__ = [
    # Client
    "STREAM_RESPONSE_HEADERS",
    "CancelReason",
    "ClientConfig",
    "StreamSession",
    "TablesClient",
    # Errors
    "PipelineError",
    "RequestError",
    "SharedTablesError",
    "StatusError",
    # Pipeline
    "FILTERED",
    "TransformPipeline",
    "camelize_keys",
    "drop_if",
    "filter_records",
    "map_record",
    # SQL
    "QueryBuilder",
    "QueryPayload",
    "ethereum",
    # Version
    "__version__",
]
