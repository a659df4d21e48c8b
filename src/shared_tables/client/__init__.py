"""
Client module for shared-tables-python.

Provides:
- TablesClient: Entry point for /query and /stream
- StreamSession: Re-framed, cancellable stream output
- CompletionCoordinator: Session state machine
- Cancellation primitives
"""

from shared_tables.client.cancel import (
    CancelHandle,
    CancelReason,
    CancelToken,
    CancellableStream,
    create_cancel_pair,
)
from shared_tables.client.core import TablesClient
from shared_tables.client.lifecycle import (
    CompletionCoordinator,
    SessionPhase,
    TerminationReason,
)
from shared_tables.client.response import SessionStats
from shared_tables.client.session import STREAM_RESPONSE_HEADERS, StreamSession

__all__ = [
    "STREAM_RESPONSE_HEADERS",
    "CancelHandle",
    "CancelReason",
    "CancelToken",
    "CancellableStream",
    "CompletionCoordinator",
    "SessionPhase",
    "SessionStats",
    "StreamSession",
    "TablesClient",
    "TerminationReason",
    "create_cancel_pair",
]
