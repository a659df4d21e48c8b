"""
Transport layer for the query service.

Provides:
- HttpTransport: httpx-based client for /query and /stream
- StreamResponse: Pull-driven view of an open streaming body
- Auth helpers
"""

from shared_tables.transport.auth import get_auth_header
from shared_tables.transport.http import HttpTransport, StreamResponse

__all__ = [
    "HttpTransport",
    "StreamResponse",
    "get_auth_header",
]
