"""
Authorization header for the query service.

The key comes from ClientConfig.api_key only; ClientConfig.from_env is the
single place that reads SHARED_TABLES_API_KEY.
"""

from __future__ import annotations


def get_auth_header(api_key: str | None) -> dict[str, str]:
    """Authorization header for the query service, empty without a key."""
    if not api_key:
        return {}
    return {"Authorization": f"Bearer {api_key}"}
