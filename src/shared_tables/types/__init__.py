"""
Type definitions for shared-tables-python.
"""

from shared_tables.types.query import Binding, QueryPayload

__all__ = [
    "Binding",
    "QueryPayload",
]
