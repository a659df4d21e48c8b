"""
SQL building for the query service.

Provides:
- QueryBuilder: Fluent single-table SELECT builder
- ethereum: Prebuilt builders for the ethereum schema
- Fragment helpers for quoting, escaping and placeholder numbering
"""

from shared_tables.sql.builder import QueryBuilder
from shared_tables.sql.fragments import (
    array_literal,
    escape_string,
    escape_value,
    inline_bindings,
    json_path,
    number_placeholders,
    quote_identifier,
    to_binding,
)
from shared_tables.sql.tables import EthereumTables, SchemaTables, ethereum

__all__ = [
    "EthereumTables",
    "QueryBuilder",
    "SchemaTables",
    "array_literal",
    "escape_string",
    "escape_value",
    "ethereum",
    "inline_bindings",
    "json_path",
    "number_placeholders",
    "quote_identifier",
    "to_binding",
]
