"""
Fluent SELECT builder producing query payloads.
"""

from __future__ import annotations

from typing import Any

from shared_tables.errors import PayloadEncodeError
from shared_tables.sql.fragments import (
    inline_bindings,
    number_placeholders,
    quote_identifier,
    to_binding,
)
from shared_tables.types.query import QueryPayload

_OPERATORS = frozenset(
    {"=", "!=", "<>", "<", "<=", ">", ">=", "like", "not like", "ilike", "not ilike", "is", "is not"}
)
_DIRECTIONS = frozenset({"asc", "desc"})


class QueryBuilder:
    """Builder for a single-table SELECT.

    Identifiers are quoted and values are always sent as bindings.

    Example:
        >>> payload = (
        ...     QueryBuilder()
        ...     .with_schema("ethereum")
        ...     .from_table("blocks")
        ...     .select("number", "hash")
        ...     .where("number", ">", 100)
        ...     .limit(10)
        ...     .to_payload()
        ... )
        >>> payload.sql
        'select "number", "hash" from "ethereum"."blocks" where "number" > $1 limit $2'
    """

    def __init__(self, table: str | None = None, *, schema: str | None = None) -> None:
        self._schema = schema
        self._table = table
        self._columns: list[str] = []
        self._wheres: list[tuple[str, list[Any]]] = []
        self._orders: list[str] = []
        self._limit: int | None = None
        self._offset: int | None = None

    def with_schema(self, name: str) -> QueryBuilder:
        self._schema = name
        return self

    def from_table(self, name: str) -> QueryBuilder:
        self._table = name
        return self

    def select(self, *columns: str) -> QueryBuilder:
        """Add columns to the select list (default ``*``)."""
        self._columns.extend(columns)
        return self

    def where(self, column: str, *args: Any) -> QueryBuilder:
        """Add a condition: ``where(col, value)`` or ``where(col, op, value)``.

        Raises:
            PayloadEncodeError: On an unknown operator or wrong arity
        """
        if len(args) == 1:
            operator, value = "=", args[0]
        elif len(args) == 2:
            operator, value = str(args[0]).lower(), args[1]
        else:
            raise PayloadEncodeError(f"where() takes a value or an operator and value, got {len(args)} args")

        if operator not in _OPERATORS:
            raise PayloadEncodeError(f"Unsupported operator: {operator!r}")
        if value is None and operator in ("=", "is"):
            return self.where_null(column)

        self._wheres.append((f"{quote_identifier(column)} {operator} ?", [value]))
        return self

    def where_in(self, column: str, values: list[Any] | tuple[Any, ...]) -> QueryBuilder:
        """Add ``column in (...)``; an empty list matches nothing."""
        if not values:
            self._wheres.append(("1 = 0", []))
            return self
        placeholders = ", ".join("?" for _ in values)
        self._wheres.append((f"{quote_identifier(column)} in ({placeholders})", list(values)))
        return self

    def where_null(self, column: str) -> QueryBuilder:
        self._wheres.append((f"{quote_identifier(column)} is null", []))
        return self

    def where_not_null(self, column: str) -> QueryBuilder:
        self._wheres.append((f"{quote_identifier(column)} is not null", []))
        return self

    def where_raw(self, sql: str, *bindings: Any) -> QueryBuilder:
        """Add a raw condition with its own ``?`` placeholders."""
        self._wheres.append((sql, list(bindings)))
        return self

    def order_by(self, column: str, direction: str = "asc") -> QueryBuilder:
        direction = direction.lower()
        if direction not in _DIRECTIONS:
            raise PayloadEncodeError(f"Unsupported sort direction: {direction!r}")
        self._orders.append(f"{quote_identifier(column)} {direction}")
        return self

    def limit(self, count: int) -> QueryBuilder:
        self._limit = _non_negative("limit", count)
        return self

    def offset(self, count: int) -> QueryBuilder:
        self._offset = _non_negative("offset", count)
        return self

    def to_sql(self) -> tuple[str, list[Any]]:
        """Render SQL with ``?`` placeholders and the raw binding list.

        Raises:
            PayloadEncodeError: If no table was set
        """
        if not self._table:
            raise PayloadEncodeError("Query has no table")

        table = f"{self._schema}.{self._table}" if self._schema else self._table
        columns = ", ".join(quote_identifier(c) for c in self._columns) or "*"
        parts = [f"select {columns} from {quote_identifier(table)}"]
        bindings: list[Any] = []

        if self._wheres:
            parts.append("where " + " and ".join(sql for sql, _ in self._wheres))
            for _, values in self._wheres:
                bindings.extend(values)
        if self._orders:
            parts.append("order by " + ", ".join(self._orders))
        if self._limit is not None:
            parts.append("limit ?")
            bindings.append(self._limit)
        if self._offset is not None:
            parts.append("offset ?")
            bindings.append(self._offset)

        return " ".join(parts), bindings

    def to_payload(self) -> QueryPayload:
        """Render the ``{sql, bindings}`` payload with ``$n`` placeholders.

        Raises:
            PayloadEncodeError: If the query cannot be built
        """
        sql, bindings = self.to_sql()
        return QueryPayload(
            sql=number_placeholders(sql),
            bindings=[to_binding(b) for b in bindings],
        )

    def to_string(self) -> str:
        """Render the query with literals inlined, for logs and debugging."""
        sql, bindings = self.to_sql()
        return inline_bindings(sql, bindings)

    def __str__(self) -> str:
        return self.to_string()


def _non_negative(name: str, count: int) -> int:
    if isinstance(count, bool) or not isinstance(count, int) or count < 0:
        raise PayloadEncodeError(f"{name} must be a non-negative integer, got {count!r}")
    return count
