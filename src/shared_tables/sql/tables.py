"""
Prebuilt table entry points for the shared schemas.
"""

from __future__ import annotations

from shared_tables.sql.builder import QueryBuilder


class SchemaTables:
    """Factory for builders bound to one schema.

    Each accessor returns a fresh QueryBuilder, so chains never share state.

    Example:
        >>> ethereum.blocks().select("number").limit(1).to_sql()
        ('select "number" from "ethereum"."blocks" limit ?', [1])
    """

    TABLES: tuple[str, ...] = ()

    def __init__(self, schema: str) -> None:
        self.schema = schema

    def table(self, name: str) -> QueryBuilder:
        return QueryBuilder().with_schema(self.schema).from_table(name)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(schema={self.schema!r})"


class EthereumTables(SchemaTables):
    """Tables of the ``ethereum`` schema."""

    TABLES = (
        "blocks",
        "transactions",
        "logs",
        "traces",
        "contracts",
        "latest_interactions",
    )

    def __init__(self) -> None:
        super().__init__("ethereum")

    def blocks(self) -> QueryBuilder:
        return self.table("blocks")

    def transactions(self) -> QueryBuilder:
        return self.table("transactions")

    def logs(self) -> QueryBuilder:
        return self.table("logs")

    def traces(self) -> QueryBuilder:
        return self.table("traces")

    def contracts(self) -> QueryBuilder:
        return self.table("contracts")

    def latest_interactions(self) -> QueryBuilder:
        return self.table("latest_interactions")


ethereum = EthereumTables()
