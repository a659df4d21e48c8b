#!/usr/bin/env python3
"""
Basic query example.

Runs a small query against the /query endpoint and prints the rows.

Usage:
    export SHARED_TABLES_ORIGIN="http://localhost:8000"
    export SHARED_TABLES_API_KEY="your-api-key"
    python examples/basic_query.py
"""

import asyncio

from shared_tables import ClientConfig, TablesClient, ethereum


async def main() -> None:
    """Run basic query example."""
    config = ClientConfig.from_env()

    async with TablesClient(config) as client:
        query = (
            ethereum.blocks()
            .select("number", "hash", "miner")
            .order_by("number", "desc")
            .limit(5)
        )
        print(f"SQL: {query}")

        rows = await client.run_query(query, camel_response=True)
        for row in rows:
            print(row)


if __name__ == "__main__":
    asyncio.run(main())
