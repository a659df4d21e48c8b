#!/usr/bin/env python3
"""
Streaming query example.

Streams transactions from /stream, drops small transfers, and writes the
re-framed JSON array to stdout as it arrives.

Usage:
    export SHARED_TABLES_ORIGIN="http://localhost:8000"
    python examples/streaming.py
"""

import asyncio
import sys

from shared_tables import ClientConfig, TablesClient, drop_if, ethereum, map_record
from shared_tables.errors import SharedTablesError


def summarize(row: dict) -> dict:
    return {"hash": row["hash"], "value": int(row["value"])}


async def main() -> None:
    """Run streaming example."""
    async with TablesClient(ClientConfig.from_env()) as client:
        query = ethereum.transactions().where("block_number", ">=", 19_000_000).limit(1000)

        try:
            session = await client.stream_query(
                query,
                [map_record(summarize), drop_if(lambda r: r["value"] < 10**18)],
            )
        except SharedTablesError as e:
            print(f"Query failed before streaming: {e}", file=sys.stderr)
            return

        async with session:
            async for data in session:
                sys.stdout.buffer.write(data)
                sys.stdout.flush()

        stats = session.stats
        print(
            f"\n\n[{stats.termination}] emitted={stats.emitted} "
            f"filtered={stats.filtered} latency={stats.latency_ms:.0f}ms",
            file=sys.stderr,
        )


if __name__ == "__main__":
    asyncio.run(main())
