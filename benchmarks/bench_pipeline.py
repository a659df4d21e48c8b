#!/usr/bin/env python3
"""
Pipeline performance benchmarks.

Measures throughput of the stream decoder, transform pipeline and framing
encoder on synthetic rows.
"""

import asyncio
import json
import time
from typing import Any

from shared_tables.pipeline import (
    FILTERED,
    ArrayEncoder,
    JsonStreamDecoder,
    TransformPipeline,
    camelize_keys,
    drop_if,
)


def generate_rows(count: int) -> bytes:
    """Generate an NDJSON body of synthetic block rows."""
    lines = []
    for i in range(count):
        row = {"block_number": i, "tx_hash": f"0x{i:064x}", "gas_used": i * 21000}
        lines.append(json.dumps(row))
    return ("\n".join(lines) + "\n").encode()


def chunked(data: bytes, size: int) -> list[bytes]:
    return [data[i : i + size] for i in range(0, len(data), size)]


def benchmark_decoder(rows: int = 10000, chunk_size: int = 1024) -> dict[str, Any]:
    """Benchmark JsonStreamDecoder throughput."""
    chunks = chunked(generate_rows(rows), chunk_size)
    decoder = JsonStreamDecoder()

    start = time.perf_counter()
    count = 0
    for chunk in chunks:
        count += sum(1 for _ in decoder.feed(chunk))
    count += sum(1 for _ in decoder.finish())
    elapsed = time.perf_counter() - start

    return {
        "name": f"JsonStreamDecoder (chunk={chunk_size})",
        "records": count,
        "elapsed_seconds": elapsed,
        "throughput_rps": count / elapsed,
    }


async def benchmark_pipeline(rows: int = 10000) -> dict[str, Any]:
    """Benchmark decode, transform and framing together."""
    chunks = chunked(generate_rows(rows), 4096)
    decoder = JsonStreamDecoder()
    pipeline = TransformPipeline([drop_if(lambda r: r["block_number"] % 10 == 0), camelize_keys])
    encoder = ArrayEncoder()

    start = time.perf_counter()
    out = 0
    for chunk in chunks:
        for record in decoder.feed(chunk):
            result = await pipeline.apply(record)
            if result is not FILTERED:
                out += len(encoder.on_record(result))
    out += len(encoder.on_end())
    elapsed = time.perf_counter() - start

    return {
        "name": "Decode + transform + frame",
        "records": encoder.emitted_count,
        "bytes_out": out,
        "elapsed_seconds": elapsed,
        "throughput_rps": rows / elapsed,
    }


def print_result(result: dict[str, Any]) -> None:
    print(f"\n{result['name']}")
    print("-" * 40)
    for key, value in result.items():
        if key == "name":
            continue
        if isinstance(value, float):
            print(f"  {key}: {value:,.3f}")
        else:
            print(f"  {key}: {value:,}")


async def main() -> None:
    """Run all benchmarks."""
    print("=" * 40)
    print("shared-tables-python pipeline benchmarks")
    print("=" * 40)

    for size in (64, 1024, 65536):
        print_result(benchmark_decoder(chunk_size=size))
    print_result(await benchmark_pipeline())


if __name__ == "__main__":
    asyncio.run(main())
