"""Root pytest fixtures for shared-tables-python tests."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import httpx
import pytest

from shared_tables.config import ClientConfig

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable

TEST_ORIGIN = "http://tables.test"


class ChunkStream(httpx.AsyncByteStream):
    """Response body that yields preset chunks and records how far it was read."""

    def __init__(self, chunks: list[bytes], *, error: Exception | None = None) -> None:
        self.chunks = list(chunks)
        self.error = error
        self.pulled = 0
        self.closed = False

    async def __aiter__(self) -> AsyncIterator[bytes]:
        for chunk in self.chunks:
            if self.closed:
                return
            self.pulled += 1
            yield chunk
        if self.error is not None:
            raise self.error

    async def aclose(self) -> None:
        self.closed = True


def split_every(data: bytes, sizes: list[int]) -> list[bytes]:
    """Cut ``data`` into chunks of the given sizes; the rest is the last chunk."""
    chunks = []
    pos = 0
    for size in sizes:
        chunks.append(data[pos : pos + size])
        pos += size
    chunks.append(data[pos:])
    return chunks


@pytest.fixture
def config() -> ClientConfig:
    """Config pointing at a fake origin, independent of the environment."""
    return ClientConfig(origin=TEST_ORIGIN, api_key="test-key")


@pytest.fixture
def requests_seen() -> list[httpx.Request]:
    return []


@pytest.fixture
def stream_transport(
    requests_seen: list[httpx.Request],
) -> Callable[..., httpx.MockTransport]:
    """Build a MockTransport answering every request with ``stream``."""

    def _make(stream: ChunkStream, status_code: int = 200, **kwargs: Any) -> httpx.MockTransport:
        def handler(request: httpx.Request) -> httpx.Response:
            requests_seen.append(request)
            return httpx.Response(status_code, stream=stream, **kwargs)

        return httpx.MockTransport(handler)

    return _make


@pytest.fixture
def chunk_stream() -> type[ChunkStream]:
    return ChunkStream


@pytest.fixture
def split() -> Callable[[bytes, list[int]], list[bytes]]:
    return split_every
