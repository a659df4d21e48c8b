"""
Base abstractions for the pipeline layer.

Defines the decoder interface and the record/transform types shared by
every pipeline operator.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any, Final, Union

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterator


class _Filtered:
    """Type of the FILTERED sentinel."""

    _instance: _Filtered | None = None

    def __new__(cls) -> _Filtered:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "FILTERED"

    def __bool__(self) -> bool:
        return False

    def __reduce__(self) -> str:
        return "FILTERED"


FILTERED: Final = _Filtered()
"""Returned by a transform to drop the current record."""

Record = Any
"""One opaque JSON value (object, array or scalar)."""

TransformResult = Union[Record, _Filtered]

Transform = Callable[[Record], Union[TransformResult, Awaitable[TransformResult]]]
"""A sync or async record transform."""


class Decoder(ABC):
    """Abstract decoder that converts a byte stream to JSON records.

    Decoders handle the transport-level parsing of streaming responses,
    converting raw bytes into parsed values. Feeding is synchronous; only
    reading the next chunk suspends.
    """

    @abstractmethod
    def feed(self, chunk: bytes) -> Iterator[Record]:
        """Buffer a chunk and iterate the values it completes.

        Args:
            chunk: Raw bytes, aligned arbitrarily

        Returns:
            Iterator over newly completed values, in arrival order
        """
        ...

    @abstractmethod
    def finish(self) -> Iterator[Record]:
        """Signal end of input and iterate any value it completes."""
        ...

    async def decode(self, byte_stream: AsyncIterator[bytes]) -> AsyncIterator[Record]:
        """Decode a byte stream into records.

        Args:
            byte_stream: Async iterator of raw bytes

        Yields:
            Parsed records
        """
        async for chunk in byte_stream:
            for record in self.feed(chunk):
                yield record
        for record in self.finish():
            yield record
