"""
Incremental decoder for concatenated JSON values.

The stream endpoint writes every row as its own top-level JSON value
(whitespace or newline separated), so the body can be parsed one value at a
time without buffering the whole response:

```
{"a": 1}
{"a": 2}{"a": 3}
```
"""

from __future__ import annotations

import json
from enum import Enum
from typing import TYPE_CHECKING, NoReturn

from shared_tables.errors import DecodeError
from shared_tables.pipeline.base import Decoder, Record

if TYPE_CHECKING:
    from collections.abc import Iterator

_WHITESPACE = frozenset(b" \t\n\r")
_OPENERS = frozenset(b"{[")
_CLOSERS = frozenset(b"}]")
_STRAY = frozenset(b"}],:")
_SCALAR_END = _WHITESPACE | _OPENERS | _STRAY | frozenset(b'"')
_QUOTE = ord('"')
_BACKSLASH = ord("\\")


class _Scan(Enum):
    """What the scanner is currently inside of."""

    IDLE = "idle"
    CONTAINER = "container"
    STRING = "string"
    SCALAR = "scalar"


def _reject_constant(name: str) -> float:
    raise ValueError(f"{name} is not valid JSON")


class JsonStreamDecoder(Decoder):
    """Decoder for a stream of independent top-level JSON values.

    A byte-level scanner tracks nesting depth and string/escape state to
    find where each value ends; only then is the value handed to
    ``json.loads``. Structural bytes are all ASCII, so multi-byte UTF-8
    sequences split across chunks need no special handling.

    Bare top-level scalars (``42``, ``true``) have no closing byte, so they
    complete at the next delimiter or at :meth:`finish`.

    Example:
        >>> decoder = JsonStreamDecoder()
        >>> list(decoder.feed(b'{"a": 1}{"a"'))
        [{'a': 1}]
        >>> list(decoder.feed(b': 2}'))
        [{'a': 2}]
    """

    def __init__(self) -> None:
        self._buffer = bytearray()
        self._pos = 0
        self._start = 0
        self._mode = _Scan.IDLE
        self._depth = 0
        self._in_string = False
        self._escaped = False
        self._consumed = 0
        self._span_offset = 0
        self._failed = False
        self._finished = False
        self.values_decoded = 0

    @property
    def buffered(self) -> int:
        """Number of bytes held for the value in progress."""
        return len(self._buffer)

    @property
    def failed(self) -> bool:
        """Whether a decode error has been reported."""
        return self._failed

    @property
    def finished(self) -> bool:
        return self._finished

    def feed(self, chunk: bytes) -> Iterator[Record]:
        """Buffer a chunk and iterate the values it completes.

        The chunk is buffered immediately; values are parsed lazily as the
        returned iterator is consumed. Values left unconsumed are produced
        first by the next call.

        Raises:
            DecodeError: While iterating, on malformed input
        """
        if self._failed or self._finished:
            return iter(())
        self._buffer += chunk
        return self._drain(final=False)

    def finish(self) -> Iterator[Record]:
        """Signal end of input.

        Completes a trailing bare scalar. A container or string left open
        is a decode error.
        """
        if self._failed or self._finished:
            return iter(())
        self._finished = True
        return self._drain(final=True)

    def _drain(self, *, final: bool) -> Iterator[Record]:
        while not self._failed:
            span = self._next_span(final=final)
            if span is None:
                return
            yield self._parse(span)

    def _next_span(self, *, final: bool) -> bytes | None:
        """Scan forward to the end of the next complete value."""
        buf = self._buffer
        end = len(buf)
        i = self._pos

        while i < end:
            byte = buf[i]

            if self._mode is _Scan.IDLE:
                if byte in _WHITESPACE:
                    i += 1
                    continue
                if byte in _STRAY:
                    self._fail(f"Unexpected {chr(byte)!r} between values", i)
                self._start = i
                if byte in _OPENERS:
                    self._mode = _Scan.CONTAINER
                    self._depth = 1
                elif byte == _QUOTE:
                    self._mode = _Scan.STRING
                    self._in_string = True
                else:
                    self._mode = _Scan.SCALAR

            elif self._mode is _Scan.SCALAR:
                if byte in _SCALAR_END:
                    return self._take(i)

            elif self._in_string:
                if self._escaped:
                    self._escaped = False
                elif byte == _BACKSLASH:
                    self._escaped = True
                elif byte == _QUOTE:
                    self._in_string = False
                    if self._mode is _Scan.STRING:
                        return self._take(i + 1)

            elif byte == _QUOTE:
                self._in_string = True
            elif byte in _OPENERS:
                self._depth += 1
            elif byte in _CLOSERS:
                self._depth -= 1
                if self._depth == 0:
                    return self._take(i + 1)

            i += 1

        self._pos = i
        if final:
            if self._mode is _Scan.SCALAR:
                return self._take(end)
            if self._mode is not _Scan.IDLE:
                self._fail("Unexpected end of input inside a value", self._start)
        self._compact()
        return None

    def _take(self, end: int) -> bytes:
        """Cut the value ending at ``end`` out of the buffer and reset."""
        span = bytes(self._buffer[self._start : end])
        self._span_offset = self._consumed + self._start
        del self._buffer[:end]
        self._consumed += end
        self._pos = 0
        self._start = 0
        self._mode = _Scan.IDLE
        self._depth = 0
        self._in_string = False
        self._escaped = False
        return span

    def _compact(self) -> None:
        """Drop bytes that can no longer belong to a value."""
        drop = self._pos if self._mode is _Scan.IDLE else self._start
        if drop:
            del self._buffer[:drop]
            self._consumed += drop
            self._pos -= drop
            self._start = 0

    def _parse(self, span: bytes) -> Record:
        try:
            value = json.loads(span, parse_constant=_reject_constant)
        except ValueError as e:
            self._fail(f"Malformed JSON value: {e}", self._span_offset - self._consumed)
        self.values_decoded += 1
        return value

    def _fail(self, message: str, index: int) -> NoReturn:
        offset = self._consumed + index
        self._failed = True
        self._buffer.clear()
        raise DecodeError(message, offset=offset)
