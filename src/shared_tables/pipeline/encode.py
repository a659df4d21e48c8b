"""
Framing encoder: re-serializes records as one JSON array, incrementally.
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Any

from shared_tables.errors import EncodeError
from shared_tables.pipeline.base import Record

_OPEN = b"["
_SEPARATOR = b","
_CLOSE = b"]"
_EMPTY = b"[]"


class FramingState(str, Enum):
    """Framing progress of an output array."""

    IDLE = "idle"  # nothing written yet
    OPEN = "open"  # "[" and at least one element written
    CLOSED = "closed"  # "]" written; every later event is a no-op


def serialize(value: Any) -> bytes:
    """Serialize one record compactly as UTF-8 JSON.

    Raises:
        EncodeError: If the value is not JSON-serializable
    """
    try:
        text = json.dumps(value, separators=(",", ":"), ensure_ascii=False, allow_nan=False)
    except (TypeError, ValueError) as e:
        raise EncodeError(f"Record is not JSON-serializable: {e}", cause=e) from e
    return text.encode("utf-8")


class ArrayEncoder:
    """Frames records into a single JSON array as they arrive.

    Each event returns the bytes to hand to the sink. Output across all
    events is always one well-formed array: ``[]`` when nothing was
    emitted, ``[a,b,...]`` otherwise, with an error marker as the final
    element when the stream failed.

    Example:
        >>> encoder = ArrayEncoder()
        >>> encoder.on_record({"a": 1}) + encoder.on_record({"a": 2}) + encoder.on_end()
        b'[{"a":1},{"a":2}]'
    """

    def __init__(self) -> None:
        self._state = FramingState.IDLE
        self._emitted = 0

    @property
    def state(self) -> FramingState:
        return self._state

    @property
    def opened(self) -> bool:
        """Whether the opening bracket has been written."""
        return self._state is not FramingState.IDLE

    @property
    def closed(self) -> bool:
        return self._state is FramingState.CLOSED

    @property
    def emitted_count(self) -> int:
        """Number of array elements written, error marker included."""
        return self._emitted

    def on_record(self, record: Record) -> bytes:
        """Frame one record.

        Raises:
            EncodeError: If the record cannot be serialized; nothing is
                written and the framing state is unchanged
        """
        if self._state is FramingState.CLOSED:
            return b""
        return self._element(serialize(record))

    def on_error(self, marker: dict[str, Any]) -> bytes:
        """Frame an error marker as the last element and close the array."""
        if self._state is FramingState.CLOSED:
            return b""
        try:
            payload = serialize(marker)
        except EncodeError:
            payload = serialize({"error": str(marker.get("error"))})
        data = self._element(payload) + _CLOSE
        self._state = FramingState.CLOSED
        return data

    def on_end(self) -> bytes:
        """Close the array."""
        if self._state is FramingState.CLOSED:
            return b""
        data = _EMPTY if self._state is FramingState.IDLE else _CLOSE
        self._state = FramingState.CLOSED
        return data

    def _element(self, payload: bytes) -> bytes:
        prefix = _OPEN if self._state is FramingState.IDLE else _SEPARATOR
        self._state = FramingState.OPEN
        self._emitted += 1
        return prefix + payload
