"""
Per-session statistics.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from typing import Any


@dataclass
class SessionStats:
    """Statistics for a single stream session.

    Attributes:
        session_id: Client-generated session ID for log correlation
        chunks: Number of non-empty chunks read from the service
        bytes_received: Total body bytes read
        records_decoded: Values produced by the decoder
        emitted: Records written to the output array
        filtered: Records dropped by the pipeline
        bytes_emitted: Total output bytes produced
        termination: Why the session closed (a TerminationReason value)
        time_to_first_byte_ms: Delay until the first chunk arrived
        latency_ms: Total session duration
    """

    session_id: str = field(default_factory=lambda: uuid.uuid4().hex[:16])
    chunks: int = 0
    bytes_received: int = 0
    records_decoded: int = 0
    emitted: int = 0
    filtered: int = 0
    bytes_emitted: int = 0
    termination: str | None = None
    time_to_first_byte_ms: float | None = None
    latency_ms: float = 0.0

    # Internal timing
    _start_time: float = field(default_factory=time.time, repr=False)
    _first_byte_time: float | None = field(default=None, repr=False)
    _end_time: float | None = field(default=None, repr=False)

    def record_start(self) -> None:
        self._start_time = time.time()

    def record_chunk(self, size: int) -> None:
        """Count a chunk, noting the time of the first one."""
        self.chunks += 1
        self.bytes_received += size
        if self._first_byte_time is None:
            self._first_byte_time = time.time()
            self.time_to_first_byte_ms = (self._first_byte_time - self._start_time) * 1000

    def record_output(self, data: bytes) -> None:
        self.bytes_emitted += len(data)

    def record_end(self, termination: str | None) -> None:
        """Record the end time once."""
        if self._end_time is not None:
            return
        self._end_time = time.time()
        self.latency_ms = (self._end_time - self._start_time) * 1000
        self.termination = termination

    @property
    def finished(self) -> bool:
        return self._end_time is not None

    def to_dict(self) -> dict[str, Any]:
        """Public counters, for structured logs."""
        return {
            "session_id": self.session_id,
            "chunks": self.chunks,
            "bytes_received": self.bytes_received,
            "records_decoded": self.records_decoded,
            "emitted": self.emitted,
            "filtered": self.filtered,
            "bytes_emitted": self.bytes_emitted,
            "termination": self.termination,
            "time_to_first_byte_ms": self.time_to_first_byte_ms,
            "latency_ms": round(self.latency_ms, 3),
        }
