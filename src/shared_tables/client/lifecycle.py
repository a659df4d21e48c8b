"""
Session lifecycle: the single authority on when a stream session ends.

Every way a session can terminate (end of input, an error marker from the
service, a decode/transform/transport failure, or cancellation by the
consumer) goes through CompletionCoordinator, which moves the session along
an explicit transition table and finalizes the output array exactly once.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any

from shared_tables.errors import LifecycleError
from shared_tables.pipeline.encode import ArrayEncoder

if TYPE_CHECKING:
    from shared_tables.pipeline.base import Record


class SessionPhase(str, Enum):
    """Phases of a stream session."""

    PENDING = "pending"
    STREAMING = "streaming"
    DRAINING = "draining"
    CLOSED = "closed"


class TerminationReason(str, Enum):
    """Why a session closed."""

    END_OF_INPUT = "end_of_input"
    ERROR_MARKER = "error_marker"
    PIPELINE_ERROR = "pipeline_error"
    CANCELLED = "cancelled"


_TRANSITIONS: dict[SessionPhase, frozenset[SessionPhase]] = {
    SessionPhase.PENDING: frozenset(
        {SessionPhase.STREAMING, SessionPhase.DRAINING, SessionPhase.CLOSED}
    ),
    SessionPhase.STREAMING: frozenset({SessionPhase.DRAINING, SessionPhase.CLOSED}),
    SessionPhase.DRAINING: frozenset({SessionPhase.CLOSED}),
    SessionPhase.CLOSED: frozenset(),
}


class CompletionCoordinator:
    """State machine driving the framing encoder for one session.

    Example:
        >>> coordinator = CompletionCoordinator()
        >>> coordinator.receive_bytes()
        >>> coordinator.emit({"a": 1}) + coordinator.end()
        b'[{"a":1}]'
        >>> coordinator.end()
        b''
    """

    def __init__(self, encoder: ArrayEncoder | None = None) -> None:
        self._encoder = encoder or ArrayEncoder()
        self._phase = SessionPhase.PENDING
        self._termination: TerminationReason | None = None

    @property
    def phase(self) -> SessionPhase:
        return self._phase

    @property
    def termination(self) -> TerminationReason | None:
        return self._termination

    @property
    def encoder(self) -> ArrayEncoder:
        return self._encoder

    @property
    def is_terminal(self) -> bool:
        """True once the session is draining or closed."""
        return self._phase in (SessionPhase.DRAINING, SessionPhase.CLOSED)

    def _transition(self, target: SessionPhase) -> None:
        if target not in _TRANSITIONS[self._phase]:
            raise LifecycleError(
                f"Invalid session transition {self._phase.value} -> {target.value}",
                current=self._phase.value,
                target=target.value,
            )
        self._phase = target

    def receive_bytes(self) -> None:
        """Record that input arrived; PENDING moves to STREAMING."""
        if self._phase is SessionPhase.PENDING:
            self._transition(SessionPhase.STREAMING)

    def emit(self, record: Record) -> bytes:
        """Frame a transformed record, or nothing once terminal.

        Raises:
            EncodeError: If the record cannot be serialized
        """
        if self.is_terminal:
            return b""
        return self._encoder.on_record(record)

    def fail(self, marker: dict[str, Any], *, reason: TerminationReason) -> bytes:
        """Terminate with an error marker as the final element."""
        if self.is_terminal:
            return b""
        self._transition(SessionPhase.DRAINING)
        self._termination = reason
        data = self._encoder.on_error(marker)
        self._transition(SessionPhase.CLOSED)
        return data

    def end(self) -> bytes:
        """Terminate normally at end of input."""
        if self.is_terminal:
            return b""
        self._transition(SessionPhase.DRAINING)
        self._termination = TerminationReason.END_OF_INPUT
        data = self._encoder.on_end()
        self._transition(SessionPhase.CLOSED)
        return data

    def cancel(self) -> bool:
        """Close without producing further output.

        Returns:
            True if this call closed the session
        """
        if self._phase is SessionPhase.CLOSED:
            return False
        self._transition(SessionPhase.CLOSED)
        if self._termination is None:
            self._termination = TerminationReason.CANCELLED
        return True

