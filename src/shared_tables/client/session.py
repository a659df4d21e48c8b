"""
Stream session: one /stream response re-framed as a single JSON array.

The session pulls a chunk from the service only when its consumer asks for
more output, runs every decoded record through the transform pipeline, and
frames the survivors. All failures after the response headers arrived are
written into the output as a final ``{"error": ...}`` element.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

from shared_tables.client.cancel import (
    CancelHandle,
    CancelReason,
    CancellableStream,
    create_cancel_pair,
)
from shared_tables.client.lifecycle import (
    CompletionCoordinator,
    SessionPhase,
    TerminationReason,
)
from shared_tables.client.response import SessionStats
from shared_tables.errors import PipelineError, RequestError, is_error_marker
from shared_tables.pipeline.base import FILTERED
from shared_tables.pipeline.decode import JsonStreamDecoder
from shared_tables.pipeline.transform import TransformPipeline
from shared_tables.telemetry.logger import get_logger

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from shared_tables.pipeline.base import Decoder, Record

logger = get_logger("shared_tables.client.session")

# Headers for a server relaying session output to its own clients.
STREAM_RESPONSE_HEADERS: dict[str, str] = {
    "Content-Type": "application/json",
    "Transfer-Encoding": "chunked",
}


class Upstream(Protocol):
    """Open response body a session reads from."""

    def iter_chunks(self) -> AsyncIterator[bytes]: ...

    async def abort(self) -> None: ...


class StreamSession:
    """Async iterator of output bytes for one streamed query.

    Example:
        >>> session = await client.stream_query(ethereum.blocks().limit(10))
        >>> async for data in session:
        ...     sink.write(data)

    The output is always a complete JSON array unless the session is
    cancelled, in which case it simply stops.
    """

    def __init__(
        self,
        upstream: Upstream,
        pipeline: TransformPipeline | None = None,
        *,
        decoder: Decoder | None = None,
        session_id: str | None = None,
    ) -> None:
        self._upstream = upstream
        self._pipeline = pipeline or TransformPipeline()
        self._decoder = decoder or JsonStreamDecoder()
        self._coordinator = CompletionCoordinator()
        self._stats = SessionStats(session_id=session_id) if session_id else SessionStats()
        self._handle, self._token = create_cancel_pair()
        self._token.on_cancel(self._on_cancel)
        self._aborted = False
        self._output = self._produce()

    @property
    def phase(self) -> SessionPhase:
        return self._coordinator.phase

    @property
    def stats(self) -> SessionStats:
        return self._stats

    @property
    def session_id(self) -> str:
        return self._stats.session_id

    @property
    def cancel_handle(self) -> CancelHandle:
        return self._handle

    @property
    def is_cancelled(self) -> bool:
        return self._token.is_cancelled

    def cancel(self, reason: CancelReason = CancelReason.USER_REQUEST) -> bool:
        """Stop the session and abort the upstream request.

        Nothing more is produced after this returns, not even a closing
        bracket.

        Returns:
            True if this call cancelled the session
        """
        return self._handle.cancel(reason)

    def _on_cancel(self, reason: CancelReason) -> Any:
        if self._coordinator.cancel():
            self._finish_stats()
            logger.info(
                "Stream session cancelled",
                session_id=self.session_id,
                reason=reason.value,
            )
        return self._abort()

    async def _abort(self) -> None:
        if self._aborted:
            return
        self._aborted = True
        await self._upstream.abort()

    def _finish_stats(self) -> None:
        termination = self._coordinator.termination
        self._stats.record_end(termination.value if termination else None)

    async def _records(self, chunks: CancellableStream) -> AsyncIterator[Record]:
        async for chunk in chunks:
            self._stats.record_chunk(len(chunk))
            if self._coordinator.phase is SessionPhase.PENDING:
                self._coordinator.receive_bytes()
                logger.debug("First byte received", session_id=self.session_id)
            for record in self._decoder.feed(chunk):
                yield record

        if self._token.is_cancelled:
            return
        for record in self._decoder.finish():
            yield record

    async def _step(self, record: Record) -> bytes:
        self._stats.records_decoded += 1

        if is_error_marker(record):
            logger.warning(
                "Query service reported an error",
                session_id=self.session_id,
                error=str(record.get("error")),
            )
            return self._coordinator.fail(record, reason=TerminationReason.ERROR_MARKER)

        result = await self._pipeline.apply(record)
        if result is FILTERED:
            self._stats.filtered += 1
            return b""

        data = self._coordinator.emit(result)
        if data:
            self._stats.emitted += 1
        return data

    async def _produce(self) -> AsyncIterator[bytes]:
        self._stats.record_start()
        logger.debug("Stream session started", session_id=self.session_id)

        chunks = CancellableStream(self._upstream.iter_chunks(), self._token)
        records = self._records(chunks)
        try:
            try:
                async for record in records:
                    if self._token.is_cancelled:
                        break
                    data = await self._step(record)
                    if data:
                        self._stats.record_output(data)
                        yield data
                    if self._coordinator.is_terminal:
                        break
                else:
                    tail = self._coordinator.end()
                    if tail:
                        self._stats.record_output(tail)
                        yield tail
            except (PipelineError, RequestError) as e:
                marker = e.to_marker() if isinstance(e, PipelineError) else {"error": e.message}
                tail = self._coordinator.fail(marker, reason=TerminationReason.PIPELINE_ERROR)
                if tail:
                    logger.warning(
                        "Stream session failed",
                        session_id=self.session_id,
                        error=e.message,
                        error_type=type(e).__name__,
                    )
                    self._stats.record_output(tail)
                    yield tail
        finally:
            await records.aclose()
            await chunks.close()
            await self._abort()
            if not self._coordinator.is_terminal:
                self._coordinator.cancel()
            if not self._stats.finished:
                self._finish_stats()
                logger.info("Stream session closed", **self._stats.to_dict())

    def __aiter__(self) -> StreamSession:
        return self

    async def __anext__(self) -> bytes:
        return await self._output.__anext__()

    async def read(self) -> bytes:
        """Drain the session and return the whole output."""
        return b"".join([data async for data in self])

    async def aclose(self) -> None:
        """Stop consuming; cancels the session if it is still running."""
        if self._coordinator.phase is not SessionPhase.CLOSED:
            self.cancel(CancelReason.CONSUMER_CLOSED)
        # A read pending in another task ends on its own once the upstream is aborted
        if not self._output.ag_running:
            await self._output.aclose()
        await self._abort()
        await self._token.settle()

    async def __aenter__(self) -> StreamSession:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.aclose()

    def __repr__(self) -> str:
        return f"StreamSession(id={self.session_id!r}, phase={self.phase.value})"
