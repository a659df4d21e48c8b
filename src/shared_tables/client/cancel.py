"""
Stream cancellation control.

Provides the cancel token / handle pair shared by a stream session and its
consumer. Cancelling the handle fires the token's callbacks, which is how the
session aborts the upstream HTTP exchange.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from shared_tables.telemetry.logger import get_logger

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable

logger = get_logger("shared_tables.client.cancel")


class CancelReason(str, Enum):
    """Reasons for cancellation."""

    USER_REQUEST = "user_request"
    CONSUMER_CLOSED = "consumer_closed"


@dataclass
class CancelState:
    """State of a cancellation token.

    Attributes:
        cancelled: Whether cancellation was requested
        reason: Reason for cancellation
        timestamp: Time of cancellation
    """

    cancelled: bool = False
    reason: CancelReason | None = None
    timestamp: float | None = None


class CancelToken:
    """Cancellation token checked by a session at every chunk and record.

    Example:
        >>> token = CancelToken()
        >>> _ = token.on_cancel(lambda reason: print("aborting:", reason.value))
        >>> token.cancel(CancelReason.USER_REQUEST)
        aborting: user_request
        True
    """

    def __init__(self) -> None:
        self._state = CancelState()
        self._callbacks: list[Callable[[CancelReason], Any]] = []
        self._tasks: set[asyncio.Task[Any]] = set()

    def cancel(self, reason: CancelReason = CancelReason.USER_REQUEST) -> bool:
        """Request cancellation.

        Args:
            reason: Reason for cancellation

        Returns:
            True if cancellation was newly requested, False if already cancelled
        """
        if self._state.cancelled:
            return False

        self._state.cancelled = True
        self._state.reason = reason
        self._state.timestamp = time.time()

        for callback in self._callbacks:
            self._invoke(callback, reason)

        return True

    def _invoke(self, callback: Callable[[CancelReason], Any], reason: CancelReason) -> None:
        """Run a callback, scheduling it if it returns a coroutine."""
        try:
            result = callback(reason)
        except Exception:
            logger.exception("Cancel callback failed", reason=reason.value)
            return
        if asyncio.iscoroutine(result):
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                result.close()
                logger.warning("Async cancel callback dropped: no running loop")
                return
            task = loop.create_task(result)
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    @property
    def is_cancelled(self) -> bool:
        """Check if cancellation was requested."""
        return self._state.cancelled

    @property
    def reason(self) -> CancelReason | None:
        """Get cancellation reason."""
        return self._state.reason

    @property
    def state(self) -> CancelState:
        """Get full cancellation state."""
        return self._state

    async def settle(self) -> None:
        """Wait for coroutine callbacks scheduled by :meth:`cancel`."""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    def on_cancel(self, callback: Callable[[CancelReason], Any]) -> CancelToken:
        """Register a callback to be called on cancellation.

        Args:
            callback: Callback function, sync or async

        Returns:
            Self for chaining
        """
        self._callbacks.append(callback)
        if self._state.cancelled and self._state.reason:
            self._invoke(callback, self._state.reason)
        return self


class CancelHandle:
    """Consumer-facing side of a CancelToken.

    Lets the caller cancel a stream without exposing the token that the
    session checks internally.
    """

    def __init__(self, token: CancelToken) -> None:
        self._token = token

    def cancel(self, reason: CancelReason = CancelReason.USER_REQUEST) -> bool:
        """Request cancellation.

        Returns:
            True if cancellation was newly requested
        """
        return self._token.cancel(reason)

    @property
    def is_cancelled(self) -> bool:
        return self._token.is_cancelled

    @property
    def reason(self) -> CancelReason | None:
        return self._token.reason


def create_cancel_pair() -> tuple[CancelHandle, CancelToken]:
    """Create a cancel handle and token pair.

    Returns:
        Tuple of (CancelHandle, CancelToken)
    """
    token = CancelToken()
    return CancelHandle(token), token


class CancellableStream:
    """Async iterator wrapper that stops once its token is cancelled.

    The token is checked before every pull, so a cancelled stream never
    reads another item from the wrapped iterator.

    Example:
        >>> handle, token = create_cancel_pair()
        >>> async for chunk in CancellableStream(response.iter_chunks(), token):
        ...     process(chunk)
    """

    def __init__(self, stream: AsyncIterator[Any], token: CancelToken) -> None:
        self._stream = stream
        self._token = token
        self._finished = False

    def __aiter__(self) -> CancellableStream:
        return self

    async def __anext__(self) -> Any:
        if self._finished:
            raise StopAsyncIteration
        if self._token.is_cancelled:
            self._finished = True
            await self._close_inner()
            raise StopAsyncIteration

        try:
            return await self._stream.__anext__()
        except StopAsyncIteration:
            self._finished = True
            raise

    async def _close_inner(self) -> None:
        aclose = getattr(self._stream, "aclose", None)
        if aclose is not None:
            await aclose()

    async def close(self) -> None:
        """Stop iterating and close the wrapped iterator."""
        if self._finished:
            return
        self._finished = True
        await self._close_inner()

    @property
    def finished(self) -> bool:
        return self._finished
