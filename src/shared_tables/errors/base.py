"""
Base error classes for shared-tables-python.

Provides a layered error hierarchy:
- SharedTablesError: Base class for all library errors
- RequestError: HTTP/network failure before any byte was received
- StatusError: Non-success status on the initial response
- PayloadEncodeError: Query could not be built or serialized
- PipelineError: Failures after streaming began (reported in-band)
- LifecycleError: Invalid session state transition
- ConfigError: Invalid client configuration
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

# Upper bound on response body text kept on a StatusError.
_BODY_EXCERPT_LIMIT = 512


@dataclass
class ErrorContext:
    """Structured error context for diagnostics.

    Provides actionable information for debugging and error handling.
    """

    details: dict[str, Any] = field(default_factory=dict)
    """Additional details about the error"""

    source: str | None = None
    """Error source (e.g., 'transport', 'decode', 'transform')"""

    hint: str | None = None
    """Actionable hint for resolving the error"""

    def __str__(self) -> str:
        parts = []
        if self.source:
            parts.append(f"[{self.source}]")
        if self.hint:
            parts.append(f"(hint: {self.hint})")
        return " ".join(parts)


class SharedTablesError(Exception):
    """Base class for all shared-tables-python errors.

    Attributes:
        message: Human-readable error message
        context: Structured error context
    """

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
    ) -> None:
        self.message = message
        self.context = context or ErrorContext()
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the full error message."""
        ctx_str = str(self.context)
        if ctx_str:
            return f"{self.message} {ctx_str}"
        return self.message

    def with_hint(self, hint: str) -> SharedTablesError:
        """Add a hint to this error."""
        self.context.hint = hint
        return self


class RequestError(SharedTablesError):
    """Error while talking to the query service.

    Raised when:
    - Network connection failure
    - Timeout
    - The connection drops while a stream body is being read
    """

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        *,
        url: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        ctx = context or ErrorContext(source="transport")
        if url:
            ctx.details["url"] = url
        super().__init__(message, ctx)
        self.url = url
        self.__cause__ = cause


class StatusError(SharedTablesError):
    """The query service answered with a non-success status code."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int,
        url: str | None = None,
        body: str | None = None,
    ) -> None:
        ctx = ErrorContext(source="transport")
        ctx.details["status_code"] = status_code
        if url:
            ctx.details["url"] = url
        super().__init__(message, ctx)
        self.status_code = status_code
        self.url = url
        self.body = body[:_BODY_EXCERPT_LIMIT] if body else body


class PayloadEncodeError(SharedTablesError):
    """The query could not be turned into a `{sql, bindings}` payload."""

    def __init__(
        self,
        message: str,
        *,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message, ErrorContext(source="payload"))
        self.__cause__ = cause


class PipelineError(SharedTablesError):
    """Failure after streaming began.

    Once the service has answered 200 there is no side channel left, so
    these errors are written into the output as a terminal error marker
    instead of being raised to the stream consumer.
    """

    source = "pipeline"

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
    ) -> None:
        super().__init__(message, context or ErrorContext(source=self.source))

    def to_marker(self) -> dict[str, Any]:
        """Render this error as an in-band error marker record."""
        return {"error": self.message}


class DecodeError(PipelineError):
    """Malformed JSON that no further input can complete."""

    source = "decode"

    def __init__(self, message: str, *, offset: int | None = None) -> None:
        super().__init__(message)
        if offset is not None:
            self.context.details["offset"] = offset
        self.offset = offset


class TransformError(PipelineError):
    """A record transform raised."""

    source = "transform"

    def __init__(
        self,
        message: str,
        *,
        index: int | None = None,
        transform: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        if index is not None:
            self.context.details["index"] = index
        if transform:
            self.context.details["transform"] = transform
        self.index = index
        self.transform = transform
        self.__cause__ = cause


class EncodeError(PipelineError):
    """A record could not be serialized for the output array."""

    source = "encode"

    def __init__(self, message: str, *, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.__cause__ = cause


class StreamProtocolError(PipelineError):
    """The service sent an explicit error marker in the stream body."""

    source = "protocol"

    def __init__(self, message: str, *, marker: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.marker = marker or {"error": message}

    def to_marker(self) -> dict[str, Any]:
        """Return the original marker unchanged."""
        return self.marker

    @classmethod
    def from_marker(cls, marker: dict[str, Any]) -> StreamProtocolError:
        """Build the error from a decoded error marker record."""
        error = marker.get("error")
        message = error if isinstance(error, str) else str(error)
        return cls(message, marker=marker)


class LifecycleError(SharedTablesError):
    """Invalid session state transition."""

    def __init__(self, message: str, *, current: str, target: str) -> None:
        ctx = ErrorContext(source="lifecycle")
        ctx.details["current"] = current
        ctx.details["target"] = target
        super().__init__(message, ctx)
        self.current = current
        self.target = target


class ConfigError(SharedTablesError):
    """Invalid client configuration."""

    def __init__(self, message: str, *, field: str | None = None) -> None:
        ctx = ErrorContext(source="config")
        if field:
            ctx.details["field"] = field
        super().__init__(message, ctx)
        self.field = field


def is_error_marker(record: Any) -> bool:
    """Check whether a decoded record is an in-band error marker.

    A marker is a JSON object with a truthy ``error`` field.
    """
    return isinstance(record, dict) and bool(record.get("error"))


def find_error_marker(records: list[Any]) -> dict[str, Any] | None:
    """Return the error marker in a parsed output array, if any."""
    for record in records:
        if is_error_marker(record):
            return record
    return None
