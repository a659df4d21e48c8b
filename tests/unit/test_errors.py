"""Tests for error module."""

import pytest

from shared_tables.errors import (
    ConfigError,
    DecodeError,
    EncodeError,
    ErrorContext,
    PayloadEncodeError,
    PipelineError,
    RequestError,
    SharedTablesError,
    StatusError,
    StreamProtocolError,
    TransformError,
    find_error_marker,
    is_error_marker,
)


class TestErrorContext:
    """Tests for ErrorContext."""

    def test_empty_context(self) -> None:
        """Test empty context string representation."""
        assert str(ErrorContext()) == ""

    def test_context_with_source_and_hint(self) -> None:
        """Test source and hint rendering."""
        ctx = ErrorContext(source="transport", hint="Check the origin")
        assert "[transport]" in str(ctx)
        assert "(hint: Check the origin)" in str(ctx)


class TestSharedTablesError:
    """Tests for base error class."""

    def test_basic_error(self) -> None:
        """Test basic error creation."""
        error = SharedTablesError("Something went wrong")
        assert error.message == "Something went wrong"
        assert str(error) == "Something went wrong"

    def test_with_hint(self) -> None:
        """Test adding hint to error."""
        error = SharedTablesError("Failed").with_hint("Check the config")
        assert error.context.hint == "Check the config"

    @pytest.mark.parametrize(
        "error",
        [
            RequestError("x"),
            StatusError("x", status_code=500),
            PayloadEncodeError("x"),
            DecodeError("x"),
            TransformError("x"),
            EncodeError("x"),
            StreamProtocolError("x"),
            ConfigError("x"),
        ],
    )
    def test_hierarchy(self, error: SharedTablesError) -> None:
        """Test every error derives from the base class."""
        assert isinstance(error, SharedTablesError)


class TestPreStreamErrors:
    """Tests for errors raised before streaming."""

    def test_request_error(self) -> None:
        """Test url and cause are kept."""
        cause = OSError("refused")
        error = RequestError("Connection failed", url="http://x/stream", cause=cause)

        assert error.url == "http://x/stream"
        assert error.__cause__ is cause
        assert error.context.details["url"] == "http://x/stream"
        assert "[transport]" in str(error)

    def test_status_error_truncates_body(self) -> None:
        """Test the body excerpt is bounded."""
        error = StatusError("bad", status_code=502, body="x" * 2000)

        assert error.status_code == 502
        assert len(error.body) == 512
        assert error.context.details["status_code"] == 502


class TestPipelineErrors:
    """Tests for in-band errors."""

    def test_marker(self) -> None:
        """Test pipeline errors render as an error marker."""
        error = DecodeError("Malformed JSON value", offset=12)

        assert isinstance(error, PipelineError)
        assert error.to_marker() == {"error": "Malformed JSON value"}
        assert error.offset == 12
        assert "[decode]" in str(error)

    def test_transform_error_details(self) -> None:
        """Test transform index and name are recorded."""
        error = TransformError("failed", index=2, transform="double")
        assert error.context.details == {"index": 2, "transform": "double"}

    def test_stream_protocol_error_round_trip(self) -> None:
        """Test a service marker is preserved verbatim."""
        marker = {"error": "statement timeout", "code": "57014"}
        error = StreamProtocolError.from_marker(marker)

        assert error.message == "statement timeout"
        assert error.to_marker() is marker


class TestErrorMarkers:
    """Tests for marker helpers."""

    @pytest.mark.parametrize(
        ("record", "expected"),
        [
            ({"error": "boom"}, True),
            ({"error": {"code": 1}}, True),
            ({"error": ""}, False),
            ({"error": None}, False),
            ({"a": 1}, False),
            (["error"], False),
            ("error", False),
            (None, False),
        ],
    )
    def test_is_error_marker(self, record: object, expected: bool) -> None:
        """Test marker detection."""
        assert is_error_marker(record) is expected

    def test_find_error_marker(self) -> None:
        """Test scanning a parsed output array."""
        assert find_error_marker([{"a": 1}, {"error": "boom"}]) == {"error": "boom"}
        assert find_error_marker([{"a": 1}]) is None
