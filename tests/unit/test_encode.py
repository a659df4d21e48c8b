"""Tests for the framing encoder."""

import json

import pytest

from shared_tables.errors import EncodeError
from shared_tables.pipeline import ArrayEncoder, FramingState, serialize


class TestArrayEncoder:
    """Tests for ArrayEncoder."""

    def test_zero_records(self) -> None:
        """Test an empty stream frames as []."""
        encoder = ArrayEncoder()
        assert encoder.on_end() == b"[]"
        assert encoder.closed is True
        assert encoder.opened is True

    @pytest.mark.parametrize("count", [1, 2, 5])
    def test_n_records(self, count: int) -> None:
        """Test N records frame as one comma-joined array."""
        records = [{"i": i, "s": "é"} for i in range(count)]
        encoder = ArrayEncoder()

        output = b"".join(encoder.on_record(r) for r in records) + encoder.on_end()

        expected = b"[" + b",".join(serialize(r) for r in records) + b"]"
        assert output == expected
        assert json.loads(output) == records
        assert encoder.emitted_count == count

    def test_state_transitions(self) -> None:
        """Test IDLE -> OPEN -> CLOSED."""
        encoder = ArrayEncoder()
        assert encoder.state is FramingState.IDLE
        assert encoder.opened is False

        assert encoder.on_record(1) == b"[1"
        assert encoder.state is FramingState.OPEN
        assert encoder.on_record(None) == b",null"

        assert encoder.on_end() == b"]"
        assert encoder.state is FramingState.CLOSED

    def test_error_after_records(self) -> None:
        """Test the error marker is the last element."""
        encoder = ArrayEncoder()
        output = encoder.on_record({"a": 1}) + encoder.on_error({"error": "boom"})

        assert output == b'[{"a":1},{"error":"boom"}]'
        assert encoder.closed is True

    def test_error_before_records(self) -> None:
        """Test an error with nothing emitted still opens the array."""
        encoder = ArrayEncoder()
        assert encoder.on_error({"error": "boom"}) == b'[{"error":"boom"}]'

    def test_closed_is_terminal(self) -> None:
        """Test every event after close produces nothing."""
        encoder = ArrayEncoder()
        encoder.on_end()

        assert encoder.on_record({"a": 1}) == b""
        assert encoder.on_error({"error": "late"}) == b""
        assert encoder.on_end() == b""
        assert encoder.emitted_count == 0

    def test_unserializable_record(self) -> None:
        """Test a bad record raises without changing state."""
        encoder = ArrayEncoder()

        with pytest.raises(EncodeError):
            encoder.on_record({"a": object()})

        assert encoder.state is FramingState.IDLE
        assert encoder.on_record({"a": 1}) == b'[{"a":1}'

    def test_nan_not_serialized(self) -> None:
        """Test non-finite floats are rejected."""
        with pytest.raises(EncodeError):
            serialize(float("nan"))

    def test_unserializable_marker_falls_back(self) -> None:
        """Test a marker with extra unserializable fields still closes the array."""
        encoder = ArrayEncoder()
        output = encoder.on_error({"error": "boom", "detail": object()})

        assert output == b'[{"error":"boom"}]'

    def test_compact_utf8(self) -> None:
        """Test compact separators and non-ASCII kept."""
        assert serialize({"a": [1, 2], "b": "ü"}) == '{"a":[1,2],"b":"ü"}'.encode()
