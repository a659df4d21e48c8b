"""Integration tests for TablesClient.stream_query over httpx."""

import json

import httpx
import pytest

from shared_tables import TablesClient, ethereum
from shared_tables.client import SessionPhase, TerminationReason
from shared_tables.errors import PayloadEncodeError, RequestError, StatusError
from shared_tables.pipeline import drop_if, map_record
from shared_tables.transport import HttpTransport


def make_client(config, transport: httpx.MockTransport) -> TablesClient:
    return TablesClient(config, transport=HttpTransport(config, transport=transport))


def double(record: dict) -> dict:
    return {**record, "a": record["a"] * 2}


class TestStreamQuery:
    """Tests for streamed queries."""

    @pytest.mark.asyncio
    async def test_seven_chunk_body(self, config, chunk_stream, stream_transport, split) -> None:
        """Test three rows split over seven chunks come out as one array."""
        body = b'{"a":1}\n{"a":2}\n{"a":3}\n'
        stream = chunk_stream(split(body, [3, 4, 1, 6, 2, 5]))
        assert len(stream.chunks) == 7

        async with make_client(config, stream_transport(stream)) as client:
            session = await client.stream_query("select a from t")
            output = await session.read()

        assert output == b'[{"a":1},{"a":2},{"a":3}]'
        assert session.phase is SessionPhase.CLOSED

    @pytest.mark.asyncio
    async def test_request_shape(self, config, chunk_stream, stream_transport, requests_seen) -> None:
        """Test the /stream request carries the payload and headers."""
        stream = chunk_stream([])
        query = ethereum.blocks().select("number").where("number", ">", 10).limit(2)

        async with make_client(config, stream_transport(stream)) as client:
            session = await client.stream_query(query)
            assert await session.read() == b"[]"

        request = requests_seen[0]
        assert request.method == "POST"
        assert str(request.url) == "http://tables.test/stream"
        assert request.headers["Authorization"] == "Bearer test-key"
        assert json.loads(request.content) == {
            "sql": 'select "number" from "ethereum"."blocks" where "number" > $1 limit $2',
            "bindings": [10, 2],
        }

    @pytest.mark.asyncio
    async def test_transforms_applied(self, config, chunk_stream, stream_transport) -> None:
        """Test the double-then-filter pipeline over a streamed body."""
        stream = chunk_stream([b'{"a":1}{"a":2}', b'{"a":3}'])

        async with make_client(config, stream_transport(stream)) as client:
            session = await client.stream_query(
                {"sql": "select a from t", "bindings": []},
                [double, drop_if(lambda r: r["a"] > 4)],
            )
            output = await session.read()

        assert output == b'[{"a":2},{"a":4}]'

    @pytest.mark.asyncio
    async def test_camel_response(self, config, chunk_stream, stream_transport) -> None:
        """Test keys are camelized after user transforms."""
        stream = chunk_stream([b'{"block_number": 1, "tx_hash": "0x1"}'])
        seen = []

        def capture(record: dict) -> dict:
            seen.append(sorted(record))
            return record

        async with make_client(config, stream_transport(stream)) as client:
            session = await client.stream_query("select 1", [capture], camel_response=True)
            output = await session.read()

        assert seen == [["block_number", "tx_hash"]]
        assert json.loads(output) == [{"blockNumber": 1, "txHash": "0x1"}]

    @pytest.mark.asyncio
    async def test_error_marker_fifth_of_ten(self, config, chunk_stream, stream_transport) -> None:
        """Test rows after an error marker are never requested."""
        chunks = [json.dumps({"a": i}).encode() for i in range(1, 5)]
        chunks.append(b'{"error":"boom"}')
        chunks.extend(json.dumps({"a": i}).encode() for i in range(6, 11))
        stream = chunk_stream(chunks)

        async with make_client(config, stream_transport(stream)) as client:
            session = await client.stream_query("select a from t", [map_record(double)])
            output = await session.read()

        assert output == b'[{"a":2},{"a":4},{"a":6},{"a":8},{"error":"boom"}]'
        assert stream.pulled == 5
        assert stream.closed is True
        assert session.stats.termination == TerminationReason.ERROR_MARKER.value

    @pytest.mark.asyncio
    async def test_connection_drop_in_band(self, config, chunk_stream, stream_transport) -> None:
        """Test a read failure mid-body becomes the final array element."""
        stream = chunk_stream([b'{"a":1}'], error=httpx.ReadError("connection reset"))

        async with make_client(config, stream_transport(stream)) as client:
            session = await client.stream_query("select a from t")
            parsed = json.loads(await session.read())

        assert parsed[0] == {"a": 1}
        assert parsed[1]["error"].startswith("Stream interrupted")
        assert len(parsed) == 2


class TestStreamCancellation:
    """Tests for cancelling a streamed query."""

    @pytest.mark.asyncio
    async def test_cancel_aborts_response(self, config, chunk_stream, stream_transport) -> None:
        """Test cancel() closes the HTTP response and stops output."""
        stream = chunk_stream([b'{"a":1}', b'{"a":2}', b'{"a":3}'])

        async with make_client(config, stream_transport(stream)) as client:
            session = await client.stream_query("select a from t")
            first = await session.__anext__()
            session.cancel()
            rest = [data async for data in session]
            await session.aclose()

        assert first == b'[{"a":1}'
        assert rest == []
        assert stream.closed is True
        assert stream.pulled == 1

    @pytest.mark.asyncio
    async def test_break_then_aclose(self, config, chunk_stream, stream_transport) -> None:
        """Test leaving the loop early and closing releases the response."""
        stream = chunk_stream([b'{"a":1}', b'{"a":2}', b'{"a":3}'])

        async with make_client(config, stream_transport(stream)) as client:
            async with await client.stream_query("select a from t") as session:
                async for _ in session:
                    break

        assert session.is_cancelled is True
        assert stream.closed is True


class TestStreamQueryErrors:
    """Tests for failures raised before streaming starts."""

    @pytest.mark.asyncio
    async def test_status_error(self, config, chunk_stream, stream_transport) -> None:
        """Test a non-200 answer raises instead of producing output."""
        stream = chunk_stream([b'{"message":"relation does not exist"}'])

        async with make_client(config, stream_transport(stream, status_code=400)) as client:
            with pytest.raises(StatusError) as exc_info:
                await client.stream_query("select * from missing")

        assert exc_info.value.status_code == 400
        assert "relation does not exist" in exc_info.value.body
        assert stream.closed is True

    @pytest.mark.asyncio
    async def test_connect_error(self, config) -> None:
        """Test a failed connection raises RequestError."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        async with make_client(config, httpx.MockTransport(handler)) as client:
            with pytest.raises(RequestError, match="Connection failed"):
                await client.stream_query("select 1")

    @pytest.mark.asyncio
    async def test_unpackageable_query(self, config, chunk_stream, stream_transport, requests_seen) -> None:
        """Test a bad query fails before any request is made."""
        async with make_client(config, stream_transport(chunk_stream([]))) as client:
            with pytest.raises(PayloadEncodeError):
                await client.stream_query(object())
            with pytest.raises(PayloadEncodeError):
                await client.stream_query({"sql": ""})
            with pytest.raises(PayloadEncodeError):
                await client.stream_query(ethereum.blocks().where("number", object()))

        assert requests_seen == []
