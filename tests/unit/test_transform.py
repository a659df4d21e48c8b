"""Tests for the transform pipeline."""

import asyncio

import pytest

from shared_tables.errors import TransformError
from shared_tables.pipeline import (
    FILTERED,
    TransformPipeline,
    camelize,
    camelize_keys,
    drop_if,
    filter_records,
    map_record,
)


def double(record: dict) -> dict:
    return {**record, "a": record["a"] * 2}


class TestTransformPipeline:
    """Tests for TransformPipeline."""

    @pytest.mark.asyncio
    async def test_double_then_filter(self) -> None:
        """Test doubling then dropping values above four."""
        pipeline = TransformPipeline([double, drop_if(lambda r: r["a"] > 4)])

        results = [await pipeline.apply({"a": a}) for a in (1, 2, 3)]

        assert results == [{"a": 2}, {"a": 4}, FILTERED]

    @pytest.mark.asyncio
    async def test_empty_pipeline_is_identity(self) -> None:
        """Test an empty pipeline returns records unchanged."""
        pipeline = TransformPipeline()
        record = {"nested": [1, {"x": None}]}

        assert await pipeline.apply(record) is record
        assert await pipeline.apply(None) is None
        assert len(pipeline) == 0
        assert not pipeline

    @pytest.mark.asyncio
    async def test_async_transform(self) -> None:
        """Test awaitable transform results are awaited."""

        async def slow_double(record: dict) -> dict:
            await asyncio.sleep(0)
            return double(record)

        pipeline = TransformPipeline([slow_double, slow_double])
        assert await pipeline.apply({"a": 3}) == {"a": 12}

    @pytest.mark.asyncio
    async def test_filter_stops_pipeline(self) -> None:
        """Test transforms after FILTERED are not called."""
        calls = []

        def record_call(record: dict) -> dict:
            calls.append(record)
            return record

        pipeline = TransformPipeline([lambda r: FILTERED, record_call])

        assert await pipeline.apply({"a": 1}) is FILTERED
        assert calls == []

    @pytest.mark.asyncio
    async def test_none_is_not_filtered(self) -> None:
        """Test a transform returning None keeps a null record."""
        pipeline = TransformPipeline([lambda r: None])
        assert await pipeline.apply({"a": 1}) is None

    @pytest.mark.asyncio
    async def test_raising_transform(self) -> None:
        """Test a raising transform becomes TransformError."""

        def explode(record: dict) -> dict:
            raise KeyError("missing")

        pipeline = TransformPipeline([double, explode])

        with pytest.raises(TransformError) as exc_info:
            await pipeline.apply({"a": 1})

        error = exc_info.value
        assert error.index == 1
        assert error.transform.endswith("explode")
        assert isinstance(error.__cause__, KeyError)
        assert error.to_marker() == {"error": error.message}

    def test_with_transform_is_immutable(self) -> None:
        """Test with_transform returns a new pipeline."""
        base = TransformPipeline([double])
        extended = base.with_transform(camelize_keys)

        assert len(base) == 1
        assert len(extended) == 2
        assert list(extended) == [double, camelize_keys]

    def test_caller_list_not_shared(self) -> None:
        """Test mutating the source list does not change the pipeline."""
        transforms = [double]
        pipeline = TransformPipeline(transforms)
        transforms.append(double)

        assert len(pipeline) == 1


class TestHelpers:
    """Tests for transform helpers."""

    @pytest.mark.asyncio
    async def test_map_record(self) -> None:
        """Test map_record wraps a function."""
        pipeline = TransformPipeline([map_record(lambda r: r["a"])])
        assert await pipeline.apply({"a": 5}) == 5

    @pytest.mark.asyncio
    async def test_filter_records_keeps_matches(self) -> None:
        """Test filter_records keeps records matching the predicate."""
        pipeline = TransformPipeline([filter_records(lambda r: r["a"] % 2 == 0)])
        assert await pipeline.apply({"a": 2}) == {"a": 2}
        assert await pipeline.apply({"a": 3}) is FILTERED

    def test_filtered_sentinel(self) -> None:
        """Test the sentinel is falsy and has a readable repr."""
        assert not FILTERED
        assert repr(FILTERED) == "FILTERED"
        assert type(FILTERED)() is FILTERED

    @pytest.mark.parametrize(
        ("key", "expected"),
        [
            ("block_number", "blockNumber"),
            ("tx_hash_2", "txHash2"),
            ("already", "already"),
            ("_private_key", "_privateKey"),
            ("double__under", "doubleUnder"),
        ],
    )
    def test_camelize(self, key: str, expected: str) -> None:
        """Test snake_case to camelCase conversion."""
        assert camelize(key) == expected

    def test_camelize_keys_recursive(self) -> None:
        """Test nested dicts and lists are converted."""
        record = {"block_number": 1, "log_items": [{"log_index": 0}], "topics": ["a_b"]}

        assert camelize_keys(record) == {
            "blockNumber": 1,
            "logItems": [{"logIndex": 0}],
            "topics": ["a_b"],
        }
