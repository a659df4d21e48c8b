"""
Record transforms.

A TransformPipeline runs an ordered list of sync or async callables over one
record at a time. Returning FILTERED from any transform drops the record.
"""

from __future__ import annotations

import inspect
import re
from typing import TYPE_CHECKING, Any

from shared_tables.errors import TransformError
from shared_tables.pipeline.base import FILTERED, Record, Transform, TransformResult

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Iterator

_CAMEL_BOUNDARY = re.compile(r"(?<=[^_])_+([a-zA-Z0-9])")


class TransformPipeline:
    """Ordered, immutable sequence of record transforms.

    Each transform receives the previous one's output. The pipeline holds
    no per-record state, so one instance can serve many sessions at once.

    Example:
        >>> pipeline = TransformPipeline([
        ...     map_record(lambda r: {**r, "a": r["a"] * 2}),
        ...     drop_if(lambda r: r["a"] > 4),
        ... ])
        >>> await pipeline.apply({"a": 1})
        {'a': 2}
    """

    def __init__(self, transforms: Iterable[Transform] | None = None) -> None:
        self._transforms: tuple[Transform, ...] = tuple(transforms or ())

    async def apply(self, record: Record) -> TransformResult:
        """Run a record through every transform.

        Args:
            record: Decoded record

        Returns:
            The transformed record, or FILTERED if a transform dropped it

        Raises:
            TransformError: If a transform raises
        """
        result = record
        for index, transform in enumerate(self._transforms):
            try:
                result = transform(result)
                if inspect.isawaitable(result):
                    result = await result
            except Exception as e:
                name = _transform_name(transform)
                raise TransformError(
                    f"Transform {name} failed: {e}",
                    index=index,
                    transform=name,
                    cause=e,
                ) from e
            if result is FILTERED:
                return FILTERED
        return result

    def with_transform(self, transform: Transform) -> TransformPipeline:
        """Return a new pipeline with a transform appended."""
        return TransformPipeline([*self._transforms, transform])

    @property
    def transforms(self) -> tuple[Transform, ...]:
        return self._transforms

    def __len__(self) -> int:
        return len(self._transforms)

    def __iter__(self) -> Iterator[Transform]:
        return iter(self._transforms)

    def __repr__(self) -> str:
        names = ", ".join(_transform_name(t) for t in self._transforms)
        return f"TransformPipeline([{names}])"


def _transform_name(transform: Transform) -> str:
    name = getattr(transform, "__qualname__", None) or getattr(transform, "__name__", None)
    return name or type(transform).__name__


def map_record(fn: Callable[[Record], Any]) -> Transform:
    """Wrap a plain (sync or async) function as a named transform."""

    def _map(record: Record) -> Any:
        return fn(record)

    _map.__qualname__ = f"map_record({_transform_name(fn)})"
    return _map


def filter_records(predicate: Callable[[Record], bool]) -> Transform:
    """Keep records for which ``predicate`` is true."""

    def _filter(record: Record) -> TransformResult:
        return record if predicate(record) else FILTERED

    _filter.__qualname__ = f"filter_records({_transform_name(predicate)})"
    return _filter


def drop_if(predicate: Callable[[Record], bool]) -> Transform:
    """Drop records for which ``predicate`` is true."""

    def _drop(record: Record) -> TransformResult:
        return FILTERED if predicate(record) else record

    _drop.__qualname__ = f"drop_if({_transform_name(predicate)})"
    return _drop


def camelize(key: str) -> str:
    """Convert a snake_case key to camelCase.

    Leading underscores are kept: ``_private_key`` -> ``_privateKey``.
    """
    return _CAMEL_BOUNDARY.sub(lambda m: m.group(1).upper(), key)


def camelize_keys(record: Record) -> Record:
    """Recursively camelize dict keys in a record."""
    if isinstance(record, dict):
        return {
            camelize(k) if isinstance(k, str) else k: camelize_keys(v)
            for k, v in record.items()
        }
    if isinstance(record, list):
        return [camelize_keys(v) for v in record]
    return record
