"""
Pipeline layer - Stream processing operators.

This module implements the record pipeline for streaming query responses:
- Decoder: Parses raw bytes into top-level JSON values
- TransformPipeline: Applies ordered record transforms with filtering
- ArrayEncoder: Re-frames records as a single JSON array
"""

from shared_tables.pipeline.base import FILTERED, Decoder, Record, Transform
from shared_tables.pipeline.decode import JsonStreamDecoder
from shared_tables.pipeline.encode import ArrayEncoder, FramingState, serialize
from shared_tables.pipeline.transform import (
    TransformPipeline,
    camelize,
    camelize_keys,
    drop_if,
    filter_records,
    map_record,
)

__all__ = [
    "FILTERED",
    "ArrayEncoder",
    "Decoder",
    "FramingState",
    "JsonStreamDecoder",
    "Record",
    "Transform",
    "TransformPipeline",
    "camelize",
    "camelize_keys",
    "drop_if",
    "filter_records",
    "map_record",
    "serialize",
]
