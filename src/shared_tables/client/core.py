"""
Core TablesClient implementation.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable, Mapping
from typing import Any, Optional, Union

from pydantic import ValidationError

from shared_tables.client.session import StreamSession
from shared_tables.config import ClientConfig
from shared_tables.errors import PayloadEncodeError
from shared_tables.pipeline.base import FILTERED, Transform
from shared_tables.pipeline.transform import TransformPipeline, camelize_keys
from shared_tables.telemetry.logger import LogContext, get_logger, log_context
from shared_tables.transport import HttpTransport
from shared_tables.types.query import QueryPayload

logger = get_logger("shared_tables.client")

QUERY_PATH = "/query"
STREAM_PATH = "/stream"

Transforms = Optional[Union[TransformPipeline, Iterable[Transform]]]


class TablesClient:
    """Client for the shared tables query service.

    Example:
        >>> async with TablesClient(ClientConfig.from_env()) as client:
        ...     rows = await client.run_query(ethereum.blocks().limit(5))
        ...     session = await client.stream_query(
        ...         ethereum.transactions().where("block_number", 100),
        ...         [map_record(lambda r: r["hash"])],
        ...     )
        ...     body = await session.read()
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        *,
        transport: HttpTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            config: Client configuration; read from the environment if omitted
            transport: HTTP transport; built from ``config`` if omitted
        """
        self._config = config or ClientConfig.from_env()
        self._transport = transport or HttpTransport(self._config)

    @property
    def config(self) -> ClientConfig:
        return self._config

    async def run_query(
        self,
        query: Any,
        transforms: Transforms = None,
        *,
        camel_response: bool | None = None,
    ) -> Any:
        """Run a query and return the whole (transformed) result.

        A list result has the pipeline applied to each row, dropping
        filtered rows; any other value is transformed as a single record
        (``None`` if it was filtered).

        Args:
            query: QueryBuilder, QueryPayload, ``{sql, bindings}`` mapping or SQL text
            transforms: Transforms applied to each row, in order
            camel_response: Camelize keys after the transforms (config default)

        Raises:
            PayloadEncodeError: If the query cannot be packaged
            RequestError: On network/connection errors
            StatusError: On a non-200 response
            DecodeError: If the body is not valid JSON
            TransformError: If a transform raises
        """
        payload = self._package_query(query)
        pipeline = self._build_pipeline(transforms, camel_response)

        context = LogContext(
            endpoint=QUERY_PATH, origin=self._config.origin, query_digest=payload.digest
        )
        with log_context(context):
            logger.debug("Running query", bindings=len(payload.bindings))
            result = await self._transport.post_json(QUERY_PATH, payload)

            if not pipeline:
                return result

            if isinstance(result, list):
                rows = []
                for row in result:
                    transformed = await pipeline.apply(row)
                    if transformed is not FILTERED:
                        rows.append(transformed)
                logger.debug("Query finished", rows=len(result), kept=len(rows))
                return rows

            transformed = await pipeline.apply(result)
            return None if transformed is FILTERED else transformed

    async def stream_query(
        self,
        query: Any,
        transforms: Transforms = None,
        *,
        camel_response: bool | None = None,
    ) -> StreamSession:
        """Open a streamed query.

        Returns once the service has answered with headers; the body is
        read as the returned session is consumed.

        Args:
            query: QueryBuilder, QueryPayload, ``{sql, bindings}`` mapping or SQL text
            transforms: Transforms applied to each row, in order
            camel_response: Camelize keys after the transforms (config default)

        Returns:
            StreamSession producing one JSON array

        Raises:
            PayloadEncodeError: If the query cannot be packaged
            RequestError: If the request cannot be sent
            StatusError: On a non-200 response
        """
        payload = self._package_query(query)
        pipeline = self._build_pipeline(transforms, camel_response)
        session_id = uuid.uuid4().hex[:16]

        context = LogContext(
            session_id=session_id,
            endpoint=STREAM_PATH,
            origin=self._config.origin,
            query_digest=payload.digest,
        )
        with log_context(context):
            logger.debug("Opening stream", transforms=len(pipeline))
            upstream = await self._transport.open_stream(STREAM_PATH, payload)
            logger.info("Stream opened", session_id=session_id)

        return StreamSession(upstream, pipeline, session_id=session_id)

    def _package_query(self, query: Any) -> QueryPayload:
        """Turn any supported query form into a payload.

        Raises:
            PayloadEncodeError: If the query cannot be packaged
        """
        if isinstance(query, QueryPayload):
            return query

        try:
            if hasattr(query, "to_payload"):
                payload = query.to_payload()
            elif isinstance(query, Mapping):
                payload = QueryPayload.model_validate(dict(query))
            elif isinstance(query, str):
                payload = QueryPayload(sql=query)
            else:
                raise PayloadEncodeError(
                    f"Unsupported query type: {type(query).__name__}"
                )
        except PayloadEncodeError:
            raise
        except (ValidationError, TypeError, ValueError) as e:
            raise PayloadEncodeError(f"Error while packaging query: {e}", cause=e) from e

        if not isinstance(payload, QueryPayload):
            raise PayloadEncodeError(
                f"to_payload() returned {type(payload).__name__}, expected QueryPayload"
            )
        return payload

    def _build_pipeline(
        self, transforms: Transforms, camel_response: bool | None
    ) -> TransformPipeline:
        pipeline = (
            transforms
            if isinstance(transforms, TransformPipeline)
            else TransformPipeline(transforms)
        )
        camel = self._config.camel_response if camel_response is None else camel_response
        if camel:
            pipeline = pipeline.with_transform(camelize_keys)
        return pipeline

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._transport.close()

    async def __aenter__(self) -> TablesClient:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()
