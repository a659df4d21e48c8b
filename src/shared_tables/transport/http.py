"""
HTTP transport using httpx for async requests.

Provides:
- One-shot JSON POST for /query
- Streaming POST for /stream, exposed as a StreamResponse
- Status and connection error mapping
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

import httpx

from shared_tables.errors import DecodeError, RequestError, StatusError
from shared_tables.transport.auth import get_auth_header

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from shared_tables.config import ClientConfig
    from shared_tables.types.query import QueryPayload


_UA_VERSION: str | None = None


def _get_ua_version() -> str:
    """Get package version for User-Agent (cached)."""
    global _UA_VERSION
    if _UA_VERSION is None:
        from shared_tables import __version__

        _UA_VERSION = __version__
    return _UA_VERSION


class StreamResponse:
    """An open streaming response body.

    Chunks are pulled one at a time from the socket, so a consumer that
    stops reading stops the transfer. ``abort`` releases the connection
    and is safe to call more than once.
    """

    def __init__(self, response: httpx.Response, *, url: str) -> None:
        self._response = response
        self._url = url
        self._closed = False

    @property
    def status_code(self) -> int:
        return self._response.status_code

    @property
    def headers(self) -> httpx.Headers:
        return self._response.headers

    @property
    def closed(self) -> bool:
        return self._closed

    async def iter_chunks(self) -> AsyncIterator[bytes]:
        """Yield raw body chunks in arrival order.

        Raises:
            RequestError: If the connection fails mid-body
        """
        try:
            async for chunk in self._response.aiter_bytes():
                if chunk:
                    yield chunk
        except (httpx.HTTPError, httpx.StreamError) as e:
            if self._closed:
                return
            raise RequestError(f"Stream interrupted: {e}", url=self._url, cause=e) from e

    async def abort(self) -> None:
        """Stop the transfer and release the connection."""
        if self._closed:
            return
        self._closed = True
        await self._response.aclose()


class HttpTransport:
    """HTTP transport for the query service.

    Example:
        >>> transport = HttpTransport(ClientConfig.from_env())
        >>> stream = await transport.open_stream("/stream", payload)
        >>> async for chunk in stream.iter_chunks():
        ...     process(chunk)
    """

    def __init__(
        self,
        config: ClientConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize HTTP transport.

        Args:
            config: Client configuration (origin, key, timeouts)
            transport: Optional httpx transport, mainly for tests
        """
        self._config = config
        self._base_url = config.origin
        self._transport = transport
        self._auth_headers = get_auth_header(config.api_key)

        # Client instance (lazy initialization)
        self._client: httpx.AsyncClient | None = None

    @property
    def base_url(self) -> str:
        return self._base_url

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            timeout = httpx.Timeout(
                self._config.timeout,
                connect=self._config.connect_timeout,
            )

            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=timeout,
                trust_env=self._config.trust_env,
                transport=self._transport,
            )

        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _build_headers(self, extra_headers: dict[str, str] | None = None) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": f"shared-tables-python/{_get_ua_version()}",
        }
        headers.update(self._auth_headers)
        if extra_headers:
            headers.update(extra_headers)
        return headers

    def _build_request(self, path: str, payload: QueryPayload) -> httpx.Request:
        # Serialization failures surface as PayloadEncodeError before any I/O
        body = payload.to_json()
        return self._get_client().build_request(
            "POST", path, content=body, headers=self._build_headers()
        )

    async def _send(self, request: httpx.Request, *, stream: bool) -> httpx.Response:
        try:
            return await self._get_client().send(request, stream=stream)
        except httpx.ConnectError as e:
            raise RequestError(f"Connection failed: {e}", url=str(request.url), cause=e) from e
        except httpx.TimeoutException as e:
            raise RequestError(f"Request timed out: {e}", url=str(request.url), cause=e) from e
        except httpx.HTTPError as e:
            raise RequestError(f"HTTP error: {e}", url=str(request.url), cause=e) from e

    async def post_json(self, path: str, payload: QueryPayload) -> Any:
        """POST a payload and return the decoded JSON body.

        Raises:
            PayloadEncodeError: If the payload cannot be serialized
            RequestError: On network/connection errors
            StatusError: On a non-200 response
            DecodeError: If the body is not valid JSON
        """
        request = self._build_request(path, payload)
        response = await self._send(request, stream=False)
        url = str(request.url)

        if response.status_code != 200:
            raise StatusError(
                f"Query service returned status {response.status_code}",
                status_code=response.status_code,
                url=url,
                body=response.text,
            )

        try:
            return json.loads(response.content)
        except ValueError as e:
            raise DecodeError(f"Invalid JSON in response body: {e}") from e

    async def open_stream(self, path: str, payload: QueryPayload) -> StreamResponse:
        """POST a payload and return the open streaming body.

        Only headers have been read when this returns.

        Raises:
            PayloadEncodeError: If the payload cannot be serialized
            RequestError: On network/connection errors
            StatusError: On a non-200 response
        """
        request = self._build_request(path, payload)
        response = await self._send(request, stream=True)
        url = str(request.url)

        if response.status_code != 200:
            try:
                body = (await response.aread()).decode("utf-8", errors="replace")
            except httpx.HTTPError:
                body = None
            finally:
                await response.aclose()
            raise StatusError(
                f"Query service returned status {response.status_code}",
                status_code=response.status_code,
                url=url,
                body=body,
            )

        return StreamResponse(response, url=url)

    async def __aenter__(self) -> HttpTransport:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()
