"""
httpx-backed transport.

Sends requests through a persistent httpx.AsyncClient (connection pooling).
Status codes are never turned into exceptions here; deciding what a 429 or
a 503 means is the retry layer's job.
"""

from typing import Any, Mapping, Optional, Union

import httpx
import structlog

logger = structlog.get_logger(__name__)

# Options consumed by HttpxTransport; any other key is passed to client.request()
_OWN_OPTIONS = frozenset({"method", "headers", "body", "signal"})


class HttpxTransport:
    """
    Transport implementation using httpx for async HTTP communication.

    The per-attempt `signal` option is accepted but not inspected: the retry
    layer cancels the task running `call()`, which makes httpx abort the
    exchange and release the connection.
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
        connection_limits: Optional[httpx.Limits] = None,
        follow_redirects: bool = True,
    ):
        """
        Initialize transport.

        Args:
            client: Existing AsyncClient to use (not closed by this transport)
            timeout: Default httpx timeout in seconds (None = no timeout)
            connection_limits: httpx connection pool limits (default: 10 max connections)
            follow_redirects: Whether redirects are followed
        """
        if connection_limits is None:
            connection_limits = httpx.Limits(
                max_keepalive_connections=5,
                max_connections=10,
                keepalive_expiry=30.0
            )

        self._client = client
        self._owns_client = client is None
        self._timeout = timeout
        self._connection_limits = connection_limits
        self._follow_redirects = follow_redirects

        logger.debug(
            "HttpxTransport initialized",
            timeout=timeout,
            external_client=not self._owns_client,
        )

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the async HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout),
                limits=self._connection_limits,
                follow_redirects=self._follow_redirects,
            )
            self._owns_client = True
            logger.debug("Created new httpx AsyncClient")
        return self._client

    async def call(
        self,
        target: Union[str, httpx.URL, httpx.Request],
        options: Optional[Mapping[str, Any]] = None,
    ) -> httpx.Response:
        """
        Send one request and return the fully-read response.

        Raises:
            httpx.TransportError: Connection, timeout and protocol failures
        """
        client = await self._get_client()

        if isinstance(target, httpx.Request):
            return await client.send(target)

        options = dict(options or {})
        extra = {key: value for key, value in options.items() if key not in _OWN_OPTIONS}
        method = options.get("method") or "GET"

        response = await client.request(
            method,
            str(target),
            headers=options.get("headers"),
            content=options.get("body"),
            **extra,
        )
        logger.debug(
            "HTTP exchange completed",
            method=method,
            url=str(target),
            status_code=response.status_code,
        )
        return response

    async def close(self):
        """Close the HTTP client if this transport created it."""
        if self._owns_client and self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            logger.debug("Closed httpx AsyncClient")

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()
