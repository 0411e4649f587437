"""
Transport interface.

A transport performs one HTTP exchange with a fetch-like calling convention:
a URL (or complete httpx.Request) plus an options mapping. The retry
orchestrator exposes the same convention, so a retrying transport can be
dropped in wherever a plain one is expected.

Options understood by every transport:
- method: HTTP method (default GET)
- headers: Mapping or httpx.Headers
- body: bytes, str, or a (async) iterable of byte chunks
- signal: CancellationToken for this exchange

Any other key is transport-specific (timeout, params, extensions, ...).
"""

from typing import Any, Mapping, Optional, Protocol, Union, runtime_checkable

import httpx


@runtime_checkable
class Transport(Protocol):
    """
    Anything that can perform a single HTTP exchange.

    Implementations return the response for every status code and raise
    only for transport-level failures (connection, DNS, protocol errors).
    """

    async def call(
        self,
        target: Union[str, httpx.URL, httpx.Request],
        options: Optional[Mapping[str, Any]] = None,
    ) -> httpx.Response:
        ...
