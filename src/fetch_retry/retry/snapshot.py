"""
Replayable request snapshots.

A RequestSnapshot captures method, headers and a fully-buffered body once, so
the same request can be sent again on every attempt. Streamed bodies can only
be read once, which is why they are drained here before the first attempt.
"""

import inspect
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Optional, Union

import httpx
import structlog

logger = structlog.get_logger(__name__)

# Option keys with dedicated snapshot fields; everything else is passed through
RESERVED_OPTIONS = frozenset({"method", "headers", "body", "signal"})

RequestTarget = Union[str, httpx.URL, httpx.Request]


def request_url(target: RequestTarget) -> str:
    """Return the URL of a call target as a string."""
    if isinstance(target, httpx.Request):
        return str(target.url)
    return str(target)


async def _read_body(body: Any) -> Optional[bytes]:
    """
    Buffer any supported body representation into owned bytes.

    Supported: bytes-like objects, str (UTF-8 encoded), async or sync
    iterables of byte/str chunks, and file-like objects exposing `read()`.
    """
    if body is None:
        return None
    if isinstance(body, (bytes, bytearray, memoryview)):
        return bytes(body)
    if isinstance(body, str):
        return body.encode("utf-8")

    chunks: list[bytes] = []
    if hasattr(body, "__aiter__"):
        async for chunk in body:
            chunks.append(chunk.encode("utf-8") if isinstance(chunk, str) else bytes(chunk))
    elif hasattr(body, "read"):
        data = body.read()
        if inspect.isawaitable(data):
            data = await data
        return data.encode("utf-8") if isinstance(data, str) else bytes(data)
    elif hasattr(body, "__iter__") and not isinstance(body, Mapping):
        for chunk in body:
            chunks.append(chunk.encode("utf-8") if isinstance(chunk, str) else bytes(chunk))
    else:
        raise TypeError(f"Unsupported request body type: {type(body).__name__}")

    buffered = b"".join(chunks)
    logger.debug("Drained streamed request body", chunks=len(chunks), size=len(buffered))
    return buffered


@dataclass(frozen=True)
class RequestSnapshot:
    """
    Immutable, replayable description of one request.

    Attributes:
        url: Absolute request URL
        method: Upper-cased HTTP method
        header_items: Header (name, value) pairs in original order
        body: Buffered body bytes, or None for body-less requests
        other: Remaining transport options (timeout, params, extensions, ...)
    """

    url: str
    method: str = "GET"
    header_items: tuple[tuple[str, str], ...] = ()
    body: Optional[bytes] = None
    other: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    async def capture(
        cls,
        target: RequestTarget,
        options: Optional[Mapping[str, Any]] = None,
    ) -> "RequestSnapshot":
        """
        Build a snapshot from a request object or a URL + options pair.

        Any stream in the input is consumed exactly once here.

        Args:
            target: URL string/httpx.URL, or a complete httpx.Request
            options: Fetch-style options (method, headers, body, signal, ...)

        Returns:
            Snapshot that can be replayed any number of times
        """
        options = dict(options or {})
        other = {key: value for key, value in options.items() if key not in RESERVED_OPTIONS}

        if isinstance(target, httpx.Request):
            content = await target.aread()
            headers = httpx.Headers(target.headers)
            method = target.method
            body = content or None
            if body is not None and "transfer-encoding" in headers:
                # Buffered bodies are re-sent with a Content-Length instead
                del headers["transfer-encoding"]
            if target.extensions:
                other.setdefault("extensions", dict(target.extensions))
        else:
            headers = httpx.Headers(options.get("headers"))
            method = options.get("method") or "GET"
            body = await _read_body(options.get("body"))

        snapshot = cls(
            url=request_url(target),
            method=method.upper(),
            header_items=tuple(headers.multi_items()),
            body=body,
            other=MappingProxyType(other),
        )
        logger.debug(
            "Captured request snapshot",
            url=snapshot.url,
            method=snapshot.method,
            has_body=snapshot.body is not None,
        )
        return snapshot

    @property
    def headers(self) -> httpx.Headers:
        """A fresh, case-insensitive copy of the captured headers."""
        return httpx.Headers(list(self.header_items))

    def build_options(self, signal: Any = None) -> dict[str, Any]:
        """
        Create a new options mapping for one attempt.

        Every call returns a fresh dict with its own headers object; the
        body bytes are shared, which is safe because bytes are immutable.
        """
        options: dict[str, Any] = dict(self.other)
        options["method"] = self.method
        options["headers"] = self.headers
        if self.body is not None:
            options["body"] = self.body
        if signal is not None:
            options["signal"] = signal
        return options
