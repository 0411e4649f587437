"""
Transport abstraction and implementations.

Components:
- Transport: Protocol every wrapped transport satisfies
- HttpxTransport: Implementation over httpx.AsyncClient
"""

from fetch_retry.transport.base import Transport
from fetch_retry.transport.httpx_transport import HttpxTransport

__all__ = [
    "Transport",
    "HttpxTransport",
]
