"""
Fetch Retry - transparent retry orchestration for async HTTP transports.

Wraps any transport call so that transient failures (rate limiting, server
errors, network faults, stalled reasoning) are retried with bounded, jittered
exponential backoff, while user-initiated cancellation propagates at once.

Architecture: injectable Transport + RetryOrchestrator + structured cancellation
"""

from fetch_retry.client import create_retrying_transport
from fetch_retry.retry.cancellation import CancellationToken
from fetch_retry.retry.engine import RetryOrchestrator

__version__ = "0.1.0"

__all__ = [
    "CancellationToken",
    "RetryOrchestrator",
    "create_retrying_transport",
]
