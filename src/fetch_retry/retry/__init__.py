"""
Retry orchestration for HTTP transports.

This package implements transparent retries around any Transport:

1. **UrlFilter**: decides whether a URL gets retry logic at all
2. **RequestSnapshot**: buffers the request once so it can be replayed
3. **CancellationBridge**: per-attempt tokens linked to the caller's token
4. **FailureClassifier**: success / retryable / terminal verdicts
5. **BackoffCalculator**: jittered exponential delays honoring Retry-After

Usage:
    >>> from fetch_retry.retry import RetryOrchestrator
    >>> orchestrator = RetryOrchestrator(transport, config_source)
    >>> response = await orchestrator.call("https://api.example.com/v1/chat/completions", options)
"""

from fetch_retry.retry.backoff import BackoffCalculator
from fetch_retry.retry.cancellation import AttemptResult, CancellationBridge, CancellationToken
from fetch_retry.retry.classifier import FailureClassifier
from fetch_retry.retry.engine import RetryOrchestrator
from fetch_retry.exceptions import (
    ClientError,
    EmbeddedResponseError,
    FetchRetryError,
    HTTPFailureError,
    RateLimitedError,
    ServerError,
    ThinkingTimeoutError,
    UserAbortError,
)
from fetch_retry.retry.outcomes import AttemptOutcome, RetryableFailure, Success, TerminalFailure
from fetch_retry.retry.snapshot import RequestSnapshot
from fetch_retry.retry.url_filter import PatternCache, UrlFilter

__all__ = [
    "AttemptOutcome",
    "AttemptResult",
    "BackoffCalculator",
    "CancellationBridge",
    "CancellationToken",
    "ClientError",
    "EmbeddedResponseError",
    "FailureClassifier",
    "FetchRetryError",
    "HTTPFailureError",
    "PatternCache",
    "RateLimitedError",
    "RequestSnapshot",
    "RetryOrchestrator",
    "RetryableFailure",
    "ServerError",
    "Success",
    "TerminalFailure",
    "ThinkingTimeoutError",
    "UrlFilter",
    "UserAbortError",
]
