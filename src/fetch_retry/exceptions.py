"""
Custom exceptions for the retry layer.

These exceptions give every failure the orchestrator can surface a concrete
type, so callers can tell a user cancellation apart from an exhausted retry
budget and inspect the last response that caused the failure.
"""

from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    import httpx


class FetchRetryError(Exception):
    """
    Base exception for all retry-layer errors.

    All errors raised by the orchestrator itself inherit from this to allow
    catching them with a single except clause. Exceptions raised by the
    transport (e.g. httpx.ConnectError) are surfaced as-is instead.
    """
    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class UserAbortError(FetchRetryError):
    """
    Raised when the caller's cancellation token fires.

    Never retried. Raised whether the token fires before the first attempt,
    while an attempt is in flight, or during a backoff wait.
    """
    pass


class ThinkingTimeoutError(FetchRetryError):
    """
    Raised when an attempt exceeds the per-attempt thinking timeout.

    Retryable: the attempt is abandoned and a fresh one is scheduled.
    """
    pass


class HTTPFailureError(FetchRetryError):
    """
    Base exception for failures derived from a received HTTP response.

    Attributes:
        response: The response that was classified as a failure
    """
    def __init__(
        self,
        message: str,
        response: "httpx.Response",
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.response = response

    @property
    def status_code(self) -> int:
        return self.response.status_code


class RateLimitedError(HTTPFailureError):
    """Raised for 429 Too Many Requests responses."""
    pass


class ServerError(HTTPFailureError):
    """Raised for 5xx responses."""
    pass


class ClientError(HTTPFailureError):
    """
    Raised for 4xx responses other than 429.

    Retried like server errors unless `retry_client_errors` is disabled.
    """
    pass


class EmbeddedResponseError(HTTPFailureError):
    """
    Raised when a 2xx JSON body carries an `error` field.

    Only produced when `check_response_error_field` is enabled. The
    extracted error text is available as `error_message`.
    """
    def __init__(
        self,
        message: str,
        response: "httpx.Response",
        error_message: str,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message, response, details)
        self.error_message = error_message
