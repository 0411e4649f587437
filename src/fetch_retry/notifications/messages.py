"""Text of user-facing retry and failure notices."""

from typing import Optional

import httpx

from fetch_retry.exceptions import ThinkingTimeoutError, UserAbortError


def _error_text(error: BaseException) -> str:
    return str(error) or type(error).__name__


def format_retry_message(attempt_number: int, max_retries: int, cause: Optional[BaseException] = None) -> str:
    """Build the notice shown before retry `attempt_number` of `max_retries`."""
    message = f"retry {attempt_number}/{max_retries}"
    if cause is not None:
        message = f"{message}: {_error_text(cause)}"
    return message


def format_failure_message(
    cause: Optional[BaseException],
    response: Optional[httpx.Response] = None,
) -> str:
    """
    Build the notice shown once all attempts have failed.

    The last response, when there is one, takes precedence over the
    exception in describing what went wrong.
    """
    if response is not None:
        status = response.status_code
        if status == 429:
            return "Rate limited (429): Too many requests"
        if status >= 500:
            return f"Server error ({status}): {response.reason_phrase}"
        if status == 403:
            return "Forbidden (403): Access denied"
        return f"HTTP {status}: {response.reason_phrase}"

    if isinstance(cause, ThinkingTimeoutError):
        return "Timeout: AI thinking process exceeded limit"
    if isinstance(cause, UserAbortError):
        return "Request aborted"
    if cause is not None:
        return f"Network error: {_error_text(cause)}"
    return "Fetch failed after all retries"
