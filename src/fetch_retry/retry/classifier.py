"""
Failure classification for transport attempts.

Turns the raw result of one attempt into an AttemptOutcome. Decision table,
in priority order:

    1. Cancelled by the caller's token       -> terminal USER_ABORT
    2. Cancelled by the thinking timeout     -> retryable THINKING_TIMEOUT
    3. Any other raised error                -> retryable NETWORK_ERROR
    4. Status 429                            -> retryable RATE_LIMITED
    5. Status >= 500                         -> retryable SERVER_ERROR
    6. Status 400-499                        -> retryable CLIENT_ERROR
                                                (terminal if retry_client_errors is off)
    7. Status 2xx with JSON `error` field    -> retryable EMBEDDED_ERROR
                                                (only with check_response_error_field)
    8. Anything else                         -> Success
"""

import json
from typing import Any, Optional

import httpx
import structlog

from fetch_retry.models.config import RetryConfig
from fetch_retry.models.enums import CancelOrigin, FailureKind
from fetch_retry.retry.backoff import parse_retry_after
from fetch_retry.retry.cancellation import AttemptResult
from fetch_retry.exceptions import (
    ClientError,
    EmbeddedResponseError,
    RateLimitedError,
    ServerError,
    ThinkingTimeoutError,
    UserAbortError,
)
from fetch_retry.retry.outcomes import (
    AttemptOutcome,
    RetryableFailure,
    Success,
    TerminalFailure,
)

logger = structlog.get_logger(__name__)

# Error texts this short ("", "no", ...) are not treated as real errors
MIN_ERROR_LENGTH = 2


def extract_error_message(data: Any) -> Optional[str]:
    """
    Pull an error message out of a decoded JSON body.

    Accepts `{"error": "text"}` and `{"error": {"message": "text", ...}}`;
    any other object/array `error` value is serialized as a whole. Returns
    None when there is no meaningful error.
    """
    if not isinstance(data, dict):
        return None
    error = data.get("error")
    if error is None:
        return None

    message: Optional[str] = None
    if isinstance(error, str):
        message = error
    elif isinstance(error, dict) and isinstance(error.get("message"), str) and error["message"]:
        message = error["message"]
    elif isinstance(error, (dict, list)):
        message = json.dumps(error)

    if message and len(message) > MIN_ERROR_LENGTH:
        return message
    return None


class FailureClassifier:
    """Classifies attempt results into Success / RetryableFailure / TerminalFailure."""

    async def classify(self, result: AttemptResult, config: RetryConfig) -> AttemptOutcome:
        if result.error is not None:
            return self._classify_error(result)
        return await self._classify_response(result.response, config)

    def _classify_error(self, result: AttemptResult) -> AttemptOutcome:
        error = result.error

        if result.cancel_origin == CancelOrigin.EXTERNAL or isinstance(error, UserAbortError):
            logger.info("Request aborted by user, not retrying")
            return TerminalFailure(kind=FailureKind.USER_ABORT, cause=error)

        if result.cancel_origin == CancelOrigin.INTERNAL or isinstance(error, ThinkingTimeoutError):
            return RetryableFailure(kind=FailureKind.THINKING_TIMEOUT, cause=error)

        logger.warning(
            "Transport error during fetch attempt",
            error=str(error),
            error_type=type(error).__name__,
        )
        return RetryableFailure(kind=FailureKind.NETWORK_ERROR, cause=error)

    async def _classify_response(
        self, response: httpx.Response, config: RetryConfig
    ) -> AttemptOutcome:
        status = response.status_code
        reason = response.reason_phrase
        details = {"status": status, "url": _response_url(response)}

        if status == 429:
            return RetryableFailure(
                kind=FailureKind.RATE_LIMITED,
                cause=RateLimitedError(f"Rate limited (429): {reason}", response, details),
                delay_hint_ms=parse_retry_after(response),
                response=response,
            )

        if status >= 500:
            return RetryableFailure(
                kind=FailureKind.SERVER_ERROR,
                cause=ServerError(f"Server error ({status}): {reason}", response, details),
                delay_hint_ms=parse_retry_after(response),
                response=response,
            )

        if status >= 400:
            cause = ClientError(f"Client error ({status}): {reason}", response, details)
            if not config.retry_client_errors:
                return TerminalFailure(kind=FailureKind.CLIENT_ERROR, cause=cause, response=response)
            return RetryableFailure(
                kind=FailureKind.CLIENT_ERROR,
                cause=cause,
                delay_hint_ms=parse_retry_after(response),
                response=response,
            )

        if 200 <= status < 300 and config.check_response_error_field:
            error_message = await self._embedded_error(response)
            if error_message is not None:
                logger.warning("Response body contains error field", error_message=error_message)
                return RetryableFailure(
                    kind=FailureKind.EMBEDDED_ERROR,
                    cause=EmbeddedResponseError(
                        f"Response error: {error_message}",
                        response,
                        error_message=error_message,
                        details=details,
                    ),
                    response=response,
                )

        return Success(response)

    async def _embedded_error(self, response: httpx.Response) -> Optional[str]:
        content_type = response.headers.get("content-type", "")
        if "application/json" not in content_type:
            return None
        try:
            body = await response.aread()
            data = json.loads(body)
        except (ValueError, httpx.StreamError) as e:
            logger.warning("Could not parse JSON response for error checking", error=str(e))
            return None
        return extract_error_message(data)


def _response_url(response: httpx.Response) -> Optional[str]:
    try:
        return str(response.request.url)
    except RuntimeError:
        # Responses built without a request (e.g. in tests) have no URL
        return None
