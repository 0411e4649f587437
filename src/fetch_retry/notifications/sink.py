"""
Notification sinks.

The orchestrator reports two events: a retry is about to happen, and the
call has failed for good. Sinks are fire-and-forget; the orchestrator calls
them through a guard, so a sink that raises cannot change the outcome.
"""

from typing import Optional, Protocol

import httpx
import structlog

from fetch_retry.models.config import RetryConfig
from fetch_retry.notifications.messages import format_failure_message, format_retry_message


class NotificationSink(Protocol):
    """Receiver of retry / final-failure notices."""

    def on_retry(self, attempt_number: int, max_retries: int, cause: Optional[BaseException]) -> None:
        ...

    def on_final_failure(
        self,
        cause: Optional[BaseException],
        last_response: Optional[httpx.Response],
        config: RetryConfig,
    ) -> None:
        ...


class LogNotificationSink:
    """Emits notices as structured log events on the `fetch_retry.notice` logger."""

    def __init__(self, logger=None):
        self.logger = logger or structlog.get_logger("fetch_retry.notice")

    def on_retry(self, attempt_number: int, max_retries: int, cause: Optional[BaseException]) -> None:
        self.logger.info(
            format_retry_message(attempt_number, max_retries, cause),
            attempt=attempt_number,
            max_retries=max_retries,
        )

    def on_final_failure(
        self,
        cause: Optional[BaseException],
        last_response: Optional[httpx.Response],
        config: RetryConfig,
    ) -> None:
        if not config.show_error_notification:
            self.logger.debug("Error notifications are disabled")
            return
        self.logger.error(
            format_failure_message(cause, last_response),
            status_code=last_response.status_code if last_response is not None else None,
            error_type=type(cause).__name__ if cause is not None else None,
        )
