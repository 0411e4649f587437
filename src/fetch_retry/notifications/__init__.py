"""
Retry notifications.

Components:
- NotificationSink: Protocol for retry / final-failure notices
- LogNotificationSink: structlog-backed sink
- format_retry_message / format_failure_message: notice texts
"""

from fetch_retry.notifications.messages import format_failure_message, format_retry_message
from fetch_retry.notifications.sink import LogNotificationSink, NotificationSink

__all__ = [
    "NotificationSink",
    "LogNotificationSink",
    "format_retry_message",
    "format_failure_message",
]
