"""Monitoring and metrics instrumentation for Fetch Retry.

Exports custom Prometheus metrics for operational monitoring and alerting.
"""

from fetch_retry.monitoring.metrics import (
    backoff_delay_seconds,
    fetch_attempts_total,
    fetch_calls_total,
)

__all__ = [
    "fetch_calls_total",
    "fetch_attempts_total",
    "backoff_delay_seconds",
]
