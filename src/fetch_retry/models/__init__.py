"""
Data models for the retry layer.

Components:
- RetryConfig: Immutable per-call retry configuration
- Enums: UrlFilterMode, FailureKind, CancelOrigin
"""

from fetch_retry.models.config import MAX_DELAY_MS, RetryConfig
from fetch_retry.models.enums import CancelOrigin, FailureKind, UrlFilterMode

__all__ = [
    "MAX_DELAY_MS",
    "RetryConfig",
    "CancelOrigin",
    "FailureKind",
    "UrlFilterMode",
]
