"""Shared test fixtures and configuration for all tests.

This conftest.py provides common fixtures used across unit and integration tests.
"""

from typing import Any, Optional
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from fetch_retry.config import StaticConfigSource
from fetch_retry.models.config import RetryConfig
from fetch_retry.notifications.sink import NotificationSink
from fetch_retry.retry.engine import RetryOrchestrator
from fetch_retry.retry.url_filter import PatternCache, UrlFilter


@pytest.fixture
def fast_config() -> RetryConfig:
    """Retry config with zero delays so retry loops run instantly.

    Override fields with model_copy:
        config = fast_config.model_copy(update={"max_retries": 1})
    """
    return RetryConfig(
        max_retries=3,
        retry_delay_ms=0,
        rate_limit_delay_ms=0,
        min_retry_delay_ms=0,
        enable_thinking_timeout=False,
    )


@pytest.fixture
def make_response():
    """Factory fixture for httpx responses.

    Usage:
        response = make_response(429, headers={"Retry-After": "2"})
        response = make_response(200, json={"ok": True})
    """
    def _make(status_code: int = 200, **kwargs: Any) -> httpx.Response:
        return httpx.Response(status_code, **kwargs)

    return _make


@pytest.fixture
def mock_notifier() -> MagicMock:
    """Notification sink double recording on_retry / on_final_failure calls."""
    return MagicMock(spec=NotificationSink)


@pytest.fixture
def make_orchestrator(mock_notifier: MagicMock):
    """Factory fixture wiring a RetryOrchestrator around a mocked transport.

    Usage:
        orchestrator, transport = make_orchestrator(config, side_effect=[...])
    """
    def _make(
        config: RetryConfig,
        side_effect: Optional[Any] = None,
        return_value: Optional[httpx.Response] = None,
    ) -> tuple[RetryOrchestrator, AsyncMock]:
        transport = MagicMock()
        transport.call = AsyncMock(side_effect=side_effect, return_value=return_value)
        orchestrator = RetryOrchestrator(
            transport=transport,
            config_source=StaticConfigSource(config),
            notifier=mock_notifier,
            url_filter=UrlFilter(PatternCache()),
            record_metrics=False,
        )
        return orchestrator, transport.call

    return _make
