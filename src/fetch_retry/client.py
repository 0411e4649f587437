"""
Composition of a ready-to-use retrying transport.

Instead of replacing a global fetch function, callers build a retrying
transport explicitly and pass it wherever a Transport is expected.
"""

from typing import Optional

import structlog

from fetch_retry.config import ConfigSource, MutableConfigSource, Settings, settings as default_settings
from fetch_retry.logging_config import configure_logging_from_settings
from fetch_retry.notifications.sink import LogNotificationSink, NotificationSink
from fetch_retry.retry.engine import RetryOrchestrator
from fetch_retry.retry.url_filter import PatternCache, UrlFilter
from fetch_retry.transport.base import Transport
from fetch_retry.transport.httpx_transport import HttpxTransport

logger = structlog.get_logger(__name__)


def create_retrying_transport(
    transport: Optional[Transport] = None,
    settings: Optional[Settings] = None,
    config_source: Optional[ConfigSource] = None,
    notifier: Optional[NotificationSink] = None,
    pattern_cache: Optional[PatternCache] = None,
    configure_logs: bool = False,
) -> RetryOrchestrator:
    """
    Build a RetryOrchestrator wrapping `transport`.

    Args:
        transport: Transport to wrap (default: a new HttpxTransport)
        settings: Settings used for defaults (default: environment settings)
        config_source: Live configuration (default: MutableConfigSource from settings)
        notifier: Notification sink (default: LogNotificationSink)
        pattern_cache: Shared URL pattern cache (default: a new cache)
        configure_logs: Set up structlog from LOG_LEVEL / ENVIRONMENT / DEBUG_MODE.
            Leave off when the host application configures logging itself.

    Returns:
        Orchestrator with the same `call(target, options)` convention as the transport
    """
    settings = settings or default_settings
    if configure_logs:
        configure_logging_from_settings(settings)

    orchestrator = RetryOrchestrator(
        transport=transport or HttpxTransport(),
        config_source=config_source or MutableConfigSource.from_settings(settings),
        notifier=notifier or LogNotificationSink(),
        url_filter=UrlFilter(pattern_cache or PatternCache()),
        record_metrics=settings.PROMETHEUS_ENABLED,
    )
    logger.info(
        "Retrying transport created",
        transport=type(orchestrator.transport).__name__,
        max_retries=orchestrator.config_source.snapshot().max_retries,
        debug_mode=settings.DEBUG_MODE,
    )
    return orchestrator
