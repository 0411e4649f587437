"""
Retry orchestrator.

Drives the attempt loop for one logical call:

    Filtering -> Preparing -> Attempting -> Classifying
        -> BackingOff -> Attempting ...
        -> Returning (success) | Propagating (terminal failure)

The orchestrator wraps an injected Transport and exposes the same calling
convention, so it can stand in for the transport anywhere:

    orchestrator = RetryOrchestrator(HttpxTransport(), config_source)
    response = await orchestrator.call(url, {"method": "POST", "body": payload, "signal": token})

Only user cancellation skips backoff; every other failure is retried until
the attempt budget runs out, and then the last concrete failure is raised.
"""

from typing import Any, Mapping, NoReturn, Optional

import httpx
import structlog

from fetch_retry.config import ConfigSource
from fetch_retry.models.config import RetryConfig
from fetch_retry.models.enums import FailureKind
from fetch_retry.monitoring.metrics import (
    backoff_delay_seconds,
    fetch_attempts_total,
    fetch_calls_total,
)
from fetch_retry.notifications.sink import LogNotificationSink, NotificationSink
from fetch_retry.retry.backoff import BackoffCalculator
from fetch_retry.retry.cancellation import CancellationBridge, CancellationToken
from fetch_retry.retry.classifier import FailureClassifier
from fetch_retry.exceptions import UserAbortError
from fetch_retry.retry.outcomes import RetryableFailure, Success, TerminalFailure
from fetch_retry.retry.snapshot import RequestSnapshot, RequestTarget, request_url
from fetch_retry.retry.url_filter import UrlFilter
from fetch_retry.transport.base import Transport


class RetryOrchestrator:
    """
    Transparent retry wrapper around a Transport.

    One orchestrator can serve many concurrent calls: all per-call state
    (snapshot, attempt index, last failure, cancellation bridge) lives in
    the `call()` frame. The URL filter's pattern cache is the only state
    shared between calls.

    Attributes:
        transport: Wrapped transport
        config_source: Provides the RetryConfig snapshot for each call
        notifier: Receives retry / final-failure notices
        url_filter: Decides which URLs get retry logic
        classifier: Turns attempt results into outcomes
        backoff: Computes delays between attempts
    """

    def __init__(
        self,
        transport: Transport,
        config_source: ConfigSource,
        notifier: Optional[NotificationSink] = None,
        url_filter: Optional[UrlFilter] = None,
        classifier: Optional[FailureClassifier] = None,
        backoff: Optional[BackoffCalculator] = None,
        logger=None,
        record_metrics: bool = True,
    ):
        self.transport = transport
        self.config_source = config_source
        self.notifier = notifier or LogNotificationSink()
        self.url_filter = url_filter or UrlFilter()
        self.classifier = classifier or FailureClassifier()
        self.backoff = backoff or BackoffCalculator()
        self.logger = logger or structlog.get_logger(__name__)
        self.record_metrics = record_metrics

    async def call(
        self,
        target: RequestTarget,
        options: Optional[Mapping[str, Any]] = None,
    ) -> httpx.Response:
        """
        Perform a request with transparent retries.

        Args:
            target: URL string/httpx.URL, or a complete httpx.Request
            options: Fetch-style options; `signal` is the caller's CancellationToken

        Returns:
            The first response classified as a success

        Raises:
            UserAbortError: The caller's token fired
            HTTPFailureError: Last status-based failure once retries are exhausted
            Exception: Last transport error (verbatim) once retries are exhausted
        """
        config = self.config_source.snapshot()
        url = request_url(target)
        log = self.logger.bind(url=url)

        if not config.enabled:
            log.debug("Fetch retry is disabled, bypassing")
            return await self._bypass(target, options)

        if not self.url_filter.should_retry(url, config):
            log.debug("URL does not match filter patterns, bypassing retry logic")
            return await self._bypass(target, options)

        external: Optional[CancellationToken] = (options or {}).get("signal")
        if external is not None and external.cancelled:
            # A fired signal never reaches the transport
            log.debug("Original signal already aborted, not sending")
            self._propagate(
                TerminalFailure(
                    kind=FailureKind.USER_ABORT,
                    cause=UserAbortError(external.reason or "Request aborted by user"),
                ),
                config,
                log,
            )

        snapshot = await RequestSnapshot.capture(target, options)
        bridge = CancellationBridge(external, config.thinking_timeout_s)
        outcome = await self._run_attempts(snapshot, bridge, config, log)

        if isinstance(outcome, Success):
            self._count_call("success")
            return outcome.response
        self._propagate(outcome, config, log)

    async def _bypass(self, target: RequestTarget, options: Optional[Mapping[str, Any]]) -> httpx.Response:
        self._count_call("bypassed")
        return await self.transport.call(target, options)

    async def _run_attempts(
        self,
        snapshot: RequestSnapshot,
        bridge: CancellationBridge,
        config: RetryConfig,
        log,
    ) -> Success | TerminalFailure:
        attempt = 0

        while True:
            log.debug("Starting fetch attempt", attempt=attempt + 1, total_attempts=config.total_attempts)

            try:
                async with bridge.attempt() as token:
                    result = await bridge.run(
                        token,
                        lambda signal: self.transport.call(snapshot.url, snapshot.build_options(signal)),
                    )
            except UserAbortError as e:
                return TerminalFailure(kind=FailureKind.USER_ABORT, cause=e)

            outcome = await self.classifier.classify(result, config)

            if isinstance(outcome, (Success, TerminalFailure)):
                if isinstance(outcome, Success):
                    log.debug("Fetch successful", status_code=outcome.response.status_code, attempt=attempt + 1)
                return outcome

            self._count_attempt(outcome)
            log.warning(
                "Fetch attempt failed",
                kind=outcome.kind.value,
                error=str(outcome.cause),
                attempt=attempt + 1,
                total_attempts=config.total_attempts,
            )

            if attempt >= config.max_retries:
                log.error("Max retries reached", attempts=attempt + 1, kind=outcome.kind.value)
                return TerminalFailure.exhausted(outcome)

            if not await self._back_off(outcome, attempt, bridge, config, log):
                log.info("Request aborted by user during backoff")
                return TerminalFailure(
                    kind=FailureKind.USER_ABORT,
                    cause=UserAbortError(
                        bridge.external.reason or "Request aborted by user",
                        details={"during": "backoff", "attempt": attempt + 1},
                    ),
                )
            attempt += 1

    async def _back_off(
        self,
        failure: RetryableFailure,
        attempt: int,
        bridge: CancellationBridge,
        config: RetryConfig,
        log,
    ) -> bool:
        """Notify, then wait before the next attempt. Returns False if the caller cancelled."""
        if bridge.external_cancelled:
            return False
        self._safe_notify("on_retry", attempt + 1, config.max_retries, failure.cause)

        delay_ms = self.backoff.delay(failure, attempt, config)
        if self.record_metrics:
            backoff_delay_seconds.observe(delay_ms / 1000.0)
        log.info("Waiting before retry", delay_ms=round(delay_ms, 1), next_attempt=attempt + 2)

        return await bridge.sleep(delay_ms / 1000.0)

    def _propagate(self, outcome: TerminalFailure, config: RetryConfig, log) -> NoReturn:
        if outcome.kind == FailureKind.USER_ABORT:
            self._count_call("aborted")
            raise outcome.cause

        self._count_call("failure")
        log.error(
            "All attempts failed",
            kind=outcome.kind.value,
            reason=outcome.reason.value,
            error=str(outcome.cause),
        )
        self._safe_notify("on_final_failure", outcome.cause, outcome.response, config)
        raise outcome.cause

    def _safe_notify(self, method: str, *args) -> None:
        try:
            getattr(self.notifier, method)(*args)
        except Exception as e:
            self.logger.warning(
                "Notification sink failed",
                method=method,
                error=str(e),
                error_type=type(e).__name__,
            )

    def _count_call(self, outcome: str) -> None:
        if self.record_metrics:
            fetch_calls_total.labels(outcome=outcome).inc()

    def _count_attempt(self, failure: RetryableFailure) -> None:
        if self.record_metrics:
            fetch_attempts_total.labels(kind=failure.kind.value).inc()
