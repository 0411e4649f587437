"""
Structured cancellation for the attempt loop.

The caller owns one external CancellationToken for the whole logical call.
The CancellationBridge creates a fresh internal token for every attempt and
races the transport call against the external token and the optional
thinking timeout. All waiters and tasks an attempt creates are torn down
before the attempt scope exits, on every path.

Tokens are bound to the event loop that awaits them; cancel them from that
loop (use loop.call_soon_threadsafe from other threads).
"""

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Awaitable, Callable, Optional

import httpx
import structlog

from fetch_retry.models.enums import CancelOrigin
from fetch_retry.exceptions import FetchRetryError, ThinkingTimeoutError, UserAbortError

logger = structlog.get_logger(__name__)


class CancellationToken:
    """
    One-shot cancellation signal.

    `cancel()` wakes every pending `wait()` and records who cancelled.
    Cancelling twice is a no-op; the first origin and reason stick.
    """

    def __init__(self):
        self._origin: Optional[CancelOrigin] = None
        self._reason: Optional[str] = None
        self._waiters: set[asyncio.Future] = set()

    @property
    def cancelled(self) -> bool:
        return self._origin is not None

    @property
    def origin(self) -> Optional[CancelOrigin]:
        return self._origin

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    @property
    def listener_count(self) -> int:
        """Number of coroutines currently waiting on this token."""
        return len(self._waiters)

    def cancel(
        self,
        reason: str = "Request aborted by user",
        origin: CancelOrigin = CancelOrigin.EXTERNAL,
    ) -> bool:
        """
        Fire the token.

        Returns:
            True if this call cancelled the token, False if it was already cancelled
        """
        if self._origin is not None:
            return False
        self._origin = origin
        self._reason = reason
        for waiter in list(self._waiters):
            if not waiter.done():
                waiter.set_result(origin)
        return True

    async def wait(self) -> CancelOrigin:
        """Suspend until the token is cancelled and return the origin."""
        if self._origin is not None:
            return self._origin
        waiter = asyncio.get_running_loop().create_future()
        self._waiters.add(waiter)
        try:
            return await waiter
        finally:
            self._waiters.discard(waiter)

    def __repr__(self) -> str:
        state = f"cancelled by {self._origin.value}" if self._origin else "live"
        return f"{self.__class__.__name__}({state})"


@dataclass(frozen=True)
class AttemptResult:
    """
    Raw result of one attempt, before classification.

    Exactly one of `response` and `error` is set. `cancel_origin` records
    which side cancelled the attempt, if any.
    """

    response: Optional[httpx.Response] = None
    error: Optional[BaseException] = None
    cancel_origin: Optional[CancelOrigin] = None


async def _reap(tasks: list[asyncio.Future]) -> None:
    """Cancel unfinished tasks and wait until all of them have settled."""
    for task in tasks:
        if not task.done():
            task.cancel()
    if tasks:
        await asyncio.gather(*tasks, return_exceptions=True)


class CancellationBridge:
    """
    Links the external token to a sequence of per-attempt internal tokens.

    State per logical call: Idle -> AttemptActive -> (succeeded | failed),
    looping back to AttemptActive until the orchestrator stops. At most one
    internal token is live at a time, and once the external token has fired
    no new attempt may start.
    """

    def __init__(
        self,
        external: Optional[CancellationToken] = None,
        timeout_s: Optional[float] = None,
    ):
        self.external = external
        self.timeout_s = timeout_s
        self.live_token: Optional[CancellationToken] = None
        self.attempts_started = 0

    @property
    def external_cancelled(self) -> bool:
        return self.external is not None and self.external.cancelled

    def _user_abort(self) -> UserAbortError:
        reason = self.external.reason if self.external else None
        return UserAbortError(reason or "Request aborted by user", details={"origin": CancelOrigin.EXTERNAL.value})

    @asynccontextmanager
    async def attempt(self) -> AsyncIterator[CancellationToken]:
        """
        Scope one attempt and yield its internal token.

        Raises:
            UserAbortError: If the external token has already fired
        """
        if self.external_cancelled:
            raise self._user_abort()
        if self.live_token is not None:
            raise RuntimeError("An attempt is already active on this bridge")

        token = CancellationToken()
        self.live_token = token
        self.attempts_started += 1
        try:
            yield token
        finally:
            self.live_token = None

    async def run(
        self,
        token: CancellationToken,
        call: Callable[[CancellationToken], Awaitable[httpx.Response]],
    ) -> AttemptResult:
        """
        Run one transport call raced against cancellation and timeout.

        The call's own exceptions are captured in the result instead of
        propagating. Cancellation of the calling task propagates normally
        after the attempt's tasks have been reaped.
        """
        call_task = asyncio.ensure_future(call(token))
        tasks: list[asyncio.Future] = [call_task]
        external_task: Optional[asyncio.Future] = None
        if self.external is not None:
            external_task = asyncio.ensure_future(self.external.wait())
            tasks.append(external_task)

        try:
            done, _ = await asyncio.wait(
                tasks, timeout=self.timeout_s, return_when=asyncio.FIRST_COMPLETED
            )

            if (external_task is not None and external_task in done) or self.external_cancelled:
                token.cancel(self.external.reason or "User aborted", origin=CancelOrigin.EXTERNAL)
                logger.debug("User abort received during attempt")
                return AttemptResult(error=self._user_abort(), cancel_origin=CancelOrigin.EXTERNAL)

            if call_task in done:
                if call_task.cancelled():
                    return AttemptResult(error=FetchRetryError("Transport call was cancelled"))
                error = call_task.exception()
                if error is not None:
                    return AttemptResult(error=error, cancel_origin=token.origin)
                return AttemptResult(response=call_task.result())

            token.cancel("Thinking timeout reached", origin=CancelOrigin.INTERNAL)
            logger.warning("Fetch attempt timed out", timeout_s=self.timeout_s)
            return AttemptResult(
                error=ThinkingTimeoutError(
                    "Thinking timeout reached",
                    details={"timeout_s": self.timeout_s},
                ),
                cancel_origin=CancelOrigin.INTERNAL,
            )
        finally:
            await _reap(tasks)

    async def sleep(self, delay_s: float) -> bool:
        """
        Wait out a backoff delay unless the external token fires first.

        Returns:
            True if the full delay elapsed, False if the caller cancelled
        """
        if self.external_cancelled:
            return False
        if self.external is None:
            await asyncio.sleep(delay_s)
            return True
        if delay_s <= 0:
            await asyncio.sleep(0)
            return not self.external_cancelled

        try:
            await asyncio.wait_for(self.external.wait(), timeout=delay_s)
        except asyncio.TimeoutError:
            return True
        return False
