"""
Backoff delay computation.

Each applicable signal acts as a lower bound on the delay rather than being
added together, so the strongest signal wins:

    1. Retry-After header (seconds, capped at MAX_DELAY_MS)
    2. Rate-limit backoff: rate_limit_delay_ms * 1.5^attempt (429 only)
    3. General backoff:    retry_delay_ms * 1.2^attempt

The result is capped at MAX_DELAY_MS, floored at min_retry_delay_ms and
jittered by +/-10%.
"""

import random
import re
from typing import Optional

import httpx
import structlog

from fetch_retry.models.config import MAX_DELAY_MS, RetryConfig
from fetch_retry.models.enums import FailureKind
from fetch_retry.retry.outcomes import RetryableFailure

logger = structlog.get_logger(__name__)

RATE_LIMIT_GROWTH = 1.5
GENERAL_GROWTH = 1.2
JITTER_RATIO = 0.1

_LEADING_INT = re.compile(r"\s*([+-]?)(\d+)")

# Retry-After seconds are clamped to this before conversion (about 11 days)
_RETRY_AFTER_LIMIT_S = 10 ** 6


def parse_retry_after(response: Optional[httpx.Response]) -> Optional[float]:
    """
    Read an integer Retry-After header as milliseconds.

    Only the leading integer is used; HTTP-date values are ignored and
    absurdly large values are clamped; base_delay caps at MAX_DELAY_MS.
    Returns None when the header is absent or not numeric.
    """
    if response is None:
        return None
    value = response.headers.get("Retry-After")
    if value is None:
        return None
    match = _LEADING_INT.match(value)
    if not match:
        return None
    sign, digits = match.groups()
    digits = digits.lstrip("0") or "0"
    # Long digit strings would overflow float() or trip int()'s digit limit
    if len(digits) > 6:
        seconds = _RETRY_AFTER_LIMIT_S
    else:
        seconds = min(int(digits), _RETRY_AFTER_LIMIT_S)
    if sign == "-":
        seconds = -seconds
    return seconds * 1000.0


class BackoffCalculator:
    """
    Computes the wait before the next attempt.

    Deterministic apart from jitter; pass a seeded `random.Random` for
    reproducible delays.
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def base_delay(self, failure: RetryableFailure, attempt: int, config: RetryConfig) -> float:
        """Delay in ms before jitter is applied."""
        delay = 0.0

        hint = failure.delay_hint_ms
        if hint is None:
            hint = parse_retry_after(failure.response)
        if hint is not None:
            delay = max(delay, min(hint, MAX_DELAY_MS))

        if failure.kind == FailureKind.RATE_LIMITED:
            delay = max(delay, config.rate_limit_delay_ms * RATE_LIMIT_GROWTH ** attempt)

        delay = max(delay, config.retry_delay_ms * GENERAL_GROWTH ** attempt)
        delay = min(delay, MAX_DELAY_MS)
        return max(delay, config.min_retry_delay_ms)

    def delay(self, failure: RetryableFailure, attempt: int, config: RetryConfig) -> float:
        """
        Compute the jittered delay in milliseconds.

        Args:
            failure: Classified failure of the attempt that just ended
            attempt: Zero-indexed number of that attempt
            config: Retry configuration of the current call

        Returns:
            Delay in ms, within [min_retry_delay_ms, MAX_DELAY_MS]
        """
        delay = self.base_delay(failure, attempt, config)
        jitter = delay * JITTER_RATIO * self.rng.uniform(-1.0, 1.0)
        jittered = min(max(delay + jitter, config.min_retry_delay_ms, 0.0), MAX_DELAY_MS)

        logger.debug(
            "Calculated retry delay",
            attempt=attempt,
            kind=failure.kind.value,
            base_delay_ms=round(delay, 1),
            delay_ms=round(jittered, 1),
        )
        return jittered
