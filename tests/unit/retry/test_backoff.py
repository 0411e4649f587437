"""
Unit tests for BackoffCalculator.

Jitter is pinned with stub random generators where exact values matter.
"""

import random

import httpx
import pytest

from fetch_retry.exceptions import RateLimitedError, ServerError
from fetch_retry.models.config import MAX_DELAY_MS, RetryConfig
from fetch_retry.models.enums import FailureKind
from fetch_retry.retry.backoff import BackoffCalculator, parse_retry_after
from fetch_retry.retry.outcomes import RetryableFailure


class FixedRandom(random.Random):
    """Random generator whose uniform() always returns the same value."""

    def __init__(self, value: float):
        super().__init__()
        self.value = value

    def uniform(self, a, b):
        return self.value


def make_failure(kind=FailureKind.SERVER_ERROR, status=503, headers=None, delay_hint_ms=None):
    response = httpx.Response(status, headers=headers or {})
    if kind == FailureKind.RATE_LIMITED:
        cause = RateLimitedError("Rate limited (429): Too Many Requests", response)
    else:
        cause = ServerError(f"Server error ({status})", response)
    return RetryableFailure(kind=kind, cause=cause, delay_hint_ms=delay_hint_ms, response=response)


def network_failure():
    return RetryableFailure(kind=FailureKind.NETWORK_ERROR, cause=httpx.ConnectError("refused"))


CONFIG = RetryConfig(retry_delay_ms=1000, rate_limit_delay_ms=2000, min_retry_delay_ms=0)


# ============================================================================
# Retry-After parsing
# ============================================================================


@pytest.mark.parametrize(
    "value,expected",
    [("2", 2000.0), (" 120", 120000.0), ("3.7", 3000.0), ("5abc", 5000.0), ("-1", -1000.0)],
)
def test_parse_retry_after_integer_prefix(value, expected):
    response = httpx.Response(429, headers={"Retry-After": value})
    assert parse_retry_after(response) == expected


@pytest.mark.parametrize(
    "value,expected",
    [("9" * 400, 1e9), ("-" + "9" * 5000, -1e9), ("0000002", 2000.0), ("1000001", 1e9)],
)
def test_parse_retry_after_clamps_oversized_values(value, expected):
    response = httpx.Response(503, headers={"Retry-After": value})
    assert parse_retry_after(response) == expected


def test_oversized_retry_after_still_capped_at_max_delay():
    calc = BackoffCalculator(rng=FixedRandom(0.0))
    failure = make_failure(FailureKind.RATE_LIMITED, 429, headers={"Retry-After": "9" * 400})
    assert calc.delay(failure, 0, CONFIG) == MAX_DELAY_MS


def test_parse_retry_after_ignores_http_dates_and_missing_header():
    dated = httpx.Response(429, headers={"Retry-After": "Wed, 21 Oct 2026 07:28:00 GMT"})
    assert parse_retry_after(dated) is None
    assert parse_retry_after(httpx.Response(429)) is None
    assert parse_retry_after(None) is None


# ============================================================================
# Base delay composition
# ============================================================================


def test_general_backoff_grows_by_1_2():
    calc = BackoffCalculator()
    failure = network_failure()

    assert calc.base_delay(failure, 0, CONFIG) == pytest.approx(1000)
    assert calc.base_delay(failure, 1, CONFIG) == pytest.approx(1200)
    assert calc.base_delay(failure, 3, CONFIG) == pytest.approx(1000 * 1.2 ** 3)


def test_rate_limit_backoff_grows_by_1_5_and_dominates():
    calc = BackoffCalculator()
    failure = make_failure(FailureKind.RATE_LIMITED, 429)

    assert calc.base_delay(failure, 0, CONFIG) == pytest.approx(2000)
    assert calc.base_delay(failure, 2, CONFIG) == pytest.approx(2000 * 1.5 ** 2)


def test_rate_limit_factor_only_applies_to_429():
    calc = BackoffCalculator()
    failure = make_failure(FailureKind.SERVER_ERROR, 503)

    assert calc.base_delay(failure, 2, CONFIG) == pytest.approx(1000 * 1.2 ** 2)


def test_retry_after_is_a_lower_bound_not_additive():
    calc = BackoffCalculator()
    failure = make_failure(FailureKind.RATE_LIMITED, 429, headers={"Retry-After": "10"})

    # Header (10000) beats rate-limit (2000) and general (1000)
    assert calc.base_delay(failure, 0, CONFIG) == pytest.approx(10000)


def test_retry_after_header_forces_minimum_at_any_attempt():
    calc = BackoffCalculator(FixedRandom(-1.0))
    config = RetryConfig(retry_delay_ms=100, rate_limit_delay_ms=1000, min_retry_delay_ms=0)
    failure = make_failure(FailureKind.SERVER_ERROR, 503, headers={"Retry-After": "2"})

    for attempt in range(6):
        # Worst-case jitter (-10%) still leaves at least 2000 * 0.9
        assert calc.base_delay(failure, attempt, config) >= 2000
        assert calc.delay(failure, attempt, config) >= 2000 * 0.9 - 1e-6


def test_delay_hint_on_failure_is_used():
    calc = BackoffCalculator()
    failure = make_failure(FailureKind.SERVER_ERROR, 503, delay_hint_ms=4000)
    assert calc.base_delay(failure, 0, CONFIG) == pytest.approx(4000)


def test_retry_after_is_capped_at_max_delay():
    calc = BackoffCalculator()
    failure = make_failure(FailureKind.RATE_LIMITED, 429, headers={"Retry-After": "3600"})
    assert calc.base_delay(failure, 0, CONFIG) == MAX_DELAY_MS


def test_min_retry_delay_floor():
    calc = BackoffCalculator()
    config = RetryConfig(retry_delay_ms=0, rate_limit_delay_ms=0, min_retry_delay_ms=750)
    assert calc.base_delay(network_failure(), 0, config) == 750


def test_zero_delays_yield_zero():
    calc = BackoffCalculator(FixedRandom(1.0))
    config = RetryConfig(retry_delay_ms=0, rate_limit_delay_ms=0, min_retry_delay_ms=0)
    assert calc.delay(network_failure(), 4, config) == 0


# ============================================================================
# Jitter and bounds
# ============================================================================


@pytest.mark.parametrize("factor,expected", [(-1.0, 900.0), (0.0, 1000.0), (1.0, 1100.0)])
def test_jitter_is_symmetric_ten_percent(factor, expected):
    calc = BackoffCalculator(FixedRandom(factor))
    assert calc.delay(network_failure(), 0, CONFIG) == pytest.approx(expected)


def test_delay_never_exceeds_ceiling_even_with_positive_jitter():
    calc = BackoffCalculator(FixedRandom(1.0))
    failure = make_failure(FailureKind.RATE_LIMITED, 429)
    assert calc.delay(failure, 20, CONFIG) == MAX_DELAY_MS


def test_delay_never_below_minimum_even_with_negative_jitter():
    calc = BackoffCalculator(FixedRandom(-1.0))
    config = RetryConfig(retry_delay_ms=100, rate_limit_delay_ms=1000, min_retry_delay_ms=1000)
    assert calc.delay(network_failure(), 0, config) == 1000


def test_delay_bounds_hold_for_random_jitter():
    calc = BackoffCalculator(random.Random(1234))
    config = RetryConfig(retry_delay_ms=500, rate_limit_delay_ms=1000, min_retry_delay_ms=200)
    failure = make_failure(FailureKind.RATE_LIMITED, 429)

    for attempt in range(15):
        for _ in range(20):
            delay = calc.delay(failure, attempt, config)
            assert config.min_retry_delay_ms <= delay <= MAX_DELAY_MS


def test_base_delay_monotonic_in_attempt():
    calc = BackoffCalculator()
    failure = make_failure(FailureKind.RATE_LIMITED, 429)
    delays = [calc.base_delay(failure, attempt, CONFIG) for attempt in range(15)]

    assert delays == sorted(delays)
    assert delays[-1] == MAX_DELAY_MS
