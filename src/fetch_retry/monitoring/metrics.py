"""Custom Prometheus metrics for Fetch Retry.

Alert rules should be configured for:
- fetch_retry_calls_total{outcome="failure"} (calls failing after all retries)
- fetch_retry_attempts_total (high retry rate indicates upstream instability)
"""

from prometheus_client import Counter, Histogram

# === Call Metrics ===

fetch_calls_total = Counter(
    "fetch_retry_calls_total",
    "Total logical calls by final outcome",
    ["outcome"],
)
"""
Logical call counter by outcome.

Labels:
- outcome: success, failure (terminal failure after retries), aborted (user
  cancellation), bypassed (retry logic disabled or URL filtered out)

Alert thresholds:
- WARN: failure rate > 5% of non-bypassed calls
"""

# === Retry Metrics ===

fetch_attempts_total = Counter(
    "fetch_retry_attempts_total",
    "Total failed attempts by failure kind",
    ["kind"],
)
"""
Failed attempt counter.

Labels:
- kind: rate_limited, server_error, client_error, network_error,
  thinking_timeout, embedded_error

A rising rate_limited share suggests lowering request concurrency upstream.
"""

backoff_delay_seconds = Histogram(
    "fetch_retry_backoff_seconds",
    "Backoff delay applied before a retry",
    buckets=[0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 20.0, 30.0],
)
"""
Backoff delay histogram.

Buckets top out at the 30 s delay ceiling.
"""
