"""
Unit tests for Fetch Retry.

Test individual components in isolation:
- URL filter and pattern cache
- Request snapshots (body buffering, replay)
- Failure classifier (decision table)
- Backoff calculator (bounds, Retry-After, jitter)
- Cancellation bridge (external vs internal cancellation, cleanup)
- Retry orchestrator (attempt loop, propagation)
- Settings and config sources
- Notification texts
"""
