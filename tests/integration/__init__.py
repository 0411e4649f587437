"""
Integration tests for Fetch Retry.

Run the full stack (orchestrator + HttpxTransport + httpx.AsyncClient)
against httpx.MockTransport handlers, so every byte crosses httpx itself.
"""
