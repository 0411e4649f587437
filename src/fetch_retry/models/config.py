"""
Per-call retry configuration.

RetryConfig is the read-only snapshot handed to the orchestrator at the start
of every logical call. It is frozen: mid-flight configuration changes never
leak into a call that has already started.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from fetch_retry.models.enums import UrlFilterMode

# Upper bound for any single backoff delay, also applied to Retry-After
MAX_DELAY_MS = 30_000


class RetryConfig(BaseModel):
    """
    Immutable retry configuration for one logical call.

    Durations are expressed in milliseconds. `settings_version` is the
    counter the URL pattern cache is keyed on; bump it whenever
    `url_patterns` changes.
    """
    model_config = ConfigDict(frozen=True)

    enabled: bool = Field(default=True, description="Master switch; when off every call bypasses retry logic")
    max_retries: int = Field(default=5, ge=0, le=100, description="Retries after the first attempt (N+1 attempts total)")
    retry_delay_ms: float = Field(default=5000, ge=0, description="Base delay for general exponential backoff")
    rate_limit_delay_ms: float = Field(default=5000, ge=0, description="Base delay for 429 responses")
    min_retry_delay_ms: float = Field(default=0, ge=0, description="Floor applied to every computed delay")
    thinking_timeout_ms: float = Field(default=60000, gt=0, description="Per-attempt timeout")
    enable_thinking_timeout: bool = Field(default=True, description="Whether the per-attempt timeout is armed")
    check_response_error_field: bool = Field(
        default=False,
        description="Treat 2xx JSON bodies carrying an 'error' field as retryable failures",
    )
    retry_client_errors: bool = Field(
        default=True,
        description="Retry 4xx responses (other than 429) up to max_retries",
    )
    show_error_notification: bool = Field(default=True, description="Emit a notice when all attempts fail")
    url_patterns: tuple[str, ...] = Field(default=(), description="Regular expressions matched against the URL")
    url_filter_mode: Optional[UrlFilterMode] = Field(default=None, description="include / exclude / unset")
    settings_version: int = Field(default=0, ge=0, description="Cache key for compiled URL patterns")

    @property
    def total_attempts(self) -> int:
        """Maximum number of transport invocations for one logical call."""
        return self.max_retries + 1

    @property
    def thinking_timeout_s(self) -> Optional[float]:
        """Per-attempt timeout in seconds, or None when the timeout is disabled."""
        if not self.enable_thinking_timeout:
            return None
        return self.thinking_timeout_ms / 1000.0
