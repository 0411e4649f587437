"""
Configuration settings for Fetch Retry.

All settings are loaded from environment variables (prefix FETCH_RETRY_) with
sensible defaults. Use .env file for local development.

The bounds on each field mirror the ranges offered by the settings panel, so
a persisted value outside the panel's range is rejected instead of silently
clamped.
"""

import threading
from typing import Optional, Protocol

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
import structlog

from fetch_retry.models.config import RetryConfig
from fetch_retry.models.enums import UrlFilterMode

logger = structlog.get_logger(__name__)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="FETCH_RETRY_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # === Application ===
    APP_VERSION: str = "0.1.0"
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    DEBUG_MODE: bool = False  # Verbose retry diagnostics

    # === Retry ===
    ENABLED: bool = True
    MAX_RETRIES: int = Field(default=5, ge=0, le=10)
    RETRY_DELAY_MS: int = Field(default=5000, ge=100, le=60000)
    RATE_LIMIT_DELAY_MS: int = Field(default=5000, ge=1000, le=60000)
    MIN_RETRY_DELAY_MS: int = Field(default=0, ge=0, le=5000)  # 0 = immediate retries
    RETRY_CLIENT_ERRORS: bool = True

    # === Thinking Timeout ===
    THINKING_TIMEOUT_MS: int = Field(default=60000, ge=10000, le=300000)
    ENABLE_THINKING_TIMEOUT: bool = True

    # === Response Inspection ===
    CHECK_RESPONSE_ERROR_FIELD: bool = False

    # === URL Filtering ===
    URL_PATTERNS: list[str] = []  # e.g., ["/v1/chat/completions"]
    URL_FILTER_MODE: Optional[UrlFilterMode] = None

    # === Notifications ===
    SHOW_ERROR_NOTIFICATION: bool = True

    # === Monitoring ===
    PROMETHEUS_ENABLED: bool = True

    def to_retry_config(self, settings_version: int = 0) -> RetryConfig:
        """Build the immutable per-call snapshot from these settings."""
        return RetryConfig(
            enabled=self.ENABLED,
            max_retries=self.MAX_RETRIES,
            retry_delay_ms=self.RETRY_DELAY_MS,
            rate_limit_delay_ms=self.RATE_LIMIT_DELAY_MS,
            min_retry_delay_ms=self.MIN_RETRY_DELAY_MS,
            thinking_timeout_ms=self.THINKING_TIMEOUT_MS,
            enable_thinking_timeout=self.ENABLE_THINKING_TIMEOUT,
            check_response_error_field=self.CHECK_RESPONSE_ERROR_FIELD,
            retry_client_errors=self.RETRY_CLIENT_ERRORS,
            show_error_notification=self.SHOW_ERROR_NOTIFICATION,
            url_patterns=tuple(self.URL_PATTERNS),
            url_filter_mode=self.URL_FILTER_MODE,
            settings_version=settings_version,
        )


class ConfigSource(Protocol):
    """
    Read-only access to the current retry configuration.

    The orchestrator calls `snapshot()` exactly once per logical call and
    never looks at the source again until the next call.
    """

    def snapshot(self) -> RetryConfig:
        ...


class StaticConfigSource:
    """ConfigSource that always returns the same configuration."""

    def __init__(self, config: RetryConfig):
        self._config = config

    def snapshot(self) -> RetryConfig:
        return self._config


class MutableConfigSource:
    """
    ConfigSource holding a live configuration that can be edited.

    Every effective change produces a new frozen RetryConfig with
    `settings_version` incremented, so the URL pattern cache recompiles on
    the next call. Calls already in flight keep the snapshot they took.
    """

    def __init__(self, config: Optional[RetryConfig] = None):
        self._config = config or RetryConfig()
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings: Settings) -> "MutableConfigSource":
        return cls(settings.to_retry_config())

    def snapshot(self) -> RetryConfig:
        return self._config

    def update(self, **changes) -> RetryConfig:
        """
        Apply field changes and bump the version.

        Args:
            **changes: RetryConfig field names and their new values

        Returns:
            The new configuration snapshot

        Raises:
            pydantic.ValidationError: If a new value violates a field constraint
        """
        with self._lock:
            current = self._config
            if "url_patterns" in changes:
                changes["url_patterns"] = tuple(changes["url_patterns"])
            merged = {**current.model_dump(), **changes}
            merged["settings_version"] = current.settings_version + 1
            self._config = RetryConfig.model_validate(merged)

        logger.debug(
            "Retry configuration updated",
            changed=sorted(changes),
            settings_version=self._config.settings_version,
        )
        return self._config


# Global settings instance
settings = Settings()
