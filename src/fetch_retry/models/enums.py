"""
Enumerations for the retry layer.

All enums are closed taxonomies - no values outside these sets are permitted.
"""

from enum import Enum


class UrlFilterMode(str, Enum):
    """
    How the URL pattern list is interpreted.

    INCLUDE: only URLs matching at least one pattern are retried.
    EXCLUDE: URLs matching any pattern bypass retry logic.
    """

    INCLUDE = "include"
    EXCLUDE = "exclude"


class FailureKind(str, Enum):
    """
    Failure taxonomy produced by the classifier.

    USER_ABORT and MAX_RETRIES_EXCEEDED are terminal; every other kind is
    retried until the attempt budget runs out.
    """

    USER_ABORT = "user_abort"
    THINKING_TIMEOUT = "thinking_timeout"
    NETWORK_ERROR = "network_error"
    RATE_LIMITED = "rate_limited"
    SERVER_ERROR = "server_error"
    CLIENT_ERROR = "client_error"
    EMBEDDED_ERROR = "embedded_error"
    MAX_RETRIES_EXCEEDED = "max_retries_exceeded"


class CancelOrigin(str, Enum):
    """Who cancelled a token: the caller (external) or the orchestrator's timeout (internal)."""

    EXTERNAL = "external"
    INTERNAL = "internal"
