"""
Attempt outcomes.

Each transport attempt is classified into exactly one of three frozen
dataclasses. Outcomes are produced fresh per attempt and consumed
immediately by the orchestrator; they are never persisted.
"""

from dataclasses import dataclass
from typing import Optional, Union

import httpx

from fetch_retry.models.enums import FailureKind


@dataclass(frozen=True)
class Success:
    """The attempt produced a response the caller should receive."""

    response: httpx.Response


@dataclass(frozen=True)
class RetryableFailure:
    """
    The attempt failed in a way that may succeed on a later attempt.

    Attributes:
        kind: Failure classification
        cause: Exception describing the failure (surfaced to the caller on exhaustion)
        delay_hint_ms: Server-requested wait from a Retry-After header, if any
        response: Response that triggered the failure, if one was received
    """

    kind: FailureKind
    cause: BaseException
    delay_hint_ms: Optional[float] = None
    response: Optional[httpx.Response] = None


@dataclass(frozen=True)
class TerminalFailure:
    """
    The logical call is over and the caller receives `cause`.

    For MAX_RETRIES_EXCEEDED, `last` is the retryable failure that used up
    the attempt budget and `cause` is its exception, unchanged.
    """

    kind: FailureKind
    cause: BaseException
    response: Optional[httpx.Response] = None
    last: Optional[RetryableFailure] = None

    @classmethod
    def exhausted(cls, failure: RetryableFailure) -> "TerminalFailure":
        return cls(
            kind=FailureKind.MAX_RETRIES_EXCEEDED,
            cause=failure.cause,
            response=failure.response,
            last=failure,
        )

    @property
    def reason(self) -> FailureKind:
        """Concrete failure kind, looking through the exhaustion wrapper."""
        if self.last is not None:
            return self.last.kind
        return self.kind


AttemptOutcome = Union[Success, RetryableFailure, TerminalFailure]
