"""Retry classification and exponential backoff for provider calls.

Responsibilities:
- Classify provider failures as retryable or permanent.
- Compute capped exponential backoff delays with jitter.
- Honour server `Retry-After` guidance when a provider sends it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
import email.utils
from enum import Enum
import random

from ..errors import (
    CancelledError,
    LingorouteError,
    ProviderUnavailable,
    RateLimitExceeded,
)


class RetryDecision(str, Enum):
    """Classification result for one provider failure."""

    RETRYABLE = "retryable"
    PERMANENT = "permanent"


def parse_retry_after(value: str | None) -> float | None:
    """Convert a `Retry-After` header value (seconds or HTTP date) into seconds."""

    if value is None:
        return None
    token = value.strip()
    if not token:
        return None

    try:
        delay = float(token)
    except ValueError:
        try:
            parsed = email.utils.parsedate_to_datetime(token)
        except (TypeError, ValueError):
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        delay = (parsed - datetime.now(timezone.utc)).total_seconds()

    return max(0.0, delay)


@dataclass(slots=True)
class RetryPolicy:
    """Exponential backoff policy shared by every attempt of one provider.

    The policy is stateless between calls; callers own the attempt counter, so
    the count resets for every logical request.

    Attributes:
        max_retries: Retries allowed after the first attempt.
        base_delay_seconds: Delay before the first retry.
        max_delay_seconds: Cap applied to every computed or advertised delay.
        jitter_ratio: Upper bound of random jitter as a fraction of the delay.
        rng: Random source for jitter.
    """

    max_retries: int = 3
    base_delay_seconds: float = 1.0
    max_delay_seconds: float = 30.0
    jitter_ratio: float = 0.1
    rng: random.Random = field(default_factory=random.Random)

    def classify(self, error: BaseException) -> RetryDecision:
        """Return whether a failure is worth retrying against the same provider."""

        if isinstance(error, CancelledError):
            return RetryDecision.PERMANENT
        if isinstance(error, (RateLimitExceeded, ProviderUnavailable)):
            return RetryDecision.RETRYABLE
        if isinstance(error, LingorouteError):
            return RetryDecision.PERMANENT
        if isinstance(error, (ConnectionError, TimeoutError)):
            return RetryDecision.RETRYABLE
        return RetryDecision.PERMANENT

    def should_retry(self, error: BaseException, attempt: int) -> bool:
        """Return whether attempt number `attempt` (0-based) may be followed by a retry."""

        return (
            self.classify(error) is RetryDecision.RETRYABLE and attempt < self.max_retries
        )

    def next_delay(self, attempt: int, retry_after: float | None = None) -> float:
        """Return the delay before retry number `attempt + 1`.

        `base * 2**attempt` plus jitter, capped at `max_delay_seconds`. A
        `retry_after` hint replaces the computed delay but is still capped.
        """

        if retry_after is not None:
            return min(self.max_delay_seconds, max(0.0, retry_after))
        delay = self.base_delay_seconds * (2 ** max(0, attempt))
        jitter = self.rng.uniform(0.0, delay * self.jitter_ratio) if self.jitter_ratio > 0 else 0.0
        return min(self.max_delay_seconds, delay + jitter)

    def delay_for(self, error: BaseException, attempt: int) -> float:
        """Return the backoff delay for a failure, using its `Retry-After` hint when present."""

        retry_after = getattr(error, "retry_after_seconds", None)
        return self.next_delay(attempt, retry_after=retry_after)
