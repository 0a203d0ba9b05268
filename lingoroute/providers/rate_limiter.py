"""Token-bucket admission control for provider calls.

Responsibilities:
- Admit or delay provider requests per provider instance.
- Serialize admission decisions so concurrent callers never share a token.
- Never hold the bucket lock while a caller waits for refill.
"""

from __future__ import annotations

from dataclasses import dataclass
import threading
from time import monotonic, sleep
from typing import Callable

from ..cancellation import CancellationToken
from ..errors import CancelledError, RateLimitExceeded


# absorbs float drift in elapsed * refill_rate
_EPSILON = 1e-9


@dataclass(frozen=True, slots=True)
class TokenBucketState:
    """Snapshot of a token bucket.

    Attributes:
        capacity: Maximum number of tokens (burst size).
        tokens: Currently available tokens, `0 <= tokens <= capacity`.
        refill_rate: Tokens added per second.
        last_refill_at: Monotonic timestamp of the last refill computation.
    """

    capacity: float
    tokens: float
    refill_rate: float
    last_refill_at: float


class TokenBucketRateLimiter:
    """Per-provider token bucket with lazy refill and blocking or non-blocking acquire."""

    def __init__(
        self,
        capacity: float,
        refill_rate: float,
        clock: Callable[[], float] = monotonic,
        sleeper: Callable[[float], None] = sleep,
    ) -> None:
        """Initialize a full bucket."""

        if capacity <= 0:
            raise ValueError("Token bucket capacity must be positive.")
        if refill_rate <= 0:
            raise ValueError("Token bucket refill rate must be positive.")
        self.capacity = float(capacity)
        self.refill_rate = float(refill_rate)
        self._clock = clock
        self._sleeper = sleeper
        self._tokens = float(capacity)
        self._last_refill_at = clock()
        self._lock = threading.Lock()

    @classmethod
    def from_rate(
        cls,
        rate_per_second: float,
        clock: Callable[[], float] = monotonic,
        sleeper: Callable[[float], None] = sleep,
    ) -> TokenBucketRateLimiter:
        """Build a bucket allowing bursts of one second's worth of requests."""

        return cls(
            capacity=max(1.0, rate_per_second),
            refill_rate=rate_per_second,
            clock=clock,
            sleeper=sleeper,
        )

    def _refill(self) -> None:
        """Add tokens accrued since the last refill; caller holds the lock."""

        now = self._clock()
        elapsed = max(0.0, now - self._last_refill_at)
        self._tokens = min(self.capacity, self._tokens + elapsed * self.refill_rate)
        self._last_refill_at = now

    def _take_or_deficit(self, n: float) -> float:
        """Consume `n` tokens and return 0, or return the seconds until `n` are available."""

        with self._lock:
            self._refill()
            if self._tokens + _EPSILON >= n:
                self._tokens = max(0.0, self._tokens - n)
                return 0.0
            return (n - self._tokens) / self.refill_rate

    def try_acquire(self, n: int = 1) -> bool:
        """Consume `n` tokens if available right now; never waits."""

        if n <= 0:
            return True
        if n > self.capacity:
            return False
        return self._take_or_deficit(n) == 0.0

    def acquire_blocking(
        self,
        n: int = 1,
        cancel_token: CancellationToken | None = None,
        timeout: float | None = None,
    ) -> None:
        """Wait until `n` tokens are available, then consume them.

        Raises:
            RateLimitExceeded: `n` exceeds capacity, or `timeout` elapsed first.
            CancelledError: the cancellation token fired while waiting.
        """

        if n <= 0:
            return
        if n > self.capacity:
            raise RateLimitExceeded(
                f"Requested {n} tokens but bucket capacity is {self.capacity:g}."
            )

        started_at = self._clock()
        while True:
            if cancel_token is not None:
                cancel_token.raise_if_cancelled()
            deficit = self._take_or_deficit(n)
            if deficit == 0.0:
                return
            if timeout is not None:
                waited = self._clock() - started_at
                if waited + deficit > timeout:
                    raise RateLimitExceeded(
                        "Local rate limit wait exceeds the allowed timeout.",
                        retry_after_seconds=deficit,
                    )
            if cancel_token is not None:
                if cancel_token.wait(deficit):
                    raise CancelledError("Rate limiter wait was cancelled.")
            else:
                self._sleeper(deficit)

    def state(self) -> TokenBucketState:
        """Return a refreshed snapshot of the bucket."""

        with self._lock:
            self._refill()
            return TokenBucketState(
                capacity=self.capacity,
                tokens=self._tokens,
                refill_rate=self.refill_rate,
                last_refill_at=self._last_refill_at,
            )


class UnlimitedRateLimiter:
    """Limiter used for providers configured without a rate limit."""

    def try_acquire(self, n: int = 1) -> bool:
        """Always admit."""

        return True

    def acquire_blocking(
        self,
        n: int = 1,
        cancel_token: CancellationToken | None = None,
        timeout: float | None = None,
    ) -> None:
        """Admit immediately unless the batch is already cancelled."""

        if cancel_token is not None:
            cancel_token.raise_if_cancelled()


RateLimiter = TokenBucketRateLimiter | UnlimitedRateLimiter


def create_rate_limiter(
    rate_per_second: float,
    clock: Callable[[], float] = monotonic,
    sleeper: Callable[[float], None] = sleep,
) -> RateLimiter:
    """Create a token bucket for a positive rate, or an unlimited limiter for zero."""

    if rate_per_second <= 0:
        return UnlimitedRateLimiter()
    return TokenBucketRateLimiter.from_rate(rate_per_second, clock=clock, sleeper=sleeper)
