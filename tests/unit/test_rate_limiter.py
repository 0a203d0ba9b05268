"""Unit tests for token-bucket admission control."""

from __future__ import annotations

import threading

import pytest

from lingoroute.cancellation import CancellationToken
from lingoroute.errors import CancelledError, RateLimitExceeded
from lingoroute.providers.rate_limiter import (
    TokenBucketRateLimiter,
    UnlimitedRateLimiter,
    create_rate_limiter,
)


def test_full_bucket_admits_burst_then_eleventh_waits_one_tenth_second(fake_clock) -> None:
    """A 10/s bucket should admit ten immediate calls and delay the eleventh by ~0.1s."""

    limiter = TokenBucketRateLimiter(
        capacity=10, refill_rate=10, clock=fake_clock, sleeper=fake_clock.sleep
    )

    for _ in range(10):
        limiter.acquire_blocking()
    assert fake_clock.sleeps == []

    limiter.acquire_blocking()

    assert len(fake_clock.sleeps) == 1
    assert fake_clock.sleeps[0] == pytest.approx(0.1)


def test_try_acquire_never_waits_and_refills_lazily(fake_clock) -> None:
    """Non-blocking acquire should fail on an empty bucket and succeed after refill."""

    limiter = TokenBucketRateLimiter(
        capacity=2, refill_rate=4, clock=fake_clock, sleeper=fake_clock.sleep
    )

    assert limiter.try_acquire() is True
    assert limiter.try_acquire() is True
    assert limiter.try_acquire() is False

    fake_clock.advance(0.25)
    assert limiter.try_acquire() is True
    assert fake_clock.sleeps == []


def test_tokens_never_exceed_capacity_after_long_idle(fake_clock) -> None:
    """Refill should clamp at capacity no matter how much time passed."""

    limiter = TokenBucketRateLimiter(
        capacity=5, refill_rate=100, clock=fake_clock, sleeper=fake_clock.sleep
    )
    limiter.try_acquire(3)
    fake_clock.advance(3600)

    state = limiter.state()

    assert state.tokens == pytest.approx(5.0)
    assert state.capacity == 5.0


def test_request_above_capacity_is_rejected(fake_clock) -> None:
    """Asking for more tokens than the bucket holds should fail in both modes."""

    limiter = TokenBucketRateLimiter(
        capacity=3, refill_rate=1, clock=fake_clock, sleeper=fake_clock.sleep
    )

    assert limiter.try_acquire(4) is False
    with pytest.raises(RateLimitExceeded):
        limiter.acquire_blocking(4)


def test_blocking_acquire_honours_timeout(fake_clock) -> None:
    """A wait longer than the allowed timeout should raise instead of sleeping."""

    limiter = TokenBucketRateLimiter(
        capacity=1, refill_rate=1, clock=fake_clock, sleeper=fake_clock.sleep
    )
    limiter.acquire_blocking()

    with pytest.raises(RateLimitExceeded) as exc_info:
        limiter.acquire_blocking(timeout=0.5)

    assert exc_info.value.retry_after_seconds == pytest.approx(1.0)
    assert fake_clock.sleeps == []


def test_blocking_acquire_stops_when_token_is_cancelled() -> None:
    """A cancelled token should abort the wait without consuming a token."""

    limiter = TokenBucketRateLimiter(capacity=1, refill_rate=0.01)
    limiter.acquire_blocking()
    token = CancellationToken()
    token.cancel()

    with pytest.raises(CancelledError):
        limiter.acquire_blocking(cancel_token=token)

    assert limiter.state().tokens < 1.0


def test_concurrent_acquires_never_share_a_token() -> None:
    """Exactly `capacity` threads should win tokens from a bucket that barely refills."""

    limiter = TokenBucketRateLimiter(capacity=20, refill_rate=0.001)
    results: list[bool] = []
    lock = threading.Lock()

    def _worker() -> None:
        """Try one acquisition and record the result."""

        admitted = limiter.try_acquire()
        with lock:
            results.append(admitted)

    threads = [threading.Thread(target=_worker) for _ in range(50)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert results.count(True) == 20


def test_zero_rate_builds_unlimited_limiter() -> None:
    """Providers configured with rate 0 should never be throttled."""

    limiter = create_rate_limiter(0)

    assert isinstance(limiter, UnlimitedRateLimiter)
    assert all(limiter.try_acquire() for _ in range(1000))


def test_from_rate_uses_one_second_burst(fake_clock) -> None:
    """Bucket capacity should equal the per-second rate, at least one token."""

    assert TokenBucketRateLimiter.from_rate(10, clock=fake_clock).capacity == 10.0
    assert TokenBucketRateLimiter.from_rate(0.5, clock=fake_clock).capacity == 1.0
