"""Cooperative cancellation for batch deadlines.

The router runs provider sub-batches on worker threads. A batch timeout is
modelled as a :class:`CancellationToken` with a deadline: limiter waits and
backoff sleeps wait on the token instead of sleeping blindly, so they return
as soon as the batch is cancelled, and HTTP timeouts are clipped to the time
remaining. Nothing is interrupted forcibly, which keeps shared limiter and
cache state consistent.
"""

from __future__ import annotations

import threading
from time import monotonic
from typing import Callable

from .errors import CancelledError


class CancellationToken:
    """Thread-safe cancellation token with an optional monotonic deadline.

    Examples:
        >>> token = CancellationToken(timeout_seconds=5.0)
        >>> token.is_cancelled()
        False
        >>> token.cancel()
        >>> token.is_cancelled()
        True
    """

    def __init__(
        self,
        timeout_seconds: float | None = None,
        clock: Callable[[], float] = monotonic,
    ) -> None:
        """Initialize a token, optionally expiring `timeout_seconds` from now."""

        self._event = threading.Event()
        self._clock = clock
        self._deadline = None if timeout_seconds is None else clock() + timeout_seconds

    def cancel(self) -> None:
        """Signal that cancellation has been requested."""

        self._event.set()

    def is_cancelled(self) -> bool:
        """Return whether the token was cancelled or its deadline passed."""

        if self._event.is_set():
            return True
        if self._deadline is not None and self._clock() >= self._deadline:
            self._event.set()
            return True
        return False

    def remaining(self) -> float | None:
        """Return seconds until the deadline, `None` when there is no deadline."""

        if self._deadline is None:
            return None
        return max(0.0, self._deadline - self._clock())

    def wait(self, seconds: float) -> bool:
        """Wait up to `seconds` (clipped to the deadline); return `True` if cancelled."""

        if seconds > 0.0 and not self.is_cancelled():
            remaining = self.remaining()
            timeout = seconds if remaining is None else min(seconds, remaining)
            self._event.wait(timeout)
        return self.is_cancelled()

    def raise_if_cancelled(self) -> None:
        """Raise `CancelledError` when cancellation has been requested."""

        if self.is_cancelled():
            raise CancelledError("Translation batch was cancelled or timed out.")
