"""Shared fixtures: deterministic time and no real network access."""

from __future__ import annotations

import pytest

from lingoroute.providers import http_client


class FakeClock:
    """Manually advanced monotonic clock whose sleeper moves time forward."""

    def __init__(self, start: float = 100.0) -> None:
        """Initialize fake time and the sleep log."""

        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        """Return the current fake time."""

        return self.now

    def sleep(self, seconds: float) -> None:
        """Record a sleep and advance time by it."""

        self.sleeps.append(seconds)
        self.now += seconds

    def advance(self, seconds: float) -> None:
        """Advance time without recording a sleep."""

        self.now += seconds


@pytest.fixture
def fake_clock() -> FakeClock:
    """Provide a fresh fake clock per test."""

    return FakeClock()


@pytest.fixture(autouse=True)
def _block_real_http(monkeypatch: pytest.MonkeyPatch) -> None:
    """Fail loudly if a test reaches the real `requests.post`."""

    def _unexpected_post(url: str, **_kwargs: object) -> object:
        """Reject unpatched HTTP calls."""

        raise AssertionError(f"Unexpected real HTTP call to {url}")

    monkeypatch.setattr(http_client.requests, "post", _unexpected_post)
