"""Per-provider counters and router-level stats snapshots.

Responsibilities:
- Count attempts, outcomes, retries, upstream calls, and characters per provider.
- Estimate provider cost from each provider's cost profile.
- Render snapshots as string metadata for CLI output and logs.
"""

from __future__ import annotations

from dataclasses import dataclass
import threading

from ..cache import CacheStats


@dataclass(frozen=True, slots=True)
class ProviderStatsSnapshot:
    """Point-in-time copy of one provider's counters."""

    provider_id: str
    tier: int
    attempts: int
    successes: int
    failures: int
    skips: int
    retries: int
    upstream_calls: int
    characters: int
    estimated_cost_usd: float


class ProviderStats:
    """Thread-safe counters for one provider."""

    def __init__(self, provider_id: str, tier: int, cost_per_million_chars_usd: float = 0.0) -> None:
        """Initialize zeroed counters."""

        self.provider_id = provider_id
        self.tier = tier
        self._cost_per_char = max(0.0, cost_per_million_chars_usd) / 1_000_000
        self._lock = threading.Lock()
        self._attempts = 0
        self._successes = 0
        self._failures = 0
        self._skips = 0
        self._retries = 0
        self._upstream_calls = 0
        self._characters = 0

    def record_upstream_call(self, characters: int) -> None:
        """Count one HTTP request and the characters it carried."""

        with self._lock:
            self._upstream_calls += 1
            self._characters += max(0, characters)

    def record_retry(self) -> None:
        """Count one retry of a sub-batch."""

        with self._lock:
            self._retries += 1

    def record_outcomes(self, successes: int, failures: int) -> None:
        """Count per-text attempt results."""

        with self._lock:
            self._attempts += successes + failures
            self._successes += successes
            self._failures += failures

    def record_skips(self, texts: int) -> None:
        """Count texts for which this provider was skipped."""

        with self._lock:
            self._skips += texts

    def snapshot(self) -> ProviderStatsSnapshot:
        """Return a consistent copy of all counters."""

        with self._lock:
            return ProviderStatsSnapshot(
                provider_id=self.provider_id,
                tier=self.tier,
                attempts=self._attempts,
                successes=self._successes,
                failures=self._failures,
                skips=self._skips,
                retries=self._retries,
                upstream_calls=self._upstream_calls,
                characters=self._characters,
                estimated_cost_usd=self._characters * self._cost_per_char,
            )


@dataclass(frozen=True, slots=True)
class RouterStats:
    """Read-only observability surface of a `FallbackRouter`."""

    cache: CacheStats
    providers: tuple[ProviderStatsSnapshot, ...]

    @property
    def total_cost_usd(self) -> float:
        """Return the summed cost estimate across providers."""

        return sum(provider.estimated_cost_usd for provider in self.providers)

    def provider(self, provider_id: str) -> ProviderStatsSnapshot:
        """Return the snapshot for one provider."""

        for provider in self.providers:
            if provider.provider_id == provider_id:
                return provider
        raise KeyError(provider_id)

    def as_metadata(self) -> dict[str, str]:
        """Return flat string metadata suitable for logs and CLI output."""

        metadata = {
            "cache_hits": str(self.cache.hits),
            "cache_misses": str(self.cache.misses),
            "cache_size": str(self.cache.size),
            "cache_evictions": str(self.cache.evictions),
            "cache_hit_rate": f"{self.cache.hit_rate:.4f}",
            "total_cost_usd": f"{self.total_cost_usd:.6f}",
        }
        for provider in self.providers:
            prefix = f"provider_{provider.provider_id}"
            metadata[f"{prefix}_attempts"] = str(provider.attempts)
            metadata[f"{prefix}_failures"] = str(provider.failures)
            metadata[f"{prefix}_upstream_calls"] = str(provider.upstream_calls)
        return metadata
