"""Bounded in-memory translation cache.

Responsibilities:
- Build stable cache keys from normalized source text and language pair.
- Reuse translations across requests with least-recently-used eviction and TTL expiry.
- Track cache telemetry (hits/misses/evictions/expirations) for observability.
"""

from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass
import threading
from time import monotonic
from typing import Callable

from .parsing import normalize_language_code


def _normalize_text(text: str) -> str:
    """Collapse whitespace runs so cosmetic spacing does not split cache entries."""

    return " ".join(text.split())


def _normalize_language(code: str) -> str:
    """Lower-case a language code, keeping unparseable input verbatim."""

    return normalize_language_code(code) or code.strip().lower()


@dataclass(frozen=True, slots=True)
class CacheKey:
    """Deterministic cache identity of one translation."""

    normalized_text: str
    source_lang: str
    target_lang: str


@dataclass(frozen=True, slots=True)
class CacheEntry:
    """Cached translation value with insertion and access timestamps."""

    value: str
    inserted_at: float
    last_accessed_at: float


@dataclass(frozen=True, slots=True)
class CacheStats:
    """Point-in-time cache telemetry."""

    hits: int
    misses: int
    size: int
    capacity: int
    evictions: int
    expirations: int

    @property
    def hit_rate(self) -> float:
        """Return hit ratio over all lookups."""

        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return self.hits / float(total)


class ResultCache:
    """Thread-safe LRU cache with optional time-to-live per entry.

    One lock mediates every mutation, including the recency updates caused by
    reads, so concurrent callers never observe a torn order or double eviction.
    """

    def __init__(
        self,
        capacity: int = 1000,
        ttl_seconds: float | None = None,
        clock: Callable[[], float] = monotonic,
    ) -> None:
        """Initialize an empty cache."""

        if capacity <= 0:
            raise ValueError("Cache capacity must be a positive integer.")
        if ttl_seconds is not None and ttl_seconds <= 0:
            raise ValueError("Cache TTL must be positive when set.")
        self.capacity = capacity
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: OrderedDict[CacheKey, CacheEntry] = OrderedDict()
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0
        self._expirations = 0

    @staticmethod
    def make_key(text: str, source_lang: str, target_lang: str) -> CacheKey:
        """Build a deterministic cache key; equal inputs always give equal keys."""

        return CacheKey(
            normalized_text=_normalize_text(text),
            source_lang=_normalize_language(source_lang),
            target_lang=_normalize_language(target_lang),
        )

    def _is_expired(self, entry: CacheEntry, now: float) -> bool:
        """Return whether an entry has outlived the TTL."""

        return self.ttl_seconds is not None and now - entry.inserted_at > self.ttl_seconds

    def get(self, key: CacheKey) -> str | None:
        """Return the cached translation and mark it most recently used."""

        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None
            now = self._clock()
            if self._is_expired(entry, now):
                del self._entries[key]
                self._expirations += 1
                self._misses += 1
                return None
            self._entries[key] = CacheEntry(
                value=entry.value,
                inserted_at=entry.inserted_at,
                last_accessed_at=now,
            )
            self._entries.move_to_end(key)
            self._hits += 1
            return entry.value

    def set(self, key: CacheKey, value: str) -> None:
        """Store a translation, evicting the least recently used entry when full.

        Expired entries are dropped before any live entry is evicted.
        """

        with self._lock:
            now = self._clock()
            self._entries[key] = CacheEntry(value=value, inserted_at=now, last_accessed_at=now)
            self._entries.move_to_end(key)
            if len(self._entries) > self.capacity:
                self._purge_expired(now)
            while len(self._entries) > self.capacity:
                self._entries.popitem(last=False)
                self._evictions += 1

    def _purge_expired(self, now: float) -> None:
        """Remove every expired entry; caller holds the lock."""

        if self.ttl_seconds is None:
            return
        expired = [key for key, entry in self._entries.items() if self._is_expired(entry, now)]
        for key in expired:
            del self._entries[key]
        self._expirations += len(expired)

    def clear(self) -> None:
        """Drop every entry; counters are kept."""

        with self._lock:
            self._entries.clear()

    def keys(self) -> list[CacheKey]:
        """Return keys from least to most recently used."""

        with self._lock:
            return list(self._entries.keys())

    def stats(self) -> CacheStats:
        """Return a consistent snapshot of cache counters."""

        with self._lock:
            return CacheStats(
                hits=self._hits,
                misses=self._misses,
                size=len(self._entries),
                capacity=self.capacity,
                evictions=self._evictions,
                expirations=self._expirations,
            )

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries
