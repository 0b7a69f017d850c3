from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

from portfoliodesk.schemas.quote import CacheInfo, CacheStats, QuoteResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    data: QuoteResult
    inserted_at: float
    expires_at: float


class QuoteCache:
    """In-memory quote store with per-entry expiry and a hard size bound.

    Keys are uppercased provider symbols. Expired entries are dropped lazily on
    read, or in bulk by ``cleanup()`` when an insert finds the cache full. When
    nothing has expired the oldest inserted entry is evicted, so ``set`` never
    fails and ``len(cache) <= max_size`` always holds.
    """

    def __init__(
        self,
        ttl_seconds: float = 300.0,
        max_size: int = 1000,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.ttl_seconds = ttl_seconds
        self.max_size = max_size
        self._clock = clock
        # dict keeps insertion order; the first key is always the oldest entry.
        self._entries: dict[str, CacheEntry] = {}
        self._hits = 0
        self._misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    @staticmethod
    def _key(symbol: str) -> str:
        return symbol.upper()

    def _live_entry(self, key: str) -> CacheEntry | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() > entry.expires_at:
            del self._entries[key]
            return None
        return entry

    def get(self, symbol: str) -> QuoteResult | None:
        entry = self._live_entry(self._key(symbol))
        if entry is None:
            self._misses += 1
            return None
        self._hits += 1
        return entry.data.model_copy(update={"from_cache": True})

    def has(self, symbol: str) -> bool:
        return self._live_entry(self._key(symbol)) is not None

    def set(self, symbol: str, result: QuoteResult, ttl: float | None = None) -> None:
        key = self._key(symbol)
        # Re-inserting moves the key to the newest position.
        self._entries.pop(key, None)

        if len(self._entries) >= self.max_size:
            self.cleanup()
        if len(self._entries) >= self.max_size:
            oldest_key = next(iter(self._entries))
            del self._entries[oldest_key]
            logger.debug("Evicted oldest cache entry %s", oldest_key)

        now = self._clock()
        self._entries[key] = CacheEntry(
            data=result.model_copy(update={"from_cache": False}),
            inserted_at=now,
            expires_at=now + (self.ttl_seconds if ttl is None else ttl),
        )

    def delete(self, symbol: str) -> bool:
        return self._entries.pop(self._key(symbol), None) is not None

    def clear(self) -> None:
        self._entries.clear()
        self._hits = 0
        self._misses = 0

    def cleanup(self) -> int:
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if now > entry.expires_at]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def info(self) -> CacheInfo:
        return CacheInfo(size=len(self._entries), max_size=self.max_size)

    def stats(self) -> CacheStats:
        expired = self.cleanup()
        lookups = self._hits + self._misses
        hit_rate = round(self._hits / lookups * 100, 1) if lookups else 0.0
        return CacheStats(
            size=len(self._entries),
            max_size=self.max_size,
            expired_entries=expired,
            hits=self._hits,
            misses=self._misses,
            hit_rate=hit_rate,
        )
