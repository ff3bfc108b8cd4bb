"""
TTL Cache Service
=================
Keyed cache with an injected clock. Entries are immutable and replaced
whole under a lock, so a reader sees either the old or the new entry.

Usage:
    cache = TTLCache(ttl=30.0)
    await cache.put("raydium", pools)
    pools = await cache.get("raydium")   # None once the TTL has elapsed
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, Hashable, Optional, TypeVar

V = TypeVar("V")

Clock = Callable[[], float]


@dataclass(frozen=True)
class CacheEntry(Generic[V]):
    value: V
    stored_at: float

    def age(self, now: float) -> float:
        return now - self.stored_at


class TTLCache(Generic[V]):
    """Time-bounded cache; a lookup at or past the TTL is a miss."""

    def __init__(self, ttl: float, clock: Optional[Clock] = None):
        if ttl <= 0:
            raise ValueError(f"ttl must be positive, got {ttl}")
        self.ttl = ttl
        self._clock: Clock = clock or time.time
        self._entries: Dict[Hashable, CacheEntry[V]] = {}
        self._lock = asyncio.Lock()

    def now(self) -> float:
        return self._clock()

    def is_fresh(self, entry: CacheEntry[Any]) -> bool:
        return entry.age(self._clock()) < self.ttl

    async def get(self, key: Hashable) -> Optional[V]:
        entry = self._entries.get(key)
        if entry is None or not self.is_fresh(entry):
            return None
        return entry.value

    def peek(self, key: Hashable) -> Optional[CacheEntry[V]]:
        """Return the last entry regardless of TTL. For flagged fallbacks only."""
        return self._entries.get(key)

    async def put(self, key: Hashable, value: V, stored_at: Optional[float] = None) -> CacheEntry[V]:
        entry = CacheEntry(value=value, stored_at=self._clock() if stored_at is None else stored_at)
        async with self._lock:
            self._entries[key] = entry
        return entry

    async def invalidate(self, key: Optional[Hashable] = None) -> None:
        """Drop one key, or everything when key is None."""
        async with self._lock:
            if key is None:
                self._entries.clear()
            else:
                self._entries.pop(key, None)
