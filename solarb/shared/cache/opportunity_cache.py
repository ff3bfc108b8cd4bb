"""
Opportunity & Pool Snapshot Caches
==================================
Two independent TTL partitions over TTLCache:

- OpportunityCache: the ranked top-N with the pools needed to replay it (5 min)
- PoolSnapshotCache: last snapshot set per venue (tens of seconds)
"""

from typing import Iterable, List, Optional, Sequence, Tuple

from config import thresholds
from solarb.shared.cache.ttl_cache import CacheEntry, Clock, TTLCache
from solarb.shared.models import CachedOpportunity, PoolSnapshot, Venue
from solarb.shared.system.logging import Logger

_TOP_N_KEY = "top_n"


class OpportunityCache:
    """Ranked top-N, stored as one immutable tuple with one timestamp."""

    def __init__(
        self,
        ttl: float = thresholds.TOP_N_CACHE_TTL_SEC,
        top_n: int = thresholds.TOP_N,
        clock: Optional[Clock] = None,
    ):
        self.top_n = top_n
        self._cache: TTLCache[Tuple[CachedOpportunity, ...]] = TTLCache(ttl, clock)

    @property
    def ttl(self) -> float:
        return self._cache.ttl

    async def put(self, entries: Sequence[CachedOpportunity], stored_at: Optional[float] = None) -> CacheEntry:
        snapshot = tuple(entries[: self.top_n])
        entry = await self._cache.put(_TOP_N_KEY, snapshot, stored_at)
        Logger.debug(f"[CACHE] Stored top {len(snapshot)} opportunities")
        return entry

    async def get(self, pool_id: str) -> Optional[CachedOpportunity]:
        """Lookup by either leg's pool id."""
        entries = await self._cache.get(_TOP_N_KEY)
        if entries is None:
            return None
        for cached in entries:
            if cached.matches(pool_id):
                return cached
        return None

    async def all(self) -> List[CachedOpportunity]:
        entries = await self._cache.get(_TOP_N_KEY)
        return list(entries) if entries else []

    def age(self) -> Optional[float]:
        entry = self._cache.peek(_TOP_N_KEY)
        return None if entry is None else entry.age(self._cache.now())

    async def invalidate(self) -> None:
        await self._cache.invalidate(_TOP_N_KEY)


class PoolSnapshotCache:
    """One partition per venue; fetches for different venues never collide."""

    def __init__(self, ttl: float = thresholds.POOL_CACHE_TTL_SEC, clock: Optional[Clock] = None):
        self._cache: TTLCache[Tuple[PoolSnapshot, ...]] = TTLCache(ttl, clock)

    @property
    def ttl(self) -> float:
        return self._cache.ttl

    async def put(self, venue: Venue, pools: Iterable[PoolSnapshot], stored_at: Optional[float] = None) -> CacheEntry:
        return await self._cache.put(venue, tuple(pools), stored_at)

    async def get(self, venue: Venue) -> Optional[Tuple[PoolSnapshot, ...]]:
        return await self._cache.get(venue)

    def last_known(self, venue: Venue) -> Optional[Tuple[Tuple[PoolSnapshot, ...], float]]:
        """Last snapshot set and its age in seconds, ignoring the TTL."""
        entry = self._cache.peek(venue)
        if entry is None:
            return None
        return entry.value, entry.age(self._cache.now())

    async def invalidate(self, venue: Optional[Venue] = None) -> None:
        await self._cache.invalidate(venue)
