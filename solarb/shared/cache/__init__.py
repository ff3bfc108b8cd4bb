from solarb.shared.cache.ttl_cache import CacheEntry, TTLCache
from solarb.shared.cache.opportunity_cache import OpportunityCache, PoolSnapshotCache
from solarb.shared.cache.file_store import CacheFileStore

__all__ = ["CacheEntry", "TTLCache", "OpportunityCache", "PoolSnapshotCache", "CacheFileStore"]
