"""
Cache Unit Tests
================
TTL boundaries with an injected clock, lookup by either leg, fallback reads.
"""

import pytest

from solarb.shared.cache.opportunity_cache import OpportunityCache, PoolSnapshotCache
from solarb.shared.cache.ttl_cache import TTLCache
from solarb.shared.models import ArbitrageOpportunity, CachedOpportunity, Direction, Venue


def _cached(make_snapshot, name: str, bps: float = 100.0) -> CachedOpportunity:
    opp = ArbitrageOpportunity(
        pair_name=f"WSOL/{name}",
        raydium_pool_id=f"ray-{name}",
        meteora_pool_id=f"met-{name}",
        token_mint=f"mint-{name}",
        spread_pct=bps / 100,
        expected_profit_bps=bps,
        direction=Direction.BUY_ON_RAYDIUM,
    )
    return CachedOpportunity(
        opportunity=opp,
        raydium_pool=make_snapshot(pool_id=f"ray-{name}"),
        meteora_pool=make_snapshot(venue=Venue.METEORA, pool_id=f"met-{name}"),
    )


class TestTTLCache:

    @pytest.mark.asyncio
    async def test_hit_just_inside_ttl(self, clock):
        cache = TTLCache(ttl=300.0, clock=clock)
        await cache.put("k", "v")

        clock.advance(300.0 - 0.001)

        assert await cache.get("k") == "v"

    @pytest.mark.asyncio
    async def test_miss_just_past_ttl(self, clock):
        cache = TTLCache(ttl=300.0, clock=clock)
        await cache.put("k", "v")

        clock.advance(300.0 + 0.001)

        assert await cache.get("k") is None

    @pytest.mark.asyncio
    async def test_miss_at_exact_ttl(self, clock):
        cache = TTLCache(ttl=30.0, clock=clock)
        await cache.put("k", "v")

        clock.advance(30.0)

        assert await cache.get("k") is None

    @pytest.mark.asyncio
    async def test_peek_ignores_ttl(self, clock):
        cache = TTLCache(ttl=10.0, clock=clock)
        await cache.put("k", "v")
        clock.advance(60.0)

        entry = cache.peek("k")

        assert entry.value == "v"
        assert entry.age(clock()) == pytest.approx(60.0)

    @pytest.mark.asyncio
    async def test_invalidate_one_and_all(self, clock):
        cache = TTLCache(ttl=10.0, clock=clock)
        await cache.put("a", 1)
        await cache.put("b", 2)

        await cache.invalidate("a")
        assert await cache.get("a") is None
        assert await cache.get("b") == 2

        await cache.invalidate()
        assert await cache.get("b") is None

    def test_non_positive_ttl_rejected(self):
        with pytest.raises(ValueError):
            TTLCache(ttl=0)


class TestOpportunityCache:

    @pytest.mark.asyncio
    async def test_lookup_by_either_pool_id(self, clock, make_snapshot):
        cache = OpportunityCache(ttl=300.0, clock=clock)
        entry = _cached(make_snapshot, "BONK")
        await cache.put([entry])

        assert await cache.get("ray-BONK") is entry
        assert await cache.get("met-BONK") is entry
        assert await cache.get("unknown") is None

    @pytest.mark.asyncio
    async def test_expires_as_one_unit(self, clock, make_snapshot):
        cache = OpportunityCache(ttl=300.0, clock=clock)
        await cache.put([_cached(make_snapshot, "A"), _cached(make_snapshot, "B")])

        clock.advance(299.999)
        assert len(await cache.all()) == 2

        clock.advance(0.002)
        assert await cache.all() == []
        assert await cache.get("ray-A") is None

    @pytest.mark.asyncio
    async def test_keeps_top_n_only(self, clock, make_snapshot):
        cache = OpportunityCache(ttl=300.0, top_n=2, clock=clock)
        await cache.put([_cached(make_snapshot, n) for n in ("A", "B", "C")])

        assert [e.opportunity.pair_name for e in await cache.all()] == ["WSOL/A", "WSOL/B"]

    @pytest.mark.asyncio
    async def test_age_and_invalidate(self, clock, make_snapshot):
        cache = OpportunityCache(ttl=300.0, clock=clock)
        assert cache.age() is None

        await cache.put([_cached(make_snapshot, "A")])
        clock.advance(42.0)
        assert cache.age() == pytest.approx(42.0)

        await cache.invalidate()
        assert await cache.all() == []

    @pytest.mark.asyncio
    async def test_replayed_timestamp_respected(self, clock, make_snapshot):
        cache = OpportunityCache(ttl=300.0, clock=clock)
        await cache.put([_cached(make_snapshot, "A")], stored_at=clock() - 301.0)

        assert await cache.all() == []


class TestPoolSnapshotCache:

    @pytest.mark.asyncio
    async def test_partitions_per_venue(self, clock, make_snapshot):
        cache = PoolSnapshotCache(ttl=30.0, clock=clock)
        await cache.put(Venue.RAYDIUM, [make_snapshot(pool_id="r1")])

        assert [p.pool_id for p in await cache.get(Venue.RAYDIUM)] == ["r1"]
        assert await cache.get(Venue.METEORA) is None

    @pytest.mark.asyncio
    async def test_last_known_survives_expiry(self, clock, make_snapshot):
        cache = PoolSnapshotCache(ttl=30.0, clock=clock)
        await cache.put(Venue.METEORA, [make_snapshot(venue=Venue.METEORA, pool_id="m1")])
        clock.advance(45.0)

        assert await cache.get(Venue.METEORA) is None
        pools, age = cache.last_known(Venue.METEORA)
        assert pools[0].pool_id == "m1"
        assert age == pytest.approx(45.0)

    def test_last_known_empty(self, clock):
        assert PoolSnapshotCache(clock=clock).last_known(Venue.RAYDIUM) is None
