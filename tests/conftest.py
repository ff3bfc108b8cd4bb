"""
solarb Test Configuration
=========================
Shared fixtures and pytest markers for the test suite.
"""

import os
import sys
import tempfile

import pytest

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Keep session logs and cache files out of the working tree
_SCRATCH = tempfile.mkdtemp(prefix="solarb-tests-")
os.environ.setdefault("LOG_DIR", os.path.join(_SCRATCH, "logs"))
os.environ.setdefault("CACHE_DIR", os.path.join(_SCRATCH, "cache"))


# ============================================================================
# PYTEST MARKERS
# ============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "unit: pure logic tests, no network"
    )
    config.addinivalue_line(
        "markers", "integration: end-to-end tests over mocked venues, RPC and relay"
    )
    config.addinivalue_line(
        "markers", "network: marks tests that require network access"
    )


# ============================================================================
# SHARED FIXTURES
# ============================================================================

class FakeClock:
    """Manually advanced clock for TTL and freshness tests."""

    def __init__(self, start: float = 1_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_snapshot():
    """Factory for PoolSnapshot with sensible defaults."""
    from solarb.shared.models import PoolSnapshot, Venue
    from tests.mocks.mock_apis import TOKEN_MINT, WSOL

    def _make(
        venue: Venue = Venue.RAYDIUM,
        pool_id: str = "pool-1",
        base_mint: str = TOKEN_MINT,
        quote_mint: str = WSOL,
        raw_price: float = 0.01,
        liquidity_usd: float = 50_000.0,
        base_symbol: str = "BONK",
        quote_symbol: str = "WSOL",
    ) -> PoolSnapshot:
        return PoolSnapshot(
            venue=venue,
            pool_id=pool_id,
            base_mint=base_mint,
            quote_mint=quote_mint,
            raw_price=raw_price,
            liquidity_usd=liquidity_usd,
            base_symbol=base_symbol,
            quote_symbol=quote_symbol,
        )

    return _make


@pytest.fixture
def make_priced():
    """Factory for a PricedPool at a given canonical price (tokens per SOL)."""
    from solarb.arbitrage.normalizer import normalize_snapshot
    from solarb.shared.models import PoolSnapshot, Venue
    from tests.mocks.mock_apis import TOKEN_MINT, WSOL

    def _make(
        venue: Venue,
        tokens_per_sol: float,
        liquidity_usd: float = 50_000.0,
        token_mint: str = TOKEN_MINT,
        symbol: str = "BONK",
        pool_id: str = "",
    ):
        # Raydium lists the token first, Meteora lists SOL first
        if venue is Venue.RAYDIUM:
            snap = PoolSnapshot(
                venue, pool_id or f"ray-{symbol}", token_mint, WSOL, 1 / tokens_per_sol,
                liquidity_usd, symbol, "WSOL",
            )
        else:
            snap = PoolSnapshot(
                venue, pool_id or f"met-{symbol}", WSOL, token_mint, tokens_per_sol,
                liquidity_usd, "SOL", symbol,
            )
        return normalize_snapshot(snap)

    return _make
