"""
Opportunity Matcher
===================
Pairs Raydium and Meteora pools that trade the same token against SOL.

Meteora pools are indexed by token mint, then the Raydium set is scanned
against that index, so a cycle is O(A + B). A pair survives only if:

    - |spread| sits inside [min_spread_pct, max_spread_pct]
    - both pools clear the liquidity floor
    - the token mint resolved from each pool independently is identical

Usage:
    matcher = OpportunityMatcher(MatcherConfig.from_settings())
    opportunities = matcher.match(raydium_priced, meteora_priced)
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from config import thresholds
from solarb.shared.models import ArbitrageOpportunity, Direction, PricedPool
from solarb.shared.system.logging import Logger


@dataclass(frozen=True)
class MatcherConfig:
    min_spread_pct: float = thresholds.MIN_SPREAD_PCT
    max_spread_pct: float = thresholds.MAX_SPREAD_PCT
    min_liquidity_usd: float = thresholds.MIN_LIQUIDITY_USD
    base_symbol: str = "WSOL"
    base_mint: str = thresholds.WSOL_MINT

    def __post_init__(self):
        if not 0 <= self.min_spread_pct < self.max_spread_pct:
            raise ValueError(
                f"Spread band must satisfy 0 <= min < max, got "
                f"({self.min_spread_pct}, {self.max_spread_pct})"
            )

    @classmethod
    def from_settings(cls) -> "MatcherConfig":
        from config.settings import Settings

        min_spread, max_spread, min_liquidity = Settings.profile()
        return cls(min_spread_pct=min_spread, max_spread_pct=max_spread, min_liquidity_usd=min_liquidity)


@dataclass
class MatchStats:
    candidates: int = 0
    matched: int = 0
    rejected_spread: int = 0
    rejected_liquidity: int = 0
    rejected_address: int = 0
    symbol_collisions: int = 0
    duplicates: List[str] = field(default_factory=list)


def calculate_spread_pct(price_a: float, price_b: float) -> float:
    """(priceA - priceB) / min(priceA, priceB) * 100."""
    return (price_a - price_b) / min(price_a, price_b) * 100


class OpportunityMatcher:
    """Cross-venue matcher over normalized pool sets."""

    def __init__(self, config: Optional[MatcherConfig] = None):
        self.config = config or MatcherConfig()
        self.last_stats = MatchStats()

    def match(
        self,
        raydium_pools: Iterable[PricedPool],
        meteora_pools: Iterable[PricedPool],
    ) -> List[ArbitrageOpportunity]:
        stats = MatchStats()

        by_mint: Dict[str, PricedPool] = {}
        by_symbol: Dict[str, PricedPool] = {}
        for pool in meteora_pools:
            if pool.token_mint in by_mint:
                # Keep the deepest pool per token
                stats.duplicates.append(pool.pool_id)
                if pool.liquidity_usd <= by_mint[pool.token_mint].liquidity_usd:
                    continue
            by_mint[pool.token_mint] = pool
            if pool.token_symbol:
                by_symbol[pool.token_symbol.upper()] = pool

        opportunities: List[ArbitrageOpportunity] = []
        for raydium in raydium_pools:
            stats.candidates += 1
            meteora = by_mint.get(raydium.token_mint)

            if meteora is None:
                self._check_symbol_collision(raydium, by_symbol, stats)
                continue

            opportunity = self._evaluate(raydium, meteora, stats)
            if opportunity is not None:
                opportunities.append(opportunity)

        stats.matched = len(opportunities)
        self.last_stats = stats
        Logger.info(
            f"[MATCH] {stats.matched} opportunities from {stats.candidates} Raydium pools "
            f"(spread {stats.rejected_spread}, liquidity {stats.rejected_liquidity}, "
            f"address {stats.rejected_address} rejected)"
        )
        return opportunities

    def _check_symbol_collision(self, raydium: PricedPool, by_symbol: Dict[str, PricedPool], stats: MatchStats) -> None:
        if not raydium.token_symbol:
            return
        twin = by_symbol.get(raydium.token_symbol.upper())
        if twin is not None and twin.token_mint != raydium.token_mint:
            stats.symbol_collisions += 1
            Logger.warning(
                f"[MATCH] Symbol {raydium.token_symbol} maps to different mints: "
                f"Raydium {raydium.token_mint} vs Meteora {twin.token_mint}; not pairing"
            )

    def _evaluate(self, raydium: PricedPool, meteora: PricedPool, stats: MatchStats) -> Optional[ArbitrageOpportunity]:
        cfg = self.config
        raydium_mint = self._resolve_token_mint(raydium)
        meteora_mint = self._resolve_token_mint(meteora)
        if raydium_mint is None or raydium_mint != meteora_mint or raydium_mint != raydium.token_mint:
            stats.rejected_address += 1
            Logger.warning(
                f"[MATCH] Address mismatch for {raydium.token_symbol or raydium.token_mint}: "
                f"Raydium {raydium_mint} vs Meteora {meteora_mint}; opportunity dropped"
            )
            return None

        spread = calculate_spread_pct(raydium.price, meteora.price)
        if not cfg.min_spread_pct <= abs(spread) <= cfg.max_spread_pct:
            stats.rejected_spread += 1
            Logger.debug(
                f"[MATCH] {raydium.token_symbol} spread {spread:.3f}% outside "
                f"[{cfg.min_spread_pct}, {cfg.max_spread_pct}]"
            )
            return None

        thin = min(raydium.liquidity_usd, meteora.liquidity_usd)
        if thin < cfg.min_liquidity_usd:
            stats.rejected_liquidity += 1
            Logger.debug(
                f"[MATCH] {raydium.token_symbol} liquidity ${raydium.liquidity_usd:,.0f}/"
                f"${meteora.liquidity_usd:,.0f} below floor ${cfg.min_liquidity_usd:,.0f}"
            )
            return None

        # More tokens per SOL means the token is cheaper on that venue
        direction = Direction.BUY_ON_RAYDIUM if raydium.price > meteora.price else Direction.BUY_ON_METEORA
        symbol = raydium.token_symbol or meteora.token_symbol or raydium_mint[:6]

        return ArbitrageOpportunity(
            pair_name=f"{cfg.base_symbol}/{symbol}",
            raydium_pool_id=raydium.pool_id,
            meteora_pool_id=meteora.pool_id,
            token_mint=raydium_mint,
            spread_pct=spread,
            expected_profit_bps=abs(spread) * 100,
            direction=direction,
            raydium_price=raydium.price,
            meteora_price=meteora.price,
            raydium_liquidity_usd=raydium.liquidity_usd,
            meteora_liquidity_usd=meteora.liquidity_usd,
        )

    def _resolve_token_mint(self, pool: PricedPool) -> Optional[str]:
        """The raw snapshot's non-SOL side, independent of the mint the pool was indexed under."""
        snap = pool.snapshot
        base = self.config.base_mint
        if snap.base_mint == base and snap.quote_mint != base:
            return snap.quote_mint
        if snap.quote_mint == base and snap.base_mint != base:
            return snap.base_mint
        return None
