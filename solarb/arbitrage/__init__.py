"""Price normalization, cross-venue matching and ranking."""

from solarb.arbitrage.normalizer import normalize_price, normalize_snapshot
from solarb.arbitrage.matcher import MatcherConfig, OpportunityMatcher, calculate_spread_pct
from solarb.arbitrage.ranker import rank_opportunities

__all__ = [
    "normalize_price",
    "normalize_snapshot",
    "MatcherConfig",
    "OpportunityMatcher",
    "calculate_spread_pct",
    "rank_opportunities",
]
