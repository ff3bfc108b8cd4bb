"""
Opportunity Ranker
==================
Stable descending sort by expected profit; ties keep discovery order.
"""

from typing import Iterable, List

from config import thresholds
from solarb.shared.models import ArbitrageOpportunity
from solarb.shared.system.logging import Logger


def rank_opportunities(
    candidates: Iterable[ArbitrageOpportunity],
    top_n: int = thresholds.TOP_N,
) -> List[ArbitrageOpportunity]:
    if top_n <= 0:
        raise ValueError(f"top_n must be positive, got {top_n}")

    ranked = sorted(candidates, key=lambda opp: opp.expected_profit_bps, reverse=True)
    top = ranked[:top_n]

    if top:
        Logger.info(
            f"[RANK] Top {len(top)} of {len(ranked)}: best {top[0].pair_name} "
            f"at {top[0].expected_profit_bps:.1f} bps"
        )
    return top
