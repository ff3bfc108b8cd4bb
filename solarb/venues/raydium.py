"""
Raydium Pool Provider
=====================
Lists AMM pairs from Raydium's public pairs endpoint.

Row fields used: ammId, name, baseMint, quoteMint, price (quote per base),
liquidity (USD), tokenAmountCoin / tokenAmountPc (reserves).
"""

from typing import Any, Dict, Optional

import httpx

from solarb.shared.infrastructure.jupiter_client import JupiterClient
from solarb.shared.models import PoolSnapshot, Venue
from solarb.venues.base import VenueClient, split_pair_name


class RaydiumClient(VenueClient):
    venue = Venue.RAYDIUM
    dex_label = "Raydium"
    tag = "RAYDIUM"

    def __init__(self, jupiter: JupiterClient, pairs_url: Optional[str] = None, http_client: Optional[httpx.AsyncClient] = None, **kwargs):
        if pairs_url is None:
            from config.settings import Settings

            pairs_url = Settings.RAYDIUM_PAIRS_URL
        super().__init__(pairs_url, jupiter, http_client=http_client, **kwargs)

    def parse_pool(self, row: Dict[str, Any]) -> PoolSnapshot:
        base_symbol, quote_symbol = split_pair_name(row.get("name", ""))
        return PoolSnapshot(
            venue=self.venue,
            pool_id=row["ammId"],
            base_mint=row["baseMint"],
            quote_mint=row["quoteMint"],
            raw_price=float(row["price"]),
            liquidity_usd=float(row.get("liquidity") or 0),
            base_symbol=base_symbol,
            quote_symbol=quote_symbol,
            base_reserve=float(row.get("tokenAmountCoin") or 0),
            quote_reserve=float(row.get("tokenAmountPc") or 0),
        )
