"""
Meteora DLMM Pool Provider
==========================
Lists DLMM pairs from Meteora's public API.

Row fields used: address, name, mint_x, mint_y, current_price (y per x),
liquidity (USD string), reserve_x_amount / reserve_y_amount.
"""

from typing import Any, Dict, Optional

import httpx

from solarb.shared.infrastructure.jupiter_client import JupiterClient
from solarb.shared.models import PoolSnapshot, Venue
from solarb.venues.base import VenueClient, split_pair_name


class MeteoraClient(VenueClient):
    venue = Venue.METEORA
    dex_label = "Meteora DLMM"
    tag = "METEORA"

    def __init__(self, jupiter: JupiterClient, pairs_url: Optional[str] = None, http_client: Optional[httpx.AsyncClient] = None, **kwargs):
        if pairs_url is None:
            from config.settings import Settings

            pairs_url = Settings.METEORA_PAIRS_URL
        super().__init__(pairs_url, jupiter, http_client=http_client, **kwargs)

    def parse_pool(self, row: Dict[str, Any]) -> PoolSnapshot:
        name_x, name_y = split_pair_name(row.get("name", ""))
        return PoolSnapshot(
            venue=self.venue,
            pool_id=row["address"],
            base_mint=row["mint_x"],
            quote_mint=row["mint_y"],
            raw_price=float(row["current_price"]),
            liquidity_usd=float(row.get("liquidity") or 0),
            base_symbol=row.get("mint_x_symbol") or name_x,
            quote_symbol=row.get("mint_y_symbol") or name_y,
            base_reserve=float(row.get("reserve_x_amount") or 0),
            quote_reserve=float(row.get("reserve_y_amount") or 0),
        )
