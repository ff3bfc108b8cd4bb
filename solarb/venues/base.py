"""
Venue Client
============
One strategy interface for every AMM venue:

    fetch_snapshots()          -> SOL pools with price and liquidity
    quote(...)                 -> single-pool quote (chainable)
    build_swap_instructions()  -> instructions for a quote

Pool listing is venue-specific (parse_pool). Quoting and instruction
building go through Jupiter pinned to the venue's DEX label.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, List, Optional

import httpx
from solders.pubkey import Pubkey

from config import thresholds
from solarb.shared.infrastructure.jupiter_client import JupiterClient, SwapQuote
from solarb.shared.models import PoolSnapshot, SwapLegPlan, Venue
from solarb.shared.system.errors import NetworkTimeout, ProviderUnavailable
from solarb.shared.system.logging import Logger


class SwapSide(Enum):
    BUY_TOKEN = "buy_token"    # base asset -> token
    SELL_TOKEN = "sell_token"  # token -> base asset


def split_pair_name(name: str) -> tuple:
    """'RAY-WSOL' / 'SOL/USDC' -> ('RAY', 'WSOL')."""
    for sep in ("-", "/"):
        if sep in name:
            first, _, second = name.partition(sep)
            return first.strip(), second.strip()
    return name.strip(), ""


class VenueClient(ABC):
    venue: Venue
    dex_label: str
    tag: str

    def __init__(
        self,
        pairs_url: str,
        jupiter: JupiterClient,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = thresholds.HTTP_TIMEOUT_SEC,
        min_liquidity_usd: float = thresholds.POOL_PREFILTER_LIQUIDITY_USD,
        base_mint: str = thresholds.WSOL_MINT,
    ):
        self.pairs_url = pairs_url
        self.jupiter = jupiter
        self.timeout = timeout
        self.min_liquidity_usd = min_liquidity_usd
        self.base_mint = base_mint
        self._client = http_client
        self._owns_client = http_client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    # =========================================================================
    # SNAPSHOTS
    # =========================================================================

    @abstractmethod
    def parse_pool(self, row: Dict[str, Any]) -> PoolSnapshot:
        """Raw API row -> PoolSnapshot. Raises KeyError/ValueError/TypeError on bad rows."""

    def extract_rows(self, payload: Any) -> List[Dict[str, Any]]:
        if isinstance(payload, dict):
            payload = payload.get("data", payload.get("pairs"))
        if not isinstance(payload, list):
            raise ProviderUnavailable(self.venue.value, f"unexpected payload type {type(payload).__name__}")
        return payload

    async def fetch_snapshots(self) -> List[PoolSnapshot]:
        """All SOL pools above the liquidity prefilter."""
        try:
            resp = await self._get_client().get(self.pairs_url)
            resp.raise_for_status()
            payload = resp.json()
        except httpx.TimeoutException as e:
            raise NetworkTimeout(f"{self.venue.value} pairs", str(e) or type(e).__name__, self.timeout) from e
        except httpx.HTTPError as e:
            raise ProviderUnavailable(self.venue.value, str(e)) from e
        except ValueError as e:
            raise ProviderUnavailable(self.venue.value, f"invalid JSON: {e}") from e

        pools: List[PoolSnapshot] = []
        skipped = 0
        for row in self.extract_rows(payload):
            try:
                pool = self.parse_pool(row)
            except (KeyError, ValueError, TypeError, AttributeError):
                skipped += 1
                continue
            if self.base_mint not in (pool.base_mint, pool.quote_mint):
                continue
            if pool.liquidity_usd < self.min_liquidity_usd:
                continue
            pools.append(pool)

        Logger.info(f"[{self.tag}] {len(pools)} SOL pools with liquidity >= ${self.min_liquidity_usd:,.0f}")
        if skipped:
            Logger.debug(f"[{self.tag}] Skipped {skipped} malformed rows")
        return pools

    # =========================================================================
    # SWAPS
    # =========================================================================

    async def quote(
        self,
        pool_id: str,
        amount_in: int,
        side: SwapSide,
        token_mint: str,
        slippage_bps: int = thresholds.SLIPPAGE_BPS,
    ) -> SwapQuote:
        if side is SwapSide.BUY_TOKEN:
            input_mint, output_mint = self.base_mint, token_mint
        else:
            input_mint, output_mint = token_mint, self.base_mint
        return await self.jupiter.get_quote(
            self.dex_label, pool_id, input_mint, output_mint, amount_in, slippage_bps
        )

    async def build_swap_instructions(self, quote: SwapQuote, signer: Pubkey) -> SwapLegPlan:
        instructions, lookup_tables = await self.jupiter.get_swap_instructions(quote, signer)
        return SwapLegPlan(
            venue=self.venue,
            pool_id=quote.pool_id,
            input_mint=quote.input_mint,
            output_mint=quote.output_mint,
            in_amount=quote.in_amount,
            out_amount=quote.out_amount,
            min_out_amount=quote.min_out_amount,
            price_impact_bps=quote.price_impact_bps,
            instructions=instructions,
            lookup_tables=lookup_tables,
        )
