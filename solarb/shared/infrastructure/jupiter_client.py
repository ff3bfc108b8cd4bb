"""
Jupiter Instruction Source
==========================
Quote + swap-instruction builder used by the venue clients.

Each quote is pinned to one venue (`dexes`) and a single direct hop, and the
returned route must run through the requested pool. Jupiter's own
compute-budget instructions are dropped; the assembler owns that section.

Endpoints:
    GET  {base}/quote
    POST {base}/swap-instructions
"""

import base64
import time
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Tuple

import httpx
from solders.instruction import AccountMeta, Instruction
from solders.pubkey import Pubkey

from config import thresholds
from solarb.shared.system.errors import NetworkTimeout, PoolNotFound, QuoteUnavailable
from solarb.shared.system.logging import Logger

NO_ROUTE_CODES = {"COULD_NOT_FIND_ANY_ROUTE", "NO_ROUTES_FOUND", "TOKEN_NOT_TRADABLE"}


@dataclass(frozen=True)
class SwapQuote:
    """A single-hop quote through one pool."""

    venue_label: str
    pool_id: str
    input_mint: str
    output_mint: str
    in_amount: int
    out_amount: int
    min_out_amount: int
    price_impact_bps: float
    slippage_bps: int
    quote_response: Dict[str, Any] = field(default_factory=dict, repr=False)
    timestamp: float = 0.0

    def with_min_out(self, min_out_amount: int) -> "SwapQuote":
        """Copy with a raised on-chain output floor (never lowered)."""
        floor = max(min_out_amount, self.min_out_amount)
        slippage = 0
        if self.out_amount > 0:
            slippage = max(0, (self.out_amount - floor) * 10_000 // self.out_amount)
        response = dict(self.quote_response)
        response["otherAmountThreshold"] = str(floor)
        response["slippageBps"] = slippage
        return replace(self, min_out_amount=floor, slippage_bps=slippage, quote_response=response)


def decode_instruction(raw: Dict[str, Any]) -> Instruction:
    """Jupiter JSON instruction -> solders Instruction."""
    accounts = [
        AccountMeta(Pubkey.from_string(acc["pubkey"]), bool(acc["isSigner"]), bool(acc["isWritable"]))
        for acc in raw.get("accounts", [])
    ]
    return Instruction(Pubkey.from_string(raw["programId"]), base64.b64decode(raw["data"]), accounts)


class JupiterClient:
    """Thin async wrapper over the Jupiter swap API."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = thresholds.HTTP_TIMEOUT_SEC,
    ):
        if base_url is None:
            from config.settings import Settings

            base_url = Settings.JUPITER_API_URL
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = http_client
        self._owns_client = http_client is None

        # Stats
        self.quotes_fetched = 0
        self.swaps_built = 0
        self.errors = 0

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    # =========================================================================
    # QUOTE
    # =========================================================================

    async def get_quote(
        self,
        venue_label: str,
        pool_id: str,
        input_mint: str,
        output_mint: str,
        amount: int,
        slippage_bps: int = thresholds.SLIPPAGE_BPS,
    ) -> SwapQuote:
        params = {
            "inputMint": input_mint,
            "outputMint": output_mint,
            "amount": str(amount),
            "slippageBps": slippage_bps,
            "onlyDirectRoutes": "true",
            "dexes": venue_label,
        }
        data = await self._request("GET", "/quote", venue_label, pool_id, params=params)

        route_plan = data.get("routePlan") or []
        amm_keys = [step.get("swapInfo", {}).get("ammKey") for step in route_plan]
        if amm_keys != [pool_id]:
            raise PoolNotFound(venue_label, pool_id, f"route went through {amm_keys or 'nothing'}")

        try:
            quote = SwapQuote(
                venue_label=venue_label,
                pool_id=pool_id,
                input_mint=input_mint,
                output_mint=output_mint,
                in_amount=int(data["inAmount"]),
                out_amount=int(data["outAmount"]),
                min_out_amount=int(data["otherAmountThreshold"]),
                # priceImpactPct is a fraction ("0.0012" == 12 bps)
                price_impact_bps=abs(float(data.get("priceImpactPct") or 0)) * 10_000,
                slippage_bps=int(data.get("slippageBps", slippage_bps)),
                quote_response=data,
                timestamp=time.time(),
            )
        except (KeyError, ValueError, TypeError) as e:
            self.errors += 1
            raise QuoteUnavailable(venue_label, pool_id, f"malformed quote: {e}") from e

        self.quotes_fetched += 1
        Logger.debug(
            f"[JUPITER] {venue_label} {pool_id[:8]}: {quote.in_amount} -> {quote.out_amount} "
            f"(min {quote.min_out_amount}, impact {quote.price_impact_bps:.1f} bps)"
        )
        return quote

    # =========================================================================
    # SWAP INSTRUCTIONS
    # =========================================================================

    async def get_swap_instructions(self, quote: SwapQuote, user_public_key: Pubkey) -> Tuple[List[Instruction], List[str]]:
        """Returns (setup + swap + cleanup instructions, lookup table addresses)."""
        payload = {
            "quoteResponse": quote.quote_response,
            "userPublicKey": str(user_public_key),
            "wrapAndUnwrapSol": True,
            "dynamicComputeUnitLimit": False,
        }
        data = await self._request("POST", "/swap-instructions", quote.venue_label, quote.pool_id, json=payload)

        if data.get("error"):
            self.errors += 1
            raise QuoteUnavailable(quote.venue_label, quote.pool_id, str(data["error"]))

        try:
            raw_instructions = list(data.get("setupInstructions") or [])
            if data.get("tokenLedgerInstruction"):
                raw_instructions.append(data["tokenLedgerInstruction"])
            raw_instructions.append(data["swapInstruction"])
            if data.get("cleanupInstruction"):
                raw_instructions.append(data["cleanupInstruction"])
            instructions = [decode_instruction(raw) for raw in raw_instructions]
        except (KeyError, ValueError, TypeError) as e:
            self.errors += 1
            raise QuoteUnavailable(quote.venue_label, quote.pool_id, f"malformed swap instructions: {e}") from e

        self.swaps_built += 1
        return instructions, list(data.get("addressLookupTableAddresses") or [])

    # =========================================================================
    # HTTP
    # =========================================================================

    async def _request(self, method: str, path: str, venue_label: str, pool_id: str, **kwargs) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            resp = await self._get_client().request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            self.errors += 1
            raise NetworkTimeout(f"jupiter {path}", str(e) or type(e).__name__, self.timeout) from e
        except httpx.HTTPError as e:
            self.errors += 1
            raise QuoteUnavailable(venue_label, pool_id, f"transport error: {e}") from e

        if resp.status_code != 200:
            self.errors += 1
            error_code = _error_code(resp)
            if error_code in NO_ROUTE_CODES:
                raise PoolNotFound(venue_label, pool_id, error_code)
            # Rate limits and server errors may clear; other 4xx answers will not
            retryable = resp.status_code == 429 or resp.status_code >= 500
            raise QuoteUnavailable(venue_label, pool_id, f"HTTP {resp.status_code}: {resp.text[:200]}", retryable)

        try:
            return resp.json()
        except ValueError as e:
            self.errors += 1
            raise QuoteUnavailable(venue_label, pool_id, "response was not JSON") from e

    def get_stats(self) -> dict:
        return {
            "quotes_fetched": self.quotes_fetched,
            "swaps_built": self.swaps_built,
            "errors": self.errors,
        }


def _error_code(resp: httpx.Response) -> Optional[str]:
    try:
        body = resp.json()
    except ValueError:
        return None
    return body.get("errorCode") if isinstance(body, dict) else None
