"""
Mock HTTP APIs
==============
httpx.MockTransport handlers standing in for the Raydium and Meteora pool
listings, the Jupiter quote / swap-instructions API and the relay.

Prices are expressed as tokens per SOL; token and SOL raw units are
treated as the same decimals so quotes stay easy to reason about.
"""

import base64
import json
from typing import Any, Dict, List, Optional

import httpx
from solders.transaction import VersionedTransaction

WSOL = "So11111111111111111111111111111111111111112"
TOKEN_MINT = "DezXAZ8z7PnrnRJjz3wXBoRgixCa6xjnB7YaB1pPB263"
OTHER_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
RAYDIUM_POOL = "58oQChx4yWmvKdwLLZzBi4ChoCc2fqCUWBkwMihLYQo2"
METEORA_POOL = "5rCf1DM8LjKTw4YqhnoLcngyZYeNnQqztScTogYHAS6"

JUPITER_PROGRAM = "JUP6LkbZbjS1jKKwapdHNy74zcZ3tLUZoi5QNyVTaV4"
ATA_PROGRAM = "ATokenGPvbdGVxr1b2hvZbsiqW5xWH25efTNsLJA8knL"
COMPUTE_BUDGET_PROGRAM = "ComputeBudget111111111111111111111111111111"

RAYDIUM_URL = "https://raydium.test/v2/main/pairs"
METEORA_URL = "https://meteora.test/pair/all"
JUPITER_URL = "https://jupiter.test/swap/v1"
RELAY_URL = "https://relay.test/transactions"

DEX_LABELS = {"Raydium": "raydium", "Meteora DLMM": "meteora"}


def raydium_row(pool_id: str, token_mint: str, symbol: str, tokens_per_sol: float, liquidity: float) -> dict:
    """Raydium lists SOL as the quote side: price is SOL per token."""
    return {
        "ammId": pool_id,
        "name": f"{symbol}-WSOL",
        "baseMint": token_mint,
        "quoteMint": WSOL,
        "price": 1 / tokens_per_sol,
        "liquidity": liquidity,
        "tokenAmountCoin": 1_000_000.0,
        "tokenAmountPc": 1_000_000.0 / tokens_per_sol,
    }


def meteora_row(pool_id: str, token_mint: str, symbol: str, tokens_per_sol: float, liquidity: float) -> dict:
    """Meteora lists SOL as mint_x: current_price is tokens per SOL."""
    return {
        "address": pool_id,
        "name": f"SOL-{symbol}",
        "mint_x": WSOL,
        "mint_y": token_mint,
        "current_price": tokens_per_sol,
        "liquidity": str(liquidity),
        "reserve_x_amount": 5_000,
        "reserve_y_amount": int(5_000 * tokens_per_sol),
    }


class MockSolanaApis:
    """
    One MockTransport routing every URL the engine talks to.

    Usage:
        apis = MockSolanaApis(raydium_rows=[...], meteora_rows=[...])
        apis.set_pool("raydium", RAYDIUM_POOL, tokens_per_sol=102.0)
        client = apis.client()
    """

    def __init__(self, raydium_rows: Optional[List[dict]] = None, meteora_rows: Optional[List[dict]] = None):
        self.raydium_rows = raydium_rows or []
        self.meteora_rows = meteora_rows or []
        self.pools: Dict[str, Dict[str, Any]] = {}
        self.fail_status: Dict[str, int] = {}
        self.fail_once: Dict[str, int] = {}
        self.relay_response: Optional[Dict[str, Any]] = None
        self.relay_shape = "string"
        self.requests: List[httpx.Request] = []
        self.quote_params: List[Dict[str, str]] = []
        self.swap_bodies: List[Dict[str, Any]] = []
        self.relay_bodies: List[Dict[str, Any]] = []

    def set_pool(self, venue: str, pool_id: str, tokens_per_sol: float, price_impact_pct: str = "0.001") -> None:
        self.pools[venue] = {"pool_id": pool_id, "price": tokens_per_sol, "impact": price_impact_pct}

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    # =========================================================================
    # ROUTER
    # =========================================================================

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = str(request.url).split("?")[0]

        for prefix, status in self.fail_status.items():
            if url.startswith(prefix):
                return httpx.Response(status, text="upstream unavailable")
        for prefix in list(self.fail_once):
            if url.startswith(prefix):
                return httpx.Response(self.fail_once.pop(prefix), text="transient failure")

        if url == RAYDIUM_URL:
            return httpx.Response(200, json=self.raydium_rows)
        if url == METEORA_URL:
            return httpx.Response(200, json=self.meteora_rows)
        if url == f"{JUPITER_URL}/quote":
            return self._quote(request)
        if url == f"{JUPITER_URL}/swap-instructions":
            return self._swap_instructions(request)
        if url == RELAY_URL:
            return self._relay(request)
        return httpx.Response(404, text=f"no route for {url}")

    def _quote(self, request: httpx.Request) -> httpx.Response:
        params = dict(request.url.params)
        self.quote_params.append(params)
        venue = DEX_LABELS.get(params.get("dexes", ""))
        pool = self.pools.get(venue)
        if pool is None:
            return httpx.Response(400, json={"error": "No routes found", "errorCode": "COULD_NOT_FIND_ANY_ROUTE"})

        amount = int(params["amount"])
        slippage = int(params["slippageBps"])
        if params["inputMint"] == WSOL:
            out = int(amount * pool["price"])
        else:
            out = int(amount / pool["price"])
        min_out = out * (10_000 - slippage) // 10_000

        return httpx.Response(200, json={
            "inputMint": params["inputMint"],
            "inAmount": str(amount),
            "outputMint": params["outputMint"],
            "outAmount": str(out),
            "otherAmountThreshold": str(min_out),
            "swapMode": "ExactIn",
            "slippageBps": slippage,
            "priceImpactPct": pool["impact"],
            "routePlan": [{
                "swapInfo": {
                    "ammKey": pool["pool_id"],
                    "label": params["dexes"],
                    "inputMint": params["inputMint"],
                    "outputMint": params["outputMint"],
                    "inAmount": str(amount),
                    "outAmount": str(out),
                },
                "percent": 100,
            }],
        })

    def _swap_instructions(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        self.swap_bodies.append(body)
        quote = body["quoteResponse"]
        user = body["userPublicKey"]
        amm_key = quote["routePlan"][0]["swapInfo"]["ammKey"]
        marker = f"swap:{amm_key}:{quote['otherAmountThreshold']}".encode()

        signer_meta = {"pubkey": user, "isSigner": True, "isWritable": True}
        return httpx.Response(200, json={
            "computeBudgetInstructions": [
                {"programId": COMPUTE_BUDGET_PROGRAM, "accounts": [], "data": base64.b64encode(b"\x02\x40\x0d\x03\x00").decode()},
            ],
            "setupInstructions": [
                {"programId": ATA_PROGRAM, "accounts": [signer_meta], "data": base64.b64encode(b"\x01").decode()},
            ],
            "swapInstruction": {
                "programId": JUPITER_PROGRAM,
                "accounts": [signer_meta, {"pubkey": TOKEN_MINT, "isSigner": False, "isWritable": False}],
                "data": base64.b64encode(marker).decode(),
            },
            "cleanupInstruction": None,
            "otherInstructions": [],
            "addressLookupTableAddresses": [],
        })

    def _relay(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        self.relay_bodies.append({"body": body, "headers": dict(request.headers)})
        if self.relay_response is not None:
            return httpx.Response(200, json=self.relay_response)

        raw = base64.b64decode(body["params"][0])
        signature = str(VersionedTransaction.from_bytes(raw).signatures[0])
        result: Any = signature if self.relay_shape == "string" else {"signature": signature}
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": result})


def arbitrage_scenario(raydium_tokens_per_sol: float = 102.0, meteora_tokens_per_sol: float = 100.0) -> MockSolanaApis:
    """One BONK/SOL pool per venue, listed and quotable at the given prices."""
    apis = MockSolanaApis(
        raydium_rows=[raydium_row(RAYDIUM_POOL, TOKEN_MINT, "BONK", raydium_tokens_per_sol, 5_000)],
        meteora_rows=[meteora_row(METEORA_POOL, TOKEN_MINT, "BONK", meteora_tokens_per_sol, 8_000)],
    )
    apis.set_pool("raydium", RAYDIUM_POOL, raydium_tokens_per_sol)
    apis.set_pool("meteora", METEORA_POOL, meteora_tokens_per_sol)
    return apis
