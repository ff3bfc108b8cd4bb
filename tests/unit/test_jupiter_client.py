"""
Jupiter Client Unit Tests
=========================
Quote parsing, pool pinning, error mapping and instruction decoding.
"""

import base64

import httpx
import pytest
from solders.pubkey import Pubkey

from solarb.shared.infrastructure.jupiter_client import JupiterClient, decode_instruction
from solarb.shared.system.errors import NetworkTimeout, PoolNotFound, QuoteUnavailable
from tests.mocks.mock_apis import (
    JUPITER_PROGRAM,
    JUPITER_URL,
    METEORA_POOL,
    RAYDIUM_POOL,
    TOKEN_MINT,
    WSOL,
    MockSolanaApis,
)


@pytest.fixture
def apis():
    apis = MockSolanaApis()
    apis.set_pool("raydium", RAYDIUM_POOL, tokens_per_sol=102.0, price_impact_pct="0.0012")
    return apis


def _client(handler) -> JupiterClient:
    return JupiterClient(JUPITER_URL, http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))


class TestGetQuote:

    @pytest.mark.asyncio
    async def test_parses_quote(self, apis):
        jupiter = JupiterClient(JUPITER_URL, http_client=apis.client())

        quote = await jupiter.get_quote("Raydium", RAYDIUM_POOL, WSOL, TOKEN_MINT, 100_000_000, 100)

        assert quote.in_amount == 100_000_000
        assert quote.out_amount == 10_200_000_000
        assert quote.min_out_amount == 10_098_000_000
        assert quote.price_impact_bps == pytest.approx(12.0)
        assert quote.pool_id == RAYDIUM_POOL
        assert jupiter.get_stats()["quotes_fetched"] == 1

    @pytest.mark.asyncio
    async def test_pins_venue_and_direct_route(self, apis):
        jupiter = JupiterClient(JUPITER_URL, http_client=apis.client())

        await jupiter.get_quote("Raydium", RAYDIUM_POOL, WSOL, TOKEN_MINT, 1_000, 50)

        params = apis.quote_params[0]
        assert params["dexes"] == "Raydium"
        assert params["onlyDirectRoutes"] == "true"
        assert params["slippageBps"] == "50"

    @pytest.mark.asyncio
    async def test_route_through_other_pool_is_pool_not_found(self, apis):
        jupiter = JupiterClient(JUPITER_URL, http_client=apis.client())

        with pytest.raises(PoolNotFound) as exc:
            await jupiter.get_quote("Raydium", METEORA_POOL, WSOL, TOKEN_MINT, 1_000)

        assert exc.value.pool_id == METEORA_POOL

    @pytest.mark.asyncio
    async def test_no_route_code_is_pool_not_found(self, apis):
        jupiter = JupiterClient(JUPITER_URL, http_client=apis.client())

        with pytest.raises(PoolNotFound) as exc:
            await jupiter.get_quote("Meteora DLMM", METEORA_POOL, WSOL, TOKEN_MINT, 1_000)

        assert "COULD_NOT_FIND_ANY_ROUTE" in str(exc.value)

    @pytest.mark.asyncio
    async def test_server_error_is_retryable_quote_unavailable(self):
        jupiter = _client(lambda request: httpx.Response(503, text="overloaded"))

        with pytest.raises(QuoteUnavailable) as exc:
            await jupiter.get_quote("Raydium", RAYDIUM_POOL, WSOL, TOKEN_MINT, 1_000)

        assert exc.value.retryable is True
        assert "503" in str(exc.value)

    @pytest.mark.asyncio
    async def test_client_error_is_not_retryable(self):
        jupiter = _client(lambda request: httpx.Response(422, json={"error": "invalid amount"}))

        with pytest.raises(QuoteUnavailable) as exc:
            await jupiter.get_quote("Raydium", RAYDIUM_POOL, WSOL, TOKEN_MINT, 1_000)

        assert exc.value.retryable is False

    @pytest.mark.asyncio
    async def test_timeout_is_network_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        jupiter = _client(handler)

        with pytest.raises(NetworkTimeout):
            await jupiter.get_quote("Raydium", RAYDIUM_POOL, WSOL, TOKEN_MINT, 1_000)
        assert jupiter.get_stats()["errors"] == 1

    @pytest.mark.asyncio
    async def test_malformed_quote(self):
        body = {"routePlan": [{"swapInfo": {"ammKey": RAYDIUM_POOL}}], "inAmount": "1"}
        jupiter = _client(lambda request: httpx.Response(200, json=body))

        with pytest.raises(QuoteUnavailable) as exc:
            await jupiter.get_quote("Raydium", RAYDIUM_POOL, WSOL, TOKEN_MINT, 1)
        assert "malformed" in str(exc.value)


class TestSwapInstructions:

    @pytest.mark.asyncio
    async def test_builds_setup_and_swap(self, apis):
        jupiter = JupiterClient(JUPITER_URL, http_client=apis.client())
        user = Pubkey.new_unique()
        quote = await jupiter.get_quote("Raydium", RAYDIUM_POOL, WSOL, TOKEN_MINT, 1_000)

        instructions, lookup_tables = await jupiter.get_swap_instructions(quote, user)

        # compute budget from the API is dropped; setup + swap remain
        assert len(instructions) == 2
        assert str(instructions[-1].program_id) == JUPITER_PROGRAM
        assert lookup_tables == []
        assert apis.swap_bodies[0]["userPublicKey"] == str(user)

    @pytest.mark.asyncio
    async def test_api_error_field(self, apis):
        jupiter = JupiterClient(JUPITER_URL, http_client=apis.client())
        quote = await jupiter.get_quote("Raydium", RAYDIUM_POOL, WSOL, TOKEN_MINT, 1_000)
        failing = _client(lambda request: httpx.Response(200, json={"error": "stale quote"}))

        with pytest.raises(QuoteUnavailable):
            await failing.get_swap_instructions(quote, Pubkey.new_unique())


class TestDecodeInstruction:

    def test_decodes_accounts_and_data(self):
        user = Pubkey.new_unique()
        raw = {
            "programId": JUPITER_PROGRAM,
            "accounts": [
                {"pubkey": str(user), "isSigner": True, "isWritable": True},
                {"pubkey": TOKEN_MINT, "isSigner": False, "isWritable": False},
            ],
            "data": base64.b64encode(b"\x01\x02\x03").decode(),
        }

        ix = decode_instruction(raw)

        assert str(ix.program_id) == JUPITER_PROGRAM
        assert bytes(ix.data) == b"\x01\x02\x03"
        assert ix.accounts[0].pubkey == user
        assert ix.accounts[0].is_signer is True
        assert ix.accounts[1].is_writable is False
