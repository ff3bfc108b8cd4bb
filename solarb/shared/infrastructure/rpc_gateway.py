"""
RPC Gateway
===========
Deadline-bound access to the Solana RPC calls the engine needs.

solana-py's AsyncClient covers the typed reads. simulateTransaction goes
over raw JSON-RPC because the post-simulation account snapshot
(`accounts` config) is not exposed by the typed client.
"""

import asyncio
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional, TypeVar

import httpx
from solana.exceptions import SolanaRpcException
from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Confirmed
from solders.address_lookup_table_account import AddressLookupTable, AddressLookupTableAccount
from solders.pubkey import Pubkey
from solders.signature import Signature

from config import thresholds
from solarb.shared.models import FreshnessToken
from solarb.shared.system.errors import NetworkError, NetworkTimeout, SimulationFailed

T = TypeVar("T")


class RpcGateway:
    def __init__(
        self,
        rpc_url: str,
        client: Optional[AsyncClient] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        request_timeout: float = thresholds.BLOCKHASH_TIMEOUT_SEC,
        simulation_timeout: float = thresholds.SIMULATION_TIMEOUT_SEC,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.rpc_url = rpc_url
        self.client = client or AsyncClient(rpc_url, commitment=Confirmed)
        self.request_timeout = request_timeout
        self.simulation_timeout = simulation_timeout
        self._http = http_client
        self._owns_client = client is None
        self._owns_http = http_client is None
        self._clock = clock

    async def close(self) -> None:
        """Close only the clients this gateway created."""
        if self._owns_client:
            await self.client.close()
        if self._http is not None and self._owns_http:
            await self._http.aclose()
            self._http = None

    async def _deadline(self, name: str, call: Awaitable[T], timeout: Optional[float] = None) -> T:
        limit = timeout or self.request_timeout
        try:
            return await asyncio.wait_for(call, timeout=limit)
        except asyncio.TimeoutError:
            raise NetworkTimeout(f"rpc {name}", "deadline exceeded", limit) from None
        except SolanaRpcException as e:
            raise NetworkError(f"rpc {name}", str(e)) from e
        except httpx.TimeoutException as e:
            raise NetworkTimeout(f"rpc {name}", str(e) or type(e).__name__, limit) from e
        except httpx.HTTPError as e:
            raise NetworkError(f"rpc {name}", str(e)) from e

    # =========================================================================
    # READS
    # =========================================================================

    async def get_freshness_token(self) -> FreshnessToken:
        resp = await self._deadline("getLatestBlockhash", self.client.get_latest_blockhash(commitment=Confirmed))
        return FreshnessToken(
            blockhash=resp.value.blockhash,
            last_valid_block_height=resp.value.last_valid_block_height,
            fetched_at=self._clock(),
        )

    async def get_block_height(self) -> int:
        resp = await self._deadline("getBlockHeight", self.client.get_block_height(commitment=Confirmed))
        return resp.value

    async def get_balance(self, pubkey: Pubkey) -> int:
        resp = await self._deadline("getBalance", self.client.get_balance(pubkey, commitment=Confirmed))
        return resp.value

    async def get_lookup_tables(self, addresses: List[str]) -> List[AddressLookupTableAccount]:
        if not addresses:
            return []
        keys = [Pubkey.from_string(a) for a in addresses]
        resp = await self._deadline("getMultipleAccounts", self.client.get_multiple_accounts(keys))

        tables = []
        for key, account in zip(keys, resp.value):
            if account is None:
                raise NetworkError("rpc getMultipleAccounts", f"lookup table {key} not found")
            table = AddressLookupTable.deserialize(bytes(account.data))
            tables.append(AddressLookupTableAccount(key=key, addresses=list(table.addresses)))
        return tables

    async def get_signature_status(self, signature: str):
        """TransactionStatus or None when the cluster has not seen it yet."""
        resp = await self._deadline(
            "getSignatureStatuses", self.client.get_signature_statuses([Signature.from_string(signature)])
        )
        return resp.value[0] if resp.value else None

    # =========================================================================
    # SIMULATION
    # =========================================================================

    async def simulate(self, encoded_tx: str, watch: List[Pubkey]) -> Dict[str, Any]:
        """
        Simulate a signed base64 transaction and return the RPC `value` object.

        Raises:
            SimulationFailed: RPC error or a transaction-level error
        """
        payload = {
            "jsonrpc": "2.0",
            "id": 1,
            "method": "simulateTransaction",
            "params": [
                encoded_tx,
                {
                    "encoding": "base64",
                    "sigVerify": False,
                    "replaceRecentBlockhash": False,
                    "commitment": "processed",
                    "accounts": {"encoding": "base64", "addresses": [str(k) for k in watch]},
                },
            ],
        }
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=self.simulation_timeout)

        resp = await self._deadline(
            "simulateTransaction", self._http.post(self.rpc_url, json=payload), self.simulation_timeout
        )
        try:
            body = resp.json()
        except ValueError as e:
            raise SimulationFailed(f"HTTP {resp.status_code}: non-JSON response") from e

        error = body.get("error")
        if error:
            raise SimulationFailed(str(error.get("message", error) if isinstance(error, dict) else error))

        value = (body.get("result") or {}).get("value") or {}
        if value.get("err"):
            raise SimulationFailed(str(value["err"]), tuple(value.get("logs") or ()))
        return value
