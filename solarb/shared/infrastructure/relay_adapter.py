"""
Relay Adapter
=============
Single-shot transaction submission to a private relay over JSON-RPC.

    POST {RELAY_URL}
    x-api-key: <RELAY_API_KEY>
    {"jsonrpc": "2.0", "id": 1, "method": "sendTransaction",
     "params": ["<base64 tx>", {"frontRunningProtection": false}]}

`result` is either the signature string or {"signature": ...}; both are
normalized to RelayResult here. No retries: a failed POST is surfaced and
the caller decides whether a fresh attempt is worth it.
"""

from typing import Any, Optional

import httpx

from config import thresholds
from solarb.shared.models import RelayResult
from solarb.shared.system.errors import ConfigurationMissing, NetworkError, NetworkTimeout, RelayRejected
from solarb.shared.system.logging import Logger


class RelayAdapter:
    def __init__(
        self,
        url: str,
        api_key: str,
        front_running_protection: bool = False,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = thresholds.RELAY_TIMEOUT_SEC,
    ):
        if not api_key:
            raise ConfigurationMissing("RELAY_API_KEY", "relay submission requires an API key")
        if not url:
            raise ConfigurationMissing("RELAY_URL")
        self.url = url
        self.api_key = api_key
        self.front_running_protection = front_running_protection
        self.timeout = timeout
        self._client = http_client
        self._owns_client = http_client is None

        self._submitted = 0
        self._accepted = 0

    @classmethod
    def from_settings(cls, http_client: Optional[httpx.AsyncClient] = None) -> "RelayAdapter":
        from config.settings import Settings

        return cls(
            url=Settings.RELAY_URL,
            api_key=Settings.RELAY_API_KEY,
            front_running_protection=Settings.FRONT_RUNNING_PROTECTION,
            http_client=http_client,
        )

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def build_payload(self, encoded_tx: str) -> dict:
        return {
            "jsonrpc": "2.0",
            "id": 1,
            "method": "sendTransaction",
            "params": [encoded_tx, {"frontRunningProtection": self.front_running_protection}],
        }

    async def send_transaction(self, encoded_tx: str) -> RelayResult:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)

        self._submitted += 1
        try:
            response = await self._client.post(
                self.url,
                json=self.build_payload(encoded_tx),
                headers={"Content-Type": "application/json", "x-api-key": self.api_key},
            )
        except httpx.TimeoutException as e:
            raise NetworkTimeout("relay", str(e) or type(e).__name__, self.timeout) from e
        except httpx.HTTPError as e:
            raise NetworkError("relay", str(e)) from e

        try:
            body = response.json()
        except ValueError:
            raise RelayRejected(f"HTTP {response.status_code}: {response.text[:200]}") from None

        result = self.parse_response(body, response.status_code)
        self._accepted += 1
        Logger.success(f"[RELAY] Accepted {result.signature}")
        return result

    @staticmethod
    def parse_response(body: Any, status_code: int = 200) -> RelayResult:
        """Normalize both result shapes; raise RelayRejected on anything else."""
        if not isinstance(body, dict):
            raise RelayRejected(f"unexpected response: {body!r}"[:200])

        error = body.get("error")
        if error:
            if isinstance(error, dict):
                raise RelayRejected(str(error.get("message", error)), error.get("code"))
            raise RelayRejected(str(error))

        result = body.get("result")
        if isinstance(result, str) and result:
            return RelayResult(signature=result, raw=body)
        if isinstance(result, dict) and result.get("signature"):
            return RelayResult(signature=str(result["signature"]), raw=body)

        raise RelayRejected(f"HTTP {status_code}: no transaction signature in response")

    def get_stats(self) -> dict:
        return {"submitted": self._submitted, "accepted": self._accepted}
