"""
Submitter
=========
Finalizes an assembled transaction and hands it to the relay.

Responsibilities:
- Attach blockhash + fee payer, compile a v0 message with lookup tables
- Sign and serialize
- One relay POST per call, refused once the blockhash window has elapsed
- Poll for confirmation until the window closes

There are no internal retries. A transaction that does not land inside its
window is Expired and needs a fresh assembly, never a resubmission of the
same bytes.
"""

import asyncio
import base64
import time
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional

from solders.keypair import Keypair
from solders.message import MessageV0
from solders.transaction import VersionedTransaction
from solders.transaction_status import TransactionConfirmationStatus

from config import thresholds
from solarb.shared.infrastructure.relay_adapter import RelayAdapter
from solarb.shared.infrastructure.rpc_gateway import RpcGateway
from solarb.shared.models import AssembledTransaction, FreshnessToken, RelayResult
from solarb.shared.system.errors import Expired, NetworkError
from solarb.shared.system.logging import Logger


# ═══════════════════════════════════════════════════════════════════════════════
# CONFIGURATION
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class SubmitterConfig:
    blockhash_validity_sec: float = thresholds.BLOCKHASH_VALIDITY_SEC
    confirmation_window_sec: float = thresholds.CONFIRMATION_WINDOW_SEC
    poll_interval_sec: float = thresholds.CONFIRMATION_POLL_SEC


class ConfirmationStatus(Enum):
    CONFIRMED = "CONFIRMED"
    FAILED = "FAILED"  # landed with an on-chain error


@dataclass(frozen=True)
class FinalizedTransaction:
    transaction: VersionedTransaction
    encoded: str
    signature: str
    token: FreshnessToken


@dataclass(frozen=True)
class ConfirmationResult:
    status: ConfirmationStatus
    signature: str
    slot: Optional[int] = None
    error: Optional[str] = None


_LANDED = (TransactionConfirmationStatus.Confirmed, TransactionConfirmationStatus.Finalized)


class Submitter:
    def __init__(
        self,
        rpc: RpcGateway,
        relay: RelayAdapter,
        config: Optional[SubmitterConfig] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.rpc = rpc
        self.relay = relay
        self.config = config or SubmitterConfig()
        self._clock = clock
        self._sleep = sleep

    # =========================================================================
    # FINALIZE
    # =========================================================================

    async def fetch_freshness_token(self) -> FreshnessToken:
        token = await self.rpc.get_freshness_token()
        Logger.debug(f"[SUBMIT] Blockhash {str(token.blockhash)[:16]}... valid to {token.last_valid_block_height}")
        return token

    async def finalize(
        self,
        assembled: AssembledTransaction,
        signer: Keypair,
        token: Optional[FreshnessToken] = None,
    ) -> FinalizedTransaction:
        if not assembled.is_sealed:
            raise ValueError("Refusing to finalize a transaction without its tip section")
        if signer.pubkey() != assembled.payer:
            raise ValueError(f"Signer {signer.pubkey()} is not the fee payer {assembled.payer}")

        token = token or await self.fetch_freshness_token()
        lookup_tables = await self.rpc.get_lookup_tables(assembled.lookup_table_addresses)

        message = MessageV0.try_compile(
            payer=assembled.payer,
            instructions=assembled.instructions,
            address_lookup_table_accounts=lookup_tables,
            recent_blockhash=token.blockhash,
        )
        tx = VersionedTransaction(message, [signer])
        encoded = base64.b64encode(bytes(tx)).decode("utf-8")
        signature = str(tx.signatures[0])

        Logger.debug(f"[SUBMIT] Signed {signature[:16]}... ({len(bytes(tx))} bytes, {len(lookup_tables)} ALTs)")
        return FinalizedTransaction(transaction=tx, encoded=encoded, signature=signature, token=token)

    def check_fresh(self, token: FreshnessToken, signature: str = "") -> None:
        age = token.age(self._clock())
        if age >= self.config.blockhash_validity_sec:
            raise Expired(str(token.blockhash), age, self.config.blockhash_validity_sec, signature)

    # =========================================================================
    # SUBMIT
    # =========================================================================

    async def submit(self, finalized: FinalizedTransaction) -> RelayResult:
        """Exactly one relay POST. Raises Expired, RelayRejected or a network error."""
        self.check_fresh(finalized.token, finalized.signature)
        Logger.info(f"[SUBMIT] Sending {finalized.signature[:16]}... to relay")
        result = await self.relay.send_transaction(finalized.encoded)
        if result.signature != finalized.signature:
            Logger.warning(f"[SUBMIT] Relay returned {result.signature}, signed {finalized.signature}")
        return result

    async def await_confirmation(self, signature: str, token: FreshnessToken) -> ConfirmationResult:
        """
        Poll until the signature lands or the window closes.

        A failed status or block-height read is logged and polled again; the
        transaction may already have landed.

        Raises:
            Expired: neither confirmed nor failed inside the window
        """
        started = self._clock()
        while True:
            try:
                status = await self.rpc.get_signature_status(signature)
            except NetworkError as e:
                Logger.warning(f"[SUBMIT] Status poll for {signature[:16]}... failed: {e}")
                status = None
            if status is not None:
                if status.err is not None:
                    Logger.error(f"[SUBMIT] {signature[:16]}... failed on-chain: {status.err}")
                    return ConfirmationResult(ConfirmationStatus.FAILED, signature, status.slot, str(status.err))
                if status.confirmation_status in _LANDED:
                    Logger.success(f"[SUBMIT] {signature[:16]}... confirmed in slot {status.slot}")
                    return ConfirmationResult(ConfirmationStatus.CONFIRMED, signature, status.slot)

            elapsed = self._clock() - started
            if elapsed >= self.config.confirmation_window_sec:
                raise Expired(str(token.blockhash), token.age(self._clock()), self.config.confirmation_window_sec, signature)

            try:
                height = await self.rpc.get_block_height()
            except NetworkError as e:
                Logger.warning(f"[SUBMIT] Block height read failed: {e}")
                height = None
            if height is not None and height > token.last_valid_block_height:
                raise Expired(str(token.blockhash), token.age(self._clock()), self.config.blockhash_validity_sec, signature)

            await self._sleep(self.config.poll_interval_sec)
