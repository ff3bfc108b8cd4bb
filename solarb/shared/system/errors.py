"""
Error Taxonomy
==============
Every abort names the guard or filter that fired and the numbers behind it,
so a near-miss can be diagnosed from the message alone.
"""

from dataclasses import dataclass
from typing import Optional


class ArbError(Exception):
    """Base class for engine errors."""


@dataclass(eq=False)
class InvalidQuote(ArbError):
    """Raw price is zero, negative, non-finite, or the pool has no base side."""

    raw_price: object
    reason: str = "non-positive or non-finite price"
    pool_id: str = ""

    def __str__(self) -> str:
        where = f" (pool {self.pool_id})" if self.pool_id else ""
        return f"Invalid quote {self.raw_price!r}{where}: {self.reason}"


@dataclass(eq=False)
class ProviderUnavailable(ArbError):
    """A venue's snapshot endpoint could not be reached or parsed."""

    venue: str
    reason: str

    def __str__(self) -> str:
        return f"{self.venue} snapshot provider unavailable: {self.reason}"


@dataclass(eq=False)
class PoolNotFound(ArbError):
    venue: str
    pool_id: str
    reason: str = "no direct route through pool"

    def __str__(self) -> str:
        return f"Pool {self.pool_id} not found on {self.venue}: {self.reason}"


@dataclass(eq=False)
class QuoteUnavailable(ArbError):
    """Quote or swap-instruction fetch failed. The caller may retry when `retryable`."""

    venue: str
    pool_id: str
    reason: str
    retryable: bool = True

    def __str__(self) -> str:
        return f"Quote unavailable for {self.venue} pool {self.pool_id}: {self.reason}"


@dataclass(eq=False)
class PriceImpactExceeded(ArbError):
    leg: str
    pool_id: str
    impact_bps: float
    max_impact_bps: float

    def __str__(self) -> str:
        return (
            f"Price impact on {self.leg} ({self.pool_id}) is {self.impact_bps:.1f} bps, "
            f"ceiling {self.max_impact_bps:.1f} bps"
        )


@dataclass(eq=False)
class InsufficientProfit(ArbError):
    """Final amount does not clear initial * (1 + min_profit_bps / 10000)."""

    initial_amount: float
    final_amount: float
    minimum_required: float
    min_profit_bps: int
    stage: str = "estimate"

    @property
    def realized_bps(self) -> float:
        if self.initial_amount <= 0:
            return 0.0
        return (self.final_amount - self.initial_amount) / self.initial_amount * 10_000

    def __str__(self) -> str:
        return (
            f"Profit guard ({self.stage}) aborted: final {self.final_amount} < required "
            f"{self.minimum_required} from initial {self.initial_amount} "
            f"({self.realized_bps:.1f} bps realized, {self.min_profit_bps} bps required)"
        )


@dataclass(eq=False)
class NetworkError(ArbError):
    """Transport-level failure talking to RPC, venue or relay."""

    target: str
    reason: str

    def __str__(self) -> str:
        return f"Network error talking to {self.target}: {self.reason}"


@dataclass(eq=False)
class NetworkTimeout(NetworkError):
    timeout_sec: Optional[float] = None

    def __str__(self) -> str:
        limit = f" after {self.timeout_sec:g}s" if self.timeout_sec is not None else ""
        return f"Timed out talking to {self.target}{limit}: {self.reason}"


@dataclass(eq=False)
class RelayRejected(ArbError):
    message: str
    code: Optional[int] = None

    def __str__(self) -> str:
        code = f" (code {self.code})" if self.code is not None else ""
        return f"Relay rejected transaction{code}: {self.message}"


@dataclass(eq=False)
class Expired(ArbError):
    """Freshness token elapsed. Needs a fresh assembly, never a resubmission."""

    blockhash: str
    age_sec: float
    window_sec: float
    signature: str = ""

    def __str__(self) -> str:
        sig = f" for {self.signature}" if self.signature else ""
        return (
            f"Blockhash {self.blockhash} expired{sig}: age {self.age_sec:.1f}s "
            f"exceeds window {self.window_sec:.1f}s"
        )


@dataclass(eq=False)
class SimulationFailed(ArbError):
    reason: str
    logs: tuple = ()

    def __str__(self) -> str:
        return f"Simulation failed: {self.reason}"


@dataclass(eq=False)
class ConfigurationMissing(ArbError):
    setting: str
    reason: str = "not configured"

    def __str__(self) -> str:
        return f"Configuration missing: {self.setting} ({self.reason})"


@dataclass(eq=False)
class InsufficientBalance(ArbError):
    """Wallet cannot cover the trade amount plus the relay tip."""

    balance_lamports: int
    required_lamports: int

    def __str__(self) -> str:
        return (
            f"Wallet balance {self.balance_lamports} lamports below required "
            f"{self.required_lamports} (trade + tip)"
        )


@dataclass(eq=False)
class TransactionFailed(ArbError):
    """Landed on-chain with an error; every leg was rolled back."""

    signature: str
    reason: str

    def __str__(self) -> str:
        return f"Transaction {self.signature} failed on-chain: {self.reason}"
