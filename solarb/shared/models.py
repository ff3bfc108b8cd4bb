"""
Shared Data Model
=================
Snapshots, opportunities and assembled transactions passed between stages.
"""

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Dict, List, Optional, Tuple

from solders.instruction import Instruction
from solders.pubkey import Pubkey


class Venue(Enum):
    RAYDIUM = "raydium"
    METEORA = "meteora"


class Direction(Enum):
    """Which venue the base asset is spent on (leg 1)."""

    BUY_ON_RAYDIUM = "buy_on_raydium"
    BUY_ON_METEORA = "buy_on_meteora"

    @property
    def buy_venue(self) -> Venue:
        return Venue.RAYDIUM if self is Direction.BUY_ON_RAYDIUM else Venue.METEORA

    @property
    def sell_venue(self) -> Venue:
        return Venue.METEORA if self is Direction.BUY_ON_RAYDIUM else Venue.RAYDIUM


# =============================================================================
# SNAPSHOTS
# =============================================================================


@dataclass(frozen=True)
class PoolSnapshot:
    """
    One pool as reported by a venue.

    raw_price is the pool's own convention: quote units per one base unit,
    where base/quote are the pool's first/second mint. The engine's base
    asset (SOL) may sit on either side.
    """

    venue: Venue
    pool_id: str
    base_mint: str
    quote_mint: str
    raw_price: float
    liquidity_usd: float
    base_symbol: str = ""
    quote_symbol: str = ""
    base_reserve: float = 0.0
    quote_reserve: float = 0.0

    def to_dict(self) -> dict:
        data = asdict(self)
        data["venue"] = self.venue.value
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "PoolSnapshot":
        return cls(
            venue=Venue(data["venue"]),
            pool_id=data["pool_id"],
            base_mint=data["base_mint"],
            quote_mint=data["quote_mint"],
            raw_price=float(data["raw_price"]),
            liquidity_usd=float(data["liquidity_usd"]),
            base_symbol=data.get("base_symbol", ""),
            quote_symbol=data.get("quote_symbol", ""),
            base_reserve=float(data.get("base_reserve", 0.0)),
            quote_reserve=float(data.get("quote_reserve", 0.0)),
        )


@dataclass(frozen=True)
class PricedPool:
    """A snapshot with its canonical price (non-base tokens per 1 SOL)."""

    snapshot: PoolSnapshot
    price: float
    token_mint: str
    token_symbol: str = ""

    @property
    def pool_id(self) -> str:
        return self.snapshot.pool_id

    @property
    def venue(self) -> Venue:
        return self.snapshot.venue

    @property
    def liquidity_usd(self) -> float:
        return self.snapshot.liquidity_usd


# =============================================================================
# OPPORTUNITIES
# =============================================================================


@dataclass(frozen=True)
class ArbitrageOpportunity:
    pair_name: str
    raydium_pool_id: str
    meteora_pool_id: str
    token_mint: str
    spread_pct: float
    expected_profit_bps: float
    direction: Direction
    raydium_price: float = 0.0
    meteora_price: float = 0.0
    raydium_liquidity_usd: float = 0.0
    meteora_liquidity_usd: float = 0.0

    def pool_id_for(self, venue: Venue) -> str:
        return self.raydium_pool_id if venue is Venue.RAYDIUM else self.meteora_pool_id

    def to_dict(self) -> dict:
        data = asdict(self)
        data["direction"] = self.direction.value
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "ArbitrageOpportunity":
        fields = dict(data)
        fields["direction"] = Direction(fields["direction"])
        return cls(**fields)


class ArbitrageExecution:
    """An opportunity plus the operator's trade size. Assembled at most once."""

    def __init__(self, opportunity: ArbitrageOpportunity, amount_in_sol: float):
        if amount_in_sol <= 0:
            raise ValueError(f"Trade amount must be positive, got {amount_in_sol}")
        self.opportunity = opportunity
        self.amount_in_sol = amount_in_sol
        self._consumed = False

    def consume(self) -> None:
        if self._consumed:
            raise ValueError(f"Execution for {self.opportunity.pair_name} already assembled")
        self._consumed = True

    @property
    def consumed(self) -> bool:
        return self._consumed


@dataclass(frozen=True)
class CachedOpportunity:
    """Opportunity plus the pool metadata needed to replay it without re-fetching."""

    opportunity: ArbitrageOpportunity
    raydium_pool: PoolSnapshot
    meteora_pool: PoolSnapshot

    def matches(self, pool_id: str) -> bool:
        return pool_id in (self.opportunity.raydium_pool_id, self.opportunity.meteora_pool_id)

    def to_dict(self) -> dict:
        return {
            "opportunity": self.opportunity.to_dict(),
            "raydium_pool": self.raydium_pool.to_dict(),
            "meteora_pool": self.meteora_pool.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CachedOpportunity":
        return cls(
            opportunity=ArbitrageOpportunity.from_dict(data["opportunity"]),
            raydium_pool=PoolSnapshot.from_dict(data["raydium_pool"]),
            meteora_pool=PoolSnapshot.from_dict(data["meteora_pool"]),
        )


# =============================================================================
# ASSEMBLY
# =============================================================================

SECTION_ORDER = ("compute_budget", "leg1", "leg2", "guard", "tip")


@dataclass
class SwapLegPlan:
    """Quoted amounts and the instructions for one swap leg."""

    venue: Venue
    pool_id: str
    input_mint: str
    output_mint: str
    in_amount: int
    out_amount: int
    min_out_amount: int
    price_impact_bps: float
    instructions: List[Instruction] = field(default_factory=list)
    lookup_tables: List[str] = field(default_factory=list)


@dataclass
class AssembledTransaction:
    """Labeled instruction sections in submission order."""

    payer: Pubkey
    sections: Dict[str, List[Instruction]]
    leg1: SwapLegPlan
    leg2: SwapLegPlan
    amount_in_lamports: int
    minimum_required_lamports: int
    lookup_table_addresses: List[str] = field(default_factory=list)
    tip_lamports: int = 0

    @property
    def section_order(self) -> Tuple[str, ...]:
        return tuple(name for name in SECTION_ORDER if name in self.sections)

    @property
    def instructions(self) -> List[Instruction]:
        ordered: List[Instruction] = []
        for name in self.section_order:
            ordered.extend(self.sections[name])
        return ordered

    @property
    def is_sealed(self) -> bool:
        """A transaction is only submittable once the tip section is attached."""
        return "tip" in self.sections


@dataclass(frozen=True)
class FreshnessToken:
    blockhash: object  # solders Hash
    last_valid_block_height: int
    fetched_at: float

    def age(self, now: float) -> float:
        return now - self.fetched_at


@dataclass(frozen=True)
class RelayResult:
    signature: str
    raw: Optional[dict] = None
