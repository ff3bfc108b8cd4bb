"""
Profit Guard
============
Binary proceed/abort decision on the round-trip amount.

    minimum_required = initial * (1 + min_profit_bps / 10000)

The guard runs twice per attempt:

1. estimate: on leg 2's quoted output, before any instruction is built
2. realized: on the simulated post-trade balance, before submission

Leg 2's on-chain output floor is raised to the minimum, so the swap
program itself reverts the whole transaction if execution drifts below it.
An optional guard-instruction builder can add a dedicated check program;
without one the guard section stays empty and the off-chain checks are
mandatory.
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_CEILING
from typing import Callable, List, Optional, Union

from solders.instruction import Instruction
from solders.pubkey import Pubkey

from config import thresholds
from solarb.shared.system.errors import InsufficientProfit
from solarb.shared.system.logging import Logger

Number = Union[int, float, Decimal]

# (payer, minimum_required_lamports, output_mint) -> instructions checking post-swap state
GuardInstructionBuilder = Callable[[Pubkey, int, str], List[Instruction]]


@dataclass(frozen=True)
class GuardConfig:
    min_profit_bps: int = thresholds.MIN_PROFIT_BPS
    max_price_impact_bps: int = thresholds.MAX_PRICE_IMPACT_BPS
    slippage_bps: int = thresholds.SLIPPAGE_BPS

    def __post_init__(self):
        for name in ("min_profit_bps", "max_price_impact_bps", "slippage_bps"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be >= 0, got {getattr(self, name)}")

    @classmethod
    def from_settings(cls) -> "GuardConfig":
        from config.settings import Settings

        return cls(
            min_profit_bps=Settings.MIN_PROFIT_BPS,
            max_price_impact_bps=Settings.MAX_PRICE_IMPACT_BPS,
            slippage_bps=Settings.SLIPPAGE_BPS,
        )


@dataclass(frozen=True)
class GuardDecision:
    initial_amount: Decimal
    final_amount: Decimal
    minimum_required: Decimal
    stage: str

    @property
    def profit_bps(self) -> float:
        return float((self.final_amount - self.initial_amount) / self.initial_amount * 10_000)


def _dec(value: Number) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


class ProfitGuard:
    def __init__(self, config: Optional[GuardConfig] = None, instruction_builder: Optional[GuardInstructionBuilder] = None):
        self.config = config or GuardConfig()
        self.instruction_builder = instruction_builder

    @property
    def enforces_on_chain(self) -> bool:
        return self.instruction_builder is not None

    def minimum_required_output(self, initial_amount: Number) -> Decimal:
        return _dec(initial_amount) * (1 + Decimal(self.config.min_profit_bps) / Decimal(10_000))

    def minimum_required_lamports(self, initial_lamports: int) -> int:
        """Integer floor for on-chain thresholds, rounded up."""
        return int(self.minimum_required_output(initial_lamports).to_integral_value(rounding=ROUND_CEILING))

    def tighten_threshold(self, quote_min_out: int, initial_lamports: int) -> int:
        """Leg 2's on-chain output floor: the quote's own minimum, raised to the profit minimum."""
        return max(int(quote_min_out), self.minimum_required_lamports(initial_lamports))

    def check(self, initial_amount: Number, final_amount: Number, stage: str = "estimate") -> GuardDecision:
        """Pass or raise InsufficientProfit; there is no partial outcome."""
        initial = _dec(initial_amount)
        final = _dec(final_amount)
        if initial <= 0:
            raise ValueError(f"initial amount must be positive, got {initial}")

        minimum = self.minimum_required_output(initial)
        if final < minimum:
            error = InsufficientProfit(
                initial_amount=float(initial),
                final_amount=float(final),
                minimum_required=float(minimum),
                min_profit_bps=self.config.min_profit_bps,
                stage=stage,
            )
            Logger.warning(f"[GUARD] {error}")
            raise error

        decision = GuardDecision(initial, final, minimum, stage)
        Logger.info(f"[GUARD] {stage} passed: {decision.profit_bps:.1f} bps >= {self.config.min_profit_bps} bps")
        return decision

    def build_guard_instructions(self, payer: Pubkey, minimum_required_lamports: int, output_mint: str) -> List[Instruction]:
        if self.instruction_builder is None:
            return []
        return list(self.instruction_builder(payer, minimum_required_lamports, output_mint))
