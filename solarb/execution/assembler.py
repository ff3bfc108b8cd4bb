"""
Transaction Assembler
=====================
Builds the atomic two-leg arbitrage transaction.

Order (hard invariant):
1. ComputeBudget (unit limit, optional unit price)
2. Leg 1: base asset -> token on the buy venue
3. Leg 2: token -> base asset on the sell venue, sized from leg 1's
   guaranteed output
4. Profit guard (after both legs so it sees post-swap state)
5. Relay tip, always last

Both quotes are taken and checked before any instruction is built, so a
trade that breaches the price-impact ceiling or the profit estimate never
reaches the swap-instruction endpoint, and a tip is only attached once
the estimate guard has passed.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, List

from solders.compute_budget import set_compute_unit_limit, set_compute_unit_price
from solders.instruction import Instruction
from solders.pubkey import Pubkey
from solders.system_program import TransferParams, transfer

from config import thresholds
from solarb.execution.profit_guard import ProfitGuard
from solarb.shared.infrastructure.jupiter_client import SwapQuote
from solarb.shared.models import SECTION_ORDER, ArbitrageExecution, AssembledTransaction, Venue
from solarb.shared.system.errors import PriceImpactExceeded
from solarb.shared.system.logging import Logger
from solarb.venues.base import SwapSide, VenueClient


def sol_to_lamports(amount_sol: float) -> int:
    return int(Decimal(str(amount_sol)) * thresholds.LAMPORTS_PER_SOL)


# ═══════════════════════════════════════════════════════════════════════════════
# CONFIG
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class AssemblerConfig:
    tip_account: str
    tip_lamports: int = thresholds.RELAY_MIN_TIP_LAMPORTS
    compute_unit_limit: int = thresholds.COMPUTE_UNIT_LIMIT
    priority_fee_microlamports: int = thresholds.PRIORITY_FEE_MICROLAMPORTS

    @classmethod
    def from_settings(cls) -> "AssemblerConfig":
        from config.settings import Settings

        tip = Settings.RELAY_TIP_LAMPORTS
        if tip < thresholds.RELAY_MIN_TIP_LAMPORTS:
            Logger.warning(
                f"[CONFIG] RELAY_TIP_LAMPORTS {tip} below relay minimum, "
                f"using {thresholds.RELAY_MIN_TIP_LAMPORTS}"
            )
            tip = thresholds.RELAY_MIN_TIP_LAMPORTS
        return cls(
            tip_account=Settings.RELAY_TIP_ACCOUNT,
            tip_lamports=tip,
            priority_fee_microlamports=Settings.PRIORITY_FEE_MICROLAMPORTS,
        )


# ═══════════════════════════════════════════════════════════════════════════════
# ASSEMBLER
# ═══════════════════════════════════════════════════════════════════════════════


class TransactionAssembler:
    def __init__(self, venues: Dict[Venue, VenueClient], guard: ProfitGuard, config: AssemblerConfig):
        self.venues = venues
        self.guard = guard
        self.config = config

    def build_compute_budget_instructions(self) -> List[Instruction]:
        instructions = [set_compute_unit_limit(self.config.compute_unit_limit)]
        if self.config.priority_fee_microlamports > 0:
            instructions.append(set_compute_unit_price(self.config.priority_fee_microlamports))
        return instructions

    def build_tip_instruction(self, payer: Pubkey) -> Instruction:
        return transfer(
            TransferParams(
                from_pubkey=payer,
                to_pubkey=Pubkey.from_string(self.config.tip_account),
                lamports=self.config.tip_lamports,
            )
        )

    def _check_impact(self, leg: str, quote: SwapQuote) -> None:
        ceiling = self.guard.config.max_price_impact_bps
        if quote.price_impact_bps > ceiling:
            error = PriceImpactExceeded(leg, quote.pool_id, quote.price_impact_bps, ceiling)
            Logger.warning(f"[ASSEMBLE] {error}")
            raise error

    async def assemble(self, execution: ArbitrageExecution, payer: Pubkey) -> AssembledTransaction:
        """
        Quote, guard and build one attempt.

        Raises:
            PoolNotFound, QuoteUnavailable, NetworkTimeout: from the venue clients
            PriceImpactExceeded: either leg over the ceiling
            InsufficientProfit: leg 2's quoted output misses the profit floor
        """
        execution.consume()
        opp = execution.opportunity
        buy_venue = opp.direction.buy_venue
        sell_venue = opp.direction.sell_venue
        buy_client = self.venues[buy_venue]
        sell_client = self.venues[sell_venue]
        slippage = self.guard.config.slippage_bps
        amount_in = sol_to_lamports(execution.amount_in_sol)

        Logger.info(
            f"[ASSEMBLE] {opp.pair_name}: buy on {buy_venue.value}, sell on {sell_venue.value}, "
            f"{execution.amount_in_sol} SOL ({amount_in} lamports)"
        )

        # Quotes first; nothing is built until both legs pass
        quote1 = await buy_client.quote(
            opp.pool_id_for(buy_venue), amount_in, SwapSide.BUY_TOKEN, opp.token_mint, slippage
        )
        self._check_impact("leg1", quote1)

        # Chain on what leg 1 is guaranteed to deliver
        quote2 = await sell_client.quote(
            opp.pool_id_for(sell_venue), quote1.min_out_amount, SwapSide.SELL_TOKEN, opp.token_mint, slippage
        )
        self._check_impact("leg2", quote2)

        self.guard.check(amount_in, quote2.out_amount, stage="estimate")
        minimum_required = self.guard.minimum_required_lamports(amount_in)
        quote2 = quote2.with_min_out(self.guard.tighten_threshold(quote2.min_out_amount, amount_in))

        leg1 = await buy_client.build_swap_instructions(quote1, payer)
        leg2 = await sell_client.build_swap_instructions(quote2, payer)

        sections = {
            "compute_budget": self.build_compute_budget_instructions(),
            "leg1": leg1.instructions,
            "leg2": leg2.instructions,
            "guard": self.guard.build_guard_instructions(payer, minimum_required, leg2.output_mint),
            "tip": [self.build_tip_instruction(payer)],
        }

        lookup_tables: List[str] = []
        for address in leg1.lookup_tables + leg2.lookup_tables:
            if address not in lookup_tables:
                lookup_tables.append(address)

        assembled = AssembledTransaction(
            payer=payer,
            sections=sections,
            leg1=leg1,
            leg2=leg2,
            amount_in_lamports=amount_in,
            minimum_required_lamports=minimum_required,
            lookup_table_addresses=lookup_tables,
            tip_lamports=self.config.tip_lamports,
        )
        self.validate(assembled)

        Logger.success(
            f"[ASSEMBLE] {len(assembled.instructions)} instructions, "
            f"est. out {quote2.out_amount} lamports (floor {minimum_required})"
        )
        return assembled

    @staticmethod
    def validate(assembled: AssembledTransaction) -> None:
        """Raise ValueError if the section layout is not submittable."""
        order = assembled.section_order
        if order != SECTION_ORDER:
            raise ValueError(f"Section order {order} != {SECTION_ORDER}")
        if not assembled.sections["leg1"] or not assembled.sections["leg2"]:
            raise ValueError("Both swap legs must carry instructions")
        if len(assembled.sections["tip"]) != 1:
            raise ValueError("Exactly one tip instruction must close the transaction")
