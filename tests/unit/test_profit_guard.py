"""
Profit Guard Unit Tests
=======================
The guard is binary: final >= initial * (1 + min_profit_bps / 10000) or abort.
"""

from decimal import Decimal

import pytest
from solders.instruction import Instruction
from solders.pubkey import Pubkey

from solarb.execution.profit_guard import GuardConfig, ProfitGuard
from solarb.shared.infrastructure.jupiter_client import SwapQuote
from solarb.shared.system.errors import InsufficientProfit


@pytest.fixture
def guard():
    return ProfitGuard(GuardConfig(min_profit_bps=50))


class TestProfitThreshold:

    def test_just_below_floor_aborts(self, guard):
        with pytest.raises(InsufficientProfit) as exc:
            guard.check(1.0, 1.0049)

        err = exc.value
        assert err.minimum_required == pytest.approx(1.005)
        assert err.final_amount == pytest.approx(1.0049)
        assert err.stage == "estimate"
        assert err.realized_bps == pytest.approx(49.0)

    def test_just_above_floor_passes(self, guard):
        decision = guard.check(1.0, 1.0051)

        assert decision.minimum_required == Decimal("1.005")
        assert decision.profit_bps == pytest.approx(51.0)

    def test_exact_floor_passes(self, guard):
        guard.check(1_000_000, 1_005_000, stage="realized")

    def test_stage_recorded(self, guard):
        with pytest.raises(InsufficientProfit) as exc:
            guard.check(100, 90, stage="realized")
        assert "realized" in str(exc.value)

    def test_non_positive_initial_rejected(self, guard):
        with pytest.raises(ValueError):
            guard.check(0, 10)


class TestMinimumLamports:

    def test_rounds_up(self, guard):
        # 100_000_001 * 1.005 = 100_500_001.005
        assert guard.minimum_required_lamports(100_000_001) == 100_500_002

    def test_exact_value(self, guard):
        assert guard.minimum_required_lamports(100_000_000) == 100_500_000

    def test_tighten_raises_low_quote_floor(self, guard):
        assert guard.tighten_threshold(99_000_000, 100_000_000) == 100_500_000

    def test_tighten_keeps_higher_quote_floor(self, guard):
        assert guard.tighten_threshold(100_700_000, 100_000_000) == 100_700_000


class TestGuardInstructions:

    def test_empty_without_builder(self, guard):
        assert guard.enforces_on_chain is False
        assert guard.build_guard_instructions(Pubkey.new_unique(), 1, "mint") == []

    def test_builder_receives_floor(self):
        seen = {}
        program = Pubkey.new_unique()

        def builder(payer, minimum, mint):
            seen.update(payer=payer, minimum=minimum, mint=mint)
            return [Instruction(program, bytes(8), [])]

        guard = ProfitGuard(GuardConfig(min_profit_bps=50), instruction_builder=builder)
        payer = Pubkey.new_unique()
        out = guard.build_guard_instructions(payer, 100_500_000, "So11111111111111111111111111111111111111112")

        assert guard.enforces_on_chain is True
        assert len(out) == 1
        assert seen["minimum"] == 100_500_000
        assert seen["payer"] == payer


class TestOutputFloor:

    def _quote(self, out_amount=1_010_000, min_out=999_900):
        return SwapQuote(
            venue_label="Meteora DLMM",
            pool_id="pool",
            input_mint="token",
            output_mint="sol",
            in_amount=100_000,
            out_amount=out_amount,
            min_out_amount=min_out,
            price_impact_bps=1.0,
            slippage_bps=100,
            quote_response={"otherAmountThreshold": str(min_out), "slippageBps": 100},
        )

    def test_raises_floor_to_profit_minimum(self):
        raised = self._quote().with_min_out(1_005_000)

        assert raised.min_out_amount == 1_005_000
        assert raised.quote_response["otherAmountThreshold"] == "1005000"
        assert raised.slippage_bps == 49

    def test_never_lowers_floor(self):
        quote = self._quote(min_out=999_900)
        assert quote.with_min_out(10).min_out_amount == 999_900


class TestGuardConfig:

    def test_negative_values_rejected(self):
        with pytest.raises(ValueError):
            GuardConfig(min_profit_bps=-1)
