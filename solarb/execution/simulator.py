"""
Pre-submission Simulation
=========================
Runs the signed transaction through simulateTransaction and reads the
payer's post-simulation lamports. The realized round-trip amount is

    amount_in + (post_lamports - pre_lamports)

so fees, the tip and rent all count against the profit guard.
"""

from dataclasses import dataclass
from typing import Tuple

from solarb.shared.infrastructure.rpc_gateway import RpcGateway
from solarb.shared.models import AssembledTransaction
from solarb.shared.system.errors import SimulationFailed
from solarb.shared.system.logging import Logger


@dataclass(frozen=True)
class SimulationReport:
    pre_lamports: int
    post_lamports: int
    realized_out_lamports: int
    units_consumed: int = 0
    logs: Tuple[str, ...] = ()


def _lamports(account: dict) -> int:
    if account is None:
        raise SimulationFailed("payer account missing from simulation result")
    return int(account["lamports"])


class TransactionSimulator:
    def __init__(self, rpc: RpcGateway):
        self.rpc = rpc

    async def simulate(self, assembled: AssembledTransaction, encoded_tx: str) -> SimulationReport:
        pre = await self.rpc.get_balance(assembled.payer)
        value = await self.rpc.simulate(encoded_tx, [assembled.payer])

        accounts = value.get("accounts") or [None]
        post = _lamports(accounts[0])
        realized = assembled.amount_in_lamports + (post - pre)

        report = SimulationReport(
            pre_lamports=pre,
            post_lamports=post,
            realized_out_lamports=realized,
            units_consumed=int(value.get("unitsConsumed") or 0),
            logs=tuple(value.get("logs") or ()),
        )
        Logger.info(
            f"[SIM] {report.units_consumed} CU, balance {pre} -> {post} lamports, "
            f"round trip {assembled.amount_in_lamports} -> {realized}"
        )
        return report
