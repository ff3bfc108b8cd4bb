"""
Execution Pipeline
==================
Assembly, guarding and submission of atomic arbitrage transactions.

Components:
- TransactionAssembler: ordered two-leg instruction building
- ProfitGuard: proceed/abort on the round-trip amount
- Submitter: finalize, relay, confirm
- ArbPipeline: stage orchestration with deadlines
"""

from solarb.execution.assembler import (
    AssemblerConfig,
    TransactionAssembler,
    sol_to_lamports,
)

from solarb.execution.profit_guard import (
    GuardConfig,
    GuardDecision,
    ProfitGuard,
)

from solarb.execution.submitter import (
    ConfirmationResult,
    ConfirmationStatus,
    FinalizedTransaction,
    Submitter,
    SubmitterConfig,
)

from solarb.execution.execution_result import (
    AttemptReport,
    AttemptState,
    StageResult,
)


__all__ = [
    # Assembly
    "AssemblerConfig",
    "TransactionAssembler",
    "sol_to_lamports",
    # Guard
    "GuardConfig",
    "GuardDecision",
    "ProfitGuard",
    # Submission
    "ConfirmationResult",
    "ConfirmationStatus",
    "FinalizedTransaction",
    "Submitter",
    "SubmitterConfig",
    # Results
    "AttemptReport",
    "AttemptState",
    "StageResult",
]
