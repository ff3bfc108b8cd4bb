"""
Execution Results
=================
Typed outcomes for pipeline stages and whole execution attempts.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, TypeVar

from solarb.shared.system.errors import ArbError

T = TypeVar("T")


class AttemptState(Enum):
    ASSEMBLING = "ASSEMBLING"
    GUARDING = "GUARDING"
    FINALIZING = "FINALIZING"
    SUBMITTING = "SUBMITTING"
    CONFIRMED = "CONFIRMED"
    REJECTED = "REJECTED"
    EXPIRED = "EXPIRED"

    @property
    def is_terminal(self) -> bool:
        return self in (AttemptState.CONFIRMED, AttemptState.REJECTED, AttemptState.EXPIRED)


_TRANSITIONS = {
    None: {AttemptState.ASSEMBLING},
    AttemptState.ASSEMBLING: {AttemptState.GUARDING, AttemptState.REJECTED},
    AttemptState.GUARDING: {AttemptState.FINALIZING, AttemptState.REJECTED},
    AttemptState.FINALIZING: {AttemptState.SUBMITTING, AttemptState.REJECTED, AttemptState.EXPIRED},
    AttemptState.SUBMITTING: {AttemptState.CONFIRMED, AttemptState.REJECTED, AttemptState.EXPIRED},
}


@dataclass
class StageResult(Generic[T]):
    """Success value or the taxonomy error a stage ended with."""

    stage: str
    value: Optional[T] = None
    error: Optional[ArbError] = None
    latency_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class AttemptReport:
    """One execution attempt, start to terminal state."""

    pair_name: str
    amount_in_sol: float
    states: List[AttemptState] = field(default_factory=list)
    stages: List[StageResult] = field(default_factory=list)
    signature: Optional[str] = None
    error: Optional[ArbError] = None
    section_order: tuple = ()
    estimated_out_lamports: int = 0
    realized_out_lamports: Optional[int] = None
    started_at: float = field(default_factory=time.time)

    @property
    def state(self) -> Optional[AttemptState]:
        return self.states[-1] if self.states else None

    @property
    def success(self) -> bool:
        return self.state is AttemptState.CONFIRMED

    def advance(self, state: AttemptState) -> None:
        allowed = _TRANSITIONS.get(self.state, set())
        if state not in allowed:
            raise ValueError(f"Illegal transition {self.state} -> {state}")
        self.states.append(state)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pair": self.pair_name,
            "amount_in_sol": self.amount_in_sol,
            "state": self.state.value if self.state else None,
            "states": [s.value for s in self.states],
            "signature": self.signature,
            "error": str(self.error) if self.error else None,
            "error_type": type(self.error).__name__ if self.error else None,
            "estimated_out_lamports": self.estimated_out_lamports,
            "realized_out_lamports": self.realized_out_lamports,
        }

    def __repr__(self) -> str:
        if self.success:
            return f"AttemptReport(CONFIRMED: {self.pair_name}, tx={self.signature})"
        return f"AttemptReport({self.state.value if self.state else 'NEW'}: {self.pair_name}, {self.error})"
