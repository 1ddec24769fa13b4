"""Driver states and the session summary returned when the loop ends."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ReplState(str, Enum):
    AWAITING_PRIMARY_INPUT = "AwaitingPrimaryInput"
    AWAITING_CONTINUATION_INPUT = "AwaitingContinuationInput"
    EVALUATING = "Evaluating"
    REPORTING = "Reporting"
    TERMINATED = "Terminated"

    @property
    def awaiting_input(self) -> bool:
        return self in (
            ReplState.AWAITING_PRIMARY_INPUT,
            ReplState.AWAITING_CONTINUATION_INPUT,
        )


@dataclass(frozen=True, slots=True)
class SessionSummary:
    """Counters collected over one run of the prompt loop."""

    state: ReplState
    lines_read: int = 0
    lines_replayed: int = 0
    evaluations: int = 0
    errors: int = 0
    rewinds: int = 0


__all__ = ["ReplState", "SessionSummary"]
