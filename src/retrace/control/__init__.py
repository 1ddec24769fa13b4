"""Resumable control: multi-shot checkpoints and scoped regions."""

from .engine import (
    Body,
    Bounce,
    Checkpoint,
    Continuation,
    ControlContext,
    ControlStats,
    Halt,
    Step,
    bounce,
)
from .errors import ContinuationError, EngineFault, TrappableError
from .regions import Frame, Region, regions_of

__all__ = [
    "Body",
    "Bounce",
    "Checkpoint",
    "Continuation",
    "ContinuationError",
    "ControlContext",
    "ControlStats",
    "EngineFault",
    "Frame",
    "Halt",
    "Region",
    "Step",
    "TrappableError",
    "bounce",
    "regions_of",
]
