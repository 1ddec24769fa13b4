"""Exception hierarchy for the control engine."""

from __future__ import annotations


class TrappableError(Exception):
    """Base for recoverable failures that an installed error trap may catch."""


class ContinuationError(TrappableError):
    """Raised when a checkpoint is invoked where it cannot be honoured."""

    def __init__(self, message: str, *, guard_depth: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.irritants: tuple[object, ...] = ()
        self.guard_depth = guard_depth


class EngineFault(RuntimeError):
    """The region or trap stack is inconsistent; never trapped."""

    def __init__(self, message: str, *, detail: object | None = None) -> None:
        super().__init__(message)
        self.detail = detail


__all__ = ["ContinuationError", "EngineFault", "TrappableError"]
