"""Input redo log for deterministic replay."""

from .redo import EOF, RedoLog

__all__ = ["EOF", "RedoLog"]
