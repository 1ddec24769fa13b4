"""Terminal virtualization: buffered, retractable output over a real stream."""

from .records import (
    ERASE_LINE,
    DisplayRecord,
    EraseLine,
    MarkerStyles,
    PendingWrite,
    ValueRecord,
)
from .stream import StreamTerminal, Terminal, echo_text
from .virtual import VirtualTerminal
from .writer import RegionWriter

__all__ = [
    "DisplayRecord",
    "ERASE_LINE",
    "EraseLine",
    "MarkerStyles",
    "PendingWrite",
    "RegionWriter",
    "StreamTerminal",
    "Terminal",
    "ValueRecord",
    "VirtualTerminal",
    "echo_text",
]
