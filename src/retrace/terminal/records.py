"""Buffered terminal operations and the control bytes they render to."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union

CURSOR_TO_LINE_START = "\r"
CURSOR_UP = "\x1b[A"
ERASE_TO_END_OF_LINE = "\x1b[K"
ERASE_LINE = CURSOR_TO_LINE_START + CURSOR_UP + ERASE_TO_END_OF_LINE


@dataclass(frozen=True, slots=True)
class MarkerStyles:
    """Opaque styling sequences wrapped around printed values and errors."""

    value: str = ""
    error: str = ""
    reset: str = ""

    @classmethod
    def plain(cls) -> "MarkerStyles":
        return cls()

    def wrap_value(self, text: str) -> str:
        return f"{self.value}{text}{self.reset}" if self.value else text

    def wrap_error(self, text: str) -> str:
        return f"{self.error}{text}{self.reset}" if self.error else text


@dataclass(frozen=True, slots=True)
class DisplayRecord:
    text: str

    def render(self, styles: MarkerStyles) -> str:
        del styles
        return self.text


@dataclass(frozen=True, slots=True)
class ValueRecord:
    """A printed value; matched for undo by its printed text."""

    value: Any = field(compare=False)
    text: str = ""

    def render(self, styles: MarkerStyles) -> str:
        return styles.wrap_value(self.text)


@dataclass(frozen=True, slots=True)
class EraseLine:
    def render(self, styles: MarkerStyles) -> str:
        del styles
        return ERASE_LINE


PendingWrite = Union[DisplayRecord, ValueRecord, EraseLine]


def line_breaks(record: PendingWrite, styles: MarkerStyles) -> int:
    if isinstance(record, EraseLine):
        return 0
    return record.render(styles).count("\n")


__all__ = [
    "CURSOR_TO_LINE_START",
    "CURSOR_UP",
    "DisplayRecord",
    "ERASE_LINE",
    "ERASE_TO_END_OF_LINE",
    "EraseLine",
    "MarkerStyles",
    "PendingWrite",
    "ValueRecord",
    "line_breaks",
]
