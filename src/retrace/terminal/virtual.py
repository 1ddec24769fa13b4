"""Virtual terminal: buffered output that can be retracted after the fact."""

from __future__ import annotations

from typing import Any, List, Optional, Sequence

from retrace.runtime import telemetry

from .records import (
    DisplayRecord,
    EraseLine,
    MarkerStyles,
    PendingWrite,
    ValueRecord,
    line_breaks,
)
from .stream import Terminal


class VirtualTerminal:
    """Intercepts output and input on behalf of a real ``Terminal``.

    While active, writes are queued instead of committed. Every queued write
    has an inverse (``undo``); the pair is wired by the caller through a scoped
    region so that leaving the region retracts what it printed.

    The queue is kept oldest-first; ``_pending[-1]`` is the newest record.
    """

    def __init__(
        self,
        terminal: Terminal,
        *,
        styles: Optional[MarkerStyles] = None,
        logger_name: str = "retrace.terminal",
    ) -> None:
        self.terminal = terminal
        self.styles = styles or MarkerStyles.plain()
        self.active = False
        self._pending: List[PendingWrite] = []
        self._logger_name = logger_name
        self.logger = telemetry.get_logger(logger_name)

    @property
    def pending(self) -> Sequence[PendingWrite]:
        return tuple(self._pending)

    def activate(self) -> None:
        self.active = True

    def deactivate(self) -> None:
        self.flush()
        self.active = False

    def display(self, text: str) -> DisplayRecord:
        record = DisplayRecord(text)
        self._perform(record)
        return record

    def newline(self) -> DisplayRecord:
        return self.display("\n")

    def print_value(self, value: Any, text: str) -> ValueRecord:
        record = ValueRecord(value=value, text=text)
        self._perform(record)
        return record

    def read_line(self) -> str:
        self.flush()
        return self.terminal.read_line()

    def undo(self, record: PendingWrite) -> None:
        """Retract ``record``.

        Still unflushed and newest: dropped silently. Otherwise the lines it
        occupied are erased by queueing one ``EraseLine`` per line break.
        """

        if not self.active:
            return
        if self._pending and self._pending[-1] == record:
            self._pending.pop()
            return
        for _ in range(line_breaks(record, self.styles)):
            self._pending.append(EraseLine())

    def flush(self) -> int:
        """Commit queued records oldest-first; returns the number written."""

        if not self._pending:
            return 0
        pending, self._pending = self._pending, []
        with telemetry.span(
            "terminal::flush",
            logger_name=self._logger_name,
            metadata={"records": len(pending)},
        ):
            for record in pending:
                self.terminal.write(record.render(self.styles))
            self.terminal.flush()
        return len(pending)

    def _perform(self, record: PendingWrite) -> None:
        if self.active:
            self._pending.append(record)
        else:
            self.terminal.write(record.render(self.styles))


__all__ = ["VirtualTerminal"]
