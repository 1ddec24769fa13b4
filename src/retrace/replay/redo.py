"""Redo log: consumed input lines, replayed forward after a rewind."""

from __future__ import annotations

from typing import List, Optional, Tuple

from retrace.control import Bounce, Continuation, ControlContext, Step
from retrace.runtime import telemetry
from retrace.terminal import DisplayRecord, RegionWriter, VirtualTerminal, echo_text

# A zero-length line: the input source is exhausted.
EOF = ""


class _ConsumedLine:
    """Region actions tying one input line to the log and to its echo."""

    __slots__ = ("log", "line", "record", "_first")

    def __init__(self, log: "RedoLog", line: str, *, replayed: bool) -> None:
        self.log = log
        self.line = line
        # A real read was already echoed by the terminal itself.
        self.record: Optional[DisplayRecord] = None if replayed else DisplayRecord(
            echo_text(line)
        )
        self._first = True

    def enter(self) -> None:
        if self._first:
            self._first = False
            if self.record is None:
                self.record = self.log.terminal.display(echo_text(self.line))
            return
        # advancing through this point again: consume the line a second time
        self.log.claim(self.line)
        self.record = self.log.terminal.display(echo_text(self.line))

    def exit(self) -> None:
        if self.record is not None:
            self.log.terminal.undo(self.record)
        self.log.push(self.line)


class RedoLog:
    """Stack of input lines available for forward replay; the top is last."""

    def __init__(
        self,
        control: ControlContext,
        terminal: VirtualTerminal,
        writer: Optional[RegionWriter] = None,
        *,
        logger_name: str = "retrace.replay",
    ) -> None:
        self.control = control
        self.terminal = terminal
        self.writer = writer or RegionWriter(control, terminal)
        self._lines: List[str] = []
        self.replayed = 0
        self.read = 0
        self._logger_name = logger_name
        self.logger = telemetry.get_logger(logger_name)

    def __len__(self) -> int:
        return len(self._lines)

    def lines(self) -> Tuple[str, ...]:
        return tuple(self._lines)

    def push(self, line: str) -> None:
        if line == EOF:
            return
        self._lines.append(line)

    def claim(self, line: str) -> bool:
        """Drop ``line`` from the top of the log if it is the next to replay."""

        if self._lines and self._lines[-1] == line:
            self._lines.pop()
            return True
        return False

    def next_input_line(self, prompt: str, k: Continuation) -> Step:
        """Show ``prompt`` and hand the next line (or ``EOF``) to ``k``."""

        return self.writer.display(prompt, lambda _: self._obtain(k))

    def read_line(self, k: Continuation) -> Step:
        """Input-port entry point for ``read-line`` in evaluated code."""

        return self.next_input_line("", k)

    def _obtain(self, k: Continuation) -> Step:
        if self._lines:
            line = self._lines.pop()
            replayed = True
            self.replayed += 1
            telemetry.record_event(
                "replay.line",
                level="debug",
                data={"remaining": len(self._lines), "length": len(line)},
                logger_name=self._logger_name,
            )
        else:
            line = self.terminal.read_line()
            if line == EOF:
                return Bounce(k, (EOF,))
            replayed = False
            self.read += 1

        consumed = _ConsumedLine(self, line, replayed=replayed)
        return self.control.scoped(
            consumed.enter,
            consumed.exit,
            lambda _leave: Bounce(k, (line,)),
            k,
            label="input",
            open_ended=True,
        )


__all__ = ["EOF", "RedoLog"]
