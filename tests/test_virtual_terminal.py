from __future__ import annotations

import io
from typing import Iterable, List, Optional

from retrace.control import Bounce, ControlContext, Halt
from retrace.terminal import (
    ERASE_LINE,
    DisplayRecord,
    EraseLine,
    MarkerStyles,
    RegionWriter,
    StreamTerminal,
    VirtualTerminal,
)


class RecordingTerminal:
    def __init__(self, lines: Iterable[str] = ()) -> None:
        self.written: List[str] = []
        self.flushes = 0
        self._lines = list(lines)
        self.reads = 0

    def write(self, text: str) -> None:
        self.written.append(text)

    def flush(self) -> None:
        self.flushes += 1

    def read_line(self) -> str:
        self.reads += 1
        return self._lines.pop(0) if self._lines else ""


def make_virtual(
    lines: Iterable[str] = (), *, styles: Optional[MarkerStyles] = None
) -> tuple[RecordingTerminal, VirtualTerminal]:
    real = RecordingTerminal(lines)
    terminal = VirtualTerminal(real, styles=styles)
    terminal.activate()
    return real, terminal


def test_flushing_empty_queue_writes_nothing() -> None:
    real, terminal = make_virtual()

    assert terminal.flush() == 0
    assert real.written == []
    assert real.flushes == 0


def test_display_then_undo_emits_nothing() -> None:
    real, terminal = make_virtual()

    record = terminal.display("hello\n")
    terminal.undo(record)
    terminal.flush()

    assert real.written == []


def test_undo_after_flush_erases_one_line_per_break() -> None:
    real, terminal = make_virtual()

    record = terminal.display("a\nb\nc\n")
    terminal.flush()
    terminal.undo(record)

    assert terminal.pending == (EraseLine(), EraseLine(), EraseLine())
    terminal.flush()
    assert real.written == ["a\nb\nc\n", ERASE_LINE, ERASE_LINE, ERASE_LINE]


def test_undo_of_text_without_line_break_after_flush_is_silent() -> None:
    real, terminal = make_virtual()

    record = terminal.display("> ")
    terminal.flush()
    terminal.undo(record)

    assert terminal.pending == ()


def test_undo_of_older_record_queues_erase_lines() -> None:
    _, terminal = make_virtual()

    older = terminal.display("a\n")
    newer = terminal.display("b")
    terminal.undo(older)

    assert terminal.pending == (older, newer, EraseLine())


def test_undo_matches_newest_record_by_value() -> None:
    _, terminal = make_virtual()

    first = terminal.display("x\n")
    terminal.display("x\n")
    terminal.undo(first)

    assert terminal.pending == (DisplayRecord("x\n"),)


def test_flush_writes_oldest_first() -> None:
    real, terminal = make_virtual()

    terminal.display("one ")
    terminal.display("two")
    terminal.newline()

    assert terminal.flush() == 3
    assert real.written == ["one ", "two", "\n"]
    assert real.flushes == 1
    assert terminal.pending == ()


def test_value_records_are_wrapped_in_markers() -> None:
    real, terminal = make_virtual(styles=MarkerStyles(value="<", error="!", reset=">"))

    terminal.print_value(3, "3")
    terminal.flush()

    assert real.written == ["<3>"]


def test_inactive_terminal_writes_through() -> None:
    real = RecordingTerminal()
    terminal = VirtualTerminal(real)

    record = terminal.display("now\n")
    terminal.undo(record)

    assert real.written == ["now\n"]
    assert terminal.pending == ()


def test_read_line_flushes_pending_output_first() -> None:
    real, terminal = make_virtual(["(+ 1 2)\n"])

    terminal.display("> ")
    line = terminal.read_line()

    assert line == "(+ 1 2)\n"
    assert real.written == ["> "]


def test_deactivate_flushes_then_writes_through() -> None:
    real, terminal = make_virtual()

    terminal.display("queued")
    terminal.deactivate()
    terminal.display(" direct")

    assert real.written == ["queued", " direct"]


def test_region_writer_retracts_output_on_resume() -> None:
    control = ControlContext()
    real, terminal = make_virtual()
    writer = RegionWriter(control, terminal)
    saved = {}

    def grab(checkpoint, k):
        saved["cp"] = checkpoint
        return Bounce(k, ("first",))

    def after(value):
        if value == "first":
            return writer.display("gone\n", lambda _: control.resume(saved["cp"], "second"))
        return Halt(value)

    assert control.run(control.capture(grab, after)) == "second"
    assert terminal.pending == ()
    assert control.depth == 0


def test_stream_terminal_echoes_piped_input() -> None:
    stdout = io.StringIO()
    terminal = StreamTerminal(io.StringIO("first\nlast"), stdout)

    assert terminal.read_line() == "first\n"
    assert terminal.read_line() == "last"
    assert terminal.read_line() == ""
    assert stdout.getvalue() == "first\nlast\n"
    assert terminal.lines_read == 2


def test_stream_terminal_without_echo_leaves_output_alone() -> None:
    stdout = io.StringIO()
    terminal = StreamTerminal(io.StringIO("typed\n"), stdout, echo_input=False)

    assert terminal.read_line() == "typed\n"
    assert stdout.getvalue() == ""
