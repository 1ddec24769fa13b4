"""Prompt/read/parse/evaluate/print loop written in continuation-passing style."""

from __future__ import annotations

from typing import Any, Optional, Sequence, Tuple

from retrace.control import Bounce, ControlContext, Halt, Step, TrappableError
from retrace.lang import (
    NO_VALUE,
    Complete,
    Incomplete,
    Interpreter,
    ParseFailure,
    parse,
    to_written,
)
from retrace.replay import EOF, RedoLog
from retrace.runtime import telemetry
from retrace.runtime.settings import ReplSettings
from retrace.terminal import RegionWriter, VirtualTerminal

from .report import format_error, format_parse_error
from .states import ReplState, SessionSummary


class Driver:
    """Owns the prompt loop and moves it between ``ReplState`` values.

    Each state hands its successor to the control engine as a continuation,
    so a checkpoint captured by evaluated code also captures where the loop
    was. Resuming it puts the loop back in that state with the terminal and
    the redo log rewound to match.
    """

    def __init__(
        self,
        control: ControlContext,
        terminal: VirtualTerminal,
        writer: RegionWriter,
        redo: RedoLog,
        interpreter: Interpreter,
        *,
        settings: Optional[ReplSettings] = None,
        logger_name: str = "retrace.driver",
    ) -> None:
        self.control = control
        self.terminal = terminal
        self.writer = writer
        self.redo = redo
        self.interpreter = interpreter
        self.settings = settings or ReplSettings()
        self.state = ReplState.AWAITING_PRIMARY_INPUT
        self.evaluations = 0
        self.errors = 0
        self._logger_name = logger_name
        self.logger = telemetry.get_logger(logger_name)

    def run(self, preload: Sequence[Any] = ()) -> SessionSummary:
        """Run until end of input and return what happened.

        ``preload`` forms are evaluated before the first prompt under the same
        error trap as typed input, so checkpoints they capture can be resumed
        from the prompt later.
        """

        self.terminal.activate()
        forms = tuple(preload)
        start: Step = Bounce(self._preload, (forms,))
        if self.settings.greeting:
            start = Bounce(
                self.writer.display,
                (self.settings.greeting + "\n", lambda _: self._preload(forms)),
            )
        with telemetry.span("driver::session", logger_name=self._logger_name):
            return self.control.run(start)

    def summary(self) -> SessionSummary:
        return SessionSummary(
            state=self.state,
            lines_read=self.redo.read,
            lines_replayed=self.redo.replayed,
            evaluations=self.evaluations,
            errors=self.errors,
            rewinds=self.control.stats.resumes,
        )

    # -- states -----------------------------------------------------------

    def _preload(self, forms: Tuple[Any, ...]) -> Step:
        if not forms:
            return Bounce(self._prompt, ("",))
        self._transition(ReplState.EVALUATING)
        return self.control.trap(
            lambda k: self.interpreter.eval_forms(forms, k),
            self._on_error,
            lambda _: Bounce(self._prompt, ("",)),
        )

    def _prompt(self, accumulated: str) -> Step:
        if accumulated:
            self._transition(ReplState.AWAITING_CONTINUATION_INPUT)
            prompt = self.settings.continuation_prompt
        else:
            self._transition(ReplState.AWAITING_PRIMARY_INPUT)
            prompt = self.settings.primary_prompt
        return self.redo.next_input_line(
            prompt, lambda line: self._on_line(accumulated, line)
        )

    def _on_line(self, accumulated: str, line: str) -> Step:
        if line == EOF:
            return self._terminate()
        text = accumulated + line
        result = parse(text)
        if isinstance(result, Incomplete):
            return Bounce(self._prompt, (text,))
        if isinstance(result, ParseFailure):
            self.errors += 1
            return self._report_error(format_parse_error(result.message))
        if isinstance(result, Complete) and result.forms:
            return self._evaluate(result.forms)
        return Bounce(self._prompt, ("",))

    def _evaluate(self, forms: Tuple[Any, ...]) -> Step:
        self._transition(ReplState.EVALUATING)
        self.evaluations += 1
        return self.control.trap(
            lambda k: self.interpreter.eval_forms(
                forms, lambda value: self._render(value, k)
            ),
            self._on_error,
            self._on_value,
        )

    def _render(self, value: Any, k: Any) -> Step:
        # runs under the evaluation trap
        if value is NO_VALUE:
            return Bounce(k, ((value, None),))
        return Bounce(k, ((value, to_written(value)),))

    def _on_value(self, rendered: Tuple[Any, Optional[str]]) -> Step:
        value, text = rendered
        if text is None:
            return Bounce(self._prompt, ("",))
        self._transition(ReplState.REPORTING)
        return self.writer.value(
            value,
            text,
            lambda _: self.writer.display("\n", lambda _: Bounce(self._prompt, ("",))),
        )

    def _on_error(self, error: TrappableError, k: Any) -> Step:
        del k
        self.errors += 1
        telemetry.record_event(
            "driver.error",
            level="debug",
            data={"error": type(error).__name__},
            logger_name=self._logger_name,
        )
        return self._report_error(format_error(error))

    def _report_error(self, text: str) -> Step:
        self._transition(ReplState.REPORTING)
        return self.writer.display(
            self.terminal.styles.wrap_error(text) + "\n",
            lambda _: Bounce(self._prompt, ("",)),
        )

    def _terminate(self) -> Step:
        self._transition(ReplState.TERMINATED)
        self.terminal.deactivate()
        summary = self.summary()
        telemetry.record_event(
            "driver.terminated",
            data={
                "evaluations": summary.evaluations,
                "errors": summary.errors,
                "rewinds": summary.rewinds,
            },
            logger_name=self._logger_name,
        )
        return Halt(summary)

    def _transition(self, state: ReplState) -> None:
        if state is self.state:
            return
        telemetry.record_event(
            "driver.transition",
            level="debug",
            data={"from": self.state.value, "to": state.value},
            logger_name=self._logger_name,
        )
        self.state = state


__all__ = ["Driver"]
