from __future__ import annotations

import io
from typing import Callable, List

import pytest

from retrace.cli import main
from retrace.driver import ReplState, create_session, format_error
from retrace.lang import LispError, RaisedObject, Symbol
from retrace.runtime.settings import ReplSettings


def make_session(text: str, **settings: object):
    stdout = io.StringIO()
    options = {"color": False, **settings}
    driver = create_session(
        ReplSettings(**options),  # type: ignore[arg-type]
        stdin=io.StringIO(text),
        stdout=stdout,
        echo_input=True,
    )
    return driver, stdout


def test_end_of_input_first_terminates_without_evaluating() -> None:
    driver, stdout = make_session("")

    summary = driver.run()

    assert summary.state is ReplState.TERMINATED
    assert summary.evaluations == 0
    assert summary.lines_read == 0
    assert stdout.getvalue() == "> "


def test_continued_expression_prints_its_value_once() -> None:
    driver, stdout = make_session("(+ 1\n 2)\n")

    summary = driver.run()

    assert stdout.getvalue() == "> (+ 1\n.  2)\n3\n> "
    assert summary.evaluations == 1
    assert summary.lines_read == 2


def test_values_are_wrapped_in_value_markers() -> None:
    driver, stdout = make_session("(* 6 7)\n", color=True)

    driver.run()

    assert "\x1b[32m42\x1b[0m\n" in stdout.getvalue()


def test_forms_without_value_print_nothing() -> None:
    driver, stdout = make_session('(define x 5)\nx\n"text"\n')

    driver.run()

    assert stdout.getvalue() == '> (define x 5)\n> x\n5\n> "text"\n"text"\n> '


def test_parse_error_is_reported_and_buffer_discarded() -> None:
    driver, stdout = make_session("(+ 1\n))\n(+ 2 2)\n")

    summary = driver.run()

    assert stdout.getvalue() == (
        "> (+ 1\n. ))\nparse error: unexpected ')'\n> (+ 2 2)\n4\n> "
    )
    assert summary.errors == 1
    assert summary.evaluations == 1


def test_blank_line_returns_to_the_prompt_without_evaluating() -> None:
    driver, stdout = make_session("\n(+ 1 1)\n")

    summary = driver.run()

    assert stdout.getvalue() == "> \n> (+ 1 1)\n2\n> "
    assert summary.evaluations == 1
    assert summary.errors == 0


def test_evaluation_error_is_reported_and_loop_continues() -> None:
    driver, stdout = make_session('(error "bad thing:" 42 "x")\n(+ 1 1)\n', color=True)

    summary = driver.run()

    output = stdout.getvalue()
    assert '\x1b[31mbad thing: 42 "x"\x1b[0m\n' in output
    assert output.endswith("2\x1b[0m\n> ")
    assert summary.errors == 1
    assert summary.state is ReplState.TERMINATED


def test_output_before_an_error_stays_visible() -> None:
    driver, stdout = make_session('(begin (display "partial") (car 1))\n')

    driver.run()

    assert stdout.getvalue() == (
        '> (begin (display "partial") (car 1))\npartialcar: not a pair: 1\n> '
    )


def test_rewind_replays_input_and_matches_screen(
    screen: Callable[[str], List[str]]
) -> None:
    driver, stdout = make_session(
        '(define k (call/cc (lambda (c) c)))\n(display "hi")\n(k 5)\n'
    )

    summary = driver.run()

    assert screen(stdout.getvalue()) == [
        "> (define k (call/cc (lambda (c) c)))",
        '> (display "hi")',
        "hi> (k 5)",
        "not a procedure: 5",
        "> ",
    ]
    assert summary.rewinds == 1
    assert summary.lines_read == 3
    assert summary.lines_replayed == 2
    assert summary.errors == 1


def test_rewound_values_are_erased_from_the_screen(
    screen: Callable[[str], List[str]]
) -> None:
    text = (
        "(define n 0)\n"
        "(define back (call/cc (lambda (c) c)))\n"
        "(set! n (+ n 1))\n"
        "n\n"
        "(if (< n 2) (back back))\n"
    )
    driver, stdout = make_session(text)

    driver.run()

    assert screen(stdout.getvalue()) == [
        "> (define n 0)",
        "> (define back (call/cc (lambda (c) c)))",
        "> (set! n (+ n 1))",
        "> n",
        "2",
        "> (if (< n 2) (back back))",
        "> ",
    ]


def test_guard_output_is_retracted_by_a_rewind(
    screen: Callable[[str], List[str]]
) -> None:
    wind = (
        '(dynamic-wind (lambda () (display "A\\n")) (lambda () 1)'
        ' (lambda () (display "B\\n")))'
    )
    text = (
        "(define n 0)\n"
        "(define back (call/cc (lambda (c) c)))\n"
        f"{wind}\n"
        "(set! n (+ n 1))\n"
        "(if (< n 2) (back back))\n"
    )
    driver, stdout = make_session(text)

    summary = driver.run()

    assert screen(stdout.getvalue()) == [
        "> (define n 0)",
        "> (define back (call/cc (lambda (c) c)))",
        f"> {wind}",
        "A",
        "B",
        "1",
        "> (set! n (+ n 1))",
        "> (if (< n 2) (back back))",
        "> ",
    ]
    assert summary.rewinds == 1


def test_failing_guarded_body_runs_its_after_thunk(
    screen: Callable[[str], List[str]]
) -> None:
    wind = (
        '(dynamic-wind (lambda () #t) (lambda () (display "x") (car 1))'
        ' (lambda () (display "AFTER\\n")))'
    )
    text = (
        "(define back (call/cc (lambda (c) c)))\n"
        f"{wind}\n"
        "(if (procedure? back) (back 0))\n"
    )
    driver, stdout = make_session(text)

    summary = driver.run()

    assert screen(stdout.getvalue()) == [
        "> (define back (call/cc (lambda (c) c)))",
        f"> {wind}",
        "xAFTER",
        "car: not a pair: 1",
        "> (if (procedure? back) (back 0))",
        "> ",
    ]
    assert summary.errors == 2


def test_deep_value_is_printed_at_the_prompt() -> None:
    driver, stdout = make_session(
        "(define (nest n acc) (if (= n 0) acc (nest (- n 1) (list acc))))\n"
        "(nest 3000 '())\n"
    )

    summary = driver.run()

    assert "(" * 3000 + "()" + ")" * 3000 + "\n> " in stdout.getvalue()
    assert summary.errors == 0


def test_greeting_is_shown_before_first_prompt() -> None:
    driver, stdout = make_session("", greeting="welcome")

    driver.run()

    assert stdout.getvalue() == "welcome\n> "


def test_format_error() -> None:
    assert format_error(LispError("bad thing:", 42, "x")) == 'bad thing: 42 "x"'
    assert format_error(LispError("plain")) == "plain"
    assert format_error(RaisedObject(Symbol("oops"))) == "oops"
    assert format_error(RaisedObject("text")) == '"text"'


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "RETRACE_PROMPT",
        "RETRACE_CONTINUATION_PROMPT",
        "RETRACE_GREETING",
        "RETRACE_NO_COLOR",
        "RETRACE_LOG_PRESET",
        "NO_COLOR",
    ):
        monkeypatch.delenv(name, raising=False)


def test_cli_runs_a_session(clean_env: None) -> None:
    stdout = io.StringIO()

    code = main(
        ["--no-color", "--prompt", "$ "],
        stdin=io.StringIO("(* 6 7)\n"),
        stdout=stdout,
    )

    assert code == 0
    assert stdout.getvalue() == "$ (* 6 7)\n42\n$ "


def test_cli_loads_definitions_first(clean_env: None, tmp_path) -> None:
    source = tmp_path / "defs.scm"
    source.write_text("(define (square x) (* x x))\n", encoding="utf-8")
    stdout = io.StringIO()

    code = main(
        ["--no-color", "--quiet", "--load", str(source)],
        stdin=io.StringIO("(square 9)\n"),
        stdout=stdout,
    )

    assert code == 0
    assert "81\n" in stdout.getvalue()


def test_cli_reports_missing_load_file(clean_env: None, tmp_path) -> None:
    stderr = io.StringIO()

    code = main(
        ["--load", str(tmp_path / "missing.scm")],
        stdin=io.StringIO(""),
        stdout=io.StringIO(),
        stderr=stderr,
    )

    assert code == 2
    assert "cannot load" in stderr.getvalue()


def test_cli_loaded_checkpoint_can_be_resumed_from_the_prompt(
    clean_env: None, tmp_path, screen: Callable[[str], List[str]]
) -> None:
    source = tmp_path / "top.scm"
    source.write_text("(define top (call/cc (lambda (c) c)))\n", encoding="utf-8")
    stdout = io.StringIO()

    code = main(
        ["--no-color", "--quiet", "--load", str(source)],
        stdin=io.StringIO("(top 1)\ntop\n"),
        stdout=stdout,
    )

    assert code == 0
    assert screen(stdout.getvalue()) == [
        "> (top 1)",
        "not a procedure: 1",
        "> top",
        "1",
        "> ",
    ]


def test_cli_reports_errors_in_loaded_code_at_the_prompt(
    clean_env: None, tmp_path
) -> None:
    source = tmp_path / "bad.scm"
    source.write_text("(car 1)\n(define after 2)\n", encoding="utf-8")
    stdout = io.StringIO()

    code = main(
        ["--no-color", "--quiet", "--load", str(source)],
        stdin=io.StringIO("(+ 1 1)\n"),
        stdout=stdout,
    )

    assert code == 0
    assert stdout.getvalue() == "car: not a pair: 1\n> (+ 1 1)\n2\n> "


def test_cli_rejects_unreadable_load_file(clean_env: None, tmp_path) -> None:
    source = tmp_path / "open.scm"
    source.write_text("(define (f x)\n", encoding="utf-8")
    stderr = io.StringIO()

    code = main(
        ["--load", str(source)],
        stdin=io.StringIO(""),
        stdout=io.StringIO(),
        stderr=stderr,
    )

    assert code == 1
    assert "unexpected end of file" in stderr.getvalue()


def test_settings_from_environment() -> None:
    settings = ReplSettings.from_env(
        {"RETRACE_PROMPT": "? ", "NO_COLOR": "1", "RETRACE_LOG_PRESET": "production"}
    )

    assert settings.primary_prompt == "? "
    assert settings.color is False
    assert settings.log_preset == "production"
    assert settings.with_overrides(primary_prompt=None) is settings
