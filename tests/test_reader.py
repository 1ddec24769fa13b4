from __future__ import annotations

import pytest

from retrace.lang import (
    NIL,
    Complete,
    Incomplete,
    Pair,
    ParseFailure,
    Symbol,
    parse,
    read_one,
    to_written,
)


def test_complete_expression_yields_forms() -> None:
    result = parse("(+ 1 2)")

    assert isinstance(result, Complete)
    assert len(result.forms) == 1
    assert tuple(result.forms[0]) == (Symbol("+"), 1, 2)


def test_blank_text_is_complete_with_no_forms() -> None:
    assert parse("  \n") == Complete(())


@pytest.mark.parametrize(
    "text",
    ["(+ 1", '"unterminated', "'", "(a . ", "(define (f x)\n  (* x"],
)
def test_unfinished_text_is_incomplete(text: str) -> None:
    assert isinstance(parse(text), Incomplete)


@pytest.mark.parametrize("text", [")", "(1 2))", "#q", "(. 1)"])
def test_malformed_text_is_a_failure(text: str) -> None:
    assert isinstance(parse(text), ParseFailure)


def test_multiline_text_completes_once_closed() -> None:
    result = parse("(+ 1\n 2)\n")

    assert isinstance(result, Complete)
    assert to_written(result.forms[0]) == "(+ 1 2)"


def test_atoms() -> None:
    assert read_one("42") == 42
    assert read_one("-3") == -3
    assert read_one("1.5") == 1.5
    assert read_one("#t") is True
    assert read_one("#false") is False
    assert read_one("-") is Symbol("-")
    assert read_one("hello") is Symbol("hello")


def test_string_escapes() -> None:
    assert read_one(r'"a\nb\t\"q\"\\"') == 'a\nb\t"q"\\'


def test_symbols_and_strings_are_distinct() -> None:
    value = read_one('"abc"')

    assert value == "abc"
    assert not isinstance(value, Symbol)


def test_dotted_pair_and_quote() -> None:
    pair = read_one("(1 . 2)")
    quoted = read_one("'(a b)")

    assert isinstance(pair, Pair)
    assert (pair.car, pair.cdr) == (1, 2)
    assert to_written(quoted) == "(quote (a b))"
    assert read_one("()") is NIL


def test_comments_are_skipped() -> None:
    assert parse("; leading note\n42 ; trailing\n") == Complete((42,))


def test_deep_nesting_is_read_without_recursion() -> None:
    result = parse("(" * 3000 + ")" * 3000)

    assert isinstance(result, Complete)
    assert isinstance(parse("'" * 3000 + "x"), Complete)
    assert isinstance(parse("(" * 3000), Incomplete)
