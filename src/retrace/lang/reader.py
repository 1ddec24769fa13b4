"""Line-oriented reader: accumulated text in, complete/incomplete/error out."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, List, Tuple, Union

from .types import NIL, Pair, Symbol, make_list

QUOTE = Symbol("quote")

_DELIMITERS = set("()'\";") | set(" \t\r\n\f\v")
_INTEGER = re.compile(r"[+-]?\d+\Z")
_DECIMAL = re.compile(r"[+-]?(\d+\.\d*|\.\d+|\d+)([eE][+-]?\d+)?\Z")
_ESCAPES = {"n": "\n", "t": "\t", "\\": "\\", '"': '"', "r": "\r", "0": "\0"}


@dataclass(frozen=True, slots=True)
class Complete:
    forms: Tuple[Any, ...]


@dataclass(frozen=True, slots=True)
class Incomplete:
    reason: str = "unterminated input"


@dataclass(frozen=True, slots=True)
class ParseFailure:
    message: str
    offset: int = 0


ParseResult = Union[Complete, Incomplete, ParseFailure]


class _NeedMore(Exception):
    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class _Malformed(Exception):
    def __init__(self, message: str, offset: int) -> None:
        super().__init__(message)
        self.message = message
        self.offset = offset


@dataclass(slots=True)
class _Open:
    """A list being read, or a quote waiting for its datum."""

    quote: bool = False
    items: List[Any] = field(default_factory=list)
    dotted: bool = False
    tail: Any = NIL
    has_tail: bool = False


class _Reader:
    def __init__(self, text: str) -> None:
        self.text = text
        self.pos = 0

    def read_all(self) -> Tuple[Any, ...]:
        forms: List[Any] = []
        while True:
            self._skip_space()
            if self.pos >= len(self.text):
                return tuple(forms)
            forms.append(self._read())

    def _skip_space(self) -> None:
        text = self.text
        while self.pos < len(text):
            char = text[self.pos]
            if char == ";":
                end = text.find("\n", self.pos)
                self.pos = len(text) if end == -1 else end + 1
            elif char.isspace():
                self.pos += 1
            else:
                return

    def _read(self) -> Any:
        # Open lists and pending quotes live on an explicit stack; a datum is
        # handed to the innermost one until the stack is empty.
        stack: List[_Open] = []
        text = self.text
        while True:
            self._skip_space()
            top = stack[-1] if stack else None
            at_end = self.pos >= len(text)
            if top is not None and top.has_tail:
                if at_end:
                    raise _NeedMore("unclosed dotted list")
                if text[self.pos] != ")":
                    raise _Malformed("expected ')' after dotted tail", self.pos)
                self.pos += 1
                stack.pop()
                datum = make_list(top.items, top.tail)
            elif at_end:
                expecting_item = top is not None and not top.quote and not top.dotted
                raise _NeedMore("unclosed list" if expecting_item else "expected a datum")
            else:
                char = text[self.pos]
                if char == "(":
                    self.pos += 1
                    stack.append(_Open())
                    continue
                if char == "'":
                    self.pos += 1
                    stack.append(_Open(quote=True))
                    continue
                if char == ")":
                    if top is None or top.quote or top.dotted:
                        raise _Malformed("unexpected ')'", self.pos)
                    self.pos += 1
                    stack.pop()
                    datum = make_list(top.items)
                elif (
                    char == "."
                    and top is not None
                    and not top.quote
                    and not top.dotted
                    and self._at_lone_dot()
                ):
                    if not top.items:
                        raise _Malformed("'.' at the start of a list", self.pos)
                    self.pos += 1
                    top.dotted = True
                    continue
                elif char == '"':
                    datum = self._read_string()
                else:
                    datum = self._read_atom()

            while stack and stack[-1].quote:
                stack.pop()
                datum = make_list([QUOTE, datum])
            if not stack:
                return datum
            top = stack[-1]
            if top.dotted:
                top.tail = datum
                top.has_tail = True
            else:
                top.items.append(datum)

    def _at_lone_dot(self) -> bool:
        following = self.pos + 1
        return following >= len(self.text) or self.text[following] in _DELIMITERS

    def _read_string(self) -> str:
        start = self.pos
        self.pos += 1
        chunks: List[str] = []
        text = self.text
        while self.pos < len(text):
            char = text[self.pos]
            if char == '"':
                self.pos += 1
                return "".join(chunks)
            if char == "\\":
                if self.pos + 1 >= len(text):
                    break
                escape = text[self.pos + 1]
                if escape not in _ESCAPES:
                    raise _Malformed(f"unknown string escape '\\{escape}'", self.pos)
                chunks.append(_ESCAPES[escape])
                self.pos += 2
                continue
            chunks.append(char)
            self.pos += 1
        self.pos = start
        raise _NeedMore("unterminated string")

    def _read_atom(self) -> Any:
        start = self.pos
        text = self.text
        while self.pos < len(text) and text[self.pos] not in _DELIMITERS:
            self.pos += 1
        token = text[start : self.pos]
        if token.startswith("#"):
            return _hash_literal(token, start)
        if _INTEGER.match(token):
            return int(token)
        if _DECIMAL.match(token):
            return float(token)
        return Symbol(token)


def _hash_literal(token: str, offset: int) -> Any:
    if token in {"#t", "#true"}:
        return True
    if token in {"#f", "#false"}:
        return False
    raise _Malformed(f"bad syntax '{token}'", offset)


def parse(text: str) -> ParseResult:
    """Read every datum in ``text``.

    ``Incomplete`` means more lines could still make the text well formed;
    ``ParseFailure`` means no continuation can.
    """

    reader = _Reader(text)
    try:
        return Complete(reader.read_all())
    except _NeedMore as exc:
        return Incomplete(exc.reason)
    except _Malformed as exc:
        return ParseFailure(exc.message, exc.offset)


def read_one(text: str) -> Any:
    """Parse exactly one datum; used by tests and ``--load`` helpers."""

    result = parse(text)
    if not isinstance(result, Complete) or len(result.forms) != 1:
        raise ValueError(f"expected one datum in {text!r}, got {result!r}")
    return result.forms[0]


__all__ = [
    "Complete",
    "Incomplete",
    "ParseFailure",
    "ParseResult",
    "QUOTE",
    "parse",
    "read_one",
]
