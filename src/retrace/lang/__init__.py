"""Scheme dialect evaluated at the prompt."""

from .evaluator import Interpreter
from .ports import InputPort, OutputPort, StreamInput, StreamOutput
from .printer import to_display, to_written
from .reader import Complete, Incomplete, ParseFailure, ParseResult, parse, read_one
from .types import (
    EOF_OBJECT,
    NIL,
    NO_VALUE,
    ControlPrimitive,
    Environment,
    LanguageError,
    LispError,
    Pair,
    Primitive,
    Procedure,
    RaisedObject,
    Symbol,
    make_list,
)

__all__ = [
    "Complete",
    "ControlPrimitive",
    "EOF_OBJECT",
    "Environment",
    "Incomplete",
    "InputPort",
    "Interpreter",
    "LanguageError",
    "LispError",
    "NIL",
    "NO_VALUE",
    "OutputPort",
    "Pair",
    "ParseFailure",
    "ParseResult",
    "Primitive",
    "Procedure",
    "RaisedObject",
    "StreamInput",
    "StreamOutput",
    "Symbol",
    "make_list",
    "parse",
    "read_one",
    "to_display",
    "to_written",
]
