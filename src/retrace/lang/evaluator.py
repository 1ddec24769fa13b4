"""Continuation-passing evaluator.

Every evaluation step returns a ``Step`` for the control engine's trampoline
instead of recursing, so Python's stack stays flat and any continuation can be
captured as a checkpoint and re-entered later. Values accumulated while
evaluating arguments are kept in tuples: a re-entered continuation must never
observe state mutated by a previous run.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Optional, Sequence, Tuple

from retrace.control import Bounce, Checkpoint, Continuation, ControlContext, Halt, Step
from retrace.runtime import telemetry

from .ports import InputPort, OutputPort, StreamInput, StreamOutput
from .reader import Complete, parse
from .types import (
    NIL,
    NO_VALUE,
    ControlPrimitive,
    Environment,
    LanguageError,
    LispError,
    Pair,
    Primitive,
    Procedure,
    Symbol,
    check_arity,
)

SpecialForm = Callable[["Interpreter", Pair, Environment, Continuation], Step]

# Python failures a primitive may leak; reported as language errors.
_PRIMITIVE_FAILURES = (
    TypeError,
    ValueError,
    ArithmeticError,
    IndexError,
    KeyError,
    AttributeError,
)


class Interpreter:
    """Evaluates forms against a global environment on a ``ControlContext``."""

    def __init__(
        self,
        control: ControlContext,
        *,
        output: Optional[OutputPort] = None,
        input_port: Optional[InputPort] = None,
        environment: Optional[Environment] = None,
        install_builtins: bool = True,
    ) -> None:
        self.control = control
        self.output: OutputPort = output or StreamOutput()
        self.input: InputPort = input_port or StreamInput()
        self.global_env = environment or Environment()
        self.logger = telemetry.get_logger("retrace.lang")
        if install_builtins:
            from .builtins import install

            install(self.global_env)

    # -- entry points -----------------------------------------------------

    def eval_forms(self, forms: Sequence[Any], k: Continuation) -> Step:
        return self._eval_body(tuple(forms), self.global_env, k)

    def evaluate_text(self, text: str) -> Any:
        """Parse and run ``text`` to completion outside the prompt loop."""

        result = parse(text)
        if not isinstance(result, Complete):
            raise LispError("cannot evaluate unreadable text:", text)
        return self.control.run(Bounce(self.eval_forms, (result.forms, Halt)))

    def call_sync(self, proc: Any, args: Tuple[Any, ...] = ()) -> Any:
        """Apply ``proc`` on a nested trampoline and return its value."""

        return self.control.run_nested(lambda k: self.apply(proc, args, k))

    # -- core -------------------------------------------------------------

    def eval(self, expr: Any, env: Environment, k: Continuation) -> Step:
        if isinstance(expr, Symbol):
            return Bounce(k, (env.lookup(expr),))
        if not isinstance(expr, Pair):
            return Bounce(k, (expr,))
        head = expr.car
        if isinstance(head, Symbol):
            form = SPECIAL_FORMS.get(head)
            if form is not None:
                return form(self, expr, env, k)
        return self._eval_application(expr, env, k)

    def apply(self, proc: Any, args: Sequence[Any], k: Continuation) -> Step:
        if isinstance(proc, Procedure):
            return self._eval_body(proc.body, proc.bind(list(args)), k)
        if isinstance(proc, Primitive):
            check_arity(proc.name, len(args), proc.min_args, proc.max_args)
            try:
                result = proc.fn(*args)
            except LanguageError:
                raise
            except _PRIMITIVE_FAILURES as exc:
                raise LispError(f"{proc.name}: {exc}") from exc
            return Bounce(k, (result,))
        if isinstance(proc, ControlPrimitive):
            check_arity(proc.name, len(args), proc.min_args, proc.max_args)
            return proc.fn(self, tuple(args), k)
        if isinstance(proc, Checkpoint):
            check_arity("continuation", len(args), 0, 1)
            return self.control.resume(proc, args[0] if args else NO_VALUE)
        raise LispError("not a procedure:", proc)

    def _eval_application(self, expr: Pair, env: Environment, k: Continuation) -> Step:
        items = tuple(expr)
        operands = items[1:]

        def with_operator(proc: Any) -> Step:
            return self._eval_operands(
                operands, env, lambda args: self.apply(proc, args, k)
            )

        return Bounce(self.eval, (items[0], env, with_operator))

    def _eval_operands(
        self,
        exprs: Tuple[Any, ...],
        env: Environment,
        k: Continuation,
        index: int = 0,
        done: Tuple[Any, ...] = (),
    ) -> Step:
        if index == len(exprs):
            return Bounce(k, (done,))
        return Bounce(
            self.eval,
            (
                exprs[index],
                env,
                lambda value: self._eval_operands(
                    exprs, env, k, index + 1, done + (value,)
                ),
            ),
        )

    def _eval_body(
        self, body: Tuple[Any, ...], env: Environment, k: Continuation, index: int = 0
    ) -> Step:
        if not body:
            return Bounce(k, (NO_VALUE,))
        if index == len(body) - 1:
            return Bounce(self.eval, (body[index], env, k))
        return Bounce(
            self.eval,
            (body[index], env, lambda _: self._eval_body(body, env, k, index + 1)),
        )


# -- special forms -----------------------------------------------------------


def _operands(expr: Pair, name: str, low: int, high: Optional[int] = None) -> Tuple[Any, ...]:
    try:
        parts = tuple(expr)[1:]
    except LispError:
        raise LispError(f"{name}: malformed form", expr) from None
    if len(parts) < low or (high is not None and len(parts) > high):
        raise LispError(f"{name}: bad syntax", expr)
    return parts


def _quote(interp: Interpreter, expr: Pair, env: Environment, k: Continuation) -> Step:
    (datum,) = _operands(expr, "quote", 1, 1)
    return Bounce(k, (datum,))


def _if(interp: Interpreter, expr: Pair, env: Environment, k: Continuation) -> Step:
    parts = _operands(expr, "if", 2, 3)

    def branch(test: Any) -> Step:
        if test is not False:
            return Bounce(interp.eval, (parts[1], env, k))
        if len(parts) == 3:
            return Bounce(interp.eval, (parts[2], env, k))
        return Bounce(k, (NO_VALUE,))

    return Bounce(interp.eval, (parts[0], env, branch))


def _parse_params(formals: Any) -> Tuple[Tuple[Symbol, ...], Optional[Symbol]]:
    params = []
    node = formals
    while isinstance(node, Pair):
        if not isinstance(node.car, Symbol):
            raise LispError("lambda: parameter is not a symbol:", node.car)
        params.append(node.car)
        node = node.cdr
    if node is NIL:
        return tuple(params), None
    if isinstance(node, Symbol):
        return tuple(params), node
    raise LispError("lambda: bad parameter list", formals)


def _make_procedure(formals: Any, body: Tuple[Any, ...], env: Environment, name: str) -> Procedure:
    if not body:
        raise LispError(f"{name}: empty body")
    params, rest = _parse_params(formals)
    return Procedure(params=params, rest=rest, body=body, env=env, name=name)


def _lambda(interp: Interpreter, expr: Pair, env: Environment, k: Continuation) -> Step:
    parts = _operands(expr, "lambda", 2)
    return Bounce(k, (_make_procedure(parts[0], parts[1:], env, "lambda"),))


def _define(interp: Interpreter, expr: Pair, env: Environment, k: Continuation) -> Step:
    parts = _operands(expr, "define", 1)
    target = parts[0]
    if isinstance(target, Pair):
        name = target.car
        if not isinstance(name, Symbol):
            raise LispError("define: bad procedure name", name)
        env.define(name, _make_procedure(target.cdr, parts[1:], env, str(name)))
        return Bounce(k, (NO_VALUE,))
    if not isinstance(target, Symbol) or len(parts) > 2:
        raise LispError("define: bad syntax", expr)

    def bind(value: Any) -> Step:
        if isinstance(value, Procedure) and value.name == "lambda":
            value.name = str(target)
        env.define(target, value)
        return Bounce(k, (NO_VALUE,))

    if len(parts) == 1:
        return bind(NO_VALUE)
    return Bounce(interp.eval, (parts[1], env, bind))


def _set(interp: Interpreter, expr: Pair, env: Environment, k: Continuation) -> Step:
    name, value_expr = _operands(expr, "set!", 2, 2)
    if not isinstance(name, Symbol):
        raise LispError("set!: not a variable", name)

    def assign(value: Any) -> Step:
        env.assign(name, value)
        return Bounce(k, (NO_VALUE,))

    return Bounce(interp.eval, (value_expr, env, assign))


def _begin(interp: Interpreter, expr: Pair, env: Environment, k: Continuation) -> Step:
    return interp._eval_body(_operands(expr, "begin", 0), env, k)


def _split_bindings(form: str, bindings: Any) -> Tuple[Tuple[Symbol, ...], Tuple[Any, ...]]:
    names = []
    inits = []
    for binding in bindings:
        parts = tuple(binding) if isinstance(binding, Pair) else ()
        if len(parts) != 2 or not isinstance(parts[0], Symbol):
            raise LispError(f"{form}: bad binding", binding)
        names.append(parts[0])
        inits.append(parts[1])
    return tuple(names), tuple(inits)


def _let(interp: Interpreter, expr: Pair, env: Environment, k: Continuation) -> Step:
    parts = _operands(expr, "let", 2)
    if isinstance(parts[0], Symbol):
        # named let: bind the loop procedure in its own frame
        if len(parts) < 3:
            raise LispError("let: bad syntax", expr)
        label = parts[0]
        names, inits = _split_bindings("let", parts[1])
        loop_env = Environment(parent=env)
        loop = Procedure(params=names, rest=None, body=parts[2:], env=loop_env, name=str(label))
        loop_env.define(label, loop)
        return interp._eval_operands(inits, env, lambda args: interp.apply(loop, args, k))

    names, inits = _split_bindings("let", parts[0])
    body = parts[1:]

    def enter(values: Tuple[Any, ...]) -> Step:
        return interp._eval_body(body, Environment(dict(zip(names, values)), env), k)

    return interp._eval_operands(inits, env, enter)


def _let_star(interp: Interpreter, expr: Pair, env: Environment, k: Continuation) -> Step:
    parts = _operands(expr, "let*", 2)
    names, inits = _split_bindings("let*", parts[0])
    body = parts[1:]

    def bind(index: int, scope: Environment) -> Step:
        if index == len(names):
            return interp._eval_body(body, scope, k)
        return Bounce(
            interp.eval,
            (
                inits[index],
                scope,
                lambda value: bind(
                    index + 1, Environment({names[index]: value}, scope)
                ),
            ),
        )

    return bind(0, env)


def _and(interp: Interpreter, expr: Pair, env: Environment, k: Continuation) -> Step:
    parts = _operands(expr, "and", 0)

    def step(index: int, last: Any) -> Step:
        if index == len(parts) or last is False:
            return Bounce(k, (last,))
        return Bounce(interp.eval, (parts[index], env, lambda value: step(index + 1, value)))

    return step(0, True)


def _or(interp: Interpreter, expr: Pair, env: Environment, k: Continuation) -> Step:
    parts = _operands(expr, "or", 0)

    def step(index: int) -> Step:
        if index == len(parts):
            return Bounce(k, (False,))

        def check(value: Any) -> Step:
            if value is not False:
                return Bounce(k, (value,))
            return step(index + 1)

        return Bounce(interp.eval, (parts[index], env, check))

    return step(0)


ELSE = Symbol("else")


def _cond(interp: Interpreter, expr: Pair, env: Environment, k: Continuation) -> Step:
    clauses = []
    for clause in _operands(expr, "cond", 0):
        parts = tuple(clause) if isinstance(clause, Pair) else ()
        if not parts:
            raise LispError("cond: bad clause", clause)
        clauses.append(parts)

    def step(index: int) -> Step:
        if index == len(clauses):
            return Bounce(k, (NO_VALUE,))
        test, *body = clauses[index]
        if test is ELSE:
            return interp._eval_body(tuple(body), env, k)

        def check(value: Any) -> Step:
            if value is False:
                return step(index + 1)
            if not body:
                return Bounce(k, (value,))
            return interp._eval_body(tuple(body), env, k)

        return Bounce(interp.eval, (test, env, check))

    return step(0)


def _when(interp: Interpreter, expr: Pair, env: Environment, k: Continuation) -> Step:
    parts = _operands(expr, "when", 1)

    def check(value: Any) -> Step:
        if value is False:
            return Bounce(k, (NO_VALUE,))
        return interp._eval_body(parts[1:], env, k)

    return Bounce(interp.eval, (parts[0], env, check))


def _unless(interp: Interpreter, expr: Pair, env: Environment, k: Continuation) -> Step:
    parts = _operands(expr, "unless", 1)

    def check(value: Any) -> Step:
        if value is not False:
            return Bounce(k, (NO_VALUE,))
        return interp._eval_body(parts[1:], env, k)

    return Bounce(interp.eval, (parts[0], env, check))


SPECIAL_FORMS: Dict[Symbol, SpecialForm] = {
    Symbol("quote"): _quote,
    Symbol("if"): _if,
    Symbol("define"): _define,
    Symbol("set!"): _set,
    Symbol("lambda"): _lambda,
    Symbol("begin"): _begin,
    Symbol("let"): _let,
    Symbol("let*"): _let_star,
    Symbol("and"): _and,
    Symbol("or"): _or,
    Symbol("cond"): _cond,
    Symbol("when"): _when,
    Symbol("unless"): _unless,
}


__all__ = ["Interpreter", "SPECIAL_FORMS"]
