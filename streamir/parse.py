"""A compact textual notation for statements, guards and expressions.

The notation covers a small subset of the intermediate representation and
is meant for writing programs by hand, for example in tests of rewrite
rules. Each parse function reads the construct at the start of the text;
whatever follows it is left unread.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from datetime import timedelta
from typing import TypeVar

from .expressions import (
    BinaryOperation,
    Constant,
    ConstantExpr,
    Expr,
    Operator,
    ParameterAccess,
    SyncStreamAccess,
)
from .ir import (
    AliveGuard,
    Assign,
    ConstantGuard,
    DynamicGuard,
    Eval,
    FastAndGuard,
    FastOrGuard,
    GlobalFreqGuard,
    Guard,
    GuardAnd,
    GuardOr,
    IfStmt,
    Input,
    Iterate,
    LivetimeEquivalences,
    LocalFreq,
    LocalFreqGuard,
    Parallel,
    Seq,
    Skip,
    Stmt,
    StreamGuard,
    StreamIr,
)
from .memory import InstancesMemory, Memory, Parameter, StreamBuffer
from .types import OutputReference, StreamReference, Type

T = TypeVar("T")

_WHITESPACE = " \t\r\n"
_SIGNED = re.compile(r"[+-]?[0-9]+")
_UNSIGNED = re.compile(r"[0-9]+")
_I32_MIN, _I32_MAX = -(2**31), 2**31 - 1


class ParseError(ValueError):
    """The text does not follow the notation."""

    def __init__(self, message: str, position: int) -> None:
        super().__init__(f"{message} at offset {position}")
        self.message = message
        self.position = position


class _Backtrack(Exception):
    """A recoverable failure: another alternative may still match."""

    def __init__(self, expected: str, position: int) -> None:
        super().__init__(expected)
        self.expected = expected
        self.position = position


class _Parser:
    def __init__(self, text: str) -> None:
        self.text = text
        self.pos = 0

    # Primitives

    def _ws0(self) -> None:
        while self.pos < len(self.text) and self.text[self.pos] in _WHITESPACE:
            self.pos += 1

    def _ws1(self) -> None:
        start = self.pos
        self._ws0()
        if self.pos == start:
            raise _Backtrack("whitespace", start)

    def _literal(self, token: str) -> str:
        if not self.text.startswith(token, self.pos):
            raise _Backtrack(repr(token), self.pos)
        self.pos += len(token)
        return token

    def _signed(self) -> int:
        match = _SIGNED.match(self.text, self.pos)
        if match is None:
            raise _Backtrack("an integer", self.pos)
        value = int(match.group())
        if not _I32_MIN <= value <= _I32_MAX:
            raise _Backtrack("an integer in range", self.pos)
        self.pos = match.end()
        return value

    def _unsigned(self, bits: int) -> int:
        match = _UNSIGNED.match(self.text, self.pos)
        if match is None:
            raise _Backtrack("an unsigned integer", self.pos)
        value = int(match.group())
        if value >= 2**bits:
            raise _Backtrack("an unsigned integer in range", self.pos)
        self.pos = match.end()
        return value

    def _index(self) -> int:
        start = self.pos
        value = self._signed()
        if value < 0:
            raise ParseError("stream index must not be negative", start)
        return value

    # Combinators

    def _spaced(self, parser: Callable[[], T]) -> T:
        self._ws0()
        result = parser()
        self._ws0()
        return result

    def _alt(self, *choices: Callable[[], T]) -> T:
        start = self.pos
        expected = []
        for choice in choices:
            try:
                return choice()
            except _Backtrack as err:
                expected.append(err.expected)
                self.pos = start
        raise _Backtrack("one of " + ", ".join(expected), start)

    def _optional(self, parser: Callable[[], T]) -> T | None:
        start = self.pos
        try:
            return parser()
        except _Backtrack:
            self.pos = start
            return None

    def _separated(self, element: Callable[[], T], separator: Callable[[], object]) -> list[T]:
        items: list[T] = []
        start = self.pos
        try:
            items.append(element())
        except _Backtrack:
            self.pos = start
            return items
        while True:
            start = self.pos
            try:
                separator()
                items.append(element())
            except _Backtrack:
                self.pos = start
                return items

    def _cut(self, label: str, parser: Callable[[], T]) -> T:
        try:
            return parser()
        except _Backtrack as err:
            raise ParseError(f"invalid {label}: expected {err.expected}", err.position) from None

    def _operator(self, *operators: str) -> str:
        return self._spaced(lambda: self._alt(*(lambda op=op: self._literal(op) for op in operators)))

    # Statements

    def stmt(self) -> Stmt:
        return self._spaced(
            lambda: self._alt(
                self._seq,
                self._par,
                self._if,
                self._input,
                self._eval,
                self._iterate,
                self._assign,
            )
        )

    def _semicolon(self) -> None:
        self._spaced(lambda: self._literal(";"))

    def _block(self, keyword: str, label: str) -> tuple[Stmt, ...]:
        self._spaced(lambda: self._literal(keyword))

        def body() -> tuple[Stmt, ...]:
            self._literal("{")
            stmts = self._separated(self.stmt, self._semicolon)
            self._optional(self._semicolon)
            self._literal("}")
            return tuple(stmts)

        return self._cut(label, body)

    def _seq(self) -> Stmt:
        return Seq(self._block("seq", "seq"))

    def _par(self) -> Stmt:
        return Parallel(self._block("par", "parallel"))

    def _else(self) -> Stmt:
        self._literal("else")
        return self.stmt()

    def _if(self) -> Stmt:
        self._literal("if")

        def body() -> Stmt:
            self._ws1()
            guard = self.guard()
            self._literal("then")
            cons = self.stmt()
            alt = self._optional(self._else)
            self._literal("fi")
            return IfStmt(guard, cons, Skip() if alt is None else alt)

        return self._cut("if", body)

    def _input(self) -> Stmt:
        self._literal("input")

        def body() -> Stmt:
            self._ws1()
            return Input(self._index())

        return self._cut("input", body)

    def _eval(self) -> Stmt:
        self._literal("eval")

        def body() -> Stmt:
            self._ws1()
            index = self._index()
            self._ws1()
            return Eval(OutputReference(index), self.expr(), 0)

        return self._cut("eval", body)

    def _iterate(self) -> Stmt:
        self._literal("iterate")

        def body() -> Stmt:
            self._ws1()
            index = self._index()
            self._ws1()
            return Iterate((OutputReference(index),), self.stmt())

        return self._cut("iterate", body)

    def _assign(self) -> Stmt:
        self._literal("assign")

        def body() -> Stmt:
            self._ws1()
            index = self._index()
            self._ws1()
            self._literal("(")
            exprs = self._separated(self.expr, lambda: self._literal(","))
            self._literal(")")
            self._ws1()
            return Assign(tuple(exprs), (OutputReference(index),), self.stmt())

        return self._cut("assign", body)

    # Guards

    def guard(self) -> Guard:
        lhs = self._guard_term()
        op = self._optional(lambda: self._operator("&&", "||"))
        if op is None:
            return lhs
        rhs = self.guard()
        return GuardAnd(lhs, rhs) if op == "&&" else GuardOr(lhs, rhs)

    def _guard_term(self) -> Guard:
        return self._spaced(
            lambda: self._alt(
                lambda: self._keyword_guard("true", True),
                lambda: self._keyword_guard("false", False),
                self._stream_guard,
                self._alive_guard,
                self._global_guard,
                self._local_guard,
                self._fast_and_guard,
                self._fast_or_guard,
                self._expr_guard,
                self._paren_guard,
            )
        )

    def _keyword_guard(self, keyword: str, value: bool) -> Guard:
        self._literal(keyword)
        return ConstantGuard(value)

    def _stream_guard(self) -> Guard:
        self._literal("@")
        return StreamGuard(StreamReference.input(self._index()))

    def _alive_guard(self) -> Guard:
        self._literal("?")
        return AliveGuard(StreamReference.input(self._index()))

    def _global_guard(self) -> Guard:
        self._literal("Global(")
        seconds = self._unsigned(64)
        self._literal(")")
        return GlobalFreqGuard(timedelta(seconds=seconds))

    def _local_guard(self) -> Guard:
        self._literal("Local(")
        lref = self._unsigned(64)
        self._literal(")")
        return LocalFreqGuard(lref)

    def _stream_list(self, separator: Callable[[], object]) -> tuple[StreamReference, ...]:
        indices = self._separated(lambda: self._unsigned(32), separator)
        self._literal(")")
        return tuple(StreamReference.input(i) for i in indices)

    def _fast_and_guard(self) -> Guard:
        self._literal("FastAnd(")
        return FastAndGuard(self._stream_list(lambda: self._spaced(lambda: self._literal(","))))

    def _fast_or_guard(self) -> Guard:
        self._literal("FastOr(")
        return FastOrGuard(self._stream_list(lambda: self._literal(",")))

    def _expr_guard(self) -> Guard:
        self._literal("Expr(")
        expr = self._cut("expr guard", self.expr)
        self._literal(")")
        return DynamicGuard(expr)

    def _paren_guard(self) -> Guard:
        self._literal("(")
        guard = self.guard()
        self._literal(")")
        return guard

    # Expressions

    def expr(self) -> Expr:
        lhs = self._expr_term()
        op = self._optional(lambda: self._operator("&&", "||", "=="))
        if op is None:
            return lhs
        rhs = self.expr()
        operator = {"&&": Operator.AND, "||": Operator.OR, "==": Operator.EQ}[op]
        return BinaryOperation(Type.boolean(), operator, lhs, rhs)

    def _expr_term(self) -> Expr:
        return self._spaced(
            lambda: self._alt(
                self._bool_expr,
                self._parameter_expr,
                self._stream_expr,
                self._paren_expr,
            )
        )

    def _bool_expr(self) -> Expr:
        word = self._alt(lambda: self._literal("true"), lambda: self._literal("false"))
        return ConstantExpr(Type.boolean(), Constant.of_bool(word == "true"))

    def _parameter_expr(self) -> Expr:
        self._literal("p")
        index = self._unsigned(64)
        return ParameterAccess(Type.boolean(), StreamReference.input(0), index)

    def _stream_expr(self) -> Expr:
        self._alt(lambda: self._literal("s"), lambda: self._literal("o"))
        index = self._unsigned(64)
        return SyncStreamAccess(Type.boolean(), StreamReference.input(index), ())

    def _paren_expr(self) -> Expr:
        self._literal("(")
        expr = self.expr()
        self._literal(")")
        return expr


def _run(text: str, parser: Callable[[_Parser], T]) -> T:
    state = _Parser(text)
    try:
        return parser(state)
    except _Backtrack as err:
        raise ParseError(f"expected {err.expected}", err.position) from None


def parse_stmt(text: str) -> Stmt:
    """Parse the statement at the start of ``text``."""
    return _run(text, _Parser.stmt)


def parse_guard(text: str) -> Guard:
    """Parse the guard at the start of ``text``."""
    return _run(text, _Parser.guard)


def parse_expr(text: str) -> Expr:
    """Parse the expression at the start of ``text``."""
    return _run(text, _Parser.expr)


def parse_ir(text: str) -> StreamIr:
    """Parse a statement and embed it in a program with ten inputs and ten outputs.

    Every stream is boolean with three boolean parameters ``p0`` to ``p2``;
    local frequency ``i`` has a period of ``i`` seconds and belongs to output ``i``.
    """
    stmt = parse_stmt(text)
    parameters = tuple(Parameter(f"p{i}", Type.boolean()) for i in range(3))
    named = [(StreamReference.input(i), f"i{i}") for i in range(10)] + [
        (OutputReference(o).sr(), f"o{o}") for o in range(10)
    ]
    sr2memory = {
        sr: Memory(
            InstancesMemory(StreamBuffer.single_value(), parameters),
            Type.boolean(),
            name,
        )
        for sr, name in named
    }
    lref2lfreq = {
        i: LocalFreq(timedelta(seconds=i), OutputReference(i), i) for i in range(10)
    }
    return StreamIr(
        stmt=stmt,
        sr2memory=sr2memory,
        wref2window={},
        lref2lfreq=lref2lfreq,
        livetime_equivalences=LivetimeEquivalences(OutputReference(o) for o in range(10)),
        static_schedule=None,
        triggers={},
        accesses={},
        accessed_by={},
    )