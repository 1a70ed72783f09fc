"""Stream expressions of the intermediate representation."""

from __future__ import annotations

import enum
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from .types import StreamReference, Type, WindowReference


class Function(enum.Enum):
    """Functions usable in expressions."""

    SQRT = 0
    ABS = 1
    SIN = 2
    ARCSIN = 3
    COS = 4
    ARCCOS = 5
    TAN = 6
    ARCTAN = 7
    MIN = 8
    MAX = 9


class Operator(enum.Enum):
    """Unary and binary operators."""

    NOT = 0
    NEG = 1
    ADD = 2
    SUB = 3
    MUL = 4
    DIV = 5
    REM = 6
    POW = 7
    AND = 8
    OR = 9
    BIT_XOR = 10
    BIT_AND = 11
    BIT_OR = 12
    BIT_NOT = 13
    SHL = 14
    SHR = 15
    EQ = 16
    LT = 17
    LE = 18
    NE = 19
    GE = 20
    GT = 21


class ConstantKind(enum.Enum):
    """The kinds of constant values."""

    STR = "str"
    BOOL = "bool"
    UINT = "uint"
    INT = "int"
    FLOAT32 = "float32"
    FLOAT64 = "float64"
    TUPLE = "tuple"


@dataclass(frozen=True)
class Constant:
    """A constant value; integers carry their bit width."""

    kind: ConstantKind
    value: Any
    bits: int | None = None

    def __post_init__(self) -> None:
        if self.kind is ConstantKind.TUPLE:
            object.__setattr__(self, "value", tuple(self.value))
        if self.kind in (ConstantKind.UINT, ConstantKind.INT):
            if self.bits is None:
                raise ValueError("integer constants require a bit width")
            if self.kind is ConstantKind.UINT and self.value < 0:
                raise ValueError("unsigned constant must not be negative")
        elif self.bits is not None:
            raise ValueError(f"{self.kind.value} constants take no bit width")

    @classmethod
    def of_str(cls, value: str) -> Constant:
        return cls(ConstantKind.STR, value)

    @classmethod
    def of_bool(cls, value: bool) -> Constant:
        return cls(ConstantKind.BOOL, value)

    @classmethod
    def of_uint(cls, value: int, bits: int) -> Constant:
        return cls(ConstantKind.UINT, value, bits)

    @classmethod
    def of_int(cls, value: int, bits: int) -> Constant:
        return cls(ConstantKind.INT, value, bits)

    @classmethod
    def of_float32(cls, value: float) -> Constant:
        return cls(ConstantKind.FLOAT32, value)

    @classmethod
    def of_float64(cls, value: float) -> Constant:
        return cls(ConstantKind.FLOAT64, value)

    @classmethod
    def of_tuple(cls, items: Iterable[Constant]) -> Constant:
        return cls(ConstantKind.TUPLE, tuple(items))


def _freeze(obj: Any, *names: str) -> None:
    for name in names:
        object.__setattr__(obj, name, tuple(getattr(obj, name)))


@dataclass(frozen=True)
class Expr:
    """Base of all expressions; every expression carries its type."""

    ty: Type

    def _subexpressions(self) -> tuple[Expr, ...]:
        return ()

    def contains_parameter_access(self) -> StreamReference | None:
        """The stream whose parameter is accessed first in this expression, if any."""
        for sub in self._subexpressions():
            found = sub.contains_parameter_access()
            if found is not None:
                return found
        return None


@dataclass(frozen=True)
class ConstantExpr(Expr):
    value: Constant


@dataclass(frozen=True)
class BinaryOperation(Expr):
    op: Operator
    lhs: Expr
    rhs: Expr

    def _subexpressions(self) -> tuple[Expr, ...]:
        return (self.lhs, self.rhs)


@dataclass(frozen=True)
class UnaryOperation(Expr):
    op: Operator
    operand: Expr

    def _subexpressions(self) -> tuple[Expr, ...]:
        return (self.operand,)


@dataclass(frozen=True)
class Ite(Expr):
    condition: Expr
    consequence: Expr
    alternative: Expr

    def _subexpressions(self) -> tuple[Expr, ...]:
        return (self.condition, self.consequence, self.alternative)


@dataclass(frozen=True)
class SyncStreamAccess(Expr):
    target: StreamReference
    parameters: tuple[Expr, ...] = ()

    def __post_init__(self) -> None:
        _freeze(self, "parameters")

    def _subexpressions(self) -> tuple[Expr, ...]:
        return self.parameters


@dataclass(frozen=True)
class OffsetStreamAccess(Expr):
    target: StreamReference
    offset: int
    default: Expr
    parameters: tuple[Expr, ...] = ()

    def __post_init__(self) -> None:
        _freeze(self, "parameters")

    def _subexpressions(self) -> tuple[Expr, ...]:
        return (*self.parameters, self.default)


@dataclass(frozen=True)
class HoldStreamAccess(Expr):
    target: StreamReference
    default: Expr
    parameters: tuple[Expr, ...] = ()

    def __post_init__(self) -> None:
        _freeze(self, "parameters")

    def _subexpressions(self) -> tuple[Expr, ...]:
        return (*self.parameters, self.default)


@dataclass(frozen=True)
class IsFresh(Expr):
    target: StreamReference
    parameters: tuple[Expr, ...] = ()

    def __post_init__(self) -> None:
        _freeze(self, "parameters")

    def _subexpressions(self) -> tuple[Expr, ...]:
        return self.parameters


@dataclass(frozen=True)
class GetAccess(Expr):
    target: StreamReference
    default: Expr
    parameters: tuple[Expr, ...] = ()

    def __post_init__(self) -> None:
        _freeze(self, "parameters")

    def _subexpressions(self) -> tuple[Expr, ...]:
        return (*self.parameters, self.default)


@dataclass(frozen=True)
class WindowAccess(Expr):
    target: StreamReference
    window: WindowReference
    parameters: tuple[Expr, ...] = ()
    default: Expr | None = None

    def __post_init__(self) -> None:
        _freeze(self, "parameters")

    def _subexpressions(self) -> tuple[Expr, ...]:
        if self.default is None:
            return self.parameters
        return (*self.parameters, self.default)


@dataclass(frozen=True)
class Cast(Expr):
    to: Type
    expr: Expr

    def _subexpressions(self) -> tuple[Expr, ...]:
        return (self.expr,)


@dataclass(frozen=True)
class ParameterAccess(Expr):
    """Access to a parameter of a stream; equality ignores the stream."""

    stream: StreamReference = field(compare=False)
    index: int

    def contains_parameter_access(self) -> StreamReference | None:
        return self.stream


@dataclass(frozen=True)
class FunctionCall(Expr):
    function: Function
    args: tuple[Expr, ...]

    def __post_init__(self) -> None:
        _freeze(self, "args")

    def _subexpressions(self) -> tuple[Expr, ...]:
        return self.args


@dataclass(frozen=True)
class TupleExpr(Expr):
    elements: tuple[Expr, ...]

    def __post_init__(self) -> None:
        _freeze(self, "elements")

    def _subexpressions(self) -> tuple[Expr, ...]:
        return self.elements


@dataclass(frozen=True)
class TupleAccess(Expr):
    expr: Expr
    index: int

    def _subexpressions(self) -> tuple[Expr, ...]:
        return (self.expr,)


@dataclass(frozen=True)
class LambdaParameterAccess(Expr):
    window: WindowReference
    index: int