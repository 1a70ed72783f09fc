"""Value types of streams and references to streams and windows."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from functools import total_ordering


class TypeKind(enum.Enum):
    """The different kinds of value types."""

    INT = "int"
    UINT = "uint"
    BOOL = "bool"
    STRING = "string"
    FLOAT32 = "float32"
    FLOAT64 = "float64"
    OPTION = "option"
    TUPLE = "tuple"
    FIXED = "fixed"
    UFIXED = "ufixed"
    BYTES = "bytes"


_SIZED_KINDS = frozenset({TypeKind.INT, TypeKind.UINT, TypeKind.FIXED, TypeKind.UFIXED})
_COMPOSITE_KINDS = frozenset({TypeKind.OPTION, TypeKind.TUPLE})


@dataclass(frozen=True)
class Type:
    """A value type; sized kinds carry a bit width, composite kinds inner types."""

    kind: TypeKind
    bits: int | None = None
    inner: tuple[Type, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "inner", tuple(self.inner))
        if self.kind in _SIZED_KINDS:
            if self.bits is None:
                raise ValueError(f"type {self.kind.value} requires a bit width")
        elif self.bits is not None:
            raise ValueError(f"type {self.kind.value} takes no bit width")
        if self.kind is TypeKind.OPTION and len(self.inner) != 1:
            raise ValueError("an option type has exactly one inner type")
        if self.kind not in _COMPOSITE_KINDS and self.inner:
            raise ValueError(f"type {self.kind.value} has no inner types")

    @classmethod
    def integer(cls, bits: int) -> Type:
        return cls(TypeKind.INT, bits)

    @classmethod
    def unsigned(cls, bits: int) -> Type:
        return cls(TypeKind.UINT, bits)

    @classmethod
    def boolean(cls) -> Type:
        return cls(TypeKind.BOOL)

    @classmethod
    def string(cls) -> Type:
        return cls(TypeKind.STRING)

    @classmethod
    def float32(cls) -> Type:
        return cls(TypeKind.FLOAT32)

    @classmethod
    def float64(cls) -> Type:
        return cls(TypeKind.FLOAT64)

    @classmethod
    def option(cls, inner: Type) -> Type:
        return cls(TypeKind.OPTION, inner=(inner,))

    @classmethod
    def tuple_of(cls, *items: Type) -> Type:
        return cls(TypeKind.TUPLE, inner=items)

    @classmethod
    def fixed(cls, bits: int) -> Type:
        return cls(TypeKind.FIXED, bits)

    @classmethod
    def ufixed(cls, bits: int) -> Type:
        return cls(TypeKind.UFIXED, bits)

    @classmethod
    def bytes_(cls) -> Type:
        return cls(TypeKind.BYTES)

    def __str__(self) -> str:
        match self.kind:
            case TypeKind.INT:
                return f"Int({self.bits})"
            case TypeKind.UINT:
                return f"UInt({self.bits})"
            case TypeKind.BOOL:
                return "Bool"
            case TypeKind.STRING:
                return "String"
            case TypeKind.FLOAT32:
                return "Float(32)"
            case TypeKind.FLOAT64:
                return "Float(64)"
            case TypeKind.OPTION:
                return f"Option<{self.inner[0]}>"
            case TypeKind.TUPLE:
                return "(" + ",".join(str(t) for t in self.inner) + ")"
            case TypeKind.FIXED:
                return f"Fixed{self.bits}"
            case TypeKind.UFIXED:
                return f"UFixed{self.bits}"
            case TypeKind.BYTES:
                return "Bytes"
        raise AssertionError(self.kind)


@total_ordering
@dataclass(frozen=True)
class OutputReference:
    """Reference to an output stream, numbered separately for parameterized ones."""

    index: int
    parameterized: bool = False

    def sr(self) -> StreamReference:
        """The stream reference for this output."""
        return StreamReference.output(self)

    def _key(self) -> tuple[bool, int]:
        return (self.parameterized, self.index)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, OutputReference):
            return NotImplemented
        return self._key() < other._key()


@total_ordering
@dataclass(frozen=True)
class StreamReference:
    """Reference to either an input stream or an output stream."""

    input_index: int | None = None
    output_ref: OutputReference | None = None

    def __post_init__(self) -> None:
        if (self.input_index is None) == (self.output_ref is None):
            raise ValueError("a stream reference is either an input or an output")

    @classmethod
    def input(cls, index: int) -> StreamReference:
        return cls(input_index=index)

    @classmethod
    def output(cls, ref: OutputReference) -> StreamReference:
        return cls(output_ref=ref)

    @property
    def is_input(self) -> bool:
        return self.input_index is not None

    @property
    def is_output(self) -> bool:
        return self.output_ref is not None

    def in_idx(self) -> int:
        """The input index; raises ValueError for outputs."""
        if self.input_index is None:
            raise ValueError(f"{self!r} is not an input stream")
        return self.input_index

    def out_idx(self) -> OutputReference:
        """The output reference; raises ValueError for inputs."""
        if self.output_ref is None:
            raise ValueError(f"{self!r} is not an output stream")
        return self.output_ref

    def _key(self) -> tuple:
        if self.input_index is not None:
            return (0, False, self.input_index)
        assert self.output_ref is not None
        return (1, *self.output_ref._key())

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, StreamReference):
            return NotImplemented
        return self._key() < other._key()


class WindowReferenceKind(enum.Enum):
    """The kinds of windows a reference can point to."""

    SLIDING = "sliding"
    DISCRETE = "discrete"
    INSTANCE = "instance"


@dataclass(frozen=True)
class WindowReference:
    """Reference to a sliding window, discrete window or instance aggregation."""

    kind: WindowReferenceKind
    index: int

    @classmethod
    def sliding(cls, index: int) -> WindowReference:
        return cls(WindowReferenceKind.SLIDING, index)

    @classmethod
    def discrete(cls, index: int) -> WindowReference:
        return cls(WindowReferenceKind.DISCRETE, index)

    @classmethod
    def instance(cls, index: int) -> WindowReference:
        return cls(WindowReferenceKind.INSTANCE, index)