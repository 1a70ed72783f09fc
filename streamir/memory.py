"""Memory layout of streams."""

from __future__ import annotations

import enum
from dataclasses import dataclass

from .types import Type


class BufferKind(enum.Enum):
    """How many values of a stream instance are kept."""

    SINGLE_VALUE = "single_value"
    BOUNDED = "bounded"
    UNBOUNDED = "unbounded"


@dataclass(frozen=True)
class StreamBuffer:
    """The buffer of a single stream instance."""

    kind: BufferKind
    size: int | None = None

    def __post_init__(self) -> None:
        if self.kind is BufferKind.BOUNDED:
            if self.size is None or self.size < 0:
                raise ValueError("a bounded buffer needs a non-negative size")
        elif self.size is not None:
            raise ValueError(f"a {self.kind.value} buffer takes no size")

    @classmethod
    def single_value(cls) -> StreamBuffer:
        return cls(BufferKind.SINGLE_VALUE)

    @classmethod
    def bounded(cls, size: int) -> StreamBuffer:
        return cls(BufferKind.BOUNDED, size)

    @classmethod
    def unbounded(cls) -> StreamBuffer:
        return cls(BufferKind.UNBOUNDED)

    def bound(self) -> int | None:
        """The number of stored values, or None when unbounded."""
        match self.kind:
            case BufferKind.SINGLE_VALUE:
                return 1
            case BufferKind.BOUNDED:
                return self.size
            case _:
                return None


@dataclass(frozen=True)
class Parameter:
    """A parameter of a parameterized stream."""

    name: str
    ty: Type


@dataclass(frozen=True)
class StreamMemory:
    """Base of the kinds of memory a stream needs."""

    def parameters(self) -> tuple[Parameter, ...] | None:
        """The stream's parameters if it is parameterized, else None."""
        return None

    def num_parameters(self) -> int:
        """The number of parameters, 0 for unparameterized streams."""
        return 0

    def buffer_of(self) -> StreamBuffer | None:
        """The buffer of the memory, or None when no memory is needed."""
        return None

    def __add__(self, other: StreamMemory) -> StreamMemory:
        if self != other:
            raise ValueError(f"cannot combine differing memories {self!r} and {other!r}")
        return self


@dataclass(frozen=True)
class NoMemory(StreamMemory):
    """The stream needs no memory."""


@dataclass(frozen=True)
class StaticMemory(StreamMemory):
    """A single instance living for the whole runtime."""

    buffer: StreamBuffer

    def buffer_of(self) -> StreamBuffer | None:
        return self.buffer


@dataclass(frozen=True)
class DynamicMemory(StreamMemory):
    """A single instance that is spawned and closed dynamically."""

    buffer: StreamBuffer
    has_spawn: bool
    has_close: bool

    def buffer_of(self) -> StreamBuffer | None:
        return self.buffer


@dataclass(frozen=True)
class InstancesMemory(StreamMemory):
    """Memory for a parameterized stream with many instances."""

    buffer: StreamBuffer
    parameter: tuple[Parameter, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "parameter", tuple(self.parameter))

    def parameters(self) -> tuple[Parameter, ...] | None:
        return self.parameter

    def num_parameters(self) -> int:
        return len(self.parameter)

    def buffer_of(self) -> StreamBuffer | None:
        return self.buffer


@dataclass(frozen=True)
class Memory:
    """All memory information of a stream."""

    buffer: StreamMemory
    ty: Type
    name: str

    def parameters(self) -> tuple[Parameter, ...] | None:
        return self.buffer.parameters()

    def num_parameters(self) -> int:
        return self.buffer.num_parameters()