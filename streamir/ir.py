"""Statements, guards, windows, schedules and the complete stream program."""

from __future__ import annotations

import enum
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, ClassVar

from .expressions import Expr
from .memory import Memory, Parameter
from .types import OutputReference, StreamReference, Type, WindowReference

LocalFreqRef = int


def _freeze(obj: Any, *names: str) -> None:
    for name in names:
        object.__setattr__(obj, name, tuple(getattr(obj, name)))


# Guards


@dataclass(frozen=True)
class Guard:
    """Base of all guards deciding whether a statement runs."""

    def and_(self, rhs: Guard) -> Guard:
        """The conjunction of this guard with ``rhs``."""
        return GuardAnd(self, rhs)


@dataclass(frozen=True)
class GuardAnd(Guard):
    lhs: Guard
    rhs: Guard


@dataclass(frozen=True)
class GuardOr(Guard):
    lhs: Guard
    rhs: Guard


@dataclass(frozen=True)
class StreamGuard(Guard):
    """Holds when the stream received a new value."""

    sr: StreamReference


@dataclass(frozen=True)
class AliveGuard(Guard):
    """Holds when the stream is currently alive."""

    sr: StreamReference


@dataclass(frozen=True)
class DynamicGuard(Guard):
    """Holds when the boolean expression evaluates to true."""

    expr: Expr


@dataclass(frozen=True)
class GlobalFreqGuard(Guard):
    """Holds on each tick of a global period."""

    duration: timedelta


@dataclass(frozen=True)
class LocalFreqGuard(Guard):
    """Holds on each tick of a local frequency."""

    lref: LocalFreqRef


@dataclass(frozen=True)
class ConstantGuard(Guard):
    value: bool


@dataclass(frozen=True)
class FastAndGuard(Guard):
    """Holds when all of the streams received a new value."""

    streams: tuple[StreamReference, ...]

    def __post_init__(self) -> None:
        _freeze(self, "streams")


@dataclass(frozen=True)
class FastOrGuard(Guard):
    """Holds when any of the streams received a new value."""

    streams: tuple[StreamReference, ...]

    def __post_init__(self) -> None:
        _freeze(self, "streams")


# Statements


@dataclass(frozen=True)
class Stmt:
    """Base of all statements."""

    def filter(self, guard: Guard) -> Stmt:
        """Run this statement only when ``guard`` holds."""
        return IfStmt(guard, self, Skip())

    def filter_else(self, guard: Guard, alt: Stmt) -> Stmt:
        """Run this statement when ``guard`` holds and ``alt`` otherwise."""
        return IfStmt(guard, self, alt)

    def iterate(
        self, sr: StreamReference, parameters: Sequence[Parameter], is_dynamic: bool
    ) -> Stmt:
        """Wrap this statement so it runs for every live instance of ``sr``."""
        if not parameters:
            return self.filter(AliveGuard(sr)) if is_dynamic else self
        if not is_dynamic:
            raise ValueError("a parameterized stream is always dynamic")
        return Iterate((sr.out_idx(),), self)


@dataclass(frozen=True)
class Skip(Stmt):
    """Does nothing."""


@dataclass(frozen=True)
class Input(Stmt):
    """Reads a new value for the input stream with this index."""

    index: int


@dataclass(frozen=True)
class Shift(Stmt):
    """Makes room in the stream's buffer for a new value."""

    sr: StreamReference


@dataclass(frozen=True)
class Spawn(Stmt):
    """Spawns an instance of an output stream."""

    sr: OutputReference
    with_: tuple[Expr, ...] | None = None
    local_frequencies: tuple[LocalFreqRef, ...] = ()
    windows: tuple[WindowReference, ...] = ()

    def __post_init__(self) -> None:
        if self.with_ is not None:
            _freeze(self, "with_")
        _freeze(self, "local_frequencies", "windows")


@dataclass(frozen=True)
class Eval(Stmt):
    """Evaluates clause ``idx`` of an output stream with the given expression."""

    sr: OutputReference
    with_: Expr
    idx: int = 0


@dataclass(frozen=True)
class Close(Stmt):
    """Closes an instance of an output stream."""

    sr: OutputReference
    local_frequencies: tuple[LocalFreqRef, ...] = ()
    windows: tuple[WindowReference, ...] = ()

    def __post_init__(self) -> None:
        _freeze(self, "local_frequencies", "windows")


@dataclass(frozen=True)
class Seq(Stmt):
    """Statements executed one after another."""

    stmts: tuple[Stmt, ...]

    def __post_init__(self) -> None:
        _freeze(self, "stmts")


@dataclass(frozen=True)
class Parallel(Stmt):
    """Statements that may be executed in any order."""

    stmts: tuple[Stmt, ...]

    def __post_init__(self) -> None:
        _freeze(self, "stmts")


@dataclass(frozen=True)
class IfStmt(Stmt):
    """Runs ``cons`` when ``guard`` holds and ``alt`` otherwise."""

    guard: Guard
    cons: Stmt
    alt: Stmt = field(default_factory=Skip)


@dataclass(frozen=True)
class Iterate(Stmt):
    """Runs the inner statement for every instance of the streams."""

    sr: tuple[OutputReference, ...]
    stmt: Stmt

    def __post_init__(self) -> None:
        _freeze(self, "sr")


@dataclass(frozen=True)
class Assign(Stmt):
    """Runs the inner statement for the instance selected by the parameter values."""

    parameter_expr: tuple[Expr, ...]
    sr: tuple[OutputReference, ...]
    stmt: Stmt

    def __post_init__(self) -> None:
        _freeze(self, "parameter_expr", "sr")


def seq(stmts: Iterable[Stmt]) -> Stmt:
    """A sequence of statements, collapsed when it has fewer than two."""
    items = tuple(stmts)
    if not items:
        return Skip()
    if len(items) == 1:
        return items[0]
    return Seq(items)


def parallel(stmts: Iterable[Stmt]) -> Stmt:
    """Parallel statements, collapsed when there are fewer than two."""
    items = tuple(stmts)
    if not items:
        return Skip()
    if len(items) == 1:
        return items[0]
    return Parallel(items)


# Local frequencies


@dataclass(frozen=True)
class LocalFreq:
    """A periodic pacing local to one output stream."""

    dur: timedelta
    sr: OutputReference
    reference: LocalFreqRef


# Windows


_OPERATION_NAMES = frozenset(
    {
        "sum",
        "average",
        "conjunction",
        "disjunction",
        "min",
        "max",
        "integral",
        "count",
        "product",
        "last",
        "variance",
        "covariance",
        "standard_deviation",
        "nth_percentile",
    }
)
_NON_OPTIONAL_OPERATIONS = frozenset(
    {"sum", "conjunction", "disjunction", "integral", "count", "product"}
)


@dataclass(frozen=True)
class WindowOperation:
    """The aggregation a window performs; percentiles carry their rank."""

    name: str
    percentile: int | None = None

    SUM: ClassVar[WindowOperation]
    AVERAGE: ClassVar[WindowOperation]
    CONJUNCTION: ClassVar[WindowOperation]
    DISJUNCTION: ClassVar[WindowOperation]
    MIN: ClassVar[WindowOperation]
    MAX: ClassVar[WindowOperation]
    INTEGRAL: ClassVar[WindowOperation]
    COUNT: ClassVar[WindowOperation]
    PRODUCT: ClassVar[WindowOperation]
    LAST: ClassVar[WindowOperation]
    VARIANCE: ClassVar[WindowOperation]
    COVARIANCE: ClassVar[WindowOperation]
    STANDARD_DEVIATION: ClassVar[WindowOperation]

    def __post_init__(self) -> None:
        if self.name not in _OPERATION_NAMES:
            raise ValueError(f"unknown window operation {self.name!r}")
        if self.name == "nth_percentile":
            if self.percentile is None or not 0 <= self.percentile <= 255:
                raise ValueError("a percentile operation needs a rank between 0 and 255")
        elif self.percentile is not None:
            raise ValueError(f"window operation {self.name!r} takes no percentile")

    @classmethod
    def nth_percentile(cls, n: int) -> WindowOperation:
        return cls("nth_percentile", n)

    def returns_option(self) -> bool:
        """Whether the aggregation yields no value when nothing was aggregated."""
        return self.name not in _NON_OPTIONAL_OPERATIONS


WindowOperation.SUM = WindowOperation("sum")
WindowOperation.AVERAGE = WindowOperation("average")
WindowOperation.CONJUNCTION = WindowOperation("conjunction")
WindowOperation.DISJUNCTION = WindowOperation("disjunction")
WindowOperation.MIN = WindowOperation("min")
WindowOperation.MAX = WindowOperation("max")
WindowOperation.INTEGRAL = WindowOperation("integral")
WindowOperation.COUNT = WindowOperation("count")
WindowOperation.PRODUCT = WindowOperation("product")
WindowOperation.LAST = WindowOperation("last")
WindowOperation.VARIANCE = WindowOperation("variance")
WindowOperation.COVARIANCE = WindowOperation("covariance")
WindowOperation.STANDARD_DEVIATION = WindowOperation("standard_deviation")


@dataclass(frozen=True)
class InstanceSelection:
    """Which instances an instance aggregation considers."""

    fresh_only: bool
    parameters: tuple[Parameter, ...] = ()
    cond: Expr | None = None

    def __post_init__(self) -> None:
        _freeze(self, "parameters")
        if self.parameters and self.cond is None:
            raise ValueError("a filtered selection needs a condition")

    @classmethod
    def all_(cls) -> InstanceSelection:
        return cls(False)

    @classmethod
    def fresh(cls) -> InstanceSelection:
        return cls(True)

    @classmethod
    def filtered_all(cls, parameters: Iterable[Parameter], cond: Expr) -> InstanceSelection:
        return cls(False, tuple(parameters), cond)

    @classmethod
    def filtered_fresh(cls, parameters: Iterable[Parameter], cond: Expr) -> InstanceSelection:
        return cls(True, tuple(parameters), cond)

    @property
    def is_filtered(self) -> bool:
        return self.cond is not None


@dataclass(frozen=True)
class SlidingWindow:
    """A window aggregating over a time duration."""

    duration: timedelta
    bucket_count: int
    bucket_duration: timedelta
    wait: bool


@dataclass(frozen=True)
class DiscreteWindow:
    """A window aggregating over a number of values."""

    num_values: int
    wait: bool


@dataclass(frozen=True)
class InstancesWindow:
    """An aggregation over the instances of a parameterized stream."""

    selection: InstanceSelection


@dataclass(frozen=True)
class Window:
    """A window of any kind together with where it is used."""

    wref: WindowReference
    op: WindowOperation
    target: StreamReference
    caller: StreamReference
    origin: Any
    origin_pacing: Guard
    kind: SlidingWindow | DiscreteWindow | InstancesWindow
    ty: Type


# Static schedule


class TaskKind(enum.Enum):
    """What happens to a periodic output stream at a deadline."""

    SPAWN = "spawn"
    EVAL = "eval"
    CLOSE = "close"


@dataclass(frozen=True)
class Task:
    kind: TaskKind
    sr: OutputReference


@dataclass(frozen=True)
class Deadline:
    """Tasks due together, ``pause`` after the previous deadline."""

    pause: timedelta
    due: tuple[Task, ...]

    def __post_init__(self) -> None:
        _freeze(self, "due")


@dataclass(frozen=True)
class StaticSchedule:
    """The precomputed schedule of globally periodic streams."""

    hyper_period: timedelta
    deadlines: tuple[Deadline, ...]

    def __post_init__(self) -> None:
        _freeze(self, "deadlines")


# Lifetime equivalences


class LivetimeEquivalences:
    """Groups of output streams that are spawned and closed together.

    One extra group member stands for the inputs: outputs joined with it
    live for the whole run.
    """

    def __init__(self, outputs: Iterable[OutputReference] = ()) -> None:
        self._idx: dict[OutputReference, int] = {}
        for out in outputs:
            self._idx.setdefault(out, len(self._idx))
        self._input_idx = len(self._idx)
        self._parent = list(range(self._input_idx + 1))

    def _find(self, i: int) -> int:
        while self._parent[i] != i:
            self._parent[i] = self._parent[self._parent[i]]
            i = self._parent[i]
        return i

    def _union(self, a: int, b: int) -> None:
        ra, rb = self._find(a), self._find(b)
        if ra != rb:
            self._parent[max(ra, rb)] = min(ra, rb)

    def _joined(self, a: int, b: int) -> bool:
        return self._find(a) == self._find(b)

    def join(self, first: OutputReference, second: OutputReference) -> None:
        """Record that both outputs have the same lifetime."""
        self._union(self._idx[first], self._idx[second])

    def join_static(self, sr: OutputReference) -> None:
        """Record that the output lives for the whole run."""
        self._union(self._idx[sr], self._input_idx)

    def is_equivalent(self, sr1: StreamReference, sr2: StreamReference) -> bool:
        """Whether the two streams have equivalent lifetimes."""
        if sr1.is_input and sr2.is_input:
            return True
        if sr1.is_input:
            return self._joined(self._input_idx, self._idx[sr2.out_idx()])
        if sr2.is_input:
            return self._joined(self._input_idx, self._idx[sr1.out_idx()])
        return self.is_equivalent_outputs(sr1.out_idx(), sr2.out_idx())

    def is_equivalent_outputs(self, sr1: OutputReference, sr2: OutputReference) -> bool:
        """Whether the two outputs have equivalent lifetimes."""
        return self._joined(self._idx[sr1], self._idx[sr2])

    def is_static(self, sr: StreamReference) -> bool:
        """Whether the stream lives for the whole run."""
        if sr.is_input:
            return True
        return self._joined(self._idx[sr.out_idx()], self._input_idx)

    def __repr__(self) -> str:
        names: dict[int, str] = {i: repr(o) for o, i in self._idx.items()}
        names[self._input_idx] = "inputs"
        groups: dict[int, list[str]] = {}
        for i in range(len(self._parent)):
            groups.setdefault(self._find(i), []).append(names[i])
        return f"LivetimeEquivalences({list(groups.values())})"


# The whole program


@dataclass
class StreamIr:
    """A complete stream program: its statement and all global information."""

    stmt: Stmt
    sr2memory: dict[StreamReference, Memory]
    wref2window: dict[WindowReference, Window] = field(default_factory=dict)
    lref2lfreq: dict[LocalFreqRef, LocalFreq] = field(default_factory=dict)
    livetime_equivalences: LivetimeEquivalences = field(default_factory=LivetimeEquivalences)
    static_schedule: StaticSchedule | None = None
    triggers: dict[OutputReference, int] = field(default_factory=dict)
    accesses: dict[StreamReference, list[tuple[StreamReference, list[tuple[Any, Any]]]]] = field(
        default_factory=dict
    )
    accessed_by: dict[StreamReference, list[tuple[StreamReference, list[tuple[Any, Any]]]]] = (
        field(default_factory=dict)
    )