"""Optimizing stream programs by rewrite rules applied until a fixed point."""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from .ir import (
    Assign,
    Guard,
    GuardAnd,
    GuardOr,
    IfStmt,
    Iterate,
    LivetimeEquivalences,
    Parallel,
    Seq,
    Stmt,
    StreamIr,
)
from .memory import (
    DynamicMemory,
    InstancesMemory,
    Memory,
    NoMemory,
    StaticMemory,
    StreamBuffer,
    StreamMemory,
)
from .types import StreamReference

MemoryMap = Mapping[StreamReference, Memory]

_EXPANSION_FACTOR = 10


class RewriteError(Exception):
    """A rewrite rule could not be applied."""


@dataclass(frozen=True)
class ReplaceMemory:
    """A global change: replace the memory of one stream."""

    sr: StreamReference
    memory: Memory

    def apply(self, ir: StreamIr) -> None:
        """Replace the stream's memory in ``ir``; the stream must exist."""
        if self.sr not in ir.sr2memory:
            raise KeyError(self.sr)
        ir.sr2memory[self.sr] = self.memory


@dataclass(frozen=True)
class ChangeSet:
    """Whether a rule changed something locally, and its global side effects."""

    local_change: bool = False
    global_instructions: frozenset[ReplaceMemory] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        object.__setattr__(self, "global_instructions", frozenset(self.global_instructions))

    @classmethod
    def local(cls) -> ChangeSet:
        """A change set recording a local change only."""
        return cls(local_change=True)

    @property
    def changed(self) -> bool:
        return self.local_change or bool(self.global_instructions)

    def __add__(self, other: ChangeSet) -> ChangeSet:
        if not isinstance(other, ChangeSet):
            return NotImplemented
        return ChangeSet(
            self.local_change or other.local_change,
            self.global_instructions | other.global_instructions,
        )


class RewriteRule:
    """A rewrite rule; subclasses override the ``rewrite_*`` hooks they need.

    The ``apply_*`` methods walk the program bottom-up and call the hooks on
    every node; the base rule changes nothing.
    """

    def rewrite_stmt(
        self, stmt: Stmt, memory: MemoryMap, livetime_equivalences: LivetimeEquivalences
    ) -> tuple[Stmt, ChangeSet]:
        """Rewrite a single statement whose children are already rewritten."""
        return stmt, ChangeSet()

    def rewrite_guard(
        self, guard: Guard, memory: MemoryMap, livetime_equivalences: LivetimeEquivalences
    ) -> tuple[Guard, ChangeSet]:
        """Rewrite a single guard whose children are already rewritten."""
        return guard, ChangeSet()

    def rewrite_memory(
        self, sr: StreamReference, memory: StreamMemory
    ) -> tuple[StreamMemory, ChangeSet]:
        """Rewrite the memory kind of a stream."""
        return memory, ChangeSet()

    def rewrite_buffer(
        self, sr: StreamReference, buffer: StreamBuffer
    ) -> tuple[StreamBuffer, ChangeSet]:
        """Rewrite the buffer of a stream's memory."""
        return buffer, ChangeSet()

    def _apply_all(
        self,
        stmts: Iterable[Stmt],
        memory: MemoryMap,
        livetime_equivalences: LivetimeEquivalences,
    ) -> tuple[tuple[Stmt, ...], ChangeSet]:
        cs = ChangeSet()
        rewritten = []
        for child in stmts:
            new_child, child_cs = self.apply_stmt(child, memory, livetime_equivalences)
            rewritten.append(new_child)
            cs += child_cs
        return tuple(rewritten), cs

    def apply_stmt(
        self, stmt: Stmt, memory: MemoryMap, livetime_equivalences: LivetimeEquivalences
    ) -> tuple[Stmt, ChangeSet]:
        """Rewrite a statement and, first, all statements and guards within it."""
        cs = ChangeSet()
        match stmt:
            case Seq(stmts=children):
                inner, cs = self._apply_all(children, memory, livetime_equivalences)
                stmt = Seq(inner)
            case Parallel(stmts=children):
                inner, cs = self._apply_all(children, memory, livetime_equivalences)
                stmt = Parallel(inner)
            case IfStmt(guard=guard, cons=cons, alt=alt):
                guard, guard_cs = self.apply_guard(guard, memory, livetime_equivalences)
                cons, cons_cs = self.apply_stmt(cons, memory, livetime_equivalences)
                alt, alt_cs = self.apply_stmt(alt, memory, livetime_equivalences)
                cs = guard_cs + cons_cs + alt_cs
                stmt = IfStmt(guard, cons, alt)
            case Iterate(stmt=inner) | Assign(stmt=inner):
                inner, cs = self.apply_stmt(inner, memory, livetime_equivalences)
                stmt = dataclasses.replace(stmt, stmt=inner)
        stmt, own_cs = self.rewrite_stmt(stmt, memory, livetime_equivalences)
        return stmt, cs + own_cs

    def apply_guard(
        self, guard: Guard, memory: MemoryMap, livetime_equivalences: LivetimeEquivalences
    ) -> tuple[Guard, ChangeSet]:
        """Rewrite a guard and, first, all guards within it."""
        cs = ChangeSet()
        if isinstance(guard, (GuardAnd, GuardOr)):
            lhs, lhs_cs = self.apply_guard(guard.lhs, memory, livetime_equivalences)
            rhs, rhs_cs = self.apply_guard(guard.rhs, memory, livetime_equivalences)
            cs = lhs_cs + rhs_cs
            guard = type(guard)(lhs, rhs)
        guard, own_cs = self.rewrite_guard(guard, memory, livetime_equivalences)
        return guard, cs + own_cs

    def apply_memory(
        self, memory: MemoryMap, livetime_equivalences: LivetimeEquivalences
    ) -> tuple[dict[StreamReference, Memory], ChangeSet]:
        """Rewrite the memory of every stream, returning a new mapping."""
        cs = ChangeSet()
        result: dict[StreamReference, Memory] = {}
        for sr, mem in memory.items():
            new_kind, kind_cs = self.rewrite_memory(sr, mem.buffer)
            match new_kind:
                case NoMemory():
                    pass
                case StaticMemory() | DynamicMemory() | InstancesMemory():
                    new_buffer, buffer_cs = self.rewrite_buffer(sr, new_kind.buffer)
                    cs += buffer_cs
                    new_kind = dataclasses.replace(new_kind, buffer=new_buffer)
            cs += kind_cs
            result[sr] = dataclasses.replace(mem, buffer=new_kind)
        return result, cs

    def cleanup_rules(self) -> list[RewriteRule]:
        """Rules to apply right after this one."""
        return []

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class Rewriter:
    """Applies a list of rules, expanded by their cleanup rules, to a fixed point."""

    def __init__(self, rules: Iterable[RewriteRule]) -> None:
        given = list(rules)
        limit = len(given) * _EXPANSION_FACTOR
        stack = list(reversed(given))
        expanded: list[RewriteRule] = []
        while stack:
            rule = stack.pop()
            expanded.append(rule)
            stack.extend(rule.cleanup_rules())
            if len(expanded) > limit:
                raise RewriteError("possible infinite loop in rewrite rule expansion")
        self.rules: tuple[RewriteRule, ...] = tuple(expanded)

    def __repr__(self) -> str:
        return f"Rewriter({list(self.rules)!r})"

    def run(self, ir: StreamIr) -> StreamIr:
        """Apply all rules repeatedly until none of them changes anything."""
        changed = True
        while changed:
            ir, changed = self._apply(ir)
        return ir

    def _apply(self, ir: StreamIr) -> tuple[StreamIr, bool]:
        changed = False
        for rule in self.rules:
            equivalences = ir.livetime_equivalences
            sr2memory, memory_cs = rule.apply_memory(ir.sr2memory, equivalences)
            stmt, stmt_cs = rule.apply_stmt(ir.stmt, sr2memory, equivalences)
            ir = dataclasses.replace(ir, stmt=stmt, sr2memory=sr2memory)
            cs = memory_cs + stmt_cs
            changed = changed or cs.changed
            for instruction in cs.global_instructions:
                instruction.apply(ir)
        return ir, changed


def optimize(ir: StreamIr, rules: Iterable[RewriteRule]) -> StreamIr:
    """Apply the given rules to ``ir`` until a fixed point is reached."""
    return Rewriter(rules).run(ir)