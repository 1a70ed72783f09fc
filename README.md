# streamir

`streamir` is an intermediate representation for stream-based runtime
monitoring specifications. A monitor is a tree of statements (shift, input,
spawn, eval, close, sequential and parallel composition, guarded branches,
iteration over stream instances and assignment of instance parameters)
together with the memory of its streams, its windows, local frequencies,
static schedule and livetime equivalences. The package also provides a
framework for rewrite rules that are applied to this representation until
none of them changes anything anymore.

## Installation

```
pip install streamir
```

With the test dependencies:

```
pip install "streamir[test]"
```

## Modules

- `streamir.types`: value types (`Type` with its `TypeKind`) and references
  to streams and windows (`StreamReference`, `OutputReference`,
  `WindowReference`). `str(Type.integer(8))` gives `Int(8)`,
  `str(Type.option(Type.boolean()))` gives `Option<Bool>`.
- `streamir.expressions`: stream expressions. `Expr` is the base class; its
  kinds include `ConstantExpr`, `BinaryOperation`, `UnaryOperation`, `Ite`,
  `SyncStreamAccess`, `OffsetStreamAccess`, `HoldStreamAccess`, `IsFresh`,
  `GetAccess`, `WindowAccess`, `Cast`, `ParameterAccess`, `FunctionCall`,
  `TupleExpr`, `TupleAccess` and `LambdaParameterAccess`. Constants are
  `Constant` values; `Operator` and `Function` list the operators and
  functions. `Expr.contains_parameter_access()` returns the stream whose
  parameter is first accessed in an expression, or `None`. Two
  `ParameterAccess` expressions compare equal when their index and type
  match, whichever stream they belong to.
- `streamir.memory`: `StreamBuffer` (single value, bounded, unbounded, with
  `bound()`), the memory kinds `NoMemory`, `StaticMemory`, `DynamicMemory`
  and `InstancesMemory`, stream `Parameter`s, and `Memory`, which pairs a
  memory kind with the stream's type and name.
- `streamir.ir`: guards (`GuardAnd`, `GuardOr`, `StreamGuard`, `AliveGuard`,
  `DynamicGuard`, `GlobalFreqGuard`, `LocalFreqGuard`, `ConstantGuard`,
  `FastAndGuard`, `FastOrGuard`), statements (`Skip`, `Input`, `Shift`,
  `Spawn`, `Eval`, `Close`, `Seq`, `Parallel`, `IfStmt`, `Iterate`,
  `Assign`), the helpers `seq()` and `parallel()` that collapse empty and
  single-element lists, windows (`Window`, `SlidingWindow`, `DiscreteWindow`,
  `InstancesWindow`, `WindowOperation`, `InstanceSelection`), the static
  schedule (`StaticSchedule`, `Deadline`, `Task`, `TaskKind`), `LocalFreq`,
  `LivetimeEquivalences` and `StreamIr`, the complete program.
- `streamir.parse`: a compact textual notation for a subset of statements,
  guards and expressions: `parse_stmt`, `parse_guard`, `parse_expr` and
  `parse_ir`. Each reads the construct at the start of the text and leaves
  the rest unread; malformed text raises `ParseError`, which carries the
  offset of the failure.
- `streamir.rewriting`: `RewriteRule`, `Rewriter`, `ChangeSet`,
  `ReplaceMemory`, `RewriteError` and `optimize`.

## Example

Parse a statement and embed it in a program with ten inputs and ten
outputs, each boolean with three boolean parameters `p0` to `p2`:

```python
from streamir.parse import parse_ir, parse_stmt

ir = parse_ir("seq { if @0 then input 0 fi; eval 1 s0 && true }")
print(ir.stmt)

stmt = parse_stmt("par { input 0; input 1 }")
```

Write a rewrite rule by overriding one of the `rewrite_*` hooks of
`RewriteRule` and apply it until a fixed point is reached:

```python
from streamir.ir import IfStmt, Skip
from streamir.rewriting import ChangeSet, RewriteRule, optimize


class DropEmptyIfs(RewriteRule):
    def rewrite_stmt(self, stmt, memory, livetime_equivalences):
        if isinstance(stmt, IfStmt) and isinstance(stmt.cons, Skip) and isinstance(stmt.alt, Skip):
            return Skip(), ChangeSet.local()
        return stmt, ChangeSet()


optimized = optimize(ir, [DropEmptyIfs()])
```

The hooks are called bottom-up on every statement and guard, and on the
memory and buffer of every stream. A `Rewriter` expands its rules by their
`cleanup_rules()`, each placed right after the rule that asks for it; if the
expansion grows beyond ten times the number of given rules it raises
`RewriteError`. `Rewriter.run` then applies the rules in order, repeating
the whole list until no rule reports a change. Global changes recorded in a
`ChangeSet` as `ReplaceMemory` instructions are applied to the program after
the rule that made them. Exceptions raised inside a rule propagate
unchanged.

## What the package does not do

The package holds the representation and the framework for rewriting it.
It does not read monitoring specifications written in a specification
language, and it does not build a `StreamIr` from one: programs are built
directly from the classes in `streamir.ir` or from the notation in
`streamir.parse`. It ships no ready-made optimization rules, no formatter
or pretty printer for programs, and no generator of code in a target
language. There is no command-line tool.

## Running the tests

```
pytest
```