from datetime import timedelta

import pytest

from streamir.expressions import Constant, ConstantExpr
from streamir.ir import (
    AliveGuard,
    ConstantGuard,
    Deadline,
    DiscreteWindow,
    DynamicGuard,
    FastAndGuard,
    GuardAnd,
    IfStmt,
    InstanceSelection,
    InstancesWindow,
    Iterate,
    LivetimeEquivalences,
    Parallel,
    Seq,
    Shift,
    Skip,
    Spawn,
    StaticSchedule,
    StreamGuard,
    StreamIr,
    Task,
    TaskKind,
    Window,
    WindowOperation,
    parallel,
    seq,
)
from streamir.memory import Parameter
from streamir.types import OutputReference, StreamReference, Type, WindowReference

TRUE = ConstantExpr(Type.boolean(), Constant.of_bool(True))
O0, O1, O2 = (OutputReference(i) for i in range(3))
PARAMS = [Parameter("p0", Type.boolean())]


def test_and_builds_conjunction():
    lhs = StreamGuard(StreamReference.input(0))
    rhs = ConstantGuard(True)
    assert lhs.and_(rhs) == GuardAnd(lhs, rhs)


def test_filter_wraps_with_skip_alternative():
    stmt = Shift(StreamReference.input(1))
    guard = ConstantGuard(False)
    assert stmt.filter(guard) == IfStmt(guard, stmt, Skip())


def test_filter_else_keeps_alternative():
    cons = Shift(StreamReference.input(0))
    alt = Shift(StreamReference.input(1))
    guard = DynamicGuard(TRUE)
    result = cons.filter_else(guard, alt)
    assert result == IfStmt(guard, cons, alt)


def test_iterate_static_unparameterized_is_unchanged():
    stmt = Shift(O0.sr())
    assert stmt.iterate(O0.sr(), [], False) is stmt


def test_iterate_dynamic_unparameterized_guards_alive():
    stmt = Shift(O0.sr())
    assert stmt.iterate(O0.sr(), [], True) == IfStmt(AliveGuard(O0.sr()), stmt, Skip())


def test_iterate_parameterized_iterates_instances():
    sr = OutputReference(0, parameterized=True).sr()
    stmt = Shift(sr)
    assert stmt.iterate(sr, PARAMS, True) == Iterate((sr.out_idx(),), stmt)


def test_iterate_parameterized_static_is_rejected():
    with pytest.raises(ValueError):
        Skip().iterate(O0.sr(), PARAMS, False)


def test_seq_and_parallel_collapse():
    a = Shift(StreamReference.input(0))
    b = Shift(StreamReference.input(1))
    assert seq([]) == Skip()
    assert parallel([]) == Skip()
    assert seq([a]) is a
    assert parallel(iter([b])) is b
    assert seq(x for x in (a, b)) == Seq((a, b))
    assert parallel([a, b]) == Parallel((a, b))


def test_seq_is_not_parallel():
    a, b = Skip(), Shift(StreamReference.input(0))
    assert seq([a, b]) != parallel([a, b])
    assert isinstance(seq([a, b]), Seq)


def test_statement_lists_are_frozen():
    spawn = Spawn(O0, [TRUE], [1], [WindowReference.sliding(0)])
    assert spawn.with_ == (TRUE,)
    assert spawn.local_frequencies == (1,)
    assert hash(spawn) == hash(Spawn(O0, (TRUE,), (1,), (WindowReference.sliding(0),)))
    guard = FastAndGuard([StreamReference.input(0)])
    assert guard.streams == (StreamReference.input(0),)


def test_window_operation_returns_option():
    assert not WindowOperation.SUM.returns_option()
    assert not WindowOperation.COUNT.returns_option()
    assert WindowOperation.AVERAGE.returns_option()
    assert WindowOperation.LAST.returns_option()
    assert WindowOperation.nth_percentile(50).returns_option()


@pytest.mark.parametrize(
    "name, percentile",
    [("bogus", None), ("nth_percentile", None), ("nth_percentile", 256), ("sum", 3)],
)
def test_window_operation_validation(name, percentile):
    with pytest.raises(ValueError):
        WindowOperation(name, percentile)


def test_instance_selection_kinds():
    assert not InstanceSelection.all_().is_filtered
    assert InstanceSelection.fresh().fresh_only
    sel = InstanceSelection.filtered_fresh(PARAMS, TRUE)
    assert sel.is_filtered and sel.fresh_only
    assert sel.parameters == tuple(PARAMS)
    assert not InstanceSelection.filtered_all(PARAMS, TRUE).fresh_only


def test_filtered_selection_needs_condition():
    with pytest.raises(ValueError):
        InstanceSelection(False, tuple(PARAMS), None)


def test_window_holds_its_kind():
    window = Window(
        wref=WindowReference.instance(0),
        op=WindowOperation.SUM,
        target=O1.sr(),
        caller=O0.sr(),
        origin=None,
        origin_pacing=ConstantGuard(True),
        kind=InstancesWindow(InstanceSelection.all_()),
        ty=Type.unsigned(64),
    )
    assert window.kind.selection == InstanceSelection.all_()
    assert window != Window(
        window.wref,
        window.op,
        window.target,
        window.caller,
        None,
        window.origin_pacing,
        DiscreteWindow(3, False),
        window.ty,
    )


def test_schedule_freezes_lists():
    tasks = [Task(TaskKind.EVAL, O0), Task(TaskKind.SPAWN, O1)]
    dl = Deadline(timedelta(seconds=1), tasks)
    schedule = StaticSchedule(timedelta(seconds=2), [dl, dl])
    assert dl.due == tuple(tasks)
    assert schedule.deadlines == (dl, dl)


def test_livetime_equivalences():
    le = LivetimeEquivalences([O0, O1, O2])
    le.join_static(O0)
    le.join(O1, O2)
    assert le.is_static(O0.sr())
    assert not le.is_static(O1.sr())
    assert le.is_equivalent_outputs(O1, O2)
    assert not le.is_equivalent_outputs(O0, O1)
    assert le.is_equivalent(StreamReference.input(0), StreamReference.input(5))
    assert le.is_equivalent(O0.sr(), StreamReference.input(0))
    assert le.is_equivalent(StreamReference.input(0), O0.sr())
    assert not le.is_equivalent(StreamReference.input(0), O1.sr())
    assert le.is_equivalent(O2.sr(), O1.sr())
    assert le.is_static(StreamReference.input(3))


def test_livetime_equivalences_are_transitive():
    le = LivetimeEquivalences([O0, O1, O2])
    le.join(O0, O1)
    le.join(O1, O2)
    assert le.is_equivalent_outputs(O0, O2)
    assert not le.is_static(O2.sr())


def test_livetime_equivalences_unknown_output():
    le = LivetimeEquivalences([O0])
    with pytest.raises(KeyError):
        le.is_static(O1.sr())


def test_stream_ir_defaults_are_independent():
    first = StreamIr(Skip(), {})
    second = StreamIr(Skip(), {})
    first.triggers[O0] = 1
    assert second.triggers == {}
    assert first.static_schedule is None
    assert first.livetime_equivalences.is_static(StreamReference.input(0))