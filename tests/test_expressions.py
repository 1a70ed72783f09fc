import pytest

from streamir.expressions import (
    BinaryOperation,
    Cast,
    Constant,
    ConstantExpr,
    Function,
    FunctionCall,
    GetAccess,
    HoldStreamAccess,
    IsFresh,
    Ite,
    LambdaParameterAccess,
    OffsetStreamAccess,
    Operator,
    ParameterAccess,
    SyncStreamAccess,
    TupleAccess,
    TupleExpr,
    UnaryOperation,
    WindowAccess,
)
from streamir.types import OutputReference, StreamReference, Type, WindowReference

BOOL = Type.boolean()
A = StreamReference.input(0)
B = StreamReference.input(1)
OUT = OutputReference(0, parameterized=True).sr()
OTHER = OutputReference(1, parameterized=True).sr()


def const(value=True):
    return ConstantExpr(BOOL, Constant.of_bool(value))


def param(sr, index=0):
    return ParameterAccess(BOOL, sr, index)


def test_constant_has_no_parameter_access():
    assert const().contains_parameter_access() is None


def test_parameter_access_returns_its_stream():
    assert param(OUT).contains_parameter_access() == OUT


def test_binary_operation_prefers_left():
    expr = BinaryOperation(BOOL, Operator.AND, param(OUT), param(OTHER))
    assert expr.contains_parameter_access() == OUT
    expr = BinaryOperation(BOOL, Operator.AND, const(), param(OTHER))
    assert expr.contains_parameter_access() == OTHER


def test_unary_and_cast_look_inside():
    assert UnaryOperation(BOOL, Operator.NOT, param(OUT)).contains_parameter_access() == OUT
    assert Cast(BOOL, BOOL, param(OTHER)).contains_parameter_access() == OTHER


def test_ite_checks_all_branches():
    expr = Ite(BOOL, const(), const(False), param(OTHER))
    assert expr.contains_parameter_access() == OTHER


def test_accesses_check_parameters_before_default():
    for cls in (HoldStreamAccess, GetAccess):
        expr = cls(BOOL, A, param(OTHER), [param(OUT)])
        assert expr.contains_parameter_access() == OUT
        expr = cls(BOOL, A, param(OTHER), [const()])
        assert expr.contains_parameter_access() == OTHER
    expr = OffsetStreamAccess(BOOL, A, 1, param(OTHER), [param(OUT)])
    assert expr.contains_parameter_access() == OUT


def test_sync_and_fresh_check_parameters():
    assert SyncStreamAccess(BOOL, A, [const(), param(OUT)]).contains_parameter_access() == OUT
    assert IsFresh(BOOL, A).contains_parameter_access() is None


def test_window_access_default_optional():
    wref = WindowReference.sliding(0)
    assert WindowAccess(BOOL, A, wref).contains_parameter_access() is None
    with_default = WindowAccess(BOOL, A, wref, [], param(OUT))
    assert with_default.contains_parameter_access() == OUT


def test_function_tuple_and_tuple_access():
    call = FunctionCall(BOOL, Function.MAX, [const(), param(OTHER)])
    assert call.contains_parameter_access() == OTHER
    tup = TupleExpr(Type.tuple_of(BOOL, BOOL), [param(OUT), const()])
    assert tup.contains_parameter_access() == OUT
    assert TupleAccess(BOOL, tup, 0).contains_parameter_access() == OUT


def test_lambda_parameter_access_is_not_parameter_access():
    expr = LambdaParameterAccess(BOOL, WindowReference.instance(0), 0)
    assert expr.contains_parameter_access() is None


def test_parameter_access_equality_ignores_stream():
    assert param(OUT, 1) == param(OTHER, 1)
    assert hash(param(OUT, 1)) == hash(param(OTHER, 1))
    assert param(OUT, 1) != param(OUT, 2)


def test_structural_equality():
    left = SyncStreamAccess(BOOL, A, [const()])
    assert left == SyncStreamAccess(BOOL, A, (const(),))
    assert left != SyncStreamAccess(BOOL, B, [const()])
    assert left != IsFresh(BOOL, A, [const()])
    assert len({left, SyncStreamAccess(BOOL, A, [const()])}) == 1


def test_constant_validation():
    with pytest.raises(ValueError):
        Constant.of_uint(-1, 8)
    with pytest.raises(ValueError):
        Constant(Constant.of_int(1, 8).kind, 1)
    assert Constant.of_uint(1, 8) != Constant.of_int(1, 8)
    assert Constant.of_tuple([Constant.of_bool(True)]).value == (Constant.of_bool(True),)