import pytest

from streamir.memory import (
    BufferKind,
    DynamicMemory,
    InstancesMemory,
    Memory,
    NoMemory,
    Parameter,
    StaticMemory,
    StreamBuffer,
)
from streamir.types import Type

PARAMS = [Parameter("p0", Type.boolean()), Parameter("p1", Type.unsigned(8))]


def test_buffer_bounds():
    assert StreamBuffer.single_value().bound() == 1
    assert StreamBuffer.bounded(7).bound() == 7
    assert StreamBuffer.unbounded().bound() is None


def test_buffer_validation():
    with pytest.raises(ValueError):
        StreamBuffer(BufferKind.BOUNDED)
    with pytest.raises(ValueError):
        StreamBuffer(BufferKind.UNBOUNDED, 3)


def test_parameters_only_for_instances():
    instances = InstancesMemory(StreamBuffer.single_value(), PARAMS)
    assert instances.parameters() == tuple(PARAMS)
    assert instances.num_parameters() == len(PARAMS)
    for mem in (
        NoMemory(),
        StaticMemory(StreamBuffer.single_value()),
        DynamicMemory(StreamBuffer.single_value(), True, False),
    ):
        assert mem.parameters() is None
        assert mem.num_parameters() == 0


def test_buffer_of():
    buf = StreamBuffer.bounded(4)
    assert NoMemory().buffer_of() is None
    assert StaticMemory(buf).buffer_of() == buf
    assert DynamicMemory(buf, False, True).buffer_of() == buf
    assert InstancesMemory(buf, PARAMS).buffer_of() == buf


def test_add_equal_memories():
    a = DynamicMemory(StreamBuffer.unbounded(), True, True)
    b = DynamicMemory(StreamBuffer.unbounded(), True, True)
    assert (a + b) == a


def test_add_differing_memories_raises():
    with pytest.raises(ValueError):
        StaticMemory(StreamBuffer.single_value()) + NoMemory()
    with pytest.raises(ValueError):
        StaticMemory(StreamBuffer.single_value()) + StaticMemory(StreamBuffer.bounded(2))


def test_memory_delegates_to_buffer():
    mem = Memory(InstancesMemory(StreamBuffer.single_value(), PARAMS), Type.boolean(), "o0")
    assert mem.parameters() == tuple(PARAMS)
    assert mem.num_parameters() == len(PARAMS)
    static = Memory(StaticMemory(StreamBuffer.single_value()), Type.boolean(), "i0")
    assert static.parameters() is None
    assert static.num_parameters() == 0


def test_memory_is_hashable_and_comparable():
    a = Memory(InstancesMemory(StreamBuffer.single_value(), PARAMS), Type.boolean(), "o0")
    b = Memory(InstancesMemory(StreamBuffer.single_value(), tuple(PARAMS)), Type.boolean(), "o0")
    assert a == b
    assert len({a, b}) == 1