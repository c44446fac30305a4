import numpy as np
import pytest

from stationlink.common.types import (
    NULL_HANDLE,
    ItemTarget,
    JointsTarget,
    PoseTarget,
    RemoteHandle,
    as_joints,
    as_move_target,
)
from stationlink.configs.constants import station


def test_handle_equality_ignores_type():
    assert RemoteHandle(5, station.ITEM_TYPE_ROBOT) == RemoteHandle(5, station.ITEM_TYPE_FRAME)
    assert hash(RemoteHandle(5, 2)) == hash(RemoteHandle(5))
    assert RemoteHandle(5) != RemoteHandle(6)


def test_null_handle():
    assert not NULL_HANDLE.valid
    assert RemoteHandle.null() == NULL_HANDLE
    assert RemoteHandle((1 << 64) - 1).valid


@pytest.mark.parametrize("bad", [-1, 1 << 64])
def test_handle_range(bad):
    with pytest.raises(ValueError):
        RemoteHandle(bad)


def test_handle_id_type():
    with pytest.raises(TypeError):
        RemoteHandle(1.5)
    with pytest.raises(TypeError):
        RemoteHandle(True)


def test_as_joints_limits():
    assert as_joints(None) is None
    np.testing.assert_array_equal(as_joints((1, 2, 3)), [1.0, 2.0, 3.0])
    with pytest.raises(ValueError):
        as_joints(range(station.MAX_JOINTS + 1))


class _FakeItem:
    def __init__(self, handle):
        self.handle = handle


def test_move_target_classification():
    assert isinstance(as_move_target([0, 10, 20, 0, 0, 0]), JointsTarget)
    assert isinstance(as_move_target(np.eye(4)), PoseTarget)
    assert as_move_target(RemoteHandle(3)) == ItemTarget(RemoteHandle(3))
    assert as_move_target(_FakeItem(RemoteHandle(4))).handle.id == 4

    explicit = JointsTarget(np.zeros(4))
    assert as_move_target(explicit) is explicit


def test_move_target_rejects_other_shapes():
    with pytest.raises(TypeError):
        as_move_target(np.zeros((3, 3)))
