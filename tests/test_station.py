import numpy as np
import pytest

from conftest import STATUS_OK, array, f64, free_port, handle, i32, line
from stationlink.common.messaging.utils import RemoteError, StationConnectionError
from stationlink.common.types import RemoteHandle
from stationlink.configs.constants import station as consts
from stationlink.interfaces.item import Item
from stationlink.interfaces.station import Station
from stationlink.utils.transforms import transl


def run_session(station_server, replies, body):
    """Run *body(station)* against a scripted station; return the client bytes."""
    server = station_server(replies)
    station = Station(port=server.port, auto_launch=False)
    try:
        result = body(station)
    finally:
        station.disconnect()
    server.join()
    return result, server.received


def test_get_item_returns_typed_item(station_server):
    item, sent = run_session(
        station_server,
        handle(11, consts.ITEM_TYPE_ROBOT) + STATUS_OK,
        lambda s: s.get_item("UR5"),
    )
    assert sent == line("G_Item") + line("UR5")
    assert item.valid()
    assert item.handle.id == 11
    assert item.item_type == consts.ITEM_TYPE_ROBOT


def test_get_item_filtered_by_type(station_server):
    item, sent = run_session(
        station_server,
        handle(0, consts.ITEM_TYPE_INVALID) + STATUS_OK,
        lambda s: s.get_item("Missing", consts.ITEM_TYPE_FRAME),
    )
    assert sent == line("G_Item2") + line("Missing") + i32(consts.ITEM_TYPE_FRAME)
    assert not item.valid()


def test_move_j_joints_non_blocking(station_server):
    robot_handle = RemoteHandle(7, consts.ITEM_TYPE_ROBOT)

    def _move(s):
        Item(s, robot_handle).move_j([10, 20, 30, 0, 0, 0], blocking=False)

    _, sent = run_session(station_server, STATUS_OK * 3, _move)
    assert sent == (
        line("WaitMove") + handle(7)
        + line("MoveX") + i32(consts.MOVE_TYPE_JOINT) + i32(1)
        + array(10, 20, 30, 0, 0, 0) + handle(0) + handle(7)
    )


def test_move_l_to_pose_blocking(station_server):
    pose = transl(100, 200, 300)

    def _move(s):
        Item(s, RemoteHandle(7, consts.ITEM_TYPE_ROBOT)).move_l(pose)

    _, sent = run_session(station_server, STATUS_OK * 5, _move)
    wait = line("WaitMove") + handle(7)
    assert sent == (
        wait
        + line("MoveX") + i32(consts.MOVE_TYPE_LINEAR) + i32(2)
        + i32(16) + f64(*pose.flatten(order="F")) + handle(0) + handle(7)
        + wait
    )


def test_move_j_to_target_item(station_server):
    def _move(s):
        robot = Item(s, RemoteHandle(7, consts.ITEM_TYPE_ROBOT))
        robot.move_j(Item(s, RemoteHandle(5, consts.ITEM_TYPE_TARGET)), blocking=False)

    _, sent = run_session(station_server, STATUS_OK * 3, _move)
    assert sent.endswith(line("MoveX") + i32(1) + i32(3) + i32(0) + handle(5) + handle(7))


def test_program_move_appends_instruction(station_server):
    def _add(s):
        program = Item(s, RemoteHandle(9, consts.ITEM_TYPE_PROGRAM))
        program.move_j(Item(s, RemoteHandle(5, consts.ITEM_TYPE_TARGET)))

    _, sent = run_session(station_server, STATUS_OK, _add)
    assert sent == line("Add_INSMOVE") + handle(5) + handle(9) + i32(consts.MOVE_TYPE_JOINT)


def test_pose_is_column_major(station_server):
    expected = transl(1, 2, 3)
    pose, sent = run_session(
        station_server,
        f64(*expected.flatten(order="F")) + STATUS_OK,
        lambda s: Item(s, RemoteHandle(3, consts.ITEM_TYPE_FRAME)).pose(),
    )
    assert sent == line("G_Hlocal") + handle(3)
    np.testing.assert_array_equal(pose, expected)


def test_unknown_param_is_none(station_server):
    values, sent = run_session(
        station_server,
        line("UNKNOWN Speed") + STATUS_OK + line("42") + STATUS_OK,
        lambda s: (s.get_param("Speed"), s.get_param("Path")),
    )
    assert values == (None, "42")
    assert sent == line("G_Param") + line("Speed") + line("G_Param") + line("Path")


def test_remote_error_keeps_connection(station_server):
    def _calls(s):
        with pytest.raises(RemoteError) as exc_info:
            s.run_code("Missing()")
        assert exc_info.value.message == "Program not found"
        assert s.connected()
        return s.version()

    version, _ = run_session(
        station_server,
        i32(0) + i32(3) + line("Program not found")
        + line("RoboDK") + i32(64) + line("5.6.0") + line("2023-06-01") + STATUS_OK,
        _calls,
    )
    assert version == "5.6.0"


def test_program_update(station_server):
    result, sent = run_session(
        station_server,
        array(12, 4.5, 850.0, 1.0) + line("Program OK") + STATUS_OK,
        lambda s: Item(s, RemoteHandle(9, consts.ITEM_TYPE_PROGRAM)).update(),
    )
    assert sent == line("Update2") + handle(9) + array(consts.COLLISION_OFF, -1, -1)
    assert result.instructions == 12
    assert result.time == pytest.approx(4.5)
    assert result.ok_ratio == 1.0
    assert result.message == "Program OK"


def test_process_id_from_station(station_server):
    pid, sent = run_session(
        station_server,
        line("1234") + STATUS_OK,
        lambda s: s.process_id(),
    )
    assert pid == 1234
    assert sent == line("SCMD") + line("MainProcess_ID") + line("")


def test_lazy_connect_happens_once(station_server):
    server = station_server(STATUS_OK * 2)
    station = Station(port=server.port, auto_launch=False)
    assert not station.connected()
    station.render()
    station.update()
    station.disconnect()
    server.join()
    assert server.connections == 1
    assert server.received == line("Render") + i32(1) + line("Refresh") + i32(0)


def test_unreachable_station_raises():
    station = Station(port=free_port(), auto_launch=False, timeout_s=0.2)
    with pytest.raises(StationConnectionError):
        station.render()


def test_arguments_are_checked_before_sending():
    station = Station(port=free_port(), auto_launch=False, timeout_s=0.2)
    robot = Item(station, RemoteHandle(7, consts.ITEM_TYPE_ROBOT))
    with pytest.raises(ValueError):
        robot.set_joints(range(13))
    with pytest.raises(ValueError):
        robot.set_pose(np.eye(3))
    assert not station.connected()
