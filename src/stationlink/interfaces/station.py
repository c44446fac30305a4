"""Client for a running station application.

:class:`Station` owns one :class:`SocketTransport` and exposes the station
level calls; objects in the station tree are returned as
:class:`~stationlink.interfaces.item.Item` proxies sharing that connection.
The connection is opened lazily on the first call (starting the station
binary when ``auto_launch`` is set) and reopened after any transport failure.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Tuple

import numpy as np

from stationlink.common.messaging.invoker import CommandInvoker
from stationlink.common.messaging.launcher import connect_or_launch
from stationlink.common.messaging.transport import SocketTransport
from stationlink.common.types import RemoteHandle, as_move_target
from stationlink.configs.constants import network, station

from .item import Item, _fixed

logger = logging.getLogger(__name__)


class Station:
    """Connection to one station process.

    Use one instance per thread of control; calls on an instance are strictly
    sequential.
    """

    def __init__(
        self,
        host: str = network.DEFAULT_HOST,
        port: int = network.DEFAULT_PORT,
        timeout_s: float = network.API_TIMEOUT_S,
        binary_path: str = network.DEFAULT_STATION_BIN,
        args: str = "",
        auto_launch: bool = True,
        startup_timeout_s: float = network.STARTUP_TIMEOUT_S,
        line_timeout_s: float = network.STARTUP_LINE_TIMEOUT_S,
        transport: Optional[SocketTransport] = None,
    ):
        self.host = host
        self.port = port
        self.binary_path = binary_path
        self.args = args
        self.auto_launch = auto_launch
        self.startup_timeout_s = startup_timeout_s
        self.line_timeout_s = line_timeout_s
        self.transport = transport if transport is not None else SocketTransport(timeout_s)
        self._invoker = CommandInvoker(self.transport, connect=self._open)

    def __enter__(self) -> "Station":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.disconnect()

    def __repr__(self) -> str:
        return f"Station({self.host}:{self.port}, connected={self.connected()})"

    # ------------------------------------------------------------------
    # Connection
    # ------------------------------------------------------------------

    def _open(self, transport: SocketTransport) -> bool:
        if self.auto_launch:
            return connect_or_launch(
                transport,
                binary_path=self.binary_path,
                args=self.args,
                host=self.host,
                port=self.port,
                startup_timeout=self.startup_timeout_s,
                line_timeout=self.line_timeout_s,
            )
        return transport.connect(self.host, self.port)

    def _call(self, keyword: str, timeout: Optional[float] = None):
        return self._invoker.call(keyword, timeout)

    def connect(self) -> bool:
        """Open the connection now instead of on the first call."""
        if self.transport.is_open:
            return True
        return self._open(self.transport)

    def disconnect(self) -> None:
        self.transport.close()

    def connected(self) -> bool:
        return self.transport.is_open

    def item(self, handle: RemoteHandle) -> Item:
        """Wrap a handle received elsewhere as an item of this station."""
        return Item(self, handle)

    def _items(self, handles: Sequence[RemoteHandle]) -> List[Item]:
        return [Item(self, h) for h in handles]

    # ------------------------------------------------------------------
    # Item lookup
    # ------------------------------------------------------------------

    def get_item(self, name: str, itemtype: Optional[int] = None) -> Item:
        """Find an item by name, optionally restricted to one item type.

        Returns an invalid item when nothing matches.
        """
        keyword = "G_Item" if itemtype is None or itemtype < 0 else "G_Item2"
        with self._call(keyword) as call:
            call.send_line(name)
            if keyword == "G_Item2":
                call.send_int(itemtype)
            handle = call.recv_item()
            call.finish()
        return Item(self, handle)

    def get_item_list_names(self, filter: Optional[int] = None) -> List[str]:
        keyword = "G_List_Items" if filter is None or filter < 0 else "G_List_Items_Type"
        with self._call(keyword) as call:
            if keyword == "G_List_Items_Type":
                call.send_int(filter)
            count = call.recv_int()
            names = [call.recv_line() for _ in range(count)]
            call.finish()
        return names

    def get_item_list(self, filter: Optional[int] = None) -> List[Item]:
        keyword = "G_List_Items_ptr" if filter is None or filter < 0 else "G_List_Items_Type_ptr"
        with self._call(keyword) as call:
            if keyword == "G_List_Items_Type_ptr":
                call.send_int(filter)
            count = call.recv_int()
            handles = [call.recv_item() for _ in range(count)]
            call.finish()
        return self._items(handles)

    def item_user_pick(self, message: str = "Pick one item", itemtype: int = station.ITEM_TYPE_ANY) -> Item:
        """Ask the user to select an item in the station window."""
        with self._call("PickItem") as call:
            call.send_line(message)
            call.send_int(itemtype)
            handle = call.recv_item(timeout=network.LONG_TIMEOUT_S)
            call.finish()
        return Item(self, handle)

    # ------------------------------------------------------------------
    # Application window
    # ------------------------------------------------------------------

    def _simple(self, keyword: str) -> None:
        with self._call(keyword) as call:
            call.finish()

    def show(self) -> None:
        self._simple("RAISE")

    def hide(self) -> None:
        self._simple("HIDE")

    def close_station_app(self) -> None:
        """Quit the station application and drop the connection."""
        self._simple("QUIT")
        self.transport.close()
        self.transport.process = None

    def version(self) -> str:
        with self._call("Version") as call:
            app_name = call.recv_line()
            bit_arch = call.recv_int()
            version = call.recv_line()
            build_date = call.recv_line()
            call.finish()
        logger.debug(f"{app_name} {version} ({bit_arch} bit, built {build_date})")
        return version

    def set_window_state(self, window_state: int = station.WINDOWSTATE_NORMAL) -> None:
        with self._call("S_WindowState") as call:
            call.send_int(window_state)
            call.finish()

    def set_flags_station(self, flags: int = station.FLAG_STATION_ALL) -> None:
        with self._call("S_RoboDK_Rights") as call:
            call.send_int(flags)
            call.finish()

    def set_flags_item(self, item: Item, flags: int = station.FLAG_ITEM_ALL) -> None:
        with self._call("S_Item_Rights") as call:
            call.send_item(item)
            call.send_int(flags)
            call.finish()

    def get_flags_item(self, item: Item) -> int:
        with self._call("G_Item_Rights") as call:
            call.send_item(item)
            flags = call.recv_int()
            call.finish()
        return flags

    def show_message(self, message: str, popup: bool = True) -> None:
        """Show a blocking pop-up, or a status bar message when *popup* is False."""
        if popup:
            with self._call("ShowMessage") as call:
                call.send_line(message)
                call.finish(timeout=network.LONG_TIMEOUT_S)
            return
        with self._call("ShowMessageStatus") as call:
            call.send_line(message)
            call.finish()

    # ------------------------------------------------------------------
    # Files and station content
    # ------------------------------------------------------------------

    def add_file(self, filename: str, parent: Optional[Item] = None) -> Item:
        """Load a file (station, robot, tool, object, program...)."""
        with self._call("Add") as call:
            call.send_line(filename)
            call.send_item(parent)
            handle = call.recv_item()
            call.finish()
        return Item(self, handle)

    def save(self, filename: str, item: Optional[Item] = None) -> None:
        """Save *item*, or the active station when omitted."""
        with self._call("Save") as call:
            call.send_line(filename)
            call.send_item(item)
            call.finish()

    def add_shape(self, triangle_points, add_to: Optional[Item] = None, override_shapes: bool = False,
                  color: Sequence[float] = (0.5, 0.5, 0.5, 1.0)) -> Item:
        """Add a triangle mesh; points are sent column-major as one array."""
        rgba = [float(c) for c in color] + [1.0] * (4 - len(color))
        with self._call("AddShape3") as call:
            call.send_array(triangle_points)
            call.send_item(add_to)
            call.send_int(1 if override_shapes else 0)
            call.send_array(rgba[:4])
            handle = call.recv_item()
            call.finish()
        return Item(self, handle)

    def add_curve(self, curve_points, reference_object: Optional[Item] = None, add_to_ref: bool = False,
                  projection_type: int = station.PROJECTION_ALONG_NORMAL_RECALC) -> Item:
        with self._call("AddWire") as call:
            call.send_array(curve_points)
            call.send_item(reference_object)
            call.send_int(1 if add_to_ref else 0)
            call.send_int(projection_type)
            handle = call.recv_item()
            call.finish()
        return Item(self, handle)

    def add_points(self, points, reference_object: Optional[Item] = None, add_to_ref: bool = False,
                   projection_type: int = station.PROJECTION_ALONG_NORMAL_RECALC) -> Item:
        with self._call("AddPoints") as call:
            call.send_array(points)
            call.send_item(reference_object)
            call.send_int(1 if add_to_ref else 0)
            call.send_int(projection_type)
            handle = call.recv_item()
            call.finish()
        return Item(self, handle)

    def project_points(self, points, object_project: Item,
                       projection_type: int = station.PROJECTION_ALONG_NORMAL_RECALC) -> np.ndarray:
        """Project points onto an object; the station answers with a 4x4 block."""
        with self._call("ProjectPoints") as call:
            call.send_array(points)
            call.send_item(object_project)
            call.send_int(projection_type)
            projected = call.recv_pose()
            call.finish()
        return projected

    def add_station(self, name: str = "") -> Item:
        """Open a new, empty station and optionally name it."""
        with self._call("NewStation") as call:
            handle = call.recv_item()
            call.finish()
        new_station = Item(self, handle)
        if name:
            new_station.set_name(name)
        return new_station

    def close_station(self) -> None:
        """Close the active station without saving."""
        with self._call("Remove") as call:
            call.send_item(None)
            call.finish()

    def add_target(self, name: str, parent: Optional[Item] = None, robot: Optional[Item] = None) -> Item:
        with self._call("Add_TARGET") as call:
            call.send_line(name)
            call.send_item(parent)
            call.send_item(robot)
            handle = call.recv_item()
            call.finish()
        return Item(self, handle)

    def add_frame(self, name: str, parent: Optional[Item] = None) -> Item:
        with self._call("Add_FRAME") as call:
            call.send_line(name)
            call.send_item(parent)
            handle = call.recv_item()
            call.finish()
        return Item(self, handle)

    def add_program(self, name: str, robot: Optional[Item] = None) -> Item:
        with self._call("Add_PROG") as call:
            call.send_line(name)
            call.send_item(robot)
            handle = call.recv_item()
            call.finish()
        return Item(self, handle)

    def add_machining_project(self, name: str = "Curve follow settings", robot: Optional[Item] = None) -> Item:
        with self._call("Add_MACHINING") as call:
            call.send_line(name)
            call.send_item(robot)
            handle = call.recv_item()
            call.finish()
        return Item(self, handle)

    def get_open_stations(self) -> List[Item]:
        with self._call("G_AllStn") as call:
            count = call.recv_int()
            handles = [call.recv_item() for _ in range(count)]
            call.finish()
        return self._items(handles)

    def get_active_station(self) -> Item:
        with self._call("G_ActiveStn") as call:
            handle = call.recv_item()
            call.finish()
        return Item(self, handle)

    def set_active_station(self, station_item: Item) -> None:
        with self._call("S_ActiveStn") as call:
            call.send_item(station_item)
            call.finish()

    # ------------------------------------------------------------------
    # Programs and simulation
    # ------------------------------------------------------------------

    def run_program(self, function_w_params: str) -> int:
        """Run a program (or a function call with parameters) by name."""
        return self.run_code(function_w_params, True)

    def run_code(self, code: str, code_is_fcn_call: bool = False) -> int:
        with self._call("RunCode") as call:
            call.send_int(1 if code_is_fcn_call else 0)
            call.send_line(code)
            prog_status = call.recv_int()
            call.finish()
        return prog_status

    def run_message(self, message: str, message_is_comment: bool = False) -> None:
        with self._call("RunMessage") as call:
            call.send_int(1 if message_is_comment else 0)
            call.send_line(message)
            call.finish()

    def render(self, always_render: bool = False) -> None:
        with self._call("Render") as call:
            call.send_int(0 if always_render else 1)
            call.finish()

    def update(self) -> None:
        """Refresh the station without rendering."""
        with self._call("Refresh") as call:
            call.send_int(0)
            call.finish()

    def is_inside(self, object_inside: Item, object_parent: Item) -> bool:
        with self._call("IsInside") as call:
            call.send_item(object_inside)
            call.send_item(object_parent)
            inside = call.recv_int()
            call.finish()
        return inside > 0

    def set_collision_active(self, check_state: int = station.COLLISION_ON) -> int:
        with self._call("Collision_SetState") as call:
            call.send_int(check_state)
            collisions = call.recv_int()
            call.finish()
        return collisions

    def set_collision_active_pair(self, check_state: int, item1: Item, item2: Item,
                                  id1: int = 0, id2: int = 0) -> bool:
        with self._call("Collision_SetPair") as call:
            call.send_item(item1)
            call.send_item(item2)
            call.send_int(id1)
            call.send_int(id2)
            call.send_int(check_state)
            success = call.recv_int()
            call.finish()
        return success > 0

    def collisions(self) -> int:
        with self._call("Collisions", network.LONG_TIMEOUT_S) as call:
            count = call.recv_int()
            call.finish()
        return count

    def collision(self, item1: Item, item2: Item) -> int:
        with self._call("Collided") as call:
            call.send_item(item1)
            call.send_item(item2)
            count = call.recv_int()
            call.finish()
        return count

    def get_collision_items(self) -> Tuple[List[Item], List[int]]:
        """Items currently in collision and, for robots, the colliding link ids."""
        handles, link_ids = [], []
        with self._call("Collision Items") as call:
            count = call.recv_int()
            for _ in range(count):
                handles.append(call.recv_item())
                link_ids.append(call.recv_int())
                call.recv_int()  # collision count, unused
            call.finish()
        return self._items(handles), link_ids

    def set_simulation_speed(self, speed: float) -> None:
        with self._call("SimulateSpeed") as call:
            call.send_int(_fixed(speed))
            call.finish()

    def simulation_speed(self) -> float:
        with self._call("GetSimulateSpeed") as call:
            speed = call.recv_int() / station.FIXED_POINT_SCALE
            call.finish()
        return speed

    def set_run_mode(self, run_mode: int = station.RUNMODE_SIMULATE) -> None:
        with self._call("S_RunMode") as call:
            call.send_int(run_mode)
            call.finish()

    def run_mode(self) -> int:
        with self._call("G_RunMode") as call:
            mode = call.recv_int()
            call.finish()
        return mode

    # ------------------------------------------------------------------
    # Parameters and commands
    # ------------------------------------------------------------------

    def get_params(self) -> List[Tuple[str, str]]:
        with self._call("G_Params") as call:
            count = call.recv_int()
            params = [(call.recv_line(), call.recv_line()) for _ in range(count)]
            call.finish()
        return params

    def get_param(self, param: str) -> Optional[str]:
        """Station parameter value, ``None`` when the parameter is unknown."""
        with self._call("G_Param") as call:
            call.send_line(param)
            value = call.recv_line()
            call.finish()
        if value.startswith(station.UNKNOWN_PARAM_PREFIX):
            return None
        return value

    def set_param(self, param: str, value) -> None:
        with self._call("S_Param") as call:
            call.send_line(param)
            call.send_line(str(value))
            call.finish()

    def command(self, cmd: str, value="") -> str:
        """Send a special command to the station."""
        with self._call("SCMD") as call:
            call.send_line(cmd)
            call.send_line(str(value))
            answer = call.recv_line()
            call.finish()
        return answer

    def process_id(self) -> int:
        process = self.transport.process
        if process is not None:
            return process.pid
        response = self.command("MainProcess_ID").strip()
        try:
            return int(response)
        except ValueError:
            logger.warning(f"Unexpected process id from station: {response!r}")
            return 0

    # ------------------------------------------------------------------
    # Measurement and calibration
    # ------------------------------------------------------------------

    def laser_tracker_measure(self, estimate: Sequence[float] = (0.0, 0.0, 0.0),
                              search: bool = False) -> Optional[np.ndarray]:
        """Measure with a connected laser tracker; ``None`` if nothing was seen."""
        estimate = np.asarray(estimate, dtype=np.float64).reshape(-1)
        if estimate.size != 3:
            raise ValueError(f"Estimate must have 3 values, got {estimate.size}")
        with self._call("MeasLT") as call:
            call.send_xyz(estimate)
            call.send_int(1 if search else 0)
            xyz = call.recv_xyz()
            call.finish()
        if float(xyz @ xyz) < 0.0001:
            return None
        return xyz

    def show_as_collided(self, items: Sequence[Item], collided: Sequence[bool],
                         robot_link_ids: Optional[Sequence[int]] = None) -> None:
        count = min(len(items), len(collided))
        if robot_link_ids is not None:
            count = min(count, len(robot_link_ids))
        with self._call("ShowAsCollidedList") as call:
            call.send_int(count)
            for i in range(count):
                call.send_item(items[i])
                call.send_int(1 if collided[i] else 0)
                call.send_int(0 if robot_link_ids is None else robot_link_ids[i])
            call.finish()

    def calibrate_tool(self, poses_joints, format: int = station.EULER_RX_RYp_RZpp,
                       algorithm: int = station.CALIBRATE_TCP_BY_POINT, robot: Optional[Item] = None):
        """Calibrate a TCP from poses or joints (one per column).

        Returns ``(tcp_xyz, error_stats, error_graph)``.
        """
        with self._call("CalibTCP2", network.LONG_TIMEOUT_S) as call:
            call.send_matrix2d(poses_joints)
            call.send_int(format)
            call.send_int(algorithm)
            call.send_item(robot)
            tcp_xyz = call.recv_array()
            error_stats = call.recv_array()
            error_graph = call.recv_matrix2d()
            call.finish()
        return tcp_xyz, error_stats, error_graph

    def calibrate_reference(self, poses_joints, method: int = station.CALIBRATE_FRAME_3P_P1_ON_X,
                            use_joints: bool = False, robot: Optional[Item] = None) -> np.ndarray:
        with self._call("CalibFrame", network.LONG_TIMEOUT_S) as call:
            call.send_matrix2d(poses_joints)
            call.send_int(-1 if use_joints else 0)
            call.send_int(method)
            call.send_item(robot)
            reference_pose = call.recv_pose()
            call.recv_array()  # error stats
            call.finish()
        return reference_pose

    def program_start(self, progname: str, defaultfolder: str = "", postprocessor: str = "",
                      robot: Optional[Item] = None) -> int:
        """Start an offline program file; returns the error count."""
        with self._call("ProgramStart") as call:
            call.send_line(progname)
            call.send_line(defaultfolder)
            call.send_line(postprocessor)
            call.send_item(robot)
            errors = call.recv_int()
            call.finish()
        return errors

    # ------------------------------------------------------------------
    # View and selection
    # ------------------------------------------------------------------

    def set_view_pose(self, pose) -> None:
        with self._call("S_ViewPose") as call:
            call.send_pose(pose)
            call.finish()

    def view_pose(self) -> np.ndarray:
        with self._call("G_ViewPose") as call:
            pose = call.recv_pose()
            call.finish()
        return pose

    def get_cursor_xyz(self, x: int = -1, y: int = -1) -> Tuple[Item, np.ndarray]:
        """Item and station coordinates under screen point (x, y); -1 uses the mouse cursor."""
        with self._call("Proj2d3d") as call:
            call.send_int(x)
            call.send_int(y)
            call.recv_int()  # selection flag
            handle = call.recv_item()
            xyz = call.recv_xyz()
            call.finish()
        return Item(self, handle), xyz

    def license(self) -> str:
        with self._call("G_License") as call:
            license_str = call.recv_line()
            call.finish()
        return license_str

    def selection(self) -> List[Item]:
        with self._call("G_Selection") as call:
            count = call.recv_int()
            handles = [call.recv_item() for _ in range(count)]
            call.finish()
        return self._items(handles)

    def popup_iso9283_cube_program(self, robot: Optional[Item] = None, center: Optional[Sequence[float]] = None,
                                   side: float = -1, blocking: bool = True) -> Item:
        """Open the ISO9283 cube program dialog.

        Without *center* the dialog asks the user for all parameters.  A
        non-blocking request returns an invalid item immediately and reads no
        reply.
        """
        if center is None:
            with self._call("Popup_ProgISO9283") as call:
                call.send_item(robot)
                handle = call.recv_item(timeout=network.LONG_TIMEOUT_S)
                call.finish()
            return Item(self, handle)

        values = [float(v) for v in center][:3] + [float(side), 1.0 if blocking else 0.0]
        with self._call("Popup_ProgISO9283_Param") as call:
            call.send_item(robot)
            call.send_array(values)
            if not blocking:
                return Item(self)
            handle = call.recv_item(timeout=network.LONG_TIMEOUT_S)
            call.finish()
        return Item(self, handle)

    # ------------------------------------------------------------------
    # Motion
    # ------------------------------------------------------------------

    def _move_x(self, target, robot: Item, move_type: int, blocking: bool = True) -> None:
        """Shared body of joint and linear moves."""
        move_target = as_move_target(target)
        robot.wait_move()
        with self._call("MoveX") as call:
            call.send_int(move_type)
            call.send_move_target(move_target)
            call.send_item(robot)
            call.finish()
        if blocking:
            robot.wait_move()

    def _move_c(self, target1, target2, robot: Item, blocking: bool = True) -> None:
        move_target1 = as_move_target(target1)
        move_target2 = as_move_target(target2)
        robot.wait_move()
        with self._call("MoveC") as call:
            call.send_int(station.MOVE_TYPE_CIRCULAR)
            call.send_move_target(move_target1)
            call.send_move_target(move_target2)
            call.send_item(robot)
            call.finish()
        if blocking:
            robot.wait_move()
