"""Proxy objects for items of the station tree.

An :class:`Item` is a handle plus the :class:`~stationlink.interfaces.station.Station`
it came from; every method runs one command on that station connection.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, List, Optional, Sequence, Tuple, Union

import numpy as np

from stationlink.common.matrix import DynamicMatrix
from stationlink.common.messaging.utils import ProtocolFault
from stationlink.common.types import (
    NULL_HANDLE,
    ProgramInstruction,
    ProgramUpdate,
    RemoteHandle,
    as_joints,
    as_pose,
)
from stationlink.configs.constants import network, station
from stationlink.utils.transforms import pose_inv

if TYPE_CHECKING:
    from .station import Station

logger = logging.getLogger(__name__)


def _fixed(value: float) -> int:
    return int(value * station.FIXED_POINT_SCALE)


def _is_item(value) -> bool:
    return isinstance(value, (Item, RemoteHandle))


class Item:
    """Proxy for one object in the station tree (robot, frame, tool, target,
    program, ...).

    The item only stores a :class:`RemoteHandle`; every method is a remote
    call on the owning :class:`Station` connection.
    """

    def __init__(self, station: "Station", handle: RemoteHandle = NULL_HANDLE):
        self.station = station
        self.handle = handle

    @property
    def item_type(self) -> int:
        """Type tag received with the handle (no remote call)."""
        return self.handle.type

    def valid(self) -> bool:
        return self.handle.valid

    def __eq__(self, other):
        if not isinstance(other, Item):
            return NotImplemented
        return self.station is other.station and self.handle == other.handle

    def __hash__(self):
        return hash(self.handle)

    def __repr__(self) -> str:
        if not self.valid():
            return "Item(invalid)"
        return f"Item(id={self.handle.id:#x}, type={self.handle.type})"

    def _call(self, keyword: str, timeout: Optional[float] = None):
        return self.station._call(keyword, timeout)

    def _item(self, handle: RemoteHandle) -> "Item":
        return Item(self.station, handle)

    # ------------------------------------------------------------------
    # Generic item calls
    # ------------------------------------------------------------------

    def type(self) -> int:
        with self._call("G_Item_Type") as call:
            call.send_item(self)
            item_type = call.recv_int()
            call.finish()
        return item_type

    def save(self, filename: str) -> None:
        self.station.save(filename, self)

    def delete(self) -> None:
        """Remove the item and its children; the handle becomes invalid."""
        with self._call("Remove") as call:
            call.send_item(self)
            call.finish()
        self.handle = NULL_HANDLE

    def set_parent(self, parent: "Item") -> None:
        with self._call("S_Parent") as call:
            call.send_item(self)
            call.send_item(parent)
            call.finish()

    def set_parent_static(self, parent: "Item") -> None:
        """Attach to *parent* keeping the absolute position."""
        with self._call("S_Parent_Static") as call:
            call.send_item(self)
            call.send_item(parent)
            call.finish()

    def childs(self) -> List["Item"]:
        with self._call("G_Childs") as call:
            call.send_item(self)
            count = call.recv_int()
            handles = [call.recv_item() for _ in range(count)]
            call.finish()
        return [self._item(h) for h in handles]

    def visible(self) -> bool:
        with self._call("G_Visible") as call:
            call.send_item(self)
            visible = call.recv_int()
            call.finish()
        return visible != 0

    def set_visible(self, visible: bool, visible_frame: Optional[bool] = None) -> None:
        if visible_frame is None:
            visible_frame = visible
        with self._call("S_Visible") as call:
            call.send_item(self)
            call.send_int(1 if visible else 0)
            call.send_int(1 if visible_frame else 0)
            call.finish()

    def name(self) -> str:
        with self._call("G_Name") as call:
            call.send_item(self)
            name = call.recv_line()
            call.finish()
        return name

    def set_name(self, name: str) -> None:
        with self._call("S_Name") as call:
            call.send_item(self)
            call.send_line(name)
            call.finish()

    # ------------------------------------------------------------------
    # Poses
    # ------------------------------------------------------------------

    def _get_pose(self, keyword: str) -> np.ndarray:
        with self._call(keyword) as call:
            call.send_item(self)
            pose = call.recv_pose()
            call.finish()
        return pose

    def _set_pose(self, keyword: str, pose) -> None:
        pose = as_pose(pose)
        with self._call(keyword) as call:
            call.send_item(self)
            call.send_pose(pose)
            call.finish()

    def pose(self) -> np.ndarray:
        """Pose relative to the parent (robot: flange pose)."""
        return self._get_pose("G_Hlocal")

    def set_pose(self, pose) -> None:
        self._set_pose("S_Hlocal", pose)

    def geometry_pose(self) -> np.ndarray:
        return self._get_pose("G_Hgeom")

    def set_geometry_pose(self, pose) -> None:
        self._set_pose("S_Hgeom", pose)

    def pose_abs(self) -> np.ndarray:
        """Pose relative to the station origin."""
        return self._get_pose("G_Hlocal_Abs")

    def set_pose_abs(self, pose) -> None:
        self._set_pose("S_Hlocal_Abs", pose)

    def pose_tool(self) -> np.ndarray:
        return self._get_pose("G_Tool")

    def set_pose_tool(self, tool: Union["Item", np.ndarray]) -> None:
        """Set the TCP from a pose, or link the robot to a tool item."""
        if _is_item(tool):
            with self._call("S_Tool_ptr") as call:
                call.send_item(tool)
                call.send_item(self)
                call.finish()
            return
        tool = as_pose(tool)
        with self._call("S_Tool") as call:
            call.send_pose(tool)
            call.send_item(self)
            call.finish()

    def pose_frame(self) -> np.ndarray:
        return self._get_pose("G_Frame")

    def set_pose_frame(self, frame: Union["Item", np.ndarray]) -> None:
        """Set the user frame from a pose, or link the robot to a frame item."""
        if _is_item(frame):
            with self._call("S_Frame_ptr") as call:
                call.send_item(frame)
                call.send_item(self)
                call.finish()
            return
        frame = as_pose(frame)
        with self._call("S_Frame") as call:
            call.send_pose(frame)
            call.send_item(self)
            call.finish()

    # ------------------------------------------------------------------
    # Appearance
    # ------------------------------------------------------------------

    def set_color(self, color: Sequence[float]) -> None:
        """Set the RGBA color (values 0..1, alpha defaults to 1)."""
        rgba = [float(c) for c in color]
        if len(rgba) == 3:
            rgba.append(1.0)
        if len(rgba) != 4:
            raise ValueError(f"Color must have 3 or 4 components, got {len(rgba)}")
        with self._call("S_Color") as call:
            call.send_item(self)
            call.send_array(rgba)
            call.finish()

    def scale(self, scale: Union[float, Sequence[float]]) -> None:
        """Scale uniformly (float) or per axis ([sx, sy, sz])."""
        if np.isscalar(scale):
            scale = [scale] * 3
        scale_xyz = np.asarray(scale, dtype=np.float64)
        if scale_xyz.size != 3:
            raise ValueError(f"Scale must have 3 components, got {scale_xyz.size}")
        with self._call("Scale") as call:
            call.send_item(self)
            call.send_array(scale_xyz)
            call.finish()

    # ------------------------------------------------------------------
    # Targets and machining
    # ------------------------------------------------------------------

    def set_machining_parameters(self, ncfile: str = "", part: Optional["Item"] = None,
                                 options: str = "") -> Tuple["Item", float]:
        """Update a machining project.  Returns the linked program and the
        update status."""
        with self._call("S_MachiningParams") as call:
            call.send_item(self)
            call.send_line(ncfile)
            call.send_item(part)
            call.send_line(f"NO_UPDATE {options}")
            program = call.recv_item(timeout=network.LONG_TIMEOUT_S)
            status = call.recv_int() / station.FIXED_POINT_SCALE
            call.finish()
        return self._item(program), status

    def set_as_cartesian_target(self) -> None:
        with self._call("S_Target_As_RT") as call:
            call.send_item(self)
            call.finish()

    def set_as_joint_target(self) -> None:
        with self._call("S_Target_As_JT") as call:
            call.send_item(self)
            call.finish()

    def is_joint_target(self) -> bool:
        with self._call("Target_Is_JT") as call:
            call.send_item(self)
            is_jt = call.recv_int()
            call.finish()
        return is_jt > 0

    # ------------------------------------------------------------------
    # Robot calls
    # ------------------------------------------------------------------

    def _get_array(self, keyword: str) -> np.ndarray:
        with self._call(keyword) as call:
            call.send_item(self)
            values = call.recv_array()
            call.finish()
        return values

    def joints(self) -> np.ndarray:
        """Current robot joints (or the joints of a target)."""
        return self._get_array("G_Thetas")

    def joints_home(self) -> np.ndarray:
        return self._get_array("G_Home")

    def set_joints_home(self, joints) -> None:
        joints = as_joints(joints)
        with self._call("S_Home") as call:
            call.send_array(joints)
            call.send_item(self)
            call.finish()

    def set_joints(self, joints) -> None:
        joints = as_joints(joints)
        with self._call("S_Thetas") as call:
            call.send_array(joints)
            call.send_item(self)
            call.finish()

    def object_link(self, link_id: int = 0) -> "Item":
        """Item for robot link *link_id* (0 is the base)."""
        with self._call("G_LinkObjId") as call:
            call.send_item(self)
            call.send_int(link_id)
            handle = call.recv_item()
            call.finish()
        return self._item(handle)

    def get_link(self, type_linked: int = station.ITEM_TYPE_ROBOT) -> "Item":
        with self._call("G_LinkType") as call:
            call.send_item(self)
            call.send_int(type_linked)
            handle = call.recv_item()
            call.finish()
        return self._item(handle)

    def joint_limits(self) -> Tuple[np.ndarray, np.ndarray]:
        """Return ``(lower, upper)`` joint limits."""
        with self._call("G_RobLimits") as call:
            call.send_item(self)
            lower = call.recv_array()
            upper = call.recv_array()
            call.recv_int()  # joint type code, unused
            call.finish()
        return lower, upper

    def set_robot(self, robot: Optional["Item"] = None) -> None:
        """Link a program or target to *robot* (first robot when omitted)."""
        with self._call("S_Robot") as call:
            call.send_item(self)
            call.send_item(robot)
            call.finish()

    def add_tool(self, tool_pose, tool_name: str = "New TCP") -> "Item":
        with self._call("AddToolEmpty") as call:
            call.send_item(self)
            call.send_pose(tool_pose)
            call.send_line(tool_name)
            handle = call.recv_item()
            call.finish()
        return self._item(handle)

    def solve_fk(self, joints) -> np.ndarray:
        """Flange pose relative to the robot base for *joints*."""
        joints = as_joints(joints)
        with self._call("G_FK") as call:
            call.send_array(joints)
            call.send_item(self)
            pose = call.recv_pose()
            call.finish()
        return pose

    def joints_config(self, joints) -> np.ndarray:
        """Configuration flags ``[REAR, LOWERARM, FLIP, ...]`` for *joints*."""
        joints = as_joints(joints)
        with self._call("G_Thetas_Config") as call:
            call.send_array(joints)
            call.send_item(self)
            config = call.recv_array()
            call.finish()
        return config

    @staticmethod
    def _base_to_flange(pose, tool=None, reference=None) -> np.ndarray:
        base2flange = as_pose(pose)
        if tool is not None:
            base2flange = base2flange @ pose_inv(as_pose(tool))
        if reference is not None:
            base2flange = as_pose(reference) @ base2flange
        return base2flange

    def solve_ik(self, pose, tool=None, reference=None) -> np.ndarray:
        """Joints closest to the current configuration reaching *pose*.

        *tool* and *reference* optionally express *pose* as TCP relative to a
        user frame instead of flange relative to the base.
        """
        with self._call("G_IK") as call:
            call.send_pose(self._base_to_flange(pose, tool, reference))
            call.send_item(self)
            joints = call.recv_array()
            call.finish()
        return joints

    def solve_ik_all(self, pose, tool=None, reference=None) -> DynamicMatrix:
        """All IK solutions, one per column."""
        with self._call("G_IK_cmpl") as call:
            call.send_pose(self._base_to_flange(pose, tool, reference))
            call.send_item(self)
            solutions = call.recv_matrix2d()
            call.finish()
        return solutions

    def connect_robot(self, robot_ip: str = "") -> bool:
        """Connect the station to the real robot controller."""
        with self._call("Connect") as call:
            call.send_item(self)
            call.send_line(robot_ip)
            status = call.recv_int()
            call.finish()
        return status != 0

    def disconnect_robot(self) -> bool:
        with self._call("Disconnect") as call:
            call.send_item(self)
            status = call.recv_int()
            call.finish()
        return status != 0

    # ------------------------------------------------------------------
    # Motion
    # ------------------------------------------------------------------

    def _add_move_instruction(self, target: "Item", move_type: int) -> None:
        with self._call("Add_INSMOVE") as call:
            call.send_item(target)
            call.send_item(self)
            call.send_int(move_type)
            call.finish()

    def move_j(self, target, blocking: bool = True) -> None:
        """Joint move to a target item, a joint vector or a pose.

        On a program item with a target item this appends a joint move
        instruction instead.
        """
        if self.item_type == station.ITEM_TYPE_PROGRAM and _is_item(target):
            self._add_move_instruction(target, station.MOVE_TYPE_JOINT)
            return
        self.station._move_x(target, self, station.MOVE_TYPE_JOINT, blocking)

    def move_l(self, target, blocking: bool = True) -> None:
        """Linear move; see :meth:`move_j`."""
        if self.item_type == station.ITEM_TYPE_PROGRAM and _is_item(target):
            self._add_move_instruction(target, station.MOVE_TYPE_LINEAR)
            return
        self.station._move_x(target, self, station.MOVE_TYPE_LINEAR, blocking)

    def move_c(self, target1, target2, blocking: bool = True) -> None:
        """Circular move through *target1* to *target2*."""
        self.station._move_c(target1, target2, self, blocking)

    def move_j_test(self, j1, j2, minstep_deg: float = -1) -> int:
        """Check a joint move for collisions; returns the collision count."""
        j1, j2 = as_joints(j1), as_joints(j2)
        with self._call("CollisionMove") as call:
            call.send_item(self)
            call.send_array(j1)
            call.send_array(j2)
            call.send_int(_fixed(minstep_deg))
            collision = call.recv_int(timeout=network.LONG_TIMEOUT_S)
            call.finish()
        return collision

    def move_l_test(self, j1, pose, minstep_deg: float = -1) -> int:
        """Check a linear move from *j1* to *pose* for collisions."""
        j1, pose = as_joints(j1), as_pose(pose)
        with self._call("CollisionMoveL") as call:
            call.send_item(self)
            call.send_array(j1)
            call.send_pose(pose)
            call.send_int(_fixed(minstep_deg))
            collision = call.recv_int(timeout=network.LONG_TIMEOUT_S)
            call.finish()
        return collision

    def set_speed(self, speed_linear: float, accel_linear: float = -1,
                  speed_joints: float = -1, accel_joints: float = -1) -> None:
        """Set speeds (mm/s, deg/s) and accelerations; -1 keeps a value."""
        with self._call("S_Speed4") as call:
            call.send_item(self)
            call.send_array([speed_linear, accel_linear, speed_joints, accel_joints])
            call.finish()

    def set_rounding(self, zonedata: float) -> None:
        with self._call("S_ZoneData") as call:
            call.send_int(_fixed(zonedata))
            call.send_item(self)
            call.finish()

    def show_sequence(self, sequence) -> None:
        """Display a joint sequence (one configuration per column)."""
        with self._call("Show_Seq") as call:
            call.send_matrix2d(sequence)
            call.send_item(self)
            call.finish()

    def busy(self) -> bool:
        with self._call("IsBusy") as call:
            call.send_item(self)
            busy = call.recv_int()
            call.finish()
        return busy > 0

    def stop(self) -> None:
        with self._call("Stop") as call:
            call.send_item(self)
            call.finish()

    def wait_move(self, timeout_s: float = network.LONG_TIMEOUT_S) -> None:
        """Block until the robot finished moving.

        The station acknowledges the request, then sends a second status word
        once motion is done; only the second read uses *timeout_s*.
        """
        with self._call("WaitMove") as call:
            call.send_item(self)
            call.finish()
            call.finish(timeout=timeout_s)

    # ------------------------------------------------------------------
    # Program calls
    # ------------------------------------------------------------------

    def make_program(self, filename: str = "") -> Tuple[bool, str]:
        """Generate the robot program.  Returns ``(success, log)``."""
        with self._call("MakeProg") as call:
            call.send_item(self)
            call.send_line(filename)
            prog_status = call.recv_int()
            prog_log = call.recv_line()
            call.finish()
        return prog_status > 1, prog_log

    def set_run_type(self, program_run_type: int) -> None:
        with self._call("S_ProgRunType") as call:
            call.send_item(self)
            call.send_int(program_run_type)
            call.finish()

    def run_program(self, parameters: str = "") -> int:
        """Start the program, optionally with call parameters."""
        keyword = "RunProgParam" if parameters else "RunProg"
        with self._call(keyword) as call:
            call.send_item(self)
            if parameters:
                call.send_line(parameters)
            prog_status = call.recv_int()
            call.finish()
        return prog_status

    def run_instruction(self, code: str, run_type: int = station.INSTRUCTION_CALL_PROGRAM) -> int:
        """Add a program call, raw code, thread start, comment or message."""
        code = code.replace("\n\n", "<br>").replace("\n", "<br>")
        with self._call("RunCode2") as call:
            call.send_item(self)
            call.send_line(code)
            call.send_int(run_type)
            prog_status = call.recv_int()
            call.finish()
        return prog_status

    def pause(self, time_ms: float = -1) -> None:
        """Pause instruction; a negative time waits for user input."""
        with self._call("RunPause") as call:
            call.send_item(self)
            call.send_int(_fixed(time_ms))
            call.finish()

    def set_do(self, io_var, io_value) -> None:
        with self._call("setDO") as call:
            call.send_item(self)
            call.send_line(str(io_var))
            call.send_line(str(io_value))
            call.finish()

    def wait_di(self, io_var, io_value, timeout_ms: float = -1) -> None:
        with self._call("waitDI") as call:
            call.send_item(self)
            call.send_line(str(io_var))
            call.send_line(str(io_value))
            call.send_int(_fixed(timeout_ms))
            call.finish()

    def custom_instruction(self, name: str, path_run: str, path_icon: str = "",
                           blocking: bool = True, cmd_run_on_robot: str = "") -> None:
        with self._call("InsCustom2") as call:
            call.send_item(self)
            call.send_line(name)
            call.send_line(path_run)
            call.send_line(path_icon)
            call.send_line(cmd_run_on_robot)
            call.send_int(1 if blocking else 0)
            call.finish()

    def show_instructions(self, visible: bool = True) -> None:
        with self._call("Prog_ShowIns") as call:
            call.send_item(self)
            call.send_int(1 if visible else 0)
            call.finish()

    def show_targets(self, visible: bool = True) -> None:
        with self._call("Prog_ShowTargets") as call:
            call.send_item(self)
            call.send_int(1 if visible else 0)
            call.finish()

    def instruction_count(self) -> int:
        with self._call("Prog_Nins") as call:
            call.send_item(self)
            count = call.recv_int()
            call.finish()
        return count

    def instruction(self, ins_id: int) -> ProgramInstruction:
        with self._call("Prog_GIns") as call:
            call.send_item(self)
            call.send_int(ins_id)
            instruction = ProgramInstruction(name=call.recv_line(), ins_type=call.recv_int())
            if instruction.ins_type == station.INS_TYPE_MOVE:
                instruction.move_type = call.recv_int()
                instruction.is_joint_target = call.recv_int() > 0
                instruction.pose = call.recv_pose()
                instruction.joints = call.recv_array()
            call.finish()
        return instruction

    def set_instruction(self, ins_id: int, instruction: ProgramInstruction) -> None:
        is_move = instruction.ins_type == station.INS_TYPE_MOVE
        if is_move:
            pose = np.eye(4) if instruction.pose is None else as_pose(instruction.pose)
            joints = as_joints(instruction.joints)
        with self._call("Prog_SIns") as call:
            call.send_item(self)
            call.send_int(ins_id)
            call.send_line(instruction.name)
            call.send_int(instruction.ins_type)
            if is_move:
                call.send_int(instruction.move_type)
                call.send_int(1 if instruction.is_joint_target else 0)
                call.send_pose(pose)
                call.send_array(joints)
            call.finish()

    def instruction_list(self) -> Tuple[DynamicMatrix, int]:
        """Program instructions as a matrix plus the error count."""
        with self._call("G_ProgInsList") as call:
            call.send_item(self)
            instructions = call.recv_matrix2d()
            errors = call.recv_int()
            call.finish()
        return instructions, errors

    def update(self, collision_check: int = station.COLLISION_OFF,
               timeout_s: float = network.LONG_TIMEOUT_S,
               mm_step: float = -1, deg_step: float = -1) -> ProgramUpdate:
        """Validate the program path and estimate cycle time and distance."""
        with self._call("Update2") as call:
            call.send_item(self)
            call.send_array([collision_check, mm_step, deg_step])
            values = call.recv_array(timeout=timeout_s)
            message = call.recv_line()
            call.finish()
        if values.size < 4:
            raise ProtocolFault(f"Update2 returned {values.size} values, expected at least 4")
        return ProgramUpdate(
            instructions=int(values[0]),
            time=float(values[1]),
            distance=float(values[2]),
            ok_ratio=float(values[3]),
            message=message,
        )

    def instruction_list_joints(self, mm_step: float = 10.0, deg_step: float = 5.0,
                                save_to_file: str = "") -> Tuple[int, str, Optional[DynamicMatrix]]:
        """Joint trajectory of the program.

        Returns ``(error_code, message, joints)``; ``joints`` is ``None`` when
        the list is written to *save_to_file* by the station instead.
        """
        joint_list = None
        with self._call("G_ProgJointList") as call:
            call.send_item(self)
            call.send_array([mm_step, deg_step])
            call.send_line(save_to_file)
            if not save_to_file:
                joint_list = call.recv_matrix2d(timeout=network.LONG_TIMEOUT_S)
            error_code = call.recv_int()
            message = call.recv_line()
            call.finish()
        return error_code, message, joint_list
