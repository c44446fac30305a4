"""Value types shared by the codec and the Station/Item API."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar, NamedTuple, Optional, Sequence, Union

import numpy as np

from stationlink.configs.constants import station

_UINT64_LIMIT = 1 << 64


@dataclass(frozen=True)
class RemoteHandle:
    """Opaque reference to an object owned by the station.

    Only ``id`` takes part in equality and hashing.  The id is echoed back to
    the station and never interpreted locally.
    """
    id: int
    type: int = field(default=station.ITEM_TYPE_INVALID, compare=False)

    def __post_init__(self):
        if not isinstance(self.id, int) or isinstance(self.id, bool):
            raise TypeError(f"Handle id must be an int, got {type(self.id).__name__}")
        if not 0 <= self.id < _UINT64_LIMIT:
            raise ValueError(f"Handle id out of uint64 range: {self.id}")

    @property
    def valid(self) -> bool:
        return self.id != 0

    @classmethod
    def null(cls) -> "RemoteHandle":
        return cls(0)

    def __repr__(self) -> str:
        return f"RemoteHandle(id={self.id:#x}, type={self.type})"


NULL_HANDLE = RemoteHandle(0)


# ---------------------------------------------------------------------------
# Move targets
# ---------------------------------------------------------------------------

@dataclass(eq=False)
class JointsTarget:
    joints: np.ndarray
    selector: ClassVar[int] = station.TARGET_SELECTOR_JOINTS


@dataclass(eq=False)
class PoseTarget:
    pose: np.ndarray
    selector: ClassVar[int] = station.TARGET_SELECTOR_POSE


@dataclass(frozen=True)
class ItemTarget:
    handle: RemoteHandle
    selector: ClassVar[int] = station.TARGET_SELECTOR_ITEM


MoveTarget = Union[JointsTarget, PoseTarget, ItemTarget]


def as_joints(values: Optional[Sequence[float]]) -> Optional[np.ndarray]:
    """Coerce *values* into a 1-D float64 joint vector (``None`` passes through)."""
    if values is None:
        return None
    joints = np.asarray(values, dtype=np.float64).reshape(-1)
    if joints.size > station.MAX_JOINTS:
        raise ValueError(f"Joint vector has {joints.size} values, maximum is {station.MAX_JOINTS}")
    return joints


def as_pose(value: Any) -> np.ndarray:
    """Coerce *value* into a 4x4 float64 homogeneous matrix."""
    pose = np.asarray(value, dtype=np.float64)
    if pose.shape != (4, 4):
        raise ValueError(f"Pose must be a 4x4 matrix, got shape {pose.shape}")
    return pose


def as_move_target(target: Any) -> MoveTarget:
    """Classify a user supplied target.

    Accepts an explicit target, an object exposing ``handle`` (an Item), a
    :class:`RemoteHandle`, a 4x4 matrix (pose) or a 1-D vector (joints).
    """
    if isinstance(target, (JointsTarget, PoseTarget, ItemTarget)):
        return target
    if isinstance(target, RemoteHandle):
        return ItemTarget(target)
    handle = getattr(target, "handle", None)
    if isinstance(handle, RemoteHandle):
        return ItemTarget(handle)

    array = np.asarray(target, dtype=np.float64)
    if array.shape == (4, 4):
        return PoseTarget(array)
    if array.ndim == 1:
        return JointsTarget(as_joints(array))
    raise TypeError(f"Cannot interpret {type(target).__name__} of shape {array.shape} as a move target")


# ---------------------------------------------------------------------------
# Program instructions
# ---------------------------------------------------------------------------

@dataclass
class ProgramInstruction:
    """One instruction of a station program as reported by ``G_ProgInstruction``."""
    name: str
    ins_type: int
    move_type: int = station.MOVE_TYPE_INVALID
    is_joint_target: bool = False
    pose: Optional[np.ndarray] = None
    joints: Optional[np.ndarray] = None


class ProgramUpdate(NamedTuple):
    """Result of validating a program path (``Update2``)."""
    instructions: int
    time: float
    distance: float
    ok_ratio: float
    message: str
