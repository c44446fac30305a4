from .logger import setup_root_logger
from .transforms import (
    pose_2_xyzrpw,
    pose_inv,
    rotx,
    roty,
    rotz,
    transl,
    xyzrpw_2_pose,
)

__all__ = [
    "setup_root_logger",
    "transl",
    "rotx",
    "roty",
    "rotz",
    "pose_2_xyzrpw",
    "xyzrpw_2_pose",
    "pose_inv",
]
