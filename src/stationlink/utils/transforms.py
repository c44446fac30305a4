"""Homogeneous transform helpers (4x4 numpy poses, millimeters and degrees).

Euler convention: ``H = transl(x, y, z) @ rotz(w) @ roty(p) @ rotx(r)``.
"""

import math

import numpy as np


def transl(x: float, y: float = 0.0, z: float = 0.0) -> np.ndarray:
    pose = np.eye(4)
    pose[:3, 3] = (x, y, z)
    return pose


def rotx(rx: float) -> np.ndarray:
    """Rotation around X, *rx* in radians."""
    c, s = math.cos(rx), math.sin(rx)
    return np.array([
        [1.0, 0.0, 0.0, 0.0],
        [0.0, c, -s, 0.0],
        [0.0, s, c, 0.0],
        [0.0, 0.0, 0.0, 1.0],
    ])


def roty(ry: float) -> np.ndarray:
    """Rotation around Y, *ry* in radians."""
    c, s = math.cos(ry), math.sin(ry)
    return np.array([
        [c, 0.0, s, 0.0],
        [0.0, 1.0, 0.0, 0.0],
        [-s, 0.0, c, 0.0],
        [0.0, 0.0, 0.0, 1.0],
    ])


def rotz(rz: float) -> np.ndarray:
    """Rotation around Z, *rz* in radians."""
    c, s = math.cos(rz), math.sin(rz)
    return np.array([
        [c, -s, 0.0, 0.0],
        [s, c, 0.0, 0.0],
        [0.0, 0.0, 1.0, 0.0],
        [0.0, 0.0, 0.0, 1.0],
    ])


def xyzrpw_2_pose(xyzrpw) -> np.ndarray:
    """Build a pose from ``[x, y, z, r, p, w]`` (mm, degrees)."""
    x, y, z, r, p, w = (float(v) for v in xyzrpw)
    a, b, c = math.radians(r), math.radians(p), math.radians(w)
    ca, sa = math.cos(a), math.sin(a)
    cb, sb = math.cos(b), math.sin(b)
    cc, sc = math.cos(c), math.sin(c)
    return np.array([
        [cb * cc, cc * sa * sb - ca * sc, sa * sc + ca * cc * sb, x],
        [cb * sc, ca * cc + sa * sb * sc, ca * sb * sc - cc * sa, y],
        [-sb, cb * sa, ca * cb, z],
        [0.0, 0.0, 0.0, 1.0],
    ])


def pose_2_xyzrpw(pose) -> np.ndarray:
    """Inverse of :func:`xyzrpw_2_pose`.

    At the gimbal singularities (``|pose[2, 0]| ~ 1``) ``r`` is fixed to 0.
    """
    H = np.asarray(pose, dtype=np.float64)
    x, y, z = H[0, 3], H[1, 3], H[2, 3]
    if H[2, 0] > 1.0 - 1e-6:
        p = -math.pi / 2
        r = 0.0
        w = math.atan2(-H[1, 2], H[1, 1])
    elif H[2, 0] < -1.0 + 1e-6:
        p = math.pi / 2
        r = 0.0
        w = math.atan2(H[1, 2], H[1, 1])
    else:
        p = math.atan2(-H[2, 0], math.hypot(H[0, 0], H[1, 0]))
        w = math.atan2(H[1, 0], H[0, 0])
        r = math.atan2(H[2, 1], H[2, 2])
    return np.array([x, y, z, math.degrees(r), math.degrees(p), math.degrees(w)])


def pose_inv(pose) -> np.ndarray:
    """Invert a rigid transform without a general matrix inverse."""
    H = np.asarray(pose, dtype=np.float64)
    R = H[:3, :3]
    inv = np.eye(4)
    inv[:3, :3] = R.T
    inv[:3, 3] = -R.T @ H[:3, 3]
    return inv
