import numpy as np
import pytest
from scipy.spatial.transform import Rotation

from stationlink.utils.transforms import (
    pose_2_xyzrpw,
    pose_inv,
    rotx,
    roty,
    rotz,
    transl,
    xyzrpw_2_pose,
)


@pytest.mark.parametrize("rpw", [(10, 20, 30), (-45, 5, 170), (0, 0, 0), (90, -30, -120)])
def test_xyzrpw_matches_scipy_euler(rpw):
    r, p, w = rpw
    pose = xyzrpw_2_pose([1, 2, 3, r, p, w])
    expected = Rotation.from_euler("ZYX", [w, p, r], degrees=True).as_matrix()
    np.testing.assert_allclose(pose[:3, :3], expected, atol=1e-12)
    np.testing.assert_array_equal(pose[:3, 3], [1, 2, 3])
    np.testing.assert_array_equal(pose[3], [0, 0, 0, 1])


def test_xyzrpw_equals_composed_rotations():
    pose = xyzrpw_2_pose([10, -20, 30, 15, 25, 35])
    composed = transl(10, -20, 30) @ rotz(np.radians(35)) @ roty(np.radians(25)) @ rotx(np.radians(15))
    np.testing.assert_allclose(pose, composed, atol=1e-12)


def test_pose_2_xyzrpw_recovers_angles():
    xyzrpw = np.array([100.0, 200.0, -50.0, 12.0, -34.0, 56.0])
    np.testing.assert_allclose(pose_2_xyzrpw(xyzrpw_2_pose(xyzrpw)), xyzrpw, atol=1e-9)


def test_pose_2_xyzrpw_gimbal_lock():
    pose = xyzrpw_2_pose([0, 0, 0, 0, 90, 40])
    x, y, z, r, p, w = pose_2_xyzrpw(pose)
    assert r == 0.0
    assert p == pytest.approx(90.0)
    np.testing.assert_allclose(xyzrpw_2_pose([x, y, z, r, p, w]), pose, atol=1e-9)


def test_pose_inv():
    pose = xyzrpw_2_pose([5, 6, 7, 30, 40, 50])
    np.testing.assert_allclose(pose @ pose_inv(pose), np.eye(4), atol=1e-12)
    np.testing.assert_allclose(pose_inv(pose), np.linalg.inv(pose), atol=1e-12)
