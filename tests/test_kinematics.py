import math

import numpy as np
import pytest

from gpplanning.kinematics import (
    BodySphere,
    FKResult,
    ForwardKinematics,
    RobotModel,
    yaw_pitch_roll,
)


def _rz(a):
    c, s = math.cos(a), math.sin(a)
    return np.array([[c, -s, 0.0], [s, c, 0.0], [0.0, 0.0, 1.0]])


def _ry(a):
    c, s = math.cos(a), math.sin(a)
    return np.array([[c, 0.0, s], [0.0, 1.0, 0.0], [-s, 0.0, c]])


def _rx(a):
    c, s = math.cos(a), math.sin(a)
    return np.array([[1.0, 0.0, 0.0], [0.0, c, -s], [0.0, s, c]])


class PlanarBase(ForwardKinematics):
    """x, y, theta base with a second link one unit ahead."""

    def __init__(self):
        super().__init__(3, 2)

    def forward_kinematics(self, jp, jv=None, compute_jacobians=False):
        x, y, th = jp
        p0 = np.eye(4)
        p0[:3, :3] = _rz(th)
        p0[:3, 3] = (x, y, 0.0)
        offset = np.eye(4)
        offset[0, 3] = 1.0
        poses = [p0, p0 @ offset]
        vels = None
        if jv is not None:
            vx, vy, w = jv
            vels = [
                np.array([vx, vy, 0.0]),
                np.array([vx - w * math.sin(th), vy + w * math.cos(th), 0.0]),
            ]
        return FKResult(poses, vels)


def test_yaw_pitch_roll_identity():
    assert yaw_pitch_roll(np.eye(3)) == pytest.approx((0.0, 0.0, 0.0))


@pytest.mark.parametrize("angles", [(0.3, -0.2, 0.7), (-1.2, 0.5, 2.0), (2.5, 0.1, -0.4)])
def test_yaw_pitch_roll_round_trip(angles):
    yaw, pitch, roll = angles
    rot = _rz(yaw) @ _ry(pitch) @ _rx(roll)
    assert yaw_pitch_roll(rot) == pytest.approx(angles)


def test_forward_kinematics_position():
    fk = PlanarBase()
    pos = ForwardKinematics.forward_kinematics_position(fk, (2.0, 3.0, 0.0))
    np.testing.assert_allclose(pos, [[2.0, 3.0], [3.0, 3.0], [0.0, 0.0]])


def test_forward_kinematics_pose_holds_yaw_and_translation():
    fk = PlanarBase()
    pose = ForwardKinematics.forward_kinematics_pose(fk, (2.0, 3.0, 0.4))
    assert pose.shape == (6, 2)
    np.testing.assert_allclose(pose[0], [0.4, 0.4])
    np.testing.assert_allclose(pose[1:3], np.zeros((2, 2)), atol=1e-12)
    np.testing.assert_allclose(pose[3:, 0], [2.0, 3.0, 0.0])
    np.testing.assert_allclose(pose[3:, 1], [2.0 + math.cos(0.4), 3.0 + math.sin(0.4), 0.0])


def test_forward_kinematics_vel():
    fk = PlanarBase()
    vel = ForwardKinematics.forward_kinematics_vel(fk, (0.0, 0.0, 0.0), (1.0, 2.0, 0.5))
    np.testing.assert_allclose(vel, [[1.0, 1.0], [2.0, 2.5], [0.0, 0.0]])


def test_forward_kinematics_vel_matches_position_difference():
    fk = PlanarBase()
    jp = np.array([0.5, -0.3, 0.8])
    jv = np.array([0.2, 0.1, -0.7])
    h = 1e-6
    position = ForwardKinematics.forward_kinematics_position
    numeric = (position(fk, jp + h * jv) - position(fk, jp - h * jv)) / (2 * h)
    np.testing.assert_allclose(
        ForwardKinematics.forward_kinematics_vel(fk, jp, jv), numeric, atol=1e-6
    )


def test_accessors():
    fk = PlanarBase()
    assert ForwardKinematics.dof(fk) == 3
    assert ForwardKinematics.nr_links(fk) == 2


def test_abstract_model_cannot_be_built():
    with pytest.raises(TypeError):
        ForwardKinematics(2, 2)


def test_body_sphere_fields():
    sphere = BodySphere(1, 0.5, (-1, 0, 0))
    assert sphere.link_id == 1
    assert sphere.radius == 0.5
    np.testing.assert_array_equal(sphere.center, [-1.0, 0.0, 0.0])


def test_robot_model_accessors():
    spheres = [BodySphere(0, 0.5, (-1, 0, 0)), BodySphere(1, 0.25, (0, 0, 0))]
    model = RobotModel(PlanarBase(), spheres)
    assert model.dof() == 3
    assert model.nr_body_spheres() == 2
    assert model.sphere_link_id(1) == 1
    assert model.sphere_radius(1) == 0.25
    np.testing.assert_array_equal(model.sphere_center_wrt_link(0), [-1.0, 0.0, 0.0])
    assert model.fk_model.nr_links() == 2


def test_robot_model_sphere_index_out_of_range():
    model = RobotModel(PlanarBase(), [BodySphere(0, 0.5, (0, 0, 0))])
    with pytest.raises(IndexError):
        model.sphere_radius(3)