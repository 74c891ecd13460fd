import math

import numpy as np
import pytest

from gpplanning.kinematics import BodySphere, FKResult, ForwardKinematics, RobotModel
from gpplanning.workspace_factors import (
    GaussianPriorWorkspaceOrientation,
    GaussianPriorWorkspacePose,
    GaussianPriorWorkspacePosition,
    GoalFactorArm,
    pose3_logmap,
    rot3_logmap,
)


def _rz(q):
    c, s = math.cos(q), math.sin(q)
    m = np.eye(4)
    m[:2, :2] = [[c, -s], [s, c]]
    return m


def _tx(a):
    m = np.eye(4)
    m[0, 3] = a
    return m


def _rx3(q):
    c, s = math.cos(q), math.sin(q)
    return np.array([[1.0, 0.0, 0.0], [0.0, c, -s], [0.0, s, c]])


class PlanarChain(ForwardKinematics):
    """Revolute chain with joints about the local z axis and links along x."""

    def __init__(self, lengths, base=None):
        super().__init__(len(lengths), len(lengths))
        self.lengths = list(lengths)
        self.base = np.eye(4) if base is None else np.asarray(base, dtype=float)

    def forward_kinematics(self, jp, jv=None, compute_jacobians=False):
        q = np.asarray(jp, dtype=float)
        frames, poses = [], []
        t = self.base.copy()
        for qk, ak in zip(q, self.lengths):
            frames.append(t.copy())
            t = t @ _rz(qk) @ _tx(ak)
            poses.append(t.copy())
        jacobians = None
        if compute_jacobians:
            jacobians = []
            for i, pose in enumerate(poses):
                rot, trans = pose[:3, :3], pose[:3, 3]
                jac = np.zeros((6, self.dof()))
                for k in range(i + 1):
                    axis = frames[k][:3, 2]
                    origin = frames[k][:3, 3]
                    jac[:3, k] = rot.T @ axis
                    jac[3:, k] = rot.T @ np.cross(axis, trans - origin)
                jacobians.append(jac)
        return FKResult(poses, None, jacobians)


def _tilted_base():
    base = np.eye(4)
    base[:3, :3] = _rx3(0.3)
    base[:3, 3] = [0.5, 1.5, 0.2]
    return base


def _numerical_jacobian(fn, x, h=1e-6):
    x = np.asarray(x, dtype=float)
    f0 = fn(x)
    jac = np.zeros((f0.size, x.size))
    for k in range(x.size):
        step = np.zeros_like(x)
        step[k] = h
        jac[:, k] = (fn(x + step) - fn(x - step)) / (2 * h)
    return jac


def _so3_exp(omega):
    phi = np.linalg.norm(omega)
    w = np.array([[0, -omega[2], omega[1]], [omega[2], 0, -omega[0]], [-omega[1], omega[0], 0]])
    if phi < 1e-12:
        return np.eye(3) + w
    return np.eye(3) + math.sin(phi) / phi * w + (1 - math.cos(phi)) / phi**2 * (w @ w)


def _se3_exp(xi):
    omega, u = xi[:3], xi[3:]
    phi = np.linalg.norm(omega)
    w = np.array([[0, -omega[2], omega[1]], [omega[2], 0, -omega[0]], [-omega[1], omega[0], 0]])
    jl = np.eye(3) + (1 - math.cos(phi)) / phi**2 * w + (phi - math.sin(phi)) / phi**3 * (w @ w)
    out = np.eye(4)
    out[:3, :3] = _so3_exp(omega)
    out[:3, 3] = jl @ u
    return out


@pytest.fixture
def chain():
    return PlanarChain([1.0, 2.0], _tilted_base())


@pytest.fixture
def robot(chain):
    return RobotModel(chain, [BodySphere(0, 0.5, [0.0, 0.0, 0.0])])


CONFIGS = [np.array([0.0, 0.0]), np.array([math.pi / 4, 0.0]), np.array([0.7, -1.1])]


@pytest.mark.parametrize("q", CONFIGS)
def test_goal_factor_error_matches_end_position(chain, q):
    dest = np.array([0.1, 0.2, 0.3])
    factor = GoalFactorArm(0, 1.0, chain, dest)
    expected = chain.forward_kinematics_position(q)[:, 1] - dest
    np.testing.assert_allclose(factor.evaluate_error(q), expected, atol=1e-12)


@pytest.mark.parametrize("q", CONFIGS)
def test_goal_factor_jacobian(chain, q):
    factor = GoalFactorArm(0, 1.0, chain, [0.1, 0.2, 0.3])
    err, jac = factor.error_and_jacobian(q)
    np.testing.assert_allclose(err, factor.evaluate_error(q), atol=1e-12)
    np.testing.assert_allclose(jac, _numerical_jacobian(factor.evaluate_error, q), atol=1e-6)


@pytest.mark.parametrize("joint", [0, 1])
def test_position_prior_zero_at_desired(chain, robot, joint):
    q = np.array([0.4, 0.9])
    des = chain.forward_kinematics_position(q)[:, joint]
    factor = GaussianPriorWorkspacePosition(0, robot, joint, des, 1.0)
    np.testing.assert_allclose(factor.evaluate_error(q), np.zeros(3), atol=1e-12)


@pytest.mark.parametrize("q", CONFIGS)
@pytest.mark.parametrize("joint", [0, 1])
def test_position_prior_jacobian(robot, q, joint):
    factor = GaussianPriorWorkspacePosition(0, robot, joint, [0.0, 1.0, 0.5], 1.0)
    _, jac = factor.error_and_jacobian(q)
    np.testing.assert_allclose(jac, _numerical_jacobian(factor.evaluate_error, q), atol=1e-6)


def test_orientation_prior_error_is_joint_angle():
    robot = RobotModel(PlanarChain([1.0, 2.0]), [])
    q = np.array([math.pi / 4, 0.0])
    factor = GaussianPriorWorkspaceOrientation(0, robot, 1, np.eye(3), 1.0)
    np.testing.assert_allclose(factor.evaluate_error(q), [0.0, 0.0, math.pi / 4], atol=1e-12)


@pytest.mark.parametrize("q", CONFIGS)
@pytest.mark.parametrize("joint", [0, 1])
def test_orientation_prior_jacobian(robot, q, joint):
    des = _so3_exp(np.array([0.2, -0.1, 0.5]))
    factor = GaussianPriorWorkspaceOrientation(0, robot, joint, des, 1.0)
    _, jac = factor.error_and_jacobian(q)
    np.testing.assert_allclose(jac, _numerical_jacobian(factor.evaluate_error, q), atol=1e-6)


def test_pose_prior_zero_at_desired(chain, robot):
    q = np.array([-0.3, 1.2])
    des = chain.forward_kinematics(q).poses[1]
    factor = GaussianPriorWorkspacePose(0, robot, 1, des, 1.0)
    err, jac = factor.error_and_jacobian(q)
    np.testing.assert_allclose(err, np.zeros(6), atol=1e-12)
    assert jac.shape == (6, 2)


@pytest.mark.parametrize("q", CONFIGS)
@pytest.mark.parametrize("joint", [0, 1])
def test_pose_prior_jacobian(robot, q, joint):
    des = _se3_exp(np.array([0.1, 0.3, -0.4, 0.5, -0.2, 1.0]))
    factor = GaussianPriorWorkspacePose(0, robot, joint, des, 1.0)
    _, jac = factor.error_and_jacobian(q)
    np.testing.assert_allclose(jac, _numerical_jacobian(factor.evaluate_error, q), atol=1e-6)


def test_joint_out_of_range_raises(robot):
    factor = GaussianPriorWorkspacePosition(0, robot, 5, [0.0, 0.0, 0.0], 1.0)
    with pytest.raises(IndexError):
        factor.evaluate_error([0.0, 0.0])


def test_rot3_logmap_identity():
    np.testing.assert_allclose(rot3_logmap(np.eye(3)), np.zeros(3), atol=1e-15)


def test_rot3_logmap_quarter_turn():
    np.testing.assert_allclose(rot3_logmap(_rz(math.pi / 2)[:3, :3]), [0, 0, math.pi / 2], atol=1e-12)


def test_rot3_logmap_half_turn_has_angle_pi():
    omega = rot3_logmap(_rz(math.pi)[:3, :3])
    assert np.linalg.norm(omega) == pytest.approx(math.pi)
    np.testing.assert_allclose(np.abs(omega), [0.0, 0.0, math.pi], atol=1e-9)


@pytest.mark.parametrize("seed", range(5))
def test_rot3_logmap_round_trip(seed):
    omega = np.random.default_rng(seed).uniform(-1.5, 1.5, 3)
    np.testing.assert_allclose(rot3_logmap(_so3_exp(omega)), omega, atol=1e-10)


def test_pose3_logmap_pure_translation():
    pose = np.eye(4)
    pose[:3, 3] = [1.0, -2.0, 3.0]
    np.testing.assert_allclose(pose3_logmap(pose), [0, 0, 0, 1.0, -2.0, 3.0], atol=1e-12)


@pytest.mark.parametrize("seed", range(5))
def test_pose3_logmap_round_trip(seed):
    xi = np.random.default_rng(seed).uniform(-1.5, 1.5, 6)
    np.testing.assert_allclose(pose3_logmap(_se3_exp(xi)), xi, atol=1e-10)