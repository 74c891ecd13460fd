"""Unary factors on the workspace state of a robot link.

These factors run forward kinematics for a configuration and compare the
resulting position, orientation or full pose of one link with a desired
value. Jacobians are taken with respect to the configuration and use the
link pose jacobians of the forward kinematics model. Those jacobians live in
the pose tangent space, rotation first and translation second, with
perturbations applied on the right.
"""

from __future__ import annotations

import math

import numpy as np

from gpplanning.kinematics import ForwardKinematics, RobotModel


def _skew(v) -> np.ndarray:
    x, y, z = v
    return np.array([[0.0, -z, y], [z, 0.0, -x], [-y, x, 0.0]])


def _vee(m: np.ndarray) -> np.ndarray:
    return np.array([m[2, 1] - m[1, 2], m[0, 2] - m[2, 0], m[1, 0] - m[0, 1]])


def rot3_logmap(rotation) -> np.ndarray:
    """Rotation vector (axis times angle) of a 3x3 rotation matrix."""
    r = np.asarray(rotation, dtype=float).reshape(3, 3)
    vee = _vee(r)
    s = 0.5 * float(np.linalg.norm(vee))
    c = 0.5 * (float(r[0, 0] + r[1, 1] + r[2, 2]) - 1.0)
    theta = math.atan2(s, c)
    if theta < 1e-10:
        return 0.5 * vee
    if theta > math.pi - 1e-6:
        sym = 0.5 * (r + r.T)
        b = (sym - c * np.eye(3)) / (1.0 - c)
        i = int(np.argmax(np.diag(b)))
        axis = b[:, i] / math.sqrt(max(b[i, i], 1e-300))
        if float(axis @ vee) < 0.0:
            axis = -axis
        return theta * axis
    return theta * vee / (2.0 * s)


def _rot3_left_jacobian(omega: np.ndarray) -> np.ndarray:
    phi = float(np.linalg.norm(omega))
    w = _skew(omega)
    if phi < 1e-5:
        return np.eye(3) + 0.5 * w + (w @ w) / 6.0
    return (
        np.eye(3)
        + (1.0 - math.cos(phi)) / phi**2 * w
        + (phi - math.sin(phi)) / phi**3 * (w @ w)
    )


def _rot3_logmap_derivative(omega: np.ndarray) -> np.ndarray:
    """Inverse right jacobian of SO(3) at ``omega``."""
    phi = float(np.linalg.norm(omega))
    w = _skew(omega)
    if phi < 1e-5:
        return np.eye(3) + 0.5 * w + (w @ w) / 12.0
    coeff = 1.0 / phi**2 - (1.0 + math.cos(phi)) / (2.0 * phi * math.sin(phi))
    return np.eye(3) + 0.5 * w + coeff * (w @ w)


def pose3_logmap(pose) -> np.ndarray:
    """Tangent vector ``(omega, v)`` of a 4x4 homogeneous pose."""
    t = np.asarray(pose, dtype=float).reshape(4, 4)
    omega = rot3_logmap(t[:3, :3])
    v = np.linalg.solve(_rot3_left_jacobian(omega), t[:3, 3])
    return np.concatenate([omega, v])


def _pose3_logmap_derivative(xi: np.ndarray) -> np.ndarray:
    """Inverse right jacobian of SE(3) at ``xi``."""
    ad = np.zeros((6, 6))
    w = _skew(xi[:3])
    ad[:3, :3] = w
    ad[3:, :3] = _skew(xi[3:])
    ad[3:, 3:] = w
    step = -ad
    term = np.eye(6)
    total = np.eye(6)
    for k in range(1, 60):
        term = term @ step / (k + 1)
        total = total + term
        if np.max(np.abs(term)) < 1e-18:
            break
    return np.linalg.inv(total)


def _link_pose(fk_model: ForwardKinematics, conf, link: int, with_jacobian: bool):
    result = fk_model.forward_kinematics(conf, None, with_jacobian)
    if not 0 <= link < len(result.poses):
        raise IndexError(f"link {link} outside robot with {len(result.poses)} links")
    pose = np.asarray(result.poses[link], dtype=float)
    jacobian = None
    if with_jacobian:
        if result.J_pose_jp is None:
            raise ValueError("forward kinematics model returned no pose jacobians")
        jacobian = np.asarray(result.J_pose_jp[link], dtype=float)
    return pose, jacobian


class _WorkspaceFactor:
    """Common parts of the workspace factors."""

    noise_dim = 3

    def __init__(self, pose_key, cost_sigma) -> None:
        self.key = pose_key
        self.cost_sigma = cost_sigma

    def _compute(self, conf, with_jacobian: bool):
        raise NotImplementedError

    def evaluate_error(self, conf) -> np.ndarray:
        """Error vector at configuration ``conf``."""
        err, _ = self._compute(conf, False)
        return err

    def error_and_jacobian(self, conf) -> tuple[np.ndarray, np.ndarray]:
        """Error vector and its jacobian with respect to ``conf``."""
        return self._compute(conf, True)

    def __str__(self) -> str:
        return f"{type(self).__name__} :\n  key: {self.key}"


class GoalFactorArm(_WorkspaceFactor):
    """Pulls the end of an arm (link ``dof - 1``) to a 3-D destination point."""

    def __init__(self, pose_key, cost_sigma, arm: ForwardKinematics, dest_point) -> None:
        super().__init__(pose_key, cost_sigma)
        self.arm = arm
        self.dest_point = np.asarray(dest_point, dtype=float).reshape(3)

    def _compute(self, conf, with_jacobian):
        pose, jac = _link_pose(self.arm, conf, self.arm.dof() - 1, with_jacobian)
        err = pose[:3, 3] - self.dest_point
        h = pose[:3, :3] @ jac[3:, :] if with_jacobian else None
        return err, h

    def evaluate_error(self, conf) -> np.ndarray:
        return super().evaluate_error(conf)

    def error_and_jacobian(self, conf) -> tuple[np.ndarray, np.ndarray]:
        return super().error_and_jacobian(conf)

    def __str__(self) -> str:
        return f"{super().__str__()}\n  dest: {self.dest_point.tolist()}"


class GaussianPriorWorkspacePosition(_WorkspaceFactor):
    """Gaussian prior on the workspace position of one joint of a robot."""

    def __init__(self, pose_key, robot: RobotModel, joint, des_position, cost_sigma) -> None:
        super().__init__(pose_key, cost_sigma)
        self.robot = robot
        self.joint = int(joint)
        self.des_position = np.asarray(des_position, dtype=float).reshape(3)

    def _compute(self, conf, with_jacobian):
        pose, jac = _link_pose(self.robot.fk_model, conf, self.joint, with_jacobian)
        err = pose[:3, 3] - self.des_position
        h = pose[:3, :3] @ jac[3:, :] if with_jacobian else None
        return err, h

    def evaluate_error(self, conf) -> np.ndarray:
        return super().evaluate_error(conf)

    def error_and_jacobian(self, conf) -> tuple[np.ndarray, np.ndarray]:
        return super().error_and_jacobian(conf)

    def __str__(self) -> str:
        return f"{super().__str__()}\n  desired position: {self.des_position.tolist()}"


class GaussianPriorWorkspaceOrientation(_WorkspaceFactor):
    """Gaussian prior on the workspace orientation of one joint of a robot."""

    def __init__(self, pose_key, robot: RobotModel, joint, des_orientation, cost_sigma) -> None:
        super().__init__(pose_key, cost_sigma)
        self.robot = robot
        self.joint = int(joint)
        self.des_orientation = np.asarray(des_orientation, dtype=float).reshape(3, 3)

    def _compute(self, conf, with_jacobian):
        pose, jac = _link_pose(self.robot.fk_model, conf, self.joint, with_jacobian)
        err = rot3_logmap(self.des_orientation.T @ pose[:3, :3])
        h = _rot3_logmap_derivative(err) @ jac[:3, :] if with_jacobian else None
        return err, h

    def evaluate_error(self, conf) -> np.ndarray:
        return super().evaluate_error(conf)

    def error_and_jacobian(self, conf) -> tuple[np.ndarray, np.ndarray]:
        return super().error_and_jacobian(conf)

    def __str__(self) -> str:
        return f"{super().__str__()}\n  desired orientation: {self.des_orientation.tolist()}"


class GaussianPriorWorkspacePose(_WorkspaceFactor):
    """Gaussian prior on the full workspace pose of one joint of a robot."""

    noise_dim = 6

    def __init__(self, pose_key, robot: RobotModel, joint, des_pose, cost_sigma) -> None:
        super().__init__(pose_key, cost_sigma)
        self.robot = robot
        self.joint = int(joint)
        self.des_pose = np.asarray(des_pose, dtype=float).reshape(4, 4)

    def _compute(self, conf, with_jacobian):
        pose, jac = _link_pose(self.robot.fk_model, conf, self.joint, with_jacobian)
        err = pose3_logmap(np.linalg.inv(self.des_pose) @ pose)
        h = _pose3_logmap_derivative(err) @ jac if with_jacobian else None
        return err, h

    def evaluate_error(self, conf) -> np.ndarray:
        return super().evaluate_error(conf)

    def error_and_jacobian(self, conf) -> tuple[np.ndarray, np.ndarray]:
        return super().error_and_jacobian(conf)

    def __str__(self) -> str:
        return f"{super().__str__()}\n  desired pose: {self.des_pose.tolist()}"