"""Unary obstacle avoidance factors built on signed distance fields.

Each factor checks every body sphere of a robot against a signed distance
field and produces one hinge-loss error per sphere. The planar variant uses
only the x and y coordinates of the sphere centres.
"""

from __future__ import annotations

import numpy as np

from gpplanning.costs import hinge_loss_obstacle_cost
from gpplanning.kinematics import RobotModel


def _skew(v: np.ndarray) -> np.ndarray:
    x, y, z = v
    return np.array([[0.0, -z, y], [z, 0.0, -x], [-y, x, 0.0]])


def _sphere_centers(robot: RobotModel, conf, with_jacobians: bool):
    """World positions of all body spheres, with optional 3 x dof jacobians."""
    fk = robot.fk_model.forward_kinematics(conf, None, with_jacobians)
    centers = []
    jacobians = [] if with_jacobians else None
    for i in range(robot.nr_body_spheres()):
        link = robot.sphere_link_id(i)
        pose = np.asarray(fk.poses[link], dtype=float)
        rot, trans = pose[:3, :3], pose[:3, 3]
        local = robot.sphere_center_wrt_link(i)
        centers.append(rot @ local + trans)
        if with_jacobians:
            if fk.J_pose_jp is None:
                raise ValueError("forward kinematics model returned no pose jacobians")
            h_pose = np.hstack([-rot @ _skew(local), rot])
            jacobians.append(h_pose @ np.asarray(fk.J_pose_jp[link], dtype=float))
    return centers, jacobians


class _SphereObstacleFactor:
    """Shared machinery of the obstacle factors; ``_planar`` selects 2-D queries."""

    _planar = False

    def __init__(self, pose_key, robot: RobotModel, sdf, cost_sigma: float, epsilon: float) -> None:
        self.key = pose_key
        self.robot = robot
        self.sdf = sdf
        self.cost_sigma = float(cost_sigma)
        self.epsilon = float(epsilon)

    @property
    def noise_dim(self) -> int:
        """Dimension of the isotropic cost model: one entry per body sphere."""
        return self.robot.nr_body_spheres()

    def _compute(self, conf, with_jacobian: bool):
        n = self.robot.nr_body_spheres()
        centers, jacobians = _sphere_centers(self.robot, conf, with_jacobian)
        err = np.zeros(n)
        h = np.zeros((n, self.robot.dof())) if with_jacobian else None
        dims = 2 if self._planar else 3
        for i, center in enumerate(centers):
            total_eps = self.robot.sphere_radius(i) + self.epsilon
            cost, j_point = hinge_loss_obstacle_cost(center[:dims], self.sdf, total_eps)
            err[i] = cost
            if with_jacobian:
                h[i, :] = j_point @ jacobians[i][:dims, :]
        return err, h

    def evaluate_error(self, conf) -> np.ndarray:
        """Hinge-loss error of every body sphere at configuration ``conf``."""
        err, _ = self._compute(conf, False)
        return err

    def error_and_jacobian(self, conf) -> tuple[np.ndarray, np.ndarray]:
        """Error vector and its nr_spheres x dof jacobian with respect to ``conf``."""
        return self._compute(conf, True)

    def __str__(self) -> str:
        return f"{type(self).__name__} :\n  key: {self.key}\n  sigma: {self.cost_sigma}"


class ObstacleSDFFactor(_SphereObstacleFactor):
    """Obstacle avoidance factor against a 3-D signed distance field."""

    _planar = False

    def __init__(self, pose_key, robot, sdf, cost_sigma, epsilon) -> None:
        super().__init__(pose_key, robot, sdf, cost_sigma, epsilon)

    def evaluate_error(self, conf) -> np.ndarray:
        return super().evaluate_error(conf)

    def error_and_jacobian(self, conf) -> tuple[np.ndarray, np.ndarray]:
        return super().error_and_jacobian(conf)


class ObstaclePlanarSDFFactor(_SphereObstacleFactor):
    """Obstacle avoidance factor against a planar signed distance field."""

    _planar = True

    def __init__(self, pose_key, robot, sdf, cost_sigma, epsilon) -> None:
        super().__init__(pose_key, robot, sdf, cost_sigma, epsilon)

    def evaluate_error(self, conf) -> np.ndarray:
        return super().evaluate_error(conf)

    def error_and_jacobian(self, conf) -> tuple[np.ndarray, np.ndarray]:
        return super().error_and_jacobian(conf)