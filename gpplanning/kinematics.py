"""Abstract forward kinematics and sphere-based robot body models."""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import NamedTuple, Optional, Sequence

import numpy as np


def yaw_pitch_roll(rotation) -> tuple[float, float, float]:
    """Yaw, pitch and roll of a 3x3 rotation matrix, with R = Rz(yaw) Ry(pitch) Rx(roll)."""
    a = np.asarray(rotation, dtype=float).reshape(3, 3)

    x = -math.atan2(-a[2, 1], a[2, 2])
    cx, sx = math.cos(-x), math.sin(-x)
    qx = np.array([[1.0, 0.0, 0.0], [0.0, cx, -sx], [0.0, sx, cx]])
    b = a @ qx

    y = -math.atan2(b[2, 0], b[2, 2])
    cy, sy = math.cos(-y), math.sin(-y)
    qy = np.array([[cy, 0.0, sy], [0.0, 1.0, 0.0], [-sy, 0.0, cy]])
    c = b @ qy

    z = -math.atan2(-c[1, 0], c[1, 1])
    return z, y, x


class FKResult(NamedTuple):
    """Output of :meth:`ForwardKinematics.forward_kinematics`.

    ``poses`` are 4x4 homogeneous link poses in the workspace. ``velocities``
    are 3-vectors (linear only) or ``None`` when no velocity was given. The
    jacobians are ``None`` unless requested: pose jacobians are 6 x dof in
    the pose tangent space (rotation first, then translation), velocity
    jacobians are 3 x dof.
    """

    poses: list
    velocities: Optional[list] = None
    J_pose_jp: Optional[list] = None
    J_vel_jp: Optional[list] = None
    J_vel_jv: Optional[list] = None


class ForwardKinematics(ABC):
    """Forward kinematics model without a physical body.

    Subclasses implement :meth:`forward_kinematics` for their own
    configuration and velocity types.
    """

    def __init__(self, dof: int = 0, nr_links: int = 0) -> None:
        self._dof = int(dof)
        self._nr_links = int(nr_links)

    def dof(self) -> int:
        return self._dof

    def nr_links(self) -> int:
        return self._nr_links

    @abstractmethod
    def forward_kinematics(self, jp, jv=None, compute_jacobians: bool = False) -> FKResult:
        """Link poses (and velocities if ``jv`` is given) for configuration ``jp``."""

    def _run(self, jp, jv=None) -> FKResult:
        result = self.forward_kinematics(jp, jv, False)
        if len(result.poses) < self._nr_links:
            raise ValueError(
                f"forward kinematics returned {len(result.poses)} poses, expected {self._nr_links}"
            )
        return result

    def forward_kinematics_pose(self, jp) -> np.ndarray:
        """6 x nr_links matrix; each column is (yaw, pitch, roll, x, y, z) of a link."""
        poses = self._run(jp).poses
        out = np.zeros((6, self._nr_links))
        for i, pose in enumerate(poses[: self._nr_links]):
            pose = np.asarray(pose, dtype=float)
            out[:3, i] = yaw_pitch_roll(pose[:3, :3])
            out[3:, i] = pose[:3, 3]
        return out

    def forward_kinematics_position(self, jp) -> np.ndarray:
        """3 x nr_links matrix of link positions."""
        poses = self._run(jp).poses
        out = np.zeros((3, self._nr_links))
        for i, pose in enumerate(poses[: self._nr_links]):
            out[:, i] = np.asarray(pose, dtype=float)[:3, 3]
        return out

    def forward_kinematics_vel(self, jp, jv) -> np.ndarray:
        """3 x nr_links matrix of link linear velocities."""
        result = self._run(jp, jv)
        if result.velocities is None or len(result.velocities) < self._nr_links:
            raise ValueError("forward kinematics returned no link velocities")
        out = np.zeros((3, self._nr_links))
        for i, vel in enumerate(result.velocities[: self._nr_links]):
            out[:, i] = np.asarray(vel, dtype=float).reshape(3)
        return out


@dataclass
class BodySphere:
    """A collision sphere attached to a robot link."""

    link_id: int
    radius: float
    center: np.ndarray = field(default_factory=lambda: np.zeros(3))

    def __post_init__(self) -> None:
        self.link_id = int(self.link_id)
        self.radius = float(self.radius)
        self.center = np.asarray(self.center, dtype=float).reshape(3)


class RobotModel:
    """Robot made of a forward kinematics model and body spheres."""

    def __init__(self, fk_model: ForwardKinematics, body_spheres: Sequence[BodySphere] = ()) -> None:
        self._fk_model = fk_model
        self._body_spheres = list(body_spheres)

    @property
    def fk_model(self) -> ForwardKinematics:
        return self._fk_model

    @property
    def body_spheres(self) -> list[BodySphere]:
        return list(self._body_spheres)

    def dof(self) -> int:
        return self._fk_model.dof()

    def nr_body_spheres(self) -> int:
        return len(self._body_spheres)

    def sphere_link_id(self, i: int) -> int:
        return self._body_spheres[i].link_id

    def sphere_radius(self, i: int) -> float:
        return self._body_spheres[i].radius

    def sphere_center_wrt_link(self, i: int) -> np.ndarray:
        return self._body_spheres[i].center.copy()