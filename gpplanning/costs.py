"""Hinge-loss cost functions for obstacle avoidance and joint limits."""

from __future__ import annotations

from typing import Sequence

import numpy as np

from gpplanning.errors import SDFQueryOutOfRange


def hinge_loss_obstacle_cost(point: Sequence[float], sdf, eps: float) -> tuple[float, np.ndarray]:
    """Hinge-loss obstacle cost of a point in a signed distance field.

    ``sdf`` may be a planar or a 3-D field, matching the dimension of
    ``point``. Returns ``(cost, jacobian)`` where the jacobian is the
    derivative of the cost with respect to the point. Points outside the
    field carry no cost.
    """
    point = np.asarray(point, dtype=float)
    zero_jacobian = np.zeros(point.shape[0])
    try:
        dist_signed, field_gradient = sdf.signed_distance_and_gradient(point)
    except SDFQueryOutOfRange:
        return 0.0, zero_jacobian

    if dist_signed > eps:
        return 0.0, zero_jacobian
    return eps - dist_signed, -np.asarray(field_gradient, dtype=float)


def hinge_loss_joint_limit_cost(
    p: float, down_limit: float, up_limit: float, thresh: float
) -> tuple[float, float]:
    """Hinge-loss joint limit cost of a joint value.

    Returns ``(cost, derivative)``; the cost is zero while ``p`` stays at
    least ``thresh`` inside ``[down_limit, up_limit]`` and grows linearly
    beyond that.
    """
    if p < down_limit + thresh:
        return down_limit + thresh - p, -1.0
    if p <= up_limit - thresh:
        return 0.0, 0.0
    return p - up_limit + thresh, 1.0