"""Signed distance fields, sphere-based robot models, and obstacle and workspace cost factors."""

__version__ = "0.1.0"

__all__ = [
    "errors",
    "planar_sdf",
    "signed_distance_field",
    "costs",
    "kinematics",
    "obstacle_factors",
    "workspace_factors",
]