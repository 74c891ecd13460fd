# gpplanning

This package provides building blocks for optimisation-based robot motion
planning:

- signed distance fields that describe the obstacle map,
- sphere-based robot body models,
- cost factors that turn these into error vectors and Jacobians.

The only dependency is numpy.

## Installation

```
pip install .
```

To install pytest as well, add the `test` extra: `pip install .[test]`.

## Modules

- `gpplanning.planar_sdf.PlanarSDF` is a 2-D signed distance field. It
  interpolates bilinearly and gives analytic gradients.
- `gpplanning.signed_distance_field.SignedDistanceField` is a 3-D field that
  interpolates trilinearly. It can also be:
  - built empty with `SignedDistanceField.empty(...)` and filled layer by
    layer with `init_field_data`;
  - written with `save(filename)` and read back with
    `SignedDistanceField.load(filename)`.
- `gpplanning.errors.SDFQueryOutOfRange` is raised when a query point lies
  outside a field.
- `gpplanning.costs` has two hinge-loss costs, each of which returns
  `(cost, derivative)`:
  - `hinge_loss_obstacle_cost` gives zero cost for points outside the field;
  - `hinge_loss_joint_limit_cost`.
- `gpplanning.kinematics` has:
  - the abstract `ForwardKinematics` base class;
  - its `FKResult` return type;
  - `BodySphere`;
  - `RobotModel`, which attaches collision spheres to the links of a
    kinematic model;
  - `yaw_pitch_roll`.
- `gpplanning.obstacle_factors` has `ObstacleSDFFactor`, which uses a 3-D
  field, and `ObstaclePlanarSDFFactor`, which uses a 2-D field and only the x
  and y of each sphere centre.
- `gpplanning.workspace_factors` has:
  - `GoalFactorArm`;
  - `GaussianPriorWorkspacePosition`;
  - `GaussianPriorWorkspaceOrientation`;
  - `GaussianPriorWorkspacePose`;
  - the helpers `rot3_logmap` and `pose3_logmap`.

## Querying a field

```python
import numpy as np
from gpplanning.planar_sdf import PlanarSDF
from gpplanning.errors import SDFQueryOutOfRange

data = np.array([
    [1.7321, 1.4142, 1.4142, 1.4142, 1.7321],
    [1.4142, 1.0,    1.0,    1.0,    1.4142],
    [1.4142, 1.0,    1.0,    1.0,    1.4142],
    [1.4142, 1.0,    1.0,    1.0,    1.4142],
    [1.7321, 1.4142, 1.4142, 1.4142, 1.7321],
])
field = PlanarSDF(origin=(-0.2, -0.2), cell_size=0.1, data=data)

field.get_signed_distance((0.0, 0.0))          # 1.0
dist, grad = field.signed_distance_and_gradient((0.18, 0.12))
field.convert_point2_to_cell((0.0, 0.0))       # (row, col) == (2.0, 2.0)

try:
    field.get_signed_distance((5.0, 5.0))
except SDFQueryOutOfRange:
    ...
```

In the data matrix, rows run along the y axis and columns run along the x
axis. Cell indices are given as `(row, col)`.

A 3-D field takes a list of such layers, ordered along z, and its cell
indices are `(row, col, z)`.

## Saving a 3-D field

`SignedDistanceField.save` picks the file format from the file extension:

| Extension | Format |
| --- | --- |
| `.xml` | XML document |
| `.bin` | numpy archive |
| any other | JSON text |

`SignedDistanceField.load` reads the same three formats back.

## Describing a robot

The package has no concrete kinematic chains, so you supply your own by
subclassing `ForwardKinematics`. Its `forward_kinematics(jp, jv, compute_jacobians)`
method returns an `FKResult`, which holds:

- `poses`: the link poses, as 4x4 homogeneous matrices;
- `velocities`: optional linear velocities of the links;
- `J_pose_jp`: optional pose Jacobians, each 6 x dof. The rotation comes
  first and the translation second, with perturbations applied on the right.

The example below defines a point robot that moves in the plane and checks it
against the field from the previous section:

```python
import numpy as np
from gpplanning.kinematics import BodySphere, FKResult, ForwardKinematics, RobotModel
from gpplanning.obstacle_factors import ObstaclePlanarSDFFactor


class PlanarPoint(ForwardKinematics):
    def __init__(self):
        super().__init__(dof=2, nr_links=1)

    def forward_kinematics(self, jp, jv=None, compute_jacobians=False):
        pose = np.eye(4)
        pose[:2, 3] = jp
        jac = None
        if compute_jacobians:
            j = np.zeros((6, 2))
            j[3, 0] = j[4, 1] = 1.0
            jac = [j]
        vel = None if jv is None else [np.array([jv[0], jv[1], 0.0])]
        return FKResult(poses=[pose], velocities=vel, J_pose_jp=jac)


robot = RobotModel(PlanarPoint(), [BodySphere(0, 0.05, (0.0, 0.0, 0.0))])
factor = ObstaclePlanarSDFFactor(0, robot, field, cost_sigma=1.0, epsilon=1.0)
factor.evaluate_error([0.0, 0.0])             # array([0.05])
err, jac = factor.error_and_jacobian([0.0, 0.0])
```

`ForwardKinematics` also provides matrix summaries of the link states:

| Method | Result |
| --- | --- |
| `forward_kinematics_pose` | 6 x links: yaw, pitch, roll, x, y, z |
| `forward_kinematics_position` | 3 x links |
| `forward_kinematics_vel` | 3 x links |

## Obstacle cost

An obstacle factor returns one error per body sphere.

- When the signed distance at the sphere centre is at most
  `radius + epsilon`, the error is `radius + epsilon - distance`.
- Otherwise the error is zero.
- Sphere centres outside the field also give zero error.

`error_and_jacobian` returns the error together with its
`nr_body_spheres x dof` Jacobian with respect to the configuration.

## Workspace factors

Each workspace factor runs forward kinematics and compares one link with a
target. The first three compare against a target given in the factor:

| Factor | What it compares | Error |
| --- | --- | --- |
| `GoalFactorArm` | position of link `dof - 1` with a point | position difference |
| `GaussianPriorWorkspacePosition` | position of a chosen link | position difference |
| `GaussianPriorWorkspaceOrientation` | orientation of a chosen link | rotation vector |
| `GaussianPriorWorkspacePose` | full pose of a chosen link | 6-D tangent vector |

The `cost_sigma` argument is stored on the factor but is not used in the
error.

## What the package does not do

The package does not provide:

- concrete robot kinematic models, such as arms or mobile bases;
- Gaussian-process priors or interpolation between trajectory states;
- a factor-graph solver or trajectory optimiser.

The factors compute errors and Jacobians for you to pass to an optimiser of
your choice.

## Running the tests

```
pytest
```