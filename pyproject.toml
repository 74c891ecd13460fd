[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "gpplanning"
version = "0.1.0"
description = "Signed distance fields, sphere-based robot models and obstacle and workspace cost factors for trajectory optimisation"
requires-python = ">=3.10"
dependencies = [
    "numpy",
]
keywords = [
    "motion planning",
    "signed distance field",
    "collision avoidance",
    "forward kinematics",
    "factor graph",
    "robotics",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Science/Research",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Scientific/Engineering :: Artificial Intelligence",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["gpplanning"]

[tool.pytest.ini_options]
addopts = "-ra"
