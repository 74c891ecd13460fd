"""Planar (2-D) signed distance field with bilinear interpolation."""

from __future__ import annotations

import math
from typing import Sequence

import numpy as np

from gpplanning.errors import SDFQueryOutOfRange


class PlanarSDF:
    """Signed distance field on a regular 2-D grid.

    The data matrix rows run along Y and its columns along X. Cell indices
    are given as ``(row, col)`` pairs, possibly fractional.
    """

    def __init__(self, origin: Sequence[float], cell_size: float, data) -> None:
        self._origin = np.asarray(origin, dtype=float).reshape(2)
        self._cell_size = float(cell_size)
        self._data = np.array(data, dtype=float, ndmin=2)
        if self._data.ndim != 2:
            raise ValueError("planar field data must be a 2-D matrix")
        self._rows, self._cols = self._data.shape

    @property
    def origin(self) -> np.ndarray:
        return self._origin.copy()

    @property
    def cell_size(self) -> float:
        return self._cell_size

    @property
    def raw_data(self) -> np.ndarray:
        return self._data

    def x_count(self) -> int:
        return self._cols

    def y_count(self) -> int:
        return self._rows

    def get_signed_distance(self, point: Sequence[float]) -> float:
        """Interpolated signed distance at a metric point."""
        return self.signed_distance(self.convert_point2_to_cell(point))

    def signed_distance_and_gradient(self, point: Sequence[float]) -> tuple[float, np.ndarray]:
        """Signed distance and its gradient (d/dx, d/dy) at a metric point."""
        idx = self.convert_point2_to_cell(point)
        g_idx = self.gradient(idx)
        grad = np.array([g_idx[1], g_idx[0]]) / self._cell_size
        return self.signed_distance(idx), grad

    def convert_point2_to_cell(self, point: Sequence[float]) -> tuple[float, float]:
        """Convert a metric point to a fractional ``(row, col)`` cell index."""
        x, y = (float(v) for v in point)
        ox, oy = self._origin
        if (
            x < ox
            or x > ox + (self._cols - 1.0) * self._cell_size
            or y < oy
            or y > oy + (self._rows - 1.0) * self._cell_size
        ):
            raise SDFQueryOutOfRange()
        col = (x - ox) / self._cell_size
        row = (y - oy) / self._cell_size
        return row, col

    def convert_cell_to_point2(self, cell: Sequence[float]) -> np.ndarray:
        """Convert a ``(row, col)`` cell index to a metric point."""
        row, col = (float(v) for v in cell)
        return self._origin + np.array([col * self._cell_size, row * self._cell_size])

    def _corners(self, idx: Sequence[float]):
        r, c = (float(v) for v in idx)
        lr, lc = math.floor(r), math.floor(c)
        hr, hc = lr + 1.0, lc + 1.0
        lri, lci = int(lr), int(lc)
        # on the far edge the upper corner has zero weight; keep it inside the grid
        hri = min(int(hr), self._rows - 1)
        hci = min(int(hc), self._cols - 1)
        return r, c, lr, lc, hr, hc, lri, lci, hri, hci

    def signed_distance(self, idx: Sequence[float]) -> float:
        """Bilinear interpolation at a fractional ``(row, col)`` index."""
        r, c, lr, lc, hr, hc, lri, lci, hri, hci = self._corners(idx)
        v = self.value_at
        return (
            (hr - r) * (hc - c) * v(lri, lci)
            + (r - lr) * (hc - c) * v(hri, lci)
            + (hr - r) * (c - lc) * v(lri, hci)
            + (r - lr) * (c - lc) * v(hri, hci)
        )

    def gradient(self, idx: Sequence[float]) -> np.ndarray:
        """Gradient of the bilinear interpolation with respect to ``(row, col)``."""
        r, c, lr, lc, hr, hc, lri, lci, hri, hci = self._corners(idx)
        v = self.value_at
        d_row = (hc - c) * (v(hri, lci) - v(lri, lci)) + (c - lc) * (v(hri, hci) - v(lri, hci))
        d_col = (hr - r) * (v(lri, hci) - v(lri, lci)) + (r - lr) * (v(hri, hci) - v(hri, lci))
        return np.array([d_row, d_col])

    def value_at(self, row: int, col: int) -> float:
        """Raw grid value at integer ``(row, col)``."""
        if not (0 <= row < self._rows and 0 <= col < self._cols):
            raise IndexError(f"cell ({row}, {col}) outside {self._rows} x {self._cols} field")
        return float(self._data[row, col])

    def __str__(self) -> str:
        return (
            f"field origin:     {self._origin.tolist()}\n"
            f"field resolution: {self._cell_size}\n"
            f"field size:       {self._cols} x {self._rows}"
        )