"""Three-dimensional signed distance field with trilinear interpolation."""

from __future__ import annotations

import json
import math
import os
import xml.etree.ElementTree as ET
from typing import Sequence

import numpy as np

from gpplanning.errors import SDFQueryOutOfRange


class SignedDistanceField:
    """Signed distance field on a regular 3-D grid.

    The field is a stack of matrices, one per Z layer; matrix rows run along
    Y and columns along X. Cell indices are ``(row, col, z)`` triples.
    """

    def __init__(self, origin: Sequence[float], cell_size: float, data) -> None:
        layers = [np.array(layer, dtype=float, ndmin=2) for layer in data]
        if not layers:
            raise ValueError("signed distance field needs at least one layer")
        rows, cols = layers[0].shape
        self._setup(origin, cell_size, rows, cols, len(layers), layers)

    @classmethod
    def empty(cls, origin, cell_size, field_rows, field_cols, field_z) -> "SignedDistanceField":
        """Create a field of the given size whose layers are filled in later."""
        sdf = cls.__new__(cls)
        layers = [np.zeros((0, 0)) for _ in range(int(field_z))]
        sdf._setup(origin, cell_size, int(field_rows), int(field_cols), int(field_z), layers)
        return sdf

    def _setup(self, origin, cell_size, rows, cols, z, layers) -> None:
        self._origin = np.asarray(origin, dtype=float).reshape(3)
        self._cell_size = float(cell_size)
        self._rows = rows
        self._cols = cols
        self._z = z
        self._data = layers

    @property
    def origin(self) -> np.ndarray:
        return self._origin.copy()

    @property
    def cell_size(self) -> float:
        return self._cell_size

    @property
    def raw_data(self) -> list[np.ndarray]:
        return self._data

    def x_count(self) -> int:
        return self._cols

    def y_count(self) -> int:
        return self._rows

    def z_count(self) -> int:
        return self._z

    def init_field_data(self, z_idx: int, field_layer) -> None:
        """Set the matrix of one Z layer."""
        if z_idx < 0 or z_idx >= self._z:
            raise IndexError("[SignedDistanceField] matrix layer out of index")
        self._data[z_idx] = np.array(field_layer, dtype=float, ndmin=2)

    def get_signed_distance(self, point: Sequence[float]) -> float:
        """Interpolated signed distance at a metric point."""
        return self.signed_distance(self.convert_point3_to_cell(point))

    def signed_distance_and_gradient(self, point: Sequence[float]) -> tuple[float, np.ndarray]:
        """Signed distance and its gradient (d/dx, d/dy, d/dz) at a metric point."""
        idx = self.convert_point3_to_cell(point)
        g_idx = self.gradient(idx)
        grad = np.array([g_idx[1], g_idx[0], g_idx[2]]) / self._cell_size
        return self.signed_distance(idx), grad

    def convert_point3_to_cell(self, point: Sequence[float]) -> tuple[float, float, float]:
        """Convert a metric point to a fractional ``(row, col, z)`` cell index."""
        x, y, z = (float(v) for v in point)
        ox, oy, oz = self._origin
        size = self._cell_size
        if (
            x < ox
            or x > ox + (self._cols - 1.0) * size
            or y < oy
            or y > oy + (self._rows - 1.0) * size
            or z < oz
            or z > oz + (self._z - 1.0) * size
        ):
            raise SDFQueryOutOfRange()
        return (y - oy) / size, (x - ox) / size, (z - oz) / size

    def convert_cell_to_point3(self, cell: Sequence[float]) -> np.ndarray:
        """Convert a ``(row, col, z)`` cell index to a metric point."""
        row, col, z = (float(v) for v in cell)
        size = self._cell_size
        return self._origin + np.array([col * size, row * size, z * size])

    def _corners(self, idx: Sequence[float]):
        r, c, z = (float(v) for v in idx)
        lr, lc, lz = math.floor(r), math.floor(c), math.floor(z)
        hr, hc, hz = lr + 1.0, lc + 1.0, lz + 1.0
        lri, lci, lzi = int(lr), int(lc), int(lz)
        # on the far faces the upper corners have zero weight; keep them inside the grid
        hri = min(int(hr), self._rows - 1)
        hci = min(int(hc), self._cols - 1)
        hzi = min(int(hz), self._z - 1)
        return (r, c, z), (lr, lc, lz), (hr, hc, hz), (lri, lci, lzi), (hri, hci, hzi)

    def signed_distance(self, idx: Sequence[float]) -> float:
        """Trilinear interpolation at a fractional ``(row, col, z)`` index."""
        (r, c, z), (lr, lc, lz), (hr, hc, hz), (lri, lci, lzi), (hri, hci, hzi) = self._corners(idx)
        v = self.value_at
        return (
            (hr - r) * (hc - c) * (hz - z) * v(lri, lci, lzi)
            + (r - lr) * (hc - c) * (hz - z) * v(hri, lci, lzi)
            + (hr - r) * (c - lc) * (hz - z) * v(lri, hci, lzi)
            + (r - lr) * (c - lc) * (hz - z) * v(hri, hci, lzi)
            + (hr - r) * (hc - c) * (z - lz) * v(lri, lci, hzi)
            + (r - lr) * (hc - c) * (z - lz) * v(hri, lci, hzi)
            + (hr - r) * (c - lc) * (z - lz) * v(lri, hci, hzi)
            + (r - lr) * (c - lc) * (z - lz) * v(hri, hci, hzi)
        )

    def gradient(self, idx: Sequence[float]) -> np.ndarray:
        """Gradient of the trilinear interpolation with respect to ``(row, col, z)``."""
        (r, c, z), (lr, lc, lz), (hr, hc, hz), (lri, lci, lzi), (hri, hci, hzi) = self._corners(idx)
        v = self.value_at
        d_row = (
            (hc - c) * (hz - z) * (v(hri, lci, lzi) - v(lri, lci, lzi))
            + (c - lc) * (hz - z) * (v(hri, hci, lzi) - v(lri, hci, lzi))
            + (hc - c) * (z - lz) * (v(hri, lci, hzi) - v(lri, lci, hzi))
            + (c - lc) * (z - lz) * (v(hri, hci, hzi) - v(lri, hci, hzi))
        )
        d_col = (
            (hr - r) * (hz - z) * (v(lri, hci, lzi) - v(lri, lci, lzi))
            + (r - lr) * (hz - z) * (v(hri, hci, lzi) - v(hri, lci, lzi))
            + (hr - r) * (z - lz) * (v(lri, hci, hzi) - v(lri, lci, hzi))
            + (r - lr) * (z - lz) * (v(hri, hci, hzi) - v(hri, lci, hzi))
        )
        d_z = (
            (hr - r) * (hc - c) * (v(lri, lci, hzi) - v(lri, lci, lzi))
            + (r - lr) * (hc - c) * (v(hri, lci, hzi) - v(hri, lci, lzi))
            + (hr - r) * (c - lc) * (v(lri, hci, hzi) - v(lri, hci, lzi))
            + (r - lr) * (c - lc) * (v(hri, hci, hzi) - v(hri, hci, lzi))
        )
        return np.array([d_row, d_col, d_z])

    def value_at(self, row: int, col: int, z: int) -> float:
        """Raw grid value at integer ``(row, col, z)``."""
        if not (0 <= z < self._z):
            raise IndexError(f"layer {z} outside field of {self._z} layers")
        layer = self._data[z]
        if not (0 <= row < layer.shape[0] and 0 <= col < layer.shape[1]):
            raise IndexError(f"cell ({row}, {col}) outside layer of shape {layer.shape}")
        return float(layer[row, col])

    def __str__(self) -> str:
        return (
            f"field origin:     {self._origin.tolist()}\n"
            f"field resolution: {self._cell_size}\n"
            f"field size:       {self._cols} x {self._rows} x {self._z}"
        )

    # persistence ---------------------------------------------------------

    @staticmethod
    def _extension(filename: str) -> str:
        return filename.rsplit(".", 1)[-1]

    def save(self, filename) -> None:
        """Write the field; the format follows the extension (xml, bin, else text)."""
        filename = os.fspath(filename)
        ext = self._extension(filename)
        if ext == "xml":
            self._save_xml(filename)
        elif ext == "bin":
            arrays = {f"layer_{i}": layer for i, layer in enumerate(self._data)}
            with open(filename, "wb") as fh:
                np.savez(
                    fh,
                    origin=self._origin,
                    cell_size=np.array(self._cell_size),
                    dims=np.array([self._rows, self._cols, self._z]),
                    **arrays,
                )
        else:
            payload = {
                "origin": self._origin.tolist(),
                "field_rows": self._rows,
                "field_cols": self._cols,
                "field_z": self._z,
                "cell_size": self._cell_size,
                "data": [layer.tolist() for layer in self._data],
            }
            with open(filename, "w", encoding="utf-8") as fh:
                json.dump(payload, fh)

    def _save_xml(self, filename: str) -> None:
        root = ET.Element("signed_distance_field")
        ET.SubElement(root, "origin").text = " ".join(repr(float(v)) for v in self._origin)
        ET.SubElement(root, "field_rows").text = str(self._rows)
        ET.SubElement(root, "field_cols").text = str(self._cols)
        ET.SubElement(root, "field_z").text = str(self._z)
        ET.SubElement(root, "cell_size").text = repr(self._cell_size)
        data = ET.SubElement(root, "data")
        for layer in self._data:
            node = ET.SubElement(data, "layer", rows=str(layer.shape[0]), cols=str(layer.shape[1]))
            node.text = " ".join(repr(float(v)) for v in layer.ravel())
        ET.ElementTree(root).write(filename, encoding="utf-8", xml_declaration=True)

    @classmethod
    def load(cls, filename) -> "SignedDistanceField":
        """Read a field written by :meth:`save`."""
        filename = os.fspath(filename)
        ext = cls._extension(filename)
        if ext == "xml":
            root = ET.parse(filename).getroot()
            origin = [float(v) for v in root.findtext("origin", "").split()]
            rows = int(root.findtext("field_rows"))
            cols = int(root.findtext("field_cols"))
            z = int(root.findtext("field_z"))
            cell_size = float(root.findtext("cell_size"))
            layers = []
            for node in root.iter("layer"):
                shape = (int(node.get("rows")), int(node.get("cols")))
                values = [float(v) for v in (node.text or "").split()]
                layers.append(np.array(values, dtype=float).reshape(shape))
        elif ext == "bin":
            with open(filename, "rb") as fh, np.load(fh, allow_pickle=False) as archive:
                origin = archive["origin"]
                cell_size = float(archive["cell_size"])
                rows, cols, z = (int(v) for v in archive["dims"])
                layers = [archive[f"layer_{i}"] for i in range(z)]
        else:
            with open(filename, encoding="utf-8") as fh:
                payload = json.load(fh)
            origin = payload["origin"]
            rows = payload["field_rows"]
            cols = payload["field_cols"]
            z = payload["field_z"]
            cell_size = payload["cell_size"]
            layers = [
                np.array(layer, dtype=float).reshape(-1, len(layer[0]) if layer else 0)
                for layer in payload["data"]
            ]
        sdf = cls.__new__(cls)
        sdf._setup(origin, cell_size, rows, cols, z, layers)
        return sdf