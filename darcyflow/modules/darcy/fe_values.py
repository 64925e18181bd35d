"""
Shape function values, divergences and Jacobian-weighted quadrature
weights on the cells and faces of an axis-aligned quadrilateral mesh.

A cell [x0, x1] x [y0, y1] is the image of the reference square under
x = x0 + hx*xi, y = y0 + hy*eta. Velocity dofs are nodal values of the
physical components, so values carry over unchanged and only derivatives
and weights are scaled.
"""

from collections import namedtuple

import numpy as np

from darcyflow.lib.exceptions import AssemblyError, ConfigurationError
from .raviart_thomas import REFERENCE_NORMALS

CellValues = namedtuple("CellValues", ["values", "divergences", "pressure_values", "weights", "points"])
FaceValues = namedtuple("FaceValues", ["values", "pressure_values", "normal", "weights", "points"])


class ElementEvaluator:
    """Evaluates a MixedElement on the cells of a QuadMesh."""

    def __init__(self, element, mesh):
        self.element = element
        self.mesh = mesh
        self._cell_tables = {}
        self._face_tables = {}

    def _cell_geometry(self, cell_id):
        if not self.mesh.is_axis_aligned(cell_id):
            raise ConfigurationError(f"Cell {cell_id} is not an axis-aligned rectangle")
        x0, x1, y0, y1 = self.mesh.cell_bounds(cell_id)
        return x0, y0, x1 - x0, y1 - y0

    def _tables_for(self, cache, key, quadrature, ref_points):
        # the quadrature object is kept in the cache so its id stays unique
        entry = cache.get(key)
        if entry is None or entry[0] is not quadrature:
            entry = (quadrature, self.element.shape_tables(ref_points))
            cache[key] = entry
        return entry[1]

    def reference_coordinates(self, cell_id, points):
        x0, y0, hx, hy = self._cell_geometry(cell_id)
        points = np.atleast_2d(points)
        return np.column_stack([(points[:, 0] - x0) / hx, (points[:, 1] - y0) / hy])

    def evaluate(self, cell_id, quadrature):
        """Values and divergences of all shape functions at the quadrature points of a cell."""
        if quadrature.dim != 2:
            raise AssemblyError(f"Cell quadrature must be 2D, got a {quadrature.dim}D rule")
        x0, y0, hx, hy = self._cell_geometry(cell_id)
        values, d_xi, d_eta, pressure = self._tables_for(
            self._cell_tables, id(quadrature), quadrature, quadrature.points)

        ref = quadrature.points
        points = np.column_stack([x0 + hx * ref[:, 0], y0 + hy * ref[:, 1]])
        divergences = d_xi / hx + d_eta / hy
        weights = quadrature.weights * hx * hy
        return CellValues(values, divergences, pressure, weights, points)

    def evaluate_face(self, cell_id, face_no, face_quadrature):
        """Shape function values, outward normals and weights on one face of a cell."""
        if face_quadrature.dim != 1:
            raise AssemblyError(f"Face quadrature must be 1D, got a {face_quadrature.dim}D rule")
        x0, y0, hx, hy = self._cell_geometry(cell_id)
        ref = self.element.face_reference_points(face_no, face_quadrature.points[:, 0])
        values, _, _, pressure = self._tables_for(
            self._face_tables, (id(face_quadrature), face_no), face_quadrature, ref)

        points = np.column_stack([x0 + hx * ref[:, 0], y0 + hy * ref[:, 1]])
        length = hy if face_no in (0, 1) else hx
        weights = face_quadrature.weights * length
        normal = np.tile(REFERENCE_NORMALS[face_no], (len(weights), 1))
        return FaceValues(values, pressure, normal, weights, points)

    def evaluate_at(self, cell_id, points):
        """Velocity values (n_dofs, n, 2) and pressure values (n_dofs, n) at physical points."""
        ref = self.reference_coordinates(cell_id, points)
        values, _, _, pressure = self.element.shape_tables(ref)
        return values, pressure
