"""
Strong (row/column elimination) boundary conditions on flux dofs.

A boundary pass selects the dofs of the components in its mask lying on
faces with one of its boundary ids, and prescribes a value for each of
them. Prescriptions of all passes are merged into one map
{global dof: value}, which is then eliminated from the assembled system
while keeping the matrix symmetric.
"""

import numpy as np
from scipy.sparse import diags

from darcyflow.lib.block_system import BlockSparseMatrix, BlockVector
from darcyflow.lib.exceptions import ConfigurationError
from .dof_handler import extract_boundary_dofs


class BoundaryPass:
    """
    Parameters
    ----------
    boundary_ids : iterable of int
    component_mask : ComponentMask
    value : float or callable
        Constant, or value(x, y) evaluated at the support point of each dof
    normal_flux : bool
        If True the value is a normal flux u·n and is converted to the
        dof value through the orientation of the face
    name : str
    """

    def __init__(self, boundary_ids, component_mask, value, normal_flux=True, name=""):
        self.boundary_ids = set(boundary_ids)
        self.component_mask = component_mask
        self.value = value
        self.normal_flux = normal_flux
        self.name = name

    def __repr__(self):
        return (f"BoundaryPass({self.name or sorted(self.boundary_ids)}, "
                f"mask={list(self.component_mask.selected)})")

    def evaluate(self, point):
        if callable(self.value):
            return float(self.value(point[0], point[1]))
        return float(self.value)


def face_orientation(dof_map, dof):
    """+1 if the outward normal of the (boundary) face of `dof` points along
    the positive axis of the dof's component, -1 otherwise."""
    face_id = dof_map.dof_face[dof]
    cell_id = dof_map.mesh.face_to_cells[face_id][0]
    normal = dof_map.mesh.face_normal(face_id, cell_id)
    return 1.0 if normal[dof_map.dof_component[dof]] > 0 else -1.0


def interpolate_boundary_values(dof_map, passes, flux_orientation="outward"):
    """
    Collect the prescribed dof values of all passes.

    With flux_orientation="outward" a normal-flux value is read as u·n with
    n the outward normal of the domain; with "reference" it is read as the
    component of u along the positive coordinate axis (the dof value).

    Raises ConfigurationError if two passes prescribe different values for
    the same dof.
    """
    if flux_orientation not in ("outward", "reference"):
        raise ConfigurationError(f"Unknown flux orientation: {flux_orientation}")

    boundary_values = {}
    origin = {}
    for bc_pass in passes:
        dofs = extract_boundary_dofs(dof_map, bc_pass.component_mask, bc_pass.boundary_ids)
        for dof in dofs.tolist():
            value = bc_pass.evaluate(dof_map.support_point(dof))
            if bc_pass.normal_flux and flux_orientation == "outward":
                value *= face_orientation(dof_map, dof)

            if dof in boundary_values and not np.isclose(boundary_values[dof], value, rtol=1e-12, atol=1e-14):
                raise ConfigurationError(
                    f"Dof {dof} is prescribed {boundary_values[dof]} by {origin[dof]!r} "
                    f"and {value} by {bc_pass!r}")
            boundary_values[dof] = value
            origin[dof] = bc_pass

    return boundary_values


def apply_boundary_values(boundary_values, system_matrix, system_rhs):
    """
    Eliminate prescribed dofs from a block system.

    For every prescribed dof d with value v: rhs[k] -= A[k, d] v for all
    rows, row d and column d are zeroed, A[d, d] = 1 and rhs[d] = v.

    Returns
    -------
    (BlockSparseMatrix, BlockVector)
    """
    A = system_matrix.matrix
    n = A.shape[0]
    rhs = np.array(system_rhs.values, dtype=float)
    if not boundary_values:
        return BlockSparseMatrix(A.copy(), system_matrix.block_sizes), BlockVector(system_rhs.block_sizes, rhs)

    dofs = np.array(sorted(boundary_values), dtype=int)
    values = np.array([boundary_values[d] for d in dofs])
    if dofs[0] < 0 or dofs[-1] >= n:
        raise ConfigurationError(f"Boundary dofs out of range for a system of size {n}")

    x_bc = np.zeros(n)
    x_bc[dofs] = values
    rhs -= A @ x_bc
    rhs[dofs] = values

    keep = np.ones(n)
    keep[dofs] = 0.0
    D = diags(keep)
    A = (D @ A @ D + diags(1.0 - keep)).tocsr()
    A.eliminate_zeros()

    return BlockSparseMatrix(A, system_matrix.block_sizes), BlockVector(system_rhs.block_sizes, rhs)
