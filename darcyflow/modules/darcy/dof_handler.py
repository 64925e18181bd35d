"""Global numbering of the degrees of freedom of a mixed element on a mesh."""

import numpy as np

from darcyflow.lib.exceptions import ConfigurationError
from .raviart_thomas import PRESSURE

VELOCITY_BLOCK, PRESSURE_BLOCK = 0, 1


class DofMap:
    """
    Result of the dof distribution.

    Attributes
    ----------
    cell_dofs : (n_cells, dofs_per_cell) int array
        Global id of every local dof of every cell
    dof_component : (n_dofs,) int array
        Solution component (u_x, u_y or p) of every global dof
    dof_block : (n_dofs,) int array
        0 for velocity dofs, 1 for pressure dofs
    face_dofs : (n_faces, dofs_per_face) int array
        Global ids of the normal-flux dofs of every face
    block_sizes : (n_u, n_p)
    """

    def __init__(self, mesh, element, cell_dofs, face_dofs):
        self.mesh = mesh
        self.element = element
        self.cell_dofs = cell_dofs
        self.face_dofs = face_dofs
        self.n_dofs = int(cell_dofs.max()) + 1 if cell_dofs.size else 0

        self.dof_component = np.zeros(self.n_dofs, dtype=int)
        self.dof_component[cell_dofs] = element.system_to_component[None, :]
        self.dof_block = np.where(self.dof_component == PRESSURE, PRESSURE_BLOCK, VELOCITY_BLOCK)

        self.dof_face = -np.ones(self.n_dofs, dtype=int)
        self.dof_face[face_dofs] = np.arange(mesh.n_faces)[:, None]

        n_p = int(np.count_nonzero(self.dof_block == PRESSURE_BLOCK))
        self.block_sizes = (self.n_dofs - n_p, n_p)

    @property
    def n_velocity_dofs(self):
        return self.block_sizes[0]

    @property
    def n_pressure_dofs(self):
        return self.block_sizes[1]

    def dofs_per_component(self):
        return np.bincount(self.dof_component, minlength=self.element.n_components)

    def is_block_contiguous(self):
        """True if every velocity id precedes every pressure id."""
        return bool(np.all(np.diff(self.dof_block) >= 0))

    def local_face_number(self, cell_id, face_id):
        local = np.flatnonzero(self.mesh.cell_to_faces[cell_id] == face_id)
        if len(local) != 1:
            raise ConfigurationError(f"Face {face_id} is not a face of cell {cell_id}")
        return int(local[0])

    def support_point(self, dof):
        """Physical location of a face dof."""
        face_id = self.dof_face[dof]
        if face_id < 0:
            raise ConfigurationError(f"Dof {dof} is not associated with a face")
        cell_id = self.mesh.face_to_cells[face_id][0]
        face_no = self.local_face_number(cell_id, face_id)
        position = int(np.flatnonzero(self.face_dofs[face_id] == dof)[0])

        x0, x1, y0, y1 = self.mesh.cell_bounds(cell_id)
        ref = self.element.face_support_points(face_no)[position]
        return np.array([x0 + ref[0] * (x1 - x0), y0 + ref[1] * (y1 - y0)])


class DofHandler:
    """
    Distributes the dofs of a MixedElement over a QuadMesh.

    Parameters
    ----------
    mesh : QuadMesh
    element : MixedElement
    """

    def __init__(self, mesh, element):
        if mesh.dim != element.dim:
            raise ConfigurationError(
                f"Mesh dimension {mesh.dim} does not match element dimension {element.dim}")
        self.mesh = mesh
        self.element = element
        self.dof_map = None

    def distribute_dofs(self):
        """Number the dofs cell by cell; face dofs shared by two cells get one id."""
        mesh, fe = self.mesh, self.element
        cell_dofs = -np.ones((mesh.n_cells, fe.dofs_per_cell), dtype=int)
        face_dofs = -np.ones((mesh.n_faces, fe.dofs_per_face), dtype=int)
        next_dof = 0

        for cell_id in range(mesh.n_cells):
            for i in range(fe.dofs_per_cell):
                face_no = fe.face_of_dof[i]
                if face_no >= 0:
                    face_id = mesh.cell_to_faces[cell_id, face_no]
                    position = fe.position_on_face[i]
                    if face_dofs[face_id, position] < 0:
                        face_dofs[face_id, position] = next_dof
                        next_dof += 1
                    cell_dofs[cell_id, i] = face_dofs[face_id, position]
                else:
                    cell_dofs[cell_id, i] = next_dof
                    next_dof += 1

        self.dof_map = DofMap(mesh, fe, cell_dofs, face_dofs)
        return self.dof_map

    def renumber_component_wise(self):
        """Renumber so that all velocity dofs precede all pressure dofs.

        The relative order inside each block is kept.
        """
        if self.dof_map is None:
            raise ConfigurationError("distribute_dofs() must be called before renumbering")
        old = self.dof_map
        order = np.argsort(old.dof_block, kind="stable")
        new_index = np.empty_like(order)
        new_index[order] = np.arange(len(order))

        self.dof_map = DofMap(self.mesh, self.element, new_index[old.cell_dofs], new_index[old.face_dofs])
        return self.dof_map


def assign(mesh, element):
    """Distribute and renumber block-wise; returns the DofMap."""
    handler = DofHandler(mesh, element)
    handler.distribute_dofs()
    return handler.renumber_component_wise()


def extract_boundary_dofs(dof_map, component_mask, boundary_ids):
    """
    Global ids of the dofs that lie on a boundary face tagged with one of
    `boundary_ids` and whose component is selected by `component_mask`.

    Only face dofs lie on faces: the normal-flux dofs of RT_k. Pressure
    dofs are discontinuous and never selected.
    """
    if len(component_mask) != dof_map.element.n_components:
        raise ConfigurationError(
            f"Component mask has {len(component_mask)} entries, element has "
            f"{dof_map.element.n_components} components")
    selected = set()
    for face_id in dof_map.mesh.faces_with_boundary_id(boundary_ids):
        for dof in dof_map.face_dofs[face_id]:
            if component_mask[dof_map.dof_component[dof]]:
                selected.add(int(dof))
    return np.array(sorted(selected), dtype=int)
