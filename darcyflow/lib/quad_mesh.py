"""Quadrilateral mesh data structure, generation, refinement and tagging."""

import numpy as np

from .exceptions import ConfigurationError

# Boundary ids
UNSET = 0
TOP = 1
BOTTOM = 2
SIDE = 3

# Local faces of a cell [bl, br, tr, tl]: left, right, bottom, top
FACE_VERTICES = ((0, 3), (1, 2), (0, 1), (3, 2))
FACES_PER_CELL = 4


class QuadMesh:
    """Conforming quadrilateral mesh with tagged boundary faces.

    Cells are stored as four vertex ids ordered counter-clockwise from the
    bottom-left corner. Faces are numbered in order of first appearance;
    `cell_to_faces[c]` lists the faces of cell `c` in the local order
    left, right, bottom, top. Boundary faces carry an integer boundary id
    (0 when unset), interior faces carry None.
    """
    dim = 2

    def __init__(self, vertices, cells, boundary_tags=None, level=0, n_total_cells=None):
        self.vertices = np.array(vertices, dtype=float)
        self.cells = np.array(cells, dtype=int).reshape(-1, FACES_PER_CELL)
        self.n_cells = len(self.cells)
        self.n_vertices = len(self.vertices)
        self.level = level
        self.n_total_cells = self.n_cells if n_total_cells is None else n_total_cells

        # Build face connectivity
        self.faces = []
        self.face_to_cells = []
        self.cell_to_faces = np.zeros((self.n_cells, FACES_PER_CELL), dtype=int)
        face_index = {}

        for cell_id, cell in enumerate(self.cells):
            for local_face, (a, b) in enumerate(FACE_VERTICES):
                face = tuple(sorted((int(cell[a]), int(cell[b]))))
                face_id = face_index.get(face)
                if face_id is None:
                    face_id = len(self.faces)
                    face_index[face] = face_id
                    self.faces.append(face)
                    self.face_to_cells.append([])
                self.face_to_cells[face_id].append(cell_id)
                self.cell_to_faces[cell_id, local_face] = face_id

        self.n_faces = len(self.faces)
        self.boundary_faces = [f for f in range(self.n_faces) if len(self.face_to_cells[f]) == 1]

        boundary_tags = boundary_tags or {}
        self.boundary_ids = [None] * self.n_faces
        for f in self.boundary_faces:
            self.boundary_ids[f] = boundary_tags.get(self.faces[f], UNSET)

    def boundary_tags(self):
        """Boundary ids keyed by the sorted vertex pair of each boundary face."""
        return {self.faces[f]: self.boundary_ids[f] for f in self.boundary_faces}

    def faces_with_boundary_id(self, boundary_ids):
        boundary_ids = set(boundary_ids)
        return [f for f in self.boundary_faces if self.boundary_ids[f] in boundary_ids]

    def cell_centroid(self, cell_id):
        verts = self.vertices[self.cells[cell_id]]
        return np.mean(verts, axis=0)

    def cell_area(self, cell_id):
        verts = self.vertices[self.cells[cell_id]]
        x, y = verts[:, 0], verts[:, 1]
        return 0.5 * abs(np.dot(x, np.roll(y, 1)) - np.dot(y, np.roll(x, 1)))

    def cell_bounds(self, cell_id):
        """Return (x0, x1, y0, y1) of the bounding box of a cell."""
        verts = self.vertices[self.cells[cell_id]]
        return verts[:, 0].min(), verts[:, 0].max(), verts[:, 1].min(), verts[:, 1].max()

    def is_axis_aligned(self, cell_id, tol=1e-12):
        x0, x1, y0, y1 = self.cell_bounds(cell_id)
        expected = np.array([[x0, y0], [x1, y0], [x1, y1], [x0, y1]])
        scale = max(x1 - x0, y1 - y0)
        return np.allclose(self.vertices[self.cells[cell_id]], expected, atol=tol * scale, rtol=0.0)

    def face_length(self, face_id):
        v1, v2 = self.faces[face_id]
        return np.linalg.norm(self.vertices[v2] - self.vertices[v1])

    def face_center(self, face_id):
        v1, v2 = self.faces[face_id]
        return 0.5 * (self.vertices[v1] + self.vertices[v2])

    def face_normal(self, face_id, cell_id):
        """Unit normal of a face pointing out of `cell_id`."""
        v1, v2 = self.faces[face_id]
        edge_vec = self.vertices[v2] - self.vertices[v1]
        normal = np.array([edge_vec[1], -edge_vec[0]])
        normal = normal / np.linalg.norm(normal)

        if np.dot(normal, self.face_center(face_id) - self.cell_centroid(cell_id)) < 0:
            normal = -normal

        return normal


def generate_rectangle_mesh(bottom_left, top_right, subdivisions):
    """Create a rectangle mesh divided into quadrilaterals.

    Parameters:
    -----------
    bottom_left : sequence of 2 floats
        Lower-left corner (x0, y0)
    top_right : sequence of 2 floats
        Upper-right corner (x1, y1)
    subdivisions : sequence of 2 ints
        Number of cells in x and in y

    Returns:
    --------
    QuadMesh
        The rectangle divided into nx×ny quad cells, all boundary ids unset
    """
    (x0, y0), (x1, y1) = bottom_left, top_right
    nx, ny = subdivisions
    if nx < 1 or ny < 1:
        raise ConfigurationError(f"Subdivisions must be positive, got {tuple(subdivisions)}")
    if not (x1 > x0 and y1 > y0):
        raise ConfigurationError(f"Degenerate rectangle {tuple(bottom_left)} - {tuple(top_right)}")

    x = np.linspace(x0, x1, nx+1)
    y = np.linspace(y0, y1, ny+1)

    vertices = []
    for j in range(ny+1):
        for i in range(nx+1):
            vertices.append([x[i], y[j]])

    cells = []
    for j in range(ny):
        for i in range(nx):
            idx = j * (nx+1) + i
            cells.append([idx, idx+1, idx+nx+2, idx+nx+1])

    return QuadMesh(vertices, cells)


def _refine_once(mesh):
    vertices = list(mesh.vertices)

    face_midpoint = {}
    for face_id, (v1, v2) in enumerate(mesh.faces):
        face_midpoint[face_id] = len(vertices)
        vertices.append(0.5 * (mesh.vertices[v1] + mesh.vertices[v2]))

    cells = []
    for cell_id, (v0, v1, v2, v3) in enumerate(mesh.cells):
        left, right, bottom, top = (face_midpoint[f] for f in mesh.cell_to_faces[cell_id])
        center = len(vertices)
        vertices.append(mesh.cell_centroid(cell_id))

        # children ordered bottom-left, bottom-right, top-left, top-right
        cells.append([v0, bottom, center, left])
        cells.append([bottom, v1, right, center])
        cells.append([left, center, top, v3])
        cells.append([center, right, v2, top])

    # child faces inherit the boundary id of their parent face
    tags = {}
    for f in mesh.boundary_faces:
        v1, v2 = mesh.faces[f]
        mid = face_midpoint[f]
        tags[tuple(sorted((v1, mid)))] = mesh.boundary_ids[f]
        tags[tuple(sorted((mid, v2)))] = mesh.boundary_ids[f]

    return QuadMesh(vertices, cells, boundary_tags=tags, level=mesh.level + 1,
                    n_total_cells=mesh.n_total_cells + len(cells))


def refine_uniformly(mesh, levels):
    """Split every cell into four children, `levels` times."""
    if levels < 0:
        raise ConfigurationError(f"Refinement levels must be non-negative, got {levels}")
    for _ in range(levels):
        mesh = _refine_once(mesh)
    return mesh


def tag_boundary_faces(mesh, predicate):
    """Return a copy of `mesh` with boundary ids set by `predicate`.

    Parameters:
    -----------
    mesh : QuadMesh
    predicate : callable
        predicate(face_center) -> boundary id, or None to keep the current id

    Returns:
    --------
    QuadMesh
    """
    tags = mesh.boundary_tags()
    for f in mesh.boundary_faces:
        boundary_id = predicate(mesh.face_center(f))
        if boundary_id is not None:
            tags[mesh.faces[f]] = boundary_id

    return QuadMesh(mesh.vertices, mesh.cells, boundary_tags=tags, level=mesh.level,
                    n_total_cells=mesh.n_total_cells)


def box_boundary_predicate(bottom, top, tol=1e-12):
    """Tag faces on y == top as TOP, y == bottom as BOTTOM, the rest as SIDE."""
    def predicate(center):
        if abs(center[1] - top) <= tol:
            return TOP
        if abs(center[1] - bottom) <= tol:
            return BOTTOM
        return SIDE

    return predicate
