import numpy as np
import pytest

from darcyflow.lib import quad_mesh
from darcyflow.lib.exceptions import ConfigurationError
from darcyflow.lib.quad_mesh import BOTTOM, SIDE, TOP, UNSET


def column_mesh(levels=0):
    mesh = quad_mesh.generate_rectangle_mesh((0.0, 0.0), (np.pi, 1.0), (4, 1))
    mesh = quad_mesh.tag_boundary_faces(mesh, quad_mesh.box_boundary_predicate(0.0, 1.0))
    return quad_mesh.refine_uniformly(mesh, levels)


def test_rectangle_mesh_counts():
    mesh = quad_mesh.generate_rectangle_mesh((0.0, 0.0), (np.pi, 1.0), (4, 1))

    assert mesh.n_cells == 4
    assert mesh.n_vertices == 10
    assert mesh.n_faces == 4 * 2 + 5 * 1
    assert len(mesh.boundary_faces) == 10
    assert all(mesh.boundary_ids[f] == UNSET for f in mesh.boundary_faces)
    assert sum(mesh.cell_area(c) for c in range(mesh.n_cells)) == pytest.approx(np.pi)


def test_cell_faces_in_local_order():
    mesh = quad_mesh.generate_rectangle_mesh((0.0, 0.0), (2.0, 1.0), (2, 1))
    x0, x1, y0, y1 = mesh.cell_bounds(0)
    left, right, bottom, top = mesh.cell_to_faces[0]

    assert np.allclose(mesh.face_center(left), [x0, 0.5 * (y0 + y1)])
    assert np.allclose(mesh.face_center(right), [x1, 0.5 * (y0 + y1)])
    assert np.allclose(mesh.face_center(bottom), [0.5 * (x0 + x1), y0])
    assert np.allclose(mesh.face_center(top), [0.5 * (x0 + x1), y1])
    # the right face of cell 0 is the left face of cell 1
    assert mesh.cell_to_faces[1][0] == right
    assert sorted(mesh.face_to_cells[right]) == [0, 1]


def test_refine_uniformly():
    mesh = column_mesh(3)

    assert mesh.level == 3
    assert mesh.n_cells == 4 * 4**3
    assert mesh.n_total_cells == 4 + 16 + 64 + 256
    assert len(mesh.boundary_faces) == 2 * 32 + 2 * 8
    assert sum(mesh.cell_area(c) for c in range(mesh.n_cells)) == pytest.approx(np.pi)
    assert all(mesh.is_axis_aligned(c) for c in range(mesh.n_cells))


def test_boundary_ids_inherited_by_children():
    mesh = column_mesh(2)

    top = mesh.faces_with_boundary_id([TOP])
    bottom = mesh.faces_with_boundary_id([BOTTOM])
    side = mesh.faces_with_boundary_id([SIDE])

    assert len(top) == 16 and len(bottom) == 16 and len(side) == 8
    assert all(mesh.face_center(f)[1] == pytest.approx(1.0) for f in top)
    assert all(mesh.face_center(f)[1] == pytest.approx(0.0) for f in bottom)
    assert all(min(abs(mesh.face_center(f)[0]), abs(mesh.face_center(f)[0] - np.pi)) < 1e-12 for f in side)
    assert mesh.faces_with_boundary_id([UNSET]) == []
    assert all(mesh.boundary_ids[f] is None for f in range(mesh.n_faces) if f not in mesh.boundary_faces)


def test_tagging_returns_new_mesh_and_keeps_unmatched_ids():
    mesh = column_mesh(0)
    retagged = quad_mesh.tag_boundary_faces(mesh, lambda c: 7 if c[1] > 0.5 else None)

    assert len(mesh.faces_with_boundary_id([TOP])) == 4
    assert len(retagged.faces_with_boundary_id([7])) == 4
    assert len(retagged.faces_with_boundary_id([BOTTOM])) == 4
    assert len(retagged.faces_with_boundary_id([SIDE])) == 2


def test_face_normals_point_outward():
    mesh = column_mesh(1)
    for f in mesh.boundary_faces:
        cell = mesh.face_to_cells[f][0]
        n = mesh.face_normal(f, cell)
        assert np.dot(n, mesh.face_center(f) - mesh.cell_centroid(cell)) > 0
        assert np.linalg.norm(n) == pytest.approx(1.0)
        assert mesh.face_length(f) == pytest.approx(np.pi / 8 if abs(n[1]) == 1.0 else 0.5)


def test_invalid_rectangles_rejected():
    with pytest.raises(ConfigurationError):
        quad_mesh.generate_rectangle_mesh((0.0, 0.0), (1.0, 1.0), (0, 1))
    with pytest.raises(ConfigurationError):
        quad_mesh.generate_rectangle_mesh((1.0, 0.0), (1.0, 1.0), (1, 1))
    with pytest.raises(ConfigurationError):
        quad_mesh.refine_uniformly(column_mesh(0), -1)
