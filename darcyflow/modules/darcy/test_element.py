import numpy as np
import pytest

from darcyflow.lib import quad_mesh
from darcyflow.lib.exceptions import AssemblyError, ConfigurationError
from darcyflow.lib.quadrature import gauss, gauss_1d
from darcyflow.modules.darcy.fe_values import ElementEvaluator
from darcyflow.modules.darcy.raviart_thomas import (
    PRESSURE, U_X, U_Y, ComponentMask, LagrangeBasis1D, MixedElement)


def test_lagrange_basis_is_nodal():
    nodes = np.array([0.0, 0.2, 0.7, 1.0])
    basis = LagrangeBasis1D(nodes)

    assert np.allclose(basis.values(nodes), np.eye(4), atol=1e-13)
    t = np.linspace(0, 1, 7)
    assert np.allclose(basis.values(t).sum(axis=0), 1.0)
    assert np.allclose(basis.derivatives(t).sum(axis=0), 0.0, atol=1e-12)


@pytest.mark.parametrize("degree", [0, 1, 2, 3])
def test_dof_counts(degree):
    k = degree
    fe = MixedElement(k)

    assert fe.n_velocity_dofs == 2 * (k + 1) * (k + 2)
    assert fe.n_pressure_dofs == (k + 1) ** 2
    assert fe.dofs_per_cell == 2 * (k + 1) * (k + 2) + (k + 1) ** 2
    assert fe.face_dofs.shape == (4, k + 1)
    assert len(np.unique(fe.face_dofs)) == 4 * (k + 1)
    assert len(fe.interior_velocity_dofs) == 2 * k * (k + 1)
    assert np.all(fe.system_to_component[fe.pressure_dofs] == PRESSURE)


def test_face_dofs_carry_the_normal_component():
    fe = MixedElement(2)
    t = np.linspace(0, 1, 5)
    for face_no in range(4):
        normal_component = U_X if face_no < 2 else U_Y
        values, _, _, _ = fe.shape_tables(fe.face_reference_points(face_no, t))
        others = np.setdiff1d(np.arange(fe.dofs_per_cell), fe.face_dofs[face_no])

        # only the dofs of a face have a normal component on it
        assert np.allclose(values[others, :, normal_component], 0.0, atol=1e-13)

        values, _, _, _ = fe.shape_tables(fe.face_support_points(face_no))
        assert np.allclose(values[fe.face_dofs[face_no], :, normal_component], np.eye(3), atol=1e-13)


def test_pressure_shape_functions_are_nodal_on_gauss_points():
    fe = MixedElement(1)
    nodes = gauss_1d(2).points[:, 0]
    points = np.array([[x, y] for y in nodes for x in nodes])
    _, _, _, pressure = fe.shape_tables(points)

    assert np.allclose(pressure[fe.pressure_dofs], np.eye(4), atol=1e-13)
    assert np.all(pressure[:fe.n_velocity_dofs] == 0.0)


def test_divergence_theorem_on_a_cell():
    fe = MixedElement(2)
    mesh = quad_mesh.generate_rectangle_mesh((1.0, 0.0), (3.0, 0.5), (1, 1))
    fe_values = ElementEvaluator(fe, mesh)

    cv = fe_values.evaluate(0, gauss(4))
    volume = cv.divergences @ cv.weights

    flux = np.zeros(fe.dofs_per_cell)
    for face_no in range(4):
        fv = fe_values.evaluate_face(0, face_no, gauss_1d(4))
        flux += np.einsum('iqd,qd,q->i', fv.values, fv.normal, fv.weights)

    assert np.allclose(volume, flux, atol=1e-12)
    assert np.sum(cv.weights) == pytest.approx(1.0)


def test_face_weights_and_points():
    fe = MixedElement(1)
    mesh = quad_mesh.generate_rectangle_mesh((0.0, 0.0), (2.0, 0.5), (1, 1))
    fe_values = ElementEvaluator(fe, mesh)

    left = fe_values.evaluate_face(0, 0, gauss_1d(3))
    bottom = fe_values.evaluate_face(0, 2, gauss_1d(3))

    assert np.sum(left.weights) == pytest.approx(0.5)
    assert np.sum(bottom.weights) == pytest.approx(2.0)
    assert np.allclose(left.points[:, 0], 0.0)
    assert np.allclose(bottom.normal, [0.0, -1.0])


def test_evaluator_rejects_wrong_rules_and_skewed_cells():
    fe = MixedElement(1)
    mesh = quad_mesh.generate_rectangle_mesh((0.0, 0.0), (1.0, 1.0), (1, 1))
    fe_values = ElementEvaluator(fe, mesh)

    with pytest.raises(AssemblyError):
        fe_values.evaluate(0, gauss_1d(2))
    with pytest.raises(AssemblyError):
        fe_values.evaluate_face(0, 0, gauss(2))

    skewed = quad_mesh.QuadMesh([[0, 0], [1, 0], [1.3, 1], [0, 1]], [[0, 1, 2, 3]])
    with pytest.raises(ConfigurationError):
        ElementEvaluator(fe, skewed).evaluate(0, gauss(2))


def test_invalid_elements():
    with pytest.raises(ConfigurationError):
        MixedElement(1, dim=3)
    with pytest.raises(ConfigurationError):
        MixedElement(-1)
    with pytest.raises(ConfigurationError):
        MixedElement.face_reference_points(4, [0.5])


def test_component_masks():
    velocity = ComponentMask.velocity()
    pressure = ComponentMask.pressure()

    assert velocity.components() == [U_X, U_Y]
    assert pressure.components() == [PRESSURE]
    assert pressure.complement() == velocity
    assert len(velocity) == 3
    assert not velocity[PRESSURE]
