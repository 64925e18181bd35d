import numpy as np
import pytest

from darcyflow.lib.exceptions import AssemblyError, ConfigurationError
from darcyflow.lib.quad_mesh import TOP
from darcyflow.modules.darcy import main as darcy_main
from darcyflow.modules.darcy.convergence import run_convergence_study, sin_sin_problem
from darcyflow.modules.darcy.darcy_MFEM import MixedDarcySolver
from darcyflow.modules.darcy.dof_handler import PRESSURE_BLOCK, VELOCITY_BLOCK
from darcyflow.modules.darcy.functions import (
    PermeabilityInverseTensor, PermeabilityTensor, channel_permeability)
from darcyflow.modules.darcy.manufactured_solutions import darcy_column


def column_solver(levels=1, degree=1, **kwargs):
    return MixedDarcySolver(
        darcy_main.make_grid(levels), degree=degree,
        boundary_passes=darcy_main.column_boundary_passes(1.0),
        pressure_boundary_ids=(TOP,), verbose=False, **kwargs)


def find_cell(mesh, point):
    for cell_id in range(mesh.n_cells):
        x0, x1, y0, y1 = mesh.cell_bounds(cell_id)
        if x0 <= point[0] <= x1 and y0 <= point[1] <= y1:
            return cell_id
    raise ValueError(f"{point} is outside the mesh")


def test_local_matrix_is_symmetric():
    solver = column_solver()
    _, rhs, g, _ = darcy_column()
    local_matrix, local_rhs = solver.local_system(0, rhs, g)

    assert local_matrix.shape == (solver.element.dofs_per_cell,) * 2
    assert np.array_equal(local_matrix, local_matrix.T)
    assert local_rhs.shape == (solver.element.dofs_per_cell,)


def test_saddle_point_structure():
    solver = column_solver(levels=1, degree=2)
    _, rhs, g, _ = darcy_column()
    A, b = solver.assemble_system(rhs, g)

    assert A.shape == (solver.n_dofs, solver.n_dofs)
    assert A.block(PRESSURE_BLOCK, PRESSURE_BLOCK).nnz == 0
    assert A.block(VELOCITY_BLOCK, PRESSURE_BLOCK).nnz > 0
    assert abs(A.matrix - A.matrix.T).max() <= 1e-14 * abs(A.matrix).max()

    A, b = solver.apply_boundary_conditions(A, b)
    assert A.block(PRESSURE_BLOCK, PRESSURE_BLOCK).nnz == 0
    assert abs(A.matrix - A.matrix.T).max() <= 1e-14 * abs(A.matrix).max()


def test_column_velocity_is_reproduced():
    """The exact velocity (0, 1 - y^2) lies in RT_2."""
    solver = column_solver(levels=1, degree=2)
    _, rhs, g, _ = darcy_column()
    solution = solver.solve(rhs, g)

    assert solution.n_blocks == 2
    assert not solution.values.flags.writeable
    for point in ([0.3, 0.1], [1.7, 0.5], [3.0, 0.95]):
        u, v, p = solver.evaluate_solution(solution, point, find_cell(solver.mesh, point))
        assert u == pytest.approx(0.0, abs=1e-10)
        assert v == pytest.approx(1 - point[1]**2, abs=1e-10)
        assert p == pytest.approx(-(point[1] - point[1]**3 / 3), abs=5e-3)


def test_column_problem_end_to_end(tmp_path):
    coarse = darcy_main.run(refinement_level=2, output_file=tmp_path / "coarse.vtk", verbose=False)
    fine = darcy_main.run(refinement_level=3, output_file=tmp_path / "fine.vtk", verbose=False)

    assert fine["solver"].mesh.n_cells == 256
    assert 0.0 < fine["p_l2_error"] < coarse["p_l2_error"]
    assert fine["u_l2_error"] < 1e-8
    assert coarse["u_l2_error"] < 1e-8
    assert (tmp_path / "fine.vtk").exists()


def test_flux_orientation_matters():
    _, rhs, g, _ = darcy_column()
    exact = darcy_column()[0]

    solver = column_solver(levels=1, degree=2, flux_orientation="reference")
    solution = solver.solve(rhs, g)
    point = [1.0, 0.1]
    _, v, _ = solver.evaluate_solution(solution, point, find_cell(solver.mesh, point))

    # the inflow read along +y instead of along the outward normal flips it
    assert abs(v - exact.value(point)[1]) > 0.5


def test_convergence_rates():
    table = run_convergence_study(sin_sin_problem, [0, 1, 2], degree=1, verbose=False)

    assert table["cells"] == [4, 16, 64]
    assert np.all(np.diff(table["p_errors"]) < 0)
    assert np.all(np.diff(table["u_errors"]) < 0)
    assert table["p_orders"][-1] > 1.5
    assert table["u_orders"][-1] > 1.5


def test_heterogeneous_permeability():
    permeability = PermeabilityTensor(lambda x, y: 1.0 + 0.5 * np.sin(3 * x))
    k_inverse = PermeabilityInverseTensor(permeability)
    points = np.array([[0.1, 0.2], [1.0, 0.5]])

    products = permeability.value_list(points) @ k_inverse.value_list(points)
    assert np.allclose(products, np.eye(2)[None, :, :])
    assert channel_permeability(0.0, 0.5) == pytest.approx(1.0)

    solver = column_solver(levels=1, degree=1, permeability=permeability)
    _, rhs, g, _ = darcy_column()
    solution = solver.solve(rhs, g)
    assert np.all(np.isfinite(solution.values))


class WrongShape:
    def value_list(self, points):
        return np.zeros((len(points), 2))


def test_bad_field_shape_raises_assembly_error():
    solver = column_solver()
    _, rhs, g, _ = darcy_column()
    with pytest.raises(AssemblyError):
        solver.assemble_system(WrongShape(), g)
    with pytest.raises(AssemblyError):
        solver.assemble_system(rhs, WrongShape())


def test_main_writes_solution(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    assert darcy_main.main() == 0

    out = capsys.readouterr().out
    assert "Number of active cells: 256" in out
    assert "Errors: ||e_p||_L2 = " in out
    assert (tmp_path / "solution.vtk").exists()


def test_main_reports_failures(monkeypatch, capsys):
    def failing_run():
        raise ConfigurationError("bad boundary data")

    monkeypatch.setattr(darcy_main, "run", failing_run)
    assert darcy_main.main() == 1
    err = capsys.readouterr().err
    assert "bad boundary data" in err
    assert "Aborting!" in err


def test_cell_averages():
    solver = column_solver(levels=1, degree=2)
    _, rhs, g, _ = darcy_column()
    averages = solver.cell_averages(solver.solve(rhs, g))

    assert averages.shape == (solver.mesh.n_cells, 3)
    for cell_id, (u_avg, v_avg, _) in enumerate(averages):
        _, _, y0, y1 = solver.mesh.cell_bounds(cell_id)
        assert u_avg == pytest.approx(0.0, abs=1e-10)
        assert v_avg == pytest.approx(1 - (y1**3 - y0**3) / (3 * (y1 - y0)), abs=1e-10)
