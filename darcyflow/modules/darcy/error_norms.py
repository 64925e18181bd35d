"""L2 errors of a computed solution against an analytic one."""

import numpy as np

from darcyflow.lib.exceptions import AssemblyError, ConfigurationError
from darcyflow.lib.quadrature import iterated_trapezoid


def integrate_difference(solver, solution, exact, component_mask, quadrature=None):
    """
    Cellwise L2 norm of the selected components of (u_h - u).

    Parameters
    ----------
    solver : MixedDarcySolver
    solution : BlockVector
    exact : ExactSolution
        Anything with value_list(points) -> (n, 3)
    component_mask : ComponentMask
    quadrature : Quadrature, optional
        Defaults to the trapezoidal rule iterated degree+2 times per
        direction

    Returns
    -------
    ndarray (n_cells,)
    """
    element = solver.element
    if len(component_mask) != element.n_components:
        raise ConfigurationError(
            f"Component mask has {len(component_mask)} entries, expected {element.n_components}")
    if quadrature is None:
        quadrature = iterated_trapezoid(solver.degree + 2)

    components = component_mask.components()
    cellwise_errors = np.zeros(solver.mesh.n_cells)

    for cell_id in range(solver.mesh.n_cells):
        cv = solver.fe_values.evaluate(cell_id, quadrature)
        coefficients = solution.values[solver.dof_map.cell_dofs[cell_id]]
        numerical = np.column_stack([
            np.einsum('i,iqd->qd', coefficients, cv.values),
            coefficients @ cv.pressure_values,
        ])

        exact_values = np.asarray(exact.value_list(cv.points), dtype=float)
        if exact_values.shape != numerical.shape:
            raise AssemblyError(
                f"Exact solution returned values of shape {exact_values.shape}, expected {numerical.shape}")

        diff = (numerical - exact_values)[:, components]
        cellwise_errors[cell_id] = np.sqrt(np.sum(cv.weights * np.sum(diff**2, axis=1)))

    return cellwise_errors


def compute_l2_error(solver, solution, exact, component_mask, quadrature=None):
    """Global L2 error: the l2 norm of the cellwise errors."""
    cellwise_errors = integrate_difference(solver, solution, exact, component_mask, quadrature)
    return float(np.linalg.norm(cellwise_errors))
