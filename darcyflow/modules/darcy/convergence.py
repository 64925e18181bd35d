"""Error tables over successive uniform refinements."""

import numpy as np

from darcyflow.lib import quad_mesh
from darcyflow.lib.quad_mesh import UNSET
from .darcy_MFEM import MixedDarcySolver
from .error_norms import compute_l2_error
from .manufactured_solutions import smooth_sin_sin
from .raviart_thomas import ComponentMask


def sin_sin_problem(refinement_level, degree=1, verbose=False):
    """Unit square, 2x2 coarse cells, pressure trace on the whole (untagged) boundary."""
    mesh = quad_mesh.generate_rectangle_mesh((0.0, 0.0), (1.0, 1.0), (2, 2))
    mesh = quad_mesh.refine_uniformly(mesh, refinement_level)
    exact, rhs, pressure_boundary, _ = smooth_sin_sin()
    solver = MixedDarcySolver(mesh, degree=degree, pressure_boundary_ids=(UNSET,), verbose=verbose)
    return solver, exact, rhs, pressure_boundary


def observed_orders(errors):
    """log2 of successive error ratios (the mesh size halves per level)."""
    errors = np.asarray(errors, dtype=float)
    return np.log2(errors[:-1] / errors[1:])


def run_convergence_study(problem, levels, degree=1, verbose=True):
    """
    Solve `problem(level, degree)` on every level and tabulate the errors.

    Parameters
    ----------
    problem : callable
        problem(level, degree) -> (solver, exact, rhs, pressure_boundary)
    levels : sequence of int
    degree : int

    Returns
    -------
    dict with "cells", "dofs", "p_errors", "u_errors", "p_orders", "u_orders"
    """
    table = {"cells": [], "dofs": [], "p_errors": [], "u_errors": []}
    for level in levels:
        solver, exact, rhs, pressure_boundary = problem(level, degree)
        solution = solver.solve(rhs, pressure_boundary)
        table["cells"].append(solver.mesh.n_cells)
        table["dofs"].append(solver.n_dofs)
        table["p_errors"].append(compute_l2_error(solver, solution, exact, ComponentMask.pressure()))
        table["u_errors"].append(compute_l2_error(solver, solution, exact, ComponentMask.velocity()))

    table["p_orders"] = observed_orders(table["p_errors"])
    table["u_orders"] = observed_orders(table["u_errors"])

    if verbose:
        print(f"{'cells':>8} {'dofs':>8} {'||e_p||_L2':>14} {'rate':>6} {'||e_u||_L2':>14} {'rate':>6}")
        for i in range(len(levels)):
            p_rate = f"{table['p_orders'][i-1]:6.2f}" if i > 0 else " " * 6
            u_rate = f"{table['u_orders'][i-1]:6.2f}" if i > 0 else " " * 6
            print(f"{table['cells'][i]:>8} {table['dofs'][i]:>8} {table['p_errors'][i]:14.6e} {p_rate} "
                  f"{table['u_errors'][i]:14.6e} {u_rate}")

    return table
