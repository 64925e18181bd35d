import sys

import numpy as np

from darcyflow.lib import quad_mesh
from darcyflow.lib import vtk_writer
from darcyflow.lib.quad_mesh import BOTTOM, SIDE, TOP
from .boundary_values import BoundaryPass
from .darcy_MFEM import MixedDarcySolver
from .error_norms import compute_l2_error
from .functions import PermeabilityTensor
from .manufactured_solutions import darcy_column
from .raviart_thomas import ComponentMask

# Problem data
PROBLEM_DEGREE = 2
REFINEMENT_LEVEL = 3
SUBDIVISIONS = (4, 1)

RHO_F = 1.0
LAMBDA = 1.0
PERMEABILITY = 1.0

TOP_Y = 1.0
BOTTOM_Y = 0.0
LEFT_X = 0.0
RIGHT_X = np.pi

OUTPUT_FILE = "solution.vtk"


def make_grid(refinement_level=REFINEMENT_LEVEL):
    """Tag the coarse rectangle (top, bottom, sides), then refine it."""
    mesh = quad_mesh.generate_rectangle_mesh((LEFT_X, BOTTOM_Y), (RIGHT_X, TOP_Y), SUBDIVISIONS)
    mesh = quad_mesh.tag_boundary_faces(mesh, quad_mesh.box_boundary_predicate(BOTTOM_Y, TOP_Y))
    return quad_mesh.refine_uniformly(mesh, refinement_level)


def column_boundary_passes(rho_f=RHO_F):
    """
    Strong flux conditions of the column problem:
    zero normal flux through the side walls (the complement of the
    pressure component selects the flux), inflow -ρ through the bottom.
    """
    return [
        BoundaryPass([SIDE], ComponentMask.pressure().complement(), 0.0, name="side"),
        BoundaryPass([BOTTOM], ComponentMask.velocity(), -rho_f, name="bottom"),
    ]


def run(degree=PROBLEM_DEGREE, refinement_level=REFINEMENT_LEVEL, output_file=OUTPUT_FILE, verbose=True):
    """
    Solve the column problem, print the summary and export the fields.

    Returns
    -------
    dict with the solver, the solution and both L2 errors
    """
    mesh = make_grid(refinement_level)
    exact, rhs, pressure_boundary, _ = darcy_column(RHO_F)

    solver = MixedDarcySolver(
        mesh,
        degree=degree,
        permeability=PermeabilityTensor(PERMEABILITY),
        boundary_passes=column_boundary_passes(RHO_F),
        pressure_boundary_ids=(TOP,),
        lambda_=LAMBDA,
        verbose=verbose,
    )
    n_u, n_p = solver.block_sizes

    if verbose:
        print(f"Problem Degree: {degree}")
        print(f"Refinement level: {refinement_level}")
        print(f"Number of active cells: {mesh.n_cells}")
        print(f"Total number of cells: {mesh.n_total_cells}")
        print(f"Number of degrees of freedom: {solver.n_dofs} ({n_u}+{n_p})")

    solution = solver.solve(rhs, pressure_boundary)

    p_l2_error = compute_l2_error(solver, solution, exact, ComponentMask.pressure())
    u_l2_error = compute_l2_error(solver, solution, exact, ComponentMask.velocity())
    if verbose:
        print(f"Errors: ||e_p||_L2 = {p_l2_error:.6e},   ||e_u||_L2 = {u_l2_error:.6e}")

    if output_file is not None:
        vtk_writer.export_to_vtk(solver, solution, output_file, method="P1_vertex")

    return {
        "solver": solver,
        "solution": solution,
        "p_l2_error": p_l2_error,
        "u_l2_error": u_l2_error,
    }


def main():
    try:
        run()
    except Exception as exc:
        print("\n\n" + "-" * 52, file=sys.stderr)
        print("Exception on processing: ", file=sys.stderr)
        print(exc, file=sys.stderr)
        print("Aborting!", file=sys.stderr)
        print("-" * 52, file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
