import numpy as np

from darcyflow.lib import linear_solver
from darcyflow.lib.block_system import BlockSparseMatrix, BlockVector, ScatterAdd
from darcyflow.lib.exceptions import AssemblyError
from darcyflow.lib.quad_mesh import FACES_PER_CELL, TOP
from darcyflow.lib.quadrature import gauss, gauss_1d
from .boundary_values import apply_boundary_values, interpolate_boundary_values
from .dof_handler import assign
from .fe_values import ElementEvaluator
from .functions import PermeabilityInverseTensor, PermeabilityTensor
from .raviart_thomas import MixedElement


class MixedDarcySolver:
    """
    RT_k x DGQ_k mixed finite element solver for Darcy flow.

    Solves: (1/λ) K⁻¹ u + ∇p = 0
            -div(u) = f

    Weak form, for all (v, q):
        (1/λ)(K⁻¹u, v) - (div v, p) - (q, div u) = (q, f) - <g, v·n>_{Γ_p}

    The pressure trace g is imposed weakly on the faces tagged with one of
    `pressure_boundary_ids`; normal fluxes are imposed strongly through
    `boundary_passes` after assembly.
    """

    def __init__(self, mesh, degree=2, permeability=None, boundary_passes=(),
                 pressure_boundary_ids=(TOP,), lambda_=1.0, flux_orientation="outward",
                 verbose=True):
        """
        Parameters
        ----------
        mesh : QuadMesh
        degree : int
            Polynomial degree k of RT_k and DGQ_k
        permeability : PermeabilityTensor, optional
            Defaults to the unit tensor
        boundary_passes : sequence of BoundaryPass
            Strong flux conditions, applied in order
        pressure_boundary_ids : iterable of int
            Boundary ids carrying the weak pressure trace
        lambda_ : float
            Scaling of the K⁻¹ mass term
        flux_orientation : {"outward", "reference"}
            How the values of normal-flux passes are read
        verbose : bool
            Print progress and solver diagnostics
        """
        self.mesh = mesh
        self.degree = degree
        self.element = MixedElement(degree, dim=mesh.dim)
        self.dof_map = assign(mesh, self.element)
        self.fe_values = ElementEvaluator(self.element, mesh)

        self.permeability = permeability if permeability is not None else PermeabilityTensor(1.0)
        self.k_inverse = PermeabilityInverseTensor(self.permeability)
        self.boundary_passes = list(boundary_passes)
        self.pressure_boundary_ids = set(pressure_boundary_ids)
        self.lambda_ = lambda_
        self.flux_orientation = flux_orientation
        self.verbose = verbose

        # exact for the degree 2k+2 mass term on affine cells
        self.quadrature = gauss(degree + 2)
        self.face_quadrature = gauss_1d(degree + 2)

    @property
    def n_dofs(self):
        return self.dof_map.n_dofs

    @property
    def block_sizes(self):
        return self.dof_map.block_sizes

    def _checked_values(self, field, points, shape, name):
        values = np.asarray(field.value_list(points), dtype=float)
        if values.shape != shape:
            raise AssemblyError(f"{name} returned values of shape {values.shape}, expected {shape}")
        return values

    def local_system(self, cell_id, rhs_function, pressure_boundary):
        """Cell matrix (dofs_per_cell x dofs_per_cell) and cell load vector."""
        cv = self.fe_values.evaluate(cell_id, self.quadrature)
        nq = len(cv.weights)
        if cv.values.shape[1] != nq or cv.divergences.shape[1] != nq:
            raise AssemblyError(f"Shape tables of cell {cell_id} do not match {nq} quadrature points")

        f_values = self._checked_values(rhs_function, cv.points, (nq,), "Right-hand side")
        k_inverse_values = self._checked_values(self.k_inverse, cv.points, (nq, 2, 2), "K inverse")

        # (1/λ) φ_u_i · K⁻¹ · φ_u_j
        k_phi = np.einsum('qde,jqe->jqd', k_inverse_values, cv.values)
        mass = np.einsum('iqd,jqd,q->ij', cv.values, k_phi, cv.weights)
        mass = 0.5 * (mass + mass.T)  # K⁻¹ is symmetric

        # div φ_u_i φ_p_j + φ_p_i div φ_u_j
        coupling = np.einsum('iq,jq,q->ij', cv.divergences, cv.pressure_values, cv.weights)
        coupling = coupling + coupling.T

        local_matrix = mass / self.lambda_ - coupling
        local_rhs = np.einsum('iq,q,q->i', cv.pressure_values, f_values, cv.weights)

        # weak pressure trace: -<g, φ_u_i·n>
        for face_no in range(FACES_PER_CELL):
            face_id = self.mesh.cell_to_faces[cell_id, face_no]
            if self.mesh.boundary_ids[face_id] not in self.pressure_boundary_ids:
                continue
            fv = self.fe_values.evaluate_face(cell_id, face_no, self.face_quadrature)
            g_values = self._checked_values(pressure_boundary, fv.points, (len(fv.weights),),
                                            "Pressure boundary values")
            local_rhs -= np.einsum('iqd,qd,q,q->i', fv.values, fv.normal, g_values, fv.weights)

        return local_matrix, local_rhs

    def assemble_system(self, rhs_function, pressure_boundary):
        """
        Assemble the block saddle-point system without strong conditions.

        Returns
        -------
        (BlockSparseMatrix, BlockVector)
        """
        if self.verbose:
            print(f"Assembling system (Grid: {self.mesh.n_cells} cells)...")

        scatter = ScatterAdd(self.n_dofs)
        rhs = BlockVector(self.block_sizes)

        for cell_id in range(self.mesh.n_cells):
            local_matrix, local_rhs = self.local_system(cell_id, rhs_function, pressure_boundary)
            dofs = self.dof_map.cell_dofs[cell_id]
            scatter.add_local(dofs, local_matrix)
            np.add.at(rhs.values, dofs, local_rhs)

        return BlockSparseMatrix(scatter.tocsr(), self.block_sizes), rhs

    def apply_boundary_conditions(self, system_matrix, system_rhs):
        boundary_values = interpolate_boundary_values(
            self.dof_map, self.boundary_passes, flux_orientation=self.flux_orientation)
        if self.verbose:
            print(f"Applying {len(boundary_values)} strong boundary values...")
        return apply_boundary_values(boundary_values, system_matrix, system_rhs)

    def solve(self, rhs_function, pressure_boundary):
        """Assemble, apply the flux conditions and solve; returns the read-only solution."""
        A, b = self.assemble_system(rhs_function, pressure_boundary)
        A, b = self.apply_boundary_conditions(A, b)

        if self.verbose:
            print(f"Solving linear system (DOFs: {self.n_dofs})...")
        x = linear_solver.solve_direct(A.matrix, b.values, verbose=self.verbose)

        return BlockVector(self.block_sizes, x).set_read_only()

    def evaluate_at_points(self, solution, cell_id, points):
        """
        Evaluate (u_x, u_y, p) at points inside one cell.

        Returns
        -------
        ndarray (n_points, 3)
        """
        values, pressure = self.fe_values.evaluate_at(cell_id, points)
        coefficients = solution.values[self.dof_map.cell_dofs[cell_id]]
        velocity = np.einsum('i,iqd->qd', coefficients, values)
        return np.column_stack([velocity, coefficients @ pressure])

    def evaluate_solution(self, solution, point, cell_id):
        """
        Evaluate (u, v, p) at a specific point within a cell.

        Returns
        -------
        tuple : (u_val, v_val, p_val)
        """
        u_val, v_val, p_val = self.evaluate_at_points(solution, cell_id, np.atleast_2d(point))[0]
        return u_val, v_val, p_val

    def cell_averages(self, solution):
        """Mean of (u_x, u_y, p) over every cell, shape (n_cells, 3)."""
        averages = np.zeros((self.mesh.n_cells, 3))
        for cell_id in range(self.mesh.n_cells):
            cv = self.fe_values.evaluate(cell_id, self.quadrature)
            coefficients = solution.values[self.dof_map.cell_dofs[cell_id]]
            velocity = np.einsum('i,iqd,q->d', coefficients, cv.values, cv.weights)
            pressure = coefficients @ cv.pressure_values @ cv.weights
            averages[cell_id] = np.append(velocity, pressure) / np.sum(cv.weights)
        return averages
