"""
Raviart-Thomas x discontinuous Q_k element on quadrilaterals.

Velocity space RT_k = Q_{k+1,k} x Q_{k,k+1}: the x-component is a tensor
product of a degree k+1 Lagrange basis in x (Gauss-Lobatto nodes, end
points included) and a degree k basis in y (Gauss nodes); the y-component
is the mirror image. Degrees of freedom are point values of the velocity
components at the nodes, so the nodes on the end points of the degree k+1
direction are values of the normal component on a face. Those face dofs
are shared by the two cells of the face, which makes the normal component
continuous.

Pressure space DGQ_k: tensor-product Lagrange basis on Gauss nodes, no
face support.

Local numbering: x-velocity nodes, y-velocity nodes, pressure nodes.
"""

import numpy as np
from numpy.polynomial import polynomial as P

from darcyflow.lib.exceptions import ConfigurationError
from darcyflow.lib.quadrature import gauss_1d, gauss_lobatto_points

U_X, U_Y, PRESSURE = 0, 1, 2

# Outward unit normals of the reference faces left, right, bottom, top
REFERENCE_NORMALS = np.array([[-1.0, 0.0], [1.0, 0.0], [0.0, -1.0], [0.0, 1.0]])


class LagrangeBasis1D:
    """Lagrange polynomials on the given nodes of [0, 1]."""

    def __init__(self, nodes):
        self.nodes = np.asarray(nodes, dtype=float)
        self.coefficients = []
        for i, xi in enumerate(self.nodes):
            others = np.delete(self.nodes, i)
            self.coefficients.append(P.polyfromroots(others) / np.prod(xi - others))
        self.derivative_coefficients = [P.polyder(c) for c in self.coefficients]

    def __len__(self):
        return len(self.nodes)

    def values(self, t):
        t = np.asarray(t, dtype=float)
        return np.array([P.polyval(t, c) for c in self.coefficients])

    def derivatives(self, t):
        t = np.asarray(t, dtype=float)
        return np.array([P.polyval(t, c) for c in self.derivative_coefficients])


class ComponentMask:
    """Selection of solution components (u_x, u_y, p)."""

    def __init__(self, selected):
        self.selected = tuple(bool(s) for s in selected)

    @classmethod
    def velocity(cls, dim=2):
        return cls([True] * dim + [False])

    @classmethod
    def pressure(cls, dim=2):
        return cls([False] * dim + [True])

    def complement(self):
        return ComponentMask([not s for s in self.selected])

    def __getitem__(self, component):
        return self.selected[component]

    def __len__(self):
        return len(self.selected)

    def __eq__(self, other):
        return isinstance(other, ComponentMask) and self.selected == other.selected

    def __hash__(self):
        return hash(self.selected)

    def __repr__(self):
        return f"ComponentMask({list(self.selected)})"

    def components(self):
        return [c for c, s in enumerate(self.selected) if s]


class MixedElement:
    """
    RT_k velocity + DGQ_k pressure on the reference square [0, 1]^2.

    Parameters
    ----------
    degree : int
        Polynomial degree k of both subspaces
    dim : int
        Space dimension, only 2 is implemented
    """

    def __init__(self, degree, dim=2):
        if dim != 2:
            raise ConfigurationError(f"MixedElement is implemented for dim=2 only, got dim={dim}")
        if degree < 0:
            raise ConfigurationError(f"Element degree must be non-negative, got {degree}")

        self.degree = degree
        self.dim = dim
        self.n_components = dim + 1

        k = degree
        self.normal_basis = LagrangeBasis1D(gauss_lobatto_points(k + 2))
        self.tangential_basis = LagrangeBasis1D(gauss_1d(k + 1).points[:, 0])
        self.pressure_basis = self.tangential_basis

        self.dofs_per_face = k + 1
        self.n_dofs_per_component = (k + 1) * (k + 2)
        self.n_velocity_dofs = 2 * self.n_dofs_per_component
        self.n_pressure_dofs = (k + 1) ** 2
        self.dofs_per_cell = self.n_velocity_dofs + self.n_pressure_dofs

        self._build_dof_tables()

    def __repr__(self):
        return f"FESystem[RT({self.degree})-DGQ({self.degree})]"

    def _build_dof_tables(self):
        k = self.degree
        n = self.dofs_per_cell
        self.system_to_component = np.zeros(n, dtype=int)
        self.face_of_dof = -np.ones(n, dtype=int)
        self.position_on_face = -np.ones(n, dtype=int)
        self.face_dofs = np.zeros((4, self.dofs_per_face), dtype=int)

        # x-component: index b*(k+2) + a, a along x (normal), b along y
        for b in range(k + 1):
            for a in range(k + 2):
                i = b * (k + 2) + a
                self.system_to_component[i] = U_X
                if a in (0, k + 1):
                    face = 0 if a == 0 else 1
                    self.face_of_dof[i] = face
                    self.position_on_face[i] = b
                    self.face_dofs[face, b] = i

        # y-component: index n_x + b*(k+1) + a, a along x, b along y (normal)
        offset = self.n_dofs_per_component
        for b in range(k + 2):
            for a in range(k + 1):
                i = offset + b * (k + 1) + a
                self.system_to_component[i] = U_Y
                if b in (0, k + 1):
                    face = 2 if b == 0 else 3
                    self.face_of_dof[i] = face
                    self.position_on_face[i] = a
                    self.face_dofs[face, a] = i

        self.system_to_component[self.n_velocity_dofs:] = PRESSURE

        self.is_velocity = self.system_to_component != PRESSURE
        self.interior_velocity_dofs = np.flatnonzero(self.is_velocity & (self.face_of_dof < 0))
        self.pressure_dofs = np.flatnonzero(~self.is_velocity)

    def shape_tables(self, ref_points):
        """
        Evaluate all shape functions at points of the reference square.

        Returns
        -------
        values : (dofs_per_cell, n_points, 2)
            Velocity values, zero for pressure dofs
        d_xi, d_eta : (dofs_per_cell, n_points)
            Reference derivative of the x-component along xi and of the
            y-component along eta; their scaled sum is the divergence
        pressure : (dofs_per_cell, n_points)
            Pressure values, zero for velocity dofs
        """
        ref_points = np.atleast_2d(ref_points)
        xi, eta = ref_points[:, 0], ref_points[:, 1]
        nq = len(ref_points)
        n_comp = self.n_dofs_per_component

        Nx, dNx = self.normal_basis.values(xi), self.normal_basis.derivatives(xi)
        Ny, dNy = self.normal_basis.values(eta), self.normal_basis.derivatives(eta)
        Tx, Ty = self.tangential_basis.values(xi), self.tangential_basis.values(eta)
        Px, Py = self.pressure_basis.values(xi), self.pressure_basis.values(eta)

        values = np.zeros((self.dofs_per_cell, nq, 2))
        d_xi = np.zeros((self.dofs_per_cell, nq))
        d_eta = np.zeros((self.dofs_per_cell, nq))
        pressure = np.zeros((self.dofs_per_cell, nq))

        values[:n_comp, :, 0] = (Ty[:, None, :] * Nx[None, :, :]).reshape(n_comp, nq)
        d_xi[:n_comp] = (Ty[:, None, :] * dNx[None, :, :]).reshape(n_comp, nq)

        values[n_comp:self.n_velocity_dofs, :, 1] = (Ny[:, None, :] * Tx[None, :, :]).reshape(n_comp, nq)
        d_eta[n_comp:self.n_velocity_dofs] = (dNy[:, None, :] * Tx[None, :, :]).reshape(n_comp, nq)

        pressure[self.n_velocity_dofs:] = (Py[:, None, :] * Px[None, :, :]).reshape(self.n_pressure_dofs, nq)

        return values, d_xi, d_eta, pressure

    @staticmethod
    def face_reference_points(face_no, t):
        """Map points t of [0, 1] onto reference face `face_no`."""
        t = np.asarray(t, dtype=float)
        zeros, ones = np.zeros_like(t), np.ones_like(t)
        if face_no == 0:
            return np.column_stack([zeros, t])
        if face_no == 1:
            return np.column_stack([ones, t])
        if face_no == 2:
            return np.column_stack([t, zeros])
        if face_no == 3:
            return np.column_stack([t, ones])
        raise ConfigurationError(f"Quadrilateral has faces 0..3, got {face_no}")

    def face_support_points(self, face_no):
        """Reference coordinates of the dofs on a face, by position."""
        return self.face_reference_points(face_no, self.tangential_basis.nodes)
