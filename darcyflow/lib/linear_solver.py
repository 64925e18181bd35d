"""Sparse direct solve of the assembled system (SuperLU through scipy)."""

import numpy as np
from scipy.sparse import csc_matrix
from scipy.sparse.linalg import splu

from .exceptions import SolverError


class FactoredSystem:
    """LU factors of a square sparse matrix."""

    def __init__(self, lu, shape):
        self.lu = lu
        self.shape = shape


def factor(matrix):
    """Factor a square sparse matrix; SolverError if it is singular."""
    A = csc_matrix(matrix)
    if A.shape[0] != A.shape[1]:
        raise SolverError(f"Cannot factor non-square matrix of shape {A.shape}")
    try:
        lu = splu(A)
    except RuntimeError as e:
        raise SolverError(f"Factorization failed: {e}") from e
    return FactoredSystem(lu, A.shape)


def solve(factored, rhs):
    rhs = np.asarray(rhs, dtype=float)
    if rhs.shape != (factored.shape[0],):
        raise SolverError(f"Right-hand side of shape {rhs.shape} does not match matrix {factored.shape}")
    x = factored.lu.solve(rhs)
    if not np.all(np.isfinite(x)):
        raise SolverError("Solver returned non-finite values; the system is singular or unstable")
    return x


def solve_direct(matrix, rhs, verbose=True):
    """Factor and solve, printing the diagnostics of the solve."""
    if verbose:
        print(f"  Matrix size: {matrix.shape}")
        print(f"  Nonzeros: {matrix.nnz}")
        print(f"  Sparsity: {100 * (1 - matrix.nnz / (matrix.shape[0] * matrix.shape[1])):.1f}%")
        print(f"  RHS norm: {np.linalg.norm(rhs):.6e}")

    x = solve(factor(matrix), rhs)

    if verbose:
        residual = np.linalg.norm(matrix @ x - rhs)
        print(f"  Solution residual: {residual:.6e}")
        print(f"  Solution norm: {np.linalg.norm(x):.6e}")
    return x
