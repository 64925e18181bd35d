"""Quadrature rules on the reference interval [0, 1] and square [0, 1]^2."""

import numpy as np
from numpy.polynomial import legendre

from .exceptions import ConfigurationError


class Quadrature:
    """Points on the reference cell with weights summing to its measure (1)."""

    def __init__(self, points, weights):
        points = np.asarray(points, dtype=float)
        if points.ndim == 1:
            points = points[:, None]
        self.points = points
        self.weights = np.asarray(weights, dtype=float)
        if len(self.points) != len(self.weights):
            raise ConfigurationError(
                f"Quadrature has {len(self.points)} points but {len(self.weights)} weights")

    @property
    def dim(self):
        return self.points.shape[1]

    def __len__(self):
        return len(self.weights)

    def tensor(self, other):
        """Tensor product with another rule; the first coordinate runs fastest."""
        pts = [np.concatenate([p, q]) for q in other.points for p in self.points]
        wts = [wp * wq for wq in other.weights for wp in self.weights]
        return Quadrature(np.array(pts), np.array(wts))


def gauss_1d(n_points):
    """Gauss-Legendre rule with n points, exact for polynomials of degree 2n-1."""
    if n_points < 1:
        raise ConfigurationError(f"Gauss rule needs at least one point, got {n_points}")
    x, w = legendre.leggauss(n_points)
    return Quadrature(0.5 * (x + 1.0), 0.5 * w)


def gauss_lobatto_points(n_points):
    """Gauss-Lobatto nodes on [0, 1] (end points included)."""
    if n_points < 2:
        raise ConfigurationError(f"Gauss-Lobatto rule needs at least two points, got {n_points}")
    interior = legendre.Legendre.basis(n_points - 1).deriv().roots()
    x = np.concatenate([[-1.0], np.sort(np.real(interior)), [1.0]])
    return 0.5 * (x + 1.0)


def trapezoid_1d():
    return Quadrature([0.0, 1.0], [0.5, 0.5])


def iterated_1d(base, n_copies):
    """Composite rule: `base` repeated on n_copies equal sub-intervals."""
    if n_copies < 1:
        raise ConfigurationError(f"Iterated rule needs at least one copy, got {n_copies}")
    h = 1.0 / n_copies
    pts = np.concatenate([(k + base.points[:, 0]) * h for k in range(n_copies)])
    wts = np.concatenate([base.weights * h for _ in range(n_copies)])
    return Quadrature(pts, wts)


def gauss(n_points, dim=2):
    rule = gauss_1d(n_points)
    result = rule
    for _ in range(dim - 1):
        result = result.tensor(rule)
    return result


def iterated_trapezoid(n_copies, dim=2):
    """Tensor product of the composite trapezoidal rule (duplicated nodes kept)."""
    rule = iterated_1d(trapezoid_1d(), n_copies)
    result = rule
    for _ in range(dim - 1):
        result = result.tensor(rule)
    return result
