"""
Coefficient and boundary functions evaluated pointwise.

Every class here offers the same capability: `value(point)` for one point
(x, y) and `value_list(points)` for an (n, 2) array of points. There is no
common base class; the assembler and the error evaluation only rely on
these two methods.
"""

import numpy as np


def _as_points(points):
    points = np.asarray(points, dtype=float)
    return points.reshape(-1, 2)


class RightHandSide:
    """Scalar source term f(x, y)."""
    n_components = 1

    def __init__(self, func):
        self.func = func

    def value(self, point):
        return float(self.func(point[0], point[1]))

    def value_list(self, points):
        points = _as_points(points)
        return np.array([self.func(x, y) for x, y in points], dtype=float)


class PressureBoundaryValues(RightHandSide):
    """Scalar pressure trace g(x, y) imposed weakly on pressure boundaries."""


class PermeabilityTensor:
    """Isotropic permeability K(x, y) = k(x, y) I.

    `permeability` is either a constant or a scalar function k(x, y).
    """
    n_components = 4

    def __init__(self, permeability=1.0, dim=2):
        self.permeability = permeability
        self.dim = dim

    def _scalar(self, x, y):
        if callable(self.permeability):
            return float(self.permeability(x, y))
        return float(self.permeability)

    def value(self, point):
        return self._scalar(point[0], point[1]) * np.eye(self.dim)

    def value_list(self, points):
        points = _as_points(points)
        k = np.array([self._scalar(x, y) for x, y in points])
        return k[:, None, None] * np.eye(self.dim)[None, :, :]


class PermeabilityInverseTensor:
    """Pointwise inverse of a permeability tensor."""
    n_components = 4

    def __init__(self, permeability_tensor):
        self.permeability_tensor = permeability_tensor

    def value(self, point):
        return np.linalg.inv(self.permeability_tensor.value(point))

    def value_list(self, points):
        return np.linalg.inv(self.permeability_tensor.value_list(points))


class ExactSolution:
    """Analytic (u_x, u_y, p).

    Parameters
    ----------
    velocity : callable
        velocity(x, y) -> (u_x, u_y)
    pressure : callable
        pressure(x, y) -> p
    """
    n_components = 3

    def __init__(self, velocity, pressure):
        self.velocity = velocity
        self.pressure = pressure

    def value(self, point):
        x, y = point[0], point[1]
        ux, uy = self.velocity(x, y)
        return np.array([ux, uy, self.pressure(x, y)], dtype=float)

    def value_list(self, points):
        points = _as_points(points)
        return np.array([self.value(p) for p in points]).reshape(-1, 3)


def channel_permeability(x, y):
    """Heterogeneous permeability: a high-permeability band around y = 0.5."""
    return (0.5 * np.sin(3 * x) + 1) * np.exp(-100.0 * (y - 0.5) ** 2)
