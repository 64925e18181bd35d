import numpy as np

from .functions import ExactSolution, PressureBoundaryValues, RightHandSide


# ==============================================================================
# Test Case 1: Darcy column
# ==============================================================================
def darcy_column(rho_f=1.0):
    """
    Define problem on [x0, x1] x [0, 1]: -div u = 2ρy, u = -∇p
    Exact solution: p = -ρ(y - y³/3), u = (0, ρ(1 - y²))
    p = -2ρ/3 on the top, u·n = -ρ on the bottom, u·n = 0 on the sides
    """
    def pressure(x, y):
        return -rho_f * (y - y**3 / 3.0)

    def velocity(x, y):
        return 0.0, rho_f * (1 - y * y)

    def f(x, y):
        return 2 * y * rho_f

    def g(x, y):
        return -2.0 / 3 * rho_f

    return ExactSolution(velocity, pressure), RightHandSide(f), PressureBoundaryValues(g), "Darcy Column"


# ==============================================================================
# Test Case 2: Smooth sin sin
# ==============================================================================
def smooth_sin_sin():
    """
    Define problem on the unit square: -div u = -2π²sin(πx)sin(πy), u = -∇p
    Exact solution: p = sin(πx)sin(πy), u = -π(cos(πx)sin(πy), sin(πx)cos(πy))
    The pressure trace (zero) is imposed on the whole boundary
    """
    def pressure(x, y):
        return np.sin(np.pi*x) * np.sin(np.pi*y)

    def velocity(x, y):
        return (-np.pi * np.cos(np.pi*x) * np.sin(np.pi*y),
                -np.pi * np.sin(np.pi*x) * np.cos(np.pi*y))

    def f(x, y):
        return -2 * np.pi**2 * np.sin(np.pi*x) * np.sin(np.pi*y)

    def g(x, y):
        return pressure(x, y)

    return ExactSolution(velocity, pressure), RightHandSide(f), PressureBoundaryValues(g), "Smooth sin sin"
