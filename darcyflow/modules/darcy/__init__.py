"""
Darcy Flow Module
=================

Mixed finite element solver for steady Darcy flow:
    (1/λ) K⁻¹ u + ∇p = 0
    -div(u) = f

with u the Darcy velocity (flux), p the pressure and K the permeability
tensor. The velocity is discretized with Raviart-Thomas RT_k elements and
the pressure with discontinuous Q_k elements; the resulting symmetric
saddle-point system is solved with a sparse direct solver.

Classes
-------
MixedDarcySolver
    Assembly and solution of the mixed system
MixedElement
    RT_k x DGQ_k element on quadrilaterals
BoundaryPass
    Strong normal-flux condition on tagged boundaries
"""

from .boundary_values import BoundaryPass
from .darcy_MFEM import MixedDarcySolver
from .raviart_thomas import ComponentMask, MixedElement

__all__ = ['MixedDarcySolver', 'MixedElement', 'ComponentMask', 'BoundaryPass']
