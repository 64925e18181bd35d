"""Shared infrastructure: mesh, quadrature, block systems, direct solver and output."""
