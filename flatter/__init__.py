"""Multiprecision matrix views, BLAS/LAPACK-style kernels, lattice checks and logging."""

__version__ = "0.1.0"