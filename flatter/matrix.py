"""Type-tagged matrices with conversion between element types."""

from __future__ import annotations

from fractions import Fraction
from typing import Any

import mpmath

from flatter.matrix_data import ElementType, MatrixData


class Matrix:
    """A matrix of one element type, backed by a :class:`MatrixData` view.

    Matrices created with the constructor own their storage. Those made by
    :meth:`from_data`, :meth:`transpose` or :meth:`submatrix` are views
    that share storage with another matrix.
    """

    def __init__(
        self,
        element_type: ElementType = ElementType.MPFR,
        nrows: int = 0,
        ncols: int = 0,
        prec: int = 0,
    ) -> None:
        self._data = MatrixData.allocate(element_type, nrows, ncols, prec)
        self._owns_storage = True

    @classmethod
    def from_data(cls, md: MatrixData) -> Matrix:
        """Wrap an existing view without taking ownership of its storage."""
        matrix = cls.__new__(cls)
        matrix._data = md
        matrix._owns_storage = False
        return matrix

    def data(self) -> MatrixData:
        """The underlying element view."""
        return self._data

    def type(self) -> ElementType:
        return self._data.element_type

    def nrows(self) -> int:
        return self._data.nrows()

    def ncols(self) -> int:
        return self._data.ncols()

    def prec(self) -> int:
        return self._data.prec()

    def is_transposed(self) -> bool:
        return self._data.is_transposed()

    def is_identity(self) -> bool:
        return self._data.is_identity()

    def is_upper_triangular(self) -> bool:
        return self._data.is_upper_triangular()

    def set_identity(self) -> None:
        self._data.set_identity()

    def set_precision(self, prec: int) -> None:
        """Change the precision of an owned MPFR matrix; other types are unchanged."""
        if not self._owns_storage:
            raise RuntimeError("cannot change the precision of a matrix view")
        if self.type() is ElementType.MPFR:
            self._data.data.set_precision(prec)

    def transpose(self) -> Matrix:
        return Matrix.from_data(self._data.transpose())

    def submatrix(self, t: int, b: int, l: int, r: int) -> Matrix:
        """View of rows ``[t, b)`` and columns ``[l, r)``."""
        return Matrix.from_data(self._data.submatrix(t, b, l, r))

    def format(self) -> str:
        return self._data.format()

    def save(self, fname) -> None:
        """Write the matrix transposed, one basis vector per line."""
        if self.type() not in (ElementType.MPFR, ElementType.MPZ):
            raise TypeError(f"cannot save a matrix of type {self.type().name}")
        self._data.save(fname)

    def __repr__(self) -> str:
        return f"Matrix({self.type().name}, {self.nrows()}x{self.ncols()})"


def _mpf_to_int(value: mpmath.mpf) -> int:
    """Round to the nearest integer, ties to even."""
    if not mpmath.isfinite(value):
        raise ValueError(f"cannot convert {value} to an integer")
    man, exp = value.man_exp
    return round(Fraction(man) * Fraction(2) ** exp)


def _converter(dst: ElementType, src: ElementType):
    if dst is src:
        return None
    if dst is ElementType.MPFR:
        return lambda v: v
    if dst is ElementType.MPZ:
        if src is ElementType.INT64:
            return int
        if src is ElementType.MPFR:
            return _mpf_to_int
        if src is ElementType.DOUBLE:
            return int
    if dst is ElementType.INT64 and src is ElementType.MPZ:
        return int
    if dst is ElementType.DOUBLE:
        if src in (ElementType.INT64, ElementType.MPZ, ElementType.MPFR):
            return float
    raise TypeError(f"cannot copy a {src.name} matrix into a {dst.name} matrix")


def copy_matrix(dst: Matrix, src: Matrix) -> None:
    """Copy ``src`` into ``dst``, converting between element types."""
    if dst.nrows() != src.nrows() or dst.ncols() != src.ncols():
        raise ValueError("source and destination shapes differ")
    convert = _converter(dst.type(), src.type())
    d_dst, d_src = dst.data(), src.data()
    if convert is None:
        d_dst.copy_from(d_src)
        return
    values: list[list[Any]] = [
        [convert(d_src[i, j]) for j in range(src.ncols())] for i in range(src.nrows())
    ]
    for i, row in enumerate(values):
        for j, value in enumerate(row):
            d_dst[i, j] = value


def is_aliased(a: Matrix, b: Matrix) -> bool:
    """True when both matrices start at the same element of the same storage."""
    if a.type() is not b.type():
        return False
    return a.data().is_aliased(b.data())