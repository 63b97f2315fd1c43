"""Strided matrix views over a shared element buffer."""

from __future__ import annotations

import enum
import math
from typing import Any

import mpmath

_LIMB_BITS = 64
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


class ElementType(enum.Enum):
    """Kind of values a matrix holds."""

    MPFR = "mpfr"
    MPZ = "mpz"
    INT64 = "int64"
    DOUBLE = "double"


def _round_mpf(value: Any, prec: int) -> mpmath.mpf:
    with mpmath.workprec(prec):
        return +mpmath.mpf(value)


class _Buffer:
    """Flat storage shared by every view of one matrix."""

    def __init__(self, values: list, element_type: ElementType, prec: int) -> None:
        self.values = values
        self.element_type = element_type
        self.prec = 0 if element_type is ElementType.MPZ else prec

    def coerce(self, value: Any) -> Any:
        kind = self.element_type
        if kind is ElementType.MPFR:
            if self.prec < 1:
                raise ValueError("MPFR elements need a precision of at least 1 bit")
            return _round_mpf(value, self.prec)
        if kind is ElementType.MPZ:
            return int(value)
        if kind is ElementType.INT64:
            v = int(value)
            if not _INT64_MIN <= v <= _INT64_MAX:
                raise OverflowError(f"{v} does not fit in a 64-bit integer")
            return v
        return float(value)

    def set_precision(self, prec: int) -> None:
        """Change the working precision, rounding MPFR values to it."""
        if self.element_type is ElementType.MPFR:
            if prec != self.prec:
                if prec < 1:
                    raise ValueError("precision must be at least 1 bit")
                self.values[:] = [_round_mpf(v, prec) for v in self.values]
                self.prec = prec
        elif self.element_type is ElementType.MPZ:
            self.prec = prec


def _zero(element_type: ElementType) -> Any:
    if element_type is ElementType.MPFR:
        return mpmath.mpf(0)
    if element_type is ElementType.DOUBLE:
        return 0.0
    return 0


def _mpfr_str(value: mpmath.mpf, prec: int) -> str:
    dps = mpmath.libmp.prec_to_dps(max(prec, 1))
    return mpmath.nstr(value, dps, min_fixed=-math.inf, max_fixed=math.inf)


class MatrixData:
    """A view of ``nrows`` x ``ncols`` elements in a shared buffer.

    Views made by :meth:`submatrix` and :meth:`transpose` share storage with
    the view they came from, so writes through one are seen by the others.
    """

    def __init__(
        self,
        data: list | _Buffer,
        nrows: int,
        ncols: int,
        element_type: ElementType | None = None,
        stride: int | None = None,
        transposed: bool = False,
        prec: int = 0,
    ) -> None:
        if isinstance(data, _Buffer):
            if element_type is not None and element_type is not data.element_type:
                raise TypeError("element type does not match the buffer")
            buffer = data
        else:
            if element_type is None:
                raise TypeError("element_type is required for a plain list")
            buffer = _Buffer(data, element_type, prec)
            data[:] = [buffer.coerce(v) for v in data]
        if nrows < 0 or ncols < 0:
            raise ValueError("matrix dimensions must not be negative")
        if stride is None:
            stride = ncols
        self.data = buffer
        self._m = nrows
        self._n = ncols
        self._stride = stride
        self._transposed = bool(transposed)
        self._offset = 0
        self._check_extent()

    def _check_extent(self) -> None:
        if self._m == 0 or self._n == 0:
            return
        rows, cols = (self._n, self._m) if self._transposed else (self._m, self._n)
        last = self._offset + (rows - 1) * self._stride + (cols - 1)
        if last >= len(self.data.values):
            raise ValueError("buffer too small for the requested view")

    @classmethod
    def allocate(
        cls, element_type: ElementType, nrows: int, ncols: int, prec: int = 0
    ) -> MatrixData:
        """Create a zero-filled matrix with its own storage."""
        if element_type is ElementType.MPFR and nrows * ncols > 0 and prec < 1:
            raise ValueError("MPFR matrices need a precision of at least 1 bit")
        buffer = _Buffer([_zero(element_type)] * (nrows * ncols), element_type, prec)
        return cls(buffer, nrows, ncols, stride=ncols)

    @property
    def element_type(self) -> ElementType:
        return self.data.element_type

    def _position(self, index: tuple[int, int]) -> int:
        i, j = index
        if not (0 <= i < self._m and 0 <= j < self._n):
            raise IndexError(f"index ({i}, {j}) out of range for {self._m}x{self._n}")
        if self._transposed:
            return self._offset + j * self._stride + i
        return self._offset + i * self._stride + j

    def __getitem__(self, index: tuple[int, int]) -> Any:
        return self.data.values[self._position(index)]

    def __setitem__(self, index: tuple[int, int], value: Any) -> None:
        self.data.values[self._position(index)] = self.data.coerce(value)

    def nrows(self) -> int:
        return self._m

    def ncols(self) -> int:
        return self._n

    def stride(self) -> int:
        return self._stride

    def is_transposed(self) -> bool:
        return self._transposed

    def prec(self) -> int:
        """Precision in bits of the elements."""
        kind = self.element_type
        if kind is ElementType.DOUBLE:
            return 53
        if kind is ElementType.INT64:
            return 63
        if self._m == 0 or self._n == 0:
            return 0
        if kind is ElementType.MPFR:
            return self.data.prec
        limbs = max(
            (-(-abs(self[i, j]).bit_length() // _LIMB_BITS)
             for i in range(self._m) for j in range(self._n)),
            default=1,
        )
        return max(1, limbs) * _LIMB_BITS

    def is_identity(self) -> bool:
        return all(
            self[i, j] == (1 if i == j else 0)
            for i in range(self._m)
            for j in range(self._n)
        )

    def is_upper_triangular(self) -> bool:
        if self._m != self._n:
            return False
        return all(self[i, j] == 0 for i in range(self._m) for j in range(i))

    def set_identity(self) -> None:
        for i in range(self._m):
            for j in range(self._n):
                self[i, j] = 1 if i == j else 0

    def submatrix(self, t: int, b: int, l: int, r: int) -> MatrixData:
        """View of rows ``[t, b)`` and columns ``[l, r)``."""
        if not (0 <= t < self._m and t <= b <= self._m):
            raise ValueError(f"bad row range [{t}, {b}) for {self._m} rows")
        if not (0 <= l < self._n and l <= r <= self._n):
            raise ValueError(f"bad column range [{l}, {r}) for {self._n} columns")
        view = MatrixData(self.data, b - t, r - l, stride=self._stride,
                          transposed=self._transposed)
        view._offset = self._position((t, l))
        return view

    def transpose(self) -> MatrixData:
        """Transposed view of the same storage."""
        view = MatrixData(self.data, self._n, self._m, stride=self._stride,
                          transposed=not self._transposed)
        view._offset = self._offset
        return view

    def copy_from(self, src: MatrixData) -> None:
        """Copy the values of ``src``, which must have the same shape and type."""
        if src.nrows() != self._m or src.ncols() != self._n:
            raise ValueError("source and destination shapes differ")
        if src.element_type is not self.element_type:
            raise TypeError("source and destination element types differ")
        if self.element_type is ElementType.MPFR and src.prec() != self.prec():
            raise ValueError("source and destination precisions differ")
        values = [[src[i, j] for j in range(self._n)] for i in range(self._m)]
        for i, row in enumerate(values):
            for j, value in enumerate(row):
                self[i, j] = value

    def _format_entry(self, value: Any) -> str:
        kind = self.element_type
        if kind is ElementType.DOUBLE:
            return f"{value:f}, "
        if kind is ElementType.MPFR:
            return _mpfr_str(value, self.data.prec) + ", "
        return f"{value} "

    def format(self) -> str:
        """Text rendering, one row per line."""
        row_end = "],\n" if self.element_type in (ElementType.DOUBLE, ElementType.MPFR) else "]\n"
        parts = ["["]
        for i in range(self._m):
            parts.append("[")
            parts.extend(self._format_entry(self[i, j]) for j in range(self._n))
            parts.append(row_end)
        parts.append("]\n")
        return "".join(parts)

    def save(self, fname) -> None:
        """Write the transpose to ``fname``: one basis vector per line."""
        with open(fname, "w", encoding="utf-8") as fh:
            fh.write(self.transpose().format())

    def is_aliased(self, other: MatrixData) -> bool:
        """True when both views start at the same element of the same buffer."""
        return self.data is other.data and self._offset == other._offset

    def __repr__(self) -> str:
        return (f"MatrixData({self.element_type.name}, {self._m}x{self._n}, "
                f"transposed={self._transposed})")