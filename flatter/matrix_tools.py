"""Checks on matrices and lattice bases used to validate computations."""

from __future__ import annotations

from typing import Union

import mpmath

from flatter.matrix import Matrix
from flatter.matrix_data import ElementType, MatrixData

MatrixLike = Union[Matrix, MatrixData]


def _view(m: MatrixLike) -> MatrixData:
    return m.data() if isinstance(m, Matrix) else m


def _prec_of(md: MatrixData) -> int:
    if md.element_type is ElementType.MPFR and md.data.prec > 0:
        return md.data.prec
    return mpmath.mp.prec


def is_approx(v1, v2, prec: int | None = None) -> bool:
    """True when ``v1`` is within a relative error of ``2^-(0.8 prec)`` of ``v2``.

    The error is absolute when ``v2`` is zero. Both values must be finite.
    ``prec`` defaults to mpmath's current precision.
    """
    if prec is None:
        prec = mpmath.mp.prec
    with mpmath.workprec(prec):
        a = mpmath.mpf(v1)
        b = mpmath.mpf(v2)
        if not (mpmath.isfinite(a) and mpmath.isfinite(b)):
            return False
        bound = mpmath.ldexp(mpmath.mpf(1), -int(prec * 0.8))
        err = abs(a - b)
        if b != 0:
            err = err / b
        return bool(err <= bound)


def _mpfr_equal(d1: MatrixData, d2: MatrixData) -> bool:
    if d1.nrows() != d2.nrows() or d1.ncols() != d2.ncols():
        return False
    if d1.nrows() == 0 or d1.ncols() == 0:
        return True
    prec = _prec_of(d1)
    with mpmath.workprec(prec):
        max_err = mpmath.mpf(0)
        for i in range(d1.nrows()):
            for j in range(d1.ncols()):
                a, b = d1[i, j], d2[i, j]
                if not (mpmath.isfinite(a) and mpmath.isfinite(b)):
                    return False
                max_err = max(max_err, abs(a - b))
        bound = mpmath.ldexp(mpmath.mpf(1), -int(prec * 0.95))
        return bool(max_err <= bound)


def _mpz_equal(d1: MatrixData, d2: MatrixData) -> bool:
    if d1.nrows() != d2.nrows() or d1.ncols() != d2.ncols():
        return False
    return all(
        d1[i, j] == d2[i, j]
        for i in range(d1.nrows())
        for j in range(d1.ncols())
    )


def is_matrix_equal(m1: MatrixLike, m2: MatrixLike) -> bool:
    """Compare two MPFR or two MPZ matrices.

    MPFR matrices are equal when every entry differs by at most
    ``2^-(0.95 prec)``; MPZ matrices must match exactly. Matrices of
    differing or other element types are never equal.
    """
    d1, d2 = _view(m1), _view(m2)
    if d1.element_type is not d2.element_type:
        return False
    if d1.element_type is ElementType.MPFR:
        return _mpfr_equal(d1, d2)
    if d1.element_type is ElementType.MPZ:
        return _mpz_equal(d1, d2)
    return False


def is_same_gram(a: MatrixLike, b: MatrixLike) -> bool:
    """True when ``a^T a`` and ``b^T b`` agree entry by entry, approximately."""
    da, db = _view(a), _view(b)
    if da.ncols() != db.ncols():
        return False
    prec = _prec_of(da)
    ok = True
    with mpmath.workprec(prec):
        for i in range(da.ncols()):
            for j in range(i + 1):
                sum_a = mpmath.mpf(0)
                for k in range(da.nrows()):
                    sum_a += da[k, i] * da[k, j]
                sum_b = mpmath.mpf(0)
                for k in range(db.nrows()):
                    sum_b += db[k, i] * db[k, j]
                ok &= is_approx(sum_a, sum_b, prec)
    return ok


def is_triangular(a: MatrixLike) -> bool:
    """True when ``a`` is square with only zeros below the diagonal."""
    d = _view(a)
    if d.nrows() != d.ncols():
        return False
    return all(d[i, j] == 0 for i in range(d.nrows()) for j in range(i))


def _ceil_div(num: int, den: int) -> int:
    return -((-num) // den)


def is_same_lattice(l1: MatrixLike, l2: MatrixLike) -> bool:
    """Check that every column of one integer basis lies in the other's lattice.

    One of the two bases must be square and upper triangular; the columns of
    the other basis are reduced against it by back-substitution with
    rounding up, and must all reduce to zero.
    """
    d1, d2 = _view(l1), _view(l2)
    if d1.is_upper_triangular():
        tri, other = d1, d2
    elif d2.is_upper_triangular():
        tri, other = d2, d1
    else:
        raise ValueError("one of the bases must be upper triangular")
    n = tri.nrows()
    if other.nrows() != n:
        raise ValueError("bases have different dimensions")
    if any(tri[r, r] == 0 for r in range(n)):
        raise ValueError("triangular basis has a zero on its diagonal")

    equal = True
    for col_id in range(n if other.ncols() >= n else other.ncols()):
        col = [other[r, col_id] for r in range(n)]
        for r in reversed(range(n)):
            mul = _ceil_div(col[r], tri[r, r])
            if mul:
                col = [c - tri[j, r] * mul for j, c in enumerate(col)]
        if any(col):
            equal = False
    return equal