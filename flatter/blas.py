"""Basic linear algebra on arbitrary-precision matrix views.

Matrices are :class:`~flatter.matrix_data.MatrixData` views. A vector is
either a single-row or single-column view, or a plain Python list. Each
operation runs at the largest MPFR precision among its matrix operands;
when none is given it runs at mpmath's current precision.
"""

from __future__ import annotations

from typing import Any, Iterable, Iterator

import mpmath

from flatter.matrix_data import ElementType, MatrixData


class _ColumnView:
    """Sequence access to the entries of a single-column view."""

    def __init__(self, md: MatrixData) -> None:
        self._md = md

    def __len__(self) -> int:
        return self._md.nrows()

    def __getitem__(self, k: int) -> Any:
        return self._md[k, 0]

    def __setitem__(self, k: int, value: Any) -> None:
        self._md[k, 0] = value

    def __iter__(self) -> Iterator[Any]:
        return (self._md[k, 0] for k in range(len(self)))


def _as_vector(v):
    """Return a mutable sequence over the entries of ``v``."""
    if isinstance(v, MatrixData):
        if v.ncols() == 1:
            return _ColumnView(v)
        if v.nrows() == 1:
            return _ColumnView(v.transpose())
        raise ValueError(
            f"expected a single row or column, got {v.nrows()}x{v.ncols()}"
        )
    return v


def _working_prec(*operands) -> int:
    """Largest MPFR precision among the operands, else mpmath's current one."""
    precs = [
        op.data.prec
        for op in operands
        if isinstance(op, MatrixData)
        and op.element_type is ElementType.MPFR
        and op.data.prec > 0
    ]
    return max(precs, default=mpmath.mp.prec)


def _dot(pairs: Iterable[tuple[Any, Any]], start: Any = 0) -> mpmath.mpf:
    """Sequential sum of products, at the current working precision."""
    total = mpmath.mpf(start)
    for u, w in pairs:
        total += u * w
    return total


def _check_flag(name: str, value: str, allowed: str) -> None:
    if not isinstance(value, str) or len(value) != 1 or value not in allowed:
        raise ValueError(f"{name} must be one of {', '.join(allowed)}, got {value!r}")


def copy(x, y) -> None:
    """Copy the entries of vector ``x`` into vector ``y``."""
    xv, yv = _as_vector(x), _as_vector(y)
    if len(xv) != len(yv):
        raise ValueError(f"vector lengths differ: {len(xv)} and {len(yv)}")
    values = list(xv)
    for i, value in enumerate(values):
        yv[i] = value


def gemm(transa: str, transb: str, alpha, a: MatrixData, b: MatrixData,
         beta, c: MatrixData) -> None:
    """Compute ``c = alpha * op(a) * op(b) + beta * c``.

    ``op`` transposes when its flag is ``'T'``; at most one operand may be
    transposed.
    """
    _check_flag("transa", transa, "NT")
    _check_flag("transb", transb, "NT")
    if transa == "T" and transb == "T":
        raise NotImplementedError("gemm with both operands transposed")
    op_a = a.transpose() if transa == "T" else a
    op_b = b.transpose() if transb == "T" else b
    m, k = op_a.nrows(), op_a.ncols()
    n = c.ncols()
    if op_b.nrows() != k or op_b.ncols() != n or c.nrows() != m:
        raise ValueError(
            f"incompatible shapes {op_a.nrows()}x{op_a.ncols()}, "
            f"{op_b.nrows()}x{op_b.ncols()} and {c.nrows()}x{c.ncols()}"
        )
    with mpmath.workprec(_working_prec(a, b, c)):
        alpha = mpmath.mpf(alpha)
        beta = mpmath.mpf(beta)
        products = [
            [_dot((op_a[i, l], op_b[l, j]) for l in range(k)) * alpha
             for j in range(n)]
            for i in range(m)
        ]
        clear = transa == "N" and transb == "N" and beta == 0
        for i, row in enumerate(products):
            for j, product in enumerate(row):
                base = mpmath.mpf(0) if clear else c[i, j] * beta
                c[i, j] = base + product


def gemv(trans: str, alpha, a: MatrixData, x, beta, y) -> None:
    """Compute ``y = alpha * op(a) * x + beta * y``."""
    _check_flag("trans", trans, "NT")
    op = a if trans == "N" else a.transpose()
    xv, yv = _as_vector(x), _as_vector(y)
    if len(xv) != op.ncols() or len(yv) != op.nrows():
        raise ValueError(
            f"vector lengths {len(xv)} and {len(yv)} do not fit a "
            f"{op.nrows()}x{op.ncols()} operator"
        )
    with mpmath.workprec(_working_prec(a, x, y)):
        alpha = mpmath.mpf(alpha)
        beta = mpmath.mpf(beta)
        sums = [
            _dot((op[i, j], xv[j]) for j in range(op.ncols())) * alpha
            for i in range(op.nrows())
        ]
        for i, s in enumerate(sums):
            yv[i] = s if beta == 0 else yv[i] * beta + s


def ger(alpha, x, y, a: MatrixData) -> None:
    """Rank-one update ``a += alpha * x * y^T``."""
    xv, yv = _as_vector(x), _as_vector(y)
    if len(xv) != a.nrows() or len(yv) != a.ncols():
        raise ValueError(
            f"vector lengths {len(xv)} and {len(yv)} do not fit a "
            f"{a.nrows()}x{a.ncols()} matrix"
        )
    with mpmath.workprec(_working_prec(x, y, a)):
        alpha = mpmath.mpf(alpha)
        xs, ys = list(xv), list(yv)
        for i, xi in enumerate(xs):
            for j, yj in enumerate(ys):
                a[i, j] = a[i, j] + xi * yj * alpha


def trmv(uplo: str, trans: str, diag: str, a: MatrixData, x) -> None:
    """Compute ``x = a * x`` for a triangular ``a``.

    Only the upper, non-transposed, non-unit case is supported; entries of
    ``a`` below the diagonal are not read.
    """
    _check_flag("uplo", uplo, "UL")
    _check_flag("trans", trans, "NT")
    _check_flag("diag", diag, "UN")
    if (uplo, trans, diag) != ("U", "N", "N"):
        raise NotImplementedError(
            f"trmv supports only uplo='U', trans='N', diag='N', "
            f"got {uplo!r}, {trans!r}, {diag!r}"
        )
    n = a.nrows()
    if a.ncols() != n:
        raise ValueError("trmv needs a square matrix")
    xv = _as_vector(x)
    if len(xv) != n:
        raise ValueError(f"vector length {len(xv)} does not match order {n}")
    with mpmath.workprec(_working_prec(a, x)):
        for i in range(n):
            xv[i] = _dot(((xv[j], a[i, j]) for j in range(i + 1, n)),
                         start=xv[i] * a[i, i])