"""Householder QR factorisation on arbitrary-precision matrix views.

Reflectors are stored LAPACK style: the vector of reflector ``i`` lives
below the diagonal in column ``i``, with an implicit leading one.
"""

from __future__ import annotations

import mpmath

from flatter.blas import _as_vector, _dot, _working_prec, trmv
from flatter.matrix_data import MatrixData


def larfg(alpha, x) -> tuple[mpmath.mpf, mpmath.mpf]:
    """Generate a Householder reflector for the vector ``(alpha, x)``.

    Returns ``(beta, tau)`` such that ``(I - tau v v^T) (alpha, x) =
    (beta, 0)`` with ``v = (1, x')``; ``x`` is overwritten with ``x'``.
    ``beta`` is non-negative. When ``x`` is zero, ``tau`` is zero and
    ``alpha`` is returned as it is.
    """
    xv = _as_vector(x)
    with mpmath.workprec(_working_prec(x)):
        values = list(xv)
        sigma = _dot((v, v) for v in values)
        alpha = mpmath.mpf(alpha)
        if sigma == 0:
            return alpha, mpmath.mpf(0)

        mu = mpmath.sqrt(alpha * alpha + sigma)
        if alpha <= 0:
            v1 = alpha - mu
        else:
            v1 = -(sigma / (alpha + mu))

        v1_sq = v1 * v1
        tau = v1_sq / (sigma + v1_sq) * 2
        for i, value in enumerate(values):
            xv[i] = value / v1
        return mu, tau


def larf(v, tau, c: MatrixData) -> None:
    """Apply ``I - tau v v^T`` from the left to ``c``.

    ``v`` has one entry per row of ``c``; its first entry is taken to be one
    whatever is stored there.
    """
    vv = _as_vector(v)
    m = c.nrows()
    if len(vv) != m:
        raise ValueError(f"reflector length {len(vv)} does not match {m} rows")
    if m <= 1:
        return
    with mpmath.workprec(_working_prec(v, c)):
        tau = mpmath.mpf(tau)
        tail = [vv[i] for i in range(1, m)]
        for j in range(c.ncols()):
            vtc = _dot(((tail[i - 1], c[i, j]) for i in range(1, m)),
                       start=c[0, j]) * tau
            c[0, j] = c[0, j] - vtc
            for i in range(1, m):
                c[i, j] = c[i, j] - vtc * tail[i - 1]


def _reflect_column(a: MatrixData, i: int):
    """Reflect column ``i`` of ``a`` onto the diagonal; return ``tau``."""
    m = a.nrows()
    x = a.submatrix(i + 1, m, i, i + 1) if i + 1 < m else []
    beta, tau = larfg(a[i, i], x)
    a[i, i] = beta
    return tau


def geqr2(a: MatrixData) -> list[mpmath.mpf]:
    """Unblocked QR factorisation of ``a`` in place.

    ``min(m, n) - 1`` reflectors are generated; their scaling factors are
    returned in order. The upper triangle of ``a`` then holds ``R``.
    """
    m, n = a.nrows(), a.ncols()
    taus = []
    for i in range(min(m, n) - 1):
        tau = _reflect_column(a, i)
        taus.append(tau)
        larf(a.submatrix(i, m, i, i + 1), tau, a.submatrix(i, m, i + 1, n))
    return taus


def geqrt2(a: MatrixData, t: MatrixData) -> None:
    """QR factorisation of ``a`` in compact WY form.

    On return the upper triangle of ``a`` holds ``R``, its strict lower part
    the reflector vectors ``V``, and the leading ``k x k`` upper triangle of
    ``t`` the factor ``T`` with ``Q = I - V T V^T``, where ``k = min(m, n)``.
    """
    m, n = a.nrows(), a.ncols()
    k = min(m, n)
    if t.nrows() < k or t.ncols() < k:
        raise ValueError(f"T must be at least {k}x{k}, got {t.nrows()}x{t.ncols()}")
    if k == 0:
        return

    taus = []
    for i in range(k):
        tau = _reflect_column(a, i)
        taus.append(tau)
        if i < k - 1:
            larf(a.submatrix(i, m, i, i + 1), tau, a.submatrix(i, m, i + 1, n))

    t[0, 0] = taus[0]
    prec = _working_prec(a, t)
    for i in range(1, k):
        with mpmath.workprec(prec):
            v_i = [mpmath.mpf(1)] + [a[s, i] for s in range(i + 1, m)]
            y = [
                _dot((a[s, r], v_i[s - i]) for s in range(i, m)) * -taus[i]
                for r in range(i)
            ]
        trmv("U", "N", "N", t.submatrix(0, i, 0, i), y)
        for r, value in enumerate(y):
            t[r, i] = value
        t[i, i] = taus[i]
        t[i, 0] = 0