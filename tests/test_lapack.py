import mpmath
import pytest

from flatter.lapack import geqr2, geqrt2, larf, larfg
from flatter.matrix_data import ElementType, MatrixData

PREC = 128
TOL = mpmath.mpf("1e-25")


def mat(rows):
    m, n = len(rows), len(rows[0])
    md = MatrixData.allocate(ElementType.MPFR, m, n, PREC)
    for i, row in enumerate(rows):
        for j, value in enumerate(row):
            md[i, j] = value
    return md


def col(values):
    return mat([[v] for v in values])


def to_mp(md):
    return mpmath.matrix([[md[i, j] for j in range(md.ncols())]
                          for i in range(md.nrows())])


SQUARE = [[4, 1, 2], [2, 5, 1], [1, 3, 6]]
TALL = [[1, 2, 3], [4, 5, 6], [7, 8, 10], [2, 1, 1]]


def test_larfg_beta_is_norm():
    x = col([4, -2, 1])
    beta, tau = larfg(3, x)
    with mpmath.workprec(PREC):
        expected = mpmath.sqrt(3 ** 2 + 4 ** 2 + 2 ** 2 + 1 ** 2)
        assert abs(beta - expected) < TOL
    assert 0 < tau <= 2


def test_larfg_negative_alpha_gives_nonnegative_beta():
    x = col([1, 1])
    beta, tau = larfg(-5, x)
    assert beta > 0
    assert 0 < tau <= 2


def test_larfg_reflector_annihilates_vector():
    original = [3, 4, -2, 1]
    x = col(original[1:])
    beta, tau = larfg(original[0], x)
    c = col(original)
    v = [0] + [x[i, 0] for i in range(3)]
    larf(v, tau, c)
    assert abs(c[0, 0] - beta) < TOL
    residual = [abs(c[i, 0]) for i in range(1, 4)]
    assert max(residual) < TOL


def test_larfg_zero_tail_keeps_alpha():
    x = col([0, 0])
    beta, tau = larfg(-7, x)
    assert tau == 0
    assert beta == -7
    assert x[0, 0] == 0 and x[1, 0] == 0


def test_larfg_empty_tail():
    beta, tau = larfg(2, [])
    assert (beta, tau) == (2, 0)


def test_larf_zero_tau_is_identity():
    c = mat(SQUARE)
    larf([9, 9, 9], 0, c)
    for i in range(3):
        for j in range(3):
            assert c[i, j] == SQUARE[i][j]


def test_larf_single_row_unchanged():
    c = mat([[3, 4, 5]])
    larf([1], 2, c)
    assert [c[0, j] for j in range(3)] == [3, 4, 5]


def test_larf_length_mismatch():
    with pytest.raises(ValueError):
        larf([1, 2], 1, mat(SQUARE))


def test_geqr2_preserves_gram_matrix():
    a = mat(SQUARE)
    original = to_mp(a)
    taus = geqr2(a)
    assert len(taus) == 2
    with mpmath.workprec(PREC):
        r = mpmath.matrix(3, 3)
        for i in range(3):
            for j in range(i, 3):
                r[i, j] = a[i, j]
        lhs = r.T * r
        rhs = original.T * original
        for i in range(3):
            for j in range(3):
                assert abs(lhs[i, j] - rhs[i, j]) < mpmath.mpf("1e-20")


def test_geqr2_diagonal_product_is_determinant():
    a = mat(SQUARE)
    det = mpmath.det(to_mp(a))
    geqr2(a)
    with mpmath.workprec(PREC):
        product = abs(a[0, 0] * a[1, 1] * a[2, 2])
        assert abs(product - abs(det)) < mpmath.mpf("1e-10")


def _check_qr(a, t, original):
    m, n = a.nrows(), a.ncols()
    k = min(m, n)
    with mpmath.workprec(PREC):
        v = mpmath.matrix(m, k)
        for s in range(m):
            for r in range(k):
                if s == r:
                    v[s, r] = 1
                elif s > r:
                    v[s, r] = a[s, r]
        tm = mpmath.matrix(k, k)
        for r in range(k):
            for c in range(r, k):
                tm[r, c] = t[r, c]
        q = mpmath.eye(m) - v * tm * v.T
        r_mat = mpmath.matrix(m, n)
        for s in range(m):
            for c in range(s, n):
                r_mat[s, c] = a[s, c]
        qr = q * r_mat
        qtq = q.T * q
        for s in range(m):
            for c in range(n):
                assert abs(qr[s, c] - original[s, c]) < mpmath.mpf("1e-20")
            for c in range(m):
                assert abs(qtq[s, c] - (1 if s == c else 0)) < mpmath.mpf("1e-20")


def test_geqrt2_square_reconstructs():
    a = mat(SQUARE)
    original = to_mp(a)
    t = MatrixData.allocate(ElementType.MPFR, 3, 3, PREC)
    geqrt2(a, t)
    _check_qr(a, t, original)


def test_geqrt2_tall_reconstructs():
    a = mat(TALL)
    original = to_mp(a)
    t = MatrixData.allocate(ElementType.MPFR, 3, 3, PREC)
    geqrt2(a, t)
    _check_qr(a, t, original)


def test_geqrt2_diagonal_of_t_matches_geqr2_taus():
    a1, a2 = mat(SQUARE), mat(SQUARE)
    taus = geqr2(a1)
    t = MatrixData.allocate(ElementType.MPFR, 3, 3, PREC)
    geqrt2(a2, t)
    assert len(taus) == 2
    for i, tau in enumerate(taus):
        assert abs(t[i, i] - tau) < TOL
        assert abs(a1[i, i] - a2[i, i]) < TOL


def test_geqrt2_t_too_small():
    with pytest.raises(ValueError):
        geqrt2(mat(SQUARE), MatrixData.allocate(ElementType.MPFR, 2, 2, PREC))