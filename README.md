# flatter

Multiprecision matrix building blocks for lattice work, in pure Python,
with arbitrary-precision floating point provided by `mpmath`.

## Modules

- `flatter.matrix_data`: `ElementType` (`MPFR`, `MPZ`, `INT64`, `DOUBLE`)
  and `MatrixData`, a strided view over a shared element buffer.
  `MatrixData.allocate` creates a zero-filled matrix; `submatrix` and
  `transpose` return views that share storage with their parent. Entries are
  read and written as `md[i, j]` and are converted to the element type on
  write (MPFR values are rounded to the matrix precision, `INT64` values are
  range-checked). Also `is_identity`, `is_upper_triangular`, `set_identity`,
  `copy_from`, `format`, `save` and `is_aliased`.
- `flatter.matrix`: `Matrix`, a type-tagged matrix that owns its storage
  (or wraps a view via `Matrix.from_data`), `copy_matrix(dst, src)` to copy
  with conversion between element types (MPFR to MPZ rounds to nearest,
  ties to even), and `is_aliased(a, b)`.
- `flatter.blas`: `copy`, `gemm`, `gemv`, `ger` and `trmv` on `MatrixData`
  views; vectors may be single-row or single-column views or plain lists.
  Each operation runs at the largest MPFR precision among its operands.
  `gemm` does not support both operands transposed, and `trmv` supports
  only the upper, non-transposed, non-unit case; other combinations raise
  `NotImplementedError`.
- `flatter.lapack`: Householder routines `larfg`, `larf`, `geqr2`
  (unblocked QR, returning the reflector scaling factors) and `geqrt2`
  (QR in compact WY form).
- `flatter.matrix_tools`: `is_approx`, `is_matrix_equal`, `is_same_gram`,
  `is_triangular` and `is_same_lattice` for validating results.
- `flatter.context`: `ComputationContext`, the number of worker threads a
  computation may use (defaults to the CPU count).
- `flatter.monitor`: `Monitor`, a process-wide timing and profile log.
  `initialize(logfile_name)` starts logging (without an argument the file
  name comes from the `FLATTER_LOG` environment variable; an empty name
  leaves logging off) and `finalize()` closes the log.

## Installation

```
pip install .
```

## Example

```python
from flatter.lapack import geqr2
from flatter.matrix import Matrix, copy_matrix
from flatter.matrix_data import ElementType

basis = Matrix(ElementType.MPZ, 3, 3)
d = basis.data()
for i, row in enumerate([[1, 5, 7], [0, 1, 3], [0, 0, 1]]):
    for j, value in enumerate(row):
        d[i, j] = value

R = Matrix(ElementType.MPFR, 3, 3, 128)
copy_matrix(R, basis)
taus = geqr2(R.data())

print(R.format())
```

After `geqr2`, the upper triangle of `R` holds the R factor and the part
below the diagonal holds the Householder vectors.

## What this package does not do

There is no command-line program, no reader or writer for lattice basis
files, and no lattice reduction or size reduction algorithm. The package
provides the matrix types, linear-algebra kernels, checks and logging on
which such algorithms can be built.

## Running the tests

```
pip install .[test]
pytest
```