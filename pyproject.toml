[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "flatter"
version = "0.1.0"
description = "Arbitrary-precision matrix views, BLAS/LAPACK-style kernels and lattice basis checks"
requires-python = ">=3.10"
dependencies = [
    "mpmath",
]
keywords = ["lattice", "matrix", "QR factorization", "householder", "multiprecision", "blas", "lapack"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Science/Research",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Scientific/Engineering :: Mathematics",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["flatter"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
