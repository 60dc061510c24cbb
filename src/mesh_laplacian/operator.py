"""Module defining SparseOperator, the immutable result of a Laplacian build.

The operator wraps a SciPy CSR matrix whose index and data arrays are
read-only. Callers that need a mutable matrix get an independent copy via
`to_scipy`.
"""
from __future__ import annotations

import logging
from typing import Any, Tuple
from numpy.typing import ArrayLike, NDArray

import numpy as np
import scipy.sparse as sp

from .config import to_cpu

_LOGGER = logging.getLogger(__name__)


class SparseOperator:
    """Square sparse matrix of float64 weights, stored as read-only CSR.

    Args:
        matrix (sp.spmatrix | sp.sparray): Any square SciPy sparse matrix.
            It is converted to CSR and copied; the caller keeps ownership
            of the original.

    Raises:
        ValueError: If `matrix` is not square.
    """

    def __init__(self, matrix: Any) -> None:
        csr = sp.csr_matrix(matrix, dtype=float, copy=True)
        if csr.shape[0] != csr.shape[1]:
            _LOGGER.error("SparseOperator: non-square shape %s", csr.shape)
            raise ValueError(f"operator must be square; got shape {csr.shape}")

        # Canonical (sorted, duplicate-free) before freezing; SciPy would
        # otherwise canonicalize in place on first use.
        csr.sum_duplicates()
        for arr in (csr.data, csr.indices, csr.indptr):
            arr.flags.writeable = False
        self._csr = csr

    def __repr__(self) -> str:
        """Return a string representation of the operator."""
        return f"SparseOperator(n={self.n}, nnz={self.nnz})"

    @property
    def shape(self) -> Tuple[int, int]:
        """Matrix shape (n, n)."""
        return (int(self._csr.shape[0]), int(self._csr.shape[1]))

    @property
    def n(self) -> int:
        """Number of rows (and columns)."""
        return int(self._csr.shape[0])

    @property
    def nnz(self) -> int:
        """Number of stored entries, explicit zeros included."""
        return int(self._csr.nnz)

    def entry(self, i: int, j: int) -> float:
        """Return the value at (i, j); unstored entries are 0.0.

        Raises:
            IndexError: If `i` or `j` is outside ``[0, n)``.
        """
        i, j = int(i), int(j)
        if not (0 <= i < self.n and 0 <= j < self.n):
            raise IndexError(f"entry ({i}, {j}) outside a {self.n}x{self.n} operator")
        start, stop = self._csr.indptr[i], self._csr.indptr[i + 1]
        cols = self._csr.indices[start:stop]
        hit = np.flatnonzero(cols == j)
        if hit.size == 0:
            return 0.0
        return float(self._csr.data[start:stop][hit].sum())

    def diagonal(self) -> NDArray[np.float64]:
        """Return a copy of the main diagonal."""
        return np.asarray(self._csr.diagonal(), dtype=float)

    def row_sums(self) -> NDArray[np.float64]:
        """Return the sum of every row, shape (n,)."""
        return np.asarray(self._csr.sum(axis=1), dtype=float).ravel()

    def is_symmetric(self, atol: float = 1e-12) -> bool:
        """Return True if ``|A[i, j] - A[j, i]| <= atol`` for every entry."""
        resid = (self._csr - self._csr.T).tocoo()
        if resid.nnz == 0:
            return True
        return bool(np.all(np.abs(resid.data) <= atol))

    def apply(self, x: ArrayLike) -> NDArray[np.float64]:
        """Multiply the operator with a vector (n,) or a matrix (n, k).

        Raises:
            ValueError: If the leading dimension of `x` is not `n`.
        """
        x_np = np.asarray(to_cpu(x), dtype=float)
        if x_np.ndim not in (1, 2) or x_np.shape[0] != self.n:
            _LOGGER.error(
                "apply: operand shape %s incompatible with n=%d", x_np.shape, self.n
            )
            raise ValueError(
                f"operand must have shape ({self.n},) or ({self.n}, k); "
                f"got {x_np.shape}"
            )
        return np.asarray(self._csr @ x_np, dtype=float)

    def __matmul__(self, x: ArrayLike) -> NDArray[np.float64]:
        return self.apply(x)

    def toarray(self) -> NDArray[np.float64]:
        """Return a dense (n, n) copy."""
        return self._csr.toarray()

    def to_scipy(self) -> sp.csr_matrix:
        """Return an independent, writable CSR copy."""
        return self._csr.copy()
