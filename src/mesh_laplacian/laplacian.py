"""Cotangent-weight discrete Laplace-Beltrami operator for triangle meshes.

This module provides:
  - `cotangent_weights`: per-corner half-cotangents of every triangle.
  - `LaplacianBuilder`: assembles the sparse V x V operator, optionally
    evaluating triangle chunks on a thread pool.
  - `build_laplacian`: one-call convenience over raw arrays.

For an edge (a, b) the off-diagonal entry is ``0.5 * (cot alpha + cot beta)``
summed over the angles opposite the edge in its incident triangles, and each
diagonal entry is the negated sum of its row's off-diagonals.
"""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, List, Optional, Tuple
from numpy.typing import ArrayLike, NDArray

import numpy as np
import scipy.sparse as sp

from .config import backend_name, norm, to_cpu, to_device, xp
from .config import config as _config
from .errors import InvalidMeshError
from .mesh import Mesh
from .operator import SparseOperator

_LOGGER = logging.getLogger(__name__)

Triplets = Tuple[NDArray[np.int64], NDArray[np.int64], NDArray[np.float64]]

DEFAULT_CHUNK_SIZE = 65536


def cotangent_weights(verts: ArrayLike, connectivity: ArrayLike) -> NDArray[np.float64]:
    """Compute ``0.5 * cot`` of every interior angle of every triangle.

    The geometry runs on the active array backend; the result is returned on
    CPU. Indices are not range-checked here (see `Mesh.validate`).

    Args:
        verts (ArrayLike): Vertex coordinates, shape (n_nodes, 2) or (n_nodes, 3).
        connectivity (ArrayLike): Triangle indices, shape (n_tris, 3).

    Returns:
        NDArray[np.float64]: Shape (n_tris, 3). Column ``c`` holds the weight
        of the edge opposite corner ``c``, i.e. edges (1, 2), (2, 0), (0, 1).
        Zero-area triangles give non-finite values.
    """
    v_dev = to_device(to_cpu(verts), dtype=float)
    t_dev = to_device(to_cpu(connectivity), dtype=np.int64)

    p0 = v_dev[t_dev[:, 0]]
    p1 = v_dev[t_dev[:, 1]]
    p2 = v_dev[t_dev[:, 2]]

    e01 = p1 - p0
    e02 = p2 - p0
    e12 = p2 - p1

    # |u x v| is twice the triangle area for any pair of edges.
    if v_dev.shape[1] == 2:
        twice_area = xp.abs(e01[:, 0] * e02[:, 1] - e01[:, 1] * e02[:, 0])
    else:
        twice_area = norm(xp.cross(e01, e02), axis=1)

    dots = xp.stack(
        [
            xp.sum(e01 * e02, axis=1),  # corner 0
            xp.sum(e12 * -e01, axis=1),  # corner 1
            xp.sum(-e02 * -e12, axis=1),  # corner 2
        ],
        axis=1,
    )

    with np.errstate(divide="ignore", invalid="ignore"):
        half_cot = 0.5 * dots / twice_area[:, None]

    return np.asarray(to_cpu(half_cot), dtype=float)


def _chunk_triplets(verts: NDArray[Any], tris: NDArray[Any]) -> Triplets:
    """Return the COO triplets contributed by one block of triangles."""
    w = cotangent_weights(verts, tris)
    i, j, k = tris[:, 0], tris[:, 1], tris[:, 2]

    # Edge endpoints ordered like the columns of `w`.
    a = np.concatenate([j, k, i])
    b = np.concatenate([k, i, j])
    wt = np.concatenate([w[:, 0], w[:, 1], w[:, 2]])

    rows = np.concatenate([a, b, a, b])
    cols = np.concatenate([b, a, a, b])
    data = np.concatenate([wt, wt, -wt, -wt])
    return rows, cols, data


class LaplacianBuilder:
    """Assemble the cotangent Laplacian of a `Mesh` as a `SparseOperator`.

    Triangles are processed in contiguous chunks. With more than one
    worker the chunks run on a thread pool; every chunk produces its own
    triplets, which are concatenated in chunk order and summed once when
    converting to CSR. For a given `chunk_size` the result is bit-identical
    for any worker count.

    Args:
        workers (Optional[int]): Thread count. Defaults to `config.workers`.
        chunk_size (int): Triangles per chunk.

    Raises:
        ValueError: If `workers` or `chunk_size` is not positive.
    """

    def __init__(
        self,
        workers: Optional[int] = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        if workers is not None and int(workers) < 1:
            raise ValueError(f"workers must be >= 1; got {workers}")
        if int(chunk_size) < 1:
            raise ValueError(f"chunk_size must be >= 1; got {chunk_size}")
        self._workers = None if workers is None else int(workers)
        self.chunk_size = int(chunk_size)

    def __repr__(self) -> str:
        return f"LaplacianBuilder(workers={self.workers}, chunk_size={self.chunk_size})"

    @property
    def workers(self) -> int:
        """Effective worker count (explicit value or the configured default)."""
        return self._workers if self._workers is not None else _config.workers

    def build(self, mesh: Mesh) -> SparseOperator:
        """Assemble the symmetric, zero-row-sum cotangent operator of `mesh`.

        Args:
            mesh (Mesh): Input mesh.

        Returns:
            SparseOperator: The (n_nodes, n_nodes) operator.

        Raises:
            InvalidMeshError: If `mesh` is empty or has out-of-range indices.
        """
        if not isinstance(mesh, Mesh):
            _LOGGER.error("build: expected a Mesh, got %s", type(mesh).__name__)
            raise InvalidMeshError(f"expected a Mesh; got {type(mesh).__name__}")
        mesh.validate()

        n_nodes = mesh.n_nodes
        n_tris = mesh.n_tris

        degenerate = int(np.count_nonzero(mesh.triareas() <= 1e-15))
        if degenerate:
            _LOGGER.warning(
                "build: %d degenerate triangle(s) with ~zero area; "
                "their cotangent weights are not finite.",
                degenerate,
            )

        bounds: List[Tuple[int, int]] = [
            (start, min(start + self.chunk_size, n_tris))
            for start in range(0, n_tris, self.chunk_size)
        ]
        workers = min(self.workers, len(bounds))

        def run(bound: Tuple[int, int]) -> Triplets:
            start, stop = bound
            return _chunk_triplets(mesh.verts, mesh.connectivity[start:stop])

        if workers > 1:
            with ThreadPoolExecutor(max_workers=workers) as pool:
                parts = list(pool.map(run, bounds))
        else:
            parts = [run(bound) for bound in bounds]

        rows = np.concatenate([p[0] for p in parts])
        cols = np.concatenate([p[1] for p in parts])
        data = np.concatenate([p[2] for p in parts])

        L = sp.coo_matrix(
            (data, (rows, cols)), shape=(n_nodes, n_nodes), dtype=float
        ).tocsr()
        op = SparseOperator(L)

        nonfinite = int(np.count_nonzero(~np.isfinite(data)))
        if nonfinite:
            _LOGGER.warning(
                "build: %d non-finite contribution(s) in the assembled operator.",
                nonfinite,
            )

        if _LOGGER.isEnabledFor(logging.DEBUG):
            counts = mesh.edge_counts()
            _LOGGER.debug(
                "build: edges=%d (boundary=%d), chunks=%d, workers=%d",
                len(counts),
                sum(1 for c in counts.values() if c == 1),
                len(bounds),
                workers,
            )
        _LOGGER.info(
            "build: assembled cotangent Laplacian (nodes=%d, tris=%d, nnz=%d, backend=%s)",
            n_nodes,
            n_tris,
            op.nnz,
            backend_name(),
        )
        return op


def build_laplacian(
    verts: ArrayLike,
    connectivity: ArrayLike,
    *,
    workers: Optional[int] = None,
) -> SparseOperator:
    """Build the cotangent Laplacian straight from vertex and triangle arrays.

    Raises:
        InvalidMeshError: On malformed, empty or out-of-range input.
    """
    return LaplacianBuilder(workers=workers).build(Mesh(verts, connectivity))
