"""Module defining the Mesh class for triangle meshes in 2D or 3D.

This module provides:
  - An immutable vertex/triangle container built from array-likes.
  - Validation of the triangle indices against the vertex count.
  - Triangle areas and edge incidence (interior vs. boundary edges).

Designed as the input of `LaplacianBuilder`.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple
from numpy.typing import ArrayLike, NDArray

import numpy as np

from .config import to_cpu
from .errors import InvalidMeshError

_LOGGER = logging.getLogger(__name__)

Edge = Tuple[int, int]


def _readonly(a: NDArray[Any]) -> NDArray[Any]:
    a.flags.writeable = False
    return a


def _coerce_verts(verts: ArrayLike) -> NDArray[np.float64]:
    """Copy `verts` into a float64 (n_nodes, 2|3) array."""
    try:
        arr = np.array(to_cpu(verts), dtype=float)
    except (TypeError, ValueError) as exc:
        _LOGGER.error("Mesh: vertices are not numeric: %r", exc)
        raise InvalidMeshError(f"vertices are not numeric: {exc}") from exc

    if arr.size == 0 and arr.ndim == 1:
        arr = arr.reshape(0, 3)
    if arr.ndim != 2 or arr.shape[1] not in (2, 3):
        _LOGGER.error("Mesh: vertices have shape %s", arr.shape)
        raise InvalidMeshError(
            f"vertices should have shape (V, 2) or (V, 3); shape is {arr.shape}"
        )
    return arr


def _coerce_connectivity(connectivity: ArrayLike) -> NDArray[np.int64]:
    """Copy `connectivity` into an int64 (n_tris, 3) array."""
    try:
        raw = np.asarray(to_cpu(connectivity))
    except (TypeError, ValueError) as exc:
        _LOGGER.error("Mesh: triangles cannot be read as an array: %r", exc)
        raise InvalidMeshError(f"triangles cannot be read as an array: {exc}") from exc

    if raw.size == 0 and raw.ndim == 1:
        return np.empty((0, 3), dtype=np.int64)

    if raw.dtype.kind == "f":
        if not np.all(np.isfinite(raw)) or np.any(raw != np.round(raw)):
            _LOGGER.error("Mesh: triangles contain non-integral indices.")
            raise InvalidMeshError("triangle indices must be integers")
    elif raw.dtype.kind not in "iu":
        _LOGGER.error("Mesh: triangles have dtype %s", raw.dtype)
        raise InvalidMeshError(f"triangle indices must be integers; got {raw.dtype}")

    if raw.ndim != 2 or raw.shape[1] != 3:
        _LOGGER.error("Mesh: triangles have shape %s", raw.shape)
        raise InvalidMeshError(
            f"triangles should have shape (F, 3); shape is {raw.shape}"
        )
    return np.array(raw, dtype=np.int64)


class Mesh:
    """Immutable triangle mesh: vertex positions plus triangle index triples.

    The constructor copies its inputs into read-only NumPy arrays on CPU.
    Inputs that cannot be read as a (V, 2|3) coordinate array and an
    (F, 3) integer array are rejected immediately; emptiness and index
    range are checked by `validate`, which `LaplacianBuilder.build` runs
    before assembling anything.

    Args:
        verts (ArrayLike): Vertex coordinates, shape (n_nodes, 2) or (n_nodes, 3).
        connectivity (ArrayLike): Triangle indices, shape (n_tris, 3).

    Attributes:
        verts (NDArray[np.float64]): Read-only vertex array.
        connectivity (NDArray[np.int64]): Read-only triangle array.

    Raises:
        InvalidMeshError: If the inputs have the wrong rank, column count,
            or non-integral triangle indices.
    """

    verts: NDArray[np.float64]
    connectivity: NDArray[np.int64]

    def __init__(self, verts: ArrayLike, connectivity: ArrayLike) -> None:
        self.verts = _readonly(_coerce_verts(verts))
        self.connectivity = _readonly(_coerce_connectivity(connectivity))
        self._triareas: Optional[NDArray[np.float64]] = None
        self._edge_counts: Optional[Dict[Edge, int]] = None

        _LOGGER.debug(
            "Mesh initialized with %d vertices (dim=%d) and %d triangles",
            self.n_nodes,
            self.dim,
            self.n_tris,
        )

    def __repr__(self) -> str:
        """Return a string representation of the mesh."""
        return f"Mesh(n_nodes={self.n_nodes}, n_tris={self.n_tris}, dim={self.dim})"

    @property
    def n_nodes(self) -> int:
        """Number of vertices."""
        return int(self.verts.shape[0])

    @property
    def n_tris(self) -> int:
        """Number of triangles."""
        return int(self.connectivity.shape[0])

    @property
    def dim(self) -> int:
        """Spatial dimension of the vertex coordinates (2 or 3)."""
        return int(self.verts.shape[1])

    def validate(self) -> None:
        """Check that the mesh is non-empty and all indices are in range.

        Raises:
            InvalidMeshError: If there are no vertices, no triangles, or a
                triangle references an index outside ``[0, n_nodes)``.
        """
        if self.n_nodes == 0:
            _LOGGER.error("validate: mesh has no vertices.")
            raise InvalidMeshError("mesh has no vertices")
        if self.n_tris == 0:
            _LOGGER.error("validate: mesh has no triangles.")
            raise InvalidMeshError("mesh has no triangles")

        bad = (self.connectivity < 0) | (self.connectivity >= self.n_nodes)
        if np.any(bad):
            tri_idx = int(np.flatnonzero(bad.any(axis=1))[0])
            _LOGGER.error(
                "validate: %d out-of-range index(es); first in triangle %d = %s "
                "(n_nodes=%d).",
                int(np.count_nonzero(bad)),
                tri_idx,
                self.connectivity[tri_idx].tolist(),
                self.n_nodes,
            )
            raise InvalidMeshError(
                f"triangle {tri_idx} {self.connectivity[tri_idx].tolist()} "
                f"references a vertex outside [0, {self.n_nodes})"
            )

    def triareas(self) -> NDArray[np.float64]:
        """Return the (read-only) area of every triangle, shape (n_tris,)."""
        if self._triareas is None:
            self.validate()
            tri = self.connectivity
            u = self.verts[tri[:, 1]] - self.verts[tri[:, 0]]
            v = self.verts[tri[:, 2]] - self.verts[tri[:, 0]]
            if self.dim == 2:
                twice_area = np.abs(u[:, 0] * v[:, 1] - u[:, 1] * v[:, 0])
            else:
                twice_area = np.linalg.norm(np.cross(u, v), axis=1)
            self._triareas = _readonly(0.5 * twice_area)
        return self._triareas

    def edge_counts(self) -> Dict[Edge, int]:
        """Map each undirected edge (lo, hi) to its number of incident triangles."""
        if self._edge_counts is None:
            counts: Dict[Edge, int] = {}
            for a, b, c in self.connectivity.tolist():
                for u, v in ((a, b), (b, c), (c, a)):
                    key = (u, v) if u < v else (v, u)
                    counts[key] = counts.get(key, 0) + 1

            nonmanifold = sum(1 for k in counts.values() if k > 2)
            if nonmanifold:
                _LOGGER.warning(
                    "edge_counts: %d non-manifold edge(s) detected (used by >2 tris).",
                    nonmanifold,
                )
            self._edge_counts = counts
        return dict(self._edge_counts)

    def boundary_edges(self) -> List[Edge]:
        """Return the sorted undirected edges that belong to exactly one triangle."""
        return sorted(e for e, k in self.edge_counts().items() if k == 1)
