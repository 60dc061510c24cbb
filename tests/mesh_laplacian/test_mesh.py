"""Unit tests for Mesh construction, validation and topology helpers."""

import numpy as np
import pytest
from numpy.testing import assert_allclose

from mesh_laplacian.errors import InvalidMeshError
from mesh_laplacian.mesh import Mesh


def test_mesh_initialization(unit_square):
    mesh = unit_square

    assert mesh.n_nodes == 4
    assert mesh.n_tris == 2
    assert mesh.dim == 2
    assert mesh.verts.dtype == np.float64
    assert mesh.connectivity.dtype == np.int64
    assert repr(mesh) == "Mesh(n_nodes=4, n_tris=2, dim=2)"
    mesh.validate()


def test_mesh_is_immutable_copy():
    verts = np.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.0, 1.0, 0.0]])
    conn = np.array([[0, 1, 2]])
    mesh = Mesh(verts, conn)

    # Caller-side mutation does not leak into the mesh.
    verts[0, 0] = 10.0
    conn[0, 0] = 2
    assert mesh.verts[0, 0] == 0.0
    assert mesh.connectivity[0, 0] == 0

    with pytest.raises(ValueError):
        mesh.verts[0, 0] = 1.0
    with pytest.raises(ValueError):
        mesh.connectivity[0, 0] = 1


def test_integral_float_indices_accepted():
    mesh = Mesh([[0, 0], [1, 0], [0, 1]], [[0.0, 1.0, 2.0]])
    assert mesh.connectivity.tolist() == [[0, 1, 2]]


@pytest.mark.parametrize(
    "verts,conn",
    [
        ([[0.0, 0.0, 0.0, 0.0]], [[0, 0, 0]]),  # 4 columns
        ([0.0, 1.0, 2.0], [[0, 1, 2]]),  # rank 1
        ([[0.0, 0.0], [1.0, 0.0], [0.0, 1.0]], [[0, 1]]),  # 2 indices
        ([[0.0, 0.0], [1.0, 0.0], [0.0, 1.0]], [[0, 1.5, 2]]),  # non-integral
        ([[0.0, 0.0], [1.0, 0.0], [0.0, 1.0]], [["a", "b", "c"]]),  # strings
        ([["x", "y"]], [[0, 0, 0]]),  # non-numeric coordinates
    ],
)
def test_malformed_input_rejected(verts, conn):
    with pytest.raises(InvalidMeshError):
        Mesh(verts, conn)


def test_invalid_mesh_error_is_value_error():
    assert issubclass(InvalidMeshError, ValueError)


def test_validate_empty_triangles(unit_square_verts):
    mesh = Mesh(unit_square_verts, [])
    assert mesh.n_tris == 0
    with pytest.raises(InvalidMeshError, match="no triangles"):
        mesh.validate()


def test_validate_out_of_range(unit_square_verts):
    mesh = Mesh(unit_square_verts, [[0, 1, 2], [0, 2, 4]])
    with pytest.raises(InvalidMeshError, match="triangle 1"):
        mesh.validate()


def test_triareas_2d_and_3d(unit_square):
    assert_allclose(unit_square.triareas(), [0.5, 0.5], rtol=1e-12)

    mesh3d = Mesh([[0, 0, 0], [2, 0, 0], [0, 0, 3]], [[0, 1, 2]])
    assert_allclose(mesh3d.triareas(), [3.0], rtol=1e-12)


def test_edge_counts_and_boundary(unit_square):
    counts = unit_square.edge_counts()

    assert counts[(0, 2)] == 2
    assert sum(1 for k in counts.values() if k == 1) == 4
    assert unit_square.boundary_edges() == [(0, 1), (0, 3), (1, 2), (2, 3)]

    # Returned mapping is a copy.
    counts[(0, 2)] = 99
    assert unit_square.edge_counts()[(0, 2)] == 2


def test_closed_surface_has_no_boundary(tetra_surface):
    assert tetra_surface.boundary_edges() == []
    assert set(tetra_surface.edge_counts().values()) == {2}


def test_nonmanifold_edge_warns(caplog):
    verts = [[0, 0, 0], [1, 0, 0], [0, 1, 0], [0, -1, 0], [0, 0, 1]]
    conn = [[0, 1, 2], [0, 1, 3], [0, 1, 4]]
    mesh = Mesh(verts, conn)
    with caplog.at_level("WARNING", logger="mesh_laplacian"):
        counts = mesh.edge_counts()
    assert counts[(0, 1)] == 3
    assert "non-manifold" in caplog.text
