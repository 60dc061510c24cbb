from __future__ import annotations
import pytest

import numpy as np
from mesh_laplacian.mesh import Mesh


def _gpu_available() -> bool:
    try:
        import cupy

        return cupy.cuda.runtime.getDeviceCount() > 0
    except Exception:
        return False


def pytest_collection_modifyitems(
    config: pytest.Config, items: list[pytest.Item]
) -> None:
    """Auto-skip tests marked 'gpu' when no CUDA device is present."""
    if _gpu_available():
        return
    skip_marker = pytest.mark.skip(reason="GPU not available for CuPy.")
    for item in items:
        if "gpu" in item.keywords:
            item.add_marker(skip_marker)


@pytest.fixture()
def ml_cpu():
    import mesh_laplacian as ml

    with ml.use("cpu", workers=1):
        yield ml


@pytest.fixture()
def ml_gpu():
    if not _gpu_available():
        pytest.skip("No CUDA device available for CuPy.")
    import mesh_laplacian as ml

    with ml.use("gpu", strict=True):
        yield ml


@pytest.fixture
def equilateral_mesh():
    """
    Single equilateral triangle in 2D:
        v0 = (0, 0), v1 = (1, 0), v2 = (0.5, sqrt(3)/2)
    """
    verts = np.array([[0.0, 0.0], [1.0, 0.0], [0.5, np.sqrt(3.0) / 2.0]])
    return Mesh(verts, [[0, 1, 2]])


@pytest.fixture
def unit_square_verts():
    return np.array([[0.0, 0.0], [1.0, 0.0], [1.0, 1.0], [0.0, 1.0]])


@pytest.fixture
def unit_square(unit_square_verts):
    """
    Unit square split into two triangles along the diagonal (0-2):
      v3 (0,1) ---- v2 (1,1)
        |         /    |
        |      /       |
        |   /          |
      v0 (0,0) ---- v1 (1,0)
    Triangles: [0,1,2] and [0,2,3]
    """
    return Mesh(unit_square_verts, [[0, 1, 2], [0, 2, 3]])


@pytest.fixture
def tetra_surface():
    """
    Closed tetrahedron surface (no boundary).
    Vertices: (0,0,0),(1,0,0),(0,1,0),(0,0,1)
    Faces: (0,1,2),(0,1,3),(1,2,3),(0,2,3)
    """
    verts = np.array(
        [
            [0.0, 0.0, 0.0],
            [1.0, 0.0, 0.0],
            [0.0, 1.0, 0.0],
            [0.0, 0.0, 1.0],
        ]
    )
    conn = np.array([[0, 1, 2], [0, 1, 3], [1, 2, 3], [0, 2, 3]])
    return Mesh(verts, conn)


@pytest.fixture
def grid_mesh():
    """Perturbed 3D height-field grid (n x n vertices, 2(n-1)^2 triangles)."""
    n = 12
    gen = np.random.default_rng(777)
    xs, ys = np.meshgrid(np.linspace(0.0, 1.0, n), np.linspace(0.0, 1.0, n))
    xs = xs + gen.uniform(-0.02, 0.02, size=xs.shape)
    ys = ys + gen.uniform(-0.02, 0.02, size=ys.shape)
    zs = 0.1 * np.sin(3.0 * xs) * np.cos(2.0 * ys)
    verts = np.column_stack([xs.ravel(), ys.ravel(), zs.ravel()])

    tris = []
    for r in range(n - 1):
        for c in range(n - 1):
            v00 = r * n + c
            v01 = v00 + 1
            v10 = v00 + n
            v11 = v10 + 1
            tris.append([v00, v01, v11])
            tris.append([v00, v11, v10])
    return Mesh(verts, np.array(tris))
