"""The mesh_laplacian package builds discrete Laplace-Beltrami operators.

This package offers:
  - An immutable triangle mesh container with validation.
  - Cotangent-weight Laplacian assembly into a sparse symmetric operator.
  - Optional thread-parallel assembly and a NumPy/CuPy geometry backend.

Submodules:
  - config: Array backend, default worker count and log level.
  - errors: InvalidMeshError.
  - laplacian: LaplacianBuilder, cotangent_weights, build_laplacian.
  - mesh: Mesh class.
  - operator: SparseOperator result type.

Classes:
  InvalidMeshError, LaplacianBuilder, Mesh, SparseOperator
"""

from .config import (
    config,
    configure,
    use,
    is_gpu,
    backend_name,
    workers,
    xp,
    to_cpu,
    to_device,
    norm,
    set_log_level,
)

from mesh_laplacian.errors import InvalidMeshError
from mesh_laplacian.laplacian import LaplacianBuilder, build_laplacian, cotangent_weights
from mesh_laplacian.mesh import Mesh
from mesh_laplacian.operator import SparseOperator

__all__ = [
    # Core classes
    "InvalidMeshError",
    "LaplacianBuilder",
    "Mesh",
    "SparseOperator",
    # Functions
    "build_laplacian",
    "cotangent_weights",
    # Configuration and backend
    "config",
    "configure",
    "use",
    "is_gpu",
    "backend_name",
    "workers",
    "xp",
    "to_cpu",
    "to_device",
    "norm",
    "set_log_level",
]
