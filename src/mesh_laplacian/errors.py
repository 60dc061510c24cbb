"""Exceptions raised by mesh_laplacian."""


class InvalidMeshError(ValueError):
    """Raised when a mesh cannot be turned into a Laplacian operator.

    Covers empty vertex or triangle arrays, triangle indices outside
    ``[0, n_nodes)``, and inputs that cannot be read as mesh arrays.
    """
