"""Build the cotangent Laplacian of a unit square and apply it to the vertices.

The square is split into the two triangles (0, 1, 2) and (0, 2, 3).
"""

import logging

import numpy as np

import mesh_laplacian as ml


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    ml.set_log_level("INFO")

    V = np.array(
        [
            [0.0, 0.0],
            [1.0, 0.0],
            [1.0, 1.0],
            [0.0, 1.0],
        ]
    )
    F = np.array([[0, 1, 2], [0, 2, 3]])

    L = ml.LaplacianBuilder().build(ml.Mesh(V, F))

    print("L =")
    print(L.toarray())
    print("L @ V =")
    print(L @ V)


if __name__ == "__main__":
    main()
