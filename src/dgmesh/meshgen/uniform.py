# -*- coding: utf-8 -*-
"""
Structured uniform meshes of boxes.

Vertices are numbered with the x index fastest. Quadrilaterals and hexahedra
list their vertices lexicographically, matching the reference elements, and
each square is split into two counterclockwise triangles for Tri meshes.
"""
from typing import Sequence, Tuple, Union

import numpy as np


def uniform_mesh(
    element_type: str,
    cells_per_dimension: Union[int, Sequence[int]],
    domain: Tuple[float, float] = (-1.0, 1.0),
) -> Tuple[Tuple[np.ndarray, ...], np.ndarray]:
    """
    Creates a uniform mesh of the box ``domain^dim``.

    Args:
        element_type (str): One of "Line", "Tri", "Quad", "Hex".
        cells_per_dimension (int or Sequence[int]): Number of cells per axis.
        domain (Tuple[float, float], optional): Bounds of every axis.

    Returns:
        Tuple[Tuple[np.ndarray, ...], np.ndarray]: Vertex coordinates
            ``(VX, ...)`` and the element-to-vertex table.
    """
    dim = {"Line": 1, "Tri": 2, "Quad": 2, "Hex": 3}.get(element_type)
    if dim is None:
        raise ValueError(f"Unsupported element type '{element_type}'.")

    if np.isscalar(cells_per_dimension):
        counts = (int(cells_per_dimension),) * dim
    else:
        counts = tuple(int(n) for n in cells_per_dimension)
    if len(counts) != dim or min(counts) < 1:
        raise ValueError(f"Expected {dim} positive cell counts, got {cells_per_dimension}.")

    lower, upper = domain
    axes = [np.linspace(lower, upper, n + 1) for n in counts]
    grids = np.meshgrid(*axes, indexing="ij")
    vertices = tuple(g.ravel(order="F") for g in grids)

    num_vertices = [n + 1 for n in counts]

    def vertex_id(*index):
        vid = 0
        stride = 1
        for i, n in zip(index, num_vertices):
            vid += i * stride
            stride *= n
        return vid

    cells = []
    if dim == 1:
        for i in range(counts[0]):
            cells.append([i, i + 1])
    elif dim == 2:
        for j in range(counts[1]):
            for i in range(counts[0]):
                v00 = vertex_id(i, j)
                v10 = vertex_id(i + 1, j)
                v01 = vertex_id(i, j + 1)
                v11 = vertex_id(i + 1, j + 1)
                if element_type == "Tri":
                    cells.append([v00, v10, v11])
                    cells.append([v00, v11, v01])
                else:
                    cells.append([v00, v10, v01, v11])
    else:
        for k in range(counts[2]):
            for j in range(counts[1]):
                for i in range(counts[0]):
                    cells.append(
                        [
                            vertex_id(i + a, j + b, k + c)
                            for c in (0, 1)
                            for b in (0, 1)
                            for a in (0, 1)
                        ]
                    )

    return vertices, np.array(cells, dtype=int)
