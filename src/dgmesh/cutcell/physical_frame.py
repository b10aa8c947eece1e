# -*- coding: utf-8 -*-
"""
Polynomial bases defined directly in physical coordinates.

Cut cells have no reference element mapping, so their approximation space is
the total-degree-N polynomials in physical coordinates. To keep the basis well
conditioned, points are first mapped from the bounding box of a point cloud
onto [-1, 1]^2, and a total-degree tensor Legendre basis is evaluated there.
"""
from typing import Tuple

import numpy as np

from ..reference.polynomials import tensor_vandermonde


def num_cut_basis(N: int) -> int:
    """Dimension of the total-degree-N polynomials in two variables."""
    return (N + 1) * (N + 2) // 2


class PhysicalFrame:
    """
    Bounding-box frame of a physical point cloud.

    Attributes:
        shifting (np.ndarray): Center of the bounding box.
        scaling (np.ndarray): Half-widths of the bounding box.
    """

    def __init__(self, x, y):
        x = np.ravel(np.asarray(x, dtype=float))
        y = np.ravel(np.asarray(y, dtype=float))
        if x.size == 0:
            raise ValueError("A physical frame needs at least one point.")
        lower = np.array([x.min(), y.min()])
        upper = np.array([x.max(), y.max()])
        self.shifting = 0.5 * (upper + lower)
        half_widths = 0.5 * (upper - lower)
        self.scaling = np.where(half_widths > 0.0, half_widths, 1.0)

    def map_to_frame(self, x, y) -> Tuple[np.ndarray, np.ndarray]:
        x = np.ravel(np.asarray(x, dtype=float))
        y = np.ravel(np.asarray(y, dtype=float))
        return (
            (x - self.shifting[0]) / self.scaling[0],
            (y - self.shifting[1]) / self.scaling[1],
        )

    def basis(self, N: int, x, y) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Basis values and their physical x/y derivatives at the given points."""
        r, s = self.map_to_frame(x, y)
        V, Vr, Vs = tensor_vandermonde(N, r, s, total_degree=True)
        return V, Vr / self.scaling[0], Vs / self.scaling[1]

    def vandermonde(self, N: int, x, y) -> np.ndarray:
        """Basis values at the given points, shape (num_points, num_cut_basis(N))."""
        return self.basis(N, x, y)[0]
