# -*- coding: utf-8 -*-
"""
Geometric factors and scaled outward normals of mapped elements.

All metric terms are returned scaled by the Jacobian determinant J, e.g.
``rxJ = J * dr/dx``, which keeps them polynomial for polynomial mappings.

Key Features:
- Closed-form cofactor formulas in 1D, 2D and 3D.
- Arrangement of the scaled metric terms into a (dim, dim) tensor.
- Scaled outward normals and face Jacobians on every face point.
"""
from typing import Sequence, Tuple

import numpy as np


def geometric_factors(*args) -> Tuple[np.ndarray, ...]:
    """
    Computes scaled metric terms and the Jacobian determinant.

    Call as ``geometric_factors(x, Dr)``, ``geometric_factors(x, y, Dr, Ds)``
    or ``geometric_factors(x, y, z, Dr, Ds, Dt)``. Coordinates have shape
    (Np, K) and the differentiation matrices shape (Np, Np).

    Returns:
        Tuple[np.ndarray, ...]: ``(rxJ, J)`` in 1D,
            ``(rxJ, sxJ, ryJ, syJ, J)`` in 2D and
            ``(rxJ, sxJ, txJ, ryJ, syJ, tyJ, rzJ, szJ, tzJ, J)`` in 3D.
    """
    if len(args) == 2:
        x, Dr = args
        J = Dr @ x
        return np.ones_like(J), J

    if len(args) == 4:
        x, y, Dr, Ds = args
        xr, xs = Dr @ x, Ds @ x
        yr, ys = Dr @ y, Ds @ y
        J = -xs * yr + xr * ys
        rxJ, sxJ = ys, -yr
        ryJ, syJ = -xs, xr
        return rxJ, sxJ, ryJ, syJ, J

    if len(args) == 6:
        x, y, z, Dr, Ds, Dt = args
        xr, xs, xt = Dr @ x, Ds @ x, Dt @ x
        yr, ys, yt = Dr @ y, Ds @ y, Dt @ y
        zr, zs, zt = Dr @ z, Ds @ z, Dt @ z

        rxJ = ys * zt - zs * yt
        ryJ = -(xs * zt - zs * xt)
        rzJ = xs * yt - ys * xt

        sxJ = -(yr * zt - zr * yt)
        syJ = xr * zt - zr * xt
        szJ = -(xr * yt - yr * xt)

        txJ = yr * zs - zr * ys
        tyJ = -(xr * zs - zr * xs)
        tzJ = xr * ys - yr * xs

        J = xr * rxJ + yr * ryJ + zr * rzJ
        return rxJ, sxJ, txJ, ryJ, syJ, tyJ, rzJ, szJ, tzJ, J

    raise TypeError(
        "geometric_factors expects (x, Dr), (x, y, Dr, Ds) or (x, y, z, Dr, Ds, Dt); "
        f"got {len(args)} arguments."
    )


def metric_tensor(geo: Sequence[np.ndarray], dim: int) -> np.ndarray:
    """
    Arranges the output of `geometric_factors` as ``rstxyzJ[i, j] = J dr_j/dx_i``.

    Returns:
        np.ndarray: Array of shape (dim, dim, Np, K).
    """
    terms = np.asarray(geo[:-1])
    return terms.reshape(dim, dim, *terms.shape[1:])


def compute_normals(rstxyzJ, Vf: np.ndarray, *nrstJ: np.ndarray) -> Tuple[np.ndarray, ...]:
    """
    Computes scaled outward normals and face Jacobians.

    ``nxyzJ[i] = sum_j (Vf @ rstxyzJ[i][j]) * nrstJ[j]`` and ``sJ = |nxyzJ|``.

    Args:
        rstxyzJ: Scaled metric terms, indexable as ``rstxyzJ[i][j]``.
        Vf (np.ndarray): Interpolation from nodes to face points.
        *nrstJ (np.ndarray): Reference normals at the face points.

    Returns:
        Tuple[np.ndarray, ...]: ``(nxJ, ..., sJ)``, each of shape (Nf, K).
    """
    dim = len(nrstJ)
    nxyzJ = []
    for i in range(dim):
        component = sum(
            (Vf @ rstxyzJ[i][j]) * np.asarray(nrstJ[j])[:, None] for j in range(dim)
        )
        nxyzJ.append(component)
    sJ = np.sqrt(sum(n**2 for n in nxyzJ))
    return (*nxyzJ, sJ)
