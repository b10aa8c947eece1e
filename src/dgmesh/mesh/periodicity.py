# -*- coding: utf-8 -*-
"""
Periodic boundary resolution for axis-aligned box domains.

Boundary faces on opposite sides of a periodic axis are paired through their
centroids, and their nodes are paired through the coordinates orthogonal to
that axis. The result is a new `MeshData` record whose face-to-face and
exterior node maps wrap around the domain.
"""
from __future__ import annotations
import warnings
from dataclasses import replace
from typing import Sequence, Tuple, TYPE_CHECKING, Union

import numpy as np
from scipy.spatial import cKDTree

from ..errors import FaceNodeMatchingWarning, PeriodicityMismatchError

if TYPE_CHECKING:
    from .mesh_data import MeshData

# --- Default tolerances ---
DEFAULT_PERIODIC_TOL = 1e-12

AXIS_NAMES = "xyz"


def make_periodic(
    md: "MeshData",
    is_periodic: Union[bool, Sequence[bool]] = True,
    tol: float = DEFAULT_PERIODIC_TOL,
) -> "MeshData":
    """
    Makes a mesh periodic along the requested axes.

    Args:
        md (MeshData): Mesh data on an axis-aligned box domain.
        is_periodic (bool or Sequence[bool]): A single flag for all axes or one
            flag per axis.
        tol (float): Matching tolerance, scaled by ``max(1, extent)`` of the
            axis involved.

    Returns:
        MeshData: A new record with updated FToF, mapP, mapB and is_periodic.

    Raises:
        PeriodicityMismatchError: If the boundary faces along a periodic axis do
            not span the domain, or a face has no partner on the opposite side.
    """
    if md.is_cut_mesh:
        raise NotImplementedError("Periodicity is not supported on cut-cell meshes.")

    dim = md.dim
    if isinstance(is_periodic, (bool, np.bool_)):
        flags = (bool(is_periodic),) * dim
    else:
        flags = tuple(bool(flag) for flag in is_periodic)
        if len(flags) != dim:
            raise ValueError(f"Expected {dim} periodicity flags, got {len(flags)}.")

    if not any(flags):
        return md

    if dim == 1:
        FToF, mapP = _periodic_maps_1d(md)
    else:
        FToF, mapP = build_periodic_boundary_maps(
            md.xyzf, flags, md.mapM, md.mapP, md.FToF, tol=tol
        )

    mapB = np.flatnonzero(mapP.ravel(order="F") == md.mapM.ravel(order="F"))
    previous = md.is_periodic or (False,) * dim
    return replace(
        md,
        FToF=FToF,
        mapP=mapP,
        mapB=mapB,
        is_periodic=tuple(a or b for a, b in zip(flags, previous)),
    )


def _periodic_maps_1d(md: "MeshData") -> Tuple[np.ndarray, np.ndarray]:
    """Links the two extreme face nodes of a 1D mesh."""
    xf = md.xf.ravel(order="F")
    FToF = md.FToF.ravel(order="F").copy()
    mapP = md.mapP.ravel(order="F").copy()
    if md.mapB.size == 0:
        return md.FToF, md.mapP

    boundary = md.mapB
    left = boundary[np.argmin(xf[boundary])]
    right = boundary[np.argmax(xf[boundary])]
    mapP[left], mapP[right] = right, left

    Nfp = xf.size // FToF.size
    FToF[left // Nfp], FToF[right // Nfp] = right // Nfp, left // Nfp
    return (
        FToF.reshape(md.FToF.shape, order="F"),
        mapP.reshape(md.mapP.shape, order="F"),
    )


def build_periodic_boundary_maps(
    xyzf: Sequence[np.ndarray],
    is_periodic: Sequence[bool],
    mapM: np.ndarray,
    mapP: np.ndarray,
    FToF: np.ndarray,
    tol: float = DEFAULT_PERIODIC_TOL,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Pairs boundary faces and nodes across the periodic axes of a 2D or 3D box.

    Axes are processed in order x, y, z. Only faces that are boundary faces on
    entry are considered.

    Args:
        xyzf (Sequence[np.ndarray]): Face point coordinates.
        is_periodic (Sequence[bool]): Periodicity flag per axis.
        mapM (np.ndarray): Interior node map.
        mapP (np.ndarray): Exterior node map.
        FToF (np.ndarray): Face-to-face map.
        tol (float): Relative matching tolerance.

    Returns:
        Tuple[np.ndarray, np.ndarray]: Updated FToF and mapP, in the shapes of
            the inputs.
    """
    dim = len(xyzf)
    FToF_flat = np.ravel(FToF, order="F").copy()
    num_faces_total = FToF_flat.size
    X = [np.ravel(x, order="F") for x in xyzf]
    Nfp = X[0].size // num_faces_total

    mapM_faces = np.ravel(mapM, order="F").reshape(Nfp, num_faces_total, order="F")
    mapP_faces = np.ravel(mapP, order="F").reshape(Nfp, num_faces_total, order="F").copy()

    boundary_faces = np.flatnonzero(FToF_flat == np.arange(num_faces_total))
    if boundary_faces.size == 0:
        return FToF, mapP

    node_ids = mapM_faces[:, boundary_faces]
    xb = [x[node_ids] for x in X]
    centroids = np.column_stack([x.mean(axis=0) for x in xb])

    extents = [float(x.max() - x.min()) for x in X]
    scales = [max(1.0, L) for L in extents]
    face_tol = tol * max(scales)

    for d in range(dim):
        if not is_periodic[d]:
            continue
        axis = AXIS_NAMES[d]
        c = centroids[:, d]
        spread = c.max() - c.min()
        if abs(spread - extents[d]) > tol * scales[d]:
            raise PeriodicityMismatchError(
                f"Boundary face centroids span {spread:.16g} along the {axis}-axis, "
                f"but the domain extent is {extents[d]:.16g}."
            )

        min_side = np.flatnonzero(np.abs(c - c.min()) < tol * scales[d])
        max_side = np.flatnonzero(np.abs(c - c.max()) < tol * scales[d])
        if min_side.size != max_side.size:
            raise PeriodicityMismatchError(
                f"{min_side.size} boundary faces at {axis}-min but {max_side.size} at {axis}-max."
            )

        shift = np.zeros(dim)
        shift[d] = spread
        _, partner = cKDTree(centroids[max_side]).query(
            centroids[min_side] + shift, distance_upper_bound=face_tol
        )
        if np.any(partner >= max_side.size):
            missing = boundary_faces[min_side[partner >= max_side.size]]
            raise PeriodicityMismatchError(
                f"Faces {missing.tolist()} at {axis}-min have no partner at {axis}-max."
            )

        others = [e for e in range(dim) if e != d]
        node_tol = tol * max(scales[e] for e in others)
        unmatched = []
        for i, j in zip(min_side, max_side[partner]):
            D = sum(np.abs(xb[e][:, i][:, None] - xb[e][:, j][None, :]) for e in others)
            idM, idP = np.nonzero(D < node_tol)
            fi, fj = boundary_faces[i], boundary_faces[j]
            mapP_faces[idM, fi] = node_ids[idP, j]
            mapP_faces[idP, fj] = node_ids[idM, i]
            FToF_flat[fi], FToF_flat[fj] = fj, fi
            if idM.size != Nfp:
                unmatched.append((fi, fj))

        if unmatched:
            warnings.warn(
                f"Periodic faces along the {axis}-axis with unmatched nodes: {unmatched[:10]}",
                FaceNodeMatchingWarning,
                stacklevel=2,
            )

    return (
        FToF_flat.reshape(np.shape(FToF), order="F"),
        mapP_faces.ravel(order="F").reshape(np.shape(mapP), order="F"),
    )
