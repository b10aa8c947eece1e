# -*- coding: utf-8 -*-
"""
Face-to-face connectivity and face node maps.

Faces are matched topologically through their sorted vertex keys, the same way
shared faces are found when cell neighbors are extracted from a polygonal
mesh. Face nodes are then paired geometrically.

Index conventions:
- A global face index is ``f + num_faces * e`` for local face f of element e,
  i.e. the column-major linear index into an array of shape (num_faces, K).
- Node maps hold linear indices into face arrays flattened in column-major
  order (``xf.ravel(order="F")``).

Key Features:
- `connect_mesh`: symmetric face-to-face map from element-to-vertex data.
- `build_node_maps`: interior/exterior node maps and boundary node list.
- `match_faces_by_centroid`: proximity-based face matching for meshes whose
  faces carry no shared vertex numbering (cut-cell meshes).
"""
import warnings
from collections import Counter
from typing import Sequence, Tuple

import numpy as np
from scipy.spatial import cKDTree

from ..errors import (
    FaceNodeMatchingError,
    FaceNodeMatchingWarning,
    InvalidTopologyError,
)

# --- Default tolerances ---
DEFAULT_NODE_TOL = 1e-10


def _validate_topology(EToV: np.ndarray, fv: Sequence[Sequence[int]]) -> np.ndarray:
    """Checks element and face vertex data and returns fv as an int array."""
    if EToV.ndim != 2 or EToV.shape[1] == 0:
        raise InvalidTopologyError(
            f"EToV must be a 2D array of shape (K, Nv), got shape {EToV.shape}."
        )
    if np.any(EToV < 0):
        raise InvalidTopologyError("EToV contains negative vertex indices.")

    face_sizes = {len(face) for face in fv}
    if len(face_sizes) != 1:
        raise InvalidTopologyError(
            f"All faces must have the same number of vertices, got sizes {sorted(face_sizes)}."
        )
    fv = np.array([list(face) for face in fv], dtype=int)
    num_local_vertices = EToV.shape[1]
    if np.any(fv < 0) or np.any(fv >= num_local_vertices):
        raise InvalidTopologyError(
            f"Face vertex lists reference local vertices outside [0, {num_local_vertices})."
        )

    sorted_rows = np.sort(EToV, axis=1)
    repeated = np.any(sorted_rows[:, 1:] == sorted_rows[:, :-1], axis=1)
    if np.any(repeated):
        raise InvalidTopologyError(
            f"Elements {np.flatnonzero(repeated).tolist()} repeat a vertex."
        )
    return fv


def connect_mesh(EToV, fv: Sequence[Sequence[int]]) -> np.ndarray:
    """
    Computes the face-to-face connectivity of a conforming mesh.

    Two faces are neighbors when they share the same set of vertices. Each face
    is keyed by its sorted vertex tuple, the keys are sorted lexicographically,
    and adjacent equal keys are linked to each other.

    Args:
        EToV (np.ndarray): Element-to-vertex table of shape (K, Nv).
        fv (Sequence[Sequence[int]]): Local vertex indices of each face.

    Returns:
        np.ndarray: FToF of shape (num_faces, K). ``FToF[f, e]`` holds the
            global index of the face matched to local face f of element e, or
            its own global index for a boundary face.

    Raises:
        InvalidTopologyError: If EToV or fv is malformed, or if a face is shared
            by more than two elements.
    """
    EToV = np.asarray(EToV, dtype=int)
    fv = _validate_topology(EToV, fv)
    K = EToV.shape[0]
    num_faces = fv.shape[0]

    # (K * num_faces, num_face_vertices) with the local face index fastest
    face_keys = np.sort(EToV[:, fv], axis=2).reshape(K * num_faces, -1)

    key_counts = Counter(map(tuple, face_keys))
    overloaded = [key for key, count in key_counts.items() if count > 2]
    if overloaded:
        raise InvalidTopologyError(
            f"Faces shared by more than two elements: {overloaded[:5]}"
        )

    order = np.lexsort(face_keys.T[::-1])
    sorted_keys = face_keys[order]
    FToF = np.arange(K * num_faces)
    matches = np.all(sorted_keys[:-1] == sorted_keys[1:], axis=1)
    for i in np.flatnonzero(matches):
        f1, f2 = order[i], order[i + 1]
        FToF[f1], FToF[f2] = f2, f1

    return FToF.reshape(num_faces, K, order="F")


def build_node_maps(
    FToF,
    *Xf: np.ndarray,
    tol: float = DEFAULT_NODE_TOL,
    strict: bool = False,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Pairs the nodes of matched faces.

    For every face f1 matched with f2, the all-pairs L1 distance between their
    nodes is computed and nodes closer than ``tol`` times the largest such
    distance, or than ``tol`` times the coordinate extent of all face nodes if
    that is larger, are paired. The extent keeps single-node faces (1D meshes)
    matchable.

    Args:
        FToF (np.ndarray): Face-to-face map of any shape, read in column-major
            order.
        *Xf (np.ndarray): Face node coordinates, one array per dimension, each
            holding ``Nfp * FToF.size`` values in column-major order.
        tol (float): Relative matching tolerance.
        strict (bool): Raise instead of warning on unmatched nodes.

    Returns:
        Tuple[np.ndarray, np.ndarray, np.ndarray]: ``mapM`` and ``mapP`` of
            shape (Nfp, num_faces_total), and the flat boundary node list
            ``mapB`` (nodes with ``mapP == mapM``).

    Raises:
        FaceNodeMatchingError: If ``strict`` and some node of a matched face
            has no coincident partner.
    """
    FToF = np.asarray(FToF, dtype=int).ravel(order="F")
    num_faces_total = FToF.size
    Xf = [np.asarray(x, dtype=float).ravel(order="F") for x in Xf]
    num_nodes = Xf[0].size
    if num_nodes % num_faces_total != 0:
        raise InvalidTopologyError(
            f"{num_nodes} face nodes cannot be split evenly over {num_faces_total} faces."
        )
    Nfp = num_nodes // num_faces_total

    X = [x.reshape(Nfp, num_faces_total, order="F") for x in Xf]
    mapM = np.arange(num_nodes).reshape(Nfp, num_faces_total, order="F")
    mapP = mapM.copy()

    extent = max(float(np.ptp(x)) if x.size else 0.0 for x in Xf)
    unmatched = []
    for f1, f2 in enumerate(FToF):
        if f1 == f2:
            continue
        D = sum(np.abs(x[:, f1][:, None] - x[:, f2][None, :]) for x in X)
        scale = max(D.max(), extent)
        threshold = tol * scale if scale > 0 else tol
        idM, idP = np.nonzero(D < threshold)
        mapP[idM, f1] = mapM[idP, f2]
        missing = np.setdiff1d(np.arange(Nfp), idM)
        if missing.size > 0:
            unmatched.append((f1, f2, missing.tolist()))

    if unmatched:
        details = "; ".join(
            f"face {f1} -> face {f2}: local nodes {nodes}" for f1, f2, nodes in unmatched[:10]
        )
        message = (
            f"{len(unmatched)} matched face(s) have nodes without a coincident partner "
            f"(tolerance {tol:g}). {details}"
        )
        if strict:
            raise FaceNodeMatchingError(message)
        warnings.warn(message, FaceNodeMatchingWarning, stacklevel=2)

    mapB = np.flatnonzero(mapP.ravel(order="F") == mapM.ravel(order="F"))
    return mapM, mapP, mapB


def match_faces_by_centroid(centroids: np.ndarray, tol: float) -> np.ndarray:
    """
    Matches faces whose centroids coincide.

    Args:
        centroids (np.ndarray): Face centroids of shape (num_faces, dim).
        tol (float): Absolute distance below which two centroids coincide.

    Returns:
        np.ndarray: Flat FToF map; unmatched faces map to themselves.

    Raises:
        InvalidTopologyError: If a face coincides with more than one other face.
    """
    centroids = np.asarray(centroids, dtype=float)
    FToF = np.arange(centroids.shape[0])
    if centroids.shape[0] == 0:
        return FToF
    pairs = cKDTree(centroids).query_pairs(r=tol, output_type="ndarray")
    if pairs.size == 0:
        return FToF

    counts = np.bincount(pairs.ravel(), minlength=centroids.shape[0])
    if np.any(counts > 1):
        raise InvalidTopologyError(
            f"Faces {np.flatnonzero(counts > 1).tolist()} coincide with more than one face."
        )
    FToF[pairs[:, 0]] = pairs[:, 1]
    FToF[pairs[:, 1]] = pairs[:, 0]
    return FToF
