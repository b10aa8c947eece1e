# -*- coding: utf-8 -*-
"""
This package assembles the mesh data of high-order DG discretizations.

Key modules:
- connectivity:      Face-to-face maps and face node maps.
- geometric_factors: Scaled metric terms, Jacobians and normals.
- periodicity:       Periodic face and node pairing on box domains.
- mesh_data:         The immutable `MeshData` aggregate.
- reporting:         Formatted mesh summaries.
"""

from .connectivity import (
    DEFAULT_NODE_TOL,
    build_node_maps,
    connect_mesh,
    match_faces_by_centroid,
)
from .geometric_factors import compute_normals, geometric_factors, metric_tensor
from .mesh_data import MeshData, rebuild_mesh_data
from .periodicity import DEFAULT_PERIODIC_TOL, make_periodic

__all__ = [
    "DEFAULT_NODE_TOL",
    "DEFAULT_PERIODIC_TOL",
    "MeshData",
    "build_node_maps",
    "compute_normals",
    "connect_mesh",
    "geometric_factors",
    "make_periodic",
    "match_faces_by_centroid",
    "metric_tensor",
    "rebuild_mesh_data",
]
