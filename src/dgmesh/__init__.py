"""
DG-Mesh

A Python package for building the mesh data consumed by high-order
discontinuous Galerkin solvers: connectivity, geometric factors, periodicity,
cut-cell quadrature and state redistribution.
"""

from . import reference
from . import mesh
from . import meshgen
from . import cutcell
from .errors import (
    DGMeshError,
    InvalidTopologyError,
    PeriodicityMismatchError,
    DegenerateKernelError,
    FaceNodeMatchingError,
    FaceNodeMatchingWarning,
)

__all__ = [
    "reference",
    "mesh",
    "meshgen",
    "cutcell",
    "DGMeshError",
    "InvalidTopologyError",
    "PeriodicityMismatchError",
    "DegenerateKernelError",
    "FaceNodeMatchingError",
    "FaceNodeMatchingWarning",
]
