# -*- coding: utf-8 -*-
"""
Cut-cell meshes, their quadrature and state redistribution.

Key modules:
- cell_array:      Tagged cell indices and two-block Cartesian/cut storage.
- curves:          Boundary curves and embedded objects.
- physical_frame:  Polynomial bases in physical coordinates.
- quadrature:      Sub-triangulated quadrature on curved cut cells.
- pruning:         Caratheodory pruning of quadrature rules.
- cut_mesh:        Background classification and `MeshData` assembly.
- redistribution:  State redistribution over merged neighborhoods.
"""

from .cell_array import CellArray, CellIndex, CellKind
from .curves import ArcSegment, Circle, LineSegment, PiecewiseCurve
from .physical_frame import PhysicalFrame, num_cut_basis
from .pruning import caratheodory_pruning
from .quadrature import SubtriangulatedQuadrature, triangulate_points
from .cut_mesh import (
    CutCellData,
    CutCellMesh,
    cut_mesh_data,
    num_cartesian_elements,
    num_cut_elements,
)
from .redistribution import (
    DEFAULT_VOL_RATIO,
    StateRedistribution,
    VolumeScore,
    compute_neighbor_list,
)

__all__ = [
    "ArcSegment",
    "CellArray",
    "CellIndex",
    "CellKind",
    "Circle",
    "CutCellData",
    "CutCellMesh",
    "DEFAULT_VOL_RATIO",
    "LineSegment",
    "PhysicalFrame",
    "PiecewiseCurve",
    "StateRedistribution",
    "SubtriangulatedQuadrature",
    "VolumeScore",
    "caratheodory_pruning",
    "compute_neighbor_list",
    "cut_mesh_data",
    "num_cartesian_elements",
    "num_cut_basis",
    "num_cut_elements",
    "triangulate_points",
]
