# -*- coding: utf-8 -*-
"""
State redistribution for cut-cell meshes.

Small cut cells restrict the stable time step of explicit schemes. State
redistribution merges each cut cell with neighbors until the merged
neighborhood is large enough. It projects the solution on every neighborhood
onto polynomials, then averages the projections back onto the cells.
Constants are preserved and the total mass ``sum(wJq * (Vq u))`` is
conserved.

Key Features:
- `VolumeScore`: neighborhood size criterion relative to a background cell.
- `compute_neighbor_list`: greedy growth of neighborhoods over the background
  grid.
- `StateRedistribution`: precomputed projection operators and the in-place
  redistribution of a solution.
"""
from __future__ import annotations
import warnings
from dataclasses import dataclass
from typing import List, Optional, TYPE_CHECKING

import numpy as np
from scipy.sparse import block_diag

from .cell_array import CellArray, CellIndex, CellKind
from .cut_mesh import (
    face_node_values,
    is_cartesian,
    is_inside_domain,
    num_cartesian_elements,
    num_cut_elements,
)
from .physical_frame import PhysicalFrame

if TYPE_CHECKING:
    from ..mesh.mesh_data import MeshData
    from ..reference.ref_elem import RefElemData

DEFAULT_VOL_RATIO = 0.5

# +x, -x, +y, -y
NEIGHBOR_OFFSETS = ((1, 0), (-1, 0), (0, 1), (0, -1))


@dataclass(frozen=True)
class VolumeScore:
    """
    Scores a neighborhood by its total volume.

    Attributes:
        threshold (float): Volume a neighborhood must reach.
    """

    threshold: float

    @classmethod
    def from_mesh(cls, md: "MeshData", vol_ratio: float = DEFAULT_VOL_RATIO) -> "VolumeScore":
        """Threshold equal to ``vol_ratio`` times the largest background cell volume."""
        vx, vy = md.mesh_type.cut_cell_data.vxyz
        return cls(vol_ratio * np.max(np.diff(vx)) * np.max(np.diff(vy)))

    def score(self, neighbors: List[CellIndex], md: "MeshData") -> float:
        return float(sum(md.wJq.columns(cell).sum() for cell in neighbors))


def get_cartesian_neighbors(cell: CellIndex, md: "MeshData") -> List[CellIndex]:
    """Face neighbors of a cell on the background grid that lie in the domain."""
    data = md.mesh_type.cut_cell_data
    ex, ey = data.linear_to_cartesian[cell.kind][cell.index]
    neighbors = []
    for dx, dy in NEIGHBOR_OFFSETS:
        nx, ny = ex + dx, ey + dy
        if not is_inside_domain(nx, ny, data.region_flags):
            continue
        kind = CellKind.CARTESIAN if is_cartesian(data.region_flags[nx, ny]) else CellKind.CUT
        neighbors.append(CellIndex(kind, int(data.cartesian_to_linear[nx, ny])))
    return neighbors


def compute_neighbor_list(
    md: "MeshData", score: Optional[VolumeScore] = None
) -> List[List[CellIndex]]:
    """
    Grows a neighborhood around every cut cell.

    Starting from the cut cell alone, the candidate whose addition gives the
    highest score joins the neighborhood, and its own neighbors become
    candidates, until the score reaches the threshold.

    Returns:
        List[List[CellIndex]]: One neighborhood per cut cell, starting with it.
    """
    score = VolumeScore.from_mesh(md) if score is None else score
    neighborhoods = []
    for e in range(num_cut_elements(md)):
        cell = CellIndex(CellKind.CUT, e)
        neighborhood = [cell]
        merged_score = score.score(neighborhood, md)
        candidates = get_cartesian_neighbors(cell, md)
        while merged_score < score.threshold:
            if not candidates:
                warnings.warn(
                    f"Neighborhood of cut cell {e} cannot grow past score "
                    f"{merged_score:.3e} (threshold {score.threshold:.3e}).",
                    UserWarning,
                    stacklevel=2,
                )
                break
            scores = [score.score(neighborhood + [c], md) for c in candidates]
            best = candidates.pop(int(np.argmax(scores)))
            neighborhood.append(best)
            merged_score = max(scores)
            for c in get_cartesian_neighbors(best, md):
                if c not in neighborhood and c not in candidates:
                    candidates.append(c)
        neighborhoods.append(neighborhood)
    return neighborhoods


def cell_quadrature_interpolation(
    rd: "RefElemData", md: "MeshData", cell: CellIndex
) -> np.ndarray:
    """Interpolation from the nodes of a cell to its volume quadrature points."""
    if cell.kind is CellKind.CARTESIAN:
        return rd.Vq
    if cell.kind is CellKind.CUT:
        frame = md.mesh_type.physical_frame_elements[cell.index]
        VDM = frame.vandermonde(rd.N, md.x.cut[:, cell.index], md.y.cut[:, cell.index])
        Vq = frame.vandermonde(rd.N, md.xq.cut[:, cell.index], md.yq.cut[:, cell.index])
        return np.linalg.solve(VDM.T, Vq.T).T
    raise ValueError(f"Unknown cell kind {cell.kind}.")


class StateRedistribution:
    """
    Precomputed state redistribution operators of a cut-cell mesh.

    Attributes:
        neighborhoods (List[List[CellIndex]]): Neighborhood of every cut cell.
        overlap_counts (CellArray): Number of contributions each cell receives.
        projection_operators (List[np.ndarray]): Projection of the nodal
            values of a neighborhood onto its merged polynomial.
        projection_indices (List[np.ndarray]): Flat indices of those nodal
            values.
    """

    def __init__(self, rd: "RefElemData", md: "MeshData", score: Optional[VolumeScore] = None):
        if not md.is_cut_mesh:
            raise ValueError("State redistribution requires a cut-cell mesh.")
        self.N = rd.N
        self.neighborhoods = compute_neighbor_list(md, score)

        self.overlap_counts = CellArray(
            np.ones(num_cartesian_elements(md)), np.zeros(num_cut_elements(md))
        )
        for neighborhood in self.neighborhoods:
            for cell in neighborhood:
                self.overlap_counts[cell.kind][cell.index] += 1

        x_cart_shape, x_cut_shape = md.x.shapes
        num_cart_values = int(np.prod(x_cart_shape))
        self._num_cartesian_values = num_cart_values
        indices = CellArray(
            np.arange(num_cart_values).reshape(x_cart_shape, order="F"),
            num_cart_values + np.arange(int(np.prod(x_cut_shape))).reshape(x_cut_shape, order="F"),
        )
        self._node_overlap = CellArray(
            np.broadcast_to(self.overlap_counts.cartesian, x_cart_shape),
            np.broadcast_to(self.overlap_counts.cut, x_cut_shape),
        ).data

        wJq = md.wJq.copy()
        wJq.cartesian[...] /= self.overlap_counts.cartesian[None, :]
        wJq.cut[...] /= self.overlap_counts.cut[None, :]

        self.projection_operators = []
        self.projection_indices = []
        for neighborhood in self.neighborhoods:
            xf = np.concatenate([face_node_values(md.xf, c, md) for c in neighborhood])
            yf = np.concatenate([face_node_values(md.yf, c, md) for c in neighborhood])
            frame = PhysicalFrame(xf, yf)

            wq = wJq.concat_columns(neighborhood)
            Vq = frame.vandermonde(self.N, md.xq.concat_columns(neighborhood),
                                   md.yq.concat_columns(neighborhood))
            WVq = wq[:, None] * Vq
            M = Vq.T @ WVq
            Vq_cells = block_diag(
                [cell_quadrature_interpolation(rd, md, c) for c in neighborhood], format="csr"
            )
            B = (Vq_cells.T @ WVq).T

            V_nodes = frame.vandermonde(self.N, md.x.concat_columns(neighborhood),
                                        md.y.concat_columns(neighborhood))
            self.projection_operators.append(V_nodes @ np.linalg.solve(M, B))
            self.projection_indices.append(indices.concat_columns(neighborhood))

    def apply(self, u: CellArray) -> CellArray:
        """
        Redistributes a solution in place.

        Every neighborhood projection is computed from the input state first.
        Cut cell values are then replaced by the sum of the projections they
        take part in, Cartesian values receive their projections on top of
        their own value, and every cell is divided by its overlap count.

        This is not idempotent; apply it once per stage of a time step.

        Args:
            u (CellArray): Nodal values laid out like ``md.x``.

        Returns:
            CellArray: The same array, updated.
        """
        data = u.data if isinstance(u, CellArray) else u
        if data.size != self._node_overlap.size:
            raise ValueError(
                f"Solution has {data.size} values, expected {self._node_overlap.size}."
            )
        projected = [P @ data[ids] for P, ids in zip(self.projection_operators, self.projection_indices)]
        data[self._num_cartesian_values :] = 0.0
        for ids, values in zip(self.projection_indices, projected):
            data[ids] += values
        data /= self._node_overlap
        return u

    def __call__(self, u: CellArray) -> CellArray:
        return self.apply(u)
