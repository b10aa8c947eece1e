# -*- coding: utf-8 -*-
"""
Immutable aggregate of the mesh data consumed by a DG solver.

This module defines the `MeshData` record, which gathers the topology
(EToV, FToF), the node maps (mapM, mapP, mapB), physical coordinates at nodes,
face points and quadrature points, and the geometric factors of every element.

Key Features:
- Construction of 1D, 2D and 3D meshes from vertex coordinates and an
  element-to-vertex table.
- Attribute shortcuts such as ``md.x``, ``md.xf``, ``md.nxJ`` or ``md.rxJ``.
- Rebuilding the coordinate-dependent fields after the nodes are moved
  (curved meshes), sharing the connectivity of the original record.
- A formatted summary report and a 2D outline plot.

Classes:
    MeshData: Immutable container of DG mesh data.
"""
from __future__ import annotations
from dataclasses import dataclass, replace
from typing import Any, Dict, Optional, Sequence, Tuple, TYPE_CHECKING

import numpy as np
import matplotlib.pyplot as plt

from ..errors import InvalidTopologyError
from .connectivity import DEFAULT_NODE_TOL, build_node_maps, connect_mesh
from .geometric_factors import compute_normals, geometric_factors, metric_tensor
from .reporting import format_mesh_summary
from ..common.utility import plot_mesh, save_figure

if TYPE_CHECKING:
    from ..reference.ref_elem import RefElemData
    from ..cutcell.cut_mesh import CutCellMesh


# Component shortcuts, e.g. md.y -> md.xyz[1]
_COMPONENT_ALIASES = {
    "VXYZ": ("VX", "VY", "VZ"),
    "xyz": ("x", "y", "z"),
    "xyzf": ("xf", "yf", "zf"),
    "xyzq": ("xq", "yq", "zq"),
    "nxyzJ": ("nxJ", "nyJ", "nzJ"),
}
_ALIASES = {
    alias: (field, i)
    for field, aliases in _COMPONENT_ALIASES.items()
    for i, alias in enumerate(aliases)
}

# Scaled metric shortcuts, e.g. md.sxJ -> md.rstxyzJ[0][1]
_METRIC_ALIASES = {
    f"{ref}{phys}J": (i, j)
    for i, phys in enumerate("xyz")
    for j, ref in enumerate("rst")
}

# Polygon vertex order of each element type for outline plots
_POLYGON_ORDER = {"Tri": [0, 1, 2], "Quad": [0, 1, 3, 2]}


@dataclass(frozen=True, eq=False)
class MeshData:
    """
    Stores the mesh data of a DG discretization.

    Node-wise arrays have shape (num_points_per_element, K). On cut-cell meshes
    they are `CellArray` containers with separate Cartesian and cut blocks.

    Attributes:
        VXYZ (Tuple[np.ndarray, ...]): Vertex coordinates, one array per dimension.
        K (int): Number of elements.
        EToV (np.ndarray): Element-to-vertex table, shape (K, Nv).
        FToF (np.ndarray): Face-to-face map, shape (num_faces, K), or a flat
            array on cut-cell meshes.
        xyz (Tuple): Physical coordinates of the nodes.
        xyzf (Tuple): Physical coordinates of the face points.
        xyzq (Tuple): Physical coordinates of the volume quadrature points.
        wJq: Quadrature weights scaled by the Jacobian.
        mapM (np.ndarray): Interior face node indices.
        mapP (np.ndarray): Exterior face node indices.
        mapB (np.ndarray): Boundary face node indices.
        rstxyzJ: Scaled metric terms, ``rstxyzJ[i][j] = J dr_j/dx_i``.
        J: Jacobian determinant at the nodes.
        nxyzJ (Tuple): Scaled outward normals at the face points.
        sJ: Face Jacobians at the face points.
        is_periodic (Tuple[bool, ...]): Periodicity per coordinate axis.
        mesh_type (CutCellMesh, optional): Extra data for cut-cell meshes.
    """

    VXYZ: Tuple[np.ndarray, ...]
    K: int
    EToV: np.ndarray
    FToF: np.ndarray
    xyz: Tuple[Any, ...]
    xyzf: Tuple[Any, ...]
    xyzq: Tuple[Any, ...]
    wJq: Any
    mapM: np.ndarray
    mapP: np.ndarray
    mapB: np.ndarray
    rstxyzJ: Any
    J: Any
    nxyzJ: Tuple[Any, ...]
    sJ: Any
    is_periodic: Tuple[bool, ...] = ()
    mesh_type: Optional["CutCellMesh"] = None

    @classmethod
    def from_vertices(
        cls,
        vertices: Sequence[np.ndarray],
        EToV,
        rd: "RefElemData",
        node_tol: float = DEFAULT_NODE_TOL,
        strict: bool = False,
    ) -> "MeshData":
        """
        Builds mesh data from vertex coordinates and element connectivity.

        Args:
            vertices (Sequence[np.ndarray]): ``(VX,)``, ``(VX, VY)`` or
                ``(VX, VY, VZ)``.
            EToV (np.ndarray): Element-to-vertex table of shape (K, Nv), using
                the vertex ordering of the reference element.
            rd (RefElemData): Reference element.
            node_tol (float): Relative tolerance for pairing face nodes.
            strict (bool): Raise instead of warning on unmatched face nodes.

        Returns:
            MeshData: The assembled mesh data.
        """
        VXYZ = tuple(np.asarray(v, dtype=float).ravel() for v in vertices)
        if len(VXYZ) != rd.dim:
            raise ValueError(
                f"A {rd.element_type} mesh needs {rd.dim} vertex coordinate arrays, "
                f"got {len(VXYZ)}."
            )
        EToV = np.atleast_2d(np.asarray(EToV, dtype=int))
        if EToV.shape[1] != len(rd.vertices):
            raise InvalidTopologyError(
                f"{rd.element_type} elements have {len(rd.vertices)} vertices, "
                f"but EToV has {EToV.shape[1]} columns."
            )
        if EToV.size and EToV.max() >= VXYZ[0].size:
            raise InvalidTopologyError(
                f"EToV references vertex {EToV.max()}, but only {VXYZ[0].size} vertices exist."
            )

        FToF = connect_mesh(EToV, rd.fv)
        K = EToV.shape[0]

        xyz = tuple(rd.V1 @ V[EToV.T] for V in VXYZ)
        fields = _coordinate_dependent_fields(rd, xyz)

        mapM, mapP, mapB = build_node_maps(
            FToF, *fields["xyzf"], tol=node_tol, strict=strict
        )
        num_face_nodes = rd.Vf.shape[0]
        mapM = mapM.reshape(num_face_nodes, K, order="F")
        mapP = mapP.reshape(num_face_nodes, K, order="F")

        return cls(
            VXYZ=VXYZ,
            K=K,
            EToV=EToV,
            FToF=FToF,
            xyz=xyz,
            mapM=mapM,
            mapP=mapP,
            mapB=mapB,
            is_periodic=(False,) * rd.dim,
            **fields,
        )

    # --- Attribute shortcuts ---

    def __getattr__(self, name: str):
        if name in _ALIASES:
            field, i = _ALIASES[name]
            values = getattr(self, field)
            if i < len(values):
                return values[i]
            raise AttributeError(
                f"'{name}' is not available on a {len(values)}D mesh."
            )
        if name in _METRIC_ALIASES:
            i, j = _METRIC_ALIASES[name]
            dim = self.dim
            if i < dim and j < dim:
                return self.rstxyzJ[i][j]
            raise AttributeError(f"'{name}' is not available on a {dim}D mesh.")
        raise AttributeError(f"'{type(self).__name__}' object has no attribute '{name}'")

    @property
    def dim(self) -> int:
        return len(self.xyz)

    @property
    def num_elements(self) -> int:
        return self.K

    @property
    def is_cut_mesh(self) -> bool:
        return self.mesh_type is not None

    # --- Reporting ---

    def print_summary(self) -> None:
        """Prints a formatted summary of the mesh data."""
        print(format_mesh_summary(self))

    def plot(self, file_path: str = "mesh.png", show_cells: bool = False) -> None:
        """
        Plots the outline of a 2D mesh and saves it to a file.

        Args:
            file_path (str, optional): Output image path. Defaults to "mesh.png".
            show_cells (bool, optional): Whether to show cell labels.
        """
        if self.dim != 2:
            raise NotImplementedError("Plotting is only supported for 2D meshes.")

        if self.is_cut_mesh:
            from ..cutcell.cut_mesh import cut_mesh_outline

            nodes, cells, groups = cut_mesh_outline(self)
        else:
            nodes = np.column_stack(self.VXYZ)
            order = _POLYGON_ORDER[_element_type_of(self)]
            cells = [list(row[order]) for row in self.EToV]
            groups = None

        fig, ax = plt.subplots(figsize=(12, 10))
        plot_mesh(ax, nodes, cells, show_cells=show_cells, groups=groups, title="Mesh")
        save_figure(fig, file_path)


def _element_type_of(md: MeshData) -> str:
    num_vertices = md.EToV.shape[1]
    return {3: "Tri", 4: "Quad"}.get(num_vertices, "Other")


def _coordinate_dependent_fields(
    rd: "RefElemData", xyz: Tuple[np.ndarray, ...]
) -> Dict[str, Any]:
    """Computes every field of MeshData that depends on the node coordinates."""
    dim = rd.dim
    geo = geometric_factors(*xyz, *rd.Drst)
    rstxyzJ = metric_tensor(geo, dim)
    J = geo[-1]
    *nxyzJ, sJ = compute_normals(rstxyzJ, rd.Vf, *rd.nrstJ)
    return dict(
        xyzf=tuple(rd.Vf @ x for x in xyz),
        xyzq=tuple(rd.Vq @ x for x in xyz),
        wJq=rd.wq[:, None] * (rd.Vq @ J),
        rstxyzJ=rstxyzJ,
        J=J,
        nxyzJ=tuple(nxyzJ),
        sJ=sJ,
    )


def rebuild_mesh_data(md: MeshData, rd: "RefElemData", *xyz: np.ndarray) -> MeshData:
    """
    Recomputes the coordinate-dependent fields of a mesh from new node positions.

    Connectivity (EToV, FToF) and node maps are shared with ``md``; face
    matching is not recomputed. Use this after curving a mesh.

    Args:
        md (MeshData): Mesh data to update.
        rd (RefElemData): Reference element used to build ``md``.
        *xyz (np.ndarray): New nodal coordinates, one array per dimension.

    Returns:
        MeshData: A new record with updated geometry.
    """
    if md.is_cut_mesh:
        raise NotImplementedError("Cut-cell meshes cannot be rebuilt from new coordinates.")
    if len(xyz) != md.dim:
        raise ValueError(f"Expected {md.dim} coordinate arrays, got {len(xyz)}.")
    xyz = tuple(np.asarray(x, dtype=float) for x in xyz)
    for x in xyz:
        if x.shape != md.xyz[0].shape:
            raise ValueError(
                f"New coordinates have shape {x.shape}, expected {md.xyz[0].shape}."
            )
    return replace(md, xyz=xyz, **_coordinate_dependent_fields(rd, xyz))
