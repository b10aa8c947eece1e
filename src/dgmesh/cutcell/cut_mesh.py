# -*- coding: utf-8 -*-
"""
Cut-cell meshes on Cartesian background grids.

A background grid of quadrilaterals is intersected with embedded objects. Every
background cell becomes one of three things:
- a Cartesian cell, untouched by the objects;
- a cut cell, bounded by a curve made of edge pieces and object arcs;
- an excluded cell inside an object.

Cartesian cells use the reference quadrilateral. Cut cells use polynomial
bases in physical coordinates, curve-based face points and normals, and a
sub-triangulated volume quadrature pruned down to as many nodes as there are
degree-2N polynomials.

Key Features:
- Background classification into region flags and cut cell boundary curves.
- Lookup tables between background (ex, ey) positions and cell indices.
- `cut_mesh_data`: assembly of a `MeshData` whose fields are `CellArray`s.
- Outline and quadrature plots for diagnostics.

Classes:
    CutCellData: Background grid information of a cut-cell mesh.
    CutCellMesh: Cut-cell specific data attached to `MeshData.mesh_type`.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple, TYPE_CHECKING

import numpy as np
import matplotlib.pyplot as plt
from scipy.linalg import qr

from ..common.utility import plot_mesh, plot_quadrature_points, save_figure
from ..mesh.connectivity import DEFAULT_NODE_TOL, build_node_maps, match_faces_by_centroid
from ..mesh.geometric_factors import compute_normals, geometric_factors, metric_tensor
from ..mesh.mesh_data import MeshData
from ..reference.ref_elem import RefElemData
from .cell_array import CellArray, CellIndex, CellKind
from .curves import LineSegment, PiecewiseCurve
from .physical_frame import PhysicalFrame, num_cut_basis
from .pruning import caratheodory_pruning
from .quadrature import SubtriangulatedQuadrature

if TYPE_CHECKING:
    from .curves import Circle

# --- Region flags of background cells ---
REGION_CARTESIAN = 0
REGION_CUT = 1
REGION_INSIDE_OBJECT = -1

DEFAULT_GEOMETRY_TOL = 1e-12


def is_cartesian(flag) -> bool:
    return flag == REGION_CARTESIAN


def is_cut(flag) -> bool:
    return flag == REGION_CUT


def is_inside_domain(ex: int, ey: int, region_flags: np.ndarray) -> bool:
    """True if (ex, ey) is a background cell that belongs to the domain."""
    nx, ny = region_flags.shape
    return 0 <= ex < nx and 0 <= ey < ny and region_flags[ex, ey] != REGION_INSIDE_OBJECT


# =============================================================================
# Data containers
# =============================================================================


@dataclass(frozen=True, eq=False)
class CutCellData:
    """
    Background grid information of a cut-cell mesh.

    Attributes:
        objects (Tuple): Embedded objects.
        region_flags (np.ndarray): Flag per background cell, shape (nx, ny).
        cartesian_to_linear (np.ndarray): Index of each background cell
            within the block of its kind, or -1 for excluded cells.
        linear_to_cartesian (Dict[CellKind, np.ndarray]): Background (ex, ey)
            position of every cell, per kind.
        cutcells (List[PiecewiseCurve]): Boundary curve of every cut cell.
        vxyz (Tuple[np.ndarray, np.ndarray]): Background grid lines.
        wJf (CellArray): Face quadrature weights scaled by face Jacobians.
    """

    objects: Tuple
    region_flags: np.ndarray
    cartesian_to_linear: np.ndarray
    linear_to_cartesian: Dict[CellKind, np.ndarray]
    cutcells: List[PiecewiseCurve]
    vxyz: Tuple[np.ndarray, np.ndarray]
    wJf: CellArray


@dataclass(frozen=True, eq=False)
class CutCellMesh:
    """
    Cut-cell specific data stored in `MeshData.mesh_type`.

    Attributes:
        physical_frame_elements (List[PhysicalFrame]): Basis frame of every
            cut cell, built from its face points.
        cut_face_nodes (List[np.ndarray]): Indices into ``md.xf.cut`` of the
            face points of every cut cell.
        cut_cell_data (CutCellData): Background grid information.
    """

    physical_frame_elements: List[PhysicalFrame]
    cut_face_nodes: List[np.ndarray]
    cut_cell_data: CutCellData


def num_cartesian_elements(md: MeshData) -> int:
    return md.mesh_type.cut_cell_data.linear_to_cartesian[CellKind.CARTESIAN].shape[0]


def num_cut_elements(md: MeshData) -> int:
    return md.mesh_type.cut_cell_data.linear_to_cartesian[CellKind.CUT].shape[0]


def face_node_values(field: CellArray, cell: CellIndex, md: MeshData) -> np.ndarray:
    """Face point values of a single cell from a face-point `CellArray`."""
    if cell.kind is CellKind.CARTESIAN:
        return field.cartesian[:, cell.index]
    if cell.kind is CellKind.CUT:
        return field.cut[md.mesh_type.cut_face_nodes[cell.index]]
    raise ValueError(f"Unknown cell kind {cell.kind}.")


# =============================================================================
# Background classification
# =============================================================================


def cut_cell_boundary(
    corners: Sequence[Tuple[float, float]], obj: "Circle", tol: float = DEFAULT_GEOMETRY_TOL
) -> Optional[PiecewiseCurve]:
    """
    Boundary curve of a background cell cut by an object.

    The cell perimeter is walked counterclockwise. Pieces outside the object
    are kept as line segments, and each run of pieces inside the object is
    replaced by the object arc joining its end points.

    Args:
        corners: Cell corners in counterclockwise order.
        obj: Embedded object.
        tol (float): Crossings closer than ``tol`` (in edge parameter) to a
            corner are snapped to that corner.

    Returns:
        PiecewiseCurve or None: The boundary curve, or None if the object does
            not cut the cell.

    Raises:
        ValueError: If the object crosses the perimeter in more than one run,
            which splits the cell into disconnected regions.
    """
    corners = [np.asarray(c, dtype=float) for c in corners]
    points = []
    for k, p in enumerate(corners):
        q = corners[(k + 1) % len(corners)]
        points.append(p)
        for t in np.sort(obj.segment_crossings(p, q, tol)):
            points.append(p + t * (q - p))

    # Drop repeated points, e.g. from a tangential crossing
    unique_points = []
    for p in points:
        if not unique_points or np.linalg.norm(p - unique_points[-1]) > tol:
            unique_points.append(p)
    if len(unique_points) > 1 and np.linalg.norm(unique_points[0] - unique_points[-1]) <= tol:
        unique_points.pop()
    points = unique_points
    n = len(points)

    inside = [
        bool(obj.contains(*(0.5 * (points[i] + points[(i + 1) % n])))) for i in range(n)
    ]
    if not any(inside) or all(inside):
        return None
    num_runs = sum(inside[i] and not inside[i - 1] for i in range(n))
    if num_runs > 1:
        raise ValueError(
            f"Object centered at ({obj.x0}, {obj.y0}) with radius {obj.radius} splits the cell "
            f"with corners {[tuple(c.tolist()) for c in corners]} into {num_runs} regions; "
            "refine the grid or move the object."
        )

    start = inside.index(False)
    order = [(start + i) % n for i in range(n)]
    segments = []
    i = 0
    while i < n:
        k = order[i]
        if not inside[k]:
            segments.append(LineSegment(points[k], points[(k + 1) % n]))
            i += 1
            continue
        run_start = points[k]
        while i < n and inside[order[i]]:
            i += 1
        run_end = points[(order[i - 1] + 1) % n]
        segments.append(obj.boundary_arc(run_start, run_end))
    return PiecewiseCurve(segments)


def classify_background_cells(
    objects: Sequence["Circle"],
    vx: np.ndarray,
    vy: np.ndarray,
    tol: float = DEFAULT_GEOMETRY_TOL,
) -> Tuple[np.ndarray, Dict[Tuple[int, int], PiecewiseCurve]]:
    """
    Flags every background cell and builds the boundaries of cut cells.

    Returns:
        Tuple[np.ndarray, Dict]: Region flags of shape (nx, ny) and the cut cell
            boundary curves keyed by (ex, ey).
    """
    nx, ny = vx.size - 1, vy.size - 1
    region_flags = np.full((nx, ny), REGION_CARTESIAN, dtype=int)
    curves = {}
    for ex in range(nx):
        for ey in range(ny):
            x0, x1, y0, y1 = vx[ex], vx[ex + 1], vy[ey], vy[ey + 1]
            corners = [(x0, y0), (x1, y0), (x1, y1), (x0, y1)]
            cell_curves = []
            for obj in objects:
                try:
                    curve = cut_cell_boundary(corners, obj, tol)
                except ValueError as e:
                    raise ValueError(f"Background cell ({ex}, {ey}): {e}") from e
                if curve is not None:
                    cell_curves.append(curve)
            if len(cell_curves) > 1:
                raise NotImplementedError(
                    f"Background cell ({ex}, {ey}) is cut by more than one object."
                )
            if cell_curves:
                region_flags[ex, ey] = REGION_CUT
                curves[(ex, ey)] = cell_curves[0]
                continue

            # Uncut cells lie either fully inside or fully outside a convex object
            if any(all(obj.contains(*c) for c in corners) for obj in objects):
                region_flags[ex, ey] = REGION_INSIDE_OBJECT
                continue
            for obj in objects:
                if x0 < obj.x0 < x1 and y0 < obj.y0 < y1:
                    raise ValueError(
                        f"Object centered at ({obj.x0}, {obj.y0}) lies inside background "
                        f"cell ({ex}, {ey}) without crossing its edges; refine the grid."
                    )
    return region_flags, curves


def build_cell_index_tables(
    region_flags: np.ndarray,
) -> Tuple[np.ndarray, Dict[CellKind, np.ndarray]]:
    """Lookup tables between background positions and per-kind cell indices."""
    nx, ny = region_flags.shape
    cartesian_to_linear = np.full((nx, ny), -1, dtype=int)
    positions = {CellKind.CARTESIAN: [], CellKind.CUT: []}
    for ex in range(nx):
        for ey in range(ny):
            flag = region_flags[ex, ey]
            if is_cartesian(flag):
                kind = CellKind.CARTESIAN
            elif is_cut(flag):
                kind = CellKind.CUT
            else:
                continue
            cartesian_to_linear[ex, ey] = len(positions[kind])
            positions[kind].append((ex, ey))
    linear_to_cartesian = {
        kind: np.array(cells, dtype=int).reshape(-1, 2) for kind, cells in positions.items()
    }
    return cartesian_to_linear, linear_to_cartesian


# =============================================================================
# Cut cell geometry
# =============================================================================


def _cut_face_geometry(cutcells, rd_line: RefElemData, r1D_face: np.ndarray):
    """Face points, scaled normals and face Jacobians of every cut cell."""
    Vq1 = rd_line.interpolation_matrix(r1D_face)
    VqDr = Vq1 @ rd_line.Dr
    xf, yf, nxJ, nyJ, sJ, cut_face_nodes = [], [], [], [], [], []
    offset = 0
    for curve in cutcells:
        for f in range(curve.num_segments):
            stop = curve.stop_pts
            points = curve(stop[f] + 0.5 * (1.0 + rd_line.r) * (stop[f + 1] - stop[f]))
            xf.append(Vq1 @ points[:, 0])
            yf.append(Vq1 @ points[:, 1])
            dxdr = VqDr @ points[:, 0]
            dydr = VqDr @ points[:, 1]
            # The boundary is counterclockwise, so the outward normal is the
            # tangent rotated clockwise.
            nxJ.append(dydr)
            nyJ.append(-dxdr)
            sJ.append(np.hypot(dxdr, dydr))
        num_points = curve.num_segments * r1D_face.size
        cut_face_nodes.append(np.arange(offset, offset + num_points))
        offset += num_points

    def _stack(values):
        return np.concatenate(values) if values else np.zeros(0)

    return (
        _stack(xf), _stack(yf), _stack(nxJ), _stack(nyJ), _stack(sJ), cut_face_nodes
    )


def _cut_volume_geometry(cutcells, cut_face_nodes, xf_cut, yf_cut, N: int):
    """Pruned volume quadrature, nodal points and frames of every cut cell."""
    num_quad = num_cut_basis(2 * N)
    num_nodes = num_cut_basis(N)
    quadrature = SubtriangulatedQuadrature(N, min_points=num_quad)

    frames, x, y, xq, yq, wJq = [], [], [], [], [], []
    for curve, ids in zip(cutcells, cut_face_nodes):
        frame = PhysicalFrame(xf_cut[ids], yf_cut[ids])
        xq_e, yq_e, wJq_e = (a.ravel(order="F") for a in quadrature(curve))

        w_pruned, inds = caratheodory_pruning(frame.vandermonde(2 * N, xq_e, yq_e), wJq_e)
        xq.append(xq_e[inds])
        yq.append(yq_e[inds])
        wJq.append(w_pruned[inds])

        # Approximate Fekete points among the unpruned quadrature points
        _, _, pivots = qr(frame.vandermonde(N, xq_e, yq_e).T, pivoting=True, mode="economic")
        node_ids = np.sort(pivots[:num_nodes])
        x.append(xq_e[node_ids])
        y.append(yq_e[node_ids])
        frames.append(frame)

    def _columns(values, rows):
        return np.column_stack(values) if values else np.zeros((rows, 0))

    return (
        frames,
        _columns(x, num_nodes),
        _columns(y, num_nodes),
        _columns(xq, num_quad),
        _columns(yq, num_quad),
        _columns(wJq, num_quad),
    )


# =============================================================================
# Mesh assembly
# =============================================================================


def cut_mesh_data(
    rd: RefElemData,
    objects: Sequence["Circle"],
    vx,
    vy,
    node_tol: float = DEFAULT_NODE_TOL,
    geometry_tol: float = DEFAULT_GEOMETRY_TOL,
) -> MeshData:
    """
    Builds the mesh data of a Cartesian grid with embedded objects.

    Args:
        rd (RefElemData): Quad reference element used on Cartesian cells. Its
            1D face rule is also used on cut cell faces.
        objects (Sequence): Embedded objects; the domain lies outside them.
        vx, vy (np.ndarray): Increasing background grid lines.
        node_tol (float): Relative tolerance for pairing face nodes.
        geometry_tol (float): Tolerance for snapping crossings to corners.

    Returns:
        MeshData: Mesh data with `CellArray` fields and a `CutCellMesh`.
    """
    if rd.element_type != "Quad":
        raise ValueError("Cut-cell meshes use a Quad reference element for Cartesian cells.")
    vx = np.asarray(vx, dtype=float)
    vy = np.asarray(vy, dtype=float)
    if np.any(np.diff(vx) <= 0) or np.any(np.diff(vy) <= 0):
        raise ValueError("Background grid lines must be strictly increasing.")
    objects = tuple(objects)
    N = rd.N

    region_flags, curves = classify_background_cells(objects, vx, vy, geometry_tol)
    cartesian_to_linear, linear_to_cartesian = build_cell_index_tables(region_flags)
    cutcells = [curves[tuple(pos)] for pos in linear_to_cartesian[CellKind.CUT]]

    # --- Cartesian cells: reference element pipeline ---
    grid_x, grid_y = np.meshgrid(vx, vy, indexing="ij")
    VX, VY = grid_x.ravel(order="F"), grid_y.ravel(order="F")
    stride = vx.size
    EToV = np.array(
        [
            [ex + stride * ey, ex + 1 + stride * ey, ex + stride * (ey + 1), ex + 1 + stride * (ey + 1)]
            for ex, ey in linear_to_cartesian[CellKind.CARTESIAN]
        ],
        dtype=int,
    ).reshape(-1, 4)
    x_cart = rd.V1 @ VX[EToV.T]
    y_cart = rd.V1 @ VY[EToV.T]
    geo = geometric_factors(x_cart, y_cart, rd.Dr, rd.Ds)
    rstxyzJ_cart = metric_tensor(geo, 2)
    J_cart = geo[-1]
    nxJ_cart, nyJ_cart, sJ_cart = compute_normals(rstxyzJ_cart, rd.Vf, *rd.nrstJ)

    # --- Cut cells: curve-based faces, pruned sub-triangle quadrature ---
    rd_line = RefElemData.from_element_type("Line", N)
    xf_cut, yf_cut, nxJ_cut, nyJ_cut, sJ_cut, cut_face_nodes = _cut_face_geometry(
        cutcells, rd_line, rd.r1D_face
    )
    frames, x_cut, y_cut, xq_cut, yq_cut, wJq_cut = _cut_volume_geometry(
        cutcells, cut_face_nodes, xf_cut, yf_cut, N
    )
    num_cut = len(cutcells)
    ones_cut = np.ones((x_cut.shape[0], num_cut))
    zeros_cut = np.zeros((x_cut.shape[0], num_cut))

    x = CellArray(x_cart, x_cut)
    y = CellArray(y_cart, y_cut)
    xf = CellArray(rd.Vf @ x_cart, xf_cut)
    yf = CellArray(rd.Vf @ y_cart, yf_cut)
    xq = CellArray(rd.Vq @ x_cart, xq_cut)
    yq = CellArray(rd.Vq @ y_cart, yq_cut)
    wJq = CellArray(rd.wq[:, None] * (rd.Vq @ J_cart), wJq_cut)
    rstxyzJ = (
        (CellArray(rstxyzJ_cart[0, 0], ones_cut), CellArray(rstxyzJ_cart[0, 1], zeros_cut)),
        (CellArray(rstxyzJ_cart[1, 0], zeros_cut), CellArray(rstxyzJ_cart[1, 1], ones_cut)),
    )
    J = CellArray(J_cart, ones_cut)
    nxJ = CellArray(nxJ_cart, nxJ_cut)
    nyJ = CellArray(nyJ_cart, nyJ_cut)
    sJ = CellArray(sJ_cart, sJ_cut)
    num_face_points = rd.r1D_face.size
    wJf = CellArray(
        rd.wf[:, None] * sJ_cart, np.tile(rd.w1D_face, sJ_cut.size // num_face_points) * sJ_cut
    )

    # --- Face connectivity ---
    num_faces_total = xf.size // num_face_points
    face_x = xf.data.reshape(num_face_points, num_faces_total, order="F")
    face_y = yf.data.reshape(num_face_points, num_faces_total, order="F")
    centroids = np.column_stack([face_x.mean(axis=0), face_y.mean(axis=0)])
    extent = max(vx[-1] - vx[0], vy[-1] - vy[0], 1.0)
    FToF = match_faces_by_centroid(centroids, tol=node_tol * extent)
    mapM, mapP, mapB = build_node_maps(FToF, xf.data, yf.data, tol=node_tol)

    cut_cell_data = CutCellData(
        objects=objects,
        region_flags=region_flags,
        cartesian_to_linear=cartesian_to_linear,
        linear_to_cartesian=linear_to_cartesian,
        cutcells=cutcells,
        vxyz=(vx, vy),
        wJf=wJf,
    )
    mesh_type = CutCellMesh(
        physical_frame_elements=frames,
        cut_face_nodes=cut_face_nodes,
        cut_cell_data=cut_cell_data,
    )
    return MeshData(
        VXYZ=(VX, VY),
        K=EToV.shape[0] + num_cut,
        EToV=EToV,
        FToF=FToF,
        xyz=(x, y),
        xyzf=(xf, yf),
        xyzq=(xq, yq),
        wJq=wJq,
        mapM=mapM.ravel(order="F"),
        mapP=mapP.ravel(order="F"),
        mapB=mapB,
        rstxyzJ=rstxyzJ,
        J=J,
        nxyzJ=(nxJ, nyJ),
        sJ=sJ,
        is_periodic=(False, False),
        mesh_type=mesh_type,
    )


# =============================================================================
# Diagnostics
# =============================================================================


def cut_mesh_outline(md: MeshData, points_per_segment: int = 8):
    """
    Polygon outlines of every cell of a cut-cell mesh.

    Returns:
        Tuple[np.ndarray, List[List[int]], List[str]]: Outline nodes, cells as
            node index lists and a group label per cell.
    """
    nodes = [np.column_stack(md.VXYZ)]
    cells = [list(row[[0, 1, 3, 2]]) for row in md.EToV]
    groups = ["Cartesian"] * len(cells)
    offset = nodes[0].shape[0]
    for curve in md.mesh_type.cut_cell_data.cutcells:
        points = curve.sample(points_per_segment)
        nodes.append(points)
        cells.append(list(range(offset, offset + points.shape[0])))
        groups.append("Cut")
        offset += points.shape[0]
    return np.vstack(nodes), cells, groups


def plot_quadrature(md: MeshData, file_path: str = "cut_cell_quadrature.png") -> None:
    """Plots the mesh outline with the volume quadrature points of every cell."""
    nodes, cells, groups = cut_mesh_outline(md)
    fig, ax = plt.subplots(figsize=(12, 10))
    plot_mesh(ax, nodes, cells, groups=groups, title="Cut cell quadrature")
    plot_quadrature_points(
        ax, md.xq.data, md.yq.data, md.wJq.data, title="Cut cell quadrature"
    )
    save_figure(fig, file_path)
