# -*- coding: utf-8 -*-
"""
Volume quadrature on curved cut cells by sub-triangulation.

The break points of a cut cell boundary are triangulated. Each sub-triangle
edge that follows the boundary curve is curved onto it, and the curved edge
data is extended into the triangle by a least-squares fit in the space of
vertex and edge modes. A triangle rule mapped through each curved
sub-triangle and scaled by its Jacobian then integrates over the cut cell.

Key Features:
- `triangulate_points`: Delaunay sub-triangulation of a cut cell polygon.
- `SubtriangulatedQuadrature`: precomputed warp and derivative operators,
  applied to any cut cell curve.
"""
from typing import Optional, Tuple

import numpy as np
from matplotlib.path import Path
from scipy.spatial import Delaunay

from ..reference.polynomials import gauss_lobatto_quad, tri_face_basis, tri_quadrature
from ..reference.ref_elem import TRI_FACE_VERTICES, TRI_VERTICES, RefElemData
from .curves import PiecewiseCurve

DEFAULT_MAX_REFINEMENTS = 5

# Relative mismatch allowed between the triangulated and polygon areas
COVERAGE_TOL = 1e-10


def triangle_areas(p: np.ndarray) -> np.ndarray:
    """Signed areas of triangles with vertices ``p``, shape (num_triangles, 3, 2)."""
    return 0.5 * (
        (p[:, 1, 0] - p[:, 0, 0]) * (p[:, 2, 1] - p[:, 0, 1])
        - (p[:, 2, 0] - p[:, 0, 0]) * (p[:, 1, 1] - p[:, 0, 1])
    )


def polygon_area(points: np.ndarray) -> float:
    """Signed shoelace area of a closed polygon."""
    x, y = points[:, 0], points[:, 1]
    return 0.5 * float(np.dot(x, np.roll(y, -1)) - np.dot(np.roll(x, -1), y))


def triangulate_points(points: np.ndarray) -> np.ndarray:
    """
    Triangulates the polygon with the given vertices.

    Triangles are oriented counterclockwise, and triangles whose centroid lies
    outside the polygon are dropped.

    Args:
        points (np.ndarray): Polygon vertices in boundary order, shape (n, 2).

    Returns:
        np.ndarray: Triangle vertex indices, shape (num_triangles, 3).
    """
    points = np.asarray(points, dtype=float)
    if points.shape[0] < 3:
        raise ValueError("At least three points are needed to triangulate a cut cell.")

    tri = Delaunay(points)
    if tri.coplanar.size > 0:
        raise ValueError(
            f"Break points {tri.coplanar[:, 0].tolist()} were left out of the "
            "triangulation; cut cell boundaries with collinear break points are not supported."
        )

    simplices = tri.simplices.copy()
    clockwise = triangle_areas(points[simplices]) < 0
    simplices[clockwise] = simplices[clockwise][:, [0, 2, 1]]

    polygon = Path(np.vstack([points, points[:1]]), closed=True)
    inside = polygon.contains_points(points[simplices].mean(axis=1))
    return simplices[inside]


class SubtriangulatedQuadrature:
    """
    Builds curved sub-triangle quadrature rules for cut cells.

    Attributes:
        N (int): Degree of the curved sub-triangle mapping.
        r1D (np.ndarray): 1D points at which boundary edges are sampled.
        rd_tri (RefElemData): Degree-N triangle reference element.
        rq, sq, wq (np.ndarray): Triangle quadrature rule.
        warp (np.ndarray): Least-squares extension from edge points to nodes.
        Vq (np.ndarray): Interpolation from nodes to quadrature points.
        VqDr, VqDs (np.ndarray): Derivatives evaluated at quadrature points.
    """

    def __init__(
        self,
        N: int,
        r1D: Optional[np.ndarray] = None,
        quad_degree: Optional[int] = None,
        min_points: int = 0,
        max_refinements: int = DEFAULT_MAX_REFINEMENTS,
    ):
        """
        Args:
            N (int): Degree of the curved sub-triangle mapping.
            r1D (np.ndarray, optional): Edge sample points in [-1, 1] including
                both ends. Defaults to the N+1 Gauss-Lobatto points.
            quad_degree (int, optional): Exactness degree of the triangle rule.
                Defaults to ``max(2N, (N-1)(N+2))``.
            min_points (int, optional): Minimum number of points per triangle.
            max_refinements (int, optional): Number of times the arcs of a cut
                cell may be halved before giving up on it.
        """
        self.N = N
        self.max_refinements = max_refinements
        self.r1D = gauss_lobatto_quad(N + 1)[0] if r1D is None else np.asarray(r1D, dtype=float)
        if quad_degree is None:
            quad_degree = max(2 * N, (N - 1) * (N + 2))

        self.rd_tri = RefElemData.from_element_type("Tri", N)
        self.rq, self.sq, self.wq = tri_quadrature(quad_degree, min_points)

        t = 0.5 * (1.0 + self.r1D)
        face_points = np.vstack(
            [
                TRI_VERTICES[a] + t[:, None] * (TRI_VERTICES[b] - TRI_VERTICES[a])
                for a, b in TRI_FACE_VERTICES
            ]
        )
        face_basis = tri_face_basis(N, face_points[:, 0], face_points[:, 1])
        volume_basis = tri_face_basis(N, self.rd_tri.r, self.rd_tri.s)
        self.warp = volume_basis @ np.linalg.pinv(face_basis)

        self.Vq = self.rd_tri.interpolation_matrix(self.rq, self.sq)
        self.VqDr = self.Vq @ self.rd_tri.Dr
        self.VqDs = self.Vq @ self.rd_tri.Ds

    @property
    def num_points(self) -> int:
        """Number of quadrature points per sub-triangle."""
        return self.wq.size

    def _edge_points(self, cutcell: PiecewiseCurve, vertices, a: int, b: int) -> np.ndarray:
        """Points along the sub-triangle edge from vertex a to vertex b."""
        n = vertices.shape[0]
        stop_pts = cutcell.stop_pts
        t = 0.5 * (1.0 + self.r1D)

        if {a, b} == {0, n - 1}:
            # The closing boundary edge runs from stop_pts[n-1] to stop_pts[n]
            sa = stop_pts[n] if a == 0 else stop_pts[n - 1]
            sb = stop_pts[n] if b == 0 else stop_pts[n - 1]
            return cutcell(sa + t * (sb - sa))
        if abs(a - b) == 1:
            return cutcell(stop_pts[a] + t * (stop_pts[b] - stop_pts[a]))
        return vertices[a] + t[:, None] * (vertices[b] - vertices[a])

    def curved_nodes(self, cutcell: PiecewiseCurve) -> Tuple[np.ndarray, np.ndarray]:
        """
        Nodal coordinates of the curved sub-triangles.

        Returns:
            Tuple[np.ndarray, np.ndarray]: x and y of shape (Np_tri, num_triangles).
        """
        vertices = cutcell.vertices()
        return self._curved_nodes(cutcell, vertices, triangulate_points(vertices))

    def _curved_nodes(self, cutcell: PiecewiseCurve, vertices, triangles):
        x_nodes, y_nodes = [], []
        for triangle in triangles:
            edge_points = np.vstack(
                [
                    self._edge_points(cutcell, vertices, triangle[a], triangle[b])
                    for a, b in TRI_FACE_VERTICES
                ]
            )
            x_nodes.append(self.warp @ edge_points[:, 0])
            y_nodes.append(self.warp @ edge_points[:, 1])
        return np.column_stack(x_nodes), np.column_stack(y_nodes)

    def _try_quadrature(self, cutcell: PiecewiseCurve):
        """Curved nodes and Jacobians, or None if the sub-triangulation is unusable."""
        vertices = cutcell.vertices()
        triangles = triangulate_points(vertices)
        if triangles.shape[0] == 0:
            return None

        # The kept triangles must tile the break point polygon exactly
        covered = triangle_areas(vertices[triangles]).sum()
        scale = np.prod(np.ptp(vertices, axis=0))
        if abs(covered - polygon_area(vertices)) > COVERAGE_TOL * scale:
            return None

        x, y = self._curved_nodes(cutcell, vertices, triangles)
        J = (self.VqDr @ x) * (self.VqDs @ y) - (self.VqDs @ x) * (self.VqDr @ y)
        if np.any(J <= 0.0):
            return None
        return x, y, J

    def __call__(self, cutcell: PiecewiseCurve) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """
        Computes the quadrature rule of a cut cell.

        Curved edges that bend too far into thin sub-triangles give
        non-positive Jacobians, and break points of strongly concave cells can
        give triangles that leave the cell. In both cases every arc of the
        boundary is split into 2, 4, 8 ... pieces and the cell is
        sub-triangulated again, up to ``max_refinements`` times.

        Returns:
            Tuple[np.ndarray, np.ndarray, np.ndarray]: ``xq``, ``yq`` and
                ``wJq``, each of shape (num_points, num_triangles). All weights
                are positive.

        Raises:
            ValueError: If no refinement gives a valid sub-triangulation.
        """
        for level in range(self.max_refinements + 1):
            curve = cutcell if level == 0 else cutcell.refine(2**level)
            mapped = self._try_quadrature(curve)
            if mapped is not None:
                x, y, J = mapped
                return self.Vq @ x, self.Vq @ y, self.wq[:, None] * J
        raise ValueError(
            f"Cut cell with break points {np.round(cutcell.vertices(), 6).tolist()} has no "
            f"valid curved sub-triangulation after {self.max_refinements} arc refinements."
        )
