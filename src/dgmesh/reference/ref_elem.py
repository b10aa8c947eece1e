# -*- coding: utf-8 -*-
"""
Reference element operators for nodal DG discretizations.

This module provides the `RefElemData` record, which bundles everything a mesh
builder needs from a reference element: nodes, interpolation to vertices,
faces and quadrature points, differentiation matrices and reference normals.

Key Features:
- Line, Tri, Quad and Hex elements on the bi-unit reference domain.
- Gauss-Lobatto tensor nodes for Line/Quad/Hex and equispaced nodes for Tri.
- Volume quadrature exact to degree 2N by default, Gauss face quadrature.

Conventions:
- Tensor elements number their vertices lexicographically with the first
  coordinate fastest. Faces are ordered r=-1, r=+1, s=-1, s=+1, t=-1, t=+1.
- Triangles use the vertices (-1,-1), (1,-1), (-1,1) and the faces
  [0, 1], [1, 2], [2, 0].
- Face arrays stack the points of face 0, then face 1, and so on.

Classes:
    RefElemData: Immutable container of reference element operators.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np

from .polynomials import (
    equispaced_tri_nodes,
    gauss_lobatto_quad,
    gauss_quad,
    tensor_vandermonde,
    tri_barycentric,
    tri_quadrature,
    tri_vandermonde,
)

ELEMENT_TYPES = ("Line", "Tri", "Quad", "Hex")
TENSOR_DIMENSION = {"Line": 1, "Quad": 2, "Hex": 3}

TRI_VERTICES = np.array([[-1.0, -1.0], [1.0, -1.0], [-1.0, 1.0]])
TRI_FACE_VERTICES = [[0, 1], [1, 2], [2, 0]]


def tensor_vertices(dim: int) -> np.ndarray:
    """Lexicographically ordered vertices of [-1, 1]^dim."""
    return np.array(
        [[(-1.0, 1.0)[(v >> d) & 1] for d in range(dim)] for v in range(2**dim)]
    )


def tensor_face_vertices(dim: int) -> List[List[int]]:
    """Local vertex lists of the faces of [-1, 1]^dim."""
    vertices = tensor_vertices(dim)
    faces = []
    for d in range(dim):
        for side in (-1.0, 1.0):
            faces.append([v for v in range(len(vertices)) if vertices[v, d] == side])
    return faces


def _tensor_grid(points: np.ndarray, weights: np.ndarray, dim: int):
    """Tensor product of a 1D rule, first coordinate fastest."""
    grids = np.meshgrid(*([points] * dim), indexing="ij")
    wgrids = np.meshgrid(*([weights] * dim), indexing="ij")
    coords = tuple(g.ravel(order="F") for g in grids)
    w = np.prod([g.ravel(order="F") for g in wgrids], axis=0)
    return coords, w


@dataclass(frozen=True, eq=False)
class RefElemData:
    """
    Stores the operators of a nodal reference element.

    Instances are created with `RefElemData.from_element_type`.

    Attributes:
        element_type (str): One of "Line", "Tri", "Quad", "Hex".
        N (int): Polynomial degree.
        vertices (np.ndarray): Reference vertex coordinates, shape (Nv, dim).
        fv (List[List[int]]): Local vertex indices of each face.
        rst (Tuple[np.ndarray, ...]): Nodal coordinates.
        VDM (np.ndarray): Modal Vandermonde matrix at the nodes.
        V1 (np.ndarray): Interpolation from vertex values to nodes.
        Drst (Tuple[np.ndarray, ...]): Nodal differentiation matrices.
        rstf (Tuple[np.ndarray, ...]): Face quadrature points, face-major.
        wf (np.ndarray): Face quadrature weights on the reference faces.
        nrstJ (Tuple[np.ndarray, ...]): Reference normals scaled by the
            reference face Jacobian, one entry per face point.
        Vf (np.ndarray): Interpolation from nodes to face points.
        rstq (Tuple[np.ndarray, ...]): Volume quadrature points.
        wq (np.ndarray): Volume quadrature weights.
        Vq (np.ndarray): Interpolation from nodes to volume quadrature points.
        r1D_face (np.ndarray): 1D face quadrature points.
        w1D_face (np.ndarray): 1D face quadrature weights.
    """

    element_type: str
    N: int
    vertices: np.ndarray
    fv: List[List[int]]
    rst: Tuple[np.ndarray, ...]
    VDM: np.ndarray
    V1: np.ndarray
    Drst: Tuple[np.ndarray, ...]
    rstf: Tuple[np.ndarray, ...]
    wf: np.ndarray
    nrstJ: Tuple[np.ndarray, ...]
    Vf: np.ndarray
    rstq: Tuple[np.ndarray, ...]
    wq: np.ndarray
    Vq: np.ndarray
    r1D_face: np.ndarray
    w1D_face: np.ndarray

    @classmethod
    def from_element_type(
        cls,
        element_type: str,
        N: int,
        quad_degree: Optional[int] = None,
        num_face_points: Optional[int] = None,
    ) -> "RefElemData":
        """
        Builds the reference element operators.

        Args:
            element_type (str): One of "Line", "Tri", "Quad", "Hex".
            N (int): Polynomial degree, at least 1.
            quad_degree (int, optional): Degree the volume quadrature integrates
                exactly. Defaults to 2N.
            num_face_points (int, optional): Number of 1D Gauss points per face
                direction. Defaults to N + 1.

        Returns:
            RefElemData: The reference element.
        """
        if element_type not in ELEMENT_TYPES:
            raise ValueError(
                f"Unknown element type '{element_type}'. Expected one of {ELEMENT_TYPES}."
            )
        if N < 1:
            raise ValueError("Polynomial degree N must be at least 1.")

        quad_degree = 2 * N if quad_degree is None else quad_degree
        num_face_points = N + 1 if num_face_points is None else num_face_points
        r1D_face, w1D_face = gauss_quad(num_face_points)

        if element_type == "Tri":
            return cls._build_tri(N, quad_degree, r1D_face, w1D_face)
        return cls._build_tensor(element_type, N, quad_degree, r1D_face, w1D_face)

    @classmethod
    def _build_tensor(cls, element_type, N, quad_degree, r1D_face, w1D_face):
        dim = TENSOR_DIMENSION[element_type]
        vertices = tensor_vertices(dim)
        fv = tensor_face_vertices(dim)

        r1D, _ = gauss_lobatto_quad(N + 1)
        rst, _ = _tensor_grid(r1D, np.ones_like(r1D), dim)

        num_quad_1D = max(int(np.ceil((quad_degree + 1) / 2)), 1)
        rq1D, wq1D = gauss_quad(num_quad_1D)
        rstq, wq = _tensor_grid(rq1D, wq1D, dim)

        rstf = [[] for _ in range(dim)]
        nrstJ = [[] for _ in range(dim)]
        wf = []
        for d in range(dim):
            others = [k for k in range(dim) if k != d]
            if others:
                face_coords, face_weights = _tensor_grid(r1D_face, w1D_face, len(others))
            else:
                face_coords, face_weights = (), np.ones(1)
            num_points = face_weights.size
            for side in (-1.0, 1.0):
                for k in range(dim):
                    if k == d:
                        rstf[k].append(np.full(num_points, side))
                        nrstJ[k].append(np.full(num_points, side))
                    else:
                        rstf[k].append(face_coords[others.index(k)])
                        nrstJ[k].append(np.zeros(num_points))
                wf.append(face_weights)
        rstf = tuple(np.concatenate(c) for c in rstf)
        nrstJ = tuple(np.concatenate(c) for c in nrstJ)
        wf = np.concatenate(wf)

        V1 = np.column_stack(
            [
                np.prod([0.5 * (1.0 + v[d] * rst[d]) for d in range(dim)], axis=0)
                for v in vertices
            ]
        )

        def basis(*coords):
            return tensor_vandermonde(N, *coords)

        return cls._assemble(
            element_type, N, vertices, fv, rst, V1, rstf, wf, nrstJ, rstq, wq,
            r1D_face, w1D_face, basis,
        )

    @classmethod
    def _build_tri(cls, N, quad_degree, r1D_face, w1D_face):
        r, s = equispaced_tri_nodes(N)
        rq, sq, wq = tri_quadrature(quad_degree)

        # Faces are parametrized from their first vertex to their second one.
        rstf = ([], [])
        nrstJ = ([], [])
        face_normals = [(0.0, -1.0), (1.0, 1.0), (-1.0, 0.0)]
        for (a, b), (nr, ns) in zip(TRI_FACE_VERTICES, face_normals):
            t = 0.5 * (1.0 + r1D_face)
            for k in range(2):
                rstf[k].append(TRI_VERTICES[a, k] + t * (TRI_VERTICES[b, k] - TRI_VERTICES[a, k]))
            nrstJ[0].append(np.full(r1D_face.size, nr))
            nrstJ[1].append(np.full(r1D_face.size, ns))
        rstf = tuple(np.concatenate(c) for c in rstf)
        nrstJ = tuple(np.concatenate(c) for c in nrstJ)
        wf = np.tile(w1D_face, 3)

        V1 = np.column_stack(tri_barycentric(r, s))

        def basis(*coords):
            return tri_vandermonde(N, *coords)

        return cls._assemble(
            "Tri", N, TRI_VERTICES.copy(), [list(f) for f in TRI_FACE_VERTICES],
            (r, s), V1, rstf, wf, nrstJ, (rq, sq), wq, r1D_face, w1D_face, basis,
        )

    @classmethod
    def _assemble(
        cls, element_type, N, vertices, fv, rst, V1, rstf, wf, nrstJ, rstq, wq,
        r1D_face, w1D_face, basis,
    ):
        VDM, *grads = basis(*rst)
        Drst = tuple(np.linalg.solve(VDM.T, G.T).T for G in grads)
        Vf = np.linalg.solve(VDM.T, basis(*rstf)[0].T).T
        Vq = np.linalg.solve(VDM.T, basis(*rstq)[0].T).T
        return cls(
            element_type=element_type,
            N=N,
            vertices=vertices,
            fv=fv,
            rst=tuple(rst),
            VDM=VDM,
            V1=V1,
            Drst=Drst,
            rstf=tuple(rstf),
            wf=wf,
            nrstJ=tuple(nrstJ),
            Vf=Vf,
            rstq=tuple(rstq),
            wq=wq,
            Vq=Vq,
            r1D_face=r1D_face,
            w1D_face=w1D_face,
        )

    # --- Derived sizes ---

    @property
    def dim(self) -> int:
        return len(self.rst)

    @property
    def Np(self) -> int:
        return self.rst[0].size

    @property
    def num_faces(self) -> int:
        return len(self.fv)

    @property
    def Nfq(self) -> int:
        """Number of quadrature points on a single face."""
        return self.wf.size // self.num_faces

    # --- Coordinate and operator shortcuts ---

    @property
    def r(self) -> np.ndarray:
        return self.rst[0]

    @property
    def s(self) -> np.ndarray:
        return self.rst[1]

    @property
    def t(self) -> np.ndarray:
        return self.rst[2]

    @property
    def Dr(self) -> np.ndarray:
        return self.Drst[0]

    @property
    def Ds(self) -> np.ndarray:
        return self.Drst[1]

    @property
    def Dt(self) -> np.ndarray:
        return self.Drst[2]

    def interpolation_matrix(self, *rst) -> np.ndarray:
        """Interpolation from the nodes to arbitrary reference points."""
        if self.element_type == "Tri":
            V = tri_vandermonde(self.N, *rst)[0]
        else:
            V = tensor_vandermonde(self.N, *rst)[0]
        return np.linalg.solve(self.VDM.T, V.T).T
