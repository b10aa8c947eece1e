# -*- coding: utf-8 -*-
"""
Orthogonal polynomials, quadrature rules and modal bases on reference elements.

Key Features:
- Orthonormal Jacobi polynomials and their derivatives.
- Gauss, Gauss-Lobatto and Gauss-Jacobi quadrature rules.
- Collapsed-coordinate quadrature on the reference triangle.
- Orthonormal Dubiner basis on the triangle and tensor Legendre bases on
  lines, quadrilaterals and hexahedra.
- The triangle "face basis" spanned by vertex and edge modes, used to extend
  boundary data into a triangle.
"""

import itertools
from typing import List, Tuple

import numpy as np
from numpy.polynomial.legendre import Legendre, leggauss
from scipy.special import eval_jacobi, gammaln, roots_jacobi


# =============================================================================
# One-dimensional polynomials and rules
# =============================================================================


def jacobi_p(x, alpha: float, beta: float, n: int) -> np.ndarray:
    """
    Evaluates the orthonormal Jacobi polynomial of degree n on [-1, 1].

    The polynomial is normalized with respect to the weight
    (1 - x)^alpha (1 + x)^beta.
    """
    x = np.asarray(x, dtype=float)
    log_norm_sq = (
        (alpha + beta + 1) * np.log(2.0)
        - np.log(2 * n + alpha + beta + 1)
        + gammaln(n + alpha + 1)
        + gammaln(n + beta + 1)
        - gammaln(n + alpha + beta + 1)
        - gammaln(n + 1)
    )
    return eval_jacobi(n, alpha, beta, x) * np.exp(-0.5 * log_norm_sq)


def grad_jacobi_p(x, alpha: float, beta: float, n: int) -> np.ndarray:
    """Derivative of the orthonormal Jacobi polynomial of degree n."""
    x = np.asarray(x, dtype=float)
    if n == 0:
        return np.zeros_like(x)
    return np.sqrt(n * (n + alpha + beta + 1)) * jacobi_p(x, alpha + 1, beta + 1, n - 1)


def gauss_quad(num_points: int) -> Tuple[np.ndarray, np.ndarray]:
    """Legendre-Gauss nodes and weights on [-1, 1]."""
    return leggauss(num_points)


def gauss_jacobi_quad(
    num_points: int, alpha: float, beta: float
) -> Tuple[np.ndarray, np.ndarray]:
    """Gauss-Jacobi nodes and weights for the weight (1 - x)^alpha (1 + x)^beta."""
    r, w = roots_jacobi(num_points, alpha, beta)
    return np.asarray(r, dtype=float), np.asarray(w, dtype=float)


def gauss_lobatto_quad(num_points: int) -> Tuple[np.ndarray, np.ndarray]:
    """
    Legendre-Gauss-Lobatto nodes and weights on [-1, 1].

    Args:
        num_points (int): Number of nodes, including both endpoints. Must be >= 2.

    Returns:
        Tuple[np.ndarray, np.ndarray]: Sorted nodes and their weights.
    """
    if num_points < 2:
        raise ValueError("Gauss-Lobatto rules need at least two points.")
    N = num_points - 1
    interior = np.sort(Legendre.basis(N).deriv().roots().real)
    r = np.concatenate(([-1.0], interior, [1.0]))
    w = 2.0 / (N * (N + 1) * Legendre.basis(N)(r) ** 2)
    return r, w


def legendre_vandermonde_1d(N: int, r) -> Tuple[np.ndarray, np.ndarray]:
    """Orthonormal Legendre Vandermonde matrix and its derivative up to degree N."""
    r = np.asarray(r, dtype=float)
    V = np.column_stack([jacobi_p(r, 0, 0, i) for i in range(N + 1)])
    Vr = np.column_stack([grad_jacobi_p(r, 0, 0, i) for i in range(N + 1)])
    return V, Vr


# =============================================================================
# Tensor-product Legendre bases
# =============================================================================


def tensor_modes(N: int, dim: int, total_degree: bool = False) -> List[Tuple[int, ...]]:
    """
    Lists the multi-indices of a tensor Legendre basis.

    The first index varies fastest. With ``total_degree`` only modes whose
    degrees sum to at most N are kept.
    """
    modes = [m[::-1] for m in itertools.product(range(N + 1), repeat=dim)]
    if total_degree:
        modes = [m for m in modes if sum(m) <= N]
    return modes


def tensor_vandermonde(N: int, *rst, total_degree: bool = False) -> Tuple[np.ndarray, ...]:
    """
    Evaluates a tensor Legendre basis and its gradient at the given points.

    Returns:
        Tuple[np.ndarray, ...]: ``(V, Vr, Vs, ...)``, one derivative matrix per
            coordinate direction.
    """
    dim = len(rst)
    one_d = [legendre_vandermonde_1d(N, x) for x in rst]
    modes = tensor_modes(N, dim, total_degree)

    def _evaluate(derivative_axis):
        columns = []
        for mode in modes:
            column = np.ones_like(np.asarray(rst[0], dtype=float))
            for d in range(dim):
                table = one_d[d][1] if d == derivative_axis else one_d[d][0]
                column = column * table[:, mode[d]]
            columns.append(column)
        return np.column_stack(columns)

    return (_evaluate(None),) + tuple(_evaluate(d) for d in range(dim))


# =============================================================================
# Triangle bases and quadrature
# =============================================================================


def rs_to_ab(r, s) -> Tuple[np.ndarray, np.ndarray]:
    """Maps reference triangle coordinates to collapsed coordinates."""
    r = np.asarray(r, dtype=float)
    s = np.asarray(s, dtype=float)
    a = np.full_like(r, -1.0)
    mask = np.abs(1.0 - s) > 1e-14
    a[mask] = 2.0 * (1.0 + r[mask]) / (1.0 - s[mask]) - 1.0
    return a, s.copy()


def simplex_2d(a, b, i: int, j: int) -> np.ndarray:
    """Orthonormal Dubiner mode (i, j) in collapsed coordinates."""
    h1 = jacobi_p(a, 0, 0, i)
    h2 = jacobi_p(b, 2 * i + 1, 0, j)
    return np.sqrt(2.0) * h1 * h2 * (1.0 - b) ** i


def grad_simplex_2d(a, b, i: int, j: int) -> Tuple[np.ndarray, np.ndarray]:
    """Reference-coordinate gradient of the Dubiner mode (i, j)."""
    fa = jacobi_p(a, 0, 0, i)
    dfa = grad_jacobi_p(a, 0, 0, i)
    gb = jacobi_p(b, 2 * i + 1, 0, j)
    dgb = grad_jacobi_p(b, 2 * i + 1, 0, j)

    dmodedr = dfa * gb
    if i > 0:
        dmodedr = dmodedr * (0.5 * (1.0 - b)) ** (i - 1)

    dmodeds = dfa * (gb * (0.5 * (1.0 + a)))
    if i > 0:
        dmodeds = dmodeds * (0.5 * (1.0 - b)) ** (i - 1)

    tmp = dgb * (0.5 * (1.0 - b)) ** i
    if i > 0:
        tmp = tmp - 0.5 * i * gb * (0.5 * (1.0 - b)) ** (i - 1)
    dmodeds = dmodeds + fa * tmp

    scale = 2.0 ** (i + 0.5)
    return scale * dmodedr, scale * dmodeds


def tri_vandermonde(N: int, r, s) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Dubiner Vandermonde matrix and its r/s derivatives up to total degree N."""
    a, b = rs_to_ab(r, s)
    V, Vr, Vs = [], [], []
    for i in range(N + 1):
        for j in range(N + 1 - i):
            V.append(simplex_2d(a, b, i, j))
            dr, ds = grad_simplex_2d(a, b, i, j)
            Vr.append(dr)
            Vs.append(ds)
    return np.column_stack(V), np.column_stack(Vr), np.column_stack(Vs)


def equispaced_tri_nodes(N: int) -> Tuple[np.ndarray, np.ndarray]:
    """Equispaced nodes on the reference triangle, s-levels outermost."""
    if N == 0:
        return np.array([-1.0 / 3.0]), np.array([-1.0 / 3.0])
    r, s = [], []
    for j in range(N + 1):
        for i in range(N + 1 - j):
            r.append(-1.0 + 2.0 * i / N)
            s.append(-1.0 + 2.0 * j / N)
    return np.array(r), np.array(s)


def tri_quadrature(
    degree: int, min_points: int = 0
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Collapsed Gauss-Jacobi quadrature on the reference triangle.

    Args:
        degree (int): Polynomial degree to integrate exactly.
        min_points (int): Lower bound on the total number of points.

    Returns:
        Tuple[np.ndarray, np.ndarray, np.ndarray]: Nodes ``r``, ``s`` and weights.
    """
    n = max(int(np.ceil((degree + 1) / 2)), 1)
    while n * n < min_points:
        n += 1
    ra, wa = gauss_quad(n)
    rb, wb = gauss_jacobi_quad(n, 1.0, 0.0)
    a, b = np.meshgrid(ra, rb, indexing="ij")
    wa, wb = np.meshgrid(wa, wb, indexing="ij")
    r = 0.5 * (1.0 + a) * (1.0 - b) - 1.0
    return r.ravel(), b.ravel(), 0.5 * (wa * wb).ravel()


def tri_barycentric(r, s) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Barycentric coordinates for the vertices (-1,-1), (1,-1), (-1,1)."""
    r = np.asarray(r, dtype=float)
    s = np.asarray(s, dtype=float)
    return -0.5 * (r + s), 0.5 * (1.0 + r), 0.5 * (1.0 + s)


def tri_face_basis(N: int, r, s) -> np.ndarray:
    """
    Vertex and edge modes of the reference triangle.

    The space has dimension 3N: three barycentric vertex functions plus, on each
    edge (a, b), the bubbles ``lambda_a * lambda_b * P_k(lambda_b - lambda_a)``
    for k < N - 1. Restricted to the boundary, it contains every continuous
    function that is a degree-N polynomial on each edge.
    """
    lam = tri_barycentric(r, s)
    columns = list(lam)
    for a, b in ((0, 1), (1, 2), (2, 0)):
        for k in range(N - 1):
            columns.append(lam[a] * lam[b] * jacobi_p(lam[b] - lam[a], 0, 0, k))
    return np.column_stack(columns)
