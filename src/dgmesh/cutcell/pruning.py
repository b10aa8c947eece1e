# -*- coding: utf-8 -*-
"""
Caratheodory pruning of quadrature rules.

Given a rule with M nodes and a polynomial space of dimension P < M, nodes are
removed one at a time along kernel directions of the transposed
Vandermonde matrix. Every step keeps the moments ``V.T @ w`` and the weights
stay non-negative, ending with P nodes.
"""
from typing import Tuple

import numpy as np

from ..errors import DegenerateKernelError

# Negative weights smaller than this, relative to the total weight, are round-off
ROUNDOFF_TOL = 1e-12


def caratheodory_pruning(V: np.ndarray, w_in: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    Reduces a positive quadrature rule to as many nodes as basis functions.

    At each step, the last column of the complete QR factor of ``V[inds]`` is
    orthogonal to the range of ``V[inds]`` and serves as the kernel direction
    k. A ratio test over the positive and negative entries of k picks the step
    that zeroes one weight and keeps the others non-negative. The smaller step
    in magnitude is taken, and the zeroed node is removed.

    Args:
        V (np.ndarray): Basis values at the nodes, shape (M, P).
        w_in (np.ndarray): Non-negative weights, shape (M,).

    Returns:
        Tuple[np.ndarray, np.ndarray]: Weights of length M with removed entries
            set to zero, and the indices of the kept nodes.

    Raises:
        ValueError: If some input weight is negative beyond round-off.
        DegenerateKernelError: If the kernel direction has no positive or no
            negative entries.
    """
    V = np.asarray(V, dtype=float)
    w = np.array(w_in, dtype=float)
    M, P = V.shape
    if w.shape != (M,):
        raise ValueError(f"Expected {M} weights, got shape {w.shape}.")
    tol = ROUNDOFF_TOL * np.abs(w).sum()
    if np.any(w < -tol):
        raise ValueError(
            f"Quadrature weights must be non-negative; found {np.sum(w < -tol)} negative "
            f"weight(s), the smallest {w.min():.3e}."
        )
    w = np.maximum(w, 0.0)
    if M <= P:
        return w, np.arange(M)

    inds = np.arange(M)
    while inds.size > P:
        Q, _ = np.linalg.qr(V[inds], mode="complete")
        k = Q[:, -1]
        w_active = w[inds]

        positive = np.flatnonzero(k > 0)
        negative = np.flatnonzero(k < 0)
        if positive.size == 0 or negative.size == 0:
            raise DegenerateKernelError(
                f"Kernel direction has no {'positive' if positive.size == 0 else 'negative'} "
                f"entries with {inds.size} nodes remaining."
            )

        ratios_p = w_active[positive] / k[positive]
        ratios_n = w_active[negative] / k[negative]
        kp = positive[np.argmin(ratios_p)]
        kn = negative[np.argmax(ratios_n)]
        alpha_p, alpha_n = ratios_p.min(), ratios_n.max()

        if abs(alpha_n) < abs(alpha_p):
            alpha, k0 = alpha_n, kn
        else:
            alpha, k0 = alpha_p, kp

        # The ratio test keeps weights non-negative up to round-off
        w[inds] = np.maximum(w_active - alpha * k, 0.0)
        w[inds[k0]] = 0.0
        inds = np.delete(inds, k0)

    return w, inds
