# -*- coding: utf-8 -*-
"""
Reference elements and the polynomial machinery behind them.

Key modules:
- polynomials: Jacobi/Legendre polynomials, quadrature rules, modal bases.
- ref_elem:    The `RefElemData` record of nodal reference element operators.
"""

from .ref_elem import RefElemData, ELEMENT_TYPES
from .polynomials import (
    gauss_quad,
    gauss_lobatto_quad,
    tri_quadrature,
    tri_face_basis,
)

__all__ = [
    "RefElemData",
    "ELEMENT_TYPES",
    "gauss_quad",
    "gauss_lobatto_quad",
    "tri_quadrature",
    "tri_face_basis",
]
