# -*- coding: utf-8 -*-
"""
Exception and warning types raised while building DG mesh data.

Each error also derives from the builtin exception matching its category, so
callers may catch either the specific type or a plain ``ValueError`` /
``RuntimeError``.
"""


class DGMeshError(Exception):
    """Base class for all errors raised by dgmesh."""


class InvalidTopologyError(DGMeshError, ValueError):
    """Raised for malformed element-to-vertex or face-vertex data."""


class PeriodicityMismatchError(DGMeshError, ValueError):
    """Raised when boundary faces do not span the domain along a periodic axis."""


class DegenerateKernelError(DGMeshError, RuntimeError):
    """Raised when a pruning step finds no admissible ratio-test entry."""


class FaceNodeMatchingError(DGMeshError, RuntimeError):
    """Raised in strict mode when nodes on matched faces have no partner."""


class FaceNodeMatchingWarning(UserWarning):
    """Warns that nodes on matched faces have no coincident partner."""
