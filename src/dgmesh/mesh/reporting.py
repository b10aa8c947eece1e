# -*- coding: utf-8 -*-
"""
This module provides reporting functions for DG mesh data.
"""
from __future__ import annotations
from typing import TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    from .mesh_data import MeshData


def _values(field) -> np.ndarray:
    """Flattens a plain array or a CellArray."""
    return np.asarray(getattr(field, "data", field)).ravel()


def format_mesh_summary(md: "MeshData") -> str:
    """
    Formats a summary of the mesh data.
    """
    report = []
    report.append(f"\n{'Mesh Data Report':^80}")
    report.append(_format_general_info(md))
    report.append(_format_connectivity(md))
    report.append(_format_geometry_table(md))
    if md.is_cut_mesh:
        report.append(_format_cut_cell_info(md))
    return "\n".join(report)


def _format_general_info(md: "MeshData") -> str:
    lines = [f"\n{'--- General Information ---':^80}"]
    lines.append(f"  {'Dimension:':<25} {md.dim}D")
    lines.append(f"  {'Number of Elements:':<25} {md.K}")
    lines.append(f"  {'Number of Vertices:':<25} {md.VXYZ[0].size}")
    lines.append(f"  {'Total Nodes:':<25} {_values(md.xyz[0]).size}")
    lines.append(f"  {'Total Face Nodes:':<25} {_values(md.xyzf[0]).size}")
    periodic = ", ".join(
        axis for axis, flag in zip("xyz", md.is_periodic) if flag
    ) or "none"
    lines.append(f"  {'Periodic Axes:':<25} {periodic}")
    return "\n".join(lines)


def _format_connectivity(md: "MeshData") -> str:
    FToF = np.ravel(md.FToF, order="F")
    num_boundary_faces = int(np.sum(FToF == np.arange(FToF.size)))
    lines = [f"\n{'--- Connectivity ---':^80}"]
    lines.append(f"  {'Total Faces:':<25} {FToF.size}")
    lines.append(f"  {'Boundary Faces:':<25} {num_boundary_faces}")
    lines.append(f"  {'Boundary Face Nodes:':<25} {md.mapB.size}")
    return "\n".join(lines)


def _format_geometry_table(md: "MeshData") -> str:
    lines = [f"\n{'--- Geometric Factors ---':^80}"]
    lines.append(f"  {'Metric':<25} {'Min':>15} {'Max':>15} {'Average':>15}")
    lines.append(f"  {'-'*24} {'-'*15} {'-'*15} {'-'*15}")
    rows = [
        ("Jacobian J", _values(md.J)),
        ("Face Jacobian sJ", _values(md.sJ)),
        ("Quadrature Weights wJq", _values(md.wJq)),
    ]
    for name, values in rows:
        if values.size > 0:
            lines.append(
                f"  {name:<25} {values.min():>15.4e} {values.max():>15.4e} {values.mean():>15.4e}"
            )
    lines.append(f"  {'Total Volume:':<25} {_values(md.wJq).sum():.6e}")
    return "\n".join(lines)


def _format_cut_cell_info(md: "MeshData") -> str:
    wJq = md.wJq
    cut_volumes = wJq.cut.sum(axis=0)
    lines = [f"\n{'--- Cut Cells ---':^80}"]
    lines.append(f"  {'Cartesian Cells:':<25} {wJq.cartesian.shape[1]}")
    lines.append(f"  {'Cut Cells:':<25} {wJq.cut.shape[1]}")
    if cut_volumes.size > 0:
        lines.append(f"  {'Smallest Cut Volume:':<25} {cut_volumes.min():.6e}")
        lines.append(f"  {'Largest Cut Volume:':<25} {cut_volumes.max():.6e}")
    return "\n".join(lines)
