# -*- coding: utf-8 -*-
"""
Mesh generators producing vertex arrays and element-to-vertex tables.

Key modules:
- uniform:        Structured uniform meshes of boxes (Line/Tri/Quad/Hex).
- mesh_generator: Unstructured triangle meshes through the gmsh Python API.
  It is imported on demand so that gmsh is only loaded when used.
"""

from .uniform import uniform_mesh

__all__ = ["uniform_mesh"]
