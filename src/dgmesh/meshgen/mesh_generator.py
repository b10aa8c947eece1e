from typing import Tuple

import gmsh
import numpy as np


class MeshGenerator:
    """
    Generates unstructured triangle meshes with gmsh, entirely in memory.

    The mesh is returned as vertex arrays and an element-to-vertex table that
    can be passed to `MeshData.from_vertices` together with a Tri reference
    element. Triangles are re-oriented counterclockwise.

    Attributes:
        mesh_size (float): Target characteristic length of the elements.
        gmsh_verbose (int): Verbosity level of the gmsh API.
    """

    def __init__(self, mesh_size: float = 0.25, gmsh_verbose: int = 0):
        """
        Initializes the MeshGenerator class.

        Args:
            mesh_size (float, optional): Target element size. Defaults to 0.25.
            gmsh_verbose (int, optional): gmsh verbosity level. Defaults to 0.
        """
        if mesh_size <= 0:
            raise ValueError("mesh_size must be positive.")
        self.mesh_size = mesh_size
        self.gmsh_verbose = gmsh_verbose

    def rectangle(
        self, length: float, width: float, x: float = 0.0, y: float = 0.0
    ) -> Tuple[Tuple[np.ndarray, np.ndarray], np.ndarray]:
        """
        Meshes the rectangle [x, x + length] x [y, y + width] with triangles.

        Returns:
            Tuple[Tuple[np.ndarray, np.ndarray], np.ndarray]: ``(VX, VY)`` and EToV.
        """
        gmsh.initialize()
        gmsh.option.setNumber("General.Verbosity", self.gmsh_verbose)
        try:
            gmsh.model.add("rectangle")
            p1 = gmsh.model.geo.addPoint(x, y, 0, self.mesh_size)
            p2 = gmsh.model.geo.addPoint(x + length, y, 0, self.mesh_size)
            p3 = gmsh.model.geo.addPoint(x + length, y + width, 0, self.mesh_size)
            p4 = gmsh.model.geo.addPoint(x, y + width, 0, self.mesh_size)

            lines = [
                gmsh.model.geo.addLine(p1, p2),
                gmsh.model.geo.addLine(p2, p3),
                gmsh.model.geo.addLine(p3, p4),
                gmsh.model.geo.addLine(p4, p1),
            ]
            curve_loop = gmsh.model.geo.addCurveLoop(lines)
            gmsh.model.geo.addPlaneSurface([curve_loop])
            gmsh.model.geo.synchronize()
            gmsh.model.mesh.generate(2)
            return self._extract_triangles()
        finally:
            gmsh.finalize()

    def _extract_triangles(self) -> Tuple[Tuple[np.ndarray, np.ndarray], np.ndarray]:
        """Reads nodes and 3-node triangles from the current gmsh model."""
        raw_tags, raw_coords, _ = gmsh.model.mesh.getNodes()
        coords = np.array(raw_coords).reshape(-1, 3)
        tag_to_index = {int(t): i for i, t in enumerate(raw_tags)}

        elem_types, _, elem_node_tags = gmsh.model.mesh.getElements(dim=2)
        cells = []
        for elem_type, node_tags in zip(elem_types, elem_node_tags):
            props = gmsh.model.mesh.getElementProperties(elem_type)
            num_nodes = props[3]
            if num_nodes != 3:
                continue
            for enodes in np.array(node_tags).reshape(-1, num_nodes):
                cells.append([tag_to_index[int(t)] for t in enodes])
        if not cells:
            raise RuntimeError("gmsh produced no triangles.")

        # Keep only vertices referenced by a triangle
        EToV = np.array(cells, dtype=int)
        used, EToV = np.unique(EToV, return_inverse=True)
        EToV = EToV.reshape(-1, 3)
        VX, VY = coords[used, 0], coords[used, 1]

        v0, v1, v2 = EToV[:, 0], EToV[:, 1], EToV[:, 2]
        signed_area = (VX[v1] - VX[v0]) * (VY[v2] - VY[v0]) - (VX[v2] - VX[v0]) * (
            VY[v1] - VY[v0]
        )
        clockwise = signed_area < 0
        EToV[clockwise] = EToV[clockwise][:, [0, 2, 1]]
        return (VX, VY), EToV
