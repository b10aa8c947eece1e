import os
import unittest

import numpy as np

from dgmesh.mesh import MeshData
from dgmesh.meshgen import uniform_mesh
from dgmesh.meshgen.mesh_generator import MeshGenerator
from dgmesh.reference import RefElemData


class TestUniformMesh(unittest.TestCase):

    def test_counts(self):
        """Test vertex and element counts of uniform meshes."""
        cases = {
            "Line": (4, 5, 4, 2),
            "Tri": (2, 9, 8, 3),
            "Quad": ((3, 2), 12, 6, 4),
            "Hex": (2, 27, 8, 8),
        }
        for element_type, (cells, num_vertices, K, Nv) in cases.items():
            with self.subTest(element_type=element_type):
                vertices, EToV = uniform_mesh(element_type, cells)
                self.assertEqual(vertices[0].size, num_vertices)
                self.assertEqual(EToV.shape, (K, Nv))

    def test_domain_bounds(self):
        vertices, _ = uniform_mesh("Quad", 4, domain=(0.0, 2.0))
        for v in vertices:
            self.assertAlmostEqual(v.min(), 0.0)
            self.assertAlmostEqual(v.max(), 2.0)

    def test_triangles_are_counterclockwise(self):
        (VX, VY), EToV = uniform_mesh("Tri", 3)
        v0, v1, v2 = EToV.T
        area = (VX[v1] - VX[v0]) * (VY[v2] - VY[v0]) - (VX[v2] - VX[v0]) * (VY[v1] - VY[v0])
        self.assertTrue(np.all(area > 0))

    def test_invalid_arguments(self):
        with self.assertRaises(ValueError):
            uniform_mesh("Tet", 2)
        with self.assertRaises(ValueError):
            uniform_mesh("Quad", (2, 0))
        with self.assertRaises(ValueError):
            uniform_mesh("Quad", (2, 2, 2))


class TestMeshGenerator(unittest.TestCase):

    def setUp(self):
        """Set up for the test case."""
        self.output_dir = "results/generation"
        os.makedirs(self.output_dir, exist_ok=True)

    def test_rectangle(self):
        """Test an unstructured triangle mesh of a rectangle."""
        (VX, VY), EToV = MeshGenerator(mesh_size=0.5).rectangle(2.0, 1.0, x=-1.0, y=0.0)
        self.assertEqual(EToV.shape[1], 3)
        self.assertTrue(np.all(np.isin(np.arange(VX.size), EToV)))

        rd = RefElemData.from_element_type("Tri", 2)
        md = MeshData.from_vertices((VX, VY), EToV, rd)
        self.assertTrue(np.all(md.J > 0))
        self.assertAlmostEqual(md.wJq.sum(), 2.0, places=10)
        self.assertGreater(md.mapB.size, 0)
        md.plot(os.path.join(self.output_dir, "rectangle.png"))

    def test_invalid_mesh_size(self):
        with self.assertRaises(ValueError):
            MeshGenerator(mesh_size=0.0)


if __name__ == "__main__":
    unittest.main()
