import unittest
import warnings
import numpy as np

from dgmesh.errors import FaceNodeMatchingError, FaceNodeMatchingWarning, InvalidTopologyError
from dgmesh.mesh import build_node_maps, connect_mesh, match_faces_by_centroid
from dgmesh.reference import RefElemData

from tests.common_meshes import create_uniform_mesh_data, flat


class TestConnectMesh(unittest.TestCase):

    def setUp(self):
        self.meshes = {
            "Tri": create_uniform_mesh_data("Tri", 2, 3),
            "Quad": create_uniform_mesh_data("Quad", 2, (3, 2)),
            "Hex": create_uniform_mesh_data("Hex", 1, 2),
        }

    def test_face_to_face_is_an_involution(self):
        """Test that FToF[FToF[f]] == f for every face."""
        for element_type, (rd, md) in self.meshes.items():
            with self.subTest(element_type=element_type):
                FToF = flat(md.FToF)
                self.assertEqual(md.FToF.shape, (rd.num_faces, md.K))
                self.assertTrue(np.array_equal(FToF[FToF], np.arange(FToF.size)))

    def test_boundary_face_counts(self):
        """Test the number of self-matched faces on uniform meshes."""
        expected = {"Tri": 4 * 3, "Quad": 2 * (3 + 2), "Hex": 6 * 4}
        for element_type, (rd, md) in self.meshes.items():
            with self.subTest(element_type=element_type):
                FToF = flat(md.FToF)
                num_boundary = np.count_nonzero(FToF == np.arange(FToF.size))
                self.assertEqual(num_boundary, expected[element_type])

    def test_matched_faces_share_vertices(self):
        """Test that matched faces list the same vertex set."""
        rd, md = self.meshes["Quad"]
        FToF = flat(md.FToF)
        num_faces = rd.num_faces
        for face, neighbor in enumerate(FToF):
            e1, f1 = divmod(face, num_faces)
            e2, f2 = divmod(neighbor, num_faces)
            self.assertEqual(
                sorted(md.EToV[e1, rd.fv[f1]]), sorted(md.EToV[e2, rd.fv[f2]])
            )

    def test_repeated_vertex(self):
        rd = RefElemData.from_element_type("Tri", 1)
        with self.assertRaises(InvalidTopologyError):
            connect_mesh(np.array([[0, 1, 1]]), rd.fv)

    def test_negative_vertex(self):
        rd = RefElemData.from_element_type("Tri", 1)
        with self.assertRaises(InvalidTopologyError):
            connect_mesh(np.array([[0, 1, -2]]), rd.fv)

    def test_face_shared_by_three_elements(self):
        """Test that a non-manifold face is rejected."""
        rd = RefElemData.from_element_type("Tri", 1)
        EToV = np.array([[0, 1, 2], [1, 0, 3], [0, 1, 4]])
        with self.assertRaises(InvalidTopologyError):
            connect_mesh(EToV, rd.fv)

    def test_inconsistent_face_sizes(self):
        with self.assertRaises(InvalidTopologyError):
            connect_mesh(np.array([[0, 1, 2]]), [[0, 1], [1, 2, 0]])


class TestNodeMaps(unittest.TestCase):

    def test_exterior_map_is_an_involution(self):
        """Test that mapP[mapP] == mapM and partner nodes coincide."""
        for element_type, cells in (("Tri", 2), ("Quad", 3), ("Hex", 2)):
            with self.subTest(element_type=element_type):
                rd, md = create_uniform_mesh_data(element_type, 3, cells)
                mapM, mapP = flat(md.mapM), flat(md.mapP)
                self.assertTrue(np.array_equal(mapP[mapP], mapM))
                for xf in md.xyzf:
                    xf = flat(xf)
                    self.assertTrue(np.allclose(xf[mapP], xf[mapM]))

    def test_boundary_nodes_lie_on_the_boundary(self):
        """Test that mapB selects exactly the face nodes on the box boundary."""
        rd, md = create_uniform_mesh_data("Tri", 2, 2)
        xf, yf = flat(md.xf), flat(md.yf)
        on_boundary = np.isclose(np.abs(xf), 1.0) | np.isclose(np.abs(yf), 1.0)
        self.assertTrue(np.array_equal(np.sort(md.mapB), np.flatnonzero(on_boundary)))

    def test_one_dimensional_maps(self):
        """Test node maps of a 1D mesh, where each face holds one node."""
        rd, md = create_uniform_mesh_data("Line", 2, 4)
        self.assertEqual(md.mapP.shape, (2, 4))
        mapP = flat(md.mapP)
        # Right face of element 0 faces the left face of element 1
        self.assertEqual(mapP[1], 2)
        self.assertEqual(mapP[2], 1)
        self.assertTrue(np.array_equal(md.mapB, [0, 7]))

    def test_single_node_faces_with_rounding_gap(self):
        """Test that one-node faces pair up despite a round-off gap."""
        FToF = np.array([0, 2, 1, 3])
        xf = np.array([-1.0, -1.67e-17, 8.37e-18, 1.0])
        with warnings.catch_warnings():
            warnings.simplefilter("error", FaceNodeMatchingWarning)
            mapM, mapP, mapB = build_node_maps(FToF, xf, strict=True)
        self.assertTrue(np.array_equal(flat(mapP), [0, 2, 1, 3]))
        self.assertTrue(np.array_equal(mapB, [0, 3]))

    def test_line_mesh_is_strictly_conforming(self):
        for N in (1, 2, 3):
            with self.subTest(N=N):
                rd, md = create_uniform_mesh_data("Line", N, 8, strict=True)
                self.assertTrue(np.array_equal(md.mapB, [0, flat(md.mapM)[-1]]))

    def test_unmatched_nodes_warn(self):
        """Test that matched faces with non-coincident nodes emit a warning."""
        FToF = np.array([1, 0])
        xf = np.array([[0.0, 0.0], [1.0, 5.0]])
        with self.assertWarns(FaceNodeMatchingWarning):
            mapM, mapP, mapB = build_node_maps(FToF, xf)
        # The coincident pair is still linked
        self.assertEqual(mapP[0, 0], 2)
        self.assertEqual(mapP[0, 1], 0)

    def test_unmatched_nodes_strict(self):
        FToF = np.array([1, 0])
        xf = np.array([[0.0, 0.0], [1.0, 5.0]])
        with self.assertRaises(FaceNodeMatchingError):
            build_node_maps(FToF, xf, strict=True)

    def test_conforming_mesh_does_not_warn(self):
        with warnings.catch_warnings():
            warnings.simplefilter("error", FaceNodeMatchingWarning)
            create_uniform_mesh_data("Quad", 2, 2, strict=True)


class TestMatchFacesByCentroid(unittest.TestCase):

    def test_pairs_coincident_centroids(self):
        centroids = np.array([[0.0, 0.0], [1.0, 0.0], [0.0, 0.0], [2.0, 2.0]])
        FToF = match_faces_by_centroid(centroids, tol=1e-10)
        self.assertTrue(np.array_equal(FToF, [2, 1, 0, 3]))

    def test_three_coincident_centroids(self):
        centroids = np.zeros((3, 2))
        with self.assertRaises(InvalidTopologyError):
            match_faces_by_centroid(centroids, tol=1e-10)


if __name__ == "__main__":
    unittest.main()
