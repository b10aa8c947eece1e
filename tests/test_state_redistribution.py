import unittest
import numpy as np

from dgmesh.cutcell import (
    CellArray,
    CellIndex,
    CellKind,
    StateRedistribution,
    VolumeScore,
    compute_neighbor_list,
    num_cartesian_elements,
    num_cut_elements,
)
from dgmesh.cutcell.redistribution import cell_quadrature_interpolation, get_cartesian_neighbors

from tests.common_meshes import create_circle_cut_mesh, create_uniform_mesh_data


class TestStateRedistribution(unittest.TestCase):

    @classmethod
    def setUpClass(cls):
        cls.rd, cls.md = create_circle_cut_mesh(3, 4)
        cls.srd = StateRedistribution(cls.rd, cls.md)

    def cells(self):
        md = self.md
        return [CellIndex(CellKind.CARTESIAN, e) for e in range(num_cartesian_elements(md))] + [
            CellIndex(CellKind.CUT, e) for e in range(num_cut_elements(md))
        ]

    def mass(self, u):
        """Total integral of a nodal solution over the mesh."""
        md, rd = self.md, self.rd
        return sum(
            np.dot(md.wJq.columns(c), cell_quadrature_interpolation(rd, md, c) @ u.columns(c))
            for c in self.cells()
        )

    def test_threshold(self):
        score = VolumeScore.from_mesh(self.md)
        self.assertAlmostEqual(score.threshold, 0.5 * 0.5 * 0.5)

    def test_cartesian_neighbors(self):
        """Test the background neighbors of a cut cell at the grid boundary."""
        md = self.md
        data = md.mesh_type.cut_cell_data
        e = int(data.cartesian_to_linear[0, 1])
        neighbors = get_cartesian_neighbors(CellIndex(CellKind.CUT, e), md)
        self.assertEqual(len(neighbors), 3)
        positions = {tuple(data.linear_to_cartesian[c.kind][c.index]) for c in neighbors}
        self.assertEqual(positions, {(1, 1), (0, 2), (0, 0)})

    def test_neighborhoods(self):
        """Test that every neighborhood starts with its cell and is large enough."""
        md = self.md
        score = VolumeScore.from_mesh(md)
        self.assertEqual(len(self.srd.neighborhoods), num_cut_elements(md))
        for e, neighborhood in enumerate(self.srd.neighborhoods):
            with self.subTest(cell=e):
                self.assertEqual(neighborhood[0], CellIndex(CellKind.CUT, e))
                self.assertEqual(len(set(neighborhood)), len(neighborhood))
                self.assertGreaterEqual(score.score(neighborhood, md), score.threshold)

    def test_small_cells_are_merged(self):
        md = self.md
        data = md.mesh_type.cut_cell_data
        for ex, ey in [(1, 1), (1, 2), (2, 1), (2, 2)]:
            with self.subTest(position=(ex, ey)):
                e = int(data.cartesian_to_linear[ex, ey])
                self.assertLess(md.wJq.cut[:, e].sum(), 0.125)
                self.assertGreater(len(self.srd.neighborhoods[e]), 1)

    def test_overlap_counts(self):
        counts = self.srd.overlap_counts
        self.assertTrue(np.all(counts.cartesian >= 1))
        self.assertTrue(np.all(counts.cut >= 1))
        expected_total = num_cartesian_elements(self.md) + sum(
            len(n) for n in self.srd.neighborhoods
        )
        self.assertEqual(counts.data.sum(), expected_total)

    def test_constants_are_preserved(self):
        md = self.md
        u = CellArray(np.ones(md.x.cartesian.shape), np.ones(md.x.cut.shape))
        result = self.srd(u)
        self.assertIs(result, u)
        self.assertTrue(np.allclose(u.data, 1.0, atol=1e-10))

    def test_linear_functions_are_preserved(self):
        md = self.md
        u = md.x.copy()
        self.srd.apply(u)
        self.assertTrue(np.allclose(u.data, md.x.data, atol=1e-10))

    def test_mass_is_conserved(self):
        """Test conservation for a random state."""
        md = self.md
        rng = np.random.default_rng(42)
        u = CellArray(rng.random(md.x.cartesian.shape), rng.random(md.x.cut.shape))
        mass_before = self.mass(u)
        self.srd.apply(u)
        mass_after = self.mass(u)
        self.assertAlmostEqual(mass_after, mass_before, delta=1e-10 * abs(mass_before))

    def test_flat_arrays(self):
        md = self.md
        rng = np.random.default_rng(7)
        u = CellArray(rng.random(md.x.cartesian.shape), rng.random(md.x.cut.shape))
        flat = u.data.copy()
        self.srd(u)
        self.srd(flat)
        self.assertTrue(np.allclose(flat, u.data))

    def test_invalid_input(self):
        with self.assertRaises(ValueError):
            self.srd(np.zeros(5))
        rd, md = create_uniform_mesh_data("Quad", 2, 2)
        with self.assertRaises(ValueError):
            StateRedistribution(rd, md)

    def test_unreachable_threshold(self):
        """Test that a neighborhood that cannot grow large enough warns."""
        with self.assertWarns(UserWarning):
            neighborhoods = compute_neighbor_list(self.md, VolumeScore(100.0))
        self.assertTrue(all(len(n) == self.md.K for n in neighborhoods))


if __name__ == "__main__":
    unittest.main()
