import unittest
import os
import io
from contextlib import redirect_stdout

import numpy as np

from dgmesh.cutcell import (
    ArcSegment,
    CellArray,
    CellIndex,
    CellKind,
    Circle,
    LineSegment,
    PiecewiseCurve,
    cut_mesh_data,
    num_cartesian_elements,
    num_cut_elements,
)
from dgmesh.cutcell.cut_mesh import (
    REGION_CARTESIAN,
    REGION_CUT,
    REGION_INSIDE_OBJECT,
    classify_background_cells,
    cut_cell_boundary,
    plot_quadrature,
)
from dgmesh.cutcell.quadrature import polygon_area
from dgmesh.mesh import make_periodic, rebuild_mesh_data
from dgmesh.reference import RefElemData

from tests.common_meshes import create_circle_cut_mesh


class TestCellArray(unittest.TestCase):

    def setUp(self):
        self.u = CellArray(np.arange(6.0).reshape(2, 3), 10.0 + np.arange(4.0).reshape(2, 2))

    def test_layout(self):
        """Test that blocks are stored column-major, Cartesian first."""
        self.assertTrue(np.array_equal(self.u.data, [0, 3, 1, 4, 2, 5, 10, 12, 11, 13]))
        self.assertEqual(self.u.shapes, ((2, 3), (2, 2)))
        self.assertEqual(self.u.offset(CellKind.CUT), 6)
        self.assertEqual(len(self.u), 10)

    def test_views_write_through(self):
        self.u.cut[0, 1] = 99.0
        self.assertEqual(self.u.data[8], 99.0)
        self.u[CellKind.CARTESIAN][1, 0] = -1.0
        self.assertEqual(self.u.data[1], -1.0)

    def test_columns(self):
        self.assertTrue(np.array_equal(self.u.columns(CellIndex(CellKind.CUT, 1)), [11, 13]))
        cells = [CellIndex(CellKind.CUT, 0), CellIndex(CellKind.CARTESIAN, 2)]
        self.assertTrue(np.array_equal(self.u.concat_columns(cells), [10, 12, 2, 5]))

    def test_copy_and_from_flat(self):
        v = self.u.copy()
        v.data[:] = 0.0
        self.assertEqual(self.u.data[1], 3.0)
        w = CellArray.from_flat(np.arange(10.0), self.u)
        self.assertEqual(w.shapes, self.u.shapes)
        with self.assertRaises(ValueError):
            CellArray.from_flat(np.arange(3.0), self.u)


class TestCurves(unittest.TestCase):

    def test_segments(self):
        line = LineSegment(np.array([0.0, 0.0]), np.array([2.0, 1.0]))
        self.assertTrue(np.allclose(line(0.5), [1.0, 0.5]))
        self.assertEqual(line.split(4), [line])

        arc = ArcSegment(np.zeros(2), 2.0, 0.0, np.pi / 2)
        self.assertTrue(np.allclose(arc(1.0), [0.0, 2.0]))
        pieces = arc.split(2)
        self.assertEqual(len(pieces), 2)
        self.assertTrue(np.allclose(pieces[0](1.0), pieces[1](0.0)))
        self.assertTrue(np.allclose(pieces[1](1.0), [0.0, 2.0]))
        self.assertTrue(np.allclose(pieces[0](1.0), [np.sqrt(2.0), np.sqrt(2.0)]))

    def test_piecewise_curve(self):
        """Test evaluation and break points of a closed square."""
        corners = [np.array(p, dtype=float) for p in [(0, 0), (1, 0), (1, 1), (0, 1)]]
        curve = PiecewiseCurve(
            [LineSegment(corners[i], corners[(i + 1) % 4]) for i in range(4)]
        )
        self.assertEqual(curve.num_segments, 4)
        self.assertTrue(np.array_equal(curve.stop_pts, [0, 1, 2, 3, 4]))
        self.assertTrue(np.allclose(curve.vertices(), corners))
        self.assertTrue(np.allclose(curve(4.0), curve(0.0)))
        self.assertTrue(np.allclose(curve(2.5), [0.5, 1.0]))
        self.assertEqual(curve([[0.5, 1.5]]).shape, (1, 2, 2))
        self.assertEqual(curve.sample(5).shape, (20, 2))

    def test_refine_splits_arcs_only(self):
        """Test that refinement keeps straight pieces and traces the same arc."""
        curve = cut_cell_boundary([(0, 0), (1, 0), (1, 1), (0, 1)], Circle(0.66))
        refined = curve.refine(3)
        self.assertEqual(refined.num_segments, 7)
        self.assertTrue(np.allclose(refined.vertices()[:5], curve.vertices()))
        arc_points = refined(4.0 + np.linspace(0.0, 3.0, 13))
        self.assertTrue(np.allclose(np.hypot(arc_points[:, 0], arc_points[:, 1]), 0.66))
        self.assertTrue(np.allclose(refined(7.0), [0.66, 0.0]))

    def test_circle_crossings(self):
        circle = Circle(0.66)
        self.assertTrue(np.allclose(circle.segment_crossings([0, 0], [1, 0]), [0.66]))
        self.assertEqual(circle.segment_crossings([-1, 0.7], [1, 0.7]).size, 0)
        self.assertEqual(circle.segment_crossings([1, 1], [2, 1]).size, 0)
        self.assertTrue(circle.contains(0.1, 0.1))
        self.assertFalse(circle.contains(0.66, 0.0))

    def test_boundary_arc_is_clockwise(self):
        arc = Circle(0.66).boundary_arc([0.0, 0.66], [0.66, 0.0])
        self.assertAlmostEqual(arc.theta_start, np.pi / 2)
        self.assertAlmostEqual(arc.theta_end, 0.0)


class TestBackgroundClassification(unittest.TestCase):

    def test_cut_cell_boundary(self):
        """Test the boundary of a unit cell cut at its lower left corner."""
        circle = Circle(0.66)
        curve = cut_cell_boundary([(0, 0), (1, 0), (1, 1), (0, 1)], circle)
        self.assertEqual(curve.num_segments, 5)
        expected = [(0.66, 0.0), (1.0, 0.0), (1.0, 1.0), (0.0, 1.0), (0.0, 0.66)]
        self.assertTrue(np.allclose(curve.vertices(), expected))
        self.assertIsInstance(curve.segments[-1], ArcSegment)
        self.assertTrue(np.allclose(curve(5.0), curve(0.0)))
        # The arc stays on the circle
        points = curve(4.0 + np.linspace(0.0, 1.0, 7))
        self.assertTrue(np.allclose(np.hypot(points[:, 0], points[:, 1]), 0.66))

    def test_uncut_cell(self):
        self.assertIsNone(cut_cell_boundary([(0, 0), (1, 0), (1, 1), (0, 1)], Circle(0.2, 5.0, 5.0)))

    def test_region_flags(self):
        """Test flags of a 4x4 grid around circles of two sizes."""
        grid = np.linspace(-1.0, 1.0, 5)
        flags, curves = classify_background_cells([Circle(0.66)], grid, grid)
        self.assertEqual(np.count_nonzero(flags == REGION_CUT), 12)
        self.assertEqual(np.count_nonzero(flags == REGION_CARTESIAN), 4)
        self.assertEqual(len(curves), 12)
        self.assertEqual(flags[0, 0], REGION_CARTESIAN)

        flags, curves = classify_background_cells([Circle(0.8)], grid, grid)
        self.assertEqual(np.count_nonzero(flags == REGION_INSIDE_OBJECT), 4)
        self.assertEqual(np.count_nonzero(flags == REGION_CUT), 12)
        self.assertEqual(flags[1, 1], REGION_INSIDE_OBJECT)

    def test_object_inside_a_single_cell(self):
        grid = np.linspace(-1.0, 1.0, 5)
        with self.assertRaises(ValueError):
            classify_background_cells([Circle(0.1, 0.25, 0.25)], grid, grid)

    def test_object_splitting_a_cell(self):
        """Test a circle that cuts a corner sliver off a cell with a second run."""
        circle = Circle(0.352, -0.15, -0.085)
        corners = [(-0.5, -0.5), (0.0, -0.5), (0.0, 0.0), (-0.5, 0.0)]
        with self.assertRaises(ValueError):
            cut_cell_boundary(corners, circle)

        grid = np.linspace(-1.0, 1.0, 5)
        with self.assertRaisesRegex(ValueError, r"\(1, 1\)"):
            classify_background_cells([circle], grid, grid)
        with self.assertRaises(ValueError):
            cut_mesh_data(RefElemData.from_element_type("Quad", 3), [circle], grid, grid)


class TestCutMeshData(unittest.TestCase):

    @classmethod
    def setUpClass(cls):
        cls.output_dir = "results/cut_mesh"
        os.makedirs(cls.output_dir, exist_ok=True)
        cls.N = 3
        cls.radius = 0.66
        cls.rd, cls.md = create_circle_cut_mesh(cls.N, 4, radius=cls.radius)

    def test_counts_and_shapes(self):
        md, N = self.md, self.N
        self.assertTrue(md.is_cut_mesh)
        self.assertEqual(num_cartesian_elements(md), 4)
        self.assertEqual(num_cut_elements(md), 12)
        self.assertEqual(md.K, 16)
        self.assertEqual(md.x.shapes, ((self.rd.Np, 4), ((N + 1) * (N + 2) // 2, 12)))
        self.assertEqual(md.wJq.cut.shape, ((2 * N + 1) * (2 * N + 2) // 2, 12))

    def test_volume(self):
        """Test positivity of the weights and the total area of the domain."""
        md = self.md
        self.assertTrue(np.all(md.wJq.data >= 0.0))
        self.assertTrue(np.all(md.wJq.cut.sum(axis=0) > 0.0))
        self.assertAlmostEqual(md.wJq.data.sum(), 4.0 - np.pi * self.radius**2, delta=1e-3)

    def test_nodes_lie_in_their_cells(self):
        md = self.md
        data = md.mesh_type.cut_cell_data
        vx, vy = data.vxyz
        for e, (ex, ey) in enumerate(data.linear_to_cartesian[CellKind.CUT]):
            x, y = md.x.cut[:, e], md.y.cut[:, e]
            self.assertTrue(np.all((x >= vx[ex] - 1e-6) & (x <= vx[ex + 1] + 1e-6)))
            self.assertTrue(np.all((y >= vy[ey] - 1e-6) & (y <= vy[ey + 1] + 1e-6)))
            self.assertTrue(np.all(np.hypot(x, y) > self.radius - 1e-2))

    def test_face_maps(self):
        """Test that exterior nodes coincide with interior nodes."""
        md = self.md
        FToF = md.FToF
        self.assertTrue(np.array_equal(FToF[FToF], np.arange(FToF.size)))
        self.assertTrue(np.array_equal(md.mapP[md.mapP], md.mapM))
        xf, yf = md.xf.data, md.yf.data
        self.assertTrue(np.allclose(xf[md.mapP], xf))
        self.assertTrue(np.allclose(yf[md.mapP], yf))

    def test_boundary_nodes(self):
        """Test that boundary nodes lie on the box or on the circle."""
        md = self.md
        xb, yb = md.xf.data[md.mapB], md.yf.data[md.mapB]
        on_box = np.isclose(np.abs(xb), 1.0) | np.isclose(np.abs(yb), 1.0)
        on_circle = np.abs(np.hypot(xb, yb) - self.radius) < 1e-3
        self.assertTrue(np.all(on_box | on_circle))
        self.assertTrue(np.any(on_circle))

    def test_normals_close(self):
        """Test that the scaled normals of every cell integrate to zero."""
        md, rd = self.md, self.rd
        for nJ in md.nxyzJ:
            self.assertTrue(np.allclose(rd.wf @ nJ.cartesian, 0.0, atol=1e-12))
            for ids in md.mesh_type.cut_face_nodes:
                w = np.tile(rd.w1D_face, ids.size // rd.w1D_face.size)
                self.assertAlmostEqual(np.dot(w, nJ.cut[ids]), 0.0, places=12)

    def test_normals_point_out_of_the_circle(self):
        """Test that normals on the arcs point towards the circle center."""
        md = self.md
        xb, yb = md.xf.data[md.mapB], md.yf.data[md.mapB]
        on_circle = np.abs(np.hypot(xb, yb) - self.radius) < 1e-3
        nx, ny = md.nxJ.data[md.mapB], md.nyJ.data[md.mapB]
        radial = (nx * xb + ny * yb)[on_circle]
        self.assertTrue(np.all(radial < 0.0))

    def test_face_weights(self):
        wJf = self.md.mesh_type.cut_cell_data.wJf
        self.assertEqual(wJf.shapes, self.md.sJ.shapes)
        self.assertTrue(np.all(wJf.data > 0.0))

    def test_unsupported_operations(self):
        with self.assertRaises(NotImplementedError):
            rebuild_mesh_data(self.md, self.rd, self.md.x, self.md.y)
        with self.assertRaises(NotImplementedError):
            make_periodic(self.md)
        with self.assertRaises(ValueError):
            cut_mesh_data(
                RefElemData.from_element_type("Tri", 2), [Circle(0.5)], [-1, 0, 1], [-1, 0, 1]
            )
        with self.assertRaises(ValueError):
            cut_mesh_data(self.rd, [Circle(0.5)], [-1, 1, 0], [-1, 0, 1])

    def test_excluded_cells(self):
        rd, md = create_circle_cut_mesh(2, 4, radius=0.8)
        self.assertEqual(md.K, 12)
        self.assertEqual(num_cartesian_elements(md), 0)
        self.assertTrue(np.array_equal(md.mapP[md.mapP], md.mapM))

    def test_summary_and_plots(self):
        with redirect_stdout(io.StringIO()) as f:
            self.md.print_summary()
        summary_output = f.getvalue()
        self.assertIn("Cut Cells:", summary_output)
        self.assertIn("Smallest Cut Volume:", summary_output)

        plot_path = os.path.join(self.output_dir, "cut_mesh.png")
        self.md.plot(plot_path)
        self.assertTrue(os.path.exists(plot_path))

        quadrature_path = os.path.join(self.output_dir, "cut_mesh_quadrature.png")
        plot_quadrature(self.md, quadrature_path)
        self.assertTrue(os.path.exists(quadrature_path))



class TestOffCenterCircle(unittest.TestCase):
    """
    A circle away from the grid symmetry lines, whose cut cells include a thin
    cell bounded by a strongly curved arc.
    """

    @classmethod
    def setUpClass(cls):
        cls.radius, cls.center = 0.311, (0.089, 0.010)
        cls.rd, cls.md = create_circle_cut_mesh(3, 7, radius=cls.radius, center=cls.center)

    def test_counts(self):
        md = self.md
        self.assertEqual(num_cut_elements(md), 8)
        self.assertEqual(num_cartesian_elements(md), 40)
        self.assertEqual(md.mesh_type.cut_cell_data.region_flags[3, 3], REGION_INSIDE_OBJECT)

    def test_weights_are_positive(self):
        self.assertTrue(np.all(self.md.wJq.data > 0.0))

    def test_domain_area(self):
        self.assertAlmostEqual(
            self.md.wJq.data.sum(), 4.0 - np.pi * self.radius**2, delta=2e-4
        )

    def test_cut_cell_areas(self):
        """Test every cut cell area against a finely sampled boundary polygon."""
        md = self.md
        for e, curve in enumerate(md.mesh_type.cut_cell_data.cutcells):
            with self.subTest(cell=e):
                expected = polygon_area(curve.sample(400))
                self.assertAlmostEqual(md.wJq.cut[:, e].sum(), expected, delta=5e-5)

    def test_face_maps(self):
        md = self.md
        self.assertTrue(np.array_equal(md.mapP[md.mapP], md.mapM))
        self.assertTrue(np.allclose(md.xf.data[md.mapP], md.xf.data))
        self.assertTrue(np.allclose(md.yf.data[md.mapP], md.yf.data))


if __name__ == "__main__":
    unittest.main()
