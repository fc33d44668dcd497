from heat_geodesics import calibrate_distances, FactorizationError, heat_method_geodesic, HeatMethodConfig, Manifold, points_to_source_vertices, SingularFieldError, sources_to_initial_conditions, TopologyError
from heat_geodesics.utils import create_icosahedron, create_icosphere, create_rectangular_mesh, create_toroidal_mesh
from potpourri3d import MeshHeatMethodDistanceSolver
from torch import acos, cat, clamp, float64, stack, tensor, zeros
from torch.testing import assert_close
from unittest import main, TestCase


class TestInitialConditions(TestCase):
    def test_single_column(self):
        u_0 = sources_to_initial_conditions(5, [1, 3, 1])
        assert_close(u_0, tensor([0., 2., 0., 1., 0.], dtype=float64))

    def test_separate_columns(self):
        u_0s = sources_to_initial_conditions(4, [2, 0], values=[1., 0.5], separate=True)
        expected = tensor([[0., 0.5], [0., 0.], [1., 0.], [0., 0.]], dtype=float64)
        assert_close(u_0s, expected)

    def test_invalid_sources(self):
        with self.assertRaises(ValueError):
            sources_to_initial_conditions(4, [])

        with self.assertRaises(ValueError):
            sources_to_initial_conditions(4, [4])

        with self.assertRaises(ValueError):
            sources_to_initial_conditions(4, [-1])


class TestSourcePoints(TestCase):
    def test_nearest_vertices(self):
        fs, _ = create_icosahedron()
        points = [1.1 * fs[3], (0.9 * fs[7]).tolist(), (1., 1.7, 0.1)]
        self.assertEqual(points_to_source_vertices(fs, points), [3, 7, 1])

    def test_invalid_point(self):
        fs, _ = create_icosahedron()
        with self.assertRaises(ValueError):
            points_to_source_vertices(fs, [(1., 2.)])


class TestCalibration(TestCase):
    def test_calibrate_to_min(self):
        dists = tensor([[3., 1.], [2., 5.], [4., 2.]], dtype=float64)
        expected = tensor([[1., 0.], [0., 4.], [2., 1.]], dtype=float64)
        assert_close(calibrate_distances(dists), expected)

    def test_calibrate_to_sources(self):
        dists = tensor([1.5, 2., 3.5], dtype=float64)
        assert_close(calibrate_distances(dists, [0, 2]), tensor([-1., -0.5, 1.], dtype=float64))


class TestHeatMethod(TestCase):
    def test_sphere(self):
        """Checks heat method distances against great circle distances on a unit sphere"""
        fs, faces = create_icosphere(4)
        u_0 = sources_to_initial_conditions(len(fs), [0])
        dists = calibrate_distances(heat_method_geodesic(fs, faces, u_0), [0])
        true_dists = acos(clamp(fs @ fs[0], -1., 1.))

        self.assertEqual(dists.argmin().item(), 0)

        # Compare up to the best additive constant, away from source and antipode
        is_compared = (true_dists > 0.5) & (true_dists < 2.5)
        errors = (dists - true_dists)[is_compared]
        self.assertLess((errors - errors.mean()).abs().mean().item(), 0.05)

        # Far vertices are farther than near vertices
        self.assertLess(dists[true_dists < 1.].max().item(), dists[true_dists > 2.].min().item())

    def test_potpourri3d(self):
        """Checks heat method distances against potpourri3d heat method distances"""
        fs, faces = create_icosphere(3)
        u_0 = sources_to_initial_conditions(len(fs), [17])
        dists = calibrate_distances(heat_method_geodesic(fs, faces, u_0), [17])

        solver = MeshHeatMethodDistanceSolver(fs.numpy(), faces.numpy(), t_coef=1., use_robust=False)
        dists_comp = tensor(solver.compute_distance(17), dtype=float64)
        dists_comp = dists_comp - dists_comp[17]

        assert_close(dists, dists_comp, rtol=0., atol=1e-2 * dists_comp.max().item())

    def test_icosahedron(self):
        """Checks that distances on an icosahedron grow ring by ring away from the source"""
        fs, faces = create_icosahedron()
        u_0 = sources_to_initial_conditions(len(fs), [0])
        dists = calibrate_distances(heat_method_geodesic(fs, faces, u_0))

        ring_1 = dists[[1, 5, 7, 10, 11]]
        ring_2 = dists[[2, 4, 6, 8, 9]]

        # Rings are equidistant by symmetry
        assert_close(ring_1, ring_1[0].expand(5))
        assert_close(ring_2, ring_2[0].expand(5))

        self.assertAlmostEqual(dists[0].item(), 0.)
        self.assertLess(dists[0].item(), ring_1.min().item())
        self.assertLess(ring_1.max().item(), ring_2.min().item())
        self.assertLess(ring_2.max().item(), dists[3].item())

    def test_multiple_sources(self):
        """Checks that antipodal sources on an icosahedron give a centrally symmetric field"""
        fs, faces = create_icosahedron()
        u_0 = sources_to_initial_conditions(len(fs), [0, 3])

        # Heat is constant across the ten faces between the two rings
        with self.assertRaises(SingularFieldError) as cm:
            heat_method_geodesic(fs, faces, u_0)
        self.assertEqual(len(cm.exception.idxs), 10)

        config = HeatMethodConfig(zero_vector_policy='zero')
        with self.assertLogs('heat_geodesics.manifold', level='WARNING'):
            dists = calibrate_distances(heat_method_geodesic(fs, faces, u_0, config=config))

        assert_close(dists[0], dists[3])
        self.assertAlmostEqual(dists[0].item(), 0.)

        rings = dists[[1, 5, 7, 10, 11, 2, 4, 6, 8, 9]]
        assert_close(rings, rings[0].expand(10))
        self.assertGreater(rings.min().item(), dists[0].item())

    def test_scale_invariance(self):
        """Checks that shrinking a mesh to micron scale shrinks its distances by the same factor"""
        fs, faces = create_icosphere(3)
        u_0 = sources_to_initial_conditions(len(fs), [0])

        dists = heat_method_geodesic(fs, faces, u_0)
        small_dists = heat_method_geodesic(1e-6 * fs, faces, u_0)
        assert_close(small_dists, 1e-6 * dists, rtol=1e-6, atol=1e-14)

    def test_torus(self):
        fs, faces = create_toroidal_mesh(16, 32, 3., 1.)
        u_0 = sources_to_initial_conditions(len(fs), [40])
        dists = heat_method_geodesic(fs, faces, u_0, m=2.)

        self.assertEqual(dists.argmin().item(), 40)
        self.assertFalse(dists.isnan().any())

    def test_batch(self):
        """Checks that separate sources in one query match one query per source"""
        fs, faces = create_icosphere(2)
        u_0s = sources_to_initial_conditions(len(fs), [0, 9, 30], separate=True)

        manifold = Manifold(faces)
        solver = manifold.embedding_to_heat_method_solver(fs)
        dists = solver(u_0s)

        self.assertEqual(dists.shape, (len(fs), 3))
        assert_close(dists, stack([solver(u_0) for u_0 in u_0s.T], dim=-1))

    def test_repeatable(self):
        fs, faces = create_icosphere(2)
        u_0 = sources_to_initial_conditions(len(fs), [5])

        dists = heat_method_geodesic(fs, faces, u_0)
        assert_close(dists, heat_method_geodesic(fs, faces, u_0), rtol=0., atol=0.)

    def test_boundary(self):
        fs, faces = create_rectangular_mesh(5, 5)
        u_0 = sources_to_initial_conditions(len(fs), [12])

        with self.assertRaises(TopologyError):
            heat_method_geodesic(fs, faces, u_0)

    def test_disconnected(self):
        """Checks that a mesh of two disjoint icosahedra is rejected before the Poisson solve"""
        fs, faces = create_icosahedron()
        fs = cat([fs, fs + tensor([3., 0., 0.], dtype=float64)])
        faces = cat([faces, faces + 12])
        u_0 = sources_to_initial_conditions(len(fs), [0])

        with self.assertRaises(FactorizationError):
            heat_method_geodesic(fs, faces, u_0)

    def test_zero_initial_conditions(self):
        """Checks that a vanishing heat gradient raises unless zero vectors are allowed"""
        fs, faces = create_icosahedron()
        u_0 = zeros(len(fs), dtype=float64)

        with self.assertRaises(SingularFieldError):
            heat_method_geodesic(fs, faces, u_0)

        config = HeatMethodConfig(zero_vector_policy='zero')
        with self.assertLogs('heat_geodesics.manifold', level='WARNING'):
            dists = heat_method_geodesic(fs, faces, u_0, config=config)
        assert_close(dists, zeros(len(fs), dtype=float64))

    def test_invalid_arguments(self):
        fs, faces = create_icosahedron()
        u_0 = sources_to_initial_conditions(len(fs), [0])

        for m in [0., -1., float('inf')]:
            with self.assertRaises(ValueError):
                heat_method_geodesic(fs, faces, u_0, m=m)

        with self.assertRaises(ValueError):
            heat_method_geodesic(fs, faces, u_0[:-1])

        with self.assertRaises(ValueError):
            heat_method_geodesic(fs[:, :2], faces, u_0)

    def test_pinned_vertex(self):
        """Checks that the pinned vertex only changes the additive constant"""
        fs, faces = create_icosphere(2)
        u_0 = sources_to_initial_conditions(len(fs), [3])

        dists = calibrate_distances(heat_method_geodesic(fs, faces, u_0))
        dists_pinned = calibrate_distances(heat_method_geodesic(fs, faces, u_0, config=HeatMethodConfig(pinned_vertex=100)))
        assert_close(dists, dists_pinned)


if __name__ == '__main__':
    main()
