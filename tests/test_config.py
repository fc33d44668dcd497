from heat_geodesics import HeatMethodConfig
from heat_geodesics.config import bool_env, set_log_level
import logging
import os
from unittest import main, TestCase
from unittest.mock import patch


class TestConfig(TestCase):
    def test_defaults(self):
        config = HeatMethodConfig()

        self.assertEqual(config.diff_coeff, 1.)
        self.assertEqual(config.area_tol, 1e-12)
        self.assertEqual(config.zero_vector_tol, 1e-10)
        self.assertEqual(config.zero_vector_policy, 'raise')
        self.assertEqual(config.pinned_vertex, 0)
        self.assertFalse(config.verbose)

    def test_invalid_values(self):
        for kwargs in [{'diff_coeff': 0.}, {'diff_coeff': float('inf')}, {'zero_vector_policy': 'skip'}, {'area_tol': -1.}, {'residual_tol': 0.}]:
            with self.assertRaises(ValueError):
                HeatMethodConfig(**kwargs)

    def test_from_env(self):
        env = {
            'HEAT_GEODESICS_DIFF_COEFF': '2.5',
            'HEAT_GEODESICS_ZERO_VECTOR_POLICY': ' Zero ',
            'HEAT_GEODESICS_PINNED_VERTEX': '7',
            'HEAT_GEODESICS_VERBOSE': 'yes'
        }
        with patch.dict(os.environ, env):
            config = HeatMethodConfig.from_env()

        self.assertEqual(config.diff_coeff, 2.5)
        self.assertEqual(config.zero_vector_policy, 'zero')
        self.assertEqual(config.pinned_vertex, 7)
        self.assertTrue(config.verbose)
        self.assertEqual(config.residual_tol, HeatMethodConfig().residual_tol)

    def test_from_env_overrides(self):
        """Checks that keyword overrides take precedence over the environment"""
        with patch.dict(os.environ, {'HEAT_GEODESICS_DIFF_COEFF': '2.5'}):
            config = HeatMethodConfig.from_env(diff_coeff=4.)

        self.assertEqual(config.diff_coeff, 4.)

    def test_bool_env(self):
        with patch.dict(os.environ, {'FLAG': 'off'}):
            self.assertFalse(bool_env('FLAG', True))

        with patch.dict(os.environ, {'FLAG': 'maybe'}):
            with self.assertRaises(ValueError):
                bool_env('FLAG', True)

    def test_set_log_level(self):
        logger = logging.getLogger('heat_geodesics')
        level = logger.level

        set_log_level('debug')
        self.assertEqual(logger.level, logging.DEBUG)

        set_log_level('not a level')
        self.assertEqual(logger.level, logging.WARNING)

        logger.setLevel(level)


if __name__ == '__main__':
    main()
