#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Tests for digital number reclassification and reflectance rescaling.
"""
import unittest

import numpy as np

from raster_landcover.core.exceptions import ConfigurationError, ReflectanceError
from raster_landcover.core.types import RasterStack
from raster_landcover.processing.reflectance import (
    reclassify_valid_range, rescale_to_reflectance, normalize_reflectance
)

import synthetic


class TestReclassify(unittest.TestCase):
    """Test the valid-range reclassification."""

    def test_bounds_are_inclusive(self):
        values = np.array([7272, 7273, 20000, 43636, 43637], dtype="float64")
        out = reclassify_valid_range(values)
        self.assertTrue(np.isnan(out[0]))
        self.assertEqual(out[1], 7273)
        self.assertEqual(out[2], 20000)
        self.assertEqual(out[3], 43636)
        self.assertTrue(np.isnan(out[4]))

    def test_nan_stays_nan(self):
        out = reclassify_valid_range(np.array([np.nan, 10000.0]))
        self.assertTrue(np.isnan(out[0]))
        self.assertEqual(out[1], 10000)

    def test_input_not_modified(self):
        values = np.array([0.0, 10000.0])
        reclassify_valid_range(values)
        self.assertEqual(values[0], 0.0)

    def test_invalid_range(self):
        with self.assertRaises(ConfigurationError):
            reclassify_valid_range(np.zeros(3), lower=10, upper=5)


class TestRescale(unittest.TestCase):
    """Test the scale-and-offset transform."""

    def test_formula_is_exact(self):
        values = np.array([7273, 7274, 12345, 30000, 43636], dtype="float64")
        out = rescale_to_reflectance(values)
        for v, r in zip(values, out):
            self.assertEqual(r, (v * 0.0000275 - 0.2) * 100)

    def test_range_maps_near_zero_to_one_hundred(self):
        out = rescale_to_reflectance(np.array([7273.0, 43636.0]))
        self.assertAlmostEqual(out[0], 0.0, places=2)
        self.assertAlmostEqual(out[1], 100.0, places=2)

    def test_nan_passes_through(self):
        self.assertTrue(np.isnan(rescale_to_reflectance(np.array([np.nan]))[0]))


class TestNormalizeReflectance(unittest.TestCase):
    """Test normalizing a whole stack."""

    def setUp(self):
        data = np.array([
            [[7272, 7273], [43636, 43637]],
            [[10000, np.nan], [20000, 30000]],
        ], dtype="float64")
        self.stack = RasterStack(data=data, transform=synthetic.TRANSFORM,
                                 crs=synthetic.CRS, band_names=("red", "nir"))

    def test_normalize_stack(self):
        out = normalize_reflectance(self.stack)

        self.assertTrue(out.normalized)
        self.assertFalse(self.stack.normalized)
        self.assertEqual(out.band_names, ("red", "nir"))
        red = out.data[0]
        self.assertTrue(np.isnan(red[0, 0]))
        self.assertEqual(red[0, 1], (7273 * 0.0000275 - 0.2) * 100)
        self.assertEqual(red[1, 0], (43636 * 0.0000275 - 0.2) * 100)
        self.assertTrue(np.isnan(red[1, 1]))
        self.assertTrue(np.isnan(out.data[1, 0, 1]))
        self.assertEqual(out.data[1, 1, 1], (30000 * 0.0000275 - 0.2) * 100)

    def test_only_cell_valid_in_every_band_survives(self):
        out = normalize_reflectance(self.stack)
        np.testing.assert_array_equal(out.valid_mask, [[False, False], [True, False]])

    def test_config_overrides(self):
        out = normalize_reflectance(self.stack, lower=0, upper=50000,
                                    scale_factor=1.0, offset=0.0, percent=1.0)
        np.testing.assert_array_equal(out.data[0], self.stack.data[0])

    def test_double_application_is_guarded(self):
        out = normalize_reflectance(self.stack)
        with self.assertRaises(ReflectanceError):
            normalize_reflectance(out)

    def test_forced_double_application_drops_every_cell(self):
        out = normalize_reflectance(self.stack)
        twice = normalize_reflectance(out, force=True)
        self.assertFalse(twice.valid_mask.any())
        self.assertTrue(np.all(np.isnan(twice.data)))


if __name__ == '__main__':
    unittest.main()
