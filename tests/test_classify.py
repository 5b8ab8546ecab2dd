#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Tests for per-pixel classification.
"""
import unittest

import numpy as np
import pandas as pd

from raster_landcover.classification.classify import MAX_CLASSES, classify_raster, class_area_summary
from raster_landcover.classification.tree import fit_decision_tree
from raster_landcover.core.exceptions import ConfigurationError, ModelFitError, SpatialAlignmentError
from raster_landcover.core.types import RasterStack

import synthetic


def training_frame() -> pd.DataFrame:
    rows = []
    for i in range(10):
        rows.append({"site_id": 1, "row": i, "col": 0, "red": 5.0 + 0.1 * i, "nir": 2.0, "class": "water"})
        rows.append({"site_id": 2, "row": i, "col": 1, "red": 4.0, "nir": 40.0 + 0.1 * i, "class": "vegetation"})
    return pd.DataFrame(rows)


class TestClassifyRaster(unittest.TestCase):
    """Test classify_raster."""

    def setUp(self):
        self.model = fit_decision_tree(training_frame(), **synthetic.small_tree_params())
        red = np.array([[5.0, 4.0, np.nan], [5.5, 4.2, 5.0]])
        nir = np.array([[2.0, 41.0, 2.0], [2.5, 39.0, np.nan]])
        self.stack = RasterStack(data=np.stack([red, nir]), transform=synthetic.TRANSFORM,
                                 crs=synthetic.CRS, band_names=("red", "nir"), normalized=True)

    def test_labels_and_nodata(self):
        classified = classify_raster(self.model, self.stack)

        self.assertEqual(classified.labels, ("vegetation", "water"))
        expected = np.array([[2, 1, 0], [2, 1, 0]], dtype="uint8")
        np.testing.assert_array_equal(classified.codes, expected)
        self.assertEqual(classified.label_array()[0, 1], "vegetation")
        self.assertIsNone(classified.label_array()[1, 2])
        self.assertEqual(classified.transform, self.stack.transform)
        self.assertEqual(classified.crs, self.stack.crs)

    def test_matches_tree_walk(self):
        classified = classify_raster(self.model, self.stack)
        labels = classified.label_array()
        for r in range(2):
            for c in range(3):
                values = self.stack.data[:, r, c]
                if np.all(np.isfinite(values)):
                    self.assertEqual(labels[r, c], self.model.predict_one(values))

    def test_repeated_runs_are_identical(self):
        first = classify_raster(self.model, self.stack)
        second = classify_raster(self.model, self.stack)
        self.assertEqual(first.codes.tobytes(), second.codes.tobytes())

    def test_chunked_and_parallel_match(self):
        whole = classify_raster(self.model, self.stack)
        chunked = classify_raster(self.model, self.stack, chunk_size=1)
        parallel = classify_raster(self.model, self.stack, chunk_size=2, n_jobs=2)
        np.testing.assert_array_equal(whole.codes, chunked.codes)
        np.testing.assert_array_equal(whole.codes, parallel.codes)

    def test_all_nodata(self):
        stack = self.stack.with_data(np.full_like(self.stack.data, np.nan))
        classified = classify_raster(self.model, stack)
        self.assertFalse(classified.codes.any())

    def test_band_mismatch(self):
        stack = RasterStack(data=self.stack.data[::-1].copy(), transform=synthetic.TRANSFORM,
                            crs=synthetic.CRS, band_names=("nir", "red"))
        with self.assertRaises(SpatialAlignmentError):
            classify_raster(self.model, stack)

    def test_too_many_labels(self):
        n = MAX_CLASSES + 1
        samples = pd.DataFrame({
            "site_id": np.arange(n), "row": 0, "col": 0,
            "red": np.arange(n, dtype="float64"), "nir": 1.0,
            "class": [f"class_{i:03d}" for i in range(n)],
        })
        model = fit_decision_tree(samples, **synthetic.small_tree_params())
        with self.assertRaises(ModelFitError):
            classify_raster(model, self.stack)

    def test_negative_chunk_size(self):
        with self.assertRaises(ConfigurationError):
            classify_raster(self.model, self.stack, chunk_size=-1)

    def test_class_area_summary(self):
        classified = classify_raster(self.model, self.stack)
        summary = class_area_summary(classified).set_index("label")

        self.assertEqual(summary.loc["water", "pixels"], 2)
        self.assertEqual(summary.loc["vegetation", "pixels"], 2)
        self.assertEqual(summary.loc["water", "area"], 2 * 900.0)
        self.assertAlmostEqual(summary["percent"].sum(), 100.0)


if __name__ == '__main__':
    unittest.main()
