#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Tests for training sample extraction and label joins.
"""
import unittest

import numpy as np
import pandas as pd
import geopandas as gpd

from raster_landcover.core.exceptions import JoinError
from raster_landcover.core.types import RasterStack
from raster_landcover.processing.sampling import (
    extract_training_samples, join_site_labels, build_training_samples
)

import synthetic


class TestExtractTrainingSamples(unittest.TestCase):
    """Test extract_training_samples."""

    def setUp(self):
        data = np.stack(synthetic.scene_bands()).astype("float64")
        self.stack = RasterStack(data=data, transform=synthetic.TRANSFORM,
                                 crs=synthetic.CRS, band_names=synthetic.BAND_NAMES)

    def test_one_sample_per_covered_cell(self):
        samples = extract_training_samples(self.stack, synthetic.training_sites())

        self.assertEqual(len(samples), 2)
        self.assertEqual(samples["site_id"].tolist(), [1, 2])
        self.assertEqual(samples[["row", "col"]].values.tolist(), [[1, 1], [2, 2]])
        self.assertEqual(samples.loc[0, synthetic.BAND_NAMES].tolist(), synthetic.WATER_DN)
        self.assertEqual(samples.loc[1, synthetic.BAND_NAMES].tolist(), synthetic.VEGETATION_DN)
        self.assertAlmostEqual(samples.loc[0, "x"], 500045.0)
        self.assertAlmostEqual(samples.loc[0, "y"], 3999955.0)

    def test_polygon_spanning_cells(self):
        sites = gpd.GeoDataFrame({"class": ["water"], "site_id": [7]},
                                 geometry=[synthetic.cells_box(1, 1, 1, 2)], crs=synthetic.CRS)
        samples = extract_training_samples(self.stack, sites)
        self.assertEqual(len(samples), 2)
        self.assertTrue((samples["site_id"] == 7).all())

    def test_sites_in_other_crs_are_reprojected(self):
        sites = synthetic.training_sites().to_crs("EPSG:4326")
        samples = extract_training_samples(self.stack, sites)
        self.assertEqual(samples[["row", "col"]].values.tolist(), [[1, 1], [2, 2]])

    def test_missing_values_are_kept_as_nan(self):
        data = self.stack.data.copy()
        data[3, 1, 1] = np.nan
        samples = extract_training_samples(self.stack.with_data(data), synthetic.training_sites())
        self.assertTrue(np.isnan(samples.loc[0, "nir"]))
        self.assertEqual(len(samples), 2)

    def test_sites_outside_raster(self):
        sites = gpd.GeoDataFrame({"class": ["water"], "site_id": [1]},
                                 geometry=[synthetic.cell_box(20, 20)], crs=synthetic.CRS)
        samples = extract_training_samples(self.stack, sites)
        self.assertTrue(samples.empty)
        self.assertIn("nir", samples.columns)

    def test_missing_identifier_column(self):
        sites = synthetic.training_sites().drop(columns=["site_id"])
        with self.assertRaises(JoinError):
            extract_training_samples(self.stack, sites)


class TestJoinSiteLabels(unittest.TestCase):
    """Test join_site_labels."""

    def setUp(self):
        self.samples = pd.DataFrame({
            "site_id": [1, 1, 2],
            "row": [0, 0, 1],
            "col": [0, 1, 1],
            "nir": [10.0, 11.0, 40.0],
        })

    def test_join(self):
        attributes = pd.DataFrame({"site_id": [2, 1], "class": ["vegetation", "water"]})
        joined = join_site_labels(self.samples, attributes)
        self.assertEqual(joined["class"].tolist(), ["water", "water", "vegetation"])
        self.assertEqual(joined["nir"].tolist(), [10.0, 11.0, 40.0])

    def test_unmatched_identifier(self):
        attributes = pd.DataFrame({"site_id": [1], "class": ["water"]})
        with self.assertRaises(JoinError) as ctx:
            join_site_labels(self.samples, attributes)
        self.assertEqual(ctx.exception.missing_ids, [2])

    def test_null_label(self):
        attributes = pd.DataFrame({"site_id": [1, 2], "class": ["water", None]})
        with self.assertRaises(JoinError):
            join_site_labels(self.samples, attributes)

    def test_duplicate_identifiers(self):
        attributes = pd.DataFrame({"site_id": [1, 1, 2], "class": ["water", "urban", "soil"]})
        with self.assertRaises(JoinError):
            join_site_labels(self.samples, attributes)

    def test_build_training_samples(self):
        data = np.stack(synthetic.scene_bands()).astype("float64")
        stack = RasterStack(data=data, transform=synthetic.TRANSFORM,
                            crs=synthetic.CRS, band_names=synthetic.BAND_NAMES)
        samples = build_training_samples(stack, synthetic.training_sites())
        self.assertEqual(samples["class"].tolist(), ["water", "vegetation"])


if __name__ == '__main__':
    unittest.main()
