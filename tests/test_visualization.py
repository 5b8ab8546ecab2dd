#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Tests for map rendering and colour handling.
"""
import os
import tempfile
import unittest

import matplotlib
matplotlib.use("Agg")

import numpy as np

from raster_landcover.core.types import ClassifiedRaster
from raster_landcover.utils.utils import resolve_label_colors, rgba_to_bytes, chunk_slices
from raster_landcover.utils.visualization import nice_scale_length, render_classified_map

import synthetic


class TestScaleLength(unittest.TestCase):
    """Test nice_scale_length."""

    def test_rounds_to_one_two_five(self):
        self.assertEqual(nice_scale_length(120.0), 20)
        self.assertEqual(nice_scale_length(3000.0), 500)
        self.assertEqual(nice_scale_length(14000.0), 2000)
        self.assertEqual(nice_scale_length(1000.0, fraction=0.1), 100)

    def test_non_positive_span(self):
        with self.assertRaises(ValueError):
            nice_scale_length(0.0)


class TestColors(unittest.TestCase):
    """Test label colour resolution."""

    def test_configured_colors_match_case_insensitively(self):
        colors = resolve_label_colors(["Water", "mystery"], {"water": "#0000ff"})
        self.assertEqual(rgba_to_bytes(colors["Water"]), (0, 0, 255, 255))
        self.assertEqual(len(colors["mystery"]), 4)

    def test_fallback_colors_differ(self):
        colors = resolve_label_colors(["a", "b", "c"], {})
        self.assertEqual(len({tuple(c) for c in colors.values()}), 3)

    def test_chunk_slices_cover_range(self):
        slices = list(chunk_slices(10, 4))
        self.assertEqual([(s.start, s.stop) for s in slices], [(0, 4), (4, 8), (8, 10)])
        self.assertEqual(list(chunk_slices(0, 4)), [])


class TestRenderClassifiedMap(unittest.TestCase):
    """Test render_classified_map."""

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        codes = np.array([[2, 2, 0], [1, 1, 0]], dtype="uint8")
        self.classified = ClassifiedRaster(codes=codes, labels=("vegetation", "water"),
                                           transform=synthetic.TRANSFORM, crs=synthetic.CRS)

    def tearDown(self):
        self.tmp.cleanup()

    def test_render_saves_image(self):
        path = os.path.join(self.tmp.name, "maps", "landcover.png")
        fig = render_classified_map(self.classified, output_path=path, title="Test", dpi=50)

        self.assertTrue(os.path.exists(path))
        self.assertGreater(os.path.getsize(path), 0)
        ax = fig.axes[0]
        self.assertEqual(ax.get_title(), "Test")
        legend_labels = [t.get_text() for t in ax.get_legend().get_texts()]
        self.assertEqual(legend_labels, ["vegetation", "water"])

    def test_render_without_output(self):
        fig = render_classified_map(self.classified, colors={"water": "blue"})
        self.assertEqual(len(fig.axes), 1)


if __name__ == '__main__':
    unittest.main()
