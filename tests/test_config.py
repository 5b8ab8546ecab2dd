#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Tests for configuration loading and logging setup.
"""
import logging
import os
import tempfile
import unittest

from raster_landcover.core import config
from raster_landcover.core.exceptions import ConfigurationError
from raster_landcover.core.logging_config import setup_logging, get_module_logger


class TestConfig(unittest.TestCase):
    """Test configuration defaults and YAML overrides."""

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()

    def tearDown(self):
        self.tmp.cleanup()

    def write_yaml(self, text):
        path = os.path.join(self.tmp.name, "config.yaml")
        with open(path, "w") as f:
            f.write(text)
        return path

    def test_defaults(self):
        cfg = config.load_config()
        self.assertEqual(config.valid_range(cfg), (7273, 43636))
        self.assertEqual(cfg["reflectance"]["scale_factor"], 0.0000275)
        self.assertEqual(cfg["reflectance"]["offset"], -0.2)
        self.assertEqual(cfg["tree"]["criterion"], "gini")
        self.assertEqual(cfg["band_names"], ["blue", "green", "red", "nir", "swir1", "swir2"])

    def test_defaults_are_copies(self):
        cfg = config.load_config()
        cfg["tree"]["max_depth"] = 1
        self.assertNotEqual(config.TREE_CONFIG["max_depth"], 1)

    def test_yaml_override(self):
        path = self.write_yaml(
            "band_names: [blue, green, red, nir, swir1, swir2]\n"
            "tree:\n"
            "  max_depth: 5\n"
            "reflectance:\n"
            "  valid_min: 1\n"
        )
        cfg = config.load_config(path)
        self.assertEqual(cfg["band_names"], ["blue", "green", "red", "nir", "swir1", "swir2"])
        self.assertEqual(cfg["tree"]["max_depth"], 5)
        self.assertEqual(cfg["tree"]["criterion"], "gini")
        self.assertEqual(config.valid_range(cfg), (1, 43636))

    def test_unknown_tree_parameter(self):
        path = self.write_yaml("tree:\n  max_dept: 5\n")
        with self.assertRaises(ConfigurationError) as ctx:
            config.load_config(path)
        self.assertEqual(ctx.exception.config_key, "tree")

    def test_unknown_section(self):
        path = self.write_yaml("colours:\n  water: blue\n")
        with self.assertRaises(ConfigurationError) as ctx:
            config.load_config(path)
        self.assertEqual(ctx.exception.config_key, "colours")

    def test_section_must_be_mapping(self):
        path = self.write_yaml("tree: 3\n")
        with self.assertRaises(ConfigurationError):
            config.load_config(path)

    def test_missing_file(self):
        with self.assertRaises(ConfigurationError):
            config.load_config(os.path.join(self.tmp.name, "absent.yaml"))


class TestLogging(unittest.TestCase):
    """Test logger setup."""

    def test_module_loggers_share_root(self):
        logger = get_module_logger("some.module")
        self.assertEqual(logger.name, "raster_landcover.some.module")
        self.assertEqual(get_module_logger("raster_landcover.core.io").name,
                         "raster_landcover.core.io")

    def test_setup_logging_level(self):
        logger = setup_logging(log_level="DEBUG")
        self.assertEqual(logger.level, logging.DEBUG)
        logger = setup_logging(log_level="WARNING")
        self.assertEqual(logger.level, logging.WARNING)

    def test_invalid_level(self):
        with self.assertRaises(ConfigurationError):
            setup_logging(log_level="LOUD")

    def test_level_from_logging_section(self):
        logger = setup_logging(config={"level": "ERROR"})
        self.assertEqual(logger.level, logging.ERROR)
        logger = setup_logging(log_level="INFO", config={"level": "ERROR"})
        self.assertEqual(logger.level, logging.INFO)


if __name__ == '__main__':
    unittest.main()
