#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Configuration settings for the land-cover classification pipeline.

This module centralizes all configuration parameters used across the
pipeline stages, making it easier to modify settings in one place. A YAML
file can override any section through :func:`load_config`.
"""
from typing import Dict, List, Tuple, Any, Optional, Union
import copy
from pathlib import Path

import yaml
from sklearn.tree import DecisionTreeClassifier

from raster_landcover.core.exceptions import ConfigurationError

# General configuration
CLASSIFIED_NODATA: int = 0   # Code written for unclassified cells
RASTER_PATTERN: str = "*.tif"

# Path configuration
DEFAULT_OUTPUT_DIR: Path = Path.cwd() / "output"

# Landsat 8/9 OLI surface reflectance bands 2-7, in file order
DEFAULT_BAND_NAMES: List[str] = [
    "blue", "green", "red", "nir", "swir1", "swir2"
]

# Collection 2 Level-2 surface reflectance scaling
REFLECTANCE_CONFIG: Dict[str, Any] = {
    "valid_min": 7273,       # Inclusive lower bound of valid digital numbers
    "valid_max": 43636,      # Inclusive upper bound of valid digital numbers
    "scale_factor": 0.0000275,
    "offset": -0.2,
    "percent": 100.0,        # Output in percent reflectance
}

# Training sites
TRAINING_CONFIG: Dict[str, Any] = {
    "label_column": "class",
    "id_column": "site_id",
    "all_touched": False,    # False: a cell is sampled when its centre is inside
}

# Decision tree stopping rules
TREE_CONFIG: Dict[str, Any] = {
    "criterion": "gini",
    "max_depth": 30,
    "min_samples_split": 20,
    "min_samples_leaf": 7,
    "min_impurity_decrease": 0.0,
    "random_state": 0,
}

# Per-pixel classification
CLASSIFY_CONFIG: Dict[str, Any] = {
    "chunk_size": 65536,     # Pixels per prediction chunk
    "n_jobs": 1,             # Parallel chunks (-1 = all cores)
}

# Label colours for the thematic map
LABEL_COLORS: Dict[str, str] = {
    "green vegetation": "#1a9641",
    "soil/dead grass": "#d8b365",
    "urban": "#d7191c",
    "water": "#2b83ba",
}

# Map rendering
RENDER_CONFIG: Dict[str, Any] = {
    "figsize": (10, 8),
    "dpi": 300,
    "title": "Land Cover Classification",
    "grid_lines": 4,          # Approximate number of grid lines per axis
    "scale_bar_fraction": 0.2,  # Target scale bar length as fraction of width
}

# Export configuration
EXPORT_CONFIG: Dict[str, Any] = {
    "compress": "lzw",
    "write_label_table": True,
}

# Logging configuration
LOGGING_CONFIG: Dict[str, Any] = {
    "level": "INFO",  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    "log_to_file": False,
    "log_file": DEFAULT_OUTPUT_DIR / "classification.log",
    "log_format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
}

CONFIG_SECTIONS: Dict[str, Any] = {
    "band_names": DEFAULT_BAND_NAMES,
    "reflectance": REFLECTANCE_CONFIG,
    "training": TRAINING_CONFIG,
    "tree": TREE_CONFIG,
    "classify": CLASSIFY_CONFIG,
    "label_colors": LABEL_COLORS,
    "render": RENDER_CONFIG,
    "export": EXPORT_CONFIG,
    "logging": LOGGING_CONFIG,
}


def default_config() -> Dict[str, Any]:
    """Return a deep copy of the built-in configuration sections."""
    return copy.deepcopy(CONFIG_SECTIONS)


def load_config(path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """
    Load configuration, merging a YAML file over the defaults.

    Parameters
    ----------
    path : str or Path, optional
        YAML file whose top-level keys name configuration sections.
        If None, the defaults are returned.

    Returns
    -------
    dict
        Configuration sections keyed by name.

    Raises
    ------
    ConfigurationError
        If the file cannot be read, contains unknown sections or unknown
        decision tree parameters.
    """
    config = default_config()
    if path is None:
        return config

    try:
        with open(path, "r") as f:
            overrides = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Cannot read configuration file {path}: {e}") from e

    if not isinstance(overrides, dict):
        raise ConfigurationError(f"Configuration file {path} must contain a mapping")

    for section, value in overrides.items():
        if section not in config:
            raise ConfigurationError(f"Unknown configuration section: {section}",
                                     config_key=section)
        if isinstance(config[section], dict):
            if not isinstance(value, dict):
                raise ConfigurationError(f"Section '{section}' must be a mapping",
                                         config_key=section)
            config[section].update(value)
        else:
            config[section] = value

    validate_tree_params(config["tree"])
    return config


def validate_tree_params(params: Dict[str, Any]) -> None:
    """
    Reject decision tree parameters that scikit-learn does not accept.

    Raises
    ------
    ConfigurationError
        If ``params`` holds a key unknown to ``DecisionTreeClassifier``.
    """
    unknown = sorted(set(params) - set(DecisionTreeClassifier().get_params()))
    if unknown:
        raise ConfigurationError(f"Unknown decision tree parameters: {unknown}",
                                 config_key="tree")


def valid_range(config: Optional[Dict[str, Any]] = None) -> Tuple[float, float]:
    """Return the inclusive (lower, upper) valid digital-number range."""
    reflectance = (config or CONFIG_SECTIONS)["reflectance"]
    return reflectance["valid_min"], reflectance["valid_max"]
