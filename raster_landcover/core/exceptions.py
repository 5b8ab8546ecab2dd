#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Exception hierarchy for the land-cover classification pipeline.

Every error is fatal for a run: library functions raise and the command
line entry point reports the error and exits with a non-zero status.
"""
from typing import Optional


class LandcoverError(Exception):
    """Base exception for all pipeline errors."""


class ConfigurationError(LandcoverError, ValueError):
    """
    Invalid configuration or settings.

    Parameters
    ----------
    message : str
        Description of the configuration error.
    config_key : str, optional
        The configuration key that caused the error.
    """

    def __init__(self, message: str, config_key: Optional[str] = None):
        self.config_key = config_key
        super().__init__(message)


class RasterIOError(LandcoverError, OSError):
    """
    A raster or vector input is missing, empty or unreadable.

    Parameters
    ----------
    path : str
        Path to the file or directory that failed to load.
    reason : str
        Description of why loading failed.
    """

    def __init__(self, path: str, reason: str):
        self.path = str(path)
        self.reason = reason
        super().__init__(f"Failed to load {path}: {reason}")

    def __str__(self) -> str:
        return f"Failed to load {self.path}: {self.reason}"


class ProjectionError(LandcoverError):
    """A coordinate reference system is undefined or a reprojection failed."""


class SpatialAlignmentError(LandcoverError, ValueError):
    """Rasters or vectors disagree in CRS, extent, resolution or band layout."""


class JoinError(LandcoverError, LookupError):
    """
    Extracted samples reference training sites missing from the attribute table.

    Parameters
    ----------
    missing_ids : list
        Site identifiers that could not be joined.
    """

    def __init__(self, message: str, missing_ids=None):
        self.missing_ids = list(missing_ids or [])
        super().__init__(message)

    def __str__(self) -> str:
        return self.args[0]


class ModelFitError(LandcoverError, ValueError):
    """The decision tree cannot be fitted on, or applied with, the given labels and samples."""


class ReflectanceError(LandcoverError, ValueError):
    """A stack cannot be converted to reflectance, for example because it already was."""
