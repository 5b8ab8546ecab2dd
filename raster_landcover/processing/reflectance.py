#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Digital number to surface reflectance conversion.

Two per-cell transforms applied to every band:

1. cells outside the valid digital-number range become no-data (NaN);
   the range is closed, so both bounds remain valid,
2. valid cells are rescaled with ``(dn * scale_factor + offset) * percent``.

NaN cells pass through both steps unchanged.
"""
from typing import Optional

import numpy as np

from raster_landcover.core.config import REFLECTANCE_CONFIG
from raster_landcover.core.exceptions import ConfigurationError, ReflectanceError
from raster_landcover.core.logging_config import get_module_logger
from raster_landcover.core.types import RasterStack

# Initialize logger
logger = get_module_logger(__name__)


def reclassify_valid_range(
    data: np.ndarray,
    lower: Optional[float] = None,
    upper: Optional[float] = None
) -> np.ndarray:
    """
    Set values outside ``[lower, upper]`` to NaN.

    Parameters
    ----------
    data : np.ndarray
        Input values, any shape.
    lower, upper : float, optional
        Inclusive bounds, by default from ``REFLECTANCE_CONFIG``.

    Returns
    -------
    np.ndarray
        New float64 array.
    """
    lower = REFLECTANCE_CONFIG["valid_min"] if lower is None else lower
    upper = REFLECTANCE_CONFIG["valid_max"] if upper is None else upper
    if lower > upper:
        raise ConfigurationError(f"Invalid range: lower bound {lower} exceeds upper bound {upper}",
                                 config_key="reflectance")

    out = np.array(data, dtype="float64", copy=True)
    with np.errstate(invalid="ignore"):
        outside = (out < lower) | (out > upper)
    out[outside] = np.nan
    return out


def rescale_to_reflectance(
    data: np.ndarray,
    scale_factor: Optional[float] = None,
    offset: Optional[float] = None,
    percent: Optional[float] = None
) -> np.ndarray:
    """
    Convert digital numbers to percent reflectance.

    ``(data * scale_factor + offset) * percent``; NaN stays NaN.
    """
    scale_factor = REFLECTANCE_CONFIG["scale_factor"] if scale_factor is None else scale_factor
    offset = REFLECTANCE_CONFIG["offset"] if offset is None else offset
    percent = REFLECTANCE_CONFIG["percent"] if percent is None else percent

    data = np.asarray(data, dtype="float64")
    return (data * scale_factor + offset) * percent


def normalize_reflectance(
    stack: RasterStack,
    lower: Optional[float] = None,
    upper: Optional[float] = None,
    scale_factor: Optional[float] = None,
    offset: Optional[float] = None,
    percent: Optional[float] = None,
    force: bool = False
) -> RasterStack:
    """
    Reclassify out-of-range cells and rescale a stack to percent reflectance.

    Parameters
    ----------
    stack : RasterStack
        Stack of raw digital numbers.
    lower, upper, scale_factor, offset, percent : float, optional
        Overrides for the values in ``REFLECTANCE_CONFIG``.
    force : bool, optional
        Normalize even if the stack is already flagged as normalized.
        The transform is not idempotent: applied twice, every valid cell
        falls outside the digital-number range and becomes no-data.

    Returns
    -------
    RasterStack
        New stack flagged as normalized.

    Raises
    ------
    ReflectanceError
        If the stack is already normalized and ``force`` is False.
    """
    if stack.normalized and not force:
        raise ReflectanceError("Raster stack is already normalized to reflectance; "
                         "pass force=True to apply the transform again")

    valid_before = stack.valid_mask
    reclassified = reclassify_valid_range(stack.data, lower, upper)
    valid_after = np.all(np.isfinite(reclassified), axis=0)
    dropped = int(valid_before.sum() - valid_after.sum())
    logger.info(f"Reclassified {dropped} cells outside the valid range to no-data")

    for name, before, after in zip(stack.band_names, stack.data, reclassified):
        logger.debug(f"Band {name}: {int(np.isfinite(before).sum() - np.isfinite(after).sum())} "
                     "cells out of range")

    scaled = rescale_to_reflectance(reclassified, scale_factor, offset, percent)
    if np.isfinite(scaled).any():
        logger.info(f"Reflectance range: {np.nanmin(scaled):.3f} to {np.nanmax(scaled):.3f}")
    else:
        logger.warning("No valid cells remain after reflectance normalization")

    return stack.with_data(scaled, normalized=True)
