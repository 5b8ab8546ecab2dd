#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Crop and mask a raster stack to a boundary polygon.

The stack is written to an in-memory GeoTIFF and clipped with
:func:`rasterio.mask.mask`, so cropping and masking follow the same rules as
clipping a file on disk.
"""
import numpy as np
import geopandas as gpd
from rasterio.io import MemoryFile
from rasterio.mask import mask
from rasterio.errors import WindowError

from raster_landcover.core.exceptions import SpatialAlignmentError
from raster_landcover.core.io import same_crs
from raster_landcover.core.logging_config import get_module_logger
from raster_landcover.core.types import RasterStack
from raster_landcover.utils.utils import timer

# Initialize logger
logger = get_module_logger(__name__)


@timer
def crop_to_boundary(stack: RasterStack, boundary: gpd.GeoDataFrame) -> RasterStack:
    """
    Crop a stack to the boundary extent and mask cells outside its shape.

    Parameters
    ----------
    stack : RasterStack
        Input stack.
    boundary : gpd.GeoDataFrame
        Boundary polygons, already in the stack CRS.

    Returns
    -------
    RasterStack
        New stack covering the boundary bounding box; every cell whose
        centre lies outside the boundary geometry is NaN.

    Raises
    ------
    SpatialAlignmentError
        If the boundary CRS differs from the stack CRS or the boundary does
        not overlap the stack.
    """
    if not same_crs(boundary.crs, stack.crs):
        raise SpatialAlignmentError(
            f"Boundary CRS {boundary.crs} does not match raster CRS {stack.crs}; "
            "reproject the boundary before cropping"
        )

    geoms = [geom for geom in boundary.geometry if geom is not None and not geom.is_empty]
    if not geoms:
        raise SpatialAlignmentError("Boundary contains no geometry to crop with")

    profile = {
        "driver": "GTiff",
        "height": stack.height,
        "width": stack.width,
        "count": stack.count,
        "dtype": "float64",
        "crs": stack.crs,
        "transform": stack.transform,
        "nodata": np.nan,
    }

    logger.info(f"Cropping {stack.shape} stack to boundary with bounds "
                f"{tuple(np.round(boundary.total_bounds, 3))}")

    with MemoryFile() as memfile:
        with memfile.open(**profile) as dataset:
            dataset.write(stack.data.astype("float64"))
        with memfile.open() as dataset:
            try:
                out_img, out_transform = mask(dataset, geoms, crop=True,
                                              filled=True, nodata=np.nan)
            except (ValueError, WindowError) as e:
                raise SpatialAlignmentError(f"Boundary does not overlap the raster: {e}") from e

    cropped = stack.with_data(out_img.astype("float64"), transform=out_transform)
    logger.info(f"Cropped stack to shape {cropped.shape}, "
                f"{int(cropped.valid_mask.sum())} cells inside boundary")
    return cropped
