#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Input/output handling for the land-cover classification pipeline.

This module handles loading the band files into a raster stack, reading
boundary and training-site vectors, reprojecting vectors to the raster CRS
and exporting classified rasters and run metadata.
"""
import os
import json
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union, Any

import numpy as np
import pandas as pd
import geopandas as gpd
import rasterio
from rasterio.errors import RasterioIOError
from pyproj import CRS as ProjCRS
from pyproj.exceptions import CRSError, ProjError

from raster_landcover.core.config import (
    DEFAULT_BAND_NAMES, RASTER_PATTERN, TRAINING_CONFIG, EXPORT_CONFIG
)
from raster_landcover.core.exceptions import (
    RasterIOError, ProjectionError, SpatialAlignmentError, JoinError
)
from raster_landcover.core.logging_config import get_module_logger
from raster_landcover.core.types import RasterStack, ClassifiedRaster
from raster_landcover.utils.utils import resolve_label_colors, rgba_to_bytes

# Initialize logger
logger = get_module_logger(__name__)

PathLike = Union[str, Path]


def resolve_band_names(count: int, band_names: Optional[Sequence[str]] = None) -> List[str]:
    """
    Choose the band names for a stack of ``count`` bands.

    Explicit names must match the band count. Without explicit names the
    configured defaults are used when their length matches, otherwise
    generic ``band_<n>`` names.
    """
    if band_names is not None:
        if len(band_names) != count:
            raise SpatialAlignmentError(
                f"{len(band_names)} band names given for {count} band files"
            )
        return list(band_names)

    if len(DEFAULT_BAND_NAMES) == count:
        return list(DEFAULT_BAND_NAMES)

    logger.warning(f"No band names configured for {count} bands, using generic names")
    return [f"band_{i + 1}" for i in range(count)]


def load_band_stack(
    directory: PathLike,
    band_names: Optional[Sequence[str]] = None,
    pattern: str = RASTER_PATTERN
) -> RasterStack:
    """
    Load single-band raster files from a directory into one stack.

    Parameters
    ----------
    directory : str or Path
        Directory containing one file per band.
    band_names : sequence of str, optional
        Names in file order. See :func:`resolve_band_names`.
    pattern : str, optional
        Glob pattern selecting the band files, by default ``*.tif``.

    Returns
    -------
    RasterStack
        Bands ordered lexicographically by file name, nodata as NaN.

    Raises
    ------
    RasterIOError
        If the directory is missing, holds no matching files, or a file
        cannot be read.
    SpatialAlignmentError
        If a file is not single-band or files differ in shape, transform
        or CRS.
    """
    directory = Path(directory)
    if not directory.is_dir():
        raise RasterIOError(directory, "directory does not exist")

    paths = sorted(p for p in directory.glob(pattern) if p.is_file())
    if not paths:
        raise RasterIOError(directory, f"no files matching '{pattern}'")

    logger.info(f"Loading {len(paths)} band files from {directory}")

    bands = []
    reference = None
    for path in paths:
        try:
            with rasterio.open(path) as src:
                if src.count != 1:
                    raise SpatialAlignmentError(
                        f"{path.name} has {src.count} bands, expected a single-band file"
                    )
                grid = {
                    "path": path,
                    "shape": (src.height, src.width),
                    "transform": src.transform,
                    "crs": src.crs,
                }
                arr = src.read(1, masked=True).astype("float64").filled(np.nan)
        except RasterioIOError as e:
            raise RasterIOError(path, str(e)) from e

        if reference is None:
            reference = grid
        else:
            _check_alignment(reference, grid)

        logger.debug(f"Read {path.name}: shape {arr.shape}, "
                     f"{int(np.isfinite(arr).sum())} valid cells")
        bands.append(arr)

    names = resolve_band_names(len(paths), band_names)
    stack = RasterStack(
        data=np.stack(bands),
        transform=reference["transform"],
        crs=reference["crs"],
        band_names=tuple(names),
    )
    logger.info(f"Stacked {stack.count} bands {list(stack.band_names)} "
                f"with shape {stack.shape}")
    return stack


def _check_alignment(reference: Dict[str, Any], grid: Dict[str, Any]) -> None:
    """Raise SpatialAlignmentError if ``grid`` differs from ``reference``."""
    name, ref_name = grid["path"].name, reference["path"].name
    if grid["shape"] != reference["shape"]:
        raise SpatialAlignmentError(
            f"{name} has shape {grid['shape']}, {ref_name} has {reference['shape']}"
        )
    if not grid["transform"].almost_equals(reference["transform"]):
        raise SpatialAlignmentError(
            f"{name} extent or resolution differs from {ref_name}"
        )
    if grid["crs"] != reference["crs"]:
        raise SpatialAlignmentError(
            f"{name} CRS {grid['crs']} differs from {ref_name} CRS {reference['crs']}"
        )


def as_pyproj_crs(crs: Any) -> ProjCRS:
    """Convert a rasterio or pyproj CRS (or any user input) to a pyproj CRS."""
    if crs is None:
        raise ProjectionError("Coordinate reference system is undefined")
    if isinstance(crs, ProjCRS):
        return crs
    try:
        return ProjCRS.from_user_input(crs)
    except CRSError as e:
        raise ProjectionError(f"Invalid coordinate reference system {crs!r}: {e}") from e


def same_crs(a: Any, b: Any) -> bool:
    """True when both CRS are defined and equivalent."""
    if a is None or b is None:
        return False
    return as_pyproj_crs(a) == as_pyproj_crs(b)


def read_vector(path: PathLike) -> gpd.GeoDataFrame:
    """
    Read a vector file with geopandas.

    Raises
    ------
    RasterIOError
        If the file is missing, unreadable or has no features.
    """
    path = Path(path)
    if not path.exists():
        raise RasterIOError(path, "file does not exist")

    try:
        gdf = gpd.read_file(path)
    except Exception as e:
        raise RasterIOError(path, str(e)) from e

    gdf = gdf[gdf.geometry.notna() & ~gdf.geometry.is_empty]
    if gdf.empty:
        raise RasterIOError(path, "layer contains no features")

    logger.debug(f"Read {len(gdf)} features from {path}")
    return gdf


def reproject_vector(gdf: gpd.GeoDataFrame, target_crs: Any, name: str = "vector") -> gpd.GeoDataFrame:
    """
    Reproject a GeoDataFrame to ``target_crs``.

    Returns a new GeoDataFrame in every case.

    Raises
    ------
    ProjectionError
        If either CRS is undefined, the transformation fails or it yields
        non-finite coordinates.
    """
    if gdf.crs is None:
        raise ProjectionError(f"{name} has no coordinate reference system defined")
    target = as_pyproj_crs(target_crs)

    if gdf.crs == target:
        return gdf.copy()

    logger.info(f"Reprojecting {name} from {gdf.crs.to_string()} to {target.to_string()}")
    try:
        out = gdf.to_crs(target)
    except (CRSError, ProjError, ValueError) as e:
        raise ProjectionError(f"Cannot reproject {name} to {target.to_string()}: {e}") from e

    if not np.all(np.isfinite(out.total_bounds)):
        raise ProjectionError(
            f"Reprojecting {name} to {target.to_string()} produced non-finite coordinates"
        )
    return out


def load_boundary(path: PathLike, target_crs: Any) -> gpd.GeoDataFrame:
    """
    Read a boundary polygon file and reproject it to the raster CRS.

    Parameters
    ----------
    path : str or Path
        Vector file with one or more polygon features.
    target_crs : CRS
        CRS of the raster stack the boundary will be combined with.

    Returns
    -------
    gpd.GeoDataFrame
        Boundary features in ``target_crs``.
    """
    logger.info(f"Loading boundary from {path}")
    boundary = read_vector(path)
    return reproject_vector(boundary, target_crs, name="boundary")


def load_training_sites(
    path: PathLike,
    label_column: Optional[str] = None,
    id_column: Optional[str] = None
) -> gpd.GeoDataFrame:
    """
    Read labelled training polygons.

    A 1-based integer identifier column is added when ``id_column`` is not
    already present in the file.

    Raises
    ------
    JoinError
        If the label column is missing or the identifier column holds
        duplicate values.
    """
    label_column = label_column or TRAINING_CONFIG["label_column"]
    id_column = id_column or TRAINING_CONFIG["id_column"]

    logger.info(f"Loading training sites from {path}")
    sites = read_vector(path)

    if label_column not in sites.columns:
        raise JoinError(
            f"Label column '{label_column}' not found in {path}; "
            f"available columns: {[c for c in sites.columns if c != 'geometry']}"
        )

    if id_column in sites.columns:
        if sites[id_column].duplicated().any():
            dupes = sites.loc[sites[id_column].duplicated(), id_column].tolist()
            raise JoinError(f"Duplicate training-site identifiers in {path}", missing_ids=dupes)
    else:
        sites = sites.copy()
        sites[id_column] = np.arange(1, len(sites) + 1)

    counts = sites[label_column].value_counts().to_dict()
    logger.info(f"Loaded {len(sites)} training sites: {counts}")
    return sites


def write_raster_stack(stack: RasterStack, output_path: PathLike) -> str:
    """Write a stack to a float32 GeoTIFF with NaN nodata and band descriptions."""
    output_path = str(output_path)
    output_dir = os.path.dirname(output_path)
    if output_dir:
        os.makedirs(output_dir, exist_ok=True)

    profile = {
        "driver": "GTiff",
        "height": stack.height,
        "width": stack.width,
        "count": stack.count,
        "dtype": "float32",
        "crs": stack.crs,
        "transform": stack.transform,
        "nodata": np.nan,
        "compress": EXPORT_CONFIG.get("compress"),
    }
    with rasterio.open(output_path, "w", **profile) as dst:
        dst.write(stack.data.astype("float32"))
        for i, name in enumerate(stack.band_names, start=1):
            dst.set_band_description(i, name)

    logger.info(f"Saved {stack.count}-band raster to {output_path}")
    return output_path


def label_table_path(raster_path: PathLike) -> str:
    return f"{raster_path}.labels.csv"


def write_classified_raster(
    classified: ClassifiedRaster,
    output_path: PathLike,
    colors: Optional[Dict[Any, str]] = None
) -> str:
    """
    Write a classified raster to a single-band uint8 GeoTIFF.

    The file carries a colour map and nodata 0; the code to label table is
    written next to it as ``<output_path>.labels.csv``.
    """
    output_path = str(output_path)
    output_dir = os.path.dirname(output_path)
    if output_dir:
        os.makedirs(output_dir, exist_ok=True)

    profile = {
        "driver": "GTiff",
        "height": classified.shape[0],
        "width": classified.shape[1],
        "count": 1,
        "dtype": "uint8",
        "crs": classified.crs,
        "transform": classified.transform,
        "nodata": classified.nodata,
        "compress": EXPORT_CONFIG.get("compress"),
    }
    label_colors = resolve_label_colors(classified.labels, colors)
    colormap = {classified.nodata: (0, 0, 0, 0)}
    for label, code in classified.code_map.items():
        colormap[code] = rgba_to_bytes(label_colors[label])

    with rasterio.open(output_path, "w", **profile) as dst:
        dst.write(classified.codes.astype("uint8"), 1)
        dst.write_colormap(1, colormap)
        dst.update_tags(1, **{f"class_{code}": str(label)
                              for label, code in classified.code_map.items()})

    if EXPORT_CONFIG.get("write_label_table", True):
        pd.DataFrame(classified.label_table()).to_csv(label_table_path(output_path), index=False)

    logger.info(f"Saved classified raster to {output_path}")
    return output_path


def read_classified_raster(path: PathLike) -> ClassifiedRaster:
    """
    Read a raster written by :func:`write_classified_raster`.

    Labels come from the ``.labels.csv`` table when present, else from the
    ``class_<code>`` band tags.
    """
    path = Path(path)
    try:
        with rasterio.open(path) as src:
            codes = src.read(1)
            tags = src.tags(1)
            transform, crs = src.transform, src.crs
            nodata = int(src.nodata) if src.nodata is not None else 0
    except RasterioIOError as e:
        raise RasterIOError(path, str(e)) from e

    table_path = Path(label_table_path(path))
    if table_path.exists():
        table = pd.read_csv(table_path, dtype={"label": str}).sort_values("code")
        labels = tuple(table["label"].tolist())
    else:
        codes_in_tags = sorted(int(k.split("_", 1)[1]) for k in tags if k.startswith("class_"))
        labels = tuple(tags[f"class_{c}"] for c in codes_in_tags)

    if not labels:
        raise RasterIOError(path, "no label table or class tags found")

    return ClassifiedRaster(codes=codes.astype("uint8"), labels=labels,
                            transform=transform, crs=crs, nodata=nodata)


def save_run_metadata(output_path: PathLike, **sections: Any) -> None:
    """
    Save metadata about a classification run as JSON.

    Parameters
    ----------
    output_path : str or Path
        Path to output JSON file.
    **sections
        JSON-serializable sections (raster info, config, sample counts,
        model summary, class areas).
    """
    metadata = {"timestamp": datetime.now().isoformat(), **sections}

    output_dir = os.path.dirname(str(output_path))
    if output_dir:
        os.makedirs(output_dir, exist_ok=True)

    with open(output_path, "w") as f:
        json.dump(metadata, f, indent=2, default=_json_default)

    logger.info(f"Saved metadata to {output_path}")


def _json_default(obj: Any) -> Any:
    if isinstance(obj, np.generic):
        return obj.item()
    if isinstance(obj, np.ndarray):
        return obj.tolist()
    if isinstance(obj, Path):
        return str(obj)
    if isinstance(obj, tuple):
        return list(obj)
    return str(obj)
