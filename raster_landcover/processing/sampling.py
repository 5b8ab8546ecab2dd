#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Training sample extraction from labelled polygons.

Training sites are rasterized onto the stack grid; every covered cell yields
one sample row holding the site identifier and the value of every band. The
label attribute is then joined back by identifier.
"""
from typing import Optional

import numpy as np
import pandas as pd
import geopandas as gpd
from rasterio.features import rasterize
from rasterio.transform import xy

from raster_landcover.core.config import TRAINING_CONFIG
from raster_landcover.core.exceptions import JoinError
from raster_landcover.core.io import reproject_vector
from raster_landcover.core.logging_config import get_module_logger
from raster_landcover.core.types import RasterStack
from raster_landcover.utils.utils import timer

# Initialize logger
logger = get_module_logger(__name__)


@timer
def extract_training_samples(
    stack: RasterStack,
    sites: gpd.GeoDataFrame,
    id_column: Optional[str] = None,
    all_touched: Optional[bool] = None
) -> pd.DataFrame:
    """
    Extract band values for every cell covered by a training site.

    Parameters
    ----------
    stack : RasterStack
        Stack to sample, usually the normalized one.
    sites : gpd.GeoDataFrame
        Training polygons with an identifier column; reprojected to the
        stack CRS when needed.
    id_column : str, optional
        Identifier column, by default ``TRAINING_CONFIG['id_column']``.
    all_touched : bool, optional
        Sample every cell the polygon touches instead of cells whose
        centre falls inside, by default ``TRAINING_CONFIG['all_touched']``.

    Returns
    -------
    pd.DataFrame
        One row per covered cell with the identifier, ``row``, ``col``,
        cell-centre ``x``/``y`` and one column per band. Missing band
        values are NaN. Where sites overlap the later site owns the cell.
    """
    id_column = id_column or TRAINING_CONFIG["id_column"]
    if all_touched is None:
        all_touched = TRAINING_CONFIG["all_touched"]

    if id_column not in sites.columns:
        raise JoinError(f"Identifier column '{id_column}' not found in training sites")

    sites = reproject_vector(sites, stack.crs, name="training sites")

    # Burn positional indices so any identifier dtype works
    positions = np.arange(1, len(sites) + 1, dtype="int32")
    shapes = [(geom, int(pos)) for geom, pos in zip(sites.geometry, positions)
              if geom is not None and not geom.is_empty]
    columns = [id_column, "row", "col", "x", "y", *stack.band_names]
    if not shapes:
        logger.warning("No training-site geometries to sample")
        return pd.DataFrame(columns=columns)

    burned = rasterize(
        shapes,
        out_shape=stack.shape,
        transform=stack.transform,
        fill=0,
        all_touched=all_touched,
        dtype="int32",
    )

    rows, cols = np.nonzero(burned)
    if rows.size == 0:
        logger.warning("Training sites do not cover any raster cell")
        return pd.DataFrame(columns=columns)

    site_ids = sites[id_column].to_numpy()[burned[rows, cols] - 1]
    xs, ys = xy(stack.transform, rows, cols, offset="center")

    samples = pd.DataFrame({
        id_column: site_ids,
        "row": rows,
        "col": cols,
        "x": np.asarray(xs, dtype="float64"),
        "y": np.asarray(ys, dtype="float64"),
    })
    for name, band in zip(stack.band_names, stack.data):
        samples[name] = band[rows, cols]

    samples = samples.sort_values([id_column, "row", "col"], kind="mergesort").reset_index(drop=True)

    n_sites = samples[id_column].nunique()
    incomplete = int(samples[list(stack.band_names)].isna().any(axis=1).sum())
    logger.info(f"Extracted {len(samples)} samples from {n_sites} of {len(sites)} training sites "
                f"({incomplete} with missing band values)")
    return samples


def join_site_labels(
    samples: pd.DataFrame,
    attributes: pd.DataFrame,
    label_column: Optional[str] = None,
    id_column: Optional[str] = None
) -> pd.DataFrame:
    """
    Attach the training-site label to each sample by identifier.

    Parameters
    ----------
    samples : pd.DataFrame
        Output of :func:`extract_training_samples`.
    attributes : pd.DataFrame
        Attribute table with the identifier and label columns (a
        GeoDataFrame of the sites works too).

    Returns
    -------
    pd.DataFrame
        Samples with the label column appended, in the input order.

    Raises
    ------
    JoinError
        If a sample identifier has no attribute row or a null label.
    """
    label_column = label_column or TRAINING_CONFIG["label_column"]
    id_column = id_column or TRAINING_CONFIG["id_column"]

    for column in (id_column, label_column):
        if column not in attributes.columns:
            raise JoinError(f"Column '{column}' not found in training-site attributes")

    table = pd.DataFrame(attributes[[id_column, label_column]])
    if table[id_column].duplicated().any():
        raise JoinError("Training-site attribute table has duplicate identifiers",
                        missing_ids=table.loc[table[id_column].duplicated(), id_column].tolist())

    if samples.empty:
        return samples.assign(**{label_column: pd.Series(dtype=table[label_column].dtype)})

    extracted_ids = pd.unique(samples[id_column])
    missing = sorted(set(extracted_ids) - set(table[id_column]))
    if missing:
        raise JoinError(
            f"{len(missing)} extracted site identifiers have no attribute row: {missing[:10]}",
            missing_ids=missing,
        )

    samples = samples.drop(columns=[label_column], errors="ignore")
    joined = samples.merge(table, on=id_column, how="left", validate="many_to_one", sort=False)

    unlabeled = joined[label_column].isna()
    if unlabeled.any():
        ids = sorted(pd.unique(joined.loc[unlabeled, id_column]))
        raise JoinError(f"Training sites {ids[:10]} have no label", missing_ids=ids)

    logger.info(f"Joined labels: {joined[label_column].value_counts().to_dict()}")
    return joined


def build_training_samples(
    stack: RasterStack,
    sites: gpd.GeoDataFrame,
    label_column: Optional[str] = None,
    id_column: Optional[str] = None
) -> pd.DataFrame:
    """Extract samples for ``sites`` and join their labels."""
    samples = extract_training_samples(stack, sites, id_column=id_column)
    return join_site_labels(samples, sites, label_column=label_column, id_column=id_column)
