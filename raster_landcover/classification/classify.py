#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Per-pixel classification of a raster stack with a fitted decision tree.

Cells are flattened in row-major order and classified independently, in
chunks. Any cell with a missing band value is left as no-data (code 0).
"""
from typing import Optional

import numpy as np
import pandas as pd
from joblib import Parallel, delayed
from tqdm import tqdm

from raster_landcover.classification.tree import DecisionTreeModel
from raster_landcover.core.config import CLASSIFY_CONFIG, CLASSIFIED_NODATA
from raster_landcover.core.exceptions import ConfigurationError, ModelFitError, SpatialAlignmentError
from raster_landcover.core.logging_config import get_module_logger
from raster_landcover.core.types import RasterStack, ClassifiedRaster
from raster_landcover.utils.utils import timer, chunk_slices

# Initialize logger
logger = get_module_logger(__name__)

MAX_CLASSES = np.iinfo(np.uint8).max - 1


@timer
def classify_raster(
    model: DecisionTreeModel,
    stack: RasterStack,
    chunk_size: Optional[int] = None,
    n_jobs: Optional[int] = None
) -> ClassifiedRaster:
    """
    Classify every cell of a stack.

    Parameters
    ----------
    model : DecisionTreeModel
        Fitted model; its band names must equal the stack's.
    stack : RasterStack
        Normalized stack to classify.
    chunk_size : int, optional
        Cells per prediction call, by default ``CLASSIFY_CONFIG['chunk_size']``.
    n_jobs : int, optional
        Parallel chunk workers, by default ``CLASSIFY_CONFIG['n_jobs']``.

    Returns
    -------
    ClassifiedRaster
        Codes ``1..K`` for ``model.labels`` and 0 for no-data, on the
        stack's grid.
    """
    chunk_size = chunk_size or CLASSIFY_CONFIG["chunk_size"]
    n_jobs = n_jobs if n_jobs is not None else CLASSIFY_CONFIG["n_jobs"]
    if chunk_size < 1:
        raise ConfigurationError(f"chunk_size must be positive, got {chunk_size}",
                                 config_key="classify")

    if tuple(stack.band_names) != tuple(model.band_names):
        raise SpatialAlignmentError(
            f"Stack bands {list(stack.band_names)} do not match model bands "
            f"{list(model.band_names)}"
        )
    if len(model.labels) > MAX_CLASSES:
        raise ModelFitError(f"At most {MAX_CLASSES} labels fit in a uint8 raster, "
                         f"model has {len(model.labels)}")
    if not stack.normalized:
        logger.warning("Classifying a stack that has not been normalized to reflectance")

    rows, cols = stack.shape
    pixels = stack.data.reshape(stack.count, -1).T
    valid_idx = np.flatnonzero(np.all(np.isfinite(pixels), axis=1))
    logger.info(f"Classifying {len(valid_idx)} of {rows * cols} cells")

    slices = list(chunk_slices(len(valid_idx), chunk_size))
    if n_jobs == 1:
        predictions = [model.predict(pixels[valid_idx[s]])
                       for s in tqdm(slices, desc="Classifying", disable=len(slices) < 2)]
    else:
        predictions = Parallel(n_jobs=n_jobs)(
            delayed(model.predict)(pixels[valid_idx[s]]) for s in slices
        )

    codes = np.full(rows * cols, CLASSIFIED_NODATA, dtype="uint8")
    if predictions:
        predicted = np.concatenate(predictions)
        # classes_ is sorted, so its position is the label index
        codes[valid_idx] = np.searchsorted(model.estimator.classes_, predicted) + 1

    classified = ClassifiedRaster(
        codes=codes.reshape(rows, cols),
        labels=model.labels,
        transform=stack.transform,
        crs=stack.crs,
        nodata=CLASSIFIED_NODATA,
    )
    logger.info(f"Class counts: {classified.label_counts()}")
    return classified


def class_area_summary(classified: ClassifiedRaster) -> pd.DataFrame:
    """
    Pixel counts and areas per label.

    Returns
    -------
    pd.DataFrame
        Columns ``code``, ``label``, ``pixels``, ``area`` (CRS units
        squared) and ``percent`` of classified cells.
    """
    pixel_area = abs(classified.transform.a * classified.transform.e)
    counts = classified.label_counts()
    total = sum(counts.values())

    records = []
    for label, code in classified.code_map.items():
        n = counts[label]
        records.append({
            "code": code,
            "label": label,
            "pixels": n,
            "area": n * pixel_area,
            "percent": 100.0 * n / total if total else 0.0,
        })
    return pd.DataFrame(records, columns=["code", "label", "pixels", "area", "percent"])
