#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
End-to-end land-cover classification.

Runs the stages in order, passing the raster CRS explicitly from the loaded
stack to every vector step:

    load bands -> load boundary -> crop/mask -> normalize reflectance
    -> sample training sites -> fit tree -> classify -> write/render
"""
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union

import pandas as pd
import geopandas as gpd

from raster_landcover.classification.classify import classify_raster, class_area_summary
from raster_landcover.classification.tree import (
    DecisionTreeModel, fit_decision_tree, training_accuracy
)
from raster_landcover.core.config import RASTER_PATTERN, load_config, valid_range
from raster_landcover.core.io import (
    load_band_stack, load_boundary, load_training_sites,
    write_classified_raster, write_raster_stack, save_run_metadata
)
from raster_landcover.core.logging_config import get_module_logger
from raster_landcover.core.types import RasterStack, ClassifiedRaster
from raster_landcover.processing.crop import crop_to_boundary
from raster_landcover.processing.reflectance import normalize_reflectance
from raster_landcover.processing.sampling import build_training_samples
from raster_landcover.utils.visualization import render_classified_map

# Initialize logger
logger = get_module_logger(__name__)

PathLike = Union[str, Path]


@dataclass
class PipelineResult:
    """Artifacts produced by :func:`run_pipeline`."""
    stack: RasterStack
    boundary: gpd.GeoDataFrame
    samples: pd.DataFrame
    model: DecisionTreeModel
    classified: ClassifiedRaster
    accuracy: Dict[str, Any]
    output_path: Optional[str] = None
    map_path: Optional[str] = None


def run_pipeline(
    bands_dir: PathLike,
    boundary_path: PathLike,
    training_path: PathLike,
    output_path: Optional[PathLike] = None,
    map_path: Optional[PathLike] = None,
    config: Optional[Dict[str, Any]] = None,
    metadata_path: Optional[PathLike] = None,
    pattern: str = RASTER_PATTERN,
    stack_path: Optional[PathLike] = None
) -> PipelineResult:
    """
    Classify a scene from band files, a boundary and training polygons.

    Parameters
    ----------
    bands_dir : str or Path
        Directory of single-band rasters, one per band, ordered by name.
    boundary_path : str or Path
        Vector file with the area of interest.
    training_path : str or Path
        Vector file with labelled training polygons.
    output_path : str or Path, optional
        GeoTIFF to write the classified raster to.
    map_path : str or Path, optional
        Image file to render the thematic map to.
    config : dict, optional
        Configuration sections as returned by :func:`load_config`.
    metadata_path : str or Path, optional
        JSON file to write run metadata to.
    pattern : str, optional
        Glob pattern selecting the band files.
    stack_path : str or Path, optional
        GeoTIFF to write the cropped, normalized stack to.

    Returns
    -------
    PipelineResult
        All intermediate and final artifacts.
    """
    config = config or load_config()
    reflectance = config["reflectance"]
    training = config["training"]
    start_time = time.time()

    raw = load_band_stack(bands_dir, band_names=config["band_names"], pattern=pattern)
    raster_crs = raw.crs

    boundary = load_boundary(boundary_path, raster_crs)
    cropped = crop_to_boundary(raw, boundary)
    del raw

    lower, upper = valid_range(config)
    stack = normalize_reflectance(
        cropped,
        lower=lower,
        upper=upper,
        scale_factor=reflectance["scale_factor"],
        offset=reflectance["offset"],
        percent=reflectance["percent"],
    )
    if stack_path:
        write_raster_stack(stack, stack_path)

    sites = load_training_sites(training_path, training["label_column"], training["id_column"])
    samples = build_training_samples(stack, sites, training["label_column"], training["id_column"])

    model = fit_decision_tree(
        samples,
        band_names=stack.band_names,
        label_column=training["label_column"],
        id_column=training["id_column"],
        **config["tree"]
    )
    accuracy = training_accuracy(model, samples, training["label_column"])

    classified = classify_raster(model, stack,
                                 chunk_size=config["classify"]["chunk_size"],
                                 n_jobs=config["classify"]["n_jobs"])

    result = PipelineResult(stack=stack, boundary=boundary, samples=samples, model=model,
                            classified=classified, accuracy=accuracy)

    if output_path:
        result.output_path = write_classified_raster(classified, output_path,
                                                     colors=config["label_colors"])

    if map_path:
        render_classified_map(classified, output_path=str(map_path),
                              colors=config["label_colors"])
        result.map_path = str(map_path)

    if metadata_path:
        areas = class_area_summary(classified)
        save_run_metadata(
            metadata_path,
            inputs={"bands_dir": bands_dir, "boundary": boundary_path,
                    "training": training_path},
            raster_info=stack.describe(),
            config={k: v for k, v in config.items() if k != "logging"},
            samples={"total": len(samples),
                     "per_label": samples[training["label_column"]].value_counts().to_dict()},
            model=model.summary(),
            training_accuracy=accuracy["accuracy"],
            confusion_matrix=accuracy["confusion_matrix"].to_dict(orient="index"),
            class_areas=areas.to_dict(orient="records"),
        )

    logger.info(f"Classification completed in {time.time() - start_time:.2f} seconds")
    return result
