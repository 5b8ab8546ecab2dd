#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Main entry point for the land-cover classification pipeline.

This script classifies a scene from its band files, a boundary and labelled
training polygons, or renders a map from a previously classified raster.
"""
import sys
import argparse
from pathlib import Path
from typing import Any, Dict, List, Optional

from raster_landcover import __version__
from raster_landcover.core.config import DEFAULT_OUTPUT_DIR, RASTER_PATTERN, load_config
from raster_landcover.core.exceptions import LandcoverError
from raster_landcover.core.logging_config import setup_logging, get_module_logger

# Initialize logger
logger = get_module_logger(__name__)


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command line arguments.

    Returns
    -------
    argparse.Namespace
        Parsed command line arguments.
    """
    parser = argparse.ArgumentParser(
        description="Supervised land-cover classification of satellite band rasters."
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"Raster Land-Cover Classification v{__version__}"
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")
    subparsers.required = True

    # Classify command
    classify_parser = subparsers.add_parser("classify", help="Train a decision tree and classify a scene")

    classify_parser.add_argument(
        "--bands", "-b",
        required=True,
        help="Directory containing one single-band raster per band"
    )
    classify_parser.add_argument(
        "--boundary",
        required=True,
        help="Vector file with the area of interest"
    )
    classify_parser.add_argument(
        "--training", "-t",
        required=True,
        help="Vector file with labelled training polygons"
    )
    classify_parser.add_argument(
        "--label-column",
        help="Name of the label attribute in the training file (default from config)"
    )
    classify_parser.add_argument(
        "--pattern",
        default=RASTER_PATTERN,
        help=f"Glob pattern selecting band files (default: {RASTER_PATTERN})"
    )
    classify_parser.add_argument(
        "--output", "-o",
        help="Output GeoTIFF (default: output/landcover.tif)"
    )
    classify_parser.add_argument(
        "--map", "-m",
        help="Render the thematic map to this image file"
    )
    classify_parser.add_argument(
        "--stack-output",
        help="Also write the cropped reflectance stack to this GeoTIFF"
    )
    classify_parser.add_argument(
        "--config", "-c",
        help="Path to YAML configuration file"
    )
    classify_parser.add_argument(
        "--save-metadata",
        action="store_true",
        help="Save run metadata next to the output raster"
    )
    classify_parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default from config: INFO)"
    )
    classify_parser.add_argument(
        "--log-file",
        help="Also write log messages to this file"
    )

    # Render command
    render_parser = subparsers.add_parser("render", help="Render a map from a classified raster")
    render_parser.add_argument(
        "--classified", "-i",
        required=True,
        help="Classified GeoTIFF written by the classify command"
    )
    render_parser.add_argument(
        "--output", "-o",
        required=True,
        help="Output image file"
    )
    render_parser.add_argument(
        "--title",
        help="Map title"
    )
    render_parser.add_argument(
        "--config", "-c",
        help="Path to YAML configuration file"
    )
    render_parser.add_argument(
        "--dpi",
        type=int,
        help="Resolution of output image"
    )
    render_parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default from config: INFO)"
    )

    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main function to run the classification pipeline.
    """
    args = parse_arguments(argv)

    try:
        config = load_config(args.config)
        setup_logging(log_level=args.log_level, log_file=getattr(args, "log_file", None),
                      config=config["logging"])

        if args.command == "classify":
            return classify_scene(args, config)
        if args.command == "render":
            return render_map(args, config)
    except LandcoverError as e:
        logger.error(str(e))
        return 1

    logger.error(f"Unknown command: {args.command}")
    return 1


def classify_scene(args: argparse.Namespace, config: Dict[str, Any]) -> int:
    """
    Run the full pipeline for the ``classify`` command.

    Returns
    -------
    int
        Exit code.
    """
    from raster_landcover.pipeline import run_pipeline

    if args.label_column:
        config["training"]["label_column"] = args.label_column

    output_path = Path(args.output) if args.output else DEFAULT_OUTPUT_DIR / "landcover.tif"
    metadata_path = output_path.with_suffix(".json") if args.save_metadata else None

    logger.info(f"Starting classification of {args.bands}")
    result = run_pipeline(
        bands_dir=args.bands,
        boundary_path=args.boundary,
        training_path=args.training,
        output_path=output_path,
        map_path=args.map,
        config=config,
        metadata_path=metadata_path,
        pattern=args.pattern,
        stack_path=args.stack_output,
    )

    logger.info(f"Training accuracy: {result.accuracy['accuracy']:.3f}")
    logger.info(f"Classified raster written to {result.output_path}")
    return 0


def render_map(args: argparse.Namespace, config: Dict[str, Any]) -> int:
    """
    Render a thematic map for the ``render`` command.

    Returns
    -------
    int
        Exit code.
    """
    from raster_landcover.core.io import read_classified_raster
    from raster_landcover.utils.visualization import render_classified_map

    classified = read_classified_raster(args.classified)
    render_classified_map(
        classified,
        output_path=args.output,
        colors=config["label_colors"],
        title=args.title,
        dpi=args.dpi,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
