#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Thematic map rendering for classified rasters.

This module draws a classified raster with one colour per label, a legend,
a scale bar, a north arrow and a labelled coordinate grid.
"""
import os
import math
from typing import Any, Dict, Optional, Tuple

import numpy as np
import matplotlib.pyplot as plt
import matplotlib.colors as mcolors
from matplotlib.patches import Patch
from matplotlib.ticker import MaxNLocator
from mpl_toolkits.axes_grid1.anchored_artists import AnchoredSizeBar

from raster_landcover.core.config import RENDER_CONFIG
from raster_landcover.core.logging_config import get_module_logger
from raster_landcover.core.types import ClassifiedRaster
from raster_landcover.utils.utils import resolve_label_colors

# Initialize logger
logger = get_module_logger(__name__)


def nice_scale_length(span: float, fraction: float = 0.2) -> float:
    """
    Round ``span * fraction`` down to 1, 2 or 5 times a power of ten.

    Parameters
    ----------
    span : float
        Map width in CRS units.
    fraction : float, optional
        Target fraction of the width, by default 0.2.
    """
    target = span * fraction
    if target <= 0:
        raise ValueError("Map span must be positive")
    magnitude = 10 ** math.floor(math.log10(target))
    for step in (5, 2, 1):
        if step * magnitude <= target:
            return step * magnitude
    return magnitude


def _scale_label(length: float, crs: Any) -> str:
    if crs is not None and getattr(crs, "is_geographic", False):
        return f"{length:g}°"
    unit = "m"
    if crs is not None and hasattr(crs, "linear_units"):
        unit = {"metre": "m", "meter": "m", "foot": "ft", "US survey foot": "ft"}.get(
            crs.linear_units, crs.linear_units or "m"
        )
    if unit == "m" and length >= 1000:
        return f"{length / 1000:g} km"
    return f"{length:g} {unit}"


def add_north_arrow(ax: plt.Axes, xy: Tuple[float, float] = (0.94, 0.92),
                    length: float = 0.08) -> None:
    """Draw a north arrow in axes-fraction coordinates."""
    x, y = xy
    ax.annotate(
        "N",
        xy=(x, y),
        xytext=(x, y - length),
        xycoords="axes fraction",
        textcoords="axes fraction",
        ha="center",
        va="center",
        fontsize=12,
        fontweight="bold",
        arrowprops=dict(facecolor="black", width=4, headwidth=12),
    )


def render_classified_map(
    classified: ClassifiedRaster,
    output_path: Optional[str] = None,
    colors: Optional[Dict[Any, str]] = None,
    title: Optional[str] = None,
    figsize: Optional[Tuple[float, float]] = None,
    dpi: Optional[int] = None,
    show_plot: bool = False
) -> plt.Figure:
    """
    Render a classified raster as a thematic map.

    Parameters
    ----------
    classified : ClassifiedRaster
        Raster to draw; no-data cells are transparent.
    output_path : str, optional
        Path to save the figure, by default None.
    colors : dict, optional
        Label to colour overrides, by default ``LABEL_COLORS``.
    title : str, optional
        Map title, by default ``RENDER_CONFIG['title']``.
    figsize : tuple, optional
        Figure size, by default ``RENDER_CONFIG['figsize']``.
    dpi : int, optional
        Resolution of the saved image, by default ``RENDER_CONFIG['dpi']``.
    show_plot : bool, optional
        Whether to show the plot, by default False.

    Returns
    -------
    plt.Figure
        Matplotlib figure.
    """
    title = title or RENDER_CONFIG["title"]
    figsize = figsize or RENDER_CONFIG["figsize"]
    dpi = dpi or RENDER_CONFIG["dpi"]

    label_colors = resolve_label_colors(classified.labels, colors)
    cmap = mcolors.ListedColormap([label_colors[label] for label in classified.labels])
    norm = mcolors.BoundaryNorm(np.arange(0.5, len(classified.labels) + 1.5), cmap.N)

    masked = np.ma.masked_equal(classified.codes, classified.nodata)
    left, bottom, right, top = classified.bounds

    fig, ax = plt.subplots(figsize=figsize)
    ax.imshow(masked, cmap=cmap, norm=norm, extent=(left, right, bottom, top),
              interpolation="nearest")
    ax.set_title(title)

    # Coordinate grid
    n_lines = RENDER_CONFIG.get("grid_lines", 4)
    ax.xaxis.set_major_locator(MaxNLocator(n_lines))
    ax.yaxis.set_major_locator(MaxNLocator(n_lines))
    ax.grid(True, linestyle="--", linewidth=0.5, color="grey", alpha=0.7)
    ax.ticklabel_format(useOffset=False, style="plain")
    crs_name = classified.crs.to_string() if classified.crs else "unknown CRS"
    ax.set_xlabel(f"Easting ({crs_name})")
    ax.set_ylabel(f"Northing ({crs_name})")

    # Legend
    handles = [Patch(facecolor=label_colors[label], edgecolor="black", label=str(label))
               for label in classified.labels]
    ax.legend(handles=handles, loc="lower left", title="Land cover", framealpha=0.9)

    # Scale bar
    length = nice_scale_length(right - left, RENDER_CONFIG.get("scale_bar_fraction", 0.2))
    scalebar = AnchoredSizeBar(ax.transData, length, _scale_label(length, classified.crs),
                               loc="lower right", pad=0.5, frameon=True,
                               size_vertical=(top - bottom) * 0.01)
    ax.add_artist(scalebar)

    add_north_arrow(ax)

    plt.tight_layout()

    if output_path:
        os.makedirs(os.path.dirname(os.path.abspath(output_path)), exist_ok=True)
        fig.savefig(output_path, dpi=dpi, bbox_inches="tight")
        logger.info(f"Saved map to {output_path}")

    if show_plot:
        plt.show()
    else:
        plt.close(fig)

    return fig
