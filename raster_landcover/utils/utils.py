#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Utility functions for the land-cover classification pipeline.

This module provides common helpers used across the pipeline stages,
including timing, chunked iteration and label colour handling.
"""
import time
import functools
from typing import Callable, Dict, Iterator, Optional, Sequence, Tuple, Any

import matplotlib.colors as mcolors
import matplotlib.pyplot as plt

from raster_landcover.core.config import LABEL_COLORS
from raster_landcover.core.logging_config import get_module_logger

# Initialize logger
logger = get_module_logger(__name__)


def timer(func: Callable) -> Callable:
    """
    Decorator to time function execution.

    Parameters
    ----------
    func : Callable
        Function to time.

    Returns
    -------
    Callable
        Wrapped function with timing.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        start_time = time.time()
        result = func(*args, **kwargs)
        elapsed = time.time() - start_time
        logger.debug(f"Function {func.__name__} took {elapsed:.2f} seconds to run")
        return result
    return wrapper


def chunk_slices(n_items: int, chunk_size: int) -> Iterator[slice]:
    """
    Yield consecutive slices covering ``range(n_items)``.

    Parameters
    ----------
    n_items : int
        Total number of items.
    chunk_size : int
        Maximum number of items per slice, must be positive.
    """
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")
    for start in range(0, n_items, chunk_size):
        yield slice(start, min(start + chunk_size, n_items))


def _normalize_label_key(label: Any) -> str:
    return str(label).strip().lower()


def resolve_label_colors(
    labels: Sequence[Any],
    colors: Optional[Dict[Any, str]] = None,
    fallback_cmap: str = "tab10"
) -> Dict[Any, Tuple[float, float, float, float]]:
    """
    Assign an RGBA colour to each label.

    Labels are matched case-insensitively against ``colors`` (by default
    ``LABEL_COLORS``); unmatched labels take successive colours from
    ``fallback_cmap``.

    Returns
    -------
    dict
        Label to RGBA tuple with components in [0, 1].
    """
    palette = {_normalize_label_key(k): v for k, v in (colors or LABEL_COLORS).items()}
    cmap = plt.get_cmap(fallback_cmap)

    resolved = {}
    fallback_index = 0
    for label in labels:
        key = _normalize_label_key(label)
        if key in palette:
            resolved[label] = mcolors.to_rgba(palette[key])
        else:
            resolved[label] = cmap(fallback_index % cmap.N)
            fallback_index += 1
            logger.debug(f"No colour configured for label '{label}', using {fallback_cmap}")
    return resolved


def rgba_to_bytes(rgba: Tuple[float, float, float, float]) -> Tuple[int, int, int, int]:
    """Convert an RGBA tuple in [0, 1] to 0-255 integers."""
    return tuple(int(round(c * 255)) for c in rgba)
