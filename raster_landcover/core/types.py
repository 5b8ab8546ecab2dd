#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Data types passed between pipeline stages.

A :class:`RasterStack` is a co-registered multi-band grid with no-data stored
as NaN. A :class:`ClassifiedRaster` is the categorical single-band result.
Stages return new instances and never modify their inputs.
"""
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Tuple, Any

import numpy as np
from affine import Affine
from rasterio.coords import BoundingBox
from rasterio.crs import CRS
from rasterio.transform import array_bounds

from raster_landcover.core.config import CLASSIFIED_NODATA
from raster_landcover.core.exceptions import SpatialAlignmentError


@dataclass(frozen=True, eq=False)
class RasterStack:
    """
    Multi-band raster held in memory.

    Attributes
    ----------
    data : np.ndarray
        Float array of shape (bands, rows, cols); NaN marks no-data.
    transform : Affine
        Affine transform of the upper-left corner.
    crs : CRS
        Coordinate reference system shared by every band.
    band_names : tuple of str
        Band names in band order.
    normalized : bool
        True once digital numbers have been converted to reflectance.
    """
    data: np.ndarray
    transform: Affine
    crs: Optional[CRS]
    band_names: Tuple[str, ...]
    normalized: bool = False

    def __post_init__(self):
        if self.data.ndim != 3:
            raise SpatialAlignmentError(
                f"Raster stack data must be 3D (bands, rows, cols), got shape {self.data.shape}"
            )
        if len(self.band_names) != self.data.shape[0]:
            raise SpatialAlignmentError(
                f"{len(self.band_names)} band names given for {self.data.shape[0]} bands"
            )
        object.__setattr__(self, "band_names", tuple(self.band_names))
        if self.crs is not None and not isinstance(self.crs, CRS):
            object.__setattr__(self, "crs", CRS.from_user_input(self.crs))

    @property
    def count(self) -> int:
        return self.data.shape[0]

    @property
    def height(self) -> int:
        return self.data.shape[1]

    @property
    def width(self) -> int:
        return self.data.shape[2]

    @property
    def shape(self) -> Tuple[int, int]:
        return self.data.shape[1], self.data.shape[2]

    @property
    def res(self) -> Tuple[float, float]:
        return abs(self.transform.a), abs(self.transform.e)

    @property
    def bounds(self) -> BoundingBox:
        return BoundingBox(*array_bounds(self.height, self.width, self.transform))

    @property
    def valid_mask(self) -> np.ndarray:
        """Boolean (rows, cols) mask of cells where every band holds a value."""
        return np.all(np.isfinite(self.data), axis=0)

    def with_data(self, data: np.ndarray, transform: Optional[Affine] = None,
                  **changes) -> "RasterStack":
        """Return a new stack with replaced data and optionally a new transform."""
        return replace(
            self,
            data=data,
            transform=transform if transform is not None else self.transform,
            **changes
        )

    def describe(self) -> Dict[str, Any]:
        """Summary used in logs and run metadata."""
        valid = self.valid_mask
        return {
            "bands": list(self.band_names),
            "height": self.height,
            "width": self.width,
            "crs": self.crs.to_string() if self.crs else None,
            "res": list(self.res),
            "bounds": self.bounds._asdict(),
            "valid_cells": int(valid.sum()),
            "total_cells": int(valid.size),
            "normalized": self.normalized,
        }


@dataclass(frozen=True, eq=False)
class ClassifiedRaster:
    """
    Single-band categorical raster.

    Attributes
    ----------
    codes : np.ndarray
        uint8 array (rows, cols); 0 is no-data and ``code`` maps to
        ``labels[code - 1]``.
    labels : tuple
        Label set in code order.
    transform : Affine
        Affine transform shared with the classified stack.
    crs : CRS
        Coordinate reference system shared with the classified stack.
    """
    codes: np.ndarray
    labels: Tuple[Any, ...]
    transform: Affine
    crs: Optional[CRS]
    nodata: int = field(default=CLASSIFIED_NODATA)

    def __post_init__(self):
        object.__setattr__(self, "labels", tuple(self.labels))
        if self.crs is not None and not isinstance(self.crs, CRS):
            object.__setattr__(self, "crs", CRS.from_user_input(self.crs))

    @property
    def shape(self) -> Tuple[int, int]:
        return self.codes.shape

    @property
    def bounds(self) -> BoundingBox:
        return BoundingBox(*array_bounds(self.codes.shape[0], self.codes.shape[1], self.transform))

    @property
    def code_map(self) -> Dict[Any, int]:
        """Label to code mapping."""
        return {label: i + 1 for i, label in enumerate(self.labels)}

    def label_array(self) -> np.ndarray:
        """Return an object array of labels with None for no-data cells."""
        lookup = np.array([None] + list(self.labels), dtype=object)
        return lookup[self.codes]

    def label_counts(self) -> Dict[Any, int]:
        counts = np.bincount(self.codes.ravel(), minlength=len(self.labels) + 1)
        return {label: int(counts[i + 1]) for i, label in enumerate(self.labels)}

    def label_table(self) -> List[Dict[str, Any]]:
        return [{"code": i + 1, "label": label} for i, label in enumerate(self.labels)]
