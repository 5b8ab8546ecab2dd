#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Raster Land-Cover Classification Package.

Supervised land-cover classification of multispectral satellite scenes:
band stacking, boundary cropping, reflectance scaling, training-site sampling,
decision-tree fitting, per-pixel classification and thematic map rendering.
"""

__version__ = "0.1.0"
__author__ = "Elena Project Team"
__email__ = "user@example.com"
