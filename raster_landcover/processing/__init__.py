#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Raster preparation steps: cropping, reflectance normalization and
training-site sampling.
"""
