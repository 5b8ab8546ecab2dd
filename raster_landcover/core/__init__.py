#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Core functionality for raster land-cover classification.

This module contains the core components for raster and vector data handling,
configuration management, error types and logging setup.
"""
