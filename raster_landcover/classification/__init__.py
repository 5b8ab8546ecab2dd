#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Decision-tree training and per-pixel classification.
"""
