#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Logging configuration for the land-cover classification pipeline.

This module provides centralized configuration for the logging system
used throughout the application.
"""
import logging
import os
from typing import Any, Dict, Optional
from raster_landcover.core.config import LOGGING_CONFIG
from raster_landcover.core.exceptions import ConfigurationError

ROOT_LOGGER_NAME = "raster_landcover"


def setup_logging(log_level: Optional[str] = None,
                  log_file: Optional[str] = None,
                  module_name: str = ROOT_LOGGER_NAME,
                  config: Optional[Dict[str, Any]] = None) -> logging.Logger:
    """
    Configure and return a logger with the specified settings.

    Parameters
    ----------
    log_level : str, optional
        Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        If None, uses the configured level.
    log_file : str, optional
        Path to log file. If given, a file handler is added even when
        file logging is disabled in the configuration.
    module_name : str, optional
        Name of the logger, by default the package root logger.
    config : dict, optional
        Logging section of a loaded configuration, by default
        ``LOGGING_CONFIG``. Explicit arguments take precedence.

    Returns
    -------
    logging.Logger
        Configured logger instance.
    """
    logger = logging.getLogger(module_name)

    # Get configuration
    settings = LOGGING_CONFIG if config is None else config
    level = log_level or settings.get("level", "INFO")
    log_to_file = settings.get("log_to_file", False) or log_file is not None
    log_file_path = log_file or settings.get("log_file")
    log_format = settings.get("log_format",
                              "%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    # Set logging level
    numeric_level = getattr(logging, str(level).upper(), None)
    if not isinstance(numeric_level, int):
        raise ConfigurationError(f"Invalid log level: {level}", config_key="logging")
    logger.setLevel(numeric_level)

    # If logger is already configured, only the level changes
    if logger.handlers:
        return logger

    formatter = logging.Formatter(log_format)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_to_file and log_file_path:
        log_dir = os.path.dirname(str(log_file_path))
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)

        file_handler = logging.FileHandler(log_file_path)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.debug(f"Logging initialized at level: {level}")
    return logger


def get_module_logger(module_name: str) -> logging.Logger:
    """
    Get a logger for a specific module.

    Parameters
    ----------
    module_name : str
        Name of the module, typically __name__.

    Returns
    -------
    logging.Logger
        Logger nested under the package root logger.
    """
    if module_name.startswith(ROOT_LOGGER_NAME):
        return logging.getLogger(module_name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{module_name}")
