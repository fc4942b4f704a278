#!/usr/bin/env python3
"""
Configuration access for the web application.

The API shares the service-wide config.yaml; this module only caches it.
"""

import os
from pathlib import Path
from functools import lru_cache

from core.config_loader import AppConfig, CONFIG_PATH_ENV, load_config


@lru_cache()
def get_config() -> AppConfig:
    """
    Get application configuration with caching.

    Loads the file named by MATCHING_CONFIG (set from `main.py --config`),
    or config.yaml at the project root, and applies environment variable
    overrides. Result is cached for performance.
    """
    return load_config(os.environ.get(CONFIG_PATH_ENV) or str(get_project_root() / 'config.yaml'))


def get_project_root() -> Path:
    """Get the project root directory."""
    return Path(__file__).parent.parent.parent
