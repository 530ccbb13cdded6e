"""
Sentinel - Core Package
=======================

Configuration and logging. The database layer lives in
sentinel.core.database and is imported from there.
"""

from .config import Config, ConfigValidationError, EmbedColors, get_config
from .logger import logger

__all__ = [
    "Config",
    "ConfigValidationError",
    "EmbedColors",
    "get_config",
    "logger",
]
