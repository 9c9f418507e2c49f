"""Configuration module.

This module provides configuration management using environment variables
and optional YAML files. See models.py for the complete list of environment
variables.
"""

from selfiegram.config.loader import load_config, load_config_from_dict
from selfiegram.config.models import (
    AppConfig,
    GallerySettings,
    LoggingSettings,
    OverlaySettings,
    StoreSettings,
)
from selfiegram.config.validators import (
    ConfigValidator,
    ValidationResult,
    validate_config_command,
)

__all__ = [
    "AppConfig",
    "ConfigValidator",
    "GallerySettings",
    "LoggingSettings",
    "OverlaySettings",
    "StoreSettings",
    "ValidationResult",
    "load_config",
    "load_config_from_dict",
    "validate_config_command",
]
