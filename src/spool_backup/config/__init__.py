"""Configuration system for spool-backup.

This module provides TOML-based configuration loading, validation,
and schema definitions for the backup targets.
"""

from .loader import ConfigError, find_config_file, load_config, parse_config
from .schema import (
    Config,
    GlobalConfig,
    MountConfig,
    RetentionConfig,
    TargetConfig,
)

__all__ = [
    "GlobalConfig",
    "MountConfig",
    "RetentionConfig",
    "TargetConfig",
    "Config",
    "load_config",
    "parse_config",
    "find_config_file",
    "ConfigError",
]
