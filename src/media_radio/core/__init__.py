"""Core infrastructure layer - no business logic dependencies.

This module provides foundation-level services:
- Configuration management (TOML)
- Logging setup (Loguru)
"""

from .config import (
    AcquisitionConfig,
    Config,
    LoggingConfig,
    PathsConfig,
    PlaybackConfig,
    SoundEventConfig,
    create_default_config,
    ensure_directories,
    get_config_dir,
    get_config_path,
    get_data_dir,
    load_config,
)
from .output import setup_loguru

__all__ = [
    "AcquisitionConfig",
    "Config",
    "LoggingConfig",
    "PathsConfig",
    "PlaybackConfig",
    "SoundEventConfig",
    "create_default_config",
    "ensure_directories",
    "get_config_dir",
    "get_config_path",
    "get_data_dir",
    "load_config",
    "setup_loguru",
]
