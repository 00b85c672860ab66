"""Configuration management for cliprelay.

This module provides configuration loading with precedence handling:
1. CLI flags (highest priority)
2. Environment variables (CLIPRELAY_*)
3. Config file (~/.cliprelay/config.toml)
4. Default values (lowest priority)
"""

from cliprelay.config.env import EnvReader
from cliprelay.config.loader import (
    ConfigFileError,
    clear_config_cache,
    get_config,
    get_default_config_path,
    load_config_file,
)
from cliprelay.config.models import (
    CliprelayConfig,
    LoggingConfig,
    ProcessingConfig,
    ServerConfig,
    ToolPathsConfig,
)

__all__ = [
    # Models
    "CliprelayConfig",
    "LoggingConfig",
    "ProcessingConfig",
    "ServerConfig",
    "ToolPathsConfig",
    # Loader
    "ConfigFileError",
    "EnvReader",
    "clear_config_cache",
    "get_config",
    "get_default_config_path",
    "load_config_file",
]
