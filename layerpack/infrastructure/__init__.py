"""layerpack Infrastructure Layer.

This layer provides services used by the builder and the CLI:
- Logger: Structured logging system
- ConfigManager: Hierarchical tool settings
- Build configuration loading into typed layer specifications
"""

from .logger import Logger, LogLevel, get_logger, set_global_logger
from .config_manager import ConfigError
from .config_manager import ConfigManager as Config
from .config_manager import ConfigSource, ConfigValue, get_config_manager, set_global_config
from .build_config import extract_platforms, load_build_config, parse_build_config

__all__ = [
    # Logger exports
    "Logger",
    "LogLevel",
    "get_logger",
    "set_global_logger",
    # ConfigManager exports
    "ConfigSource",
    "ConfigValue",
    "ConfigError",
    "Config",
    "get_config_manager",
    "set_global_config",
    # Build configuration exports
    "extract_platforms",
    "load_build_config",
    "parse_build_config",
]
