#!/usr/bin/env python3
"""Tool settings for layerpack.

Settings are kept apart from the build configuration: they control how the
tool runs (log level, log file) and the owner/group applied when a layer
declares none. Each source is stored as its own nested dictionary and
lookups walk the sources from highest to lowest precedence:

    RUNTIME > CLI_ARGS > ENVIRONMENT > USER_CONFIG > COMPILED_DEFAULTS

Environment variables map onto the ``layerpack`` section by splitting on
underscores, so ``LAYERPACK_DEFAULTS_USER=1000`` sets
``layerpack.defaults.user``.

Example:
    >>> settings = ConfigManager("layerpack.yaml")
    >>> settings.log_level
    'INFO'
    >>> settings.default_owner
    ('0', '0')
"""

import copy
import os
import re
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterator, Mapping, Optional, Tuple

import yaml

from layerpack.core.constants import Defaults, ErrorCode

ENV_PREFIX = "LAYERPACK_"

LOG_LEVEL_KEY = "layerpack.logging.level"
LOG_FILE_KEY = "layerpack.logging.file"
DEFAULT_USER_KEY = "layerpack.defaults.user"
DEFAULT_GROUP_KEY = "layerpack.defaults.group"


# Plain decimal integers; anything else YAML resolves as an int (0644, 0x1f)
_DECIMAL_INT = re.compile(r"[-+]?(?:0|[1-9][0-9_]*)\Z")


class ScalarTextLoader(yaml.SafeLoader):
    """SafeLoader that keeps non-decimal integers as written.

    YAML 1.1 reads ``0644`` as octal 420; permission strings need the digits.
    """


def _construct_int(loader: ScalarTextLoader, node: yaml.ScalarNode) -> Any:
    text = loader.construct_scalar(node)
    if _DECIMAL_INT.match(text):
        return loader.construct_yaml_int(node)
    return text


ScalarTextLoader.add_constructor("tag:yaml.org,2002:int", _construct_int)


class ConfigSource(Enum):
    """Where a setting came from; higher values win."""

    COMPILED_DEFAULTS = 1
    USER_CONFIG = 2
    ENVIRONMENT = 3
    CLI_ARGS = 4
    RUNTIME = 5


@dataclass
class ConfigValue:
    """A resolved setting and the source that supplied it."""

    value: Any
    source: ConfigSource
    timestamp: float = field(default_factory=time.time)


class ConfigError(Exception):
    """Raised when a settings or build configuration file is unusable."""

    def __init__(self, message: str, error_code: ErrorCode = ErrorCode.INVALID_INPUT):
        self.message = message
        self.error_code = error_code
        super().__init__(message)


def read_yaml_mapping(file_path: str) -> Dict[str, Any]:
    """Load a YAML file whose top level must be a mapping.

    Args:
        file_path: File to read; ``~`` is expanded

    Returns:
        The parsed document

    Raises:
        ConfigError: NOT_FOUND when missing, IO_ERROR when unreadable,
            INVALID_INPUT when it is not YAML or not a mapping
    """
    path = Path(file_path).expanduser()
    if not path.is_file():
        raise ConfigError(f"Config file not found: {file_path}", ErrorCode.NOT_FOUND)

    try:
        with open(path, "r", encoding="utf-8") as f:
            document = yaml.load(f, Loader=ScalarTextLoader)
    except yaml.YAMLError as e:
        raise ConfigError(f"YAML parse error in {file_path}: {e}", ErrorCode.INVALID_INPUT)
    except OSError as e:
        raise ConfigError(f"Error loading config {file_path}: {e}", ErrorCode.IO_ERROR)

    if not isinstance(document, dict):
        raise ConfigError(f"Invalid config format in {file_path}", ErrorCode.INVALID_INPUT)

    return document


def _coerce_env_value(raw: str) -> Any:
    # Only booleans are converted: owner ids such as "0" must stay strings
    lowered = raw.lower()
    if lowered in ("true", "yes"):
        return True
    if lowered in ("false", "no"):
        return False
    return raw


def environment_overrides(environ: Mapping[str, str]) -> Dict[str, Any]:
    """Collect LAYERPACK_* variables into a nested ``layerpack`` section.

    Returns:
        Nested dictionary, empty when no variable matched
    """
    section: Dict[str, Any] = {}

    for name, raw in environ.items():
        if not name.startswith(ENV_PREFIX):
            continue

        *parents, leaf = name[len(ENV_PREFIX):].lower().split("_")
        node = section
        for part in parents:
            child = node.get(part)
            if not isinstance(child, dict):
                child = node[part] = {}
            node = child
        node[leaf] = _coerce_env_value(raw)

    return {"layerpack": section} if section else {}


def _lookup_path(data: Any, key: str) -> Any:
    for part in key.split("."):
        if not isinstance(data, dict) or part not in data:
            return None
        data = data[part]
    return data


def _merge(base: Dict[str, Any], overlay: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in overlay.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = _merge(current, value)
        else:
            merged[key] = value
    return merged


class ConfigManager:
    """Layered, thread-safe store for tool settings.

    Args:
        config_file: Optional settings file loaded as USER_CONFIG
        load_environment: Whether to read LAYERPACK_* variables
    """

    DEFAULT_CONFIG = {
        "layerpack": {
            "logging": {"level": "INFO", "file": None},
            "defaults": {"user": Defaults.OWNER, "group": Defaults.GROUP},
        }
    }

    def __init__(self, config_file: Optional[str] = None, load_environment: bool = True):
        self._lock = threading.RLock()
        self._layers: Dict[ConfigSource, Dict[str, Any]] = {
            ConfigSource.COMPILED_DEFAULTS: copy.deepcopy(self.DEFAULT_CONFIG)
        }

        if config_file:
            self.load_file(config_file)

        if load_environment:
            overrides = environment_overrides(os.environ)
            if overrides:
                self._layers[ConfigSource.ENVIRONMENT] = overrides

    def _by_precedence(self, highest_first: bool = True) -> Iterator[Tuple[ConfigSource, Dict[str, Any]]]:
        for source in sorted(self._layers, key=lambda s: s.value, reverse=highest_first):
            yield source, self._layers[source]

    def load_file(self, file_path: str, source: ConfigSource = ConfigSource.USER_CONFIG) -> None:
        """Replace one source with the contents of a YAML settings file.

        Raises:
            ConfigError: If the file cannot be read or is not a mapping
        """
        document = read_yaml_mapping(file_path)
        with self._lock:
            self._layers[source] = document

    def load_dict(self, config_data: Dict[str, Any], source: ConfigSource = ConfigSource.RUNTIME) -> None:
        """Replace one source with a copy of ``config_data``."""
        with self._lock:
            self._layers[source] = copy.deepcopy(config_data)

    def get_value(self, key: str) -> Optional[ConfigValue]:
        """Resolve a dotted key, returning the value with its source.

        Returns:
            ConfigValue from the highest source that sets the key, or None
        """
        with self._lock:
            for source, data in self._by_precedence():
                value = _lookup_path(data, key)
                if value is not None:
                    return ConfigValue(value=value, source=source)
        return None

    def get(self, key: str, default: Any = None) -> Any:
        """Resolve a dotted key such as ``layerpack.logging.level``."""
        resolved = self.get_value(key)
        return default if resolved is None else resolved.value

    def set(self, key: str, value: Any, source: ConfigSource = ConfigSource.RUNTIME) -> None:
        """Set a dotted key at the given precedence level."""
        *parents, leaf = key.split(".")
        with self._lock:
            node = self._layers.setdefault(source, {})
            for part in parents:
                node = node.setdefault(part, {})
            node[leaf] = value

    def get_all(self) -> Dict[str, Any]:
        """Deep-merge every source into one dictionary."""
        with self._lock:
            merged: Dict[str, Any] = {}
            for _, data in self._by_precedence(highest_first=False):
                merged = _merge(merged, data)
            return merged

    def clear(self, source: Optional[ConfigSource] = None) -> None:
        """Drop one source, or every source when none is given.

        Compiled defaults are never dropped.
        """
        with self._lock:
            targets = [source] if source else list(self._layers)
            for target in targets:
                if target != ConfigSource.COMPILED_DEFAULTS:
                    self._layers.pop(target, None)

    @property
    def log_level(self) -> str:
        return str(self.get(LOG_LEVEL_KEY, "INFO"))

    @property
    def log_file(self) -> Optional[str]:
        value = self.get(LOG_FILE_KEY)
        return str(value) if value else None

    @property
    def default_owner(self) -> Tuple[str, str]:
        """(user, group) applied to entries whose layers set neither."""
        return (
            str(self.get(DEFAULT_USER_KEY, Defaults.OWNER)),
            str(self.get(DEFAULT_GROUP_KEY, Defaults.GROUP)),
        )


_global_config: Optional[ConfigManager] = None


def get_config_manager(config_file: Optional[str] = None) -> ConfigManager:
    """Return the shared settings, loading ``config_file`` on first use."""
    global _global_config
    if _global_config is None:
        _global_config = ConfigManager(config_file)
    return _global_config


def set_global_config(config: ConfigManager) -> None:
    """Make ``config`` the instance returned by ``get_config_manager``."""
    global _global_config
    _global_config = config
