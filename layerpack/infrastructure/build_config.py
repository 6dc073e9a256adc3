#!/usr/bin/env python3
"""Loading of resolved build configuration documents.

The build configuration is a YAML document whose variables have already been
substituted. Only the sections the layer builder needs are read:

    creationTime: "2020-01-01T00:00:00Z"
    from:
      platforms: ["linux/amd64", {os: linux, architecture: arm64}]
    layers:
      properties: {filePermissions: "644", user: "1000"}
      entries:
        - name: app
          files:
            - src: ./build
              dest: /opt/app/
              excludes: ["**/*.map"]

Example:
    >>> config = load_build_config("image.yaml")
    >>> [layer.name for layer in config.layers]
    ['app']
"""

import os
from datetime import date, datetime, time, timezone
from typing import Any, Dict, List, Optional

from layerpack.core.constants import ConfigKey, Defaults
from layerpack.core.validators import ValidationError, validate_build_config
from layerpack.infrastructure.config_manager import ConfigError, read_yaml_mapping
from layerpack.layers.models import (
    BuildConfig,
    FileMapping,
    LayerSpec,
    Platform,
    SimplePlatform,
    StructuredPlatform,
)
from layerpack.layers.properties import PropertySet


def load_build_config(file_path: str) -> BuildConfig:
    """Read and validate a build configuration file.

    Relative ``src`` paths are resolved against the file's directory.

    Args:
        file_path: Path to the YAML document

    Returns:
        Typed BuildConfig

    Raises:
        ConfigError: If the file is missing, unreadable or invalid
    """
    data = read_yaml_mapping(file_path)
    base_dir = os.path.dirname(os.path.abspath(os.path.expanduser(file_path)))
    return parse_build_config(data, base_dir=base_dir)


def parse_build_config(data: Dict[str, Any], base_dir: Optional[str] = None) -> BuildConfig:
    """Convert a configuration mapping into a BuildConfig.

    Args:
        data: Parsed configuration document
        base_dir: Directory used to resolve relative ``src`` paths

    Returns:
        Typed BuildConfig

    Raises:
        ConfigError: If the document fails validation
    """
    try:
        validate_build_config(data)
    except ValidationError as e:
        raise ConfigError(str(e), e.error_code)

    layers_section = data.get(ConfigKey.LAYERS) or {}
    from_section = data.get(ConfigKey.FROM) or {}

    return BuildConfig(
        properties=parse_properties(layers_section.get(ConfigKey.PROPERTIES)),
        layers=[
            _parse_layer(entry, base_dir)
            for entry in layers_section.get(ConfigKey.ENTRIES) or []
        ],
        platforms=extract_platforms(from_section.get(ConfigKey.PLATFORMS)),
        creation_time=_scalar_text(data.get(ConfigKey.CREATION_TIME)),
    )


def _parse_layer(entry: Dict[str, Any], base_dir: Optional[str]) -> LayerSpec:
    return LayerSpec(
        name=entry[ConfigKey.NAME],
        properties=parse_properties(entry.get(ConfigKey.PROPERTIES)),
        files=[_parse_mapping(m, base_dir) for m in entry.get(ConfigKey.FILES) or []],
    )


def _parse_mapping(mapping: Dict[str, Any], base_dir: Optional[str]) -> FileMapping:
    src = os.path.expanduser(mapping[ConfigKey.SRC])
    if base_dir and not os.path.isabs(src):
        src = os.path.join(base_dir, src)

    return FileMapping(
        src=src,
        dest=mapping[ConfigKey.DEST],
        excludes=list(mapping.get(ConfigKey.EXCLUDES) or []),
        includes=list(mapping.get(ConfigKey.INCLUDES) or []),
        properties=parse_properties(mapping.get(ConfigKey.PROPERTIES)),
    )


def parse_properties(block: Optional[Dict[str, Any]]) -> PropertySet:
    """Build a PropertySet from a configuration block."""
    if not block:
        return PropertySet()
    return PropertySet.from_dict({key: _scalar_text(value) for key, value in block.items()})


def _scalar_text(value: Any) -> Optional[str]:
    """Render a YAML scalar as the string the builder expects.

    YAML loads unquoted dates and timestamps as date/datetime objects; they
    are rendered back as RFC-3339 text in UTC when no offset was given.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.isoformat()
    if isinstance(value, date):
        return datetime.combine(value, time(), tzinfo=timezone.utc).isoformat()
    return str(value)


def extract_platforms(raw: Optional[List[Any]]) -> List[Platform]:
    """Resolve platform declarations into typed platforms.

    Strings become SimplePlatform; mappings with both ``os`` and
    ``architecture`` become StructuredPlatform; anything else is dropped.
    An empty result falls back to linux/amd64.

    Args:
        raw: Declarations from the ``from.platforms`` list

    Returns:
        List of platforms, never empty
    """
    platforms: List[Platform] = []

    for item in raw or []:
        if isinstance(item, str) and item:
            platforms.append(SimplePlatform(item))
        elif isinstance(item, dict):
            os_name = item.get(ConfigKey.PLATFORM_OS)
            arch = item.get(ConfigKey.PLATFORM_ARCH)
            if os_name and arch:
                platforms.append(StructuredPlatform(os=os_name, architecture=arch))

    if not platforms:
        return [SimplePlatform(Defaults.PLATFORM)]

    return platforms
