"""
layerpack Core: Input Validators.

This module provides validation functions for the build configuration
document: layer entries, file mappings, property blocks, filter patterns
and platform declarations.
"""
from datetime import date
from typing import Any, Dict, Iterable

from layerpack.core.constants import PROPERTY_KEYS, ConfigKey, ErrorCode

# YAML scalars accepted for property values (dates are parsed by the YAML loader)
SCALAR_TYPES = (str, int, date)


class ValidationError(Exception):
    """Base exception for validation errors."""

    def __init__(self, message: str, error_code: ErrorCode = ErrorCode.INVALID_INPUT):
        """Initialize ValidationError.

        Args:
            message: Error message
            error_code: Associated error code
        """
        super().__init__(message)
        self.error_code = error_code


def validate_build_config(config: Dict[str, Any]) -> bool:
    """Validate the build configuration structure.

    Args:
        config: Configuration dictionary

    Returns:
        True if valid

    Raises:
        ValidationError: If configuration is invalid
    """
    if not isinstance(config, dict):
        raise ValidationError("Configuration must be a dictionary")

    if ConfigKey.FROM in config and config[ConfigKey.FROM] is not None:
        from_section = config[ConfigKey.FROM]
        if not isinstance(from_section, dict):
            raise ValidationError("'from' must be a dictionary")
        platforms = from_section.get(ConfigKey.PLATFORMS) or []
        if not isinstance(platforms, list):
            raise ValidationError("Platforms must be a list")
        for i, platform in enumerate(platforms):
            try:
                validate_platform(platform)
            except ValidationError as e:
                raise ValidationError(f"Invalid platform at index {i}: {e}")

    creation_time = config.get(ConfigKey.CREATION_TIME)
    if creation_time is not None and not isinstance(creation_time, SCALAR_TYPES):
        raise ValidationError(f"creationTime must be a string: {creation_time!r}")

    layers = config.get(ConfigKey.LAYERS)
    if layers is None:
        return True
    if not isinstance(layers, dict):
        raise ValidationError("'layers' must be a dictionary")

    validate_properties(layers.get(ConfigKey.PROPERTIES))

    entries = layers.get(ConfigKey.ENTRIES) or []
    if not isinstance(entries, list):
        raise ValidationError("Layer entries must be a list")

    for i, entry in enumerate(entries):
        try:
            validate_layer_config(entry)
        except ValidationError as e:
            raise ValidationError(f"Invalid layer configuration at index {i}: {e}", e.error_code)

    validate_layer_names(entry[ConfigKey.NAME] for entry in entries)
    return True


def validate_layer_config(entry: Dict[str, Any]) -> bool:
    """Validate one layer entry.

    Args:
        entry: Layer entry dictionary

    Returns:
        True if valid

    Raises:
        ValidationError: If entry is invalid
    """
    if not isinstance(entry, dict):
        raise ValidationError("Layer entry must be a dictionary")

    if ConfigKey.NAME not in entry:
        raise ValidationError("Layer entry must have 'name' field")
    validate_layer_name(entry[ConfigKey.NAME])

    validate_properties(entry.get(ConfigKey.PROPERTIES))

    files = entry.get(ConfigKey.FILES) or []
    if not isinstance(files, list):
        raise ValidationError("Layer files must be a list")

    for i, mapping in enumerate(files):
        try:
            validate_file_mapping(mapping)
        except ValidationError as e:
            raise ValidationError(f"Invalid file mapping at index {i}: {e}")

    return True


def validate_layer_name(name: Any) -> bool:
    """Validate that a layer name can be used as an archive file name.

    Raises:
        ValidationError: If the name is empty or contains a path separator
    """
    if not isinstance(name, str) or not name:
        raise ValidationError(f"Layer name must be a non-empty string: {name!r}")

    if "/" in name or "\\" in name or name in (".", "..") or "\0" in name:
        raise ValidationError(f"Invalid layer name: {name!r}")

    return True


def validate_layer_names(names: Iterable[str]) -> bool:
    """Ensure layer names are unique within a build.

    Raises:
        ValidationError: On the first duplicate name
    """
    seen = set()
    for name in names:
        if name in seen:
            raise ValidationError(f"Duplicate layer name: {name}", ErrorCode.CONFLICT)
        seen.add(name)
    return True


def validate_file_mapping(mapping: Dict[str, Any]) -> bool:
    """Validate a file mapping.

    Args:
        mapping: File mapping dictionary

    Returns:
        True if valid

    Raises:
        ValidationError: If mapping is invalid
    """
    if not isinstance(mapping, dict):
        raise ValidationError("File mapping must be a dictionary")

    for key in (ConfigKey.SRC, ConfigKey.DEST):
        value = mapping.get(key)
        if not isinstance(value, str) or not value:
            raise ValidationError(f"File mapping must have a non-empty '{key}' field")

    for key in (ConfigKey.EXCLUDES, ConfigKey.INCLUDES):
        patterns = mapping.get(key)
        if patterns is None:
            continue
        if not isinstance(patterns, list):
            raise ValidationError(f"'{key}' must be a list")
        for pattern in patterns:
            if not validate_pattern(pattern):
                raise ValidationError(f"Invalid pattern in '{key}': {pattern!r}")

    validate_properties(mapping.get(ConfigKey.PROPERTIES))
    return True


def validate_properties(properties: Any) -> bool:
    """Validate a property block.

    Values are only checked for shape; malformed permission, owner or
    timestamp strings are tolerated and replaced by defaults at write time.

    Raises:
        ValidationError: If the block is not a mapping of known scalar keys
    """
    if properties is None:
        return True

    if not isinstance(properties, dict):
        raise ValidationError("Properties must be a dictionary")

    unknown = sorted(set(properties) - set(PROPERTY_KEYS))
    if unknown:
        raise ValidationError(f"Unknown property keys: {unknown}")

    for key, value in properties.items():
        if value is not None and not isinstance(value, SCALAR_TYPES):
            raise ValidationError(f"Property '{key}' must be a scalar: {value!r}")

    return True


def validate_pattern(pattern: Any) -> bool:
    """Validate a glob pattern.

    Args:
        pattern: Pattern to validate

    Returns:
        True if valid, False otherwise
    """
    if not isinstance(pattern, str):
        return False
    if not pattern:
        return False
    if "\0" in pattern:
        return False
    return True


def validate_platform(platform: Any) -> bool:
    """Validate a platform declaration (string or os/architecture mapping).

    Raises:
        ValidationError: If the declaration has an unsupported shape
    """
    if isinstance(platform, str):
        if not platform:
            raise ValidationError("Platform string must not be empty")
        return True

    if isinstance(platform, dict):
        for key in (ConfigKey.PLATFORM_OS, ConfigKey.PLATFORM_ARCH):
            value = platform.get(key)
            if value is not None and not isinstance(value, str):
                raise ValidationError(f"Platform '{key}' must be a string: {value!r}")
        return True

    raise ValidationError(f"Unsupported platform declaration: {platform!r}")
