"""
layerpack Core: Constants

This module provides system-wide constants, error codes, default header values
and configuration keys shared by the layer builder.
"""
from enum import Enum, IntEnum

# Version information
LAYERPACK_VERSION = "1.0.0"


# Error codes
class ErrorCode(IntEnum):
    """Standardized error codes for layerpack operations."""

    SUCCESS = 0  # Operation completed successfully
    INVALID_INPUT = 1  # Bad path, invalid configuration
    NOT_FOUND = 2  # File or resource doesn't exist
    PERMISSION_DENIED = 3  # Insufficient permissions
    CONFLICT = 4  # Duplicate layer name, output collision
    IO_ERROR = 5  # Read/write failure on source or archive
    INTERNAL_ERROR = 6  # Bug in layerpack
    DEGRADED = 9  # Value replaced by a documented default


# Archive header defaults
class Defaults:
    """Header values used when a property is unset or malformed."""

    DIRECTORY_MODE = 0o755
    FILE_MODE = 0o644
    MAX_MODE = 0o7777

    OWNER = "0"
    GROUP = "0"
    NUMERIC_ID = 0

    PLATFORM = "linux/amd64"

    ARCHIVE_SUFFIX = ".tar"

    # Copy buffer for streaming file content into the archive
    COPY_BUFFER_SIZE = 64 * 1024


# Entry kinds written to an archive
class EntryKind(Enum):
    """Kind of filesystem entry stored in a layer archive."""

    DIRECTORY = "directory"
    REGULAR = "regular"


# Configuration keys for the build configuration document
class ConfigKey:
    """Build configuration key constants."""

    # Top-level keys
    LAYERS = "layers"
    FROM = "from"
    CREATION_TIME = "creationTime"

    # from section
    PLATFORMS = "platforms"
    PLATFORM_OS = "os"
    PLATFORM_ARCH = "architecture"

    # layers section
    PROPERTIES = "properties"
    ENTRIES = "entries"
    NAME = "name"
    FILES = "files"

    # file mapping
    SRC = "src"
    DEST = "dest"
    EXCLUDES = "excludes"
    INCLUDES = "includes"

    # property fields
    FILE_PERMISSIONS = "filePermissions"
    DIRECTORY_PERMISSIONS = "directoryPermissions"
    USER = "user"
    GROUP = "group"
    TIMESTAMP = "timestamp"


PROPERTY_KEYS = (
    ConfigKey.FILE_PERMISSIONS,
    ConfigKey.DIRECTORY_PERMISSIONS,
    ConfigKey.USER,
    ConfigKey.GROUP,
    ConfigKey.TIMESTAMP,
)
