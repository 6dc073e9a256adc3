"""Data model for layer builds.

``LayerSpec`` and ``FileMapping`` are built once per build from resolved
configuration. ``ArchiveEntry`` describes exactly one header written to an
archive and is discarded right after the write.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional, Union

from layerpack.core.constants import EntryKind
from layerpack.layers.properties import PropertySet


@dataclass
class FileMapping:
    """One source path copied into a layer."""

    src: str
    dest: str
    excludes: List[str] = field(default_factory=list)
    includes: List[str] = field(default_factory=list)
    properties: PropertySet = field(default_factory=PropertySet)


@dataclass
class LayerSpec:
    """A named layer and the mappings that populate it."""

    name: str
    properties: PropertySet = field(default_factory=PropertySet)
    files: List[FileMapping] = field(default_factory=list)


class FieldOrigin(Enum):
    """Where a header field value came from."""

    CONFIGURED = "configured"  # Parsed from the resolved properties
    DEFAULTED = "defaulted"  # Property unset, documented default used
    FALLBACK = "fallback"  # Property malformed, documented default used
    PRESERVED = "preserved"  # Taken from on-disk metadata


@dataclass(frozen=True)
class HeaderField:
    """A header value paired with its origin."""

    value: Any
    origin: FieldOrigin

    @property
    def degraded(self) -> bool:
        return self.origin is FieldOrigin.FALLBACK


@dataclass(frozen=True)
class ArchiveEntry:
    """A single directory or regular-file header."""

    name: str
    kind: EntryKind
    source: str
    mode: HeaderField
    uid: HeaderField
    gid: HeaderField
    mtime: HeaderField
    size: int = 0

    @property
    def is_dir(self) -> bool:
        return self.kind is EntryKind.DIRECTORY

    @property
    def degraded_fields(self) -> List[str]:
        return [
            name
            for name in ("mode", "uid", "gid", "mtime")
            if getattr(self, name).degraded
        ]


@dataclass(frozen=True)
class SimplePlatform:
    """Platform given as a bare "os/arch" string."""

    value: str

    def render(self) -> str:
        return self.value


@dataclass(frozen=True)
class StructuredPlatform:
    """Platform given as separate os and architecture keys."""

    os: str
    architecture: str

    def render(self) -> str:
        return f"{self.os}/{self.architecture}"


Platform = Union[SimplePlatform, StructuredPlatform]


@dataclass
class BuildConfig:
    """Resolved build configuration handed to the layer builder."""

    properties: PropertySet = field(default_factory=PropertySet)
    layers: List[LayerSpec] = field(default_factory=list)
    platforms: List[Platform] = field(default_factory=list)
    creation_time: Optional[str] = None
