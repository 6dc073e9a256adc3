"""layerpack Layers.

Everything needed to turn layer specifications into tar archives:
- PropertySet / resolve_properties: Scope merge of header properties
- resolve_destination: In-archive path computation
- parse_timestamp: Millisecond epoch and date/time parsing
- ArchiveWriter: Header and content serialization
- LayerBuilder: Per-layer orchestration
"""

from .archive import ArchiveError, ArchiveWriter, create_tar_layer, extract_tar
from .builder import BuildState, LayerBuildError, LayerBuilder, process_layers
from .models import (
    ArchiveEntry,
    BuildConfig,
    FieldOrigin,
    FileMapping,
    HeaderField,
    LayerSpec,
    SimplePlatform,
    StructuredPlatform,
)
from .paths import resolve_destination, to_archive_path
from .properties import PropertySet, ResolvedProperties, resolve_properties
from .timestamps import TimestampParseError, TimestampResult, parse_timestamp
from .walker import SourceEntry, walk_source

__all__ = [
    # Data model
    "ArchiveEntry",
    "BuildConfig",
    "FieldOrigin",
    "FileMapping",
    "HeaderField",
    "LayerSpec",
    "SimplePlatform",
    "StructuredPlatform",
    # Properties
    "PropertySet",
    "ResolvedProperties",
    "resolve_properties",
    # Paths
    "resolve_destination",
    "to_archive_path",
    # Timestamps
    "TimestampParseError",
    "TimestampResult",
    "parse_timestamp",
    # Traversal
    "SourceEntry",
    "walk_source",
    # Archive
    "ArchiveError",
    "ArchiveWriter",
    "create_tar_layer",
    "extract_tar",
    # Orchestration
    "BuildState",
    "LayerBuildError",
    "LayerBuilder",
    "process_layers",
]
