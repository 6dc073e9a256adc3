#!/usr/bin/env python3
"""Layer orchestration: one tar archive per declared layer.

For each layer, in declaration order, the builder opens ``<name>.tar`` in
the output directory and appends every file mapping in order:

- directory sources are walked depth-first in name order; exclude patterns
  prune files and whole subtrees, include patterns select files
- file sources are filtered on their base name
- properties are merged global → layer → mapping for every entry

A failure removes the partial archive of the current layer and raises
``LayerBuildError``. Layers finished earlier stay on disk.

Example:
    >>> builder = LayerBuilder("/tmp/out", PropertySet(user="1000"))
    >>> builder.build([LayerSpec("app", files=[FileMapping("run.sh", "/home/run.sh")])])
    ['/tmp/out/app.tar']
"""

import os
import stat
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from layerpack.core.constants import Defaults, ErrorCode
from layerpack.core.validators import ValidationError, validate_layer_name, validate_layer_names
from layerpack.infrastructure.logger import Logger, get_logger
from layerpack.layers.archive import ArchiveError, ArchiveWriter, error_code_for, remove_partial
from layerpack.layers.models import FileMapping, LayerSpec
from layerpack.layers.paths import escapes_root, resolve_destination
from layerpack.layers.properties import PropertySet, ResolvedProperties, resolve_properties
from layerpack.layers.walker import SourceEntry, walk_source
from layerpack.rules.patterns import InclusionFilter


class BuildState(Enum):
    """Progress of a multi-layer build."""

    PENDING = "pending"
    BUILDING = "building"
    COMPLETE = "complete"
    DONE = "done"
    ABORTED = "aborted"


class LayerBuildError(Exception):
    """A layer could not be built; its partial archive has been removed."""

    def __init__(
        self,
        message: str,
        layer: Optional[str] = None,
        source: Optional[str] = None,
        destination: Optional[str] = None,
        error_code: ErrorCode = ErrorCode.IO_ERROR,
    ):
        super().__init__(message)
        self.message = message
        self.layer = layer
        self.source = source
        self.destination = destination
        self.error_code = error_code

    def __str__(self) -> str:
        details = [
            f"{key}={value}"
            for key, value in (
                ("layer", self.layer),
                ("source", self.source),
                ("destination", self.destination),
            )
            if value
        ]
        if details:
            return f"{self.message} ({', '.join(details)})"
        return self.message


class LayerBuilder:
    """Builds layer archives from layer specifications.

    Args:
        output_dir: Directory receiving ``<layer-name>.tar`` files
        properties: Global property defaults
        logger: Logger, defaults to the global layerpack logger
        default_user: Owner id used when no scope sets one
        default_group: Group id used when no scope sets one
    """

    def __init__(
        self,
        output_dir: str,
        properties: Optional[PropertySet] = None,
        logger: Optional[Logger] = None,
        default_user: str = Defaults.OWNER,
        default_group: str = Defaults.GROUP,
    ):
        self.output_dir = output_dir
        self.properties = properties or PropertySet()
        self.logger = logger or get_logger()
        self.default_user = default_user
        self.default_group = default_group

        self.state = BuildState.PENDING
        self.current_layer: Optional[int] = None
        self._archive_id: Optional[Tuple[int, int]] = None

    def archive_path_for(self, layer: LayerSpec) -> str:
        return os.path.join(self.output_dir, f"{layer.name}{Defaults.ARCHIVE_SUFFIX}")

    def build(self, layers: Sequence[LayerSpec]) -> List[str]:
        """Build every layer in declaration order.

        Args:
            layers: Layer specifications

        Returns:
            Archive paths in the same order as ``layers``

        Raises:
            LayerBuildError: On the first layer that fails
        """
        self.state = BuildState.PENDING
        self.current_layer = None

        try:
            validate_layer_names(layer.name for layer in layers)
        except ValidationError as e:
            self.state = BuildState.ABORTED
            raise LayerBuildError(str(e), error_code=e.error_code) from e

        if layers:
            os.makedirs(self.output_dir, exist_ok=True)

        paths: List[str] = []
        for index, layer in enumerate(layers):
            self.current_layer = index
            paths.append(self.build_layer(layer))

        self.state = BuildState.DONE
        return paths

    def build_layer(self, layer: LayerSpec) -> str:
        """Build a single layer archive.

        Args:
            layer: Layer specification

        Returns:
            Path of the written archive

        Raises:
            LayerBuildError: If any mapping fails
        """
        self.state = BuildState.BUILDING

        try:
            validate_layer_name(layer.name)
        except ValidationError as e:
            self.state = BuildState.ABORTED
            raise LayerBuildError(str(e), layer=layer.name, error_code=e.error_code) from e

        archive_path = self.archive_path_for(layer)

        with self.logger.add_context(layer=layer.name):
            self.logger.info("Creating layer", archive=archive_path)
            try:
                self._write_layer(layer, archive_path)
            except LayerBuildError as e:
                self._abort(archive_path, e)
                raise
            except ArchiveError as e:
                error = LayerBuildError(
                    e.message,
                    layer=layer.name,
                    source=e.source,
                    destination=e.destination,
                    error_code=e.error_code,
                )
                self._abort(archive_path, error)
                raise error from e
            except OSError as e:
                error = LayerBuildError(
                    f"failed to write archive {archive_path}: {e}",
                    layer=layer.name,
                    destination=archive_path,
                    error_code=error_code_for(e),
                )
                self._abort(archive_path, error)
                raise error from e
            finally:
                self._archive_id = None

        self.state = BuildState.COMPLETE
        return archive_path

    def _abort(self, archive_path: str, error: LayerBuildError) -> None:
        self.state = BuildState.ABORTED
        remove_partial(archive_path)
        self.logger.error("Layer build failed", error=error.message, code=error.error_code.name)

    def _write_layer(self, layer: LayerSpec, archive_path: str) -> None:
        with open(archive_path, "wb") as fh, ArchiveWriter(fh) as writer:
            own = os.fstat(fh.fileno())
            self._archive_id = (own.st_dev, own.st_ino)

            for mapping in layer.files:
                self._add_mapping(writer, layer, mapping)

    def _is_own_archive(self, st: os.stat_result) -> bool:
        return self._archive_id == (st.st_dev, st.st_ino)

    def _add_mapping(self, writer: ArchiveWriter, layer: LayerSpec, mapping: FileMapping) -> None:
        if escapes_root(mapping.dest):
            raise LayerBuildError(
                f"destination {mapping.dest!r} is outside the archive root",
                layer=layer.name,
                source=mapping.src,
                destination=mapping.dest,
                error_code=ErrorCode.INVALID_INPUT,
            )

        try:
            st = os.stat(mapping.src)
        except OSError as e:
            raise LayerBuildError(
                f"failed to stat file {mapping.src}: {e}",
                layer=layer.name,
                source=mapping.src,
                destination=mapping.dest,
                error_code=error_code_for(e),
            ) from e

        properties = resolve_properties(
            self.properties,
            layer.properties,
            mapping.properties,
            default_user=self.default_user,
            default_group=self.default_group,
        )
        inclusion = InclusionFilter(mapping.excludes, mapping.includes)

        if stat.S_ISDIR(st.st_mode):
            self._add_directory(writer, layer, mapping, inclusion, properties)
        else:
            self._add_file(writer, layer, mapping, st, inclusion, properties)

    def _append(
        self,
        writer: ArchiveWriter,
        source: str,
        target: str,
        properties: ResolvedProperties,
        st: os.stat_result,
    ) -> None:
        entry = writer.append(source, target, properties, st=st)
        if entry.degraded_fields:
            self.logger.debug(
                "Using defaults for malformed properties",
                path=source,
                fields=",".join(entry.degraded_fields),
            )

    def _add_file(
        self,
        writer: ArchiveWriter,
        layer: LayerSpec,
        mapping: FileMapping,
        st: os.stat_result,
        inclusion: InclusionFilter,
        properties: ResolvedProperties,
    ) -> None:
        name = os.path.basename(mapping.src)
        if not inclusion.should_include(name):
            self.logger.debug("Skipping excluded", path=mapping.src)
            return

        if self._is_own_archive(st):
            self.logger.debug("Skipping layer archive", path=mapping.src)
            return

        target = resolve_destination(mapping.dest, False, source_name=name)
        if not target:
            raise LayerBuildError(
                f"destination {mapping.dest!r} does not name a file",
                layer=layer.name,
                source=mapping.src,
                destination=mapping.dest,
                error_code=ErrorCode.INVALID_INPUT,
            )

        self._append(writer, mapping.src, target, properties, st)

    def _add_directory(
        self,
        writer: ArchiveWriter,
        layer: LayerSpec,
        mapping: FileMapping,
        inclusion: InclusionFilter,
        properties: ResolvedProperties,
    ) -> None:
        def prune(entry: SourceEntry) -> bool:
            if self._is_own_archive(entry.stat):
                self.logger.debug("Skipping layer archive", path=entry.path)
                return True
            pattern = inclusion.excluded_by(entry.relative)
            if pattern is not None:
                self.logger.debug("Skipping excluded", path=entry.path, pattern=pattern)
                return True
            return False

        try:
            for entry in walk_source(mapping.src, prune=prune):
                if entry.is_file:
                    if not inclusion.should_include(entry.relative):
                        self.logger.debug("Skipping not included", path=entry.path)
                        continue
                elif not entry.is_dir:
                    self.logger.warning("Skipping unsupported file type", path=entry.path)
                    continue

                target = resolve_destination(mapping.dest, True, relative=entry.relative)
                if not target:
                    continue

                self._append(writer, entry.path, target, properties, entry.stat)
        except OSError as e:
            raise LayerBuildError(
                f"failed to walk directory {mapping.src}: {e}",
                layer=layer.name,
                source=mapping.src,
                destination=mapping.dest,
                error_code=error_code_for(e),
            ) from e


def process_layers(
    layers: Sequence[LayerSpec],
    output_dir: str,
    properties: Optional[PropertySet] = None,
    logger: Optional[Logger] = None,
) -> List[str]:
    """Build all layers into ``output_dir`` and return their archive paths."""
    return LayerBuilder(output_dir, properties, logger).build(layers)
