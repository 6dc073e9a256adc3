#!/usr/bin/env python3
"""Tape-archive writer for layer content.

This module serializes filesystem entries into uncompressed PAX tar streams:
- Header fields taken from resolved properties, not live metadata
- Documented defaults for unset or malformed permission/owner/time values
- File content streamed from the source directly after its header
- Access and change time recorded identically to modification time

Example:
    >>> with open("app.tar", "wb") as fh, ArchiveWriter(fh) as writer:
    ...     writer.append("run.sh", "home/run.sh", resolve_properties())
"""

import errno
import os
import posixpath
import re
import stat
import tarfile
from contextlib import suppress
from typing import BinaryIO, List, Optional

from layerpack.core.constants import Defaults, EntryKind, ErrorCode
from layerpack.layers.models import ArchiveEntry, FieldOrigin, HeaderField
from layerpack.layers.paths import to_archive_path
from layerpack.layers.properties import ResolvedProperties
from layerpack.layers.timestamps import parse_entry_timestamp
from layerpack.layers.walker import walk_source

_OCTAL_RE = re.compile(r"[0-7]+")
_DECIMAL_RE = re.compile(r"[0-9]+")


class ArchiveError(Exception):
    """Failure while reading a source or writing an archive."""

    def __init__(
        self,
        message: str,
        source: Optional[str] = None,
        destination: Optional[str] = None,
        error_code: ErrorCode = ErrorCode.IO_ERROR,
    ):
        super().__init__(message)
        self.message = message
        self.source = source
        self.destination = destination
        self.error_code = error_code


def error_code_for(exc: OSError) -> ErrorCode:
    """Map an OSError onto an error code."""
    if exc.errno == errno.ENOENT:
        return ErrorCode.NOT_FOUND
    if exc.errno in (errno.EACCES, errno.EPERM):
        return ErrorCode.PERMISSION_DENIED
    return ErrorCode.IO_ERROR


def resolve_mode(
    text: str,
    is_dir: bool,
    st_mode: Optional[int] = None,
    preserve_permissions: bool = False,
) -> HeaderField:
    """Resolve the permission bits for an entry.

    Args:
        text: Octal permission string, e.g. "755"
        is_dir: Whether the entry is a directory
        st_mode: On-disk mode, used when preserving permissions
        preserve_permissions: Keep on-disk permission bits

    Returns:
        HeaderField with the mode
    """
    if preserve_permissions and st_mode is not None:
        return HeaderField(stat.S_IMODE(st_mode), FieldOrigin.PRESERVED)

    default = Defaults.DIRECTORY_MODE if is_dir else Defaults.FILE_MODE
    if not text:
        return HeaderField(default, FieldOrigin.DEFAULTED)

    if _OCTAL_RE.fullmatch(text):
        mode = int(text, 8)
        if mode <= Defaults.MAX_MODE:
            return HeaderField(mode, FieldOrigin.CONFIGURED)

    return HeaderField(default, FieldOrigin.FALLBACK)


def resolve_id(text: str) -> HeaderField:
    """Resolve a numeric owner or group id; malformed values become 0."""
    if not text:
        return HeaderField(Defaults.NUMERIC_ID, FieldOrigin.DEFAULTED)
    if _DECIMAL_RE.fullmatch(text):
        return HeaderField(int(text), FieldOrigin.CONFIGURED)
    return HeaderField(Defaults.NUMERIC_ID, FieldOrigin.FALLBACK)


def resolve_mtime(text: str, st_mtime: float) -> HeaderField:
    """Resolve the modification time in epoch seconds.

    Unset or unparseable timestamps fall back to the source's own
    modification time, truncated to whole seconds.
    """
    fallback = int(st_mtime)
    if not text:
        return HeaderField(fallback, FieldOrigin.DEFAULTED)

    result = parse_entry_timestamp(text)
    if not result.ok:
        return HeaderField(fallback, FieldOrigin.FALLBACK)
    return HeaderField(result.epoch_seconds, FieldOrigin.CONFIGURED)


def build_entry(
    source: str,
    name: str,
    st: os.stat_result,
    properties: ResolvedProperties,
    preserve_permissions: bool = False,
) -> ArchiveEntry:
    """Describe the header for one source path.

    Args:
        source: Source path on disk
        name: Archive entry name
        st: Stat result for the source
        properties: Resolved properties for the entry
        preserve_permissions: Keep on-disk permission bits

    Returns:
        ArchiveEntry ready to be written

    Raises:
        ArchiveError: If the source is neither a directory nor a regular file
    """
    if stat.S_ISDIR(st.st_mode):
        kind = EntryKind.DIRECTORY
        permissions = properties.directory_permissions
        size = 0
    elif stat.S_ISREG(st.st_mode):
        kind = EntryKind.REGULAR
        permissions = properties.file_permissions
        size = st.st_size
    else:
        raise ArchiveError(
            f"unsupported file type for {source}",
            source=source,
            destination=name,
            error_code=ErrorCode.INVALID_INPUT,
        )

    return ArchiveEntry(
        name=name,
        kind=kind,
        source=source,
        mode=resolve_mode(
            permissions,
            kind is EntryKind.DIRECTORY,
            st.st_mode,
            preserve_permissions,
        ),
        uid=resolve_id(properties.user),
        gid=resolve_id(properties.group),
        mtime=resolve_mtime(properties.timestamp, st.st_mtime),
        size=size,
    )


def entry_tarinfo(entry: ArchiveEntry) -> tarfile.TarInfo:
    """Build the tar header for an entry."""
    info = tarfile.TarInfo(entry.name)
    info.type = tarfile.DIRTYPE if entry.is_dir else tarfile.REGTYPE
    info.mode = entry.mode.value
    info.uid = entry.uid.value
    info.gid = entry.gid.value
    info.uname = ""
    info.gname = ""
    info.mtime = entry.mtime.value
    info.size = entry.size

    stamp = str(entry.mtime.value)
    info.pax_headers = {"atime": stamp, "ctime": stamp}
    return info


class ArchiveWriter:
    """Appends directory and regular-file entries to an open tar stream.

    The writer does not own the underlying file object; closing the writer
    finalizes the archive (end-of-archive blocks) but leaves the stream open.
    """

    def __init__(self, fileobj: BinaryIO):
        """Initialize archive writer.

        Args:
            fileobj: Binary stream opened for writing
        """
        self._tar = tarfile.open(fileobj=fileobj, mode="w", format=tarfile.PAX_FORMAT)
        self.entries_written = 0

    def __enter__(self) -> "ArchiveWriter":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self._tar.__exit__(exc_type, exc, tb)

    def close(self) -> None:
        self._tar.close()

    def append(
        self,
        source: str,
        name: str,
        properties: ResolvedProperties,
        st: Optional[os.stat_result] = None,
        preserve_permissions: bool = False,
    ) -> ArchiveEntry:
        """Append one filesystem entry.

        Args:
            source: Source path on disk
            name: Archive entry name
            properties: Resolved properties for the entry
            st: Optional pre-fetched stat result for the source
            preserve_permissions: Keep on-disk permission bits

        Returns:
            The ArchiveEntry that was written

        Raises:
            ArchiveError: If the source cannot be read or the archive written
        """
        if st is None:
            try:
                st = os.stat(source)
            except OSError as e:
                raise ArchiveError(
                    f"failed to stat file {source}: {e}",
                    source=source,
                    destination=name,
                    error_code=error_code_for(e),
                ) from e

        entry = build_entry(source, name, st, properties, preserve_permissions)
        self.write_entry(entry)
        return entry

    def write_entry(self, entry: ArchiveEntry) -> None:
        """Write the header and, for files, the content of an entry."""
        info = entry_tarinfo(entry)

        if entry.is_dir:
            try:
                self._tar.addfile(info)
            except (OSError, tarfile.TarError) as e:
                raise ArchiveError(
                    f"failed to write tar header for {entry.source}: {e}",
                    source=entry.source,
                    destination=entry.name,
                ) from e
            self.entries_written += 1
            return

        try:
            fh = open(entry.source, "rb")
        except OSError as e:
            raise ArchiveError(
                f"failed to open file {entry.source}: {e}",
                source=entry.source,
                destination=entry.name,
                error_code=error_code_for(e),
            ) from e

        with fh:
            try:
                self._tar.addfile(info, fh)
            except (OSError, tarfile.TarError) as e:
                raise ArchiveError(
                    f"failed to write file content for {entry.source}: {e}",
                    source=entry.source,
                    destination=entry.name,
                ) from e
        self.entries_written += 1


def remove_partial(path: str) -> None:
    """Delete a partially written archive if it exists."""
    with suppress(FileNotFoundError):
        os.remove(path)


def create_tar_layer(content_dir: str, tar_path: str, properties: ResolvedProperties) -> str:
    """Archive the contents of a directory as one layer.

    Entry names are relative to ``content_dir``; the directory itself is not
    recorded. ``tar_path`` may live inside ``content_dir`` and is never
    included.

    Args:
        content_dir: Directory whose contents form the layer
        tar_path: Archive file to create
        properties: Resolved properties applied to every entry

    Returns:
        Path of the written archive

    Raises:
        ArchiveError: If any entry cannot be read or written
    """
    parent = os.path.dirname(tar_path)
    if parent:
        os.makedirs(parent, exist_ok=True)

    try:
        with open(tar_path, "wb") as fh, ArchiveWriter(fh) as writer:
            own = os.fstat(fh.fileno())

            def prune(entry) -> bool:
                return (entry.stat.st_dev, entry.stat.st_ino) == (own.st_dev, own.st_ino)

            for entry in walk_source(content_dir, prune=prune):
                if entry.is_root or not (entry.is_dir or entry.is_file):
                    continue
                writer.append(
                    entry.path,
                    to_archive_path(entry.relative),
                    properties,
                    st=entry.stat,
                )
    except ArchiveError:
        remove_partial(tar_path)
        raise
    except OSError as e:
        remove_partial(tar_path)
        raise ArchiveError(
            f"creating tar layer from {content_dir}: {e}",
            source=content_dir,
            destination=tar_path,
            error_code=error_code_for(e),
        ) from e

    return tar_path


def _refuse(name: str, dst: str) -> ArchiveError:
    return ArchiveError(
        f"refusing to extract entry outside destination: {name}",
        destination=dst,
        error_code=ErrorCode.INVALID_INPUT,
    )


def _check_within(root: str, path: str, name: str, dst: str) -> None:
    """Raise unless path, with symlinks already on disk resolved, stays under root."""
    real = os.path.realpath(path)
    if real != root and not real.startswith(root.rstrip(os.sep) + os.sep):
        raise _refuse(name, dst)


def _safe_target(dst: str, name: str) -> str:
    relative = posixpath.normpath(name.lstrip("/"))
    if relative == ".." or relative.startswith("../"):
        raise _refuse(name, dst)
    return os.path.join(dst, *relative.split("/"))


def extract_tar(src: str, dst: str) -> List[str]:
    """Extract directories, regular files and symlinks from an archive.

    Args:
        src: Archive to read
        dst: Destination directory (created if missing)

    Returns:
        Names of the extracted entries, in archive order

    Raises:
        ArchiveError: If the archive cannot be read or an entry written
    """
    extracted: List[str] = []
    # Directory modes are applied last so read-only directories can be filled
    dir_modes = []
    try:
        os.makedirs(dst, exist_ok=True)
        root = os.path.realpath(dst)
        with tarfile.open(src, "r:") as archive:
            for member in archive:
                target = _safe_target(dst, member.name)
                _check_within(root, target, member.name, dst)

                if member.isdir():
                    os.makedirs(target, exist_ok=True)
                    dir_modes.append((target, member.mode))
                elif member.isfile():
                    os.makedirs(os.path.dirname(target), exist_ok=True)
                    reader = archive.extractfile(member)
                    with reader, open(target, "wb") as out:
                        while True:
                            chunk = reader.read(Defaults.COPY_BUFFER_SIZE)
                            if not chunk:
                                break
                            out.write(chunk)
                    os.chmod(target, member.mode)
                elif member.issym() and os.name != "nt":
                    if os.path.isabs(member.linkname):
                        raise _refuse(member.name, dst)
                    _check_within(
                        root,
                        os.path.join(os.path.dirname(target), member.linkname),
                        member.name,
                        dst,
                    )
                    os.makedirs(os.path.dirname(target), exist_ok=True)
                    os.symlink(member.linkname, target)
                else:
                    continue

                extracted.append(member.name)

        for target, mode in reversed(dir_modes):
            os.chmod(target, mode)
    except (OSError, tarfile.TarError) as e:
        raise ArchiveError(
            f"failed to extract {src}: {e}",
            source=src,
            destination=dst,
        ) from e

    return extracted
