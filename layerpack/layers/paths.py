"""Destination path resolution for archive entries.

Archive names are always relative, slash-separated and free of host drive
prefixes: ``C:\\app\\bin`` becomes ``C/app/bin`` and ``/home/run.sh`` becomes
``home/run.sh``.
"""

import posixpath

from layerpack.rules.patterns import normalize_separators

SEPARATORS = ("/", "\\")


def has_trailing_separator(path: str) -> bool:
    return path.endswith(SEPARATORS)


def to_archive_path(path: str) -> str:
    """Render a destination as an archive entry name.

    Args:
        path: Destination in host or slash form

    Returns:
        Clean relative name, or "" when the path is the archive root
    """
    path = normalize_separators(path)

    # Drive prefix "c:" becomes a leading "C" segment
    if len(path) > 1 and path[1] == ":" and path[0].isalpha():
        path = "/" + path[0].upper() + path[2:]

    if not path:
        return ""

    path = posixpath.normpath(path).lstrip("/")
    return "" if path == "." else path


def escapes_root(dest: str) -> bool:
    """Whether a destination climbs above the archive root (``../etc/x``)."""
    name = to_archive_path(dest)
    return name == ".." or name.startswith("../")


def resolve_destination(
    dest: str,
    source_is_dir: bool,
    relative: str = ".",
    source_name: str = "",
) -> str:
    """Compute the in-archive name for a mapped source.

    Args:
        dest: Declared destination string
        source_is_dir: Whether the mapping source is a directory
        relative: Path of the entry relative to a directory source
        source_name: Base name of a file source

    Returns:
        Archive entry name
    """
    if source_is_dir:
        prefix = dest.rstrip("/\\")
        relative = normalize_separators(relative)
        if relative in ("", "."):
            target = prefix
        elif prefix:
            target = prefix + "/" + relative
        else:
            target = relative
    elif has_trailing_separator(dest):
        target = dest + source_name
    else:
        target = dest

    return to_archive_path(target)
