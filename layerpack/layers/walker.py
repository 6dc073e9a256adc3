"""Lazy, deterministic traversal of a mapping source.

Entries are produced depth-first with each directory's children sorted by
name, so the order is stable across filesystems whose listings are
unordered. The root itself is produced first with relative path ".".
"""

import os
import stat
from dataclasses import dataclass
from typing import Callable, Iterator, Optional

ROOT = "."


@dataclass(frozen=True)
class SourceEntry:
    """A discovered filesystem entry."""

    path: str
    relative: str
    stat: os.stat_result

    @property
    def is_root(self) -> bool:
        return self.relative == ROOT

    @property
    def is_dir(self) -> bool:
        return stat.S_ISDIR(self.stat.st_mode)

    @property
    def is_file(self) -> bool:
        return stat.S_ISREG(self.stat.st_mode)

    @property
    def is_symlink(self) -> bool:
        return stat.S_ISLNK(self.stat.st_mode)


PruneFn = Callable[[SourceEntry], bool]


def walk_source(root: str, prune: Optional[PruneFn] = None) -> Iterator[SourceEntry]:
    """Yield the root and every descendant of a source path.

    The root is followed if it is a symlink; descendants are not, so
    symlinked directories are reported but never descended. Directories are
    tracked on an explicit stack, so depth is not bounded by recursion.

    Args:
        root: File or directory to traverse
        prune: Called for each descendant; True skips it and its subtree

    Yields:
        SourceEntry for each visited path

    Raises:
        OSError: If the root cannot be stat'ed or a directory cannot be read
    """
    root_entry = SourceEntry(root, ROOT, os.stat(root))
    yield root_entry

    if not root_entry.is_dir:
        return

    # (remaining children, relative prefix) per open directory
    stack = [(_sorted_children(root), "")]
    while stack:
        children, prefix = stack[-1]
        child = next(children, None)
        if child is None:
            stack.pop()
            continue

        relative = f"{prefix}/{child.name}" if prefix else child.name
        entry = SourceEntry(child.path, relative, child.stat(follow_symlinks=False))

        if prune is not None and prune(entry):
            continue

        yield entry

        if entry.is_dir:
            stack.append((_sorted_children(child.path), relative))


def _sorted_children(directory: str) -> Iterator[os.DirEntry]:
    with os.scandir(directory) as it:
        return iter(sorted(it, key=lambda child: child.name))
