#!/usr/bin/env python3
"""Glob pattern matching and include/exclude decisions for layer content.

This module provides the filters applied to every path that may enter a layer:
- Glob pattern matching (*.sh, **/*.txt, file?.log)
- Path separator normalization for consistent matching
- Multiple pattern support with OR logic
- Exclude-over-include precedence

Supported tokens:
    ?    exactly one character
    *    zero or more characters within one path segment
    **   zero or more characters, "/" included, so "**/*.txt" needs a directory

Everything else, including ".", "[", "{" and "!", is matched literally.
Matching is case-sensitive and anchored at both ends.

Example:
    >>> match_pattern("a/b/c.txt", "**/*.txt")
    True
    >>> should_include_file("f.txt", excludes=["*.txt"], includes=["f.*"])
    False
"""

import re
from dataclasses import dataclass
from functools import lru_cache
from pathlib import PurePath
from typing import Iterable, List, Optional, Pattern, Union


@dataclass
class PatternEntry:
    """A glob pattern with its compiled form."""

    pattern: str
    compiled: Pattern

    def matches(self, path: Union[str, PurePath]) -> bool:
        if isinstance(path, PurePath):
            path = str(path)
        if path == self.pattern:
            return True
        return bool(self.compiled.match(normalize_separators(path)))


def normalize_separators(path: Union[str, PurePath]) -> str:
    """Convert host separators to forward slashes.

    Args:
        path: Path or pattern to normalize

    Returns:
        Normalized string
    """
    if isinstance(path, PurePath):
        path = str(path)
    return path.replace("\\", "/")


@lru_cache(maxsize=1024)
def compile_pattern(pattern: str) -> Pattern:
    """Translate a glob pattern into an anchored regular expression.

    Args:
        pattern: Glob pattern (e.g., "*.py", "**/*.txt")

    Returns:
        Compiled regular expression
    """
    pattern = normalize_separators(pattern)
    parts = []
    i = 0
    length = len(pattern)

    while i < length:
        c = pattern[i]
        if c == "*":
            if i + 1 < length and pattern[i + 1] == "*":
                parts.append(".*")
                i += 2
                continue
            parts.append("[^/]*")
        elif c == "?":
            parts.append(".")
        else:
            parts.append(re.escape(c))
        i += 1

    return re.compile("^" + "".join(parts) + r"\Z", re.DOTALL)


def match_pattern(path: Union[str, PurePath], pattern: str) -> bool:
    """Check whether a relative path matches a glob pattern.

    Args:
        path: Candidate path
        pattern: Glob pattern

    Returns:
        True if the whole path matches
    """
    return PatternEntry(pattern, compile_pattern(pattern)).matches(path)


class PatternMatcher:
    """Glob patterns evaluated with OR logic."""

    def __init__(self, patterns: Optional[Iterable[str]] = None):
        self._patterns: List[PatternEntry] = []
        for pattern in patterns or ():
            self.add_pattern(pattern)

    def add_pattern(self, pattern: str) -> None:
        self._patterns.append(PatternEntry(pattern=pattern, compiled=compile_pattern(pattern)))

    def first_match(self, path: Union[str, PurePath]) -> Optional[str]:
        """Return the first pattern matching path, in declaration order."""
        for entry in self._patterns:
            if entry.matches(path):
                return entry.pattern
        return None

    def matches(self, path: Union[str, PurePath]) -> bool:
        return self.first_match(path) is not None

    def __len__(self) -> int:
        return len(self._patterns)

    def __bool__(self) -> bool:
        return bool(self._patterns)


class InclusionFilter:
    """Exclude/include pattern lists combined into a keep/drop verdict.

    Logic:
    1. Matches any exclude pattern → drop (regardless of includes)
    2. Include patterns present → keep only if one matches
    3. Otherwise → keep

    Args:
        excludes: Patterns that always drop a path
        includes: Patterns a path must match when non-empty
    """

    def __init__(
        self,
        excludes: Optional[Iterable[str]] = None,
        includes: Optional[Iterable[str]] = None,
    ):
        self._exclude = PatternMatcher(excludes)
        self._include = PatternMatcher(includes)

    def excluded_by(self, path: Union[str, PurePath]) -> Optional[str]:
        """Return the exclude pattern that drops path, if any."""
        return self._exclude.first_match(path)

    def should_include(self, path: Union[str, PurePath]) -> bool:
        """Check if path should enter the layer.

        Args:
            path: Path relative to the mapping source

        Returns:
            True if path should be included
        """
        if self._exclude.matches(path):
            return False

        if self._include:
            return self._include.matches(path)

        return True


def should_include_file(
    path: Union[str, PurePath],
    excludes: Optional[Iterable[str]] = None,
    includes: Optional[Iterable[str]] = None,
) -> bool:
    """Decide whether a path passes the exclude/include lists.

    Args:
        path: Path relative to the mapping source
        excludes: Exclude patterns
        includes: Include patterns

    Returns:
        True if path should be included
    """
    return InclusionFilter(excludes, includes).should_include(path)
