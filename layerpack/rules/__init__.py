"""layerpack Rules System.

This module provides the path filters used while assembling a layer:
- PatternMatcher: Glob pattern matching with ``*``, ``**`` and ``?``
- InclusionFilter: Exclude/include decision with exclude precedence

Filters are evaluated against paths relative to a file mapping's source.
"""

from .patterns import (
    InclusionFilter,
    PatternEntry,
    PatternMatcher,
    compile_pattern,
    match_pattern,
    normalize_separators,
    should_include_file,
)

__all__ = [
    "PatternEntry",
    "PatternMatcher",
    "InclusionFilter",
    "compile_pattern",
    "match_pattern",
    "normalize_separators",
    "should_include_file",
]
