"""Tests for glob pattern matching and inclusion decisions."""
from pathlib import PurePosixPath

import pytest

from layerpack.rules.patterns import (
    InclusionFilter,
    PatternEntry,
    PatternMatcher,
    compile_pattern,
    match_pattern,
    normalize_separators,
    should_include_file,
)


class TestNormalizeSeparators:
    """Tests for separator normalization."""

    def test_backslashes_become_slashes(self):
        """Test host separators are converted."""
        assert normalize_separators("sub\\dir\\file.txt") == "sub/dir/file.txt"

    def test_slashes_unchanged(self):
        """Test slash paths are returned unchanged."""
        assert normalize_separators("sub/dir") == "sub/dir"

    def test_pure_path(self):
        """Test PurePath input is accepted."""
        assert normalize_separators(PurePosixPath("a/b")) == "a/b"


class TestMatchPattern:
    """Tests for match_pattern()."""

    def test_literal_self_match(self):
        """Test a literal pattern matches itself."""
        assert match_pattern("a.txt", "a.txt")
        assert match_pattern("dir/file", "dir/file")

    def test_exact_equality_short_circuits(self):
        """Test equal strings match even with glob characters."""
        assert match_pattern("weird*name?", "weird*name?")
        assert match_pattern("a\\b", "a\\b")

    def test_star_within_segment(self):
        """Test * does not cross a separator."""
        assert match_pattern("a.txt", "*.txt")
        assert not match_pattern("dir/a.txt", "*.txt")
        assert match_pattern("dir/a.txt", "dir/*.txt")

    def test_star_matches_empty(self):
        """Test * matches zero characters."""
        assert match_pattern(".txt", "*.txt")

    def test_double_star_crosses_segments(self):
        """Test ** matches across separators."""
        assert match_pattern("a/b/c.txt", "**/*.txt")
        assert match_pattern("a/b/c", "**")
        assert match_pattern("build/x/y.o", "build/**")

    def test_double_star_slash_needs_a_directory(self):
        """Test the slash after ** is literal, so top-level names do not match."""
        assert not match_pattern("c.txt", "**/*.txt")
        assert not match_pattern("a/b", "a/**/b")
        assert match_pattern("a/x/b", "a/**/b")

    def test_question_mark_single_character(self):
        """Test ? matches exactly one character."""
        assert match_pattern("file1.log", "file?.log")
        assert not match_pattern("file12.log", "file?.log")
        assert not match_pattern("file.log", "file?.log")

    def test_dot_is_literal(self):
        """Test . is not a wildcard."""
        assert not match_pattern("aXtxt", "a.txt")

    @pytest.mark.parametrize("pattern", ["[abc]", "{a,b}", "!a", "a+", "(a)", "a|b", "^a$"])
    def test_metacharacters_are_literal(self, pattern):
        """Test regex and extended glob syntax matches only literally."""
        assert match_pattern(pattern, pattern)
        assert not match_pattern("a", pattern)

    def test_case_sensitive(self):
        """Test matching is case-sensitive."""
        assert not match_pattern("a.txt", "*.TXT")
        assert not match_pattern("README", "readme")

    def test_anchored_both_ends(self):
        """Test partial matches are rejected."""
        assert not match_pattern("a.txt.bak", "*.txt")
        assert not match_pattern("xa.txt", "a.txt")
        assert not match_pattern("a.txt\n", "*.txt")

    def test_backslash_path_normalized(self):
        """Test host separators in the path are normalized."""
        assert match_pattern("sub\\c.txt", "sub/*.txt")

    def test_backslash_pattern_normalized(self):
        """Test host separators in the pattern are normalized."""
        assert match_pattern("sub/c.txt", "sub\\*.txt")

    def test_directory_name_pattern(self):
        """Test a bare directory name matches the directory only."""
        assert match_pattern("build", "build")
        assert not match_pattern("build/output.o", "build")

    def test_pure_path_input(self):
        """Test PurePath candidates are accepted."""
        assert match_pattern(PurePosixPath("sub/c.txt"), "**/*.txt")


class TestCompilePattern:
    """Tests for compile_pattern()."""

    def test_compiled_is_cached(self):
        """Test repeated compiles return the same object."""
        assert compile_pattern("*.py") is compile_pattern("*.py")

    def test_double_star_translation(self):
        """Test ** becomes .* and the slash stays literal."""
        assert compile_pattern("**/x").pattern == "^.*/x\\Z"


class TestPatternMatcher:
    """Tests for PatternMatcher."""

    def test_empty_matcher(self):
        """Test a matcher without patterns matches nothing."""
        matcher = PatternMatcher()
        assert not matcher
        assert len(matcher) == 0
        assert not matcher.matches("anything")

    def test_or_logic(self):
        """Test any pattern matching is enough."""
        matcher = PatternMatcher(["*.py", "*.txt"])
        assert matcher.matches("a.py")
        assert matcher.matches("b.txt")
        assert not matcher.matches("c.md")

    def test_add_pattern(self):
        """Test patterns can be added after creation."""
        matcher = PatternMatcher()
        matcher.add_pattern("*.log")
        assert len(matcher) == 1
        assert matcher.matches("x.log")

    def test_first_match_in_declaration_order(self):
        """Test the earliest matching pattern is reported."""
        matcher = PatternMatcher(["*.txt", "a.*"])
        assert matcher.first_match("a.txt") == "*.txt"
        assert matcher.first_match("a.md") == "a.*"
        assert matcher.first_match("b.md") is None


class TestPatternEntry:
    """Tests for PatternEntry."""

    def test_literal_equality_short_circuits(self):
        """Test a path equal to the pattern matches without the regex."""
        entry = PatternEntry("[x]", compile_pattern("[x]"))
        assert entry.matches("[x]")
        assert entry.matches(PurePosixPath("[x]"))
        assert not entry.matches("x")


class TestInclusionFilter:
    """Tests for InclusionFilter."""

    def test_no_filters_includes_everything(self):
        """Test empty lists include any path."""
        inclusion = InclusionFilter()
        assert inclusion.should_include("anything/at/all")
        assert inclusion.excluded_by("anything") is None

    def test_exclude_only(self):
        """Test excludes drop matches and keep the rest."""
        inclusion = InclusionFilter(excludes=["*.log"])
        assert not inclusion.should_include("b.log")
        assert inclusion.should_include("a.txt")

    def test_include_only(self):
        """Test includes keep only matches."""
        inclusion = InclusionFilter(includes=["*.txt"])
        assert inclusion.should_include("a.txt")
        assert not inclusion.should_include("b.log")

    def test_exclude_dominates_include(self):
        """Test a path matching both lists is excluded."""
        inclusion = InclusionFilter(excludes=["*.txt"], includes=["f.*"])
        assert not inclusion.should_include("f.txt")
        assert inclusion.should_include("f.md")

    def test_excluded_by(self):
        """Test the exclude check alone ignores includes."""
        inclusion = InclusionFilter(excludes=["build", "*.o"], includes=["*.txt"])
        assert inclusion.excluded_by("build") == "build"
        assert inclusion.excluded_by("x.o") == "*.o"
        assert inclusion.excluded_by("sub") is None


class TestShouldIncludeFile:
    """Tests for the should_include_file() convenience function."""

    @pytest.mark.parametrize(
        "path,excludes,includes,expected",
        [
            ("f.txt", [], [], True),
            ("f.txt", ["*.txt"], [], False),
            ("f.txt", [], ["*.md"], False),
            ("f.txt", [], ["f.*"], True),
            ("f.txt", ["*.txt"], ["f.*"], False),
            ("sub/f.txt", ["*.txt"], [], True),
            ("sub/f.txt", ["**/*.txt"], [], False),
        ],
    )
    def test_decision_table(self, path, excludes, includes, expected):
        """Test the include/exclude decision for common combinations."""
        assert should_include_file(path, excludes, includes) is expected

    def test_none_lists(self):
        """Test None is treated as an empty list."""
        assert should_include_file("f.txt", None, None)
