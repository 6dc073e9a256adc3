"""Tests for destination path resolution."""
import pytest

from layerpack.layers.paths import (
    escapes_root,
    has_trailing_separator,
    resolve_destination,
    to_archive_path,
)


class TestToArchivePath:
    """Tests for to_archive_path()."""

    @pytest.mark.parametrize(
        "path,expected",
        [
            ("/home/run.sh", "home/run.sh"),
            ("home/run.sh", "home/run.sh"),
            ("/opt//app/./bin/", "opt/app/bin"),
            ("/opt/app/../lib", "opt/lib"),
            ("\\opt\\app", "opt/app"),
            ("C:\\app\\bin", "C/app/bin"),
            ("c:/app", "C/app"),
            ("/", ""),
            ("", ""),
            (".", ""),
        ],
    )
    def test_normalization(self, path, expected):
        """Test names are relative, clean and slash-separated."""
        assert to_archive_path(path) == expected

    def test_no_backslashes(self):
        """Test output never contains host separators."""
        assert "\\" not in to_archive_path("D:\\x\\y\\z.txt")


class TestEscapesRoot:
    """Tests for escapes_root()."""

    @pytest.mark.parametrize("dest", ["..", "../etc/x", "a/../../b", "..\\up\\"])
    def test_escaping(self, dest):
        assert escapes_root(dest)

    @pytest.mark.parametrize("dest", ["/", "/home/run.sh", "a/../b", "/../x", "..x/y"])
    def test_inside(self, dest):
        """Test rooted ".." collapses at the root and "..x" is an ordinary name."""
        assert not escapes_root(dest)


class TestHasTrailingSeparator:
    """Tests for has_trailing_separator()."""

    def test_slash(self):
        assert has_trailing_separator("/home/")

    def test_backslash(self):
        assert has_trailing_separator("C:\\app\\")

    def test_none(self):
        assert not has_trailing_separator("/home")


class TestResolveDestination:
    """Tests for resolve_destination()."""

    def test_file_to_directory(self):
        """Test a trailing separator appends the source name."""
        assert resolve_destination("/home/", False, source_name="run.sh") == "home/run.sh"

    def test_file_to_directory_backslash(self):
        """Test a trailing backslash also appends the source name."""
        assert resolve_destination("C:\\app\\", False, source_name="x.exe") == "C/app/x.exe"

    def test_file_renamed(self):
        """Test a destination without trailing separator is the full name."""
        assert resolve_destination("/etc/app.conf", False, source_name="local.conf") == "etc/app.conf"

    def test_directory_root(self):
        """Test the source root maps onto the destination itself."""
        assert resolve_destination("/opt/app/", True) == "opt/app"
        assert resolve_destination("/opt/app", True, relative=".") == "opt/app"

    def test_directory_child(self):
        """Test descendants are joined under the destination."""
        assert resolve_destination("/opt/app", True, relative="sub/c.txt") == "opt/app/sub/c.txt"
        assert resolve_destination("/opt/app/", True, relative="sub/c.txt") == "opt/app/sub/c.txt"

    def test_directory_child_backslash(self):
        """Test host separators in the relative path are normalized."""
        assert resolve_destination("/opt", True, relative="sub\\c.txt") == "opt/sub/c.txt"

    def test_directory_to_archive_root(self):
        """Test mapping a directory to "/" places children at the top."""
        assert resolve_destination("/", True) == ""
        assert resolve_destination("/", True, relative="a.txt") == "a.txt"
