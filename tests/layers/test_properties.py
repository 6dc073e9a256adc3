"""Tests for property sets and scope resolution."""
import pytest

from layerpack.layers.properties import PropertySet, ResolvedProperties, resolve_properties


class TestPropertySet:
    """Tests for PropertySet."""

    def test_defaults_are_unset(self):
        """Test a new PropertySet is empty."""
        assert PropertySet().is_empty()

    def test_merge_override_wins(self):
        """Test set values on the override replace base values."""
        base = PropertySet(file_permissions="644", user="1000")
        merged = base.merge(PropertySet(file_permissions="600"))
        assert merged.file_permissions == "600"
        assert merged.user == "1000"

    def test_merge_empty_string_inherits(self):
        """Test an empty string does not clear an inherited value."""
        merged = PropertySet(group="50").merge(PropertySet(group=""))
        assert merged.group == "50"

    def test_merge_none(self):
        """Test merging None returns the base unchanged."""
        base = PropertySet(user="1")
        assert base.merge(None) is base

    def test_merge_does_not_mutate(self):
        """Test merge returns a new object."""
        base = PropertySet(user="1")
        base.merge(PropertySet(user="2"))
        assert base.user == "1"

    def test_from_dict(self):
        """Test configuration keys map onto fields."""
        props = PropertySet.from_dict(
            {
                "filePermissions": "644",
                "directoryPermissions": "755",
                "user": "1000",
                "group": "1000",
                "timestamp": "1700000000000",
            }
        )
        assert props == PropertySet("644", "755", "1000", "1000", "1700000000000")

    def test_from_dict_converts_scalars(self):
        """Test non-string scalars keep their textual form."""
        props = PropertySet.from_dict({"filePermissions": 755, "user": 0})
        assert props.file_permissions == "755"
        assert props.user == "0"

    def test_from_dict_empty(self):
        """Test None and {} produce an empty set."""
        assert PropertySet.from_dict(None).is_empty()
        assert PropertySet.from_dict({}).is_empty()

    def test_to_dict_skips_unset(self):
        """Test only set values are exported."""
        assert PropertySet(user="5", group="").to_dict() == {"user": "5"}


class TestResolveProperties:
    """Tests for resolve_properties()."""

    def test_no_scopes(self):
        """Test owner and group default to "0"."""
        resolved = resolve_properties()
        assert resolved == ResolvedProperties("", "", "0", "0", "")

    def test_precedence(self):
        """Test mapping beats layer beats global."""
        global_props = PropertySet(file_permissions="644", user="1000", group="1000")
        layer_props = PropertySet(file_permissions="600", user="2000")
        mapping_props = PropertySet(file_permissions="755")

        resolved = resolve_properties(global_props, layer_props, mapping_props)

        assert resolved.file_permissions == "755"
        assert resolved.user == "2000"
        assert resolved.group == "1000"

    def test_two_merges_order(self):
        """Test merging a→b then →c equals taking the most specific set value."""
        a = PropertySet(timestamp="1", group="a")
        b = PropertySet(timestamp="2")
        c = PropertySet(timestamp="", group="c")

        resolved = resolve_properties(a, b, c)

        assert resolved.timestamp == "2"
        assert resolved.group == "c"

    def test_none_scopes_skipped(self):
        """Test missing scopes are ignored."""
        resolved = resolve_properties(None, PropertySet(user="7"), None)
        assert resolved.user == "7"

    def test_explicit_defaults(self):
        """Test configurable owner/group fallbacks."""
        resolved = resolve_properties(
            PropertySet(group="9"), default_user="1000", default_group="1000"
        )
        assert resolved.user == "1000"
        assert resolved.group == "9"

    def test_empty_user_falls_back(self):
        """Test an empty owner at every scope uses the default."""
        resolved = resolve_properties(PropertySet(user=""), PropertySet(user=""))
        assert resolved.user == "0"

    @pytest.mark.parametrize("field", ["file_permissions", "directory_permissions", "timestamp"])
    def test_unset_stays_empty(self, field):
        """Test unset permission and timestamp fields resolve to ""."""
        assert getattr(resolve_properties(PropertySet()), field) == ""
