"""Layer property sets and their scope merge.

Properties can be declared globally, per layer and per file mapping. A value
set at a more specific scope always wins; an unset value (``None`` or ``""``)
inherits from the next broader scope.
"""

from dataclasses import dataclass, fields
from typing import Any, Dict, Mapping, Optional

from layerpack.core.constants import ConfigKey, Defaults

# Build configuration key for every PropertySet field
FIELD_KEYS = {
    "file_permissions": ConfigKey.FILE_PERMISSIONS,
    "directory_permissions": ConfigKey.DIRECTORY_PERMISSIONS,
    "user": ConfigKey.USER,
    "group": ConfigKey.GROUP,
    "timestamp": ConfigKey.TIMESTAMP,
}


def _is_set(value: Optional[str]) -> bool:
    return value is not None and value != ""


@dataclass(frozen=True)
class PropertySet:
    """Five independently optional header properties."""

    file_permissions: Optional[str] = None
    directory_permissions: Optional[str] = None
    user: Optional[str] = None
    group: Optional[str] = None
    timestamp: Optional[str] = None

    def merge(self, override: Optional["PropertySet"]) -> "PropertySet":
        """Merge a more specific property set over this one.

        Args:
            override: More specific scope, or None

        Returns:
            New PropertySet where every field set on ``override`` wins
        """
        if override is None:
            return self

        merged = {}
        for f in fields(self):
            value = getattr(override, f.name)
            merged[f.name] = value if _is_set(value) else getattr(self, f.name)
        return PropertySet(**merged)

    def is_empty(self) -> bool:
        return not any(_is_set(getattr(self, f.name)) for f in fields(self))

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "PropertySet":
        """Build a PropertySet from a configuration mapping.

        Scalar values are converted to strings so YAML integers such as
        ``filePermissions: 755`` keep their textual form.
        """
        if not data:
            return cls()

        values: Dict[str, Optional[str]] = {}
        for name, key in FIELD_KEYS.items():
            raw = data.get(key)
            values[name] = None if raw is None else str(raw)
        return cls(**values)

    def to_dict(self) -> Dict[str, str]:
        return {
            key: getattr(self, name)
            for name, key in FIELD_KEYS.items()
            if _is_set(getattr(self, name))
        }


@dataclass(frozen=True)
class ResolvedProperties:
    """Final property values for one archive entry.

    Permission and timestamp fields may still be empty; the archive writer
    substitutes its own defaults for them. Owner and group are always set.
    """

    file_permissions: str = ""
    directory_permissions: str = ""
    user: str = Defaults.OWNER
    group: str = Defaults.GROUP
    timestamp: str = ""


def resolve_properties(
    *scopes: Optional[PropertySet],
    default_user: str = Defaults.OWNER,
    default_group: str = Defaults.GROUP,
) -> ResolvedProperties:
    """Merge property scopes from broadest to most specific.

    Args:
        *scopes: Property sets ordered global, layer, mapping (None skipped)
        default_user: Owner id used when no scope sets one
        default_group: Group id used when no scope sets one

    Returns:
        ResolvedProperties for the most specific scope
    """
    merged = PropertySet()
    for scope in scopes:
        merged = merged.merge(scope)

    return ResolvedProperties(
        file_permissions=merged.file_permissions or "",
        directory_permissions=merged.directory_permissions or "",
        user=merged.user if _is_set(merged.user) else default_user,
        group=merged.group if _is_set(merged.group) else default_group,
        timestamp=merged.timestamp or "",
    )
