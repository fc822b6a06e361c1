"""Excluded and required config constraints.

A package may explicitly exclude config from auto-detection or require
config regardless of other assignment. Both are tracked as
``{type: {key: label}}`` maps while a selection is being reconciled and
flattened back to full config names when the package is stored.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from enum import Enum
from typing import Any

from featurectl.models.config_item import ConfigItem


class ConstraintKind(str, Enum):
    """Kind of constraint placed on a config item."""

    EXCLUDED = "excluded"
    REQUIRED = "required"


ConstraintMap = dict[str, dict[str, str]]


class ConstraintMaps:
    """Enum-keyed pair of excluded/required maps.

    Example:
        >>> maps = ConstraintMaps()
        >>> maps.add(ConstraintKind.REQUIRED, "view", "frontpage", "Frontpage")
        >>> maps.has(ConstraintKind.REQUIRED, "view", "frontpage")
        True
    """

    def __init__(
        self,
        excluded: ConstraintMap | None = None,
        required: ConstraintMap | None = None,
    ) -> None:
        self._maps: dict[ConstraintKind, ConstraintMap] = {
            ConstraintKind.EXCLUDED: _copy_map(excluded or {}),
            ConstraintKind.REQUIRED: _copy_map(required or {}),
        }

    @classmethod
    def from_names(
        cls,
        excluded: Iterable[str],
        required: Iterable[str],
        collection: Mapping[str, ConfigItem],
    ) -> ConstraintMaps:
        """Build maps from full config names.

        Names absent from the live collection are skipped.

        Args:
            excluded: Full names of excluded config.
            required: Full names of required config.
            collection: Live config collection keyed by full name.

        Returns:
            ConstraintMaps populated with the known items.
        """
        maps = cls()
        pairs = ((ConstraintKind.EXCLUDED, excluded), (ConstraintKind.REQUIRED, required))
        for kind, names in pairs:
            for name in names:
                item = collection.get(name)
                if item is None:
                    continue
                maps.add(kind, item.type, item.short_name, item.label)
        return maps

    def has(self, kind: ConstraintKind, component: str, key: str) -> bool:
        """Check if an item carries a constraint."""
        return key in self._maps[kind].get(component, {})

    def add(self, kind: ConstraintKind, component: str, key: str, label: str | None = None) -> None:
        """Place a constraint on an item."""
        self._maps[kind].setdefault(component, {})[key] = label if label is not None else key

    def discard(self, kind: ConstraintKind, component: str, key: str) -> None:
        """Remove a constraint from an item if present."""
        entries = self._maps[kind].get(component)
        if entries is None:
            return
        entries.pop(key, None)
        if not entries:
            del self._maps[kind][component]

    def get(self, kind: ConstraintKind) -> ConstraintMap:
        """Get a copy of one map."""
        return _copy_map(self._maps[kind])

    def keys(self, kind: ConstraintKind) -> list[tuple[str, str]]:
        """List the (component, key) pairs carrying a constraint."""
        return [
            (component, key)
            for component, entries in self._maps[kind].items()
            for key in entries
        ]

    def full_names(self, kind: ConstraintKind, full_name: Callable[[str, str], str]) -> list[str]:
        """Flatten a map back to full config names for storage.

        Args:
            kind: Which map to flatten.
            full_name: Callable building a full name from (component, key).

        Returns:
            Full config names in insertion order.
        """
        return [full_name(component, key) for component, key in self.keys(kind)]

    def copy(self) -> ConstraintMaps:
        """Create an independent copy."""
        return ConstraintMaps(
            excluded=self._maps[ConstraintKind.EXCLUDED],
            required=self._maps[ConstraintKind.REQUIRED],
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON storage."""
        return {kind.value: _copy_map(self._maps[kind]) for kind in ConstraintKind}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ConstraintMaps:
        """Deserialize from dictionary."""
        return cls(
            excluded=_coerce_map(data.get(ConstraintKind.EXCLUDED.value, {})),
            required=_coerce_map(data.get(ConstraintKind.REQUIRED.value, {})),
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ConstraintMaps):
            return NotImplemented
        return self._maps == other._maps

    def __repr__(self) -> str:
        return (
            f"ConstraintMaps(excluded={self._maps[ConstraintKind.EXCLUDED]!r}, "
            f"required={self._maps[ConstraintKind.REQUIRED]!r})"
        )


def _copy_map(source: Mapping[str, Mapping[str, str]]) -> ConstraintMap:
    return {component: dict(entries) for component, entries in source.items() if entries}


def _coerce_map(raw: object) -> ConstraintMap:
    if not isinstance(raw, Mapping):
        return {}
    return {
        str(component): {str(key): str(label) for key, label in entries.items()}
        for component, entries in raw.items()
        if isinstance(entries, Mapping)
    }
