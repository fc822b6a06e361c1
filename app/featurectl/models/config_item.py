"""Configuration item models.

This module defines the immutable per-request snapshot of a single
configuration item and the registry entry describing a config type.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

# Config type whose full names carry no prefix
SIMPLE_CONFIG_TYPE = "system_simple"


@dataclass(frozen=True, slots=True)
class ConfigType:
    """A category of configuration (views, fields, content types, ...).

    Attributes:
        name: Machine name of the type (e.g., 'view').
        label: Human-readable label (e.g., 'View').
        prefix: Prefix of full config names of this type (e.g., 'views.view').
    """

    name: str
    label: str
    prefix: str

    def full_name(self, short_name: str) -> str:
        """Build the full config name for a short name of this type."""
        if self.name == SIMPLE_CONFIG_TYPE:
            return short_name
        return f"{self.prefix}.{short_name}"

    def short_name(self, full_name: str) -> str:
        """Strip this type's prefix from a full config name."""
        if self.name == SIMPLE_CONFIG_TYPE:
            return full_name
        head = f"{self.prefix}."
        if full_name.startswith(head):
            return full_name[len(head) :]
        return full_name


@dataclass(frozen=True, slots=True)
class ConfigItem:
    """Represents one configuration item in the live collection.

    This is an immutable snapshot taken when a request starts; ownership
    changes produce a new instance rather than mutating this one.

    Attributes:
        name: Full config name (e.g., 'views.view.frontpage').
        type: Config type machine name (e.g., 'view').
        short_name: Name without the type prefix (e.g., 'frontpage').
        label: Human-readable label.
        package: Machine name of the owning package, if any.
        provider: Extension providing this item, if any.
        dependencies: Full names of config this item depends on.
        dependents: Full names of config that depend on this item.
        data: Raw configuration payload.
    """

    name: str
    type: str
    short_name: str
    label: str
    package: str | None = field(default=None)
    provider: str | None = field(default=None)
    dependencies: tuple[str, ...] = field(default=())
    dependents: tuple[str, ...] = field(default=())
    data: Mapping[str, Any] = field(default_factory=dict, compare=False, hash=False)

    def __post_init__(self) -> None:
        """Validate item data after initialization."""
        if not self.name:
            msg = "Config name cannot be empty"
            raise ValueError(msg)
        if not self.type:
            msg = f"Config type cannot be empty for {self.name}"
            raise ValueError(msg)

    @property
    def is_packaged(self) -> bool:
        """Check if the item is owned by a package."""
        return bool(self.package)
