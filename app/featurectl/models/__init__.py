"""Data models for featurectl.

This module exports the core data structures used throughout the application.
"""

from featurectl.models.config_item import SIMPLE_CONFIG_TYPE, ConfigItem, ConfigType
from featurectl.models.package import (
    DEFAULT_BUNDLE,
    Bundle,
    Package,
    PackageStatus,
    default_bundle,
)
from featurectl.models.selection import (
    EXPORT_SECTIONS,
    ComponentSelection,
    FormSubmission,
    Placement,
    Section,
    SelectionState,
)
from featurectl.models.site import ConfigEntry, ConfigTypeEntry, SiteManifest, SiteMeta

__all__ = [
    "DEFAULT_BUNDLE",
    "EXPORT_SECTIONS",
    "SIMPLE_CONFIG_TYPE",
    "Bundle",
    "ComponentSelection",
    "ConfigEntry",
    "ConfigItem",
    "ConfigType",
    "ConfigTypeEntry",
    "FormSubmission",
    "Package",
    "PackageStatus",
    "Placement",
    "Section",
    "SelectionState",
    "SiteManifest",
    "SiteMeta",
    "default_bundle",
]
