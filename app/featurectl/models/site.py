"""Site manifest models.

This module defines the Pydantic models representing the site.toml
structure: the live configuration collection together with the config
type registry, bundles, packages and installed extensions.
"""

from datetime import datetime
from typing import Annotated, Any, Self

from pydantic import BaseModel, ConfigDict, Field, model_validator

from featurectl.models.package import DEFAULT_BUNDLE, Bundle, Package, default_bundle


class SiteMeta(BaseModel):
    """Metadata section of the site manifest.

    Attributes:
        version: Site manifest schema version (e.g., "1.0").
        created: Timestamp when the manifest was first created.
        updated: Timestamp when the manifest was last modified.
    """

    model_config = ConfigDict(extra="forbid")

    version: Annotated[str, Field(description="Site manifest schema version")] = "1.0"
    created: Annotated[datetime, Field(description="Timestamp when manifest was created")]
    updated: Annotated[datetime, Field(description="Timestamp when manifest was last modified")]


class ConfigTypeEntry(BaseModel):
    """Registry entry for a config type.

    Attributes:
        label: Human-readable label.
        prefix: Full-name prefix; defaults to the type name.
    """

    model_config = ConfigDict(extra="forbid")

    label: Annotated[str, Field(description="Human-readable label")]
    prefix: Annotated[str | None, Field(description="Full-name prefix")] = None


class ConfigEntry(BaseModel):
    """A configuration item in the site's active storage.

    Attributes:
        type: Config type machine name.
        label: Human-readable label.
        package: Owning package machine name, if any.
        provider: Extension providing the item, if any.
        dependencies: Full names of config this item depends on.
        data: Raw configuration payload.
    """

    model_config = ConfigDict(extra="forbid")

    type: Annotated[str, Field(min_length=1, description="Config type")]
    label: Annotated[str, Field(description="Human-readable label")] = ""
    package: Annotated[str | None, Field(description="Owning package")] = None
    provider: Annotated[str | None, Field(description="Providing extension")] = None
    dependencies: Annotated[
        list[str], Field(default_factory=list, description="Config dependencies")
    ]
    data: Annotated[dict[str, Any], Field(default_factory=dict, description="Config payload")]


class SiteManifest(BaseModel):
    """Complete snapshot of a site's configuration and packages.

    Attributes:
        meta: Metadata section with version and timestamps.
        config_types: Config type registry keyed by type machine name.
        config: Active configuration keyed by full config name.
        bundles: Bundles keyed by machine name.
        packages: Packages keyed by full machine name.
        extensions: Installed extensions, machine name to human name.
    """

    model_config = ConfigDict(extra="forbid")

    meta: Annotated[SiteMeta, Field(description="Site manifest metadata")]
    config_types: Annotated[
        dict[str, ConfigTypeEntry], Field(default_factory=dict, description="Config types")
    ]
    config: Annotated[
        dict[str, ConfigEntry], Field(default_factory=dict, description="Active config")
    ]
    bundles: Annotated[dict[str, Bundle], Field(default_factory=dict, description="Bundles")]
    packages: Annotated[dict[str, Package], Field(default_factory=dict, description="Packages")]
    extensions: Annotated[
        dict[str, str], Field(default_factory=dict, description="Installed extensions")
    ]

    @model_validator(mode="before")
    @classmethod
    def fill_machine_names(cls, data: Any) -> Any:
        """Copy table keys into bundle and package machine names."""
        if not isinstance(data, dict):
            return data
        data = dict(data)
        for section in ("bundles", "packages"):
            entries = data.get(section)
            if not isinstance(entries, dict):
                continue
            data[section] = {
                key: {"machine_name": key, **entry} if isinstance(entry, dict) else entry
                for key, entry in entries.items()
            }
        return data

    @model_validator(mode="after")
    def validate_references(self) -> Self:
        """Validate keys and ensure the default bundle exists."""
        for key, package in self.packages.items():
            if package.machine_name != key:
                msg = f"Package key '{key}' does not match machine name '{package.machine_name}'"
                raise ValueError(msg)
        if DEFAULT_BUNDLE not in self.bundles:
            self.bundles[DEFAULT_BUNDLE] = default_bundle()
        return self

    def get_bundle(self, machine_name: str) -> Bundle | None:
        """Get a bundle by machine name."""
        return self.bundles.get(machine_name)

    @property
    def package_count(self) -> int:
        """Total number of packages defined in the site."""
        return len(self.packages)
