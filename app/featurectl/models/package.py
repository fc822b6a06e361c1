"""Package and bundle models.

A package is an exportable bundle of configuration items realized as an
installable extension. Bundles group packages under a shared machine-name
prefix.
"""

from enum import Enum
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_BUNDLE = "default"


class PackageStatus(str, Enum):
    """Export status of a package.

    Attributes:
        NO_EXPORT: Package only exists in the site, nothing was generated yet.
        UNINSTALLED: Package was generated but its extension is not installed.
        INSTALLED: Package was generated and its extension is installed.
    """

    NO_EXPORT = "no_export"
    UNINSTALLED = "uninstalled"
    INSTALLED = "installed"


class Package(BaseModel):
    """Working state of a single feature package.

    Attributes:
        machine_name: Full machine name, including any bundle prefix.
        name: Human-readable name.
        description: Short description shown to site builders.
        version: Version string (e.g., "1.0.0").
        bundle: Machine name of the bundle the package belongs to.
        directory: Export directory relative to the export root, if set.
        status: Export status.
        config: Full names of config currently assigned to the package.
        config_orig: Full names of config in the last export.
        excluded: Full names of config excluded from auto-detection.
        required: Full names of config always assigned, or True for all.
        dependencies: Extensions the package depends on.
        dependency_info: Extensions recorded at the last export.
    """

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    machine_name: Annotated[str, Field(min_length=1, description="Full machine name")]
    name: Annotated[str, Field(description="Human-readable name")] = ""
    description: Annotated[str, Field(description="Package description")] = ""
    version: Annotated[str, Field(description="Package version")] = ""
    bundle: Annotated[str, Field(description="Bundle machine name")] = DEFAULT_BUNDLE
    directory: Annotated[str | None, Field(description="Export directory")] = None
    status: Annotated[PackageStatus, Field(description="Export status")] = PackageStatus.NO_EXPORT
    config: Annotated[list[str], Field(default_factory=list, description="Assigned config")]
    config_orig: Annotated[
        list[str], Field(default_factory=list, description="Config in the last export")
    ]
    excluded: Annotated[list[str], Field(default_factory=list, description="Excluded config")]
    required: Annotated[
        list[str] | bool, Field(default_factory=list, description="Required config or True")
    ]
    dependencies: Annotated[
        list[str], Field(default_factory=list, description="Extension dependencies")
    ]
    dependency_info: Annotated[
        list[str], Field(default_factory=list, description="Dependencies in the last export")
    ]

    @field_validator("required", mode="before")
    @classmethod
    def normalize_required(cls, value: object) -> object:
        """Treat ``required = false`` as an empty list."""
        if value is False:
            return []
        return value

    @property
    def required_all(self) -> bool:
        """Check if every item of the package is marked as required."""
        return self.required is True

    @property
    def required_list(self) -> list[str]:
        """Required config names, empty when all config is required."""
        if isinstance(self.required, list):
            return self.required
        return []

    @property
    def is_exported(self) -> bool:
        """Check if the package has been generated at least once."""
        return self.status != PackageStatus.NO_EXPORT

    def remove_config(self, name: str) -> None:
        """Remove a config item from the current assignment."""
        if name in self.config:
            self.config = [item for item in self.config if item != name]

    def remove_dependency(self, name: str) -> None:
        """Remove an extension dependency."""
        if name in self.dependencies:
            self.dependencies = [dep for dep in self.dependencies if dep != name]


class Bundle(BaseModel):
    """A namespace grouping packages under a shared machine-name prefix.

    Attributes:
        machine_name: Bundle machine name, also used as package prefix.
        name: Human-readable name.
        description: Optional description.
    """

    model_config = ConfigDict(extra="forbid")

    machine_name: Annotated[str, Field(min_length=1, description="Bundle machine name")]
    name: Annotated[str, Field(description="Human-readable name")] = ""
    description: Annotated[str, Field(description="Bundle description")] = ""

    @property
    def is_default(self) -> bool:
        """Check if this is the default (unprefixed) bundle."""
        return self.machine_name == DEFAULT_BUNDLE

    @property
    def prefix(self) -> str:
        """Machine-name prefix applied to packages in this bundle."""
        return "" if self.is_default else f"{self.machine_name}_"

    def full_name(self, short_name: str) -> str:
        """Prepend the bundle prefix unless already present."""
        if self.is_default or short_name.startswith(self.prefix):
            return short_name
        return f"{self.prefix}{short_name}"

    def short_name(self, full_name: str) -> str:
        """Strip the bundle prefix if present."""
        if not self.is_default and full_name.startswith(self.prefix):
            return full_name[len(self.prefix) :]
        return full_name


def default_bundle() -> Bundle:
    """Create the default bundle."""
    return Bundle(machine_name=DEFAULT_BUNDLE, name="Default")
