"""featurectl settings.

This module provides the settings model and I/O functions for package
export: where generated packages and archives go, whether conflicts are
allowed by default, and whether an install profile is generated.

Settings are stored in ~/.config/featurectl/settings.toml
"""

import logging
import os
import tomllib
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Annotated

import tomli_w
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from featurectl.core.paths import get_settings_path

logger = logging.getLogger(__name__)


class ProfileSettings(BaseModel):
    """Install profile generation settings.

    Attributes:
        add: Generate an install profile when exporting all packages.
        machine_name: Profile machine name; defaults to the bundle name.
    """

    model_config = ConfigDict(extra="forbid")

    add: Annotated[bool, Field(description="Generate an install profile on export")] = False
    machine_name: Annotated[str | None, Field(description="Profile machine name")] = None


class FeaturesSettings(BaseModel):
    """Settings for package export.

    Attributes:
        export_path: Directory packages are written to. Relative paths are
            resolved against the site manifest's directory.
        archive_path: Directory package archives are written to.
        allow_conflicts: Default for allowing config in more than one package.
        profile: Install profile generation settings.
    """

    model_config = ConfigDict(extra="forbid")

    export_path: Annotated[str, Field(min_length=1, description="Package export directory")] = (
        "modules/custom"
    )
    archive_path: Annotated[
        str, Field(min_length=1, description="Package archive directory")
    ] = "archives"
    allow_conflicts: Annotated[
        bool, Field(description="Allow config to be exported to more than one package")
    ] = False
    profile: Annotated[
        ProfileSettings,
        Field(default_factory=ProfileSettings, description="Install profile settings"),
    ]

    @field_validator("export_path", "archive_path")
    @classmethod
    def validate_relative_or_absolute(cls, value: str) -> str:
        """Strip trailing separators from directory settings."""
        stripped = value.rstrip("/")
        if not stripped:
            msg = "directory setting cannot be the filesystem root"
            raise ValueError(msg)
        return stripped

    def resolve_export_root(self, site_path: Path) -> Path:
        """Resolve the export directory against the site manifest location."""
        return _resolve(self.export_path, site_path)

    def resolve_archive_root(self, site_path: Path) -> Path:
        """Resolve the archive directory against the site manifest location."""
        return _resolve(self.archive_path, site_path)


def _resolve(value: str, site_path: Path) -> Path:
    path = Path(value).expanduser()
    if path.is_absolute():
        return path
    return site_path.parent / path


class SettingsError(Exception):
    """Base exception for settings errors."""


class SettingsParseError(SettingsError):
    """Raised when the settings file cannot be parsed."""


def load_settings(path: Path | None = None) -> FeaturesSettings:
    """Load settings from a TOML file.

    A missing file is not an error: defaults are returned.

    Args:
        path: Path to the settings file. If None, uses the default path.

    Returns:
        Validated FeaturesSettings object.

    Raises:
        SettingsParseError: If the TOML syntax is invalid.
        SettingsError: If the file cannot be read or has invalid content.
    """
    settings_path = path or get_settings_path()

    if not settings_path.exists():
        logger.debug("No settings file at %s, using defaults", settings_path)
        return get_default_settings()

    try:
        with open(settings_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise SettingsParseError(f"Invalid TOML syntax: {e}") from e
    except OSError as e:
        raise SettingsError(f"Failed to read settings: {e}") from e

    try:
        return FeaturesSettings.model_validate(data)
    except (ValueError, ValidationError) as e:
        raise SettingsError(f"Invalid settings content: {e}") from e


def save_settings(settings: FeaturesSettings, path: Path | None = None) -> Path:
    """Save settings to a TOML file.

    The file is written atomically by first writing to a temporary file
    and then using os.replace() for atomic rename.

    Args:
        settings: The FeaturesSettings object to save.
        path: Path to save the settings. If None, uses the default path.

    Returns:
        Path where the settings were saved.

    Raises:
        SettingsError: If the file cannot be written.
    """
    settings_path = path or get_settings_path()
    settings_path.parent.mkdir(parents=True, exist_ok=True)

    data = settings.model_dump(exclude_none=True)

    tmp_path: Path | None = None
    try:
        with NamedTemporaryFile(
            mode="wb",
            dir=settings_path.parent,
            delete=False,
            suffix=".tmp",
        ) as f:
            tmp_path = Path(f.name)
            tomli_w.dump(data, f)
        os.replace(str(tmp_path), str(settings_path))
    except OSError as e:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
        raise SettingsError(f"Failed to write settings: {e}") from e

    return settings_path


def get_default_settings() -> FeaturesSettings:
    """Create default FeaturesSettings."""
    return FeaturesSettings()
