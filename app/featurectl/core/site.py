"""Site manifest file I/O operations.

This module provides functions for loading and saving site manifests
in TOML format with proper validation using Pydantic models.
"""

import os
import tomllib
from datetime import UTC, datetime
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Any

import tomli_w
from pydantic import ValidationError

from featurectl.core.paths import get_site_path
from featurectl.models.package import Bundle, Package
from featurectl.models.site import ConfigEntry, SiteManifest, SiteMeta


class SiteError(Exception):
    """Base exception for site manifest errors."""


class SiteNotFoundError(SiteError):
    """Raised when the site manifest file is not found."""


class SiteParseError(SiteError):
    """Raised when the site manifest file cannot be parsed."""


class SiteValidationError(SiteError):
    """Raised when the site manifest content is invalid."""


def load_site(path: Path | None = None) -> SiteManifest:
    """Load and validate a site manifest from a TOML file.

    Args:
        path: Path to the site manifest. If None, uses the default path.

    Returns:
        Validated SiteManifest object.

    Raises:
        SiteNotFoundError: If the file doesn't exist.
        SiteParseError: If the TOML syntax is invalid.
        SiteValidationError: If the content doesn't match the schema.
    """
    site_path = path or get_site_path()

    if not site_path.exists():
        raise SiteNotFoundError(f"Site manifest not found: {site_path}")

    try:
        with open(site_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise SiteParseError(f"Invalid TOML syntax: {e}") from e
    except OSError as e:
        raise SiteError(f"Failed to read site manifest: {e}") from e

    try:
        return SiteManifest.model_validate(data)
    except ValidationError as e:
        raise SiteValidationError(f"Invalid site manifest content: {e}") from e


def save_site(site: SiteManifest, path: Path | None = None) -> Path:
    """Save a site manifest to a TOML file.

    The ``updated`` timestamp is refreshed and the file is written
    atomically through a temporary file in the same directory.

    Args:
        site: The SiteManifest to save.
        path: Path to save to. If None, uses the default path.

    Returns:
        Path where the site manifest was saved.

    Raises:
        SiteError: If the file cannot be written.
    """
    site_path = path or get_site_path()
    site_path.parent.mkdir(parents=True, exist_ok=True)

    site.meta.updated = datetime.now(UTC)
    data = site_to_dict(site)

    tmp_path: Path | None = None
    try:
        with NamedTemporaryFile(
            mode="wb",
            dir=site_path.parent,
            delete=False,
            suffix=".tmp",
        ) as f:
            tmp_path = Path(f.name)
            tomli_w.dump(data, f)
        os.replace(str(tmp_path), str(site_path))
    except OSError as e:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
        raise SiteError(f"Failed to write site manifest: {e}") from e

    return site_path


def site_exists(path: Path | None = None) -> bool:
    """Check if a site manifest file exists."""
    return (path or get_site_path()).exists()


def create_site() -> SiteManifest:
    """Create an empty site manifest with fresh timestamps."""
    now = datetime.now(UTC)
    return SiteManifest(meta=SiteMeta(created=now, updated=now))


def require_site(site_path: Path | None = None) -> SiteManifest:
    """Load the site manifest or exit with helpful error message.

    Args:
        site_path: Optional custom site manifest path.

    Returns:
        Loaded and validated SiteManifest.

    Raises:
        typer.Exit: If the site manifest cannot be loaded.
    """
    import typer

    from featurectl.utils.formatting import print_error, print_info

    path = site_path or get_site_path()
    try:
        return load_site(path)
    except SiteNotFoundError as e:
        print_error(f"Site manifest not found: {path}")
        print_info("Pass --site or set FEATURECTL_SITE to point at a site.toml file.")
        raise typer.Exit(code=1) from e
    except SiteError as e:
        print_error(f"Failed to load site manifest: {e}")
        raise typer.Exit(code=1) from e


def site_to_dict(site: SiteManifest) -> dict[str, Any]:
    """Convert a SiteManifest to a dictionary suitable for TOML serialization.

    Args:
        site: The SiteManifest to convert.

    Returns:
        Dictionary ready for TOML serialization.
    """
    return {
        "meta": {
            "version": site.meta.version,
            "created": site.meta.created.isoformat(),
            "updated": site.meta.updated.isoformat(),
        },
        "config_types": {
            name: entry.model_dump(exclude_none=True) for name, entry in site.config_types.items()
        },
        "config": {name: _config_entry_to_dict(entry) for name, entry in site.config.items()},
        "bundles": {name: _bundle_to_dict(bundle) for name, bundle in site.bundles.items()},
        "packages": {name: package_to_dict(package) for name, package in site.packages.items()},
        "extensions": dict(site.extensions),
    }


def _config_entry_to_dict(entry: ConfigEntry) -> dict[str, Any]:
    result: dict[str, Any] = {"type": entry.type, "label": entry.label}
    if entry.package:
        result["package"] = entry.package
    if entry.provider:
        result["provider"] = entry.provider
    if entry.dependencies:
        result["dependencies"] = list(entry.dependencies)
    if entry.data:
        result["data"] = entry.data
    return result


def _bundle_to_dict(bundle: Bundle) -> dict[str, Any]:
    result: dict[str, Any] = {"name": bundle.name}
    if bundle.description:
        result["description"] = bundle.description
    return result


def package_to_dict(package: Package) -> dict[str, Any]:
    """Convert a Package to a dictionary for TOML serialization.

    The machine name is the table key, so it is not repeated.

    Args:
        package: The Package to convert.

    Returns:
        Dictionary without empty optional fields.
    """
    data = package.model_dump(mode="json", exclude={"machine_name"}, exclude_none=True)
    return {key: value for key, value in data.items() if value not in ("", [])}
