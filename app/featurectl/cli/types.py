"""Shared types and utilities for CLI commands.

This module provides helpers used across multiple CLI command modules to
avoid code duplication: resolving the site manifest path from the global
options and loading settings with user-facing errors.
"""

from pathlib import Path

import typer

from featurectl.core.paths import get_site_path
from featurectl.core.settings import FeaturesSettings, SettingsError, load_settings
from featurectl.utils.formatting import print_error


def site_path_from(ctx: typer.Context) -> Path:
    """Get the site manifest path chosen with the global --site option.

    Args:
        ctx: Typer context of the running command.

    Returns:
        The --site path, or the default site manifest path.
    """
    obj = ctx.obj if isinstance(ctx.obj, dict) else {}
    site_path = obj.get("site_path")
    return site_path if site_path is not None else get_site_path()


def require_settings() -> FeaturesSettings:
    """Load settings or exit with helpful error message.

    Raises:
        typer.Exit: If the settings file is invalid.
    """
    try:
        return load_settings()
    except SettingsError as e:
        print_error(f"Failed to load settings: {e}")
        raise typer.Exit(code=1) from e
