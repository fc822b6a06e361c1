"""XDG-compliant path management for featurectl.

This module provides standardized paths following the XDG Base Directory
Specification for configuration and state storage.

XDG defaults:
- Config: ~/.config/featurectl/
- State: ~/.local/state/featurectl/
"""

import os
from pathlib import Path

# Application identifier for directory naming
APP_NAME = "featurectl"


def _get_xdg_dir(env_var: str, default_subdir: str) -> Path:
    """Get XDG directory respecting environment variable override.

    Args:
        env_var: XDG environment variable name (e.g., "XDG_CONFIG_HOME").
        default_subdir: Default subdirectory under home (e.g., ".config").

    Returns:
        Path to the application-specific directory.
    """
    base = os.environ.get(env_var)
    if base:
        return Path(base) / APP_NAME
    return Path.home() / default_subdir / APP_NAME


def get_config_dir() -> Path:
    """Get the configuration directory path.

    Returns:
        Path to ~/.config/featurectl/ (or XDG_CONFIG_HOME/featurectl/).
    """
    return _get_xdg_dir("XDG_CONFIG_HOME", ".config")


def get_state_dir() -> Path:
    """Get the state directory path.

    State data includes edit drafts that should persist between runs
    but is not configuration.

    Returns:
        Path to ~/.local/state/featurectl/ (or XDG_STATE_HOME/featurectl/).
    """
    return _get_xdg_dir("XDG_STATE_HOME", ".local/state")


def get_site_path() -> Path:
    """Get the default site manifest path.

    The ``FEATURECTL_SITE`` environment variable overrides the default.

    Returns:
        Path to ~/.config/featurectl/site.toml.
    """
    override = os.environ.get("FEATURECTL_SITE")
    if override:
        return Path(override)
    return get_config_dir() / "site.toml"


def get_settings_path() -> Path:
    """Get the settings file path.

    Returns:
        Path to ~/.config/featurectl/settings.toml.
    """
    return get_config_dir() / "settings.toml"


def get_drafts_dir() -> Path:
    """Get the directory holding in-progress edit drafts.

    Returns:
        Path to ~/.local/state/featurectl/drafts/.
    """
    return get_state_dir() / "drafts"


def _ensure_dir(path: Path, name: str) -> Path:
    """Create directory if it doesn't exist.

    Args:
        path: Directory path to create.
        name: Human-readable name for error messages.

    Returns:
        The created/existing directory path.

    Raises:
        RuntimeError: If directory cannot be created.
    """
    try:
        path.mkdir(parents=True, exist_ok=True)
    except PermissionError as e:
        msg = f"Cannot create {name} directory {path}: Permission denied"
        raise RuntimeError(msg) from e
    except OSError as e:
        msg = f"Cannot create {name} directory {path}: {e}"
        raise RuntimeError(msg) from e
    return path


def ensure_drafts_dir() -> Path:
    """Create the drafts directory if it doesn't exist.

    Returns:
        Path to the drafts directory.

    Raises:
        RuntimeError: If the directory cannot be created.
    """
    return _ensure_dir(get_drafts_dir(), "drafts")
