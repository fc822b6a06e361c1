"""Theme management for featurectl CLI.

Colors come from the bundled ``data/theme.toml``; any of them can be
overridden in ``~/.config/featurectl/theme.toml``. Each section of the
component list gets a style of its own so the edit tables read the same
way the form did.
"""

import logging
import re
import sys
import tomllib
from importlib import resources
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator
from rich.theme import Theme

from featurectl.core.paths import get_config_dir
from featurectl.models.selection import Section

logger = logging.getLogger(__name__)

_HEX_DIGITS = re.compile(r"[0-9a-fA-F]+")


class ThemeColors(BaseModel):
    """Color configuration for featurectl CLI.

    All colors must be valid hex codes (#RRGGBB or #RGB).
    """

    model_config = ConfigDict(extra="forbid")

    text: str = "#ffffff"
    muted: str = "#b2bec3"
    header: str = "#69B9A1"
    border: str = "#29526d"

    success: str = "#03b971"
    warning: str = "#f5b332"
    error: str = "#f53263"
    info: str = "#0ec1c8"

    # Component list
    included: str = "#69B9A1"
    added: str = "#c1ff62"
    detected: str = "#0e8ac8"
    conflict: str = "#d44ebc"
    missing: str = "#f5b332"

    @field_validator("*", mode="before")
    @classmethod
    def validate_hex_color(cls, v: object, info: Any) -> str:
        """Validate that all color values are valid hex codes."""
        if not isinstance(v, str):
            raise ValueError(f"{info.field_name}: color must be a string")
        color = v.strip()
        if not color.startswith("#"):
            raise ValueError(f"{info.field_name}: color must start with '#'")
        digits = color[1:]
        if len(digits) not in (3, 6):
            raise ValueError(f"{info.field_name}: color must be #RGB or #RRGGBB format")
        if not _HEX_DIGITS.fullmatch(digits):
            raise ValueError(f"{info.field_name}: invalid hex color '{color}'")
        return color

    def section_color(self, section: Section) -> str:
        """Color of a component list section; sources stay muted."""
        if section is Section.SOURCES:
            return self.muted
        return str(getattr(self, section.value))


def get_user_theme_path() -> Path:
    """Get the user theme override path (~/.config/featurectl/theme.toml)."""
    return get_config_dir() / "theme.toml"


def get_bundled_theme_path() -> Path:
    """Get the path of the theme shipped with the package."""
    return Path(str(resources.files("featurectl.data").joinpath("theme.toml")))


def _load_toml_colors(path: Path) -> dict[str, str] | None:
    """Read the ``[colors]`` table of a theme file.

    Args:
        path: Theme file.

    Returns:
        String values of the table, or None if the file is missing or
        unusable.
    """
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except FileNotFoundError:
        return None
    except tomllib.TOMLDecodeError as e:
        logger.warning("Failed to parse theme file %s: %s", path, e)
        print(f"Warning: Failed to parse {path}: {e}", file=sys.stderr)
        return None
    except OSError as e:
        logger.warning("Failed to read theme file %s: %s", path, e)
        return None

    colors = data.get("colors", {})
    if not isinstance(colors, dict):
        logger.warning("Ignoring theme file %s: 'colors' is not a table", path)
        return None
    return {key: value for key, value in colors.items() if isinstance(value, str)}


def load_theme() -> ThemeColors:
    """Load theme colors, applying user overrides on top of the bundled theme.

    An invalid override falls back to the built-in defaults rather than
    failing the command.

    Returns:
        Validated ThemeColors.
    """
    colors = _load_toml_colors(get_bundled_theme_path())
    if colors is None:
        logger.error("Bundled theme could not be loaded; installation may be corrupted")
        colors = {}

    user_path = get_user_theme_path()
    overrides = _load_toml_colors(user_path)
    if overrides:
        logger.debug("Applying %d theme override(s) from %s", len(overrides), user_path)
        colors.update(overrides)

    try:
        return ThemeColors(**colors)
    except ValidationError as e:
        logger.warning("Invalid theme configuration, using defaults: %s", e)
        print(f"Warning: Invalid theme configuration in {user_path}", file=sys.stderr)
        return ThemeColors()


def get_rich_theme(colors: ThemeColors | None = None) -> Theme:
    """Build the Rich theme used by every console.

    Args:
        colors: Colors to use; loaded from the theme files when omitted.

    Returns:
        Rich Theme with base, section and convenience styles.
    """
    if colors is None:
        colors = load_theme()

    styles: dict[str, str] = {
        "text": colors.text,
        "muted": colors.muted,
        "header": colors.header,
        "border": colors.border,
        "success": colors.success,
        "warning": colors.warning,
        "error": f"bold {colors.error}",
        "info": colors.info,
        "conflict": f"bold {colors.conflict}",
        "missing": colors.missing,
        "bold_header": f"bold {colors.header}",
        "dim": colors.muted,
        "package.name": f"bold {colors.text}",
        "package.status": colors.info,
    }
    for section in Section:
        styles[section.value] = colors.section_color(section)
    # Newly added items stand out from the rest of the list
    styles[Section.ADDED.value] = f"bold {colors.added}"

    return Theme(styles)


_cached_theme: Theme | None = None


def get_theme() -> Theme:
    """Get the Rich theme, loading it on first use."""
    global _cached_theme
    if _cached_theme is None:
        _cached_theme = get_rich_theme()
    return _cached_theme


def reload_theme() -> Theme:
    """Reload the theme from the theme files and replace the cached one."""
    global _cached_theme
    _cached_theme = get_rich_theme()
    return _cached_theme
