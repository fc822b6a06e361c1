"""Rich console formatting utilities.

Provides consistent formatting for CLI output using Rich.
"""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from featurectl.core.theme import get_theme

if TYPE_CHECKING:
    from featurectl.models.package import Package


def _detect_color_system() -> str | None:
    """Detect the best color system for the current terminal.

    Returns "truecolor" for interactive terminals to enable full hex color support,
    None otherwise to let Rich auto-detect.
    """
    if sys.stdout.isatty():
        return "truecolor"
    return None


# Shared console instances (theme loaded once at import)
console = Console(theme=get_theme(), color_system=_detect_color_system())
err_console = Console(theme=get_theme(), stderr=True, color_system=_detect_color_system())


def create_package_table(title: str = "Feature Packages") -> Table:
    """Create a pre-configured table for displaying packages.

    Args:
        title: Table title.

    Returns:
        Rich Table configured for package display.
    """
    table = Table(
        title=title,
        show_header=True,
        header_style="bold_header",
        border_style="border",
        row_styles=["", "on grey7"],
    )
    table.add_column("", width=2, justify="center")
    table.add_column("Package", no_wrap=True)
    table.add_column("Bundle", style="muted")
    table.add_column("Version", style="muted")
    table.add_column("Status", style="package.status")
    table.add_column("Config", justify="right", style="info")
    table.add_column("Description", style="text", overflow="ellipsis")
    return table


def format_package_row(package: Package) -> tuple[str, str, str, str, str, str, str]:
    """Format a package as a table row with proper styling.

    Exported packages get a filled circle, packages that were never
    exported an empty one.

    Args:
        package: The package to format.

    Returns:
        Tuple of (icon, name, bundle, version, status, config count,
        description) with Rich markup.
    """
    if package.is_exported:
        icon = "[included]●[/]"
        name = f"[package.name]{escape(package.machine_name)}[/]"
    else:
        icon = "[muted]○[/]"
        name = f"[muted]{escape(package.machine_name)}[/]"

    return (
        icon,
        name,
        escape(package.bundle),
        escape(package.version or "-"),
        format_status(package),
        str(len(package.config)),
        escape(package.description or "-"),
    )


def format_status(package: Package) -> str:
    """Format package status with color markup."""
    label = package.status.value.replace("_", " ")
    if package.is_exported:
        return f"[package.status]{label}[/]"
    return f"[muted]{label}[/]"


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[info]{message}[/]")


def print_warning(message: str) -> None:
    """Print a warning message."""
    err_console.print(f"[warning]Warning:[/] {message}")


def print_error(message: str) -> None:
    """Print an error message."""
    err_console.print(f"[error]Error:[/] {message}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[success]{message}[/]")
