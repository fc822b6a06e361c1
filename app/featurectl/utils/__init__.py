"""Utility modules for featurectl.

This module exports commonly used utility functions.
"""

from featurectl.utils.formatting import (
    console,
    create_package_table,
    err_console,
    format_package_row,
    format_status,
    print_error,
    print_info,
    print_success,
    print_warning,
)

__all__ = [
    "console",
    "create_package_table",
    "err_console",
    "format_package_row",
    "format_status",
    "print_error",
    "print_info",
    "print_success",
    "print_warning",
]
