"""CLI commands for featurectl.

This package contains all subcommand implementations.
"""

from featurectl.cli.commands import edit, export, init, list_cmd

__all__ = ["edit", "export", "init", "list_cmd"]
