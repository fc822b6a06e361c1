"""CLI package for featurectl.

This package contains the Typer application and all subcommands.
"""

from featurectl.cli.main import app

__all__ = ["app"]
