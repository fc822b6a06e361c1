"""Main CLI application entry point.

Defines the Typer application and global options.
"""

import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.logging import RichHandler

from featurectl import __version__
from featurectl.cli.commands import edit, export, init, list_cmd
from featurectl.utils.formatting import err_console

# Create main Typer app
app = typer.Typer(
    name="featurectl",
    help="Package site configuration into exportable features.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"featurectl version {__version__}")
        raise typer.Exit()


def configure_logging(verbose: bool) -> None:
    """Send featurectl debug log records to stderr through Rich.

    Without --verbose, only warnings reach the default stderr handler.

    Args:
        verbose: Enable DEBUG logging.
    """
    if not verbose:
        return
    logger = logging.getLogger("featurectl")
    logger.setLevel(logging.DEBUG)
    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        logger.addHandler(RichHandler(console=err_console, show_path=False, markup=False))


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable verbose output.",
        ),
    ] = False,
    site: Annotated[
        Path | None,
        typer.Option(
            "--site",
            "-s",
            help="Site manifest to use (default: ~/.config/featurectl/site.toml).",
            envvar="FEATURECTL_SITE",
        ),
    ] = None,
) -> None:
    """featurectl - Package site configuration into exportable features.

    Select which configuration items belong to a feature package, keep
    that selection consistent across edits, and export the package.
    """
    configure_logging(verbose)
    # Store options in context for subcommands
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["site_path"] = site


# Register commands
app.add_typer(init.app, name="init")
app.add_typer(list_cmd.app, name="list")
app.add_typer(edit.app, name="edit")
app.add_typer(export.app, name="export")


if __name__ == "__main__":
    app()
