"""Init command implementation.

Creates an empty site manifest to start from.
"""

from typing import Annotated

import typer

from featurectl.cli.types import site_path_from
from featurectl.core.site import SiteError, create_site, save_site, site_exists
from featurectl.utils.formatting import print_error, print_info, print_success

app = typer.Typer(
    help="Create an empty site manifest.",
    invoke_without_command=True,
)


@app.callback(invoke_without_command=True)
def init_site(
    ctx: typer.Context,
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Overwrite an existing site manifest."),
    ] = False,
) -> None:
    """Create an empty site manifest.

    The manifest holds the site's configuration, bundles and packages.
    Fill its [config] tables before editing features.
    """
    path = site_path_from(ctx)
    if site_exists(path) and not force:
        print_error(f"Site manifest already exists: {path}")
        print_info("Use --force to overwrite it.")
        raise typer.Exit(code=1)

    try:
        saved = save_site(create_site(), path)
    except SiteError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    print_success(f"Site manifest created: {saved}")
