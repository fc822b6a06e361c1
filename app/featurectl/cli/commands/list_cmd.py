"""List command implementation.

Lists the feature packages of a site.
"""

import json
from typing import Annotated

import typer

from featurectl.cli.types import site_path_from
from featurectl.core.site import require_site
from featurectl.utils.formatting import (
    console,
    create_package_table,
    format_package_row,
    print_info,
)

app = typer.Typer(
    help="List feature packages.",
    invoke_without_command=True,
)


@app.callback(invoke_without_command=True)
def list_packages(
    ctx: typer.Context,
    bundle: Annotated[
        str | None,
        typer.Option("--bundle", "-b", help="Only list packages of this bundle."),
    ] = None,
    as_json: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON."),
    ] = False,
) -> None:
    """List the feature packages of the site."""
    site = require_site(site_path_from(ctx))

    packages = sorted(site.packages.values(), key=lambda p: p.machine_name)
    if bundle is not None:
        packages = [p for p in packages if p.bundle == bundle]

    if as_json:
        data = [p.model_dump(mode="json") for p in packages]
        typer.echo(json.dumps(data, indent=2))
        return

    if not packages:
        print_info("No feature packages defined.")
        return

    table = create_package_table()
    for package in packages:
        table.add_row(*format_package_row(package))
    console.print(table)

    exported = sum(1 for p in packages if p.is_exported)
    console.print(f"\n[dim]{len(packages)} package(s), {exported} exported[/dim]")
