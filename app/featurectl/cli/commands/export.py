"""Export command implementation.

Previews and exports every feature package of a site at once.
"""

import json
from typing import Annotated

import typer

from featurectl.cli.display import print_preview, print_results_summary
from featurectl.cli.types import require_settings, site_path_from
from featurectl.core.generator import GenerationError
from featurectl.core.preview import build_preview, export_all
from featurectl.core.site import SiteError, require_site, save_site
from featurectl.utils.formatting import console, print_error, print_info

app = typer.Typer(
    help="Preview and export all feature packages.",
    invoke_without_command=True,
)


@app.callback(invoke_without_command=True)
def export_packages(
    ctx: typer.Context,
    method: Annotated[
        str | None,
        typer.Option(
            "--method",
            "-m",
            help="Generation method (default: the first one, 'archive').",
        ),
    ] = None,
    preview: Annotated[
        bool,
        typer.Option("--preview", "-p", help="Only show what would be exported."),
    ] = False,
    as_json: Annotated[
        bool,
        typer.Option("--json", help="Output the preview as JSON."),
    ] = False,
) -> None:
    """Export all feature packages of the site.

    Config is assigned to every package first; config that belongs to no
    package is listed as unpackaged in the preview.
    """
    site_path = site_path_from(ctx)
    site = require_site(site_path)

    if preview or as_json:
        previews = build_preview(site)
        if as_json:
            typer.echo(json.dumps([p.to_dict() for p in previews], indent=2))
        elif not any(p.groups for p in previews):
            print_info("Nothing to export.")
        else:
            print_preview(previews)
        return

    if not site.packages:
        print_info("No feature packages defined.")
        return

    settings = require_settings()
    try:
        results = export_all(site, settings, site_path, method)
        save_site(site, site_path)
    except (GenerationError, SiteError) as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    print_results_summary(results)
    if settings.profile.add:
        console.print("[dim]Install profile generated.[/dim]")

    if any(not r.success for r in results):
        raise typer.Exit(code=1)
