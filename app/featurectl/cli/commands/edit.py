"""Edit command implementation.

Edits the component selection of a feature package. Every command
reconciles the selection; check and uncheck keep their state in a draft
until the feature is saved or the draft is reset.
"""

import json
from pathlib import Path
from typing import Annotated

import typer

from featurectl.cli.display import (
    print_import_report,
    print_results_summary,
    print_selection,
    selection_to_dict,
)
from featurectl.cli.types import require_settings, site_path_from
from featurectl.core.drafts import Draft, DraftError, DraftStore
from featurectl.core.editor import (
    IMPORT_MISSING,
    EditorError,
    EditorView,
    FeatureEdit,
    FeatureEditor,
    FeatureInfo,
    normalize_feature_name,
)
from featurectl.core.generator import GenerationError
from featurectl.core.site import SiteError, require_site, save_site
from featurectl.utils.formatting import console, print_error, print_info, print_success

app = typer.Typer(
    help="Edit the component selection of a feature.",
    no_args_is_help=True,
)

FeatureArg = Annotated[str, typer.Argument(help="Machine name of the feature.")]
BundleOpt = Annotated[
    str | None,
    typer.Option("--bundle", "-b", help="Bundle to edit the feature in."),
]
ConflictsOpt = Annotated[
    bool | None,
    typer.Option(
        "--allow-conflicts/--no-allow-conflicts",
        help="Offer config that is already exported by another feature.",
    ),
]
SourcesOpt = Annotated[
    bool,
    typer.Option("--sources", help="Also list config still available in sources."),
]
JsonOpt = Annotated[bool, typer.Option("--json", help="Output as JSON.")]


class _Session:
    """Editor, feature and draft of one command invocation."""

    def __init__(self, ctx: typer.Context, feature: str, bundle: str | None) -> None:
        self.site_path: Path = site_path_from(ctx)
        self.site = require_site(self.site_path)
        self.editor = FeatureEditor(self.site, require_settings(), self.site_path)
        self.store = DraftStore()
        self.key = normalize_feature_name(feature)
        self.draft = self.store.load(self.key)

        bundle_name = bundle
        if bundle_name is None and self.draft is not None:
            bundle_name = self.draft.bundle
        try:
            self.edit: FeatureEdit = self.editor.load(feature, bundle_name)
        except EditorError as e:
            print_error(str(e))
            raise typer.Exit(code=1) from e

    def allow_conflicts(self, value: bool | None) -> bool:
        if value is None and self.draft is not None:
            return self.draft.allow_conflicts
        return self.editor.allow_conflicts(value)

    def build(self, allow_conflicts: bool | None) -> EditorView:
        """Rebuild the last rendered view from the draft, if any."""
        allowed = self.allow_conflicts(allow_conflicts)
        if self.draft is None:
            return self.editor.build(self.edit, allow_conflicts=allowed)
        return self.editor.build(
            self.edit,
            self.draft.submission,
            allow_conflicts=allowed,
            constraints=self.draft.constraints,
        )

    def save_draft(self, view: EditorView) -> None:
        draft = Draft(
            feature=self.key,
            bundle=self.edit.bundle.machine_name,
            submission=view.result.submission,
            constraints=view.result.constraints,
            allow_conflicts=view.allow_conflicts,
        )
        try:
            self.store.save(draft)
        except DraftError as e:
            print_error(str(e))
            raise typer.Exit(code=1) from e


def _render(view: EditorView, show_sources: bool, as_json: bool) -> None:
    if as_json:
        typer.echo(json.dumps(selection_to_dict(view), indent=2))
    else:
        print_selection(view, show_sources=show_sources)


@app.command()
def show(
    ctx: typer.Context,
    feature: FeatureArg,
    bundle: BundleOpt = None,
    allow_conflicts: ConflictsOpt = None,
    sources: SourcesOpt = False,
    as_json: JsonOpt = False,
) -> None:
    """Show the component selection of a feature."""
    session = _Session(ctx, feature, bundle)
    view = session.build(allow_conflicts)
    if session.draft is not None and not as_json:
        print_info(
            f"Continuing unsaved edit of {session.key} (discard with 'featurectl edit reset')."
        )
    _render(view, sources, as_json)


def _toggle(
    ctx: typer.Context,
    feature: str,
    names: list[str],
    checked: bool,
    bundle: str | None,
    allow_conflicts: bool | None,
    sources: bool,
    as_json: bool,
) -> None:
    session = _Session(ctx, feature, bundle)
    view = session.build(allow_conflicts)
    try:
        submission = session.editor.toggle(view, names, checked)
    except EditorError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    updated = session.editor.build(
        session.edit,
        submission,
        allow_conflicts=view.allow_conflicts,
        constraints=view.result.constraints,
    )
    session.save_draft(updated)
    _render(updated, sources, as_json)


@app.command()
def check(
    ctx: typer.Context,
    feature: FeatureArg,
    names: Annotated[list[str], typer.Argument(help="Full config names to check.")],
    bundle: BundleOpt = None,
    allow_conflicts: ConflictsOpt = None,
    sources: SourcesOpt = False,
    as_json: JsonOpt = False,
) -> None:
    """Check config items in the section they are listed in."""
    _toggle(ctx, feature, names, True, bundle, allow_conflicts, sources, as_json)


@app.command()
def uncheck(
    ctx: typer.Context,
    feature: FeatureArg,
    names: Annotated[list[str], typer.Argument(help="Full config names to uncheck.")],
    bundle: BundleOpt = None,
    allow_conflicts: ConflictsOpt = None,
    sources: SourcesOpt = False,
    as_json: JsonOpt = False,
) -> None:
    """Uncheck config items in the section they are listed in."""
    _toggle(ctx, feature, names, False, bundle, allow_conflicts, sources, as_json)


@app.command()
def reset(feature: FeatureArg) -> None:
    """Discard the unsaved edit of a feature."""
    key = normalize_feature_name(feature)
    try:
        removed = DraftStore().discard(key)
    except DraftError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e
    if removed:
        print_success(f"Discarded unsaved edit of {key}.")
    else:
        print_info(f"No unsaved edit of {key}.")


@app.command()
def save(
    ctx: typer.Context,
    feature: FeatureArg,
    bundle: BundleOpt = None,
    allow_conflicts: ConflictsOpt = None,
    name: Annotated[str | None, typer.Option("--name", help="Human-readable name.")] = None,
    machine_name: Annotated[
        str | None,
        typer.Option("--machine-name", help="New machine name, without the bundle prefix."),
    ] = None,
    description: Annotated[
        str | None, typer.Option("--description", help="Package description.")
    ] = None,
    version: Annotated[str | None, typer.Option("--version", help="Package version.")] = None,
    directory: Annotated[
        str | None,
        typer.Option("--directory", help="Export directory, relative to the export path."),
    ] = None,
    require_all: Annotated[
        bool | None,
        typer.Option("--require-all/--no-require-all", help="Mark all config as required."),
    ] = None,
    method: Annotated[
        str | None,
        typer.Option("--method", "-m", help="Generation method to export with."),
    ] = None,
    import_missing: Annotated[
        bool,
        typer.Option("--import-missing", help="Import config missing from the site."),
    ] = False,
) -> None:
    """Save the selection of a feature and optionally export it."""
    if method and import_missing:
        print_error("Use either --method or --import-missing, not both.")
        raise typer.Exit(code=1)

    session = _Session(ctx, feature, bundle)
    allowed = session.allow_conflicts(allow_conflicts)

    if method:
        view = session.build(allowed)
        if not view.can_export:
            print_error(view.notice or "Package cannot be exported.")
            raise typer.Exit(code=1)

    info = FeatureInfo(
        name=name,
        machine_name=machine_name,
        description=description,
        version=version,
        directory=directory,
        require_all=require_all,
    )
    try:
        result = session.editor.submit(
            session.edit,
            info,
            session.draft.submission if session.draft else None,
            method_id=IMPORT_MISSING if import_missing else method,
            allow_conflicts=allowed,
            constraints=session.draft.constraints if session.draft else None,
        )
        save_site(session.site, session.site_path)
    except (EditorError, GenerationError, SiteError) as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    try:
        session.store.discard(session.key)
    except DraftError as e:
        print_error(str(e))

    print_success(
        f"Saved {result.package.machine_name} with {len(result.package.config)} config item(s)."
    )
    if result.imported is not None:
        print_import_report(result.imported)
    if result.generated:
        print_results_summary(result.generated)
    elif not import_missing:
        console.print("[dim]Export with --method to generate the package.[/dim]")

    if not result.success:
        raise typer.Exit(code=1)
