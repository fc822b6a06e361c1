"""Shared Rich display functions for selections and results.

Provides reusable table builders and summary printers for the component
selection of a feature, generation results and the export preview.
"""

from typing import Any

from rich.markup import escape
from rich.table import Table

from featurectl.core.editor import EditorView
from featurectl.core.generator import GenerationResult
from featurectl.core.importer import ImportReport
from featurectl.core.preview import PackagePreview
from featurectl.core.reconciler import Reconciliation
from featurectl.models.selection import ComponentSelection, Section
from featurectl.utils.formatting import console, print_success, print_warning

# Display order of the sections; sources last since it is the longest
SECTION_ORDER = (Section.INCLUDED, Section.ADDED, Section.DETECTED, Section.SOURCES)


def _checkbox(checked: bool) -> str:
    return "☑" if checked else "☐"


def create_component_table(
    selection: ComponentSelection,
    result: Reconciliation,
    show_sources: bool = False,
) -> Table:
    """Create a Rich table displaying the selection of one component type.

    The title shows the component label and how many items are still
    available in sources. Conflicting items are highlighted.

    Args:
        selection: Selection state of the component type.
        result: Reconciliation the selection belongs to.
        show_sources: List the unselected items of the sources section.

    Returns:
        Rich Table configured for selection display.
    """
    table = Table(
        title=f"{escape(selection.label)} ({selection.source_count})",
        title_justify="left",
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("", width=2, justify="center")
    table.add_column("Section", width=9)
    table.add_column("Item")

    for section in SECTION_ORDER:
        if section is Section.SOURCES and not show_sources:
            continue
        for key, label in selection.options[section].items():
            style = "conflict" if result.is_conflict(selection.component, key) else section.value
            table.add_row(
                _checkbox(selection.selected[section][key]),
                f"[{section.value}]{section.value}[/{section.value}]",
                f"[{style}]{label}[/{style}]",
            )

    return table


def print_selection(view: EditorView, show_sources: bool = False) -> None:
    """Print the general information and component selection of a feature.

    Args:
        view: The rendered edit view.
        show_sources: Also list items available in sources.
    """
    package = view.edit.package
    state_label = "new" if view.edit.is_new else package.status.value.replace("_", " ")
    console.print(
        f"[bold_header]{escape(package.name or package.machine_name)}[/bold_header] "
        f"[muted]({escape(view.export_name)}, bundle {escape(view.edit.bundle.machine_name)}, "
        f"{state_label})[/muted]"
    )
    if package.description:
        console.print(f"[text]{escape(package.description)}[/text]")
    console.print(f"[muted]Path: {escape(str(view.export_path))}[/muted]")
    if view.allow_conflicts:
        console.print("[warning]Conflicts allowed[/warning]")

    for selection in view.result.state:
        if selection.export_count == 0 and not show_sources:
            continue
        console.print()
        console.print(create_component_table(selection, view.result, show_sources))

    if view.result.missing:
        console.print()
        console.print("[missing]Missing from site:[/missing]")
        for name in view.result.missing:
            console.print(f"  [missing]- {escape(name)}[/missing]")
    if view.notice:
        print_warning(view.notice)

    console.print()
    actions = [m.method_id for m in view.methods] if view.can_export else []
    if view.can_import_missing:
        actions.append("import_missing")
    console.print(
        f"[dim]{len(view.result.export_config)} item(s) selected. "
        f"Save with: {', '.join(actions) or 'no export available'}[/dim]"
    )


def selection_to_dict(view: EditorView) -> dict[str, Any]:
    """Convert a rendered edit view to a dictionary for JSON output."""
    components: dict[str, Any] = {}
    for selection in view.result.state:
        components[selection.component] = {
            "label": selection.label,
            "sections": {
                section.value: dict(selection.selected[section])
                for section in Section
                if selection.selected[section]
            },
        }
    return {
        "feature": view.edit.package.machine_name,
        "export_name": view.export_name,
        "bundle": view.edit.bundle.machine_name,
        "export_path": str(view.export_path),
        "allow_conflicts": view.allow_conflicts,
        "components": components,
        "export_config": list(view.result.export_config),
        "excluded": list(view.result.excluded),
        "required": list(view.result.required),
        "conflicts": view.result.conflicts,
        "missing": list(view.result.missing),
        "methods": [m.method_id for m in view.methods] if view.can_export else [],
        "import_missing": view.can_import_missing,
    }


def create_results_table(results: list[GenerationResult]) -> Table:
    """Create a Rich table displaying generation results.

    Args:
        results: List of generation results to display.

    Returns:
        Rich Table configured for results display.
    """
    table = Table(
        title="Results",
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("Status", width=8, justify="center")
    table.add_column("Package", no_wrap=True)
    table.add_column("Message")

    for result in results:
        status = "[success]OK[/success]" if result.success else "[error]FAIL[/error]"
        table.add_row(status, escape(result.package), f"[muted]{escape(result.message)}[/muted]")

    return table


def print_results_summary(results: list[GenerationResult]) -> None:
    """Print the generation results table and a one-line summary."""
    if not results:
        return
    console.print(create_results_table(results))
    failed = sum(1 for r in results if not r.success)
    if failed:
        print_warning(f"{failed} of {len(results)} package(s) failed.")
    else:
        print_success(f"Generated {len(results)} package(s).")


def print_import_report(report: ImportReport) -> None:
    """Print the messages of a missing config import."""
    for message in report.messages:
        print_success(message)
    for error in report.errors:
        console.print(f"[error]{escape(error)}[/error]")
    if not report.messages and not report.errors:
        console.print("[dim]Nothing to import.[/dim]")


def create_preview_table(preview: PackagePreview) -> Table:
    """Create a Rich table previewing the export of one package."""
    header = escape(preview.name)
    if preview.description:
        header += f": [muted]{escape(preview.description)}[/muted]"
    table = Table(
        title=header,
        title_justify="left",
        show_header=False,
        border_style="border",
    )
    table.add_column("Type", style="bold_header", no_wrap=True)
    table.add_column("Items")
    for group in preview.groups:
        items = ", ".join(escape(item.label or item.name) for item in group.items)
        table.add_row(escape(group.label), items)
    return table


def print_preview(previews: list[PackagePreview]) -> None:
    """Print the export preview of every non-empty package."""
    for preview in previews:
        if not preview.groups:
            continue
        console.print(create_preview_table(preview))
        console.print()
