"""Selection reconciliation for the package component list.

Given a package, the live config collection and the checkbox values a
client posted back, the reconciler decides for every selectable item
whether it is rendered in sources, included, detected or added, and
whether its checkbox is checked. Along the way it maintains the excluded
and required constraint maps and removes newly excluded items from the
working package.

Cases the placement rules keep stable:
    1a) unchecking an included item that is not auto-detected demotes it
        to unchecked added
    1b) re-checking an unchecked added item returns it to included
    2a) checking a sources item moves it to checked added
    2b) unchecking an added item returns it to unchecked sources
    3a) unchecking an included item that is still auto-detected demotes
        it to unchecked detected
    3b) re-checking a detected item returns it to checked included
    4a) checking a sources item also pulls in its dependents as checked
        detected
    4b) unchecking it again returns those dependents to sources, once
        their detected values are dropped (see featurectl.core.toggles)
    5a) an unchecked detected item stays unchecked on refresh
    6)  refreshing without changes changes nothing
    7)  an included item is never rendered unchecked
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from rich.markup import escape

from featurectl.core.constraints import ConstraintKind, ConstraintMaps
from featurectl.core.manager import FeaturesManager
from featurectl.models.config_item import ConfigItem
from featurectl.models.package import Package
from featurectl.models.selection import (
    ComponentSelection,
    FormSubmission,
    Section,
    SelectionState,
)
from featurectl.models.site import SiteManifest

logger = logging.getLogger(__name__)

ItemMap = dict[str, dict[str, str]]


@dataclass(frozen=True, slots=True)
class Reconciliation:
    """Result of reconciling a package selection.

    Attributes:
        package: Working package with newly excluded items removed.
        state: Section and checkbox state of every selectable item.
        config_new: Keys selected for export, per component type.
        export_config: Full names of the config to export.
        constraints: Excluded and required maps after reconciliation.
        excluded: Full names of excluded config.
        required: Full names of required config.
        conflicts: Items owned by another exported package, per type.
        missing: Previously exported config absent from the live collection.
        submission: Values a client would post back for the rendered state.
    """

    package: Package
    state: SelectionState
    config_new: dict[str, list[str]]
    export_config: tuple[str, ...]
    constraints: ConstraintMaps
    excluded: tuple[str, ...]
    required: tuple[str, ...]
    conflicts: dict[str, dict[str, str]] = field(default_factory=dict)
    missing: tuple[str, ...] = ()
    submission: FormSubmission = field(default_factory=FormSubmission)

    @property
    def has_missing(self) -> bool:
        """Check if the package references config absent from the site."""
        return bool(self.missing)

    def is_conflict(self, component: str, key: str) -> bool:
        """Check if an item is owned by another exported package."""
        return key in self.conflicts.get(component, {})


class SelectionReconciler:
    """Reconciles posted checkbox values against a package and its site.

    Every call starts from the persisted site state, so calling
    :meth:`reconcile` twice with the same arguments yields the same result.

    Example:
        >>> reconciler = SelectionReconciler(site)
        >>> result = reconciler.reconcile(package)
        >>> result.state.placement("view", "frontpage")
        Placement(section=<Section.INCLUDED: 'included'>, checked=True)
    """

    def __init__(self, site: SiteManifest) -> None:
        """Initialize the reconciler.

        Args:
            site: Persisted site state. It is never mutated.
        """
        self._site = site

    def reconcile(
        self,
        package: Package,
        submission: FormSubmission | None = None,
        *,
        allow_conflicts: bool = False,
        constraints: ConstraintMaps | None = None,
    ) -> Reconciliation:
        """Reconcile a package's selection with posted values.

        Args:
            package: Package being edited. A copy is used; the argument is
                never mutated.
            submission: Posted values, or None for the initial render.
            allow_conflicts: Offer items owned by other exported packages.
            constraints: Working constraint maps carried over from an
                earlier pass. Defaults to the package's stored lists.

        Returns:
            Reconciliation describing the new selection.
        """
        submission = submission or FormSubmission.initial()
        submitted = submission.submitted

        package_name = package.machine_name
        working = package.model_copy(deep=True)
        manager = FeaturesManager(self._site)
        manager.set_package(working)
        manager.assign_config_packages(force=True)

        config = manager.get_config_collection()
        config_types = manager.list_config_types()
        exported = _group(working.config_orig, config)
        posted = {
            component: self._selected_keys(component, submission, exported)
            for component in config_types
        }

        # Auto-detect dependents of the assigned, previously exported and
        # newly selected config.
        seed = list(
            dict.fromkeys(
                [
                    *working.config,
                    *working.config_orig,
                    *(
                        manager.full_name(component, key)
                        for component, keys in posted.items()
                        for key in keys
                    ),
                ]
            )
        )
        detected = set(manager.assign_config_dependents(seed, package_name)) if seed else set()

        config = manager.get_config_collection()
        conflicts, components = self._collect_components(
            manager, package_name, working, allow_conflicts
        )

        missing = tuple(name for name in working.config_orig if name not in config)
        new_info = _group(working.config, config)

        if constraints is None:
            maps = ConstraintMaps.from_names(working.excluded, working.required_list, config)
        else:
            maps = constraints.copy()

        config_new: dict[str, list[str]] = {}
        state = SelectionState()
        for component, items in components.items():
            selection = ComponentSelection(
                component=component, label=config_types.get(component, component)
            )
            exported_keys = exported.get(component, {})
            new_keys = new_info.get(component, {})
            selected_keys = set(posted.get(component, []))

            for key, label in items.items():
                display = config_label(component, key, label, conflicts, config, manager)

                if submission.is_checked(component, Section.SOURCES, key):
                    # Checked in sources: move to added.
                    selection.place(Section.ADDED, key, display, True)
                    # Previously excluded items were auto-assigned, so they
                    # do not need to become required.
                    if maps.has(ConstraintKind.EXCLUDED, component, key):
                        maps.discard(ConstraintKind.EXCLUDED, component, key)
                    else:
                        maps.add(ConstraintKind.REQUIRED, component, key, label)

                elif key in new_keys or key in selected_keys:
                    section, checked = self._place_exported_or_detected(
                        component,
                        key,
                        submission,
                        in_export=key in exported_keys,
                        auto_detected=manager.full_name(component, key) in detected,
                        selected=key in selected_keys,
                        excluded=maps.has(ConstraintKind.EXCLUDED, component, key),
                    )
                    selection.place(section, key, display, checked)

                    if section is Section.DETECTED and not checked:
                        # Previously required items were not auto-assigned,
                        # so they are only excluded when everything is required.
                        if (
                            not maps.has(ConstraintKind.REQUIRED, component, key)
                            or working.required_all
                        ):
                            maps.add(ConstraintKind.EXCLUDED, component, key, label)
                        maps.discard(ConstraintKind.REQUIRED, component, key)
                        working.remove_config(manager.full_name(component, key))
                    else:
                        maps.discard(ConstraintKind.EXCLUDED, component, key)

                elif not submitted and key in exported_keys:
                    # Exported before but no longer assigned: offer as added.
                    selection.place(Section.ADDED, key, display, True)

                else:
                    self._restore_or_release(selection, submission, maps, key, display)

            state.components[component] = selection
            config_new[component] = [
                key
                for key in items
                if (placement := selection.placement(key)) is not None
                and placement.section is not Section.SOURCES
                and placement.checked
            ]

        export_config = tuple(
            manager.full_name(component, key)
            for component, keys in config_new.items()
            for key in keys
        )
        result = Reconciliation(
            package=working,
            state=state,
            config_new=config_new,
            export_config=export_config,
            constraints=maps,
            excluded=tuple(maps.full_names(ConstraintKind.EXCLUDED, manager.full_name)),
            required=tuple(maps.full_names(ConstraintKind.REQUIRED, manager.full_name)),
            conflicts=conflicts,
            missing=missing,
            submission=state.as_submission(),
        )
        logger.debug(
            "Reconciled %s: %d component(s), %d selected, %d conflict(s), %d missing",
            package_name,
            len(state.components),
            len(export_config),
            sum(len(items) for items in conflicts.values()),
            len(missing),
        )
        return result

    def _collect_components(
        self,
        manager: FeaturesManager,
        package_name: str,
        package: Package,
        allow_conflicts: bool,
    ) -> tuple[ItemMap, ItemMap]:
        """Find conflicting items and the selectable items per component.

        An item conflicts when another, already exported package owns it.
        Conflicts are only selectable when allowed or when they were part
        of this package's previous export.
        """
        packages = manager.get_packages()
        original = set(package.config_orig)
        conflicts: ItemMap = {}
        components: ItemMap = {component: {} for component in manager.list_config_types()}

        for name, item in manager.get_config_collection().items():
            owner = packages.get(item.package) if item.package else None
            conflicted = (
                item.package != package_name and owner is not None and owner.is_exported
            )
            if conflicted:
                conflicts.setdefault(item.type, {})[item.short_name] = item.label
            if allow_conflicts or not conflicted or name in original:
                components.setdefault(item.type, {})[item.short_name] = item.label

        return conflicts, {component: items for component, items in components.items() if items}

    @staticmethod
    def _selected_keys(
        component: str,
        submission: FormSubmission,
        exported: Mapping[str, Mapping[str, str]],
    ) -> list[str]:
        """Collect the keys checked in any section of a component.

        When no section of the component was posted at all, the previous
        export is used instead.
        """
        selected: dict[str, None] = {}
        posted = 0
        for section in (Section.SOURCES, Section.INCLUDED, Section.ADDED, Section.DETECTED):
            if submission.has_section(component, section):
                selected.update(dict.fromkeys(submission.checked(component, section)))
                posted += 1
        if posted == 0 and exported.get(component):
            selected = dict.fromkeys(exported[component])
        return list(selected)

    @staticmethod
    def _place_exported_or_detected(
        component: str,
        key: str,
        submission: FormSubmission,
        *,
        in_export: bool,
        auto_detected: bool,
        selected: bool,
        excluded: bool,
    ) -> tuple[Section, bool]:
        """Place an item that is assigned to or selected for the package."""
        submitted = submission.submitted

        def empty(section: Section) -> bool:
            return not submission.is_checked(component, section, key)

        if in_export:
            # Previously exported: included unless deselected. A deselected
            # item that is still auto-detected is excluded from detection.
            if (
                submitted
                and (
                    submission.has_value(component, Section.INCLUDED, key)
                    or empty(Section.DETECTED)
                )
                and not selected
            ):
                return (Section.DETECTED if auto_detected else Section.ADDED), False
            if (
                submitted
                and empty(Section.ADDED)
                and empty(Section.DETECTED)
                and empty(Section.INCLUDED)
            ):
                return Section.ADDED, False
            return Section.INCLUDED, True

        # Not exported before: either user selected or auto-detected.
        if submitted and (not empty(Section.ADDED) or not empty(Section.SOURCES)):
            return Section.ADDED, True
        if (
            submitted
            and submission.has_value(component, Section.DETECTED, key)
            and empty(Section.DETECTED)
        ):
            return Section.DETECTED, False
        # Newly detected items start checked; stored exclusions only apply
        # to the first render.
        return Section.DETECTED, not (excluded and not submitted)

    @staticmethod
    def _restore_or_release(
        selection: ComponentSelection,
        submission: FormSubmission,
        maps: ConstraintMaps,
        key: str,
        display: str,
    ) -> None:
        """Place an item that is not part of the new export.

        A checked included or added box is restored (included wins);
        anything else goes back to unchecked sources and loses its
        constraints.
        """
        component = selection.component
        for section in (Section.INCLUDED, Section.ADDED):
            if submission.is_checked(component, section, key):
                selection.place(section, key, display, True)
                return
        selection.place(Section.SOURCES, key, display, False)
        maps.discard(ConstraintKind.EXCLUDED, component, key)
        maps.discard(ConstraintKind.REQUIRED, component, key)


def config_label(
    component: str,
    key: str,
    label: str,
    conflicts: Mapping[str, Mapping[str, str]],
    config: Mapping[str, ConfigItem],
    manager: FeaturesManager,
) -> str:
    """Build the escaped display label of an item.

    The key is appended when it differs from the label, and conflicts show
    the package that owns them.

    Args:
        component: Config type machine name.
        key: Short name of the item.
        label: Human-readable label.
        conflicts: Conflicting items per type.
        config: Live config collection.
        manager: Manager used to build full names.

    Returns:
        Rich-markup-safe label.
    """
    value = escape(label)
    if key != label:
        value += f"  ({escape(key)})"
    if key in conflicts.get(component, {}):
        item = config.get(manager.full_name(component, key))
        owner = item.package if item is not None and item.package else ""
        value += f"  \\[in {escape(owner)}]"
    return value


def _group(names: Iterable[str], config: Mapping[str, ConfigItem]) -> ItemMap:
    """Group full config names by type, skipping names absent from the site."""
    grouped: ItemMap = {}
    for name in names:
        item = config.get(name)
        if item is None:
            continue
        grouped.setdefault(item.type, {})[item.short_name] = item.label
    return grouped
