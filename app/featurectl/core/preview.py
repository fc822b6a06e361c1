"""Export overview of all packages.

Builds the preview of what every package would export, grouped by config
type, and exports all packages at once.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from featurectl.core.generator import FeaturesGenerator, GenerationResult
from featurectl.core.manager import FeaturesManager
from featurectl.core.settings import FeaturesSettings
from featurectl.models.package import DEFAULT_BUNDLE, Bundle, Package
from featurectl.models.site import SiteManifest

logger = logging.getLogger(__name__)

UNPACKAGED = "unpackaged"
DEPENDENCIES_GROUP = "dependencies"


@dataclass(frozen=True, slots=True)
class PreviewItem:
    """A single config item or extension in a preview group."""

    name: str
    label: str


@dataclass(frozen=True, slots=True)
class PreviewGroup:
    """Items of one config type (or the extension dependencies)."""

    type: str
    label: str
    items: tuple[PreviewItem, ...]


@dataclass(slots=True)
class PackagePreview:
    """What a package would export.

    Attributes:
        machine_name: Full machine name, or ``unpackaged``.
        name: Human-readable name.
        description: Package description.
        groups: Item groups, sorted by type label.
    """

    machine_name: str
    name: str
    description: str = ""
    groups: list[PreviewGroup] = field(default_factory=list)

    @property
    def item_count(self) -> int:
        """Number of config items, not counting dependencies."""
        return sum(len(g.items) for g in self.groups if g.type != DEPENDENCIES_GROUP)

    def to_dict(self) -> dict[str, object]:
        """Serialize to dictionary for JSON output."""
        return {
            "machine_name": self.machine_name,
            "name": self.name,
            "description": self.description,
            "groups": {
                group.type: [{"name": i.name, "label": i.label} for i in group.items]
                for group in self.groups
            },
        }


def build_preview(site: SiteManifest) -> list[PackagePreview]:
    """Preview the export of every package.

    Config not assigned to any package is listed under an ``unpackaged``
    pseudo-package.

    Args:
        site: Site manifest. It is never mutated.

    Returns:
        One PackagePreview per package, followed by the unpackaged one.
    """
    manager = FeaturesManager(site)
    manager.assign_config_packages()
    config = manager.get_config_collection()

    type_labels = dict(manager.list_config_types())
    type_labels[DEPENDENCIES_GROUP] = "Dependencies"
    order = sorted(type_labels, key=lambda t: (type_labels[t].casefold(), t))

    unpackaged = Package(
        machine_name=UNPACKAGED,
        name="Unpackaged",
        description="Configuration that has not been added to any package.",
        config=[name for name, item in config.items() if not item.package],
    )

    previews: list[PackagePreview] = []
    for package in [*manager.get_packages().values(), unpackaged]:
        if package is not unpackaged:
            manager.refresh_dependencies(package)

        grouped: dict[str, list[PreviewItem]] = {}
        for name in package.config:
            item = config.get(name)
            if item is None:
                continue
            grouped.setdefault(item.type, []).append(PreviewItem(name, item.label))
        if package.dependencies:
            grouped[DEPENDENCIES_GROUP] = [
                PreviewItem(dep, manager.get_extension_name(dep)) for dep in package.dependencies
            ]

        previews.append(
            PackagePreview(
                machine_name=package.machine_name,
                name=package.name or package.machine_name,
                description=package.description,
                groups=[
                    PreviewGroup(t, type_labels[t], tuple(grouped[t]))
                    for t in order
                    if t in grouped
                ],
            )
        )
    return previews


def export_all(
    site: SiteManifest,
    settings: FeaturesSettings,
    site_path: Path,
    method_id: str | None = None,
) -> list[GenerationResult]:
    """Assign config to every package and generate all of them.

    Packages are generated per bundle. When profile generation is enabled,
    each bundle gets an install profile as well.

    Args:
        site: Site manifest. Generated packages are written back into it.
        settings: Export settings.
        site_path: Location of the site manifest.
        method_id: Generation method; defaults to the lowest-weight method.

    Returns:
        GenerationResults in generation order.

    Raises:
        GenerationError: If the generation method is unknown.
    """
    manager = FeaturesManager(site)
    manager.assign_config_packages()
    generator = FeaturesGenerator(
        manager,
        settings.resolve_export_root(site_path),
        settings.resolve_archive_root(site_path),
    )
    method = generator.get_method(method_id) if method_id else generator.get_methods()[0]

    by_bundle: dict[str, list[str]] = {}
    for name, package in manager.get_packages().items():
        by_bundle.setdefault(package.bundle, []).append(name)

    results: list[GenerationResult] = []
    for bundle_name, names in by_bundle.items():
        bundle = site.get_bundle(bundle_name) or Bundle(machine_name=bundle_name or DEFAULT_BUNDLE)
        if settings.profile.add:
            results.extend(
                generator.generate_profile(
                    method.method_id, bundle, names, settings.profile.machine_name
                )
            )
        else:
            results.extend(generator.generate_packages(method.method_id, bundle, names))

    for result in results:
        package = manager.get_package(result.package)
        if not result.success or package is None:
            continue
        site.packages[package.machine_name] = package
        for name in package.config:
            entry = site.config.get(name)
            if entry is not None and not entry.package:
                site.config[name] = entry.model_copy(update={"package": package.machine_name})
    logger.info(
        "Exported %d of %d package(s) with %s",
        sum(1 for r in results if r.success and r.package in site.packages),
        sum(len(names) for names in by_bundle.values()),
        method.method_id,
    )
    return results
