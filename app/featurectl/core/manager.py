"""Request-scoped access to the site's config collection and packages.

The FeaturesManager builds an immutable snapshot of every config item from
a site manifest and a working copy of every package. Assignment methods
mutate only the working copies, so each manager instance starts from the
persisted state and nothing leaks between requests.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Iterable, Mapping
from dataclasses import replace
from pathlib import Path
from typing import TYPE_CHECKING, Any

from featurectl.models.config_item import SIMPLE_CONFIG_TYPE, ConfigItem, ConfigType
from featurectl.models.package import Bundle, Package, PackageStatus

if TYPE_CHECKING:
    from featurectl.models.site import SiteManifest

logger = logging.getLogger(__name__)


class FeaturesManager:
    """Working view of a site's config collection and packages.

    Example:
        >>> manager = FeaturesManager(site)
        >>> manager.assign_config_packages(force=True)
        >>> package = manager.get_package("blog")
        >>> manager.assign_config_dependents(package.config, "blog")
    """

    def __init__(self, site: SiteManifest) -> None:
        """Initialize the manager from a site manifest.

        Args:
            site: Persisted site state. It is never mutated.
        """
        self._config_types: dict[str, ConfigType] = {
            name: ConfigType(name=name, label=entry.label, prefix=entry.prefix or name)
            for name, entry in site.config_types.items()
        }
        self._collection = self._build_collection(site)
        self._packages: dict[str, Package] = {
            name: package.model_copy(deep=True) for name, package in site.packages.items()
        }
        self._bundles: dict[str, Bundle] = {
            name: bundle.model_copy() for name, bundle in site.bundles.items()
        }
        self._extensions = dict(site.extensions)

    def _build_collection(self, site: SiteManifest) -> dict[str, ConfigItem]:
        dependents: dict[str, list[str]] = {}
        for name, entry in site.config.items():
            for dependency in entry.dependencies:
                dependents.setdefault(dependency, []).append(name)

        collection: dict[str, ConfigItem] = {}
        for name in sorted(site.config):
            entry = site.config[name]
            config_type = self._get_type(entry.type)
            collection[name] = ConfigItem(
                name=name,
                type=entry.type,
                short_name=config_type.short_name(name),
                label=entry.label or config_type.short_name(name),
                package=entry.package,
                provider=entry.provider,
                dependencies=tuple(entry.dependencies),
                dependents=tuple(sorted(dependents.get(name, []))),
                data=entry.data,
            )
        return collection

    def _get_type(self, name: str) -> ConfigType:
        config_type = self._config_types.get(name)
        if config_type is None:
            label = "Simple configuration" if name == SIMPLE_CONFIG_TYPE else name
            config_type = ConfigType(name=name, label=label, prefix=name)
            self._config_types[name] = config_type
        return config_type

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    def get_config_collection(self) -> Mapping[str, ConfigItem]:
        """Get the live config collection keyed by full name."""
        return self._collection

    def get_packages(self) -> Mapping[str, Package]:
        """Get the working packages keyed by machine name."""
        return self._packages

    def get_package(self, machine_name: str) -> Package | None:
        """Get a working package by machine name."""
        return self._packages.get(machine_name)

    def set_package(self, package: Package) -> None:
        """Register or replace a working package."""
        self._packages[package.machine_name] = package

    def get_bundle(self, machine_name: str) -> Bundle | None:
        """Get a bundle by machine name."""
        return self._bundles.get(machine_name)

    def get_extension_name(self, machine_name: str) -> str:
        """Get the human name of an installed extension."""
        return self._extensions.get(machine_name, machine_name)

    def list_config_types(self) -> dict[str, str]:
        """List config types in use, sorted case-insensitively by label.

        Returns:
            Dictionary of type machine name to label.
        """
        names = set(self._config_types) | {item.type for item in self._collection.values()}
        types = [self._get_type(name) for name in names]
        types.sort(key=lambda t: (t.label.casefold(), t.name))
        return {t.name: t.label for t in types}

    def full_name(self, component: str, key: str) -> str:
        """Build the full config name of a (type, short name) pair."""
        return self._get_type(component).full_name(key)

    def config_type_of(self, full_name: str) -> tuple[str, str]:
        """Determine the (type, short name) of a full config name.

        Items in the live collection answer directly; otherwise the longest
        matching type prefix wins, falling back to simple configuration.

        Args:
            full_name: Full config name.

        Returns:
            Tuple of (type machine name, short name).
        """
        item = self._collection.get(full_name)
        if item is not None:
            return item.type, item.short_name

        best: ConfigType | None = None
        for config_type in self._config_types.values():
            if config_type.name == SIMPLE_CONFIG_TYPE:
                continue
            if full_name.startswith(f"{config_type.prefix}.") and (
                best is None or len(config_type.prefix) > len(best.prefix)
            ):
                best = config_type
        if best is None:
            return SIMPLE_CONFIG_TYPE, full_name
        return best.name, best.short_name(full_name)

    # -------------------------------------------------------------------------
    # Packages
    # -------------------------------------------------------------------------

    def init_package(
        self,
        machine_name: str,
        name: str | None = None,
        description: str = "",
        bundle: Bundle | None = None,
    ) -> Package:
        """Create and register a new, never exported package.

        Args:
            machine_name: Short or full machine name.
            name: Human-readable name; defaults to the machine name.
            description: Package description.
            bundle: Bundle the package belongs to.

        Returns:
            The registered Package.
        """
        full_name = bundle.full_name(machine_name) if bundle else machine_name
        package = Package(
            machine_name=full_name,
            name=name or machine_name,
            description=description,
            bundle=bundle.machine_name if bundle else "default",
            status=PackageStatus.NO_EXPORT,
        )
        self._packages[full_name] = package
        logger.debug("Initialized package %s", full_name)
        return package

    def assign_config_packages(self, force: bool = False) -> None:
        """Assign config to every package.

        A package receives its persisted config, the items it owns, its
        previous export and its required items.

        Args:
            force: Also assign excluded items.
        """
        owned: dict[str, list[str]] = {}
        for item in self._collection.values():
            if item.package:
                owned.setdefault(item.package, []).append(item.name)

        for machine_name, package in self._packages.items():
            names = _unique(
                [
                    *package.config,
                    *owned.get(machine_name, []),
                    *package.config_orig,
                    *package.required_list,
                ]
            )
            if not force:
                excluded = set(package.excluded)
                names = [name for name in names if name not in excluded]
                package.config = [name for name in package.config if name not in excluded]
            # Previously exported and required items stay with the package
            # even when another package claims them.
            self.assign_config_package(machine_name, names, force=True)

    def assign_config_package(
        self,
        package_name: str,
        item_names: Iterable[str],
        force: bool = False,
    ) -> list[str]:
        """Assign config items to a package.

        Items missing from the live collection are skipped. Unless
        ``force`` is set, items owned by another package and items the
        package excludes are skipped too. Unowned items become owned.

        Args:
            package_name: Machine name of the target package.
            item_names: Full config names to assign.
            force: Assign owned and excluded items as well.

        Returns:
            Names that were newly added to the package's config.
        """
        package = self._packages.get(package_name)
        if package is None:
            logger.debug("Cannot assign config to unknown package %s", package_name)
            return []

        excluded = set(package.excluded)
        added: list[str] = []
        for name in item_names:
            item = self._collection.get(name)
            if item is None:
                continue
            if not force:
                if item.package and item.package != package_name:
                    continue
                if name in excluded:
                    continue
            if name not in package.config:
                package.config.append(name)
                added.append(name)
            if not item.package:
                self._collection[name] = replace(item, package=package_name)
        return added

    def assign_config_dependents(self, item_names: Iterable[str], package_name: str) -> list[str]:
        """Assign every config item that transitively depends on the given items.

        Dependents owned by another package are left alone. Excluded
        dependents are still assigned so they can be shown as detected
        but unselected.

        Args:
            item_names: Full names of the seed items.
            package_name: Machine name of the target package.

        Returns:
            Names of every dependent now assigned to the package.
        """
        assigned: list[str] = []
        seen: set[str] = set()
        queue = deque(item_names)
        while queue:
            name = queue.popleft()
            if name in seen:
                continue
            seen.add(name)
            item = self._collection.get(name)
            if item is None:
                continue
            for dependent_name in item.dependents:
                dependent = self._collection.get(dependent_name)
                if dependent is None:
                    continue
                if dependent.package and dependent.package != package_name:
                    continue
                self.assign_config_package(package_name, [dependent_name], force=True)
                if dependent_name not in assigned:
                    assigned.append(dependent_name)
                queue.append(dependent_name)
        if assigned:
            logger.debug("Detected dependents for %s: %s", package_name, ", ".join(assigned))
        return assigned

    def refresh_dependencies(self, package: Package) -> list[str]:
        """Recompute the extension dependencies of a package from its config.

        Args:
            package: Package to update in place.

        Returns:
            Sorted list of extension machine names.
        """
        providers = {
            item.provider
            for name in package.config
            if (item := self._collection.get(name)) is not None and item.provider
        }
        providers.discard(package.machine_name)
        package.dependencies = sorted(providers)
        return package.dependencies

    # -------------------------------------------------------------------------
    # Export helpers
    # -------------------------------------------------------------------------

    def get_export_info(
        self, package: Package, bundle: Bundle, export_root: Path
    ) -> tuple[str, Path]:
        """Get the full machine name and export directory of a package.

        Args:
            package: Package to export.
            bundle: Bundle the package is exported in.
            export_root: Root directory for generated packages.

        Returns:
            Tuple of (full machine name, package directory).
        """
        full_name = bundle.full_name(bundle.short_name(package.machine_name))
        directory = package.directory or full_name
        return full_name, export_root / directory

    def feature_exists(self, machine_name: str, bundle: Bundle) -> bool:
        """Check if a machine name is taken.

        A package only counts once it has been exported; an installed
        extension with that name always counts.

        Args:
            machine_name: Short machine name as entered.
            bundle: Bundle the name is prefixed with.

        Returns:
            True if the full name is already in use.
        """
        full_name = bundle.full_name(machine_name)
        package = self._packages.get(full_name)
        if package is not None and package.is_exported:
            return True
        return full_name in self._extensions

    @staticmethod
    def reorder_missing(
        missing: Iterable[str], definitions: Mapping[str, Mapping[str, Any]]
    ) -> list[str]:
        """Order missing items so that their config dependencies come first.

        Args:
            missing: Full names of missing config.
            definitions: Exported definitions keyed by full name; each may
                carry a ``dependencies`` list.

        Returns:
            Missing names in import order. Cycles keep their original order.
        """
        pending = _unique(missing)
        pending_set = set(pending)
        ordered: list[str] = []
        visiting: set[str] = set()
        done: set[str] = set()

        def visit(name: str) -> None:
            if name in done or name in visiting:
                return
            visiting.add(name)
            for dependency in definitions.get(name, {}).get("dependencies", []):
                if dependency in pending_set:
                    visit(dependency)
            visiting.discard(name)
            done.add(name)
            ordered.append(name)

        for name in pending:
            visit(name)
        return ordered


def _unique(names: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(names))
