"""Feature editing.

The FeatureEditor drives the edit workflow of a single feature package:
load the package (or start a new one), build the component selection,
toggle items, and finally save the selection back into the site, either
exporting the package with a generation method or importing config that
went missing from the site.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from featurectl.core.constraints import ConstraintMaps
from featurectl.core.generator import FeaturesGenerator, GenerationMethod, GenerationResult
from featurectl.core.importer import ImportReport, import_missing
from featurectl.core.manager import FeaturesManager
from featurectl.core.reconciler import Reconciliation, SelectionReconciler, config_label
from featurectl.core.settings import FeaturesSettings
from featurectl.core.toggles import UnknownItemError, toggle_items
from featurectl.models.package import DEFAULT_BUNDLE, Bundle, Package
from featurectl.models.selection import FormSubmission
from featurectl.models.site import SiteManifest

logger = logging.getLogger(__name__)

MACHINE_NAME_PATTERN = re.compile(r"^[a-z0-9_]+$")
IMPORT_MISSING = "import_missing"


class EditorError(Exception):
    """Base exception for feature editing errors."""


class InvalidMachineNameError(EditorError):
    """Raised when a machine name contains invalid characters."""


class FeatureExistsError(EditorError):
    """Raised when a machine name is already used by another feature."""


class UnknownConfigError(EditorError):
    """Raised when a config item is not part of the selection."""


class UnknownBundleError(EditorError):
    """Raised when an explicitly requested bundle does not exist."""


def normalize_feature_name(name: str) -> str:
    """Replace dashes and spaces in a feature name with underscores."""
    return name.replace("-", "_").replace(" ", "_")


@dataclass(frozen=True, slots=True)
class FeatureEdit:
    """A package loaded for editing.

    Attributes:
        package: Working copy of the package.
        bundle: Bundle the package is edited in.
        original_name: Machine name the package is stored under, if any.
    """

    package: Package
    bundle: Bundle
    original_name: str | None = None

    @property
    def is_new(self) -> bool:
        """Check if the package is not stored in the site yet."""
        return self.original_name is None


@dataclass(frozen=True, slots=True)
class FeatureInfo:
    """General information entered for a feature.

    Fields left as None keep the package's current value.

    Attributes:
        name: Human-readable name.
        machine_name: Short machine name, without the bundle prefix.
        description: Package description.
        version: Version string.
        directory: Export directory relative to the export root.
        require_all: Mark all config as required.
    """

    name: str | None = None
    machine_name: str | None = None
    description: str | None = None
    version: str | None = None
    directory: str | None = None
    require_all: bool | None = None


@dataclass(frozen=True, slots=True)
class EditorView:
    """Everything needed to render the edit form.

    Attributes:
        edit: The feature being edited.
        result: Reconciled component selection.
        export_name: Full machine name the package exports as.
        export_path: Directory the write method exports to.
        methods: Generation methods, sorted by weight.
        allow_conflicts: Whether conflicting config is offered.
    """

    edit: FeatureEdit
    result: Reconciliation
    export_name: str
    export_path: Path
    methods: list[GenerationMethod] = field(default_factory=list)
    allow_conflicts: bool = False

    @property
    def can_export(self) -> bool:
        """Missing config blocks export unless conflicts are allowed."""
        return not self.result.has_missing or self.allow_conflicts

    @property
    def can_import_missing(self) -> bool:
        """Check if an import of missing config is offered."""
        return self.result.has_missing

    @property
    def notice(self) -> str | None:
        """Explain what missing config means for the available actions."""
        if not self.result.has_missing:
            return None
        if self.allow_conflicts:
            return (
                "WARNING: Package contains configuration missing from site. "
                "This configuration will be removed if you export it."
            )
        return (
            "Package contains configuration missing from site. "
            "Import the feature to create the missing config before you can export it. "
            "Or, enable the Allow Conflicts option."
        )


@dataclass(frozen=True, slots=True)
class SubmitResult:
    """Outcome of saving a feature.

    Attributes:
        package: Package as stored in the site.
        result: Reconciliation the package was saved from.
        generated: Results of the generation method, if one was run.
        imported: Report of the missing config import, if one was run.
    """

    package: Package
    result: Reconciliation
    generated: list[GenerationResult] = field(default_factory=list)
    imported: ImportReport | None = None

    @property
    def success(self) -> bool:
        """Check if generation and import went through without errors."""
        if any(not r.success for r in self.generated):
            return False
        return self.imported is None or self.imported.success


class FeatureEditor:
    """Edits feature packages of a site.

    Example:
        >>> editor = FeatureEditor(site, settings, site_path)
        >>> edit = editor.load("blog")
        >>> view = editor.build(edit)
        >>> editor.submit(edit, FeatureInfo(name="Blog"), view.result.submission)
    """

    def __init__(self, site: SiteManifest, settings: FeaturesSettings, site_path: Path) -> None:
        """Initialize the editor.

        Args:
            site: Site manifest. Only :meth:`load` (new bundles) and
                :meth:`submit` modify it.
            settings: Export settings.
            site_path: Location of the site manifest, used to resolve
                relative export directories.
        """
        self._site = site
        self._settings = settings
        self._export_root = settings.resolve_export_root(site_path)
        self._archive_root = settings.resolve_archive_root(site_path)

    @property
    def site(self) -> SiteManifest:
        """The site being edited."""
        return self._site

    def load(self, feature: str, bundle_name: str | None = None) -> FeatureEdit:
        """Load a feature for editing.

        An unknown feature starts a new, never exported package in the
        requested bundle. A stored package keeps its own bundle unless a
        bundle is requested explicitly, in which case its machine name is
        re-prefixed for that bundle when it is saved.

        Args:
            feature: Full machine name of the feature.
            bundle_name: Explicitly requested bundle.

        Returns:
            The FeatureEdit.

        Raises:
            UnknownBundleError: If the requested bundle does not exist.
        """
        if bundle_name is not None:
            bundle = self._site.get_bundle(bundle_name)
            if bundle is None:
                raise UnknownBundleError(f"Bundle '{bundle_name}' does not exist")
        else:
            bundle = self._site.bundles[DEFAULT_BUNDLE]

        stored = self._site.packages.get(feature)
        if stored is None:
            feature = normalize_feature_name(feature)
            stored = self._site.packages.get(feature)

        if stored is None:
            manager = FeaturesManager(self._site)
            package = manager.init_package(feature, bundle=bundle)
            logger.debug("Editing new feature %s in bundle %s", package.machine_name, bundle)
            return FeatureEdit(package=package, bundle=bundle)

        package = stored.model_copy(deep=True)
        if package.bundle != bundle.machine_name:
            old_bundle = self._ensure_bundle(package.bundle)
            if bundle_name is None:
                bundle = old_bundle
        return FeatureEdit(package=package, bundle=bundle, original_name=stored.machine_name)

    def _ensure_bundle(self, machine_name: str) -> Bundle:
        bundle = self._site.get_bundle(machine_name)
        if bundle is None:
            bundle = Bundle(machine_name=machine_name, name=machine_name)
            self._site.bundles[machine_name] = bundle
            logger.info("Created bundle %s", machine_name)
        return bundle

    def target_package(self, edit: FeatureEdit) -> Package:
        """Get the package as it will be stored in the edited bundle."""
        if edit.package.bundle == edit.bundle.machine_name:
            return edit.package
        old_bundle = self._site.get_bundle(edit.package.bundle) or Bundle(
            machine_name=edit.package.bundle
        )
        return change_bundle(edit.package, old_bundle, edit.bundle)

    def allow_conflicts(self, value: bool | None) -> bool:
        """Resolve the conflict allowance, falling back to the settings."""
        return self._settings.allow_conflicts if value is None else value

    def build(
        self,
        edit: FeatureEdit,
        submission: FormSubmission | None = None,
        *,
        allow_conflicts: bool | None = None,
        constraints: ConstraintMaps | None = None,
    ) -> EditorView:
        """Reconcile the selection and collect what the edit form shows.

        Args:
            edit: The feature being edited.
            submission: Posted values, or None for the initial render.
            allow_conflicts: Offer conflicting config; defaults to settings.
            constraints: Working constraint maps of an earlier pass.

        Returns:
            EditorView for the current state.
        """
        allowed = self.allow_conflicts(allow_conflicts)
        result = SelectionReconciler(self._site).reconcile(
            edit.package,
            submission,
            allow_conflicts=allowed,
            constraints=constraints,
        )
        manager = FeaturesManager(self._site)
        export_name, export_path = manager.get_export_info(
            self.target_package(edit), edit.bundle, self._export_root
        )
        generator = FeaturesGenerator(manager, self._export_root, self._archive_root)
        return EditorView(
            edit=edit,
            result=result,
            export_name=export_name,
            export_path=export_path,
            methods=generator.get_methods(),
            allow_conflicts=allowed,
        )

    def toggle(self, view: EditorView, names: Iterable[str], checked: bool) -> FormSubmission:
        """Check or uncheck items of a rendered selection.

        Args:
            view: The rendered view.
            names: Full config names to toggle.
            checked: New checkbox state.

        Returns:
            Submission ready to be passed to :meth:`build`.

        Raises:
            UnknownConfigError: If an item is not part of the selection.
        """
        manager = FeaturesManager(self._site)
        try:
            return toggle_items(view.result, manager, names, checked)
        except UnknownItemError as e:
            raise UnknownConfigError(str(e)) from e

    def config_label(
        self, component: str, key: str, label: str, conflicts: dict[str, dict[str, str]]
    ) -> str:
        """Build the display label of an item."""
        manager = FeaturesManager(self._site)
        return config_label(
            component, key, label, conflicts, manager.get_config_collection(), manager
        )

    def feature_exists(self, machine_name: str, bundle: Bundle) -> bool:
        """Check if a short machine name is taken in a bundle."""
        return FeaturesManager(self._site).feature_exists(machine_name, bundle)

    def submit(
        self,
        edit: FeatureEdit,
        info: FeatureInfo,
        submission: FormSubmission | None = None,
        *,
        method_id: str | None = None,
        allow_conflicts: bool | None = None,
        constraints: ConstraintMaps | None = None,
    ) -> SubmitResult:
        """Save a feature into the site and optionally export it.

        An unsubmitted (or absent) submission saves the selection as it
        would be rendered.

        Args:
            edit: The feature being edited.
            info: General information to apply.
            submission: Posted values of the component list.
            method_id: Generation method to run, or ``import_missing``.
            allow_conflicts: Offer conflicting config; defaults to settings.
            constraints: Working constraint maps of an earlier pass.

        Returns:
            SubmitResult with the stored package.

        Raises:
            InvalidMachineNameError: If the machine name is invalid.
            FeatureExistsError: If the machine name belongs to another feature.
            GenerationError: If the generation method is unknown.
        """
        bundle = edit.bundle
        short_name = info.machine_name or bundle.short_name(
            self.target_package(edit).machine_name
        )
        self._validate_machine_name(short_name, bundle, edit)
        if method_id and method_id != IMPORT_MISSING:
            FeaturesGenerator(
                FeaturesManager(self._site), self._export_root, self._archive_root
            ).get_method(method_id)
        full_name = bundle.full_name(short_name)

        allowed = self.allow_conflicts(allow_conflicts)
        reconciler = SelectionReconciler(self._site)
        if submission is None or not submission.submitted:
            rendered = reconciler.reconcile(
                edit.package, submission, allow_conflicts=allowed, constraints=constraints
            )
            submission = rendered.state.as_submission()
            constraints = rendered.constraints
        result = reconciler.reconcile(
            edit.package, submission, allow_conflicts=allowed, constraints=constraints
        )

        package = result.package.model_copy(deep=True)
        package.machine_name = full_name
        package.bundle = bundle.machine_name
        if info.name is not None:
            package.name = info.name
        if info.description is not None:
            package.description = info.description
        if info.version is not None:
            package.version = info.version
        if info.directory is not None:
            package.directory = info.directory or None
        package.config = list(result.export_config)
        package.excluded = list(result.excluded)
        require_all = package.required_all if info.require_all is None else info.require_all
        package.required = True if require_all else list(result.required)

        self._store(package, edit.original_name)
        logger.info(
            "Saved feature %s with %d config item(s)", package.machine_name, len(package.config)
        )

        if method_id == IMPORT_MISSING:
            manager = FeaturesManager(self._site)
            _, package_dir = manager.get_export_info(package, bundle, self._export_root)
            report = import_missing(self._site, package.machine_name, result.missing, package_dir)
            return SubmitResult(package=package, result=result, imported=report)

        if method_id:
            manager = FeaturesManager(self._site)
            generator = FeaturesGenerator(manager, self._export_root, self._archive_root)
            generated = generator.generate_packages(method_id, bundle, [package.machine_name])
            exported = manager.get_package(package.machine_name)
            if exported is not None:
                self._site.packages[package.machine_name] = exported
                package = exported
            return SubmitResult(package=package, result=result, generated=generated)

        return SubmitResult(package=package, result=result)

    def _validate_machine_name(self, short_name: str, bundle: Bundle, edit: FeatureEdit) -> None:
        if not MACHINE_NAME_PATTERN.match(short_name):
            raise InvalidMachineNameError(
                f"Machine name '{short_name}' may only contain lowercase letters, "
                "numbers and underscores"
            )
        full_name = bundle.full_name(short_name)
        if full_name == edit.original_name:
            return
        if self.feature_exists(short_name, bundle):
            raise FeatureExistsError(f"Feature '{full_name}' already exists")

    def _store(self, package: Package, original_name: str | None) -> None:
        """Write a package into the site and sync config ownership."""
        if original_name is not None and original_name != package.machine_name:
            self._site.packages.pop(original_name, None)
            logger.info("Renamed feature %s to %s", original_name, package.machine_name)
        self._site.packages[package.machine_name] = package

        assigned = set(package.config)
        owners = {package.machine_name, original_name} - {None}
        for name, entry in self._site.config.items():
            owner = entry.package
            if name in assigned and not owner:
                self._site.config[name] = entry.model_copy(update={"package": package.machine_name})
            elif owner in owners and name not in assigned:
                self._site.config[name] = entry.model_copy(update={"package": None})
            elif owner in owners and owner != package.machine_name:
                self._site.config[name] = entry.model_copy(update={"package": package.machine_name})


def change_bundle(package: Package, old_bundle: Bundle, new_bundle: Bundle) -> Package:
    """Re-prefix a package's machine name for another bundle.

    Moving to the default bundle keeps the old prefix as part of the name.

    Args:
        package: Package to move.
        old_bundle: Bundle the package is in.
        new_bundle: Bundle the package moves to.

    Returns:
        Copy of the package with the new machine name and bundle.
    """
    short_name = old_bundle.short_name(package.machine_name)
    if new_bundle.is_default:
        short_name = old_bundle.full_name(short_name)
    moved = package.model_copy(deep=True)
    moved.machine_name = new_bundle.full_name(short_name)
    moved.bundle = new_bundle.machine_name
    return moved

