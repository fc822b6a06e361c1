"""Unit tests for the feature editor.

Tests for loading, building, toggling and saving features.
"""

from collections.abc import Callable
from pathlib import Path

import pytest
from featurectl.core.editor import (
    IMPORT_MISSING,
    FeatureEditor,
    FeatureExistsError,
    FeatureInfo,
    InvalidMachineNameError,
    UnknownBundleError,
    UnknownConfigError,
    change_bundle,
    normalize_feature_name,
)
from featurectl.core.generator import GenerationError
from featurectl.core.settings import FeaturesSettings
from featurectl.models.package import Bundle, Package, PackageStatus
from featurectl.models.selection import Placement, Section
from featurectl.models.site import SiteManifest


@pytest.fixture
def editor(site: SiteManifest, settings: FeaturesSettings, site_path: Path) -> FeatureEditor:
    return FeatureEditor(site, settings, site_path)


class TestLoad:
    """Tests for FeatureEditor.load."""

    def test_new_feature(self, editor: FeatureEditor) -> None:
        """An unknown feature starts a new package in the default bundle."""
        edit = editor.load("my-blog")

        assert edit.is_new
        assert edit.package.machine_name == "my_blog"
        assert edit.bundle.machine_name == "default"

    def test_new_feature_in_bundle(self, editor: FeatureEditor) -> None:
        """A new feature in a bundle is prefixed."""
        edit = editor.load("blog", "acme")

        assert edit.package.machine_name == "acme_blog"
        assert edit.package.bundle == "acme"

    def test_unknown_bundle(self, editor: FeatureEditor) -> None:
        """An explicitly requested bundle must exist."""
        with pytest.raises(UnknownBundleError, match="nope"):
            editor.load("blog", "nope")

    def test_stored_feature_keeps_its_bundle(
        self, editor: FeatureEditor, site: SiteManifest, add_package: Callable[..., Package]
    ) -> None:
        """A stored package is edited in its own bundle unless one is requested."""
        add_package("acme_blog", ["system.site"], bundle="acme")

        edit = editor.load("acme_blog")

        assert not edit.is_new
        assert edit.original_name == "acme_blog"
        assert edit.bundle.machine_name == "acme"
        assert edit.package is not site.packages["acme_blog"]

    def test_missing_bundle_is_created(
        self, editor: FeatureEditor, site: SiteManifest, add_package: Callable[..., Package]
    ) -> None:
        """A package referring to an unknown bundle gets that bundle created."""
        add_package("shop_cart", [], bundle="shop")

        edit = editor.load("shop_cart")

        assert edit.bundle.machine_name == "shop"
        assert "shop" in site.bundles

    def test_normalize_feature_name(self) -> None:
        """Dashes and spaces become underscores."""
        assert normalize_feature_name("my blog-posts") == "my_blog_posts"


class TestBuildAndToggle:
    """Tests for FeatureEditor.build and toggle."""

    def test_build_new_feature(self, editor: FeatureEditor, tmp_path: Path) -> None:
        """The view carries export info and the generation methods."""
        view = editor.build(editor.load("blog"))

        assert view.export_name == "blog"
        assert view.export_path == tmp_path / "modules" / "blog"
        assert [m.method_id for m in view.methods] == ["archive", "write"]
        assert view.can_export
        assert not view.can_import_missing
        assert view.notice is None

    def test_allow_conflicts_defaults_to_settings(
        self, site: SiteManifest, site_path: Path, tmp_path: Path
    ) -> None:
        """Without an explicit value the settings decide."""
        settings = FeaturesSettings(export_path=str(tmp_path), allow_conflicts=True)
        editor = FeatureEditor(site, settings, site_path)

        assert editor.build(editor.load("blog")).allow_conflicts
        assert not editor.build(editor.load("blog"), allow_conflicts=False).allow_conflicts

    def test_toggle_then_build(self, editor: FeatureEditor) -> None:
        """Toggled values are reconciled on the next build."""
        edit = editor.load("blog")
        view = editor.build(edit)

        submission = editor.toggle(view, ["node.type.article"], True)
        view = editor.build(edit, submission, constraints=view.result.constraints)

        assert view.result.state.placement("node_type", "article") == Placement(
            Section.ADDED, True
        )
        assert view.result.state.placement("view", "frontpage") == Placement(
            Section.DETECTED, True
        )

    def test_toggle_unknown_item(self, editor: FeatureEditor) -> None:
        """Unknown items raise UnknownConfigError."""
        view = editor.build(editor.load("blog"))

        with pytest.raises(UnknownConfigError):
            editor.toggle(view, ["views.view.deleted"], True)

    def test_missing_config_notice(
        self, editor: FeatureEditor, add_package: Callable[..., Package]
    ) -> None:
        """Missing config blocks export unless conflicts are allowed."""
        add_package("blog", ["views.view.deleted"])
        edit = editor.load("blog")

        blocked = editor.build(edit, allow_conflicts=False)
        allowed = editor.build(edit, allow_conflicts=True)

        assert not blocked.can_export
        assert blocked.can_import_missing
        assert "Import the feature" in blocked.notice
        assert allowed.can_export
        assert allowed.notice.startswith("WARNING")


class TestSubmit:
    """Tests for FeatureEditor.submit."""

    def test_save_new_feature(self, editor: FeatureEditor, site: SiteManifest) -> None:
        """Saving stores the selection and takes ownership of its config."""
        edit = editor.load("blog")
        view = editor.build(edit)
        submission = editor.toggle(view, ["node.type.article"], True)

        result = editor.submit(
            edit,
            FeatureInfo(name="Blog", description="Blog posts"),
            submission,
            constraints=view.result.constraints,
        )

        package = site.packages["blog"]
        assert result.success
        assert result.package is package
        assert package.name == "Blog"
        assert package.description == "Blog posts"
        assert package.config == [
            "node.type.article",
            "field.storage.node.body",
            "views.view.frontpage",
        ]
        assert package.required == ["node.type.article"]
        assert package.status == PackageStatus.NO_EXPORT
        assert site.config["views.view.frontpage"].package == "blog"
        assert site.config["views.view.archive"].package is None

    def test_save_without_submission_keeps_render(
        self, editor: FeatureEditor, site: SiteManifest, add_package: Callable[..., Package]
    ) -> None:
        """Saving without posted values stores what the first render shows."""
        add_package("blog", ["node.type.article"])

        editor.submit(editor.load("blog"), FeatureInfo())

        assert site.packages["blog"].config == [
            "node.type.article",
            "field.storage.node.body",
            "views.view.frontpage",
        ]

    def test_require_all(self, editor: FeatureEditor, site: SiteManifest) -> None:
        """require_all stores required = true."""
        editor.submit(editor.load("blog"), FeatureInfo(require_all=True))

        assert site.packages["blog"].required is True

    def test_save_releases_unselected_config(
        self, editor: FeatureEditor, site: SiteManifest, add_package: Callable[..., Package]
    ) -> None:
        """Config the package no longer selects loses its owner."""
        add_package("blog", ["views.view.archive", "system.site"])
        edit = editor.load("blog")
        view = editor.build(edit)
        submission = editor.toggle(view, ["system.site"], False)

        editor.submit(edit, FeatureInfo(), submission, constraints=view.result.constraints)

        assert site.packages["blog"].config == ["views.view.archive"]
        assert site.config["system.site"].package is None

    def test_invalid_machine_name(self, editor: FeatureEditor) -> None:
        """Machine names are lowercase letters, numbers and underscores."""
        with pytest.raises(InvalidMachineNameError):
            editor.submit(editor.load("blog"), FeatureInfo(machine_name="Blog!"))

    def test_existing_machine_name(
        self, editor: FeatureEditor, add_package: Callable[..., Package]
    ) -> None:
        """A name taken by an exported package cannot be reused."""
        add_package("news", [])

        with pytest.raises(FeatureExistsError, match="news"):
            editor.submit(editor.load("blog"), FeatureInfo(machine_name="news"))

    def test_unknown_method(self, editor: FeatureEditor, site: SiteManifest) -> None:
        """An unknown method fails before anything is stored."""
        with pytest.raises(GenerationError):
            editor.submit(editor.load("blog"), FeatureInfo(), method_id="zip")

        assert "blog" not in site.packages

    def test_rename(
        self, editor: FeatureEditor, site: SiteManifest, add_package: Callable[..., Package]
    ) -> None:
        """Renaming moves the package and its config ownership."""
        add_package("blog", ["views.view.archive"])

        result = editor.submit(editor.load("blog"), FeatureInfo(machine_name="news"))

        assert result.package.machine_name == "news"
        assert "blog" not in site.packages
        assert site.config["views.view.archive"].package == "news"

    def test_move_to_bundle(
        self, editor: FeatureEditor, site: SiteManifest, add_package: Callable[..., Package]
    ) -> None:
        """Saving in another bundle re-prefixes the machine name."""
        add_package("blog", ["views.view.archive"])

        result = editor.submit(editor.load("blog", "acme"), FeatureInfo())

        assert result.package.machine_name == "acme_blog"
        assert result.package.bundle == "acme"
        assert set(site.packages) == {"acme_blog"}

    def test_export_with_write(
        self, editor: FeatureEditor, site: SiteManifest, tmp_path: Path
    ) -> None:
        """Saving with a method exports the package and records the export."""
        edit = editor.load("blog")
        view = editor.build(edit)
        submission = editor.toggle(view, ["views.view.archive"], True)

        result = editor.submit(
            edit,
            FeatureInfo(name="Blog"),
            submission,
            method_id="write",
            constraints=view.result.constraints,
        )

        assert result.success
        assert [r.package for r in result.generated] == ["blog"]
        assert (tmp_path / "modules" / "blog" / "blog.features.toml").exists()
        stored = site.packages["blog"]
        assert stored.status == PackageStatus.UNINSTALLED
        assert stored.config_orig == ["views.view.archive"]

    def test_import_missing(
        self, editor: FeatureEditor, site: SiteManifest, add_package: Callable[..., Package]
    ) -> None:
        """Missing config is restored from the previous export."""
        add_package("blog", ["views.view.archive"])
        editor.submit(editor.load("blog"), FeatureInfo(), method_id="write")
        del site.config["views.view.archive"]

        result = editor.submit(editor.load("blog"), FeatureInfo(), method_id=IMPORT_MISSING)

        assert result.imported is not None
        assert result.imported.imported == ["views.view.archive"]
        assert site.config["views.view.archive"].package == "blog"


class TestChangeBundle:
    """Tests for change_bundle function."""

    def test_into_bundle(self) -> None:
        """Moving into a bundle adds its prefix."""
        package = Package(machine_name="blog")

        moved = change_bundle(package, Bundle(machine_name="default"), Bundle(machine_name="acme"))

        assert moved.machine_name == "acme_blog"
        assert moved.bundle == "acme"
        assert package.machine_name == "blog"

    def test_between_bundles(self) -> None:
        """Moving between bundles swaps the prefix."""
        package = Package(machine_name="acme_blog", bundle="acme")

        moved = change_bundle(package, Bundle(machine_name="acme"), Bundle(machine_name="shop"))

        assert moved.machine_name == "shop_blog"

    def test_to_default_keeps_old_prefix(self) -> None:
        """Moving to the default bundle keeps the old prefix in the name."""
        package = Package(machine_name="acme_blog", bundle="acme")

        moved = change_bundle(package, Bundle(machine_name="acme"), Bundle(machine_name="default"))

        assert moved.machine_name == "acme_blog"
        assert moved.bundle == "default"
