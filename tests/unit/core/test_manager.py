"""Unit tests for the features manager.

Tests for config collection building, assignment and export helpers.
"""

from collections.abc import Callable
from pathlib import Path

from featurectl.core.manager import FeaturesManager
from featurectl.models.config_item import SIMPLE_CONFIG_TYPE
from featurectl.models.package import Bundle, Package, PackageStatus
from featurectl.models.site import SiteManifest


class TestCollection:
    """Tests for the config collection snapshot."""

    def test_items_have_short_names_and_dependents(self, site: SiteManifest) -> None:
        """Dependents are the reverse of dependencies."""
        config = FeaturesManager(site).get_config_collection()

        article = config["node.type.article"]
        assert article.short_name == "article"
        assert article.dependents == ("field.storage.node.body", "views.view.frontpage")
        assert config["field.storage.node.body"].short_name == "node.body"

    def test_label_falls_back_to_short_name(self, site: SiteManifest) -> None:
        """Items without a label use their short name."""
        site.config["views.view.archive"] = site.config["views.view.archive"].model_copy(
            update={"label": ""}
        )

        config = FeaturesManager(site).get_config_collection()

        assert config["views.view.archive"].label == "archive"

    def test_site_is_not_mutated(
        self, site: SiteManifest, add_package: Callable[..., Package]
    ) -> None:
        """Assignment only changes the manager's working copies."""
        add_package("blog", ["node.type.article"])
        manager = FeaturesManager(site)

        manager.assign_config_dependents(["node.type.article"], "blog")

        assert site.packages["blog"].config == ["node.type.article"]
        assert site.config["views.view.frontpage"].package is None

    def test_list_config_types_sorted_by_label(self, site: SiteManifest) -> None:
        """Config types are sorted case-insensitively by label."""
        types = FeaturesManager(site).list_config_types()

        assert list(types) == ["node_type", "field_storage", "system_simple", "view"]

    def test_unregistered_type_uses_name_as_label(self, site: SiteManifest) -> None:
        """Types used by config but absent from the registry are listed too."""
        site.config["block.block.footer"] = site.config["system.site"].model_copy(
            update={"type": "block"}
        )

        types = FeaturesManager(site).list_config_types()

        assert types["block"] == "block"


class TestConfigTypeOf:
    """Tests for FeaturesManager.config_type_of."""

    def test_known_item(self, site: SiteManifest) -> None:
        """Items in the collection answer directly."""
        manager = FeaturesManager(site)

        assert manager.config_type_of("field.storage.node.body") == ("field_storage", "node.body")

    def test_longest_prefix_wins(self, site: SiteManifest) -> None:
        """Unknown names are matched by the longest type prefix."""
        site.config_types["view_display"] = site.config_types["view"].model_copy(
            update={"label": "View display", "prefix": "views.view.display"}
        )
        manager = FeaturesManager(site)

        assert manager.config_type_of("views.view.display.teaser") == ("view_display", "teaser")
        assert manager.config_type_of("views.view.deleted") == ("view", "deleted")

    def test_falls_back_to_simple_config(self, site: SiteManifest) -> None:
        """Names matching no prefix are simple configuration."""
        manager = FeaturesManager(site)

        assert manager.config_type_of("core.extension") == (SIMPLE_CONFIG_TYPE, "core.extension")


class TestAssignment:
    """Tests for config assignment to packages."""

    def test_init_package_in_bundle(self, site: SiteManifest) -> None:
        """init_package prefixes the name with the bundle."""
        manager = FeaturesManager(site)

        package = manager.init_package("blog", bundle=site.bundles["acme"])

        assert package.machine_name == "acme_blog"
        assert package.bundle == "acme"
        assert package.status == PackageStatus.NO_EXPORT
        assert manager.get_package("acme_blog") is package

    def test_assign_config_package_takes_ownership(
        self, site: SiteManifest, add_package: Callable[..., Package]
    ) -> None:
        """Unowned items become owned by the package they are assigned to."""
        add_package("blog", [])
        manager = FeaturesManager(site)

        added = manager.assign_config_package("blog", ["views.view.archive", "views.view.gone"])

        assert added == ["views.view.archive"]
        assert manager.get_config_collection()["views.view.archive"].package == "blog"

    def test_assign_config_package_skips_owned_and_excluded(
        self, site: SiteManifest, add_package: Callable[..., Package]
    ) -> None:
        """Without force, items of other packages and excluded items are skipped."""
        add_package("other", ["views.view.archive"])
        add_package("blog", [], excluded=["system.site"])
        manager = FeaturesManager(site)

        added = manager.assign_config_package("blog", ["views.view.archive", "system.site"])
        forced = manager.assign_config_package(
            "blog", ["views.view.archive", "system.site"], force=True
        )

        assert added == []
        assert forced == ["views.view.archive", "system.site"]
        # Ownership is only taken from nobody
        assert manager.get_config_collection()["views.view.archive"].package == "other"

    def test_assign_config_package_unknown_package(self, site: SiteManifest) -> None:
        """Assigning to an unknown package does nothing."""
        assert FeaturesManager(site).assign_config_package("nope", ["system.site"]) == []

    def test_assign_config_packages_skips_excluded(
        self, site: SiteManifest, add_package: Callable[..., Package]
    ) -> None:
        """Excluded items are dropped unless forced."""
        add_package(
            "blog",
            ["node.type.article", "views.view.frontpage"],
            excluded=["views.view.frontpage"],
        )
        manager = FeaturesManager(site)

        manager.assign_config_packages()

        assert manager.get_package("blog").config == ["node.type.article"]

    def test_assign_config_packages_adds_required(
        self, site: SiteManifest, add_package: Callable[..., Package]
    ) -> None:
        """Required items are assigned even when another package owns them."""
        add_package("other", ["views.view.archive"])
        add_package("blog", [], exported=False, required=["views.view.archive"])
        manager = FeaturesManager(site)

        manager.assign_config_packages()

        assert manager.get_package("blog").config == ["views.view.archive"]

    def test_assign_config_dependents(
        self, site: SiteManifest, add_package: Callable[..., Package]
    ) -> None:
        """Every transitive dependent not owned elsewhere is assigned."""
        site.config["views.view.related"] = site.config["views.view.archive"].model_copy(
            update={"label": "Related", "dependencies": ["field.storage.node.body"]}
        )
        add_package("other", ["views.view.frontpage"])
        add_package("blog", ["node.type.article"])
        manager = FeaturesManager(site)

        assigned = manager.assign_config_dependents(["node.type.article"], "blog")

        assert assigned == ["field.storage.node.body", "views.view.related"]
        assert "views.view.related" in manager.get_package("blog").config
        assert "views.view.frontpage" not in manager.get_package("blog").config

    def test_assign_config_dependents_reports_owned_dependents(
        self, site: SiteManifest, add_package: Callable[..., Package]
    ) -> None:
        """Dependents the package already owns are reported as well."""
        add_package("blog", ["node.type.article", "field.storage.node.body"])
        manager = FeaturesManager(site)

        assigned = manager.assign_config_dependents(["node.type.article"], "blog")

        assert assigned == ["field.storage.node.body", "views.view.frontpage"]


class TestExportHelpers:
    """Tests for dependency and export helpers."""

    def test_refresh_dependencies(
        self, site: SiteManifest, add_package: Callable[..., Package]
    ) -> None:
        """Extension dependencies are the providers of the package config."""
        add_package("blog", ["node.type.article", "views.view.frontpage", "system.site"])
        manager = FeaturesManager(site)
        package = manager.get_package("blog")

        assert manager.refresh_dependencies(package) == ["node", "views"]
        assert package.dependencies == ["node", "views"]

    def test_get_export_info(self, site: SiteManifest, tmp_path: Path) -> None:
        """Packages export into a directory named after their full name."""
        manager = FeaturesManager(site)
        package = Package(machine_name="blog", bundle="acme")

        name, directory = manager.get_export_info(package, site.bundles["acme"], tmp_path)

        assert name == "acme_blog"
        assert directory == tmp_path / "acme_blog"

    def test_get_export_info_custom_directory(self, site: SiteManifest, tmp_path: Path) -> None:
        """A package directory overrides the default location."""
        manager = FeaturesManager(site)
        package = Package(machine_name="blog", directory="features/blog")

        _, directory = manager.get_export_info(package, site.bundles["default"], tmp_path)

        assert directory == tmp_path / "features" / "blog"

    def test_feature_exists(
        self, site: SiteManifest, add_package: Callable[..., Package]
    ) -> None:
        """Only exported packages and installed extensions take a name."""
        add_package("blog", [])
        add_package("draft", [], exported=False)
        manager = FeaturesManager(site)
        default = site.bundles["default"]

        assert manager.feature_exists("blog", default)
        assert not manager.feature_exists("draft", default)
        assert manager.feature_exists("views", default)
        assert not manager.feature_exists("views", Bundle(machine_name="acme"))

    def test_reorder_missing(self) -> None:
        """Dependencies are imported before the items that need them."""
        definitions = {
            "views.view.frontpage": {"dependencies": ["node.type.article"]},
            "node.type.article": {},
        }

        ordered = FeaturesManager.reorder_missing(
            ["views.view.frontpage", "node.type.article", "views.view.frontpage"], definitions
        )

        assert ordered == ["node.type.article", "views.view.frontpage"]

    def test_reorder_missing_with_cycle(self) -> None:
        """Cycles do not recurse forever."""
        definitions = {"a": {"dependencies": ["b"]}, "b": {"dependencies": ["a"]}}

        assert FeaturesManager.reorder_missing(["a", "b"], definitions) == ["b", "a"]
