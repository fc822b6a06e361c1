"""Unit tests for checkbox toggling."""

from collections.abc import Callable

import pytest
from featurectl.core.manager import FeaturesManager
from featurectl.core.reconciler import SelectionReconciler
from featurectl.core.toggles import UnknownItemError, toggle_items
from featurectl.models.package import Package
from featurectl.models.selection import Section
from featurectl.models.site import SiteManifest


class TestToggleItems:
    """Tests for toggle_items function."""

    def test_sets_value_in_rendered_section(self, site: SiteManifest) -> None:
        """The box is flipped in the section the item is rendered in."""
        manager = FeaturesManager(site)
        result = SelectionReconciler(site).reconcile(manager.init_package("blog"))

        submission = toggle_items(result, manager, ["field.storage.node.body"], True)

        assert submission.submitted
        assert submission.is_checked("field_storage", Section.SOURCES, "node.body")
        # Everything else keeps its rendered value
        assert submission.has_value("view", Section.SOURCES, "archive")

    def test_result_is_not_mutated(self, site: SiteManifest) -> None:
        """Toggling builds a new submission."""
        manager = FeaturesManager(site)
        result = SelectionReconciler(site).reconcile(manager.init_package("blog"))

        toggle_items(result, manager, ["views.view.archive"], True)

        assert not result.submission.is_checked("view", Section.SOURCES, "archive")

    def test_unknown_item(self, site: SiteManifest) -> None:
        """Items that are not rendered cannot be toggled."""
        manager = FeaturesManager(site)
        result = SelectionReconciler(site).reconcile(manager.init_package("blog"))

        with pytest.raises(UnknownItemError, match="not selectable"):
            toggle_items(result, manager, ["views.view.deleted"], True)

    def test_unchecking_added_drops_detected_dependents(self, site: SiteManifest) -> None:
        """Dependents detected through an added item lose their detected value."""
        manager = FeaturesManager(site)
        package = manager.init_package("blog")
        reconciler = SelectionReconciler(site)
        result = reconciler.reconcile(package)
        submission = toggle_items(result, manager, ["node.type.article"], True)
        result = reconciler.reconcile(package, submission, constraints=result.constraints)

        submission = toggle_items(result, manager, ["node.type.article"], False)

        assert not submission.is_checked("node_type", Section.ADDED, "article")
        assert not submission.has_value("field_storage", Section.DETECTED, "node.body")
        assert not submission.has_value("view", Section.DETECTED, "frontpage")

    def test_exported_dependents_keep_values(
        self, site: SiteManifest, add_package: Callable[..., Package]
    ) -> None:
        """Dependents that were exported before keep their values."""
        package = add_package("blog", ["field.storage.node.body"])
        manager = FeaturesManager(site)
        reconciler = SelectionReconciler(site)
        result = reconciler.reconcile(package)
        submission = toggle_items(result, manager, ["node.type.article"], True)
        result = reconciler.reconcile(package, submission, constraints=result.constraints)

        submission = toggle_items(result, manager, ["node.type.article"], False)

        assert submission.is_checked("field_storage", Section.INCLUDED, "node.body")
        assert not submission.has_value("view", Section.DETECTED, "frontpage")
