"""Pytest configuration and shared fixtures.

This module contains fixtures used across all test modules. The sample
site models a small blog: an article content type with a body field and
a frontpage view that depend on it, plus a few unrelated items.
"""

from collections.abc import Callable
from pathlib import Path

import pytest
from featurectl.core.settings import FeaturesSettings
from featurectl.core.site import create_site, save_site
from featurectl.models.package import Bundle, Package, PackageStatus
from featurectl.models.site import ConfigEntry, ConfigTypeEntry, SiteManifest


@pytest.fixture(autouse=True)
def isolated_xdg(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep settings, themes and drafts out of the real home directory."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg-config"))
    monkeypatch.setenv("XDG_STATE_HOME", str(tmp_path / "xdg-state"))
    monkeypatch.delenv("FEATURECTL_SITE", raising=False)


@pytest.fixture
def site() -> SiteManifest:
    """Sample site without any packages."""
    site = create_site()
    site.config_types = {
        "node_type": ConfigTypeEntry(label="Content type", prefix="node.type"),
        "field_storage": ConfigTypeEntry(label="Field storage", prefix="field.storage"),
        "view": ConfigTypeEntry(label="View", prefix="views.view"),
        "system_simple": ConfigTypeEntry(label="Simple configuration"),
    }
    site.config = {
        "node.type.article": ConfigEntry(type="node_type", label="Article", provider="node"),
        "node.type.page": ConfigEntry(type="node_type", label="Basic page", provider="node"),
        "field.storage.node.body": ConfigEntry(
            type="field_storage",
            label="Body",
            provider="text",
            dependencies=["node.type.article"],
        ),
        "views.view.frontpage": ConfigEntry(
            type="view",
            label="Frontpage",
            provider="views",
            dependencies=["node.type.article"],
            data={"display": {"default": {"title": "Home"}}},
        ),
        "views.view.archive": ConfigEntry(type="view", label="Archive", provider="views"),
        "system.site": ConfigEntry(type="system_simple", label="system.site"),
    }
    site.bundles["acme"] = Bundle(machine_name="acme", name="Acme")
    site.extensions = {"node": "Node", "text": "Text", "views": "Views"}
    return site


@pytest.fixture
def add_package(site: SiteManifest) -> Callable[..., Package]:
    """Factory storing a package in the sample site.

    Exported packages record their config as the previous export and own
    it in the site's config collection.
    """

    def _add(
        machine_name: str,
        config: list[str] | None = None,
        exported: bool = True,
        **fields: object,
    ) -> Package:
        names = list(config or [])
        package = Package.model_validate(
            {
                "machine_name": machine_name,
                "name": machine_name.title(),
                "config": names,
                "config_orig": names if exported else [],
                "status": PackageStatus.UNINSTALLED if exported else PackageStatus.NO_EXPORT,
                **fields,
            }
        )
        site.packages[machine_name] = package
        for name in names:
            entry = site.config.get(name)
            if entry is not None:
                site.config[name] = entry.model_copy(update={"package": machine_name})
        return package

    return _add


@pytest.fixture
def site_path(tmp_path: Path) -> Path:
    """Location of the sample site manifest."""
    return tmp_path / "site" / "site.toml"


@pytest.fixture
def settings(tmp_path: Path) -> FeaturesSettings:
    """Settings exporting into the temporary directory."""
    return FeaturesSettings(
        export_path=str(tmp_path / "modules"),
        archive_path=str(tmp_path / "archives"),
    )


@pytest.fixture
def saved_site(site: SiteManifest, site_path: Path) -> Path:
    """Write the sample site to disk and return its path."""
    save_site(site, site_path)
    return site_path
