"""Unit tests for site manifest I/O.

Tests for loading, saving and serializing site manifests.
"""

from collections.abc import Callable
from pathlib import Path

import pytest
import typer
from featurectl.core.site import (
    SiteNotFoundError,
    SiteParseError,
    SiteValidationError,
    load_site,
    package_to_dict,
    require_site,
    save_site,
    site_exists,
)
from featurectl.models.package import Package, PackageStatus
from featurectl.models.site import SiteManifest


class TestSaveAndLoad:
    """Tests for save_site and load_site."""

    def test_roundtrip_preserves_site(
        self, site: SiteManifest, add_package: Callable[..., Package], site_path: Path
    ) -> None:
        """A saved site loads back with its packages and config."""
        add_package("blog", ["node.type.article"], description="Blog feature")

        save_site(site, site_path)
        loaded = load_site(site_path)

        assert set(loaded.config) == set(site.config)
        assert loaded.config["node.type.article"].package == "blog"
        assert loaded.config["views.view.frontpage"].data == {
            "display": {"default": {"title": "Home"}}
        }
        assert loaded.packages["blog"].description == "Blog feature"
        assert loaded.packages["blog"].status == PackageStatus.UNINSTALLED
        assert loaded.bundles["acme"].name == "Acme"

    def test_save_creates_parent_directory(self, site: SiteManifest, site_path: Path) -> None:
        """save_site creates missing parent directories."""
        assert not site_path.parent.exists()

        save_site(site, site_path)

        assert site_exists(site_path)

    def test_save_leaves_no_temp_files(self, site: SiteManifest, site_path: Path) -> None:
        """Atomic writes clean up after themselves."""
        save_site(site, site_path)

        assert [p.name for p in site_path.parent.iterdir()] == ["site.toml"]

    def test_default_path_from_environment(
        self, site: SiteManifest, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Without a path, FEATURECTL_SITE is used."""
        target = tmp_path / "env" / "site.toml"
        monkeypatch.setenv("FEATURECTL_SITE", str(target))

        assert save_site(site) == target
        assert load_site().config.keys() == site.config.keys()


class TestLoadErrors:
    """Tests for load_site error handling."""

    def test_missing_file(self, site_path: Path) -> None:
        """Missing manifests raise SiteNotFoundError."""
        with pytest.raises(SiteNotFoundError):
            load_site(site_path)

    def test_invalid_toml(self, tmp_path: Path) -> None:
        """Broken TOML raises SiteParseError."""
        path = tmp_path / "site.toml"
        path.write_text("[meta\nversion = ")

        with pytest.raises(SiteParseError, match="Invalid TOML"):
            load_site(path)

    def test_invalid_content(self, tmp_path: Path) -> None:
        """Schema violations raise SiteValidationError."""
        path = tmp_path / "site.toml"
        path.write_text('[packages.blog]\nmachine_name = "news"\n')

        with pytest.raises(SiteValidationError):
            load_site(path)

    def test_require_site_exits(self, site_path: Path) -> None:
        """require_site turns load errors into an exit code."""
        with pytest.raises(typer.Exit) as exc_info:
            require_site(site_path)

        assert exc_info.value.exit_code == 1


class TestPackageToDict:
    """Tests for package_to_dict serialization."""

    def test_drops_empty_fields(self) -> None:
        """Empty strings, lists and None are not written."""
        data = package_to_dict(Package(machine_name="blog", name="Blog"))

        assert data == {"name": "Blog", "bundle": "default", "status": "no_export"}

    def test_keeps_required_all(self) -> None:
        """required = true is serialized as a boolean."""
        data = package_to_dict(Package(machine_name="blog", required=True, config=["a"]))

        assert data["required"] is True
        assert data["config"] == ["a"]
        assert "machine_name" not in data
