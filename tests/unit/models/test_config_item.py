"""Unit tests for config item models.

Tests for ConfigType name handling and ConfigItem validation.
"""

import pytest
from featurectl.models.config_item import SIMPLE_CONFIG_TYPE, ConfigItem, ConfigType


class TestConfigType:
    """Tests for ConfigType dataclass."""

    def test_full_name(self) -> None:
        """full_name prepends the type prefix."""
        view = ConfigType(name="view", label="View", prefix="views.view")

        assert view.full_name("frontpage") == "views.view.frontpage"

    def test_short_name(self) -> None:
        """short_name strips the type prefix."""
        view = ConfigType(name="view", label="View", prefix="views.view")

        assert view.short_name("views.view.frontpage") == "frontpage"

    def test_short_name_without_prefix(self) -> None:
        """Names without the prefix are returned unchanged."""
        view = ConfigType(name="view", label="View", prefix="views.view")

        assert view.short_name("system.site") == "system.site"

    def test_simple_config_has_no_prefix(self) -> None:
        """Simple configuration uses the full name as short name."""
        simple = ConfigType(name=SIMPLE_CONFIG_TYPE, label="Simple", prefix=SIMPLE_CONFIG_TYPE)

        assert simple.full_name("system.site") == "system.site"
        assert simple.short_name("system.site") == "system.site"


class TestConfigItem:
    """Tests for ConfigItem dataclass."""

    def test_create_item(self) -> None:
        """ConfigItem holds its fields and starts unowned."""
        item = ConfigItem(
            name="views.view.frontpage", type="view", short_name="frontpage", label="Frontpage"
        )

        assert item.package is None
        assert not item.is_packaged
        assert item.dependencies == ()

    def test_is_packaged(self) -> None:
        """An owned item is packaged."""
        item = ConfigItem(
            name="system.site",
            type="system_simple",
            short_name="system.site",
            label="system.site",
            package="blog",
        )

        assert item.is_packaged

    def test_empty_name_rejected(self) -> None:
        """ConfigItem rejects an empty name."""
        with pytest.raises(ValueError, match="name cannot be empty"):
            ConfigItem(name="", type="view", short_name="", label="")

    def test_empty_type_rejected(self) -> None:
        """ConfigItem rejects an empty type."""
        with pytest.raises(ValueError, match="type cannot be empty"):
            ConfigItem(name="system.site", type="", short_name="system.site", label="")

    def test_immutable(self) -> None:
        """ConfigItem is frozen."""
        item = ConfigItem(
            name="system.site", type="system_simple", short_name="system.site", label=""
        )

        with pytest.raises(AttributeError):
            item.package = "blog"  # type: ignore[misc]
