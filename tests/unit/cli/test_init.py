"""Unit tests for init command.

Tests for the CLI init command implementation.
"""

from pathlib import Path

from featurectl.cli.main import app
from featurectl.core.site import load_site
from typer.testing import CliRunner

runner = CliRunner()


class TestInitCommand:
    """Tests for featurectl init command."""

    def test_init_help(self) -> None:
        """Init command shows help."""
        result = runner.invoke(app, ["init", "--help"])

        assert result.exit_code == 0
        assert "--force" in result.output

    def test_creates_site(self, site_path: Path) -> None:
        """Init writes an empty site manifest."""
        result = runner.invoke(app, ["--site", str(site_path), "init"])

        assert result.exit_code == 0
        assert "created" in result.output
        site = load_site(site_path)
        assert site.packages == {}
        assert "default" in site.bundles

    def test_refuses_to_overwrite(self, saved_site: Path) -> None:
        """An existing manifest is kept without --force."""
        result = runner.invoke(app, ["--site", str(saved_site), "init"])

        assert result.exit_code == 1
        assert "already exists" in result.output
        assert load_site(saved_site).config

    def test_force_overwrites(self, saved_site: Path) -> None:
        """--force replaces an existing manifest."""
        result = runner.invoke(app, ["--site", str(saved_site), "init", "--force"])

        assert result.exit_code == 0
        assert load_site(saved_site).config == {}
