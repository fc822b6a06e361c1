"""Import of missing config from a package's previous export.

Config a package exported earlier may have been deleted from the site.
The importer reads the exported definitions back from the package
directory and restores them into the site, owned by the package.
"""

import logging
import tomllib
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from featurectl.core.generator import CONFIG_INSTALL_DIR
from featurectl.core.manager import FeaturesManager
from featurectl.models.site import ConfigEntry, SiteManifest

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ImportReport:
    """Messages collected while importing missing config.

    Attributes:
        imported: Full names of imported config, in import order.
        messages: Status messages for imported items.
        errors: Error messages for items that could not be imported.
    """

    imported: list[str] = field(default_factory=list)
    messages: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        """Check if every item was imported."""
        return not self.errors


def read_definition(package_dir: Path, name: str) -> dict[str, Any]:
    """Read an exported config definition.

    Args:
        package_dir: Exported package directory.
        name: Full config name.

    Returns:
        The parsed definition.

    Raises:
        FileNotFoundError: If the package has no definition for the item.
        OSError: If the file cannot be read.
        tomllib.TOMLDecodeError: If the file is not valid TOML.
    """
    path = package_dir / CONFIG_INSTALL_DIR / f"{name}.toml"
    with open(path, "rb") as f:
        return tomllib.load(f)


def import_missing(
    site: SiteManifest,
    package_name: str,
    missing: Iterable[str],
    package_dir: Path,
) -> ImportReport:
    """Import missing config into the site.

    Items are imported one at a time, dependencies first. A failing item is
    reported and the rest are still imported.

    Args:
        site: Site manifest to import into. Modified in place.
        package_name: Machine name of the owning package.
        missing: Full names of the missing config.
        package_dir: Exported package directory to read definitions from.

    Returns:
        ImportReport with a message per item.
    """
    report = ImportReport()
    definitions: dict[str, dict[str, Any]] = {}
    for name in missing:
        if name in site.config:
            continue
        try:
            definitions[name] = read_definition(package_dir, name)
        except FileNotFoundError:
            report.errors.append(f"Error importing {name} : no exported definition found")
        except (OSError, tomllib.TOMLDecodeError) as e:
            report.errors.append(f"Error importing {name} : {e}")

    for name in FeaturesManager.reorder_missing(definitions, definitions):
        definition = definitions[name]
        try:
            entry = ConfigEntry.model_validate({**definition, "package": package_name})
        except ValidationError as e:
            reason = "; ".join(error["msg"] for error in e.errors())
            report.errors.append(f"Error importing {name} : {reason}")
            continue
        site.config[name] = entry
        report.imported.append(name)
        report.messages.append(f"Imported {name}")
        logger.info("Imported %s into %s", name, package_name)

    for error in report.errors:
        logger.warning(error)
    return report
