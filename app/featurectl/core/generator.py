"""Package generation.

Generation methods turn packages into files: the ``archive`` method packs
each package into a .tar.gz archive, the ``write`` method writes the
package directory in place. Both produce the same layout:

    <machine_name>/
        <machine_name>.features.toml
        config/install/<config name>.toml
"""

from __future__ import annotations

import io
import logging
import tarfile
import time
from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, ClassVar

import tomli_w

from featurectl.core.manager import FeaturesManager
from featurectl.models.package import Bundle, Package, PackageStatus

logger = logging.getLogger(__name__)

FEATURES_FILE_SUFFIX = ".features.toml"
PROFILE_FILE_SUFFIX = ".profile.toml"
CONFIG_INSTALL_DIR = "config/install"


class GenerationError(Exception):
    """Raised when a generation method or package cannot be used."""


@dataclass(frozen=True, slots=True)
class GenerationResult:
    """Outcome of generating a single package.

    Attributes:
        package: Full machine name of the package.
        success: Whether the package was generated.
        message: Human-readable status or error message.
        path: Written directory or archive, if successful.
    """

    package: str
    success: bool
    message: str
    path: Path | None = None


class GenerationMethod(ABC):
    """Abstract base class for generation methods.

    Attributes:
        root: Directory the method writes into.

    Example:
        >>> method = WriteMethod(Path("modules/custom"))
        >>> method.write("blog", "blog", {"blog.features.toml": b"name = 'Blog'"})
    """

    method_id: ClassVar[str]
    label: ClassVar[str]
    description: ClassVar[str] = ""
    weight: ClassVar[int] = 0

    def __init__(self, root: Path) -> None:
        self._root = root

    @property
    def root(self) -> Path:
        """Directory the method writes into."""
        return self._root

    @abstractmethod
    def write(self, machine_name: str, directory: str, files: Mapping[str, bytes]) -> Path:
        """Write the files of one package.

        Args:
            machine_name: Full machine name of the package.
            directory: Package directory relative to the method root.
            files: File contents keyed by path relative to the package.

        Returns:
            Path of the written directory or archive.

        Raises:
            OSError: If the files cannot be written.
        """


class ArchiveMethod(GenerationMethod):
    """Pack each package into a gzipped tarball."""

    method_id = "archive"
    label = "Download Archive"
    description = "Export packages as gzipped tar archives."
    weight = -5

    def write(self, machine_name: str, directory: str, files: Mapping[str, bytes]) -> Path:
        self._root.mkdir(parents=True, exist_ok=True)
        archive_path = self._root / f"{machine_name}.tar.gz"
        mtime = int(time.time())
        with tarfile.open(archive_path, mode="w:gz") as tar:
            for relative, content in sorted(files.items()):
                info = tarfile.TarInfo(name=f"{machine_name}/{relative}")
                info.size = len(content)
                info.mtime = mtime
                info.mode = 0o644
                tar.addfile(info, io.BytesIO(content))
        return archive_path


class WriteMethod(GenerationMethod):
    """Write each package directory under the export root.

    Config files from an earlier export that are no longer part of the
    package are removed.
    """

    method_id = "write"
    label = "Write"
    description = "Write packages and their config to the export directory."
    weight = 0

    def write(self, machine_name: str, directory: str, files: Mapping[str, bytes]) -> Path:
        package_dir = self._root / directory
        install_dir = package_dir / CONFIG_INSTALL_DIR
        if install_dir.is_dir():
            keep = {package_dir / relative for relative in files}
            for stale in install_dir.glob("*.toml"):
                if stale not in keep:
                    stale.unlink()
                    logger.debug("Removed stale config file %s", stale)

        for relative, content in files.items():
            path = package_dir / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(content)
        return package_dir


def build_package_files(package: Package, manager: FeaturesManager) -> dict[str, bytes]:
    """Render the files of a package.

    Config absent from the live collection is skipped.

    Args:
        package: Package to render.
        manager: Manager holding the live collection.

    Returns:
        File contents keyed by path relative to the package directory.
    """
    info: dict[str, Any] = {
        "name": package.name or package.machine_name,
        "description": package.description,
        "bundle": package.bundle,
        "dependencies": sorted(package.dependencies),
        "excluded": list(package.excluded),
        "required": package.required if package.required_all else list(package.required_list),
    }
    if package.version:
        info["version"] = package.version

    files: dict[str, bytes] = {
        f"{package.machine_name}{FEATURES_FILE_SUFFIX}": tomli_w.dumps(info).encode()
    }
    config = manager.get_config_collection()
    for name in package.config:
        item = config.get(name)
        if item is None:
            logger.warning("Skipping missing config %s in %s", name, package.machine_name)
            continue
        definition: dict[str, Any] = {"type": item.type, "label": item.label}
        if item.provider:
            definition["provider"] = item.provider
        if item.dependencies:
            definition["dependencies"] = list(item.dependencies)
        if item.data:
            definition["data"] = dict(item.data)
        files[f"{CONFIG_INSTALL_DIR}/{name}.toml"] = tomli_w.dumps(definition).encode()
    return files


class FeaturesGenerator:
    """Generates packages with a registered generation method.

    Example:
        >>> generator = FeaturesGenerator(manager, export_root, archive_root)
        >>> results = generator.generate_packages("write", bundle, ["blog"])
    """

    def __init__(self, manager: FeaturesManager, export_root: Path, archive_root: Path) -> None:
        """Initialize the generator.

        Args:
            manager: Manager holding the working packages.
            export_root: Directory packages are written to.
            archive_root: Directory package archives are written to.
        """
        self._manager = manager
        self._export_root = export_root
        methods: list[GenerationMethod] = [ArchiveMethod(archive_root), WriteMethod(export_root)]
        self._methods = {
            method.method_id: method
            for method in sorted(methods, key=lambda m: (m.weight, m.method_id))
        }

    def get_methods(self) -> list[GenerationMethod]:
        """List the generation methods, sorted by weight."""
        return list(self._methods.values())

    def get_method(self, method_id: str) -> GenerationMethod:
        """Get a generation method by id.

        Raises:
            GenerationError: If no method has this id.
        """
        method = self._methods.get(method_id)
        if method is None:
            available = ", ".join(self._methods)
            raise GenerationError(f"Unknown generation method '{method_id}' (use: {available})")
        return method

    def generate_packages(
        self, method_id: str, bundle: Bundle, names: Iterable[str]
    ) -> list[GenerationResult]:
        """Generate packages with a generation method.

        Each package is handled on its own: a failure is reported in its
        result and the remaining packages are still generated. Generated
        packages record their export in ``config_orig``.

        Args:
            method_id: Generation method id.
            bundle: Bundle the packages are exported in.
            names: Full machine names of the packages.

        Returns:
            One GenerationResult per package.

        Raises:
            GenerationError: If the method id is unknown.
        """
        method = self.get_method(method_id)
        results: list[GenerationResult] = []
        for name in names:
            package = self._manager.get_package(name)
            if package is None:
                results.append(GenerationResult(name, False, f"Package {name} not found"))
                continue
            results.append(self._generate(method, package, bundle))
        return results

    def _generate(
        self, method: GenerationMethod, package: Package, bundle: Bundle
    ) -> GenerationResult:
        full_name, package_dir = self._manager.get_export_info(
            package, bundle, self._export_root
        )
        directory = package.directory or package_dir.name
        self._manager.refresh_dependencies(package)
        try:
            files = build_package_files(package, self._manager)
            path = method.write(full_name, directory, files)
        except (OSError, tarfile.TarError, ValueError, TypeError) as e:
            logger.warning("Failed to generate %s: %s", full_name, e)
            return GenerationResult(full_name, False, f"Failed to generate {full_name}: {e}")

        package.config_orig = list(package.config)
        package.dependency_info = list(package.dependencies)
        if package.status == PackageStatus.NO_EXPORT:
            package.status = PackageStatus.UNINSTALLED
        self._manager.set_package(package)
        logger.info("Generated %s with %s at %s", full_name, method.method_id, path)
        return GenerationResult(full_name, True, f"Package {full_name} written to {path}", path)

    def generate_profile(
        self,
        method_id: str,
        bundle: Bundle,
        names: Iterable[str],
        profile_name: str | None = None,
    ) -> list[GenerationResult]:
        """Generate an install profile for a bundle, followed by its packages.

        The profile lists every package to install.

        Args:
            method_id: Generation method id.
            bundle: Bundle the profile belongs to.
            names: Full machine names of the packages.
            profile_name: Profile machine name; defaults to the bundle name.

        Returns:
            The profile's GenerationResult followed by one per package.

        Raises:
            GenerationError: If the method id is unknown.
        """
        method = self.get_method(method_id)
        names = list(names)
        profile = profile_name or bundle.machine_name
        info: dict[str, Any] = {
            "name": bundle.name or profile,
            "description": bundle.description,
            "install": sorted(names),
        }
        files = {f"{profile}{PROFILE_FILE_SUFFIX}": tomli_w.dumps(info).encode()}
        try:
            path = method.write(profile, profile, files)
        except (OSError, tarfile.TarError) as e:
            logger.warning("Failed to generate profile %s: %s", profile, e)
            return [GenerationResult(profile, False, f"Failed to generate profile {profile}: {e}")]

        results = [GenerationResult(profile, True, f"Profile {profile} written to {path}", path)]
        results.extend(self.generate_packages(method_id, bundle, names))
        return results
