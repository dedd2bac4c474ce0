"""Unpack downloaded packages and resolve the new executable inside them."""

from __future__ import annotations

import logging
from pathlib import Path

from self_updater.archive import Extractor
from self_updater.constants import MAC_BUNDLE_SUFFIX, WINDOWS_EXECUTABLE_SUFFIX
from self_updater.filesystem import force_delete
from self_updater.models import FilesystemError, Manifest
from self_updater.platforms import OsFamily, PlatformKey

_LOGGER = logging.getLogger(__name__)


def unpack_directory_for(archive_path: Path, temporary_directory: Path) -> Path:
    """Return ``<temporary_directory>/<archive name without extension>``."""

    return Path(temporary_directory) / Path(archive_path).stem


def executable_relative_path(manifest: Manifest, platform: PlatformKey) -> str:
    package = manifest.packages.get(platform)
    if package is not None and package.exec_path:
        return package.exec_path
    if platform.family is OsFamily.MAC:
        return manifest.name + MAC_BUNDLE_SUFFIX
    if platform.family is OsFamily.WIN:
        return manifest.name + WINDOWS_EXECUTABLE_SUFFIX
    return manifest.name


class PlatformUnpacker:
    """Extract a package into the temporary directory for one platform."""

    def __init__(
        self,
        platform: PlatformKey,
        temporary_directory: Path,
        extractor: Extractor,
    ) -> None:
        self._platform = platform
        self._temporary_directory = Path(temporary_directory)
        self._extractor = extractor

    def unpack(self, file_path: Path, manifest: Manifest) -> Path:
        """Extract ``file_path`` and return the path of the new application.

        mac returns the bundle, windows the executable and linux the unpack
        directory itself.
        """

        archive_path = Path(file_path)
        destination = unpack_directory_for(archive_path, self._temporary_directory)
        family = self._platform.family

        if family is OsFamily.WIN:
            self._clear_previous_extract(destination)
        else:
            self._ensure_directory(destination)

        self._extractor.extract(archive_path, destination)
        _LOGGER.debug("Unpacked %s into %s", archive_path, destination)

        if family is OsFamily.LINUX:
            resolved = destination
        else:
            resolved = destination / executable_relative_path(manifest, self._platform)
        _LOGGER.info("Resolved new application for %s at %s", self._platform.value, resolved)
        return resolved

    def _ensure_directory(self, destination: Path) -> None:
        try:
            destination.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise FilesystemError(
                f"Failed to create unpack directory {destination}: {exc}"
            ) from exc

    def _clear_previous_extract(self, destination: Path) -> None:
        if not destination.exists():
            return
        _LOGGER.debug("Removing previous extract at %s", destination)
        force_delete(destination)


__all__ = ["PlatformUnpacker", "executable_relative_path", "unpack_directory_for"]
