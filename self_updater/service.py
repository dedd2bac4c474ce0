"""Facade that wires the update stages together for one application."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Mapping, Sequence

from self_updater.archive import (
    BundledUnzipExtractor,
    Extractor,
    UnzipCommandExtractor,
    ZipFileExtractor,
)
from self_updater.config import UpdaterConfig
from self_updater.constants import BUNDLED_UNZIP_RELATIVE_PATH, EXTRACTOR_ZIPFILE
from self_updater.downloader import (
    CompleteCallback,
    Dispatcher,
    DownloadHandle,
    ErrorCallback,
    PackageDownloader,
    ProgressCallback,
)
from self_updater.installers import Installer, build_installer
from self_updater.launcher import Launcher, Spawner
from self_updater.locations import AppLocator
from self_updater.manifest_client import ManifestClient
from self_updater.models import LaunchedProcess, Manifest, UpdateSession
from self_updater.platforms import OsFamily, PlatformKey, current_platform
from self_updater.transport import Transport
from self_updater.unpacker import PlatformUnpacker, unpack_directory_for

_LOGGER = logging.getLogger(__name__)


def build_extractor(
    platform: PlatformKey, config: UpdaterConfig, locator: AppLocator
) -> Extractor:
    """Return the extractor ``config`` selects for ``platform``."""

    if config.extractor == EXTRACTOR_ZIPFILE:
        return ZipFileExtractor()
    if platform.family is OsFamily.WIN:
        tool = config.unzip_tool or locator.app_path() / BUNDLED_UNZIP_RELATIVE_PATH
        return BundledUnzipExtractor(tool)
    return UnzipCommandExtractor()


class Updater:
    """Check, download, unpack, install and relaunch an application.

    ``manifest`` describes the running application; it is usually the
    application's own ``package.json``.  The platform is resolved once and
    shared by every stage.
    """

    def __init__(
        self,
        manifest: Manifest,
        config: UpdaterConfig | None = None,
        *,
        platform: PlatformKey | None = None,
        transport: Transport | None = None,
        locator: AppLocator | None = None,
        extractor: Extractor | None = None,
        installer: Installer | None = None,
        spawn: Spawner | None = None,
        dispatch: Dispatcher | None = None,
    ) -> None:
        self.manifest = manifest
        self.config = config or UpdaterConfig()
        self.platform = platform or current_platform()
        self.locator = locator or AppLocator(self.platform)

        self._client = ManifestClient(manifest, transport)
        downloader_kwargs: dict[str, Any] = {
            "transport": transport,
            "chunk_size": self.config.download_chunk_size,
        }
        if dispatch is not None:
            downloader_kwargs["dispatch"] = dispatch
        self._downloader = PackageDownloader(
            self.platform, self.config.temporary_directory, **downloader_kwargs
        )
        self._unpacker = PlatformUnpacker(
            self.platform,
            self.config.temporary_directory,
            extractor or build_extractor(self.platform, self.config, self.locator),
        )
        self._installer = installer or build_installer(
            self.platform,
            self.locator,
            retry_budget=self.config.install_retry_budget,
            retry_delay=self.config.install_retry_delay,
            max_copy_cycles=self.config.install_max_copy_cycles,
        )
        launcher_kwargs: dict[str, Any] = {}
        if spawn is not None:
            launcher_kwargs["spawn"] = spawn
        self._launcher = Launcher(self.platform, manifest.name, self.locator, **launcher_kwargs)

    def check_new_version(self) -> tuple[bool, Manifest]:
        """Return whether the published version is newer, and its manifest."""

        return self._client.check_new_version()

    def download(
        self,
        manifest: Manifest | None = None,
        *,
        on_complete: CompleteCallback | None = None,
        on_error: ErrorCallback | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> DownloadHandle:
        """Start downloading the package of ``manifest`` (default: the local one)."""

        return self._downloader.download(
            manifest or self.manifest,
            on_complete=on_complete,
            on_error=on_error,
            on_progress=on_progress,
        )

    def unpack(self, file_path: Path, manifest: Manifest | None = None) -> Path:
        return self._unpacker.unpack(Path(file_path), manifest or self.manifest)

    def get_app_path(self) -> Path:
        return self.locator.app_path()

    def get_app_exec(self) -> Path:
        return self.locator.app_exec()

    def install(self, copy_path: Path) -> None:
        """Copy the running application over ``copy_path``."""

        self._installer.install(Path(copy_path))

    def run_installer(
        self,
        app_path: Path,
        args: Sequence[str] | None = None,
        options: Mapping[str, Any] | None = None,
    ) -> LaunchedProcess:
        return self._launcher.run_installer(Path(app_path), args, options)

    def run(
        self,
        exec_path: Path,
        args: Sequence[str] | None = None,
        options: Mapping[str, Any] | None = None,
    ) -> LaunchedProcess:
        return self._launcher.run(Path(exec_path), args, options)

    def stage_update(
        self,
        remote_manifest: Manifest,
        *,
        on_progress: ProgressCallback | None = None,
        timeout: float | None = None,
    ) -> UpdateSession:
        """Download and unpack ``remote_manifest``'s package, blocking until done."""

        session = UpdateSession(temporary_directory=self.config.temporary_directory)
        handle = self.download(remote_manifest, on_progress=on_progress)
        session.download_path = handle.wait(timeout)
        session.executable_path = self.unpack(session.download_path, remote_manifest)
        session.unpack_directory = unpack_directory_for(
            session.download_path, self.config.temporary_directory
        )
        _LOGGER.info(
            "Staged %s %s at %s",
            remote_manifest.name,
            remote_manifest.version,
            session.executable_path,
        )
        return session

    def relaunch_into(
        self,
        session: UpdateSession,
        args: Sequence[str] | None = None,
        options: Mapping[str, Any] | None = None,
    ) -> LaunchedProcess:
        """Start the staged application, passing it where to install itself.

        Unless ``args`` is given the new copy receives the current app root and
        executable so it can ``install`` over them and ``run`` the result.
        """

        if session.executable_path is None:
            raise ValueError("Update session has not been unpacked yet")
        if args is None:
            args = [str(self.get_app_path()), str(self.get_app_exec())]
        return self.run_installer(session.executable_path, args, options)


__all__ = ["Updater", "build_extractor"]
