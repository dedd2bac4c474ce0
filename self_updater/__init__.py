"""Public API for the self-updater package."""

from __future__ import annotations

from self_updater.archive import (
    BundledUnzipExtractor,
    Extractor,
    UnzipCommandExtractor,
    ZipFileExtractor,
)
from self_updater.builder import build_updater, schedule_update_check
from self_updater.config import UpdaterConfig, load_updater_config
from self_updater.downloader import DownloadHandle, PackageDownloader
from self_updater.installers import CopyInstaller, Installer, InstallState, WindowsInstaller
from self_updater.launcher import Launcher
from self_updater.locations import AppLocator
from self_updater.manifest_client import ManifestClient
from self_updater.models import (
    ConfigurationError,
    DownloadAbortedError,
    ExtractionError,
    FilesystemError,
    HttpStatusError,
    LaunchedProcess,
    LaunchError,
    Manifest,
    NetworkError,
    PackageDescriptor,
    ParseError,
    UpdateError,
    UpdateSession,
    load_manifest,
)
from self_updater.platforms import OsFamily, PlatformKey, current_platform, resolve_platform
from self_updater.service import Updater
from self_updater.transport import Transport, UrlLibTransport
from self_updater.unpacker import PlatformUnpacker
from self_updater.versioning import compare_versions, is_version_newer

__all__ = [
    "AppLocator",
    "BundledUnzipExtractor",
    "ConfigurationError",
    "CopyInstaller",
    "DownloadAbortedError",
    "DownloadHandle",
    "ExtractionError",
    "Extractor",
    "FilesystemError",
    "HttpStatusError",
    "InstallState",
    "Installer",
    "LaunchError",
    "LaunchedProcess",
    "Launcher",
    "Manifest",
    "ManifestClient",
    "NetworkError",
    "OsFamily",
    "PackageDescriptor",
    "PackageDownloader",
    "ParseError",
    "PlatformKey",
    "PlatformUnpacker",
    "Transport",
    "UnzipCommandExtractor",
    "UpdateError",
    "UpdateSession",
    "Updater",
    "UpdaterConfig",
    "UrlLibTransport",
    "WindowsInstaller",
    "ZipFileExtractor",
    "build_updater",
    "compare_versions",
    "current_platform",
    "is_version_newer",
    "load_manifest",
    "load_updater_config",
    "resolve_platform",
    "schedule_update_check",
]
