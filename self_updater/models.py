"""Data models and errors used by the self-updater."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping, Tuple

from self_updater.platforms import PlatformKey

_LOGGER = logging.getLogger(__name__)


class UpdateError(RuntimeError):
    """Base class for failures surfaced by an update stage."""


class NetworkError(UpdateError):
    """Raised when the transport fails to deliver a response or its body."""


class HttpStatusError(UpdateError):
    """Raised when a response status falls outside ``[200, 299]``."""

    def __init__(self, status: int, url: str | None = None) -> None:
        self.status = status
        self.url = url
        message = f"Unexpected HTTP status {status}"
        if url:
            message = f"{message} for {url}"
        super().__init__(message)


class ParseError(UpdateError):
    """Raised when a manifest or version string cannot be understood."""


class ExtractionError(UpdateError):
    """Raised when the archive extractor reports a failure."""

    def __init__(self, tool_error: str) -> None:
        self.tool_error = tool_error
        super().__init__(f"Failed to extract update archive: {tool_error}")


class FilesystemError(UpdateError):
    """Raised when a delete, copy or permission change fails."""


class LaunchError(UpdateError):
    """Raised when the updated application cannot be spawned."""


class ConfigurationError(UpdateError):
    """Raised when the manifest does not describe the active platform."""


class DownloadAbortedError(UpdateError):
    """Raised by :meth:`DownloadHandle.wait` after the caller aborted it."""


@dataclass(frozen=True)
class PackageDescriptor:
    """Location of a platform package and the executable inside it."""

    url: str
    exec_path: str | None = None


@dataclass(frozen=True)
class Manifest:
    """Versioned description of an application release."""

    name: str
    version: str
    manifest_url: str | None = None
    packages: Mapping[PlatformKey, PackageDescriptor] = field(
        default_factory=lambda: MappingProxyType({})
    )

    def package_for(self, platform: PlatformKey) -> PackageDescriptor:
        try:
            return self.packages[platform]
        except KeyError:
            raise ConfigurationError(
                f"Manifest for {self.name} {self.version} has no package for {platform.value}"
            ) from None

    @classmethod
    def from_mapping(cls, data: object) -> "Manifest":
        """Build a manifest from the decoded JSON document ``data``."""

        if not isinstance(data, Mapping):
            raise ParseError("Manifest document must be a JSON object")

        name = data.get("name")
        version = data.get("version")
        if not isinstance(name, str) or not name.strip():
            raise ParseError("Manifest is missing a name")
        if not isinstance(version, str) or not version.strip():
            raise ParseError("Manifest is missing a version")

        manifest_url = data.get("manifestUrl")
        if manifest_url is not None and not isinstance(manifest_url, str):
            raise ParseError("Manifest manifestUrl must be a string")

        return cls(
            name=name.strip(),
            version=version.strip(),
            manifest_url=manifest_url,
            packages=MappingProxyType(_parse_packages(data.get("packages"))),
        )


def _parse_packages(raw: object) -> dict[PlatformKey, PackageDescriptor]:
    if raw is None:
        return {}
    if not isinstance(raw, Mapping):
        raise ParseError("Manifest packages must be a JSON object")

    packages: dict[PlatformKey, PackageDescriptor] = {}
    for key, entry in raw.items():
        try:
            platform = PlatformKey(key)
        except ValueError:
            _LOGGER.debug("Ignoring package for unknown platform %r", key)
            continue
        if not isinstance(entry, Mapping):
            raise ParseError(f"Package entry for {key} must be a JSON object")
        url = entry.get("url")
        if not isinstance(url, str) or not url.strip():
            raise ParseError(f"Package entry for {key} is missing a url")
        exec_path = entry.get("execPath")
        if exec_path is not None and not isinstance(exec_path, str):
            raise ParseError(f"Package execPath for {key} must be a string")
        packages[platform] = PackageDescriptor(url=url.strip(), exec_path=exec_path or None)
    return packages


def load_manifest(path: str | Path) -> Manifest:
    """Read the local application manifest stored at ``path``."""

    manifest_path = Path(path).expanduser()
    try:
        raw = manifest_path.read_text(encoding="utf-8-sig")
    except OSError as exc:
        raise FilesystemError(f"Failed to read manifest {manifest_path}: {exc}") from exc
    try:
        data: Any = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ParseError(f"Manifest {manifest_path} is not valid JSON: {exc}") from exc
    return Manifest.from_mapping(data)


@dataclass
class UpdateSession:
    """Artifacts produced by one run of the update pipeline."""

    temporary_directory: Path
    download_path: Path | None = None
    unpack_directory: Path | None = None
    executable_path: Path | None = None


@dataclass(frozen=True)
class LaunchedProcess:
    """A detached process whose lifetime no longer belongs to the updater."""

    pid: int
    command: Tuple[str, ...]
    working_directory: Path | None = None
