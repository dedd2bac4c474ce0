"""Fetch the published manifest and decide whether it describes an update."""

from __future__ import annotations

import json
import logging

from self_updater.constants import SUCCESS_STATUS_RANGE
from self_updater.models import ConfigurationError, HttpStatusError, Manifest, ParseError
from self_updater.transport import Transport, UrlLibTransport
from self_updater.versioning import is_version_newer

_LOGGER = logging.getLogger(__name__)


class ManifestClient:
    """Compare the local manifest against the one published at ``manifestUrl``."""

    def __init__(self, local_manifest: Manifest, transport: Transport | None = None) -> None:
        self._local_manifest = local_manifest
        self._transport = transport or UrlLibTransport()

    @property
    def local_manifest(self) -> Manifest:
        return self._local_manifest

    def fetch_remote_manifest(self) -> Manifest:
        """Download and parse the manifest published for this application."""

        url = self._local_manifest.manifest_url
        if not url:
            raise ConfigurationError(
                f"Manifest for {self._local_manifest.name} does not define a manifestUrl"
            )

        _LOGGER.debug("Fetching remote manifest from %s", url)
        response = self._transport.open(url)
        try:
            if response.status not in SUCCESS_STATUS_RANGE:
                raise HttpStatusError(response.status, url)
            body = response.read()
        finally:
            response.close()

        try:
            data = json.loads(body.decode("utf-8-sig"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise ParseError(f"Remote manifest at {url} is not valid JSON: {exc}") from exc
        return Manifest.from_mapping(data)

    def check_new_version(self) -> tuple[bool, Manifest]:
        """Return whether a newer version exists together with the remote manifest."""

        remote = self.fetch_remote_manifest()
        newer = is_version_newer(self._local_manifest.version, remote.version)
        if newer:
            _LOGGER.info(
                "Update available: %s -> %s", self._local_manifest.version, remote.version
            )
        else:
            _LOGGER.debug(
                "Current version %s is up to date (remote %s)",
                self._local_manifest.version,
                remote.version,
            )
        return newer, remote


__all__ = ["ManifestClient"]
