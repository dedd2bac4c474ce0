"""Helpers for constructing an updater and scheduling background checks."""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Callable

from self_updater.config import UpdaterConfig, load_updater_config
from self_updater.models import Manifest, UpdateError, load_manifest
from self_updater.platforms import PlatformKey
from self_updater.service import Updater
from self_updater.transport import Transport


_LOGGER = logging.getLogger(__name__)


def build_updater(
    manifest_path: str | Path | None = None,
    *,
    manifest: Manifest | None = None,
    config: UpdaterConfig | None = None,
    config_path: str | Path | None = None,
    platform: PlatformKey | None = None,
    transport: Transport | None = None,
) -> Updater:
    """Construct an :class:`Updater` for the running application.

    Either ``manifest`` or ``manifest_path`` (typically the app's
    ``package.json``) must be supplied.
    """

    if manifest is None:
        if manifest_path is None:
            raise ValueError("build_updater requires a manifest or a manifest path")
        manifest = load_manifest(manifest_path)
        _LOGGER.debug("Loaded local manifest %s %s", manifest.name, manifest.version)

    if config is None:
        config = load_updater_config(config_path)

    return Updater(manifest, config, platform=platform, transport=transport)


def _run_update_check(
    updater: Updater,
    on_update_available: Callable[[Updater, Manifest], None] | None,
    on_complete: Callable[[], None] | None,
) -> None:
    try:
        has_update, remote = updater.check_new_version()
    except UpdateError as exc:
        _LOGGER.warning("Update check failed: %s", exc)
        if on_complete:
            on_complete()
        return
    except Exception:  # pragma: no cover - defensive guard
        _LOGGER.exception("Unexpected error while checking for updates")
        if on_complete:
            on_complete()
        return

    try:
        if has_update and on_update_available is not None:
            on_update_available(updater, remote)
    finally:
        if on_complete:
            on_complete()


def schedule_update_check(
    updater: Updater,
    *,
    enabled: bool = True,
    on_update_available: Callable[[Updater, Manifest], None] | None = None,
    on_complete: Callable[[], None] | None = None,
) -> threading.Thread | None:
    """Check for a newer version on a background thread.

    ``on_update_available`` runs on that thread with the remote manifest; the
    host decides whether to download.  ``on_complete`` always runs last.
    """

    if not enabled:
        _LOGGER.debug("Automatic update checks disabled by host preference")
        return None

    thread = threading.Thread(
        target=_run_update_check,
        args=(updater, on_update_available, on_complete),
        name="self-updater-check",
        daemon=True,
    )
    thread.start()
    return thread


__all__ = ["build_updater", "schedule_update_check"]
