"""Installer implementations for platform-specific behaviour."""

from __future__ import annotations

import logging
import time
from enum import Enum
from pathlib import Path
from typing import Callable, Protocol

from self_updater.constants import (
    INSTALL_MAX_COPY_CYCLES,
    INSTALL_RETRY_BUDGET,
    INSTALL_RETRY_DELAY_SECONDS,
)
from self_updater.filesystem import copy_tree, force_delete
from self_updater.locations import AppLocator
from self_updater.models import FilesystemError
from self_updater.platforms import OsFamily, PlatformKey

_LOGGER = logging.getLogger(__name__)

DeleteFunc = Callable[[Path], None]
CopyFunc = Callable[[Path, Path], None]
SleepFunc = Callable[[float], None]


class Installer(Protocol):
    """Protocol describing the platform-specific installation routine."""

    def install(self, target_path: Path) -> None:
        """Copy the running application over ``target_path``."""


class CopyInstaller:
    """Copy the running application root onto the target in one pass."""

    def __init__(self, locator: AppLocator, *, copy: CopyFunc = copy_tree) -> None:
        self._locator = locator
        self._copy = copy

    def install(self, target_path: Path) -> None:
        source = self._locator.app_path()
        _LOGGER.info("Installing %s to %s", source, target_path)
        self._copy(source, Path(target_path))
        _LOGGER.info("Installed update to %s", target_path)


class InstallState(str, Enum):
    DELETING = "deleting"
    COPYING = "copying"
    DONE = "done"
    FAILED = "failed"


class WindowsInstaller:
    """Replace a possibly locked installation through delete/copy retries.

    The previous version may still hold its files open for a moment after it
    exits, so deletion is retried ``retry_budget`` times, ``retry_delay``
    seconds apart.  A failed copy starts a fresh deletion phase; at most
    ``max_copy_cycles`` copies are attempted (``None`` removes the bound).
    """

    def __init__(
        self,
        locator: AppLocator,
        *,
        retry_budget: int = INSTALL_RETRY_BUDGET,
        retry_delay: float = INSTALL_RETRY_DELAY_SECONDS,
        max_copy_cycles: int | None = INSTALL_MAX_COPY_CYCLES,
        delete: DeleteFunc = force_delete,
        copy: CopyFunc = copy_tree,
        sleep: SleepFunc = time.sleep,
    ) -> None:
        if retry_budget < 1:
            raise ValueError("retry_budget must be at least 1")
        if max_copy_cycles is not None and max_copy_cycles < 1:
            raise ValueError("max_copy_cycles must be at least 1")
        self._locator = locator
        self._retry_budget = retry_budget
        self._retry_delay = retry_delay
        self._max_copy_cycles = max_copy_cycles
        self._delete = delete
        self._copy = copy
        self._sleep = sleep
        self.state: InstallState | None = None
        self.delete_attempts = 0
        self.copy_attempts = 0

    def install(self, target_path: Path) -> None:
        target = Path(target_path)
        source = self._locator.app_path()
        _LOGGER.info("Replacing %s with %s", target, source)

        self.delete_attempts = 0
        self.copy_attempts = 0
        remaining = self._retry_budget
        self._transition(InstallState.DELETING)

        while self.state is InstallState.DELETING or self.state is InstallState.COPYING:
            if self.state is InstallState.DELETING:
                self.delete_attempts += 1
                try:
                    self._delete(target)
                except FilesystemError as exc:
                    remaining -= 1
                    if remaining <= 0:
                        _LOGGER.error(
                            "Giving up deleting %s after %s attempts", target, self._retry_budget
                        )
                        self._transition(InstallState.FAILED)
                        raise
                    _LOGGER.debug(
                        "Delete of %s failed (%s retries left): %s", target, remaining, exc
                    )
                    self._sleep(self._retry_delay)
                    continue
                self._transition(InstallState.COPYING)
                continue

            self.copy_attempts += 1
            try:
                self._copy(source, target)
            except FilesystemError as exc:
                if (
                    self._max_copy_cycles is not None
                    and self.copy_attempts >= self._max_copy_cycles
                ):
                    _LOGGER.error(
                        "Giving up copying to %s after %s attempts", target, self.copy_attempts
                    )
                    self._transition(InstallState.FAILED)
                    raise
                _LOGGER.warning("Copy to %s failed, deleting again: %s", target, exc)
                remaining = self._retry_budget
                self._sleep(self._retry_delay)
                self._transition(InstallState.DELETING)
                continue
            self._transition(InstallState.DONE)

        _LOGGER.info("Installed update to %s", target)

    def _transition(self, state: InstallState) -> None:
        _LOGGER.debug("Windows install state -> %s", state.value)
        self.state = state


def build_installer(
    platform: PlatformKey,
    locator: AppLocator,
    *,
    retry_budget: int = INSTALL_RETRY_BUDGET,
    retry_delay: float = INSTALL_RETRY_DELAY_SECONDS,
    max_copy_cycles: int | None = INSTALL_MAX_COPY_CYCLES,
) -> Installer:
    """Return the installer matching ``platform``."""

    if platform.family is OsFamily.WIN:
        return WindowsInstaller(
            locator,
            retry_budget=retry_budget,
            retry_delay=retry_delay,
            max_copy_cycles=max_copy_cycles,
        )
    return CopyInstaller(locator)


__all__ = ["CopyInstaller", "InstallState", "Installer", "WindowsInstaller", "build_installer"]
