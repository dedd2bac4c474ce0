"""Locate the installation of the currently running application."""

from __future__ import annotations

import os
import sys
from pathlib import Path

from self_updater.constants import MAC_APP_ROOT_DEPTH
from self_updater.platforms import OsFamily, PlatformKey


class AppLocator:
    """Resolve the running application's root directory and executable.

    On macOS the process runs inside ``<bundle>/Contents/...`` so the bundle
    root sits three levels above the working directory.  Everywhere else the
    root is the directory holding the executable.
    """

    def __init__(
        self,
        platform: PlatformKey,
        *,
        executable: str | Path | None = None,
        working_directory: str | Path | None = None,
    ) -> None:
        self._platform = platform
        self._executable = Path(executable) if executable is not None else None
        self._working_directory = (
            Path(working_directory) if working_directory is not None else None
        )

    @property
    def executable(self) -> Path:
        if self._executable is not None:
            return self._executable
        return Path(sys.executable)

    @property
    def working_directory(self) -> Path:
        if self._working_directory is not None:
            return self._working_directory
        return Path.cwd()

    def app_path(self) -> Path:
        if self._platform.family is OsFamily.MAC:
            parts = [os.pardir] * MAC_APP_ROOT_DEPTH
            return Path(os.path.normpath(self.working_directory.joinpath(*parts)))
        return self.executable.parent

    def app_exec(self) -> Path:
        if self._platform.family is OsFamily.MAC:
            return self.app_path()
        return self.app_path() / self.executable.name


__all__ = ["AppLocator"]
