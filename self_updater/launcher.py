"""Spawn the updated application detached from the current process."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import Any, Callable, Mapping, Sequence

from self_updater.constants import LINUX_EXECUTABLE_MODE
from self_updater.locations import AppLocator
from self_updater.models import FilesystemError, LaunchedProcess, LaunchError
from self_updater.platforms import OsFamily, PlatformKey
from self_updater.relaunch_script import ensure_relaunch_script

_LOGGER = logging.getLogger(__name__)

Spawner = Callable[..., Any]


def detached_popen_kwargs(platform: PlatformKey) -> dict[str, Any]:
    """Return ``Popen`` keyword arguments that detach the child process."""

    kwargs: dict[str, Any] = {
        "stdin": subprocess.DEVNULL,
        "stdout": subprocess.DEVNULL,
        "stderr": subprocess.DEVNULL,
        "close_fds": True,
    }
    if platform.family is OsFamily.WIN:
        kwargs["creationflags"] = getattr(subprocess, "DETACHED_PROCESS", 0) | getattr(
            subprocess, "CREATE_NEW_PROCESS_GROUP", 0
        )
    else:
        kwargs["start_new_session"] = True
    return kwargs


class Launcher:
    """Start a new copy of the application and relinquish ownership of it."""

    def __init__(
        self,
        platform: PlatformKey,
        app_name: str,
        locator: AppLocator,
        *,
        spawn: Spawner = subprocess.Popen,
    ) -> None:
        self._platform = platform
        self._app_name = app_name
        self._locator = locator
        self._spawn = spawn

    def run_installer(
        self,
        app_path: Path,
        args: Sequence[str] | None = None,
        options: Mapping[str, Any] | None = None,
    ) -> LaunchedProcess:
        """Launch the freshly unpacked application found at ``app_path``."""

        family = self._platform.family
        if family is OsFamily.MAC:
            return self._run_mac(Path(app_path), args, options)
        if family is OsFamily.LINUX:
            return self._run_linux(Path(app_path), args, options)
        return self._spawn_detached([str(app_path), *(args or [])], options)

    def run(
        self,
        exec_path: Path,
        args: Sequence[str] | None = None,
        options: Mapping[str, Any] | None = None,
    ) -> LaunchedProcess:
        """Launch the application installed at ``exec_path``.

        On linux ``exec_path`` names the executable, so its directory is used.
        """

        path = Path(exec_path)
        if self._platform.family is OsFamily.LINUX:
            path = path.parent
        return self.run_installer(path, args, options)

    def _run_mac(
        self,
        app_path: Path,
        args: Sequence[str] | None,
        options: Mapping[str, Any] | None,
    ) -> LaunchedProcess:
        # The bundle can only be replaced once this process has fully exited,
        # so the relaunch is delegated to a helper script.
        script_dir = self._locator.executable.parent
        try:
            script = ensure_relaunch_script(script_dir)
        except FilesystemError as exc:
            raise LaunchError(f"Relaunch script unavailable: {exc}") from exc
        forwarded = args[0] if args else ""
        command = ["bash", f"./{script.name}", str(app_path), forwarded]
        merged = dict(options or {})
        merged["cwd"] = str(script_dir)
        return self._spawn_detached(command, merged)

    def _run_linux(
        self,
        app_dir: Path,
        args: Sequence[str] | None,
        options: Mapping[str, Any] | None,
    ) -> LaunchedProcess:
        executable = app_dir / self._app_name
        try:
            executable.chmod(LINUX_EXECUTABLE_MODE)
        except OSError as exc:
            raise LaunchError(f"Failed to mark {executable} executable: {exc}") from exc
        merged = dict(options or {})
        merged["cwd"] = str(app_dir)
        return self._spawn_detached([str(executable), *(args or [])], merged)

    def _spawn_detached(
        self, command: Sequence[str], options: Mapping[str, Any] | None
    ) -> LaunchedProcess:
        kwargs = detached_popen_kwargs(self._platform)
        kwargs.update(options or {})
        _LOGGER.info("Launching %s", command)
        try:
            process = self._spawn(list(command), **kwargs)
        except (OSError, ValueError) as exc:
            raise LaunchError(f"Failed to launch {command[0]}: {exc}") from exc
        cwd = kwargs.get("cwd")
        return LaunchedProcess(
            pid=process.pid,
            command=tuple(command),
            working_directory=Path(cwd) if cwd else None,
        )


__all__ = ["Launcher", "detached_popen_kwargs"]
