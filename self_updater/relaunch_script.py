"""Helpers for writing the macOS relaunch helper script."""

from __future__ import annotations

import logging
import textwrap
from pathlib import Path

from self_updater.constants import LINUX_EXECUTABLE_MODE, RELAUNCH_SCRIPT_NAME
from self_updater.models import FilesystemError


__all__ = ["RELAUNCH_SCRIPT", "ensure_relaunch_script", "write_relaunch_script"]


_LOGGER = logging.getLogger(__name__)


# $1 is the bundle to open, $2 an optional argument forwarded to it.
RELAUNCH_SCRIPT = textwrap.dedent(
    """\
    #!/bin/bash
    APP_PATH="$1"
    RELAUNCH_ARG="$2"
    PARENT_PID="$PPID"

    for _ in $(seq 1 100); do
        if ! kill -0 "$PARENT_PID" 2>/dev/null; then
            break
        fi
        sleep 0.1
    done

    if [ -n "$RELAUNCH_ARG" ]; then
        open -n "$APP_PATH" --args "$RELAUNCH_ARG"
    else
        open -n "$APP_PATH"
    fi
    """
)


def write_relaunch_script(directory: Path) -> Path:
    """Write the relaunch helper into ``directory`` and return its path."""

    script_path = Path(directory) / RELAUNCH_SCRIPT_NAME
    try:
        script_path.write_text(RELAUNCH_SCRIPT, encoding="utf-8", newline="\n")
        script_path.chmod(LINUX_EXECUTABLE_MODE)
    except OSError as exc:
        raise FilesystemError(f"Failed to write relaunch script {script_path}: {exc}") from exc
    _LOGGER.debug("Wrote relaunch script to %s", script_path)
    return script_path


def ensure_relaunch_script(directory: Path) -> Path:
    """Return the relaunch helper in ``directory``, writing it when missing."""

    script_path = Path(directory) / RELAUNCH_SCRIPT_NAME
    if script_path.is_file():
        return script_path
    return write_relaunch_script(directory)
