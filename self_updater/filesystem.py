"""Delete and copy primitives used by the unpacker and the installers."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from self_updater.models import FilesystemError

_LOGGER = logging.getLogger(__name__)


def force_delete(path: Path) -> None:
    """Remove ``path`` whether it is a file, link or directory tree.

    A missing path is not an error.
    """

    path = Path(path)
    try:
        if path.is_dir() and not path.is_symlink():
            shutil.rmtree(path)
        else:
            path.unlink(missing_ok=True)
    except FileNotFoundError:
        return
    except OSError as exc:
        raise FilesystemError(f"Failed to delete {path}: {exc}") from exc
    _LOGGER.debug("Deleted %s", path)


def copy_tree(source: Path, destination: Path) -> None:
    """Recursively copy ``source`` onto ``destination``, merging into it."""

    source = Path(source)
    destination = Path(destination)
    try:
        if source.is_dir():
            shutil.copytree(source, destination, symlinks=True, dirs_exist_ok=True)
        else:
            destination.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(source, destination)
    except OSError as exc:
        raise FilesystemError(f"Failed to copy {source} to {destination}: {exc}") from exc
    _LOGGER.debug("Copied %s to %s", source, destination)


__all__ = ["copy_tree", "force_delete"]
