"""Archive extractors driven by the platform unpacker."""

from __future__ import annotations

import logging
import shutil
import subprocess
import zipfile
from pathlib import Path
from typing import Protocol, Sequence

from self_updater import constants
from self_updater.models import ExtractionError


_LOGGER = logging.getLogger(__name__)


class Extractor(Protocol):
    """Protocol describing an archive extraction tool."""

    def extract(self, archive_path: Path, destination: Path) -> None:
        """Unpack ``archive_path`` into ``destination`` or raise :class:`ExtractionError`."""


def _run_quietly(command: Sequence[str], *, cwd: Path | None = None) -> None:
    _LOGGER.debug("Running extractor command: %s", command)
    try:
        completed = subprocess.run(
            list(command),
            cwd=str(cwd) if cwd is not None else None,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.PIPE,
            check=False,
        )
    except OSError as exc:
        raise ExtractionError(f"{command[0]}: {exc}") from exc
    if completed.returncode != 0:
        stderr = completed.stderr.decode("utf-8", errors="replace").strip()
        raise ExtractionError(stderr or f"{command[0]} exited with status {completed.returncode}")


class UnzipCommandExtractor:
    """Run the system ``unzip`` binary inside the destination directory."""

    def __init__(self, executable: str = constants.UNZIP_COMMAND) -> None:
        self._executable = executable

    def extract(self, archive_path: Path, destination: Path) -> None:
        _LOGGER.info("Extracting %s into %s with %s", archive_path, destination, self._executable)
        # Runs inside ``destination``; the archive path must be absolute.
        _run_quietly(
            [self._executable, "-xoqq", str(Path(archive_path).resolve())], cwd=destination
        )


class BundledUnzipExtractor:
    """Run the ``unzip.exe`` shipped next to the application on Windows.

    The bundled binary is Info-ZIP's unzip and is not code signed; hosts that
    ship it should be aware that it runs with the application's privileges.
    """

    def __init__(self, tool_path: Path) -> None:
        self._tool_path = Path(tool_path)

    @property
    def tool_path(self) -> Path:
        return self._tool_path

    def extract(self, archive_path: Path, destination: Path) -> None:
        _LOGGER.info("Extracting %s into %s with %s", archive_path, destination, self._tool_path)
        _run_quietly(
            [str(self._tool_path), "-u", "-o", str(archive_path), "-d", str(destination)]
        )


class ZipFileExtractor:
    """Extract with :mod:`zipfile`, rejecting unsafe or oversized archives."""

    def extract(self, archive_path: Path, destination: Path) -> None:
        _LOGGER.info("Extracting update archive %s into %s", archive_path, destination)
        try:
            destination.mkdir(parents=True, exist_ok=True)
            with zipfile.ZipFile(archive_path) as archive:
                extract_zip_safely(archive, destination)
        except (OSError, zipfile.BadZipFile) as exc:
            raise ExtractionError(str(exc)) from exc


def extract_zip_safely(archive: zipfile.ZipFile, target_dir: Path) -> None:
    root = target_dir.resolve()
    total_bytes = 0
    processed_entries = 0
    for member in archive.infolist():
        name = member.filename
        if not name:
            continue
        processed_entries += 1
        if processed_entries > constants.MAX_ARCHIVE_ENTRIES:
            _LOGGER.error(
                "Archive entry count %s exceeded limit %s",
                processed_entries,
                constants.MAX_ARCHIVE_ENTRIES,
            )
            raise ExtractionError("archive contained too many entries")
        path = Path(name)
        if path.is_absolute():
            raise ExtractionError(f"archive entry {name} is an absolute path")
        destination = (root / path).resolve()
        try:
            destination.relative_to(root)
        except ValueError:
            raise ExtractionError(f"archive entry {name} escapes the destination") from None
        if member.is_dir():
            destination.mkdir(parents=True, exist_ok=True)
            continue
        if member.file_size > constants.MAX_ARCHIVE_FILE_SIZE:
            _LOGGER.error(
                "Archive member %s exceeded file size limit (%s > %s)",
                name,
                member.file_size,
                constants.MAX_ARCHIVE_FILE_SIZE,
            )
            raise ExtractionError(f"archive entry {name} is too large")
        if (
            member.compress_size > 0
            and member.file_size > member.compress_size * constants.MAX_COMPRESSION_RATIO
        ):
            _LOGGER.error(
                "Archive member %s exceeded compression ratio limit (%s > %s)",
                name,
                member.file_size,
                member.compress_size * constants.MAX_COMPRESSION_RATIO,
            )
            raise ExtractionError(f"archive entry {name} exceeded the safe compression ratio")
        total_bytes += member.file_size
        if total_bytes > constants.MAX_ARCHIVE_TOTAL_BYTES:
            raise ExtractionError("archive expanded beyond safe limits")
        destination.parent.mkdir(parents=True, exist_ok=True)
        with archive.open(member) as source, destination.open("wb") as target:
            shutil.copyfileobj(source, target)
        _restore_unix_mode(member, destination)

    _LOGGER.debug(
        "Extracted %s entries totalling %s bytes", processed_entries, total_bytes
    )


def _restore_unix_mode(member: zipfile.ZipInfo, destination: Path) -> None:
    # zipfile drops permission bits; app bundles need their executables marked.
    mode = (member.external_attr >> 16) & 0o777
    if mode:
        destination.chmod(mode)


__all__ = [
    "BundledUnzipExtractor",
    "Extractor",
    "UnzipCommandExtractor",
    "ZipFileExtractor",
    "extract_zip_safely",
]
