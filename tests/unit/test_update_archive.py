from __future__ import annotations

import os
import subprocess
import sys
from pathlib import Path
from zipfile import ZipFile, ZipInfo

import pytest

from self_updater import (
    BundledUnzipExtractor,
    ExtractionError,
    UnzipCommandExtractor,
    ZipFileExtractor,
)
from tests.unit.update_test_utils import build_package_archive


class _RecordingRun:
    def __init__(self, returncode: int = 0, stderr: bytes = b"") -> None:
        self.returncode = returncode
        self.stderr = stderr
        self.calls: list[tuple[list[str], dict]] = []

    def __call__(self, command, **kwargs):
        self.calls.append((command, kwargs))
        return subprocess.CompletedProcess(command, self.returncode, None, self.stderr)


def test_zipfile_extractor_unpacks_archive(tmp_path: Path) -> None:
    archive = build_package_archive(tmp_path)
    destination = tmp_path / "out" / "app-1.2.0"

    ZipFileExtractor().extract(archive, destination)

    assert (destination / "MyApp").read_bytes().startswith(b"#!/bin/sh")
    assert (destination / "resources" / "app.nw").read_bytes() == b"payload"


def test_zipfile_extractor_rejects_entries_escaping_destination(tmp_path: Path) -> None:
    archive = build_package_archive(tmp_path, files={"../evil.txt": b"boom"})
    destination = tmp_path / "out"

    with pytest.raises(ExtractionError, match="escapes"):
        ZipFileExtractor().extract(archive, destination)

    assert not (tmp_path / "evil.txt").exists()


def test_zipfile_extractor_reports_corrupt_archive(tmp_path: Path) -> None:
    archive = tmp_path / "broken.zip"
    archive.write_bytes(b"this is not a zip file")

    with pytest.raises(ExtractionError):
        ZipFileExtractor().extract(archive, tmp_path / "out")


def test_zipfile_extractor_enforces_entry_limit(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr("self_updater.constants.MAX_ARCHIVE_ENTRIES", 1)
    archive = build_package_archive(tmp_path)

    with pytest.raises(ExtractionError, match="too many entries"):
        ZipFileExtractor().extract(archive, tmp_path / "out")


@pytest.mark.skipif(sys.platform.startswith("win"), reason="POSIX permissions only")
def test_zipfile_extractor_restores_executable_bits(tmp_path: Path) -> None:
    archive_path = tmp_path / "modes.zip"
    info = ZipInfo("MyApp")
    info.external_attr = 0o755 << 16
    with ZipFile(archive_path, "w") as archive:
        archive.writestr(info, b"#!/bin/sh\n")

    ZipFileExtractor().extract(archive_path, tmp_path / "out")

    assert os.access(tmp_path / "out" / "MyApp", os.X_OK)


def test_unzip_command_runs_inside_destination(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    run = _RecordingRun()
    monkeypatch.setattr("self_updater.archive.subprocess.run", run)
    archive = tmp_path / "app-1.2.0.zip"

    UnzipCommandExtractor().extract(archive, tmp_path / "app-1.2.0")

    command, kwargs = run.calls[0]
    assert command == ["unzip", "-xoqq", str(archive.resolve())]
    assert kwargs["cwd"] == str(tmp_path / "app-1.2.0")
    assert kwargs["check"] is False


def test_unzip_command_passes_absolute_archive_for_relative_paths(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    run = _RecordingRun()
    monkeypatch.setattr("self_updater.archive.subprocess.run", run)
    monkeypatch.chdir(tmp_path)

    UnzipCommandExtractor().extract(Path("updates/app-1.2.0.zip"), Path("updates/app-1.2.0"))

    command, kwargs = run.calls[0]
    assert Path(command[2]).is_absolute()
    assert Path(command[2]) == (tmp_path / "updates" / "app-1.2.0.zip").resolve()
    assert kwargs["cwd"] == str(Path("updates/app-1.2.0"))


def test_unzip_command_failure_carries_tool_output(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    run = _RecordingRun(returncode=9, stderr=b"End-of-central-directory signature not found\n")
    monkeypatch.setattr("self_updater.archive.subprocess.run", run)

    with pytest.raises(ExtractionError) as excinfo:
        UnzipCommandExtractor().extract(tmp_path / "app.zip", tmp_path)

    assert excinfo.value.tool_error == "End-of-central-directory signature not found"


def test_unzip_command_failure_without_output_reports_exit_status(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr("self_updater.archive.subprocess.run", _RecordingRun(returncode=3))

    with pytest.raises(ExtractionError, match="exited with status 3"):
        UnzipCommandExtractor().extract(tmp_path / "app.zip", tmp_path)


def test_missing_unzip_binary_is_an_extraction_error(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    def missing(command, **kwargs):
        raise FileNotFoundError(2, "No such file or directory", command[0])

    monkeypatch.setattr("self_updater.archive.subprocess.run", missing)

    with pytest.raises(ExtractionError, match="unzip"):
        UnzipCommandExtractor().extract(tmp_path / "app.zip", tmp_path)


def test_bundled_unzip_passes_destination_flag(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    run = _RecordingRun()
    monkeypatch.setattr("self_updater.archive.subprocess.run", run)
    tool = tmp_path / "tools" / "unzip.exe"
    archive = tmp_path / "app-1.2.0.zip"
    destination = tmp_path / "app-1.2.0"

    BundledUnzipExtractor(tool).extract(archive, destination)

    command, kwargs = run.calls[0]
    assert command == [str(tool), "-u", "-o", str(archive), "-d", str(destination)]
    assert kwargs["cwd"] is None
