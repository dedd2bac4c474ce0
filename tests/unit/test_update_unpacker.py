from __future__ import annotations

import shutil
from pathlib import Path

import pytest

from self_updater import (
    ExtractionError,
    FilesystemError,
    PlatformKey,
    PlatformUnpacker,
    UnzipCommandExtractor,
    ZipFileExtractor,
)
from self_updater.unpacker import executable_relative_path, unpack_directory_for
from tests.unit.update_test_utils import build_package_archive, make_manifest


class _RecordingExtractor:
    def __init__(self, error: ExtractionError | None = None) -> None:
        self.calls: list[tuple[Path, Path]] = []
        self.error = error
        self.existing_on_extract: list[list[str]] = []

    def extract(self, archive_path: Path, destination: Path) -> None:
        self.calls.append((archive_path, destination))
        if destination.exists():
            self.existing_on_extract.append(sorted(p.name for p in destination.iterdir()))
        else:
            self.existing_on_extract.append([])
        if self.error is not None:
            raise self.error


def test_unpack_directory_strips_archive_extension(tmp_path: Path) -> None:
    assert unpack_directory_for(Path("/downloads/app-1.2.0.zip"), tmp_path) == tmp_path / "app-1.2.0"


@pytest.mark.parametrize(
    ("platform", "expected"),
    [
        (PlatformKey.MAC64, "MyApp.app"),
        (PlatformKey.WIN32, "MyApp.exe"),
        (PlatformKey.LINUX64, "MyApp"),
    ],
)
def test_default_executable_names(platform: PlatformKey, expected: str) -> None:
    assert executable_relative_path(make_manifest("1.2.0"), platform) == expected


def test_exec_path_overrides_default_name() -> None:
    manifest = make_manifest(
        "1.2.0",
        packages={"mac64": {"url": "https://example.com/a.zip", "execPath": "Renamed.app"}},
    )

    assert executable_relative_path(manifest, PlatformKey.MAC64) == "Renamed.app"


def test_mac_unpack_returns_bundle_inside_directory(tmp_path: Path) -> None:
    extractor = _RecordingExtractor()
    unpacker = PlatformUnpacker(PlatformKey.MAC64, tmp_path, extractor)
    archive = tmp_path / "app-1.2.0.zip"

    result = unpacker.unpack(archive, make_manifest("1.2.0"))

    assert result == tmp_path / "app-1.2.0" / "MyApp.app"
    assert extractor.calls == [(archive, tmp_path / "app-1.2.0")]
    assert (tmp_path / "app-1.2.0").is_dir()


def test_linux_unpack_returns_directory_and_keeps_existing_content(tmp_path: Path) -> None:
    destination = tmp_path / "app-1.2.0"
    destination.mkdir()
    (destination / "leftover.txt").write_text("old", encoding="utf-8")
    extractor = _RecordingExtractor()
    unpacker = PlatformUnpacker(PlatformKey.LINUX64, tmp_path, extractor)

    result = unpacker.unpack(tmp_path / "app-1.2.0.zip", make_manifest("1.2.0"))

    assert result == destination
    assert extractor.existing_on_extract == [["leftover.txt"]]


def test_windows_unpack_clears_previous_extract(tmp_path: Path) -> None:
    destination = tmp_path / "app-1.2.0"
    (destination / "nested").mkdir(parents=True)
    (destination / "nested" / "stale.dll").write_bytes(b"old")
    extractor = _RecordingExtractor()
    unpacker = PlatformUnpacker(PlatformKey.WIN64, tmp_path, extractor)

    result = unpacker.unpack(tmp_path / "app-1.2.0.zip", make_manifest("1.2.0"))

    assert result == destination / "MyApp.exe"
    assert extractor.existing_on_extract == [[]]
    assert not (destination / "nested").exists()


def test_extraction_errors_propagate(tmp_path: Path) -> None:
    extractor = _RecordingExtractor(ExtractionError("unzip: cannot find zipfile directory"))
    unpacker = PlatformUnpacker(PlatformKey.LINUX32, tmp_path, extractor)

    with pytest.raises(ExtractionError) as excinfo:
        unpacker.unpack(tmp_path / "app-1.2.0.zip", make_manifest("1.2.0"))

    assert "zipfile directory" in excinfo.value.tool_error


def test_unpack_with_zipfile_extractor(tmp_path: Path) -> None:
    archive = build_package_archive(tmp_path)
    temp_dir = tmp_path / "temp"
    unpacker = PlatformUnpacker(PlatformKey.LINUX64, temp_dir, ZipFileExtractor())

    result = unpacker.unpack(archive, make_manifest("1.2.0"))

    assert result == temp_dir / "app-1.2.0"
    assert (result / "MyApp").is_file()
    assert (result / "resources" / "app.nw").read_bytes() == b"payload"


def test_windows_unpack_stops_when_previous_extract_cannot_be_removed(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    (tmp_path / "app-1.2.0").mkdir()

    def locked(path: Path) -> None:
        raise FilesystemError(f"Failed to delete {path}: file in use")

    monkeypatch.setattr("self_updater.unpacker.force_delete", locked)
    extractor = _RecordingExtractor()
    unpacker = PlatformUnpacker(PlatformKey.WIN64, tmp_path, extractor)

    with pytest.raises(FilesystemError, match="file in use"):
        unpacker.unpack(tmp_path / "app-1.2.0.zip", make_manifest("1.2.0"))

    assert extractor.calls == []


def test_mac_unpack_with_zipfile_extractor_resolves_existing_bundle(tmp_path: Path) -> None:
    archive = build_package_archive(
        tmp_path,
        files={
            "MyApp.app/Contents/Info.plist": b"<plist/>",
            "MyApp.app/Contents/MacOS/MyApp": b"#!/bin/sh\n",
        },
    )
    temp_dir = tmp_path / "temp"
    unpacker = PlatformUnpacker(PlatformKey.MAC64, temp_dir, ZipFileExtractor())

    result = unpacker.unpack(archive, make_manifest("1.2.0"))

    assert result == temp_dir / "app-1.2.0" / "MyApp.app"
    assert result.is_dir()
    assert (result / "Contents" / "MacOS" / "MyApp").is_file()


def test_windows_unpack_with_zipfile_extractor_resolves_existing_executable(
    tmp_path: Path,
) -> None:
    archive = build_package_archive(
        tmp_path, files={"MyApp.exe": b"MZ", "tools/unzip.exe": b"MZ"}
    )
    temp_dir = tmp_path / "temp"
    unpacker = PlatformUnpacker(PlatformKey.WIN32, temp_dir, ZipFileExtractor())

    result = unpacker.unpack(archive, make_manifest("1.2.0"))

    assert result == temp_dir / "app-1.2.0" / "MyApp.exe"
    assert result.is_file()


@pytest.mark.skipif(shutil.which("unzip") is None, reason="unzip command not installed")
def test_unzip_command_unpacks_into_relative_temporary_directory(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    archive = build_package_archive(tmp_path)
    (tmp_path / "updates").mkdir()
    shutil.copy2(archive, tmp_path / "updates" / archive.name)
    monkeypatch.chdir(tmp_path)
    unpacker = PlatformUnpacker(PlatformKey.LINUX64, Path("updates"), UnzipCommandExtractor())

    result = unpacker.unpack(Path("updates") / archive.name, make_manifest("1.2.0"))

    assert result == Path("updates") / "app-1.2.0"
    assert (tmp_path / "updates" / "app-1.2.0" / "MyApp").is_file()
    assert (tmp_path / "updates" / "app-1.2.0" / "resources" / "app.nw").read_bytes() == b"payload"
