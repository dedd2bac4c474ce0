from __future__ import annotations

import pytest

from self_updater.platforms import OsFamily, PlatformKey, current_platform, resolve_platform


@pytest.mark.parametrize(
    ("system", "machine", "expected"),
    [
        ("Windows", "AMD64", PlatformKey.WIN64),
        ("Windows", "x86", PlatformKey.WIN32),
        ("win32", "i686", PlatformKey.WIN32),
        ("Darwin", "arm64", PlatformKey.MAC64),
        ("Darwin", "i386", PlatformKey.MAC64),
        ("Linux", "x86_64", PlatformKey.LINUX64),
        ("Linux", "i686", PlatformKey.LINUX32),
        ("FreeBSD", "amd64", PlatformKey.LINUX64),
        ("", "", PlatformKey.LINUX64),
    ],
)
def test_resolve_platform(system: str, machine: str, expected: PlatformKey) -> None:
    assert resolve_platform(system, machine) is expected


def test_platform_families() -> None:
    assert PlatformKey.MAC32.family is OsFamily.MAC
    assert PlatformKey.MAC64.family is OsFamily.MAC
    assert PlatformKey.WIN32.family is OsFamily.WIN
    assert PlatformKey.WIN64.family is OsFamily.WIN
    assert PlatformKey.LINUX32.family is OsFamily.LINUX
    assert PlatformKey.LINUX64.family is OsFamily.LINUX


def test_current_platform_is_computed_once(monkeypatch: pytest.MonkeyPatch) -> None:
    current_platform.cache_clear()
    calls: list[str] = []

    def fake_system() -> str:
        calls.append("system")
        return "Windows"

    monkeypatch.setattr("self_updater.platforms._platform_module.system", fake_system)
    monkeypatch.setattr("self_updater.platforms._platform_module.machine", lambda: "AMD64")
    try:
        assert current_platform() is PlatformKey.WIN64
        assert current_platform() is PlatformKey.WIN64
        assert calls == ["system"]
    finally:
        current_platform.cache_clear()
