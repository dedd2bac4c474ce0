"""Map the host operating system onto the six supported platform keys."""

from __future__ import annotations

import platform as _platform_module
from enum import Enum
from functools import lru_cache


class OsFamily(str, Enum):
    """Operating system families that share install and launch behaviour."""

    MAC = "mac"
    WIN = "win"
    LINUX = "linux"


class PlatformKey(str, Enum):
    """Canonical identifiers used to select per-platform packages."""

    MAC32 = "mac32"
    MAC64 = "mac64"
    WIN32 = "win32"
    WIN64 = "win64"
    LINUX32 = "linux32"
    LINUX64 = "linux64"

    @property
    def family(self) -> OsFamily:
        if self in (PlatformKey.MAC32, PlatformKey.MAC64):
            return OsFamily.MAC
        if self in (PlatformKey.WIN32, PlatformKey.WIN64):
            return OsFamily.WIN
        return OsFamily.LINUX


_32BIT_MACHINES = frozenset({"i386", "i486", "i586", "i686", "x86", "ia32"})


def is_32bit_machine(machine: str) -> bool:
    return machine.strip().lower() in _32BIT_MACHINES


def resolve_platform(system: str, machine: str) -> PlatformKey:
    """Return the :class:`PlatformKey` for ``system`` running on ``machine``.

    macOS always resolves to ``mac64``.  Unrecognised systems fall through to
    the linux keys.
    """

    lowered = system.strip().lower()
    if lowered.startswith("win"):
        return PlatformKey.WIN32 if is_32bit_machine(machine) else PlatformKey.WIN64
    if lowered.startswith("darwin"):
        return PlatformKey.MAC64
    return PlatformKey.LINUX32 if is_32bit_machine(machine) else PlatformKey.LINUX64


@lru_cache(maxsize=1)
def current_platform() -> PlatformKey:
    """Return the platform key for this process, computed once."""

    return resolve_platform(_platform_module.system(), _platform_module.machine())


__all__ = ["OsFamily", "PlatformKey", "current_platform", "is_32bit_machine", "resolve_platform"]
