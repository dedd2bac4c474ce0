"""Helpers for comparing semantic version strings."""

from __future__ import annotations

import semver

from self_updater.models import ParseError


__all__ = [
    "compare_versions",
    "is_version_newer",
    "parse_version",
]


def parse_version(version: str) -> semver.Version:
    """Parse ``version`` as a strict semantic version.

    A leading ``v`` or ``=`` is tolerated, as release tags commonly carry one.
    """

    cleaned = version.strip().lstrip("=v").strip()
    try:
        return semver.Version.parse(cleaned)
    except (TypeError, ValueError) as exc:
        raise ParseError(f"Invalid semantic version {version!r}") from exc


def compare_versions(current_version: str, candidate: str) -> int:
    """Compare ``candidate`` against ``current_version``.

    Returns ``1`` when ``candidate`` is newer, ``-1`` when it is older and ``0``
    when the versions have equal precedence.  Build metadata never affects the
    result.
    """

    result = parse_version(candidate).compare(parse_version(current_version))
    if result > 0:
        return 1
    if result < 0:
        return -1
    return 0


def is_version_newer(current_version: str, candidate: str) -> bool:
    """Return ``True`` if ``candidate`` is strictly newer than ``current_version``."""

    return compare_versions(current_version, candidate) > 0
