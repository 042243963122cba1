# SPDX-License-Identifier: MIT
"""Version precedence following SemVer 2.0.0, section 11.

Build metadata is ignored. A release outranks any of its pre-releases.
Pre-release identifiers are compared left to right: numeric identifiers
numerically, alphanumeric ones in ASCII order, and numeric identifiers
always rank below alphanumeric ones.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Union

from .semver import Version, parse_version

VersionLike = Union[str, Version]


def _coerce(version: VersionLike) -> Version:
    return parse_version(version) if isinstance(version, str) else version


def _identifier_key(identifier: str) -> tuple[int, int, str]:
    if identifier.isdigit():
        return (0, int(identifier), "")
    return (1, 0, identifier)


def _compare_prerelease(ids1: tuple[str, ...], ids2: tuple[str, ...]) -> int:
    if not ids1 and not ids2:
        return 0
    if not ids1:
        return 1
    if not ids2:
        return -1

    for p1, p2 in zip(ids1, ids2):
        k1, k2 = _identifier_key(p1), _identifier_key(p2)
        if k1 != k2:
            return -1 if k1 < k2 else 1

    if len(ids1) != len(ids2):
        return -1 if len(ids1) < len(ids2) else 1
    return 0


def compare_versions(version1: VersionLike, version2: VersionLike) -> int:
    """Compare two semantic versions.

    Returns:
        -1 if version1 < version2, 0 if equal in precedence, 1 otherwise

    Raises:
        InvalidVersionError: If either version string is invalid

    Examples:
        >>> compare_versions("1.0.0", "2.0.0")
        -1
        >>> compare_versions("1.0.0-alpha.1", "1.0.0-alpha.beta")
        -1
        >>> compare_versions("1.0.0+build.1", "1.0.0")
        0
    """
    v1 = _coerce(version1)
    v2 = _coerce(version2)

    core1 = (v1.major, v1.minor, v1.patch)
    core2 = (v2.major, v2.minor, v2.patch)
    if core1 != core2:
        return -1 if core1 < core2 else 1

    return _compare_prerelease(v1.prerelease_identifiers, v2.prerelease_identifiers)


def is_newer(candidate: VersionLike, current: VersionLike) -> bool:
    """Return True if ``candidate`` has strictly higher precedence than ``current``."""
    return compare_versions(candidate, current) > 0


def version_key(version: VersionLike) -> tuple:
    """Sort key consistent with :func:`compare_versions`.

    Examples:
        >>> sorted(["1.0.0", "1.0.0-rc.1", "1.0.0-beta"], key=version_key)
        ['1.0.0-beta', '1.0.0-rc.1', '1.0.0']
    """
    v = _coerce(version)
    identifiers = v.prerelease_identifiers
    if not identifiers:
        prerelease_key: tuple = (1,)
    else:
        prerelease_key = (0, tuple(_identifier_key(part) for part in identifiers))
    return (v.major, v.minor, v.patch, prerelease_key)


def max_version(versions: Iterable[VersionLike]) -> str | None:
    """Return the highest version in ``versions`` as a string, or None if empty."""
    best: Version | None = None
    for item in versions:
        parsed = _coerce(item)
        if best is None or compare_versions(parsed, best) > 0:
            best = parsed
    return str(best) if best is not None else None
