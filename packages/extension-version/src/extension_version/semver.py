# SPDX-License-Identifier: MIT
"""Semantic version parsing for registry extensions.

Accepts MAJOR.MINOR.PATCH with optional pre-release and build metadata, the
same grammar extension authors put in ``package.json``. A leading ``v`` or
``=`` is tolerated and dropped, so ``v1.2.0`` and ``1.2.0`` name the same
release.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

# https://semver.org/#is-there-a-suggested-regular-expression-regex-to-check-a-semver-string
SEMVER_PATTERN = re.compile(
    r"^[v=]?(?P<major>0|[1-9]\d*)"
    r"\.(?P<minor>0|[1-9]\d*)"
    r"\.(?P<patch>0|[1-9]\d*)"
    r"(?:-(?P<prerelease>(?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*)"
    r"(?:\.(?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*))*))?"
    r"(?:\+(?P<buildmetadata>[0-9a-zA-Z-]+(?:\.[0-9a-zA-Z-]+)*))?$"
)


class InvalidVersionError(ValueError):
    """Raised when a version string is not a semantic version."""

    def __init__(self, version: str, message: str = ""):
        self.version = version
        self.message = message or f"Invalid semantic version: {version}"
        super().__init__(self.message)


@dataclass(frozen=True, slots=True)
class Version:
    """A parsed semantic version.

    Attributes:
        major: Major version number
        minor: Minor version number
        patch: Patch version number
        prerelease: Dot-separated pre-release identifiers, e.g. "beta.2"
        build: Build metadata; never affects precedence
    """

    major: int
    minor: int
    patch: int
    prerelease: Optional[str] = None
    build: Optional[str] = None

    def __str__(self) -> str:
        text = ".".join(str(part) for part in (self.major, self.minor, self.patch))
        if self.prerelease:
            text = f"{text}-{self.prerelease}"
        if self.build:
            text = f"{text}+{self.build}"
        return text

    @property
    def is_prerelease(self) -> bool:
        return self.prerelease is not None

    @property
    def prerelease_identifiers(self) -> tuple[str, ...]:
        """Pre-release identifiers in order, empty for a release."""
        return tuple(self.prerelease.split(".")) if self.prerelease else ()


def _match(version_string: object) -> Optional[re.Match[str]]:
    if not isinstance(version_string, str):
        return None
    return SEMVER_PATTERN.match(version_string.strip())


def parse_version(version_string: str) -> Version:
    """Parse a semantic version string.

    Raises:
        InvalidVersionError: If the string is not a semantic version

    Examples:
        >>> parse_version("1.2.3")
        Version(major=1, minor=2, patch=3, prerelease=None, build=None)

        >>> parse_version("v2.0.0-rc.1+sha.5114f85")
        Version(major=2, minor=0, patch=0, prerelease='rc.1', build='sha.5114f85')
    """
    match = _match(version_string)
    if match is None:
        if not isinstance(version_string, str):
            raise InvalidVersionError(
                str(version_string),
                f"Version must be a string, got {type(version_string).__name__}",
            )
        if not version_string.strip():
            raise InvalidVersionError(version_string, "Version string cannot be empty")
        raise InvalidVersionError(version_string)

    major, minor, patch = (int(match.group(part)) for part in ("major", "minor", "patch"))
    return Version(major, minor, patch, match.group("prerelease"), match.group("buildmetadata"))


def clean_version(version_string: str) -> Optional[str]:
    """Normalized form of a version (no ``v``, no whitespace), or None if invalid.

    Example:
        >>> clean_version(" v1.0.0-beta ")
        '1.0.0-beta'
    """
    return str(parse_version(version_string)) if _match(version_string) else None


def is_valid_semver(version_string: str) -> bool:
    """Return True if ``version_string`` parses as a semantic version."""
    return _match(version_string) is not None
