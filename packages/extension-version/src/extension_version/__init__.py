# SPDX-License-Identifier: MIT
"""Semantic version parsing and precedence for registry extensions.

Example:
    >>> from extension_version import compare_versions, is_newer
    >>> compare_versions("0.2.0", "0.3.0")
    -1
    >>> is_newer("1.0.0", "1.0.0-rc.2")
    True
"""

__version__ = "0.1.0"

from .semver import (
    Version,
    parse_version,
    clean_version,
    is_valid_semver,
    InvalidVersionError,
    SEMVER_PATTERN,
)
from .compare import (
    compare_versions,
    is_newer,
    max_version,
    version_key,
)

__all__ = [
    "Version",
    "parse_version",
    "clean_version",
    "is_valid_semver",
    "InvalidVersionError",
    "SEMVER_PATTERN",
    "compare_versions",
    "is_newer",
    "max_version",
    "version_key",
]
