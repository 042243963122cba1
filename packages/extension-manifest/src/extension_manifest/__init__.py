# SPDX-License-Identifier: MIT
"""Package validation for extension zip files."""

__version__ = "0.1.0"

from .schema import NAME_PATTERN, PACKAGE_JSON_FILENAME, PACKAGE_JSON_SCHEMA
from .validator import (
    ERROR_MESSAGES,
    ErrorCode,
    PackageValidationResult,
    ValidationErrorDetail,
    validate_metadata,
    validate_package,
)

__all__ = [
    "ERROR_MESSAGES",
    "ErrorCode",
    "NAME_PATTERN",
    "PACKAGE_JSON_FILENAME",
    "PACKAGE_JSON_SCHEMA",
    "PackageValidationResult",
    "ValidationErrorDetail",
    "validate_metadata",
    "validate_package",
]
