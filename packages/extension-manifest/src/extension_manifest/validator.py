# SPDX-License-Identifier: MIT
"""Validation of uploaded extension packages.

An extension is a zip archive with a ``package.json`` at its root (or inside
a single top-level folder). Validation never raises for a bad upload; every
problem is reported as a :class:`ValidationErrorDetail` so callers can show
each one to the uploader.
"""

from __future__ import annotations

import json
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from extension_version import clean_version
from jsonschema import Draft202012Validator, ValidationError

from .schema import PACKAGE_JSON_FILENAME, PACKAGE_JSON_SCHEMA


class ErrorCode:
    """Codes for individual validation problems."""

    INVALID_ZIP_FILE = "INVALID_ZIP_FILE"
    MISSING_PACKAGE_JSON = "MISSING_PACKAGE_JSON"
    INVALID_PACKAGE_JSON = "INVALID_PACKAGE_JSON"
    MISSING_PACKAGE_NAME = "MISSING_PACKAGE_NAME"
    BAD_PACKAGE_NAME = "BAD_PACKAGE_NAME"
    MISSING_PACKAGE_VERSION = "MISSING_PACKAGE_VERSION"
    INVALID_VERSION_NUMBER = "INVALID_VERSION_NUMBER"
    INVALID_FIELD = "INVALID_FIELD"
    DUPLICATE_TITLE = "DUPLICATE_TITLE"


ERROR_MESSAGES = {
    ErrorCode.INVALID_ZIP_FILE: "The uploaded file is not a valid zip archive: {0}",
    ErrorCode.MISSING_PACKAGE_JSON: "The package does not contain a package.json file: {0}",
    ErrorCode.INVALID_PACKAGE_JSON: "Unable to parse package.json ({0}): {1}",
    ErrorCode.MISSING_PACKAGE_NAME: "package.json does not declare a name: {0}",
    ErrorCode.BAD_PACKAGE_NAME: "Invalid package name '{0}': use lowercase letters, digits, '-', '_' or '.'",
    ErrorCode.MISSING_PACKAGE_VERSION: "package.json does not declare a version: {0}",
    ErrorCode.INVALID_VERSION_NUMBER: "Version '{0}' is not a valid semantic version ({1})",
    ErrorCode.INVALID_FIELD: "Invalid value for '{0}': {1}",
    ErrorCode.DUPLICATE_TITLE: "Another extension already uses the title '{0}'",
}


@dataclass(frozen=True, slots=True)
class ValidationErrorDetail:
    """A single validation problem.

    Attributes:
        code: One of the ErrorCode constants
        args: Substitution arguments for the code's message
    """

    code: str
    args: tuple[Any, ...] = ()

    @property
    def message(self) -> str:
        template = ERROR_MESSAGES.get(self.code)
        if template is None:
            return self.code
        try:
            return template.format(*self.args)
        except IndexError:
            return template

    def to_dict(self) -> dict:
        return {"code": self.code, "args": list(self.args), "message": self.message}


@dataclass
class PackageValidationResult:
    """Outcome of validating one package file.

    ``metadata`` is the parsed package.json whenever it could be read, even
    when ``errors`` is non-empty.
    """

    metadata: dict | None = None
    errors: list[ValidationErrorDetail] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors and self.metadata is not None


def _field_path(error: ValidationError) -> str:
    if not error.absolute_path:
        return "<root>"
    return ".".join(str(part) for part in error.absolute_path)


def _details_from_schema_error(
    error: ValidationError, path: str, metadata: dict
) -> list[ValidationErrorDetail]:
    location = _field_path(error)

    if error.validator == "required" and location == "<root>":
        details = []
        for name in error.validator_value:
            if name in error.instance:
                continue
            if name == "name":
                details.append(ValidationErrorDetail(ErrorCode.MISSING_PACKAGE_NAME, (path,)))
            elif name == "version":
                details.append(ValidationErrorDetail(ErrorCode.MISSING_PACKAGE_VERSION, (path,)))
            else:
                details.append(
                    ValidationErrorDetail(ErrorCode.INVALID_FIELD, (name, "required field missing"))
                )
        return details

    if location == "name":
        return [ValidationErrorDetail(ErrorCode.BAD_PACKAGE_NAME, (metadata.get("name"),))]

    if location == "version":
        return [
            ValidationErrorDetail(ErrorCode.INVALID_VERSION_NUMBER, (metadata.get("version"), path))
        ]

    return [ValidationErrorDetail(ErrorCode.INVALID_FIELD, (location, error.message))]


def validate_metadata(metadata: Any, path: str = "") -> list[ValidationErrorDetail]:
    """Check a parsed package.json against the schema."""
    if not isinstance(metadata, dict):
        return [
            ValidationErrorDetail(
                ErrorCode.INVALID_PACKAGE_JSON,
                (path, f"expected an object, got {type(metadata).__name__}"),
            )
        ]

    validator = Draft202012Validator(PACKAGE_JSON_SCHEMA)
    errors = sorted(
        validator.iter_errors(metadata),
        key=lambda e: [str(part) for part in e.absolute_path],
    )
    details: list[ValidationErrorDetail] = []
    for error in errors:
        for detail in _details_from_schema_error(error, path, metadata):
            if detail not in details:
                details.append(detail)
    return details


def _find_package_json(archive: zipfile.ZipFile) -> str | None:
    names = [info.filename for info in archive.infolist() if not info.is_dir()]
    if PACKAGE_JSON_FILENAME in names:
        return PACKAGE_JSON_FILENAME

    # Archives created by zipping a folder put everything under one directory
    prefixes = {name.split("/", 1)[0] for name in names if "/" in name}
    if len(prefixes) == 1 and all("/" in name for name in names):
        candidate = f"{prefixes.pop()}/{PACKAGE_JSON_FILENAME}"
        if candidate in names:
            return candidate
    return None


def validate_package(
    path: str | Path,
    require_package_json: bool = True,
) -> PackageValidationResult:
    """Validate an extension zip and extract its metadata.

    Args:
        path: Path to the uploaded zip file
        require_package_json: Report MISSING_PACKAGE_JSON when the archive
            has no package.json

    Returns:
        PackageValidationResult with the parsed metadata and any errors
    """
    path_str = str(path)
    result = PackageValidationResult()

    try:
        archive = zipfile.ZipFile(path)
    except (zipfile.BadZipFile, OSError) as exc:
        result.errors.append(ValidationErrorDetail(ErrorCode.INVALID_ZIP_FILE, (str(exc),)))
        return result

    with archive:
        member = _find_package_json(archive)
        if member is None:
            if require_package_json:
                result.errors.append(
                    ValidationErrorDetail(ErrorCode.MISSING_PACKAGE_JSON, (path_str,))
                )
            return result

        try:
            raw = archive.read(member)
            metadata = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError, zipfile.BadZipFile) as exc:
            result.errors.append(
                ValidationErrorDetail(ErrorCode.INVALID_PACKAGE_JSON, (path_str, str(exc)))
            )
            return result

    errors = validate_metadata(metadata, path_str)
    if isinstance(metadata, dict):
        if not errors:
            metadata["version"] = clean_version(metadata["version"])
        result.metadata = metadata
    result.errors.extend(errors)
    return result
