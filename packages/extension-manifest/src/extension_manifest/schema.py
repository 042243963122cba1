# SPDX-License-Identifier: MIT
"""JSON Schema for the ``package.json`` carried inside an extension zip."""

from __future__ import annotations

from extension_version import SEMVER_PATTERN

PACKAGE_JSON_FILENAME = "package.json"

# Lowercase, may contain digits, '-', '_' and '.', but must not start with '.' or '_'
NAME_PATTERN = r"^[a-z0-9-][a-z0-9._-]*$"

PACKAGE_JSON_SCHEMA: dict = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "title": "Extension package.json",
    "type": "object",
    "required": ["name", "version"],
    "properties": {
        "name": {
            "type": "string",
            "minLength": 1,
            "maxLength": 214,
            "pattern": NAME_PATTERN,
        },
        "version": {
            "type": "string",
            "pattern": SEMVER_PATTERN.pattern,
        },
        "title": {"type": "string", "maxLength": 100},
        "description": {"type": "string"},
        "homepage": {"type": "string"},
        "author": {
            "anyOf": [
                {"type": "string"},
                {
                    "type": "object",
                    "properties": {
                        "name": {"type": "string"},
                        "email": {"type": "string"},
                        "url": {"type": "string"},
                    },
                },
            ]
        },
        "keywords": {"type": "array", "items": {"type": "string"}},
        "engines": {
            "type": "object",
            "properties": {
                "brackets": {"type": "string"},
            },
        },
    },
    "additionalProperties": True,
}
