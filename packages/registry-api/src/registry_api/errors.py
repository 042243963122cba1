# SPDX-License-Identifier: MIT
"""Registry error taxonomy.

Every failure the registry reports carries one of the :class:`ErrorCode`
constants so the HTTP layer can render a distinct message per kind.
"""

from dataclasses import dataclass, field

from extension_manifest import ValidationErrorDetail


class ErrorCode:
    """Registry error codes."""

    NOT_CONFIGURED = "NOT_CONFIGURED"
    REGISTRY_NOT_LOADED = "REGISTRY_NOT_LOADED"
    VALIDATION_FAILED = "VALIDATION_FAILED"
    NOT_AUTHORIZED = "NOT_AUTHORIZED"
    BAD_VERSION = "BAD_VERSION"
    UNKNOWN_EXTENSION = "UNKNOWN_EXTENSION"
    DUPLICATE_TITLE = "DUPLICATE_TITLE"
    UNREADABLE_REGISTRY = "UNREADABLE_REGISTRY"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    INVALID_REQUEST = "INVALID_REQUEST"
    INTERNAL_ERROR = "INTERNAL_ERROR"


@dataclass
class RegistryError(Exception):
    """Base registry exception.

    Attributes:
        code: Error code from ErrorCode
        message: Human-readable error message
        details: Individually renderable sub-errors
    """

    code: str
    message: str
    details: list[ValidationErrorDetail] = field(default_factory=list)

    def __str__(self) -> str:
        return self.message

    def to_response(self) -> dict:
        """Convert to API response format."""
        response = {
            "error": {
                "code": self.code,
                "message": self.message,
            }
        }
        if self.details:
            response["error"]["details"] = [d.to_dict() for d in self.details]
        return response


class NotConfiguredError(RegistryError):
    """The registry has no storage backend."""

    def __init__(self, message: str = "Repository not configured!"):
        super().__init__(code=ErrorCode.NOT_CONFIGURED, message=message)


class RegistryNotLoadedError(RegistryError):
    """The registry document is still loading."""

    def __init__(self):
        super().__init__(
            code=ErrorCode.REGISTRY_NOT_LOADED,
            message="The registry is still loading, try again shortly",
        )


class ValidationFailedError(RegistryError):
    """The uploaded package is invalid."""

    def __init__(self, details: list[ValidationErrorDetail]):
        message = f"Package validation failed with {len(details)} error(s)"
        if details:
            message += f": {details[0].message}"
        super().__init__(code=ErrorCode.VALIDATION_FAILED, message=message, details=list(details))


class NotAuthorizedError(RegistryError):
    """The user does not own the package."""

    def __init__(self, package_name: str):
        super().__init__(
            code=ErrorCode.NOT_AUTHORIZED,
            message=f"Not authorized to modify package '{package_name}'",
        )


class BadVersionError(RegistryError):
    """The uploaded version does not come after the latest one."""

    def __init__(self, package_name: str, version: str, latest: str):
        super().__init__(
            code=ErrorCode.BAD_VERSION,
            message=(
                f"Version '{version}' of package '{package_name}' must be greater "
                f"than the latest version '{latest}'"
            ),
        )


class UnknownExtensionError(RegistryError):
    """No package with this name is registered."""

    def __init__(self, package_name: str):
        super().__init__(
            code=ErrorCode.UNKNOWN_EXTENSION,
            message=f"Package '{package_name}' not found",
        )


class UnreadableRegistryError(RegistryError):
    """Persisted registry bytes could not be decoded."""

    def __init__(self, reason: str):
        super().__init__(
            code=ErrorCode.UNREADABLE_REGISTRY,
            message=f"Unable to read the stored registry: {reason}",
        )
        self.reason = reason


class UnauthorizedError(RegistryError):
    """Authentication required."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(code=ErrorCode.UNAUTHORIZED, message=message)


class ForbiddenError(RegistryError):
    """Request not allowed from this client."""

    def __init__(self, message: str = "Not authorized for this operation"):
        super().__init__(code=ErrorCode.FORBIDDEN, message=message)


class InvalidRequestError(RegistryError):
    """The request is missing data or carries malformed data."""

    def __init__(self, message: str):
        super().__init__(code=ErrorCode.INVALID_REQUEST, message=message)
