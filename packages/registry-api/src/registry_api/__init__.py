# SPDX-License-Identifier: MIT
"""Registry server for extension packages and their download statistics."""

__version__ = "0.1.0"

from .app import create_app
from .config import AuthConfig, RegistryConfig, StorageConfig
from .errors import (
    BadVersionError,
    ErrorCode,
    ForbiddenError,
    InvalidRequestError,
    NotAuthorizedError,
    NotConfiguredError,
    RegistryError,
    RegistryNotLoadedError,
    UnauthorizedError,
    UnknownExtensionError,
    UnreadableRegistryError,
    ValidationFailedError,
)
from .repository import EngineState, RegistryEngine, merge_recent_downloads
from .storage import FileStorage, MemoryStorage, RegistryStorage, S3Storage, create_storage

__all__ = [
    # App factory
    "create_app",
    # Configuration
    "AuthConfig",
    "RegistryConfig",
    "StorageConfig",
    # Engine
    "EngineState",
    "RegistryEngine",
    "merge_recent_downloads",
    # Storage
    "FileStorage",
    "MemoryStorage",
    "RegistryStorage",
    "S3Storage",
    "create_storage",
    # Errors
    "BadVersionError",
    "ErrorCode",
    "ForbiddenError",
    "InvalidRequestError",
    "NotAuthorizedError",
    "NotConfiguredError",
    "RegistryError",
    "RegistryNotLoadedError",
    "UnauthorizedError",
    "UnknownExtensionError",
    "UnreadableRegistryError",
    "ValidationFailedError",
]
