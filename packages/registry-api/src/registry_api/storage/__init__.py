# SPDX-License-Identifier: MIT
"""Storage backends for the registry document and package artifacts."""

from collections.abc import Callable

from ..config import StorageConfig
from .base import RegistryStorage, entry_package_key, package_key
from .files import FileStorage
from .memory import MemoryStorage
from .s3 import S3Storage

STORAGE_BACKENDS: dict[str, Callable[[StorageConfig], RegistryStorage]] = {
    "memory": lambda config: MemoryStorage(),
    "file": lambda config: FileStorage(config.directory, config.registry_key),
    "s3": lambda config: S3Storage(
        config.s3_bucket,
        registry_key=config.registry_key,
        region=config.s3_region,
    ),
}


def create_storage(config: StorageConfig) -> RegistryStorage:
    """Build the storage backend named by ``config.backend``.

    Raises:
        ValueError: If the backend name is unknown
    """
    factory = STORAGE_BACKENDS.get(config.backend or "")
    if factory is None:
        raise ValueError(f"Unknown storage backend: {config.backend}")
    return factory(config)


__all__ = [
    "STORAGE_BACKENDS",
    "FileStorage",
    "MemoryStorage",
    "RegistryStorage",
    "S3Storage",
    "create_storage",
    "entry_package_key",
    "package_key",
]
