# SPDX-License-Identifier: MIT
"""In-memory storage, for tests and throwaway local servers."""

from __future__ import annotations

import copy
from pathlib import Path

from .base import RegistryStorage, entry_package_key


class MemoryStorage(RegistryStorage):
    """Keeps private copies of the registry and records saved artifact paths.

    Callers never share a reference with the stored document, so mutating a
    loaded registry does not change what is stored.
    """

    def __init__(self, registry: dict | None = None) -> None:
        super().__init__()
        self.registry: dict = copy.deepcopy(registry) if registry else {}
        self.files: dict[str, str] = {}

    async def get_registry(self) -> dict:
        return copy.deepcopy(self.registry)

    def save_registry(self, registry: dict) -> None:
        # Nothing to wait on, so no need to coalesce
        self.registry = copy.deepcopy(registry)

    async def _write_registry(self, registry: dict) -> None:
        self.registry = copy.deepcopy(registry)

    async def save_package(self, entry: dict, source_path: str | Path) -> None:
        self.files[entry_package_key(entry)] = str(source_path)
