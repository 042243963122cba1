# SPDX-License-Identifier: MIT
"""Storage backend contract shared by every backend."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from pathlib import Path

logger = logging.getLogger(__name__)


def package_key(name: str, version: str) -> str:
    """Return the artifact key for a package version: ``name/name-version.zip``."""
    return f"{name}/{name}-{version}.zip"


def entry_package_key(entry: dict) -> str:
    """Artifact key for the newest version record of a registry entry."""
    version = entry["versions"][-1]["version"]
    return package_key(entry["metadata"]["name"], version)


class RegistryStorage(ABC):
    """Durable home for the registry document and package artifacts.

    ``save_registry`` is fire-and-forget. Subclasses implement
    :meth:`_write_registry`; this class guarantees at most one write in
    flight and collapses saves requested meanwhile into a single trailing
    write of the newest document.
    """

    def __init__(self) -> None:
        self._save_task: asyncio.Task | None = None
        self._pending_registry: dict | None = None

    @abstractmethod
    async def get_registry(self) -> dict:
        """Load the registry document, ``{}`` if none was ever saved.

        Raises:
            UnreadableRegistryError: If stored bytes cannot be decoded
        """

    @abstractmethod
    async def save_package(self, entry: dict, source_path: str | Path) -> None:
        """Store the artifact for the newest version of ``entry``.

        Overwrites any existing artifact under the same key.
        """

    @abstractmethod
    async def _write_registry(self, registry: dict) -> None:
        """Persist one registry document."""

    @property
    def save_in_progress(self) -> bool:
        return self._save_task is not None and not self._save_task.done()

    def save_registry(self, registry: dict) -> None:
        """Schedule a write of ``registry``.

        Must be called from a running event loop.
        """
        if self.save_in_progress:
            self._pending_registry = registry
            return
        self._save_task = asyncio.get_running_loop().create_task(self._drain(registry))

    async def _drain(self, registry: dict | None) -> None:
        while registry is not None:
            try:
                await self._write_registry(registry)
            except Exception:
                logger.exception("%s: saving the registry failed", type(self).__name__)
            registry, self._pending_registry = self._pending_registry, None

    async def flush(self) -> None:
        """Wait until every requested registry save has been written."""
        while self.save_in_progress:
            await asyncio.shield(self._save_task)
