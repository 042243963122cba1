# SPDX-License-Identifier: MIT
"""Local filesystem storage."""

from __future__ import annotations

import asyncio
import json
import logging
import shutil
from pathlib import Path

from ..errors import UnreadableRegistryError
from .base import RegistryStorage, entry_package_key

logger = logging.getLogger(__name__)


class FileStorage(RegistryStorage):
    """Stores ``registry.json`` and artifacts under one directory.

    Layout::

        <directory>/registry.json
        <directory>/<name>/<name>-<version>.zip
    """

    def __init__(self, directory: str | Path, registry_filename: str = "registry.json") -> None:
        super().__init__()
        if not directory:
            raise ValueError("A directory is required for file storage")
        self.directory = Path(directory).expanduser()
        self.registry_file = self.directory / registry_filename

    def _read_registry(self) -> dict:
        self.directory.mkdir(parents=True, exist_ok=True)
        if not self.registry_file.exists():
            self.registry_file.write_text("{}", encoding="utf-8")
            return {}

        try:
            registry = json.loads(self.registry_file.read_text(encoding="utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            logger.error("Unable to parse %s: %s", self.registry_file, exc)
            raise UnreadableRegistryError(str(exc)) from exc

        if not isinstance(registry, dict):
            raise UnreadableRegistryError(f"expected a JSON object in {self.registry_file}")
        return registry

    async def get_registry(self) -> dict:
        return await asyncio.to_thread(self._read_registry)

    def _write_text(self, body: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        tmp_file = self.registry_file.with_suffix(".json.tmp")
        tmp_file.write_text(body, encoding="utf-8")
        tmp_file.replace(self.registry_file)

    async def _write_registry(self, registry: dict) -> None:
        body = json.dumps(registry)
        await asyncio.to_thread(self._write_text, body)

    def _copy_package(self, source_path: Path, destination: Path) -> None:
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(source_path, destination)

    async def save_package(self, entry: dict, source_path: str | Path) -> None:
        destination = self.directory / entry_package_key(entry)
        await asyncio.to_thread(self._copy_package, Path(source_path), destination)
