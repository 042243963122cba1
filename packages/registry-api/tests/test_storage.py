# SPDX-License-Identifier: MIT
"""Tests for the storage backends."""

import asyncio
import json

import pytest

from registry_api import StorageConfig, UnreadableRegistryError
from registry_api.storage import (
    FileStorage,
    MemoryStorage,
    RegistryStorage,
    S3Storage,
    create_storage,
    entry_package_key,
    package_key,
)


def _entry(name: str = "my-extension", *versions: str) -> dict:
    return {
        "metadata": {"name": name, "version": versions[-1] if versions else "1.0.0"},
        "owner": "github:alice",
        "versions": [{"version": v, "published": "2013-04-10T18:28:20.530Z"} for v in versions or ("1.0.0",)],
    }


class RecordingStorage(RegistryStorage):
    """Records every registry write; each write waits for ``gate``."""

    def __init__(self, fail_first: bool = False) -> None:
        super().__init__()
        self.writes: list[dict] = []
        self.gate = asyncio.Event()
        self.fail_first = fail_first

    async def get_registry(self) -> dict:
        return {}

    async def save_package(self, entry, source_path) -> None:
        pass

    async def _write_registry(self, registry: dict) -> None:
        await self.gate.wait()
        if self.fail_first and not self.writes:
            self.writes.append({"failed": dict(registry)})
            raise OSError("write failed")
        self.writes.append(dict(registry))


class TestPackageKey:
    """Tests for artifact keys."""

    def test_package_key(self):
        assert package_key("my-extension", "1.2.3") == "my-extension/my-extension-1.2.3.zip"

    def test_entry_package_key_uses_newest_version(self):
        assert entry_package_key(_entry("my-extension", "0.1.0", "0.2.0")) == (
            "my-extension/my-extension-0.2.0.zip"
        )


class TestCoalescingSaves:
    """Tests for fire-and-forget registry saves."""

    @pytest.mark.asyncio
    async def test_saves_during_a_write_collapse_into_one(self):
        storage = RecordingStorage()

        storage.save_registry({"n": 1})
        storage.save_registry({"n": 2})
        storage.save_registry({"n": 3})
        assert storage.save_in_progress

        storage.gate.set()
        await storage.flush()

        assert storage.writes == [{"n": 1}, {"n": 3}]
        assert not storage.save_in_progress

    @pytest.mark.asyncio
    async def test_last_write_is_newest_document(self):
        storage = RecordingStorage()
        storage.gate.set()

        for n in range(10):
            storage.save_registry({"n": n})
            if n % 3 == 0:
                await asyncio.sleep(0)
        await storage.flush()

        assert storage.writes[-1] == {"n": 9}
        assert len(storage.writes) <= 10

    @pytest.mark.asyncio
    async def test_failed_write_does_not_stop_later_writes(self, caplog):
        storage = RecordingStorage(fail_first=True)

        storage.save_registry({"n": 1})
        storage.save_registry({"n": 2})
        storage.gate.set()
        await storage.flush()

        assert storage.writes == [{"failed": {"n": 1}}, {"n": 2}]
        assert "saving the registry failed" in caplog.text

    @pytest.mark.asyncio
    async def test_flush_without_saves(self):
        await RecordingStorage().flush()


class TestMemoryStorage:
    """Tests for MemoryStorage."""

    @pytest.mark.asyncio
    async def test_empty_registry(self):
        assert await MemoryStorage().get_registry() == {}

    @pytest.mark.asyncio
    async def test_reads_and_writes_are_copies(self):
        original = {"my-extension": _entry()}
        storage = MemoryStorage(original)

        loaded = await storage.get_registry()
        loaded["my-extension"]["owner"] = "github:mallory"
        assert storage.registry["my-extension"]["owner"] == "github:alice"

        storage.save_registry(loaded)
        loaded["my-extension"]["owner"] = "github:eve"
        assert storage.registry["my-extension"]["owner"] == "github:mallory"

    @pytest.mark.asyncio
    async def test_save_package_records_path(self, tmp_path):
        storage = MemoryStorage()
        await storage.save_package(_entry("my-extension", "0.1.0"), tmp_path / "upload.zip")
        assert storage.files == {"my-extension/my-extension-0.1.0.zip": str(tmp_path / "upload.zip")}


class TestFileStorage:
    """Tests for FileStorage."""

    @pytest.mark.asyncio
    async def test_first_load_creates_empty_registry(self, tmp_path):
        storage = FileStorage(tmp_path / "storage")

        assert await storage.get_registry() == {}
        assert json.loads((tmp_path / "storage" / "registry.json").read_text()) == {}

    @pytest.mark.asyncio
    async def test_registry_round_trip(self, tmp_path):
        storage = FileStorage(tmp_path)
        registry = {"my-extension": _entry()}

        storage.save_registry(registry)
        await storage.flush()

        assert await FileStorage(tmp_path).get_registry() == registry
        assert not (tmp_path / "registry.json.tmp").exists()

    @pytest.mark.asyncio
    async def test_unreadable_registry(self, tmp_path):
        (tmp_path / "registry.json").write_text("{not json", encoding="utf-8")

        with pytest.raises(UnreadableRegistryError):
            await FileStorage(tmp_path).get_registry()

    @pytest.mark.asyncio
    async def test_non_object_registry(self, tmp_path):
        (tmp_path / "registry.json").write_text("[1, 2, 3]", encoding="utf-8")

        with pytest.raises(UnreadableRegistryError):
            await FileStorage(tmp_path).get_registry()

    @pytest.mark.asyncio
    async def test_save_package_copies_artifact(self, tmp_path):
        upload = tmp_path / "upload.zip"
        upload.write_bytes(b"PK first")
        storage = FileStorage(tmp_path / "storage")

        await storage.save_package(_entry("my-extension", "0.1.0"), upload)
        target = tmp_path / "storage" / "my-extension" / "my-extension-0.1.0.zip"
        assert target.read_bytes() == b"PK first"

        upload.write_bytes(b"PK second")
        await storage.save_package(_entry("my-extension", "0.1.0"), upload)
        assert target.read_bytes() == b"PK second"

    def test_directory_is_required(self):
        with pytest.raises(ValueError):
            FileStorage("")


class TestCreateStorage:
    """Tests for the backend factory."""

    def test_memory(self):
        assert isinstance(create_storage(StorageConfig(backend="memory")), MemoryStorage)

    def test_file(self, tmp_path):
        storage = create_storage(StorageConfig(backend="file", directory=str(tmp_path)))
        assert isinstance(storage, FileStorage)
        assert storage.registry_file == tmp_path / "registry.json"

    def test_s3_requires_bucket(self):
        with pytest.raises(ValueError, match="bucket"):
            create_storage(StorageConfig(backend="s3"))

    def test_s3(self, monkeypatch):
        monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")
        storage = create_storage(StorageConfig(backend="s3", s3_bucket="registry-bucket"))
        assert isinstance(storage, S3Storage)
        assert storage.bucket == "registry-bucket"

    def test_unknown_backend(self):
        with pytest.raises(ValueError, match="Unknown storage backend"):
            create_storage(StorageConfig(backend="ftp"))
