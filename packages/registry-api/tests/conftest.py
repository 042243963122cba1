# SPDX-License-Identifier: MIT
"""Pytest fixtures for registry tests."""

import json
import zipfile
from collections.abc import AsyncGenerator, Callable
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from registry_api import MemoryStorage, RegistryConfig, RegistryEngine, create_app

ALICE = "github:alice"
BOB = "github:bob"
ADMIN = "github:admin"

TOKENS = {
    ALICE: "alice-token",
    BOB: "bob-token",
    ADMIN: "admin-token",
}


@pytest.fixture
def auth_headers() -> Callable[[str], dict[str, str]]:
    """Authorization header for one of the configured test users."""

    def _headers(user_id: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {TOKENS[user_id]}"}

    return _headers


@pytest.fixture
def test_config() -> RegistryConfig:
    """Registry configuration with in-memory storage and three users."""
    config = RegistryConfig()
    config.storage.backend = "memory"
    config.admins = [ADMIN]
    for user_id, token in TOKENS.items():
        config.auth.add_token(token, user_id)
    return config


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest_asyncio.fixture
async def engine(test_config: RegistryConfig, storage: MemoryStorage) -> RegistryEngine:
    """A registry engine that has finished loading an empty registry."""
    engine = RegistryEngine()
    await engine.configure(test_config, storage)
    return engine


@pytest.fixture
def make_package(tmp_path: Path) -> Callable[..., Path]:
    """Build an extension zip in tmp_path from package.json fields."""
    counter = 0

    def _make(name: str = "snippets-extension", version: str = "0.1.0", **fields) -> Path:
        nonlocal counter
        counter += 1
        metadata = {"name": name, "version": version, **fields}
        path = tmp_path / f"{name}-{version}-{counter}.zip"
        with zipfile.ZipFile(path, "w") as zf:
            zf.writestr("package.json", json.dumps(metadata))
            zf.writestr("main.js", "define(function () {});")
        return path

    return _make


@pytest_asyncio.fixture
async def app(test_config: RegistryConfig, engine: RegistryEngine):
    """FastAPI application serving the test engine."""
    return create_app(test_config, engine=engine)


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client connecting from 127.0.0.1."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client
