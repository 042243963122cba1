# SPDX-License-Identifier: MIT
"""Registry server configuration."""

import hashlib
from dataclasses import dataclass, field
from typing import Optional


@dataclass
class StorageConfig:
    """Where the registry document and package artifacts are kept.

    ``backend`` is one of "memory", "file" or "s3".
    """

    backend: Optional[str] = "memory"
    directory: str = "./storage"
    s3_bucket: Optional[str] = None
    s3_region: Optional[str] = None
    registry_key: str = "registry.json"


@dataclass
class AuthConfig:
    """Authentication configuration.

    ``tokens`` maps the SHA-256 hex digest of an API token to the user id it
    authenticates, e.g. ``"github:alice"``.
    """

    tokens: dict[str, str] = field(default_factory=dict)

    def add_token(self, token: str, user_id: str) -> None:
        self.tokens[hashlib.sha256(token.encode()).hexdigest()] = user_id


@dataclass
class RegistryConfig:
    """Main registry server configuration."""

    # Server settings
    title: str = "Extension Registry"
    description: str = "Registry server for extension packages and download statistics"
    version: str = "0.1.0"
    debug: bool = False

    # Sub-configurations
    storage: StorageConfig = field(default_factory=StorageConfig)
    auth: AuthConfig = field(default_factory=AuthConfig)

    # User ids allowed to administer every package
    admins: list[str] = field(default_factory=list)

    docs_url: str = "/docs"
    openapi_url: str = "/openapi.json"

    @classmethod
    def from_env(cls) -> "RegistryConfig":
        """Create configuration from environment variables."""
        import os

        config = cls()

        # Storage
        if storage_backend := os.getenv("REGISTRY_STORAGE_BACKEND"):
            config.storage.backend = storage_backend
        if directory := os.getenv("REGISTRY_STORAGE_DIRECTORY"):
            config.storage.directory = directory
        if s3_bucket := os.getenv("REGISTRY_STORAGE_S3_BUCKET"):
            config.storage.s3_bucket = s3_bucket
        if s3_region := os.getenv("REGISTRY_STORAGE_S3_REGION"):
            config.storage.s3_region = s3_region

        # Admins, comma separated
        if admins := os.getenv("REGISTRY_ADMINS"):
            config.admins = [admin.strip() for admin in admins.split(",") if admin.strip()]

        # API tokens as "token=user" pairs, comma separated
        if tokens := os.getenv("REGISTRY_API_TOKENS"):
            for pair in tokens.split(","):
                token, sep, user_id = pair.partition("=")
                if sep and token.strip() and user_id.strip():
                    config.auth.add_token(token.strip(), user_id.strip())

        # Debug
        config.debug = os.getenv("REGISTRY_DEBUG", "").lower() == "true"

        return config
