# SPDX-License-Identifier: MIT
"""Amazon S3 storage.

The registry is kept as gzipped JSON under a single public-read key, next to
the package artifacts.
"""

from __future__ import annotations

import asyncio
import gzip
import json
import logging
import zlib
from pathlib import Path
from typing import Any

import boto3
from botocore.exceptions import ClientError

from ..errors import UnreadableRegistryError
from .base import RegistryStorage, entry_package_key

logger = logging.getLogger(__name__)


def _is_missing(err: ClientError) -> bool:
    code = str(err.response.get("Error", {}).get("Code", ""))
    return code in {"NoSuchKey", "404", "NotFound"}


class S3Storage(RegistryStorage):
    """Registry and artifacts in one S3 bucket."""

    def __init__(
        self,
        bucket: str | None,
        registry_key: str = "registry.json",
        region: str | None = None,
        client: Any | None = None,
    ) -> None:
        super().__init__()
        if not bucket:
            raise ValueError("Configuration error: an S3 bucket is required for s3 storage")
        self.bucket = bucket
        self.registry_key = registry_key
        self._s3 = client if client is not None else boto3.client("s3", region_name=region)

    def _fetch_registry_bytes(self) -> bytes | None:
        try:
            resp = self._s3.get_object(Bucket=self.bucket, Key=self.registry_key)
        except ClientError as err:
            if _is_missing(err):
                return None
            logger.error("S3 getRegistry failed: %s", err)
            raise
        return resp["Body"].read()

    async def get_registry(self) -> dict:
        body = await asyncio.to_thread(self._fetch_registry_bytes)
        if body is None:
            return {}

        try:
            registry = json.loads(gzip.decompress(body).decode("utf-8"))
        except (OSError, EOFError, zlib.error, UnicodeDecodeError, json.JSONDecodeError) as exc:
            logger.error("S3 parsing registry failed: %s", exc)
            raise UnreadableRegistryError(str(exc)) from exc

        if not isinstance(registry, dict):
            raise UnreadableRegistryError("expected a JSON object")
        return registry

    async def _write_registry(self, registry: dict) -> None:
        body = gzip.compress(json.dumps(registry).encode("utf-8"))
        await asyncio.to_thread(
            self._s3.put_object,
            Bucket=self.bucket,
            Key=self.registry_key,
            ACL="public-read",
            ContentEncoding="gzip",
            ContentType="application/json",
            Body=body,
        )

    def _upload_package(self, source_path: Path, key: str) -> None:
        with open(source_path, "rb") as f:
            self._s3.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=f,
                ACL="public-read",
                ContentType="application/zip",
            )

    async def save_package(self, entry: dict, source_path: str | Path) -> None:
        key = entry_package_key(entry)
        try:
            await asyncio.to_thread(self._upload_package, Path(source_path), key)
        except ClientError as err:
            logger.error("S3 savePackage failed for %s: %s", key, err)
            raise
