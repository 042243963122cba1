# SPDX-License-Identifier: MIT
"""Configuration for the download statistics job."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

DEFAULT_REGISTRY_URL = "http://localhost:4040"
DEFAULT_MAX_CONCURRENT_DOWNLOADS = 150


class ConfigError(Exception):
    """Raised when configuration is missing or invalid."""

    pass


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").lower() in ("1", "true", "yes")


@dataclass
class StatsConfig:
    """Settings for downloading access logs and posting their statistics.

    Attributes:
        log_bucket: Bucket the access logs are delivered to
        region: AWS region of the log bucket
        log_prefix: Key prefix of the log objects, e.g. ``logs/``
        registry_url: Base URL of the registry server; must be local
        temp_folder: Where logs are downloaded, a fresh temp dir if unset
        keep_temp_folder: Keep downloaded logs after a full run
        max_concurrent_downloads: Bound on simultaneous object downloads
        recent_days: Length of the recent-downloads window in days
    """

    log_bucket: Optional[str] = None
    region: Optional[str] = None
    log_prefix: str = ""
    registry_url: str = DEFAULT_REGISTRY_URL
    temp_folder: Optional[str] = None
    keep_temp_folder: bool = False
    max_concurrent_downloads: int = DEFAULT_MAX_CONCURRENT_DOWNLOADS
    recent_days: int = 7

    @classmethod
    def from_env(cls) -> "StatsConfig":
        """Create configuration from DOWNLOAD_STATS_* environment variables.

        Raises:
            ConfigError: If a numeric setting is not a positive integer
        """
        config = cls()

        if log_bucket := os.getenv("DOWNLOAD_STATS_LOG_BUCKET"):
            config.log_bucket = log_bucket
        if region := os.getenv("DOWNLOAD_STATS_REGION"):
            config.region = region
        if log_prefix := os.getenv("DOWNLOAD_STATS_LOG_PREFIX"):
            config.log_prefix = log_prefix
        if registry_url := os.getenv("DOWNLOAD_STATS_REGISTRY_URL"):
            config.registry_url = registry_url.rstrip("/")
        if temp_folder := os.getenv("DOWNLOAD_STATS_TEMP_FOLDER"):
            config.temp_folder = temp_folder
        config.keep_temp_folder = _env_flag("DOWNLOAD_STATS_KEEP_TEMP_FOLDER")

        if value := os.getenv("DOWNLOAD_STATS_MAX_CONCURRENT_DOWNLOADS"):
            config.max_concurrent_downloads = _positive_int(
                "DOWNLOAD_STATS_MAX_CONCURRENT_DOWNLOADS", value
            )
        if value := os.getenv("DOWNLOAD_STATS_RECENT_DAYS"):
            config.recent_days = _positive_int("DOWNLOAD_STATS_RECENT_DAYS", value)

        return config

    def require_log_bucket(self) -> str:
        """Return the log bucket.

        Raises:
            ConfigError: If no log bucket is configured
        """
        if not self.log_bucket:
            raise ConfigError("Configuration error: DOWNLOAD_STATS_LOG_BUCKET is missing")
        return self.log_bucket


def _positive_int(name: str, value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {value!r}") from None
    if number < 1:
        raise ConfigError(f"{name} must be at least 1, got {number}")
    return number
