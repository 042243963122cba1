# SPDX-License-Identifier: MIT
"""Shared fixtures for download-stats tests."""

import pytest

from download_stats.config import StatsConfig

LOG_BUCKET = "repository-logs"


def _log_line(
    key: str = "select-parent/select-parent-1.0.0.zip",
    timestamp: str = "[19/Jul/2013:16:26:40 +0000]",
    status: str = "200",
    operation: str = "REST.GET.OBJECT",
    user_agent: str = "-",
) -> str:
    """One S3 server access log line for ``key``."""
    return (
        f"04db613b2d0b7a8e repository.example.io {timestamp} 192.150.22.5 - 5444C2FE39980E28 "
        f'{operation} {key} "GET /repository.example.io/{key} HTTP/1.1" {status} - '
        f'56846 56846 566 268 "-" "{user_agent}" -'
    )


@pytest.fixture
def log_line():
    return _log_line


@pytest.fixture
def stats_config() -> StatsConfig:
    return StatsConfig(log_bucket=LOG_BUCKET, log_prefix="logs/", max_concurrent_downloads=2)
