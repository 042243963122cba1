# SPDX-License-Identifier: MIT
"""Ordering helpers for registry listings."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from urllib.parse import quote

SORT_KEYS = ("published", "downloads", "trending")


def last_published(entry: Mapping) -> datetime | None:
    """Publish time of the newest version, or None if unknown."""
    versions = entry.get("versions") or []
    if not versions:
        return None
    published = versions[-1].get("published")
    if not published:
        return None
    try:
        return datetime.fromisoformat(published)
    except ValueError:
        return None


def _as_int(value: object) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def total_downloads(entry: Mapping) -> int:
    return _as_int(entry.get("totalDownloads"))


def weekly_downloads(entry: Mapping) -> int:
    """Sum of the entry's recent daily download counts."""
    return sum(_as_int(count) for count in (entry.get("recent") or {}).values())


def sort_registry(registry: Mapping[str, Mapping]) -> list[Mapping]:
    """Entries ordered by the publish time of their newest version, newest first."""
    dated = []
    undated = []
    for entry in registry.values():
        published = last_published(entry)
        if published is None:
            undated.append(entry)
        else:
            dated.append((published.timestamp(), entry))

    dated.sort(key=lambda item: item[0], reverse=True)
    return [entry for _, entry in dated] + undated


def most_downloaded(registry: Mapping[str, Mapping], limit: int | None = 4) -> list[Mapping]:
    """Entries with the highest all-time download counts."""
    entries = sorted(registry.values(), key=total_downloads, reverse=True)
    return entries if limit is None else entries[:limit]


def trending(registry: Mapping[str, Mapping], limit: int | None = 4) -> list[Mapping]:
    """Entries with the most downloads over the recent window."""
    entries = sorted(registry.values(), key=weekly_downloads, reverse=True)
    return entries if limit is None else entries[:limit]


def format_download_url(base_url: str, name: str, version: str) -> str:
    """Public URL of a package artifact.

    Example:
        >>> format_download_url("http://localhost:1234", "test-extension", "0.0.1")
        'http://localhost:1234/test-extension/test-extension-0.0.1.zip'
    """
    return f"{base_url}/{quote(name, safe='')}/{quote(f'{name}-{version}.zip', safe='')}"


def order_registry(
    registry: Mapping[str, Mapping],
    sort: str = "published",
    limit: int | None = None,
) -> list[Mapping]:
    """Apply one of :data:`SORT_KEYS` to the registry.

    Raises:
        ValueError: If ``sort`` is not a known ordering
    """
    if sort == "published":
        entries = sort_registry(registry)
        return entries if limit is None else entries[:limit]
    if sort == "downloads":
        return most_downloaded(registry, limit)
    if sort == "trending":
        return trending(registry, limit)
    raise ValueError(f"Unknown sort order: {sort}")
