# SPDX-License-Identifier: MIT
"""Tests for registry ordering helpers."""

import pytest

from registry_api.listing import (
    format_download_url,
    last_published,
    most_downloaded,
    order_registry,
    sort_registry,
    trending,
)


def _entry(name: str, published: str | None, total: object = None, recent: dict | None = None) -> dict:
    entry = {
        "metadata": {"name": name},
        "versions": [{"version": "1.0.0", "published": published}] if published else [],
    }
    if total is not None:
        entry["totalDownloads"] = total
    if recent is not None:
        entry["recent"] = recent
    return entry


@pytest.fixture
def registry() -> dict:
    return {
        "older": _entry("older", "2013-04-10T18:28:20.530Z", total=50, recent={"20130801": 1}),
        "newest": _entry("newest", "2014-01-02T00:00:00.000Z", total="7", recent={"20130801": 9}),
        "unpublished": _entry("unpublished", None),
        "middle": _entry("middle", "2013-12-31T23:59:59.999Z", total="lots", recent={"20130801": 2, "20130802": 3}),
    }


def _names(entries) -> list[str]:
    return [e["metadata"]["name"] for e in entries]


class TestOrdering:
    """Tests for registry orderings."""

    def test_sort_registry_newest_first(self, registry):
        assert _names(sort_registry(registry)) == ["newest", "middle", "older", "unpublished"]

    def test_most_downloaded(self, registry):
        assert _names(most_downloaded(registry, limit=2)) == ["older", "newest"]

    def test_trending(self, registry):
        assert _names(trending(registry, limit=None))[:2] == ["newest", "middle"]

    def test_order_registry_limit(self, registry):
        assert _names(order_registry(registry, "published", limit=1)) == ["newest"]

    def test_order_registry_unknown_sort(self, registry):
        with pytest.raises(ValueError):
            order_registry(registry, "alphabetical")

    def test_last_published(self, registry):
        assert last_published(registry["unpublished"]) is None
        assert last_published(registry["older"]).year == 2013
        assert last_published({"versions": [{"published": "yesterday"}]}) is None


class TestFormatDownloadUrl:
    """Tests for artifact URLs."""

    def test_plain(self):
        assert format_download_url("http://localhost:1234", "test-extension", "0.0.1") == (
            "http://localhost:1234/test-extension/test-extension-0.0.1.zip"
        )

    def test_escaped(self):
        assert format_download_url(
            "http://localhost:1234", "jasonsanjose.brackets-sass", "0.4.1+sha.fc425b5"
        ) == (
            "http://localhost:1234/jasonsanjose.brackets-sass/"
            "jasonsanjose.brackets-sass-0.4.1%2Bsha.fc425b5.zip"
        )
        assert format_download_url("http://localhost:1234", "test-extension", "0.0.1&<>abcdef") == (
            "http://localhost:1234/test-extension/test-extension-0.0.1%26%3C%3Eabcdef.zip"
        )
