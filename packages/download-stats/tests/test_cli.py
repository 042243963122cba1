# SPDX-License-Identifier: MIT
"""Tests for the download-stats CLI."""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from click.testing import CliRunner

from download_stats.main import StatsUploadError, cli


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture(autouse=True)
def env(monkeypatch):
    monkeypatch.setenv("DOWNLOAD_STATS_LOG_BUCKET", "repository-logs")
    monkeypatch.setenv("DOWNLOAD_STATS_REGISTRY_URL", "http://localhost:4040")
    monkeypatch.delenv("DOWNLOAD_STATS_TEMP_FOLDER", raising=False)
    monkeypatch.delenv("DOWNLOAD_STATS_KEEP_TEMP_FOLDER", raising=False)


@pytest.fixture
def processor():
    with patch("download_stats.main.LogfileProcessor") as cls:
        instance = cls.return_value
        instance.download_logfiles = AsyncMock(return_value="logs/2013-07-19-16-26-40-A")
        instance.get_recent_downloads = AsyncMock(
            return_value={"startDate": "20130713", "endDate": "20130719", "extensions": []}
        )
        yield instance


class RecordingPost:
    """Stand-in for httpx.post that keeps what was uploaded."""

    def __init__(self, status_code: int = 202):
        self.status_code = status_code
        self.calls = []

    def __call__(self, url, files, timeout):
        name, handle, content_type = files["file"]
        self.calls.append((url, name, json.loads(handle.read()), content_type))
        return MagicMock(status_code=self.status_code, text="nope")


class TestDownloadAndExtract:
    """Tests for the download and extract commands."""

    def test_download(self, runner, processor, tmp_path):
        folder = tmp_path / "logs"
        result = runner.invoke(cli, ["--temp-folder", str(folder), "download"])

        assert result.exit_code == 0, result.output
        assert folder.is_dir()
        processor.download_logfiles.assert_awaited_once_with(folder)
        assert "logs/2013-07-19-16-26-40-A" in result.output

    def test_extract(self, runner, log_line, tmp_path):
        folder = tmp_path / "logs"
        folder.mkdir()
        (folder / "logs-A.log").write_text(log_line() + "\n" + log_line() + "\n")
        output = tmp_path / "stats.json"

        result = runner.invoke(cli, ["-t", str(folder), "extract", "-o", str(output)])

        assert result.exit_code == 0, result.output
        assert json.loads(output.read_text()) == {
            "select-parent": {
                "downloads": {"versions": {"1.0.0": 2}, "recent": {"20130719": 2}}
            }
        }


class TestUpdate:
    """Tests for posting statistics to the registry."""

    def test_update(self, runner, tmp_path):
        data = tmp_path / "downloadStats.json"
        data.write_text(json.dumps({"select-parent": {"downloads": {"versions": {"1.0.0": 1}}}}))
        post = RecordingPost()

        with patch("download_stats.main.httpx.post", post):
            result = runner.invoke(cli, ["update", str(data)])

        assert result.exit_code == 0, result.output
        assert post.calls == [
            (
                "http://localhost:4040/stats",
                "downloadStats.json",
                {"select-parent": {"downloads": {"versions": {"1.0.0": 1}}}},
                "application/json",
            )
        ]

    def test_update_rejected(self, runner, tmp_path):
        data = tmp_path / "downloadStats.json"
        data.write_text("{}")

        with patch("download_stats.main.httpx.post", RecordingPost(status_code=403)):
            result = runner.invoke(cli, ["update", str(data)])

        assert result.exit_code != 0
        assert isinstance(result.exception, StatsUploadError)


class TestRun:
    """Tests for the full pipeline."""

    def test_run_uploads_and_cleans_up(self, runner, processor, log_line, tmp_path):
        folder = tmp_path / "logs"
        folder.mkdir()
        (folder / "logs-A.log").write_text(log_line() + "\n")
        output = tmp_path / "downloadStats.json"
        post = RecordingPost()

        with patch("download_stats.main.httpx.post", post):
            result = runner.invoke(cli, ["-t", str(folder), "run", "-o", str(output)])

        assert result.exit_code == 0, result.output
        processor.download_logfiles.assert_awaited_once()
        assert post.calls[0][2] == {
            "select-parent": {
                "downloads": {"versions": {"1.0.0": 1}, "recent": {"20130719": 1}}
            }
        }
        assert not output.exists()
        assert not folder.exists()

    def test_run_keeps_temp_folder(self, runner, processor, log_line, tmp_path, monkeypatch):
        monkeypatch.setenv("DOWNLOAD_STATS_KEEP_TEMP_FOLDER", "true")
        folder = tmp_path / "logs"
        folder.mkdir()
        (folder / "logs-A.log").write_text(log_line() + "\n")

        with patch("download_stats.main.httpx.post", RecordingPost()):
            result = runner.invoke(
                cli, ["-t", str(folder), "run", "-o", str(tmp_path / "stats.json")]
            )

        assert result.exit_code == 0, result.output
        assert (folder / "logs-A.log").exists()

    def test_failed_upload_keeps_output(self, runner, processor, tmp_path):
        folder = tmp_path / "logs"
        output = tmp_path / "downloadStats.json"

        with patch("download_stats.main.httpx.post", RecordingPost(status_code=500)):
            result = runner.invoke(cli, ["-t", str(folder), "run", "-o", str(output)])

        assert isinstance(result.exception, StatsUploadError)
        assert output.exists()


class TestRecent:
    """Tests for the recent command."""

    def test_recent(self, runner, processor, tmp_path):
        output = tmp_path / "recent.json"

        result = runner.invoke(cli, ["-t", str(tmp_path / "logs"), "recent", "-o", str(output)])

        assert result.exit_code == 0, result.output
        processor.get_recent_downloads.assert_awaited_once_with(tmp_path / "logs" / "recent")
        assert json.loads(output.read_text())["startDate"] == "20130713"
