# SPDX-License-Identifier: MIT
"""Turn S3 server access logs into extension download statistics.

A log line looks like::

    04db613b... repository.example.io [19/Jul/2013:16:26:40 +0000] 192.150.22.5 - 5444C2FE39980E28
    REST.GET.OBJECT select-parent/select-parent-1.0.0.zip "GET /repository.example.io/select-parent/
    select-parent-1.0.0.zip HTTP/1.1" 200 - 56846 56846 566 268 "-" "-" -

(one line in the real file). Successful ``GET`` requests for
``<name>/<name>-<version>.zip`` count as one download of that version on the
day of the request.

Processing is incremental: the key of the newest log processed so far is kept
as a watermark object in the log bucket itself.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
import shutil
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import UTC, date, datetime, timedelta
from pathlib import Path
from typing import Any
from urllib.parse import unquote

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .config import StatsConfig

logger = logging.getLogger(__name__)

WATERMARK_KEY = "logfileProcessing/lastAccessedKey.json"

LOG_LINE_PATTERN = re.compile(
    r"(\S+) (\S+) (\S+ \+\S+\]) (\S+) (\S+) (\S+) (\S+) (\S+) "
    r'"(\S+) (\S+) (\S+)" (\S+) (\S+) (\S+) (\S+) (\S+) (\S+) (\S+) "(.*)" (\S+)'
)

TIMESTAMP_PATTERN = re.compile(
    r"(\d+)/(\w+)/(\d{4}):(\d{2}):(\d{2}):(\d{2})\s+(\+\d+)"
)

PACKAGE_KEY_PATTERN = re.compile(r"^(?P<name>[^/]+)/(?P=name)-(?P<version>.+)\.zip$")

# Log object keys start with the delivery date: <prefix>2013-08-05-16-26-40-5B5C...
LOG_KEY_DATE_PATTERN = re.compile(r"^(\d{4})-(\d{2})-(\d{2})")

MONTHS = {
    "Jan": 1, "Feb": 2, "Mar": 3, "Apr": 4, "May": 5, "Jun": 6,
    "Jul": 7, "Aug": 8, "Sep": 9, "Oct": 10, "Nov": 11, "Dec": 12,
}


class LogfileProcessorError(Exception):
    """Base class for log processing failures."""


class WatermarkReadError(LogfileProcessorError):
    """The last processed key could not be read."""


class WatermarkWriteError(LogfileProcessorError):
    """The last processed key could not be written."""


@dataclass(frozen=True)
class LogRecord:
    """One parsed access-log line."""

    bucket_owner: str
    bucket: str
    timestamp: str
    remote_ip: str
    requester: str
    request_id: str
    operation: str
    key: str
    method: str
    request_uri: str
    protocol: str
    status: str
    error_code: str
    bytes_sent: str
    object_size: str
    total_time: str
    turnaround_time: str
    referrer: str
    user_agent: str
    version_id: str

    @property
    def download_date(self) -> str:
        return format_download_date(self.timestamp)

    def package_version(self) -> tuple[str, str] | None:
        """``(name, version)`` if the key is a package artifact."""
        match = PACKAGE_KEY_PATTERN.match(unquote(self.key))
        if match is None:
            return None
        return match.group("name"), match.group("version")


def parse_log_line(line: str) -> LogRecord | None:
    """Parse one access-log line, or return None if it does not match."""
    match = LOG_LINE_PATTERN.search(line)
    if match is None:
        return None
    fields = list(match.groups())
    fields[17] = fields[17].strip('"')
    return LogRecord(*fields)


def format_download_date(timestamp: str) -> str:
    """Reduce a log timestamp to a ``YYYYMMDD`` key.

    The date is taken as written, without timezone conversion.

    Example:
        >>> format_download_date("[10/Apr/2013:18:28:11 +0000]")
        '20130410'
    """
    match = TIMESTAMP_PATTERN.search(timestamp)
    if match is None:
        return ""
    day, month_name, year = match.group(1), match.group(2), match.group(3)
    month = MONTHS.get(month_name)
    if month is None:
        return ""
    try:
        return date(int(year), month, int(day)).strftime("%Y%m%d")
    except ValueError:
        return ""


def _count_line(stats: dict, line: str) -> None:
    record = parse_log_line(line)
    if record is None or record.status != "200":
        return
    package = record.package_version()
    if package is None:
        return

    name, version = package
    downloads = stats.setdefault(name, {"downloads": {"versions": {}, "recent": {}}})["downloads"]
    downloads["versions"][version] = downloads["versions"].get(version, 0) + 1

    download_date = record.download_date
    if download_date:
        downloads["recent"][download_date] = downloads["recent"].get(download_date, 0) + 1


def extract_download_stats_from_lines(lines: Iterable[str], stats: dict | None = None) -> dict:
    """Aggregate download counts from access-log lines."""
    stats = {} if stats is None else stats
    for line in lines:
        _count_line(stats, line)
    return stats


def extract_download_stats(log_dir: str | Path) -> dict:
    """Aggregate download counts from every file in ``log_dir``.

    Returns:
        ``{name: {"downloads": {"versions": {version: n}, "recent": {YYYYMMDD: n}}}}``
    """
    stats: dict = {}
    for path in sorted(Path(log_dir).iterdir()):
        if not path.is_file():
            continue
        try:
            with open(path, encoding="utf-8", errors="replace") as f:
                extract_download_stats_from_lines(f, stats)
        except OSError as exc:
            logger.warning("Skipping unreadable logfile %s: %s", path, exc)
    return stats


def local_logfile_name(key: str) -> str:
    """Flat local file name for a log object key."""
    return key.replace("/", "-") + ".log"


def _is_missing(err: ClientError) -> bool:
    code = str(err.response.get("Error", {}).get("Code", ""))
    return code in {"NoSuchKey", "404", "NotFound"}


class LogfileProcessor:
    """Downloads access logs from the log bucket and tracks the watermark."""

    def __init__(self, config: StatsConfig, client: Any | None = None) -> None:
        self.config = config
        self.bucket = config.require_log_bucket()
        self._s3 = client if client is not None else boto3.client("s3", region_name=config.region)

    # ------------------------------------------------------------------
    # Watermark
    # ------------------------------------------------------------------

    def _read_watermark(self) -> bytes | None:
        try:
            resp = self._s3.get_object(Bucket=self.bucket, Key=WATERMARK_KEY)
            return resp["Body"].read()
        except ClientError as err:
            if _is_missing(err):
                return None
            raise WatermarkReadError(
                f"Error retrieving key for last accessed logfile entry: {err}"
            ) from err
        except BotoCoreError as err:
            raise WatermarkReadError(
                f"Error retrieving key for last accessed logfile entry: {err}"
            ) from err

    async def get_last_processed_key(self) -> str | None:
        """Key of the newest log processed so far, or None to process everything.

        Raises:
            WatermarkReadError: If the watermark exists but cannot be read
        """
        body = await asyncio.to_thread(self._read_watermark)
        if body is None:
            return None
        try:
            data = json.loads(body)
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise WatermarkReadError(f"Unreadable watermark {WATERMARK_KEY}: {exc}") from exc

        key = data.get("Key") if isinstance(data, dict) else None
        return key or None

    async def set_last_processed_key(self, key: str) -> str:
        """Persist ``key`` as the watermark.

        Raises:
            WatermarkWriteError: If the watermark cannot be written
        """
        body = json.dumps({"Key": key}).encode("utf-8")
        try:
            await asyncio.to_thread(
                self._s3.put_object,
                Bucket=self.bucket,
                Key=WATERMARK_KEY,
                ACL="public-read",
                ContentType="application/json",
                Body=body,
            )
        except (ClientError, BotoCoreError) as err:
            raise WatermarkWriteError(
                f"Error writing key for last accessed logfile entry: {err}"
            ) from err
        return key

    # ------------------------------------------------------------------
    # Downloads
    # ------------------------------------------------------------------

    def _copy_object(self, key: str, destination: Path) -> None:
        resp = self._s3.get_object(Bucket=self.bucket, Key=key)
        with open(destination, "wb") as out:
            shutil.copyfileobj(resp["Body"], out)

    async def _download_object(self, key: str, dest_dir: Path, limit: asyncio.Semaphore) -> None:
        async with limit:
            await asyncio.to_thread(self._copy_object, key, dest_dir / local_logfile_name(key))

    async def _download_listing(
        self,
        dest_dir: Path,
        start_after: str | None = None,
        key_filter: Callable[[str], bool] | None = None,
    ) -> str | None:
        """Download every listed log after ``start_after``, page by page.

        Returns the greatest key listed, or None if nothing was listed.
        """
        limit = asyncio.Semaphore(self.config.max_concurrent_downloads)
        params: dict[str, Any] = {"Bucket": self.bucket}
        if self.config.log_prefix:
            params["Prefix"] = self.config.log_prefix
        if start_after:
            params["StartAfter"] = start_after

        last_key = None
        downloaded = 0
        while True:
            page = await asyncio.to_thread(self._s3.list_objects_v2, **params)
            keys = [obj["Key"] for obj in page.get("Contents", []) if obj["Key"] != WATERMARK_KEY]
            selected = [key for key in keys if key_filter is None or key_filter(key)]

            results = await asyncio.gather(
                *(self._download_object(key, dest_dir, limit) for key in selected),
                return_exceptions=True,
            )
            for result in results:
                if isinstance(result, BaseException):
                    raise result

            downloaded += len(selected)
            if keys:
                page_last = max(keys)
                last_key = page_last if last_key is None else max(last_key, page_last)

            if not page.get("IsTruncated"):
                break
            params["ContinuationToken"] = page["NextContinuationToken"]

        logger.info("Downloaded %d logfile(s) to %s", downloaded, dest_dir)
        return last_key

    async def download_logfiles(self, dest_dir: str | Path) -> str | None:
        """Download every log newer than the watermark and advance it.

        Returns:
            The new watermark, or the previous one if there was nothing new

        Raises:
            WatermarkReadError, WatermarkWriteError: Watermark failures
            ClientError: Listing or downloading failed
        """
        dest_dir = Path(dest_dir)
        dest_dir.mkdir(parents=True, exist_ok=True)

        watermark = await self.get_last_processed_key()
        logger.debug("Downloading logfiles after %s", watermark or "the beginning")

        last_key = await self._download_listing(dest_dir, start_after=watermark)
        if last_key is None:
            logger.info("No new logfiles since %s", watermark)
            return watermark

        await self.set_last_processed_key(last_key)
        return last_key

    def log_key_date(self, key: str) -> date | None:
        """Delivery date encoded at the start of a log object key."""
        prefix = self.config.log_prefix
        if prefix and key.startswith(prefix):
            key = key[len(prefix):]
        match = LOG_KEY_DATE_PATTERN.match(key)
        if match is None:
            return None
        try:
            return date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
        except ValueError:
            return None

    async def get_recent_downloads(self, log_dir: str | Path, today: date | None = None) -> dict:
        """Download stats for the trailing window of days, ignoring the watermark.

        Logs left in ``log_dir`` by earlier runs are removed first. Day buckets
        outside the window (requests logged late, near midnight) are dropped.

        Returns:
            ``{"startDate", "endDate", "extensions": [{name: {"downloads": {"recent": {...}}}}]}``
            with dates as ``YYYYMMDD``
        """
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        for stale in log_dir.glob("*.log"):
            stale.unlink()

        end = today or datetime.now(UTC).date()
        start = end - timedelta(days=self.config.recent_days - 1)
        first_day, last_day = start.strftime("%Y%m%d"), end.strftime("%Y%m%d")

        def in_window(key: str) -> bool:
            key_date = self.log_key_date(key)
            return key_date is not None and start <= key_date <= end

        await self._download_listing(
            log_dir,
            start_after=f"{self.config.log_prefix}{start:%Y-%m-%d}",
            key_filter=in_window,
        )
        stats = await asyncio.to_thread(extract_download_stats, log_dir)

        extensions = []
        for name, data in sorted(stats.items()):
            recent = {
                day: count
                for day, count in data["downloads"]["recent"].items()
                if first_day <= day <= last_day
            }
            if recent:
                extensions.append({name: {"downloads": {"recent": recent}}})

        return {"startDate": first_day, "endDate": last_day, "extensions": extensions}
