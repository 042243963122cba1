# SPDX-License-Identifier: MIT
"""CLI entry point for the download-stats command."""

from __future__ import annotations

import asyncio
import json
import logging
import shutil
import sys
import tempfile
from pathlib import Path
from typing import Optional

import click
import httpx

from .config import ConfigError, StatsConfig
from .logfile import LogfileProcessor, LogfileProcessorError, extract_download_stats

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

DOWNLOAD_STATS_FILENAME = "downloadStats.json"
RECENT_DOWNLOAD_STATS_FILENAME = "recentDownloadStats.json"

logger = logging.getLogger(__name__)


class StatsUploadError(Exception):
    """Raised when the registry does not accept a statistics upload."""

    pass


class Context:
    """CLI context object passed to commands."""

    def __init__(self) -> None:
        self.config: Optional[StatsConfig] = None
        self.verbose: bool = False
        self.temp_folder: Optional[Path] = None

    def load_config(self) -> StatsConfig:
        """Load configuration, caching the result."""
        if self.config is None:
            self.config = StatsConfig.from_env()
        return self.config

    def get_temp_folder(self) -> Path:
        """Create (if needed) and return the folder logs are downloaded to."""
        if self.temp_folder is None:
            configured = self.load_config().temp_folder
            if configured:
                self.temp_folder = Path(configured)
            else:
                self.temp_folder = Path(tempfile.mkdtemp(prefix="download-stats-"))
                logger.info("Using temp directory: %s", self.temp_folder)
        self.temp_folder.mkdir(parents=True, exist_ok=True)
        return self.temp_folder


pass_context = click.make_pass_decorator(Context, ensure=True)


def echo_error(message: str) -> None:
    """Print an error message to stderr."""
    click.secho(f"Error: {message}", fg="red", err=True)


def echo_success(message: str) -> None:
    """Print a success message."""
    click.secho(message, fg="green")


def post_stats(registry_url: str, data_file: Path) -> httpx.Response:
    """Upload a statistics file to the registry's stats endpoint.

    Raises:
        StatsUploadError: If the registry does not answer 202
        httpx.HTTPError: If the request itself fails
    """
    url = f"{registry_url.rstrip('/')}/stats"
    with open(data_file, "rb") as f:
        response = httpx.post(
            url,
            files={"file": (data_file.name, f, "application/json")},
            timeout=60.0,
        )

    if response.status_code != 202:
        raise StatsUploadError(
            f"Registry at {url} rejected the statistics ({response.status_code}): {response.text}"
        )
    return response


def write_json(path: Path, data: dict) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


@click.group(invoke_without_command=True)
@click.version_option(package_name="extension-registry")
@click.option(
    "-v",
    "--verbose",
    is_flag=True,
    help="Enable verbose output.",
)
@click.option(
    "-t",
    "--temp-folder",
    type=click.Path(file_okay=False, path_type=Path),
    help="Folder for downloaded logfiles (makes it easier to inspect them).",
)
@pass_context
@click.pass_context
def cli(click_ctx: click.Context, ctx: Context, verbose: bool, temp_folder: Optional[Path]) -> None:
    """Extension download statistics.

    Downloads new access logs from the log bucket, counts extension
    downloads and posts them to the local registry. Without a command, runs
    the whole pipeline.

    \b
    Examples:
        download-stats
        download-stats --temp-folder ./logs download
        download-stats --temp-folder ./logs extract
        download-stats update downloadStats.json
    """
    ctx.verbose = verbose
    ctx.temp_folder = temp_folder
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO, format=LOG_FORMAT)

    if click_ctx.invoked_subcommand is None:
        click_ctx.invoke(run)


@cli.command()
@pass_context
def download(ctx: Context) -> None:
    """Download new logfiles from the log bucket."""
    folder = ctx.get_temp_folder()
    processor = LogfileProcessor(ctx.load_config())
    last_key = asyncio.run(processor.download_logfiles(folder))
    echo_success(f"Logfiles downloaded to {folder} (last key: {last_key or 'none'})")


@cli.command()
@click.option(
    "-o",
    "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    default=DOWNLOAD_STATS_FILENAME,
    show_default=True,
    help="Where to write the statistics.",
)
@pass_context
def extract(ctx: Context, output: Path) -> None:
    """Count extension downloads in the downloaded logfiles."""
    folder = ctx.get_temp_folder()
    stats = extract_download_stats(folder)
    write_json(output, stats)
    echo_success(f"Download statistics for {len(stats)} extension(s) written to {output}")


@cli.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@pass_context
def update(ctx: Context, path: Path) -> None:
    """Post the statistics in PATH to the registry."""
    post_stats(ctx.load_config().registry_url, path)
    echo_success("Download statistics uploaded")


@cli.command()
@click.option(
    "-o",
    "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    default=RECENT_DOWNLOAD_STATS_FILENAME,
    show_default=True,
    help="Where to write the recent statistics.",
)
@pass_context
def recent(ctx: Context, output: Path) -> None:
    """Count downloads over the recent window, regardless of the watermark."""
    folder = ctx.get_temp_folder() / "recent"
    processor = LogfileProcessor(ctx.load_config())
    document = asyncio.run(processor.get_recent_downloads(folder))
    write_json(output, document)
    echo_success(
        f"Recent downloads {document['startDate']}-{document['endDate']} written to {output}"
    )


@cli.command()
@click.option(
    "-o",
    "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    default=DOWNLOAD_STATS_FILENAME,
    show_default=True,
    help="Intermediate statistics file, removed after upload.",
)
@pass_context
def run(ctx: Context, output: Path) -> None:
    """Download, extract and upload in one go."""
    config = ctx.load_config()
    folder = ctx.get_temp_folder()

    processor = LogfileProcessor(config)
    asyncio.run(processor.download_logfiles(folder))

    stats = extract_download_stats(folder)
    write_json(output, stats)
    post_stats(config.registry_url, output)

    output.unlink()
    if not config.keep_temp_folder:
        shutil.rmtree(folder, ignore_errors=True)
    echo_success(f"Download statistics for {len(stats)} extension(s) uploaded")


def main() -> None:
    """Main entry point for the CLI."""
    try:
        cli()
    except ConfigError as e:
        echo_error(str(e))
        sys.exit(1)
    except LogfileProcessorError as e:
        echo_error(str(e))
        sys.exit(1)
    except (StatsUploadError, httpx.HTTPError) as e:
        echo_error(f"Upload failed: {e}")
        sys.exit(1)
    except Exception as e:
        echo_error(f"Unexpected error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
