# SPDX-License-Identifier: MIT
"""Extension download statistics from object-storage access logs."""

__version__ = "0.1.0"

from .config import ConfigError, StatsConfig
from .logfile import (
    LOG_LINE_PATTERN,
    TIMESTAMP_PATTERN,
    WATERMARK_KEY,
    LogfileProcessor,
    LogfileProcessorError,
    LogRecord,
    WatermarkReadError,
    WatermarkWriteError,
    extract_download_stats,
    extract_download_stats_from_lines,
    format_download_date,
    local_logfile_name,
    parse_log_line,
)

__all__ = [
    # Configuration
    "ConfigError",
    "StatsConfig",
    # Log processing
    "LOG_LINE_PATTERN",
    "TIMESTAMP_PATTERN",
    "WATERMARK_KEY",
    "LogfileProcessor",
    "LogRecord",
    "extract_download_stats",
    "extract_download_stats_from_lines",
    "format_download_date",
    "local_logfile_name",
    "parse_log_line",
    # Errors
    "LogfileProcessorError",
    "WatermarkReadError",
    "WatermarkWriteError",
]
