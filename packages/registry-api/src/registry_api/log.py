# SPDX-License-Identifier: MIT
"""Process-wide logging setup."""

from __future__ import annotations

import logging
import sys
from types import TracebackType

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

logger = logging.getLogger("registry_api")


def configure_logging(level: str | int = "info") -> None:
    """Configure root logging and align uvicorn's loggers with it."""
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(level=level, format=LOG_FORMAT)
    for logger_name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logging.getLogger(logger_name).setLevel(level)


def _log_and_exit(
    exc_type: type[BaseException],
    exc: BaseException,
    tb: TracebackType | None,
) -> None:
    if issubclass(exc_type, KeyboardInterrupt):
        sys.__excepthook__(exc_type, exc, tb)
        return
    # The interpreter exits with status 1 after this returns; restarts belong
    # to the process supervisor
    logger.critical("Uncaught exception", exc_info=(exc_type, exc, tb))


def install_excepthook() -> None:
    """Log uncaught exceptions through the registry logger before the process exits."""
    sys.excepthook = _log_and_exit
