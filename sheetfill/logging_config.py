"""Application-wide logging configuration utilities."""
from __future__ import annotations

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo

DEFAULT_TIMEZONE = "Asia/Bangkok"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


class ZonedFormatter(logging.Formatter):
    """Formatter rendering ``asctime`` as RFC 3339 in a fixed time zone."""

    def __init__(self, fmt: str = LOG_FORMAT, *, timezone_name: str = DEFAULT_TIMEZONE) -> None:
        super().__init__(fmt)
        self.zone = ZoneInfo(timezone_name)

    def formatTime(self, record: logging.LogRecord, datefmt: Optional[str] = None) -> str:  # noqa: N802 - logging API
        moment = datetime.fromtimestamp(record.created, tz=self.zone)
        if datefmt:
            return moment.strftime(datefmt)
        return moment.replace(microsecond=0).isoformat()


def _has_handler(logger: logging.Logger, marker: str) -> bool:
    return any(getattr(handler, "_sheetfill_marker", None) == marker for handler in logger.handlers)


def configure_logging(
    level: int = logging.INFO,
    *,
    log_path: Optional[Path] = None,
    timezone_name: str = DEFAULT_TIMEZONE,
) -> logging.Logger:
    """Configure the root logger for console and optional file output.

    Parameters
    ----------
    level:
        The minimum logging level for the root logger.
    log_path:
        When given, log records are also appended to this UTF-8 file.
    timezone_name:
        IANA zone used for timestamps.

    Calling the function again only adjusts the level; handlers are never
    duplicated.
    """

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    formatter = ZonedFormatter(timezone_name=timezone_name)

    if not _has_handler(root_logger, "console"):
        console = logging.StreamHandler(sys.stderr)
        console._sheetfill_marker = "console"  # type: ignore[attr-defined]
        console.setFormatter(formatter)
        root_logger.addHandler(console)

    if log_path is not None:
        marker = f"file:{Path(log_path).resolve()}"
        if not _has_handler(root_logger, marker):
            Path(log_path).parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_path, encoding="utf-8")
            file_handler._sheetfill_marker = marker  # type: ignore[attr-defined]
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)

    root_logger.debug("Logging configured at level %s", logging.getLevelName(level))
    return root_logger


__all__ = ["DEFAULT_TIMEZONE", "LOG_FORMAT", "ZonedFormatter", "configure_logging"]
