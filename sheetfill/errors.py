"""Exception hierarchy shared by every sheetfill component."""
from __future__ import annotations


class SheetFillError(Exception):
    """Base error for all failures that abort an update run."""


class ConfigError(SheetFillError):
    """Raised when the configuration is incomplete or points at missing files."""


class WorkbookReadError(SheetFillError, OSError):
    """Raised when the lookup workbook or one of its worksheets cannot be read."""


class NotFoundError(SheetFillError):
    """Raised when the workbook lookup produced no usable target."""


class WorksheetNotFoundError(NotFoundError):
    """Raised when the worksheet filter names a worksheet that does not exist."""


class LookupValueNotFoundError(NotFoundError):
    """Raised when the lookup value does not occur in any scanned worksheet."""


class RemoteError(SheetFillError, RuntimeError):
    """Raised for any failure while talking to the remote spreadsheet service."""


__all__ = [
    "ConfigError",
    "LookupValueNotFoundError",
    "NotFoundError",
    "RemoteError",
    "SheetFillError",
    "WorkbookReadError",
    "WorksheetNotFoundError",
]
