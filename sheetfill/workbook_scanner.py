"""Locate every cell of a local workbook that holds the lookup value.

The workbook acts as a lookup table: wherever the (trimmed) lookup value is
written, the same cell of the remote spreadsheet is a write target.  Every
match is collected, in worksheet order, then row order, then column order.
"""

from __future__ import annotations

import logging
import warnings
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator, List, Optional, Sequence

from openpyxl import load_workbook

from sheetfill.cell_values import comparable_text
from sheetfill.errors import LookupValueNotFoundError, WorkbookReadError, WorksheetNotFoundError
from sheetfill.ranges import format_address

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WorkbookMatch:
    """Zero-based position of a cell holding the lookup value."""

    worksheet_name: str
    row_index: int
    column_index: int

    def address(self) -> str:
        return format_address(self.worksheet_name, self.row_index, self.column_index)


@contextmanager
def open_workbook(path: Path) -> Iterator[Any]:
    """Open ``path`` read-only with openpyxl and make sure it is closed."""

    try:
        with warnings.catch_warnings():
            warnings.filterwarnings(
                "ignore",
                message="Unknown extension is not supported and will be removed",
                category=UserWarning,
                module="openpyxl",
            )
            warnings.filterwarnings(
                "ignore",
                message="Data Validation extension is not supported and will be removed",
                category=UserWarning,
                module="openpyxl",
            )
            workbook = load_workbook(path, read_only=True, data_only=True)
    except Exception as exc:
        raise WorkbookReadError(f"open config workbook {path}: {exc}") from exc
    try:
        yield workbook
    finally:
        workbook.close()


def list_worksheets(workbook: Any) -> List[str]:
    return list(workbook.sheetnames)


def read_rows(workbook: Any, worksheet_name: str) -> List[List[Any]]:
    """Return the raw cell values of ``worksheet_name`` row by row."""

    try:
        worksheet = workbook[worksheet_name]
        return [list(row) for row in worksheet.iter_rows(values_only=True)]
    except Exception as exc:
        raise WorkbookReadError(f"read sheet {worksheet_name}: {exc}") from exc


def select_worksheets(available: Sequence[str], worksheet_filter: Optional[str]) -> List[str]:
    """Return the worksheets to scan; an empty filter selects all of them."""

    if not worksheet_filter:
        return list(available)
    if worksheet_filter in available:
        return [worksheet_filter]
    return []


def find_matches(rows: Sequence[Sequence[Any]], worksheet_name: str, label: str) -> List[WorkbookMatch]:
    want = label.strip()
    matches: List[WorkbookMatch] = []
    for row_index, row in enumerate(rows):
        for column_index, cell in enumerate(row):
            if comparable_text(cell) != want:
                continue
            matches.append(WorkbookMatch(worksheet_name, row_index, column_index))
    return matches


def scan(workbook_path: Path, worksheet_filter: Optional[str], label: str) -> List[WorkbookMatch]:
    """Return every cell of ``workbook_path`` whose trimmed text equals ``label``.

    Raises :class:`WorksheetNotFoundError` when a non-empty ``worksheet_filter``
    matches no worksheet, :class:`LookupValueNotFoundError` when ``label``
    occurs nowhere and :class:`WorkbookReadError` when the file cannot be read.
    """

    path = Path(workbook_path)
    with open_workbook(path) as workbook:
        worksheets = select_worksheets(list_worksheets(workbook), worksheet_filter)
        if worksheet_filter and not worksheets:
            raise WorksheetNotFoundError(f"sheet {worksheet_filter!r} not found in {path}")

        matches: List[WorkbookMatch] = []
        for worksheet_name in worksheets:
            found = find_matches(read_rows(workbook, worksheet_name), worksheet_name, label)
            logger.debug("Worksheet %s: %d match(es) for %r", worksheet_name, len(found), label)
            matches.extend(found)

    if not matches:
        raise LookupValueNotFoundError(f"value {label!r} not found in {path}")
    logger.info("Found %d cell(s) holding %r in %s", len(matches), label, path)
    return matches


__all__ = [
    "WorkbookMatch",
    "find_matches",
    "list_worksheets",
    "open_workbook",
    "read_rows",
    "scan",
    "select_worksheets",
]
