"""A1 address helpers for the Google Sheets API."""

from __future__ import annotations

from typing import List

# Worksheet titles containing any of these must be quoted in A1 notation.
_QUOTE_TRIGGERS = (" ", "!", "'")


def column_letter(index: int) -> str:
    """Return the spreadsheet column letter for a 1-indexed column index."""

    if index < 1:
        raise ValueError("Column index must be >= 1")
    letters: List[str] = []
    while index:
        index, remainder = divmod(index - 1, 26)
        letters.append(chr(65 + remainder))
    return "".join(reversed(letters))


def cell_reference(row_index: int, column_index: int) -> str:
    """Return the A1 reference for zero-based ``row_index``/``column_index``."""

    if row_index < 0 or column_index < 0:
        raise ValueError("Row and column indexes must be >= 0")
    return f"{column_letter(column_index + 1)}{row_index + 1}"


def quote_worksheet_title(title: str) -> str:
    """Quote ``title`` for use as an A1 prefix when the API requires it."""

    if any(trigger in title for trigger in _QUOTE_TRIGGERS):
        escaped = title.replace("'", "''")
        return f"'{escaped}'"
    return title


def format_address(worksheet_title: str, row_index: int, column_index: int) -> str:
    """Return ``Sheet!A1`` style address for a zero-based cell position."""

    return f"{quote_worksheet_title(worksheet_title)}!{cell_reference(row_index, column_index)}"


__all__ = [
    "cell_reference",
    "column_letter",
    "format_address",
    "quote_worksheet_title",
]
