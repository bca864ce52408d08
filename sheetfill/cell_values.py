"""Tagged cell values with a single comparable text rendering.

Cells arrive from two very different places: openpyxl hands back native
Python objects (``int``, ``float``, ``bool``, ``datetime`` …) while the Sheets
API returns formatted strings.  Both sides are classified into a
:class:`CellValue` so that the workbook lookup and the merge step agree on
what a cell "says" and on when a cell counts as blank.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any


class CellKind(Enum):
    TEXT = "TEXT"
    NUMBER = "NUMBER"
    BOOLEAN = "BOOLEAN"
    BLANK = "BLANK"


def _render_number(value: Any) -> str:
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return repr(value)
    if isinstance(value, Decimal):
        if value == value.to_integral_value():
            return str(value.quantize(Decimal(1)))
        return str(value.normalize())
    return str(value)


def _render_temporal(value: Any) -> str:
    if isinstance(value, datetime):
        if value.time() == time(0, 0):
            return value.date().isoformat()
        return value.isoformat(sep=" ")
    return value.isoformat()


@dataclass(frozen=True)
class CellValue:
    """A classified spreadsheet value."""

    kind: CellKind
    raw: Any = None

    @classmethod
    def from_raw(cls, value: Any) -> "CellValue":
        if isinstance(value, CellValue):
            return value
        if value is None:
            return cls(CellKind.BLANK)
        # bool must be checked before int, it is an int subclass.
        if isinstance(value, bool):
            return cls(CellKind.BOOLEAN, value)
        if isinstance(value, (int, float, Decimal)):
            return cls(CellKind.NUMBER, value)
        if isinstance(value, (datetime, date, time)):
            return cls(CellKind.TEXT, _render_temporal(value))
        text = str(value)
        if text == "":
            return cls(CellKind.BLANK)
        return cls(CellKind.TEXT, text)

    def text(self) -> str:
        """Return the printed representation used for every comparison."""

        if self.kind is CellKind.BLANK:
            return ""
        if self.kind is CellKind.BOOLEAN:
            return "TRUE" if self.raw else "FALSE"
        if self.kind is CellKind.NUMBER:
            return _render_number(self.raw)
        return str(self.raw)

    def is_blank(self) -> bool:
        return self.text().strip() == ""


def comparable_text(value: Any) -> str:
    """Return the trimmed comparable text for an arbitrary cell value."""

    return CellValue.from_raw(value).text().strip()


def is_blank(value: Any) -> bool:
    return CellValue.from_raw(value).is_blank()


__all__ = ["CellKind", "CellValue", "comparable_text", "is_blank"]
