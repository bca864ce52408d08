"""Non-destructive merge of desired values into the current remote values."""

from __future__ import annotations

from typing import Any, List, NamedTuple, Sequence

from sheetfill.cell_values import is_blank

ValueGrid = List[List[Any]]


class MergeResult(NamedTuple):
    grid: ValueGrid
    wrote_anything: bool


def _existing_cell(values: Sequence[Sequence[Any]], row: int, column: int) -> Any:
    if row >= len(values):
        return None
    if column >= len(values[row]):
        return None
    return values[row][column]


def merge_values(existing: Sequence[Sequence[Any]], desired: Sequence[Sequence[Any]]) -> MergeResult:
    """Fill the blank cells of ``existing`` with ``desired``.

    The result has the shape of ``desired``.  Cells that already hold a value
    remotely keep that value; ``wrote_anything`` is true only when at least one
    non-blank desired value lands in a blank cell.  Missing rows or columns in
    ``existing`` count as blank.
    """

    merged: ValueGrid = []
    wrote = False
    for r, row in enumerate(desired):
        merged_row: List[Any] = []
        for c, value in enumerate(row):
            current = _existing_cell(existing or [], r, c)
            if not is_blank(current):
                merged_row.append(current)
                continue
            merged_row.append(value)
            if not is_blank(value):
                wrote = True
        merged.append(merged_row)
    return MergeResult(merged, wrote)


__all__ = ["MergeResult", "ValueGrid", "merge_values"]
