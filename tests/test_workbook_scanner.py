from __future__ import annotations

import sys
from pathlib import Path
from typing import Dict, List

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import pytest
from openpyxl import Workbook

from sheetfill.errors import LookupValueNotFoundError, NotFoundError, WorkbookReadError, WorksheetNotFoundError
from sheetfill.workbook_scanner import WorkbookMatch, find_matches, scan, select_worksheets


def _write_workbook(path: Path, sheets: Dict[str, Dict[str, object]]) -> Path:
    workbook = Workbook()
    workbook.remove(workbook.active)
    for title, cells in sheets.items():
        worksheet = workbook.create_sheet(title)
        for reference, value in cells.items():
            worksheet[reference] = value
    workbook.save(path)
    return path


def _addresses(matches: List[WorkbookMatch]) -> List[str]:
    return [match.address() for match in matches]


def test_scan_collects_every_match_across_worksheets(tmp_path: Path) -> None:
    path = _write_workbook(
        tmp_path / "lookup.xlsx",
        {
            "Sheet1": {"A1": "Y", "B3": " Y ", "C3": "y"},
            "Sheet2": {"C5": "Y", "A1": "other"},
        },
    )

    matches = scan(path, "", "Y")

    assert _addresses(matches) == ["Sheet1!A1", "Sheet1!B3", "Sheet2!C5"]
    assert matches[1] == WorkbookMatch("Sheet1", 2, 1)


def test_scan_orders_by_worksheet_then_row_then_column(tmp_path: Path) -> None:
    path = _write_workbook(
        tmp_path / "lookup.xlsx",
        {
            "Later": {"D1": "X", "A2": "X"},
            "First Tab": {"B1": "X"},
        },
    )

    assert _addresses(scan(path, None, "X")) == ["Later!D1", "Later!A2", "'First Tab'!B1"]


def test_scan_limits_lookup_to_filtered_worksheet(tmp_path: Path) -> None:
    path = _write_workbook(
        tmp_path / "lookup.xlsx",
        {"Sheet1": {"A1": "X"}, "Sheet2": {"B2": "X"}},
    )

    assert _addresses(scan(path, "Sheet2", "X")) == ["Sheet2!B2"]


def test_scan_unknown_worksheet_filter_is_not_found(tmp_path: Path) -> None:
    path = _write_workbook(tmp_path / "lookup.xlsx", {"Sheet1": {"A1": "X"}})

    with pytest.raises(WorksheetNotFoundError) as excinfo:
        scan(path, "Missing", "X")

    assert "Missing" in str(excinfo.value)


def test_scan_missing_label_is_not_found(tmp_path: Path) -> None:
    path = _write_workbook(tmp_path / "lookup.xlsx", {"Sheet1": {"A1": "X"}})

    with pytest.raises(LookupValueNotFoundError) as excinfo:
        scan(path, "", "NOPE")

    assert isinstance(excinfo.value, NotFoundError)
    assert "NOPE" in str(excinfo.value)


def test_scan_matches_numbers_by_printed_value(tmp_path: Path) -> None:
    path = _write_workbook(tmp_path / "lookup.xlsx", {"Sheet1": {"C2": 1042, "D2": 1042.0}})

    assert _addresses(scan(path, "", "1042")) == ["Sheet1!C2", "Sheet1!D2"]


def test_scan_unreadable_workbook_raises_read_error(tmp_path: Path) -> None:
    broken = tmp_path / "broken.xlsx"
    broken.write_text("not a zip archive", encoding="utf-8")

    with pytest.raises(WorkbookReadError) as excinfo:
        scan(broken, "", "X")

    assert str(broken) in str(excinfo.value)
    assert isinstance(excinfo.value, OSError)


def test_scan_missing_file_raises_read_error(tmp_path: Path) -> None:
    with pytest.raises(WorkbookReadError):
        scan(tmp_path / "absent.xlsx", "", "X")


def test_select_worksheets_handles_empty_and_unknown_filters() -> None:
    assert select_worksheets(["A", "B"], "") == ["A", "B"]
    assert select_worksheets(["A", "B"], "B") == ["B"]
    assert select_worksheets(["A", "B"], "C") == []


def test_find_matches_ignores_blank_cells() -> None:
    rows = [[None, "  Lunch  "], ["lunch", None, "Lunch"]]

    matches = find_matches(rows, "Rota", "Lunch")

    assert matches == [WorkbookMatch("Rota", 0, 1), WorkbookMatch("Rota", 1, 2)]
