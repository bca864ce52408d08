from __future__ import annotations

import io
import json
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import httplib2
import pytest
from openpyxl import Workbook

from sheetfill import cli, sync
from sheetfill.sheets_client import GoogleSheetsClient, SheetsCredentialsError
from sheets_fakes import FakeSheetsService


@pytest.fixture(autouse=True)
def _quiet_logging(monkeypatch):
    monkeypatch.setattr(cli, "configure_logging", lambda *args, **kwargs: None)


@pytest.fixture
def workbook(tmp_path: Path) -> Path:
    path = tmp_path / "Schedule.xlsx"
    book = Workbook()
    book.active.title = "Sheet1"
    book.active["B2"] = "X"
    book.save(path)
    return path


@pytest.fixture
def fake_service(monkeypatch) -> FakeSheetsService:
    service = FakeSheetsService()
    monkeypatch.setattr(
        sync,
        "default_client_factory",
        lambda config: GoogleSheetsClient(config.spreadsheet_id, service=service),
    )
    return service


def _write_config(path: Path, **values: str) -> Path:
    path.write_text(json.dumps(values), encoding="utf-8")
    return path


def test_run_writes_blank_cells_and_prints_summary(tmp_path: Path, workbook: Path, fake_service, capsys) -> None:
    config = _write_config(
        tmp_path / "config.json", spreadsheet_id="sheet-id", config_xlsx=str(workbook), lookup_value="X"
    )

    exit_code = cli.main(["--config", str(config), "run"])

    out = capsys.readouterr().out
    assert exit_code == 0
    assert "Updated 1 cell(s) in 1 row(s)" in out
    assert "Sheet1!B2" in out
    assert fake_service.cells["Sheet1!B2"] == [["X"]]


def test_run_reports_skip_with_zero_exit(tmp_path: Path, workbook: Path, fake_service, capsys) -> None:
    fake_service.cells["Sheet1!B2"] = [["existing"]]
    config = _write_config(
        tmp_path / "config.json", spreadsheet_id="sheet-id", config_xlsx=str(workbook), lookup_value="X"
    )

    exit_code = cli.main(["--config", str(config), "run"])

    assert exit_code == 0
    assert "No updates performed: all target cells already contain data" in capsys.readouterr().out
    assert fake_service.batch_bodies == []


def test_run_flags_override_config_file(tmp_path: Path, workbook: Path, fake_service, capsys) -> None:
    config = _write_config(tmp_path / "config.json", spreadsheet_id="sheet-id", lookup_value="unused")

    exit_code = cli.main(
        ["--config", str(config), "run", "--workbook", str(workbook), "--lookup", "X", "--sheet", "Sheet1"]
    )

    assert exit_code == 0
    assert fake_service.get_calls == ["Sheet1!B2"]


def test_run_config_error_exits_non_zero(tmp_path: Path, workbook: Path, capsys) -> None:
    config = _write_config(tmp_path / "config.json", config_xlsx=str(workbook), lookup_value="X")

    exit_code = cli.main(["--config", str(config), "run"])

    assert exit_code == 1
    assert "Error: spreadsheet_id is required" in capsys.readouterr().err


def test_run_lookup_not_found_exits_non_zero(tmp_path: Path, workbook: Path, fake_service, capsys) -> None:
    config = _write_config(
        tmp_path / "config.json", spreadsheet_id="sheet-id", config_xlsx=str(workbook), lookup_value="NOPE"
    )

    assert cli.main(["--config", str(config), "run"]) == 1
    assert "'NOPE' not found" in capsys.readouterr().err


def test_run_credentials_failure_exits_non_zero(tmp_path: Path, workbook: Path, monkeypatch, capsys) -> None:
    def failing_factory(config):
        raise SheetsCredentialsError("Could not automatically determine credentials.")

    monkeypatch.setattr(sync, "default_client_factory", failing_factory)
    config = _write_config(
        tmp_path / "config.json", spreadsheet_id="sheet-id", config_xlsx=str(workbook), lookup_value="X"
    )

    assert cli.main(["--config", str(config), "run"]) == 1
    assert "initialise Sheets service" in capsys.readouterr().err


def test_run_without_config_file_prompts(tmp_path: Path, workbook: Path, fake_service, monkeypatch, capsys) -> None:
    answers = io.StringIO(f"sheet-id\n{workbook}\n\nX\n")
    monkeypatch.setattr(sys, "stdin", answers)

    exit_code = cli.main(["--config", str(tmp_path / "absent.json"), "run"])

    out = capsys.readouterr().out
    assert exit_code == 0
    assert "switching to interactive setup" in out
    assert fake_service.cells["Sheet1!B2"] == [["X"]]


def test_configure_non_interactive_copies_workbook(tmp_path: Path, workbook: Path, capsys) -> None:
    config_path = tmp_path / "cfg" / "config.json"
    destination = tmp_path / "cfg" / "Schedule.xlsx"

    exit_code = cli.main(
        [
            "--config",
            str(config_path),
            "configure",
            "--non-interactive",
            "--spreadsheet",
            "sheet-id",
            "--lookup",
            " X ",
            "--sheet",
            "Sheet1",
            "--workbook-src",
            str(workbook),
            "--workbook-dest",
            str(destination),
        ]
    )

    assert exit_code == 0
    assert destination.read_bytes() == workbook.read_bytes()
    saved = json.loads(config_path.read_text(encoding="utf-8"))
    assert saved["spreadsheet_id"] == "sheet-id"
    assert saved["lookup_value"] == "X"
    assert saved["config_sheet"] == "Sheet1"
    assert saved["config_xlsx"] == str(destination)
    assert "Configuration updated" in capsys.readouterr().out


def test_configure_non_interactive_requires_lookup(tmp_path: Path, capsys) -> None:
    exit_code = cli.main(
        ["--config", str(tmp_path / "config.json"), "configure", "--non-interactive", "--spreadsheet", "sheet-id"]
    )

    assert exit_code == 1
    assert "provide --spreadsheet and --lookup" in capsys.readouterr().err
    assert not (tmp_path / "config.json").exists()


def test_configure_missing_workbook_source_fails(tmp_path: Path, capsys) -> None:
    exit_code = cli.main(
        [
            "--config",
            str(tmp_path / "config.json"),
            "configure",
            "--non-interactive",
            "--spreadsheet",
            "sheet-id",
            "--lookup",
            "X",
            "--workbook-src",
            str(tmp_path / "absent.xlsx"),
        ]
    )

    assert exit_code == 1
    assert "absent.xlsx" in capsys.readouterr().err


def test_configure_interactive_keeps_existing_defaults(tmp_path: Path, workbook: Path, monkeypatch) -> None:
    config_path = _write_config(
        tmp_path / "config.json",
        spreadsheet_id="old-id",
        config_xlsx=str(workbook),
        config_sheet="Sheet1",
        lookup_value="X",
    )
    monkeypatch.setattr(sys, "stdin", io.StringIO("new-id\n\n\n\n\n"))

    assert cli.main(["--config", str(config_path), "configure"]) == 0

    saved = json.loads(config_path.read_text(encoding="utf-8"))
    assert saved["spreadsheet_id"] == "new-id"
    assert saved["config_sheet"] == "Sheet1"
    assert saved["lookup_value"] == "X"
    assert saved["config_xlsx"] == str(workbook)


def test_configure_interactive_dash_clears_sheet_filter(tmp_path: Path, workbook: Path, monkeypatch) -> None:
    config_path = _write_config(
        tmp_path / "config.json",
        spreadsheet_id="sheet-id",
        config_xlsx=str(workbook),
        config_sheet="Sheet1",
        lookup_value="X",
    )
    monkeypatch.setattr(sys, "stdin", io.StringIO("\n-\n\n\n\n"))

    assert cli.main(["--config", str(config_path), "configure"]) == 0

    saved = json.loads(config_path.read_text(encoding="utf-8"))
    assert saved["config_sheet"] == ""
    assert saved["spreadsheet_id"] == "sheet-id"


def test_run_network_failure_exits_non_zero(tmp_path: Path, workbook: Path, fake_service, capsys) -> None:
    fake_service.get_error = httplib2.ServerNotFoundError("Unable to find the server")
    config = _write_config(
        tmp_path / "config.json", spreadsheet_id="sheet-id", config_xlsx=str(workbook), lookup_value="X"
    )

    assert cli.main(["--config", str(config), "run"]) == 1
    err = capsys.readouterr().err
    assert "Error: precondition failed for Sheet1!B2" in err
    assert "Unable to find the server" in err
    assert fake_service.batch_bodies == []


def test_run_unreadable_config_exits_non_zero(tmp_path: Path, capsys) -> None:
    config_dir = tmp_path / "config.json"
    config_dir.mkdir()

    assert cli.main(["--config", str(config_dir), "run"]) == 1
    assert f"Error: read {config_dir}:" in capsys.readouterr().err


def test_unknown_log_timezone_is_usage_error(tmp_path: Path, capsys) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--log-timezone", "Mars/Olympus_Mons", "--config", str(tmp_path / "config.json"), "run"])

    assert excinfo.value.code == 2
    assert "unknown time zone 'Mars/Olympus_Mons'" in capsys.readouterr().err
