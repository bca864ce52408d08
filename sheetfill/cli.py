"""Command line interface for sheetfill."""

from __future__ import annotations

import argparse
import logging
import shutil
import sys
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sheetfill import __version__
from sheetfill.errors import ConfigError, SheetFillError
from sheetfill.logging_config import DEFAULT_TIMEZONE, configure_logging
from sheetfill.settings import (
    DEFAULT_CONFIG_PATH,
    DEFAULT_WORKBOOK,
    Prompter,
    UpdateSettings,
    load_settings,
    prompt_settings,
    save_settings,
)
from sheetfill.sync import RunSummary, SheetUpdater

logger = logging.getLogger(__name__)

CLEAR_FILTER = "-"


def _timezone(name: str) -> str:
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        raise argparse.ArgumentTypeError(f"unknown time zone {name!r}") from None
    return name


def _prompter() -> Prompter:
    return Prompter(sys.stdin.readline, sys.stdout)


def _load_or_prompt(path: str, prompter: Prompter) -> UpdateSettings:
    try:
        return load_settings(path)
    except FileNotFoundError:
        prompter.say(f"{path} not found; switching to interactive setup.")
        prompter.say()
        return prompt_settings(prompter)


def _print_summary(summary: RunSummary) -> None:
    if summary.skipped:
        print(f"No updates performed: {summary.skipped_reason}")
        return
    print(f"Updated {summary.total_cells_written} cell(s) in {summary.total_rows_written} row(s):")
    for address in summary.addresses_written:
        print(f"  {address}")


def command_run(args: argparse.Namespace) -> int:
    try:
        settings = _load_or_prompt(args.config, _prompter())
        settings = settings.with_overrides(
            spreadsheet_id=args.spreadsheet,
            worksheet_filter=args.sheet,
            lookup_value=args.lookup,
            workbook_path=args.workbook,
            credential_path=args.credentials,
        )
        config = settings.validate()
        summary = SheetUpdater(config).run()
    except SheetFillError as exc:
        logger.error("update failed: %s", exc)
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    _print_summary(summary)
    return 0


def _copy_workbook(source: str, destination: str) -> None:
    src = Path(source)
    dest = Path(destination)
    if not src.is_file():
        raise ConfigError(f"workbook source {source} not found")
    if dest.exists() and src.resolve() == dest.resolve():
        return
    dest.parent.mkdir(parents=True, exist_ok=True)
    shutil.copy2(src, dest)
    logger.info("Copied workbook %s -> %s", src, dest)


def _configure_non_interactive(args: argparse.Namespace, existing: UpdateSettings) -> tuple[UpdateSettings, str]:
    spreadsheet = (args.spreadsheet if args.spreadsheet is not None else existing.spreadsheet_id).strip()
    lookup = (args.lookup if args.lookup is not None else existing.lookup_value).strip()
    if not spreadsheet or not lookup:
        raise ConfigError("provide --spreadsheet and --lookup")
    destination = (args.workbook_dest or existing.workbook_path or DEFAULT_WORKBOOK).strip()
    settings = existing.with_overrides(
        spreadsheet_id=spreadsheet,
        lookup_value=lookup,
        worksheet_filter=args.sheet.strip() if args.sheet is not None else None,
        workbook_path=destination,
    )
    return settings, (args.workbook_src or "").strip()


def _configure_interactive(existing: UpdateSettings, prompter: Prompter) -> tuple[UpdateSettings, str]:
    prompter.say("Press Enter to reuse the current values.")
    prompter.say()
    spreadsheet = prompter.with_default("Google Spreadsheet ID", existing.spreadsheet_id)
    worksheet_filter = prompter.with_default("Sheet filter ('-' for all sheets)", existing.worksheet_filter)
    if worksheet_filter == CLEAR_FILTER:
        worksheet_filter = ""
    lookup = prompter.with_default("Lookup value to search for", existing.lookup_value)
    if not spreadsheet or not lookup:
        raise ConfigError("spreadsheet id and lookup value are required")

    current_workbook = existing.workbook_path or DEFAULT_WORKBOOK
    source = prompter.with_default("Path to the Excel workbook to copy (Enter to skip copying)", "")
    destination = prompter.with_default("Destination workbook path", current_workbook)
    if source and Path(destination).exists():
        if not prompter.yes_no(f"Destination {destination} exists. Overwrite?", True):
            destination = prompter.required("Enter alternate destination path:")

    settings = existing.with_overrides(
        spreadsheet_id=spreadsheet,
        worksheet_filter=worksheet_filter,
        lookup_value=lookup,
        workbook_path=destination,
    )
    return settings, source


def command_configure(args: argparse.Namespace) -> int:
    try:
        try:
            existing = load_settings(args.config)
        except FileNotFoundError:
            existing = UpdateSettings()

        if args.non_interactive:
            settings, source = _configure_non_interactive(args, existing)
        else:
            settings, source = _configure_interactive(existing, _prompter())

        if source:
            _copy_workbook(source, settings.workbook_path)
        save_settings(settings, args.config)
    except (SheetFillError, OSError) as exc:
        logger.error("configure failed: %s", exc)
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    print(f"Configuration updated at {args.config}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sheetfill",
        description="Fill Google Sheets cells located through an Excel lookup workbook",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--config", default=DEFAULT_CONFIG_PATH, help="Path to the JSON configuration file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--log-file", type=Path, help="Also append log records to this file")
    parser.add_argument(
        "--log-timezone", default=DEFAULT_TIMEZONE, type=_timezone, help="IANA time zone for log timestamps"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Write the lookup value into every blank target cell")
    run_parser.add_argument("--spreadsheet", help="ID of the Google Sheet to update")
    run_parser.add_argument("--sheet", help="Limit the workbook lookup to this worksheet")
    run_parser.add_argument("--lookup", help="Exact cell value to search for (all matches are updated)")
    run_parser.add_argument("--workbook", help="Path to the Excel lookup workbook")
    run_parser.add_argument("--credentials", help="Path to a service account JSON key")
    run_parser.set_defaults(func=command_run)

    configure_parser = subparsers.add_parser("configure", help="Create or update the configuration file")
    configure_parser.add_argument(
        "--non-interactive",
        action="store_true",
        help="Use the flags below instead of prompting",
    )
    configure_parser.add_argument("--spreadsheet", help="Spreadsheet ID")
    configure_parser.add_argument("--sheet", help="Sheet name filter")
    configure_parser.add_argument("--lookup", help="Lookup value")
    configure_parser.add_argument("--workbook-src", help="Workbook to copy into place (omit to skip copying)")
    configure_parser.add_argument("--workbook-dest", help="Destination workbook path")
    configure_parser.set_defaults(func=command_configure)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(
        logging.DEBUG if args.verbose else logging.INFO,
        log_path=args.log_file,
        timezone_name=args.log_timezone,
    )
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
