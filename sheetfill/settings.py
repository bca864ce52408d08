"""Configuration helpers for sheetfill."""
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Callable, Dict, Mapping, Optional, TextIO

from sheetfill.errors import ConfigError

logger = logging.getLogger(__name__)


DEFAULT_CONFIG_PATH = os.getenv("SHEETFILL_CONFIG_PATH", "cfg/config.json")
DEFAULT_WORKBOOK = "cfg/Schedule.xlsx"
DEFAULT_CREDENTIALS_PATH = os.getenv("SHEETFILL_CREDENTIALS_PATH", "")
DEFAULT_TOKEN_PATH = "~/.sheetfill/token.json"

# JSON key -> attribute name.
_FILE_KEYS: Mapping[str, str] = {
    "spreadsheet_id": "spreadsheet_id",
    "config_xlsx": "workbook_path",
    "config_sheet": "worksheet_filter",
    "lookup_value": "lookup_value",
    "credential_path": "credential_path",
    "client_secret_path": "client_secret_path",
    "token_path": "token_path",
}


@dataclass(frozen=True)
class UpdateConfig:
    """Validated configuration handed to the update pipeline."""

    spreadsheet_id: str
    worksheet_filter: str
    lookup_value: str
    workbook_path: str
    credential_path: str = ""
    client_secret_path: str = ""
    token_path: str = DEFAULT_TOKEN_PATH


@dataclass
class UpdateSettings:
    """Raw, possibly incomplete settings as stored on disk or entered by a user."""

    spreadsheet_id: str = ""
    workbook_path: str = ""
    worksheet_filter: str = ""
    lookup_value: str = ""
    credential_path: str = DEFAULT_CREDENTIALS_PATH
    client_secret_path: str = ""
    token_path: str = DEFAULT_TOKEN_PATH

    def with_overrides(self, **overrides: Optional[str]) -> "UpdateSettings":
        """Return a copy where every non-``None`` override replaces the stored value."""

        known = {item.name for item in fields(self)}
        changes = {key: value for key, value in overrides.items() if value is not None and key in known}
        return replace(self, **changes)

    def validate(self) -> UpdateConfig:
        spreadsheet_id = self.spreadsheet_id.strip()
        workbook_path = self.workbook_path.strip() or DEFAULT_WORKBOOK
        lookup_value = self.lookup_value.strip()

        if not spreadsheet_id:
            raise ConfigError("spreadsheet_id is required")
        if not lookup_value:
            raise ConfigError("lookup_value is required")
        if not Path(workbook_path).is_file():
            raise ConfigError(f"access {workbook_path}: workbook not found")

        return UpdateConfig(
            spreadsheet_id=spreadsheet_id,
            worksheet_filter=self.worksheet_filter.strip(),
            lookup_value=lookup_value,
            workbook_path=workbook_path,
            credential_path=self.credential_path.strip(),
            client_secret_path=self.client_secret_path.strip(),
            token_path=self.token_path.strip() or DEFAULT_TOKEN_PATH,
        )

    def to_json(self) -> Dict[str, str]:
        return {key: getattr(self, attribute) for key, attribute in _FILE_KEYS.items()}


def settings_from_mapping(data: Mapping[str, object]) -> UpdateSettings:
    values: Dict[str, str] = {}
    for key, attribute in _FILE_KEYS.items():
        if key not in data:
            continue
        value = data[key]
        if isinstance(value, str):
            values[attribute] = value
        elif value is not None:
            logger.warning("Ignoring non-string value for %s in configuration", key)
    return UpdateSettings(**values)


def load_settings(path: str = DEFAULT_CONFIG_PATH) -> UpdateSettings:
    """Read ``path``; raises :class:`FileNotFoundError` when it does not exist."""

    try:
        with open(path, "r", encoding="utf-8") as handle:
            data = json.load(handle)
    except FileNotFoundError:
        raise
    except json.JSONDecodeError as exc:
        raise ConfigError(f"parse {path}: {exc}") from exc
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigError(f"read {path}: {exc}") from exc
    if not isinstance(data, Mapping):
        raise ConfigError(f"parse {path}: expected a JSON object")
    return settings_from_mapping(data)


def save_settings(settings: UpdateSettings, path: str = DEFAULT_CONFIG_PATH) -> None:
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(path, "w", encoding="utf-8") as handle:
        json.dump(settings.to_json(), handle, indent=2)
        handle.write("\n")


# ----------------------------------------------------------------------
# Interactive prompts
# ----------------------------------------------------------------------
class Prompter:
    """Line based question/answer helper bound to a pair of text streams."""

    def __init__(self, reader: Callable[[], str], output: TextIO) -> None:
        self._reader = reader
        self._output = output

    def say(self, message: str = "") -> None:
        print(message, file=self._output)

    def line(self, question: str) -> str:
        self._output.write(question + " ")
        self._output.flush()
        answer = self._reader()
        if answer == "":
            raise ConfigError("input closed before all answers were given")
        return answer.strip()

    def required(self, question: str) -> str:
        while True:
            answer = self.line(question)
            if answer:
                return answer
            self.say("Please enter a value.")

    def with_default(self, question: str, default: str) -> str:
        suffix = f" [{default}]" if default else ""
        answer = self.line(f"{question}{suffix}:")
        return answer or default

    def existing_file(self, question: str, default: str) -> str:
        while True:
            answer = self.line(question) or default
            if Path(answer).is_file():
                return answer
            self.say(f"File {answer!r} is not accessible.")

    def yes_no(self, question: str, default: bool) -> bool:
        hint = "Y/n" if default else "y/N"
        while True:
            answer = self.line(f"{question} [{hint}]").lower()
            if not answer:
                return default
            if answer in {"y", "yes"}:
                return True
            if answer in {"n", "no"}:
                return False
            self.say("Please answer y or n.")


def prompt_settings(prompter: Prompter) -> UpdateSettings:
    """Collect a fresh configuration when no config file exists yet."""

    spreadsheet_id = prompter.required("Google Spreadsheet ID:")
    workbook = prompter.existing_file(
        f"Path to the Excel workbook (default {DEFAULT_WORKBOOK}):", DEFAULT_WORKBOOK
    )
    worksheet_filter = prompter.line("Limit lookup to a single sheet (press Enter for all):")
    lookup_value = prompter.required("Lookup value to search for:")
    prompter.say()
    prompter.say("Tip: run 'sheetfill configure' to store these answers and skip the wizard next time.")
    return UpdateSettings(
        spreadsheet_id=spreadsheet_id,
        workbook_path=workbook,
        worksheet_filter=worksheet_filter,
        lookup_value=lookup_value,
    )


__all__ = [
    "DEFAULT_CONFIG_PATH",
    "DEFAULT_CREDENTIALS_PATH",
    "DEFAULT_TOKEN_PATH",
    "DEFAULT_WORKBOOK",
    "Prompter",
    "UpdateConfig",
    "UpdateSettings",
    "load_settings",
    "prompt_settings",
    "save_settings",
    "settings_from_mapping",
]
