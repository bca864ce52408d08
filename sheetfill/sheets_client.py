"""Google Sheets client used to read and write the target spreadsheet.

This module centralises all direct interactions with the Google Sheets API.
It provides a small surface area that the update pipeline relies on without
needing to know about HTTP requests or googleapiclient internals:

* ``build_client`` resolves credentials (service account key, cached OAuth
  desktop token, or Application Default Credentials) and constructs an
  authenticated ``sheets`` v4 service.
* ``GoogleSheetsClient.get_values`` reads the current values of one range.
* ``GoogleSheetsClient.batch_update_values`` writes many ranges in a single
  ``values.batchUpdate`` request, so a run is either applied completely or
  not at all.

All public entry points raise subclasses of :class:`SheetsClientError`.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

import google.auth
import httplib2
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from google.oauth2 import service_account
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow
from googleapiclient.discovery import build
from googleapiclient.errors import Error as GoogleApiClientError

from sheetfill.errors import RemoteError
from sheetfill.google_credentials import CredentialsFileInvalidError, load_service_account_data

logger = logging.getLogger(__name__)

SCOPES: Sequence[str] = ("https://www.googleapis.com/auth/spreadsheets",)
VALUE_INPUT_OPTION = "USER_ENTERED"
MAJOR_DIMENSION = "ROWS"

# googleapiclient errors include HttpError; httplib2 is the default transport.
_TRANSPORT_ERRORS = (GoogleApiClientError, GoogleAuthError, httplib2.HttpLib2Error, OSError)


class SheetsClientError(RemoteError):
    """Base error raised for Sheets API failures."""


class SheetsCredentialsError(SheetsClientError):
    """Raised when no usable credentials could be obtained."""


class SheetsApiResponseError(SheetsClientError):
    """Raised when the Google API returns an error response."""


def _service_account_credentials(path: Path):
    try:
        payload = load_service_account_data(path)
    except CredentialsFileInvalidError as exc:
        raise SheetsCredentialsError(str(exc)) from exc
    try:
        return service_account.Credentials.from_service_account_info(payload, scopes=list(SCOPES))
    except (ValueError, GoogleAuthError) as exc:
        raise SheetsCredentialsError(f"invalid service account key {path}: {exc}") from exc


def _oauth_credentials(secret_path: Path, token_path: Optional[Path]):
    """Return user credentials, running the desktop consent flow if needed."""

    if not secret_path.exists():
        raise SheetsCredentialsError(f"Client secret file not found: {secret_path}")

    credentials = None
    if token_path and token_path.exists():
        credentials = Credentials.from_authorized_user_file(str(token_path), list(SCOPES))

    if not credentials or not credentials.valid:
        if credentials and credentials.expired and credentials.refresh_token:
            logger.debug("Refreshing cached OAuth token %s", token_path)
            credentials.refresh(Request())
        else:
            logger.info("Starting OAuth consent flow with %s", secret_path)
            flow = InstalledAppFlow.from_client_secrets_file(str(secret_path), list(SCOPES))
            credentials = flow.run_local_server(port=0)
        if token_path:
            token_path.parent.mkdir(parents=True, exist_ok=True)
            with token_path.open("w", encoding="utf-8") as handle:
                handle.write(credentials.to_json())
    return credentials


def load_credentials(
    credential_path: Optional[Path] = None,
    *,
    client_secret_path: Optional[Path] = None,
    token_path: Optional[Path] = None,
):
    """Resolve credentials from the first configured source."""

    try:
        if credential_path:
            logger.debug("Using service account key %s", credential_path)
            return _service_account_credentials(credential_path)
        if client_secret_path:
            return _oauth_credentials(client_secret_path, token_path)
        logger.debug("Using Application Default Credentials")
        credentials, _project = google.auth.default(scopes=list(SCOPES))
        return credentials
    except SheetsClientError:
        raise
    except (GoogleAuthError, ValueError, OSError) as exc:
        raise SheetsCredentialsError(str(exc)) from exc


def _build_service(credentials):
    try:
        return build("sheets", "v4", credentials=credentials, cache_discovery=False)
    except _TRANSPORT_ERRORS as exc:
        raise SheetsApiResponseError(str(exc)) from exc


class GoogleSheetsClient:
    """Concrete helper that speaks to Google Sheets using the REST API."""

    def __init__(self, spreadsheet_id: str, *, credentials=None, service=None) -> None:
        self._spreadsheet_id = spreadsheet_id
        self._service = service or _build_service(credentials)

    @property
    def spreadsheet_id(self) -> str:
        return self._spreadsheet_id

    def get_values(self, address: str) -> List[List[Any]]:
        """Return the current value grid stored at ``address``."""

        try:
            response = (
                self._service.spreadsheets()
                .values()
                .get(spreadsheetId=self._spreadsheet_id, range=address, majorDimension=MAJOR_DIMENSION)
                .execute()
            )
        except _TRANSPORT_ERRORS as exc:
            raise SheetsApiResponseError(f"fetch current value: {exc}") from exc
        values = response.get("values", []) if isinstance(response, Mapping) else []
        return [list(row) for row in values]

    def batch_update_values(
        self,
        data: Sequence[Mapping[str, Any]],
        *,
        value_input_option: str = VALUE_INPUT_OPTION,
        include_values_in_response: bool = True,
    ) -> Dict[str, Any]:
        """Write every ``{"range", "values"}`` entry of ``data`` in one request."""

        body = {
            "valueInputOption": value_input_option,
            "includeValuesInResponse": include_values_in_response,
            "data": [
                {
                    "range": entry["range"],
                    "majorDimension": entry.get("majorDimension", MAJOR_DIMENSION),
                    "values": [list(row) for row in entry["values"]],
                }
                for entry in data
            ],
        }
        try:
            response = (
                self._service.spreadsheets()
                .values()
                .batchUpdate(spreadsheetId=self._spreadsheet_id, body=body)
                .execute()
            )
        except _TRANSPORT_ERRORS as exc:
            raise SheetsApiResponseError(str(exc)) from exc
        return dict(response) if isinstance(response, Mapping) else {}


def _optional_path(value: Optional[str]) -> Optional[Path]:
    if not value:
        return None
    return Path(os.path.expanduser(value))


def build_client(
    spreadsheet_id: str,
    *,
    credential_path: Optional[str] = None,
    client_secret_path: Optional[str] = None,
    token_path: Optional[str] = None,
) -> GoogleSheetsClient:
    """Factory helper used by the update pipeline to construct a client."""

    credentials = load_credentials(
        _optional_path(credential_path),
        client_secret_path=_optional_path(client_secret_path),
        token_path=_optional_path(token_path),
    )
    return GoogleSheetsClient(spreadsheet_id, credentials=credentials)


__all__ = [
    "GoogleSheetsClient",
    "MAJOR_DIMENSION",
    "SCOPES",
    "SheetsApiResponseError",
    "SheetsClientError",
    "SheetsCredentialsError",
    "VALUE_INPUT_OPTION",
    "build_client",
    "load_credentials",
]
