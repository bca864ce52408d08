"""Single-pass update of the remote spreadsheet from the lookup workbook.

The run goes through the following states::

    INITIALIZING -> SCANNING -> FETCHING_AND_MERGING -> COMMITTING -> DONE
                                                     -> NOTHING_TO_WRITE

Any failure moves the run to ``FAILED`` and the error propagates to the
caller.  Each external call is attempted exactly once; nothing is retried and
nothing is written unless every fetch succeeded.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, List, Mapping, Optional, Sequence

from sheetfill.errors import SheetFillError
from sheetfill.merge import ValueGrid, merge_values
from sheetfill.settings import UpdateConfig
from sheetfill.sheets_client import (
    MAJOR_DIMENSION,
    GoogleSheetsClient,
    SheetsApiResponseError,
    SheetsClientError,
    build_client,
)
from sheetfill.workbook_scanner import WorkbookMatch, scan

logger = logging.getLogger(__name__)

SKIPPED_ALREADY_POPULATED = "all target cells already contain data"


class RunState(Enum):
    INITIALIZING = "initializing"
    SCANNING = "scanning"
    FETCHING_AND_MERGING = "fetching_and_merging"
    NOTHING_TO_WRITE = "nothing_to_write"
    COMMITTING = "committing"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class UpdatePayload:
    address: str
    grid: ValueGrid

    def to_value_range(self) -> dict:
        return {"range": self.address, "majorDimension": MAJOR_DIMENSION, "values": self.grid}


@dataclass
class CommitResult:
    total_cells: int = 0
    total_rows: int = 0
    updated_ranges: List[str] = field(default_factory=list)


@dataclass
class RunSummary:
    """Outcome of one update run, reported to the caller."""

    addresses_written: List[str] = field(default_factory=list)
    total_cells_written: int = 0
    total_rows_written: int = 0
    skipped_reason: Optional[str] = None
    updated_ranges: List[str] = field(default_factory=list)

    @property
    def skipped(self) -> bool:
        return self.skipped_reason is not None


def fetch_existing(client: GoogleSheetsClient, address: str) -> ValueGrid:
    """Return the values currently stored at ``address``."""

    try:
        return client.get_values(address)
    except SheetsClientError as exc:
        raise SheetsApiResponseError(f"precondition failed for {address}: {exc}") from exc


def _updated_ranges(responses: Sequence[Mapping[str, Any]], requested: Sequence[str]) -> List[str]:
    ranges: List[str] = []
    for index, entry in enumerate(responses):
        updated = str(entry.get("updatedRange") or "")
        if not updated and index < len(requested):
            updated = requested[index]
        if not updated:
            updated = f"response_{index}"
        ranges.append(updated)
    return ranges or list(requested)


def commit_payloads(client: GoogleSheetsClient, payloads: Sequence[UpdatePayload]) -> CommitResult:
    """Submit every payload in one batch request and return the counts."""

    requested = [payload.address for payload in payloads]
    try:
        response = client.batch_update_values(
            [payload.to_value_range() for payload in payloads],
            include_values_in_response=True,
        )
    except SheetsClientError as exc:
        raise SheetsApiResponseError(f"batch update failed: {exc}") from exc

    return CommitResult(
        total_cells=int(response.get("totalUpdatedCells") or 0),
        total_rows=int(response.get("totalUpdatedRows") or 0),
        updated_ranges=_updated_ranges(response.get("responses") or [], requested),
    )


ClientFactory = Callable[[UpdateConfig], GoogleSheetsClient]


def default_client_factory(config: UpdateConfig) -> GoogleSheetsClient:
    return build_client(
        config.spreadsheet_id,
        credential_path=config.credential_path,
        client_secret_path=config.client_secret_path,
        token_path=config.token_path,
    )


class SheetUpdater:
    """Drive one lookup, merge and write pass for a validated configuration."""

    def __init__(
        self,
        config: UpdateConfig,
        *,
        client: Optional[GoogleSheetsClient] = None,
        client_factory: Optional[ClientFactory] = None,
    ) -> None:
        self.config = config
        self._client = client
        self._client_factory = client_factory
        self.state = RunState.INITIALIZING

    def _transition(self, state: RunState) -> None:
        logger.debug("Update run %s -> %s", self.state.value, state.value)
        self.state = state

    def desired_values(self) -> ValueGrid:
        return [[self.config.lookup_value]]

    def _client_or_build(self) -> GoogleSheetsClient:
        if self._client is None:
            try:
                factory = self._client_factory or default_client_factory
                self._client = factory(self.config)
            except SheetsClientError as exc:
                raise type(exc)(f"initialise Sheets service: {exc}") from exc
        return self._client

    def build_payloads(self, client: GoogleSheetsClient, matches: Sequence[WorkbookMatch]) -> List[UpdatePayload]:
        desired = self.desired_values()
        payloads: List[UpdatePayload] = []
        for match in matches:
            address = match.address()
            existing = fetch_existing(client, address)
            merged, wrote = merge_values(existing, desired)
            if not wrote:
                logger.debug("%s already populated, skipping", address)
                continue
            payloads.append(UpdatePayload(address, merged))
        return payloads

    def run(self) -> RunSummary:
        try:
            return self._run()
        except SheetFillError:
            self._transition(RunState.FAILED)
            raise

    def _run(self) -> RunSummary:
        config = self.config
        client = self._client_or_build()

        self._transition(RunState.SCANNING)
        matches = scan(Path(config.workbook_path), config.worksheet_filter, config.lookup_value)

        self._transition(RunState.FETCHING_AND_MERGING)
        payloads = self.build_payloads(client, matches)
        if not payloads:
            self._transition(RunState.NOTHING_TO_WRITE)
            logger.info("No updates needed: %s", SKIPPED_ALREADY_POPULATED)
            return RunSummary(skipped_reason=SKIPPED_ALREADY_POPULATED)

        self._transition(RunState.COMMITTING)
        result = commit_payloads(client, payloads)
        self._transition(RunState.DONE)

        summary = RunSummary(
            addresses_written=[payload.address for payload in payloads],
            total_cells_written=result.total_cells,
            total_rows_written=result.total_rows,
            updated_ranges=result.updated_ranges,
        )
        logger.info(
            "Update complete: %d cell(s) in %d row(s) across %s",
            summary.total_cells_written,
            summary.total_rows_written,
            ", ".join(summary.addresses_written),
        )
        return summary


def run_update(config: UpdateConfig, *, client: Optional[GoogleSheetsClient] = None) -> RunSummary:
    """Convenience wrapper running a single :class:`SheetUpdater` pass."""

    return SheetUpdater(config, client=client).run()


__all__ = [
    "CommitResult",
    "RunState",
    "RunSummary",
    "SKIPPED_ALREADY_POPULATED",
    "SheetUpdater",
    "UpdatePayload",
    "commit_payloads",
    "default_client_factory",
    "fetch_existing",
    "run_update",
]
