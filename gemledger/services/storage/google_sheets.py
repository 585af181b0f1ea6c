"""
Google Sheets Storage Implementation

DESIGN DECISION: A spreadsheet can stand in for the browser storage the
records were first kept in:
1. Every partition blob is one row, readable and fixable by hand
2. Nothing to install or administer
3. Version history comes with the sheet

TRADEOFFS:
- Key in column A, blob in column B; a cell holds at most 50,000 characters
- No transactions, same as the browser storage
- Reads are served from a whole-sheet snapshot, dropped by refresh()

Callers see only the KeyValueStore port and cannot tell this backend
from the in-memory one.
"""

from typing import Optional
from uuid import UUID

import gspread
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from gemledger.config import get_settings
from gemledger.models.audit import AuditEvent
from gemledger.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    KeyValueStore,
    StorageError,
)


SCOPES = [
    "https://www.googleapis.com/auth/spreadsheets",
    "https://www.googleapis.com/auth/drive",
]

STORE_COLUMNS = ["key", "value"]

# Header row of the audit sheet, in AuditEvent.to_sheets_row() order
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
]

MAX_CELL_CHARS = 50000


class GoogleSheetsClient:
    """
    One authorized connection to the configured spreadsheet.

    Shared by the key-value store and the audit storage so both go
    through a single service-account login.
    """

    def __init__(self):
        self._settings = get_settings().google_sheets
        self._gc: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._worksheets: dict[str, gspread.Worksheet] = {}

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """Authorize with the service-account key file (once)."""
        if self._gc is not None:
            return self._gc

        key_file = self._settings.credentials_path
        try:
            credentials = Credentials.from_service_account_file(key_file, scopes=SCOPES)
            self._gc = gspread.authorize(credentials)
        except FileNotFoundError:
            raise ConnectionError(f"Service account key file not found: {key_file}")
        except Exception as e:
            raise ConnectionError(f"Could not authorize with Google Sheets: {e}")
        return self._gc

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        if self._spreadsheet is None:
            spreadsheet_id = self._settings.spreadsheet_id
            try:
                self._spreadsheet = self.connect().open_by_key(spreadsheet_id)
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(f"No spreadsheet with id {spreadsheet_id}")
        return self._spreadsheet

    def _get_or_create_sheet(self, title: str, columns: list[str], rows: int) -> gspread.Worksheet:
        if title in self._worksheets:
            return self._worksheets[title]

        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(title=title, rows=rows, cols=len(columns))
            sheet.append_row(columns)

        self._worksheets[title] = sheet
        return sheet

    def get_store_sheet(self) -> gspread.Worksheet:
        """The two-column key/value worksheet, created on first use."""
        return self._get_or_create_sheet(
            self._settings.store_sheet_name, STORE_COLUMNS, rows=1000
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        """The audit log worksheet, created on first use."""
        return self._get_or_create_sheet(
            self._settings.audit_sheet_name, AUDIT_COLUMNS, rows=5000
        )


class GoogleSheetsKeyValueStore(KeyValueStore):
    """
    Google Sheets implementation of the blob store.

    Row 1 is the header; every other row is (key, blob).
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()
        # key -> (1-based row number, value)
        self._snapshot: Optional[dict[str, tuple[int, str]]] = None

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _load_snapshot(self) -> dict[str, tuple[int, str]]:
        try:
            sheet = self._client.get_store_sheet()
            all_rows = sheet.get_all_values()
        except ConnectionError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to read store sheet: {e}")

        snapshot = {}
        for row_number, row in enumerate(all_rows[1:], start=2):
            if not row or not row[0]:
                continue
            snapshot[row[0]] = (row_number, row[1] if len(row) > 1 else "")
        return snapshot

    def _rows(self) -> dict[str, tuple[int, str]]:
        if self._snapshot is None:
            self._snapshot = self._load_snapshot()
        return self._snapshot

    def refresh(self) -> None:
        self._snapshot = None

    def get(self, key: str) -> Optional[str]:
        found = self._rows().get(key)
        return found[1] if found else None

    def set(self, key: str, value: str) -> None:
        if len(value) > MAX_CELL_CHARS:
            raise StorageError(
                f"Blob for {key} is {len(value)} characters; a sheet cell holds {MAX_CELL_CHARS}"
            )
        self._write(key, value)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _write(self, key: str, value: str) -> None:
        rows = self._rows()
        try:
            sheet = self._client.get_store_sheet()
            if key in rows:
                row_number = rows[key][0]
                sheet.update_cell(row_number, 2, value)
            else:
                sheet.append_row([key, value], value_input_option="RAW")
                # Appended row number is only known after a re-read
                self._snapshot = None
                return
        except ConnectionError:
            raise
        except Exception as e:
            # Row numbers may have shifted under us
            self._snapshot = None
            raise StorageError(f"Failed to write {key}: {e}")
        rows[key] = (row_number, value)

    def list_keys(self) -> list[str]:
        return list(self._rows())


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Audit log kept in its own worksheet, one event per row.

    Rows are only ever appended. Reads parse the whole sheet; rows that
    do not parse (hand edits, truncated appends) are left out.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def append_event(self, event: AuditEvent) -> bool:
        try:
            self._client.get_audit_sheet().append_row(
                event.to_sheets_row(), value_input_option="RAW"
            )
        except Exception as e:
            raise StorageError(f"Failed to write audit event {event.event_id}: {e}")
        return True

    def _read_events(self) -> list[AuditEvent]:
        try:
            rows = self._client.get_audit_sheet().get_all_values()
        except Exception as e:
            raise StorageError(f"Failed to read audit sheet: {e}")

        events = []
        for row in rows[1:]:
            if not row or not row[0]:
                continue
            try:
                events.append(AuditEvent.from_sheets_row(row))
            except ValueError:
                continue
        return events

    def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        matching = [e for e in self._read_events() if e.correlation_id == correlation_id]
        return sorted(matching, key=lambda e: e.timestamp)

    def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        newest_first = sorted(self._read_events(), key=lambda e: e.timestamp, reverse=True)
        return newest_first[:limit]
