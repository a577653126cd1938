"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is offered as a record store because:
1. Users can view their data directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)

Each collection key maps to its own worksheet. A row holds the record id
and the record's JSON payload, so records of any shape (templates,
instances, audit events) fit the same two columns.

TRADEOFFS:
- Whole-collection saves rewrite the worksheet in place (fine for personal use)
- No transactions; the app is the single writer
"""

import json
from typing import Optional

import gspread
from gspread.utils import rowcol_to_a1
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from expense_tracker.config import GoogleSheetsSettings, get_settings
from expense_tracker.services.storage.interface import (
    ConnectionError,
    RecordStoreInterface,
    StorageError,
)


RECORD_COLUMNS = ["id", "record_json"]


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def get_worksheet(self, key: str) -> gspread.Worksheet:
        """Get or create the worksheet for a collection."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(key)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=key,
                rows=1000,
                cols=len(RECORD_COLUMNS),
            )
            sheet.append_row(RECORD_COLUMNS)
        return sheet


class GoogleSheetsRecordStore(RecordStoreInterface):
    """
    Google Sheets implementation of the record store.

    One worksheet per collection, one record per row.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _record_to_row(self, record: dict) -> list:
        """Convert a record to a spreadsheet row."""
        return [
            str(record.get("id", record.get("event_id", ""))),
            json.dumps(record, ensure_ascii=False),
        ]

    def _row_to_record(self, key: str, index: int, row: list) -> dict:
        """Convert a spreadsheet row back to a record."""
        try:
            record = json.loads(row[1])
        except (IndexError, json.JSONDecodeError) as e:
            raise StorageError(f"Malformed row {index} in {key}: {e}")
        if not isinstance(record, dict):
            raise StorageError(f"Malformed row {index} in {key}: not an object")
        return record

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _fetch_rows(self, key: str) -> list[list]:
        """Fetch all data rows (excluding header)."""
        try:
            sheet = self._client.get_worksheet(key)
            return sheet.get_all_values()[1:]
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to load collection {key}: {e}")

    async def load_records(self, key: str) -> list[dict]:
        """Load all records from the collection's worksheet."""
        all_rows = self._fetch_rows(key)

        records = []
        for index, row in enumerate(all_rows, start=2):
            if not row or not any(row):  # Skip empty rows
                continue
            records.append(self._row_to_record(key, index, row))
        return records

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _write_rows(self, key: str, rows: list[list]) -> None:
        """
        Overwrite the worksheet from the top, then blank leftover rows.

        The old rows stay in place until the new ones are written, so a
        failed save never leaves the collection empty.
        """
        try:
            sheet = self._client.get_worksheet(key)
            previous = len(sheet.get_all_values())
            if len(rows) > sheet.row_count:
                sheet.add_rows(len(rows) - sheet.row_count)
            sheet.update(range_name="A1", values=rows, value_input_option="RAW")
            if previous > len(rows):
                last_cell = rowcol_to_a1(previous, len(RECORD_COLUMNS))
                sheet.batch_clear([f"A{len(rows) + 1}:{last_cell}"])
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save collection {key}: {e}")

    async def save_records(self, key: str, records: list[dict]) -> bool:
        """Rewrite the collection's worksheet."""
        rows = [RECORD_COLUMNS, *(self._record_to_row(record) for record in records)]
        self._write_rows(key, rows)
        return True

    async def has_records(self, key: str) -> bool:
        try:
            return bool(await self.load_records(key))
        except StorageError:
            return False

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def append_record(self, key: str, record: dict) -> bool:
        """Append one record without rewriting the worksheet."""
        try:
            sheet = self._client.get_worksheet(key)
            sheet.append_row(self._record_to_row(record), value_input_option="RAW")
            return True
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to append to collection {key}: {e}")
