"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is offered as a shared backend because:
1. The owner can look at closings directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)

TRADEOFFS:
- No transactions: one row per date is overwritten in full (last write wins)
- Limited query capabilities (we filter in Python)

Each record is one row: a few readable columns for people browsing the
sheet, plus the full record as JSON in the last column, which is the
only column read back.
"""

import json
from typing import Optional

import gspread
from google.oauth2.service_account import Credentials
from tenacity import (
    retry,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from cash_close.config import get_settings
from cash_close.models.record import DailyRecord, StaffMember
from cash_close.services.storage.interface import (
    ConnectionError,
    NotFoundError,
    RecordStoreInterface,
    StaffDirectoryInterface,
    StorageError,
    VersionConflictError,
)


# Column mappings for the records sheet
RECORD_COLUMNS = [
    "date",
    "version",
    "created_at",
    "updated_at",
    "closed_by_staff_id",
    "total_sales",
    "total_staff_payments",
    "record_json",
]

# Column mappings for the staff sheet
STAFF_COLUMNS = [
    "id",
    "name",
    "pix_key",
    "phone",
    "role",
    "shift",
]


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets

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
                raise NotFoundError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _get_or_create_sheet(self, title: str, columns: list[str]) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=1000,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_records_sheet(self) -> gspread.Worksheet:
        """Get or create the daily records worksheet."""
        return self._get_or_create_sheet(self._settings.records_sheet_name, RECORD_COLUMNS)

    def get_staff_sheet(self) -> gspread.Worksheet:
        """Get or create the staff worksheet."""
        return self._get_or_create_sheet(self._settings.staff_sheet_name, STAFF_COLUMNS)


class GoogleSheetsRecordStore(RecordStoreInterface):
    """
    Google Sheets implementation of the record store.

    One row per closing date; the date column is the key.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _record_to_row(self, record: DailyRecord) -> list:
        """Convert a DailyRecord to a spreadsheet row."""
        return [
            record.date,
            str(record.version),
            record.created_at.isoformat(),
            record.updated_at.isoformat(),
            record.closed_by_staff_id or "",
            str(record.sales.total),
            str(record.total_staff_payments),
            json.dumps(record.model_dump(mode="json"), ensure_ascii=False),
        ]

    def _row_to_record(self, row: list) -> DailyRecord:
        """Convert a spreadsheet row to a DailyRecord."""
        try:
            payload = row[len(RECORD_COLUMNS) - 1]
        except IndexError:
            raise StorageError(f"Row for {row[0] if row else '?'} has no record payload")
        return DailyRecord.model_validate(json.loads(payload))

    def _find_row(self, sheet: gspread.Worksheet, record_date: str) -> tuple[Optional[int], Optional[list]]:
        """Return (1-based row index, row values) for a date, or (None, None)."""
        all_rows = sheet.get_all_values()
        for idx, row in enumerate(all_rows[1:], start=2):  # Row 1 is header
            if row and row[0] == record_date:
                return idx, row
        return None, None

    def get_by_date(self, record_date: str) -> Optional[DailyRecord]:
        try:
            sheet = self._client.get_records_sheet()
            _, row = self._find_row(sheet, record_date)
            return self._row_to_record(row) if row else None
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to get record: {e}")

    def list_all(self) -> list[DailyRecord]:
        try:
            sheet = self._client.get_records_sheet()
            all_rows = sheet.get_all_values()[1:]  # Skip header
            return [self._row_to_record(row) for row in all_rows if row and row[0]]
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to list records: {e}")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_not_exception_type((VersionConflictError, NotFoundError)),
        reraise=True,
    )
    def upsert(
        self,
        record: DailyRecord,
        expected_version: Optional[int] = None,
    ) -> None:
        try:
            sheet = self._client.get_records_sheet()
            idx, row = self._find_row(sheet, record.date)
            existing = self._row_to_record(row) if row else None
            self.check_version(existing, record.date, expected_version)

            new_row = self._record_to_row(record)
            if idx is None:
                sheet.append_row(new_row, value_input_option="RAW")
            else:
                sheet.update(
                    range_name=f"A{idx}",
                    values=[new_row],
                    value_input_option="RAW",
                )
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save record: {e}")

    def delete(self, record_date: str) -> bool:
        try:
            sheet = self._client.get_records_sheet()
            idx, _ = self._find_row(sheet, record_date)
            if idx is None:
                return False
            sheet.delete_rows(idx)
            return True
        except Exception as e:
            raise StorageError(f"Failed to delete record: {e}")


class GoogleSheetsStaffDirectory(StaffDirectoryInterface):
    """Reads the staff directory from its worksheet."""

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_staff(self, row: list) -> StaffMember:
        def safe_get(index: int, default: str = "") -> str:
            try:
                return row[index] if row[index] else default
            except IndexError:
                return default

        data = {
            "id": safe_get(0),
            "name": safe_get(1),
            "pix_key": safe_get(2),
            "phone": safe_get(3),
        }
        if safe_get(4):
            data["role"] = safe_get(4)
        if safe_get(5):
            data["shift"] = safe_get(5)
        return StaffMember(**data)

    def list_staff(self) -> list[StaffMember]:
        try:
            sheet = self._client.get_staff_sheet()
            all_rows = sheet.get_all_values()[1:]
            return [self._row_to_staff(row) for row in all_rows if row and row[0]]
        except Exception as e:
            raise StorageError(f"Failed to list staff: {e}")
