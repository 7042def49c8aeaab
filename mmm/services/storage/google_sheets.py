"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets can hold the ledger blobs because:
1. Non-technical users can see (and back up) their data directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)

The sheet is a two-column key/value table:

    key              | value
    mmm_transactions | [ {...}, {...} ]
    mmm_groups       | [ {...} ]

TRADEOFFS:
- A cell holds at most 50,000 characters, which caps the ledger at a few
  hundred transactions. Fine for a personal tool; move to the JSON backend
  (or a database) beyond that.
- No transactions: the two blobs are written one after the other.
"""

from typing import Optional

import gspread
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from mmm.config import get_settings
from mmm.services.storage.interface import (
    BlobLedgerStorage,
    StorageConnectionError,
    StorageError,
)


LEDGER_COLUMNS = ["key", "value"]

# Google Sheets per-cell limit
MAX_CELL_CHARS = 50000


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
                raise StorageConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise StorageConnectionError(f"Failed to connect to Google Sheets: {e}")

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
                raise StorageConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def get_ledger_sheet(self) -> gspread.Worksheet:
        """Get or create the ledger key/value worksheet."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(self._settings.ledger_sheet_name)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=self._settings.ledger_sheet_name,
                rows=10,
                cols=len(LEDGER_COLUMNS),
            )
            sheet.append_row(LEDGER_COLUMNS)
        return sheet


class GoogleSheetsBlobStore(BlobLedgerStorage):
    """
    Google Sheets implementation of ledger storage.

    Each blob is one row of the key/value sheet.
    """

    def __init__(
        self,
        client: Optional[GoogleSheetsClient] = None,
        transactions_key: str = "mmm_transactions",
        groups_key: str = "mmm_groups",
    ):
        super().__init__(transactions_key, groups_key)
        self._client = client or GoogleSheetsClient()

    def _find_row(self, rows: list[list[str]], key: str) -> Optional[int]:
        """1-based sheet row holding ``key``; row 1 is the header."""
        for idx, row in enumerate(rows[1:], start=2):
            if row and row[0] == key:
                return idx
        return None

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _read_blob(self, key: str) -> Optional[str]:
        try:
            sheet = self._client.get_ledger_sheet()
            rows = sheet.get_all_values()
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to read '{key}' from Google Sheets: {e}")

        idx = self._find_row(rows, key)
        if idx is None:
            return None
        row = rows[idx - 1]
        return row[1] if len(row) > 1 else None

    def _write_blob(self, key: str, value: str) -> None:
        if len(value) > MAX_CELL_CHARS:
            raise StorageError(
                f"Blob '{key}' is {len(value)} characters; "
                f"Google Sheets cells hold at most {MAX_CELL_CHARS}"
            )
        self._put_row(key, value)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _put_row(self, key: str, value: str) -> None:
        try:
            sheet = self._client.get_ledger_sheet()
            idx = self._find_row(sheet.get_all_values(), key)
            if idx is None:
                sheet.append_row([key, value], value_input_option="RAW")
            else:
                sheet.update_cell(idx, 2, value)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to write '{key}' to Google Sheets: {e}")
