"""
Google Sheets Remote Store

DESIGN DECISION: Google Sheets is the hosted backend because:
1. Users can view and export their data directly in Sheets
2. No database setup required
3. Access is authenticated through a service account

Every user shares one worksheet. Rows carry a `user_id` column and the
store filters every read and write by it, so one owner never sees or
modifies another owner's rows.

TRADEOFFS:
- No server-side queries (we filter in Python)
- No transactions (writes touch one row at a time)
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional
from uuid import uuid4

import gspread
import structlog
from google.oauth2.service_account import Credentials
from pydantic import BaseModel, Field
from tenacity import retry, stop_after_attempt, wait_exponential

from finance_tracker.config import GoogleSheetsSettings, get_settings
from finance_tracker.models.transaction import (
    Transaction,
    TransactionDraft,
    TransactionType,
    utcnow,
)
from finance_tracker.services.storage.interface import (
    NotFoundError,
    RemoteTransactionStore,
    RemoteUnavailableError,
    StorageError,
)


# Column layout of the Transactions sheet
TRANSACTION_COLUMNS = [
    "id",
    "user_id",
    "description",
    "amount",
    "type",
    "category",
    "date",
    "is_recurring",
    "created_at",
    "updated_at",
]

_ID = TRANSACTION_COLUMNS.index("id")
_USER_ID = TRANSACTION_COLUMNS.index("user_id")

_remote_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    reraise=True,
)


def _sort_key(moment: datetime) -> datetime:
    # Naive dates are treated as UTC so they can be ordered with aware ones
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


class TransactionRow(BaseModel):
    """
    Wire representation of one transaction row.

    Translates between snake_case sheet columns and the Transaction entity.
    Both directions are lossless: amounts are written as Decimal strings,
    timestamps as full ISO-8601 strings.
    """

    id: str = Field(..., min_length=1)
    user_id: str = Field(..., min_length=1)
    description: str
    amount: Decimal
    type: TransactionType
    category: str
    date: datetime
    is_recurring: bool = False
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @classmethod
    def from_transaction(
        cls,
        transaction: Transaction,
        owner_id: str,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None,
    ) -> "TransactionRow":
        now = utcnow()
        return cls(
            id=transaction.id,
            user_id=owner_id,
            description=transaction.description,
            amount=transaction.amount,
            type=transaction.type,
            category=transaction.category,
            date=transaction.date,
            is_recurring=transaction.is_recurring,
            created_at=created_at or now,
            updated_at=updated_at or now,
        )

    def to_transaction(self) -> Transaction:
        return Transaction(
            id=self.id,
            description=self.description,
            amount=self.amount,
            type=self.type,
            category=self.category,
            date=self.date,
            is_recurring=self.is_recurring,
        )

    def to_values(self) -> list[str]:
        """Cell values in TRANSACTION_COLUMNS order."""
        return [
            self.id,
            self.user_id,
            self.description,
            str(self.amount),
            self.type.value,
            self.category,
            self.date.isoformat(),
            str(self.is_recurring),
            self.created_at.isoformat(),
            self.updated_at.isoformat(),
        ]

    @classmethod
    def from_values(cls, values: list) -> "TransactionRow":
        """Parse cell values read back from the sheet."""
        # Trailing empty cells are dropped by the Sheets API
        def safe_get(index: int, default: str = "") -> str:
            try:
                return values[index] if values[index] else default
            except IndexError:
                return default

        return cls(
            id=safe_get(0),
            user_id=safe_get(1),
            description=safe_get(2),
            amount=safe_get(3),
            type=safe_get(4),
            category=safe_get(5),
            date=safe_get(6),
            is_recurring=safe_get(7).lower() == "true",
            created_at=safe_get(8) or utcnow(),
            updated_at=safe_get(9) or utcnow(),
        )


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

    @_remote_retry
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
                raise RemoteUnavailableError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise RemoteUnavailableError(f"Failed to connect to Google Sheets: {e}")

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
                raise RemoteUnavailableError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def get_transactions_sheet(self) -> gspread.Worksheet:
        """Get or create the Transactions worksheet."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(self._settings.transactions_sheet_name)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=self._settings.transactions_sheet_name,
                rows=1000,
                cols=len(TRANSACTION_COLUMNS),
            )
            sheet.append_row(TRANSACTION_COLUMNS)
        return sheet


class GoogleSheetsTransactionStore(RemoteTransactionStore):
    """
    Google Sheets implementation of the remote transaction store.

    One transaction per row; the first row is the header.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()
        self._logger = structlog.get_logger(__name__)

    @_remote_retry
    def _fetch_values(self) -> tuple[gspread.Worksheet, list[list]]:
        sheet = self._client.get_transactions_sheet()
        return sheet, sheet.get_all_values()

    def _owned_rows(
        self,
        values: list[list],
        owner_id: str,
    ) -> list[tuple[int, TransactionRow]]:
        """
        Rows of `owner_id` with their 1-based sheet row numbers.

        Malformed rows are skipped and logged.
        """
        owned = []
        for row_number, row in enumerate(values[1:], start=2):  # Row 1 is header
            if not row or len(row) <= _USER_ID or not row[_ID]:
                continue
            if row[_USER_ID] != owner_id:
                continue
            try:
                owned.append((row_number, TransactionRow.from_values(row)))
            except Exception as e:
                self._logger.warning(
                    "remote_row_malformed",
                    row_number=row_number,
                    error=str(e),
                )
        return owned

    def _find_row(
        self,
        values: list[list],
        owner_id: str,
        transaction_id: str,
    ) -> Optional[tuple[int, TransactionRow]]:
        for row_number, row in self._owned_rows(values, owner_id):
            if row.id == transaction_id:
                return row_number, row
        return None

    async def list_transactions(self, owner_id: str) -> list[Transaction]:
        """List the owner's transactions, newest first."""
        try:
            _, values = self._fetch_values()
            rows = [row for _, row in self._owned_rows(values, owner_id)]
            rows.sort(key=lambda r: _sort_key(r.date), reverse=True)
            return [row.to_transaction() for row in rows]
        except StorageError:
            raise
        except Exception as e:
            raise RemoteUnavailableError(f"Failed to list transactions: {e}")

    @_remote_retry
    async def insert_transaction(
        self,
        owner_id: str,
        draft: TransactionDraft,
    ) -> Transaction:
        """Append a new row; the store assigns a UUID id."""
        try:
            sheet = self._client.get_transactions_sheet()
            transaction = draft.to_transaction(str(uuid4()))
            row = TransactionRow.from_transaction(transaction, owner_id)
            sheet.append_row(row.to_values(), value_input_option="RAW")
            return transaction
        except StorageError:
            raise
        except Exception as e:
            raise RemoteUnavailableError(f"Failed to insert transaction: {e}")

    async def update_transaction(
        self,
        owner_id: str,
        transaction_id: str,
        draft: TransactionDraft,
    ) -> Transaction:
        """Rewrite the owner's row with this id."""
        try:
            sheet, values = self._fetch_values()
            found = self._find_row(values, owner_id, transaction_id)
            if found is None:
                raise NotFoundError(f"Transaction not found: {transaction_id}")

            row_number, current = found
            updated = current.to_transaction().with_changes(draft)
            new_row = TransactionRow.from_transaction(
                updated,
                owner_id,
                created_at=current.created_at,
                updated_at=utcnow(),
            )
            sheet.update(
                range_name=f"A{row_number}",
                values=[new_row.to_values()],
                value_input_option="RAW",
            )
            return updated
        except StorageError:
            raise
        except Exception as e:
            raise RemoteUnavailableError(f"Failed to update transaction: {e}")

    async def delete_transaction(self, owner_id: str, transaction_id: str) -> bool:
        """Delete the owner's row with this id, if there is one."""
        try:
            sheet, values = self._fetch_values()
            found = self._find_row(values, owner_id, transaction_id)
            if found is None:
                return False
            sheet.delete_rows(found[0])
            return True
        except StorageError:
            raise
        except Exception as e:
            raise RemoteUnavailableError(f"Failed to delete transaction: {e}")

    async def clear_transactions(self, owner_id: str) -> int:
        """Delete every row of the owner."""
        try:
            sheet, values = self._fetch_values()
            # Match on the raw user_id cell so malformed rows are cleared too
            row_numbers = [
                row_number
                for row_number, row in enumerate(values[1:], start=2)
                if len(row) > _USER_ID and row[_ID] and row[_USER_ID] == owner_id
            ]
            # Bottom-up so earlier deletions don't shift later row numbers
            for row_number in sorted(row_numbers, reverse=True):
                sheet.delete_rows(row_number)
            return len(row_numbers)
        except StorageError:
            raise
        except Exception as e:
            raise RemoteUnavailableError(f"Failed to clear transactions: {e}")
