"""
Shared fixtures and fakes.

No test talks to Google Sheets or any other network service: the remote
store, the worksheet and the session are in-memory fakes.
"""

import asyncio
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from finance_tracker.models import (
    Transaction,
    TransactionDraft,
    TransactionType,
)
from finance_tracker.notifications import MemoryNotificationSink
from finance_tracker.services.session import StaticSessionResolver, UserIdentity
from finance_tracker.services.storage import (
    TRANSACTION_COLUMNS,
    LocalCacheStore,
    NotFoundError,
    RemoteTransactionStore,
    RemoteUnavailableError,
)


def run(coro):
    """Drive a coroutine to completion from a synchronous test."""
    return asyncio.run(coro)


def make_draft(**overrides) -> TransactionDraft:
    fields = {
        "description": "Coffee",
        "amount": Decimal("5"),
        "type": TransactionType.EXPENSE,
        "category": "Lazer",
    }
    fields.update(overrides)
    return TransactionDraft(**fields)


def make_transaction(transaction_id: str, **overrides) -> Transaction:
    fields = {
        "id": transaction_id,
        "description": f"Transaction {transaction_id}",
        "amount": Decimal("10.00"),
        "type": TransactionType.EXPENSE,
        "category": "Compras",
        "date": datetime(2024, 3, 10, 12, 0, tzinfo=timezone.utc),
    }
    fields.update(overrides)
    return Transaction(**fields)


class FakeRemoteStore(RemoteTransactionStore):
    """
    In-memory remote store.

    Put operation names ("list", "insert", "update", "delete", "clear")
    in `failing` to make them raise RemoteUnavailableError.
    """

    def __init__(self, rows: dict[str, list[Transaction]] = None):
        self.rows = {owner: list(items) for owner, items in (rows or {}).items()}
        self.calls: list[str] = []
        self.failing: set[str] = set()
        self._next_id = 0

    def _call(self, operation: str) -> None:
        self.calls.append(operation)
        if operation in self.failing:
            raise RemoteUnavailableError(f"{operation} failed")

    async def list_transactions(self, owner_id):
        self._call("list")
        return sorted(self.rows.get(owner_id, []), key=lambda t: t.date, reverse=True)

    async def insert_transaction(self, owner_id, draft):
        self._call("insert")
        self._next_id += 1
        transaction = draft.to_transaction(f"remote-{self._next_id}")
        self.rows.setdefault(owner_id, []).insert(0, transaction)
        return transaction

    async def update_transaction(self, owner_id, transaction_id, draft):
        self._call("update")
        owned = self.rows.get(owner_id, [])
        for index, transaction in enumerate(owned):
            if transaction.id == transaction_id:
                owned[index] = transaction.with_changes(draft)
                return owned[index]
        raise NotFoundError(f"Transaction not found: {transaction_id}")

    async def delete_transaction(self, owner_id, transaction_id):
        self._call("delete")
        owned = self.rows.get(owner_id, [])
        remaining = [t for t in owned if t.id != transaction_id]
        self.rows[owner_id] = remaining
        return len(remaining) != len(owned)

    async def clear_transactions(self, owner_id):
        self._call("clear")
        count = len(self.rows.get(owner_id, []))
        self.rows[owner_id] = []
        return count


class FakeWorksheet:
    """The subset of gspread.Worksheet the Sheets store uses."""

    def __init__(self, rows: list[list[str]] = None):
        self.rows = [list(TRANSACTION_COLUMNS)] + [list(r) for r in rows or []]

    def get_all_values(self):
        return [list(row) for row in self.rows]

    def append_row(self, values, value_input_option=None):
        self.rows.append(list(values))

    def update(self, range_name=None, values=None, value_input_option=None):
        row_number = int(range_name.lstrip("A"))
        self.rows[row_number - 1] = list(values[0])

    def delete_rows(self, index):
        del self.rows[index - 1]


class FakeSheetsClient:
    def __init__(self, sheet: FakeWorksheet):
        self.sheet = sheet

    def get_transactions_sheet(self):
        return self.sheet


@pytest.fixture
def notifications():
    return MemoryNotificationSink()


@pytest.fixture
def local_cache(tmp_path, notifications):
    return LocalCacheStore(
        directory=tmp_path,
        storage_key="financial-transactions",
        notifier=notifications,
    )


@pytest.fixture
def remote_store():
    return FakeRemoteStore()


@pytest.fixture
def alice():
    return UserIdentity(id="user-alice", email="alice@example.com")


@pytest.fixture
def signed_in(alice):
    return StaticSessionResolver(alice)


@pytest.fixture
def signed_out():
    return StaticSessionResolver()
