"""
Transaction Synchronizer

This module owns the in-memory transaction list and decides, per
operation, where each change is stored:

1. Remote-backed: a session exists and the remote list loaded at startup
2. Local-only: no session, or the remote store failed at startup

DESIGN DECISION: The mode is an explicit SyncMode, decided once in
initialize() and only changed by a fresh initialize(). A remote failure
during a single operation falls back to the local path for that call
only; the next call tries the remote store again.

Whatever path a mutation takes, the full list is rewritten into the
local cache afterwards, and the user is notified of the outcome.
"""

import time
from enum import Enum
from typing import Optional

import structlog

from finance_tracker.config import get_settings
from finance_tracker.models.notification import Notification, NotificationBuilder
from finance_tracker.models.transaction import Transaction, TransactionDraft
from finance_tracker.notifications import (
    LoggingNotificationSink,
    NotificationSink,
    configure_logging,
    deliver,
)
from finance_tracker.services.session import (
    SessionResolver,
    StaticSessionResolver,
    UserIdentity,
)
from finance_tracker.services.storage import (
    GoogleSheetsClient,
    GoogleSheetsTransactionStore,
    LocalCacheStore,
    RemoteTransactionStore,
)


class SyncMode(str, Enum):
    """Where mutations go for the current session."""
    REMOTE_BACKED = "remote_backed"
    LOCAL_ONLY = "local_only"


class TransactionSynchronizer:
    """
    Dual-mode transaction store.

    Callers read the list through `transactions` and change it only through
    add/update/delete/clear. None of these raise on storage failures:
    remote problems fall back to local storage and cache problems leave
    the in-memory list authoritative.
    """

    def __init__(
        self,
        local_cache: LocalCacheStore,
        remote_store: Optional[RemoteTransactionStore] = None,
        session_resolver: Optional[SessionResolver] = None,
        notifier: Optional[NotificationSink] = None,
        currency_symbol: str = "R$",
    ):
        self._local = local_cache
        self._remote = remote_store
        self._sessions = session_resolver or StaticSessionResolver()
        self._notifier = notifier
        self._currency_symbol = currency_symbol
        self._logger = structlog.get_logger(__name__)

        self._transactions: list[Transaction] = []
        self._mode = SyncMode.LOCAL_ONLY
        self._owner: Optional[UserIdentity] = None
        self._is_loading = True
        self._last_local_id = 0

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def mode(self) -> SyncMode:
        return self._mode

    @property
    def owner(self) -> Optional[UserIdentity]:
        """Identity the list was loaded for; None in local-only mode."""
        return self._owner

    @property
    def is_loading(self) -> bool:
        """True until the first initialize() completes."""
        return self._is_loading

    @property
    def transactions(self) -> tuple[Transaction, ...]:
        """Snapshot of the current list, most recent first."""
        return tuple(self._transactions)

    def get(self, transaction_id: str) -> Optional[Transaction]:
        for transaction in self._transactions:
            if transaction.id == transaction_id:
                return transaction
        return None

    # -------------------------------------------------------------------------
    # Startup
    # -------------------------------------------------------------------------

    async def _resolve_user(self) -> Optional[UserIdentity]:
        try:
            return await self._sessions.current_user()
        except Exception as e:
            self._logger.warning("session_resolution_failed", error=str(e))
            return None

    async def initialize(self) -> SyncMode:
        """
        Load the list and decide the mode for this session.

        Returns the mode that was entered.
        """
        user = await self._resolve_user()

        if user is not None and self._remote is not None:
            try:
                remote_transactions = await self._remote.list_transactions(user.id)
            except Exception as e:
                self._logger.warning(
                    "remote_load_failed",
                    owner_id=user.id,
                    error=str(e),
                )
                self._notify(NotificationBuilder.remote_unavailable("load", str(e)))
            else:
                self._transactions = list(remote_transactions)
                self._mode = SyncMode.REMOTE_BACKED
                self._owner = user
                self._is_loading = False
                self._local.save(self._transactions)
                self._logger.info(
                    "synchronizer_initialized",
                    mode=self._mode.value,
                    owner_id=user.id,
                    count=len(self._transactions),
                )
                return self._mode

        self._transactions = self._local.load()
        self._mode = SyncMode.LOCAL_ONLY
        self._owner = None
        self._is_loading = False
        self._logger.info(
            "synchronizer_initialized",
            mode=self._mode.value,
            has_session=user is not None,
            count=len(self._transactions),
        )
        return self._mode

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _notify(self, notification: Notification) -> None:
        deliver(self._notifier, notification, self._logger)

    async def _remote_owner(self) -> Optional[UserIdentity]:
        """
        The owner to write remotely for, or None if this call must stay local.

        Remote writes need remote-backed mode and a session that still
        resolves to the owner the list was loaded for.
        """
        if self._mode is not SyncMode.REMOTE_BACKED or self._remote is None:
            return None
        user = await self._resolve_user()
        if user is None or self._owner is None or user.id != self._owner.id:
            self._logger.info(
                "remote_skipped_session_changed",
                loaded_owner=self._owner.id if self._owner else None,
                current_owner=user.id if user else None,
            )
            return None
        return user

    def _remote_failed(self, operation: str, error: Exception) -> None:
        self._logger.warning(
            "remote_operation_failed",
            operation=operation,
            error=str(error),
            error_type=type(error).__name__,
        )
        self._notify(NotificationBuilder.remote_unavailable(operation, str(error)))

    def _next_local_id(self) -> str:
        """
        Millisecond timestamp id, bumped so ids stay strictly increasing
        and unique within the current list.
        """
        candidate = max(time.time_ns() // 1_000_000, self._last_local_id + 1)
        existing = {t.id for t in self._transactions}
        while str(candidate) in existing:
            candidate += 1
        self._last_local_id = candidate
        return str(candidate)

    def _persist(self) -> bool:
        return self._local.save(self._transactions)

    def _replace(self, updated: Transaction) -> bool:
        for index, transaction in enumerate(self._transactions):
            if transaction.id == updated.id:
                self._transactions[index] = updated
                return True
        return False

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    async def add(self, draft: TransactionDraft) -> Transaction:
        """
        Store a new transaction and put it first in the list.

        Returns the stored transaction with its assigned id.
        """
        owner = await self._remote_owner()
        if owner is not None:
            try:
                stored = await self._remote.insert_transaction(owner.id, draft)
            except Exception as e:
                self._remote_failed("add", e)
            else:
                self._transactions.insert(0, stored)
                self._persist()
                self._notify(NotificationBuilder.added(stored, self._currency_symbol))
                return stored

        stored = draft.to_transaction(self._next_local_id())
        self._transactions.insert(0, stored)
        self._persist()
        self._notify(NotificationBuilder.added_locally(stored, self._currency_symbol))
        return stored

    async def update(
        self,
        transaction_id: str,
        draft: TransactionDraft,
    ) -> Optional[Transaction]:
        """
        Replace every field except the id of one transaction.

        A draft without a date keeps the current date. Returns the updated
        transaction, or None if the id is not in the list.
        """
        current = self.get(transaction_id)
        if current is None:
            self._logger.warning("update_unknown_transaction", transaction_id=transaction_id)
            return None

        updated: Optional[Transaction] = None
        owner = await self._remote_owner()
        if owner is not None:
            try:
                updated = await self._remote.update_transaction(
                    owner.id, transaction_id, draft
                )
            except Exception as e:
                self._remote_failed("update", e)

        if updated is None:
            updated = current.with_changes(draft)

        self._replace(updated)
        self._persist()
        self._notify(NotificationBuilder.updated(updated))
        return updated

    async def delete(self, transaction_id: str) -> bool:
        """
        Remove one transaction.

        Returns True if it was in the list. Deleting an unknown id is not an
        error.
        """
        owner = await self._remote_owner()
        if owner is not None:
            try:
                await self._remote.delete_transaction(owner.id, transaction_id)
            except Exception as e:
                self._remote_failed("delete", e)

        remaining = [t for t in self._transactions if t.id != transaction_id]
        removed = len(remaining) != len(self._transactions)
        self._transactions = remaining
        self._persist()
        self._notify(NotificationBuilder.removed(transaction_id))
        return removed

    async def clear(self) -> int:
        """
        Remove every transaction of the active owner (or of this device).

        Returns how many transactions were in the list.
        """
        owner = await self._remote_owner()
        if owner is not None:
            try:
                await self._remote.clear_transactions(owner.id)
            except Exception as e:
                self._remote_failed("clear", e)

        count = len(self._transactions)
        self._transactions = []
        self._persist()
        self._notify(NotificationBuilder.cleared(count))
        return count

    # -------------------------------------------------------------------------
    # Derived reads
    # -------------------------------------------------------------------------

    def transactions_in_month(self, year: int, month: int) -> list[Transaction]:
        """
        Transactions dated in calendar `month` of `year`.

        `month` is 1-12 like datetime.month, not 0-11 like the web client's
        getTransactionsByMonth. Each record is matched in its own timezone.
        """
        return [t for t in self._transactions if t.falls_in_month(year, month)]

    def recurring_transactions(self) -> list[Transaction]:
        return [t for t in self._transactions if t.is_recurring]


def create_app_components(
    use_remote: bool = True,
    notifier: Optional[NotificationSink] = None,
) -> TransactionSynchronizer:
    """
    Factory function to build a synchronizer from settings.

    Args:
        use_remote: Whether to set up the Google Sheets store.
                    Set to False to run on the local cache only.
        notifier: Where notifications go. Defaults to the structured log.

    Returns:
        An uninitialized synchronizer; await initialize() before use.
    """
    settings = get_settings()
    configure_logging(settings.app.log_level)
    logger = structlog.get_logger(__name__)
    notifier = notifier or LoggingNotificationSink()

    remote_store = None
    if use_remote:
        try:
            remote_store = GoogleSheetsTransactionStore(GoogleSheetsClient())
        except Exception as e:
            # Remote not configured - continue without it
            logger.warning("remote_store_not_configured", error=str(e))
            remote_store = None

    return TransactionSynchronizer(
        local_cache=LocalCacheStore(notifier=notifier),
        remote_store=remote_store,
        session_resolver=StaticSessionResolver.from_settings(),
        notifier=notifier,
        currency_symbol=settings.app.currency_symbol,
    )
