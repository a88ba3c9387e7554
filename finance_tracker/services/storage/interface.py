"""
Abstract Storage Interface

DESIGN DECISION: The remote backend sits behind an abstract interface.
This allows us to:
1. Swap Google Sheets for a hosted database later
2. Use in-memory fakes for testing the synchronizer
3. Keep the fallback policy independent of any transport

Every operation is scoped to one owner. The store never returns or
touches rows that belong to someone else.
"""

from abc import ABC, abstractmethod

from finance_tracker.models.transaction import Transaction, TransactionDraft


class RemoteTransactionStore(ABC):
    """
    Abstract interface for account-scoped transaction storage.

    Any remote implementation (Google Sheets, PostgreSQL, REST API, ...)
    must implement these methods. Transport failures are raised as
    RemoteUnavailableError.
    """

    @abstractmethod
    async def list_transactions(self, owner_id: str) -> list[Transaction]:
        """
        List every transaction of the owner.

        Returns:
            Transactions ordered by date, newest first
        """
        pass

    @abstractmethod
    async def insert_transaction(
        self,
        owner_id: str,
        draft: TransactionDraft,
    ) -> Transaction:
        """
        Store a new transaction. The store assigns the id.

        Returns:
            The stored transaction, including store-assigned fields
        """
        pass

    @abstractmethod
    async def update_transaction(
        self,
        owner_id: str,
        transaction_id: str,
        draft: TransactionDraft,
    ) -> Transaction:
        """
        Replace the mutable fields of an existing transaction.

        A draft without a date keeps the stored date.

        Raises:
            NotFoundError: If the owner has no transaction with this id
        """
        pass

    @abstractmethod
    async def delete_transaction(self, owner_id: str, transaction_id: str) -> bool:
        """
        Delete a transaction.

        Returns:
            True if a row was removed, False if there was nothing to remove
        """
        pass

    @abstractmethod
    async def clear_transactions(self, owner_id: str) -> int:
        """
        Delete every transaction of the owner.

        Returns:
            Number of rows removed
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class RemoteUnavailableError(StorageError):
    """Remote backend could not be reached or rejected the call."""
    pass


class CacheParseError(StorageError):
    """Local cache content could not be parsed."""
    pass


class CachePersistError(StorageError):
    """Local cache could not be written."""
    pass
