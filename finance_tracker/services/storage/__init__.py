"""
Storage Services Package

Provides the remote store interface, its Google Sheets implementation,
and the on-device cache.
"""

from finance_tracker.services.storage.interface import (
    CacheParseError,
    CachePersistError,
    NotFoundError,
    RemoteTransactionStore,
    RemoteUnavailableError,
    StorageError,
)
from finance_tracker.services.storage.local_cache import (
    STORAGE_KEY,
    LocalCacheStore,
)
from finance_tracker.services.storage.google_sheets import (
    TRANSACTION_COLUMNS,
    GoogleSheetsClient,
    GoogleSheetsTransactionStore,
    TransactionRow,
)

__all__ = [
    # Interfaces
    "RemoteTransactionStore",
    # Exceptions
    "CacheParseError",
    "CachePersistError",
    "NotFoundError",
    "RemoteUnavailableError",
    "StorageError",
    # Local cache
    "STORAGE_KEY",
    "LocalCacheStore",
    # Google Sheets implementation
    "TRANSACTION_COLUMNS",
    "GoogleSheetsClient",
    "GoogleSheetsTransactionStore",
    "TransactionRow",
]
