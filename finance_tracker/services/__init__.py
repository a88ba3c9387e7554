"""Services package."""

from finance_tracker.services.session import (
    SessionResolver,
    StaticSessionResolver,
    UserIdentity,
)
from finance_tracker.services.storage import (
    CacheParseError,
    CachePersistError,
    GoogleSheetsClient,
    GoogleSheetsTransactionStore,
    LocalCacheStore,
    NotFoundError,
    RemoteTransactionStore,
    RemoteUnavailableError,
    StorageError,
)

__all__ = [
    # Session
    "SessionResolver",
    "StaticSessionResolver",
    "UserIdentity",
    # Storage services
    "CacheParseError",
    "CachePersistError",
    "GoogleSheetsClient",
    "GoogleSheetsTransactionStore",
    "LocalCacheStore",
    "NotFoundError",
    "RemoteTransactionStore",
    "RemoteUnavailableError",
    "StorageError",
]
