"""
Local Cache Store

The on-device mirror of the full transaction list. One JSON array in one
file, named after a fixed storage key.

DESIGN DECISION: The cache has no notion of owners or partial updates.
Every mutation rewrites the whole list. This keeps the file trivially
consistent and lets any client read it without a schema version.

Failures never propagate:
- Unreadable or malformed content loads as an empty list
- A failed write leaves the in-memory list as it was
Both are logged and reported as notifications.
"""

import os
import tempfile
from pathlib import Path
from typing import Optional, Sequence

import structlog
from pydantic import TypeAdapter, ValidationError

from finance_tracker.config import get_settings
from finance_tracker.models.notification import NotificationBuilder
from finance_tracker.models.transaction import Transaction
from finance_tracker.notifications import NotificationSink, deliver
from finance_tracker.services.storage.interface import (
    CacheParseError,
    CachePersistError,
)


STORAGE_KEY = "financial-transactions"

_transactions_adapter = TypeAdapter(list[Transaction])


class LocalCacheStore:
    """
    File-backed key-value persistence for the transaction list.

    Directory and key default to the LOCAL_CACHE_* settings.
    """

    def __init__(
        self,
        directory: Optional[Path] = None,
        storage_key: Optional[str] = None,
        notifier: Optional[NotificationSink] = None,
    ):
        if directory is None or storage_key is None:
            settings = get_settings().local_cache
            directory = directory if directory is not None else Path(settings.directory)
            storage_key = storage_key or settings.storage_key

        self._path = Path(directory).expanduser() / f"{storage_key}.json"
        self._storage_key = storage_key
        self._notifier = notifier
        self._logger = structlog.get_logger(__name__)

    @property
    def storage_key(self) -> str:
        return self._storage_key

    @property
    def path(self) -> Path:
        return self._path

    def exists(self) -> bool:
        return self._path.exists()

    def _encode(self, transactions: Sequence[Transaction]) -> bytes:
        return _transactions_adapter.dump_json(
            list(transactions),
            by_alias=True,
            indent=2,
        )

    def _decode(self, raw: bytes) -> list[Transaction]:
        try:
            return _transactions_adapter.validate_json(raw)
        except ValidationError as e:
            raise CacheParseError(
                f"Cached transactions are malformed ({e.error_count()} errors)"
            ) from e

    def _read(self) -> Optional[bytes]:
        try:
            raw = self._path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise CacheParseError(f"Cannot read cache file: {e}") from e
        return raw if raw.strip() else None

    def _write(self, payload: bytes) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self._path.parent,
                prefix=f".{self._storage_key}.",
                suffix=".tmp",
            )
            try:
                with os.fdopen(fd, "wb") as handle:
                    handle.write(payload)
                os.replace(tmp_name, self._path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise CachePersistError(f"Cannot write cache file: {e}") from e

    def load(self) -> list[Transaction]:
        """
        Return the last saved list, or an empty list.

        Nothing saved yet, an empty file, and a payload that fails to parse
        all give an empty list. Only the last case is reported.
        """
        try:
            raw = self._read()
            if raw is None:
                return []
            transactions = self._decode(raw)
        except CacheParseError as e:
            self._logger.warning(
                "local_cache_parse_failed",
                path=str(self._path),
                error=str(e),
            )
            deliver(self._notifier, NotificationBuilder.load_failed(str(e)), self._logger)
            return []

        self._logger.debug(
            "local_cache_loaded",
            path=str(self._path),
            count=len(transactions),
        )
        return transactions

    def save(self, transactions: Sequence[Transaction]) -> bool:
        """
        Replace the stored list with `transactions`.

        Returns True if the list is now durable, False if the write failed.
        """
        try:
            self._write(self._encode(transactions))
        except CachePersistError as e:
            self._logger.error(
                "local_cache_save_failed",
                path=str(self._path),
                error=str(e),
            )
            deliver(self._notifier, NotificationBuilder.save_failed(str(e)), self._logger)
            return False

        self._logger.debug(
            "local_cache_saved",
            path=str(self._path),
            count=len(transactions),
        )
        return True
