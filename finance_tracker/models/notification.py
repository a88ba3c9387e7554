"""
Notification Models for Finance Tracker

Every store operation tells the user what happened. The exact wording is a
UI concern, but the KIND of outcome is part of the contract: callers rely on
telling apart a remote add from a local-only add, and additive outcomes from
destructive ones (delete/clear).

DESIGN DECISION: Notifications are plain records handed to a sink.
The store never waits on, or reads anything back from, the sink.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from finance_tracker.models.transaction import Transaction, utcnow


class NotificationKind(str, Enum):
    """
    Outcome of an operation, as surfaced to the user.
    """
    # Mutations
    ADDED = "added"
    ADDED_LOCALLY = "added_locally"
    UPDATED = "updated"
    REMOVED = "removed"
    CLEARED = "cleared"

    # Soft failures
    REMOTE_UNAVAILABLE = "remote_unavailable"
    LOAD_FAILED = "load_failed"
    SAVE_FAILED = "save_failed"


class NotificationVariant(str, Enum):
    """How prominently the UI should present a notification."""
    DEFAULT = "default"
    WARNING = "warning"
    DESTRUCTIVE = "destructive"


class Notification(BaseModel):
    """A single user-facing notification."""

    notification_id: UUID = Field(default_factory=uuid4)
    timestamp: datetime = Field(default_factory=utcnow)

    kind: NotificationKind
    variant: NotificationVariant = NotificationVariant.DEFAULT
    title: str = Field(..., max_length=100)
    message: str = Field(..., max_length=500)

    # Operation-specific context (ids, counts, error text)
    details: dict[str, Any] = Field(default_factory=dict)

    @property
    def is_destructive(self) -> bool:
        return self.variant is NotificationVariant.DESTRUCTIVE

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "notification_id": str(self.notification_id),
            "timestamp": self.timestamp.isoformat(),
            "kind": self.kind.value,
            "variant": self.variant.value,
            "title": self.title,
            "message": self.message,
            "details": self.details,
        }


def _describe_amount(transaction: Transaction, currency_symbol: str) -> str:
    label = "Income" if transaction.is_income else "Expense"
    return f"{label} of {currency_symbol} {transaction.amount:.2f}"


class NotificationBuilder:
    """
    Helper class to build notifications for each operation outcome.

    Usage:
        notification = NotificationBuilder.added(transaction)
        notification = NotificationBuilder.removed(transaction_id)
    """

    @staticmethod
    def added(transaction: Transaction, currency_symbol: str = "R$") -> Notification:
        return Notification(
            kind=NotificationKind.ADDED,
            title="Transaction added!",
            message=f"{_describe_amount(transaction, currency_symbol)} was recorded.",
            details={"transaction_id": transaction.id},
        )

    @staticmethod
    def added_locally(transaction: Transaction, currency_symbol: str = "R$") -> Notification:
        return Notification(
            kind=NotificationKind.ADDED_LOCALLY,
            title="Transaction added (local)",
            message=(
                f"{_describe_amount(transaction, currency_symbol)} was saved "
                "on this device only."
            ),
            details={"transaction_id": transaction.id},
        )

    @staticmethod
    def updated(transaction: Transaction) -> Notification:
        return Notification(
            kind=NotificationKind.UPDATED,
            title="Transaction updated!",
            message="The changes were saved successfully.",
            details={"transaction_id": transaction.id},
        )

    @staticmethod
    def removed(transaction_id: str) -> Notification:
        return Notification(
            kind=NotificationKind.REMOVED,
            variant=NotificationVariant.DESTRUCTIVE,
            title="Transaction removed!",
            message="The transaction was deleted.",
            details={"transaction_id": transaction_id},
        )

    @staticmethod
    def cleared(count: int) -> Notification:
        return Notification(
            kind=NotificationKind.CLEARED,
            variant=NotificationVariant.DESTRUCTIVE,
            title="Data cleared!",
            message="All transactions were removed.",
            details={"removed_count": count},
        )

    @staticmethod
    def remote_unavailable(operation: str, error_message: Optional[str] = None) -> Notification:
        return Notification(
            kind=NotificationKind.REMOTE_UNAVAILABLE,
            variant=NotificationVariant.WARNING,
            title="Working offline",
            message="Your account could not be reached. Changes are kept on this device.",
            details={"operation": operation, "error": error_message},
        )

    @staticmethod
    def load_failed(error_message: str) -> Notification:
        return Notification(
            kind=NotificationKind.LOAD_FAILED,
            variant=NotificationVariant.DESTRUCTIVE,
            title="Could not load data",
            message="Saved transactions could not be read. Starting with an empty list.",
            details={"error": error_message},
        )

    @staticmethod
    def save_failed(error_message: str) -> Notification:
        return Notification(
            kind=NotificationKind.SAVE_FAILED,
            variant=NotificationVariant.DESTRUCTIVE,
            title="Could not save data",
            message="Transactions could not be saved on this device.",
            details={"error": error_message},
        )
