"""
Data Models Package

This package contains all Pydantic models used in the Finance Tracker.
Transactions from either store must conform to these schemas.
"""

from finance_tracker.models.transaction import (
    EXPENSE_CATEGORIES,
    INCOME_CATEGORIES,
    AMOUNT_DECIMAL_PLACES,
    MAX_AMOUNT,
    MAX_DESCRIPTION_LENGTH,
    FieldCheck,
    Transaction,
    TransactionDraft,
    TransactionType,
    ValidationErrorKind,
    ValidationIssue,
    ValidationResult,
    categories_for,
)
from finance_tracker.models.notification import (
    Notification,
    NotificationBuilder,
    NotificationKind,
    NotificationVariant,
)

__all__ = [
    # Transaction models
    "EXPENSE_CATEGORIES",
    "INCOME_CATEGORIES",
    "AMOUNT_DECIMAL_PLACES",
    "MAX_AMOUNT",
    "MAX_DESCRIPTION_LENGTH",
    "FieldCheck",
    "Transaction",
    "TransactionDraft",
    "TransactionType",
    "ValidationErrorKind",
    "ValidationIssue",
    "ValidationResult",
    "categories_for",
    # Notification models
    "Notification",
    "NotificationBuilder",
    "NotificationKind",
    "NotificationVariant",
]
