"""Validation package."""

from finance_tracker.validation.validator import (
    TransactionValidator,
    parse_amount,
    validate_amount,
    validate_category,
    validate_date,
    validate_description,
    validate_transaction,
    validate_type,
)

__all__ = [
    "TransactionValidator",
    "parse_amount",
    "validate_amount",
    "validate_category",
    "validate_date",
    "validate_description",
    "validate_transaction",
    "validate_type",
]
