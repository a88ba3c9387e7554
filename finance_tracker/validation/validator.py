"""
Transaction Validation

Validates raw form input before it becomes a TransactionDraft.

Two levels:

FIELD CHECKS:
- One function per field, taking the raw value the user typed
- Each returns a FieldCheck with the reason a value was rejected
- Used by the form for inline errors as the user types

FULL-RECORD VALIDATION:
- Runs every field check, plus type and date checks
- Aggregates ALL issues instead of stopping at the first
- Produces the typed TransactionDraft only when nothing failed

IMPORTANT: Validation never raises and never silently fixes values.
It reports problems for the user to correct.
"""

from collections.abc import Mapping
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from pydantic import TypeAdapter, ValidationError

from finance_tracker.models.transaction import (
    AMOUNT_DECIMAL_PLACES,
    MAX_AMOUNT,
    MAX_DESCRIPTION_LENGTH,
    FieldCheck,
    TransactionDraft,
    TransactionType,
    ValidationErrorKind,
    ValidationIssue,
    ValidationResult,
)


_datetime_adapter = TypeAdapter(datetime)

_TRUE_STRINGS = {"true", "1", "yes", "on"}

_CENT = Decimal(1).scaleb(-AMOUNT_DECIMAL_PLACES)


def parse_amount(value: Any) -> Optional[Decimal]:
    """Parse a raw amount into a finite Decimal, or None if it isn't a number."""
    if isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        amount = value
    else:
        try:
            amount = Decimal(str(value).strip())
        except InvalidOperation:
            return None
    if not amount.is_finite():
        return None
    return amount


def validate_description(text: Optional[str]) -> FieldCheck:
    if not isinstance(text, str) or not text.strip():
        return FieldCheck.fail(ValidationErrorKind.EMPTY_FIELD, "Description is required")
    if len(text) > MAX_DESCRIPTION_LENGTH:
        return FieldCheck.fail(
            ValidationErrorKind.TOO_LONG,
            f"Description must be at most {MAX_DESCRIPTION_LENGTH} characters",
        )
    return FieldCheck.ok()


def validate_amount(text: Any) -> FieldCheck:
    """
    Check a raw amount.

    "0" is NOT_POSITIVE, "abc" is NOT_A_NUMBER, "1000000" is TOO_LARGE,
    "1.005" is TOO_PRECISE.
    """
    amount = parse_amount(text)
    if amount is None:
        return FieldCheck.fail(ValidationErrorKind.NOT_A_NUMBER, "Amount must be a valid number")
    if amount <= 0:
        return FieldCheck.fail(ValidationErrorKind.NOT_POSITIVE, "Amount must be positive")
    if amount > MAX_AMOUNT:
        return FieldCheck.fail(
            ValidationErrorKind.TOO_LARGE,
            f"Amount is too large (maximum: {MAX_AMOUNT:,})",
        )
    if amount != amount.quantize(_CENT):
        return FieldCheck.fail(
            ValidationErrorKind.TOO_PRECISE,
            f"Amount can have at most {AMOUNT_DECIMAL_PLACES} decimal places",
        )
    return FieldCheck.ok()


def validate_category(text: Optional[str]) -> FieldCheck:
    if not isinstance(text, str) or not text.strip():
        return FieldCheck.fail(ValidationErrorKind.MISSING_CATEGORY, "Category is required")
    return FieldCheck.ok()


def validate_type(value: Any) -> FieldCheck:
    try:
        TransactionType(value)
    except ValueError:
        return FieldCheck.fail(
            ValidationErrorKind.INVALID_TYPE,
            "Type must be either 'income' or 'expense'",
        )
    return FieldCheck.ok()


def validate_date(value: Any) -> FieldCheck:
    """A missing date is fine (it defaults to now); anything else must be ISO-8601."""
    if value is None or value == "":
        return FieldCheck.ok()
    try:
        _datetime_adapter.validate_python(value)
    except ValidationError:
        return FieldCheck.fail(ValidationErrorKind.INVALID_DATE, "Date is not a valid timestamp")
    return FieldCheck.ok()


def _as_flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return bool(value)


class TransactionValidator:
    """
    Validates a whole submitted record.

    Accepts the raw mapping a form produces (camelCase `isRecurring` or
    snake_case `is_recurring`) and returns a ValidationResult.
    """

    def _check_fields(self, data: Mapping[str, Any]) -> list[ValidationIssue]:
        checks = [
            ("description", validate_description(data.get("description"))),
            ("amount", validate_amount(data.get("amount"))),
            ("type", validate_type(data.get("type"))),
            ("category", validate_category(data.get("category"))),
            ("date", validate_date(data.get("date"))),
        ]
        return [
            ValidationIssue(field=field, error=check.error, message=check.message)
            for field, check in checks
            if not check.is_valid
        ]

    def validate(self, data: Mapping[str, Any]) -> ValidationResult:
        issues = self._check_fields(data)
        if issues:
            return ValidationResult(issues=issues)

        recurring = data.get("isRecurring", data.get("is_recurring", False))
        draft = TransactionDraft(
            description=data["description"],
            amount=parse_amount(data["amount"]).quantize(_CENT),
            type=TransactionType(data["type"]),
            category=data["category"],
            date=data.get("date") or None,
            is_recurring=_as_flag(recurring),
        )
        return ValidationResult(draft=draft)

    def get_user_friendly_summary(self, result: ValidationResult) -> str:
        """
        One line per problem, for forms that show errors in a single block.
        """
        if result.is_valid:
            return "All fields are valid."

        lines = ["Please fix the following:"]
        for field, message in result.errors_by_field().items():
            lines.append(f"   • {field}: {message}")
        return "\n".join(lines)


def validate_transaction(data: Mapping[str, Any]) -> ValidationResult:
    """Validate a raw record with the default validator."""
    return TransactionValidator().validate(data)
