"""
Core Data Models for Finance Tracker

These models define the schemas for every transaction flowing through the
tracker, regardless of whether it lives in the remote store or the local
cache. They are designed to:
1. Enforce the entity invariants at runtime (positive amount, known type)
2. Serialize deterministically for the local cache
3. Carry field-level validation results back to the form layer

DESIGN DECISION: Amounts are Decimal in memory and plain JSON numbers on
disk, so the cache stays readable by any client that wrote it before.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Annotated, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PlainSerializer,
)


MAX_DESCRIPTION_LENGTH = 100
MAX_AMOUNT = Decimal("999999.99")
AMOUNT_DECIMAL_PLACES = 2


def utcnow() -> datetime:
    """Timezone-aware current time, used as the default transaction date."""
    return datetime.now(timezone.utc)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """Direction of money movement."""
    INCOME = "income"
    EXPENSE = "expense"


class ValidationErrorKind(str, Enum):
    """
    Reasons a raw form value can be rejected.

    The form layer maps these to its own wording.
    """
    EMPTY_FIELD = "empty_field"
    TOO_LONG = "too_long"
    NOT_A_NUMBER = "not_a_number"
    NOT_POSITIVE = "not_positive"
    TOO_LARGE = "too_large"
    TOO_PRECISE = "too_precise"
    MISSING_CATEGORY = "missing_category"
    INVALID_TYPE = "invalid_type"
    INVALID_DATE = "invalid_date"


# =============================================================================
# CATEGORY VOCABULARY
# =============================================================================

# The entity accepts any non-empty category; these lists are what the
# form layer offers for each transaction type.
INCOME_CATEGORIES: tuple[str, ...] = (
    "Salário",
    "Freelance",
    "Investimentos",
    "Vendas",
    "Outros",
)

EXPENSE_CATEGORIES: tuple[str, ...] = (
    "Alimentação",
    "Transporte",
    "Moradia",
    "Saúde",
    "Educação",
    "Lazer",
    "Compras",
    "Outros",
)


def categories_for(transaction_type: Union[TransactionType, str]) -> tuple[str, ...]:
    """Return the category vocabulary offered for a transaction type."""
    if TransactionType(transaction_type) is TransactionType.INCOME:
        return INCOME_CATEGORIES
    return EXPENSE_CATEGORIES


# =============================================================================
# FIELD TYPES
# =============================================================================

Description = Annotated[
    str,
    Field(min_length=1, max_length=MAX_DESCRIPTION_LENGTH, description="What the money was for"),
]

Amount = Annotated[
    Decimal,
    Field(
        gt=0,
        le=MAX_AMOUNT,
        decimal_places=AMOUNT_DECIMAL_PLACES,
        description="Currency-agnostic magnitude, at most cents",
    ),
    PlainSerializer(float, return_type=float, when_used="json"),
]

Category = Annotated[
    str,
    Field(min_length=1, description="Category label, see categories_for()"),
]


# =============================================================================
# TRANSACTION MODELS
# =============================================================================

class TransactionDraft(BaseModel):
    """
    A transaction as submitted by the form layer, before a store assigns an id.

    `date` is optional: a new transaction without one is dated "now", and
    an edit without one keeps the date already stored.
    """
    model_config = ConfigDict(str_strip_whitespace=True, populate_by_name=True)

    description: Description
    amount: Amount
    type: TransactionType
    category: Category
    date: Optional[datetime] = None
    is_recurring: bool = Field(default=False, alias="isRecurring")

    def to_transaction(self, transaction_id: str) -> "Transaction":
        """Materialize the draft as a new transaction with the given id."""
        return Transaction(
            id=transaction_id,
            description=self.description,
            amount=self.amount,
            type=self.type,
            category=self.category,
            date=self.date or utcnow(),
            is_recurring=self.is_recurring,
        )


class Transaction(BaseModel):
    """
    A stored income or expense record.

    CRITICAL: `id` is assigned by whichever store created the record and
    never changes afterwards. Use `with_changes()` to edit everything else.
    """
    model_config = ConfigDict(str_strip_whitespace=True, populate_by_name=True)

    id: str = Field(
        ...,
        min_length=1,
        description="Opaque identifier assigned by the creating store"
    )
    description: Description
    amount: Amount
    type: TransactionType
    category: Category
    date: datetime = Field(
        default_factory=utcnow,
        description="When the transaction happened (ISO-8601)"
    )
    is_recurring: bool = Field(
        default=False,
        alias="isRecurring",
        description="Informational monthly-repeat flag"
    )

    @property
    def is_income(self) -> bool:
        return self.type is TransactionType.INCOME

    def with_changes(self, draft: TransactionDraft) -> "Transaction":
        """Return a copy with every mutable field replaced by the draft's."""
        return Transaction(
            id=self.id,
            description=draft.description,
            amount=draft.amount,
            type=draft.type,
            category=draft.category,
            date=draft.date or self.date,
            is_recurring=draft.is_recurring,
        )

    def to_draft(self) -> TransactionDraft:
        """The editable part of this transaction, e.g. to prefill a form."""
        return TransactionDraft(
            description=self.description,
            amount=self.amount,
            type=self.type,
            category=self.category,
            date=self.date,
            is_recurring=self.is_recurring,
        )

    def falls_in_month(self, year: int, month: int) -> bool:
        """Whether the transaction date is in calendar month `month` (1-12) of `year`."""
        return self.date.year == year and self.date.month == month


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class FieldCheck(BaseModel):
    """Outcome of validating a single raw form value."""

    is_valid: bool
    error: Optional[ValidationErrorKind] = None
    message: Optional[str] = None

    @classmethod
    def ok(cls) -> "FieldCheck":
        return cls(is_valid=True)

    @classmethod
    def fail(cls, error: ValidationErrorKind, message: str) -> "FieldCheck":
        return cls(is_valid=False, error=error, message=message)


class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    error: ValidationErrorKind = Field(
        ...,
        description="Why the value was rejected"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )


class ValidationResult(BaseModel):
    """
    Result of validating a whole submitted record.

    All field problems are collected, never just the first one, so the
    form can show every error at once. `draft` is set only when valid.
    """

    issues: list[ValidationIssue] = Field(default_factory=list)
    draft: Optional[TransactionDraft] = None

    @property
    def is_valid(self) -> bool:
        return not self.issues

    @property
    def has_errors(self) -> bool:
        return bool(self.issues)

    @property
    def error_count(self) -> int:
        return len(self.issues)

    def errors_by_field(self) -> dict[str, str]:
        """First message per field, in the order the fields were checked."""
        errors: dict[str, str] = {}
        for issue in self.issues:
            errors.setdefault(issue.field, issue.message)
        return errors
