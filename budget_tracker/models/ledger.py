"""
Core Data Models for Budget Tracker

These models define the schemas for all data flowing through the ledger core.
They are designed to:
1. Enforce the ledger invariants at runtime (positive amounts, known types)
2. Be immutable once mirrored, so derived views can never corrupt the mirror
3. Keep user input (drafts) separate from stored records

DESIGN DECISION: Mutation inputs are modelled as drafts with every field
optional. Missing or invalid input is then reported by the validator through
the error channel instead of blowing up in the caller.
"""

import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """Direction of money for a transaction."""
    INCOME = "income"
    EXPENSE = "expense"


class CategoryType(str, Enum):
    """
    Which transaction types a category may be used for.

    BOTH categories are eligible for income and expense transactions.
    """
    INCOME = "income"
    EXPENSE = "expense"
    BOTH = "both"


class LedgerKind(str, Enum):
    """The two live feeds that make up a ledger."""
    TRANSACTIONS = "transactions"
    CATEGORIES = "categories"


class TypeFilter(str, Enum):
    """Transaction type filter for the full ledger view."""
    ALL = "all"
    INCOME = "income"
    EXPENSE = "expense"


class SortKey(str, Enum):
    """Sort orders offered by the full ledger view."""
    DATE_DESC = "date-desc"
    DATE_ASC = "date-asc"
    AMOUNT_DESC = "amount-desc"
    AMOUNT_ASC = "amount-asc"
    CATEGORY = "category"


class ErrorKind(str, Enum):
    """Classification of a failed operation."""
    VALIDATION = "validation"      # Rejected locally, no remote call made
    TRANSPORT = "transport"        # Store reported a generic failure
    NOT_FOUND = "not_found"
    PERMISSION = "permission"
    UNAVAILABLE = "unavailable"


# Colors the web client assigns to new categories
CATEGORY_COLORS: dict[CategoryType, str] = {
    CategoryType.INCOME: "#4CAF50",
    CategoryType.EXPENSE: "#f44336",
    CategoryType.BOTH: "#FF9800",
}


def default_category_color(category_type: CategoryType) -> str:
    """Display color for a category of the given type."""
    return CATEGORY_COLORS[CategoryType(category_type)]


def _truncate_to_date(v):
    # Time of day carries no meaning for ledger dates
    if isinstance(v, dt.datetime):
        return v.date()
    return v


# =============================================================================
# MIRRORED RECORDS
# =============================================================================

class Transaction(BaseModel):
    """
    A transaction as delivered by the store.

    Instances are frozen: the mirror hands the same objects to every
    derived view.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: str = Field(..., min_length=1, description="Store-assigned id")
    owner_id: str = Field(..., min_length=1, description="Owning user id")
    type: TransactionType
    amount: Decimal = Field(
        ...,
        gt=0,
        decimal_places=2,
        description="Positive amount in currency units"
    )
    category: str = Field(
        ...,
        min_length=1,
        description="Category name (weak reference to Category.name)"
    )
    date: dt.date = Field(..., description="Calendar date of the transaction")
    description: Optional[str] = None
    created_at: Optional[dt.datetime] = Field(
        default=None,
        description="Server creation instant; audit only, never sorted on"
    )

    @field_validator('date', mode='before')
    @classmethod
    def truncate_date(cls, v):
        return _truncate_to_date(v)


class Category(BaseModel):
    """A user-defined category as delivered by the store."""
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: str = Field(..., min_length=1)
    owner_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=100)
    type: CategoryType
    color: Optional[str] = Field(
        default=None,
        description="Display color token; not used by core logic"
    )
    created_at: Optional[dt.datetime] = None

    def accepts(self, transaction_type: TransactionType) -> bool:
        """Can a transaction of this type be filed under this category?"""
        return self.type == CategoryType.BOTH or self.type.value == TransactionType(transaction_type).value


# =============================================================================
# MUTATION INPUTS
# =============================================================================

class TransactionDraft(BaseModel):
    """
    Input for creating a transaction.

    All fields are optional here; the validator decides what is missing.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    type: Optional[TransactionType] = None
    amount: Optional[Decimal] = None
    category: Optional[str] = None
    date: Optional[dt.date] = None
    description: Optional[str] = Field(default=None, max_length=500)

    @field_validator('date', mode='before')
    @classmethod
    def truncate_date(cls, v):
        return _truncate_to_date(v)

    @field_validator('description')
    @classmethod
    def blank_description_is_none(cls, v: Optional[str]) -> Optional[str]:
        return v or None


class TransactionUpdate(BaseModel):
    """
    Partial update for a transaction.

    Only fields that were explicitly set are written.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    type: Optional[TransactionType] = None
    amount: Optional[Decimal] = None
    category: Optional[str] = None
    date: Optional[dt.date] = None
    description: Optional[str] = Field(default=None, max_length=500)

    @field_validator('date', mode='before')
    @classmethod
    def truncate_date(cls, v):
        return _truncate_to_date(v)

    def changes(self) -> dict:
        """Fields explicitly set on this update."""
        return self.model_dump(exclude_unset=True)


class CategoryDraft(BaseModel):
    """Input for creating a category."""
    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = None
    type: Optional[CategoryType] = None
    color: Optional[str] = None

    def resolved_color(self) -> Optional[str]:
        """Explicit color, or the default for the category type."""
        if self.color:
            return self.color
        if self.type is None:
            return None
        return default_category_color(self.type)


class CategoryUpdate(BaseModel):
    """Partial update for a category. Renames do not touch transactions."""
    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = None
    type: Optional[CategoryType] = None
    color: Optional[str] = None

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True)


# =============================================================================
# OPERATION RESULTS
# =============================================================================

class OperationResult(BaseModel):
    """
    Outcome of a mutation.

    Success only means the write was accepted by the store. The mirror
    reflects it once the subscription pushes the change.
    """

    success: bool
    id: Optional[str] = Field(
        default=None,
        description="Id of a created document"
    )
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None

    @classmethod
    def ok(cls, id: Optional[str] = None) -> "OperationResult":
        return cls(success=True, id=id)

    @classmethod
    def failure(cls, message: str, kind: ErrorKind = ErrorKind.TRANSPORT) -> "OperationResult":
        return cls(success=False, error=message, error_kind=kind)


class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'unknown_category')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )


class ValidationResult(BaseModel):
    """Result of validating a mutation input."""

    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.issues

    @property
    def message(self) -> Optional[str]:
        """All issue messages joined for display, or None when valid."""
        if not self.issues:
            return None
        return "; ".join(issue.message for issue in self.issues)


# =============================================================================
# VIEW FILTERS AND DERIVED RESULTS
# =============================================================================

class TransactionFilters(BaseModel):
    """
    Filters for the full ledger view.

    The default instance filters nothing.
    """

    type: TypeFilter = TypeFilter.ALL
    category: Optional[str] = Field(
        default=None,
        description="Exact category name; None or 'all' matches every category"
    )
    date_from: Optional[dt.date] = None
    date_to: Optional[dt.date] = None
    search: Optional[str] = Field(
        default=None,
        description="Case-insensitive substring of category or description"
    )

    @field_validator('category')
    @classmethod
    def all_means_no_filter(cls, v: Optional[str]) -> Optional[str]:
        if v is None or v == "all" or v == "":
            return None
        return v

    @field_validator('date_from', 'date_to', mode='before')
    @classmethod
    def truncate_dates(cls, v):
        if v == "":
            return None
        return _truncate_to_date(v)


class MonthSummary(BaseModel):
    """Income/expense totals for one calendar month."""

    income: Decimal = Decimal("0.00")
    expenses: Decimal = Decimal("0.00")
    net: Decimal = Decimal("0.00")


class MonthlyEntry(BaseModel):
    """One month of a yearly series."""

    month: int = Field(..., ge=1, le=12)
    label: str = Field(..., description="Short month name, e.g. 'Jan'")
    income: Decimal
    expenses: Decimal
    net: Decimal = Field(..., description="income - expenses for this month only")


class YearSummary(BaseModel):
    """
    Totals for a yearly series.

    Averages always divide by 12, including for partial years.
    """

    total_income: Decimal
    total_expenses: Decimal
    net: Decimal
    avg_monthly_income: Decimal
    avg_monthly_expenses: Decimal


class CategoryTotal(BaseModel):
    """Roll-up of transactions sharing a category name."""

    category: str
    total: Decimal
    count: int = Field(ge=0)


class CategoryGroups(BaseModel):
    """Categories grouped by type, each group in canonical (name) order."""

    income: list[Category] = Field(default_factory=list)
    expense: list[Category] = Field(default_factory=list)
    both: list[Category] = Field(default_factory=list)


class LedgerSnapshot(BaseModel):
    """Immutable view of the mirror at one instant."""
    model_config = ConfigDict(frozen=True)

    owner_id: Optional[str] = None
    transactions: tuple[Transaction, ...] = ()
    categories: tuple[Category, ...] = ()
    loading: bool = False
    error: Optional[str] = None


# =============================================================================
# IDENTITY
# =============================================================================

class UserIdentity(BaseModel):
    """The signed-in user as reported by the identity provider."""
    model_config = ConfigDict(frozen=True)

    uid: str = Field(..., min_length=1)
    email: Optional[str] = None
    display_name: Optional[str] = None


class AuthResult(BaseModel):
    """Outcome of a login/register/logout call."""

    success: bool
    user: Optional[UserIdentity] = None
    error: Optional[str] = None
