"""
Data Models Package

This package contains all Pydantic models used by the ledger core.
"""

from budget_tracker.models.ledger import (
    CATEGORY_COLORS,
    AuthResult,
    Category,
    CategoryDraft,
    CategoryGroups,
    CategoryTotal,
    CategoryType,
    CategoryUpdate,
    ErrorKind,
    LedgerKind,
    LedgerSnapshot,
    MonthlyEntry,
    MonthSummary,
    OperationResult,
    SortKey,
    Transaction,
    TransactionDraft,
    TransactionFilters,
    TransactionType,
    TransactionUpdate,
    TypeFilter,
    UserIdentity,
    ValidationIssue,
    ValidationResult,
    YearSummary,
    default_category_color,
)
from budget_tracker.models.events import (
    LedgerEvent,
    LedgerEventBuilder,
    LedgerEventSeverity,
    LedgerEventType,
)

__all__ = [
    # Ledger models
    "CATEGORY_COLORS",
    "AuthResult",
    "Category",
    "CategoryDraft",
    "CategoryGroups",
    "CategoryTotal",
    "CategoryType",
    "CategoryUpdate",
    "ErrorKind",
    "LedgerKind",
    "LedgerSnapshot",
    "MonthlyEntry",
    "MonthSummary",
    "OperationResult",
    "SortKey",
    "Transaction",
    "TransactionDraft",
    "TransactionFilters",
    "TransactionType",
    "TransactionUpdate",
    "TypeFilter",
    "UserIdentity",
    "ValidationIssue",
    "ValidationResult",
    "YearSummary",
    "default_category_color",
    # Event models
    "LedgerEvent",
    "LedgerEventBuilder",
    "LedgerEventSeverity",
    "LedgerEventType",
]
