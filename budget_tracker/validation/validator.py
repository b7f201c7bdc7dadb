"""
Mutation Input Validation

Every create/update is checked here before the store is called. A rejected
input never reaches the store; the caller gets the issues back through the
same error channel a store failure would use.

Checks:
- Required fields (type, amount, category, date; category name and type)
- Amount is a finite positive number with at most two fraction digits
- Transaction category names an existing category eligible for the type
- Category names are unique per user (case-insensitive)

IMPORTANT: Categories are matched by name against the mirror as it is right
now. The two feeds are independent, so a category created a moment ago may
not be mirrored yet; callers that know about such a name pass it in
explicitly.
"""

from decimal import Decimal, InvalidOperation
from typing import Iterable, Optional

from budget_tracker.models.ledger import (
    Category,
    CategoryDraft,
    CategoryUpdate,
    Transaction,
    TransactionDraft,
    TransactionType,
    TransactionUpdate,
    ValidationIssue,
    ValidationResult,
)

CENT = Decimal("0.01")
MAX_CATEGORY_NAME_LENGTH = 100


class LedgerValidator:
    """Validates ledger mutation inputs against the current mirror."""

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    def validate_transaction_draft(
        self,
        draft: TransactionDraft,
        categories: Iterable[Category],
        known_category_names: Iterable[str] = (),
    ) -> ValidationResult:
        """
        Validate a new transaction.

        Args:
            draft: The transaction input
            categories: Categories currently mirrored
            known_category_names: Names accepted even if not mirrored yet
        """
        issues = []

        if draft.type is None:
            issues.append(ValidationIssue(
                field="type",
                issue_type="missing",
                message="Please choose income or expense",
            ))

        issues.extend(self._check_amount(draft.amount))

        if not draft.category:
            issues.append(ValidationIssue(
                field="category",
                issue_type="missing",
                message="Please select a category",
            ))
        elif draft.category not in set(known_category_names):
            issues.extend(self._check_category(draft.category, draft.type, categories))

        if draft.date is None:
            issues.append(ValidationIssue(
                field="date",
                issue_type="missing",
                message="Please select a date",
            ))

        return ValidationResult(issues=issues)

    def validate_transaction_update(
        self,
        update: TransactionUpdate,
        categories: Iterable[Category],
        current: Optional[Transaction] = None,
    ) -> ValidationResult:
        """
        Validate a partial transaction update.

        Only fields present in the update are checked. When the mirrored
        transaction is known, a type change is checked against its category.
        """
        changes = update.changes()
        issues = []

        if not changes:
            return ValidationResult(issues=[ValidationIssue(
                field="update",
                issue_type="empty",
                message="Nothing to update",
            )])

        if "type" in changes and changes["type"] is None:
            issues.append(ValidationIssue(
                field="type",
                issue_type="missing",
                message="Please choose income or expense",
            ))

        if "amount" in changes:
            issues.extend(self._check_amount(changes["amount"]))

        if "date" in changes and changes["date"] is None:
            issues.append(ValidationIssue(
                field="date",
                issue_type="missing",
                message="Please select a date",
            ))

        effective_type = changes.get("type") or (current.type if current else None)
        if "category" in changes:
            if not changes["category"]:
                issues.append(ValidationIssue(
                    field="category",
                    issue_type="missing",
                    message="Please select a category",
                ))
            else:
                issues.extend(self._check_category(changes["category"], effective_type, categories))
        elif changes.get("type") is not None and current is not None:
            # Only flag ineligibility; a category missing from the mirror
            # is left alone since names are weak references
            category = self._find_category(current.category, categories)
            if category is not None and not category.accepts(changes["type"]):
                issues.append(self._ineligible(category.name, changes["type"]))

        return ValidationResult(issues=issues)

    # -------------------------------------------------------------------------
    # Categories
    # -------------------------------------------------------------------------

    def validate_category_draft(
        self,
        draft: CategoryDraft,
        categories: Iterable[Category],
    ) -> ValidationResult:
        issues = self._check_category_name(draft.name, categories)

        if draft.type is None:
            issues.append(ValidationIssue(
                field="type",
                issue_type="missing",
                message="Please choose a category type",
            ))

        return ValidationResult(issues=issues)

    def validate_category_update(
        self,
        category_id: str,
        update: CategoryUpdate,
        categories: Iterable[Category],
    ) -> ValidationResult:
        changes = update.changes()
        if not changes:
            return ValidationResult(issues=[ValidationIssue(
                field="update",
                issue_type="empty",
                message="Nothing to update",
            )])

        issues = []
        if "name" in changes:
            others = [c for c in categories if c.id != category_id]
            issues.extend(self._check_category_name(changes["name"], others))

        if "type" in changes and changes["type"] is None:
            issues.append(ValidationIssue(
                field="type",
                issue_type="missing",
                message="Please choose a category type",
            ))

        return ValidationResult(issues=issues)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _check_amount(self, amount: Optional[Decimal]) -> list[ValidationIssue]:
        invalid = [ValidationIssue(
            field="amount",
            issue_type="invalid_value",
            message="Please enter a valid amount greater than 0",
        )]
        if amount is None or not amount.is_finite() or amount <= 0:
            return invalid
        try:
            cents = amount.quantize(CENT)
        except InvalidOperation:
            # Too many digits to hold to the cent
            return invalid
        if amount != cents:
            return [ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Amount can have at most two decimal places",
            )]
        return []

    def _check_category(
        self,
        name: str,
        transaction_type: Optional[TransactionType],
        categories: Iterable[Category],
    ) -> list[ValidationIssue]:
        category = self._find_category(name, categories)
        if category is None:
            return [ValidationIssue(
                field="category",
                issue_type="unknown_category",
                message=f"Category '{name}' does not exist",
            )]
        if transaction_type is not None and not category.accepts(transaction_type):
            return [self._ineligible(name, transaction_type)]
        return []

    def _check_category_name(
        self,
        name: Optional[str],
        categories: Iterable[Category],
    ) -> list[ValidationIssue]:
        if not name:
            return [ValidationIssue(
                field="name",
                issue_type="missing",
                message="Please enter a category name",
            )]
        if len(name) > MAX_CATEGORY_NAME_LENGTH:
            return [ValidationIssue(
                field="name",
                issue_type="invalid_value",
                message=f"Category name must be at most {MAX_CATEGORY_NAME_LENGTH} characters",
            )]
        folded = name.casefold()
        if any(c.name.casefold() == folded for c in categories):
            return [ValidationIssue(
                field="name",
                issue_type="duplicate",
                message=f"Category '{name}' already exists",
            )]
        return []

    @staticmethod
    def _find_category(name: str, categories: Iterable[Category]) -> Optional[Category]:
        for category in categories:
            if category.name == name:
                return category
        return None

    @staticmethod
    def _ineligible(name: str, transaction_type: TransactionType) -> ValidationIssue:
        type_value = TransactionType(transaction_type).value
        return ValidationIssue(
            field="category",
            issue_type="ineligible_category",
            message=f"Category '{name}' cannot be used for {type_value} transactions",
        )
