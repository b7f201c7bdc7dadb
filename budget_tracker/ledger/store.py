"""
Ledger Store

Holds the local mirror of one user's transactions and categories and is the
single entry point for mutations.

RULES:
- Only pushed snapshots change the mirrored sequences. A successful write is
  reflected once the subscription delivers it, never by splicing the written
  record in here.
- Mutations never raise. Every failure, local or remote, lands in ``error``
  and in the returned OperationResult.
- ``loading`` stays true until every active feed has delivered (or failed).
- A listener that raises is logged and skipped; it cannot fail the caller.
"""

from typing import Callable, Iterable, Optional, Union

from pydantic import ValidationError

from budget_tracker.events import LedgerEventLogger
from budget_tracker.ledger.adapter import RemoteStoreAdapter
from budget_tracker.models.ledger import (
    Category,
    CategoryDraft,
    CategoryType,
    CategoryUpdate,
    ErrorKind,
    LedgerKind,
    LedgerSnapshot,
    OperationResult,
    Transaction,
    TransactionDraft,
    TransactionUpdate,
    ValidationIssue,
    ValidationResult,
)
from budget_tracker.validation import LedgerValidator

Listener = Callable[[LedgerSnapshot], None]


def _issues_from_pydantic(error: ValidationError) -> list[ValidationIssue]:
    issues = []
    for err in error.errors():
        field = ".".join(str(part) for part in err.get("loc", ())) or "input"
        issues.append(ValidationIssue(
            field=field,
            issue_type="invalid_value",
            message=f"Invalid {field}: {err.get('msg', 'invalid value')}",
        ))
    return issues


class LedgerStore:
    """
    In-memory mirror of the signed-in user's ledger.

    Args:
        adapter: Remote store adapter used for writes
        validator: Local input validation
        event_logger: Structured event logger
    """

    def __init__(
        self,
        adapter: RemoteStoreAdapter,
        validator: Optional[LedgerValidator] = None,
        event_logger: Optional[LedgerEventLogger] = None,
    ):
        self._adapter = adapter
        self._validator = validator or LedgerValidator()
        self._events = event_logger or LedgerEventLogger()

        self._owner_id: Optional[str] = None
        self._transactions: tuple[Transaction, ...] = ()
        self._categories: tuple[Category, ...] = ()
        self._pending: set[LedgerKind] = set()
        self._error: Optional[str] = None
        self._listeners: list[Listener] = []

    # =========================================================================
    # READ ACCESSORS
    # =========================================================================

    @property
    def transactions(self) -> tuple[Transaction, ...]:
        """Transactions in canonical order (date descending)."""
        return self._transactions

    @property
    def categories(self) -> tuple[Category, ...]:
        """Categories in canonical order (name ascending)."""
        return self._categories

    @property
    def loading(self) -> bool:
        return bool(self._pending)

    @property
    def error(self) -> Optional[str]:
        return self._error

    @property
    def owner_id(self) -> Optional[str]:
        return self._owner_id

    def snapshot(self) -> LedgerSnapshot:
        return LedgerSnapshot(
            owner_id=self._owner_id,
            transactions=self._transactions,
            categories=self._categories,
            loading=self.loading,
            error=self._error,
        )

    def add_listener(self, listener: Listener) -> Callable[[], None]:
        """
        Call ``listener`` with a fresh snapshot whenever the mirror changes.

        Returns:
            A function that removes the listener
        """
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    # =========================================================================
    # SESSION HOOKS (driven by SessionBinding)
    # =========================================================================

    def begin_session(self, owner_id: str) -> None:
        """Start mirroring a user's ledger; both feeds are pending."""
        self._owner_id = owner_id
        self._transactions = ()
        self._categories = ()
        self._pending = {LedgerKind.TRANSACTIONS, LedgerKind.CATEGORIES}
        self._error = None
        self._notify()

    def apply_snapshot(self, kind: LedgerKind, records: Iterable) -> None:
        """Replace one mirrored sequence with a pushed snapshot."""
        kind = LedgerKind(kind)
        records = tuple(records)
        if kind == LedgerKind.TRANSACTIONS:
            self._transactions = records
        else:
            self._categories = records
        self._pending.discard(kind)
        self._events.log_snapshot_applied(self._owner_id, kind.value, len(records))
        self._notify()

    def record_subscription_error(self, kind: LedgerKind, message: str) -> None:
        """A feed failed: keep the last known mirror, surface the error."""
        self._pending.discard(LedgerKind(kind))
        self._error = message
        self._notify()

    def end_session(self) -> None:
        """Drop the mirror. Nothing is deleted from storage."""
        self._owner_id = None
        self._transactions = ()
        self._categories = ()
        self._pending = set()
        self._error = None
        self._notify()

    # =========================================================================
    # TRANSACTION MUTATIONS
    # =========================================================================

    async def create_transaction(self, draft: Union[TransactionDraft, dict]) -> OperationResult:
        operation = "create_transaction"
        self._error = None

        try:
            draft = self._coerce(TransactionDraft, draft)
        except ValidationError as e:
            return self._reject(operation, _issues_from_pydantic(e))

        if self._owner_id is None:
            return self._reject_not_signed_in(operation)

        validation = self._validator.validate_transaction_draft(draft, self._categories)
        if not validation.is_valid:
            return self._reject(operation, validation.issues)

        return self._finish(await self._adapter.create_transaction(self._owner_id, draft))

    async def edit_transaction(
        self,
        transaction_id: str,
        partial: Union[TransactionUpdate, dict],
    ) -> OperationResult:
        operation = "edit_transaction"
        self._error = None

        if not transaction_id:
            return self._reject(operation, [self._missing_id("transaction")])
        try:
            update = self._coerce(TransactionUpdate, partial)
        except ValidationError as e:
            return self._reject(operation, _issues_from_pydantic(e))

        current = next((t for t in self._transactions if t.id == transaction_id), None)
        validation = self._validator.validate_transaction_update(update, self._categories, current)
        if not validation.is_valid:
            return self._reject(operation, validation.issues)

        return self._finish(await self._adapter.update_transaction(transaction_id, update))

    async def remove_transaction(self, transaction_id: str) -> OperationResult:
        self._error = None
        if not transaction_id:
            return self._reject("remove_transaction", [self._missing_id("transaction")])
        return self._finish(await self._adapter.delete_transaction(transaction_id))

    async def create_transaction_with_new_category(
        self,
        draft: Union[TransactionDraft, dict],
        category_name: str,
    ) -> OperationResult:
        """
        Create a category named ``category_name`` and a transaction filed
        under it.

        The category takes the transaction's type and the default color for
        that type. The transaction is validated as if the new category were
        already mirrored. Nothing is written for the transaction if the
        category write fails.

        Returns:
            The result of the transaction write, or of the first failure
        """
        operation = "create_transaction_with_new_category"
        self._error = None

        try:
            draft = self._coerce(TransactionDraft, draft)
        except ValidationError as e:
            return self._reject(operation, _issues_from_pydantic(e))

        if self._owner_id is None:
            return self._reject_not_signed_in(operation)

        name = (category_name or "").strip()
        draft = draft.model_copy(update={"category": name or None})

        issues = list(self._validator.validate_transaction_draft(
            draft, self._categories, known_category_names=[name] if name else []
        ).issues)
        category_draft = CategoryDraft(
            name=name or None,
            type=CategoryType(draft.type.value) if draft.type is not None else None,
        )
        # A missing name or type is already reported for the transaction
        issues.extend(
            issue
            for issue in self._validator.validate_category_draft(category_draft, self._categories).issues
            if issue.issue_type != "missing"
        )
        if issues:
            return self._reject(operation, issues)

        owner_id = self._owner_id
        category_result = await self._adapter.create_category(owner_id, category_draft)
        if not category_result.success:
            return self._finish(category_result)

        return self._finish(await self._adapter.create_transaction(owner_id, draft))

    # =========================================================================
    # CATEGORY MUTATIONS
    # =========================================================================

    async def create_category(self, draft: Union[CategoryDraft, dict]) -> OperationResult:
        operation = "create_category"
        self._error = None

        try:
            draft = self._coerce(CategoryDraft, draft)
        except ValidationError as e:
            return self._reject(operation, _issues_from_pydantic(e))

        if self._owner_id is None:
            return self._reject_not_signed_in(operation)

        validation = self._validator.validate_category_draft(draft, self._categories)
        if not validation.is_valid:
            return self._reject(operation, validation.issues)

        return self._finish(await self._adapter.create_category(self._owner_id, draft))

    async def edit_category(
        self,
        category_id: str,
        partial: Union[CategoryUpdate, dict],
    ) -> OperationResult:
        operation = "edit_category"
        self._error = None

        if not category_id:
            return self._reject(operation, [self._missing_id("category")])
        try:
            update = self._coerce(CategoryUpdate, partial)
        except ValidationError as e:
            return self._reject(operation, _issues_from_pydantic(e))

        validation = self._validator.validate_category_update(category_id, update, self._categories)
        if not validation.is_valid:
            return self._reject(operation, validation.issues)

        return self._finish(await self._adapter.update_category(category_id, update))

    async def remove_category(self, category_id: str) -> OperationResult:
        self._error = None
        if not category_id:
            return self._reject("remove_category", [self._missing_id("category")])
        return self._finish(await self._adapter.delete_category(category_id))

    def clear_error(self) -> None:
        if self._error is not None:
            self._error = None
            self._notify()

    # =========================================================================
    # HELPERS
    # =========================================================================

    @staticmethod
    def _coerce(model_cls, value):
        if isinstance(value, model_cls):
            return value
        return model_cls.model_validate(value or {})

    @staticmethod
    def _missing_id(entity: str) -> ValidationIssue:
        return ValidationIssue(
            field="id",
            issue_type="missing",
            message=f"Missing {entity} id",
        )

    def _reject_not_signed_in(self, operation: str) -> OperationResult:
        return self._reject(operation, [ValidationIssue(
            field="owner",
            issue_type="not_signed_in",
            message="You must be signed in to do that",
        )])

    def _reject(self, operation: str, issues: list[ValidationIssue]) -> OperationResult:
        message = ValidationResult(issues=issues).message or "Invalid input"
        self._events.log_validation_failed(operation, [issue.model_dump() for issue in issues])
        self._error = message
        self._notify()
        return OperationResult.failure(message, ErrorKind.VALIDATION)

    def _finish(self, result: OperationResult) -> OperationResult:
        if not result.success:
            self._error = result.error
            self._notify()
        return result

    def _notify(self) -> None:
        if not self._listeners:
            return
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            # A failing listener must not abort the mutation or snapshot
            # that triggered the notification
            try:
                listener(snapshot)
            except Exception as e:
                self._events.log_listener_failed(self._owner_id, f"{type(e).__name__}: {e}")
