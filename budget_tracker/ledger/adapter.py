"""
Remote Store Adapter

Translates typed ledger operations into document store calls and turns
stored documents back into Transaction/Category models.

GUARANTEES:
- No operation raises; failures come back as OperationResult
- Live queries deliver full, canonically ordered lists (never diffs)
- This module is the only place calendar dates are converted to and from
  stored instants

DATE NORMALIZATION: a calendar date is stored as midnight UTC of that date.
On read an instant is converted to UTC and truncated, and a naive datetime
is taken to already be UTC. A date written and read back is therefore the
same calendar date whatever the local timezone of either process.
"""

from datetime import date, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Callable, Optional, Union

from budget_tracker.events import LedgerEventLogger
from budget_tracker.models.ledger import (
    Category,
    CategoryDraft,
    CategoryUpdate,
    ErrorKind,
    LedgerKind,
    OperationResult,
    Transaction,
    TransactionDraft,
    TransactionUpdate,
)
from budget_tracker.services.storage.interface import (
    DocumentStoreInterface,
    NotFoundError,
    PermissionDeniedError,
    QuerySpec,
    StorageError,
    StoredDocument,
    StoreUnavailableError,
)

CENT = Decimal("0.01")

# Canonical order per kind: (ordering field, descending)
CANONICAL_ORDER: dict[LedgerKind, tuple[str, bool]] = {
    LedgerKind.TRANSACTIONS: ("date", True),
    LedgerKind.CATEGORIES: ("name", False),
}

Unsubscribe = Callable[[], None]


# =============================================================================
# DATE AND AMOUNT NORMALIZATION
# =============================================================================

def coerce_calendar_date(value: Union[date, datetime, str]) -> date:
    """
    The calendar date a caller meant.

    Datetimes keep their own wall-clock date; strings may be ISO dates or
    ISO datetimes.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return date.fromisoformat(text)
        except ValueError:
            return datetime.fromisoformat(text).date()
    raise TypeError(f"Cannot interpret {value!r} as a calendar date")


def to_store_instant(value: Union[date, datetime, str]) -> datetime:
    """Calendar date -> midnight UTC instant for storage."""
    d = coerce_calendar_date(value)
    return datetime(d.year, d.month, d.day, tzinfo=timezone.utc)


def from_store_instant(value: Any) -> date:
    """Stored instant -> calendar date (UTC)."""
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return date.fromisoformat(text)
        except ValueError:
            return from_store_instant(datetime.fromisoformat(text.replace("Z", "+00:00")))
    raise ValueError(f"Unsupported stored date value: {value!r}")


def to_store_amount(amount: Decimal) -> float:
    """Amounts are stored as native numbers, like the web client writes them."""
    return float(amount)


def from_store_amount(value: Any) -> Decimal:
    """Stored number -> Decimal with two fraction digits."""
    if isinstance(value, bool) or value is None:
        raise ValueError(f"Unsupported stored amount: {value!r}")
    try:
        return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValueError(f"Unsupported stored amount: {value!r}")


# =============================================================================
# RECORD NORMALIZATION
# =============================================================================

def normalize_transaction(doc: StoredDocument, owner_field: str = "userId") -> Transaction:
    """
    Build a Transaction from a stored document.

    Raises:
        ValueError: If the document is missing required fields or breaks
            the ledger invariants
    """
    data = doc.data
    if data.get("date") is None:
        raise ValueError("missing date")
    return Transaction(
        id=doc.id,
        owner_id=data.get(owner_field),
        type=data.get("type"),
        amount=from_store_amount(data.get("amount")),
        category=data.get("category") or "",
        date=from_store_instant(data["date"]),
        description=data.get("description") or None,
        created_at=data.get("createdAt"),
    )


def normalize_category(doc: StoredDocument, owner_field: str = "userId") -> Category:
    """Build a Category from a stored document."""
    data = doc.data
    return Category(
        id=doc.id,
        owner_id=data.get(owner_field),
        name=data.get("name"),
        type=data.get("type"),
        color=data.get("color") or None,
        created_at=data.get("createdAt"),
    )


def _error_kind(error: Exception) -> ErrorKind:
    if isinstance(error, NotFoundError):
        return ErrorKind.NOT_FOUND
    if isinstance(error, PermissionDeniedError):
        return ErrorKind.PERMISSION
    if isinstance(error, StoreUnavailableError):
        return ErrorKind.UNAVAILABLE
    return ErrorKind.TRANSPORT


class RemoteStoreAdapter:
    """
    Typed ledger operations on top of a document store.

    Args:
        store: Document store backend
        transactions_collection: Collection holding transactions
        categories_collection: Collection holding categories
        owner_field: Field holding the owner's user id
        event_logger: Where skipped records and failures are logged
    """

    def __init__(
        self,
        store: DocumentStoreInterface,
        transactions_collection: str = "transactions",
        categories_collection: str = "categories",
        owner_field: str = "userId",
        event_logger: Optional[LedgerEventLogger] = None,
    ):
        self._store = store
        self._collections = {
            LedgerKind.TRANSACTIONS: transactions_collection,
            LedgerKind.CATEGORIES: categories_collection,
        }
        self._owner_field = owner_field
        self._events = event_logger or LedgerEventLogger()

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    async def create_transaction(self, owner_id: str, draft: TransactionDraft) -> OperationResult:
        async def write() -> str:
            return await self._store.add_document(
                self._collections[LedgerKind.TRANSACTIONS],
                {
                    self._owner_field: owner_id,
                    "type": draft.type.value,
                    "amount": to_store_amount(draft.amount),
                    "category": draft.category,
                    "date": to_store_instant(draft.date),
                    "description": draft.description,
                },
            )

        return await self._run("create_transaction", write)

    async def update_transaction(
        self,
        transaction_id: str,
        partial: Union[TransactionUpdate, dict],
    ) -> OperationResult:
        async def write() -> None:
            update = TransactionUpdate(**partial) if isinstance(partial, dict) else partial
            await self._store.update_document(
                self._collections[LedgerKind.TRANSACTIONS],
                transaction_id,
                self._transaction_fields(update.changes()),
            )

        return await self._run("update_transaction", write, transaction_id)

    async def delete_transaction(self, transaction_id: str) -> OperationResult:
        async def write() -> None:
            await self._store.delete_document(self._collections[LedgerKind.TRANSACTIONS], transaction_id)

        return await self._run("delete_transaction", write, transaction_id)

    # -------------------------------------------------------------------------
    # Categories
    # -------------------------------------------------------------------------

    async def create_category(self, owner_id: str, draft: CategoryDraft) -> OperationResult:
        async def write() -> str:
            return await self._store.add_document(
                self._collections[LedgerKind.CATEGORIES],
                {
                    self._owner_field: owner_id,
                    "name": draft.name,
                    "type": draft.type.value,
                    "color": draft.resolved_color(),
                },
            )

        return await self._run("create_category", write)

    async def update_category(
        self,
        category_id: str,
        partial: Union[CategoryUpdate, dict],
    ) -> OperationResult:
        async def write() -> None:
            update = CategoryUpdate(**partial) if isinstance(partial, dict) else partial
            changes = update.changes()
            if changes.get("type") is not None:
                changes["type"] = changes["type"].value
            await self._store.update_document(
                self._collections[LedgerKind.CATEGORIES],
                category_id,
                changes,
            )

        return await self._run("update_category", write, category_id)

    async def delete_category(self, category_id: str) -> OperationResult:
        async def write() -> None:
            await self._store.delete_document(self._collections[LedgerKind.CATEGORIES], category_id)

        return await self._run("delete_category", write, category_id)

    # -------------------------------------------------------------------------
    # Live queries
    # -------------------------------------------------------------------------

    def subscribe(
        self,
        kind: LedgerKind,
        owner_id: str,
        on_change: Callable[[list], None],
        on_error: Optional[Callable[[str], None]] = None,
    ) -> Unsubscribe:
        """
        Open a live, owner-filtered query in canonical order.

        ``on_change`` receives the full normalized list on the initial load
        and after every change. Setup failures go to ``on_error`` and a
        no-op unsubscribe is returned.
        """
        kind = LedgerKind(kind)
        order_by, descending = CANONICAL_ORDER[kind]
        query = QuerySpec(
            filter_field=self._owner_field,
            filter_value=owner_id,
            order_by=order_by,
            descending=descending,
        )

        def handle_snapshot(docs: list[StoredDocument]) -> None:
            on_change(self._normalize(kind, docs))

        def handle_error(error: Exception) -> None:
            self._events.log_subscription_failed(owner_id, kind.value, str(error))
            if on_error is not None:
                on_error(str(error))

        try:
            return self._store.watch_query(self._collections[kind], query, handle_snapshot, handle_error)
        except Exception as e:
            handle_error(e)
            return lambda: None

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _normalize(self, kind: LedgerKind, docs: list[StoredDocument]) -> list:
        build = normalize_transaction if kind == LedgerKind.TRANSACTIONS else normalize_category
        records = []
        for doc in docs:
            try:
                records.append(build(doc, self._owner_field))
            except (ValueError, TypeError) as e:
                self._events.log_malformed_record(kind.value, doc.id, str(e))
        return records

    def _transaction_fields(self, changes: dict) -> dict:
        fields = dict(changes)
        if fields.get("type") is not None:
            fields["type"] = fields["type"].value
        if fields.get("amount") is not None:
            fields["amount"] = to_store_amount(fields["amount"])
        if fields.get("date") is not None:
            fields["date"] = to_store_instant(fields["date"])
        return fields

    async def _run(
        self,
        operation: str,
        write: Callable,
        entity_id: Optional[str] = None,
    ) -> OperationResult:
        try:
            new_id = await write()
        except StorageError as e:
            kind = _error_kind(e)
            self._events.log_mutation_failed(operation, str(e), kind.value, entity_id)
            return OperationResult.failure(str(e), kind)
        except Exception as e:
            self._events.log_mutation_failed(operation, str(e), ErrorKind.TRANSPORT.value, entity_id)
            return OperationResult.failure(str(e), ErrorKind.TRANSPORT)

        self._events.log_mutation_succeeded(operation, new_id or entity_id)
        return OperationResult.ok(new_id or entity_id)
