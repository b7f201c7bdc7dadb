"""Tests for the ledger store: mirror state and mutation wrappers."""

import pytest
from datetime import date
from decimal import Decimal

from budget_tracker.ledger import LedgerStore, RemoteStoreAdapter
from budget_tracker.models.ledger import ErrorKind, LedgerKind, TransactionDraft
from budget_tracker.services.storage import PermissionDeniedError

from conftest import OWNER, FailingDocumentStore

VALID_EXPENSE = {
    "type": "expense",
    "amount": "25.00",
    "category": "Food",
    "date": "2024-03-05",
}


def bound_store(adapter, categories=()):
    """A store with an owner and a delivered categories feed."""
    store = LedgerStore(adapter)
    store.begin_session(OWNER)
    store.apply_snapshot(LedgerKind.CATEGORIES, categories)
    store.apply_snapshot(LedgerKind.TRANSACTIONS, [])
    return store


class TestMirrorState:
    """Tests for how pushes and session hooks change the mirror."""

    def test_initially_empty(self, ledger):
        assert ledger.transactions == ()
        assert ledger.categories == ()
        assert not ledger.loading
        assert ledger.owner_id is None

    def test_loading_until_both_feeds_deliver(self, ledger, make_transaction):
        ledger.begin_session(OWNER)
        assert ledger.loading

        ledger.apply_snapshot(LedgerKind.TRANSACTIONS, [make_transaction()])
        assert ledger.loading

        ledger.apply_snapshot(LedgerKind.CATEGORIES, [])
        assert not ledger.loading
        assert len(ledger.transactions) == 1

    def test_snapshot_replaces_wholesale(self, ledger, make_transaction):
        ledger.begin_session(OWNER)
        ledger.apply_snapshot(LedgerKind.TRANSACTIONS, [make_transaction(id="a"), make_transaction(id="b")])
        ledger.apply_snapshot(LedgerKind.TRANSACTIONS, [make_transaction(id="c")])
        assert [t.id for t in ledger.transactions] == ["c"]

    def test_subscription_error_keeps_last_mirror(self, ledger, make_category):
        ledger.begin_session(OWNER)
        ledger.apply_snapshot(LedgerKind.CATEGORIES, [make_category()])

        ledger.record_subscription_error(LedgerKind.CATEGORIES, "permission-denied")
        ledger.record_subscription_error(LedgerKind.TRANSACTIONS, "permission-denied")

        assert [c.name for c in ledger.categories] == ["Food"]
        assert ledger.error == "permission-denied"
        assert not ledger.loading

    def test_end_session_clears_everything(self, ledger, make_transaction, make_category):
        ledger.begin_session(OWNER)
        ledger.apply_snapshot(LedgerKind.TRANSACTIONS, [make_transaction()])
        ledger.apply_snapshot(LedgerKind.CATEGORIES, [make_category()])

        ledger.end_session()

        assert ledger.transactions == ()
        assert ledger.categories == ()
        assert ledger.owner_id is None
        assert not ledger.loading

    def test_snapshot_is_immutable_view(self, ledger, make_transaction):
        ledger.begin_session(OWNER)
        ledger.apply_snapshot(LedgerKind.TRANSACTIONS, [make_transaction()])
        snap = ledger.snapshot()

        ledger.apply_snapshot(LedgerKind.TRANSACTIONS, [])

        assert len(snap.transactions) == 1
        assert snap.owner_id == OWNER
        assert snap.loading

    def test_listeners_receive_snapshots(self, ledger, make_transaction):
        seen = []
        remove = ledger.add_listener(seen.append)

        ledger.begin_session(OWNER)
        ledger.apply_snapshot(LedgerKind.TRANSACTIONS, [make_transaction()])
        remove()
        ledger.end_session()

        assert len(seen) == 2
        assert len(seen[-1].transactions) == 1

    def test_raising_listener_does_not_block_others(self, ledger, make_transaction):
        def broken(snapshot):
            raise RuntimeError("render failed")

        seen = []
        ledger.add_listener(broken)
        ledger.add_listener(seen.append)

        ledger.begin_session(OWNER)
        ledger.apply_snapshot(LedgerKind.TRANSACTIONS, [make_transaction()])
        ledger.apply_snapshot(LedgerKind.CATEGORIES, [])

        assert len(seen) == 3
        assert not ledger.loading
        assert len(ledger.transactions) == 1

    @pytest.mark.asyncio
    async def test_raising_listener_does_not_fail_mutation(self, adapter, make_category):
        store = bound_store(adapter, [make_category()])

        def broken(snapshot):
            raise RuntimeError("render failed")

        store.add_listener(broken)
        result = await store.create_transaction({**VALID_EXPENSE, "amount": "0"})

        assert result.error_kind == ErrorKind.VALIDATION
        assert store.error == "Please enter a valid amount greater than 0"


class TestTransactionMutations:
    """Tests for transaction create/edit/remove."""

    @pytest.mark.asyncio
    async def test_create_requires_signed_in_user(self):
        failing = FailingDocumentStore()
        store = LedgerStore(RemoteStoreAdapter(failing))

        result = await store.create_transaction(VALID_EXPENSE)

        assert not result.success
        assert result.error_kind == ErrorKind.VALIDATION
        assert "signed in" in store.error
        assert failing.write_attempts == 0

    @pytest.mark.asyncio
    async def test_invalid_amount_never_reaches_store(self, make_category):
        failing = FailingDocumentStore()
        store = bound_store(RemoteStoreAdapter(failing), [make_category()])

        result = await store.create_transaction({**VALID_EXPENSE, "amount": "0"})

        assert result.error_kind == ErrorKind.VALIDATION
        assert store.error == "Please enter a valid amount greater than 0"
        assert failing.write_attempts == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", ["1e30", "12345678901234567890123456789"])
    async def test_oversized_amount_is_reported_not_raised(self, make_category, make_transaction, amount):
        failing = FailingDocumentStore()
        store = bound_store(RemoteStoreAdapter(failing), [make_category()])
        store.apply_snapshot(LedgerKind.TRANSACTIONS, [make_transaction(id="t1")])

        created = await store.create_transaction({**VALID_EXPENSE, "amount": amount})
        edited = await store.edit_transaction("t1", {"amount": amount})
        combined = await store.create_transaction_with_new_category(
            {**VALID_EXPENSE, "amount": amount}, "Travel"
        )

        for result in (created, edited, combined):
            assert result.error_kind == ErrorKind.VALIDATION
            assert result.error == "Please enter a valid amount greater than 0"
        assert store.error == "Please enter a valid amount greater than 0"
        assert failing.write_attempts == 0

    @pytest.mark.asyncio
    async def test_unparsable_input_is_a_validation_error(self, adapter, make_category):
        store = bound_store(adapter, [make_category()])
        result = await store.create_transaction({**VALID_EXPENSE, "type": "transfer"})
        assert result.error_kind == ErrorKind.VALIDATION
        assert store.error.startswith("Invalid type")

    @pytest.mark.asyncio
    async def test_success_does_not_touch_mirror(self, adapter, memory_store, make_category):
        store = bound_store(adapter, [make_category()])

        result = await store.create_transaction(TransactionDraft(**VALID_EXPENSE))

        assert result.success
        assert store.error is None
        assert store.transactions == ()
        stored = memory_store.get_document("transactions", result.id)
        assert stored["userId"] == OWNER
        assert stored["amount"] == 25.0

    @pytest.mark.asyncio
    async def test_store_error_recorded_verbatim(self, make_category):
        failing = FailingDocumentStore(PermissionDeniedError("Missing or insufficient permissions."))
        store = bound_store(RemoteStoreAdapter(failing), [make_category()])

        result = await store.create_transaction(VALID_EXPENSE)

        assert result.error_kind == ErrorKind.PERMISSION
        assert store.error == "Missing or insufficient permissions."
        assert failing.write_attempts == 1

    @pytest.mark.asyncio
    async def test_next_mutation_clears_previous_error(self, adapter, make_category):
        store = bound_store(adapter, [make_category()])
        await store.create_transaction({**VALID_EXPENSE, "category": "Nope"})
        assert store.error is not None

        result = await store.create_transaction(VALID_EXPENSE)

        assert result.success
        assert store.error is None

    @pytest.mark.asyncio
    async def test_clear_error(self, adapter):
        store = LedgerStore(adapter)
        await store.create_transaction(VALID_EXPENSE)
        assert store.error

        store.clear_error()

        assert store.error is None

    @pytest.mark.asyncio
    async def test_edit_validates_against_mirror(self, adapter, make_category, make_transaction):
        store = bound_store(adapter, [make_category(), make_category(id="c2", name="Salary", type="income")])
        store.apply_snapshot(LedgerKind.TRANSACTIONS, [make_transaction(id="t1", category="Food")])

        result = await store.edit_transaction("t1", {"type": "income"})

        assert result.error_kind == ErrorKind.VALIDATION

    @pytest.mark.asyncio
    async def test_edit_passes_partial_through(self, adapter, memory_store, seed, make_category):
        seed.transaction(memory_store, "t1", description="old")
        store = bound_store(adapter, [make_category()])

        result = await store.edit_transaction("t1", {"amount": Decimal("30.00")})

        assert result.success
        assert memory_store.get_document("transactions", "t1")["amount"] == 30.0

    @pytest.mark.asyncio
    async def test_edit_of_missing_document_reports_not_found(self, adapter, make_category):
        store = bound_store(adapter, [make_category()])
        result = await store.edit_transaction("ghost", {"description": "x"})
        assert result.error_kind == ErrorKind.NOT_FOUND
        assert store.error

    @pytest.mark.asyncio
    async def test_remove(self, adapter, memory_store, seed):
        seed.transaction(memory_store, "t1")
        store = LedgerStore(adapter)

        result = await store.remove_transaction("t1")

        assert result.success
        assert memory_store.get_document("transactions", "t1") is None

    @pytest.mark.asyncio
    async def test_remove_without_id(self, ledger):
        result = await ledger.remove_transaction("")
        assert result.error_kind == ErrorKind.VALIDATION


class TestCategoryMutations:
    """Tests for category create/edit/remove."""

    @pytest.mark.asyncio
    async def test_create_category(self, adapter, memory_store):
        store = bound_store(adapter)

        result = await store.create_category({"name": "Salary", "type": "income"})

        assert result.success
        stored = memory_store.get_document("categories", result.id)
        assert stored["color"] == "#4CAF50"

    @pytest.mark.asyncio
    async def test_duplicate_name_rejected(self, adapter, make_category):
        store = bound_store(adapter, [make_category(name="Food")])
        result = await store.create_category({"name": "food", "type": "expense"})
        assert result.error_kind == ErrorKind.VALIDATION
        assert "already exists" in store.error

    @pytest.mark.asyncio
    async def test_rename_does_not_cascade(self, adapter, memory_store, seed):
        seed.category(memory_store, "c1", name="Food")
        seed.transaction(memory_store, "t1", category="Food")
        store = bound_store(adapter)

        result = await store.edit_category("c1", {"name": "Groceries"})

        assert result.success
        assert memory_store.get_document("categories", "c1")["name"] == "Groceries"
        assert memory_store.get_document("transactions", "t1")["category"] == "Food"

    @pytest.mark.asyncio
    async def test_remove_category(self, adapter, memory_store, seed):
        seed.category(memory_store, "c1")
        store = bound_store(adapter)

        result = await store.remove_category("c1")

        assert result.success
        assert memory_store.get_document("categories", "c1") is None


class TestCreateWithNewCategory:
    """Tests for the add-entry flow that creates a category on the fly."""

    @pytest.mark.asyncio
    async def test_creates_category_then_transaction(self, adapter, memory_store):
        store = bound_store(adapter)
        draft = {**VALID_EXPENSE, "category": None}

        result = await store.create_transaction_with_new_category(draft, "  Travel ")

        assert result.success
        stored = memory_store.get_document("transactions", result.id)
        assert stored["category"] == "Travel"

    @pytest.mark.asyncio
    async def test_new_category_takes_transaction_type(self, memory_store, settle):
        adapter = RemoteStoreAdapter(memory_store)
        store = bound_store(adapter)
        seen = []
        adapter.subscribe(LedgerKind.CATEGORIES, OWNER, seen.append)

        await store.create_transaction_with_new_category(
            {**VALID_EXPENSE, "type": "income"}, "Bonus"
        )
        await settle()

        bonus = [c for c in seen[-1] if c.name == "Bonus"][0]
        assert bonus.type.value == "income"
        assert bonus.color == "#4CAF50"

    @pytest.mark.asyncio
    async def test_existing_name_rejected(self, adapter, make_category):
        store = bound_store(adapter, [make_category(name="Food")])
        result = await store.create_transaction_with_new_category(VALID_EXPENSE, "Food")
        assert result.error_kind == ErrorKind.VALIDATION

    @pytest.mark.asyncio
    async def test_failed_category_write_stops_flow(self):
        failing = FailingDocumentStore()
        store = bound_store(RemoteStoreAdapter(failing))

        result = await store.create_transaction_with_new_category(VALID_EXPENSE, "Travel")

        assert not result.success
        assert failing.write_attempts == 1
        assert store.error == "Missing or insufficient permissions."

    @pytest.mark.asyncio
    async def test_missing_type_reported_once(self, adapter):
        store = bound_store(adapter)
        result = await store.create_transaction_with_new_category(
            {"amount": "5.00", "date": date(2024, 3, 1)}, "Travel"
        )
        assert result.error == "Please choose income or expense"
