"""
Shared fixtures for the Budget Tracker tests.

Everything runs against the in-memory backends; no network access.
"""

import asyncio
from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from budget_tracker.ledger import LedgerStore, RemoteStoreAdapter, SessionBinding
from budget_tracker.models.ledger import Category, Transaction
from budget_tracker.services.identity import InMemoryIdentityProvider
from budget_tracker.services.storage import InMemoryDocumentStore, StorageError

OWNER = "user-1"


class FailingDocumentStore(InMemoryDocumentStore):
    """In-memory store whose writes fail with a chosen error."""

    def __init__(self, error: Exception = None):
        super().__init__()
        self.error = error or StorageError("Missing or insufficient permissions.")
        self.write_attempts = 0

    async def add_document(self, collection, data):
        self.write_attempts += 1
        raise self.error

    async def update_document(self, collection, doc_id, updates):
        self.write_attempts += 1
        raise self.error

    async def delete_document(self, collection, doc_id):
        self.write_attempts += 1
        raise self.error


@pytest.fixture
def settle():
    """Let queued snapshot deliveries run."""
    async def _settle(rounds: int = 5):
        for _ in range(rounds):
            await asyncio.sleep(0)
    return _settle


@pytest.fixture
def make_transaction():
    def _make(
        id: str = "t1",
        type: str = "expense",
        amount: str = "10.00",
        category: str = "Food",
        date: date = date(2024, 3, 1),
        description: str = None,
        owner_id: str = OWNER,
    ) -> Transaction:
        return Transaction(
            id=id,
            owner_id=owner_id,
            type=type,
            amount=Decimal(amount),
            category=category,
            date=date,
            description=description,
        )
    return _make


@pytest.fixture
def make_category():
    def _make(
        id: str = "c1",
        name: str = "Food",
        type: str = "expense",
        owner_id: str = OWNER,
    ) -> Category:
        return Category(id=id, owner_id=owner_id, name=name, type=type)
    return _make


@pytest.fixture
def seed():
    """Write raw documents the way another client would."""
    def _seed_transaction(store: InMemoryDocumentStore, doc_id: str, **fields):
        data = {
            "userId": OWNER,
            "type": "expense",
            "amount": 10.0,
            "category": "Food",
            "date": datetime(2024, 3, 1, tzinfo=timezone.utc),
            "description": "",
            "createdAt": datetime(2024, 3, 1, 12, tzinfo=timezone.utc),
        }
        data.update(fields)
        store.put_document("transactions", doc_id, data)

    def _seed_category(store: InMemoryDocumentStore, doc_id: str, **fields):
        data = {
            "userId": OWNER,
            "name": "Food",
            "type": "expense",
            "color": "#f44336",
        }
        data.update(fields)
        store.put_document("categories", doc_id, data)

    class Seeder:
        transaction = staticmethod(_seed_transaction)
        category = staticmethod(_seed_category)

    return Seeder


@pytest.fixture
def memory_store():
    return InMemoryDocumentStore()


@pytest.fixture
def adapter(memory_store):
    return RemoteStoreAdapter(memory_store)


@pytest.fixture
def ledger(adapter):
    return LedgerStore(adapter)


@pytest.fixture
def identity():
    return InMemoryIdentityProvider()


@pytest.fixture
def session(identity, adapter, ledger):
    return SessionBinding(identity, adapter, ledger)
