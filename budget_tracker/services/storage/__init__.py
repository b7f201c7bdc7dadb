"""
Storage Services Package

Provides the abstract document store contract and its implementations.
Firestore is the production backend; the in-memory store backs tests and
local runs.
"""

from budget_tracker.services.storage.interface import (
    DocumentStoreInterface,
    NotFoundError,
    PermissionDeniedError,
    QuerySpec,
    StorageError,
    StoredDocument,
    StoreUnavailableError,
)
from budget_tracker.services.storage.memory import InMemoryDocumentStore

__all__ = [
    # Interface
    "DocumentStoreInterface",
    "QuerySpec",
    "StoredDocument",
    # Exceptions
    "NotFoundError",
    "PermissionDeniedError",
    "StorageError",
    "StoreUnavailableError",
    # Implementations
    "InMemoryDocumentStore",
]
