"""Services package."""

from budget_tracker.services.identity import (
    IdentityProvider,
    InMemoryIdentityProvider,
)
from budget_tracker.services.storage import (
    DocumentStoreInterface,
    InMemoryDocumentStore,
    NotFoundError,
    PermissionDeniedError,
    QuerySpec,
    StorageError,
    StoredDocument,
    StoreUnavailableError,
)

__all__ = [
    # Identity
    "IdentityProvider",
    "InMemoryIdentityProvider",
    # Storage
    "DocumentStoreInterface",
    "InMemoryDocumentStore",
    "NotFoundError",
    "PermissionDeniedError",
    "QuerySpec",
    "StorageError",
    "StoredDocument",
    "StoreUnavailableError",
]
