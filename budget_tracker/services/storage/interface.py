"""
Abstract Document Store Interface

DESIGN DECISION: The ledger core talks to a collection-oriented document
store through this interface only. This allows us to:
1. Run against Firestore in production
2. Use the in-memory store for tests and local development
3. Keep typed ledger logic out of the backends

A backend deals in plain documents (id + field dict). Turning those into
Transaction/Category models, and calendar dates into stored instants, is
the adapter's job, not the backend's.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable

from pydantic import BaseModel, ConfigDict, Field


class StoredDocument(BaseModel):
    """A document as returned by a live query."""
    model_config = ConfigDict(frozen=True)

    id: str
    data: dict[str, Any] = Field(default_factory=dict)


class QuerySpec(BaseModel):
    """
    A live query: one equality filter and one ordering field.

    This is all the ledger needs (owner filter, canonical order).
    """
    model_config = ConfigDict(frozen=True)

    filter_field: str
    filter_value: Any
    order_by: str
    descending: bool = False


SnapshotCallback = Callable[[list[StoredDocument]], None]
ErrorCallback = Callable[[Exception], None]
Unsubscribe = Callable[[], None]


class DocumentStoreInterface(ABC):
    """
    Abstract interface for document store operations.

    Any backend (Firestore, in-memory, ...) must implement these methods.
    Write methods raise StorageError subclasses on failure.
    """

    @abstractmethod
    async def add_document(self, collection: str, data: dict[str, Any]) -> str:
        """
        Create a document with a store-assigned id.

        The backend stamps a server-side ``createdAt`` field.

        Returns:
            The new document id

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def update_document(self, collection: str, doc_id: str, updates: dict[str, Any]) -> None:
        """
        Merge the given fields into an existing document.

        Raises:
            NotFoundError: If the document doesn't exist
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def delete_document(self, collection: str, doc_id: str) -> None:
        """
        Delete a document. Deleting a missing document is not an error.

        Raises:
            StorageError: If the delete fails
        """
        pass

    @abstractmethod
    def watch_query(
        self,
        collection: str,
        query: QuerySpec,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> Unsubscribe:
        """
        Open a live query.

        ``on_snapshot`` receives the complete ordered result set on the
        initial load and after every change. Callbacks are delivered on the
        event loop that opened the query, never synchronously from inside a
        write call.

        Returns:
            A function that closes the query. Calling it more than once is
            harmless.

        Raises:
            StorageError: If the query cannot be opened
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Document not found in storage."""
    pass


class PermissionDeniedError(StorageError):
    """The store refused the operation for the current credentials."""
    pass


class StoreUnavailableError(StorageError):
    """Could not reach the storage backend."""
    pass
