"""
Firestore Storage Implementation

DESIGN DECISION: Firestore is the production backend because the web client
already keeps every user's ledger there, and its snapshot listeners give us
the push-based full-result-set feed the mirror is built on.

TRADEOFFS:
- The Python SDK is synchronous; writes run in a worker thread
- Snapshot listeners fire on an SDK thread; callbacks are handed to the
  event loop that opened the query before anything touches the mirror
- The SDK offers no error callback for a listener; failures while reading
  a snapshot are reported through ``on_error``

Connecting is retried with backoff. Individual writes are not: a failed
write is reported to the caller as-is.
"""

import asyncio
import os
from typing import Any, Callable, Optional, TypeVar

import firebase_admin
from firebase_admin import credentials
from firebase_admin import firestore as firebase_firestore
from google.api_core import exceptions as gexc
from google.cloud import firestore
from google.cloud.firestore_v1.base_query import FieldFilter
from tenacity import retry, stop_after_attempt, wait_exponential

from budget_tracker.config import FirestoreSettings, get_settings
from budget_tracker.services.storage.interface import (
    DocumentStoreInterface,
    ErrorCallback,
    NotFoundError,
    PermissionDeniedError,
    QuerySpec,
    SnapshotCallback,
    StorageError,
    StoredDocument,
    StoreUnavailableError,
    Unsubscribe,
)

T = TypeVar("T")

_UNAVAILABLE = (
    gexc.ServiceUnavailable,
    gexc.DeadlineExceeded,
    gexc.Aborted,
    gexc.ResourceExhausted,
    gexc.InternalServerError,
)


def translate_store_error(error: Exception) -> StorageError:
    """Map a Google API exception onto the storage exception hierarchy."""
    if isinstance(error, StorageError):
        return error
    if isinstance(error, gexc.NotFound):
        return NotFoundError(str(error))
    if isinstance(error, (gexc.PermissionDenied, gexc.Unauthenticated)):
        return PermissionDeniedError(str(error))
    if isinstance(error, _UNAVAILABLE):
        return StoreUnavailableError(str(error))
    return StorageError(str(error))


class FirestoreClient:
    """
    Low-level Firestore client wrapper.

    Handles Firebase Admin initialization and retries the connection.
    """

    def __init__(
        self,
        settings: Optional[FirestoreSettings] = None,
        app_name: str = "budget-tracker",
    ):
        self._settings = settings or get_settings().firestore
        self._app_name = app_name
        self._client: Optional[firestore.Client] = None

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> firestore.Client:
        """
        Establish the Firestore client.

        Uses a service account file when configured, otherwise
        Application Default Credentials.
        """
        if self._client is None:
            if self._settings.emulator_host:
                os.environ.setdefault("FIRESTORE_EMULATOR_HOST", self._settings.emulator_host)
            try:
                try:
                    app = firebase_admin.get_app(self._app_name)
                except ValueError:
                    if self._settings.credentials_path:
                        cred = credentials.Certificate(self._settings.credentials_path)
                    else:
                        cred = credentials.ApplicationDefault()
                    options = {"projectId": self._settings.project_id} if self._settings.project_id else None
                    app = firebase_admin.initialize_app(cred, options, name=self._app_name)
                self._client = firebase_firestore.client(app)
            except FileNotFoundError:
                raise StoreUnavailableError(
                    f"Firestore credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise StoreUnavailableError(f"Failed to connect to Firestore: {e}")

        return self._client


class FirestoreDocumentStore(DocumentStoreInterface):
    """
    Firestore implementation of the document store.

    One Firestore collection per ledger kind; documents carry the owner id
    as a plain field.
    """

    def __init__(self, client: Optional[FirestoreClient] = None):
        self._client = client or FirestoreClient()

    async def _call(self, fn: Callable[[], T]) -> T:
        try:
            return await asyncio.to_thread(fn)
        except Exception as e:
            raise translate_store_error(e) from e

    async def add_document(self, collection: str, data: dict[str, Any]) -> str:
        def write() -> str:
            ref = self._client.connect().collection(collection).document()
            ref.set({**data, "createdAt": firestore.SERVER_TIMESTAMP})
            return ref.id

        return await self._call(write)

    async def update_document(self, collection: str, doc_id: str, updates: dict[str, Any]) -> None:
        def write() -> None:
            self._client.connect().collection(collection).document(doc_id).update(updates)

        await self._call(write)

    async def delete_document(self, collection: str, doc_id: str) -> None:
        def write() -> None:
            self._client.connect().collection(collection).document(doc_id).delete()

        await self._call(write)

    def watch_query(
        self,
        collection: str,
        query: QuerySpec,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> Unsubscribe:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        def dispatch(callback: Callable[[Any], None], arg: Any) -> None:
            if loop is not None and not loop.is_closed():
                loop.call_soon_threadsafe(callback, arg)
            else:
                callback(arg)

        def handle_snapshot(docs, changes, read_time) -> None:
            try:
                stored = [
                    StoredDocument(id=doc.id, data=doc.to_dict() or {})
                    for doc in docs
                ]
            except Exception as e:
                dispatch(on_error, translate_store_error(e))
                return
            dispatch(on_snapshot, stored)

        direction = firestore.Query.DESCENDING if query.descending else firestore.Query.ASCENDING
        try:
            live = (
                self._client.connect()
                .collection(collection)
                .where(filter=FieldFilter(query.filter_field, "==", query.filter_value))
                .order_by(query.order_by, direction=direction)
            )
            watch = live.on_snapshot(handle_snapshot)
        except Exception as e:
            raise translate_store_error(e) from e

        closed = False

        def unsubscribe() -> None:
            nonlocal closed
            if closed:
                return
            closed = True
            watch.unsubscribe()

        return unsubscribe
