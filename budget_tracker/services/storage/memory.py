"""
In-Memory Document Store

A process-local implementation of the document store contract, used for
tests and for running the ledger core without a Firestore project.

It follows the parts of Firestore's behaviour the ledger depends on:
- ids are assigned by the store and ``createdAt`` is stamped on create
- live queries deliver the full ordered result set, asynchronously
- documents lacking the ordering field are left out of ordered queries
- ties in the ordering field are broken by document id
- a snapshot already queued when a query is closed may still be delivered
"""

import asyncio
import copy
import itertools
from datetime import datetime, timezone
from typing import Any, Callable, Optional
from uuid import uuid4

from budget_tracker.services.storage.interface import (
    DocumentStoreInterface,
    ErrorCallback,
    NotFoundError,
    QuerySpec,
    SnapshotCallback,
    StoredDocument,
    Unsubscribe,
)


class _LiveQuery:
    """One open watch on a collection."""

    def __init__(
        self,
        collection: str,
        query: QuerySpec,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
        loop: Optional[asyncio.AbstractEventLoop],
    ):
        self.collection = collection
        self.query = query
        self.on_snapshot = on_snapshot
        self.on_error = on_error
        self.loop = loop
        self.open = True

    def deliver(self, docs: list[StoredDocument]) -> None:
        self.on_snapshot(docs)


class InMemoryDocumentStore(DocumentStoreInterface):
    """
    Document store backed by dictionaries.

    Args:
        clock: Source of server timestamps. Defaults to the current UTC time.
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}
        self._queries: dict[int, _LiveQuery] = {}
        self._query_ids = itertools.count(1)
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def add_document(self, collection: str, data: dict[str, Any]) -> str:
        doc_id = uuid4().hex[:20]
        stored = dict(data)
        stored["createdAt"] = self._clock()
        self._collections.setdefault(collection, {})[doc_id] = stored
        self._notify(collection)
        return doc_id

    async def update_document(self, collection: str, doc_id: str, updates: dict[str, Any]) -> None:
        docs = self._collections.get(collection, {})
        if doc_id not in docs:
            raise NotFoundError(f"No document to update: {collection}/{doc_id}")
        docs[doc_id].update(updates)
        self._notify(collection)

    async def delete_document(self, collection: str, doc_id: str) -> None:
        docs = self._collections.get(collection, {})
        if docs.pop(doc_id, None) is not None:
            self._notify(collection)

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

        query_id = next(self._query_ids)
        live = _LiveQuery(collection, query, on_snapshot, on_error, loop)
        self._queries[query_id] = live
        self._schedule(live)

        def unsubscribe() -> None:
            live.open = False
            self._queries.pop(query_id, None)

        return unsubscribe

    def get_document(self, collection: str, doc_id: str) -> Optional[dict[str, Any]]:
        """Copy of a stored document's fields, or None."""
        doc = self._collections.get(collection, {}).get(doc_id)
        return copy.deepcopy(doc) if doc is not None else None

    def put_document(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        """
        Write a document verbatim under a chosen id.

        Used to seed data written by other clients, including documents
        that would not pass the ledger's own validation.
        """
        self._collections.setdefault(collection, {})[doc_id] = dict(data)
        self._notify(collection)

    @property
    def open_query_count(self) -> int:
        return len(self._queries)

    def _run_query(self, collection: str, query: QuerySpec) -> list[StoredDocument]:
        docs = self._collections.get(collection, {})
        matches = [
            (doc_id, data)
            for doc_id, data in docs.items()
            if data.get(query.filter_field) == query.filter_value
            and data.get(query.order_by) is not None
        ]
        matches.sort(key=lambda item: (item[1][query.order_by], item[0]), reverse=query.descending)
        return [
            StoredDocument(id=doc_id, data=copy.deepcopy(data))
            for doc_id, data in matches
        ]

    def _schedule(self, live: _LiveQuery) -> None:
        # The result set is captured now; delivery happens on the loop
        docs = self._run_query(live.collection, live.query)
        if live.loop is not None:
            live.loop.call_soon(live.deliver, docs)
        else:
            live.deliver(docs)

    def _notify(self, collection: str) -> None:
        for live in list(self._queries.values()):
            if live.open and live.collection == collection:
                self._schedule(live)
