"""
Component Wiring for Budget Tracker

Builds the ledger core from settings and owns its lifecycle:

    identity provider ──> SessionBinding ──> RemoteStoreAdapter.subscribe
                                                   │
    caller ──> LedgerStore mutations ──> adapter ──┴──> document store
                     ▲                                      │
                     └──────────── snapshot pushes ─────────┘

DESIGN DECISION: Nothing in the core is a module-level singleton. Every
collaborator is passed in, so tests build a LedgerApp over the in-memory
backends and production builds the same graph over Firestore.
"""

from datetime import date
from typing import Optional

from budget_tracker.config import Settings, get_settings
from budget_tracker.events import LedgerEventLogger, configure_logging, get_logger
from budget_tracker.ledger import LedgerStore, RemoteStoreAdapter, SessionBinding
from budget_tracker.models.ledger import MonthSummary, Transaction
from budget_tracker.services.identity import IdentityProvider, InMemoryIdentityProvider
from budget_tracker.services.storage import DocumentStoreInterface, InMemoryDocumentStore
from budget_tracker.validation import LedgerValidator
from budget_tracker.views import current_month_summary, recent_transactions

logger = get_logger(__name__)


class LedgerApp:
    """
    A wired ledger core for one process.

    Call ``start()`` to begin following the identity provider and ``stop()``
    to tear every subscription down.
    """

    def __init__(
        self,
        document_store: DocumentStoreInterface,
        identity: IdentityProvider,
        settings: Optional[Settings] = None,
        event_logger: Optional[LedgerEventLogger] = None,
    ):
        self._settings = settings or get_settings()
        firestore_settings = self._settings.firestore
        self._ledger_settings = self._settings.ledger
        events = event_logger or LedgerEventLogger()

        self.document_store = document_store
        self.identity = identity
        self.adapter = RemoteStoreAdapter(
            document_store,
            transactions_collection=firestore_settings.transactions_collection,
            categories_collection=firestore_settings.categories_collection,
            owner_field=firestore_settings.owner_field,
            event_logger=events,
        )
        self.store = LedgerStore(self.adapter, LedgerValidator(), events)
        self.session = SessionBinding(identity, self.adapter, self.store, events)
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        if self._running:
            return
        self._running = True
        self.session.start()
        logger.info("ledger_app_started", backend=type(self.document_store).__name__)

    def stop(self) -> None:
        if not self._running:
            return
        self._running = False
        self.session.stop()
        logger.info("ledger_app_stopped")

    # Dashboard shortcuts over the current mirror

    def recent_transactions(self) -> list[Transaction]:
        return recent_transactions(
            self.store.transactions,
            self._ledger_settings.recent_transactions_limit,
        )

    def month_summary(self, reference_date: date) -> MonthSummary:
        return current_month_summary(self.store.transactions, reference_date)


def create_ledger_components(
    identity: Optional[IdentityProvider] = None,
    document_store: Optional[DocumentStoreInterface] = None,
    settings: Optional[Settings] = None,
) -> LedgerApp:
    """
    Factory function to create a LedgerApp from settings.

    Args:
        identity: Identity provider. Defaults to an in-memory provider.
        document_store: Backend to use. When omitted, ``LEDGER_BACKEND``
            selects Firestore or the in-memory store.
        settings: Settings to use instead of the cached environment settings

    Returns:
        An unstarted LedgerApp
    """
    settings = settings or get_settings()
    ledger_settings = settings.ledger
    configure_logging(ledger_settings.log_level, ledger_settings.json_logs)

    if document_store is None:
        if ledger_settings.backend == "memory":
            document_store = InMemoryDocumentStore()
        else:
            # Imported here so the in-memory setup never loads the Google SDKs
            from budget_tracker.services.storage.firestore import (
                FirestoreClient,
                FirestoreDocumentStore,
            )
            document_store = FirestoreDocumentStore(FirestoreClient(settings.firestore))

    logger.info(
        "ledger_components_created",
        backend=type(document_store).__name__,
        identity=type(identity).__name__ if identity else InMemoryIdentityProvider.__name__,
    )
    return LedgerApp(
        document_store,
        identity or InMemoryIdentityProvider(),
        settings=settings,
    )
