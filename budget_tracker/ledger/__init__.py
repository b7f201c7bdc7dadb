"""Ledger synchronization: adapter, session binding and the mirror store."""

from budget_tracker.ledger.adapter import (
    CANONICAL_ORDER,
    RemoteStoreAdapter,
    from_store_instant,
    normalize_category,
    normalize_transaction,
    to_store_instant,
)
from budget_tracker.ledger.session import SessionBinding, SessionState
from budget_tracker.ledger.store import LedgerStore

__all__ = [
    "CANONICAL_ORDER",
    "RemoteStoreAdapter",
    "from_store_instant",
    "normalize_category",
    "normalize_transaction",
    "to_store_instant",
    "SessionBinding",
    "SessionState",
    "LedgerStore",
]
