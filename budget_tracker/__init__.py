"""
Budget Tracker - Ledger Core

Keeps a live local mirror of a user's transactions and categories in sync
with a push-based document store, and derives the summaries and reports the
screens are built from.

DESIGN PRINCIPLES:
1. The remote store is the source of truth
2. The mirror only changes when the store pushes a snapshot
3. Failures are reported, never raised, never silently retried
4. Derived views are pure functions of a snapshot
5. Storage backend is swappable
"""

__version__ = "1.0.0"
__author__ = "Budget Tracker Team"
