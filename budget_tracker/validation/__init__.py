"""Mutation input validation package."""

from budget_tracker.validation.validator import LedgerValidator

__all__ = ["LedgerValidator"]
