"""Ledger event logging package."""

from budget_tracker.events.logger import LedgerEventLogger, configure_logging, get_logger

__all__ = ["LedgerEventLogger", "configure_logging", "get_logger"]
