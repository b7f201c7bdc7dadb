"""
Ledger Event Logger

Every significant ledger action is written to the structured log:
snapshots applied or dropped, subscription failures, mutation outcomes and
session transitions. Correlating these by owner id is usually enough to
reconstruct a re-binding race after the fact.
"""

import logging
from typing import Optional

import structlog

from budget_tracker.models.events import (
    LedgerEvent,
    LedgerEventBuilder,
    LedgerEventSeverity,
)


def configure_logging(level: str = "INFO", json_logs: bool = True) -> None:
    """
    Configure structlog on top of the standard library logger.

    Safe to call more than once; the last call wins.
    """
    logging.basicConfig(format="%(message)s", level=getattr(logging, level.upper(), logging.INFO))
    logging.getLogger().setLevel(getattr(logging, level.upper(), logging.INFO))

    renderer = (
        structlog.processors.JSONRenderer()
        if json_logs
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


configure_logging()


def get_logger(name: Optional[str] = None):
    """Module-level structlog logger."""
    return structlog.get_logger(name)


class LedgerEventLogger:
    """
    Central event logging service for the ledger core.

    One instance is shared by the adapter, the store and the session
    binding so their events land in a single stream.
    """

    def __init__(self, name: str = "budget_tracker.ledger"):
        self._logger = structlog.get_logger(name)

    def log(self, event: LedgerEvent) -> None:
        """Write an event at the level matching its severity."""
        log_dict = event.to_log_dict()

        if event.severity == LedgerEventSeverity.ERROR:
            self._logger.error("ledger_event", **log_dict)
        elif event.severity == LedgerEventSeverity.WARNING:
            self._logger.warning("ledger_event", **log_dict)
        elif event.severity == LedgerEventSeverity.DEBUG:
            self._logger.debug("ledger_event", **log_dict)
        else:
            self._logger.info("ledger_event", **log_dict)

    def log_session_binding(self, owner_id: str) -> None:
        self.log(LedgerEventBuilder.session_binding(owner_id))

    def log_session_bound(self, owner_id: str) -> None:
        self.log(LedgerEventBuilder.session_bound(owner_id))

    def log_session_cleared(self, owner_id: Optional[str]) -> None:
        self.log(LedgerEventBuilder.session_cleared(owner_id))

    def log_snapshot_applied(self, owner_id: Optional[str], kind: str, count: int) -> None:
        self.log(LedgerEventBuilder.snapshot_applied(owner_id, kind, count))

    def log_stale_snapshot_dropped(self, owner_id: Optional[str], kind: str) -> None:
        self.log(LedgerEventBuilder.stale_snapshot_dropped(owner_id, kind))

    def log_subscription_failed(self, owner_id: Optional[str], kind: str, error_message: str) -> None:
        self.log(LedgerEventBuilder.subscription_failed(owner_id, kind, error_message))

    def log_malformed_record(self, kind: str, entity_id: str, reason: str) -> None:
        self.log(LedgerEventBuilder.malformed_record_skipped(kind, entity_id, reason))

    def log_listener_failed(self, owner_id: Optional[str], error_message: str) -> None:
        self.log(LedgerEventBuilder.listener_failed(owner_id, error_message))

    def log_mutation_succeeded(self, operation: str, entity_id: Optional[str] = None) -> None:
        self.log(LedgerEventBuilder.mutation_succeeded(operation, entity_id))

    def log_mutation_failed(
        self,
        operation: str,
        error_message: str,
        error_kind: Optional[str] = None,
        entity_id: Optional[str] = None,
    ) -> None:
        self.log(LedgerEventBuilder.mutation_failed(operation, error_message, error_kind, entity_id))

    def log_validation_failed(self, operation: str, issues: list[dict]) -> None:
        self.log(LedgerEventBuilder.validation_failed(operation, issues))

    def log_auth_failed(self, operation: str, error_message: str) -> None:
        self.log(LedgerEventBuilder.auth_failed(operation, error_message))
