"""
Ledger Event Models

Significant things that happen to the mirror are described as typed events
and written to the structured log. This gives:
1. Traceability of every snapshot applied to (or dropped from) the mirror
2. A record of every failed mutation with the store's own message
3. Debugging information for re-binding and cancellation races

Events are logged locally only; nothing here is persisted to the store.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class LedgerEventType(str, Enum):
    """Types of events the ledger core emits."""
    # Session
    SESSION_BINDING = "session_binding"
    SESSION_BOUND = "session_bound"
    SESSION_CLEARED = "session_cleared"

    # Subscriptions
    SNAPSHOT_APPLIED = "snapshot_applied"
    STALE_SNAPSHOT_DROPPED = "stale_snapshot_dropped"
    SUBSCRIPTION_FAILED = "subscription_failed"
    MALFORMED_RECORD_SKIPPED = "malformed_record_skipped"
    LISTENER_FAILED = "listener_failed"

    # Mutations
    MUTATION_SUCCEEDED = "mutation_succeeded"
    MUTATION_FAILED = "mutation_failed"
    VALIDATION_FAILED = "validation_failed"

    # Identity
    AUTH_FAILED = "auth_failed"


class LedgerEventSeverity(str, Enum):
    """Severity level for ledger events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class LedgerEvent(BaseModel):
    """A single ledger event."""

    event_id: UUID = Field(default_factory=uuid4)
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )
    event_type: LedgerEventType
    severity: LedgerEventSeverity = LedgerEventSeverity.INFO

    owner_id: Optional[str] = Field(
        default=None,
        description="User whose ledger this event concerns"
    )
    kind: Optional[str] = Field(
        default=None,
        description="'transactions' or 'categories' where applicable"
    )
    entity_id: Optional[str] = None

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "owner_id": self.owner_id,
            "kind": self.kind,
            "entity_id": self.entity_id,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }


class LedgerEventBuilder:
    """
    Helper class to build ledger events with common patterns.

    Usage:
        event = LedgerEventBuilder.snapshot_applied(owner_id, "transactions", 12)
        event = LedgerEventBuilder.mutation_failed("create_category", message)
    """

    @staticmethod
    def session_binding(owner_id: str) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.SESSION_BINDING,
            owner_id=owner_id,
            description="Opening ledger subscriptions",
        )

    @staticmethod
    def session_bound(owner_id: str) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.SESSION_BOUND,
            owner_id=owner_id,
            description="Both ledger feeds delivered their initial snapshot",
        )

    @staticmethod
    def session_cleared(owner_id: Optional[str]) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.SESSION_CLEARED,
            owner_id=owner_id,
            description="Subscriptions closed and mirror cleared",
        )

    @staticmethod
    def snapshot_applied(owner_id: Optional[str], kind: str, count: int) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.SNAPSHOT_APPLIED,
            severity=LedgerEventSeverity.DEBUG,
            owner_id=owner_id,
            kind=kind,
            description=f"Applied {kind} snapshot",
            details={"count": count},
        )

    @staticmethod
    def stale_snapshot_dropped(owner_id: Optional[str], kind: str) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.STALE_SNAPSHOT_DROPPED,
            severity=LedgerEventSeverity.DEBUG,
            owner_id=owner_id,
            kind=kind,
            description=f"Dropped {kind} snapshot from a closed subscription",
        )

    @staticmethod
    def subscription_failed(owner_id: Optional[str], kind: str, error_message: str) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.SUBSCRIPTION_FAILED,
            severity=LedgerEventSeverity.ERROR,
            owner_id=owner_id,
            kind=kind,
            description=f"{kind} subscription failed; keeping last known mirror",
            error_message=error_message,
        )

    @staticmethod
    def listener_failed(owner_id: Optional[str], error_message: str) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.LISTENER_FAILED,
            severity=LedgerEventSeverity.ERROR,
            owner_id=owner_id,
            description="Mirror listener raised; remaining listeners still notified",
            error_message=error_message,
        )

    @staticmethod
    def malformed_record_skipped(kind: str, entity_id: str, reason: str) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.MALFORMED_RECORD_SKIPPED,
            severity=LedgerEventSeverity.WARNING,
            kind=kind,
            entity_id=entity_id,
            description=f"Skipped malformed {kind} document",
            error_message=reason,
        )

    @staticmethod
    def mutation_succeeded(operation: str, entity_id: Optional[str] = None) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.MUTATION_SUCCEEDED,
            entity_id=entity_id,
            description=f"{operation} accepted by store",
            details={"operation": operation},
        )

    @staticmethod
    def mutation_failed(
        operation: str,
        error_message: str,
        error_kind: Optional[str] = None,
        entity_id: Optional[str] = None,
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.MUTATION_FAILED,
            severity=LedgerEventSeverity.ERROR,
            entity_id=entity_id,
            description=f"{operation} failed",
            details={"operation": operation, "error_kind": error_kind},
            error_message=error_message,
        )

    @staticmethod
    def validation_failed(operation: str, issues: list[dict]) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.VALIDATION_FAILED,
            severity=LedgerEventSeverity.WARNING,
            description=f"{operation} rejected before reaching the store",
            details={"operation": operation, "issues": issues},
        )

    @staticmethod
    def auth_failed(operation: str, error_message: str) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.AUTH_FAILED,
            severity=LedgerEventSeverity.WARNING,
            description=f"{operation} failed",
            error_message=error_message,
        )
