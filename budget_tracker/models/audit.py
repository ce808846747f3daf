"""
Audit Models for the Budget Tracker

Every state change of the ledger and its registries is recorded as an
AuditEvent. This gives:
1. Traceability of every entry that appears in (or leaves) the ledger
2. A clear record of which entries were generated automatically
3. Debugging information when storage misbehaves

DESIGN DECISION: Audit events are append-only. We never delete or modify them.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Ledger
    ENTRY_ADDED = "entry_added"
    ENTRY_DELETED = "entry_deleted"

    # Import
    IMPORT_COMPLETED = "import_completed"
    IMPORT_REJECTED = "import_rejected"
    IMPORT_ROW_SKIPPED = "import_row_skipped"

    # Recurrence
    INCOME_MATERIALIZED = "income_materialized"

    # Registries and goals
    REGISTRY_CHANGED = "registry_changed"

    # Persistence
    STATE_LOADED = "state_loaded"
    STATE_SAVED = "state_saved"
    STORAGE_ERROR = "storage_error"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'entry', 'subscription', 'goal')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one import batch)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.entry_added(entry_id, "expense", "40.00")
        event = AuditEventBuilder.income_materialized(entry_id, rule_id, "500")
    """

    @staticmethod
    def entry_added(
        entry_id: str,
        kind: str,
        amount: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTRY_ADDED,
            entity_type="entry",
            entity_id=entry_id,
            correlation_id=correlation_id,
            description=f"{kind.capitalize()} of ${amount} added",
            details={
                "kind": kind,
                "amount": amount,
            },
            is_user_action=True,
        )

    @staticmethod
    def entry_deleted(
        entry_id: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTRY_DELETED,
            entity_type="entry",
            entity_id=entry_id,
            correlation_id=correlation_id,
            description="Entry removed from the ledger",
            is_user_action=True,
        )

    @staticmethod
    def import_completed(
        accepted: int,
        skipped: int,
        status: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.IMPORT_COMPLETED,
            severity=AuditSeverity.WARNING if skipped else AuditSeverity.INFO,
            entity_type="import",
            correlation_id=correlation_id,
            description=f"Import finished: {accepted} entries imported, {skipped} rows skipped",
            details={
                "accepted": accepted,
                "skipped": skipped,
                "status": status,
            },
            is_user_action=True,
        )

    @staticmethod
    def import_rejected(
        reason: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.IMPORT_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="import",
            correlation_id=correlation_id,
            description="Import batch rejected",
            error_message=reason,
            is_user_action=True,
        )

    @staticmethod
    def import_row_skipped(
        row_number: int,
        message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.IMPORT_ROW_SKIPPED,
            severity=AuditSeverity.WARNING,
            entity_type="import",
            correlation_id=correlation_id,
            description=f"Skipping row {row_number}: {message}",
            details={
                "row_number": row_number,
            },
        )

    @staticmethod
    def income_materialized(
        entry_id: str,
        rule_id: str,
        amount: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INCOME_MATERIALIZED,
            entity_type="entry",
            entity_id=entry_id,
            correlation_id=correlation_id,
            description=f"Scheduled income of ${amount} recorded",
            details={
                "rule_id": rule_id,
                "amount": amount,
            },
        )

    @staticmethod
    def registry_changed(
        registry: str,
        action: str,
        item_id: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REGISTRY_CHANGED,
            entity_type=registry,
            entity_id=item_id,
            correlation_id=correlation_id,
            description=f"{registry}: {action} {item_id}",
            details={
                "action": action,
            },
            is_user_action=True,
        )

    @staticmethod
    def state_loaded(
        counts: dict[str, int],
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STATE_LOADED,
            severity=AuditSeverity.DEBUG,
            correlation_id=correlation_id,
            description="Budget state loaded from storage",
            details=counts,
        )

    @staticmethod
    def state_saved(
        keys: list[str],
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STATE_SAVED,
            severity=AuditSeverity.DEBUG,
            correlation_id=correlation_id,
            description=f"Saved {', '.join(keys)}",
            details={
                "keys": keys,
            },
        )

    @staticmethod
    def storage_error(
        key: str,
        error_message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORAGE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"Storage error for key {key}",
            error_message=error_message,
            details={
                "key": key,
            },
            correlation_id=correlation_id,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
