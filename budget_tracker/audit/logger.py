"""
Audit Logger

DESIGN DECISION: Every change to the ledger and its registries is logged.
This provides:
1. Complete traceability of automatic and manual entries
2. Debugging capability when storage fails
3. A short in-process history the UI can show

The audit logger:
- Is synchronous, like the rest of the engine
- Never raises from a logging call
- Supports correlation IDs to trace related events
"""

import logging
from collections import deque
from typing import Optional
from uuid import UUID, uuid4

import structlog

from budget_tracker.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity


# Configure structlog for local logging
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
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: str = "INFO") -> None:
    """
    Route structlog output to stderr at the given level.

    structlog hands records to the stdlib logging tree, so the level
    set here decides which audit events are actually emitted.
    """
    logging.basicConfig(format="%(message)s", level=getattr(logging, level.upper()))
    logging.getLogger("budget_tracker").setLevel(level.upper())


def get_logger(name: Optional[str] = None):
    """Return a structlog logger bound to a module name."""
    return structlog.get_logger(name or "budget_tracker")


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. A bounded in-memory history (for the UI)
    """

    def __init__(self, history_size: int = 200):
        """
        Initialize audit logger.

        Args:
            history_size: How many recent events to keep in memory.
        """
        self._logger = get_logger("budget_tracker.audit")
        self._history: deque[AuditEvent] = deque(maxlen=history_size)

    def log(self, event: AuditEvent) -> None:
        """Log an audit event locally and remember it."""
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity == AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        self._history.append(event)

    def recent_events(self, limit: int = 50) -> list[AuditEvent]:
        """Most recent events, newest first."""
        events = list(self._history)[-limit:]
        events.reverse()
        return events

    def log_entry_added(
        self,
        entry_id: str,
        kind: str,
        amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a manually added entry."""
        self.log(AuditEventBuilder.entry_added(
            entry_id=entry_id,
            kind=kind,
            amount=amount,
            correlation_id=correlation_id,
        ))

    def log_entry_deleted(
        self,
        entry_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.entry_deleted(
            entry_id=entry_id,
            correlation_id=correlation_id,
        ))

    def log_import_completed(
        self,
        accepted: int,
        skipped: int,
        status: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.import_completed(
            accepted=accepted,
            skipped=skipped,
            status=status,
            correlation_id=correlation_id,
        ))

    def log_import_rejected(
        self,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.import_rejected(
            reason=reason,
            correlation_id=correlation_id,
        ))

    def log_import_row_skipped(
        self,
        row_number: int,
        message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.import_row_skipped(
            row_number=row_number,
            message=message,
            correlation_id=correlation_id,
        ))

    def log_income_materialized(
        self,
        entry_id: str,
        rule_id: str,
        amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.income_materialized(
            entry_id=entry_id,
            rule_id=rule_id,
            amount=amount,
            correlation_id=correlation_id,
        ))

    def log_registry_changed(
        self,
        registry: str,
        action: str,
        item_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.registry_changed(
            registry=registry,
            action=action,
            item_id=item_id,
            correlation_id=correlation_id,
        ))

    def log_state_loaded(
        self,
        counts: dict[str, int],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.state_loaded(
            counts=counts,
            correlation_id=correlation_id,
        ))

    def log_state_saved(
        self,
        keys: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.state_saved(
            keys=keys,
            correlation_id=correlation_id,
        ))

    def log_storage_error(
        self,
        key: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a storage failure. The caller decides whether to re-raise."""
        self.log(AuditEventBuilder.storage_error(
            key=key,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., an import).
    Pass it through all subsequent operations.
    """
    return uuid4()
