"""
Audit Models for Salary Tracker

Every store mutation and every call to the AI service is recorded as an
audit event. This gives:
1. Traceability of what changed the ledger and when
2. Debugging information when an extraction or insight call fails
3. A history the user can inspect

Audit logs are append-only. We never delete or modify them.
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
    # Ledger mutations
    ENTRY_SAVED = "entry_saved"
    ENTRY_REJECTED = "entry_rejected"
    ENTRY_DELETED = "entry_deleted"
    LEDGER_CLEARED = "ledger_cleared"

    # Backups
    SNAPSHOT_EXPORTED = "snapshot_exported"
    SNAPSHOT_IMPORTED = "snapshot_imported"
    SNAPSHOT_IMPORT_FAILED = "snapshot_import_failed"

    # AI service
    EXTRACTION_COMPLETED = "extraction_completed"
    EXTRACTION_FAILED = "extraction_failed"
    INSIGHT_GENERATED = "insight_generated"
    INSIGHT_FAILED = "insight_failed"
    INSIGHT_DISCARDED = "insight_discarded"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


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
        description="Type of entity (e.g., 'entry', 'snapshot', 'insight')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one scan-and-save)"
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
        event = AuditEventBuilder.entry_saved(entry_id, source, amount, correlation_id)
        event = AuditEventBuilder.snapshot_import_failed(reason)
    """

    @staticmethod
    def entry_saved(
        entry_id: str,
        source: str,
        amount: float,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTRY_SAVED,
            entity_type="entry",
            entity_id=entry_id,
            correlation_id=correlation_id,
            description=f"Entry saved: {source} - {amount:,.2f}",
            details={
                "source": source,
                "amount": amount,
            },
            is_user_action=True,
        )

    @staticmethod
    def entry_rejected(
        missing_fields: list[str],
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTRY_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="entry",
            correlation_id=correlation_id,
            description=f"Entry not saved, missing: {', '.join(missing_fields)}",
            details={
                "missing_fields": missing_fields,
            },
            is_user_action=True,
        )

    @staticmethod
    def entry_deleted(
        entry_id: str,
        existed: bool,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTRY_DELETED,
            entity_type="entry",
            entity_id=entry_id,
            correlation_id=correlation_id,
            description="Entry deleted" if existed else "Delete requested for unknown entry",
            details={
                "existed": existed,
            },
            is_user_action=True,
        )

    @staticmethod
    def ledger_cleared(
        entry_count: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LEDGER_CLEARED,
            severity=AuditSeverity.WARNING,
            entity_type="ledger",
            correlation_id=correlation_id,
            description=f"Ledger cleared ({entry_count} entries removed)",
            details={
                "entry_count": entry_count,
            },
            is_user_action=True,
        )

    @staticmethod
    def snapshot_exported(
        path: str,
        entry_count: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SNAPSHOT_EXPORTED,
            entity_type="snapshot",
            correlation_id=correlation_id,
            description=f"Backup exported to {path}",
            details={
                "path": path,
                "entry_count": entry_count,
            },
            is_user_action=True,
        )

    @staticmethod
    def snapshot_imported(
        record_count: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SNAPSHOT_IMPORTED,
            severity=AuditSeverity.WARNING,
            entity_type="snapshot",
            correlation_id=correlation_id,
            description=f"Backup imported, ledger replaced with {record_count} records",
            details={
                "record_count": record_count,
            },
            is_user_action=True,
        )

    @staticmethod
    def snapshot_import_failed(
        reason: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SNAPSHOT_IMPORT_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="snapshot",
            correlation_id=correlation_id,
            description="Backup import rejected, existing data kept",
            error_message=reason,
            is_user_action=True,
        )

    @staticmethod
    def extraction_completed(
        mime_type: str,
        fields_found: list[str],
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTRACTION_COMPLETED,
            entity_type="extraction",
            correlation_id=correlation_id,
            description=f"Document read, {len(fields_found)} fields found",
            details={
                "mime_type": mime_type,
                "fields_found": fields_found,
            },
        )

    @staticmethod
    def extraction_failed(
        mime_type: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTRACTION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="extraction",
            correlation_id=correlation_id,
            description="Nothing could be extracted, falling back to manual entry",
            details={
                "mime_type": mime_type,
            },
        )

    @staticmethod
    def insight_generated(
        generation: int,
        line_count: int,
        is_fallback: bool,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=(
                AuditEventType.INSIGHT_FAILED if is_fallback
                else AuditEventType.INSIGHT_GENERATED
            ),
            severity=AuditSeverity.WARNING if is_fallback else AuditSeverity.INFO,
            entity_type="insight",
            entity_id=str(generation),
            correlation_id=correlation_id,
            description=(
                "Insight request failed, fallback shown" if is_fallback
                else f"Insights generated ({line_count} lines)"
            ),
            details={
                "generation": generation,
                "line_count": line_count,
            },
        )

    @staticmethod
    def insight_discarded(
        generation: int,
        latest_generation: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INSIGHT_DISCARDED,
            severity=AuditSeverity.DEBUG,
            entity_type="insight",
            entity_id=str(generation),
            correlation_id=correlation_id,
            description="Late insight result discarded",
            details={
                "generation": generation,
                "latest_generation": latest_generation,
            },
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
