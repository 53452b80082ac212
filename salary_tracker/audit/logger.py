"""
Audit Logger

Every change to the ledger and every call to the extraction or insight
model is recorded as an AuditEvent:
- locally through structlog, as one JSON line per event
- in an AuditStorageInterface when one is configured

Logging never breaks the flow that triggered it. A storage failure is
reported through structlog and log() returns False.

Related events share a correlation ID, created at the start of a user
action (a scan, a save, an import) and passed through every step.
"""

import asyncio
from typing import Optional
from uuid import UUID, uuid4

import structlog

from salary_tracker.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from salary_tracker.services.storage import AuditStorageInterface, StorageError


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


class AuditLogger:
    """Central audit logging service."""

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger(__name__)

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity == AuditSeverity.ERROR:
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity == AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage is None:
            return True

        try:
            return await asyncio.to_thread(self._storage.append_event, event)
        except StorageError as e:
            self._logger.error(
                "audit_storage_failed",
                error=str(e),
                event_id=str(event.event_id),
            )
            return False

    async def log_entry_saved(
        self,
        entry_id: str,
        source: str,
        amount: float,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.entry_saved(
            entry_id=entry_id,
            source=source,
            amount=amount,
            correlation_id=correlation_id,
        ))

    async def log_entry_rejected(
        self,
        missing_fields: list[str],
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.entry_rejected(
            missing_fields=missing_fields,
            correlation_id=correlation_id,
        ))

    async def log_entry_deleted(
        self,
        entry_id: str,
        existed: bool,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.entry_deleted(
            entry_id=entry_id,
            existed=existed,
            correlation_id=correlation_id,
        ))

    async def log_ledger_cleared(
        self,
        entry_count: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.ledger_cleared(
            entry_count=entry_count,
            correlation_id=correlation_id,
        ))

    async def log_snapshot_exported(
        self,
        path: str,
        entry_count: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.snapshot_exported(
            path=path,
            entry_count=entry_count,
            correlation_id=correlation_id,
        ))

    async def log_snapshot_imported(
        self,
        record_count: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.snapshot_imported(
            record_count=record_count,
            correlation_id=correlation_id,
        ))

    async def log_snapshot_import_failed(
        self,
        reason: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.snapshot_import_failed(
            reason=reason,
            correlation_id=correlation_id,
        ))

    async def log_extraction(
        self,
        mime_type: str,
        fields_found: list[str],
        correlation_id: UUID,
    ) -> None:
        """Log an extraction result, as a failure when nothing was found."""
        if fields_found:
            event = AuditEventBuilder.extraction_completed(
                mime_type=mime_type,
                fields_found=fields_found,
                correlation_id=correlation_id,
            )
        else:
            event = AuditEventBuilder.extraction_failed(
                mime_type=mime_type,
                correlation_id=correlation_id,
            )
        await self.log(event)

    async def log_insight_generated(
        self,
        generation: int,
        line_count: int,
        is_fallback: bool,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.insight_generated(
            generation=generation,
            line_count=line_count,
            is_fallback=is_fallback,
            correlation_id=correlation_id,
        ))

    async def log_insight_discarded(
        self,
        generation: int,
        latest_generation: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.insight_discarded(
            generation=generation,
            latest_generation=latest_generation,
            correlation_id=correlation_id,
        ))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., a document scan).
    Pass it through all subsequent operations.
    """
    return uuid4()
