"""
Main Orchestrator for Salary Tracker

This module ties together all the components and defines the
end-to-end flows for:
1. Entries (draft -> validate -> append -> refetch), backups and resets
2. Scanning (document -> Gemini extraction -> merge into the draft)
3. Insights (entries -> Gemini narrative, newest request wins)

The orchestrator enforces the boundaries:
- Nothing extracted from a document is saved without the user building
  the draft explicitly
- Every mutation is followed by a refetch, so callers always recompute
  analytics from what is actually stored
- Every step is audited
"""

from datetime import date
from pathlib import Path
from typing import Optional, Sequence, Union
from uuid import UUID

from pydantic import BaseModel, Field

from salary_tracker.agents import ExtractionAgent, InsightAgent, InsightReport
from salary_tracker.audit import AuditLogger, create_correlation_id
from salary_tracker.config import get_settings
from salary_tracker.models.entry import (
    EntryDraft,
    EntryValidationError,
    FinancialEntry,
)
from salary_tracker.services.storage import (
    BlobEntryStorage,
    EntryStorageInterface,
    FileBlobStore,
    FormatError,
    JsonLinesAuditStorage,
    StorageError,
)


class ScanResult(BaseModel):
    """Outcome of scanning one document into a draft."""

    draft: EntryDraft
    extracted: bool = Field(
        default=False,
        description="False when nothing was read and the draft is unchanged"
    )
    fields_found: list[str] = Field(default_factory=list)


class EntryFlow:
    """
    Orchestrates changes to the ledger.

    Every mutating call returns (or leaves behind) the refetched ledger,
    so the caller recomputes from stored data rather than patching its
    own copy.
    """

    def __init__(
        self,
        entry_storage: EntryStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = entry_storage
        self._audit_logger = audit_logger

    def list_entries(self) -> list[FinancialEntry]:
        return self._storage.list_entries()

    async def add_entry(
        self,
        draft: EntryDraft,
        correlation_id: Optional[UUID] = None,
    ) -> list[FinancialEntry]:
        """
        Build the draft into an entry, store it and return the ledger.

        Raises:
            EntryValidationError: If amount, source or date is missing.
                Nothing is stored.
            StorageError: If the ledger could not be written
        """
        correlation_id = correlation_id or create_correlation_id()

        try:
            entry = draft.build()
        except EntryValidationError as e:
            if self._audit_logger:
                await self._audit_logger.log_entry_rejected(
                    missing_fields=e.missing_fields,
                    correlation_id=correlation_id,
                )
            raise

        try:
            self._storage.append_entry(entry)
        except StorageError as e:
            if self._audit_logger:
                await self._audit_logger.log_error(
                    error_type="storage",
                    error_message=str(e),
                    details={"entry_id": entry.id},
                    correlation_id=correlation_id,
                )
            raise

        if self._audit_logger:
            await self._audit_logger.log_entry_saved(
                entry_id=entry.id,
                source=entry.source,
                amount=entry.amount,
                correlation_id=correlation_id,
            )

        return self._storage.list_entries()

    async def delete_entry(
        self,
        entry_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> list[FinancialEntry]:
        """Delete an entry by id. Unknown ids are a no-op."""
        correlation_id = correlation_id or create_correlation_id()

        existed = self._storage.remove_entry(entry_id)

        if self._audit_logger:
            await self._audit_logger.log_entry_deleted(
                entry_id=entry_id,
                existed=existed,
                correlation_id=correlation_id,
            )

        return self._storage.list_entries()

    async def export_backup(
        self,
        directory: Path,
        today: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Path:
        """Write salary_backup_<date>.json into directory and return its path."""
        correlation_id = correlation_id or create_correlation_id()

        path = self._storage.export_to_file(directory, today=today)

        if self._audit_logger:
            await self._audit_logger.log_snapshot_exported(
                path=str(path),
                entry_count=len(self._storage.list_entries()),
                correlation_id=correlation_id,
            )
        return path

    async def import_backup(
        self,
        blob: Union[bytes, str],
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """
        Replace the whole ledger with a backup.

        Returns False, leaving the current ledger untouched, when the blob
        is not a JSON array of objects.
        """
        correlation_id = correlation_id or create_correlation_id()

        try:
            self._storage.import_snapshot(blob)
        except FormatError as e:
            if self._audit_logger:
                await self._audit_logger.log_snapshot_import_failed(
                    reason=str(e),
                    correlation_id=correlation_id,
                )
            return False

        if self._audit_logger:
            await self._audit_logger.log_snapshot_imported(
                record_count=len(self._storage.list_entries()),
                correlation_id=correlation_id,
            )
        return True

    async def clear_all(self, correlation_id: Optional[UUID] = None) -> None:
        """Permanently delete every entry. Confirming with the user is the caller's job."""
        correlation_id = correlation_id or create_correlation_id()

        entry_count = len(self._storage.list_entries())
        self._storage.clear()

        if self._audit_logger:
            await self._audit_logger.log_ledger_cleared(
                entry_count=entry_count,
                correlation_id=correlation_id,
            )


class ScanFlow:
    """
    Orchestrates document scanning.

    Flow:
    1. Send the document to the extraction agent
    2. Merge whatever was found into the user's draft
    3. The user reviews and edits, then saves through EntryFlow

    The scan never saves anything on its own.
    """

    def __init__(
        self,
        extraction_agent: ExtractionAgent,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._extraction_agent = extraction_agent
        self._audit_logger = audit_logger

    async def scan(
        self,
        document: bytes,
        mime_type: str,
        draft: Optional[EntryDraft] = None,
        correlation_id: Optional[UUID] = None,
    ) -> ScanResult:
        """
        Read a document into a draft.

        An empty extraction leaves the draft exactly as it was and reports
        extracted=False so the user can fill it in by hand.
        """
        correlation_id = correlation_id or create_correlation_id()
        draft = draft if draft is not None else EntryDraft()

        extracted = await self._extraction_agent.extract(document, mime_type)
        fields_found = sorted(
            extracted.model_dump(exclude_none=True, exclude_defaults=True)
        )

        if self._audit_logger:
            await self._audit_logger.log_extraction(
                mime_type=mime_type,
                fields_found=fields_found,
                correlation_id=correlation_id,
            )

        if extracted.is_empty:
            return ScanResult(draft=draft, extracted=False)

        draft.merge(extracted)
        return ScanResult(draft=draft, extracted=True, fields_found=fields_found)


class InsightFlow:
    """
    Orchestrates insight requests.

    Every refresh takes a generation number. A result is applied only if
    no newer refresh started while it was in flight; older results are
    discarded, so the shown insights always match the latest entries.
    """

    def __init__(
        self,
        insight_agent: InsightAgent,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._insight_agent = insight_agent
        self._audit_logger = audit_logger
        self._generation = 0
        self._latest_report: Optional[InsightReport] = None

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def latest_report(self) -> Optional[InsightReport]:
        """The most recently applied report, None before the first one."""
        return self._latest_report

    async def refresh(
        self,
        entries: Sequence[FinancialEntry],
        correlation_id: Optional[UUID] = None,
    ) -> Optional[InsightReport]:
        """
        Request insights for entries.

        Returns the applied report, or None if a newer refresh started
        before this one finished.
        """
        correlation_id = correlation_id or create_correlation_id()

        self._generation += 1
        generation = self._generation

        report = await self._insight_agent.summarize(list(entries))

        if generation != self._generation:
            if self._audit_logger:
                await self._audit_logger.log_insight_discarded(
                    generation=generation,
                    latest_generation=self._generation,
                    correlation_id=correlation_id,
                )
            return None

        self._latest_report = report

        if self._audit_logger:
            await self._audit_logger.log_insight_generated(
                generation=generation,
                line_count=len(report.lines),
                is_fallback=report.is_fallback,
                correlation_id=correlation_id,
            )
        return report


def create_app_components(
    data_dir: Optional[Path] = None,
) -> tuple[EntryFlow, ScanFlow, InsightFlow]:
    """
    Factory function to create all application components.

    Args:
        data_dir: Directory for the ledger and audit log. Defaults to
                  STORAGE_DATA_DIR.

    Returns:
        (entry_flow, scan_flow, insight_flow)
    """
    settings = get_settings()
    storage_settings = settings.storage
    directory = Path(data_dir) if data_dir else storage_settings.data_dir

    entry_storage = BlobEntryStorage(
        FileBlobStore(directory),
        key=storage_settings.entries_key,
    ).open()

    if storage_settings.persist_audit_log:
        audit_logger = AuditLogger(
            JsonLinesAuditStorage(directory / storage_settings.audit_log_name)
        )
    else:
        audit_logger = AuditLogger()  # Local-only logging

    gemini_settings = settings.gemini
    app_settings = settings.app

    entry_flow = EntryFlow(entry_storage, audit_logger=audit_logger)
    scan_flow = ScanFlow(
        ExtractionAgent(settings=gemini_settings, app_settings=app_settings),
        audit_logger=audit_logger,
    )
    insight_flow = InsightFlow(
        InsightAgent(
            settings=gemini_settings,
            history_size=app_settings.insight_history_size,
        ),
        audit_logger=audit_logger,
    )

    return entry_flow, scan_flow, insight_flow
