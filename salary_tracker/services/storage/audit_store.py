"""
Append-only audit log stored as JSON lines.

One event per line. Lines that cannot be parsed (for example a line cut
short by a crash) are skipped when reading.
"""

from pathlib import Path
from typing import Optional
from uuid import UUID

from pydantic import ValidationError

from salary_tracker.models.audit import AuditEvent
from salary_tracker.services.storage.interface import (
    AuditStorageInterface,
    StorageError,
)


class JsonLinesAuditStorage(AuditStorageInterface):
    """Audit events appended to a .jsonl file."""

    def __init__(self, path: Path):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def append_event(self, event: AuditEvent) -> bool:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._path.open("a", encoding="utf-8") as handle:
                handle.write(event.model_dump_json() + "\n")
        except OSError as e:
            raise StorageError(f"Failed to append audit event: {e}")
        return True

    def _read_events(self) -> list[AuditEvent]:
        try:
            lines = self._path.read_text(encoding="utf-8").splitlines()
        except FileNotFoundError:
            return []
        except OSError as e:
            raise StorageError(f"Failed to read audit log: {e}")

        events = []
        for line in lines:
            if not line.strip():
                continue
            try:
                events.append(AuditEvent.model_validate_json(line))
            except ValidationError:
                continue
        return events

    def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        return [
            event for event in self._read_events()
            if event.correlation_id == correlation_id
        ]

    def get_recent_events(self, limit: Optional[int] = 100) -> list[AuditEvent]:
        events = list(reversed(self._read_events()))
        return events[:limit] if limit else events
