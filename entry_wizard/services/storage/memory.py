"""
In-Memory Storage Implementation

Used by the tests and by the demo shell when no API is configured.
Records are kept per kind in insertion order; ids are assigned
sequentially like a database serial column.
"""

import copy
from typing import Any, Optional
from uuid import UUID

from entry_wizard.models.audit import AuditEvent
from entry_wizard.models.category import EntryKind
from entry_wizard.services.storage.interface import (
    AuditStorageInterface,
    EntryStorageInterface,
    NotFoundError,
)


class InMemoryEntryStorage(EntryStorageInterface):
    """Entry storage backed by plain dicts."""

    def __init__(self):
        self._records: dict[EntryKind, dict[int, dict[str, Any]]] = {
            kind: {} for kind in EntryKind
        }
        self._next_id = 1

    async def save(
        self,
        kind: EntryKind,
        payload: dict[str, Any],
        entity_id: Optional[int] = None,
    ) -> dict[str, Any]:
        records = self._records[EntryKind(kind)]

        if entity_id is not None:
            if entity_id not in records:
                raise NotFoundError(f"{EntryKind(kind).value} {entity_id} not found")
            record = {**copy.deepcopy(payload), "id": entity_id}
        else:
            record = {**copy.deepcopy(payload), "id": self._next_id}
            self._next_id += 1

        records[record["id"]] = record
        return copy.deepcopy(record)

    def get(self, kind: EntryKind, entity_id: int) -> Optional[dict[str, Any]]:
        record = self._records[EntryKind(kind)].get(entity_id)
        return copy.deepcopy(record) if record is not None else None

    def list_records(self, kind: EntryKind) -> list[dict[str, Any]]:
        return [copy.deepcopy(r) for r in self._records[EntryKind(kind)].values()]


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only audit log kept in a list."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        return [e for e in self._events if e.correlation_id == correlation_id]

    def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        return list(reversed(self._events))[:limit]

    @property
    def events(self) -> list[AuditEvent]:
        return list(self._events)
