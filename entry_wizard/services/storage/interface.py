"""
Abstract Storage Interface

DESIGN DECISION: The wizard never talks to a backend directly.
It is handed an awaitable `save(payload)`; the factory binds that to
one of these interfaces. This allows us to:
1. Talk to the records API in production
2. Use in-memory storage for testing and the demo shell
3. Keep the engine decoupled from transport details

The interface is intentionally small - create/update only. Listing and
deleting records belongs to the list views, not to the wizard.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional
from uuid import UUID

from entry_wizard.models.audit import AuditEvent
from entry_wizard.models.category import EntryKind


class EntryStorageInterface(ABC):
    """
    Abstract interface for persisting wizard payloads.

    Any storage implementation (REST API, in-memory, ...)
    must implement these methods.
    """

    @abstractmethod
    async def save(
        self,
        kind: EntryKind,
        payload: dict[str, Any],
        entity_id: Optional[int] = None,
    ) -> dict[str, Any]:
        """
        Create a record, or update it when entity_id is given.

        Args:
            kind: Which record collection to write to
            payload: The materialized wizard payload
            entity_id: ID of the record being edited, None for create

        Returns:
            The stored record as returned by the backend

        Raises:
            StorageError: If the save fails; the message is user-facing
            NotFoundError: If entity_id does not exist
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (one open/close cycle).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
