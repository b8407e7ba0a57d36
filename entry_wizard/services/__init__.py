"""Services package."""

from entry_wizard.services.storage import (
    ApiEntryStorage,
    AuditStorageInterface,
    ConnectionError,
    EntryStorageInterface,
    InMemoryAuditStorage,
    InMemoryEntryStorage,
    NotFoundError,
    StorageError,
)

__all__ = [
    "ApiEntryStorage",
    "AuditStorageInterface",
    "ConnectionError",
    "EntryStorageInterface",
    "InMemoryAuditStorage",
    "InMemoryEntryStorage",
    "NotFoundError",
    "StorageError",
]
