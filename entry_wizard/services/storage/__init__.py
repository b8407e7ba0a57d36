"""
Storage Services Package

Provides abstract interfaces and concrete implementations for persisting
wizard payloads and audit events. The REST API backend is used in
production; the in-memory backend for tests and the demo shell.
"""

from entry_wizard.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    EntryStorageInterface,
    NotFoundError,
    StorageError,
)
from entry_wizard.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryEntryStorage,
)
from entry_wizard.services.storage.api import ApiEntryStorage

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "EntryStorageInterface",
    # Exceptions
    "ConnectionError",
    "NotFoundError",
    "StorageError",
    # Implementations
    "ApiEntryStorage",
    "InMemoryAuditStorage",
    "InMemoryEntryStorage",
]
