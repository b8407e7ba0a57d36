"""
Audit Logger

DESIGN DECISION: Every wizard transition is logged.
This provides:
1. Traceability of how a record was entered
2. Debugging capability for "why can't I go to the next step?"
3. Visibility into failed and stale submissions

The audit logger:
- Is synchronous; the wizard state machine is synchronous
- Gracefully handles failures (a broken audit store never breaks the wizard)
- Supports correlation IDs to trace one open/close cycle
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from entry_wizard.models.audit import AuditEvent
from entry_wizard.services.storage import AuditStorageInterface


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
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An audit store, if one is configured
    """

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
        self._logger = structlog.get_logger("entry_wizard.audit")

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        emit = getattr(self._logger, event.severity.value, self._logger.info)
        emit("wizard_event", **event.to_log_dict())

        if self._storage is not None:
            try:
                return self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    The wizard creates one on every open() and passes it to
    every event until the matching close().
    """
    return uuid4()
