"""
Audit Models for the Entry Wizard

Every significant wizard transition is logged for audit purposes:
opening and closing, blocked and successful step changes, allocation
edits and submission attempts.

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Every transition of the wizard state machine has its own event type.
    """
    # Lifecycle
    WIZARD_OPENED = "wizard_opened"
    WIZARD_CLOSED = "wizard_closed"

    # Navigation
    STEP_ADVANCED = "step_advanced"
    STEP_BLOCKED = "step_blocked"
    STEP_RETREATED = "step_retreated"

    # Ownership
    ALLOCATION_ADJUSTED = "allocation_adjusted"
    ALLOCATION_UNBALANCED = "allocation_unbalanced"

    # Submission
    SUBMIT_STARTED = "submit_started"
    SUBMIT_SUCCEEDED = "submit_succeeded"
    SUBMIT_FAILED = "submit_failed"
    STALE_RESULT_IGNORED = "stale_result_ignored"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class AuditEvent(BaseModel):
    """
    A single audit event.

    entity_id is the wizard session; correlation_id ties together
    everything that happened between one open() and the matching close().
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
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

    # Context
    entity_type: Optional[str] = Field(
        default=None,
        description="Kind of record being entered ('asset', 'income', 'expense')"
    )
    entity_id: Optional[UUID] = Field(
        default=None,
        description="Wizard session this event relates to"
    )
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate events of one open/close cycle"
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
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_row(self) -> list:
        """
        Flatten to a row for tabular audit stores.

        Columns: [event_id, timestamp, event_type, severity, entity_type,
        entity_id, correlation_id, description, details_json, error_message,
        is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            str(self.entity_id) if self.entity_id else "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.wizard_opened("income", session_id, False, correlation_id)
        event = AuditEventBuilder.step_advanced("income", session_id, 1, 2, correlation_id)
    """

    @staticmethod
    def wizard_opened(
        kind: str,
        session_id: UUID,
        editing: bool,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.WIZARD_OPENED,
            entity_type=kind,
            entity_id=session_id,
            correlation_id=correlation_id,
            description=f"{kind.capitalize()} wizard opened ({'edit' if editing else 'create'})",
            details={"editing": editing},
            is_user_action=True,
        )

    @staticmethod
    def wizard_closed(
        kind: str,
        session_id: UUID,
        reason: str,
        correlation_id: Optional[UUID]
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.WIZARD_CLOSED,
            entity_type=kind,
            entity_id=session_id,
            correlation_id=correlation_id,
            description=f"{kind.capitalize()} wizard closed: {reason}",
            details={"reason": reason},
            is_user_action=reason != "saved",
        )

    @staticmethod
    def step_advanced(
        kind: str,
        session_id: UUID,
        from_step: int,
        to_step: int,
        correlation_id: Optional[UUID]
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STEP_ADVANCED,
            severity=AuditSeverity.DEBUG,
            entity_type=kind,
            entity_id=session_id,
            correlation_id=correlation_id,
            description=f"Step {from_step} -> {to_step}",
            details={"from_step": from_step, "to_step": to_step},
            is_user_action=True,
        )

    @staticmethod
    def step_retreated(
        kind: str,
        session_id: UUID,
        from_step: int,
        to_step: int,
        correlation_id: Optional[UUID]
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STEP_RETREATED,
            severity=AuditSeverity.DEBUG,
            entity_type=kind,
            entity_id=session_id,
            correlation_id=correlation_id,
            description=f"Step {from_step} -> {to_step} (back)",
            details={"from_step": from_step, "to_step": to_step},
            is_user_action=True,
        )

    @staticmethod
    def step_blocked(
        kind: str,
        session_id: UUID,
        step: int,
        errors: list[str],
        correlation_id: Optional[UUID]
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STEP_BLOCKED,
            severity=AuditSeverity.WARNING,
            entity_type=kind,
            entity_id=session_id,
            correlation_id=correlation_id,
            description=f"Step {step} blocked with {len(errors)} errors",
            details={"step": step, "errors": errors},
        )

    @staticmethod
    def allocation_adjusted(
        kind: str,
        session_id: UUID,
        member_id: int,
        requested: float,
        allocation: dict[int, int],
        correlation_id: Optional[UUID]
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ALLOCATION_ADJUSTED,
            severity=AuditSeverity.DEBUG,
            entity_type=kind,
            entity_id=session_id,
            correlation_id=correlation_id,
            description=f"Member {member_id} set to {requested}%",
            details={
                "member_id": member_id,
                "requested": requested,
                "allocation": {str(k): v for k, v in allocation.items()},
            },
            is_user_action=True,
        )

    @staticmethod
    def allocation_unbalanced(
        kind: str,
        session_id: UUID,
        total: int,
        correlation_id: Optional[UUID]
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ALLOCATION_UNBALANCED,
            severity=AuditSeverity.WARNING,
            entity_type=kind,
            entity_id=session_id,
            correlation_id=correlation_id,
            description=f"Ownership allocation totals {total}% instead of 100%",
            details={"total": total},
        )

    @staticmethod
    def submit_started(
        kind: str,
        session_id: UUID,
        correlation_id: Optional[UUID]
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SUBMIT_STARTED,
            entity_type=kind,
            entity_id=session_id,
            correlation_id=correlation_id,
            description=f"{kind.capitalize()} submission started",
            is_user_action=True,
        )

    @staticmethod
    def submit_succeeded(
        kind: str,
        session_id: UUID,
        payload: dict[str, Any],
        correlation_id: Optional[UUID]
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SUBMIT_SUCCEEDED,
            entity_type=kind,
            entity_id=session_id,
            correlation_id=correlation_id,
            description=f"{kind.capitalize()} saved",
            details={
                "category_id": payload.get("category_id"),
                "amount": payload.get("amount"),
                "currency": payload.get("currency"),
            },
        )

    @staticmethod
    def submit_failed(
        kind: str,
        session_id: UUID,
        error_message: str,
        correlation_id: Optional[UUID]
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SUBMIT_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type=kind,
            entity_id=session_id,
            correlation_id=correlation_id,
            description=f"{kind.capitalize()} submission failed",
            error_message=error_message,
        )

    @staticmethod
    def stale_result_ignored(
        kind: str,
        session_id: UUID,
        outcome: str,
        correlation_id: Optional[UUID]
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STALE_RESULT_IGNORED,
            severity=AuditSeverity.WARNING,
            entity_type=kind,
            entity_id=session_id,
            correlation_id=correlation_id,
            description="Submission resolved after the wizard was closed",
            details={"outcome": outcome},
        )
