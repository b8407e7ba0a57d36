"""
Data Models Package

This package contains all Pydantic models used by the entry wizard.
All data flowing between the engine components conforms to these schemas.
"""

from entry_wizard.models.category import (
    CATEGORY_ICONS,
    DEFAULT_ICON,
    CategoryMetadata,
    EntryKind,
    FieldCondition,
    FieldRequirement,
    Frequency,
    Member,
    OwnershipType,
    flatten_categories,
    icon_for,
)
from entry_wizard.models.wizard import (
    FieldKind,
    FieldState,
    ReviewLine,
    SubmitOutcome,
    ValidationIssue,
)
from entry_wizard.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Directory models
    "CATEGORY_ICONS",
    "DEFAULT_ICON",
    "CategoryMetadata",
    "EntryKind",
    "FieldCondition",
    "FieldRequirement",
    "Frequency",
    "Member",
    "OwnershipType",
    "flatten_categories",
    "icon_for",
    # Wizard state models
    "FieldKind",
    "FieldState",
    "ReviewLine",
    "SubmitOutcome",
    "ValidationIssue",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
