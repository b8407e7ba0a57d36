"""
Wizard State Models

Value objects that flow between the engine components:
- FieldState: resolved visibility/requiredness of one field
- ValidationIssue: one finding of a step rule
- SubmitOutcome: result of a submission attempt
- ReviewLine: one row of the confirmation summary

IMPORTANT: Validation findings are returned as data, never raised.
"""

from enum import Enum
from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from entry_wizard.models.category import FieldCondition


class FieldKind(str, Enum):
    """How a draft value is coerced when the payload is built."""
    STRING = "string"
    NUMBER = "number"      # float
    INTEGER = "integer"    # int (ids)
    BOOLEAN = "boolean"
    DATE = "date"          # ISO "YYYY-MM-DD" string
    LIST = "list"
    OBJECT = "object"      # nested sub-object, merged not overwritten


class FieldState(BaseModel):
    """Resolved visibility and requiredness for one field."""
    model_config = ConfigDict(frozen=True)

    visible: bool = True
    required: bool = False
    condition: Optional[FieldCondition] = None

    def required_for(self, draft: Mapping[str, Any]) -> bool:
        """
        Requiredness against the current draft.

        A conditional requirement only applies while the
        referenced field holds the configured value.
        """
        if not self.visible or not self.required:
            return False
        if self.condition is None:
            return True
        return draft.get(self.condition.field) == self.condition.value


class ValidationIssue(BaseModel):
    """A single validation finding for a step."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'inconsistent')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        default="error",
        pattern="^(error|warning)$",
        description="Errors block advancement, warnings do not"
    )

    @property
    def is_blocking(self) -> bool:
        return self.severity == "error"


class SubmitOutcome(BaseModel):
    """
    Result of one submit() call.

    Exactly one of these holds:
    - saved is True (payload was accepted)
    - errors is non-empty (validation or persistence failed)
    - skipped is True (another submit was in flight, or the
      wizard was closed before the save resolved)
    """

    saved: bool = False
    skipped: bool = False
    payload: Optional[dict[str, Any]] = None
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class ReviewLine(BaseModel):
    """One line of the confirmation step summary."""

    field: str
    label_key: str
    value: str
