"""
Submit Adapter

Turns a finished draft into the payload the host application stores.

Flow:
1. Re-validate → run the last step's rules (errors abort, warnings pass)
2. Build payload → coerce form strings to numbers, blanks to None,
   embed a shared ownership split, apply the schema's payload hooks
3. Save → await the host's save callback
4. Map failures → whatever save raises becomes one error message

IMPORTANT: A failing save never raises out of submit().
The outcome carries the message so the wizard can show it and stay open.
"""

import inspect
from typing import Any, Awaitable, Callable, Mapping, Optional, Union

import structlog

from entry_wizard.models.category import CategoryMetadata, EntryKind, OwnershipType
from entry_wizard.models.wizard import FieldKind, FieldState, SubmitOutcome
from entry_wizard.schemas.builder import WizardSchema
from entry_wizard.services.storage.interface import EntryStorageInterface
from entry_wizard.validation.validator import (
    ValidationEngine,
    blocking_messages,
    is_empty,
    parse_number,
    warning_messages,
)


logger = structlog.get_logger(__name__)

# Usually async; a plain function returning the saved record works too
SaveCallback = Callable[[dict[str, Any]], Union[Awaitable[Any], Any]]


class SubmissionError(Exception):
    """
    Raised by a save callback to show a specific message.

    Any other exception works too; its str() is shown,
    or the wizard's generic failure message when that is empty.
    """
    pass


def coerce_value(kind: FieldKind, value: Any) -> Any:
    """Convert one draft value into its payload type."""
    if kind == FieldKind.BOOLEAN:
        return bool(value)
    if kind == FieldKind.LIST:
        return list(value or [])
    if kind == FieldKind.OBJECT:
        return dict(value or {})
    if is_empty(value):
        return None
    if kind == FieldKind.NUMBER:
        number = parse_number(value)
        return float(number) if number is not None else None
    if kind == FieldKind.INTEGER:
        number = parse_number(value)
        return int(number) if number is not None else None
    if isinstance(value, str):
        return value.strip()
    return value


def shared_ownership(allocation: Mapping[Any, int]) -> list[dict[str, Any]]:
    return [
        {"household_member_id": member_id, "ownership_percentage": percentage}
        for member_id, percentage in allocation.items()
    ]


def storage_save_callback(
    storage: EntryStorageInterface,
    kind: EntryKind,
    entity_id: Optional[int] = None,
) -> SaveCallback:
    """Adapt a storage backend to the wizard's save(payload) callback."""
    async def save(payload: dict[str, Any]) -> dict[str, Any]:
        return await storage.save(kind, payload, entity_id)
    return save


class SubmitAdapter:
    """Validates, shapes and saves one wizard draft."""

    def __init__(self, schema: WizardSchema, engine: ValidationEngine):
        self._schema = schema
        self._engine = engine

    def build_payload(self, draft: Mapping[str, Any]) -> dict[str, Any]:
        """Shape a draft into a payload. Does not validate."""
        payload = {
            name: coerce_value(spec.kind, draft.get(name))
            for name, spec in self._schema.fields.items()
            if spec.in_payload
        }

        if draft.get("ownership_type") == OwnershipType.SHARED.value:
            payload["shared_ownership"] = shared_ownership(draft.get("allocation") or {})

        for hook in self._schema.payload_hooks:
            payload = hook(payload, draft)
        return payload

    async def submit(
        self,
        draft: Mapping[str, Any],
        states: Mapping[str, FieldState],
        category: Optional[CategoryMetadata],
        save: SaveCallback,
    ) -> SubmitOutcome:
        """
        Validate, build and save.

        Returns:
            SubmitOutcome with saved=True, or with the errors that stopped it
        """
        kind = self._schema.kind.value
        last_step = self._schema.step(self._schema.total_steps)
        issues = last_step.check(self._engine, kind, draft, states, category)
        errors = blocking_messages(issues)
        warnings = warning_messages(issues)

        if errors:
            return SubmitOutcome(errors=errors, warnings=warnings)

        payload = self.build_payload(draft)

        try:
            result = save(payload)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            message = str(e) or self._engine.messages.get(self._schema.failure_message_key)
            logger.warning(
                "submit_save_failed",
                kind=kind,
                error=message,
                error_type=type(e).__name__,
            )
            return SubmitOutcome(payload=payload, errors=[message], warnings=warnings)

        return SubmitOutcome(saved=True, payload=payload, warnings=warnings)
