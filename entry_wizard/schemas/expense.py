"""
Expense wizard: category, details, amount, timing, ownership, confirm.

Category-specific details (linked asset, linked members, credit use and
whatever else a category form collects) live in the nested "metadata"
object of the draft. On submit the well-known link fields are promoted to
the top level of the payload and the chosen subcategory replaces the
parent category.
"""

from typing import Any, Mapping

from entry_wizard.models.category import EntryKind
from entry_wizard.models.wizard import FieldKind
from entry_wizard.schemas.builder import (
    DEFAULT_CURRENCY,
    DEFAULT_FREQUENCY,
    DEFAULT_TODAY,
    WizardSchema,
    WizardSchemaBuilder,
    clear_frequency_unless_recurring,
)
from entry_wizard.validation.validator import is_empty, parse_number

PROMOTED_METADATA = ("linked_asset_id", "linked_member_ids", "credit_use_type")


def _as_id(value: Any) -> Any:
    if is_empty(value):
        return None
    number = parse_number(value)
    return int(number) if number is not None else value


def expense_payload(payload: dict[str, Any], draft: Mapping[str, Any]) -> dict[str, Any]:
    """Subcategory wins over its parent; link fields move out of metadata."""
    subcategory_id = payload.pop("subcategory_id", None)
    if subcategory_id is not None:
        payload["category_id"] = subcategory_id

    metadata = dict(payload.pop("metadata", None) or {})
    for key in PROMOTED_METADATA:
        if key not in metadata:
            continue
        value = metadata.pop(key)
        if key == "linked_asset_id":
            value = _as_id(value)
        elif key == "linked_member_ids":
            value = [_as_id(v) for v in value or []]
        elif is_empty(value):
            value = None
        payload[key] = value

    payload["metadata"] = metadata
    return payload


def expense_load(entity: Mapping[str, Any], draft: dict[str, Any]) -> dict[str, Any]:
    """Collect the promoted link fields back into the metadata object."""
    metadata = dict(entity.get("metadata") or {})
    for key in PROMOTED_METADATA:
        if entity.get(key) is not None:
            metadata[key] = entity[key]
    draft["metadata"] = metadata
    return draft


def build_expense_schema() -> WizardSchema:
    return (
        WizardSchemaBuilder(EntryKind.EXPENSE)
        .field("category_id", FieldKind.INTEGER, required=True, governed=False)
        .field("subcategory_id", FieldKind.INTEGER, governed=False, category_dependent=True)
        .field("metadata", FieldKind.OBJECT, default={}, governed=False, category_dependent=True)
        .field("amount", FieldKind.NUMBER, required=True)
        .field("currency", default=DEFAULT_CURRENCY, required=True)
        .field("description")
        .field("start_date", FieldKind.DATE, default=DEFAULT_TODAY, required=True)
        .field("end_date", FieldKind.DATE)
        .field("is_recurring", FieldKind.BOOLEAN, default=False)
        .field("frequency", default=DEFAULT_FREQUENCY)
        .field("household_member_id", FieldKind.INTEGER)
        .step(
            "category",
            "expenses.steps.category",
            ["category_id", "subcategory_id"],
            ["category"],
        )
        .step("details", "expenses.steps.details", ["metadata"], ["expense_details"])
        .step(
            "amount",
            "expenses.steps.amount",
            ["amount", "currency", "description"],
            ["amount"],
        )
        .step(
            "timing",
            "expenses.steps.timing",
            ["start_date", "end_date", "is_recurring", "frequency"],
            ["timing"],
        )
        .step("ownership", "expenses.steps.ownership", ["household_member_id"], ["member"])
        .step(
            "confirm",
            "expenses.steps.confirm",
            [],
            ["category", "expense_details", "amount", "timing", "member"],
        )
        .on_load(expense_load)
        .on_payload(clear_frequency_unless_recurring)
        .on_payload(expense_payload)
        .failure_message("errors.save_expense_failed")
        .build()
    )
