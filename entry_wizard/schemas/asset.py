"""
Asset wizard: basics, value, purchase, ownership, details, confirm.

Ownership is either a single owner (household_member_id) or a shared
split held in the draft's "allocation" field as {member_id: percentage}.
Stored assets carry the split as a shared_ownership list.
"""

from typing import Any, Mapping

from entry_wizard.models.category import EntryKind, OwnershipType
from entry_wizard.models.wizard import FieldKind
from entry_wizard.ownership.allocation import FULL_SHARE, clamp_percentage
from entry_wizard.schemas.builder import (
    DEFAULT_CURRENCY,
    DEFAULT_TODAY,
    WizardSchema,
    WizardSchemaBuilder,
)


def asset_load(entity: Mapping[str, Any], draft: dict[str, Any]) -> dict[str, Any]:
    """Turn a stored shared_ownership list back into an allocation."""
    shares = entity.get("shared_ownership") or []
    draft["allocation"] = {
        int(share["household_member_id"]): clamp_percentage(share["ownership_percentage"])
        for share in shares
    }
    return draft


def asset_payload(payload: dict[str, Any], draft: Mapping[str, Any]) -> dict[str, Any]:
    """A single owner holds everything; a shared asset names no single owner."""
    if payload.get("ownership_type") == OwnershipType.SHARED.value:
        payload["household_member_id"] = None
        payload["ownership_percentage"] = None
    else:
        payload["ownership_percentage"] = float(FULL_SHARE)
    return payload


def build_asset_schema() -> WizardSchema:
    return (
        WizardSchemaBuilder(EntryKind.ASSET)
        .field("name", required=True, governed=False)
        .field("category_id", FieldKind.INTEGER, required=True, governed=False)
        .field("amount", FieldKind.NUMBER, required=True)
        .field("currency", default=DEFAULT_CURRENCY, required=True)
        .field("description")
        .field("date", FieldKind.DATE, default=DEFAULT_TODAY, required=True, governed=False)
        .field("purchase_date", FieldKind.DATE)
        .field("purchase_price", FieldKind.NUMBER)
        .field("purchase_currency", default=DEFAULT_CURRENCY)
        .field("current_value", FieldKind.NUMBER)
        .field("valuation_method", default="manual")
        .field(
            "ownership_type",
            default=OwnershipType.SINGLE.value,
            required=True,
            governed=False,
        )
        .field("household_member_id", FieldKind.INTEGER)
        .field("allocation", FieldKind.OBJECT, default={}, governed=False, in_payload=False)
        .field("status", default="active")
        .field("location")
        .field("notes")
        .step("basics", "assets.steps.basics", ["name", "category_id"], ["name", "category"])
        .step(
            "value",
            "assets.steps.value",
            ["amount", "currency", "description"],
            ["amount"],
        )
        .step(
            "purchase",
            "assets.steps.purchase",
            [
                "date",
                "purchase_date",
                "purchase_price",
                "purchase_currency",
                "current_value",
                "valuation_method",
            ],
            ["purchase"],
        )
        .step(
            "ownership",
            "assets.steps.ownership",
            ["ownership_type", "household_member_id", "allocation"],
            ["member", "allocation"],
        )
        .step("details", "assets.steps.details", ["status", "location", "notes"])
        .step(
            "confirm",
            "assets.steps.confirm",
            [],
            ["name", "category", "amount", "purchase", "member", "allocation"],
        )
        .on_load(asset_load)
        .on_payload(asset_payload)
        .failure_message("errors.save_asset_failed")
        .build()
    )
