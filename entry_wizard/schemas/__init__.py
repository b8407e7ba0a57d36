"""
Wizard Schemas Package

One schema per entry kind, all built with WizardSchemaBuilder.
"""

from functools import lru_cache

from entry_wizard.models.category import EntryKind
from entry_wizard.schemas.asset import build_asset_schema
from entry_wizard.schemas.builder import (
    DEFAULT_CURRENCY,
    DEFAULT_FREQUENCY,
    DEFAULT_TODAY,
    FieldSpec,
    StepDefinition,
    WizardSchema,
    WizardSchemaBuilder,
    empty_value,
)
from entry_wizard.schemas.expense import build_expense_schema
from entry_wizard.schemas.income import build_income_schema


_BUILDERS = {
    EntryKind.ASSET: build_asset_schema,
    EntryKind.INCOME: build_income_schema,
    EntryKind.EXPENSE: build_expense_schema,
}


@lru_cache
def _build(kind: EntryKind) -> WizardSchema:
    return _BUILDERS[kind]()


def get_schema(kind: EntryKind | str) -> WizardSchema:
    """
    Schema for one entry kind. Schemas are immutable, so they are built once.

    Raises:
        ValueError: If kind is not a known entry kind
    """
    return _build(EntryKind(kind))


__all__ = [
    "DEFAULT_CURRENCY",
    "DEFAULT_FREQUENCY",
    "DEFAULT_TODAY",
    "FieldSpec",
    "StepDefinition",
    "WizardSchema",
    "WizardSchemaBuilder",
    "empty_value",
    "get_schema",
]
