"""Income wizard: category, amount, timing, member, confirm."""

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


def build_income_schema() -> WizardSchema:
    return (
        WizardSchemaBuilder(EntryKind.INCOME)
        .field("category_id", FieldKind.INTEGER, required=True, governed=False)
        .field("amount", FieldKind.NUMBER, required=True)
        .field("currency", default=DEFAULT_CURRENCY, required=True)
        .field("description")
        .field("start_date", FieldKind.DATE, default=DEFAULT_TODAY, required=True)
        .field("end_date", FieldKind.DATE)
        .field("is_recurring", FieldKind.BOOLEAN, default=False)
        .field("frequency", default=DEFAULT_FREQUENCY)
        .field("household_member_id", FieldKind.INTEGER)
        .step("category", "income.steps.category", ["category_id"], ["category"])
        .step(
            "amount",
            "income.steps.amount",
            ["amount", "currency", "description"],
            ["amount"],
        )
        .step(
            "timing",
            "income.steps.timing",
            ["start_date", "end_date", "is_recurring", "frequency"],
            ["timing"],
        )
        .step("member", "income.steps.member", ["household_member_id"], ["member"])
        .step(
            "confirm",
            "income.steps.confirm",
            [],
            ["category", "amount", "timing", "member"],
        )
        .on_payload(clear_frequency_unless_recurring)
        .failure_message("errors.save_income_failed")
        .build()
    )
