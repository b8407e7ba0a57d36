"""
Validation Message Catalog

Every user-facing validation and submit message has a key and an
English default. A host application can pass a translate function;
whatever it returns for a key wins, unless it returns nothing or echoes
the key back (i18n libraries do that for missing translations).
"""

from typing import Callable, Optional

Translate = Callable[[str], Optional[str]]


DEFAULT_MESSAGES: dict[str, str] = {
    # Category / basics
    "validation.category_required": "Category is required",
    "validation.name_required": "Asset name is required",
    # Amount
    "validation.amount_required": "Valid amount is required",
    "validation.currency_required": "Currency is required",
    # Timing
    "validation.start_date_required": "Start date is required",
    "validation.end_before_start": "End date must be after start date",
    "validation.frequency_required_income": "Frequency is required for recurring income",
    "validation.frequency_required_expense": "Frequency is required for recurring expenses",
    "validation.frequency_required": "Frequency is required",
    # Members
    "validation.member_required": "Household member is required",
    "validation.member_link_required": "Member is required for this category",
    "validation.linked_members_required": "At least one member is required for this category",
    "validation.linked_asset_required": "Asset is required for this category",
    "validation.single_member_link": "Only one household member link is allowed",
    "validation.metadata_field_required": "Metadata field \"{field}\" is required",
    # Asset purchase / value
    "validation.date_required": "Date is required",
    "validation.purchase_price_positive": "Purchase price must be greater than 0",
    "validation.current_value_positive": "Current value must be greater than 0",
    # Ownership
    "validation.ownership_range": "Ownership percentage must be between 0 and 100",
    "validation.shared_members_required": "Shared ownership needs at least two members",
    "validation.ownership_total": "Ownership percentages add up to {total}% instead of 100%",
    # Submission
    "errors.save_asset_failed": "Failed to save asset",
    "errors.save_income_failed": "Failed to save income",
    "errors.save_expense_failed": "Failed to save expense",
}


class MessageCatalog:
    """Resolves message keys to display text."""

    def __init__(
        self,
        translate: Optional[Translate] = None,
        overrides: Optional[dict[str, str]] = None,
    ):
        self._translate = translate
        self._messages = {**DEFAULT_MESSAGES, **(overrides or {})}

    def get(self, key: str, **params) -> str:
        """
        Look up a message, formatting any {placeholders} with params.

        Raises:
            KeyError: If the key has no English default
        """
        text = self._messages[key]
        if self._translate is not None:
            translated = self._translate(key)
            if translated and translated != key:
                text = translated
        return text.format(**params) if params else text
