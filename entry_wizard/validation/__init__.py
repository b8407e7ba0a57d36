"""Per-step validation rules and message catalog."""

from entry_wizard.validation.messages import DEFAULT_MESSAGES, MessageCatalog
from entry_wizard.validation.validator import (
    RULES,
    RuleContext,
    ValidationEngine,
    blocking_messages,
    get_user_friendly_summary,
    is_empty,
    parse_date,
    parse_number,
    warning_messages,
)

__all__ = [
    "DEFAULT_MESSAGES",
    "MessageCatalog",
    "RULES",
    "RuleContext",
    "ValidationEngine",
    "blocking_messages",
    "get_user_friendly_summary",
    "is_empty",
    "parse_date",
    "parse_number",
    "warning_messages",
]
