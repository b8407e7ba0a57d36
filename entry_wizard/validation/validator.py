"""
Step Validation

DESIGN DECISION: Validation is a list of named rules per step.
Each wizard step declares the rules it runs, in order. A rule looks at
the draft, the resolved field states and the selected category, and
returns ValidationIssues:

- severity "error"   -> blocks Next and Submit
- severity "warning" -> shown to the user, never blocks

The order of the returned issues is the declaration order of the checks,
so the first message a user sees is always the first field on the step.

IMPORTANT: Validation NEVER fixes the draft.
It is pure, synchronous and makes no network calls.
"""

from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Mapping, Optional, Sequence

from entry_wizard.models.category import CategoryMetadata, OwnershipType
from entry_wizard.models.wizard import FieldState, ValidationIssue
from entry_wizard.ownership.allocation import FULL_SHARE, allocation_total
from entry_wizard.validation.messages import MessageCatalog


def is_empty(value: Any) -> bool:
    """Blank strings, None and empty collections count as empty; False and 0 do not."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, set, dict)):
        return len(value) == 0
    return False


def parse_number(value: Any) -> Optional[Decimal]:
    """Parse a form value into a finite Decimal, or None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = Decimal(str(value).strip())
    except InvalidOperation:
        return None
    return number if number.is_finite() else None


def parse_date(value: Any) -> Optional[date]:
    """Parse an ISO date string (or date) into a date, or None."""
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        return date.fromisoformat(value.strip()[:10])
    except ValueError:
        return None


class RuleContext:
    """Everything a rule may look at."""

    def __init__(
        self,
        kind: str,
        draft: Mapping[str, Any],
        states: Mapping[str, FieldState],
        category: Optional[CategoryMetadata],
        messages: MessageCatalog,
    ):
        self.kind = kind
        self.draft = draft
        self.states = states
        self.category = category
        self.messages = messages

    def value(self, field: str) -> Any:
        return self.draft.get(field)

    def metadata_value(self, key: str) -> Any:
        metadata = self.draft.get("metadata") or {}
        return metadata.get(key)

    def required(self, field: str) -> bool:
        state = self.states.get(field)
        return state is not None and state.required_for(self.draft)

    def issue(
        self,
        field: str,
        issue_type: str,
        message_key: str,
        severity: str = "error",
        **params,
    ) -> ValidationIssue:
        return ValidationIssue(
            field=field,
            issue_type=issue_type,
            message=self.messages.get(message_key, **params),
            severity=severity,
        )


Rule = Callable[[RuleContext], list[ValidationIssue]]


# =============================================================================
# Rules
# =============================================================================

def check_category(ctx: RuleContext) -> list[ValidationIssue]:
    if is_empty(ctx.value("category_id")):
        return [ctx.issue("category_id", "missing", "validation.category_required")]
    return []


def check_name(ctx: RuleContext) -> list[ValidationIssue]:
    if is_empty(ctx.value("name")):
        return [ctx.issue("name", "missing", "validation.name_required")]
    return []


def check_amount(ctx: RuleContext) -> list[ValidationIssue]:
    """Amount must be a positive number when required or entered."""
    issues = []

    raw = ctx.value("amount")
    if ctx.required("amount") or not is_empty(raw):
        amount = parse_number(raw)
        if amount is None or amount <= 0:
            issues.append(ctx.issue("amount", "invalid_value", "validation.amount_required"))

    if ctx.required("currency") and is_empty(ctx.value("currency")):
        issues.append(ctx.issue("currency", "missing", "validation.currency_required"))

    return issues


def check_timing(ctx: RuleContext) -> list[ValidationIssue]:
    issues = []

    start = ctx.value("start_date")
    if ctx.required("start_date") and is_empty(start):
        issues.append(ctx.issue("start_date", "missing", "validation.start_date_required"))

    start_date = parse_date(start)
    end_date = parse_date(ctx.value("end_date"))
    if start_date and end_date and end_date < start_date:
        issues.append(ctx.issue("end_date", "inconsistent", "validation.end_before_start"))

    if ctx.value("is_recurring") is True and is_empty(ctx.value("frequency")):
        key = {
            "income": "validation.frequency_required_income",
            "expense": "validation.frequency_required_expense",
        }.get(ctx.kind, "validation.frequency_required")
        issues.append(ctx.issue("frequency", "missing", key))

    return issues


def check_member(ctx: RuleContext) -> list[ValidationIssue]:
    """
    A single owner is needed when the category links members, or when
    the member field is required and ownership is not shared.
    """
    if ctx.value("ownership_type") == OwnershipType.SHARED.value:
        return []

    linked = ctx.category is not None and ctx.category.requires_member_link
    if not linked and not ctx.required("household_member_id"):
        return []

    if is_empty(ctx.value("household_member_id")):
        key = "validation.member_link_required" if linked else "validation.member_required"
        return [ctx.issue("household_member_id", "missing", key)]
    return []


def check_allocation(ctx: RuleContext) -> list[ValidationIssue]:
    """Shared ownership: two or more members, each share in range, total 100."""
    if ctx.value("ownership_type") != OwnershipType.SHARED.value:
        return []

    allocation = ctx.value("allocation") or {}
    issues = []

    if len(allocation) < 2:
        issues.append(ctx.issue("allocation", "missing", "validation.shared_members_required"))

    if any(
        not isinstance(share, (int, float)) or isinstance(share, bool) or not 0 <= share <= FULL_SHARE
        for share in allocation.values()
    ):
        issues.append(ctx.issue("allocation", "invalid_value", "validation.ownership_range"))
    elif allocation and allocation_total(allocation) != FULL_SHARE:
        issues.append(ctx.issue(
            "allocation",
            "inconsistent",
            "validation.ownership_total",
            severity="warning",
            total=allocation_total(allocation),
        ))

    return issues


def check_purchase(ctx: RuleContext) -> list[ValidationIssue]:
    """Asset acquisition date and positive prices when given."""
    issues = []

    if is_empty(ctx.value("date")):
        issues.append(ctx.issue("date", "missing", "validation.date_required"))

    for field, key in (
        ("purchase_price", "validation.purchase_price_positive"),
        ("current_value", "validation.current_value_positive"),
    ):
        raw = ctx.value(field)
        if is_empty(raw) and not ctx.required(field):
            continue
        number = parse_number(raw)
        if number is None or number <= 0:
            issues.append(ctx.issue(field, "invalid_value", key))

    return issues


def check_expense_details(ctx: RuleContext) -> list[ValidationIssue]:
    """
    Category-specific expense details.

    Link fields are demanded either by the category flags or by
    linked_asset_id / linked_member_ids requirement entries. Every
    required metadata.<key> entry must have a value in the metadata object.
    """
    category = ctx.category
    if category is None:
        return []

    requirements = category.field_requirements or {}
    metadata = ctx.draft.get("metadata") or {}
    # Conditions may point at a draft field or at another metadata key
    values = {**ctx.draft, **metadata}

    def required(key: str) -> bool:
        entry = requirements.get(key)
        return entry is not None and entry.required_for(values)

    def link_entry(name: str):
        # Link requirements may sit at the top level or under metadata
        entry = requirements.get(name)
        return entry if entry is not None else requirements.get(f"metadata.{name}")

    def link_required(name: str) -> bool:
        entry = link_entry(name)
        return entry is not None and entry.required_for(values)

    issues = []

    if (
        (category.requires_asset_link or link_required("linked_asset_id"))
        and is_empty(metadata.get("linked_asset_id"))
    ):
        issues.append(ctx.issue(
            "metadata.linked_asset_id", "missing", "validation.linked_asset_required",
        ))

    member_ids = metadata.get("linked_member_ids") or []
    members_needed = (
        category.requires_member_link and category.allows_multiple_members
    ) or link_required("linked_member_ids")
    if members_needed and is_empty(member_ids):
        issues.append(ctx.issue(
            "metadata.linked_member_ids", "missing", "validation.linked_members_required",
        ))

    member_entry = link_entry("linked_member_ids")
    if member_entry is not None and member_entry.multiple_allowed is False and len(member_ids) > 1:
        issues.append(ctx.issue(
            "metadata.linked_member_ids", "too_many", "validation.single_member_link",
        ))

    for key in requirements:
        if not key.startswith("metadata."):
            continue
        name = key[len("metadata."):]
        if name in ("linked_asset_id", "linked_member_ids"):
            continue
        if required(key) and is_empty(metadata.get(name)):
            issues.append(ctx.issue(
                key, "missing", "validation.metadata_field_required", field=name,
            ))

    return issues


RULES: dict[str, Rule] = {
    "category": check_category,
    "name": check_name,
    "amount": check_amount,
    "timing": check_timing,
    "member": check_member,
    "allocation": check_allocation,
    "purchase": check_purchase,
    "expense_details": check_expense_details,
}


# =============================================================================
# Engine
# =============================================================================

class ValidationEngine:
    """
    Runs the rules a step declares.

    One engine per wizard; it only holds the message catalog.
    """

    def __init__(self, messages: Optional[MessageCatalog] = None):
        self._messages = messages or MessageCatalog()

    @property
    def messages(self) -> MessageCatalog:
        return self._messages

    def check(
        self,
        kind: str,
        rules: Sequence[str],
        draft: Mapping[str, Any],
        states: Mapping[str, FieldState],
        category: Optional[CategoryMetadata] = None,
    ) -> list[ValidationIssue]:
        """
        Run the named rules in order and collect every issue.

        Raises:
            KeyError: If a rule name is unknown
        """
        ctx = RuleContext(kind, draft, states, category, self._messages)
        issues: list[ValidationIssue] = []
        for name in rules:
            issues.extend(RULES[name](ctx))
        return issues

    def validate(
        self,
        kind: str,
        rules: Sequence[str],
        draft: Mapping[str, Any],
        states: Mapping[str, FieldState],
        category: Optional[CategoryMetadata] = None,
    ) -> list[str]:
        """Blocking messages only, in declaration order."""
        return blocking_messages(self.check(kind, rules, draft, states, category))


def blocking_messages(issues: Sequence[ValidationIssue]) -> list[str]:
    return [issue.message for issue in issues if issue.is_blocking]


def warning_messages(issues: Sequence[ValidationIssue]) -> list[str]:
    return [issue.message for issue in issues if not issue.is_blocking]


def get_user_friendly_summary(issues: Sequence[ValidationIssue]) -> str:
    """
    One block of text for the step footer.

    This is what we show to non-technical users.
    """
    errors = blocking_messages(issues)
    warnings = warning_messages(issues)

    if not errors and not warnings:
        return "✅ All checks passed."

    lines = []
    if errors:
        lines.append("❌ Please fix the following:")
        lines.extend(f"  • {message}" for message in errors)
    if warnings:
        lines.append("⚠️ Please double-check:")
        lines.extend(f"  • {message}" for message in warnings)
    return "\n".join(lines)
