"""
Entry Wizard Orchestrator

This module ties the engine components together into one wizard session:
requirements resolution, draft state, validation, navigation, ownership
allocation and submission.

DESIGN DECISION: The orchestrator enforces the boundaries:
- Nothing is saved without passing the last step's validation
- A step is only left when its required fields are filled and its rules pass
- A result that arrives after the wizard closed is never applied
- Every transition is audited

Flow:
1. open()    → fresh draft (defaults, or an entity being edited), step 1
2. edit      → set_field / update_nested / select_category / allocation sliders
3. next()    → gate: required fields filled, no blocking errors
4. submit()  → validate, build payload, await save, close on success
5. close()   → discard the draft, invalidate pending results
"""

from datetime import date
from typing import Any, Callable, Iterable, Mapping, Optional, Union
from uuid import UUID, uuid4

from entry_wizard.audit import AuditLogger, create_correlation_id
from entry_wizard.config import get_settings
from entry_wizard.models.audit import AuditEvent, AuditEventBuilder
from entry_wizard.models.category import (
    CategoryMetadata,
    EntryKind,
    Member,
    OwnershipType,
    flatten_categories,
)
from entry_wizard.models.wizard import FieldState, ReviewLine, SubmitOutcome
from entry_wizard.navigation import StepSequencer
from entry_wizard.ownership import adjust, allocation_total, equal_split, remove_member
from entry_wizard.requirements import resolve
from entry_wizard.schemas import (
    DEFAULT_CURRENCY,
    DEFAULT_FREQUENCY,
    DEFAULT_TODAY,
    WizardSchema,
    get_schema,
)
from entry_wizard.state import FormStateStore
from entry_wizard.submission import SaveCallback, SubmitAdapter
from entry_wizard.validation import (
    MessageCatalog,
    ValidationEngine,
    blocking_messages,
    is_empty,
    warning_messages,
)
from entry_wizard.validation.messages import Translate


class WizardClosedError(RuntimeError):
    """Raised when a closed wizard is asked to edit, navigate or submit."""
    pass


class EntryWizard:
    """
    One guided entry session for an asset, income or expense record.

    The host supplies categories, members and a save callback; the wizard
    owns the draft, the current step and the error list.
    """

    def __init__(
        self,
        schema: WizardSchema,
        categories: Iterable[CategoryMetadata],
        members: Iterable[Member],
        on_save: SaveCallback,
        on_close: Optional[Callable[[], Any]] = None,
        default_currency: str = "USD",
        default_frequency: str = "monthly",
        translate: Optional[Translate] = None,
        audit_logger: Optional[AuditLogger] = None,
        language: str = "en",
        today: Optional[date] = None,
    ):
        """
        Args:
            schema: The wizard variant to run
            categories: Top-level categories (subcategories nested inside)
            members: Household members available as owners
            on_save: Called with the payload; raising keeps the wizard open
            on_close: Called whenever the wizard closes
            default_currency: Currency preselected in a new draft
            default_frequency: Frequency preselected in a new draft
            translate: Optional key -> text lookup for messages
            audit_logger: Audit sink; local structlog only when omitted
            language: Language for category names in the review
            today: Fixed "today" for date defaults (tests); date.today() otherwise
        """
        self._schema = schema
        self._categories = list(categories)
        self._category_index = {c.id: c for c in flatten_categories(self._categories)}
        self._members = list(members)
        self._on_save = on_save
        self._on_close = on_close
        self._default_currency = default_currency
        self._default_frequency = default_frequency
        self._language = language
        self._today = today
        self._audit_logger = audit_logger or AuditLogger()

        self._engine = ValidationEngine(MessageCatalog(translate))
        self._adapter = SubmitAdapter(schema, self._engine)
        self._store = FormStateStore(schema.fields)
        self._sequencer = StepSequencer(schema.total_steps, gate=self._may_leave)

        self._is_open = False
        self._is_submitting = False
        self._errors: list[str] = []
        self._warnings: list[str] = []
        self._entity_id: Optional[Any] = None
        # Bumped on every open/close; results from an older session are stale
        self._session_token = 0
        self._session_id: UUID = uuid4()
        self._correlation_id: Optional[UUID] = None

    # =========================================================================
    # State
    # =========================================================================

    @property
    def kind(self) -> EntryKind:
        return self._schema.kind

    @property
    def schema(self) -> WizardSchema:
        return self._schema

    @property
    def is_open(self) -> bool:
        return self._is_open

    @property
    def is_submitting(self) -> bool:
        return self._is_submitting

    @property
    def is_editing(self) -> bool:
        return self._entity_id is not None

    @property
    def current_step(self) -> int:
        return self._sequencer.current

    @property
    def total_steps(self) -> int:
        return self._sequencer.total_steps

    @property
    def step_definition(self):
        return self._schema.step(self.current_step)

    @property
    def step_action(self) -> str:
        """"next" on every step but the last, "submit" on the last."""
        return self._sequencer.action

    @property
    def errors(self) -> list[str]:
        return list(self._errors)

    @property
    def warnings(self) -> list[str]:
        return list(self._warnings)

    @property
    def draft(self) -> Mapping[str, Any]:
        """Read-only view of the draft."""
        return self._store.snapshot()

    @property
    def members(self) -> list[Member]:
        return list(self._members)

    @property
    def categories(self) -> list[CategoryMetadata]:
        return list(self._categories)

    @property
    def selected_category(self) -> Optional[CategoryMetadata]:
        """The top-level category chosen on step 1."""
        return self._category_index.get(self._store.get("category_id"))

    @property
    def effective_category(self) -> Optional[CategoryMetadata]:
        """The chosen subcategory if there is one, else the category."""
        if "subcategory_id" in self._schema.fields:
            sub = self._category_index.get(self._store.get("subcategory_id"))
            if sub is not None:
                return sub
        return self.selected_category

    @property
    def field_states(self) -> dict[str, FieldState]:
        """Visibility and requiredness of every field for the current category."""
        states = resolve(
            self.effective_category,
            self._schema.governed_fields,
            self._schema.default_required,
        )
        for name, spec in self._schema.fields.items():
            if not spec.governed:
                states[name] = FieldState(visible=True, required=spec.default_required)
        return states

    def _require_open(self) -> None:
        if not self._is_open:
            raise WizardClosedError(f"The {self.kind.value} wizard is closed")

    def _audit(self, event: AuditEvent) -> None:
        self._audit_logger.log(event)

    def _placeholders(self) -> dict[str, Any]:
        return {
            DEFAULT_CURRENCY: self._default_currency,
            DEFAULT_TODAY: (self._today or date.today()).isoformat(),
            DEFAULT_FREQUENCY: self._default_frequency,
        }

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def open(self, entity: Optional[Mapping[str, Any]] = None) -> None:
        """
        Start a session: step 1, no errors, a fresh draft.

        Args:
            entity: An existing record to edit, or None to create one
        """
        self._session_token += 1
        self._session_id = uuid4()
        self._correlation_id = create_correlation_id()

        draft = self._schema.initial_draft(self._placeholders(), entity)
        self._store.load(self._split_subcategory(draft))

        self._entity_id = entity.get("id") if entity else None
        self._sequencer.reset()
        self._errors = []
        self._warnings = []
        self._is_submitting = False
        self._is_open = True

        self._audit(AuditEventBuilder.wizard_opened(
            self.kind.value,
            self._session_id,
            entity is not None,
            self._correlation_id,
        ))

    def close(self, reason: str = "cancelled") -> None:
        """Discard the draft. Any submission still in flight becomes stale."""
        if not self._is_open:
            return

        self._session_token += 1
        self._store.clear()
        self._sequencer.reset()
        self._errors = []
        self._warnings = []
        self._is_submitting = False
        self._is_open = False
        self._entity_id = None

        self._audit(AuditEventBuilder.wizard_closed(
            self.kind.value,
            self._session_id,
            reason,
            self._correlation_id,
        ))

        if self._on_close is not None:
            self._on_close()

    def _split_subcategory(self, draft: dict[str, Any]) -> dict[str, Any]:
        """An edited entry may point at a subcategory; show it under its parent."""
        if "subcategory_id" not in draft:
            return draft
        category = self._category_index.get(draft.get("category_id"))
        if category is not None and category.parent_category_id is not None:
            draft["subcategory_id"] = category.id
            draft["category_id"] = category.parent_category_id
        return draft

    # =========================================================================
    # Editing
    # =========================================================================

    def set_field(self, field: str, value: Any) -> None:
        """
        Replace one draft value. Clears the current errors.

        Raises:
            KeyError: If the field is not part of this wizard
        """
        self._require_open()
        if field == "category_id":
            self.select_category(value)
            return
        self._store.set(field, value)
        self._clear_messages()

    def update_nested(self, field: str, updates: Mapping[str, Any]) -> None:
        """Merge keys into a nested object field (e.g. expense metadata)."""
        self._require_open()
        self._store.merge(field, updates)
        self._clear_messages()

    def select_category(self, category_id: Optional[int]) -> None:
        """
        Choose the category. Fields that depend on the category are reset.

        Selecting a subcategory selects its parent as well. A blank
        value (None or "") clears the selection.

        Raises:
            KeyError: If the id is not a known category
        """
        self._require_open()
        if is_empty(category_id):
            category_id = None
        if category_id is not None and category_id not in self._category_index:
            raise KeyError(f"Unknown category: {category_id}")

        category = self._category_index.get(category_id)
        previous = self._store.get("category_id")
        subcategory_id = None
        if category is not None and category.parent_category_id is not None:
            subcategory_id = category.id
            category_id = category.parent_category_id

        if category_id != previous:
            placeholders = self._placeholders()
            for name in self._schema.category_dependents:
                self._store.set(name, self._schema.fields[name].initial_value(placeholders))

        self._store.set("category_id", category_id)
        if subcategory_id is not None and "subcategory_id" in self._schema.fields:
            self._store.set("subcategory_id", subcategory_id)
        self._clear_messages()

    def select_subcategory(self, subcategory_id: Optional[int]) -> None:
        """
        Choose a child of the selected category, or None to go back to
        the category itself. Metadata is kept either way.

        Raises:
            KeyError: If the id is not a subcategory of the selected category
        """
        self._require_open()
        if "subcategory_id" not in self._schema.fields:
            return
        if is_empty(subcategory_id):
            self._store.set("subcategory_id", None)
            self._clear_messages()
            return
        if subcategory_id not in {c.id for c in self.subcategories()}:
            raise KeyError(f"Not a subcategory of the selected category: {subcategory_id}")
        self.select_category(subcategory_id)

    def subcategories(self) -> list[CategoryMetadata]:
        """Children of the selected category (empty if it has none)."""
        category = self.selected_category
        return list(category.subcategories) if category else []

    def _clear_messages(self) -> None:
        self._errors = []
        self._warnings = []

    # =========================================================================
    # Navigation
    # =========================================================================

    def can_proceed(self) -> bool:
        """Every required field shown on the current step has a value."""
        self._require_open()
        draft = self._store.snapshot()
        states = self.field_states
        return all(
            not is_empty(draft.get(name))
            for name in self.step_definition.fields
            if states[name].required_for(draft)
        )

    def _may_leave(self, step: int) -> bool:
        """
        Gate for forward moves.

        Missing required fields block silently (the Next button is
        disabled). Blocking rule findings are stored as errors.
        """
        if not self.can_proceed():
            return False

        issues = self._schema.step(step).check(
            self._engine,
            self.kind.value,
            self._store.snapshot(),
            self.field_states,
            self.effective_category,
        )
        errors = blocking_messages(issues)
        if errors:
            self._errors = errors
            self._warnings = warning_messages(issues)
            self._audit(AuditEventBuilder.step_blocked(
                self.kind.value,
                self._session_id,
                step,
                errors,
                self._correlation_id,
            ))
            return False

        self._warnings = warning_messages(issues)
        if any(i.field == "allocation" and not i.is_blocking for i in issues):
            self._audit(AuditEventBuilder.allocation_unbalanced(
                self.kind.value,
                self._session_id,
                allocation_total(self._store.get("allocation") or {}),
                self._correlation_id,
            ))
        return True

    def next(self) -> bool:
        """
        Advance one step if the current one is complete and valid.

        Returns:
            True if the step changed
        """
        self._require_open()
        from_step = self.current_step
        moved = self._sequencer.next()
        if moved:
            self._errors = []
            self._audit(AuditEventBuilder.step_advanced(
                self.kind.value,
                self._session_id,
                from_step,
                self.current_step,
                self._correlation_id,
            ))
        return moved

    def prev(self) -> bool:
        """Go back one step. Always allowed above step 1; clears errors."""
        self._require_open()
        from_step = self.current_step
        moved = self._sequencer.prev()
        if moved:
            self._clear_messages()
            self._audit(AuditEventBuilder.step_retreated(
                self.kind.value,
                self._session_id,
                from_step,
                self.current_step,
                self._correlation_id,
            ))
        return moved

    def jump_to(self, step: int) -> bool:
        """Jump from the category screen straight to a later step."""
        self._require_open()
        from_step = self.current_step
        moved = self._sequencer.jump_to(step) and self.current_step != from_step
        if moved:
            self._errors = []
            self._audit(AuditEventBuilder.step_advanced(
                self.kind.value,
                self._session_id,
                from_step,
                self.current_step,
                self._correlation_id,
            ))
        return moved

    # =========================================================================
    # Ownership
    # =========================================================================

    def set_ownership_type(self, ownership_type: Union[OwnershipType, str]) -> None:
        """
        Switch between single and shared ownership.

        Going shared with no split yet splits equally across all members.
        """
        self._require_open()
        value = OwnershipType(ownership_type).value
        self._store.set("ownership_type", value)
        if value == OwnershipType.SHARED.value and not self._store.get("allocation"):
            self._store.set("allocation", equal_split(m.id for m in self._members))
        self._clear_messages()

    def adjust_allocation(self, member_id: int, value: Union[int, float, str]) -> dict[int, int]:
        """
        Slider handler: move one member's share, rebalance the rest.

        A member not yet in the split joins it at 0% first.

        Returns:
            The new allocation
        """
        self._require_open()
        current = dict(self._store.get("allocation") or {})
        if member_id not in current:
            if member_id not in {m.id for m in self._members}:
                raise KeyError(f"Unknown member: {member_id}")
            current[member_id] = 0

        allocation = adjust(current, member_id, value)
        self._store.set("allocation", allocation)
        self._clear_messages()

        self._audit(AuditEventBuilder.allocation_adjusted(
            self.kind.value,
            self._session_id,
            member_id,
            value,
            allocation,
            self._correlation_id,
        ))
        return allocation

    def remove_allocation_member(self, member_id: int) -> dict[int, int]:
        """Drop a member from the split; their share goes to the others."""
        self._require_open()
        allocation = remove_member(self._store.get("allocation") or {}, member_id)
        self._store.set("allocation", allocation)
        self._clear_messages()
        return allocation

    # =========================================================================
    # Review and submit
    # =========================================================================

    def _member_name(self, member_id: Any) -> str:
        for member in self._members:
            if member.id == member_id:
                return member.name
        return str(member_id)

    def _category_label(self, category_id: Any) -> str:
        category = self._category_index.get(category_id)
        if category is None:
            return str(category_id)
        return f"{category.icon_glyph} {category.name_for(self._language)}"

    def review(self) -> list[ReviewLine]:
        """
        Summary for the confirmation step.

        Lists every visible field that has a value, with ids turned into
        names. Frequency only shows for recurring entries and the split
        only for shared ownership.
        """
        self._require_open()
        draft = self._store.snapshot()
        states = self.field_states
        shared = draft.get("ownership_type") == OwnershipType.SHARED.value
        lines: list[ReviewLine] = []

        for name, spec in self._schema.fields.items():
            value = draft.get(name)
            if not states[name].visible or is_empty(value) or isinstance(value, bool):
                continue

            if name in ("category_id", "subcategory_id"):
                lines.append(ReviewLine(field=name, label_key=spec.label_key, value=self._category_label(value)))
            elif name == "household_member_id":
                if not shared:
                    lines.append(ReviewLine(field=name, label_key=spec.label_key, value=self._member_name(value)))
            elif name == "frequency":
                if draft.get("is_recurring") is True:
                    lines.append(ReviewLine(field=name, label_key=spec.label_key, value=str(value)))
            elif name == "allocation":
                if shared:
                    for member_id, percentage in value.items():
                        lines.append(ReviewLine(
                            field=name,
                            label_key=spec.label_key,
                            value=f"{self._member_name(member_id)}: {percentage}%",
                        ))
            elif name == "metadata":
                for key, meta_value in value.items():
                    if is_empty(meta_value):
                        continue
                    if key == "linked_member_ids":
                        shown = ", ".join(self._member_name(m) for m in meta_value)
                    else:
                        shown = str(meta_value)
                    lines.append(ReviewLine(
                        field=f"metadata.{key}",
                        label_key=f"{self.kind.value}.fields.{key}",
                        value=shown,
                    ))
            else:
                lines.append(ReviewLine(field=name, label_key=spec.label_key, value=str(value)))

        return lines

    async def submit(self) -> SubmitOutcome:
        """
        Validate, save and close.

        A second call while a save is in flight is skipped. If the wizard
        is closed (or reopened) before the save resolves, the result is
        ignored and audited as stale.

        Returns:
            SubmitOutcome of this attempt
        """
        self._require_open()
        if self._is_submitting:
            return SubmitOutcome(skipped=True)

        token = self._session_token
        session_id = self._session_id
        correlation_id = self._correlation_id
        kind = self.kind.value

        self._is_submitting = True
        self._audit(AuditEventBuilder.submit_started(kind, session_id, correlation_id))

        try:
            outcome = await self._adapter.submit(
                self._store.to_dict(),
                self.field_states,
                self.effective_category,
                self._on_save,
            )
        finally:
            if token == self._session_token:
                self._is_submitting = False

        if token != self._session_token:
            self._audit(AuditEventBuilder.stale_result_ignored(
                kind,
                session_id,
                "saved" if outcome.saved else "failed",
                correlation_id,
            ))
            return SubmitOutcome(skipped=True, payload=outcome.payload)

        if outcome.saved:
            self._audit(AuditEventBuilder.submit_succeeded(
                kind, session_id, outcome.payload or {}, correlation_id,
            ))
            self.close(reason="saved")
            return outcome

        self._errors = list(outcome.errors)
        self._warnings = list(outcome.warnings)
        if outcome.payload is None:
            # Stopped by validation before save was called
            self._audit(AuditEventBuilder.step_blocked(
                kind, session_id, self.current_step, outcome.errors, correlation_id,
            ))
        else:
            self._audit(AuditEventBuilder.submit_failed(
                kind, session_id, "; ".join(outcome.errors), correlation_id,
            ))
        return outcome


def _as_models(items: Iterable[Any], model: type) -> list[Any]:
    return [item if isinstance(item, model) else model.model_validate(item) for item in items]


def create_wizard(
    kind: Union[EntryKind, str],
    *,
    categories: Iterable[Any],
    members: Iterable[Any],
    on_save: SaveCallback,
    on_close: Optional[Callable[[], Any]] = None,
    entity: Optional[Mapping[str, Any]] = None,
    is_open: bool = False,
    default_currency: Optional[str] = None,
    default_frequency: Optional[str] = None,
    language: Optional[str] = None,
    translate: Optional[Translate] = None,
    audit_logger: Optional[AuditLogger] = None,
) -> EntryWizard:
    """
    Factory function to create a wizard for one entry kind.

    Categories and members may be models or plain dicts (as returned by
    the API). Defaults the caller leaves out come from WizardSettings.

    Args:
        kind: "asset", "income" or "expense"
        entity: Record to edit when the wizard is opened here
        is_open: Open the wizard immediately

    Returns:
        A configured EntryWizard
    """
    if default_currency is None or default_frequency is None or language is None:
        wizard_settings = get_settings().wizard
        default_currency = default_currency or wizard_settings.default_currency
        default_frequency = default_frequency or wizard_settings.default_frequency
        language = language or wizard_settings.language

    wizard = EntryWizard(
        get_schema(EntryKind(kind)),
        categories=_as_models(categories, CategoryMetadata),
        members=_as_models(members, Member),
        on_save=on_save,
        on_close=on_close,
        default_currency=default_currency,
        default_frequency=default_frequency,
        translate=translate,
        audit_logger=audit_logger,
        language=language,
    )
    if is_open:
        wizard.open(entity)
    return wizard
