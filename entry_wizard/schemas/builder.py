"""
Wizard Schemas

DESIGN DECISION: One generic engine, three schemas.
The asset, income and expense wizards differ only in data:
- which fields exist, their kinds and defaults
- which steps show which fields, and which rules each step runs
- how an existing entity is loaded into a draft (load hooks)
- how a finished draft is shaped into a payload (payload hooks)

WizardSchemaBuilder assembles that data and checks it is consistent
before the engine ever sees it.
"""

from datetime import date
from typing import Any, Callable, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from entry_wizard.models.category import EntryKind
from entry_wizard.models.wizard import FieldKind, FieldState
from entry_wizard.validation.validator import RULES, ValidationEngine

# (entity, draft) -> draft
LoadHook = Callable[[Mapping[str, Any], dict[str, Any]], dict[str, Any]]
# (payload, draft) -> payload
PayloadHook = Callable[[dict[str, Any], Mapping[str, Any]], dict[str, Any]]

# Placeholders for defaults that are only known when the wizard opens
DEFAULT_CURRENCY = "$currency"
DEFAULT_TODAY = "$today"
DEFAULT_FREQUENCY = "$frequency"


class FieldSpec(BaseModel):
    """One field of a wizard draft."""
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    kind: FieldKind = FieldKind.STRING
    default: Any = None
    default_required: bool = False
    # Governed fields follow the category's field_requirements;
    # the rest always use default_required.
    governed: bool = True
    # Reset to the default whenever the category changes
    category_dependent: bool = False
    in_payload: bool = True
    label_key: str = ""

    def initial_value(self, placeholders: Mapping[str, Any]) -> Any:
        """The value a fresh draft starts with."""
        if isinstance(self.default, str) and self.default in placeholders:
            return placeholders[self.default]
        if self.default is not None:
            if isinstance(self.default, (dict, list)):
                return type(self.default)(self.default)
            return self.default
        return empty_value(self.kind)

    def to_form_value(self, value: Any) -> Any:
        """
        Convert a stored entity value into its draft form.

        Numbers become strings (what a text input holds), dates become
        ISO strings, missing values become the kind's empty value.
        """
        if value is None:
            return empty_value(self.kind)
        if self.kind == FieldKind.NUMBER:
            return str(value)
        if self.kind == FieldKind.INTEGER:
            return int(value) if not isinstance(value, bool) else value
        if self.kind == FieldKind.DATE:
            if isinstance(value, date):
                return value.isoformat()
            return str(value)[:10]
        if self.kind == FieldKind.BOOLEAN:
            return bool(value)
        if self.kind == FieldKind.LIST:
            return list(value)
        if self.kind == FieldKind.OBJECT:
            return dict(value)
        return value


def empty_value(kind: FieldKind) -> Any:
    if kind == FieldKind.INTEGER:
        return None
    if kind == FieldKind.BOOLEAN:
        return False
    if kind == FieldKind.LIST:
        return []
    if kind == FieldKind.OBJECT:
        return {}
    return ""


class StepDefinition(BaseModel):
    """One step of a wizard: the fields it shows and the rules it runs."""
    model_config = ConfigDict(frozen=True)

    number: int = Field(..., ge=1)
    key: str
    title_key: str
    fields: tuple[str, ...] = ()
    rules: tuple[str, ...] = ()

    def check(
        self,
        engine: ValidationEngine,
        kind: str,
        draft: Mapping[str, Any],
        states: Mapping[str, FieldState],
        category=None,
    ):
        """All issues (errors and warnings) of this step."""
        return engine.check(kind, self.rules, draft, states, category)

    def blocking_errors(
        self,
        engine: ValidationEngine,
        kind: str,
        draft: Mapping[str, Any],
        states: Mapping[str, FieldState],
        category=None,
    ) -> list[str]:
        """Blocking messages of this step."""
        return engine.validate(kind, self.rules, draft, states, category)


class WizardSchema(BaseModel):
    """Complete, validated description of one wizard variant."""
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    kind: EntryKind
    fields: dict[str, FieldSpec]
    steps: tuple[StepDefinition, ...]
    load_hooks: tuple[LoadHook, ...] = ()
    payload_hooks: tuple[PayloadHook, ...] = ()
    failure_message_key: str

    @property
    def total_steps(self) -> int:
        return len(self.steps)

    def step(self, number: int) -> StepDefinition:
        return self.steps[number - 1]

    @property
    def governed_fields(self) -> list[str]:
        return [name for name, spec in self.fields.items() if spec.governed]

    @property
    def default_required(self) -> dict[str, bool]:
        return {name: spec.default_required for name, spec in self.fields.items()}

    @property
    def category_dependents(self) -> list[str]:
        return [name for name, spec in self.fields.items() if spec.category_dependent]

    def initial_draft(
        self,
        placeholders: Mapping[str, Any],
        entity: Optional[Mapping[str, Any]] = None,
    ) -> dict[str, Any]:
        """
        Build the draft a wizard opens with.

        Every field gets its default first; an entity being edited then
        overrides what it carries, and the load hooks fill in the rest.
        """
        draft = {
            name: spec.initial_value(placeholders)
            for name, spec in self.fields.items()
        }
        if entity is None:
            return draft

        for name, spec in self.fields.items():
            if name in entity:
                value = spec.to_form_value(entity[name])
                if (
                    spec.kind != FieldKind.BOOLEAN
                    and value == empty_value(spec.kind)
                    and spec.default is not None
                ):
                    # "" for currency means "not set", keep the default
                    continue
                draft[name] = value

        for hook in self.load_hooks:
            draft = hook(entity, draft)
        return draft


class WizardSchemaBuilder:
    """
    Fluent builder for WizardSchema.

    Usage:
        schema = (
            WizardSchemaBuilder(EntryKind.INCOME)
            .field("category_id", FieldKind.INTEGER, required=True, governed=False)
            .step("category", "income.steps.category", ["category_id"], ["category"])
            .failure_message("errors.save_income_failed")
            .build()
        )
    """

    def __init__(self, kind: EntryKind):
        self._kind = kind
        self._fields: dict[str, FieldSpec] = {}
        self._steps: list[tuple[str, str, tuple[str, ...], tuple[str, ...]]] = []
        self._load_hooks: list[LoadHook] = []
        self._payload_hooks: list[PayloadHook] = []
        self._failure_key = f"errors.save_{kind.value}_failed"

    def field(
        self,
        name: str,
        kind: FieldKind = FieldKind.STRING,
        *,
        default: Any = None,
        required: bool = False,
        governed: bool = True,
        category_dependent: bool = False,
        in_payload: bool = True,
        label_key: Optional[str] = None,
    ) -> "WizardSchemaBuilder":
        if name in self._fields:
            raise ValueError(f"Field declared twice: {name}")
        self._fields[name] = FieldSpec(
            name=name,
            kind=kind,
            default=default,
            default_required=required,
            governed=governed,
            category_dependent=category_dependent,
            in_payload=in_payload,
            label_key=label_key or f"{self._kind.value}.fields.{name}",
        )
        return self

    def step(
        self,
        key: str,
        title_key: str,
        fields: list[str],
        rules: Optional[list[str]] = None,
    ) -> "WizardSchemaBuilder":
        self._steps.append((key, title_key, tuple(fields), tuple(rules or ())))
        return self

    def on_load(self, hook: LoadHook) -> "WizardSchemaBuilder":
        self._load_hooks.append(hook)
        return self

    def on_payload(self, hook: PayloadHook) -> "WizardSchemaBuilder":
        self._payload_hooks.append(hook)
        return self

    def failure_message(self, key: str) -> "WizardSchemaBuilder":
        self._failure_key = key
        return self

    def build(self) -> WizardSchema:
        """
        Assemble the schema.

        Raises:
            ValueError: If there are no steps, a step shows an undeclared
                field, or a step names an unknown rule
        """
        if not self._steps:
            raise ValueError("A wizard needs at least one step")

        steps = []
        for number, (key, title_key, fields, rules) in enumerate(self._steps, start=1):
            unknown_fields = [f for f in fields if f not in self._fields]
            if unknown_fields:
                raise ValueError(f"Step {key} shows undeclared fields: {unknown_fields}")
            unknown_rules = [r for r in rules if r not in RULES]
            if unknown_rules:
                raise ValueError(f"Step {key} runs unknown rules: {unknown_rules}")
            steps.append(StepDefinition(
                number=number,
                key=key,
                title_key=title_key,
                fields=fields,
                rules=rules,
            ))

        return WizardSchema(
            kind=self._kind,
            fields=dict(self._fields),
            steps=tuple(steps),
            load_hooks=tuple(self._load_hooks),
            payload_hooks=tuple(self._payload_hooks),
            failure_message_key=self._failure_key,
        )


# =============================================================================
# Shared hooks
# =============================================================================

def clear_frequency_unless_recurring(
    payload: dict[str, Any],
    draft: Mapping[str, Any],
) -> dict[str, Any]:
    """A one-off entry carries no frequency."""
    if not payload.get("is_recurring"):
        payload["frequency"] = None
    return payload
