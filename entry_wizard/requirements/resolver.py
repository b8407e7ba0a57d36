"""
Field Requirement Resolver

Turns the selected category's field_requirements map into a visibility and
requiredness state for every field a wizard knows about.

DESIGN DECISION: Absence of metadata is not an error.
- No category, or a category without field_requirements:
  every known field is visible and falls back to its own default
  requiredness (declared on the wizard schema)
- A field_requirements map present:
  a field is visible iff its key is in the map,
  required iff the entry says required=True

The resolver is a pure function of its inputs.
"""

from typing import Iterable, Mapping, Optional

from entry_wizard.models.category import CategoryMetadata
from entry_wizard.models.wizard import FieldState


def resolve(
    category: Optional[CategoryMetadata],
    known_fields: Iterable[str],
    default_required: Optional[Mapping[str, bool]] = None,
) -> dict[str, FieldState]:
    """
    Resolve visibility and requiredness for every known field.

    Args:
        category: The selected category, if any
        known_fields: Every field name the wizard can show
        default_required: field -> requiredness used when the category
            carries no requirements map (missing entries mean optional)

    Returns:
        field name -> FieldState, one entry per known field
    """
    defaults = default_required or {}
    requirements = category.field_requirements if category else None

    if requirements is None:
        return {
            name: FieldState(visible=True, required=bool(defaults.get(name, False)))
            for name in known_fields
        }

    states: dict[str, FieldState] = {}
    for name in known_fields:
        entry = requirements.get(name)
        if entry is None:
            states[name] = FieldState(visible=False, required=False)
        else:
            states[name] = FieldState(
                visible=True,
                required=entry.required is True,
                condition=entry.conditional,
            )
    return states


def visible_fields(states: Mapping[str, FieldState]) -> list[str]:
    return [name for name, state in states.items() if state.visible]
