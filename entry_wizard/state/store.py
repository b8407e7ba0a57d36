"""
Form State Store

Holds the draft record of one wizard session.

DESIGN DECISION: Replace-on-update.
Every write builds a new dict from the old draft plus the change, so a
snapshot handed out earlier never changes underneath its holder, and
values entered on earlier steps survive later writes.

Nested sub-objects (expense "metadata") are merged key by key instead of
overwritten.
"""

from copy import deepcopy
from types import MappingProxyType
from typing import Any, Iterable, Mapping


class FormStateStore:
    """Draft record keyed by field name."""

    def __init__(self, fields: Iterable[str]):
        """
        Args:
            fields: Every field name the draft may hold.
                    Writes to any other name raise KeyError.
        """
        self._fields = frozenset(fields)
        self._draft: dict[str, Any] = {}

    @property
    def fields(self) -> frozenset[str]:
        return self._fields

    def _check(self, field: str) -> None:
        if field not in self._fields:
            raise KeyError(f"Unknown field: {field}")

    def get(self, field: str, default: Any = None) -> Any:
        return self._draft.get(field, default)

    def set(self, field: str, value: Any) -> None:
        """Replace one top-level field."""
        self._check(field)
        self._draft = {**self._draft, field: value}

    def merge(self, field: str, updates: Mapping[str, Any]) -> None:
        """Merge keys into a nested sub-object, keeping the ones not named."""
        self._check(field)
        current = self._draft.get(field) or {}
        if not isinstance(current, Mapping):
            raise TypeError(f"Field {field} does not hold an object")
        self._draft = {**self._draft, field: {**current, **updates}}

    def load(self, draft: Mapping[str, Any]) -> None:
        """
        Replace the whole draft. Used only when the wizard opens.

        Every known field must be present; unknown keys are rejected.
        """
        unknown = set(draft) - self._fields
        if unknown:
            raise KeyError(f"Unknown fields: {', '.join(sorted(unknown))}")
        missing = self._fields - set(draft)
        if missing:
            raise KeyError(f"Missing fields: {', '.join(sorted(missing))}")
        self._draft = deepcopy(dict(draft))

    def clear(self) -> None:
        self._draft = {}

    def snapshot(self) -> Mapping[str, Any]:
        """Read-only view of the current draft."""
        return MappingProxyType(self._draft)

    def to_dict(self) -> dict[str, Any]:
        """Independent deep copy, safe to hand to payload builders."""
        return deepcopy(self._draft)
