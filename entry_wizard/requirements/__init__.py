"""Category-driven field requirement resolution."""

from entry_wizard.requirements.resolver import resolve, visible_fields

__all__ = ["resolve", "visible_fields"]
