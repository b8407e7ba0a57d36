"""Draft state for a wizard session."""

from entry_wizard.state.store import FormStateStore

__all__ = ["FormStateStore"]
