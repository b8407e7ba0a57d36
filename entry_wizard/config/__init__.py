"""Configuration package."""

from entry_wizard.config.settings import (
    ApiSettings,
    Settings,
    WizardSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "ApiSettings",
    "Settings",
    "WizardSettings",
    "get_settings",
    "validate_all_settings",
]
