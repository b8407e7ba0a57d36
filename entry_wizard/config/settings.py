"""
Configuration Management for the Entry Wizard

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
The wizard itself never reads these values ambiently - the factory in
orchestrator.py reads them once and passes them in as constructor
arguments (e.g. the default currency).
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class WizardSettings(BaseSettings):
    """Defaults used to seed a fresh draft."""

    model_config = SettingsConfigDict(
        env_prefix="ENTRY_WIZARD_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    default_currency: str = Field(
        default="USD",
        min_length=1,
        max_length=10,
        description="Currency preselected on the amount step"
    )
    default_frequency: str = Field(
        default="monthly",
        description="Frequency preselected when an entry becomes recurring"
    )
    language: str = Field(
        default="en",
        pattern="^(en|de|tr)$",
        description="Language used for category names in the review summary"
    )

    @field_validator('default_currency')
    @classmethod
    def upper_currency(cls, v: str) -> str:
        """Currency codes are stored upper-case."""
        return v.strip().upper()


class ApiSettings(BaseSettings):
    """Backend API used by ApiEntryStorage."""

    model_config = SettingsConfigDict(
        env_prefix="ENTRY_API_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    base_url: str = Field(
        ...,
        description="Base URL of the records API, e.g. http://localhost:5000/api"
    )
    timeout_seconds: float = Field(
        default=15.0,
        gt=0,
        le=120,
        description="Per-request timeout"
    )
    max_retries: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts for transient connection failures"
    )
    auth_token: Optional[str] = Field(
        default=None,
        description="Bearer token sent with every request"
    )

    @field_validator('base_url')
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


class Settings(BaseSettings):
    """
    Root settings container.

    Sub-settings are loaded lazily so the wizard works without
    any API configuration.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def wizard(self) -> WizardSettings:
        return WizardSettings()

    @property
    def api(self) -> ApiSettings:
        return ApiSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus
    {setting_name}_error entries for the failing sections.
    """
    results = {}

    settings = get_settings()

    try:
        _ = settings.wizard
        results["wizard"] = True
    except Exception as e:
        results["wizard"] = False
        results["wizard_error"] = str(e)

    try:
        _ = settings.api
        results["api"] = True
    except Exception as e:
        results["api"] = False
        results["api_error"] = str(e)

    return results
