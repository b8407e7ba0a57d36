"""
Directory Models: Categories and Household Members

These are read-only inputs supplied by the surrounding application.
The wizard never mutates them.

DESIGN DECISION: field_requirements is normalized at the model boundary.
A nested "metadata" map (as produced by the category admin editor) is
flattened to "metadata.<key>" entries, so the resolver only ever sees a
flat {field_name: FieldRequirement} map.
"""

from enum import Enum
from typing import Any, Mapping, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


class EntryKind(str, Enum):
    """The three kinds of record the wizard can capture."""
    ASSET = "asset"
    INCOME = "income"
    EXPENSE = "expense"


class OwnershipType(str, Enum):
    """How an asset is owned."""
    SINGLE = "single"
    SHARED = "shared"


class Frequency(str, Enum):
    """Recurrence of an income or expense entry."""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"
    ONE_TIME = "one-time"


# Icon name -> glyph. Unknown or missing names fall back to DEFAULT_ICON.
DEFAULT_ICON = "CubeTransparentIcon"

CATEGORY_ICONS: dict[str, str] = {
    "banknotes": "💵",
    "BanknotesIcon": "💵",
    "cube": "📦",
    "CubeIcon": "📦",
    "sparkles": "✨",
    "SparklesIcon": "✨",
    "truck": "🚗",
    "TruckIcon": "🚗",
    "HomeIcon": "🏠",
    "BuildingLibraryIcon": "🏦",
    "ChartBarIcon": "📈",
    "CurrencyDollarIcon": "💲",
    "GiftIcon": "🎁",
    "AcademicCapIcon": "🎓",
    "ShieldCheckIcon": "🛡️",
    DEFAULT_ICON: "🔷",
}


def icon_for(icon_name: Optional[str]) -> str:
    """Look up the glyph for an icon name, with an explicit default."""
    if not icon_name:
        return CATEGORY_ICONS[DEFAULT_ICON]
    return CATEGORY_ICONS.get(icon_name, CATEGORY_ICONS[DEFAULT_ICON])


class FieldCondition(BaseModel):
    """A requirement that only applies while another field has a given value."""

    field: str = Field(..., min_length=1)
    value: Any = None


class FieldRequirement(BaseModel):
    """
    Requirement entry for one field of a category.

    The presence of the entry makes the field visible;
    `required` makes it mandatory.
    """
    model_config = ConfigDict(extra="ignore")

    required: bool = False
    conditional: Optional[FieldCondition] = None
    # None means "not restricted"; only an explicit False limits to one
    multiple_allowed: Optional[bool] = None

    def required_for(self, values: Mapping[str, Any]) -> bool:
        """Requiredness once the condition (if any) is checked against values."""
        if not self.required:
            return False
        if self.conditional is None:
            return True
        return values.get(self.conditional.field) == self.conditional.value


class CategoryMetadata(BaseModel):
    """
    A category from one of the category directories.

    Only `id` and the English name are mandatory; everything else
    defaults to "no special behaviour".
    """
    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    id: int
    name_en: str = Field(..., min_length=1, max_length=200)
    name_de: Optional[str] = None
    name_tr: Optional[str] = None

    # "type" on asset categories, "category_type" on expense categories
    type: Optional[str] = None
    category_type: Optional[str] = None
    icon: Optional[str] = None
    is_default: bool = False

    field_requirements: Optional[dict[str, FieldRequirement]] = None

    # Expense linking flags
    requires_member_link: bool = False
    requires_asset_link: bool = False
    allows_multiple_members: bool = False

    # Hierarchy
    parent_category_id: Optional[int] = None
    subcategories: list["CategoryMetadata"] = Field(default_factory=list)

    @field_validator('field_requirements', mode='before')
    @classmethod
    def flatten_requirements(cls, v: Any) -> Any:
        """Flatten the nested metadata map and accept null entries."""
        if v is None:
            return None
        if not isinstance(v, dict):
            raise ValueError("field_requirements must be a mapping")

        flat: dict[str, Any] = {}
        for key, entry in v.items():
            if key == "metadata" and isinstance(entry, dict) and all(
                isinstance(sub, dict) or sub is None for sub in entry.values()
            ) and "required" not in entry:
                for meta_key, meta_entry in entry.items():
                    flat[f"metadata.{meta_key}"] = meta_entry or {}
            else:
                flat[key] = entry or {}
        return flat

    def name_for(self, language: str = "en") -> str:
        """Localized name, falling back to English."""
        if language == "de" and self.name_de:
            return self.name_de
        if language == "tr" and self.name_tr:
            return self.name_tr
        return self.name_en

    @property
    def kind_tag(self) -> Optional[str]:
        """The category's type tag, whichever column carries it."""
        return self.category_type or self.type

    @property
    def icon_glyph(self) -> str:
        return icon_for(self.icon)


class Member(BaseModel):
    """A household member who can own or be linked to an entry."""
    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    id: int
    name: str = Field(..., min_length=1, max_length=200)
    relationship: Optional[str] = None

    @model_validator(mode='before')
    @classmethod
    def compose_name(cls, data: Any) -> Any:
        """Expense directories send first_name/last_name instead of name."""
        if isinstance(data, dict) and not data.get("name"):
            parts = [data.get("first_name"), data.get("last_name")]
            composed = " ".join(p.strip() for p in parts if p and p.strip())
            if composed:
                data = {**data, "name": composed}
        return data


def flatten_categories(categories: list[CategoryMetadata]) -> list[CategoryMetadata]:
    """
    Depth-first list of every category and subcategory.

    Used for id lookups; the selection UI still shows only parents.
    """
    result: list[CategoryMetadata] = []

    def _walk(items: list[CategoryMetadata]) -> None:
        for item in items:
            result.append(item)
            if item.subcategories:
                _walk(item.subcategories)

    _walk(categories)
    return result


CategoryMetadata.model_rebuild()
