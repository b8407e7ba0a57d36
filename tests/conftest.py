"""Shared fixtures: a small household and its category directories."""

from datetime import date

import pytest

from entry_wizard.audit import AuditLogger
from entry_wizard.models import CategoryMetadata, Member
from entry_wizard.services.storage import InMemoryAuditStorage


TODAY = date(2024, 6, 15)


@pytest.fixture
def members():
    return [
        Member(id=1, name="Alex", relationship="self"),
        Member(id=2, name="Sam", relationship="partner"),
        Member(id=3, name="Robin", relationship="child"),
    ]


@pytest.fixture
def income_categories():
    return [
        CategoryMetadata(id=1, name_en="Salary", name_de="Gehalt", icon="BanknotesIcon"),
        CategoryMetadata(
            id=2,
            name_en="Rental income",
            icon="HomeIcon",
            field_requirements={
                "amount": {"required": True},
                "currency": {"required": True},
                "start_date": {"required": True},
                "household_member_id": {"required": True},
            },
        ),
    ]


@pytest.fixture
def expense_categories():
    return [
        CategoryMetadata(id=10, name_en="Groceries"),
        CategoryMetadata.model_validate({
            "id": 20,
            "name_en": "Insurance",
            "icon": "ShieldCheckIcon",
            "subcategories": [
                {
                    "id": 21,
                    "name_en": "Car insurance",
                    "parent_category_id": 20,
                    "requires_asset_link": True,
                },
                {"id": 22, "name_en": "Health insurance", "parent_category_id": 20},
            ],
        }),
        CategoryMetadata(
            id=30,
            name_en="School",
            requires_member_link=True,
            allows_multiple_members=True,
        ),
    ]


@pytest.fixture
def asset_categories():
    return [
        CategoryMetadata(id=100, name_en="Vehicle", type="vehicle", icon="TruckIcon"),
        CategoryMetadata(id=101, name_en="Real estate", type="property", icon="HomeIcon"),
    ]


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def audit_logger(audit_storage):
    return AuditLogger(audit_storage)


class RecordingSave:
    """Async save callback that records payloads, optionally failing."""

    def __init__(self, error=None):
        self.payloads = []
        self.error = error

    async def __call__(self, payload):
        self.payloads.append(payload)
        if self.error is not None:
            raise self.error
        return {**payload, "id": len(self.payloads)}


@pytest.fixture
def recording_save():
    return RecordingSave()


@pytest.fixture
def save_factory():
    return RecordingSave
