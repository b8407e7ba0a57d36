"""
Tests for the wizard orchestrator.

Saves go to recording callbacks; no storage backend is involved.
"""

import asyncio
from datetime import date

import pytest

from entry_wizard import EntryWizard, WizardClosedError, create_wizard
from entry_wizard.config import get_settings
from entry_wizard.models import AuditEventType, CategoryMetadata, EntryKind
from entry_wizard.schemas import get_schema

TODAY = date(2024, 6, 15)


def _wizard(kind, categories, members, save, audit_logger=None, **kwargs):
    return EntryWizard(
        get_schema(kind),
        categories,
        members,
        on_save=save,
        audit_logger=audit_logger,
        default_currency="EUR",
        today=TODAY,
        **kwargs,
    )


def _event_types(audit_storage):
    return [event.event_type for event in audit_storage.events]


class BlockingSave:
    """Save callback that waits until released."""

    def __init__(self):
        self.release = asyncio.Event()
        self.calls = 0

    async def __call__(self, payload):
        self.calls += 1
        await self.release.wait()
        return payload


@pytest.fixture
def income_wizard(income_categories, members, recording_save, audit_logger):
    wizard = _wizard(EntryKind.INCOME, income_categories, members, recording_save, audit_logger)
    wizard.open()
    return wizard


@pytest.fixture
def asset_wizard(asset_categories, members, recording_save, audit_logger):
    wizard = _wizard(EntryKind.ASSET, asset_categories, members, recording_save, audit_logger)
    wizard.open()
    return wizard


@pytest.fixture
def expense_wizard(expense_categories, members, recording_save, audit_logger):
    wizard = _wizard(EntryKind.EXPENSE, expense_categories, members, recording_save, audit_logger)
    wizard.open()
    return wizard


def _walk_income_to_confirm(wizard):
    wizard.select_category(1)
    assert wizard.next()
    wizard.set_field("amount", "1500")
    assert wizard.next()
    assert wizard.next()
    assert wizard.next()
    assert wizard.current_step == 5


def _walk_asset_to_ownership(wizard):
    wizard.set_field("name", "Flat")
    wizard.select_category(101)
    assert wizard.next()
    wizard.set_field("amount", "250000")
    assert wizard.next()
    assert wizard.next()
    assert wizard.current_step == 4


class TestLifecycle:
    """Tests for open and close."""

    def test_open_fresh_draft(self, income_wizard, audit_storage):
        assert income_wizard.is_open
        assert not income_wizard.is_editing
        assert income_wizard.current_step == 1
        assert income_wizard.total_steps == 5
        assert income_wizard.draft["currency"] == "EUR"
        assert income_wizard.draft["start_date"] == "2024-06-15"
        assert income_wizard.errors == []
        assert _event_types(audit_storage) == [AuditEventType.WIZARD_OPENED]

    def test_close_discards_draft(self, income_categories, members, recording_save):
        closed = []
        wizard = _wizard(
            EntryKind.INCOME, income_categories, members, recording_save,
            on_close=lambda: closed.append(True),
        )
        wizard.open()
        wizard.set_field("amount", "10")
        wizard.close()

        assert not wizard.is_open
        assert closed == [True]
        # Closing twice is a no-op
        wizard.close()
        assert closed == [True]

    def test_reopen_starts_over(self, income_wizard):
        income_wizard.select_category(1)
        income_wizard.next()
        income_wizard.close()
        income_wizard.open()
        assert income_wizard.current_step == 1
        assert income_wizard.draft["category_id"] is None

    def test_closed_wizard_refuses_work(self, income_categories, members, recording_save):
        wizard = _wizard(EntryKind.INCOME, income_categories, members, recording_save)
        with pytest.raises(WizardClosedError):
            wizard.set_field("amount", "1")
        with pytest.raises(WizardClosedError):
            wizard.next()
        with pytest.raises(WizardClosedError):
            asyncio.run(wizard.submit())

    def test_edit_existing_subcategory(self, expense_categories, members, recording_save):
        wizard = _wizard(EntryKind.EXPENSE, expense_categories, members, recording_save)
        wizard.open({"id": 8, "category_id": 21, "amount": 40, "linked_asset_id": 5})

        assert wizard.is_editing
        assert wizard.draft["category_id"] == 20
        assert wizard.draft["subcategory_id"] == 21
        assert wizard.effective_category.id == 21
        assert wizard.draft["metadata"] == {"linked_asset_id": 5}


class TestEditing:
    """Tests for field edits and category selection."""

    def test_unknown_field(self, income_wizard):
        with pytest.raises(KeyError):
            income_wizard.set_field("colour", "red")

    def test_unknown_category(self, income_wizard):
        with pytest.raises(KeyError):
            income_wizard.select_category(999)

    def test_subcategory_selects_parent(self, expense_wizard):
        expense_wizard.set_field("category_id", 21)
        assert expense_wizard.draft["category_id"] == 20
        assert expense_wizard.draft["subcategory_id"] == 21
        assert [c.id for c in expense_wizard.subcategories()] == [21, 22]

    def test_category_change_resets_dependents(self, expense_wizard):
        expense_wizard.select_category(21)
        expense_wizard.update_nested("metadata", {"policy_number": "P-1"})
        expense_wizard.select_category(10)

        assert expense_wizard.draft["subcategory_id"] is None
        assert expense_wizard.draft["metadata"] == {}

    def test_same_category_keeps_dependents(self, expense_wizard):
        expense_wizard.select_category(20)
        expense_wizard.update_nested("metadata", {"policy_number": "P-1"})
        expense_wizard.select_category(22)

        assert expense_wizard.draft["subcategory_id"] == 22
        assert expense_wizard.draft["metadata"] == {"policy_number": "P-1"}

    def test_blank_category_clears_selection(self, income_wizard):
        income_wizard.select_category(1)
        income_wizard.set_field("category_id", "")
        assert income_wizard.draft["category_id"] is None
        assert income_wizard.selected_category is None

    def test_subcategory_cleared_back_to_parent(self, expense_wizard):
        expense_wizard.select_category(21)
        expense_wizard.update_nested("metadata", {"policy_number": "P-1"})
        expense_wizard.select_subcategory(None)

        assert expense_wizard.draft["category_id"] == 20
        assert expense_wizard.draft["subcategory_id"] is None
        assert expense_wizard.effective_category.id == 20
        assert expense_wizard.draft["metadata"] == {"policy_number": "P-1"}

    def test_select_subcategory_of_other_parent(self, expense_wizard):
        expense_wizard.select_category(20)
        expense_wizard.select_subcategory(22)
        assert expense_wizard.draft["subcategory_id"] == 22
        with pytest.raises(KeyError):
            expense_wizard.select_subcategory(10)

    def test_select_subcategory_ignored_without_field(self, income_wizard):
        income_wizard.select_category(1)
        income_wizard.select_subcategory(None)
        assert "subcategory_id" not in income_wizard.draft

    def test_field_states_follow_category(self, income_wizard):
        income_wizard.select_category(2)
        states = income_wizard.field_states

        assert states["household_member_id"].required
        assert not states["description"].visible
        assert not states["end_date"].visible
        assert states["category_id"].visible

    def test_category_without_requirements_shows_everything(self, income_wizard):
        income_wizard.select_category(1)
        states = income_wizard.field_states
        assert all(state.visible for state in states.values())
        assert not states["household_member_id"].required


class TestNavigation:
    """Tests for the step gate."""

    def test_missing_required_fields_block_silently(self, asset_wizard):
        assert not asset_wizard.can_proceed()
        assert not asset_wizard.next()
        assert asset_wizard.current_step == 1
        assert asset_wizard.errors == []

    def test_rule_errors_block_with_message(self, asset_wizard, audit_storage):
        asset_wizard.set_field("name", "Car")
        asset_wizard.select_category(100)
        assert asset_wizard.next()

        asset_wizard.set_field("amount", "-5")
        assert asset_wizard.can_proceed()
        assert not asset_wizard.next()
        assert asset_wizard.current_step == 2
        assert asset_wizard.errors == ["Valid amount is required"]
        assert AuditEventType.STEP_BLOCKED in _event_types(audit_storage)

    def test_prev_clears_errors(self, asset_wizard):
        asset_wizard.set_field("name", "Car")
        asset_wizard.select_category(100)
        asset_wizard.next()
        asset_wizard.set_field("amount", "abc")
        asset_wizard.next()

        assert asset_wizard.prev()
        assert asset_wizard.current_step == 1
        assert asset_wizard.errors == []
        assert not asset_wizard.prev()

    def test_editing_clears_errors(self, asset_wizard):
        asset_wizard.set_field("name", "Car")
        asset_wizard.select_category(100)
        asset_wizard.next()
        asset_wizard.set_field("amount", "0")
        asset_wizard.next()
        asset_wizard.set_field("amount", "10")
        assert asset_wizard.errors == []

    def test_required_member_blocks(self, income_wizard):
        income_wizard.select_category(2)
        income_wizard.next()
        income_wizard.set_field("amount", "900")
        income_wizard.next()
        income_wizard.next()
        assert income_wizard.current_step == 4
        assert not income_wizard.can_proceed()

        income_wizard.set_field("household_member_id", 2)
        assert income_wizard.next()

    def test_jump_from_category_step(self, income_wizard):
        income_wizard.select_category(1)
        assert income_wizard.jump_to(3)
        assert income_wizard.current_step == 3
        # Only allowed from the first step
        assert not income_wizard.jump_to(4)

    def test_jump_needs_category(self, income_wizard):
        assert not income_wizard.jump_to(3)
        assert income_wizard.current_step == 1

    def test_last_step_submits(self, income_wizard):
        _walk_income_to_confirm(income_wizard)
        assert income_wizard.step_action == "submit"
        assert not income_wizard.next()

    def test_expense_asset_link_required(self, expense_wizard):
        expense_wizard.select_category(21)
        assert expense_wizard.next()
        assert not expense_wizard.next()
        assert expense_wizard.errors == ["Asset is required for this category"]

        expense_wizard.update_nested("metadata", {"linked_asset_id": 5})
        assert expense_wizard.next()

    def test_expense_member_link_required(self, expense_wizard):
        expense_wizard.select_category(30)
        expense_wizard.next()
        expense_wizard.update_nested("metadata", {"linked_member_ids": [3]})
        expense_wizard.next()
        expense_wizard.set_field("amount", "120")
        expense_wizard.next()
        expense_wizard.next()
        assert expense_wizard.current_step == 5

        assert not expense_wizard.next()
        assert expense_wizard.errors == ["Member is required for this category"]

    def test_expense_metadata_requirement(self, members, recording_save):
        category = CategoryMetadata(
            id=40,
            name_en="Liability insurance",
            field_requirements={
                "amount": {"required": True},
                "currency": {"required": True},
                "start_date": {"required": True},
                "metadata": {"policy_number": {"required": True}},
            },
        )
        wizard = _wizard(EntryKind.EXPENSE, [category], members, recording_save)
        wizard.open()
        wizard.select_category(40)
        assert wizard.next()
        assert not wizard.next()
        assert wizard.errors == ['Metadata field "policy_number" is required']

        wizard.update_nested("metadata", {"policy_number": "P-9"})
        assert wizard.next()
        assert wizard.current_step == 3


class TestOwnership:
    """Tests for shared ownership handling."""

    def test_going_shared_splits_equally(self, asset_wizard):
        asset_wizard.set_ownership_type("shared")
        assert asset_wizard.draft["allocation"] == {1: 34, 2: 33, 3: 33}

    def test_existing_split_kept(self, asset_wizard):
        asset_wizard.set_field("allocation", {1: 70, 2: 30})
        asset_wizard.set_ownership_type("shared")
        assert asset_wizard.draft["allocation"] == {1: 70, 2: 30}

    def test_adjust_rebalances(self, asset_wizard, audit_storage):
        asset_wizard.set_ownership_type("shared")
        allocation = asset_wizard.adjust_allocation(1, 50)

        assert allocation == {1: 50, 2: 25, 3: 25}
        assert asset_wizard.draft["allocation"] == allocation
        assert AuditEventType.ALLOCATION_ADJUSTED in _event_types(audit_storage)

    def test_adjust_unknown_member(self, asset_wizard):
        asset_wizard.set_ownership_type("shared")
        with pytest.raises(KeyError):
            asset_wizard.adjust_allocation(42, 10)

    def test_member_joins_split(self, asset_wizard):
        asset_wizard.set_field("allocation", {1: 60, 2: 40})
        asset_wizard.set_ownership_type("shared")
        allocation = asset_wizard.adjust_allocation(3, 20)
        assert allocation == {1: 48, 2: 32, 3: 20}

    def test_remove_member(self, asset_wizard):
        asset_wizard.set_field("allocation", {1: 50, 2: 25, 3: 25})
        assert asset_wizard.remove_allocation_member(3) == {1: 67, 2: 33}

    def test_unbalanced_split_warns_but_proceeds(self, asset_wizard, audit_storage):
        _walk_asset_to_ownership(asset_wizard)
        asset_wizard.set_ownership_type("shared")
        asset_wizard.adjust_allocation(1, 100)

        assert asset_wizard.next()
        assert asset_wizard.current_step == 5
        assert asset_wizard.warnings == ["Ownership percentages add up to 166% instead of 100%"]
        assert AuditEventType.ALLOCATION_UNBALANCED in _event_types(audit_storage)

    def test_single_member_share_blocks(self, asset_wizard):
        _walk_asset_to_ownership(asset_wizard)
        asset_wizard.set_field("ownership_type", "shared")
        asset_wizard.set_field("allocation", {1: 100})

        assert not asset_wizard.next()
        assert asset_wizard.errors == ["Shared ownership needs at least two members"]


class TestReview:
    """Tests for the confirmation summary."""

    def test_income_review(self, income_wizard):
        _walk_income_to_confirm(income_wizard)
        income_wizard.set_field("household_member_id", 2)
        lines = {line.field: line.value for line in income_wizard.review()}

        assert lines["category_id"] == "💵 Salary"
        assert lines["amount"] == "1500"
        assert lines["household_member_id"] == "Sam"
        # One-off entries do not show a frequency; booleans are skipped
        assert "frequency" not in lines
        assert "is_recurring" not in lines
        assert "description" not in lines

    def test_localized_category(self, income_categories, members, recording_save):
        wizard = _wizard(EntryKind.INCOME, income_categories, members, recording_save, language="de")
        wizard.open()
        wizard.select_category(1)
        lines = {line.field: line.value for line in wizard.review()}
        assert lines["category_id"] == "💵 Gehalt"

    def test_recurring_shows_frequency(self, income_wizard):
        income_wizard.select_category(1)
        income_wizard.set_field("is_recurring", True)
        lines = {line.field: line.value for line in income_wizard.review()}
        assert lines["frequency"] == "monthly"

    def test_shared_asset_review(self, asset_wizard):
        asset_wizard.set_field("household_member_id", 1)
        asset_wizard.set_ownership_type("shared")
        lines = [line for line in asset_wizard.review() if line.field == "allocation"]

        assert [line.value for line in lines] == ["Alex: 34%", "Sam: 33%", "Robin: 33%"]
        assert "household_member_id" not in {line.field for line in asset_wizard.review()}

    def test_expense_metadata_review(self, expense_wizard):
        expense_wizard.select_category(30)
        expense_wizard.update_nested("metadata", {"linked_member_ids": [1, 3], "school": ""})
        lines = {line.field: line.value for line in expense_wizard.review()}

        assert lines["metadata.linked_member_ids"] == "Alex, Robin"
        assert "metadata.school" not in lines


class TestSubmit:
    """Tests for submission."""

    def test_success_closes(self, income_categories, members, recording_save, audit_logger, audit_storage):
        closed = []
        wizard = _wizard(
            EntryKind.INCOME, income_categories, members, recording_save, audit_logger,
            on_close=lambda: closed.append(True),
        )
        wizard.open()
        _walk_income_to_confirm(wizard)
        outcome = asyncio.run(wizard.submit())

        assert outcome.saved
        assert recording_save.payloads[0]["amount"] == 1500.0
        assert recording_save.payloads[0]["currency"] == "EUR"
        assert not wizard.is_open
        assert closed == [True]

        types = _event_types(audit_storage)
        assert AuditEventType.SUBMIT_SUCCEEDED in types
        closed_event = audit_storage.events[-1]
        assert closed_event.event_type == AuditEventType.WIZARD_CLOSED
        assert closed_event.details["reason"] == "saved"

    def test_failure_stays_open(self, income_categories, members, save_factory, audit_logger, audit_storage):
        save = save_factory(error=RuntimeError("Server said no"))
        wizard = _wizard(EntryKind.INCOME, income_categories, members, save, audit_logger)
        wizard.open()
        _walk_income_to_confirm(wizard)
        outcome = asyncio.run(wizard.submit())

        assert not outcome.saved
        assert wizard.is_open
        assert not wizard.is_submitting
        assert wizard.errors == ["Server said no"]
        assert AuditEventType.SUBMIT_FAILED in _event_types(audit_storage)

    def test_invalid_draft_not_saved(self, income_wizard, recording_save):
        income_wizard.select_category(1)
        income_wizard.jump_to(5)
        outcome = asyncio.run(income_wizard.submit())

        assert not outcome.saved
        assert income_wizard.errors == ["Valid amount is required"]
        assert recording_save.payloads == []

    def test_duplicate_submit_skipped(self, income_categories, members):
        save = BlockingSave()
        wizard = _wizard(EntryKind.INCOME, income_categories, members, save)
        wizard.open()
        _walk_income_to_confirm(wizard)

        async def scenario():
            first = asyncio.create_task(wizard.submit())
            await asyncio.sleep(0)
            assert wizard.is_submitting
            second = await wizard.submit()
            save.release.set()
            return await first, second

        first, second = asyncio.run(scenario())
        assert first.saved
        assert second.skipped
        assert save.calls == 1

    def test_result_after_close_ignored(self, income_categories, members, audit_logger, audit_storage):
        save = BlockingSave()
        wizard = _wizard(EntryKind.INCOME, income_categories, members, save, audit_logger)
        wizard.open()
        _walk_income_to_confirm(wizard)

        async def scenario():
            pending = asyncio.create_task(wizard.submit())
            await asyncio.sleep(0)
            wizard.close()
            wizard.open()
            save.release.set()
            return await pending

        outcome = asyncio.run(scenario())

        assert outcome.skipped
        assert outcome.payload is not None
        # The reopened session is untouched
        assert wizard.is_open
        assert wizard.current_step == 1
        assert not wizard.is_submitting
        assert AuditEventType.STALE_RESULT_IGNORED in _event_types(audit_storage)

    def test_edit_round_trip(self, income_categories, members, recording_save):
        entity = {
            "id": 4,
            "category_id": 1,
            "amount": 2500.0,
            "currency": "EUR",
            "description": "June salary",
            "start_date": "2024-06-01",
            "end_date": None,
            "is_recurring": True,
            "frequency": "monthly",
            "household_member_id": 2,
        }
        wizard = _wizard(EntryKind.INCOME, income_categories, members, recording_save)
        wizard.open(entity)
        wizard.jump_to(5)
        outcome = asyncio.run(wizard.submit())

        assert outcome.saved
        expected = dict(entity)
        del expected["id"]
        assert recording_save.payloads == [expected]

    def test_asset_shared_submit(self, asset_wizard, recording_save):
        _walk_asset_to_ownership(asset_wizard)
        asset_wizard.set_ownership_type("shared")
        asset_wizard.adjust_allocation(2, 50)
        outcome = asyncio.run(asset_wizard.submit())

        assert outcome.saved
        payload = recording_save.payloads[0]
        assert payload["shared_ownership"] == [
            {"household_member_id": 1, "ownership_percentage": 25},
            {"household_member_id": 2, "ownership_percentage": 50},
            {"household_member_id": 3, "ownership_percentage": 25},
        ]
        assert payload["household_member_id"] is None


class TestCreateWizard:
    """Tests for the factory."""

    def test_accepts_dicts(self, recording_save):
        wizard = create_wizard(
            "expense",
            categories=[{"id": 10, "name_en": "Groceries"}],
            members=[{"id": 1, "first_name": "Alex", "last_name": "Doe"}],
            on_save=recording_save,
            default_currency="EUR",
            default_frequency="weekly",
            language="en",
            is_open=True,
        )
        assert wizard.is_open
        assert wizard.kind == EntryKind.EXPENSE
        assert wizard.members[0].name == "Alex Doe"
        assert wizard.draft["frequency"] == "weekly"

    def test_closed_by_default(self, recording_save):
        wizard = create_wizard("income", categories=[], members=[], on_save=recording_save)
        assert not wizard.is_open

    def test_defaults_from_settings(self, monkeypatch, recording_save):
        monkeypatch.setenv("ENTRY_WIZARD_DEFAULT_CURRENCY", "chf")
        monkeypatch.setenv("ENTRY_WIZARD_DEFAULT_FREQUENCY", "yearly")
        get_settings.cache_clear()
        try:
            wizard = create_wizard(
                "income", categories=[], members=[], on_save=recording_save, is_open=True,
            )
        finally:
            get_settings.cache_clear()

        assert wizard.draft["currency"] == "CHF"
        assert wizard.draft["frequency"] == "yearly"
