"""
Streamlit Demo Shell for the Entry Wizard

A thin UI over EntryWizard: it renders the current step's fields, shows
errors and warnings, and forwards every edit to the wizard. All rules
(visibility, requiredness, validation, allocation) live in the engine.

DESIGN PRINCIPLES:
1. The UI never decides whether a step may be left
2. Every widget change goes through set_field / adjust_allocation
3. Nothing is saved without an explicit "Save" on the confirm step
4. Errors are shown exactly as the wizard reports them

Records are kept in memory unless ENTRY_API_BASE_URL points at a backend.
"""

import asyncio
import os
from datetime import date

import streamlit as st

from entry_wizard import create_wizard
from entry_wizard.audit import AuditLogger
from entry_wizard.config import get_settings, validate_all_settings
from entry_wizard.models import EntryKind, FieldKind, OwnershipType
from entry_wizard.services.storage import (
    ApiEntryStorage,
    InMemoryAuditStorage,
    InMemoryEntryStorage,
)
from entry_wizard.submission import storage_save_callback
from entry_wizard.validation import parse_date


# Page configuration
st.set_page_config(
    page_title="Entry Wizard",
    page_icon="🧾",
    layout="wide",
    initial_sidebar_state="expanded",
)

# Custom CSS for better UX
st.markdown("""
<style>
    .stButton>button {
        width: 100%;
        margin-top: 10px;
    }
    .success-box {
        padding: 20px;
        background-color: #d4edda;
        border-radius: 10px;
        border-left: 5px solid #28a745;
        margin: 10px 0;
    }
    .warning-box {
        padding: 20px;
        background-color: #fff3cd;
        border-radius: 10px;
        border-left: 5px solid #ffc107;
        margin: 10px 0;
    }
    .error-box {
        padding: 20px;
        background-color: #f8d7da;
        border-radius: 10px;
        border-left: 5px solid #dc3545;
        margin: 10px 0;
    }
</style>
""", unsafe_allow_html=True)


DEMO_MEMBERS = [
    {"id": 1, "name": "Alex", "relationship": "self"},
    {"id": 2, "name": "Sam", "relationship": "partner"},
    {"id": 3, "name": "Robin", "relationship": "child"},
]

DEMO_CATEGORIES = {
    EntryKind.ASSET: [
        {"id": 100, "name_en": "Vehicle", "type": "vehicle", "icon": "TruckIcon"},
        {"id": 101, "name_en": "Real estate", "type": "property", "icon": "HomeIcon"},
        {"id": 102, "name_en": "Savings account", "type": "cash", "icon": "BanknotesIcon"},
    ],
    EntryKind.INCOME: [
        {"id": 1, "name_en": "Salary", "name_de": "Gehalt", "icon": "BanknotesIcon"},
        {
            "id": 2,
            "name_en": "Rental income",
            "icon": "HomeIcon",
            "field_requirements": {
                "amount": {"required": True},
                "currency": {"required": True},
                "start_date": {"required": True},
                "is_recurring": {"required": False},
                "frequency": {"required": True, "conditional": {"field": "is_recurring", "value": True}},
                "household_member_id": {"required": True},
            },
        },
    ],
    EntryKind.EXPENSE: [
        {"id": 10, "name_en": "Groceries", "icon": "ShoppingCartIcon"},
        {
            "id": 20,
            "name_en": "Insurance",
            "icon": "ShieldCheckIcon",
            "subcategories": [
                {"id": 21, "name_en": "Car insurance", "parent_category_id": 20, "requires_asset_link": True},
                {"id": 22, "name_en": "Health insurance", "parent_category_id": 20},
            ],
        },
        {
            "id": 30,
            "name_en": "School",
            "icon": "AcademicCapIcon",
            "requires_member_link": True,
            "allows_multiple_members": True,
        },
    ],
}

PAGES = {
    "🏠 Add Asset": EntryKind.ASSET,
    "💵 Add Income": EntryKind.INCOME,
    "🧾 Add Expense": EntryKind.EXPENSE,
}


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def label(name: str) -> str:
    return name.replace("_", " ").capitalize()


@st.cache_resource
def get_storage():
    """REST backend when configured, in-memory otherwise (cached)."""
    if os.environ.get("ENTRY_API_BASE_URL"):
        try:
            api = get_settings().api
            return ApiEntryStorage(
                base_url=api.base_url,
                timeout_seconds=api.timeout_seconds,
                max_retries=api.max_retries,
                auth_token=api.auth_token,
            )
        except Exception as e:
            st.error(f"Failed to initialize API storage: {e}")
    return InMemoryEntryStorage()


@st.cache_resource
def get_audit_storage():
    return InMemoryAuditStorage()


def get_wizard(kind: EntryKind):
    """One wizard per entry kind, kept across reruns."""
    key = f"wizard_{kind.value}"
    if key not in st.session_state:
        st.session_state[key] = create_wizard(
            kind,
            categories=DEMO_CATEGORIES[kind],
            members=DEMO_MEMBERS,
            on_save=storage_save_callback(get_storage(), kind),
            audit_logger=AuditLogger(get_audit_storage()),
        )
    return st.session_state[key]


def widget_key(wizard, name: str) -> str:
    # Reopening bumps the revision so widgets start from the new draft
    revision = st.session_state.get(f"rev_{wizard.kind.value}", 0)
    return f"{wizard.kind.value}_{name}_{revision}"


def bump_revision(wizard) -> None:
    key = f"rev_{wizard.kind.value}"
    st.session_state[key] = st.session_state.get(key, 0) + 1


def main():
    """Main application entry point."""
    st.sidebar.title("🧾 Entry Wizard")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        list(PAGES) + ["📊 View Records", "⚙️ Settings"],
        index=0,
    )

    st.sidebar.markdown("---")
    st.sidebar.markdown(
        """
        **How to use:**
        1. Pick a category
        2. Fill in each step
        3. Review and save
        """
    )

    if page in PAGES:
        render_wizard_page(PAGES[page])
    elif page == "📊 View Records":
        render_records_page()
    elif page == "⚙️ Settings":
        render_settings_page()


def render_wizard_page(kind: EntryKind):
    """Render one wizard, or the button that opens it."""
    wizard = get_wizard(kind)
    st.title(f"Add {kind.value.title()}")

    if not wizard.is_open:
        if st.session_state.get(f"saved_{kind.value}"):
            st.markdown(f"""
            <div class="success-box">
                <h4>✅ {kind.value.title()} saved</h4>
            </div>
            """, unsafe_allow_html=True)
        if st.button(f"➕ New {kind.value}", type="primary"):
            st.session_state[f"saved_{kind.value}"] = False
            bump_revision(wizard)
            wizard.open()
            st.rerun()
        return

    step = wizard.step_definition
    st.progress(wizard.current_step / wizard.total_steps)
    st.subheader(f"Step {wizard.current_step} of {wizard.total_steps}: {step.key.title()}")

    states = wizard.field_states
    for name in step.fields:
        if states[name].visible:
            render_field(wizard, name, states[name].required_for(wizard.draft))

    if step.key == "confirm":
        render_review(wizard)

    for message in wizard.errors:
        st.markdown(f'<div class="error-box">❌ {message}</div>', unsafe_allow_html=True)
    for message in wizard.warnings:
        st.markdown(f'<div class="warning-box">⚠️ {message}</div>', unsafe_allow_html=True)

    st.markdown("---")
    col1, col2, col3 = st.columns(3)

    with col1:
        if st.button("⬅️ Back", disabled=wizard.current_step == 1):
            wizard.prev()
            st.rerun()

    with col2:
        if wizard.step_action == "submit":
            if st.button("✅ Save", type="primary", disabled=wizard.is_submitting):
                with st.spinner("Saving..."):
                    outcome = run_async(wizard.submit())
                if outcome.saved:
                    st.session_state[f"saved_{kind.value}"] = True
                st.rerun()
        elif st.button("Next ➡️", type="primary", disabled=not wizard.can_proceed()):
            wizard.next()
            st.rerun()

    with col3:
        if st.button("❌ Cancel"):
            wizard.close()
            st.rerun()


def render_field(wizard, name: str, required: bool):
    """One input widget, wired back to the wizard."""
    spec = wizard.schema.fields[name]
    draft = wizard.draft
    value = draft.get(name)
    key = widget_key(wizard, name)
    text = label(name) + (" *" if required else "")

    if name == "category_id":
        render_category(wizard, key)
        return
    if name == "subcategory_id":
        render_subcategory(wizard, key)
        return
    if name == "metadata":
        render_metadata(wizard)
        return
    if name == "ownership_type":
        options = [o.value for o in OwnershipType]
        chosen = st.radio(text, options, index=options.index(value or "single"), key=key, horizontal=True)
        if chosen != value:
            wizard.set_ownership_type(chosen)
            st.rerun()
        return
    if name == "allocation":
        if draft.get("ownership_type") == OwnershipType.SHARED.value:
            render_allocation(wizard)
        return
    if name == "household_member_id":
        if draft.get("ownership_type") == OwnershipType.SHARED.value:
            return
        options = [None] + [m.id for m in wizard.members]
        names = {m.id: m.name for m in wizard.members}
        chosen = st.selectbox(
            text,
            options,
            index=options.index(value) if value in options else 0,
            format_func=lambda m: "—" if m is None else names[m],
            key=key,
        )
        if chosen != value:
            wizard.set_field(name, chosen)
        return

    if spec.kind == FieldKind.BOOLEAN:
        chosen = st.checkbox(text, value=bool(value), key=key)
    elif spec.kind == FieldKind.DATE:
        picked = st.date_input(text, value=parse_date(value), key=key)
        chosen = picked.isoformat() if isinstance(picked, date) else ""
    else:
        chosen = st.text_input(text, value=value or "", key=key)

    if chosen != value:
        wizard.set_field(name, chosen)


def render_category(wizard, key: str):
    options = [None] + [c.id for c in wizard.categories]
    by_id = {c.id: c for c in wizard.categories}
    current = wizard.draft.get("category_id")
    chosen = st.selectbox(
        "Category *",
        options,
        index=options.index(current) if current in options else 0,
        format_func=lambda c: "Choose a category" if c is None else f"{by_id[c].icon_glyph} {by_id[c].name_en}",
        key=key,
    )
    if chosen != current:
        wizard.select_category(chosen)
        st.rerun()


def render_subcategory(wizard, key: str):
    subcategories = wizard.subcategories()
    if not subcategories:
        return
    options = [None] + [c.id for c in subcategories]
    by_id = {c.id: c for c in subcategories}
    current = wizard.draft.get("subcategory_id")
    chosen = st.selectbox(
        "Subcategory",
        options,
        index=options.index(current) if current in options else 0,
        format_func=lambda c: "—" if c is None else by_id[c].name_en,
        key=key,
    )
    if chosen != current:
        wizard.select_subcategory(chosen)
        st.rerun()


def render_metadata(wizard):
    """Category-specific expense details."""
    category = wizard.effective_category
    metadata = wizard.draft.get("metadata") or {}

    if category is None or not (category.requires_asset_link or category.requires_member_link):
        st.info("No extra details needed for this category.")
        return

    if category.requires_asset_link:
        asset_id = st.text_input(
            "Linked asset id *",
            value=str(metadata.get("linked_asset_id") or ""),
            key=widget_key(wizard, "linked_asset_id"),
        )
        if asset_id != str(metadata.get("linked_asset_id") or ""):
            wizard.update_nested("metadata", {"linked_asset_id": asset_id})

    if category.requires_member_link and category.allows_multiple_members:
        names = {m.id: m.name for m in wizard.members}
        chosen = st.multiselect(
            "Members *",
            list(names),
            default=metadata.get("linked_member_ids") or [],
            format_func=lambda m: names[m],
            key=widget_key(wizard, "linked_member_ids"),
        )
        if chosen != (metadata.get("linked_member_ids") or []):
            wizard.update_nested("metadata", {"linked_member_ids": chosen})


def render_allocation(wizard):
    """One slider per member; moving one rebalances the rest."""
    allocation = wizard.draft.get("allocation") or {}
    names = {m.id: m.name for m in wizard.members}

    st.markdown("**Ownership split**")
    for member_id, name in names.items():
        current = allocation.get(member_id, 0)
        chosen = st.slider(name, 0, 100, int(current), key=widget_key(wizard, f"share_{member_id}"))
        if chosen != current:
            wizard.adjust_allocation(member_id, chosen)
            # Other sliders must pick up their rebalanced values
            bump_revision(wizard)
            st.rerun()

    total = sum(allocation.values())
    st.markdown(f"Total: **{total}%** {'🟢' if total == 100 else '🔴'}")


def render_review(wizard):
    st.markdown("### Review")
    for line in wizard.review():
        st.markdown(f"**{label(line.field.split('.')[-1])}:** {line.value}")


def render_records_page():
    """Records saved in this session."""
    st.title("📊 Saved Records")
    storage = get_storage()

    if not isinstance(storage, InMemoryEntryStorage):
        st.info("Records are stored in the configured API backend.")
        return

    for kind in EntryKind:
        records = storage.list_records(kind)
        st.subheader(f"{kind.value.title()} ({len(records)})")
        for record in records:
            st.json(record)

    with st.expander("🔍 Audit Trail"):
        for event in get_audit_storage().get_recent_events(limit=50):
            st.markdown(f"`{event.timestamp:%H:%M:%S}` {event.description}")


def render_settings_page():
    """Render the settings page."""
    st.title("⚙️ Settings")

    st.markdown("### Configuration Status")
    status = validate_all_settings()

    sections = [
        ("Wizard defaults", "wizard"),
        ("Records API", "api"),
    ]

    for name, key in sections:
        if status.get(key, False):
            st.success(f"✅ {name} - Configured")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.warning(f"⚠️ {name} - {error}")

    wizard_settings = get_settings().wizard
    st.markdown(f"**Default currency:** {wizard_settings.default_currency}")
    st.markdown(f"**Default frequency:** {wizard_settings.default_frequency}")

    st.markdown("---")
    st.markdown(
        "Configure the wizard with `ENTRY_WIZARD_*` environment variables "
        "and the records backend with `ENTRY_API_*` (or a `.env` file)."
    )


if __name__ == "__main__":
    main()
