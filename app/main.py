"""
Streamlit Frontend for Finance Tracker

The form layer: gathers raw input, validates it, and calls the
synchronizer. It holds no business logic of its own.

DESIGN PRINCIPLES:
1. Every error is shown at once, next to the form
2. Every store outcome is shown as a toast
3. The page always renders from the synchronizer's list
"""

import asyncio
from datetime import date

import streamlit as st

from finance_tracker.config import get_settings
from finance_tracker.models import (
    NotificationVariant,
    Transaction,
    TransactionType,
    categories_for,
)
from finance_tracker.notifications import (
    CompositeNotificationSink,
    LoggingNotificationSink,
    MemoryNotificationSink,
)
from finance_tracker.synchronizer import SyncMode, create_app_components
from finance_tracker.validation import TransactionValidator


st.set_page_config(
    page_title="Finance Tracker",
    page_icon="💰",
    layout="wide",
)

_TOAST_ICONS = {
    NotificationVariant.DEFAULT: "✅",
    NotificationVariant.WARNING: "⚠️",
    NotificationVariant.DESTRUCTIVE: "🗑️",
}


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@st.cache_resource
def get_components():
    """Create and load the synchronizer once per server process."""
    inbox = MemoryNotificationSink()
    notifier = CompositeNotificationSink([LoggingNotificationSink(), inbox])
    synchronizer = create_app_components(use_remote=True, notifier=notifier)
    run_async(synchronizer.initialize())
    return synchronizer, inbox


def show_notifications(inbox: MemoryNotificationSink) -> None:
    for notification in inbox.drain():
        st.toast(
            f"**{notification.title}** {notification.message}",
            icon=_TOAST_ICONS[notification.variant],
        )


def render_form(synchronizer, validator: TransactionValidator, editing: Transaction = None):
    """Add/edit form. Submits to add() or update()."""
    currency = get_settings().app.currency_symbol
    st.subheader("✏️ Edit transaction" if editing else "➕ New transaction")

    type_options = [t.value for t in TransactionType]
    default_type = editing.type.value if editing else TransactionType.EXPENSE.value
    transaction_type = st.radio(
        "Type",
        type_options,
        index=type_options.index(default_type),
        horizontal=True,
        key=f"form_type_{editing.id if editing else 'new'}",
    )

    with st.form("transaction_form", clear_on_submit=not editing):
        categories = list(categories_for(transaction_type))
        category_index = None
        if editing and editing.category in categories:
            category_index = categories.index(editing.category)

        description = st.text_input(
            "Description",
            value=editing.description if editing else "",
            max_chars=100,
        )
        amount = st.text_input(
            f"Amount ({currency})",
            value=str(editing.amount) if editing else "",
        )
        category = st.selectbox(
            "Category",
            categories,
            index=category_index,
            placeholder="Select a category",
        )
        is_recurring = st.checkbox(
            "Repeats monthly",
            value=editing.is_recurring if editing else False,
        )
        submitted = st.form_submit_button("💾 Save", type="primary")

    if not submitted:
        return

    result = validator.validate({
        "description": description,
        "amount": amount,
        "type": transaction_type,
        "category": category or "",
        "isRecurring": is_recurring,
    })
    if not result.is_valid:
        for field, message in result.errors_by_field().items():
            st.error(f"{field.capitalize()}: {message}")
        return

    if editing:
        run_async(synchronizer.update(editing.id, result.draft))
        st.session_state.editing_id = None
    else:
        run_async(synchronizer.add(result.draft))
    st.rerun()


def render_transactions(synchronizer, transactions: list[Transaction]):
    currency = get_settings().app.currency_symbol
    if not transactions:
        st.info("No transactions yet.")
        return

    for transaction in transactions:
        sign = "+" if transaction.is_income else "-"
        col1, col2, col3, col4 = st.columns([4, 2, 1, 1])
        with col1:
            recurring = " 🔁" if transaction.is_recurring else ""
            st.markdown(f"**{transaction.description}**{recurring}  \n{transaction.category}")
        with col2:
            st.markdown(
                f"{sign} {currency} {transaction.amount:,.2f}  \n"
                f"{transaction.date.strftime('%d/%m/%Y')}"
            )
        with col3:
            if st.button("✏️", key=f"edit_{transaction.id}"):
                st.session_state.editing_id = transaction.id
                st.rerun()
        with col4:
            if st.button("🗑️", key=f"delete_{transaction.id}"):
                run_async(synchronizer.delete(transaction.id))
                st.rerun()


def main():
    """Main application entry point."""
    synchronizer, inbox = get_components()
    validator = TransactionValidator()
    show_notifications(inbox)

    if "editing_id" not in st.session_state:
        st.session_state.editing_id = None

    st.sidebar.title("💰 Finance Tracker")
    if synchronizer.mode is SyncMode.REMOTE_BACKED:
        st.sidebar.success(f"Synced with account {synchronizer.owner.email or synchronizer.owner.id}")
    else:
        st.sidebar.warning("Local mode: data is stored on this device only")

    if st.sidebar.button("🔄 Reload"):
        run_async(synchronizer.initialize())
        st.rerun()

    with st.sidebar.expander("⚠️ Danger zone"):
        if st.button("Clear all transactions"):
            run_async(synchronizer.clear())
            st.rerun()

    editing = None
    if st.session_state.editing_id:
        editing = synchronizer.get(st.session_state.editing_id)
    render_form(synchronizer, validator, editing)

    st.markdown("---")
    view = st.radio("Show", ["All", "This month", "Recurring"], horizontal=True)
    if view == "This month":
        today = date.today()
        transactions = synchronizer.transactions_in_month(today.year, today.month)
    elif view == "Recurring":
        transactions = synchronizer.recurring_transactions()
    else:
        transactions = list(synchronizer.transactions)
    render_transactions(synchronizer, transactions)


if __name__ == "__main__":
    main()
