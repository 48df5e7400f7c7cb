"""BudgetBloom Streamlit app.

Run with ``streamlit run budgetbloom/app.py`` (or ``python run_budgetbloom.py``).
The signed-in user's :class:`BudgetSession` lives in ``st.session_state`` and
every page reads from and writes through it.
"""

from __future__ import annotations

import hashlib
import sys
from datetime import date, datetime
from pathlib import Path

import streamlit as st

# Add project root to path so the package imports work under `streamlit run`
project_root = Path(__file__).parent.parent.resolve()
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from budgetbloom import analytics, config, validation, visualization  # noqa: E402
from budgetbloom.export import export_csv, export_filename  # noqa: E402
from budgetbloom.formatting import (  # noqa: E402
    escape_dollar_for_markdown,
    escape_dollars,
    format_change,
    format_currency,
)
from budgetbloom.models import CATEGORIES, CATEGORY_LABELS, User  # noqa: E402
from budgetbloom.notifications import NotificationPreferences  # noqa: E402
from budgetbloom.session import BudgetSession  # noqa: E402

PAGES = [
    "🏠 Dashboard",
    "📋 Expenses",
    "📅 Calendar",
    "📈 Analytics",
    "🎯 Savings Goals",
    "🔔 Notifications",
    "⚙️ Settings",
]


def _user_for(name: str, email: str) -> User:
    user_id = hashlib.sha1(email.strip().lower().encode('utf-8')).hexdigest()[:16]
    return User(id=user_id, name=name.strip() or email.split('@')[0], email=email.strip())


def _show_errors(errors) -> None:
    for message in errors.values():
        st.error(message)


class BudgetBloomApp:
    """Page router and renderers for a signed-in session."""

    def __init__(self, session: BudgetSession):
        self.session = session

    def run(self) -> None:
        session = self.session
        st.sidebar.markdown(f"**{session.user.name}**  \n{session.user.email}")
        unread = session.notifications.unread_count
        page = st.sidebar.radio("Navigate", PAGES, format_func=lambda p: f"{p} ({unread})" if p.startswith("🔔") and unread else p)

        if session.last_error:
            st.warning("⚠️ Some changes could not be saved. Your data is still available in this session.")

        renderers = {
            PAGES[0]: self._render_dashboard,
            PAGES[1]: self._render_expenses,
            PAGES[2]: self._render_calendar,
            PAGES[3]: self._render_analytics,
            PAGES[4]: self._render_goals,
            PAGES[5]: self._render_notifications,
            PAGES[6]: self._render_settings,
        }
        renderers[page]()

    # Dashboard ---------------------------------------------------------------

    def _render_dashboard(self) -> None:
        expenses = self.session.expenses
        now = datetime.now()
        st.header(f"Welcome back, {self.session.user.name}! 🌱")
        st.caption("Let's continue growing your financial future together.")

        this_month = expenses.monthly(now.month, now.year)
        col1, col2, col3 = st.columns(3)
        col1.metric(now.strftime('%B %Y'), format_currency(analytics.total_spent(this_month)))
        col2.metric("All-time total", format_currency(expenses.total()))
        recent = list(expenses)[:3]
        col3.metric("Recent activity", recent[0].date.strftime('%b %d') if recent else 'No recent activity')

        self._render_add_expense_form()

        if recent:
            st.subheader("Recent Expenses")
            for expense in recent:
                st.write(
                    f"{CATEGORY_LABELS[expense.category]} · {expense.description} · "
                    f"{escape_dollar_for_markdown(expense.amount)} · {expense.date.strftime('%b %d')}"
                )

    def _render_add_expense_form(self) -> None:
        st.subheader("Add Expense")
        with st.form("add_expense_form", clear_on_submit=True):
            amount = st.text_input("Amount", placeholder="0.00")
            category = st.selectbox("Category", CATEGORIES, format_func=CATEGORY_LABELS.get)
            description = st.text_input("Description")
            when = st.date_input("Date", value=date.today())
            note = st.text_area("Note (optional)")
            submitted = st.form_submit_button("Add Expense")

        if submitted:
            errors, values = validation.validate_expense_form(amount, category, description, when, note)
            if errors:
                _show_errors(errors)
                return
            self.session.expenses.add(**values)
            st.success("Expense added! 🌱")

    # Expenses ----------------------------------------------------------------

    def _render_expenses(self) -> None:
        expenses = self.session.expenses
        st.header("Expense History")
        if not len(expenses):
            st.info("Start tracking your expenses to see them here")
            return

        col1, col2, col3 = st.columns(3)
        category = col1.selectbox("Category", ['all', *CATEGORIES], format_func=lambda c: 'All Categories' if c == 'all' else CATEGORY_LABELS[c])
        sort_by = col2.selectbox("Sort by", list(analytics.SORT_KEYS), format_func=str.title)
        descending = col3.selectbox("Order", ['desc', 'asc']) == 'desc'

        shown = expenses.by_category(None if category == 'all' else category)
        shown = analytics.sort_expenses(shown, by=sort_by, descending=descending)
        st.caption(f"{len(shown)} of {len(expenses)} · total {escape_dollar_for_markdown(expenses.total())}")

        if not shown:
            st.info(f"No expenses found in {CATEGORY_LABELS.get(category, category)}")
            return

        for expense in shown:
            cols = st.columns([3, 2, 2, 1])
            cols[0].write(f"**{expense.description}**" + (f"  \n{expense.note}" if expense.note else ''))
            cols[1].write(CATEGORY_LABELS[expense.category])
            cols[2].write(f"{escape_dollar_for_markdown(expense.amount)} · {expense.date.strftime('%b %d, %Y')}")
            if cols[3].button("🗑️", key=f"delete_expense_{expense.id}"):
                expenses.delete(expense.id)
                st.toast(f'"{expense.description}" has been removed from your expenses.')
                st.rerun()

    # Calendar ----------------------------------------------------------------

    def _render_calendar(self) -> None:
        st.header("Spending Calendar")
        today = date.today()
        col1, col2 = st.columns(2)
        year = col1.number_input("Year", min_value=2000, max_value=2100, value=today.year, step=1)
        month = col2.selectbox("Month", list(range(1, 13)), index=today.month - 1, format_func=lambda m: date(2000, m, 1).strftime('%B'))

        expenses = self.session.expenses.records
        cells = analytics.calendar_month(expenses, int(year), int(month))
        st.plotly_chart(visualization.create_calendar_heatmap(cells), use_container_width=True)

        in_month = [cell['date'] for cell in cells if cell['in_month']]
        selected = st.selectbox("Day details", in_month, format_func=lambda d: d.strftime('%A, %b %d'))
        day_expenses = analytics.expenses_on(expenses, selected)
        st.metric("Spent that day", format_currency(analytics.total_spent(day_expenses)))
        for expense in day_expenses:
            st.write(f"{CATEGORY_LABELS[expense.category]} · {expense.description} · {escape_dollar_for_markdown(expense.amount)}")

    # Analytics ---------------------------------------------------------------

    def _render_analytics(self) -> None:
        expenses = self.session.expenses
        records = expenses.records
        now = datetime.now()
        st.header("Analytics")

        totals = expenses.totals_by_category()
        top = expenses.top_category()
        col1, col2, col3, col4 = st.columns(4)
        col1.metric("Total spent", format_currency(expenses.total()), f"{len(records)} transactions", delta_color="off")
        col2.metric("Daily average", format_currency(expenses.average_daily_spending(now)))
        col3.metric("Top category", CATEGORY_LABELS[top], format_currency(totals.get(top, 0.0)), delta_color="off")
        col4.metric("vs last month", format_change(analytics.month_over_month_delta(records, now)))

        left, right = st.columns(2)
        left.plotly_chart(visualization.create_category_pie_chart(totals), use_container_width=True)
        right.plotly_chart(
            visualization.create_daily_bar_chart(analytics.daily_series(records, now)),
            use_container_width=True,
        )
        st.plotly_chart(
            visualization.create_monthly_trend_chart(analytics.monthly_breakdown(records)),
            use_container_width=True,
        )

    # Goals -------------------------------------------------------------------

    def _render_goals(self) -> None:
        goals = self.session.goals
        st.header("🎯 Savings Goals")

        with st.expander("New Goal"):
            with st.form("goal_form", clear_on_submit=True):
                name = st.text_input("Goal Name", placeholder="e.g., Emergency Fund, Vacation, New Laptop")
                target = st.text_input("Target Amount", placeholder="0.00")
                current = st.text_input("Current Amount", placeholder="0.00")
                deadline = st.date_input("Deadline", value=date.today())
                submitted = st.form_submit_button("Create Goal")
            if submitted:
                errors, values = validation.validate_goal_form(name, target, current, deadline)
                if errors:
                    _show_errors(errors)
                else:
                    goals.add(**values)
                    st.success("Goal added successfully!")

        if not len(goals):
            st.info("No goals set. Use the form above to create your first savings goal.")
            return

        st.plotly_chart(visualization.create_goal_progress_chart(goals.records), use_container_width=True)
        for goal in goals:
            progress = goal.progress
            with st.container(border=True):
                st.subheader(goal.name + (" 🏆" if progress >= 100 else ""))
                st.progress(min(progress, 100.0) / 100)
                st.caption(
                    f"{progress:.0f}% · {analytics.goal_status(progress)} · "
                    f"{escape_dollar_for_markdown(goal.current_amount)} of {escape_dollar_for_markdown(goal.target_amount)} · "
                    f"due {goal.deadline.strftime('%b %d, %Y')}"
                )
                col1, col2, col3 = st.columns([2, 1, 1])
                amount = col1.text_input("Add money", key=f"contribute_{goal.id}", placeholder="0.00")
                if col2.button("Add", key=f"contribute_btn_{goal.id}"):
                    parsed = validation.parse_amount(amount)
                    if parsed is None or parsed <= 0:
                        st.error("Please enter a valid amount")
                    else:
                        goals.contribute(goal.id, parsed)
                        st.rerun()
                if col3.button("🗑️ Delete", key=f"delete_goal_{goal.id}"):
                    goals.delete(goal.id)
                    st.rerun()

    # Notifications -----------------------------------------------------------

    def _render_notifications(self) -> None:
        engine = self.session.notifications
        st.header("🔔 Notifications")
        col1, col2 = st.columns(2)
        if col1.button("Mark all as read", disabled=not engine.unread_count):
            engine.mark_all_read()
            st.rerun()
        if col2.button("Weekly summary"):
            engine.publish_weekly_report()
            st.rerun()

        if not engine.notifications:
            st.info("You're all caught up!")
            return

        for notification in engine.notifications:
            with st.container(border=True):
                marker = '' if notification.read else '🔵 '
                st.markdown(f"{marker}**{notification.icon or ''} {notification.title}**")
                st.write(escape_dollars(notification.message))
                st.caption(notification.created_at.strftime('%b %d, %H:%M'))
                col1, col2 = st.columns(2)
                if not notification.read and col1.button("Mark read", key=f"read_{notification.id}"):
                    engine.mark_read(notification.id)
                    st.rerun()
                if col2.button("Dismiss", key=f"clear_{notification.id}"):
                    engine.clear(notification.id)
                    st.rerun()

    # Settings ----------------------------------------------------------------

    def _render_settings(self) -> None:
        session = self.session
        prefs = session.notifications.preferences
        st.header("⚙️ Settings")

        st.subheader("Account Information")
        st.write(f"{session.user.name} · {session.user.email}")

        st.subheader("Notification Preferences")
        prefs.achievements = st.toggle("Achievements", value=prefs.achievements, help="Get notified when you reach savings milestones")
        prefs.warnings = st.toggle("Spending warnings", value=prefs.warnings, help="Receive warnings about spending pattern changes")
        prefs.nudges = st.toggle("Nudges", value=prefs.nudges, help="Encouraging tips and positive reinforcement")
        prefs.weekly_reports = st.toggle("Weekly reports", value=prefs.weekly_reports, help="Summary of your financial progress")
        st.session_state.notification_preferences = prefs.to_dict()

        st.subheader("Data Management")
        now = datetime.now()
        st.download_button(
            "Export JSON",
            data=session.export_json(now),
            file_name=export_filename(now),
            mime="application/json",
        )
        st.download_button(
            "Export CSV",
            data=export_csv(session.expenses.records),
            file_name=export_filename(now, 'csv'),
            mime="text/csv",
        )
        if st.button("Clear notification history"):
            session.notifications.clear_all()
            st.success("All notification history has been removed.")

        if st.button("Sign Out"):
            _sign_out()


# ---------------------------------------------------------------------------
# Authentication screens
# ---------------------------------------------------------------------------


def _sign_in(user: User) -> None:
    prefs = NotificationPreferences(**st.session_state.get('notification_preferences', {}))
    st.session_state.budget_session = BudgetSession.open(user, preferences=prefs)
    st.rerun()


def _sign_out() -> None:
    session = st.session_state.pop('budget_session', None)
    if session is not None:
        session.close()
    st.rerun()


def _render_auth() -> None:
    st.title("BudgetBloom")
    st.caption("Financial Growth Made Beautiful")
    sign_in_tab, register_tab = st.tabs(["Sign In", "Create Account"])

    with sign_in_tab:
        with st.form("login_form"):
            email = st.text_input("Email")
            password = st.text_input("Password", type="password")
            submitted = st.form_submit_button("Sign In")
        if submitted:
            errors = validation.validate_login(email, password)
            if errors:
                _show_errors(errors)
            else:
                _sign_in(_user_for('', email))

    with register_tab:
        with st.form("register_form"):
            name = st.text_input("Full Name")
            email = st.text_input("Email", key="register_email")
            password = st.text_input("Password", type="password", key="register_password")
            confirm = st.text_input("Confirm Password", type="password")
            submitted = st.form_submit_button("Create Account")
        if submitted:
            errors = validation.validate_registration(name, email, password, confirm)
            if errors:
                _show_errors(errors)
            else:
                _sign_in(_user_for(name, email))


def main() -> None:
    st.set_page_config(page_title="BudgetBloom", page_icon="🌱", layout="wide")
    config.configure_logging()
    config.ensure_data_directories()

    session = st.session_state.get('budget_session')
    if session is None:
        _render_auth()
        return
    BudgetBloomApp(session).run()


if __name__ == "__main__":
    main()
