"""Spending analytics over in-memory expense collections.

Every function here is pure: it takes a sequence of :class:`Expense` records
(plus an explicit ``now`` where time matters) and returns plain values.  The
frame helpers at the bottom build pandas DataFrames for the chart and export
code.
"""

from __future__ import annotations

import calendar
import math
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional, Sequence

import pandas as pd

from . import config
from .models import CATEGORY_LABELS, Expense, SavingsGoal

DAY = timedelta(days=1)


# ---------------------------------------------------------------------------
# Totals
# ---------------------------------------------------------------------------


def category_totals(expenses: Iterable[Expense]) -> Dict[str, float]:
    """Sum amounts per category, keyed in first-seen order."""
    totals: Dict[str, float] = {}
    for expense in expenses:
        totals[expense.category] = totals.get(expense.category, 0.0) + expense.amount
    return totals


def total_spent(expenses: Iterable[Expense]) -> float:
    return sum((expense.amount for expense in expenses), 0.0)


def average_daily_spending(expenses: Sequence[Expense], now: Optional[datetime] = None) -> float:
    """Total spend spread over the days since the oldest expense (at least one)."""
    if not expenses:
        return 0.0
    now = now or datetime.now()
    oldest = min(expense.date for expense in expenses)
    days = max(1, math.ceil((now - oldest) / DAY))
    return total_spent(expenses) / days


def top_category(expenses: Iterable[Expense]) -> str:
    """Category with the highest total; the first one seen wins a tie.

    A reduction with a strict ``>`` seeded with ``other`` would hand ties to
    the later key instead (``{food: 10, other: 10}`` gives ``other`` there,
    ``food`` here).
    """
    totals = category_totals(expenses)
    best: Optional[str] = None
    for category, amount in totals.items():
        if best is None or amount > totals[best]:
            best = category
    return best or 'other'


# ---------------------------------------------------------------------------
# Filtering and ordering
# ---------------------------------------------------------------------------


def filter_expenses(
    expenses: Iterable[Expense],
    category: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
) -> List[Expense]:
    """Expenses matching every given clause; date bounds are inclusive."""
    matches = []
    for expense in expenses:
        if category and expense.category != category:
            continue
        if start_date is not None and expense.date < start_date:
            continue
        if end_date is not None and expense.date > end_date:
            continue
        matches.append(expense)
    return matches


def monthly_expenses(expenses: Iterable[Expense], month: int, year: int) -> List[Expense]:
    return [e for e in expenses if e.date.month == month and e.date.year == year]


SORT_KEYS = {
    'date': lambda expense: expense.date,
    'amount': lambda expense: expense.amount,
    'category': lambda expense: expense.category,
}


def sort_expenses(expenses: Iterable[Expense], by: str = 'date', descending: bool = True) -> List[Expense]:
    if by not in SORT_KEYS:
        raise ValueError(f"Cannot sort expenses by {by!r}")
    return sorted(expenses, key=SORT_KEYS[by], reverse=descending)


# ---------------------------------------------------------------------------
# Trends
# ---------------------------------------------------------------------------


def _previous_month(year: int, month: int) -> tuple:
    return (year - 1, 12) if month == 1 else (year, month - 1)


def month_total(expenses: Iterable[Expense], year: int, month: int) -> float:
    return total_spent(monthly_expenses(expenses, month, year))


def month_over_month_delta(expenses: Sequence[Expense], now: Optional[datetime] = None) -> float:
    """Percent change of this calendar month's spend against last month's.

    Defined as 0 when nothing was spent last month.
    """
    now = now or datetime.now()
    current = month_total(expenses, now.year, now.month)
    previous = month_total(expenses, *_previous_month(now.year, now.month))
    if previous == 0:
        return 0.0
    return (current - previous) / previous * 100


def daily_series(
    expenses: Sequence[Expense],
    now: Optional[datetime] = None,
    window_days: int = 7,
) -> List[Dict[str, object]]:
    """Per-day totals for the last ``window_days`` days, oldest first."""
    now = now or datetime.now()
    by_day: Dict[str, float] = {}
    for expense in expenses:
        key = expense.date.strftime('%Y-%m-%d')
        by_day[key] = by_day.get(key, 0.0) + expense.amount

    points = []
    for offset in range(window_days - 1, -1, -1):
        day = now - offset * DAY
        points.append({
            'date': day.strftime('%b %d'),
            'amount': by_day.get(day.strftime('%Y-%m-%d'), 0.0),
            'full_date': day.date(),
        })
    return points


# ---------------------------------------------------------------------------
# Calendar
# ---------------------------------------------------------------------------


def calendar_intensity(amount: float) -> int:
    """Heat-map bucket 0-5 for a day's total spend."""
    if amount == 0:
        return 0
    for bucket, bound in enumerate(config.INTENSITY_STEPS, start=1):
        if amount < bound:
            return bucket
    return len(config.INTENSITY_STEPS) + 1


def expenses_on(expenses: Iterable[Expense], day: date) -> List[Expense]:
    return [expense for expense in expenses if expense.date.date() == day]


def day_total(expenses: Iterable[Expense], day: date) -> float:
    return total_spent(expenses_on(expenses, day))


def calendar_month_grid(year: int, month: int) -> List[date]:
    """Days shown for a month view: whole Sunday-to-Saturday weeks."""
    weeks = calendar.Calendar(firstweekday=calendar.SUNDAY).monthdatescalendar(year, month)
    return [day for week in weeks for day in week]


def calendar_month(expenses: Sequence[Expense], year: int, month: int) -> List[Dict[str, object]]:
    totals: Dict[date, float] = {}
    for expense in expenses:
        key = expense.date.date()
        totals[key] = totals.get(key, 0.0) + expense.amount
    cells = []
    for day in calendar_month_grid(year, month):
        amount = totals.get(day, 0.0)
        cells.append({
            'date': day,
            'total': amount,
            'intensity': calendar_intensity(amount),
            'in_month': day.month == month,
        })
    return cells


# ---------------------------------------------------------------------------
# Goals
# ---------------------------------------------------------------------------


def goal_progress(goal: SavingsGoal) -> float:
    return goal.progress


def goal_status(progress: float) -> str:
    if progress >= 100:
        return 'Completed! 🎉'
    if progress >= 75:
        return 'Almost there! 🌱'
    if progress >= 50:
        return 'Making progress 📈'
    return 'Just getting started 🌱'


# ---------------------------------------------------------------------------
# DataFrames
# ---------------------------------------------------------------------------

FRAME_COLUMNS = ['id', 'Date', 'Category', 'Category Label', 'Description', 'Amount', 'Note']


def expenses_frame(expenses: Iterable[Expense]) -> pd.DataFrame:
    rows = [
        {
            'id': expense.id,
            'Date': expense.date,
            'Category': expense.category,
            'Category Label': CATEGORY_LABELS.get(expense.category, expense.category),
            'Description': expense.description,
            'Amount': expense.amount,
            'Note': expense.note or '',
        }
        for expense in expenses
    ]
    df = pd.DataFrame(rows, columns=FRAME_COLUMNS)
    df['Date'] = pd.to_datetime(df['Date'])
    df['Amount'] = pd.to_numeric(df['Amount']).astype(float)
    return df


def monthly_breakdown(expenses: Iterable[Expense]) -> pd.DataFrame:
    """Monthly totals and transaction counts, oldest month first."""
    df = expenses_frame(expenses)
    if df.empty:
        return pd.DataFrame(columns=['Month', 'Total', 'Transactions'])
    df['Month'] = df['Date'].dt.to_period('M').astype(str)
    monthly = (
        df.groupby('Month')
        .agg(Total=('Amount', 'sum'), Transactions=('Amount', 'size'))
        .reset_index()
        .sort_values('Month')
    )
    return monthly.reset_index(drop=True)
