from datetime import date, datetime

import pandas as pd
import pytest

from budgetbloom import analytics
from budgetbloom.models import Expense, SavingsGoal


def _build(rows):
    return [
        Expense(id=str(i), amount=amount, category=category, description=f"item {i}", date=when)
        for i, (amount, category, when) in enumerate(rows)
    ]


def test_category_totals_keep_first_seen_order():
    expenses = _build([
        (5, 'health', datetime(2024, 1, 3)),
        (30, 'food', datetime(2024, 1, 1)),
        (20, 'food', datetime(2024, 1, 2)),
    ])
    totals = analytics.category_totals(expenses)
    assert list(totals) == ['health', 'food']
    assert totals['food'] == 50
    assert analytics.total_spent(expenses) == 55


def test_top_category_first_seen_wins_tie():
    expenses = _build([
        (10, 'shopping', datetime(2024, 1, 1)),
        (10, 'food', datetime(2024, 1, 1)),
        (5, 'health', datetime(2024, 1, 1)),
    ])
    assert analytics.top_category(expenses) == 'shopping'
    assert analytics.top_category([]) == 'other'


def test_average_daily_spending_minimum_one_day():
    now = datetime(2024, 1, 1, 12)
    expenses = _build([(30, 'food', datetime(2024, 1, 1, 8))])
    assert analytics.average_daily_spending(expenses, now) == 30
    assert analytics.average_daily_spending([], now) == 0


def test_average_daily_spending_rounds_days_up():
    now = datetime(2024, 1, 3, 12)
    expenses = _build([(30, 'food', datetime(2024, 1, 1, 8))])
    # 2 days and 4 hours -> 3 days
    assert analytics.average_daily_spending(expenses, now) == pytest.approx(10)


def test_month_over_month_delta():
    now = datetime(2024, 3, 15)
    expenses = _build([
        (100, 'food', datetime(2024, 2, 10)),
        (150, 'food', datetime(2024, 3, 1)),
        (999, 'food', datetime(2023, 3, 1)),
    ])
    assert analytics.month_over_month_delta(expenses, now) == pytest.approx(50)


def test_month_over_month_delta_january_and_empty_previous():
    expenses = _build([(80, 'food', datetime(2023, 12, 31)), (40, 'food', datetime(2024, 1, 2))])
    assert analytics.month_over_month_delta(expenses, datetime(2024, 1, 20)) == pytest.approx(-50)
    assert analytics.month_over_month_delta(expenses, datetime(2024, 3, 20)) == 0


def test_daily_series_oldest_first_by_calendar_day():
    now = datetime(2024, 5, 7, 9)
    expenses = _build([
        (10, 'food', datetime(2024, 5, 7, 23, 59)),
        (5, 'food', datetime(2024, 5, 7, 0, 1)),
        (7, 'food', datetime(2024, 5, 1, 18)),
        (3, 'food', datetime(2024, 4, 30, 18)),
    ])
    series = analytics.daily_series(expenses, now)
    assert len(series) == 7
    assert series[0]['full_date'] == date(2024, 5, 1)
    assert series[0]['amount'] == 7
    assert series[-1]['date'] == 'May 07'
    assert series[-1]['amount'] == 15
    assert sum(point['amount'] for point in series) == 22


@pytest.mark.parametrize('amount, bucket', [
    (0, 0), (0.01, 1), (19.99, 1), (20, 2), (49.99, 2), (50, 3), (99.99, 3), (100, 4), (199.99, 4), (200, 5), (1000, 5),
])
def test_calendar_intensity_steps(amount, bucket):
    assert analytics.calendar_intensity(amount) == bucket


def test_calendar_month_grid_is_whole_weeks_from_sunday():
    grid = analytics.calendar_month_grid(2024, 2)
    assert len(grid) % 7 == 0
    assert grid[0].weekday() == 6
    assert grid[0] == date(2024, 1, 28)
    assert grid[-1] == date(2024, 3, 2)


def test_calendar_month_cells():
    expenses = _build([(60, 'food', datetime(2024, 2, 14, 19)), (30, 'food', datetime(2024, 2, 14, 8))])
    cells = analytics.calendar_month(expenses, 2024, 2)
    valentine = next(cell for cell in cells if cell['date'] == date(2024, 2, 14))
    assert valentine['total'] == 90
    assert valentine['intensity'] == 3
    assert not cells[0]['in_month']
    assert analytics.day_total(expenses, date(2024, 2, 14)) == 90
    assert analytics.expenses_on(expenses, date(2024, 2, 15)) == []


def test_sort_and_monthly_filters():
    expenses = _build([
        (10, 'shopping', datetime(2024, 2, 1)),
        (30, 'food', datetime(2024, 3, 1)),
        (20, 'health', datetime(2024, 3, 5)),
    ])
    assert [e.amount for e in analytics.sort_expenses(expenses, 'amount')] == [30, 20, 10]
    assert [e.category for e in analytics.sort_expenses(expenses, 'category', descending=False)] == ['food', 'health', 'shopping']
    assert [e.amount for e in analytics.monthly_expenses(expenses, 3, 2024)] == [30, 20]
    with pytest.raises(ValueError):
        analytics.sort_expenses(expenses, 'note')


def test_goal_status_bands():
    goal = SavingsGoal(
        id='g', name='Car', target_amount=200, current_amount=160,
        deadline=date(2025, 1, 1), created_at=datetime(2024, 1, 1),
    )
    assert analytics.goal_progress(goal) == 80
    assert analytics.goal_status(80) == 'Almost there! 🌱'
    assert analytics.goal_status(100) == 'Completed! 🎉'
    assert analytics.goal_status(10) == 'Just getting started 🌱'


def test_expenses_frame_and_monthly_breakdown():
    expenses = _build([
        (10, 'food', datetime(2024, 1, 5)),
        (20, 'food', datetime(2024, 1, 20)),
        (5, 'transport', datetime(2024, 2, 2)),
    ])
    df = analytics.expenses_frame(expenses)
    assert list(df.columns) == analytics.FRAME_COLUMNS
    assert pd.api.types.is_datetime64_any_dtype(df['Date'])
    assert df.loc[0, 'Category Label'] == 'Food & Dining'

    monthly = analytics.monthly_breakdown(expenses)
    assert list(monthly['Month']) == ['2024-01', '2024-02']
    assert list(monthly['Total']) == [30, 5]
    assert list(monthly['Transactions']) == [2, 1]


def test_monthly_breakdown_empty():
    assert analytics.monthly_breakdown([]).empty
