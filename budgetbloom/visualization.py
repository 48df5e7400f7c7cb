"""Plotly figures for the BudgetBloom analytics views.

Each function takes the output of an :mod:`budgetbloom.analytics` helper and
returns a ``plotly.graph_objects.Figure`` that Streamlit renders via
``st.plotly_chart``.  Empty inputs produce an empty figure titled
"No data to display" rather than raising.
"""

from __future__ import annotations

from typing import Dict, List, Sequence

import numpy as np
import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

from .models import CATEGORY_COLORS, CATEGORY_LABELS, SavingsGoal

# One colour per calendar intensity bucket, lightest first
INTENSITY_COLORS = ['#F9FAFB', '#E3EEDF', '#C8DEC0', '#A9CBA0', '#7FAF74', '#4F7F45']
WEEKDAY_LABELS = ['Sun', 'Mon', 'Tue', 'Wed', 'Thu', 'Fri', 'Sat']


def _empty_figure() -> go.Figure:
    fig = go.Figure()
    fig.update_layout(title="No data to display")
    return fig


def create_category_pie_chart(totals: Dict[str, float], title: str | None = None) -> go.Figure:
    """Donut chart of spend per category.

    Parameters
    ----------
    totals : dict
        Mapping of category key to summed amount, as returned by
        :func:`analytics.category_totals`.
    title : str, optional
        Chart title.
    """
    if not totals:
        return _empty_figure()
    df = pd.DataFrame({
        'Category': [CATEGORY_LABELS.get(c, c) for c in totals],
        'Amount': list(totals.values()),
    })
    colors = {CATEGORY_LABELS.get(c, c): CATEGORY_COLORS.get(c, '#2d3748') for c in totals}
    fig = px.pie(
        df,
        names='Category',
        values='Amount',
        hole=0.45,
        color='Category',
        color_discrete_map=colors,
    )
    fig.update_layout(title=title or "Spending by Category")
    return fig


def create_daily_bar_chart(series: Sequence[Dict[str, object]], title: str | None = None) -> go.Figure:
    """Bar chart of the per-day totals from :func:`analytics.daily_series`."""
    if not series:
        return _empty_figure()
    df = pd.DataFrame(series)
    fig = px.bar(df, x='date', y='amount')
    fig.update_layout(
        title=title or "Daily Spending",
        xaxis_title="Day",
        yaxis_title="Amount",
    )
    return fig


def create_monthly_trend_chart(monthly: pd.DataFrame, title: str | None = None) -> go.Figure:
    """Line chart of monthly totals from :func:`analytics.monthly_breakdown`."""
    if monthly.empty:
        return _empty_figure()
    fig = px.line(monthly, x='Month', y='Total', markers=True)
    fig.update_layout(
        title=title or "Monthly Spending Trend",
        xaxis_title="Month",
        yaxis_title="Total",
    )
    return fig


def create_calendar_heatmap(cells: List[Dict[str, object]], title: str | None = None) -> go.Figure:
    """Month heat-map from :func:`analytics.calendar_month`.

    Cells are laid out in weeks of seven, Sunday first; days outside the
    month are blanked.
    """
    if not cells:
        return _empty_figure()
    weeks = len(cells) // 7
    intensity = np.full((weeks, 7), np.nan)
    text = [['' for _ in range(7)] for _ in range(weeks)]
    hover = [['' for _ in range(7)] for _ in range(weeks)]
    for index, cell in enumerate(cells):
        row, col = divmod(index, 7)
        text[row][col] = str(cell['date'].day)
        if not cell['in_month']:
            continue
        intensity[row, col] = cell['intensity']
        hover[row][col] = f"{cell['date'].isoformat()}: ${cell['total']:,.2f}"

    steps = len(INTENSITY_COLORS) - 1
    colorscale = [[i / steps, color] for i, color in enumerate(INTENSITY_COLORS)]
    fig = go.Figure(go.Heatmap(
        z=intensity,
        x=WEEKDAY_LABELS,
        y=[f"Week {i + 1}" for i in range(weeks)],
        text=text,
        texttemplate="%{text}",
        hovertext=hover,
        hoverinfo='text',
        colorscale=colorscale,
        zmin=0,
        zmax=steps,
        showscale=False,
        xgap=3,
        ygap=3,
    ))
    fig.update_yaxes(autorange='reversed')
    fig.update_layout(title=title or "Spending Calendar")
    return fig


def create_goal_progress_chart(goals: Sequence[SavingsGoal], title: str | None = None) -> go.Figure:
    """Horizontal bars of goal progress, capped at 100% for display."""
    if not goals:
        return _empty_figure()
    df = pd.DataFrame({
        'Goal': [goal.name for goal in goals],
        'Progress': [min(goal.progress, 100.0) for goal in goals],
    })
    fig = px.bar(df, x='Progress', y='Goal', orientation='h', range_x=[0, 100])
    fig.update_layout(title=title or "Savings Goal Progress", xaxis_title="% of target")
    return fig
