"""Export the user's expenses as a downloadable JSON or CSV document."""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Dict, Iterable, Optional

from . import analytics
from .models import CATEGORIES, CATEGORY_LABELS, Expense, User


def build_export(
    expenses: Iterable[Expense],
    user: Optional[User] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    now = now or datetime.now()
    return {
        'expenses': [expense.to_dict() for expense in expenses],
        'categories': [{'value': c, 'label': CATEGORY_LABELS[c]} for c in CATEGORIES],
        'exportDate': now.isoformat(),
        'user': user.email if user else None,
    }


def export_json(expenses: Iterable[Expense], user: Optional[User] = None, now: Optional[datetime] = None) -> str:
    return json.dumps(build_export(expenses, user, now), indent=2)


def export_filename(now: Optional[datetime] = None, extension: str = 'json') -> str:
    now = now or datetime.now()
    return f"budgetbloom-export-{now.date().isoformat()}.{extension}"


def export_csv(expenses: Iterable[Expense]) -> str:
    df = analytics.expenses_frame(expenses)
    if not df.empty:
        df['Date'] = df['Date'].dt.strftime('%Y-%m-%d')
    return df.to_csv(index=False)
