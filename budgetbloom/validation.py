"""Form validation for the sign-in, registration, expense and goal forms.

Validators never raise: they return a ``{field: message}`` dict that the UI
shows next to the offending input.  An empty dict means the form is valid.
"""

from __future__ import annotations

import math
import re
from datetime import date, datetime
from typing import Any, Dict, Optional, Tuple

from .models import CATEGORIES

EMAIL_PATTERN = re.compile(r"\S+@\S+\.\S+")
MIN_NAME_LENGTH = 2
MIN_PASSWORD_LENGTH = 6


def parse_amount(value: Any) -> Optional[float]:
    """Convert textual amount input into a float, or None when malformed.

    Non-finite input such as ``"nan"`` or ``"inf"`` counts as malformed.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        parsed = float(value)
    else:
        cleaned = str(value).strip().replace("$", "").replace(",", "")
        if not cleaned:
            return None
        try:
            parsed = float(cleaned)
        except ValueError:
            return None
    return parsed if math.isfinite(parsed) else None


def validate_registration(name: str, email: str, password: str, confirm_password: str) -> Dict[str, str]:
    errors: Dict[str, str] = {}
    name = (name or '').strip()
    if not name:
        errors['name'] = 'Name is required'
    elif len(name) < MIN_NAME_LENGTH:
        errors['name'] = 'Name must be at least 2 characters'

    if not email:
        errors['email'] = 'Email is required'
    elif not EMAIL_PATTERN.search(email):
        errors['email'] = 'Please enter a valid email'

    if not password:
        errors['password'] = 'Password is required'
    elif len(password) < MIN_PASSWORD_LENGTH:
        errors['password'] = 'Password must be at least 6 characters'

    if not confirm_password:
        errors['confirm_password'] = 'Please confirm your password'
    elif password != confirm_password:
        errors['confirm_password'] = 'Passwords do not match'
    return errors


def validate_login(email: str, password: str) -> Dict[str, str]:
    errors: Dict[str, str] = {}
    if not email:
        errors['email'] = 'Email is required'
    elif not EMAIL_PATTERN.search(email):
        errors['email'] = 'Please enter a valid email'
    if not password:
        errors['password'] = 'Password is required'
    return errors


def validate_expense_form(
    amount: Any,
    category: str,
    description: str,
    when: Optional[date] = None,
    note: Optional[str] = None,
) -> Tuple[Dict[str, str], Dict[str, Any]]:
    """Check the add-expense form.

    Returns ``(errors, values)``; ``values`` holds the cleaned fields ready for
    :meth:`ExpenseStore.add` and is only meaningful when ``errors`` is empty.
    """
    errors: Dict[str, str] = {}
    parsed = parse_amount(amount)
    if amount in (None, ''):
        errors['amount'] = 'Amount is required'
    elif parsed is None:
        errors['amount'] = 'Please enter a valid amount'
    elif parsed <= 0:
        errors['amount'] = 'Amount must be greater than zero'

    if category not in CATEGORIES:
        errors['category'] = 'Please choose a category'

    description = (description or '').strip()
    if not description:
        errors['description'] = 'Description is required'

    if when is None:
        when = datetime.now()
    elif not isinstance(when, datetime):
        when = datetime(when.year, when.month, when.day)

    values = {
        'amount': parsed,
        'category': category,
        'description': description,
        'date': when,
        'note': (note or '').strip() or None,
    }
    return errors, values


def validate_goal_form(
    name: str,
    target_amount: Any,
    current_amount: Any = None,
    deadline: Optional[date] = None,
) -> Tuple[Dict[str, str], Dict[str, Any]]:
    errors: Dict[str, str] = {}
    name = (name or '').strip()
    if not name:
        errors['name'] = 'Goal name is required'

    target = parse_amount(target_amount)
    if target_amount in (None, ''):
        errors['target_amount'] = 'Target amount is required'
    elif target is None:
        errors['target_amount'] = 'Please enter a valid amount'
    elif target <= 0:
        errors['target_amount'] = 'Target amount must be greater than zero'

    current = parse_amount(current_amount)
    if current_amount in (None, ''):
        current = 0.0
    elif current is None:
        errors['current_amount'] = 'Please enter a valid amount'
    elif current < 0:
        errors['current_amount'] = 'Current amount cannot be negative'

    values = {
        'name': name,
        'target_amount': target,
        'current_amount': current,
        'deadline': deadline or date.today(),
    }
    return errors, values
