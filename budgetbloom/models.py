"""Record types for expenses, savings goals and notifications.

Records are immutable dataclasses.  Each one converts to and from a plain
``dict`` whose date fields are ISO-8601 strings, which is the form every
storage backend persists.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, fields, replace
from datetime import date, datetime
from typing import Any, Dict, Optional
from uuid import uuid4

CATEGORIES = ('food', 'transport', 'entertainment', 'shopping', 'health', 'other')
CATEGORY_LABELS = {
    'food': 'Food & Dining',
    'transport': 'Transportation',
    'entertainment': 'Entertainment',
    'shopping': 'Shopping',
    'health': 'Health & Wellness',
    'other': 'Other',
}
CATEGORY_COLORS = {
    'food': '#FF6B6B',
    'transport': '#4ECDC4',
    'entertainment': '#45B7D1',
    'shopping': '#96CEB4',
    'health': '#FFEAA7',
    'other': '#DDA0DD',
}

NOTIFICATION_KINDS = ('achievement', 'warning', 'nudge', 'weekly_report')


def new_id() -> str:
    return uuid4().hex


def _to_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str):
        parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
        # Timestamps written by browsers carry UTC; keep everything naive local
        if parsed.tzinfo is not None:
            parsed = parsed.astimezone().replace(tzinfo=None)
        return parsed
    raise ValueError(f"Cannot interpret {value!r} as a timestamp")


def _to_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return _to_datetime(value).date()
    raise ValueError(f"Cannot interpret {value!r} as a date")


def _serialise(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


class _Record:
    """Shared dict conversion for the record dataclasses.

    Date fields are coerced in each record's ``__post_init__``, so ISO strings
    coming back from storage and values passed to :meth:`merged` both work.
    """

    def to_dict(self) -> Dict[str, Any]:
        return {key: _serialise(value) for key, value in asdict(self).items()}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]):
        known = {f.name for f in fields(cls)}
        return cls(**{key: value for key, value in data.items() if key in known})

    def merged(self, **changes: Any):
        """Return a copy with ``changes`` applied; the id is fixed."""
        if 'id' in changes and changes['id'] != getattr(self, 'id'):
            raise ValueError("Record id cannot be changed")
        unknown = set(changes) - {f.name for f in fields(self)}
        if unknown:
            raise ValueError(f"Unknown fields: {', '.join(sorted(unknown))}")
        return replace(self, **changes)


@dataclass(frozen=True)
class Expense(_Record):
    id: str
    amount: float
    category: str
    description: str
    date: datetime
    note: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, 'date', _to_datetime(self.date))
        object.__setattr__(self, 'amount', float(self.amount))
        if not math.isfinite(self.amount):
            raise ValueError("Expense amount must be a finite number")
        if self.amount < 0:
            raise ValueError("Expense amount cannot be negative")
        if self.category not in CATEGORIES:
            raise ValueError(f"Unknown category: {self.category}")


@dataclass(frozen=True)
class SavingsGoal(_Record):
    id: str
    name: str
    target_amount: float
    current_amount: float
    deadline: date
    created_at: datetime
    color: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, 'deadline', _to_date(self.deadline))
        object.__setattr__(self, 'created_at', _to_datetime(self.created_at))
        object.__setattr__(self, 'target_amount', float(self.target_amount))
        object.__setattr__(self, 'current_amount', float(self.current_amount))
        if not (math.isfinite(self.target_amount) and math.isfinite(self.current_amount)):
            raise ValueError("Goal amounts must be finite numbers")
        if self.target_amount <= 0:
            raise ValueError("Goal target must be positive")
        if self.current_amount < 0:
            raise ValueError("Goal current amount cannot be negative")

    @property
    def progress(self) -> float:
        """Percent of the target saved, not capped at 100."""
        return self.current_amount / self.target_amount * 100

    @property
    def remaining(self) -> float:
        return self.target_amount - self.current_amount


@dataclass(frozen=True)
class Notification(_Record):
    id: str
    kind: str
    title: str
    message: str
    created_at: datetime
    read: bool = False
    icon: Optional[str] = None
    alert_key: Optional[str] = None

    def __post_init__(self) -> None:
        if self.kind not in NOTIFICATION_KINDS:
            raise ValueError(f"Unknown notification kind: {self.kind}")
        object.__setattr__(self, 'created_at', _to_datetime(self.created_at))
        object.__setattr__(self, 'read', bool(self.read))


@dataclass(frozen=True)
class SentAlert(_Record):
    """An alert key that has been turned into a notification at least once."""

    id: str
    sent_at: datetime

    def __post_init__(self) -> None:
        object.__setattr__(self, 'sent_at', _to_datetime(self.sent_at))


@dataclass(frozen=True)
class User:
    id: str
    name: str
    email: str
