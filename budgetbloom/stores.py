"""Write-through stores for expenses and savings goals.

A store owns the in-memory collection for the active session.  Every
mutation updates memory first, mirrors the collection to its storage backend
and then calls the subscribed listeners.  A failed write is logged and kept
on ``last_error``; memory is never rolled back.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Dict, Generic, List, Optional, Type, TypeVar

from . import analytics, config
from .models import Expense, SavingsGoal, new_id
from .storage import StorageBackend, StorageError

logger = logging.getLogger(__name__)

R = TypeVar('R')
Listener = Callable[['RecordStore'], None]


class RecordStore(Generic[R]):
    """Ordered collection of records mirrored to a storage key."""

    record_type: Type[R]
    key: str
    newest_first = False

    def __init__(self, storage: StorageBackend):
        self.storage = storage
        self.records: List[R] = []
        self.last_error: Optional[str] = None
        self._listeners: List[Listener] = []

    # Loading ----------------------------------------------------------------

    def load(self) -> None:
        """Replace memory with the backend's copy, skipping bad records."""
        try:
            raw = self.storage.load(self.key)
        except StorageError as e:
            logger.exception("Could not load %s", self.key)
            self.last_error = str(e)
            raw = []
        records = []
        for item in raw:
            try:
                records.append(self.record_type.from_dict(item))
            except (TypeError, ValueError) as e:
                logger.warning("Skipping invalid %s record %r: %s", self.key, item.get('id'), e)
        self.records = records

    # Listeners --------------------------------------------------------------

    def subscribe(self, listener: Listener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    # Lookup -----------------------------------------------------------------

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self):
        return iter(list(self.records))

    def get(self, record_id: str) -> Optional[R]:
        for record in self.records:
            if record.id == record_id:
                return record
        return None

    # Mutation ---------------------------------------------------------------

    def _insert(self, record: R) -> R:
        if self.newest_first:
            self.records.insert(0, record)
        else:
            self.records.append(record)
        self._persist(changed=record)
        self._notify()
        return record

    def update(self, record_id: str, **changes: Any) -> bool:
        """Merge ``changes`` into the record with ``record_id``.

        Returns False, without touching anything, when the id is unknown.
        """
        for index, record in enumerate(self.records):
            if record.id == record_id:
                updated = record.merged(**changes)
                self.records[index] = updated
                self._persist(changed=updated)
                self._notify()
                return True
        return False

    def delete(self, record_id: str) -> bool:
        remaining = [record for record in self.records if record.id != record_id]
        if len(remaining) == len(self.records):
            return False
        self.records = remaining
        self._persist(removed=record_id)
        self._notify()
        return True

    def _persist(self, changed: Optional[R] = None, removed: Optional[str] = None) -> None:
        payload = [record.to_dict() for record in self.records]
        try:
            self.storage.write(
                self.key,
                payload,
                changed=changed.to_dict() if changed is not None else None,
                removed=removed,
            )
        except StorageError as e:
            logger.exception("Failed to persist %s", self.key)
            self.last_error = str(e)
        else:
            self.last_error = None


class ExpenseStore(RecordStore[Expense]):
    """Expenses, newest insertion first."""

    record_type = Expense
    key = config.EXPENSES_KEY
    newest_first = True

    def add(
        self,
        amount: float,
        category: str,
        description: str,
        date: datetime,
        note: Optional[str] = None,
    ) -> Expense:
        expense = Expense(
            id=new_id(),
            amount=amount,
            category=category,
            description=description,
            date=date,
            note=note,
        )
        return self._insert(expense)

    def list(
        self,
        category: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> List[Expense]:
        return analytics.filter_expenses(self.records, category, start_date, end_date)

    def by_category(self, category: Optional[str] = None) -> List[Expense]:
        return self.list(category=category)

    def monthly(self, month: int, year: int) -> List[Expense]:
        return analytics.monthly_expenses(self.records, month, year)

    def totals_by_category(self) -> Dict[str, float]:
        return analytics.category_totals(self.records)

    def total(self) -> float:
        return analytics.total_spent(self.records)

    def average_daily_spending(self, now: Optional[datetime] = None) -> float:
        return analytics.average_daily_spending(self.records, now)

    def top_category(self) -> str:
        return analytics.top_category(self.records)


class SavingsGoalStore(RecordStore[SavingsGoal]):
    """Savings goals in creation order."""

    record_type = SavingsGoal
    key = config.GOALS_KEY

    def add(
        self,
        name: str,
        target_amount: float,
        deadline,
        current_amount: float = 0.0,
        color: Optional[str] = None,
    ) -> SavingsGoal:
        goal = SavingsGoal(
            id=new_id(),
            name=name,
            target_amount=target_amount,
            current_amount=current_amount,
            deadline=deadline,
            created_at=datetime.now(),
            color=color,
        )
        return self._insert(goal)

    def contribute(self, goal_id: str, amount: float) -> bool:
        """Add ``amount`` to a goal's saved total."""
        goal = self.get(goal_id)
        if goal is None:
            return False
        return self.update(goal_id, current_amount=goal.current_amount + amount)
