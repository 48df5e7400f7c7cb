"""Notification rules and the engine that applies them.

The rules are pure functions from the current expenses/goals to a list of
:class:`Alert` drafts.  :class:`NotificationEngine` listens to the stores,
re-runs the matching rules after every change and turns new alerts into
persisted :class:`Notification` records.

Each alert carries a key naming the condition that produced it.  With
de-duplication on (the default) a key that was already emitted is not emitted
again, so saving a goal twice while it sits in the halfway band yields one
notification.  Emitted keys are persisted on their own, so clearing the
notification history does not make old alerts fire again.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, fields
from datetime import datetime, timedelta
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Set, Tuple

from . import analytics, config
from .models import Expense, Notification, SavingsGoal, SentAlert, new_id
from .storage import StorageBackend
from .stores import ExpenseStore, RecordStore, SavingsGoalStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Alert:
    kind: str
    title: str
    message: str
    icon: Optional[str] = None
    key: Optional[str] = None


@dataclass
class NotificationPreferences:
    """Per-kind switches from the settings screen."""

    achievements: bool = True
    warnings: bool = True
    nudges: bool = True
    weekly_reports: bool = True

    _KIND_FIELDS = {
        'achievement': 'achievements',
        'warning': 'warnings',
        'nudge': 'nudges',
        'weekly_report': 'weekly_reports',
    }

    def allows(self, kind: str) -> bool:
        return bool(getattr(self, self._KIND_FIELDS[kind], True))

    def to_dict(self) -> Dict[str, bool]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------


def goal_milestones(goals: Iterable[SavingsGoal]) -> List[Alert]:
    """Halfway and completion alerts for each goal."""
    low, high = config.HALFWAY_BAND
    alerts = []
    for goal in goals:
        progress = goal.progress
        if low <= progress < high and goal.current_amount > 0:
            alerts.append(Alert(
                kind='achievement',
                title='Halfway There! 🎉',
                message=f'You\'re 50% of the way to your "{goal.name}" goal! Keep up the great work!',
                icon='🎯',
                key=f'halfway:{goal.id}',
            ))
        if progress >= config.GOAL_COMPLETE:
            alerts.append(Alert(
                kind='achievement',
                title='Goal Achieved! 🏆',
                message=(
                    f'Congratulations! You\'ve reached your "{goal.name}" goal '
                    f'of ${goal.target_amount:.2f}!'
                ),
                icon='🏆',
                key=f'achieved:{goal.id}',
            ))
    return alerts


def split_weeks(expenses: Iterable[Expense], now: datetime) -> Tuple[List[Expense], List[Expense]]:
    """Expenses from the last seven days and from the seven days before."""
    week_ago = now - timedelta(days=config.WEEK_DAYS)
    two_weeks_ago = now - timedelta(days=2 * config.WEEK_DAYS)
    this_week, last_week = [], []
    for expense in expenses:
        if expense.date >= week_ago:
            this_week.append(expense)
        elif expense.date >= two_weeks_ago:
            last_week.append(expense)
    return this_week, last_week


def spending_alerts(expenses: Sequence[Expense], now: datetime) -> List[Alert]:
    """Category spikes against last week, plus the no-spend nudge."""
    this_week, last_week = split_weeks(expenses, now)
    this_totals = analytics.category_totals(this_week)
    last_totals = analytics.category_totals(last_week)
    day = now.date().isoformat()

    alerts = []
    for category, amount in this_totals.items():
        previous = last_totals.get(category, 0.0)
        if previous > 0 and amount > previous * config.SPIKE_RATIO:
            increase = round_half_up((amount - previous) / previous * 100)
            alerts.append(Alert(
                kind='warning',
                title='Spending Alert 📊',
                message=(
                    f'Your {category} spending has increased by {increase}% this week. '
                    'Consider a mindful spending day!'
                ),
                icon='⚠️',
                key=f'spike:{category}:{day}',
            ))

    if not this_week and last_week:
        alerts.append(Alert(
            kind='nudge',
            title='Great Self-Control! 💪',
            message=(
                "You haven't logged any expenses this week. "
                "If you've been mindful with spending, that's amazing!"
            ),
            icon='🌟',
            key=f'nudge:{day}',
        ))
    return alerts


def weekly_report(expenses: Sequence[Expense], now: datetime) -> Alert:
    this_week, last_week = split_weeks(expenses, now)
    spent = analytics.total_spent(this_week)
    previous = analytics.total_spent(last_week)
    message = f'You spent ${spent:.2f} across {len(this_week)} expenses this week.'
    if previous > 0:
        change = round_half_up((spent - previous) / previous * 100)
        message += f' That is {"+" if change >= 0 else ""}{change}% compared with last week.'
    if this_week:
        message += f' Top category: {analytics.top_category(this_week)}.'
    return Alert(
        kind='weekly_report',
        title='Your Weekly Summary 📅',
        message=message,
        icon='📅',
        key=f'weekly:{now.date().isoformat()}',
    )


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


class NotificationStore(RecordStore[Notification]):
    """Notifications, newest first."""

    record_type = Notification
    key = config.NOTIFICATIONS_KEY
    newest_first = True

    def add(self, notification: Notification) -> Notification:
        return self._insert(notification)

    def mark_all_read(self) -> None:
        self.records = [n if n.read else n.merged(read=True) for n in self.records]
        self._persist()
        self._notify()

    def clear_all(self) -> None:
        self.records = []
        self._persist()
        self._notify()


class SentAlertStore(RecordStore[SentAlert]):
    """Alert keys that have produced a notification, oldest first."""

    record_type = SentAlert
    key = config.SENT_ALERTS_KEY

    def __contains__(self, alert_key: str) -> bool:
        return self.get(alert_key) is not None

    def record(self, alert_key: str, when: datetime) -> None:
        if alert_key not in self:
            self._insert(SentAlert(id=alert_key, sent_at=when))


class NotificationEngine:
    """Derives notifications from the expense and goal stores."""

    def __init__(
        self,
        storage: StorageBackend,
        expenses: ExpenseStore,
        goals: SavingsGoalStore,
        preferences: Optional[NotificationPreferences] = None,
        dedupe: Optional[bool] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.store = NotificationStore(storage)
        self.sent = SentAlertStore(storage)
        self.expenses = expenses
        self.goals = goals
        self.preferences = preferences or NotificationPreferences()
        self.dedupe = config.NOTIFICATION_DEDUPE if dedupe is None else dedupe
        self.clock = clock
        self._seen: Set[str] = set()

    # Lifecycle ----------------------------------------------------------------

    def load(self) -> None:
        self.store.load()
        self.sent.load()
        self._seen = {alert.id for alert in self.sent.records}
        self._seen.update(n.alert_key for n in self.store.records if n.alert_key)

    def attach(self) -> None:
        self.expenses.subscribe(self._on_expenses_changed)
        self.goals.subscribe(self._on_goals_changed)

    def detach(self) -> None:
        self.expenses.unsubscribe(self._on_expenses_changed)
        self.goals.unsubscribe(self._on_goals_changed)

    def _on_expenses_changed(self, store: ExpenseStore) -> None:
        self.emit(spending_alerts(store.records, self.clock()))

    def _on_goals_changed(self, store: SavingsGoalStore) -> None:
        self.emit(goal_milestones(store.records))

    # Rules --------------------------------------------------------------------

    def evaluate(self, now: Optional[datetime] = None) -> List[Notification]:
        """Run every rule against the current stores."""
        now = now or self.clock()
        alerts = goal_milestones(self.goals.records) + spending_alerts(self.expenses.records, now)
        return self.emit(alerts, now)

    def publish_weekly_report(self, now: Optional[datetime] = None) -> Optional[Notification]:
        now = now or self.clock()
        created = self.emit([weekly_report(self.expenses.records, now)], now)
        return created[0] if created else None

    def emit(self, alerts: Iterable[Alert], now: Optional[datetime] = None) -> List[Notification]:
        """Store the alerts that preferences allow and that are not repeats."""
        created = []
        for alert in alerts:
            if not self.preferences.allows(alert.kind):
                continue
            if self.dedupe and alert.key and alert.key in self._seen:
                continue
            logger.debug("Emitting %s notification %s", alert.kind, alert.key)
            created.append(self.add(alert.kind, alert.title, alert.message, alert.icon, alert.key, now))
        return created

    # Collection ---------------------------------------------------------------

    @property
    def notifications(self) -> List[Notification]:
        return list(self.store.records)

    @property
    def unread_count(self) -> int:
        return sum(1 for n in self.store.records if not n.read)

    @property
    def last_error(self) -> Optional[str]:
        return self.store.last_error or self.sent.last_error

    def add(
        self,
        kind: str,
        title: str,
        message: str,
        icon: Optional[str] = None,
        alert_key: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Notification:
        notification = Notification(
            id=new_id(),
            kind=kind,
            title=title,
            message=message,
            created_at=now or self.clock(),
            read=False,
            icon=icon,
            alert_key=alert_key,
        )
        self.store.add(notification)
        if alert_key:
            self._seen.add(alert_key)
            self.sent.record(alert_key, notification.created_at)
        return notification

    def mark_read(self, notification_id: str) -> bool:
        return self.store.update(notification_id, read=True)

    def mark_all_read(self) -> None:
        self.store.mark_all_read()

    def clear(self, notification_id: str) -> bool:
        return self.store.delete(notification_id)

    def clear_all(self) -> None:
        self.store.clear_all()
