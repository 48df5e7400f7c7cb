"""Per-user session: the composition root for stores and notifications.

A :class:`BudgetSession` is opened when a user signs in and closed when they
sign out.  It owns the expense and goal stores and the notification engine,
all sharing one storage backend.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from . import export
from .models import User
from .notifications import NotificationEngine, NotificationPreferences
from .storage import StorageBackend, create_storage
from .stores import ExpenseStore, SavingsGoalStore

logger = logging.getLogger(__name__)


class BudgetSession:

    def __init__(
        self,
        user: User,
        storage: StorageBackend,
        preferences: Optional[NotificationPreferences] = None,
        dedupe: Optional[bool] = None,
    ):
        self.user = user
        self.storage = storage
        self.expenses = ExpenseStore(storage)
        self.goals = SavingsGoalStore(storage)
        self.notifications = NotificationEngine(
            storage, self.expenses, self.goals, preferences=preferences, dedupe=dedupe
        )
        self.is_open = False

    @classmethod
    def open(
        cls,
        user: User,
        storage: Optional[StorageBackend] = None,
        preferences: Optional[NotificationPreferences] = None,
        dedupe: Optional[bool] = None,
    ) -> 'BudgetSession':
        """Load the user's collections and start watching them."""
        session = cls(user, storage or create_storage(user.id), preferences, dedupe)
        session.expenses.load()
        session.goals.load()
        session.notifications.load()
        session.notifications.attach()
        session.notifications.evaluate()
        session.is_open = True
        logger.info(
            "Opened session for %s: %d expenses, %d goals",
            user.email, len(session.expenses), len(session.goals),
        )
        return session

    def close(self) -> None:
        if not self.is_open:
            return
        self.notifications.detach()
        self.is_open = False
        logger.info("Closed session for %s", self.user.email)

    @property
    def last_error(self) -> Optional[str]:
        return self.expenses.last_error or self.goals.last_error or self.notifications.last_error

    def export_document(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        return export.build_export(self.expenses.records, self.user, now)

    def export_json(self, now: Optional[datetime] = None) -> str:
        return export.export_json(self.expenses.records, self.user, now)
