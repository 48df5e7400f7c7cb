"""Persistence backends for the expense, goal and notification collections.

Stores talk to a :class:`StorageBackend` and never to files or SQL directly.
Two backends ship with the package:

* :class:`LocalJsonStorage` keeps one JSON array per collection key on disk,
  rewriting the whole blob on every mutation.
* :class:`TableStorage` keeps one SQLite table per collection, scoped by user,
  and applies row-level upserts and deletes.  It stands in for the hosted
  table service the web client talks to.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

from . import config

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Raised when a backend cannot read or write a collection."""


class StorageBackend:
    """Persistence port shared by the stores.

    ``write`` always receives the full collection in display order.  When the
    mutation touched a single record the caller also passes it as ``changed``
    (added or updated) or its id in ``removed``; backends that mirror whole
    blobs can ignore those hints.
    """

    def load(self, key: str) -> List[Dict[str, Any]]:
        raise NotImplementedError

    def write(
        self,
        key: str,
        records: Sequence[Dict[str, Any]],
        changed: Optional[Dict[str, Any]] = None,
        removed: Optional[str] = None,
    ) -> None:
        raise NotImplementedError


# ---------------------------------------------------------------------------
# Local JSON blobs
# ---------------------------------------------------------------------------


class LocalJsonStorage(StorageBackend):
    """One ``<key>.json`` array per collection under a directory."""

    def __init__(self, directory: Optional[Path] = None):
        self.directory = Path(directory or config.LOCAL_STORE_DIR)

    def get_path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def load(self, key: str) -> List[Dict[str, Any]]:
        target = self.get_path(key)
        if not target.exists():
            return []
        try:
            with target.open('r', encoding='utf-8') as handle:
                data = json.load(handle)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("Ignoring unreadable store %s: %s", target, e)
            return []
        if not isinstance(data, list):
            logger.warning("Ignoring store %s: expected a JSON array", target)
            return []
        return [item for item in data if isinstance(item, dict)]

    def write(self, key, records, changed=None, removed=None) -> None:
        target = self.get_path(key)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with target.open('w', encoding='utf-8') as handle:
                json.dump(list(records), handle, indent=2)
        except OSError as e:
            raise StorageError(f"Failed to write {target}: {e}") from e


# ---------------------------------------------------------------------------
# Table storage
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TableSpec:
    table: str
    columns: Tuple[str, ...]
    newest_first: bool
    order_by: str
    conflict: str = 'id'


TABLES: Dict[str, TableSpec] = {
    config.EXPENSES_KEY: TableSpec(
        'expenses',
        ('amount', 'category', 'description', 'date', 'note'),
        newest_first=True,
        order_by='seq DESC',
    ),
    config.GOALS_KEY: TableSpec(
        'savings_goals',
        ('name', 'target_amount', 'current_amount', 'deadline', 'created_at', 'color'),
        newest_first=False,
        order_by='seq ASC',
    ),
    config.NOTIFICATIONS_KEY: TableSpec(
        'notifications',
        ('kind', 'title', 'message', 'created_at', 'read', 'icon', 'alert_key'),
        newest_first=True,
        order_by='created_at DESC, seq DESC',
    ),
    config.SENT_ALERTS_KEY: TableSpec(
        'sent_alerts',
        ('sent_at',),
        newest_first=False,
        order_by='seq ASC',
        conflict='id, user_id',
    ),
}

SCHEMA_SQL = """
PRAGMA journal_mode=WAL;
PRAGMA synchronous=NORMAL;

CREATE TABLE IF NOT EXISTS expenses (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    seq INTEGER NOT NULL,
    amount REAL NOT NULL,
    category TEXT NOT NULL,
    description TEXT,
    date TEXT NOT NULL,
    note TEXT
);

CREATE TABLE IF NOT EXISTS savings_goals (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    seq INTEGER NOT NULL,
    name TEXT NOT NULL,
    target_amount REAL NOT NULL,
    current_amount REAL NOT NULL,
    deadline TEXT NOT NULL,
    created_at TEXT NOT NULL,
    color TEXT
);

CREATE TABLE IF NOT EXISTS notifications (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    seq INTEGER NOT NULL,
    kind TEXT NOT NULL,
    title TEXT NOT NULL,
    message TEXT NOT NULL,
    created_at TEXT NOT NULL,
    read INTEGER NOT NULL DEFAULT 0,
    icon TEXT,
    alert_key TEXT
);

CREATE TABLE IF NOT EXISTS sent_alerts (
    id TEXT NOT NULL,
    user_id TEXT NOT NULL,
    seq INTEGER NOT NULL,
    sent_at TEXT NOT NULL,
    PRIMARY KEY (id, user_id)
);

CREATE INDEX IF NOT EXISTS ix_expenses_user ON expenses (user_id, seq);
CREATE INDEX IF NOT EXISTS ix_goals_user ON savings_goals (user_id, seq);
CREATE INDEX IF NOT EXISTS ix_notifications_user ON notifications (user_id, created_at);
"""


class TableStorage(StorageBackend):
    """Row-per-record storage in SQLite, scoped to one user."""

    def __init__(self, user_id: str, db_path: Optional[Path] = None):
        self.user_id = user_id
        self.db_path = Path(db_path or config.DB_PATH)
        self.init_db()

    @contextmanager
    def connect(self) -> Iterator[sqlite3.Connection]:
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(str(self.db_path))
        except (OSError, sqlite3.Error) as e:
            raise StorageError(f"Cannot open {self.db_path}: {e}") from e
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        except sqlite3.Error as e:
            raise StorageError(f"Table operation failed: {e}") from e
        finally:
            conn.close()

    def init_db(self) -> None:
        with self.connect() as conn:
            conn.executescript(SCHEMA_SQL)
            conn.commit()

    def _spec(self, key: str) -> TableSpec:
        try:
            return TABLES[key]
        except KeyError:
            raise StorageError(f"No table configured for {key!r}") from None

    def load(self, key: str) -> List[Dict[str, Any]]:
        spec = self._spec(key)
        sql = (
            f"SELECT id, {', '.join(spec.columns)} FROM {spec.table} "
            f"WHERE user_id = ? ORDER BY {spec.order_by}"
        )
        with self.connect() as conn:
            rows = conn.execute(sql, (self.user_id,)).fetchall()
        return [dict(row) for row in rows]

    def write(self, key, records, changed=None, removed=None) -> None:
        spec = self._spec(key)
        with self.connect() as conn:
            if changed is not None:
                self._upsert(conn, spec, changed)
            if removed is not None:
                conn.execute(
                    f"DELETE FROM {spec.table} WHERE id = ? AND user_id = ?",
                    (removed, self.user_id),
                )
            if changed is None and removed is None:
                self._replace(conn, spec, records)
            conn.commit()

    def _upsert(self, conn: sqlite3.Connection, spec: TableSpec, record: Dict[str, Any]) -> None:
        columns = ', '.join(spec.columns)
        placeholders = ', '.join('?' for _ in spec.columns)
        updates = ', '.join(f"{col} = excluded.{col}" for col in spec.columns)
        sql = (
            f"INSERT INTO {spec.table} (id, user_id, seq, {columns}) "
            f"VALUES (?, ?, (SELECT COALESCE(MAX(seq), 0) + 1 FROM {spec.table} WHERE user_id = ?), {placeholders}) "
            f"ON CONFLICT({spec.conflict}) DO UPDATE SET {updates}"
        )
        params = [record['id'], self.user_id, self.user_id]
        params.extend(record.get(col) for col in spec.columns)
        conn.execute(sql, params)

    def _replace(self, conn: sqlite3.Connection, spec: TableSpec, records: Sequence[Dict[str, Any]]) -> None:
        conn.execute(f"DELETE FROM {spec.table} WHERE user_id = ?", (self.user_id,))
        columns = ', '.join(spec.columns)
        placeholders = ', '.join('?' for _ in spec.columns)
        sql = f"INSERT INTO {spec.table} (id, user_id, seq, {columns}) VALUES (?, ?, ?, {placeholders})"
        total = len(records)
        rows = []
        for index, record in enumerate(records):
            # seq must reproduce the given order under the table's ORDER BY
            seq = total - index if spec.newest_first else index + 1
            rows.append([record['id'], self.user_id, seq] + [record.get(col) for col in spec.columns])
        conn.executemany(sql, rows)


def create_storage(user_id: str, backend: Optional[str] = None) -> StorageBackend:
    """Build the backend named in configuration for ``user_id``."""
    name = (backend or config.BACKEND).lower()
    if name == 'local':
        if user_id in ('', '.', '..') or Path(user_id).name != user_id:
            raise ValueError(f"User id {user_id!r} cannot name a storage directory")
        config.ensure_data_directories()
        return LocalJsonStorage(config.LOCAL_STORE_DIR / user_id)
    if name == 'table':
        return TableStorage(user_id)
    raise ValueError(f"Unknown storage backend: {name}")
