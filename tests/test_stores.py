from datetime import date, datetime, timedelta

import pytest

from budgetbloom.storage import LocalJsonStorage, StorageBackend, StorageError
from budgetbloom.stores import ExpenseStore, SavingsGoalStore


class MemoryStorage(StorageBackend):
    def __init__(self):
        self.blobs = {}
        self.writes = []

    def load(self, key):
        return list(self.blobs.get(key, []))

    def write(self, key, records, changed=None, removed=None):
        self.blobs[key] = list(records)
        self.writes.append((key, changed, removed))


class BrokenStorage(MemoryStorage):
    def write(self, key, records, changed=None, removed=None):
        raise StorageError("backend unavailable")


def _expense_store(storage=None):
    store = ExpenseStore(storage or MemoryStorage())
    store.load()
    return store


def test_add_prepends_and_assigns_unique_ids():
    store = _expense_store()
    first = store.add(amount=10, category='food', description='Lunch', date=datetime(2024, 3, 1))
    second = store.add(amount=5, category='transport', description='Bus', date=datetime(2024, 2, 1))

    assert [e.id for e in store] == [second.id, first.id]
    assert first.id != second.id


def test_every_mutation_writes_through():
    storage = MemoryStorage()
    store = _expense_store(storage)
    expense = store.add(amount=10, category='food', description='Lunch', date=datetime(2024, 3, 1))
    store.update(expense.id, amount=12)
    store.delete(expense.id)

    assert [w[0] for w in storage.writes] == [store.key] * 3
    assert storage.writes[0][1]['id'] == expense.id
    assert storage.writes[1][1]['amount'] == 12
    assert storage.writes[2][2] == expense.id
    assert storage.blobs[store.key] == []


def test_update_unknown_id_is_a_no_op():
    storage = MemoryStorage()
    store = _expense_store(storage)
    assert store.update('missing', amount=3) is False
    assert storage.writes == []


def test_disjoint_updates_equal_single_merged_update():
    store = _expense_store()
    a = store.add(amount=10, category='food', description='Lunch', date=datetime(2024, 3, 1))
    b = store.add(amount=10, category='food', description='Lunch', date=datetime(2024, 3, 1))

    store.update(a.id, amount=25)
    store.update(a.id, description='Dinner', note='with friends')
    store.update(b.id, amount=25, description='Dinner', note='with friends')

    merged_a, merged_b = store.get(a.id), store.get(b.id)
    assert (merged_a.amount, merged_a.description, merged_a.note) == (merged_b.amount, merged_b.description, merged_b.note)


def test_update_rejects_id_change_and_unknown_fields():
    store = _expense_store()
    expense = store.add(amount=10, category='food', description='Lunch', date=datetime(2024, 3, 1))
    with pytest.raises(ValueError):
        store.update(expense.id, id='other')
    with pytest.raises(ValueError):
        store.update(expense.id, colour='red')


def test_delete_is_idempotent():
    store = _expense_store()
    expense = store.add(amount=10, category='food', description='Lunch', date=datetime(2024, 3, 1))
    assert store.delete(expense.id) is True
    assert store.delete(expense.id) is False
    assert len(store) == 0


def test_list_filters_are_conjunctive_and_inclusive():
    store = _expense_store()
    store.add(amount=10, category='food', description='a', date=datetime(2024, 3, 1))
    store.add(amount=20, category='food', description='b', date=datetime(2024, 3, 10))
    store.add(amount=30, category='health', description='c', date=datetime(2024, 3, 10))

    matches = store.list(category='food', start_date=datetime(2024, 3, 1), end_date=datetime(2024, 3, 5))
    assert [e.description for e in matches] == ['a']
    assert len(store.list()) == 3
    assert len(store.list(end_date=datetime(2024, 3, 10))) == 3
    assert [e.description for e in store.by_category('food')] == ['b', 'a']
    assert len(store.by_category()) == 3


def test_totals_match_category_breakdown():
    store = _expense_store()
    day = datetime(2024, 5, 1)
    store.add(amount=30, category='food', description='Groceries', date=day)
    store.add(amount=20, category='food', description='Cafe', date=day + timedelta(days=1))

    assert store.totals_by_category() == {'food': 50}
    assert store.total() == 50

    store.add(amount=12.5, category='shopping', description='Socks', date=day)
    assert store.total() == pytest.approx(sum(store.totals_by_category().values()))


def test_top_category_defaults_to_other():
    assert _expense_store().top_category() == 'other'


def test_average_daily_spending():
    store = _expense_store()
    assert store.average_daily_spending() == 0
    now = datetime(2024, 5, 11, 12)
    store.add(amount=50, category='food', description='a', date=datetime(2024, 5, 1, 12))
    store.add(amount=50, category='food', description='b', date=datetime(2024, 5, 11, 9))
    assert store.average_daily_spending(now) == pytest.approx(10)


def test_listeners_run_after_mutation_and_can_unsubscribe():
    store = _expense_store()
    calls = []

    def listener(changed):
        calls.append(len(changed))

    store.subscribe(listener)
    store.add(amount=1, category='other', description='x', date=datetime(2024, 1, 1))
    store.unsubscribe(listener)
    store.add(amount=1, category='other', description='y', date=datetime(2024, 1, 1))
    assert calls == [1]


def test_failed_write_keeps_memory_and_records_error():
    store = _expense_store(BrokenStorage())
    expense = store.add(amount=10, category='food', description='Lunch', date=datetime(2024, 3, 1))
    assert store.get(expense.id) == expense
    assert 'backend unavailable' in store.last_error


def test_load_skips_invalid_records():
    storage = MemoryStorage()
    storage.blobs[ExpenseStore.key] = [
        {'id': '1', 'amount': 5, 'category': 'food', 'description': 'ok', 'date': '2024-01-01T10:00:00'},
        {'id': '2', 'amount': -5, 'category': 'food', 'description': 'negative', 'date': '2024-01-01T10:00:00'},
        {'id': '3', 'amount': 5, 'category': 'pets', 'description': 'unknown', 'date': '2024-01-01T10:00:00'},
        {'id': '4', 'amount': float('nan'), 'category': 'food', 'description': 'nan', 'date': '2024-01-01T10:00:00'},
    ]
    store = _expense_store(storage)
    assert [e.id for e in store] == ['1']


def test_goals_append_and_stamp_creation_time():
    store = SavingsGoalStore(MemoryStorage())
    first = store.add(name='Emergency Fund', target_amount=1000, deadline=date(2025, 1, 1))
    second = store.add(name='Vacation', target_amount=500, current_amount=100, deadline=date(2025, 6, 1))

    assert [g.id for g in store] == [first.id, second.id]
    assert isinstance(first.created_at, datetime)
    assert second.progress == pytest.approx(20)


def test_goal_contribute_and_progress_above_target():
    store = SavingsGoalStore(MemoryStorage())
    goal = store.add(name='Laptop', target_amount=100, current_amount=90, deadline=date(2025, 1, 1))
    assert store.contribute(goal.id, 30) is True
    assert store.get(goal.id).progress == pytest.approx(120)
    assert store.contribute('missing', 30) is False


def test_goal_target_must_be_positive():
    store = SavingsGoalStore(MemoryStorage())
    with pytest.raises(ValueError):
        store.add(name='Nothing', target_amount=0, deadline=date(2025, 1, 1))


def test_stores_reload_from_local_json(tmp_path):
    storage = LocalJsonStorage(tmp_path)
    store = _expense_store(storage)
    store.add(amount=10, category='food', description='a', date=datetime(2024, 3, 1))
    store.add(amount=20, category='health', description='b', date=datetime(2024, 3, 2))

    reloaded = _expense_store(LocalJsonStorage(tmp_path))
    assert [e.description for e in reloaded] == ['b', 'a']
