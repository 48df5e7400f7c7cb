import json
from datetime import datetime

import pytest

from budgetbloom import config
from budgetbloom.models import Expense, Notification
from budgetbloom.storage import LocalJsonStorage, StorageError, TableStorage, create_storage


def _expenses():
    return [
        Expense(id='b', amount=20.5, category='food', description='Groceries', date=datetime(2024, 3, 2, 18, 30)),
        Expense(id='a', amount=7.25, category='transport', description='Bus pass', date=datetime(2024, 3, 1), note='monthly'),
    ]


def test_local_json_round_trip(tmp_path):
    storage = LocalJsonStorage(tmp_path)
    originals = _expenses()
    storage.write(config.EXPENSES_KEY, [e.to_dict() for e in originals])

    with (tmp_path / f"{config.EXPENSES_KEY}.json").open() as handle:
        raw = json.load(handle)
    assert raw[0]['date'] == '2024-03-02T18:30:00'

    restored = [Expense.from_dict(item) for item in storage.load(config.EXPENSES_KEY)]
    assert restored == originals


def test_local_missing_or_corrupt_blob_loads_empty(tmp_path):
    storage = LocalJsonStorage(tmp_path)
    assert storage.load(config.GOALS_KEY) == []

    (tmp_path / f"{config.GOALS_KEY}.json").write_text("{not json", encoding='utf-8')
    assert storage.load(config.GOALS_KEY) == []

    (tmp_path / f"{config.GOALS_KEY}.json").write_text('{"a": 1}', encoding='utf-8')
    assert storage.load(config.GOALS_KEY) == []


def test_local_write_failure_raises_storage_error(tmp_path):
    blocker = tmp_path / 'not_a_dir'
    blocker.write_text('x', encoding='utf-8')
    storage = LocalJsonStorage(blocker)
    with pytest.raises(StorageError):
        storage.write(config.EXPENSES_KEY, [])


def test_table_storage_replace_preserves_order(tmp_path):
    storage = TableStorage('user-1', tmp_path / 'bloom.db')
    records = [e.to_dict() for e in _expenses()]
    storage.write(config.EXPENSES_KEY, records)

    loaded = storage.load(config.EXPENSES_KEY)
    assert [row['id'] for row in loaded] == ['b', 'a']
    assert Expense.from_dict(loaded[1]).note == 'monthly'


def test_table_storage_upsert_prepends_new_expense_and_updates_in_place(tmp_path):
    storage = TableStorage('user-1', tmp_path / 'bloom.db')
    storage.write(config.EXPENSES_KEY, [e.to_dict() for e in _expenses()])

    newest = Expense(id='c', amount=3, category='other', description='Gum', date=datetime(2024, 2, 1))
    storage.write(config.EXPENSES_KEY, [], changed=newest.to_dict())
    edited = _expenses()[1].merged(amount=9.0)
    storage.write(config.EXPENSES_KEY, [], changed=edited.to_dict())

    loaded = storage.load(config.EXPENSES_KEY)
    assert [row['id'] for row in loaded] == ['c', 'b', 'a']
    assert loaded[2]['amount'] == 9.0


def test_table_storage_delete_and_user_scoping(tmp_path):
    db_path = tmp_path / 'bloom.db'
    mine = TableStorage('user-1', db_path)
    theirs = TableStorage('user-2', db_path)
    mine.write(config.EXPENSES_KEY, [e.to_dict() for e in _expenses()])

    assert theirs.load(config.EXPENSES_KEY) == []
    theirs.write(config.EXPENSES_KEY, [], removed='a')
    assert len(mine.load(config.EXPENSES_KEY)) == 2

    mine.write(config.EXPENSES_KEY, [], removed='a')
    assert [row['id'] for row in mine.load(config.EXPENSES_KEY)] == ['b']


def test_table_notifications_newest_first(tmp_path):
    storage = TableStorage('user-1', tmp_path / 'bloom.db')
    older = Notification(id='n1', kind='nudge', title='t', message='m', created_at=datetime(2024, 1, 1, 9))
    newer = Notification(id='n2', kind='warning', title='t', message='m', created_at=datetime(2024, 1, 2, 9), read=True)
    storage.write(config.NOTIFICATIONS_KEY, [], changed=older.to_dict())
    storage.write(config.NOTIFICATIONS_KEY, [], changed=newer.to_dict())

    loaded = [Notification.from_dict(row) for row in storage.load(config.NOTIFICATIONS_KEY)]
    assert [n.id for n in loaded] == ['n2', 'n1']
    assert loaded[0].read is True
    assert loaded[1].read is False


def test_table_storage_unknown_key(tmp_path):
    storage = TableStorage('user-1', tmp_path / 'bloom.db')
    with pytest.raises(StorageError):
        storage.load('unknown')


def test_create_storage_rejects_unknown_backend():
    with pytest.raises(ValueError):
        create_storage('user-1', backend='cloud')


def test_table_sent_alert_keys_are_per_user(tmp_path):
    db_path = tmp_path / 'bloom.db'
    mine = TableStorage('user-1', db_path)
    theirs = TableStorage('user-2', db_path)
    record = {'id': 'nudge:2024-01-01', 'sent_at': '2024-01-01T09:00:00'}
    mine.write(config.SENT_ALERTS_KEY, [], changed=record)
    theirs.write(config.SENT_ALERTS_KEY, [], changed=record)
    mine.write(config.SENT_ALERTS_KEY, [], changed=record)

    assert mine.load(config.SENT_ALERTS_KEY) == [record]
    assert theirs.load(config.SENT_ALERTS_KEY) == [record]


def test_local_storage_is_separated_per_user(tmp_path, monkeypatch):
    monkeypatch.setattr(config, 'DATA_DIR', tmp_path)
    monkeypatch.setattr(config, 'LOCAL_STORE_DIR', tmp_path / 'local')
    alice = create_storage('alice', backend='local')
    bob = create_storage('bob', backend='local')

    therapy = Expense(id='t', amount=80, category='health', description='Therapy', date=datetime(2024, 3, 1))
    alice.write(config.EXPENSES_KEY, [therapy.to_dict()])

    assert alice.get_path(config.EXPENSES_KEY) == tmp_path / 'local' / 'alice' / f"{config.EXPENSES_KEY}.json"
    assert [row['id'] for row in alice.load(config.EXPENSES_KEY)] == ['t']
    assert bob.load(config.EXPENSES_KEY) == []


@pytest.mark.parametrize('user_id', ['', '..', 'a/b'])
def test_local_storage_rejects_unsafe_user_ids(user_id):
    with pytest.raises(ValueError):
        create_storage(user_id, backend='local')
