import threading

import pytest

from src.app.usage import InMemoryUsageRecordStore
from src.common.exceptions import ValidationException


class TestInMemoryUsageRecordStore:
    def test_replace_is_full_replace(self, make_record, caplog):
        store = InMemoryUsageRecordStore([make_record('alice', '2025-01-01'), make_record('alice', '2025-01-02')])

        inserted = store.replace_for_user('alice', [make_record('alice', '2025-01-03', cost=1)])

        assert inserted == 1
        assert [r.date for r in store.fetch_for_user('alice')] == ['2025-01-03']
        assert 'replaced usage for alice: deleted 2, inserted 1' in caplog.text

    def test_replace_with_nothing_removes_user(self, make_record):
        store = InMemoryUsageRecordStore([make_record('alice', '2025-01-01')])
        store.replace_for_user('alice', [])
        assert store.fetch_all() == []

    def test_other_users_untouched(self, make_record):
        store = InMemoryUsageRecordStore([make_record('alice', '2025-01-01'), make_record('bob', '2025-01-01')])
        store.replace_for_user('alice', [])
        assert [r.user_id for r in store.fetch_all()] == ['bob']

    def test_rejects_records_for_another_user(self, make_record):
        store = InMemoryUsageRecordStore()
        with pytest.raises(ValidationException):
            store.replace_for_user('alice', [make_record('bob', '2025-01-01')])

    def test_rejects_duplicate_dates(self, make_record):
        store = InMemoryUsageRecordStore()
        with pytest.raises(ValidationException):
            store.replace_for_user('alice', [make_record('alice', '2025-01-01'), make_record('alice', '2025-01-01')])

    def test_readers_never_see_a_partial_replace(self, make_record):
        """Test that a concurrent reader sees a complete old or new record set, never a mix."""
        old = [make_record('alice', f'2025-01-{day:02d}', cost=1) for day in range(1, 11)]
        new = [make_record('alice', f'2025-02-{day:02d}', cost=2) for day in range(1, 21)]
        store = InMemoryUsageRecordStore(old)
        observed = []
        stop = threading.Event()

        def read():
            while not stop.is_set():
                observed.append({r.total_cost for r in store.fetch_all()})

        reader = threading.Thread(target=read)
        reader.start()
        for i in range(200):
            store.replace_for_user('alice', new if i % 2 == 0 else old)
        stop.set()
        reader.join()

        assert observed
        assert all(costs in ({1.0}, {2.0}) for costs in observed)
