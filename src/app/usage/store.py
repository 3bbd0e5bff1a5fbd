import threading
from typing import Dict, Iterable, List, Protocol, Sequence, Tuple

from loguru import logger

from src.app.usage.domains import UsageRecord, UsageRecordCreate
from src.app.usage.models import UsageDaily
from src.common.exceptions import ValidationException
from src.network.database.session import ReadOnlySession, db


class UsageRecordStore(Protocol):
    """
    Where the leaderboard reads usage from. Readers must only ever observe a
    user's complete old record set or complete new one, never a mix.
    """

    def fetch_all(self) -> List[UsageRecord]: ...

    def fetch_for_user(self, user_id: str) -> List[UsageRecord]: ...

    def replace_for_user(self, user_id: str, records: Iterable[UsageRecord]) -> int: ...


def _validate_replacement(user_id: str, records: Iterable[UsageRecord]) -> List[UsageRecord]:
    records = list(records)
    seen_dates = set()
    for record in records:
        if record.user_id != user_id:
            raise ValidationException(
                f'Record for {record.user_id} passed when replacing {user_id}',
                context={'user_id': user_id, 'record_user_id': record.user_id},
            )
        if record.date in seen_dates:
            raise ValidationException(
                f'Duplicate date {record.date} for {user_id}', context={'user_id': user_id, 'date': record.date}
            )
        seen_dates.add(record.date)
    return records


class InMemoryUsageRecordStore:
    """
    Records held per user as immutable tuples. A replace swaps the whole
    tuple under the lock so concurrent readers see old or new, never both.
    """

    def __init__(self, records: Iterable[UsageRecord] = ()) -> None:
        self._lock = threading.Lock()
        self._records: Dict[str, Tuple[UsageRecord, ...]] = {}
        by_user: Dict[str, List[UsageRecord]] = {}
        for record in records:
            by_user.setdefault(record.user_id, []).append(record)
        for user_id, user_records in by_user.items():
            self._records[user_id] = tuple(_validate_replacement(user_id, user_records))

    def fetch_all(self) -> List[UsageRecord]:
        with self._lock:
            snapshot = list(self._records.values())
        return [record for user_records in snapshot for record in user_records]

    def fetch_for_user(self, user_id: str) -> List[UsageRecord]:
        with self._lock:
            return list(self._records.get(user_id, ()))

    def replace_for_user(self, user_id: str, records: Iterable[UsageRecord]) -> int:
        replacement = tuple(_validate_replacement(user_id, records))
        with self._lock:
            deleted = len(self._records.get(user_id, ()))
            if replacement:
                self._records[user_id] = replacement
            else:
                self._records.pop(user_id, None)

        logger.info(f'replaced usage for {user_id}: deleted {deleted}, inserted {len(replacement)}')
        return len(replacement)


class SqlUsageRecordStore:
    """
    Usage in the `usagedaily` table. A replace deletes and inserts inside one
    transaction, readers outside it keep seeing the committed rows.
    """

    @classmethod
    def factory(cls) -> 'SqlUsageRecordStore':
        return cls()

    def fetch_all(self) -> List[UsageRecord]:
        with ReadOnlySession():
            records = UsageDaily.list()
        logger.debug(f'fetched {len(records)} usage records')
        return records

    def fetch_for_user(self, user_id: str) -> List[UsageRecord]:
        with ReadOnlySession():
            return UsageDaily.list(UsageDaily.user_id == user_id, ordering=['date'])

    def replace_for_user(self, user_id: str, records: Iterable[UsageRecord]) -> int:
        replacement: Sequence[UsageRecordCreate] = [
            UsageRecordCreate.model_validate(record.model_dump()) for record in _validate_replacement(user_id, records)
        ]
        with db(commit_on_success=True):
            deleted = UsageDaily.delete(UsageDaily.user_id == user_id)
            inserted = UsageDaily.bulk_create(replacement)

        logger.info(f'replaced usage for {user_id}: deleted {deleted}, inserted {inserted}')
        return inserted
