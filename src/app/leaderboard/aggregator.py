"""
Folds usage records into per-user and per-day aggregates. Every fold here
is commutative and associative: any record order, or any split of the
records into shards merged afterwards, gives the same result.
"""
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, Mapping, NamedTuple, Optional, Set

from src.app.leaderboard.domains import DateWindow, StatsSummary
from src.app.usage.domains import UsageRecord
from src.app.users.domains import UserRead
from src.common.utils import decimal_parse

TOKEN_COUNTERS = (
    'input_tokens',
    'output_tokens',
    'cache_creation_tokens',
    'cache_read_tokens',
    'total_tokens',
)


class DateUserKey(NamedTuple):
    date: str
    user_id: str


def _later(first: Optional[datetime], second: Optional[datetime]) -> Optional[datetime]:
    if first is None:
        return second
    if second is None:
        return first
    return max(first, second)


@dataclass
class UserAggregate:
    user_id: str
    input_tokens: int = 0
    output_tokens: int = 0
    cache_creation_tokens: int = 0
    cache_read_tokens: int = 0
    total_tokens: int = 0
    # Decimal so the sum does not depend on addition order
    total_cost: Decimal = field(default_factory=Decimal)
    models_used: Set[str] = field(default_factory=set)
    last_synced_at: Optional[datetime] = None
    record_count: int = 0

    def add_record(self, record: UsageRecord) -> None:
        for name in TOKEN_COUNTERS:
            setattr(self, name, getattr(self, name) + getattr(record, name))
        self.total_cost += decimal_parse(record.total_cost)
        self.models_used.update(record.models_used)
        self.last_synced_at = _later(self.last_synced_at, record.updated_at)
        self.record_count += 1

    def merge(self, other: 'UserAggregate') -> 'UserAggregate':
        if other.user_id != self.user_id:
            raise ValueError(f'Cannot merge aggregates for {self.user_id} and {other.user_id}')

        merged = UserAggregate(
            user_id=self.user_id,
            total_cost=self.total_cost + other.total_cost,
            models_used=self.models_used | other.models_used,
            last_synced_at=_later(self.last_synced_at, other.last_synced_at),
            record_count=self.record_count + other.record_count,
        )
        for name in TOKEN_COUNTERS:
            setattr(merged, name, getattr(self, name) + getattr(other, name))
        return merged

    def counters(self) -> Dict[str, int | float]:
        values: Dict[str, int | float] = {name: getattr(self, name) for name in TOKEN_COUNTERS}
        values['total_cost'] = float(self.total_cost)
        return values


@dataclass
class DailyTotals:
    """Usage of every user on one day, or one bucket of days."""

    key: str
    total_tokens: int = 0
    total_cost: Decimal = field(default_factory=Decimal)
    user_ids: Set[str] = field(default_factory=set)

    def add_record(self, record: UsageRecord) -> None:
        self.total_tokens += record.total_tokens
        self.total_cost += decimal_parse(record.total_cost)
        self.user_ids.add(record.user_id)

    def absorb(self, other: 'DailyTotals') -> None:
        self.total_tokens += other.total_tokens
        self.total_cost += other.total_cost
        self.user_ids |= other.user_ids


def aggregate(records: Iterable[UsageRecord], window: DateWindow) -> Dict[str, UserAggregate]:
    """
    One pass over `records`, keeping those whose effective date falls in
    the inclusive window. Tenant agnostic, see `filter_by_team`.
    """
    aggregates: Dict[str, UserAggregate] = {}
    for record in records:
        if not window.contains(record.effective_date):
            continue
        if record.user_id not in aggregates:
            aggregates[record.user_id] = UserAggregate(user_id=record.user_id)
        aggregates[record.user_id].add_record(record)
    return aggregates


def combine_aggregates(shards: Iterable[Mapping[str, UserAggregate]]) -> Dict[str, UserAggregate]:
    """Merge aggregates built over disjoint record shards."""
    combined: Dict[str, UserAggregate] = {}
    for shard in shards:
        for user_id, user_aggregate in shard.items():
            if user_id in combined:
                combined[user_id] = combined[user_id].merge(user_aggregate)
            else:
                combined[user_id] = user_aggregate.merge(UserAggregate(user_id=user_id))
    return combined


def filter_by_team(
    aggregates: Mapping[str, UserAggregate],
    users: Mapping[str, UserRead],
    team_id: Optional[str] = None,
) -> Dict[str, UserAggregate]:
    """
    Drops aggregates whose user is unknown to the registry and, when a team
    is given, those belonging to another team.
    """
    return {
        user_id: user_aggregate
        for user_id, user_aggregate in aggregates.items()
        if user_id in users and (team_id is None or users[user_id].team_id == team_id)
    }


def aggregate_by_date(records: Iterable[UsageRecord], window: DateWindow) -> Dict[str, DailyTotals]:
    daily: Dict[str, DailyTotals] = {}
    for record in records:
        effective_date = record.effective_date
        if not window.contains(effective_date):
            continue
        if effective_date not in daily:
            daily[effective_date] = DailyTotals(key=effective_date)
        daily[effective_date].add_record(record)
    return daily


def aggregate_cost_by_date_and_user(
    records: Iterable[UsageRecord],
    window: DateWindow,
    user_ids: Set[str],
) -> Dict[DateUserKey, Decimal]:
    """Sparse date x user cost matrix, restricted to `user_ids`."""
    costs: Dict[DateUserKey, Decimal] = {}
    for record in records:
        if record.user_id not in user_ids or not window.contains(record.effective_date):
            continue
        key = DateUserKey(record.effective_date, record.user_id)
        costs[key] = costs.get(key, Decimal()) + decimal_parse(record.total_cost)
    return costs


def summarize(aggregates: Mapping[str, UserAggregate]) -> StatsSummary:
    return StatsSummary(
        total_tokens=sum(user_aggregate.total_tokens for user_aggregate in aggregates.values()),
        total_cost=float(sum((user_aggregate.total_cost for user_aggregate in aggregates.values()), Decimal())),
        total_users=len(aggregates),
    )
