"""
Chart series. Raw records are first folded per calendar day, weeks and
months are then built by summing those days, never from the raw records,
so day, week and month views of the same data always agree.
"""
import re
from collections import Counter
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Sequence, Tuple

from src.app.leaderboard.aggregator import DailyTotals, DateUserKey
from src.app.leaderboard.constants import FALLBACK_SERIES_KEY
from src.app.leaderboard.domains import BUCKET_KEY_FIELD, BucketMode, OverallChartPoint, UserChartPoint
from src.app.leaderboard.windows import bucket_key, parse_bucket_mode
from src.common.utils import decimal_parse

_INVALID_KEY_CHARS = re.compile(r'[^A-Za-z0-9_]+')


def bucketize(daily: Mapping[str, DailyTotals], bucket: BucketMode | str) -> Dict[str, DailyTotals]:
    bucket = parse_bucket_mode(bucket)
    buckets: Dict[str, DailyTotals] = {}
    for date, totals in daily.items():
        key = bucket_key(date, bucket)
        if key not in buckets:
            buckets[key] = DailyTotals(key=key)
        buckets[key].absorb(totals)
    return buckets


def overall_series(daily: Mapping[str, DailyTotals], bucket: BucketMode | str) -> List[OverallChartPoint]:
    buckets = bucketize(daily, bucket)
    return [
        OverallChartPoint(
            bucket_key=key,
            total_tokens=buckets[key].total_tokens,
            total_cost=float(buckets[key].total_cost),
            active_user_count=len(buckets[key].user_ids),
        )
        for key in sorted(buckets)
    ]


def bucketize_user_costs(
    costs: Mapping[DateUserKey, Decimal], bucket: BucketMode | str
) -> Dict[DateUserKey, Decimal]:
    bucket = parse_bucket_mode(bucket)
    bucketed: Dict[DateUserKey, Decimal] = {}
    for (date, user_id), cost in costs.items():
        key = DateUserKey(bucket_key(date, bucket), user_id)
        bucketed[key] = bucketed.get(key, Decimal()) + cost
    return bucketed


def user_series(
    costs: Mapping[DateUserKey, Decimal],
    series_keys: Mapping[str, str],
    bucket_keys: Iterable[str] = (),
) -> List[UserChartPoint]:
    """
    One point per bucket key, ascending. The keys are `bucket_keys` plus any
    found in `costs`, so buckets where none of the charted users were active
    still get a point. Every user in `series_keys` gets a value in every
    point, zero where they had no usage.
    """
    keys = sorted(set(bucket_keys) | {key.date for key in costs})
    return [
        UserChartPoint(
            bucket_key=key,
            costs={
                series_key: float(costs.get(DateUserKey(key, user_id), Decimal()))
                for user_id, series_key in series_keys.items()
            },
        )
        for key in keys
    ]


def sanitize_series_key(name: str) -> str:
    key = _INVALID_KEY_CHARS.sub('_', name).strip('_')
    if not key:
        return FALLBACK_SERIES_KEY
    if key[0].isdigit():
        return f'_{key}'
    return key


def sanitize_series_keys(names: Sequence[Tuple[str, str]]) -> Dict[str, str]:
    """
    Maps each (user_id, display name) to a unique identifier safe key.
    Collisions keep the first key as is and number the rest in input
    order: alice, alice_2, alice_3.
    """
    taken = Counter({BUCKET_KEY_FIELD: 1})
    keys: Dict[str, str] = {}
    for user_id, name in names:
        base = sanitize_series_key(name)
        key = base
        while key in taken:
            taken[base] += 1
            key = f'{base}_{taken[base]}'
        taken[key] += 1
        keys[user_id] = key
    return keys


def cumulative(points: Iterable[UserChartPoint]) -> List[UserChartPoint]:
    """
    Running total per series across buckets. Sorts by bucket key first so
    the result does not depend on the order points arrive in.
    """
    running: Dict[str, Decimal] = {}
    result = []
    for point in sorted(points, key=lambda p: p.bucket_key):
        costs = {}
        for series_key, cost in point.costs.items():
            running[series_key] = running.get(series_key, Decimal()) + decimal_parse(cost)
            costs[series_key] = float(running[series_key])
        result.append(UserChartPoint(bucket_key=point.bucket_key, costs=costs))
    return result
