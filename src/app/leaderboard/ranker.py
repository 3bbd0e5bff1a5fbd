from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, NamedTuple, Optional, Sequence, Tuple, TypeVar

from src.app.leaderboard.aggregator import UserAggregate
from src.app.leaderboard.domains import RankChange
from src.app.leaderboard.exceptions import InvalidLimit

_T = TypeVar('_T')

NEW_ENTRY = 'new'


class RankedAggregate(NamedTuple):
    rank: int
    aggregate: UserAggregate


def sort_key(user_aggregate: UserAggregate) -> Tuple[Decimal, int, str]:
    # Highest cost first, ties go to more tokens, then to the lower user id
    return -user_aggregate.total_cost, -user_aggregate.total_tokens, user_aggregate.user_id


def rank(aggregates: Iterable[UserAggregate]) -> List[RankedAggregate]:
    """
    Ranks are 1..N in sort order with no gaps. Equal costs still get
    distinct ranks, the tie break decides which comes first.
    """
    ordered = sorted(aggregates, key=sort_key)
    return [RankedAggregate(position, user_aggregate) for position, user_aggregate in enumerate(ordered, 1)]


def rank_map(ranked: Iterable[RankedAggregate]) -> Dict[str, int]:
    return {ranked_aggregate.aggregate.user_id: ranked_aggregate.rank for ranked_aggregate in ranked}


def rank_change(user_id: str, current_rank: int, previous_ranks: Optional[Mapping[str, int]]) -> RankChange:
    """
    previous rank - current rank, so moving towards rank 1 is positive.
    No previous ranking at all gives None.
    """
    if previous_ranks is None:
        return None
    if user_id not in previous_ranks:
        return NEW_ENTRY
    return previous_ranks[user_id] - current_rank


def compute_rank_changes(
    current: Sequence[RankedAggregate],
    previous: Optional[Sequence[RankedAggregate]],
) -> Dict[str, RankChange]:
    previous_ranks = rank_map(previous) if previous is not None else None
    return {
        ranked_aggregate.aggregate.user_id: rank_change(
            ranked_aggregate.aggregate.user_id, ranked_aggregate.rank, previous_ranks
        )
        for ranked_aggregate in current
    }


def validate_limit(limit: Optional[int]) -> Optional[int]:
    if limit is None:
        return None
    if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
        raise InvalidLimit(f'limit must be a positive integer, got {limit!r}', context={'limit': limit})
    return limit


def apply_limit(ranked: Sequence[_T], limit: Optional[int]) -> List[_T]:
    """Truncates an already ranked list, rank numbers stay global."""
    limit = validate_limit(limit)
    if limit is None:
        return list(ranked)
    return list(ranked[:limit])
