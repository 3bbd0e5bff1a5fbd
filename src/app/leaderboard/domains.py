from datetime import datetime
from typing import Dict, List, Literal, NamedTuple, Optional, Union

from pydantic import Field

from src.common.domain import BaseDomain
from src.common.enum import BaseEnum


# Leading key of every per-user chart row, user series keys never take it
BUCKET_KEY_FIELD = 'bucketKey'


class Period(BaseEnum):
    DAILY = 'daily'
    WEEKLY = 'weekly'
    MONTHLY = 'monthly'
    ALLTIME = 'alltime'


class RankHistoryPeriod(BaseEnum):
    DAILY = 'daily'
    WEEKLY = 'weekly'
    MONTHLY = 'monthly'


class BucketMode(BaseEnum):
    DAY = 'day'
    WEEK = 'week'
    MONTH = 'month'


class ChartTimeRange(BaseEnum):
    DAYS_30 = '30d'
    DAYS_90 = '90d'
    MONTHS_6 = '6m'
    YEAR_1 = '1y'
    ALL = 'all'


class DateWindow(NamedTuple):
    """Inclusive range of YYYY-MM-DD strings."""

    start: str
    end: str

    def contains(self, date: str) -> bool:
        # Zero padded ISO dates order the same as strings
        return self.start <= date <= self.end


RankChange = Union[int, Literal['new'], None]


class UsageCounters(BaseDomain):
    input_tokens: int = 0
    output_tokens: int = 0
    cache_creation_tokens: int = 0
    cache_read_tokens: int = 0
    total_tokens: int = 0
    total_cost: float = 0.0


class LeaderboardEntry(UsageCounters):
    user_id: str
    display_name: str
    external_id: Optional[str] = None
    team_id: Optional[str] = None
    models_used: List[str] = Field(default_factory=list)
    rank: int
    # previous rank - current rank, 'new' when absent last window, None when there is no last window
    rank_change: RankChange = None
    last_synced_at: Optional[datetime] = None
    has_report: bool = False


class StatsSummary(BaseDomain):
    total_tokens: int = 0
    total_cost: float = 0.0
    total_users: int = 0


class LeaderboardPage(BaseDomain):
    """Everything the leaderboard page renders, built from one record fetch."""

    period: Period
    stats: StatsSummary
    leaderboard: List[LeaderboardEntry]


class OverallChartPoint(BaseDomain):
    bucket_key: str
    total_tokens: int = 0
    total_cost: float = 0.0
    active_user_count: int = 0


class ChartUser(BaseDomain):
    user_id: str
    display_name: str
    series_key: str  # sanitized key of this user's values in each chart row
    total_cost: float = 0.0
    rank: int


class UserChartPoint(BaseDomain):
    bucket_key: str
    costs: Dict[str, float] = Field(default_factory=dict)  # series key -> cost

    def to_row(self) -> Dict[str, Union[str, float]]:
        """Flat chart row, e.g. {"bucketKey": "2025-01-06", "alice": 1.5, "bob": 0.0}"""
        return {BUCKET_KEY_FIELD: self.bucket_key, **self.costs}


class UserChartResponse(BaseDomain):
    users: List[ChartUser]
    series: List[UserChartPoint]

    def rows(self) -> List[Dict[str, Union[str, float]]]:
        return [point.to_row() for point in self.series]


class UserRankResponse(BaseDomain):
    rank: Optional[int] = None
    total_participants: int = 0
    stats: Optional[LeaderboardEntry] = None


class HistoricalRank(UsageCounters):
    """A single historical ranking entry."""

    period_start: str
    period_end: str
    rank: Optional[int] = None  # None if user had no activity in this period
    total_participants: int = 0


class HistoricalRankingsResponse(BaseDomain):
    user_id: str
    period_type: RankHistoryPeriod
    rankings: List[HistoricalRank]


class UserAggregateStats(UsageCounters):
    """Summed usage for one user over an explicit date range."""

    user_id: str
    start_date: str
    end_date: str
    models_used: List[str] = Field(default_factory=list)
    days_active: int = 0
