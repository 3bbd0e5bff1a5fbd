from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from loguru import logger

from src import settings
from src.app.leaderboard.aggregator import (
    UserAggregate,
    aggregate,
    aggregate_by_date,
    aggregate_cost_by_date_and_user,
    filter_by_team,
    summarize,
)
from src.app.leaderboard.buckets import (
    bucketize,
    bucketize_user_costs,
    cumulative,
    overall_series,
    sanitize_series_keys,
    user_series,
)
from src.app.leaderboard.domains import (
    BucketMode,
    ChartTimeRange,
    ChartUser,
    DateWindow,
    HistoricalRank,
    HistoricalRankingsResponse,
    LeaderboardEntry,
    LeaderboardPage,
    OverallChartPoint,
    Period,
    RankChange,
    RankHistoryPeriod,
    StatsSummary,
    UserAggregateStats,
    UserChartResponse,
    UserRankResponse,
)
from src.app.leaderboard.ranker import RankedAggregate, apply_limit, compute_rank_changes, rank, validate_limit
from src.app.leaderboard.windows import (
    Clock,
    parse_period,
    parse_rank_history_period,
    previous_window,
    rank_history_windows,
    resolve_chart_window,
    resolve_date_range,
    resolve_window,
    utc_now,
)
from src.app.usage.domains import UsageRecord
from src.app.usage.store import SqlUsageRecordStore, UsageRecordStore
from src.app.users.domains import UserRead
from src.app.users.service import SqlUserDirectory, UserDirectory


class LeaderboardService:
    """
    Every query is derived on demand from a single read of the record store,
    nothing is cached between calls.
    """

    def __init__(
        self,
        record_store: UsageRecordStore,
        user_directory: UserDirectory,
        clock: Optional[Clock] = None,
    ):
        self.record_store = record_store
        self.user_directory = user_directory
        self.clock = clock or utc_now

    @classmethod
    def factory(cls) -> 'LeaderboardService':
        return cls(
            record_store=SqlUsageRecordStore.factory(),
            user_directory=SqlUserDirectory.factory(),
        )

    def get_leaderboard(
        self, period: Period | str, team_id: Optional[str] = None, limit: Optional[int] = None
    ) -> List[LeaderboardEntry]:
        """Ranked entries for a rolling period with rank changes against the window before it."""
        period = parse_period(period)
        validate_limit(limit)
        window = resolve_window(period, self.clock())
        records = self._fetch_records()
        return self._build_leaderboard(
            current=aggregate(records, window),
            previous=self._aggregate_previous(records, period, window),
            team_id=team_id,
            limit=limit,
        )

    def get_leaderboard_by_date_range(
        self, start_date: str, end_date: str, team_id: Optional[str] = None, limit: Optional[int] = None
    ) -> List[LeaderboardEntry]:
        """Ranked entries for an explicit inclusive range. There is no previous window to compare with."""
        window = resolve_date_range(start_date, end_date)
        validate_limit(limit)
        records = self._fetch_records()
        return self._build_leaderboard(current=aggregate(records, window), previous=None, team_id=team_id, limit=limit)

    def get_stats_summary(self, period: Period | str, team_id: Optional[str] = None) -> StatsSummary:
        window = resolve_window(period, self.clock())
        current = aggregate(self._fetch_records(), window)
        return self._summarize(current, team_id)

    def get_page_data(
        self, period: Period | str, team_id: Optional[str] = None, limit: Optional[int] = None
    ) -> LeaderboardPage:
        """Stats and leaderboard for one page view out of one record fetch."""
        period = parse_period(period)
        validate_limit(limit)
        window = resolve_window(period, self.clock())
        records = self._fetch_records()
        current = aggregate(records, window)
        previous = self._aggregate_previous(records, period, window)
        users = self._lookup_users(set(current) | set(previous or ()))

        return LeaderboardPage(
            period=period,
            stats=self._summarize(current, team_id, users),
            leaderboard=self._build_leaderboard(current, previous, team_id, limit, users),
        )

    def get_user_rank(self, user_id: str, period: Period | str) -> UserRankResponse:
        """
        Where a user sits among their own team. Users with no usage in the
        window get a null rank and stats.
        """
        user = self.user_directory.get(user_id)
        leaderboard = self.get_leaderboard(period, team_id=user.team_id)
        for entry in leaderboard:
            if entry.user_id == user_id:
                return UserRankResponse(rank=entry.rank, total_participants=len(leaderboard), stats=entry)

        return UserRankResponse(rank=None, total_participants=len(leaderboard), stats=None)

    def get_historical_rankings(
        self, user_id: str, period_type: RankHistoryPeriod | str, num_periods: Optional[int] = None
    ) -> HistoricalRankingsResponse:
        """The user's team rank over each of the last `num_periods` calendar periods, newest first."""
        period_type = parse_rank_history_period(period_type)
        num_periods = validate_limit(num_periods) or settings.RANK_HISTORY_DEFAULT_PERIODS
        user = self.user_directory.get(user_id)
        windows = rank_history_windows(period_type, num_periods, self.clock())

        records = self._fetch_records()
        aggregates_by_window = [aggregate(records, window) for window in windows]
        users = self._lookup_users(set().union(*aggregates_by_window))

        rankings = []
        for window, aggregates in zip(windows, aggregates_by_window):
            ranked = rank(filter_by_team(aggregates, users, user.team_id).values())
            position = next((r.rank for r in ranked if r.aggregate.user_id == user_id), None)
            user_aggregate = aggregates.get(user_id) or UserAggregate(user_id=user_id)
            rankings.append(
                HistoricalRank(
                    period_start=window.start,
                    period_end=window.end,
                    rank=position,
                    total_participants=len(ranked),
                    **user_aggregate.counters(),
                )
            )

        return HistoricalRankingsResponse(user_id=user_id, period_type=period_type, rankings=rankings)

    def get_usage_chart(
        self,
        bucket: BucketMode | str = BucketMode.DAY,
        period: Period | str | None = None,
        time_range: ChartTimeRange | str | None = None,
    ) -> List[OverallChartPoint]:
        """Total tokens, cost and active users per bucket, oldest bucket first."""
        window = resolve_chart_window(self.clock(), bucket=bucket, time_range=time_range, period=period)
        daily = aggregate_by_date(self._fetch_records(), window)
        logger.debug(f'usage chart over {len(daily)} days in {window.start}..{window.end}')
        return overall_series(daily, bucket)

    def get_user_usage_chart(
        self,
        bucket: BucketMode | str = BucketMode.DAY,
        top_n: Optional[int] = None,
        period: Period | str | None = None,
        time_range: ChartTimeRange | str | None = None,
        team_id: Optional[str] = None,
        cumulative_costs: bool = False,
    ) -> UserChartResponse:
        """
        Cost per bucket for the top N users of the whole window. Every point
        carries every user, zero when they were idle in that bucket.
        """
        top_n = validate_limit(top_n) or settings.CHART_DEFAULT_TOP_N
        window = resolve_chart_window(self.clock(), bucket=bucket, time_range=time_range, period=period)
        records = self._fetch_records()

        current = aggregate(records, window)
        users = self._lookup_users(current)
        top = apply_limit(rank(filter_by_team(current, users, team_id).values()), top_n)

        series_keys = sanitize_series_keys([(r.aggregate.user_id, users[r.aggregate.user_id].label) for r in top])
        # Every bucket with any usage in the window gets a point, not only those of the top users
        bucket_keys = bucketize(aggregate_by_date(records, window), bucket)
        costs = aggregate_cost_by_date_and_user(records, window, set(series_keys))
        series = user_series(bucketize_user_costs(costs, bucket), series_keys, bucket_keys)
        if cumulative_costs:
            series = cumulative(series)

        chart_users = [
            ChartUser(
                user_id=r.aggregate.user_id,
                display_name=users[r.aggregate.user_id].label,
                series_key=series_keys[r.aggregate.user_id],
                total_cost=float(r.aggregate.total_cost),
                rank=r.rank,
            )
            for r in top
        ]
        return UserChartResponse(users=chart_users, series=series)

    def get_user_daily_records(self, user_id: str, start_date: str, end_date: str) -> List[UsageRecord]:
        window = resolve_date_range(start_date, end_date)
        records = [r for r in self.record_store.fetch_for_user(user_id) if window.contains(r.effective_date)]
        return sorted(records, key=lambda r: (r.effective_date, r.date))

    def get_user_aggregate_stats(self, user_id: str, start_date: str, end_date: str) -> UserAggregateStats:
        window = resolve_date_range(start_date, end_date)
        user_aggregate = aggregate(self.record_store.fetch_for_user(user_id), window).get(user_id)
        if user_aggregate is None:
            user_aggregate = UserAggregate(user_id=user_id)

        return UserAggregateStats(
            user_id=user_id,
            start_date=window.start,
            end_date=window.end,
            models_used=sorted(user_aggregate.models_used),
            days_active=user_aggregate.record_count,
            **user_aggregate.counters(),
        )

    def _fetch_records(self) -> List[UsageRecord]:
        records = self.record_store.fetch_all()
        logger.debug(f'fetched {len(records)} usage records')
        return records

    def _aggregate_previous(
        self, records: Sequence[UsageRecord], period: Period, window: DateWindow
    ) -> Optional[Dict[str, UserAggregate]]:
        prior_window = previous_window(period, window)
        if prior_window is None:
            return None
        return aggregate(records, prior_window)

    def _lookup_users(self, user_ids: Iterable[str]) -> Dict[str, UserRead]:
        user_ids = set(user_ids)
        users = self.user_directory.bulk_get(user_ids)
        for missing in sorted(user_ids - users.keys()):
            logger.warning(f'user {missing} has usage but is not in the user registry, skipping')
        return users

    def _summarize(
        self,
        current: Mapping[str, UserAggregate],
        team_id: Optional[str],
        users: Optional[Mapping[str, UserRead]] = None,
    ) -> StatsSummary:
        # Without a team every user with usage counts, registered or not
        if team_id is None:
            return summarize(current)
        if users is None:
            users = self._lookup_users(current)
        return summarize(filter_by_team(current, users, team_id))

    def _build_leaderboard(
        self,
        current: Mapping[str, UserAggregate],
        previous: Optional[Mapping[str, UserAggregate]],
        team_id: Optional[str],
        limit: Optional[int],
        users: Optional[Mapping[str, UserRead]] = None,
    ) -> List[LeaderboardEntry]:
        if users is None:
            users = self._lookup_users(set(current) | set(previous or ()))

        ranked = rank(filter_by_team(current, users, team_id).values())
        prior_ranked = rank(filter_by_team(previous, users, team_id).values()) if previous is not None else None
        rank_changes = compute_rank_changes(ranked, prior_ranked)
        logger.debug(f'ranked {len(ranked)} of {len(current)} aggregates')

        ranked = apply_limit(ranked, limit)
        return [self._to_entry(r, users[r.aggregate.user_id], rank_changes[r.aggregate.user_id]) for r in ranked]

    @staticmethod
    def _to_entry(ranked_aggregate: RankedAggregate, user: UserRead, rank_change: RankChange) -> LeaderboardEntry:
        user_aggregate = ranked_aggregate.aggregate
        return LeaderboardEntry(
            user_id=user.id,
            display_name=user.label,
            external_id=user.external_id,
            team_id=user.team_id,
            models_used=sorted(user_aggregate.models_used),
            rank=ranked_aggregate.rank,
            rank_change=rank_change,
            last_synced_at=user_aggregate.last_synced_at,
            has_report=user.has_report,
            **user_aggregate.counters(),
        )
