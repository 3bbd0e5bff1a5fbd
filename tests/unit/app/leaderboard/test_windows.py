from datetime import datetime, timedelta, timezone

import pytest

from src.app.leaderboard.domains import BucketMode, DateWindow, Period
from src.app.leaderboard.exceptions import (
    InvalidBucketMode,
    InvalidDateRange,
    InvalidDateString,
    InvalidPeriod,
    InvalidTimeRange,
)
from src.app.leaderboard.windows import (
    bucket_key,
    month_bucket_key,
    previous_window,
    rank_history_windows,
    resolve_chart_window,
    resolve_date_range,
    resolve_window,
    utc_today,
    week_bucket_key,
)


class TestResolveWindow:
    @pytest.mark.parametrize(
        'period, expected',
        [
            ('daily', DateWindow('2025-01-13', '2025-01-16')),
            ('weekly', DateWindow('2025-01-07', '2025-01-16')),
            ('monthly', DateWindow('2024-12-15', '2025-01-16')),
            ('alltime', DateWindow('2000-01-01', '2025-01-16')),
        ],
    )
    def test_periods_are_buffered_on_both_ends(self, now, period, expected):
        assert resolve_window(period, now) == expected

    def test_accepts_enum_and_any_case(self, now):
        assert resolve_window(Period.WEEKLY, now) == resolve_window(' Weekly ', now)

    @pytest.mark.parametrize('period', ['yearly', '', None, 'all-time'])
    def test_unknown_period_is_rejected(self, now, period):
        """Test that unknown periods raise instead of falling back to weekly."""
        with pytest.raises(InvalidPeriod):
            resolve_window(period, now)

    def test_uses_the_utc_day(self):
        # Still the 14th in New York, already the 15th in UTC
        new_york = timezone(timedelta(hours=-5))
        late_evening = datetime(2025, 1, 14, 22, 0, tzinfo=new_york)
        assert utc_today(late_evening).isoformat() == '2025-01-15'
        assert resolve_window('daily', late_evening).end == '2025-01-16'

    def test_naive_now_is_treated_as_utc(self):
        assert utc_today(datetime(2025, 1, 15, 23, 59)).isoformat() == '2025-01-15'


class TestPreviousWindow:
    def test_equal_length_and_adjacent(self, now):
        current = resolve_window('weekly', now)
        previous = previous_window('weekly', current)
        assert previous == DateWindow('2024-12-28', '2025-01-06')

    def test_daily(self, now):
        assert previous_window('daily', resolve_window('daily', now)) == DateWindow('2025-01-09', '2025-01-12')

    def test_alltime_has_no_previous_window(self, now):
        assert previous_window('alltime', resolve_window('alltime', now)) is None


class TestResolveDateRange:
    def test_valid_range(self):
        assert resolve_date_range('2025-01-01', '2025-01-31') == DateWindow('2025-01-01', '2025-01-31')

    def test_single_day(self):
        assert resolve_date_range('2025-01-01', '2025-01-01').contains('2025-01-01')

    def test_start_after_end(self):
        with pytest.raises(InvalidDateRange):
            resolve_date_range('2025-02-01', '2025-01-31')

    @pytest.mark.parametrize('start, end', [('2025-1-1', '2025-01-31'), ('2025-01-01', 'tomorrow')])
    def test_malformed_dates(self, start, end):
        with pytest.raises(InvalidDateString):
            resolve_date_range(start, end)


class TestResolveChartWindow:
    @pytest.mark.parametrize(
        'bucket, start',
        [('day', '2024-12-16'), ('week', '2024-10-23'), ('month', '2024-01-16')],
    )
    def test_bucket_lookback(self, now, bucket, start):
        assert resolve_chart_window(now, bucket=bucket) == DateWindow(start, '2025-01-16')

    @pytest.mark.parametrize(
        'time_range, start',
        [
            ('30d', '2024-12-16'),
            ('90d', '2024-10-17'),
            ('6m', '2024-07-15'),
            ('1y', '2024-01-15'),
            ('all', '2000-01-01'),
        ],
    )
    def test_time_range(self, now, time_range, start):
        assert resolve_chart_window(now, time_range=time_range).start == start

    def test_time_range_beats_period_and_bucket(self, now):
        window = resolve_chart_window(now, bucket='month', time_range='30d', period='alltime')
        assert window.start == '2024-12-16'

    def test_period_beats_bucket(self, now):
        assert resolve_chart_window(now, bucket='month', period='weekly') == resolve_window('weekly', now)

    def test_unknown_values(self, now):
        with pytest.raises(InvalidBucketMode):
            resolve_chart_window(now, bucket='hour')
        with pytest.raises(InvalidTimeRange):
            resolve_chart_window(now, time_range='2w')


class TestRankHistoryWindows:
    def test_daily(self, now):
        assert rank_history_windows('daily', 2, now) == [
            DateWindow('2025-01-15', '2025-01-15'),
            DateWindow('2025-01-14', '2025-01-14'),
        ]

    def test_weekly_runs_monday_to_sunday(self, now):
        assert rank_history_windows('weekly', 3, now) == [
            DateWindow('2025-01-13', '2025-01-15'),
            DateWindow('2025-01-06', '2025-01-12'),
            DateWindow('2024-12-30', '2025-01-05'),
        ]

    def test_monthly(self, now):
        assert rank_history_windows('monthly', 3, now) == [
            DateWindow('2025-01-01', '2025-01-15'),
            DateWindow('2024-12-01', '2024-12-31'),
            DateWindow('2024-11-01', '2024-11-30'),
        ]

    def test_alltime_is_not_a_history_period(self, now):
        with pytest.raises(InvalidPeriod):
            rank_history_windows('alltime', 3, now)


class TestBucketKeys:
    @pytest.mark.parametrize(
        'date, monday',
        [
            ('2025-01-05', '2024-12-30'),  # Sunday maps back six days
            ('2025-01-06', '2025-01-06'),
            ('2025-01-08', '2025-01-06'),
            ('2025-01-12', '2025-01-06'),
        ],
    )
    def test_week_bucket_is_iso_monday(self, date, monday):
        assert week_bucket_key(date) == monday

    def test_month_bucket(self):
        assert month_bucket_key('2024-02-29') == '2024-02-01'

    def test_bucket_key(self):
        assert bucket_key('2025-01-08', BucketMode.DAY) == '2025-01-08'
        assert bucket_key('2025-01-08', 'week') == '2025-01-06'
        assert bucket_key('2025-01-08', 'month') == '2025-01-01'
