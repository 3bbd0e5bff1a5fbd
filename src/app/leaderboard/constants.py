from dateutil.relativedelta import relativedelta

from src.app.leaderboard.domains import BucketMode, ChartTimeRange, Period, RankHistoryPeriod

# Days covered by each rolling period before the timezone buffer is applied
PERIOD_LENGTH_DAYS = {
    Period.DAILY: 1,
    Period.WEEKLY: 7,
    Period.MONTHLY: 30,
}

# How far back a chart reaches when only the bucket mode is given
BUCKET_LOOKBACK_DAYS = {
    BucketMode.DAY: 30,
    BucketMode.WEEK: 84,
    BucketMode.MONTH: 365,
}

# ChartTimeRange.ALL has no lookback, it starts at the epoch floor
TIME_RANGE_LOOKBACK = {
    ChartTimeRange.DAYS_30: relativedelta(days=30),
    ChartTimeRange.DAYS_90: relativedelta(days=90),
    ChartTimeRange.MONTHS_6: relativedelta(months=6),
    ChartTimeRange.YEAR_1: relativedelta(years=1),
}

RANK_HISTORY_STEP = {
    RankHistoryPeriod.DAILY: relativedelta(days=1),
    RankHistoryPeriod.WEEKLY: relativedelta(weeks=1),
    RankHistoryPeriod.MONTHLY: relativedelta(months=1),
}

FALLBACK_SERIES_KEY = 'user'
