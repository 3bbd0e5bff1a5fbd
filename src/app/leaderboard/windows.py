"""
Date and window resolution. Every function takes "now" explicitly, callers
own the clock, so the same inputs always resolve to the same window.
"""
from datetime import date, datetime, timedelta, timezone
from typing import Callable, Optional, Type, TypeVar

from loguru import logger

from src import settings
from src.app.leaderboard.constants import (
    BUCKET_LOOKBACK_DAYS,
    PERIOD_LENGTH_DAYS,
    RANK_HISTORY_STEP,
    TIME_RANGE_LOOKBACK,
)
from src.app.leaderboard.domains import BucketMode, ChartTimeRange, DateWindow, Period, RankHistoryPeriod
from src.app.leaderboard.exceptions import (
    InvalidBucketMode,
    InvalidDateRange,
    InvalidDateString,
    InvalidPeriod,
    InvalidTimeRange,
)
from src.common.enum import BaseEnum
from src.common.utils import format_date, get_first_date_of_month, get_first_date_of_week, parse_date_string

Clock = Callable[[], datetime]

_EnumT = TypeVar('_EnumT', bound=BaseEnum)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def utc_today(now: datetime) -> date:
    # Naive datetimes are taken to already be UTC
    if now.tzinfo is None:
        return now.date()
    return now.astimezone(timezone.utc).date()


def _parse_choice(enum_cls: Type[_EnumT], value: object, exception: Type[Exception]) -> _EnumT:
    try:
        return enum_cls.parse(value, exception=exception)
    except exception:
        logger.warning(f'rejected {enum_cls.__name__} value {value!r}')
        raise


def parse_period(value: object) -> Period:
    return _parse_choice(Period, value, InvalidPeriod)


def parse_rank_history_period(value: object) -> RankHistoryPeriod:
    return _parse_choice(RankHistoryPeriod, value, InvalidPeriod)


def parse_bucket_mode(value: object) -> BucketMode:
    return _parse_choice(BucketMode, value, InvalidBucketMode)


def parse_time_range(value: object) -> ChartTimeRange:
    return _parse_choice(ChartTimeRange, value, InvalidTimeRange)


def validate_date_string(value: str) -> str:
    try:
        parse_date_string(value)
    except ValueError as e:
        raise InvalidDateString(str(e), context={'value': value}) from e
    return value


def _buffered_end(today: date) -> str:
    return format_date(today + timedelta(days=settings.LEADERBOARD_WINDOW_BUFFER_DAYS))


def resolve_window(period: Period | str, now: datetime) -> DateWindow:
    """
    Rolling window for a leaderboard period. Both ends are padded by the
    timezone buffer so a client whose local date is a day off UTC still
    lands inside "today". All-time starts at the epoch floor.
    """
    period = parse_period(period)
    today = utc_today(now)
    end = _buffered_end(today)

    if period == Period.ALLTIME:
        window = DateWindow(settings.LEADERBOARD_EPOCH_DATE, end)
    else:
        days_back = PERIOD_LENGTH_DAYS[period] + settings.LEADERBOARD_WINDOW_BUFFER_DAYS
        window = DateWindow(format_date(today - timedelta(days=days_back)), end)

    logger.debug(f'resolved {period} window {window.start}..{window.end}')
    return window


def previous_window(period: Period | str, window: DateWindow) -> Optional[DateWindow]:
    """
    The equal length window ending the day before `window` starts.
    All-time has nothing before it.
    """
    if parse_period(period) == Period.ALLTIME:
        return None

    start = parse_date_string(window.start)
    length = (parse_date_string(window.end) - start).days + 1
    prev_end = start - timedelta(days=1)
    prev_start = prev_end - timedelta(days=length - 1)
    return DateWindow(format_date(prev_start), format_date(prev_end))


def resolve_date_range(start_date: str, end_date: str) -> DateWindow:
    validate_date_string(start_date)
    validate_date_string(end_date)
    if start_date > end_date:
        raise InvalidDateRange(
            f'{start_date} is after {end_date}', context={'start_date': start_date, 'end_date': end_date}
        )
    return DateWindow(start_date, end_date)


def resolve_chart_window(
    now: datetime,
    bucket: BucketMode | str = BucketMode.DAY,
    time_range: ChartTimeRange | str | None = None,
    period: Period | str | None = None,
) -> DateWindow:
    """
    An explicit time range wins, then a leaderboard period, then the bucket
    mode's own lookback horizon.
    """
    bucket = parse_bucket_mode(bucket)
    today = utc_today(now)
    end = _buffered_end(today)

    if time_range is not None:
        time_range = parse_time_range(time_range)
        if time_range == ChartTimeRange.ALL:
            return DateWindow(settings.LEADERBOARD_EPOCH_DATE, end)
        return DateWindow(format_date(today - TIME_RANGE_LOOKBACK[time_range]), end)

    if period is not None:
        return resolve_window(period, now)

    return DateWindow(format_date(today - timedelta(days=BUCKET_LOOKBACK_DAYS[bucket])), end)


def rank_history_windows(period_type: RankHistoryPeriod | str, num_periods: int, now: datetime) -> list[DateWindow]:
    """
    The last `num_periods` calendar periods, newest first. Weeks run Monday
    to Sunday, the current period is cut off at today.
    """
    period_type = parse_rank_history_period(period_type)
    today = utc_today(now)

    if period_type == RankHistoryPeriod.DAILY:
        current_start = today
    elif period_type == RankHistoryPeriod.WEEKLY:
        current_start = get_first_date_of_week(today)
    else:
        current_start = get_first_date_of_month(today)

    step = RANK_HISTORY_STEP[period_type]
    windows = []
    for i in range(num_periods):
        start = current_start - step * i
        end = start + step - timedelta(days=1)
        windows.append(DateWindow(format_date(start), format_date(min(end, today))))

    return windows


def week_bucket_key(date_string: str) -> str:
    """Monday of the ISO week containing the date."""
    return format_date(get_first_date_of_week(parse_date_string(date_string)))


def month_bucket_key(date_string: str) -> str:
    return format_date(get_first_date_of_month(parse_date_string(date_string)))


def bucket_key(date_string: str, bucket: BucketMode | str) -> str:
    bucket = parse_bucket_mode(bucket)
    if bucket == BucketMode.WEEK:
        return week_bucket_key(date_string)
    if bucket == BucketMode.MONTH:
        return month_bucket_key(date_string)
    return date_string
