from src.common.exceptions import ValidationException


class LeaderboardException(ValidationException):
    default_detail = 'Invalid leaderboard query.'
    default_code = 'invalid_leaderboard_query'


class InvalidPeriod(LeaderboardException):
    default_detail = 'Unknown leaderboard period.'
    default_code = 'invalid_period'


class InvalidBucketMode(LeaderboardException):
    default_detail = 'Unknown chart bucket mode.'
    default_code = 'invalid_bucket_mode'


class InvalidTimeRange(LeaderboardException):
    default_detail = 'Unknown chart time range.'
    default_code = 'invalid_time_range'


class InvalidDateString(LeaderboardException):
    default_detail = 'Dates must be YYYY-MM-DD.'
    default_code = 'invalid_date'


class InvalidDateRange(LeaderboardException):
    default_detail = 'Start date is after end date.'
    default_code = 'invalid_date_range'


class InvalidLimit(LeaderboardException):
    default_detail = 'Limits must be positive integers.'
    default_code = 'invalid_limit'
