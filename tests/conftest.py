import os
import sys
from datetime import datetime, timezone
from typing import Callable, Iterable, Optional

# Test Environment Overrides will override .env files
# THESE MUST BE SET BEFORE ANYTHING FROM src IS IMPORTED
EXPECTED_DATABASE_URL = 'sqlite://'
os.environ.setdefault('ENVIRONMENT', 'testing')
os.environ.setdefault('DATABASE_URL', EXPECTED_DATABASE_URL)
os.environ.setdefault('DB_LOG_STATEMENTS', 'False')
os.environ.setdefault('LEADERBOARD_EPOCH_DATE', '2000-01-01')
os.environ.setdefault('LEADERBOARD_WINDOW_BUFFER_DAYS', '1')

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
from src import setup

setup.run()

import pytest
from loguru import logger

# Add fixtures here
pytest_plugins = [
    'tests.factories.users',
]

# ruff: noqa: E402
from src import settings
from src.app.leaderboard.service import LeaderboardService
from src.app.usage import InMemoryUsageRecordStore, UsageRecord
from src.app.users import InMemoryUserDirectory, UserRead

# When src files are imported before the above patching, tests will use
# the wrong database and environment.
if settings.DATABASE_URL != EXPECTED_DATABASE_URL or not settings.IS_TESTING:
    raise ValueError(
        'Patching of environment variables failed.\n'
        'This will cause unexpected test failures'
        'Check all src imports are delayed until after patching.\n'
    )

# Wednesday
NOW = datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def caplog(caplog):
    """
    Route loguru records into pytest's caplog
    """
    handler_id = logger.add(caplog.handler, format='{message}', level=0)
    yield caplog
    logger.remove(handler_id)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def clock(now) -> Callable[[], datetime]:
    return lambda: now


@pytest.fixture
def make_record() -> Callable[..., UsageRecord]:
    """
    Builds a UsageRecord with tokens split evenly between input and output:
        make_record('alice', '2025-01-01', cost=5)
    """

    def _make_record(
        user_id: str,
        date: str,
        cost: float = 0.0,
        tokens: int = 0,
        utc_date: Optional[str] = None,
        models: Iterable[str] = (),
        updated_at: Optional[datetime] = None,
    ) -> UsageRecord:
        return UsageRecord(
            user_id=user_id,
            date=date,
            utc_date=utc_date,
            input_tokens=tokens // 2,
            output_tokens=tokens - tokens // 2,
            total_tokens=tokens,
            total_cost=cost,
            models_used=list(models),
            updated_at=updated_at or NOW,
        )

    return _make_record


@pytest.fixture
def make_user(user_factory) -> Callable[..., UserRead]:
    def _make_user(user_id: str, **overrides) -> UserRead:
        overrides.setdefault('display_name', user_id.title())
        return UserRead(**user_factory.build(id=user_id, **overrides).model_dump())

    return _make_user


@pytest.fixture
def users(make_user) -> list[UserRead]:
    return [make_user(user_id) for user_id in ('alice', 'bob', 'carol', 'dave')]


@pytest.fixture
def record_store() -> InMemoryUsageRecordStore:
    return InMemoryUsageRecordStore()


@pytest.fixture
def user_directory(users) -> InMemoryUserDirectory:
    return InMemoryUserDirectory(users)


@pytest.fixture
def leaderboard_service(record_store, user_directory, clock) -> LeaderboardService:
    return LeaderboardService(record_store=record_store, user_directory=user_directory, clock=clock)
