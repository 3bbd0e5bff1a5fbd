import pytest
from sqlalchemy.orm import Session

from src import setup
from src.app.leaderboard.service import LeaderboardService
from src.app.usage import SqlUsageRecordStore
from src.app.users import SqlUserDirectory, UserCreate
from src.network.database.session import db as session_manager


@pytest.fixture(scope='function', autouse=True)
def db() -> Session:
    """
    Fresh schema per test on the in-memory sqlite database. Everything the
    test writes happens inside this one session and is rolled back.
    """
    setup.create_tables()

    with session_manager(commit_on_success=False):
        yield session_manager.session

    setup.drop_tables()


@pytest.fixture
def sql_record_store() -> SqlUsageRecordStore:
    return SqlUsageRecordStore.factory()


@pytest.fixture
def sql_user_directory(users) -> SqlUserDirectory:
    directory = SqlUserDirectory.factory()
    for user in users:
        directory.create(UserCreate(**user.model_dump(exclude={'created_at'})))
    return directory


@pytest.fixture
def sql_leaderboard_service(sql_record_store, sql_user_directory, clock) -> LeaderboardService:
    return LeaderboardService(record_store=sql_record_store, user_directory=sql_user_directory, clock=clock)
