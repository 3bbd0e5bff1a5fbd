from unittest.mock import patch

import pytest


@pytest.fixture(autouse=True)
def no_db_access():
    """
    The engine and the in-memory stores never touch the SQL engine, any
    connection attempt here means a unit test reached a SQL store
    """

    with patch(
        'src.network.database.session._rw_engine.connect',
        side_effect=RuntimeError('Database access attempted from a unit test, use the in-memory stores'),
    ):
        yield
