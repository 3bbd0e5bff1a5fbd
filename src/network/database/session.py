import time
from contextvars import ContextVar
from enum import Enum
from typing import Any, Dict, Optional

from loguru import logger
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.engine.url import make_url
from sqlalchemy.orm import sessionmaker
from sqlalchemy.orm.session import Session as SqlAlchemySession
from sqlalchemy.pool import NullPool, StaticPool

from src import settings


class DatabaseMode(Enum):
    READ_WRITE = 'read_write'
    READ_ONLY = 'read_only'


def create_db_engine(database_url: str) -> Engine:
    url = make_url(database_url)
    if url.get_backend_name() == 'sqlite':
        # In memory databases only exist for the life of a single connection
        # so every session has to share it
        in_memory = url.database in (None, '', ':memory:')
        return create_engine(
            url,
            poolclass=StaticPool if in_memory else NullPool,
            connect_args={'check_same_thread': False},
        )

    return create_engine(
        url,
        poolclass=NullPool,
        connect_args={
            'options': '-c timezone=utc -c statement_timeout=300000',  # 5 min statement timeout
            'connect_timeout': 10,  # 10 second connection timeout
        },
        pool_pre_ping=True,  # Verify connections before use
    )


_rw_engine = create_db_engine(settings.DATABASE_URL)
_rw_session_maker = sessionmaker(autocommit=False, autoflush=False, bind=_rw_engine)


def get_engine() -> Engine:
    return _rw_engine


if settings.DB_LOG_STATEMENTS:
    # Log statements and their execution times
    @event.listens_for(Engine, 'before_cursor_execute')
    def before_cursor_execute(
        conn: Any, cursor: Any, statement: str, parameters: Any, context: Any, executemany: bool
    ) -> None:
        conn.info.setdefault('query_start_time', []).append(time.time())
        logger.info(f'Start Query: {statement}')

    @event.listens_for(Engine, 'after_cursor_execute')
    def after_cursor_execute(
        conn: Any, cursor: Any, statement: str, parameters: Any, context: Any, executemany: bool
    ) -> None:
        total = time.time() - conn.info['query_start_time'].pop(-1)
        logger.info(f'Query Time: {total}')


# Context variables for session storage and mode
# Should be thread safe as well as coroutine safe!
_session_storage: ContextVar[SqlAlchemySession | None] = ContextVar('_session_storage', default=None)
_session_mode: ContextVar[DatabaseMode] = ContextVar('_session_mode', default=DatabaseMode.READ_WRITE)


class SessionNotAvailable(Exception):
    def __init__(self) -> None:
        msg = """
        Either you are not currently in a session context, or you need to manually
        create a session context by using a `db` instance as a context manager e.g.:
        with db():
            db.session.execute(Select(UsageDaily))
        """
        super().__init__(msg)


class SessionManagerMeta(type):
    """
    Access session as a property on context manager
    without having to init
    """

    @property
    def session(self) -> SqlAlchemySession:
        """
        Make a thread and coroutine safe session
        """
        global _session_storage
        session = _session_storage.get()
        if session is None:
            raise SessionNotAvailable

        return session

    @property
    def mode(self) -> DatabaseMode:
        return _session_mode.get()


class SessionManager(metaclass=SessionManagerMeta):
    def __init__(
        self,
        session_kwargs: Dict[str, Any] | None = None,
        commit_on_success: bool = False,
        mode: DatabaseMode = DatabaseMode.READ_WRITE,
    ):
        self.session_token: Optional[Any] = None
        self.mode_token: Optional[Any] = None
        self.session_kwargs = session_kwargs or {}
        self.commit_on_success = commit_on_success
        self.mode = mode

    def enter(self) -> Any:
        global _session_storage, _session_mode

        self.mode_token = _session_mode.set(self.mode)

        # Nested managers share the outer session, only the outermost
        # manager owns commit / rollback / close
        if _session_storage.get() is None:
            session = _rw_session_maker(**self.session_kwargs)
            self.session_token = _session_storage.set(session)

        if self.mode == DatabaseMode.READ_ONLY:
            ro_session = _session_storage.get()
            if ro_session is None:
                raise SessionNotAvailable()

            @event.listens_for(ro_session, 'before_flush')
            def prevent_write_on_readonly(session: SqlAlchemySession, *args: Any, **kwargs: Any) -> None:
                if _session_mode.get() != DatabaseMode.READ_ONLY:
                    return
                if len(session.new) > 0 or len(session.deleted) > 0 or len(session.dirty) > 0:
                    raise RuntimeError('Cannot modify database in read-only mode')

            self._ro_listener = (ro_session, prevent_write_on_readonly)

        return type(self)

    @property
    def owns_session(self) -> bool:
        return self.session_token is not None

    def cleanup(self) -> None:
        global _session_storage
        ro_listener = getattr(self, '_ro_listener', None)
        if ro_listener is not None:
            event.remove(ro_listener[0], 'before_flush', ro_listener[1])
            self._ro_listener = None
        if self.owns_session:
            session = _session_storage.get()
            if session is not None:
                session.close()
            _session_storage.reset(self.session_token)
            self.session_token = None
        if self.mode_token:
            _session_mode.reset(self.mode_token)
            self.mode_token = None

    def __enter__(self) -> Any:
        return self.enter()

    def __exit__(self, exc_type: Any, exc_value: Any, traceback: Any) -> None:
        global _session_storage
        session = _session_storage.get()
        session_mode = _session_mode.get()
        is_success = exc_type is None

        if session is not None and self.owns_session:
            if self.commit_on_success and is_success and session_mode == DatabaseMode.READ_WRITE:
                session.commit()
            else:
                session.rollback()

        self.cleanup()


# This is what external callers should access!
db: SessionManagerMeta = SessionManager


class ReadOnlySession(SessionManager):
    """
    Read-only session, any flush with pending changes raises.

    Usage:
    with ReadOnlySession():
        results = db.session.query(UsageDaily).all()
    """

    def __init__(self, session_kwargs: Dict[str, Any] | None = None) -> None:
        super().__init__(session_kwargs=session_kwargs, commit_on_success=False, mode=DatabaseMode.READ_ONLY)
