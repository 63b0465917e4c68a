"""
Database configuration and session management
"""

from contextlib import contextmanager
from functools import lru_cache
from typing import Callable, Iterator

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, create_engine
import structlog

from pos_orders.core.config import get_settings

logger = structlog.get_logger(__name__)

SessionFactory = Callable[[], Session]


def create_db_engine(database_url: str, echo: bool = False) -> Engine:
    """Create an engine for the given URL.

    SQLite ignores SELECT ... FOR UPDATE, so every SQLite transaction is
    opened with BEGIN IMMEDIATE instead. That takes the database write lock
    up front and gives concurrent read-then-write operations the same
    exclusion a row lock gives on PostgreSQL.
    """
    if not database_url.startswith("sqlite"):
        return create_engine(database_url, echo=echo, future=True, pool_pre_ping=True)

    settings = get_settings()
    kwargs = {
        "echo": echo,
        "future": True,
        "connect_args": {
            "check_same_thread": False,
            "timeout": settings.SQLITE_BUSY_TIMEOUT_SECONDS,
        },
    }
    if database_url in ("sqlite://", "sqlite:///:memory:"):
        kwargs["poolclass"] = StaticPool
    engine = create_engine(database_url, **kwargs)

    @event.listens_for(engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record):
        # pysqlite would otherwise emit its own deferred BEGIN
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


def create_session_factory(engine: Engine) -> SessionFactory:
    """Session factory whose objects stay readable after commit"""
    return sessionmaker(bind=engine, class_=Session, expire_on_commit=False)


@lru_cache()
def get_engine() -> Engine:
    """Get the process-wide engine built from settings"""
    settings = get_settings()
    return create_db_engine(settings.DATABASE_URL, echo=settings.DATABASE_ECHO)


@lru_cache()
def get_session_factory() -> SessionFactory:
    """Get the process-wide session factory"""
    return create_session_factory(get_engine())


def init_db(engine: Engine) -> None:
    """Initialize database tables"""
    # Register all table models on the metadata
    import pos_orders.models  # noqa: F401

    SQLModel.metadata.create_all(engine)
    logger.info("Database tables created")


@contextmanager
def transaction(session_factory: SessionFactory) -> Iterator[Session]:
    """Open a session and run one transaction: commit on success, roll back on error"""
    with session_factory() as session:
        with session.begin():
            yield session
