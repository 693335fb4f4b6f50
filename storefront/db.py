"""SQLAlchemy engine, session factory and schema helpers.

The engine owns the shared connection pool. Every order transaction checks
out one session from ``SessionLocal`` and hands it back when done, whether
the transaction committed or rolled back.

SQLite is supported for tests and local development. Its transactions are
opened with ``BEGIN IMMEDIATE`` so concurrent writers queue on the database
lock instead of failing half-way, which is the closest SQLite gets to the
row locks taken on PostgreSQL.
"""

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from .config import get_settings


class Base(DeclarativeBase):
    pass


def _is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


def _enable_sqlite_locking(engine: Engine) -> None:
    # pysqlite's own transaction handling is disabled so BEGIN is ours.
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, _connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_engine(url: str | None = None) -> Engine:
    """Create a pooled engine for ``url`` (defaults to the configured one).

    Args:
        url: SQLAlchemy database URL. ``None`` uses ``Settings.database_url``.

    Returns:
        Engine: Engine with ``pool_pre_ping`` enabled.
    """
    settings = get_settings()
    url = url or settings.database_url
    if _is_sqlite(url):
        engine = create_engine(
            url,
            pool_pre_ping=True,
            connect_args={"check_same_thread": False, "timeout": 30},
        )
        _enable_sqlite_locking(engine)
        return engine
    return create_engine(
        url,
        pool_pre_ping=True,
        pool_size=settings.pool_size,
        pool_timeout=settings.pool_timeout,
    )


def make_session_factory(bind: Engine) -> sessionmaker:
    return sessionmaker(bind=bind, autoflush=False, expire_on_commit=False)


engine = build_engine()
SessionLocal = make_session_factory(engine)


def init_db(bind: Engine = engine) -> None:
    """Create every table known to the ORM metadata."""
    from .orders import models  # noqa: F401  (registers the tables)

    Base.metadata.create_all(bind)


def ping(bind: Engine = engine) -> bool:
    """Return True when the database answers a trivial query."""
    with bind.connect() as conn:
        return conn.execute(text("SELECT 1 + 1")).scalar() == 2
