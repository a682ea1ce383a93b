from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from libs.common.config import get_settings

settings = get_settings()


def enable_sqlite_savepoints(engine: AsyncEngine) -> None:
    """Let pysqlite honour SAVEPOINT by taking over BEGIN from the driver."""

    @event.listens_for(engine.sync_engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")


_is_sqlite = settings.DATABASE_URL.startswith("sqlite")

_engine_kwargs = {}
if not _is_sqlite:
    _engine_kwargs = dict(
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        pool_recycle=settings.DB_POOL_RECYCLE,
    )

# echo=True for local dev to see SQL queries
engine = create_async_engine(
    settings.DATABASE_URL,
    echo=(settings.ENVIRONMENT == "local"),
    future=True,
    pool_pre_ping=True,  # Test connections before using
    **_engine_kwargs,
)
if _is_sqlite:
    enable_sqlite_savepoints(engine)

AsyncSessionLocal = async_sessionmaker(
    bind=engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
)
