"""
Async database setup with SQLAlchemy and aiosqlite.

The job ledger is the only durable shared state; every connection runs in
WAL mode so status polls can read while a download result is being written.
"""
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from workbench.config import DATABASE_URL, ensure_directories
from workbench.models import Base

SQLITE_BUSY_TIMEOUT_MS = 5000


def _set_sqlite_pragmas(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute('PRAGMA journal_mode=WAL')
    cursor.execute('PRAGMA synchronous=NORMAL')
    cursor.execute(f'PRAGMA busy_timeout={SQLITE_BUSY_TIMEOUT_MS}')
    cursor.close()


def create_engine(url: str = DATABASE_URL) -> AsyncEngine:
    """Create an async engine with per-connection SQLite pragmas."""
    new_engine = create_async_engine(url, echo=False, future=True)
    event.listen(new_engine.sync_engine, 'connect', _set_sqlite_pragmas)
    return new_engine


def create_session_factory(bind: AsyncEngine) -> async_sessionmaker:
    """Session factory; objects stay readable after commit."""
    return async_sessionmaker(bind, class_=AsyncSession, expire_on_commit=False)


engine = create_engine()
async_session_factory = create_session_factory(engine)


async def init_db():
    """Initialize database - create tables if they don't exist."""
    ensure_directories()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db():
    """Close database connections."""
    await engine.dispose()


async def get_db():
    """
    Dependency that provides an async database session.

    Usage:
        @router.get('/keys')
        async def list_keys(db: AsyncSession = Depends(get_db)):
            ...
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
