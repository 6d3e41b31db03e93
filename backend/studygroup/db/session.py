from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession, AsyncEngine
from sqlalchemy.pool import NullPool, StaticPool
from studygroup.core.config import settings


def is_sqlite(db_url: str) -> bool:
    return db_url.startswith("sqlite")


def create_engine_for(db_url: str) -> AsyncEngine:
    """
    Build the async engine for a DATABASE_URL.
    An in-memory SQLite database only exists on its one connection, so it
    is pinned with StaticPool; file databases get a normal connection pool.
    Postgres (asyncpg) opens a fresh connection per session.
    """
    if is_sqlite(db_url):
        if ":memory:" in db_url or "mode=memory" in db_url:
            return create_async_engine(
                db_url,
                echo=False,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        return create_async_engine(db_url, echo=False)

    # For Supabase/PostgreSQL with asyncpg, SSL is specified in the URL, not connect_args
    if "supabase" in db_url and "ssl=" not in db_url:
        db_url = db_url + ("&" if "?" in db_url else "?") + "ssl=require"

    return create_async_engine(
        db_url,
        echo=settings.ENVIRONMENT == "development" and settings.LOG_LEVEL.upper() == "DEBUG",
        future=True,
        poolclass=NullPool,  # Fixes asyncpg concurrency/connection issues
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )
