"""Async engine, session factory and the request-scoped session dependency."""

from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from taskboard.config import Settings, get_settings

settings = get_settings()


def build_engine(config: Settings) -> AsyncEngine:
    """
    Engine for the configured database.

    On Postgres every connection gets a ``lock_timeout`` so a writer stuck
    behind another transaction's scope lock fails (and is reported as a
    conflict) instead of hanging the request.
    """
    options: dict = {"echo": config.debug, "pool_pre_ping": True}
    if config.database_url.startswith("postgresql+asyncpg://"):
        options.update(
            pool_size=5,
            max_overflow=10,
            connect_args={"server_settings": {"lock_timeout": str(config.db_lock_timeout_ms)}},
        )
    return create_async_engine(config.database_url, **options)


engine = build_engine(settings)

SessionFactory = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency yielding one session per request.

    Commits whatever the handler left pending, rolls back on any error.
    """
    async with SessionFactory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Factory for work that must outlive the request's session (chat cancellation)."""
    return SessionFactory
