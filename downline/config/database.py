"""
Database configuration.

Async SQLAlchemy engine and session factory. Both are created lazily so that
importing the package does not require a database driver.
"""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    async_sessionmaker,
    create_async_engine,
)

from downline.config.settings import settings

_engine: AsyncEngine | None = None
_session_maker: async_sessionmaker | None = None


def create_engine(url: str | None = None, echo: bool | None = None) -> AsyncEngine:
    """
    Create async engine.

    Args:
        url: Database URL (defaults to settings)
        echo: Echo SQL statements (defaults to settings)

    Returns:
        Async engine
    """
    return create_async_engine(
        url or settings.async_database_url,
        echo=settings.database_echo if echo is None else echo,
        pool_size=settings.database_pool_size,
        pool_pre_ping=True,
    )


def get_engine() -> AsyncEngine:
    """Get (or create) the process-wide engine."""
    global _engine
    if _engine is None:
        _engine = create_engine()
    return _engine


def get_session_maker() -> async_sessionmaker:
    """Get (or create) the process-wide session factory."""
    global _session_maker
    if _session_maker is None:
        _session_maker = async_sessionmaker(
            get_engine(),
            expire_on_commit=False,
        )
    return _session_maker


async def dispose_engine() -> None:
    """Dispose the engine and forget the session factory."""
    global _engine, _session_maker
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_maker = None


async def init_models(engine: AsyncEngine, drop: bool = False) -> None:
    """
    Create all tables from the ORM metadata.

    Args:
        engine: Async engine
        drop: Drop existing tables first (destroys data)
    """
    from downline.models import Base

    async with engine.begin() as conn:
        if drop:
            await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all, checkfirst=True)
