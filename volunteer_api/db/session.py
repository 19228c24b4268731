"""
Async engine and session lifecycle.

The engine is created lazily by `connect()` during application startup and
verified with a round-trip before the app accepts traffic. Requests that reach
`get_db` before that (or after `disconnect()`) get a 503 instead of a
half-initialised handle.
"""

from typing import AsyncGenerator, Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from volunteer_api.core.config import get_settings
from volunteer_api.core.errors import Unavailable
from volunteer_api.core.logging import get_logger

logger = get_logger(__name__)

_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def create_engine_from_settings() -> AsyncEngine:
    settings = get_settings()
    kwargs = {"echo": settings.DEBUG, "pool_pre_ping": True}
    if not settings.DATABASE_URL.startswith("sqlite"):
        kwargs.update(
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_timeout=settings.DB_POOL_TIMEOUT,
            pool_recycle=settings.DB_POOL_RECYCLE,
        )
    return create_async_engine(settings.DATABASE_URL, **kwargs)


async def connect() -> AsyncEngine:
    """Create the engine and prove it can reach the database."""
    global _engine, _session_factory

    engine = create_engine_from_settings()
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception:
        await engine.dispose()
        raise

    _engine = engine
    _session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    logger.info("database_connected", url=engine.url.render_as_string(hide_password=True))
    return engine


async def disconnect() -> None:
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
        logger.info("database_disconnected")
    _engine = None
    _session_factory = None


def is_connected() -> bool:
    return _session_factory is not None


async def ping() -> bool:
    if _engine is None:
        return False
    try:
        async with _engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.warning("database_ping_failed", error=str(e))
        return False


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency yielding one session per request.
    Services commit their own unit of work; anything left open is rolled back.
    """
    if not is_connected():
        raise Unavailable("Database is not connected yet")

    async with _session_factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
