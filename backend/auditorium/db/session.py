"""
Async engine and session factory.

One AsyncSession per request. Services that need an explicit transaction
boundary (the allocation engine) commit or roll back themselves; get_db
commits whatever is left pending once the endpoint returns.
"""

from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from auditorium.core.config import get_settings

settings = get_settings()


def build_engine(url: str) -> AsyncEngine:
    if url.startswith("sqlite"):
        # SQLite: pool sizing does not apply, writers serialize on the file lock
        return create_async_engine(url, echo=settings.DEBUG)
    return create_async_engine(
        url,
        echo=settings.DEBUG,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        pool_recycle=settings.DB_POOL_RECYCLE,
        pool_pre_ping=True,
    )


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind, class_=AsyncSession, expire_on_commit=False, autoflush=False)


engine = build_engine(settings.DATABASE_URL)
SessionLocal = build_session_factory(engine)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with SessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
